"""Unit tests for payload builders."""

import pytest

from dokship.config.types import DomainSettings, ResourceLimits
from dokship.deploy.builders import (
    build_application_config,
    build_domain_config,
    build_env_blob,
    build_resource_fields,
    build_settings_update,
    cores_to_nano,
    deployment_url,
    image_tag,
    megabytes_to_bytes,
    parse_volumes,
    render_container_name,
    sanitize_container_name,
)

# ── Unit conversion ─────────────────────────────────────────────────


@pytest.mark.parametrize("mb", [4, 128, 512, 4096])
def test_megabytes_to_bytes(mb):
    assert megabytes_to_bytes(mb) == mb * 1048576


@pytest.mark.parametrize("cores,nano", [(0.5, 500_000_000), (2, 2_000_000_000), (0.001, 1_000_000), (0.3, 300_000_000)])
def test_cores_to_nano(cores, nano):
    assert cores_to_nano(cores) == nano


def test_resource_fields_only_for_supplied_inputs():
    fields = build_resource_fields(ResourceLimits(memory_limit=512, cpu_limit=1.5))
    assert fields == {"memoryLimit": str(512 * 1048576), "cpuLimit": "1500000000"}


def test_resource_fields_empty_when_nothing_set():
    assert build_resource_fields(ResourceLimits()) == {}


def test_replicas_stay_integer():
    assert build_resource_fields(ResourceLimits(replicas=3)) == {"replicas": 3}


@pytest.mark.parametrize(
    "policy,condition",
    [("always", "any"), ("unless-stopped", "any"), ("on-failure", "on-failure"), ("no", "none")],
)
def test_settings_update_restart_policy(policy, condition):
    update = build_settings_update(ResourceLimits(restart_policy=policy))
    assert update == {"restartPolicySwarm": {"Condition": condition}}


# ── Application payload ─────────────────────────────────────────────


def test_application_config_defaults(make_inputs):
    config = build_application_config("web", "p1", "e1", "s1", make_inputs())

    assert config["port"] == 8080
    assert config["targetPort"] == 8080
    assert config["restartPolicy"] == "unless-stopped"
    assert config["title"] == "web"
    assert "memoryLimit" not in config
    assert "cpuLimit" not in config
    assert "appName" not in config


def test_application_config_with_limits(make_inputs):
    inputs = make_inputs(memory_limit="1024", memory_reservation="256", cpu_limit="250m", port="3000")
    config = build_application_config("web", "p1", "e1", "s1", inputs)

    assert config["memoryLimit"] == str(1024 * 1048576)
    assert config["memoryReservation"] == str(256 * 1048576)
    assert config["cpuLimit"] == "250000000"
    assert config["port"] == 3000


# ── Container names ─────────────────────────────────────────────────


@pytest.mark.parametrize(
    "image,tag",
    [
        ("ghcr.io/x/web:v2.3.1", "v2.3.1"),
        ("nginx", "latest"),
        ("localhost:5000/app", "latest"),
        ("localhost:5000/app:1.0", "1.0"),
    ],
)
def test_image_tag(image, tag):
    assert image_tag(image) == tag


def test_render_container_name():
    assert render_container_name("{app}-{version}", "web", "ghcr.io/x/web:v2.3.1", "production") == "web-v2.3.1"


def test_render_container_name_env():
    assert render_container_name("{app}-{env}", "web", "nginx", "staging") == "web-staging"


def test_sanitize_replaces_invalid_characters():
    assert sanitize_container_name("-my app/web.") == "my-app-web"


def test_long_name_keeps_version_suffix():
    app = "a" * 80
    name = render_container_name("{app}-{version}", app, "ghcr.io/x/web:v2.3.1", "production")

    assert len(name) <= 63
    assert name.endswith("-v2.3.1")
    assert name.startswith("aaaa")


def test_long_name_without_version_is_truncated():
    name = sanitize_container_name("b" * 70 + "-service")
    assert name == "b" * 63


# ── Domain payload ──────────────────────────────────────────────────


def test_domain_config_absent_without_host():
    assert build_domain_config(DomainSettings()) is None


def test_domain_config_defaults():
    config = build_domain_config(DomainSettings(host="app.example.com"), target_port=3000)
    assert config == {
        "host": "app.example.com",
        "path": "/",
        "port": 3000,
        "https": True,
        "certificateType": "letsencrypt",
        "stripPath": False,
        "domainType": "application",
    }


def test_domain_config_application_port_wins():
    config = build_domain_config(DomainSettings(host="app.example.com", application_port=9000), target_port=3000)
    assert config["port"] == 9000


def test_domain_config_for_compose_service():
    config = build_domain_config(DomainSettings(host="app.example.com"), service_name="frontend")
    assert config["domainType"] == "compose"
    assert config["serviceName"] == "frontend"


@pytest.mark.parametrize(
    "https,path,url",
    [
        (True, "/", "https://app.example.com"),
        (True, "/api", "https://app.example.com/api"),
        (False, "/", "http://app.example.com"),
    ],
)
def test_deployment_url(https, path, url):
    assert deployment_url({"host": "app.example.com", "https": https, "path": path}) == url


# ── Environment blob ────────────────────────────────────────────────


def test_env_blob_json_wins():
    blob = build_env_blob(env_from_json='{"A": "1", "B": 2}', env="RAW=should-not-appear")
    assert blob == "A=1\nB=2"
    assert "RAW" not in blob


def test_env_blob_file_before_raw():
    assert build_env_blob(env_file="FROM_FILE=1\n", env="RAW=1") == "FROM_FILE=1"


def test_env_blob_raw():
    assert build_env_blob(env="A=1\nB=2\n") == "A=1\nB=2"


def test_env_blob_empty():
    assert build_env_blob() == ""


def test_env_blob_invalid_json():
    with pytest.raises(ValueError, match="failed to parse JSON environment variables"):
        build_env_blob(env_from_json="{broken")


def test_env_blob_json_must_be_object():
    with pytest.raises(ValueError, match="expected an object"):
        build_env_blob(env_from_json='["A=1"]')


# ── Volumes ─────────────────────────────────────────────────────────


def test_parse_volumes():
    assert parse_volumes("/data:/app/data\n\n  /cfg:/etc/app:ro  \nbroken\n") == [
        ("/data", "/app/data"),
        ("/cfg", "/etc/app"),
    ]


def test_parse_volumes_none():
    assert parse_volumes(None) == []
