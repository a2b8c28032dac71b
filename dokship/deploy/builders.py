"""Payload builders: turn DeployInputs into platform request bodies.

Pure functions only. Resource limits stay in megabytes / cores in the
inputs and are converted to the platform's native units (bytes,
nano-CPUs) here, at the payload boundary.
"""

import json
import re

from dokship.config.types import DeployInputs, DomainSettings, ResourceLimits

DEFAULT_PORT = 8080
DEFAULT_RESTART_POLICY = "unless-stopped"
DEFAULT_CERTIFICATE_TYPE = "letsencrypt"

BYTES_PER_MB = 1024 * 1024
NANO_PER_CORE = 1_000_000_000

# Simple docker restart policy -> Swarm restart condition
RESTART_POLICY_SWARM = {
    "always": "any",
    "unless-stopped": "any",
    "on-failure": "on-failure",
    "no": "none",
}

CONTAINER_NAME_MAX_LENGTH = 63
_VERSION_SUFFIX_RE = re.compile(r"^v\d|\d+\.\d+")


def megabytes_to_bytes(mb):
    return int(mb) * BYTES_PER_MB


def cores_to_nano(cores):
    return int(round(cores * NANO_PER_CORE))


def image_tag(image):
    """Tag part of an image reference, 'latest' when untagged.

    ``ghcr.io/user/app:v1.0.0`` -> ``v1.0.0``; a registry port
    (``localhost:5000/app``) is not mistaken for a tag.
    """
    last = (image or "").split("@", 1)[0].rsplit("/", 1)[-1]
    if ":" in last:
        return last.rsplit(":", 1)[1] or "latest"
    return "latest"


def sanitize_container_name(name):
    """Fit *name* to the container naming rules.

    Only ``[a-zA-Z0-9._-]``, no leading or trailing dot/dash, at most 63
    characters. When truncating, a trailing version-looking segment
    (``v2``, ``1.4.0``) is kept and the prefix shortened instead.
    """
    name = re.sub(r"[^a-zA-Z0-9._-]", "-", name)
    name = re.sub(r"^[.-]+", "", name)
    name = re.sub(r"[.-]+$", "", name)

    if len(name) > CONTAINER_NAME_MAX_LENGTH:
        last = name.split("-")[-1]
        if last and len(last) < CONTAINER_NAME_MAX_LENGTH - 1 and _VERSION_SUFFIX_RE.search(last):
            prefix = name[: CONTAINER_NAME_MAX_LENGTH - len(last) - 1].rstrip(".-")
            name = f"{prefix}-{last}" if prefix else last
        else:
            name = name[:CONTAINER_NAME_MAX_LENGTH]
        name = re.sub(r"[.-]+$", "", name)
    return name


def render_container_name(template, app_name, image, environment_name):
    """Expand {app}, {version} and {env} in *template*, then sanitize."""
    name = (
        template.replace("{app}", app_name)
        .replace("{version}", image_tag(image))
        .replace("{env}", environment_name or "production")
    )
    return sanitize_container_name(name)


def build_resource_fields(resources: ResourceLimits):
    """Resource limit fields in native units, only for supplied inputs.

    Memory and CPU travel as numeric strings, replicas as an integer.
    """
    fields = {}
    if resources.memory_limit is not None:
        fields["memoryLimit"] = str(megabytes_to_bytes(resources.memory_limit))
    if resources.memory_reservation is not None:
        fields["memoryReservation"] = str(megabytes_to_bytes(resources.memory_reservation))
    if resources.cpu_limit is not None:
        fields["cpuLimit"] = str(cores_to_nano(resources.cpu_limit))
    if resources.cpu_reservation is not None:
        fields["cpuReservation"] = str(cores_to_nano(resources.cpu_reservation))
    if resources.replicas is not None:
        fields["replicas"] = resources.replicas
    return fields


def restart_policy_swarm(policy):
    """``{"Condition": ...}`` for a simple restart policy name."""
    return {"Condition": RESTART_POLICY_SWARM.get(policy, "any")}


def build_application_config(name, project_id, environment_id, server_id, inputs: DeployInputs):
    """application.create body for a new application."""
    config = {
        "name": name,
        "title": inputs.application_title or name,
        "description": inputs.application_description or f"Automated deployment: {name}",
        "projectId": project_id,
        "environmentId": environment_id,
        "serverId": server_id,
        "applicationStatus": "idle",
        "port": inputs.port or DEFAULT_PORT,
        "targetPort": inputs.target_port or DEFAULT_PORT,
        "restartPolicy": inputs.resources.restart_policy or DEFAULT_RESTART_POLICY,
    }
    if inputs.container_name:
        config["appName"] = render_container_name(inputs.container_name, name, inputs.docker_image, inputs.environment_name)
    config.update(build_resource_fields(inputs.resources))
    return config


def build_settings_update(resources: ResourceLimits):
    """application.update body for resource settings; empty if none given."""
    update = build_resource_fields(resources)
    if resources.restart_policy:
        update["restartPolicySwarm"] = restart_policy_swarm(resources.restart_policy)
    return update


def build_compose_config(name, project_id, environment_id, server_id, inputs: DeployInputs):
    """compose.create body for a new compose service."""
    config = {
        "name": name,
        "description": inputs.application_description or f"Automated compose deployment: {name}",
        "projectId": project_id,
        "environmentId": environment_id,
        "serverId": server_id,
        "composeType": "docker-compose",
    }
    if inputs.container_name:
        config["appName"] = render_container_name(inputs.container_name, name, inputs.docker_image, inputs.environment_name)
    return config


def build_domain_config(domain: DomainSettings, target_port=None, service_name=None):
    """Domain body, or None when no host is configured.

    With *service_name* the domain routes to that service of a compose
    stack; otherwise to the application itself.
    """
    if not domain.host:
        return None
    config = {
        "host": domain.host,
        "path": domain.path or "/",
        "port": domain.application_port or target_port or DEFAULT_PORT,
        "https": domain.https is not False,
        "certificateType": domain.certificate_type or DEFAULT_CERTIFICATE_TYPE,
        "stripPath": bool(domain.strip_path),
        "domainType": "application",
    }
    if service_name:
        config["domainType"] = "compose"
        config["serviceName"] = service_name
    return config


def deployment_url(domain_config):
    """Public URL for a domain body; the path is omitted when it is '/'."""
    scheme = "https" if domain_config.get("https") else "http"
    path = domain_config.get("path") or "/"
    return f"{scheme}://{domain_config['host']}{'' if path == '/' else path}"


def _env_value(value):
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def build_env_blob(env_from_json=None, env_file=None, env=None):
    """Newline-delimited KEY=VALUE text for the platform.

    Precedence: JSON mapping, then env-file contents, then the raw env
    string. No source gives an empty blob.
    """
    if env_from_json:
        try:
            mapping = json.loads(env_from_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"failed to parse JSON environment variables: {e}") from e
        if not isinstance(mapping, dict):
            raise ValueError(f"failed to parse JSON environment variables: expected an object, got {type(mapping).__name__}")
        return "\n".join(f"{key}={_env_value(value)}" for key, value in mapping.items())

    if env_file:
        return env_file.strip("\n")

    if env:
        return env.strip("\n")

    return ""


def parse_volumes(volumes):
    """``host:container[:mode]`` lines -> [(host_path, mount_path), ...]."""
    mounts = []
    for line in (volumes or "").splitlines():
        parts = line.strip().split(":")
        if len(parts) >= 2 and parts[0] and parts[1]:
            mounts.append((parts[0], parts[1]))
    return mounts
