"""Tests for deploy input validation."""

import logging

import pytest

from dokship.config.validation import ensure_valid, format_issue, validate_inputs
from dokship.errors import InputValidationError, ValidationIssue


def _fields(issues):
    return {issue.field for issue in issues}


def test_valid_inputs_have_no_issues(make_inputs):
    assert validate_inputs(make_inputs()) == []


def test_url_and_key_required(make_inputs):
    issues = validate_inputs(make_inputs(dokploy_url=None, api_key=None))
    assert {"dokploy-url", "api-key"} <= _fields(issues)


@pytest.mark.parametrize("url", ["dokploy.example.com", "ftp://dokploy.example.com", "https://"])
def test_url_needs_scheme_and_host(make_inputs, url):
    issues = validate_inputs(make_inputs(dokploy_url=url))
    assert _fields(issues) == {"dokploy-url"}


@pytest.mark.parametrize("image", ["nginx:latest", "ghcr.io/org/app:v1.0.0", "localhost:5000/app:dev"])
def test_image_formats_accepted(make_inputs, image):
    assert validate_inputs(make_inputs(docker_image=image)) == []


@pytest.mark.parametrize("image", ["nginx", "ghcr.io/org/app", "bad image:1"])
def test_image_formats_rejected(make_inputs, image):
    issues = validate_inputs(make_inputs(docker_image=image))
    assert _fields(issues) == {"docker-image"}
    assert "registry/repository:tag" in issues[0].suggestion


def test_compose_needs_source_not_image(make_inputs):
    issues = validate_inputs(make_inputs(deployment_type="compose", docker_image=None))
    assert _fields(issues) == {"compose-file"}

    assert validate_inputs(make_inputs(deployment_type="compose", docker_image=None, compose_raw="services: {}")) == []


def test_unknown_deployment_type(make_inputs):
    assert "deployment-type" in _fields(validate_inputs(make_inputs(deployment_type="lambda")))


def test_dns_name_issue_suggests_fix(make_inputs):
    issues = validate_inputs(make_inputs(application_name="My_App"))
    (issue,) = issues
    assert issue.field == "application-name"
    assert "uppercase" in issue.message
    assert '"my-app"' in issue.suggestion


def test_dns_name_too_long(make_inputs):
    issues = validate_inputs(make_inputs(project_name="a" * 64))
    assert "exceeds 63 character limit" in issues[0].message


def test_resource_minimums(make_inputs):
    issues = validate_inputs(make_inputs(memory_limit="2", cpu_limit="0.0001", replicas="-1"))
    assert _fields(issues) == {"memory-limit", "cpu-limit", "replicas"}


def test_resource_soft_limits_only_warn(make_inputs, caplog):
    with caplog.at_level(logging.WARNING):
        issues = validate_inputs(make_inputs(memory_limit="65536", cpu_limit="128", replicas="200"))
    assert issues == []
    assert "memory-limit is very high" in caplog.text
    assert "cpu-limit is very high" in caplog.text
    assert "200 containers" in caplog.text


@pytest.mark.parametrize("field", ["port", "target-port", "application-port"])
def test_port_range(make_inputs, field):
    issues = validate_inputs(make_inputs(**{field.replace("-", "_"): "70000"}))
    assert _fields(issues) == {field}


def test_domain_and_choices(make_inputs):
    issues = validate_inputs(
        make_inputs(domain_host="not a domain", restart_policy="sometimes", ssl_certificate_type="selfsigned")
    )
    assert _fields(issues) == {"domain-host", "restart-policy", "ssl-certificate-type"}


def test_all_issues_reported_together(make_inputs):
    inputs = make_inputs(api_key=None, docker_image=None, memory_limit="1", port="0")
    with pytest.raises(InputValidationError, match="4 errors") as exc_info:
        ensure_valid(inputs)
    assert len(exc_info.value.issues) == 4


def test_format_issue_with_suggestion():
    issue = ValidationIssue("port", "port must be between 1 and 65535 (got 0)", 0, "Use a valid port number")
    assert format_issue(2, issue) == "2. port must be between 1 and 65535 (got 0)\n   Suggestion: Use a valid port number"
