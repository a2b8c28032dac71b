"""Input validation against platform constraints.

Every check appends to a shared issue list so the user sees everything
wrong at once. Thresholds follow the platform limits: memory at least
4 MiB, CPU at least one millicpu, names valid RFC 1123 DNS labels.
"""

import logging
import re
from urllib.parse import urlparse

from dokship.config.types import DEPLOYMENT_TYPES, DeployInputs
from dokship.errors import InputValidationError, ValidationIssue

logger = logging.getLogger(__name__)

MIN_MEMORY_MB = 4
MAX_MEMORY_MB_WARN = 32768
MIN_CPU = 0.001
MAX_CPU_WARN = 64
MAX_REPLICAS_WARN = 100

RESTART_POLICIES = ("always", "unless-stopped", "on-failure", "no")
CERTIFICATE_TYPES = ("letsencrypt", "custom", "none")

_DNS_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
_DOMAIN_RE = re.compile(r"^([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}$", re.IGNORECASE)
_IMAGE_RE = re.compile(r"^[a-z0-9._/-]+(:\d+/[a-z0-9._/-]+)?:[a-z0-9._-]+$", re.IGNORECASE)


def _suggest_dns_name(value):
    name = re.sub(r"[^a-z0-9-]", "-", value.lower())
    return name.strip("-")[:63]


def validate_dns_name(issues, value, field):
    if not value or _DNS_LABEL_RE.match(value):
        return
    problems = []
    if len(value) > 63:
        problems.append("exceeds 63 character limit")
    if not re.fullmatch(r"[a-z0-9-]+", value):
        problems.append("contains invalid characters (only lowercase letters, numbers, and hyphens allowed)")
    if value.startswith("-"):
        problems.append("starts with a hyphen")
    if value.endswith("-"):
        problems.append("ends with a hyphen")
    if re.search(r"[A-Z]", value):
        problems.append("contains uppercase letters (must be lowercase)")
    issues.append(
        ValidationIssue(
            field,
            f"{field} must be a valid DNS name: {', '.join(problems)}",
            value,
            f'Convert "{value}" to a valid DNS name. Example: "{_suggest_dns_name(value)}"',
        )
    )


def validate_memory(issues, value, field):
    if value is None:
        return
    if value < MIN_MEMORY_MB:
        issues.append(
            ValidationIssue(
                field,
                f"{field} must be at least {MIN_MEMORY_MB}MiB (got {value}MB)",
                value,
                f"Set {field} to at least {MIN_MEMORY_MB}MB. Common values: 128MB, 256MB, 512MB, 1024MB",
            )
        )
    elif value > MAX_MEMORY_MB_WARN:
        logger.warning(f"Warning: {field} is very high ({value}MB). Consider if this is intentional.")


def validate_cpu(issues, value, field):
    if value is None:
        return
    if value < MIN_CPU:
        issues.append(
            ValidationIssue(
                field,
                f"{field} must be at least {MIN_CPU} (got {value})",
                value,
                f"Set {field} to at least {MIN_CPU}. Common values: 0.25 (250m), 0.5 (500m), 1.0 (1 CPU), 2.0 (2 CPUs)",
            )
        )
    elif value > MAX_CPU_WARN:
        logger.warning(f"Warning: {field} is very high ({value} CPUs). Consider if this is intentional.")


def validate_port(issues, value, field):
    if value is None:
        return
    if not 1 <= value <= 65535:
        issues.append(
            ValidationIssue(
                field,
                f"{field} must be between 1 and 65535 (got {value})",
                value,
                "Use a valid port number. Common ports: 80 (HTTP), 443 (HTTPS), 3000, 8080",
            )
        )


def validate_replicas(issues, value, field="replicas"):
    if value is None:
        return
    if value < 0:
        issues.append(
            ValidationIssue(
                field,
                f"{field} must be non-negative (got {value})",
                value,
                "Set replicas to 0 to stop the application, or 1+ to run containers",
            )
        )
    elif value > MAX_REPLICAS_WARN:
        logger.warning(f"Warning: {field} is very high ({value}). This will create {value} containers.")


def validate_choice(issues, value, field, choices):
    if value is None or value in choices:
        return
    issues.append(ValidationIssue(field, f"{field} must be one of: {', '.join(choices)} (got {value})", value))


def validate_url(issues, value, field="dokploy-url"):
    if not value:
        issues.append(
            ValidationIssue(
                field,
                f"{field} is required",
                value,
                "Set it in the config file, as DOKPLOY_URL, or pass it with --set dokploy-url=https://dokploy.example.com",
            )
        )
        return
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        issues.append(
            ValidationIssue(
                field,
                f"Invalid {field} format: {value}",
                value,
                "Expected format: https://dokploy.example.com (include the protocol)",
            )
        )


def validate_inputs(inputs: DeployInputs) -> list[ValidationIssue]:
    """Check every input and return all issues found (empty when valid)."""
    issues = []

    validate_url(issues, inputs.dokploy_url)
    if not inputs.api_key:
        issues.append(
            ValidationIssue(
                "api-key",
                "api-key is required",
                None,
                "Set it in the config file, as DOKPLOY_API_KEY, or via the api-key action input",
            )
        )

    validate_choice(issues, inputs.deployment_type, "deployment-type", DEPLOYMENT_TYPES)

    if inputs.is_compose:
        if not inputs.compose.content:
            issues.append(
                ValidationIssue(
                    "compose-file",
                    "Compose deployment requires compose-file or compose-raw",
                    None,
                    "Provide compose-file: path/to/docker-compose.yml or inline compose-raw content",
                )
            )
    elif not inputs.docker_image:
        issues.append(
            ValidationIssue(
                "docker-image",
                "docker-image is required for application deployments",
                None,
                "Provide an image in format registry/repo:tag (example: ghcr.io/user/app:latest)",
            )
        )
    elif not _IMAGE_RE.match(inputs.docker_image):
        issues.append(
            ValidationIssue(
                "docker-image",
                "docker-image format is invalid",
                inputs.docker_image,
                "Use format: registry/repository:tag (example: ghcr.io/myorg/myapp:v1.0.0)",
            )
        )

    validate_dns_name(issues, inputs.application_name, "application-name")
    validate_dns_name(issues, inputs.project_name, "project-name")
    validate_dns_name(issues, inputs.environment_name, "environment-name")

    res = inputs.resources
    validate_memory(issues, res.memory_limit, "memory-limit")
    validate_memory(issues, res.memory_reservation, "memory-reservation")
    validate_cpu(issues, res.cpu_limit, "cpu-limit")
    validate_cpu(issues, res.cpu_reservation, "cpu-reservation")
    validate_replicas(issues, res.replicas)
    validate_choice(issues, res.restart_policy, "restart-policy", RESTART_POLICIES)

    validate_port(issues, inputs.port, "port")
    validate_port(issues, inputs.target_port, "target-port")
    validate_port(issues, inputs.domain.application_port, "application-port")

    host = inputs.domain.host
    if host and not _DOMAIN_RE.match(host):
        issues.append(
            ValidationIssue(
                "domain-host",
                "domain-host is not a valid domain name",
                host,
                "Use a fully-qualified domain name. Example: app.example.com",
            )
        )
    validate_choice(issues, inputs.domain.certificate_type, "ssl-certificate-type", CERTIFICATE_TYPES)

    return issues


def format_issue(index, issue: ValidationIssue) -> str:
    """Render one issue for the log: message plus suggestion if any."""
    text = f"{index}. {issue.message}"
    if issue.suggestion:
        text += f"\n   Suggestion: {issue.suggestion}"
    return text


def report_issues(issues):
    """Log every issue in a numbered list."""
    logger.error("Validation failed with the following errors:")
    for i, issue in enumerate(issues, 1):
        logger.error(format_issue(i, issue))


def ensure_valid(inputs: DeployInputs):
    """Raise InputValidationError listing every problem with *inputs*."""
    issues = validate_inputs(inputs)
    if issues:
        report_issues(issues)
        raise InputValidationError(issues)
