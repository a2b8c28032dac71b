"""Deploy input dataclass types."""

from dataclasses import dataclass, field

from dokship.config.parsing import parse_bool, parse_cpu_limit, parse_int, parse_str
from dokship.errors import InputValidationError, ValidationIssue

DEPLOYMENT_TYPES = ("application", "compose")

# Every recognised input key and its default (None = absent unless supplied).
INPUT_KEYS = {
    "dokploy-url": None,
    "api-key": None,
    "deployment-type": "application",
    "docker-image": None,
    "project-id": None,
    "project-name": None,
    "project-description": None,
    "environment-id": None,
    "environment-name": "production",
    "auto-create-resources": True,
    "application-id": None,
    "application-name": None,
    "application-title": None,
    "application-description": None,
    "container-name": None,
    "server-id": None,
    "server-name": None,
    "memory-limit": None,
    "memory-reservation": None,
    "cpu-limit": None,
    "cpu-reservation": None,
    "port": None,
    "target-port": None,
    "restart-policy": None,
    "replicas": None,
    "volumes": None,
    "group-add": None,
    "registry-url": "ghcr.io",
    "registry-username": None,
    "registry-password": None,
    "env": None,
    "env-file": None,
    "env-from-json": None,
    "compose-id": None,
    "compose-name": None,
    "compose-file": None,
    "compose-raw": None,
    "compose-service-name": None,
    "domain-host": None,
    "domain-path": None,
    "application-port": None,
    "domain-https": True,
    "ssl-certificate-type": None,
    "domain-strip-path": False,
    "force-domain-recreation": False,
    "deployment-title": None,
    "deployment-description": None,
    "wait-for-deployment": True,
    "timeout": 300,
    "cleanup-old-containers": False,
    "health-check-enabled": True,
    "health-check-path": "/health",
    "health-check-timeout": 30,
    "health-check-retries": 10,
    "health-check-interval": 10,
    "fail-on-health-check-error": True,
    "debug-mode": False,
    "log-api-requests": False,
    "log-api-responses": False,
}


@dataclass
class ResourceLimits:
    """Resource settings as the user expresses them: megabytes and CPU cores."""

    memory_limit: int | None = None
    memory_reservation: int | None = None
    cpu_limit: float | None = None
    cpu_reservation: float | None = None
    replicas: int | None = None
    restart_policy: str | None = None

    @property
    def any_set(self) -> bool:
        """True if at least one setting was supplied."""
        return any(
            v is not None
            for v in (
                self.memory_limit,
                self.memory_reservation,
                self.cpu_limit,
                self.cpu_reservation,
                self.replicas,
                self.restart_policy,
            )
        )


@dataclass
class DomainSettings:
    """Domain routing and certificate settings."""

    host: str | None = None
    path: str | None = None
    application_port: int | None = None
    https: bool = True
    certificate_type: str | None = None
    strip_path: bool = False
    force_recreation: bool = False


@dataclass
class HealthCheckSettings:
    """Post-deploy health probe settings."""

    enabled: bool = True
    path: str = "/health"
    timeout: int = 30
    retries: int = 10
    interval: int = 10
    fail_on_error: bool = True


@dataclass
class ComposeSettings:
    """Compose stack source and naming."""

    compose_id: str | None = None
    name: str | None = None
    file_content: str | None = None  # contents of compose-file, not the path
    raw: str | None = None
    service_name: str | None = None

    @property
    def content(self) -> str | None:
        """Compose text to upload; inline raw text wins over the file."""
        return self.raw or self.file_content


@dataclass
class DeployInputs:
    """Resolved configuration for one deployment run."""

    dokploy_url: str = ""
    api_key: str = ""
    deployment_type: str = "application"
    docker_image: str = ""

    project_id: str | None = None
    project_name: str | None = None
    project_description: str | None = None
    environment_id: str | None = None
    environment_name: str = "production"
    auto_create_resources: bool = True

    application_id: str | None = None
    application_name: str | None = None
    application_title: str | None = None
    application_description: str | None = None
    container_name: str | None = None

    server_id: str | None = None
    server_name: str | None = None

    port: int | None = None
    target_port: int | None = None
    resources: ResourceLimits = field(default_factory=ResourceLimits)
    volumes: str | None = None
    group_add: str | None = None

    registry_url: str = "ghcr.io"
    registry_username: str | None = None
    registry_password: str | None = None

    env: str | None = None
    env_file: str | None = None  # contents of env-file, not the path
    env_from_json: str | None = None

    domain: DomainSettings = field(default_factory=DomainSettings)
    compose: ComposeSettings = field(default_factory=ComposeSettings)

    deployment_title: str | None = None
    deployment_description: str | None = None
    wait_for_deployment: bool = True
    deployment_timeout: int = 300
    cleanup_old_containers: bool = False
    health_check: HealthCheckSettings = field(default_factory=HealthCheckSettings)

    debug_mode: bool = False
    log_api_requests: bool = False
    log_api_responses: bool = False

    @property
    def is_compose(self) -> bool:
        return self.deployment_type == "compose"

    @classmethod
    def from_dict(cls, d: dict) -> "DeployInputs":
        """Build from a flat mapping of kebab-case input keys.

        Values may be strings (CI inputs, --set) or native YAML scalars.
        File-backed keys (env-file, compose-file) must already hold the
        file contents. Every unparseable value is reported at once.
        """
        issues = []

        def get(key, parser=None):
            raw = d.get(key)
            try:
                value = parser(raw, key) if parser else parse_str(raw)
            except ValueError as e:
                issues.append(ValidationIssue(key, str(e), raw))
                value = None
            return INPUT_KEYS.get(key) if value is None else value

        resources = ResourceLimits(
            memory_limit=get("memory-limit", parse_int),
            memory_reservation=get("memory-reservation", parse_int),
            cpu_limit=get("cpu-limit", parse_cpu_limit),
            cpu_reservation=get("cpu-reservation", parse_cpu_limit),
            replicas=get("replicas", parse_int),
            restart_policy=get("restart-policy"),
        )
        domain = DomainSettings(
            host=get("domain-host"),
            path=get("domain-path"),
            application_port=get("application-port", parse_int),
            https=get("domain-https", parse_bool),
            certificate_type=get("ssl-certificate-type"),
            strip_path=get("domain-strip-path", parse_bool),
            force_recreation=get("force-domain-recreation", parse_bool),
        )
        health_check = HealthCheckSettings(
            enabled=get("health-check-enabled", parse_bool),
            path=get("health-check-path"),
            timeout=get("health-check-timeout", parse_int),
            retries=get("health-check-retries", parse_int),
            interval=get("health-check-interval", parse_int),
            fail_on_error=get("fail-on-health-check-error", parse_bool),
        )
        compose = ComposeSettings(
            compose_id=get("compose-id"),
            name=get("compose-name"),
            file_content=d.get("compose-file") or None,
            raw=d.get("compose-raw") or None,
            service_name=get("compose-service-name"),
        )

        inputs = cls(
            dokploy_url=get("dokploy-url") or "",
            api_key=get("api-key") or "",
            deployment_type=(get("deployment-type") or "application").lower(),
            docker_image=get("docker-image") or "",
            project_id=get("project-id"),
            project_name=get("project-name"),
            project_description=get("project-description"),
            environment_id=get("environment-id"),
            environment_name=get("environment-name"),
            auto_create_resources=get("auto-create-resources", parse_bool),
            application_id=get("application-id"),
            application_name=get("application-name"),
            application_title=get("application-title"),
            application_description=get("application-description"),
            container_name=get("container-name"),
            server_id=get("server-id"),
            server_name=get("server-name"),
            port=get("port", parse_int),
            target_port=get("target-port", parse_int),
            resources=resources,
            volumes=d.get("volumes") or None,
            group_add=get("group-add"),
            registry_url=get("registry-url"),
            registry_username=get("registry-username"),
            registry_password=get("registry-password"),
            env=d.get("env") or None,
            env_file=d.get("env-file") or None,
            env_from_json=get("env-from-json"),
            domain=domain,
            compose=compose,
            deployment_title=get("deployment-title"),
            deployment_description=get("deployment-description"),
            wait_for_deployment=get("wait-for-deployment", parse_bool),
            deployment_timeout=get("timeout", parse_int),
            cleanup_old_containers=get("cleanup-old-containers", parse_bool),
            health_check=health_check,
            debug_mode=get("debug-mode", parse_bool),
            log_api_requests=get("log-api-requests", parse_bool),
            log_api_responses=get("log-api-responses", parse_bool),
        )
        if issues:
            raise InputValidationError(issues)
        return inputs
