"""Exception types raised by the client, reconciler and orchestrator."""

from dataclasses import dataclass


class DokployAPIError(RuntimeError):
    """A remote operation failed: non-2xx response or transport error."""

    def __init__(self, operation, message, status_code=None):
        self.operation = operation
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"{operation} failed: {message}")
        else:
            super().__init__(f"{operation} failed with status {status_code}: {message}")


class MissingIdentifierError(DokployAPIError):
    """A create call succeeded but the response carried no usable id."""

    def __init__(self, operation, resource, keys):
        shown = ", ".join(sorted(keys)) if keys else "none"
        super().__init__(operation, f"no {resource} ID in response (keys: {shown})")
        self.resource = resource


class ResourceNotFoundError(LookupError):
    """A named resource does not exist and may not be created."""

    def __init__(self, kind, key, reason="not found and auto-create is disabled"):
        self.kind = kind
        self.key = key
        super().__init__(f'{kind.capitalize()} "{key}" {reason}')


class MissingIdentifierInputError(ValueError):
    """Neither an explicit id nor a name was supplied for a resource."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Either {kind}-id or {kind}-name must be provided")


class DeploymentFailedError(RuntimeError):
    """The platform reported a terminal 'failed' deployment status."""

    def __init__(self, deployment_id, logs=""):
        self.deployment_id = deployment_id
        self.logs = logs or ""
        super().__init__(f"Deployment {deployment_id} failed - check the deployment logs for details")


class DeploymentTimeoutError(TimeoutError):
    """Polling for a terminal deployment status exceeded its budget."""

    def __init__(self, deployment_id, timeout, last_status):
        self.deployment_id = deployment_id
        self.timeout = timeout
        self.last_status = last_status
        super().__init__(f"Deployment {deployment_id} timeout after {timeout}s (status: {last_status})")


class HealthCheckFailedError(RuntimeError):
    """The post-deploy health check reported unhealthy and the run must fail."""

    def __init__(self, url):
        self.url = url
        super().__init__(f"Health check failed for {url} - deployment marked as failed")


@dataclass
class ValidationIssue:
    """One problem found in the deploy inputs."""

    field: str
    message: str
    value: object = None
    suggestion: str | None = None


class InputValidationError(ValueError):
    """One or more deploy inputs are missing or malformed."""

    def __init__(self, issues):
        self.issues = list(issues)
        count = len(self.issues)
        super().__init__(f"Input validation failed with {count} error{'s' if count != 1 else ''}")
