"""Shared data types and response decoding for the platform API."""

from dataclasses import dataclass

from dokship.errors import MissingIdentifierError

TERMINAL_SUCCESS = "completed"
TERMINAL_FAILURE = "failed"


@dataclass
class ProjectCreated:
    """Result of project.create: the project and its implicit environment."""

    project_id: str
    default_environment_id: str | None = None
    default_environment_name: str | None = None


def resource_id(obj, resource):
    """Return ``obj['<resource>Id']`` falling back to ``obj['id']``.

    Returns None when *obj* is not a dict or carries neither field.
    """
    if not isinstance(obj, dict):
        return None
    return obj.get(f"{resource}Id") or obj.get("id") or None


def extract_created_id(response, resource, operation):
    """Decode the id from a create response.

    The platform either nests the resource under its name
    (``{"project": {...}, "environment": {...}}``) or returns it flat.
    The nested shape is tried first, then the flat one; anything else is
    a MissingIdentifierError.
    """
    if isinstance(response, dict):
        nested = response.get(resource)
        for shape in (nested, response):
            rid = resource_id(shape, resource)
            if rid:
                return rid
        keys = response.keys()
    else:
        keys = ()
    raise MissingIdentifierError(operation, resource, keys)
