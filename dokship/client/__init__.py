"""Platform API client and response types."""

from dokship.client.dokploy import DokployClient
from dokship.client.types import ProjectCreated, extract_created_id, resource_id

__all__ = [
    "DokployClient",
    "ProjectCreated",
    "extract_created_id",
    "resource_id",
]
