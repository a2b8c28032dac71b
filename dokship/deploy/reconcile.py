"""Find-or-create reconciliation for projects, environments, servers,
applications, compose services and domains.

Each ensure_* call yields exactly one id or raises. An explicit id is
trusted as-is; a name is looked up in its parent scope and created only
when auto-create is enabled.
"""

import asyncio
import logging
from datetime import datetime, timezone

from dokship.client.types import ProjectCreated, resource_id
from dokship.config.types import DeployInputs
from dokship.deploy.builders import build_application_config, build_compose_config
from dokship.errors import MissingIdentifierInputError, ResourceNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT_NAME = "production"
DUPLICATE_DELETE_DELAY = 1
RECREATE_DELAY = 2

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ── Projects & environments ─────────────────────────────────────────


async def ensure_project(client, inputs: DeployInputs):
    """Resolve the project id.

    Returns:
        (project_id, created) where *created* is the ProjectCreated record
        when the project was made in this run, else None.
    """
    if inputs.project_id:
        logger.info(f"Using project ID: {inputs.project_id}")
        return inputs.project_id, None
    if not inputs.project_name:
        raise MissingIdentifierInputError("project")

    existing = await client.find_project_by_name(inputs.project_name)
    if existing:
        project_id = resource_id(existing, "project")
        logger.info(f"Found existing project: {inputs.project_name} (ID: {project_id})")
        return project_id, None

    if not inputs.auto_create_resources:
        raise ResourceNotFoundError("project", inputs.project_name)

    created = await client.create_project(inputs.project_name, inputs.project_description)
    return created.project_id, created


async def ensure_environment(client, inputs: DeployInputs, project_id, created_project: ProjectCreated | None = None):
    """Resolve the environment id inside *project_id*.

    A project created in this run comes with a default environment. That
    environment is reused only when the requested name is 'production'
    (any case); any other name gets its own environment.
    """
    if inputs.environment_id:
        logger.info(f"Using environment ID: {inputs.environment_id}")
        return inputs.environment_id
    name = inputs.environment_name
    if not name:
        raise MissingIdentifierInputError("environment")

    existing = await client.find_environment_in_project(project_id, name)
    if existing:
        environment_id = resource_id(existing, "environment")
        logger.info(f"Found existing environment: {name} (ID: {environment_id})")
        return environment_id

    if not inputs.auto_create_resources:
        raise ResourceNotFoundError("environment", name)

    default_id = created_project.default_environment_id if created_project else None
    if default_id and name.lower() == DEFAULT_ENVIRONMENT_NAME:
        logger.info(f"Using default production environment created with project (ID: {default_id})")
        return default_id

    return await client.create_environment(project_id, name)


# ── Servers ─────────────────────────────────────────────────────────


async def resolve_server(client, server_id=None, server_name=None):
    """Resolve the target server. Servers are never created.

    With neither id nor name, a platform with exactly one server uses it.
    """
    if server_id:
        logger.info(f"Using server ID: {server_id}")
        return server_id

    if server_name:
        server = await client.find_server_by_name(server_name)
        if not server:
            raise ResourceNotFoundError("server", server_name, reason="not found")
        resolved = resource_id(server, "server")
        logger.info(f"Found server: {server_name} (ID: {resolved})")
        return resolved

    servers = await client.get_all_servers()
    if len(servers) == 1:
        resolved = resource_id(servers[0], "server")
        logger.info(f"Using the only available server: {servers[0].get('name')} (ID: {resolved})")
        return resolved
    raise MissingIdentifierInputError("server")


# ── Applications & compose services ─────────────────────────────────


async def ensure_application(client, inputs: DeployInputs, project_id, environment_id, server_id):
    """Resolve the application id.

    Returns:
        (application_id, created)
    """
    if inputs.application_id:
        logger.info(f"Using application ID: {inputs.application_id}")
        return inputs.application_id, False
    name = inputs.application_name
    if not name:
        raise MissingIdentifierInputError("application")

    existing = await client.find_application(project_id, environment_id, name)
    if existing:
        application_id = resource_id(existing, "application")
        logger.info(f"Found existing application: {name} (ID: {application_id})")
        return application_id, False

    if not inputs.auto_create_resources:
        raise ResourceNotFoundError("application", name)

    config = build_application_config(name, project_id, environment_id, server_id, inputs)
    return await client.create_application(config), True


def compose_name(inputs: DeployInputs):
    return inputs.compose.name or inputs.application_name


async def ensure_compose(client, inputs: DeployInputs, project_id, environment_id, server_id):
    """Resolve the compose service id.

    Returns:
        (compose_id, created)
    """
    if inputs.compose.compose_id:
        logger.info(f"Using compose ID: {inputs.compose.compose_id}")
        return inputs.compose.compose_id, False
    name = compose_name(inputs)
    if not name:
        raise MissingIdentifierInputError("compose")

    existing = await client.find_compose(project_id, environment_id, name)
    if existing:
        compose_id = resource_id(existing, "compose")
        logger.info(f"Found existing compose service: {name} (ID: {compose_id})")
        return compose_id, False

    if not inputs.auto_create_resources:
        raise ResourceNotFoundError("compose service", name)

    config = build_compose_config(name, project_id, environment_id, server_id, inputs)
    return await client.create_compose(config), True


# ── Domains ─────────────────────────────────────────────────────────


def _created_at(domain):
    value = domain.get("createdAt")
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _port(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def domain_key(domain):
    """Reconciliation identity of a domain: (host, port, path)."""
    return domain.get("host"), _port(domain.get("port")), domain.get("path") or "/"


def find_exact_matches(domains, config):
    """Domains with the same (host, port, path) as *config*."""
    wanted = domain_key(config)
    return [d for d in domains if domain_key(d) == wanted]


def select_domain_survivor(matches):
    """Split duplicate domains into (winner, losers).

    The most recently created record wins; records without a timestamp
    sort as oldest.
    """
    if not matches:
        return None, []
    ordered = sorted(matches, key=_created_at, reverse=True)
    return ordered[0], ordered[1:]


async def reconcile_domain(client, owner_kind, owner_id, config, force=False, sleep=asyncio.sleep):
    """Make exactly one domain with *config*'s (host, port, path) exist.

    Duplicates are removed first (newest kept). Then: a match plus *force*
    is deleted and recreated, a match alone is updated in place, no match
    is created.

    Returns:
        'created', 'updated' or 'recreated'.
    """
    domains = await client.get_domains(owner_kind, owner_id)
    matches = find_exact_matches(domains, config)
    label = f"{config['host']}:{config['port']}{config['path']}"

    existing, duplicates = select_domain_survivor(matches)
    if duplicates:
        logger.warning(f"Found {len(matches)} duplicate domains for {label}, keeping only the latest one")
        for dup in duplicates:
            dup_id = resource_id(dup, "domain")
            logger.info(f"  Removing duplicate domain: {dup.get('host')} (ID: {dup_id})")
            await client.delete_domain(dup_id)
            await sleep(DUPLICATE_DELETE_DELAY)
        logger.info(f"Cleaned up {len(duplicates)} duplicate domain(s)")

    owner_field = "composeId" if owner_kind == "compose" else "applicationId"
    create_payload = {owner_field: owner_id, **config}

    if existing is None:
        await client.create_domain(create_payload)
        logger.info(f"Domain created: {label}")
        return "created"

    existing_id = resource_id(existing, "domain")
    if force:
        logger.info(f"Force recreating domain: {label}")
        await client.delete_domain(existing_id)
        await sleep(RECREATE_DELAY)
        await client.create_domain(create_payload)
        logger.info(f"Domain recreated: {label}")
        return "recreated"

    logger.info(f"Domain already exists: {label}, updating configuration")
    await client.update_domain(existing_id, config)
    return "updated"
