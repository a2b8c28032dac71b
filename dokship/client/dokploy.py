"""Dokploy API client: one async method per remote resource action.

Every operation is a single request named ``<resource>.<action>``; reads
are GET with query parameters, writes are POST with a JSON body. Failures
surface as DokployAPIError and are never retried here. The only loop is
wait_for_deployment, which polls deployment.one.
"""

import asyncio
import json
import logging
import time

import httpx

from dokship.client.types import (
    TERMINAL_FAILURE,
    TERMINAL_SUCCESS,
    ProjectCreated,
    extract_created_id,
    resource_id,
)
from dokship.errors import DeploymentFailedError, DeploymentTimeoutError, DokployAPIError
from dokship.redact import redact_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
DEFAULT_REGISTRY_URL = "ghcr.io"


def _error_message(resp):
    """Best-effort human message from an error response body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase or "Unknown error"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or json.dumps(body)
    return str(body)


class DokployClient:
    """Async client for the platform's ``/api/<resource>.<action>`` endpoints.

    Use as an async context manager so the underlying connection pool is
    closed::

        async with DokployClient(url, api_key) as client:
            projects = await client.get_all_projects()
    """

    def __init__(self, url, api_key, log_requests=False, log_responses=False, timeout=DEFAULT_TIMEOUT, transport=None):
        self.base_url = url.rstrip("/")
        self.log_requests = log_requests
        self.log_responses = log_responses
        self._http = httpx.AsyncClient(
            base_url=f"{self.base_url}/api",
            headers={
                "accept": "application/json",
                "content-type": "application/json",
                "x-api-key": api_key,
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    # ── Transport ──────────────────────────────────────────────────

    async def _request(self, method, operation, params=None, body=None):
        """Perform one request and decode its JSON body.

        Returns:
            Decoded JSON, or None for an empty/``null`` body.
        """
        if self.log_requests:
            logger.info(f"API REQUEST: {method} {self.base_url}/api/{operation}")
            if body:
                logger.info(f"REQUEST BODY: {json.dumps(redact_payload(body), indent=2)}")

        try:
            resp = await self._http.request(method, f"/{operation}", params=params, json=body)
        except httpx.HTTPError as e:
            logger.error(f"{method} request failed: {operation}")
            raise DokployAPIError(operation, str(e) or e.__class__.__name__) from e

        if self.log_responses:
            logger.info(f"API RESPONSE: HTTP {resp.status_code}")
            if resp.content.strip():
                try:
                    shown = json.dumps(redact_payload(resp.json()), indent=2)
                except ValueError:
                    shown = resp.text
                logger.info(f"RESPONSE BODY: {shown}")

        if not resp.is_success:
            logger.error(f"{method} request failed: {operation}")
            raise DokployAPIError(operation, _error_message(resp), resp.status_code)

        if not resp.content.strip():
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise DokployAPIError(operation, f"invalid JSON in response: {e}", resp.status_code) from e

    async def get(self, operation, **params):
        return await self._request("GET", operation, params=params or None)

    async def post(self, operation, body=None):
        return await self._request("POST", operation, body=body if body is not None else {})

    # ── Projects & environments ────────────────────────────────────

    async def get_all_projects(self):
        logger.debug("Fetching all projects")
        return await self.get("project.all") or []

    async def get_project(self, project_id):
        logger.debug(f"Fetching project: {project_id}")
        return await self.get("project.one", projectId=project_id)

    async def find_project_by_name(self, name):
        """Exact-name lookup across all projects."""
        for project in await self.get_all_projects():
            if project.get("name") == name:
                return project
        return None

    async def create_project(self, name, description=None) -> ProjectCreated:
        """Create a project.

        The platform also creates a default environment and may return it
        alongside the project; its id is reported when present.
        """
        logger.info(f"Creating project: {name}")
        response = await self.post(
            "project.create",
            {"name": name, "description": description or f"Automated deployment project: {name}"},
        )
        project_id = extract_created_id(response, "project", "project.create")

        env = response.get("environment") if isinstance(response, dict) else None
        env_id = resource_id(env, "environment")
        env_name = env.get("name") if env_id else None
        if env_id:
            logger.info(f"Default environment created: {env_name} (ID: {env_id})")

        logger.info(f"Created project: {name} (ID: {project_id})")
        return ProjectCreated(project_id=project_id, default_environment_id=env_id, default_environment_name=env_name)

    async def create_environment(self, project_id, name, description=None):
        logger.info(f"Creating environment: {name}")
        body = {"projectId": project_id, "name": name}
        if description:
            body["description"] = description
        response = await self.post("environment.create", body)
        environment_id = extract_created_id(response, "environment", "environment.create")
        logger.info(f"Created environment: {name} (ID: {environment_id})")
        return environment_id

    async def find_environment_in_project(self, project_id, name):
        """Exact-name lookup among the project's environments."""
        project = await self.get_project(project_id) or {}
        for env in project.get("environments") or []:
            if env.get("name") == name:
                return env
        return None

    # ── Servers ────────────────────────────────────────────────────

    async def get_all_servers(self):
        logger.debug("Fetching all servers")
        return await self.get("server.all") or []

    async def find_server_by_name(self, name):
        """Case-insensitive lookup; server names are lowercase on the platform."""
        wanted = name.lower()
        for server in await self.get_all_servers():
            if (server.get("name") or "").lower() == wanted:
                return server
        return None

    # ── Applications ───────────────────────────────────────────────

    async def get_application(self, application_id):
        logger.debug(f"Fetching application: {application_id}")
        return await self.get("application.one", applicationId=application_id)

    async def find_application(self, project_id, environment_id, name):
        """Find an application by name inside one environment of a project."""
        project = await self.get_project(project_id) or {}
        for env in project.get("environments") or []:
            if resource_id(env, "environment") != environment_id:
                continue
            for app in env.get("applications") or []:
                if app.get("name") == name:
                    return app
        return None

    async def create_application(self, payload):
        logger.info(f"Creating application: {payload.get('name')}")
        logger.debug(f"Application configuration: {json.dumps(redact_payload(payload))}")
        response = await self.post("application.create", payload)
        application_id = extract_created_id(response, "application", "application.create")
        logger.info(f"Created application: {payload.get('name')} (ID: {application_id})")
        return application_id

    async def update_application(self, application_id, payload):
        logger.info(f"Updating application: {application_id}")
        await self.post("application.update", {"applicationId": application_id, **payload})

    async def save_docker_provider(self, application_id, docker_image, registry_url=None, username=None, password=None):
        logger.info(f"Configuring Docker provider for application: {application_id}")
        logger.debug(f"Registry: {registry_url or DEFAULT_REGISTRY_URL}, credentials: {'[SET]' if username else '[NOT SET]'}")
        await self.post(
            "application.saveDockerProvider",
            {
                "applicationId": application_id,
                "dockerImage": docker_image,
                "registryUrl": registry_url or DEFAULT_REGISTRY_URL,
                "username": username,
                "password": password,
            },
        )
        logger.info(f"Docker provider configured: {docker_image}")

    async def save_environment(self, application_id, env):
        line_count = len(env.splitlines()) if env else 0
        logger.info(f"Configuring environment variables for application: {application_id} ({line_count} lines)")
        await self.post("application.saveEnvironment", {"applicationId": application_id, "env": env})

    async def create_mount(self, service_id, host_path, mount_path, service_type="application"):
        logger.info(f"  Mount: {host_path}:{mount_path}")
        return await self.post(
            "mounts.create",
            {
                "serviceId": service_id,
                "hostPath": host_path,
                "mountPath": mount_path,
                "type": "bind",
                "serviceType": service_type,
            },
        )

    async def stop_application(self, application_id):
        logger.info(f"Stopping application: {application_id}")
        await self.post("application.stop", {"applicationId": application_id})

    async def deploy_application(self, application_id, title=None, description=None):
        """Trigger a deploy.

        Returns:
            The deployment dict, or None when the platform answers without
            one (fire-and-forget).
        """
        logger.info(f"Deploying application: {application_id}")
        result = await self.post(
            "application.deploy",
            {"applicationId": application_id, "title": title, "description": description},
        )
        return result if isinstance(result, dict) else None

    # ── Compose ────────────────────────────────────────────────────

    async def get_all_compose(self):
        logger.debug("Fetching all compose services")
        return await self.get("compose.all") or []

    async def get_compose(self, compose_id):
        logger.debug(f"Fetching compose service: {compose_id}")
        return await self.get("compose.one", composeId=compose_id)

    async def find_compose(self, project_id, environment_id, name):
        """Find a compose service by name within a project/environment."""
        for compose in await self.get_all_compose():
            if compose.get("name") != name:
                continue
            if compose.get("environmentId", environment_id) != environment_id:
                continue
            if compose.get("projectId", project_id) != project_id:
                continue
            return compose
        return None

    async def create_compose(self, payload):
        logger.info(f"Creating compose service: {payload.get('name')}")
        response = await self.post("compose.create", payload)
        compose_id = extract_created_id(response, "compose", "compose.create")
        logger.info(f"Created compose service: {payload.get('name')} (ID: {compose_id})")
        return compose_id

    async def update_compose(self, compose_id, payload):
        logger.debug(f"Updating compose service: {compose_id}")
        await self.post("compose.update", {"composeId": compose_id, **payload})

    async def save_compose_file(self, compose_id, compose_file):
        line_count = len(compose_file.splitlines())
        logger.info(f"Saving compose file for service: {compose_id} ({line_count} lines)")
        await self.post("compose.saveComposeFile", {"composeId": compose_id, "composeFile": compose_file})

    async def save_compose_environment(self, compose_id, env):
        line_count = len(env.splitlines()) if env else 0
        logger.info(f"Configuring environment variables for compose service: {compose_id} ({line_count} lines)")
        await self.post("compose.saveEnvironment", {"composeId": compose_id, "env": env})

    async def stop_compose(self, compose_id):
        logger.info(f"Stopping compose service: {compose_id}")
        await self.post("compose.stop", {"composeId": compose_id})

    async def deploy_compose(self, compose_id, title=None, description=None):
        logger.info(f"Deploying compose service: {compose_id}")
        result = await self.post(
            "compose.deploy",
            {"composeId": compose_id, "title": title, "description": description},
        )
        return result if isinstance(result, dict) else None

    # ── Domains ────────────────────────────────────────────────────

    async def get_domains(self, owner_kind, owner_id):
        """List domains attached to an application or compose service."""
        if owner_kind == "compose":
            owner = await self.get_compose(owner_id)
        else:
            owner = await self.get_application(owner_id)
        return (owner or {}).get("domains") or []

    async def create_domain(self, payload):
        logger.info(f"Creating domain: {payload.get('host')}:{payload.get('port')}{payload.get('path')}")
        return await self.post("domain.create", payload)

    async def update_domain(self, domain_id, payload):
        logger.info(f"Updating domain: {payload.get('host')} (ID: {domain_id})")
        return await self.post("domain.update", {"domainId": domain_id, **payload})

    async def delete_domain(self, domain_id):
        logger.info(f"Removing domain: {domain_id}")
        await self.post("domain.delete", {"domainId": domain_id})

    # ── Deployments & containers ───────────────────────────────────

    async def get_deployment(self, deployment_id):
        logger.debug(f"Fetching deployment: {deployment_id}")
        return await self.get("deployment.one", deploymentId=deployment_id) or {}

    async def get_containers(self, application_id):
        logger.debug(f"Fetching containers for application: {application_id}")
        return await self.get("container.all", applicationId=application_id) or []

    async def wait_for_deployment(self, deployment_id, timeout=300, poll_interval=5, sleep=asyncio.sleep, clock=time.monotonic):
        """Poll a deployment until it completes, fails, or *timeout* elapses.

        Elapsed time is measured with *clock*, paired with the *sleep* used
        between polls.

        Returns:
            The completed deployment dict.

        Raises:
            DeploymentFailedError: status reached 'failed' (logs attached).
            DeploymentTimeoutError: budget exhausted (last status attached).
        """
        logger.info(f"Waiting for deployment {deployment_id} to complete (timeout: {timeout}s)")
        start = clock()
        while True:
            deployment = await self.get_deployment(deployment_id)
            status = deployment.get("status")

            if status == TERMINAL_SUCCESS:
                logger.info("Deployment completed successfully")
                return deployment

            if status == TERMINAL_FAILURE:
                logs = deployment.get("logs") or ""
                logger.error("Deployment failed")
                if logs:
                    logger.error("Deployment logs:")
                    logger.error(logs)
                raise DeploymentFailedError(deployment_id, logs)

            elapsed = clock() - start
            if elapsed >= timeout:
                raise DeploymentTimeoutError(deployment_id, timeout, status)

            logger.info(f"  Status: {status} ({round(elapsed)}s elapsed)")
            await sleep(poll_interval)
