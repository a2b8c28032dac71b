"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest

from dokship.client.types import ProjectCreated
from dokship.config.types import DeployInputs
from dokship.errors import DeploymentFailedError

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the dokship CLI as a subprocess.

    Connection and CI variables from the outer environment are dropped so
    runs only see the inputs a test passes.
    """

    def _run(*args, env=None):
        clean = {k: v for k, v in os.environ.items() if not k.startswith(("INPUT_", "DOKPLOY_", "GITHUB_"))}
        clean.update(env or {})
        result = subprocess.run(
            [sys.executable, "-m", "dokship.dokship", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env=clean,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


# ── Unit-test fixtures ──────────────────────────────────────────────


BASE_INPUTS = {
    "dokploy-url": "https://dokploy.example.com",
    "api-key": "test-api-key-0123456789",
    "docker-image": "nginx:latest",
    "project-name": "demo",
    "environment-name": "production",
    "application-name": "web",
    "auto-create-resources": "true",
}


@pytest.fixture
def make_inputs():
    """Return a factory building DeployInputs from BASE_INPUTS plus overrides."""

    def _make(**overrides):
        raw = dict(BASE_INPUTS)
        for key, value in overrides.items():
            key = key.replace("_", "-")
            if value is None:
                raw.pop(key, None)
            else:
                raw[key] = value
        return DeployInputs.from_dict(raw)

    return _make


class FakeSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


class FakeDokploy:
    """In-memory platform with the DokployClient method surface.

    Every call is recorded as (operation, payload) using the platform
    operation name, so tests can assert on the remote call sequence.
    """

    def __init__(self):
        self.calls = []
        self.projects = []
        self.servers = [{"serverId": "srv-1", "name": "main"}]
        self.applications = {}
        self.composes = {}
        self.deploy_result = {"deploymentId": "dep-1"}
        self.final_status = "completed"
        self._seq = 0

    # ── helpers ──

    def _next(self, prefix):
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _record(self, operation, payload=None):
        self.calls.append((operation, payload))

    def ops(self):
        return [op for op, _ in self.calls]

    def count(self, operation):
        return self.ops().count(operation)

    def payloads(self, operation):
        return [payload for op, payload in self.calls if op == operation]

    def add_project(self, name, environments=("production",)):
        project = {"projectId": self._next("proj"), "name": name, "environments": []}
        for env_name in environments:
            project["environments"].append(
                {"environmentId": self._next("env"), "name": env_name, "applications": [], "compose": []}
            )
        self.projects.append(project)
        return project

    def add_application(self, environment, name, domains=()):
        app = {"applicationId": self._next("app"), "name": name, "domains": [dict(d) for d in domains]}
        environment["applications"].append(app)
        self.applications[app["applicationId"]] = app
        return app

    def _project(self, project_id):
        return next((p for p in self.projects if p["projectId"] == project_id), None)

    def _environment(self, project_id, environment_id):
        project = self._project(project_id) or {"environments": []}
        return next((e for e in project["environments"] if e["environmentId"] == environment_id), None)

    def _owner(self, domain_id):
        for owner in list(self.applications.values()) + list(self.composes.values()):
            for domain in owner["domains"]:
                if domain["domainId"] == domain_id:
                    return owner, domain
        return None, None

    # ── projects & environments ──

    async def find_project_by_name(self, name):
        self._record("project.all")
        return next((p for p in self.projects if p["name"] == name), None)

    async def create_project(self, name, description=None):
        self._record("project.create", {"name": name, "description": description})
        project = self.add_project(name)
        env = project["environments"][0]
        return ProjectCreated(project["projectId"], env["environmentId"], env["name"])

    async def create_environment(self, project_id, name, description=None):
        self._record("environment.create", {"projectId": project_id, "name": name})
        env = {"environmentId": self._next("env"), "name": name, "applications": [], "compose": []}
        self._project(project_id)["environments"].append(env)
        return env["environmentId"]

    async def find_environment_in_project(self, project_id, name):
        self._record("project.one", {"projectId": project_id})
        project = self._project(project_id) or {"environments": []}
        return next((e for e in project["environments"] if e["name"] == name), None)

    # ── servers ──

    async def get_all_servers(self):
        self._record("server.all")
        return list(self.servers)

    async def find_server_by_name(self, name):
        self._record("server.all")
        return next((s for s in self.servers if s["name"].lower() == name.lower()), None)

    # ── applications ──

    async def find_application(self, project_id, environment_id, name):
        self._record("project.one", {"projectId": project_id})
        env = self._environment(project_id, environment_id) or {"applications": []}
        return next((a for a in env["applications"] if a["name"] == name), None)

    async def create_application(self, payload):
        self._record("application.create", payload)
        env = self._environment(payload["projectId"], payload["environmentId"])
        return self.add_application(env, payload["name"])["applicationId"]

    async def update_application(self, application_id, payload):
        self._record("application.update", {"applicationId": application_id, **payload})

    async def save_docker_provider(self, application_id, docker_image, registry_url=None, username=None, password=None):
        self._record(
            "application.saveDockerProvider",
            {"applicationId": application_id, "dockerImage": docker_image, "registryUrl": registry_url},
        )

    async def create_mount(self, service_id, host_path, mount_path, service_type="application"):
        self._record("mounts.create", {"serviceId": service_id, "hostPath": host_path, "mountPath": mount_path})

    async def save_environment(self, application_id, env):
        self._record("application.saveEnvironment", {"applicationId": application_id, "env": env})

    async def stop_application(self, application_id):
        self._record("application.stop", {"applicationId": application_id})

    async def deploy_application(self, application_id, title=None, description=None):
        self._record("application.deploy", {"applicationId": application_id, "title": title})
        return self.deploy_result

    # ── compose ──

    async def find_compose(self, project_id, environment_id, name):
        self._record("compose.all")
        return next(
            (c for c in self.composes.values() if c["name"] == name and c["environmentId"] == environment_id),
            None,
        )

    async def create_compose(self, payload):
        self._record("compose.create", payload)
        compose = {
            "composeId": self._next("compose"),
            "name": payload["name"],
            "environmentId": payload["environmentId"],
            "domains": [],
        }
        self.composes[compose["composeId"]] = compose
        return compose["composeId"]

    async def save_compose_file(self, compose_id, compose_file):
        self._record("compose.saveComposeFile", {"composeId": compose_id, "composeFile": compose_file})

    async def save_compose_environment(self, compose_id, env):
        self._record("compose.saveEnvironment", {"composeId": compose_id, "env": env})

    async def stop_compose(self, compose_id):
        self._record("compose.stop", {"composeId": compose_id})

    async def deploy_compose(self, compose_id, title=None, description=None):
        self._record("compose.deploy", {"composeId": compose_id, "title": title})
        return self.deploy_result

    # ── domains ──

    async def get_domains(self, owner_kind, owner_id):
        if owner_kind == "compose":
            self._record("compose.one", {"composeId": owner_id})
            owner = self.composes[owner_id]
        else:
            self._record("application.one", {"applicationId": owner_id})
            owner = self.applications[owner_id]
        return [dict(d) for d in owner["domains"]]

    async def create_domain(self, payload):
        self._record("domain.create", payload)
        if "composeId" in payload:
            owner = self.composes[payload["composeId"]]
        else:
            owner = self.applications[payload["applicationId"]]
        self._seq += 1
        domain = {"domainId": f"dom-{self._seq}", "createdAt": f"2025-01-01T00:00:{self._seq:02d}.000Z", **payload}
        owner["domains"].append(domain)
        return domain

    async def update_domain(self, domain_id, payload):
        self._record("domain.update", {"domainId": domain_id, **payload})
        _, domain = self._owner(domain_id)
        domain.update(payload)
        return domain

    async def delete_domain(self, domain_id):
        self._record("domain.delete", {"domainId": domain_id})
        owner, domain = self._owner(domain_id)
        owner["domains"].remove(domain)

    # ── deployments ──

    async def wait_for_deployment(self, deployment_id, timeout=300, poll_interval=5, sleep=None):
        self._record("deployment.one", {"deploymentId": deployment_id})
        if self.final_status == "failed":
            raise DeploymentFailedError(deployment_id, "build error")
        return {"deploymentId": deployment_id, "status": self.final_status}


@pytest.fixture
def fake_dokploy():
    """Fresh in-memory platform with a single server."""
    return FakeDokploy()
