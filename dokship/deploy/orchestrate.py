"""Deploy orchestration: one linear run from inputs to a verified deployment.

Steps run strictly in sequence and share a DeployContext that carries the
resolved ids, the public URL and the statuses that become the run outputs.
Any exception aborts the run; nothing is rolled back, re-running after a
fix is safe because every ensure step is find-or-create.
"""

import asyncio
import logging
from dataclasses import dataclass

from dokship.client.dokploy import DokployClient
from dokship.client.types import resource_id
from dokship.config.types import DeployInputs
from dokship.config.validation import ensure_valid
from dokship.deploy.builders import (
    DEFAULT_PORT,
    build_domain_config,
    build_env_blob,
    build_settings_update,
    deployment_url,
    parse_volumes,
)
from dokship.deploy.health import HEALTHY, SKIPPED, check_health
from dokship.deploy.reconcile import (
    compose_name,
    ensure_application,
    ensure_compose,
    ensure_environment,
    ensure_project,
    reconcile_domain,
    resolve_server,
)
from dokship.errors import HealthCheckFailedError

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILED = "failed"

POLL_INTERVAL = 5
CLEANUP_SETTLE = 15

QUICK_PROBE_SETTLE = 10
QUICK_PROBE_RETRIES = 3
QUICK_PROBE_INTERVAL = 2
QUICK_PROBE_TIMEOUT = 5

DEFAULT_DEPLOYMENT_TITLE = "Automated deployment"


@dataclass
class DeployContext:
    """Cross-step state of one run. The CLI reads it even after a failure."""

    step: str = "ParseAndValidate"
    deployment_type: str = "application"
    project_id: str | None = None
    environment_id: str | None = None
    server_id: str | None = None
    application_id: str | None = None
    compose_id: str | None = None
    deployment_id: str | None = None
    deployment_url: str | None = None
    deployment_status: str | None = None
    health_check_status: str | None = None
    quick_health_confirmed: bool = False

    def enter(self, step):
        self.step = step
        logger.info("")
        logger.info(f"── {step} ──")

    def outputs(self) -> dict:
        """Run outputs keyed like the action outputs; unknown values omitted."""
        service_key, service_id = (
            ("compose-id", self.compose_id) if self.deployment_type == "compose" else ("application-id", self.application_id)
        )
        values = {
            "project-id": self.project_id,
            "environment-id": self.environment_id,
            "server-id": self.server_id,
            service_key: service_id,
            "deployment-id": self.deployment_id,
            "deployment-url": self.deployment_url,
            "deployment-status": self.deployment_status,
            "health-check-status": self.health_check_status,
        }
        return {k: str(v) for k, v in values.items() if v is not None}


def health_url(base_url, path):
    path = path or "/"
    return f"{base_url}{path if path.startswith('/') else '/' + path}"


async def run_deploy(inputs: DeployInputs, ctx=None, client=None, health_check=check_health, sleep=asyncio.sleep):
    """Run a whole deployment.

    Args:
        inputs: loaded DeployInputs
        ctx: DeployContext to fill in; a fresh one when omitted
        client: DokployClient-like object; one is opened from *inputs* when omitted
        health_check: async callable(url, retries, interval, timeout, sleep=...) -> status
        sleep: async callable used for every settle delay and poll interval

    Returns:
        The DeployContext. On failure the exception propagates and
        ``ctx.step`` names the step that failed.
    """
    ctx = ctx or DeployContext()
    ctx.deployment_type = inputs.deployment_type
    try:
        ctx.enter("ParseAndValidate")
        ensure_valid(inputs)
        env_blob = build_env_blob(inputs.env_from_json, inputs.env_file, inputs.env)
        logger.info(f"Deployment type: {inputs.deployment_type}")

        ctx.enter("Connect")
        if client is not None:
            await _run_steps(client, inputs, ctx, env_blob, health_check, sleep)
        else:
            logger.info(f"Connecting to {inputs.dokploy_url}")
            async with DokployClient(
                inputs.dokploy_url,
                inputs.api_key,
                log_requests=inputs.log_api_requests,
                log_responses=inputs.log_api_responses,
            ) as opened:
                await _run_steps(opened, inputs, ctx, env_blob, health_check, sleep)
    except Exception:
        ctx.deployment_status = FAILED
        raise
    return ctx


async def _run_steps(client, inputs: DeployInputs, ctx: DeployContext, env_blob, health_check, sleep):
    ctx.enter("EnsureProject")
    ctx.project_id, created_project = await ensure_project(client, inputs)

    ctx.enter("EnsureEnvironment")
    ctx.environment_id = await ensure_environment(client, inputs, ctx.project_id, created_project)

    ctx.enter("ResolveServer")
    ctx.server_id = await resolve_server(client, inputs.server_id, inputs.server_name)

    if inputs.is_compose:
        await _prepare_compose(client, inputs, ctx, env_blob, sleep)
    else:
        await _prepare_application(client, inputs, ctx, env_blob, sleep)

    await _wait_and_verify(client, inputs, ctx, health_check, sleep)

    ctx.enter("Summarize")
    _log_summary(inputs, ctx)


# ── Application workflow ────────────────────────────────────────────


async def _prepare_application(client, inputs: DeployInputs, ctx: DeployContext, env_blob, sleep):
    ctx.enter("EnsureApplication")
    ctx.application_id, _ = await ensure_application(client, inputs, ctx.project_id, ctx.environment_id, ctx.server_id)
    app_id = ctx.application_id

    ctx.enter("ApplySettings")
    if inputs.resources.any_set:
        await client.update_application(app_id, build_settings_update(inputs.resources))
    else:
        logger.info("No resource settings supplied, keeping current values")

    ctx.enter("ConfigureProvider")
    await client.save_docker_provider(
        app_id,
        inputs.docker_image,
        registry_url=inputs.registry_url,
        username=inputs.registry_username,
        password=inputs.registry_password,
    )

    ctx.enter("ConfigureAdvanced")
    mounts = parse_volumes(inputs.volumes)
    for host_path, mount_path in mounts:
        await client.create_mount(app_id, host_path, mount_path)
    if mounts:
        logger.info(f"Configured {len(mounts)} volume mount(s)")
    if inputs.group_add:
        logger.warning(f"group-add is not supported by the platform API, ignoring: {inputs.group_add}")

    ctx.enter("ConfigureEnvVars")
    if env_blob:
        await client.save_environment(app_id, env_blob)
    else:
        logger.info("No environment variables configured")

    domain_config = build_domain_config(inputs.domain, target_port=inputs.target_port or DEFAULT_PORT)
    await _configure_domain(client, "application", app_id, domain_config, inputs, ctx, sleep)

    if inputs.cleanup_old_containers:
        ctx.enter("CleanupOldContainers")
        await client.stop_application(app_id)
        logger.info(f"Waiting {CLEANUP_SETTLE}s for old containers to stop")
        await sleep(CLEANUP_SETTLE)

    ctx.enter("Deploy")
    result = await client.deploy_application(
        app_id,
        title=inputs.deployment_title or DEFAULT_DEPLOYMENT_TITLE,
        description=inputs.deployment_description,
    )
    _record_deploy(ctx, result)


# ── Compose workflow ────────────────────────────────────────────────


async def _prepare_compose(client, inputs: DeployInputs, ctx: DeployContext, env_blob, sleep):
    ctx.enter("EnsureCompose")
    ctx.compose_id, _ = await ensure_compose(client, inputs, ctx.project_id, ctx.environment_id, ctx.server_id)
    compose_id = ctx.compose_id

    ctx.enter("ConfigureComposeFile")
    await client.save_compose_file(compose_id, inputs.compose.content)

    ctx.enter("ConfigureEnvVars")
    if env_blob:
        await client.save_compose_environment(compose_id, env_blob)
    else:
        logger.info("No environment variables configured")

    service_name = inputs.compose.service_name or compose_name(inputs)
    domain_config = build_domain_config(inputs.domain, target_port=inputs.target_port or DEFAULT_PORT, service_name=service_name)
    await _configure_domain(client, "compose", compose_id, domain_config, inputs, ctx, sleep)

    if inputs.cleanup_old_containers:
        ctx.enter("CleanupOldContainers")
        await client.stop_compose(compose_id)
        logger.info(f"Waiting {CLEANUP_SETTLE}s for old containers to stop")
        await sleep(CLEANUP_SETTLE)

    ctx.enter("Deploy")
    result = await client.deploy_compose(
        compose_id,
        title=inputs.deployment_title or DEFAULT_DEPLOYMENT_TITLE,
        description=inputs.deployment_description,
    )
    _record_deploy(ctx, result)


# ── Shared steps ────────────────────────────────────────────────────


async def _configure_domain(client, owner_kind, owner_id, domain_config, inputs: DeployInputs, ctx: DeployContext, sleep):
    if domain_config is None:
        logger.info("No domain configured, skipping domain setup")
        return
    ctx.enter("ConfigureDomain")
    await reconcile_domain(client, owner_kind, owner_id, domain_config, force=inputs.domain.force_recreation, sleep=sleep)
    ctx.deployment_url = deployment_url(domain_config)
    logger.info(f"Deployment URL: {ctx.deployment_url}")


def _record_deploy(ctx: DeployContext, result):
    ctx.deployment_id = resource_id(result, "deployment")
    ctx.deployment_status = SUCCESS
    if ctx.deployment_id:
        logger.info(f"Deployment triggered (ID: {ctx.deployment_id})")
    else:
        logger.info("Deployment triggered (no deployment ID returned)")


async def _wait_and_verify(client, inputs: DeployInputs, ctx: DeployContext, health_check, sleep):
    hc = inputs.health_check
    url = health_url(ctx.deployment_url, hc.path) if ctx.deployment_url else None

    if inputs.wait_for_deployment:
        ctx.enter("WaitForDeployment")
        if hc.enabled and url:
            logger.info(f"Quick health probe in {QUICK_PROBE_SETTLE}s")
            await sleep(QUICK_PROBE_SETTLE)
            try:
                status = await health_check(
                    url,
                    retries=QUICK_PROBE_RETRIES,
                    interval=QUICK_PROBE_INTERVAL,
                    timeout=QUICK_PROBE_TIMEOUT,
                    sleep=sleep,
                )
            except Exception as e:
                logger.warning(f"Quick health probe error: {e.__class__.__name__}: {e}")
                status = None
            if status == HEALTHY:
                ctx.quick_health_confirmed = True
                ctx.health_check_status = HEALTHY
                logger.info("Application is already healthy, skipping deployment status polling")
            else:
                logger.info("Quick health probe did not pass, polling deployment status")

        if not ctx.quick_health_confirmed:
            if ctx.deployment_id:
                await client.wait_for_deployment(
                    ctx.deployment_id,
                    timeout=inputs.deployment_timeout,
                    poll_interval=POLL_INTERVAL,
                    sleep=sleep,
                )
            else:
                logger.warning("No deployment ID available, cannot wait for completion")
        ctx.deployment_status = SUCCESS

    if not hc.enabled or not url:
        ctx.health_check_status = SKIPPED
        return
    if ctx.quick_health_confirmed:
        return

    ctx.enter("HealthCheck")
    status = await health_check(url, retries=hc.retries, interval=hc.interval, timeout=hc.timeout, sleep=sleep)
    ctx.health_check_status = status
    if status != HEALTHY:
        ctx.deployment_status = FAILED
        if hc.fail_on_error:
            raise HealthCheckFailedError(url)
        logger.warning(f"Health check failed for {url}, continuing because fail-on-health-check-error is off")


def _log_summary(inputs: DeployInputs, ctx: DeployContext):
    logger.info("Deployment summary:")
    logger.info(f"  Project: {inputs.project_name or '-'} ({ctx.project_id})")
    logger.info(f"  Environment: {inputs.environment_name or '-'} ({ctx.environment_id})")
    logger.info(f"  Server: {ctx.server_id}")
    if inputs.is_compose:
        logger.info(f"  Compose: {compose_name(inputs) or '-'} ({ctx.compose_id})")
    else:
        logger.info(f"  Application: {inputs.application_name or '-'} ({ctx.application_id})")
        logger.info(f"  Image: {inputs.docker_image}")
    if ctx.deployment_id:
        logger.info(f"  Deployment: {ctx.deployment_id}")
    if ctx.deployment_url:
        logger.info(f"  URL: {ctx.deployment_url}")
    logger.info(f"  Status: {ctx.deployment_status}")
    logger.info(f"  Health: {ctx.health_check_status}")
