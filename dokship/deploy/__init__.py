"""Deploy layer: payload builders, reconciliation, health probe, orchestration."""

from dokship.deploy.health import check_health
from dokship.deploy.orchestrate import DeployContext, run_deploy
from dokship.deploy.outputs import publish_outputs

__all__ = [
    "DeployContext",
    "check_health",
    "publish_outputs",
    "run_deploy",
]
