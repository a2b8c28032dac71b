"""Deploy command: load inputs, run the orchestrator, publish outputs."""

import asyncio
import logging
import os
import sys

from dokship.config.loader import load_inputs
from dokship.config.validation import report_issues
from dokship.deploy.orchestrate import DeployContext, run_deploy
from dokship.deploy.outputs import publish_outputs
from dokship.errors import InputValidationError
from dokship.logging_setup import setup_cli_logging

logger = logging.getLogger(__name__)


def add_input_arguments(parser):
    """--config and --set, shared by every command that reads inputs."""
    parser.add_argument("--config", default=None, help="YAML file with deploy inputs")
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override one input (repeatable), e.g. --set docker-image=ghcr.io/org/app:v1",
    )


def load_inputs_from_args(args):
    """Load inputs for a command, logging every validation issue on failure."""
    try:
        return load_inputs(args.config, args.set)
    except InputValidationError as e:
        report_issues(e.issues)
        raise


def report_failure(step, error):
    """Log a fatal error and annotate the workflow run when inside Actions."""
    message = str(error) or error.__class__.__name__
    logger.error(f"Deployment failed at {step}: {message}")
    if os.environ.get("GITHUB_ACTIONS") == "true":
        print(f"::error::Deployment failed at {step}: {message}", flush=True)


def handle_deploy(args):
    """Handle the deploy command."""
    ctx = DeployContext()
    try:
        inputs = load_inputs_from_args(args)
        if inputs.debug_mode:
            setup_cli_logging(debug=True)
        asyncio.run(run_deploy(inputs, ctx))
    except Exception as e:
        report_failure(ctx.step, e)
        publish_outputs(ctx.outputs(), args.output_json)
        sys.exit(1)

    publish_outputs(ctx.outputs(), args.output_json)
    if ctx.deployment_status != "success":
        logger.warning(f"Deployment finished with status: {ctx.deployment_status}")


def register_deploy_command(subparsers):
    """Register the deploy subcommand."""
    parser = subparsers.add_parser("deploy", help="Deploy an application or compose stack")
    add_input_arguments(parser)
    parser.add_argument("--output-json", default=None, help="Also write the run outputs to this JSON file")
    parser.set_defaults(func=handle_deploy)
