"""Validate and keys commands: check inputs without touching the platform."""

import logging
import sys

from dokship.commands.deploy import add_input_arguments, load_inputs_from_args
from dokship.config.types import INPUT_KEYS
from dokship.config.validation import report_issues, validate_inputs
from dokship.deploy.builders import build_env_blob
from dokship.errors import InputValidationError, ValidationIssue

logger = logging.getLogger(__name__)


def handle_validate(args):
    """Handle the validate command."""
    try:
        inputs = load_inputs_from_args(args)
    except InputValidationError:
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    issues = validate_inputs(inputs)
    try:
        build_env_blob(inputs.env_from_json, inputs.env_file, inputs.env)
    except ValueError as e:
        issues.append(ValidationIssue("env-from-json", str(e), inputs.env_from_json, "Provide a JSON object, e.g. {\"KEY\": \"value\"}"))

    if issues:
        report_issues(issues)
        sys.exit(1)

    kind = "compose stack" if inputs.is_compose else f"application ({inputs.docker_image})"
    logger.info(f"All inputs are valid: {kind}")


def handle_keys(args):
    """Handle the keys command."""
    width = max(len(k) for k in INPUT_KEYS)
    for key, default in INPUT_KEYS.items():
        shown = "-" if default is None else str(default).lower() if isinstance(default, bool) else default
        logger.info(f"{key:<{width}}  {shown}")


def register_validate_command(subparsers):
    """Register the validate subcommand."""
    parser = subparsers.add_parser("validate", help="Check deploy inputs and report every problem")
    add_input_arguments(parser)
    parser.set_defaults(func=handle_validate)


def register_keys_command(subparsers):
    """Register the keys subcommand."""
    parser = subparsers.add_parser("keys", help="List recognised input keys and their defaults")
    parser.set_defaults(func=handle_keys)
