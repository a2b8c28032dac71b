"""Deploy input loading: YAML config file, CI environment, --set overrides."""

import difflib
import logging
import os

import yaml

from dokship.config.types import INPUT_KEYS, DeployInputs
from dokship.errors import InputValidationError, ValidationIssue
from dokship.redact import register_secret

logger = logging.getLogger(__name__)

# Keys whose value is a path; the loader replaces it with the file contents.
FILE_KEYS = ("env-file", "compose-file")

# Plain environment variables accepted for the connection secrets.
ENV_ALIASES = {
    "DOKPLOY_URL": "dokploy-url",
    "DOKPLOY_API_KEY": "api-key",
}


def normalize_key(key):
    """'Project_Name' / 'project_name' -> 'project-name'."""
    return str(key).strip().lower().replace("_", "-")


def check_known_keys(raw, source):
    """Raise ValueError for keys that are not deploy inputs."""
    for key in raw:
        if key not in INPUT_KEYS:
            close = difflib.get_close_matches(key, INPUT_KEYS.keys(), n=3)
            hint = f" Did you mean: {', '.join(close)}?" if close else ""
            raise ValueError(f"Unknown input '{key}' in {source}.{hint}")


def load_config_file(config_path):
    """Load a YAML mapping of deploy inputs."""
    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping of inputs")

    raw = {normalize_key(k): v for k, v in config.items()}
    check_known_keys(raw, config_path)
    return raw


def inputs_from_environ(environ):
    """Collect inputs from CI action variables and the connection aliases.

    Action runners expose each input as INPUT_<NAME> with the name
    upper-cased (dashes kept). Blank values count as unset.
    """
    raw = {}
    for var, value in environ.items():
        if not var.startswith("INPUT_") or not str(value).strip():
            continue
        key = normalize_key(var[len("INPUT_") :])
        if key in INPUT_KEYS:
            raw[key] = value
    for var, key in ENV_ALIASES.items():
        value = environ.get(var, "")
        if value.strip():
            raw[key] = value
    return raw


def parse_overrides(pairs):
    """Parse repeated KEY=VALUE command-line overrides."""
    raw = {}
    for pair in pairs or ():
        if "=" not in pair:
            raise ValueError(f"Override '{pair}' must have the form key=value")
        key, value = pair.split("=", 1)
        raw[normalize_key(key)] = value
    check_known_keys(raw, "--set overrides")
    return raw


def _read_file_inputs(raw, base_dir):
    """Replace file-path inputs with their contents, relative to *base_dir*."""
    issues = []
    resolved = dict(raw)
    for key in FILE_KEYS:
        path = resolved.get(key)
        if path is None or not str(path).strip():
            resolved.pop(key, None)
            continue
        full_path = os.path.join(base_dir, os.path.expanduser(str(path).strip()))
        try:
            with open(full_path) as f:
                resolved[key] = f.read()
        except OSError as e:
            issues.append(
                ValidationIssue(
                    key,
                    f"cannot read {full_path}: {e.strerror}",
                    path,
                    f"Check that {key} points to an existing file",
                )
            )
    if issues:
        raise InputValidationError(issues)
    return resolved


def load_inputs(config_path=None, overrides=(), environ=None) -> DeployInputs:
    """Merge every input source and build a DeployInputs.

    Precedence (lowest first): config file, INPUT_* variables,
    DOKPLOY_URL / DOKPLOY_API_KEY, --set overrides.
    """
    environ = os.environ if environ is None else environ

    raw = {}
    base_dir = os.getcwd()
    if config_path:
        raw.update(load_config_file(config_path))
        base_dir = os.path.dirname(os.path.abspath(config_path))
    raw.update(inputs_from_environ(environ))
    raw.update(parse_overrides(overrides))

    raw = _read_file_inputs(raw, base_dir)
    inputs = DeployInputs.from_dict(raw)

    register_secret(inputs.api_key)
    register_secret(inputs.registry_password)
    logger.debug(f"Loaded {len(raw)} input(s)" + (f" from {config_path}" if config_path else ""))
    return inputs
