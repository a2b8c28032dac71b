"""Deploy input types, parsing, loading and validation."""

from dokship.config.loader import (
    inputs_from_environ,
    load_config_file,
    load_inputs,
    parse_overrides,
)
from dokship.config.parsing import parse_bool, parse_cpu_limit, parse_int, parse_str
from dokship.config.types import (
    INPUT_KEYS,
    ComposeSettings,
    DeployInputs,
    DomainSettings,
    HealthCheckSettings,
    ResourceLimits,
)
from dokship.config.validation import ensure_valid, report_issues, validate_inputs

__all__ = [
    "INPUT_KEYS",
    "ComposeSettings",
    "DeployInputs",
    "DomainSettings",
    "HealthCheckSettings",
    "ResourceLimits",
    "ensure_valid",
    "inputs_from_environ",
    "load_config_file",
    "load_inputs",
    "parse_bool",
    "parse_cpu_limit",
    "parse_int",
    "parse_overrides",
    "parse_str",
    "report_issues",
    "validate_inputs",
]
