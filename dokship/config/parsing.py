"""Raw input value parsing: strings from YAML, CI inputs, or --set overrides."""

import math


def parse_str(value):
    """Return a stripped string, or None for absent/blank values."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_int(value, name):
    """Parse an integer input. Blank means absent (None)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a valid number, got: {value}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"{name} must be a whole number, got: {value}")
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 10)
    except ValueError:
        raise ValueError(f"{name} must be a valid number, got: {value}") from None


def parse_bool(value, name):
    """Parse 'true'/'false' (any case) or a native bool. Blank means absent."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"{name}: expected 'true' or 'false', got: {value}")


def parse_cpu_limit(value, name="cpu-limit"):
    """Parse a CPU amount in cores.

    Accepts decimals ("0.5", "2", "1.0") and millicpu shorthand with an
    m/M suffix ("500m" -> 0.5). Blank input is absent, not zero.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a valid number, got: {value}")
    if isinstance(value, (int, float)):
        cores = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text[-1] in "mM":
            try:
                millis = int(text[:-1], 10)
            except ValueError:
                raise ValueError(f"{name} must be a valid number, got: {value}") from None
            return millis / 1000
        try:
            cores = float(text)
        except ValueError:
            raise ValueError(f"{name} must be a valid number, got: {value}") from None
    if not math.isfinite(cores):
        raise ValueError(f"{name} must be a valid number, got: {value}")
    return cores
