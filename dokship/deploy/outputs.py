"""Publishing run outputs: GitHub Actions output file and JSON."""

import json
import logging
import os

logger = logging.getLogger(__name__)


def write_github_outputs(outputs, path):
    """Append ``key=value`` lines to the step output file at *path*."""
    with open(path, "a") as f:
        for key, value in outputs.items():
            f.write(f"{key}={value}\n")
    logger.debug(f"Wrote {len(outputs)} output(s) to {path}")


def write_json_outputs(outputs, path):
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with open(path, "w") as f:
        json.dump(outputs, f, indent=2)
        f.write("\n")
    logger.info(f"Outputs written to {path}")


def publish_outputs(outputs, json_path=None, environ=None):
    """Write *outputs* to every configured destination.

    The GitHub output file comes from ``GITHUB_OUTPUT`` in *environ*.
    """
    environ = os.environ if environ is None else environ
    github_output = environ.get("GITHUB_OUTPUT")
    if github_output:
        write_github_outputs(outputs, github_output)
    if json_path:
        write_json_outputs(outputs, json_path)
