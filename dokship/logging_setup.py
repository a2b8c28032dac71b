"""CLI logging setup: simple %(message)s format for standalone commands."""

import logging
import sys

from dokship.redact import SecretRedactingFilter


class _DebugFormatter(logging.Formatter):
    """Prefix records with the last segment of the module logger name.

    ``dokship.deploy.orchestrate`` → ``[orchestrate]``
    """

    def format(self, record):
        if record.name.startswith("dokship."):
            record.name = record.name.rsplit(".", 1)[-1]
        return super().format(record)


def setup_cli_logging(debug=False):
    """Configure root logger for CLI commands.

    Produces output identical to print(). With *debug*, the level drops to
    DEBUG and each line is prefixed with its module name.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    if debug:
        handler.setFormatter(_DebugFormatter("[%(name)s] %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    # On the handler, so records propagated from module loggers are covered too
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # httpx logs every request at INFO; keep it to debug runs
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
