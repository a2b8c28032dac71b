#!/usr/bin/env python3
"""Dokploy deployment driver: CLI entrypoint."""

import argparse

from dokship.commands.deploy import register_deploy_command
from dokship.commands.validate import register_keys_command, register_validate_command
from dokship.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Deploy applications and compose stacks to a Dokploy server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_deploy_command(subparsers)
    register_validate_command(subparsers)
    register_keys_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging()
    args.func(args)


if __name__ == "__main__":
    main()
