#!/usr/bin/env python3
"""Serverless bundler CLI."""

from __future__ import annotations

import argparse

from serverless_bundler.commands import build, reconcile
from serverless_bundler.config import BundlerSettings
from serverless_bundler.core import console
from serverless_bundler.core.logging_config import setup_logging
from serverless_bundler.exceptions import BundlerError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bundle static site templates into a serverless function",
    )
    parser.add_argument("--log-config", help="YAML logging config (default: LOG_CONFIG_PATH)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    build.register_parser(subparsers)
    reconcile.register_parser(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = BundlerSettings()
    setup_logging(args.log_config or settings.LOG_CONFIG_PATH, level=settings.LOG_LEVEL)

    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    try:
        return int(args.func(args))
    except BundlerError as exc:
        console.error(f"Error: {exc}")
        return 1
    except (ValueError, FileNotFoundError) as exc:
        console.error(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
