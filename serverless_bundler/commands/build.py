"""CLI parser for the bundle build command."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any

import yaml

from serverless_bundler.config import BundlerSettings
from serverless_bundler.core import console
from serverless_bundler.plugin import add_serverless_plugin, dispatch_build

REQUIRED_MANIFEST_KEYS = ("config", "directories", "template_map")


def register_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "build",
        help="Bundle a serverless function from a site build manifest",
    )
    parser.add_argument(
        "--manifest",
        required=True,
        help="YAML build manifest (config, global_data, directories, template_map, options)",
    )
    parser.add_argument("--name", help="Function name (overrides manifest options.name)")
    parser.add_argument(
        "--functions-dir",
        help="Functions output directory (overrides manifest options.functions_dir)",
    )
    parser.set_defaults(func=run)


def load_build_manifest(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"build manifest not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"invalid build manifest: {path}")

    missing = [key for key in REQUIRED_MANIFEST_KEYS if key not in data]
    if missing:
        raise ValueError(f"build manifest {path} missing keys: {', '.join(missing)}")
    return data


def run(args: argparse.Namespace) -> int:
    manifest = load_build_manifest(Path(args.manifest))

    options = dict(manifest.get("options") or {})
    if args.name:
        options["name"] = args.name
    if args.functions_dir:
        options.pop("functionsDir", None)
        options["functions_dir"] = args.functions_dir

    # The CLI is always a CLI build, whatever the environment says.
    settings = BundlerSettings(BUILD_SOURCE="cli")
    listener = add_serverless_plugin(options, settings=settings)

    console.step(f"Bundling serverless function: {options['name']}")
    asyncio.run(
        dispatch_build(
            listener,
            config_path=manifest["config"],
            global_data_files=list(manifest.get("global_data") or []),
            directories=manifest["directories"],
            template_map=list(manifest["template_map"] or []),
        )
    )
    return 0
