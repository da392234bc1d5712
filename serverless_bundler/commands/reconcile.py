"""CLI parser for the URL map reconcile command."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import yaml

from serverless_bundler.core.renderer import render_url_map
from serverless_bundler.core.url_map import reconcile_url_map


def register_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "reconcile",
        help="Print the URL -> input file map for one function",
    )
    parser.add_argument(
        "--template-map",
        required=True,
        help="Template map file (JSON or YAML list of {inputPath, serverless})",
    )
    parser.add_argument("--name", required=True, help="Function name")
    parser.set_defaults(func=run)


def load_template_map(path: Path) -> list[dict]:
    if not path.exists():
        raise FileNotFoundError(f"template map not found: {path}")

    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, list):
        raise ValueError(f"template map must be a list: {path}")
    return data


def run(args: argparse.Namespace) -> int:
    entries = load_template_map(Path(args.template_map))
    print(render_url_map(reconcile_url_map(entries, args.name)))
    return 0
