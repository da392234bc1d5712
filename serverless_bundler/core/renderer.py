"""
Marker file renderer

Renders generated bundle files (dependency markers) from Jinja2 templates.
"""

import json
from pathlib import Path
from typing import Dict, Iterable

from jinja2 import Environment, FileSystemLoader

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_dependency_marker(
    modules: Iterable[str],
    function_name: str = "",
    purpose: str = "bundle",
) -> str:
    """
    Render a dependency marker module.

    Args:
        modules: module names, one ``import`` line each
        function_name: name of the function being bundled
        purpose: what the imports belong to (shown in the header comment)

    Returns:
        Python source string
    """
    template = _environment().get_template("dependencies.py.j2")
    return template.render(
        modules=list(modules),
        function_name=function_name,
        purpose=purpose,
    )


def render_url_map(output_map: Dict[str, str]) -> str:
    """Pretty-printed JSON for serverless-map.json."""
    return json.dumps(output_map, indent=2, ensure_ascii=False)
