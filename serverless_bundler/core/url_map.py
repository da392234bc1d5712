"""
URL map reconciliation.

Turns the site-wide template map into the URL -> input file map served by a
single named function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence, Union

from ..exceptions import RouteConflict

UrlValue = Union[str, Sequence[str]]


@dataclass(frozen=True)
class TemplateMapEntry:
    """One template of the site and the serverless URLs it declares."""

    input_path: str
    serverless: Mapping[str, UrlValue] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateMapEntry":
        input_path = data.get("inputPath", data.get("input_path"))
        if not input_path:
            raise ValueError(f"template map entry missing inputPath: {data!r}")
        return cls(input_path=str(input_path), serverless=dict(data.get("serverless") or {}))


def _as_entry(entry: TemplateMapEntry | Mapping[str, Any]) -> TemplateMapEntry:
    if isinstance(entry, TemplateMapEntry):
        return entry
    return TemplateMapEntry.from_dict(entry)


def _as_url_list(value: UrlValue) -> list[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


def reconcile_url_map(
    entries: Iterable[TemplateMapEntry | Mapping[str, Any]],
    function_name: str,
) -> dict[str, str]:
    """
    Build the output map for ``function_name``.

    Raises:
        RouteConflict: when two different input files claim the same URL.
    """
    output_map: dict[str, str] = {}

    for raw in entries:
        entry = _as_entry(raw)
        if function_name not in entry.serverless:
            continue

        for url in _as_url_list(entry.serverless[function_name]):
            existing = output_map.get(url)
            # Pagination can emit the same URL for the same template.
            if existing == entry.input_path:
                continue
            if existing:
                raise RouteConflict(url, existing, entry.input_path)
            output_map[url] = entry.input_path

    return output_map
