"""
Redirect generation for the hosting config (netlify.toml).

Rules written by a function carry a tag with the function name so a later
build can replace exactly its own rules and leave everything else alone.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Mapping

import toml

logger = logging.getLogger("serverless_bundler.redirects")

GENERATED_BY_KEY = "_generated_by_serverless_bundler"
NETLIFY_CONFIG_FILENAME = "netlify.toml"


def build_redirect_rules(function_name: str, output_map: Mapping[str, str]) -> list[dict[str, Any]]:
    """One forced 200 rewrite per URL, pointing at the deployed function."""
    return [
        {
            "from": url,
            "to": f"/.netlify/functions/{function_name}",
            "status": 200,
            "force": True,
            GENERATED_BY_KEY: function_name,
        }
        for url in output_map
    ]


def merge_redirects(
    existing_rules: list[dict[str, Any]],
    function_name: str,
    new_rules: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Merge a freshly generated batch into an existing rule list.

    Rules previously generated by ``function_name`` are dropped first. New
    rules are sorted by ``from`` and skipped when a rule with the same
    ``(from, to)`` pair is already present. Each kept rule is prepended,
    so the block ends up in descending ``from`` order ahead of the rest.
    """
    retained = [rule for rule in existing_rules if rule.get(GENERATED_BY_KEY) != function_name]
    seen = {(rule.get("from"), rule.get("to")) for rule in retained}

    added: list[dict[str, Any]] = []
    for rule in sorted(new_rules, key=lambda r: r.get("from", "")):
        key = (rule.get("from"), rule.get("to"))
        if key in seen:
            continue
        seen.add(key)
        added.insert(0, rule)

    return added + retained


def add_redirects_without_duplicates(
    function_name: str,
    config: dict[str, Any],
    new_rules: list[dict[str, Any]],
) -> dict[str, Any]:
    """Apply merge_redirects to a whole config document."""
    redirects = merge_redirects(list(config.get("redirects") or []), function_name, new_rules)
    merged = dict(config)
    if redirects:
        merged["redirects"] = redirects
    else:
        merged.pop("redirects", None)
    return merged


def load_netlify_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return toml.load(f)


def write_netlify_config(path: Path, config: Mapping[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(toml.dumps(dict(config)))


class RedirectPolicy(ABC):
    @abstractmethod
    def generate(self, output_map: Mapping[str, str]) -> None:
        """
        Publish routing for the given URL -> input file map.
        """
        pass


class NetlifyRedirectPolicy(RedirectPolicy):
    """Default policy: read, merge and write back netlify.toml."""

    def __init__(self, function_name: str, config_path: str | Path = NETLIFY_CONFIG_FILENAME):
        self.function_name = function_name
        self.config_path = Path(config_path)

    def generate(self, output_map: Mapping[str, str]) -> None:
        new_rules = build_redirect_rules(self.function_name, output_map)
        config = load_netlify_config(self.config_path)
        merged = add_redirects_without_duplicates(self.function_name, config, new_rules)
        write_netlify_config(self.config_path, merged)
        logger.debug(
            f"Serverless ({self.function_name}), writing (x{len(new_rules)}): {self.config_path}"
        )


class CallableRedirectPolicy(RedirectPolicy):
    """Adapts a user supplied ``redirects(output_map)`` function."""

    def __init__(self, func: Callable[[Mapping[str, str]], Any]):
        self.func = func

    def generate(self, output_map: Mapping[str, str]) -> None:
        self.func(output_map)


def resolve_redirect_policy(function_name: str, redirects: Any = None) -> RedirectPolicy:
    if redirects is None:
        return NetlifyRedirectPolicy(function_name)
    if isinstance(redirects, RedirectPolicy):
        return redirects
    if callable(redirects):
        return CallableRedirectPolicy(redirects)
    raise TypeError(f"redirects must be callable or a RedirectPolicy, got {type(redirects).__name__}")
