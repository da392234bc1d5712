"""
Dependency lister.

Walks the import statements of Python files and returns the top-level names
of the external packages reachable from them. Local modules (siblings of the
importing file, or relative imports) are followed; the standard library is
ignored.
"""

from __future__ import annotations

import ast
import logging
import sys
from pathlib import Path
from typing import Iterable

from ..exceptions import NotFoundFailure

logger = logging.getLogger("serverless_bundler.dependencies")

_STDLIB = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)


def _local_module_file(base_dir: Path, dotted: str) -> Path | None:
    if not dotted:
        candidate = base_dir / "__init__.py"
        return candidate if candidate.is_file() else None

    target = base_dir.joinpath(*dotted.split("."))
    for candidate in (target.with_suffix(".py"), target / "__init__.py"):
        if candidate.is_file():
            return candidate
    return None


def _relative_base(path: Path, level: int) -> Path:
    base = path.parent
    for _ in range(level - 1):
        base = base.parent
    return base


def _scan(
    path: Path,
    allow_not_found: bool,
    seen: set[Path],
    packages: set[str],
) -> None:
    resolved = path.resolve()
    if resolved in seen:
        return
    seen.add(resolved)

    if not resolved.is_file():
        if allow_not_found:
            logger.debug(f"Skipping missing dependency file: {path}")
            return
        raise NotFoundFailure(str(path))

    try:
        tree = ast.parse(resolved.read_text(encoding="utf-8"), filename=str(resolved))
    except (UnicodeDecodeError, SyntaxError, ValueError) as e:
        logger.warning(f"Skipping unparsable dependency file {path}: {e}")
        return
    local: list[Path] = []

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                _classify(resolved.parent, alias.name, local, packages)
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                base = _relative_base(resolved, node.level)
                if node.module is None:
                    # from . import a, b
                    for alias in node.names:
                        sub = _local_module_file(base, alias.name)
                        if sub is not None:
                            local.append(sub)
                    continue
                module_file = _local_module_file(base, node.module)
                if module_file is None:
                    if not allow_not_found:
                        raise NotFoundFailure(f"{'.' * node.level}{node.module} in {path}")
                    logger.debug(f"Unresolved relative import in {path}: {node.module}")
                    continue
                local.append(module_file)
            elif node.module:
                _classify(resolved.parent, node.module, local, packages)

    for module_file in local:
        _scan(module_file, allow_not_found, seen, packages)


def _classify(base_dir: Path, dotted: str, local: list[Path], packages: set[str]) -> None:
    top = dotted.split(".", 1)[0]
    module_file = _local_module_file(base_dir, dotted) or _local_module_file(base_dir, top)
    if module_file is not None:
        local.append(module_file)
    elif top in _STDLIB or top == "__future__":
        return
    else:
        packages.add(top)


def list_external_modules(
    files: Iterable[str | Path],
    *,
    allow_not_found: bool = True,
) -> list[str]:
    """
    Return the sorted, de-duplicated external package names imported by ``files``.

    Non-Python paths are ignored. Missing files and unresolvable relative
    imports are skipped unless ``allow_not_found`` is False, in which case
    NotFoundFailure is raised. Files that do not decode or parse are skipped
    with a warning.
    """
    packages: set[str] = set()
    seen: set[Path] = set()

    for filepath in files:
        path = Path(filepath)
        if path.suffix != ".py":
            continue
        _scan(path, allow_not_found, seen, packages)

    return sorted(packages)
