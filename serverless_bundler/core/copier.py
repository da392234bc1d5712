"""
Recursive copy engine used to assemble bundle directories.

Copies a single file or a whole tree. Files are reported one by one through
``on_file`` so callers can keep an exact count of what landed in the bundle.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

logger = logging.getLogger("serverless_bundler.copier")

# OS metadata and version-control internals, skipped unless junk=True.
JUNK_NAMES = frozenset(
    {
        ".DS_Store",
        "._.DS_Store",
        "Thumbs.db",
        "ehthumbs.db",
        "Desktop.ini",
        "npm-debug.log",
        ".Spotlight-V100",
        ".Trashes",
        ".git",
        ".svn",
        ".hg",
        "CVS",
    }
)


@dataclass(frozen=True)
class CopyOptions:
    """Copy policy. Mirrors the option names accepted in ``copy_options``."""

    overwrite: bool = True
    dot: bool = True
    junk: bool = False
    # Glob patterns matched against the path relative to the source root.
    filter: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, *layers: Mapping[str, Any] | None) -> "CopyOptions":
        merged: dict[str, Any] = {}
        for layer in layers:
            if layer:
                merged.update(layer)

        patterns = merged.get("filter") or ()
        if isinstance(patterns, str):
            patterns = (patterns,)
        unknown = set(merged) - {"overwrite", "dot", "junk", "filter", "results"}
        if unknown:
            logger.debug(f"Ignoring unsupported copy options: {sorted(unknown)}")

        return cls(
            overwrite=bool(merged.get("overwrite", True)),
            dot=bool(merged.get("dot", True)),
            junk=bool(merged.get("junk", False)),
            filter=tuple(patterns),
        )


def _is_skipped(relative: Path, options: CopyOptions) -> bool:
    for part in relative.parts:
        if not options.junk and part in JUNK_NAMES:
            return True
        if not options.dot and part.startswith("."):
            return True
    if options.filter:
        rel = relative.as_posix()
        return not any(fnmatch.fnmatch(rel, pattern) for pattern in options.filter)
    return False


def _iter_files(src: Path, options: CopyOptions) -> Iterator[Path]:
    for source_file in sorted(src.rglob("*")):
        if not source_file.is_file():
            continue
        if _is_skipped(source_file.relative_to(src), options):
            continue
        yield source_file


def _copy_one(source_file: Path, dest_file: Path, options: CopyOptions) -> None:
    if dest_file.exists() and not options.overwrite:
        raise FileExistsError(f"Refusing to overwrite existing file: {dest_file}")
    dest_file.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source_file, dest_file)


def copy_tree(
    src: str | Path,
    dest: str | Path,
    options: CopyOptions | None = None,
    on_file: Callable[[Path, Path], None] | None = None,
) -> int:
    """
    Copy ``src`` (file or directory) to ``dest``.

    Stops at the first error; files copied before it are left in place.

    Returns:
        number of files copied
    """
    options = options or CopyOptions()
    src_path = Path(src)
    dest_path = Path(dest)

    if not src_path.exists():
        raise FileNotFoundError(f"Copy source not found: {src_path}")

    if src_path.is_file():
        pairs: Iterator[tuple[Path, Path]] = iter([(src_path, dest_path)])
    else:
        pairs = (
            (source_file, dest_path / source_file.relative_to(src_path))
            for source_file in _iter_files(src_path, options)
        )

    count = 0
    for source_file, dest_file in pairs:
        _copy_one(source_file, dest_file, options)
        count += 1
        if on_file is not None:
            on_file(source_file, dest_file)
    return count
