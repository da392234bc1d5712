"""Output path resolution for a function bundle directory."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path, PurePath, PureWindowsPath


def add_leading_dot_slash(path: str) -> str:
    if path.startswith(("/", "./", "../")) or path in (".", ".."):
        return path
    # Drive-letter and UNC paths are absolute on Windows.
    if PureWindowsPath(path).drive:
        return path
    return f"./{path}"


def _relative_part(filepath: str | os.PathLike[str], cwd: Path | None = None) -> str:
    raw = os.fspath(filepath)
    if raw in ("", "."):
        return ""

    # Windows separators are accepted from any host.
    pure = PurePath(raw.replace("\\", "/"))
    if pure.is_absolute():
        base = (cwd or Path.cwd()).resolve()
        try:
            return Path(pure).resolve().relative_to(base).as_posix()
        except ValueError:
            # Outside the project: keep the path but drop its anchor.
            return PurePath(*pure.parts[1:]).as_posix()
    return pure.as_posix()


def resolve_output_path(
    functions_dir: str | os.PathLike[str],
    name: str,
    filepath: str | os.PathLike[str] = "",
    *,
    cwd: Path | None = None,
) -> str:
    """
    Join a logical path onto ``<functions_dir>/<name>``.

    Results always use ``/`` and relative results carry a leading ``./``.
    Absolute paths are folded back under the bundle directory.
    """
    base = os.fspath(functions_dir).replace("\\", "/")
    joined = posixpath.normpath(posixpath.join(base, name, _relative_part(filepath, cwd)))
    return add_leading_dot_slash(joined)
