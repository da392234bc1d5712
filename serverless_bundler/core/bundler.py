"""
Bundling session for one named serverless function.

Owns ``<functions_dir>/<name>`` for the duration of a build and counts every
file placed into it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..config import BundlerOptions
from ..exceptions import IOFailure
from .copier import CopyOptions, copy_tree
from .dependencies import list_external_modules
from .dev_server import ReloadableModule, create_dev_server_middleware
from .paths import resolve_output_path
from .renderer import render_dependency_marker, render_url_map

logger = logging.getLogger("serverless_bundler.bundler")

BUNDLER_MODULES_FILENAME = "bundler_modules.py"
CONFIG_MODULES_FILENAME = "app_config_modules.py"
GLOBAL_DATA_MODULES_FILENAME = "app_globaldata_modules.py"
URL_MAP_FILENAME = "serverless-map.json"
CONFIG_FILENAME = "site_config.py"
ENTRY_MODULE_FILENAME = "index.py"

# Base copy policy; session copy_options and per-call options layer on top.
DEFAULT_COPY_OPTIONS: dict[str, Any] = {"overwrite": True, "dot": True, "junk": False}


def _module_name(filename: str) -> str:
    return Path(filename).stem


class BundlerHelper:
    def __init__(self, name: str, options: BundlerOptions):
        self.name = name
        self.options = options
        self.copy_count = 0
        self._count_lock = threading.Lock()

    def reset(self) -> None:
        with self._count_lock:
            self.copy_count = 0

    def _increment(self, amount: int = 1) -> None:
        with self._count_lock:
            self.copy_count += amount

    def get_output_path(self, filepath: str | os.PathLike[str] = "") -> str:
        return resolve_output_path(self.options.functions_dir, self.name, filepath)

    def _write_text(self, filename: str, content: str) -> str:
        full_path = self.get_output_path(filename)
        try:
            Path(full_path).parent.mkdir(parents=True, exist_ok=True)
            Path(full_path).write_text(content, encoding="utf-8")
        except OSError as e:
            raise IOFailure(full_path, e) from e
        self._increment()
        return full_path

    def copy_file(self, full_path: str | os.PathLike[str], output_filename: str) -> None:
        dest = self.get_output_path(output_filename)
        logger.debug(f"Serverless: Copying {full_path} to {dest}")
        try:
            Path(dest).parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(full_path, dest)
        except OSError as e:
            raise IOFailure(dest, e) from e
        self._increment()

    def copy_options_for(self, options: Mapping[str, Any] | None = None) -> CopyOptions:
        return CopyOptions.from_mapping(DEFAULT_COPY_OPTIONS, self.options.copy_options, options)

    async def recursive_copy(
        self,
        src: str | os.PathLike[str],
        dest: str | os.PathLike[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Copy a file or directory tree into the bundle.

        Runs in a worker thread. Files already copied stay in place when a
        later file fails.
        """
        final_dest = self.get_output_path(dest or src)
        copy_options = self.copy_options_for(options)

        def _on_file(source_file: Path, dest_file: Path) -> None:
            self._increment()

        try:
            count = await asyncio.to_thread(copy_tree, src, final_dest, copy_options, _on_file)
        except OSError as e:
            raise IOFailure(final_dest, e) from e

        logger.debug(f"Serverless: Copied {src} to {final_dest} (x{count})")
        return count

    def write_dependency_marker(self, filename: str, deps: Iterable[str] = ()) -> str:
        modules = list(deps)
        purpose = {
            CONFIG_MODULES_FILENAME: "site config",
            GLOBAL_DATA_MODULES_FILENAME: "global data files",
        }.get(filename, "bundle")
        full_path = self._write_text(
            filename,
            render_dependency_marker(modules, function_name=self.name, purpose=purpose),
        )
        logger.debug(
            "Writing a file to make it very obvious to the serverless bundler which extra "
            f"imports are needed (x{len(modules)}): {full_path}"
        )
        return full_path

    def write_dependency_entry_file(self) -> str:
        return self.write_dependency_marker(
            BUNDLER_MODULES_FILENAME,
            [
                _module_name(CONFIG_MODULES_FILENAME),
                _module_name(GLOBAL_DATA_MODULES_FILENAME),
            ],
        )

    def _filtered_modules(self, files: Iterable[str | os.PathLike[str]]) -> list[str]:
        excluded = set(self.options.exclude_dependencies)
        return [name for name in list_external_modules(files) if name not in excluded]

    def write_dependency_config_file(self, config_path: str | os.PathLike[str]) -> str:
        return self.write_dependency_marker(
            CONFIG_MODULES_FILENAME, self._filtered_modules([config_path])
        )

    def write_dependency_global_data_file(
        self, global_data_files: Iterable[str | os.PathLike[str]]
    ) -> str:
        return self.write_dependency_marker(
            GLOBAL_DATA_MODULES_FILENAME, self._filtered_modules(global_data_files)
        )

    def write_url_map(self, output_map: Mapping[str, str]) -> str:
        full_path = self._write_text(URL_MAP_FILENAME, render_url_map(dict(output_map)))
        logger.debug(f"Serverless ({self.name}), writing (x{len(output_map)}): {full_path}")
        return full_path

    def entry_module(self) -> ReloadableModule:
        return ReloadableModule(
            Path(self.get_output_path(ENTRY_MODULE_FILENAME)),
            module_name=f"serverless_{self.name.replace('-', '_')}_index",
            # Every named function shares functions_dir; none may see another's modules.
            isolation_root=Path(self.options.functions_dir),
        )

    def dev_server_middleware(self):
        return create_dev_server_middleware(self.entry_module())
