"""
Where: serverless_bundler/plugin.py
What: Build lifecycle listener that bundles one serverless function.
Why: The site pipeline drives bundling through a fixed sequence of signals.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from fastapi import Request, Response

from .config import BundlerOptions, BundlerSettings, load_options
from .core import console
from .core.bundler import CONFIG_FILENAME, BundlerHelper
from .core.dev_server import CallNext
from .core.redirects import RedirectPolicy, resolve_redirect_policy
from .core.url_map import TemplateMapEntry, reconcile_url_map
from .exceptions import ConfigurationError

logger = logging.getLogger("serverless_bundler.plugin")

TemplateMap = Iterable[Union[TemplateMapEntry, Mapping[str, Any]]]


@dataclass(frozen=True)
class SiteDirectories:
    """Directories resolved by the site pipeline."""

    data: str
    includes: str
    layouts: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SiteDirectories":
        return cls(data=data["data"], includes=data["includes"], layouts=data.get("layouts"))


class BuildListener(ABC):
    """
    Signals emitted by the site pipeline, in this order:
    build start, config, global data, directories, template map, build end.
    """

    @abstractmethod
    async def on_build_start(self) -> None:
        pass

    @abstractmethod
    async def on_config_resolved(self, config_path: str) -> None:
        pass

    @abstractmethod
    async def on_global_data_files_resolved(self, files: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def on_directories_resolved(self, dirs: Union[SiteDirectories, Mapping[str, Any]]) -> None:
        pass

    @abstractmethod
    async def on_template_map_resolved(self, entries: TemplateMap) -> None:
        pass

    @abstractmethod
    async def on_build_end(self) -> None:
        pass

    @abstractmethod
    def dev_server_middleware(self):
        pass


class NoopBuildListener(BuildListener):
    """Used when the build is not CLI driven (e.g. programmatic use)."""

    async def on_build_start(self) -> None:
        pass

    async def on_config_resolved(self, config_path: str) -> None:
        pass

    async def on_global_data_files_resolved(self, files: Sequence[str]) -> None:
        pass

    async def on_directories_resolved(self, dirs: Union[SiteDirectories, Mapping[str, Any]]) -> None:
        pass

    async def on_template_map_resolved(self, entries: TemplateMap) -> None:
        pass

    async def on_build_end(self) -> None:
        pass

    def dev_server_middleware(self):
        async def passthrough(request: Request, call_next: CallNext) -> Response:
            return await call_next(request)

        return passthrough


class ServerlessBundlerPlugin(BuildListener):
    def __init__(self, options: BundlerOptions, redirect_policy: Optional[RedirectPolicy] = None):
        self.options = options
        self.helper = BundlerHelper(options.name, options)
        if redirect_policy is None:
            try:
                redirect_policy = resolve_redirect_policy(options.name, options.redirects)
            except TypeError as e:
                raise ConfigurationError(str(e)) from e
        self.redirect_policy = redirect_policy

    @property
    def name(self) -> str:
        return self.options.name

    async def on_build_start(self) -> None:
        self.helper.reset()
        self.helper.write_dependency_entry_file()

    async def on_config_resolved(self, config_path: str) -> None:
        self.helper.copy_file(config_path, CONFIG_FILENAME)
        self.helper.write_dependency_config_file(config_path)

    async def on_global_data_files_resolved(self, files: Sequence[str]) -> None:
        self.helper.write_dependency_global_data_file(files)

    async def on_directories_resolved(self, dirs: Union[SiteDirectories, Mapping[str, Any]]) -> None:
        if not isinstance(dirs, SiteDirectories):
            dirs = SiteDirectories.from_dict(dirs)

        copies = [self.helper.recursive_copy(dirs.data), self.helper.recursive_copy(dirs.includes)]
        if dirs.layouts:
            copies.append(self.helper.recursive_copy(dirs.layouts))
        await asyncio.gather(*copies)

    async def on_template_map_resolved(self, entries: TemplateMap) -> None:
        output_map = reconcile_url_map(entries, self.name)

        # Written even when empty so removed routes are noticed downstream.
        self.helper.write_url_map(output_map)

        # Also runs for an empty map so stale redirects get deleted.
        self.redirect_policy.generate(output_map)

        if output_map:
            input_files = list(dict.fromkeys(output_map.values()))
            await asyncio.gather(*(self.helper.recursive_copy(path) for path in input_files))

    async def on_build_end(self) -> None:
        # Runs after the build so files generated by the build can be copied too.
        copies = []
        for target in self.options.copy_targets:
            if isinstance(target, str):
                copies.append(self.helper.recursive_copy(target))
            elif isinstance(target, Mapping) and target.get("from") and target.get("to"):
                copies.append(
                    self.helper.recursive_copy(target["from"], target["to"], target.get("options"))
                )
            else:
                logger.debug(
                    f"Ignored extra copy {target!r} (needs to be a string or a {{from: '', to: ''}})"
                )
        await asyncio.gather(*copies)

        count = self.helper.copy_count
        console.success(
            f"Serverless: {count} file{'s' if count != 1 else ''} bundled to "
            f"{self.helper.get_output_path('')}."
        )

    def dev_server_middleware(self):
        return self.helper.dev_server_middleware()


def add_serverless_plugin(
    options: Union[BundlerOptions, Mapping[str, Any], None] = None,
    settings: Optional[BundlerSettings] = None,
) -> BuildListener:
    """
    Validate options and return the listener to register with the site pipeline.

    Raises:
        ConfigurationError: when ``name`` is missing, before any file is written.
    """
    bundler_options = load_options(dict(options) if isinstance(options, Mapping) else options)
    settings = settings or BundlerSettings()

    if not settings.is_cli_build:
        logger.debug(f"Serverless ({bundler_options.name}): not a CLI build, bundling disabled")
        return NoopBuildListener()

    return ServerlessBundlerPlugin(bundler_options)


async def dispatch_build(
    listener: BuildListener,
    *,
    config_path: str,
    global_data_files: Sequence[str],
    directories: Union[SiteDirectories, Mapping[str, Any]],
    template_map: TemplateMap,
) -> None:
    """Fire every lifecycle signal once, in pipeline order."""
    await listener.on_build_start()
    await listener.on_config_resolved(config_path)
    await listener.on_global_data_files_resolved(global_data_files)
    await listener.on_directories_resolved(directories)
    await listener.on_template_map_resolved(template_map)
    await listener.on_build_end()
