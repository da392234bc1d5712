"""
Serverless bundler package.

Bundles a static site's serverless templates into a function directory and
keeps netlify.toml redirects in sync.
"""

from .config import BundlerOptions, BundlerSettings
from .exceptions import BundlerError, ConfigurationError, IOFailure, NotFoundFailure, RouteConflict
from .plugin import (
    BuildListener,
    NoopBuildListener,
    ServerlessBundlerPlugin,
    SiteDirectories,
    add_serverless_plugin,
    dispatch_build,
)

__all__ = [
    "BundlerOptions",
    "BundlerSettings",
    "BundlerError",
    "ConfigurationError",
    "IOFailure",
    "NotFoundFailure",
    "RouteConflict",
    "BuildListener",
    "NoopBuildListener",
    "ServerlessBundlerPlugin",
    "SiteDirectories",
    "add_serverless_plugin",
    "dispatch_build",
]
