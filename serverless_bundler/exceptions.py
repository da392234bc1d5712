"""
Where: serverless_bundler/exceptions.py
What: Exception classes raised while bundling a serverless function.
Why: Give the build pipeline distinct failures to abort on.
"""


class BundlerError(Exception):
    """Base exception class for serverless bundling."""

    pass


class ConfigurationError(BundlerError):
    """Raised when plugin options are invalid (e.g. missing name)."""

    pass


class RouteConflict(BundlerError):
    """Raised when two input files claim the same URL for one function."""

    def __init__(self, url: str, existing_input: str, incoming_input: str):
        self.url = url
        self.existing_input = existing_input
        self.incoming_input = incoming_input
        super().__init__(
            "Serverless URL conflict: multiple input files are using the same URL path "
            f"{url} (in `permalink`): {existing_input} and {incoming_input}"
        )


class IOFailure(BundlerError):
    """Raised when a copy or write into the bundle fails."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write bundle file {path}: {cause}")


class NotFoundFailure(BundlerError):
    """Raised by the dependency lister for an unresolvable local module."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Dependency not found: {path}")
