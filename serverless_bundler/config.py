"""
Serverless bundler configuration.

Two layers:
- BundlerSettings: process environment (pydantic-settings), read once per build.
- BundlerOptions: plugin options passed by the site configuration.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_FUNCTIONS_DIR = "./functions/"


class BundlerSettings(BaseSettings):
    """
    Environment driven settings.
    """

    BUILD_SOURCE: str = Field(
        default="", description="Set to 'cli' when the site build runs from the command line"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_CONFIG_PATH: str = Field(default="logging.yml", description="YAML logging config path")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    @property
    def is_cli_build(self) -> bool:
        return self.BUILD_SOURCE.strip().lower() == "cli"


class BundlerOptions(BaseModel):
    """
    Options for one named serverless function.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique function name")
    functions_dir: str = Field(default=DEFAULT_FUNCTIONS_DIR, alias="functionsDir")
    # Extra copy targets: a path string or {"from": ..., "to": ..., "options": {...}}
    copy_targets: List[Union[str, Dict[str, Any]]] = Field(default_factory=list, alias="copy")
    copy_options: Dict[str, Any] = Field(default_factory=dict, alias="copyOptions")
    # Hidden from app_config_modules.py and app_globaldata_modules.py
    exclude_dependencies: List[str] = Field(
        default_factory=list, alias="excludeDependencies"
    )
    # Callable receiving the output map, or a RedirectPolicy instance
    redirects: Optional[Any] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name must not be empty")
        return value


def load_options(options: Union[BundlerOptions, Dict[str, Any], None]) -> BundlerOptions:
    """
    Validate plugin options.

    Raises:
        ConfigurationError: when the options are missing a name or are malformed.
    """
    if isinstance(options, BundlerOptions):
        return options

    options = dict(options or {})
    if not options.get("name"):
        raise ConfigurationError(
            "Serverless plugin options must have a name (e.g. {'name': 'possum'})."
        )

    try:
        return BundlerOptions.model_validate(options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid serverless plugin options: {e}") from e
