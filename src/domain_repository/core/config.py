"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.

``RepositoryConfig`` is frozen: repository behaviour is fixed at
construction time and class references are validated up front.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings

from .enums import LogFormat
from .errors import InvalidConfigError


def _default_finder() -> type:
    from domain_repository.storage.sql.finder import Finder

    return Finder


def _default_query() -> type:
    from domain_repository.storage.sql.query import RecordQuery

    return RecordQuery


def _default_data_mapper() -> type:
    from domain_repository.domain.data_mapper import DataMapper

    return DataMapper


def _default_model_event() -> type:
    from .events import ModelEvent

    return ModelEvent


def _default_entities_provider() -> type:
    from domain_repository.data.provider import EntitiesProvider

    return EntitiesProvider


def _as_class(value: Any, label: str) -> type:
    """Resolve a class or dotted import path, rejecting anything else."""
    if isinstance(value, str):
        from domain_repository.container import import_string

        try:
            value = import_string(value)
        except InvalidConfigError as exc:
            raise ValueError(f"{label} should be an existing class: {exc}") from exc
    if not isinstance(value, type):
        raise ValueError(f"{label} should be an existing class, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class RepositoryConfig(BaseModel):
    """Immutable per-repository configuration."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    use_transactions: bool = True
    # Swallow UnableToSaveEntityError on the transactional path and return False
    suppress_save_errors: bool = False
    default_finder_class: type = Field(default_factory=_default_finder)
    default_query_class: type = Field(default_factory=_default_query)
    data_mapper_class: type = Field(default_factory=_default_data_mapper)
    model_event_class: type = Field(default_factory=_default_model_event)
    entities_provider_class: type = Field(default_factory=_default_entities_provider)

    @field_validator("default_finder_class", mode="before")
    @classmethod
    def _check_finder(cls, value: Any) -> type:
        return _as_class(value, "Default finder class")

    @field_validator("default_query_class", mode="before")
    @classmethod
    def _check_query(cls, value: Any) -> type:
        return _as_class(value, "Default query class")

    @field_validator(
        "data_mapper_class",
        "model_event_class",
        "entities_provider_class",
        mode="before",
    )
    @classmethod
    def _check_class(cls, value: Any) -> type:
        return _as_class(value, "Configured class")

    @model_validator(mode="wrap")
    @classmethod
    def _raise_config_error(
        cls, data: Any, handler: Callable[[Any], RepositoryConfig]
    ) -> RepositoryConfig:
        # Applies to direct construction and to nesting inside Settings
        try:
            return handler(data)
        except ValidationError as exc:
            raise InvalidConfigError(str(exc)) from exc


class DatabaseConfig(BaseModel):
    url: str = "sqlite+pysqlite:///:memory:"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30  # seconds
    pool_recycle: int = 1800  # seconds
    use_null_pool: bool = False
    expire_on_commit: bool = False


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "DOMAIN_REPO_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        InvalidConfigError: If the resulting settings fail validation.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        data.update(overrides)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise InvalidConfigError(str(exc)) from exc
