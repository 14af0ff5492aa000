"""Application bootstrap.

Loads settings, configures logging and the database engine, and builds
repositories with the configured defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

from .core.config import Settings, load_settings
from .observability.logger import setup_logging
from .repository import EntitiesRepository
from .storage.sql.connection import init_engine

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=EntitiesRepository)


def bootstrap(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    *,
    create_tables: bool = False,
) -> Settings:
    """Load config, set up logging, initialise the engine. Returns the settings."""
    settings = load_settings(config_path=config_path, overrides=overrides)

    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    init_engine(config=settings.database, create_tables=create_tables)

    logger.info(
        "Repository layer ready (transactions=%s)",
        settings.repository.use_transactions,
    )
    return settings


def create_repository(
    repository_class: type[R],
    settings: Settings | None = None,
    **kwargs: Any,
) -> R:
    """Instantiate a repository with the configured repository defaults."""
    config = (settings or Settings()).repository
    kwargs.setdefault("config", config)
    return repository_class(**kwargs)
