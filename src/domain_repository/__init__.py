"""Repository layer over SQLAlchemy: entities, records, finders and lifecycle events."""

from domain_repository.core.config import RepositoryConfig, Settings, load_settings
from domain_repository.core.enums import CompanionElement, RepositoryEvent
from domain_repository.core.errors import (
    EntityNotFoundError,
    InvalidConfigError,
    RepositoryError,
    TransactionError,
    UnableToSaveEntityError,
)
from domain_repository.core.events import ModelEvent
from domain_repository.domain import DataMapper, Entity
from domain_repository.repository import EntitiesRepository
from domain_repository.storage.sql import Finder, Record, RecordQuery, TransactionManager

__all__ = [
    "CompanionElement",
    "DataMapper",
    "EntitiesRepository",
    "Entity",
    "EntityNotFoundError",
    "Finder",
    "InvalidConfigError",
    "ModelEvent",
    "Record",
    "RecordQuery",
    "RepositoryConfig",
    "RepositoryError",
    "RepositoryEvent",
    "Settings",
    "TransactionError",
    "TransactionManager",
    "UnableToSaveEntityError",
    "load_settings",
]
