"""SQLAlchemy-backed records, queries, finders and transactions."""

from domain_repository.storage.sql.connection import (
    create_all,
    create_engine,
    current_session,
    dispose,
    get_engine,
    get_session,
    init_engine,
)
from domain_repository.storage.sql.finder import Finder
from domain_repository.storage.sql.query import RecordQuery
from domain_repository.storage.sql.record import Base, Record
from domain_repository.storage.sql.transaction import TransactionManager

__all__ = [
    "Base",
    "Finder",
    "Record",
    "RecordQuery",
    "TransactionManager",
    "create_all",
    "create_engine",
    "current_session",
    "dispose",
    "get_engine",
    "get_session",
    "init_engine",
]
