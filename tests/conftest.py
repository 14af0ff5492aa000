"""Shared fixtures for the domain-repository test suite."""

from __future__ import annotations

from typing import Annotated, Any

import pytest
from pydantic import BaseModel, Field, StringConstraints
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from domain_repository import registry
from domain_repository.domain import Entity
from domain_repository.event_bus import EventDispatcher
from domain_repository.repository import EntitiesRepository
from domain_repository.storage.sql import Finder, Record
from domain_repository.storage.sql.connection import current_session, dispose, init_engine


# ---------------------------------------------------------------------------
# Sample domain
# ---------------------------------------------------------------------------

class UserSchema(BaseModel):
    email: Annotated[str, StringConstraints(pattern=r"^[^@\s]+@[^@\s]+$")]
    name: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    age: int | None = Field(default=None, ge=0)


class UserRecord(Record):
    __tablename__ = "users"
    __validator__ = UserSchema

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)


class UserEntity(Entity):
    @property
    def display_name(self) -> str:
        return f"{self.name} <{self.email}>"


class UserFinder(Finder):
    def adults(self) -> UserFinder:
        return self.where(UserRecord.age >= 18)


class UserRepository(EntitiesRepository):
    """Resolves UserEntity / UserRecord / UserFinder by name, default query."""


class TagRecord(Record):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(32), nullable=False)


class TagEntity(Entity):
    pass


class TagRepository(EntitiesRepository):
    """Resolves TagEntity / TagRecord, default finder and query."""


# ---------------------------------------------------------------------------
# In-memory data source fakes
# ---------------------------------------------------------------------------

class FakeDataSource:
    """Data source double recording every persistence call."""

    def __init__(self, *, saves: bool = True, deletes: bool = True, errors: list[str] | None = None):
        self.saves = saves
        self.deletes = deletes
        self.errors = list(errors or [])
        self.calls: list[tuple[str, Any]] = []

    def validate(self, attributes=None) -> bool:
        self.calls.append(("validate", attributes))
        return not self.errors

    def validate_and_save(self, attributes=None) -> bool:
        self.calls.append(("validate_and_save", attributes))
        return self.saves and not self.errors

    def save_without_validation(self, attributes=None) -> bool:
        self.calls.append(("save_without_validation", attributes))
        return self.saves

    def delete_record(self) -> bool:
        self.calls.append(("delete_record", None))
        return self.deletes

    def get_errors(self) -> list[str]:
        return list(self.errors)

    def persisted(self) -> bool:
        return any(name in ("validate_and_save", "save_without_validation") for name, _ in self.calls)


class SpyTransaction:
    """Transaction boundary that counts begin/commit/rollback."""

    def __init__(self) -> None:
        self.begins = 0
        self.commits = 0
        self.rollbacks = 0

    def begin(self) -> None:
        self.begins += 1

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables created."""
    eng = init_engine("sqlite+pysqlite:///:memory:", create_tables=True)
    yield eng
    dispose()


@pytest.fixture
def session(engine):
    return current_session()


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher(record_history=True)


@pytest.fixture
def user_repo(session, dispatcher) -> UserRepository:
    return UserRepository(session=session, dispatcher=dispatcher)


@pytest.fixture
def tag_repo(session) -> TagRepository:
    return TagRepository(session=session)


@pytest.fixture
def spy_transaction() -> SpyTransaction:
    return SpyTransaction()


@pytest.fixture
def fake_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def make_user(user_repo):
    """Create and persist a user entity."""

    def _make(email: str = "ada@example.com", name: str = "Ada", age: int | None = 36):
        entity = user_repo.create_new_entity({"email": email, "name": name, "age": age})
        assert user_repo.validate_and_save(entity) is True
        return entity

    return _make


@pytest.fixture
def clean_registry():
    """Restore the companion registry after a test registers throwaway classes."""
    saved = dict(registry._REGISTRY), dict(registry._BY_NAME)
    yield registry
    registry._REGISTRY.clear()
    registry._REGISTRY.update(saved[0])
    registry._BY_NAME.clear()
    registry._BY_NAME.update(saved[1])
