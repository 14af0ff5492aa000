"""Protocol interfaces for the repository layer.

All collaborator boundaries are defined here as Protocol classes.
Implementations can be swapped (SQL-backed, in-memory fakes for tests)
without changing the repository.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Protocol, Sequence, runtime_checkable

from .events import BaseEvent


@runtime_checkable
class IContainer(Protocol):
    """Object factory."""

    def create(self, definition: Any, *args: Any, **kwargs: Any) -> Any: ...


@runtime_checkable
class IDataSource(Protocol):
    """Storage-backed object capable of self-validation and persistence."""

    def validate(self, attributes: Sequence[str] | None = None) -> bool: ...

    def validate_and_save(self, attributes: Sequence[str] | None = None) -> bool: ...

    def save_without_validation(self, attributes: Sequence[str] | None = None) -> bool: ...

    def delete_record(self) -> bool: ...

    def get_errors(self) -> list[str]: ...


@runtime_checkable
class IDataMapper(Protocol):
    """Bridge between an entity and its data source."""

    def get_data_source(self) -> IDataSource: ...


@runtime_checkable
class IEntity(Protocol):
    """Domain object wrapping a data source via a data mapper."""

    def get_data_mapper(self) -> IDataMapper: ...


@runtime_checkable
class IEventDispatcher(Protocol):
    """Named synchronous event dispatch."""

    def on(self, name: str, handler: Callable[[BaseEvent], None]) -> None: ...

    def off(self, name: str, handler: Callable[[BaseEvent], None] | None = None) -> bool: ...

    def trigger(self, name: str, event: BaseEvent) -> None: ...


@runtime_checkable
class IQuery(Protocol):
    """Chainable record-level retrieval."""

    def where(self, *criteria: Any) -> IQuery: ...

    def filter_by(self, **values: Any) -> IQuery: ...

    def order_by(self, *clauses: Any) -> IQuery: ...

    def limit(self, limit: int | None) -> IQuery: ...

    def offset(self, offset: int | None) -> IQuery: ...

    def one(self) -> Any: ...

    def one_with_pk(self, pk: Any) -> Any: ...

    def all(self) -> list[Any]: ...

    def each(self, batch_size: int = 100) -> Iterator[Any]: ...

    def count(self) -> int: ...

    def exists(self) -> bool: ...


@runtime_checkable
class IFinder(Protocol):
    """Entity-level retrieval built on a query."""

    def one(self) -> Any: ...

    def one_with_pk(self, pk: Any) -> Any: ...

    def all(self) -> list[Any]: ...

    def each(self, batch_size: int = 100) -> Iterator[Any]: ...

    def count(self) -> int: ...


@runtime_checkable
class ITransaction(Protocol):
    """Transaction boundary."""

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# Explicit veto hook: return False to cancel the operation.
BeforeHook = Callable[[Any], bool]
