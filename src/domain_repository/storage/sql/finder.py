"""Entity-level finder.

A :class:`Finder` wraps a query (any ``IQuery``, normally a ``RecordQuery``)
and hands every record it loads to the owning repository, which wraps it in
an entity. Builder calls pass through to the query and return the finder for
chaining.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

from domain_repository import registry
from domain_repository.core.errors import EntityNotFoundError
from domain_repository.core.interfaces import IQuery

if TYPE_CHECKING:
    from domain_repository.repository import EntitiesRepository


class Finder:
    """Retrieves entities through a query and a repository."""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        registry.register(cls)

    def __init__(self, query: IQuery, repository: EntitiesRepository) -> None:
        self.query = query
        self.repository = repository

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def where(self, *criteria: Any) -> Finder:
        self.query.where(*criteria)
        return self

    def filter_by(self, **values: Any) -> Finder:
        self.query.filter_by(**values)
        return self

    def order_by(self, *clauses: Any) -> Finder:
        self.query.order_by(*clauses)
        return self

    def limit(self, limit: int | None) -> Finder:
        self.query.limit(limit)
        return self

    def offset(self, offset: int | None) -> Finder:
        self.query.offset(offset)
        return self

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def _entity(self, record: Any) -> Any:
        return self.repository.create_entity_from_source(record)

    def all(self) -> list[Any]:
        return [self._entity(r) for r in self.query.all()]

    def one(self) -> Any | None:
        record = self.query.one()
        return None if record is None else self._entity(record)

    def one_with_pk(self, pk: Any) -> Any | None:
        record = self.query.one_with_pk(pk)
        return None if record is None else self._entity(record)

    def one_with_pk_or_fail(self, pk: Any) -> Any:
        entity = self.one_with_pk(pk)
        if entity is None:
            raise EntityNotFoundError(self.repository.entity_class.__name__, pk)
        return entity

    def each(self, batch_size: int = 100) -> Iterator[Any]:
        for record in self.query.each(batch_size):
            yield self._entity(record)

    def count(self) -> int:
        return self.query.count()

    def exists(self) -> bool:
        return self.query.exists()
