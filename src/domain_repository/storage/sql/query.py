"""Record-level query builder.

Builder methods mutate the query and return it so calls can be chained::

    records = UserQuery(UserRecord).where(UserRecord.active.is_(True)).order_by("-created_at").all()

Subclass per record (``UserQuery``) to add named scopes; subclasses register
with the companion registry so repositories pick them up by convention.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterator

from sqlalchemy import Select, and_, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from domain_repository import registry
from domain_repository.core.enums import SortDirection

from . import connection

logger = logging.getLogger(__name__)


class RecordQuery:
    """Builds and runs SELECTs for one record class."""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        registry.register(cls)

    def __init__(self, record_class: type, session: Session | None = None) -> None:
        self.record_class = record_class
        self._session = session
        self._criteria: list[Any] = []
        self._order_by: list[Any] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else connection.current_session()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def where(self, *criteria: Any) -> RecordQuery:
        self._criteria.extend(criteria)
        return self

    def filter_by(self, **values: Any) -> RecordQuery:
        for name, value in values.items():
            self._criteria.append(self._column(name) == value)
        return self

    def order_by(self, *clauses: Any) -> RecordQuery:
        """Add ORDER BY terms. Strings are attribute names, ``-name`` sorts descending."""
        for clause in clauses:
            if isinstance(clause, str):
                direction = SortDirection.DESC if clause.startswith("-") else SortDirection.ASC
                clause = self.sort_clause(clause.lstrip("-+"), direction)
            self._order_by.append(clause)
        return self

    def sort_clause(self, name: str, direction: SortDirection) -> Any:
        column = self._column(name)
        return column.desc() if direction == SortDirection.DESC else column.asc()

    def clear_order(self) -> RecordQuery:
        self._order_by.clear()
        return self

    def limit(self, limit: int | None) -> RecordQuery:
        self._limit = limit
        return self

    def offset(self, offset: int | None) -> RecordQuery:
        self._offset = offset
        return self

    def clone(self) -> RecordQuery:
        """Independent copy sharing the record class and session."""
        other = copy.copy(self)
        other._criteria = list(self._criteria)
        other._order_by = list(self._order_by)
        return other

    def _column(self, name: str) -> Any:
        try:
            return getattr(self.record_class, name)
        except AttributeError:
            raise AttributeError(
                f"{self.record_class.__name__} has no attribute '{name}'"
            ) from None

    def statement(self) -> Select:
        stmt = select(self.record_class)
        if self._criteria:
            stmt = stmt.where(and_(*self._criteria))
        if self._order_by:
            stmt = stmt.order_by(*self._order_by)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset is not None:
            stmt = stmt.offset(self._offset)
        return stmt

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def all(self) -> list[Any]:
        return list(self.session.scalars(self.statement()).all())

    def one(self) -> Any | None:
        """First matching record, or None."""
        return self.session.scalars(self.statement().limit(1)).first()

    def one_with_pk(self, pk: Any) -> Any | None:
        """Record whose primary key equals ``pk`` (a tuple for composite keys)."""
        columns = sa_inspect(self.record_class).primary_key
        values = pk if isinstance(pk, tuple) else (pk,)
        if len(values) != len(columns):
            raise ValueError(
                f"{self.record_class.__name__} primary key has {len(columns)} "
                f"column(s), got {len(values)} value(s)"
            )
        return self.clone().where(*(c == v for c, v in zip(columns, values))).one()

    def each(self, batch_size: int = 100) -> Iterator[Any]:
        """Stream matching records, fetching ``batch_size`` rows at a time."""
        stmt = self.statement().execution_options(yield_per=batch_size)
        yield from self.session.scalars(stmt)

    def count(self) -> int:
        subquery = self.statement().order_by(None).subquery()
        return self.session.scalar(select(func.count()).select_from(subquery)) or 0

    def exists(self) -> bool:
        return self.one() is not None

    def __iter__(self) -> Iterator[Any]:
        return iter(self.all())
