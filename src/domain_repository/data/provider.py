"""Paging and sorting data provider over a repository query.

Usage::

    provider = repository.get_entities_provider(
        pagination=Pagination(page=2, page_size=25),
        sort="-created_at,name",
    )
    for entity in provider.get_entities():
        ...
    provider.pagination.page_count
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from domain_repository.core.enums import SortDirection
from domain_repository.storage.sql.query import RecordQuery

if TYPE_CHECKING:
    from domain_repository.repository import EntitiesRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

@dataclass
class Pagination:
    """1-based page window. ``total_count`` is filled in by the provider."""

    page: int = 1
    page_size: int = 20
    total_count: int = 0

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.page < 1:
            self.page = 1

    @property
    def page_count(self) -> int:
        if self.total_count <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def current_page(self) -> int:
        """Requested page clamped to the last available page."""
        count = self.page_count
        return min(self.page, count) if count else 1

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------

@dataclass
class Sort:
    """Ordered attribute → direction mapping.

    ``allowed`` restricts which attributes may be sorted on; ``None``
    allows any. Requested orders replace ``default_order`` entirely.
    """

    orders: dict[str, SortDirection] = field(default_factory=dict)
    default_order: dict[str, SortDirection] = field(default_factory=dict)
    allowed: list[str] | None = None

    @classmethod
    def parse(
        cls,
        value: str,
        *,
        allowed: list[str] | None = None,
        default_order: dict[str, SortDirection] | None = None,
    ) -> Sort:
        """Parse ``"-created_at,name"`` into an ordered mapping."""
        orders: dict[str, SortDirection] = {}
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if part.startswith("-"):
                orders[part[1:]] = SortDirection.DESC
            else:
                orders[part.lstrip("+")] = SortDirection.ASC
        return cls(orders=orders, default_order=dict(default_order or {}), allowed=allowed)

    def effective_orders(self) -> dict[str, SortDirection]:
        orders = self.orders or self.default_order
        if self.allowed is None:
            return dict(orders)
        dropped = [name for name in orders if name not in self.allowed]
        if dropped:
            logger.debug("Ignoring sort on disallowed attributes: %s", dropped)
        return {name: d for name, d in orders.items() if name in self.allowed}

    def apply(self, query: RecordQuery) -> RecordQuery:
        """Order ``query`` by the effective orders, replacing any existing ordering."""
        orders = self.effective_orders()
        if orders:
            query.clear_order()
        for name, direction in orders.items():
            query.order_by(query.sort_clause(name, direction))
        return query


PaginationOption = Union[Pagination, dict, bool, None]
SortOption = Union[Sort, str, bool, None]


# ---------------------------------------------------------------------------
# EntitiesProvider
# ---------------------------------------------------------------------------

class EntitiesProvider:
    """Fetches one page of entities for a query, with totals and keys."""

    def __init__(
        self,
        query: RecordQuery,
        repository: EntitiesRepository,
        pagination: PaginationOption = None,
        sort: SortOption = None,
    ) -> None:
        self.query = query
        self.repository = repository
        self.pagination = self._build_pagination(pagination)
        self.sort = self._build_sort(sort)
        self._entities: list[Any] | None = None
        self._total_count: int | None = None

    @staticmethod
    def _build_pagination(option: PaginationOption) -> Pagination | None:
        if option is False:
            return None
        if option is None or option is True:
            return Pagination()
        if isinstance(option, dict):
            return Pagination(**option)
        return option

    @staticmethod
    def _build_sort(option: SortOption) -> Sort | None:
        if option is False or option is None:
            return None
        if option is True:
            return Sort()
        if isinstance(option, str):
            return Sort.parse(option)
        return option

    def get_total_count(self) -> int:
        """Number of matching records ignoring pagination."""
        if self._total_count is None:
            self._total_count = self.query.clone().limit(None).offset(None).count()
        return self._total_count

    def get_entities(self) -> list[Any]:
        if self._entities is None:
            self._entities = self._fetch()
        return self._entities

    def _fetch(self) -> list[Any]:
        query = self.query.clone()
        if self.sort is not None:
            self.sort.apply(query)
        if self.pagination is not None:
            self.pagination.total_count = self.get_total_count()
            query.limit(self.pagination.limit).offset(self.pagination.offset)
        return [self.repository.create_entity_from_source(r) for r in query.all()]

    def get_count(self) -> int:
        """Number of entities on the current page."""
        return len(self.get_entities())

    def get_keys(self) -> list[Any]:
        return [e.get_data_source().get_primary_key() for e in self.get_entities()]

    def refresh(self) -> None:
        self._entities = None
        self._total_count = None
