"""Paging and sorting data providers."""

from domain_repository.data.provider import EntitiesProvider, Pagination, Sort

__all__ = ["EntitiesProvider", "Pagination", "Sort"]
