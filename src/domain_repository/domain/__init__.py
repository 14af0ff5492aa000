"""Domain entities and their data mappers."""

from domain_repository.domain.data_mapper import DataMapper
from domain_repository.domain.entity import Entity

__all__ = ["DataMapper", "Entity"]
