"""Domain entity base.

An entity exposes the attributes of its backing record as its own::

    user = repository.create_new_entity()
    user.email = "ada@example.com"   # written to the record
    repository.validate_and_save(user)

Subclasses add domain behaviour and register with the companion registry.
"""

from __future__ import annotations

from typing import Any

from domain_repository import registry
from domain_repository.core.interfaces import IDataSource

from .data_mapper import DataMapper


class Entity:
    """Domain-facing object wrapping a data source via a data mapper."""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        registry.register(cls)

    def __init__(self, data_mapper: DataMapper) -> None:
        object.__setattr__(self, "_data_mapper", data_mapper)

    def get_data_mapper(self) -> DataMapper:
        return self._data_mapper

    def get_data_source(self) -> IDataSource:
        return self._data_mapper.get_data_source()

    def get_errors(self) -> list[str]:
        return self.get_data_source().get_errors()

    def set_attributes(self, values: dict[str, Any]) -> None:
        self._data_mapper.set_attributes(values)

    def to_dict(self) -> dict[str, Any]:
        return self._data_mapper.to_dict()

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        mapper = self.__dict__.get("_data_mapper")
        if mapper is not None and mapper.has_attribute(name):
            return mapper.get_attribute(name)
        raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        mapper = self.__dict__.get("_data_mapper")
        if mapper is not None and not hasattr(type(self), name) and mapper.has_attribute(name):
            mapper.set_attribute(name, value)
        else:
            object.__setattr__(self, name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self.get_data_source() is other.get_data_source()

    def __hash__(self) -> int:
        return id(self.get_data_source())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} source={self.get_data_source()!r}>"
