"""Bridge between an entity and the record that stores it."""

from __future__ import annotations

from typing import Any

from domain_repository.core.interfaces import IDataSource


class DataMapper:
    """Owns one data source for the lifetime of its entity."""

    def __init__(self, data_source: IDataSource) -> None:
        self._data_source = data_source

    def get_data_source(self) -> IDataSource:
        return self._data_source

    def attribute_names(self) -> list[str]:
        names = getattr(self._data_source, "attribute_names", None)
        return list(names()) if callable(names) else []

    def has_attribute(self, name: str) -> bool:
        return name in self.attribute_names()

    def get_attribute(self, name: str) -> Any:
        return getattr(self._data_source, name)

    def set_attribute(self, name: str, value: Any) -> None:
        setattr(self._data_source, name, value)

    def set_attributes(self, values: dict[str, Any]) -> None:
        set_many = getattr(self._data_source, "set_attributes", None)
        if callable(set_many):
            set_many(values)
            return
        for name, value in values.items():
            self.set_attribute(name, value)

    def to_dict(self) -> dict[str, Any]:
        return {name: self.get_attribute(name) for name in self.attribute_names()}
