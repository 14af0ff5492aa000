"""Object factory used by repositories to build their collaborators.

A definition may be a class, any other callable, a dotted import path, a
name bound with :meth:`Container.set`, or a dict of the form
``{"class": <definition>, **properties}`` whose properties are passed to
the constructor as keyword arguments.
"""

from __future__ import annotations

import functools
import importlib
import logging
from typing import Any, Callable, Mapping, Union

from domain_repository.core.errors import InvalidConfigError

logger = logging.getLogger(__name__)

Definition = Union[type, Callable[..., Any], str, Mapping[str, Any]]


def import_string(path: str) -> Any:
    """Import ``package.module.Attr`` and return ``Attr``.

    Raises:
        InvalidConfigError: If the module or attribute does not exist.
    """
    module_path, _, attr = path.rpartition(".")
    if not module_path:
        raise InvalidConfigError(f"'{path}' is not a dotted import path")
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise InvalidConfigError(f"Cannot import module '{module_path}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise InvalidConfigError(
            f"Module '{module_path}' has no attribute '{attr}'"
        ) from exc


def _split(definition: Mapping[str, Any]) -> tuple[Definition, dict[str, Any]]:
    """Separate a dict definition into its class and constructor properties."""
    properties = dict(definition)
    try:
        target = properties.pop("class")
    except KeyError:
        raise InvalidConfigError(
            "Object definition dict must contain a 'class' key"
        ) from None
    return target, properties


class Container:
    """Minimal dependency-injection container."""

    def __init__(self, definitions: Mapping[str, Definition] | None = None) -> None:
        self._definitions: dict[str, Definition] = dict(definitions or {})

    def set(self, name: str, definition: Definition) -> None:
        """Bind ``name`` to a definition, replacing any previous binding."""
        self._definitions[name] = definition

    def has(self, name: str) -> bool:
        return name in self._definitions

    def clear(self, name: str) -> None:
        self._definitions.pop(name, None)

    def create(self, definition: Definition, *args: Any, **kwargs: Any) -> Any:
        """Instantiate ``definition`` with the given constructor arguments."""
        properties: dict[str, Any] = {}
        if isinstance(definition, Mapping):
            definition, properties = _split(definition)

        factory = self._resolve(definition)
        properties.update(kwargs)
        logger.debug(
            "Creating %s",
            getattr(factory, "__qualname__", repr(factory)),
        )
        return factory(*args, **properties)

    def _resolve(self, definition: Definition, _seen: frozenset[str] = frozenset()) -> Callable[..., Any]:
        if isinstance(definition, str):
            if definition in self._definitions:
                if definition in _seen:
                    raise InvalidConfigError(f"Circular definition for '{definition}'")
                bound = self._definitions[definition]
                if isinstance(bound, Mapping):
                    target, properties = _split(bound)
                    factory = self._resolve(target, _seen | {definition})
                    return functools.partial(factory, **properties)
                return self._resolve(bound, _seen | {definition})
            definition = import_string(definition)

        if not callable(definition):
            raise InvalidConfigError(f"Definition {definition!r} is not callable")
        return definition


# Shared default instance
container = Container()
