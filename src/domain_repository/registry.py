"""Companion class registry.

Entities, records, finders and queries register themselves here on class
creation. Repositories resolve their companions from this registry rather
than probing the interpreter for class names.
"""

from __future__ import annotations

import logging
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)

# "module.ClassName" → class
_REGISTRY: dict[str, type] = {}
# "ClassName" → class (most recent registration wins)
_BY_NAME: dict[str, type] = {}


def _qualified(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def register(cls: T) -> T:
    """Register a companion class. Usable as a decorator."""
    _REGISTRY[_qualified(cls)] = cls
    previous = _BY_NAME.get(cls.__name__)
    if previous is not None and previous is not cls:
        logger.debug(
            "Companion name %s rebound: %s -> %s",
            cls.__name__,
            _qualified(previous),
            _qualified(cls),
        )
    _BY_NAME[cls.__name__] = cls
    return cls


def unregister(cls: type) -> None:
    """Remove a class from the registry. Unknown classes are ignored."""
    _REGISTRY.pop(_qualified(cls), None)
    if _BY_NAME.get(cls.__name__) is cls:
        del _BY_NAME[cls.__name__]


def lookup(name: str, module: str | None = None) -> type | None:
    """Find a registered class by name.

    A class from ``module`` is preferred; otherwise the most recently
    registered class with that bare name is returned.
    """
    if module is not None:
        cls = _REGISTRY.get(f"{module}.{name}")
        if cls is not None:
            return cls
    return _BY_NAME.get(name)


def is_registered(cls: type) -> bool:
    return _REGISTRY.get(_qualified(cls)) is cls


def companion_name(repository_name: str, element: str) -> str:
    """Derive a companion class name: ``FooRepository`` + ``Entity`` → ``FooEntity``."""
    suffix = "Repository"
    if repository_name.endswith(suffix):
        return repository_name[: -len(suffix)] + element
    return repository_name + element
