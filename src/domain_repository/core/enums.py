"""Enumerations used across the repository layer."""

from enum import Enum


class RepositoryEvent(str, Enum):
    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"


class CompanionElement(str, Enum):
    """Companion classes paired with a repository by naming convention."""

    ENTITY = "Entity"
    RECORD = "Record"
    FINDER = "Finder"
    QUERY = "Query"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
