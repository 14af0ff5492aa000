"""Custom exception hierarchy for the repository layer."""


class RepositoryError(Exception):
    """Base exception for all repository errors."""


# --- Configuration ---
class InvalidConfigError(RepositoryError):
    """Invalid or missing configuration (unresolvable companion class, bad default)."""


# --- Persistence ---
class PersistenceError(RepositoryError):
    """Storage-level failure."""


class UnableToSaveEntityError(PersistenceError):
    """The data source refused to persist an entity.

    ``errors`` holds the data source's validation error list.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return f"{base}: {'; '.join(self.errors)}"


class TransactionError(PersistenceError):
    """Commit or rollback requested without an active transaction."""


# --- Retrieval ---
class EntityNotFoundError(RepositoryError):
    """No entity matches the requested primary key."""

    def __init__(self, entity_class: str, pk: object):
        self.entity_class = entity_class
        self.pk = pk
        super().__init__(f"{entity_class} with primary key {pk!r} not found")
