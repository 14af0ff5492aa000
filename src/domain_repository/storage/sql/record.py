"""Active-record base for SQLAlchemy models.

A :class:`Record` is a declarative model that can validate and persist
itself. Validation rules are a Pydantic model assigned to ``__validator__``;
its fields are checked against the record's current attribute values and
every failure is kept as a ``"<field>: <message>"`` error string.

Concrete records register with the companion registry on class creation.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Iterable, Sequence

from pydantic import BaseModel, ValidationError
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, object_session
from sqlalchemy.orm.attributes import set_committed_value

from domain_repository import registry

from . import connection

logger = logging.getLogger(__name__)

# Error key for failures that are not tied to one attribute
RECORD_ERROR_KEY = "__record__"


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

class Record(Base):
    """Storage-backed data source capable of self-validation and persistence."""

    __abstract__ = True

    # Pydantic model describing the validation rules, or None to skip validation
    __validator__: ClassVar[type[BaseModel] | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("__abstract__", False):
            registry.register(cls)

    # ------------------------------------------------------------------
    # Session binding
    # ------------------------------------------------------------------

    def bind_session(self, session: Session) -> None:
        """Pin this record to ``session`` instead of the scoped session."""
        self.__dict__["_bound_session"] = session

    def get_session(self) -> Session:
        session = object_session(self) or self.__dict__.get("_bound_session")
        return session if session is not None else connection.current_session()

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    @classmethod
    def attribute_names(cls) -> list[str]:
        """Column attribute keys, in mapper order."""
        return [attr.key for attr in sa_inspect(cls).column_attrs]

    def get_attributes(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        keys = self.attribute_names() if names is None else list(names)
        return {key: getattr(self, key, None) for key in keys}

    def set_attributes(self, values: dict[str, Any]) -> None:
        """Assign column attributes in bulk.

        Raises:
            AttributeError: If a key is not a column attribute.
        """
        known = set(self.attribute_names())
        unknown = sorted(set(values) - known)
        if unknown:
            raise AttributeError(
                f"{type(self).__name__} has no attributes: {', '.join(unknown)}"
            )
        for key, value in values.items():
            setattr(self, key, value)

    def is_new_record(self) -> bool:
        state = sa_inspect(self)
        return state.transient or state.pending

    def get_primary_key(self) -> Any:
        """Primary key value; a tuple for composite keys, None when unsaved."""
        identity = sa_inspect(self).identity
        if identity is None:
            mapper = sa_inspect(type(self))
            values = tuple(getattr(self, mapper.get_property_by_column(c).key) for c in mapper.primary_key)
            if all(v is None for v in values):
                return None
            identity = values
        return identity[0] if len(identity) == 1 else tuple(identity)

    def is_attribute_changed(self, name: str) -> bool:
        return sa_inspect(self).attrs[name].history.has_changes()

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _error_map(self) -> dict[str, list[str]]:
        return self.__dict__.setdefault("_record_errors", {})

    def add_error(self, attribute: str, message: str) -> None:
        self._error_map().setdefault(attribute, []).append(message)

    def get_errors(self) -> list[str]:
        """All error messages, formatted ``"<attribute>: <message>"``."""
        errors: list[str] = []
        for attribute, messages in self._error_map().items():
            for message in messages:
                errors.append(message if attribute == RECORD_ERROR_KEY else f"{attribute}: {message}")
        return errors

    def get_attribute_errors(self, attribute: str) -> list[str]:
        return list(self._error_map().get(attribute, []))

    def has_errors(self, attribute: str | None = None) -> bool:
        if attribute is None:
            return any(self._error_map().values())
        return bool(self._error_map().get(attribute))

    def clear_errors(self, attribute: str | None = None) -> None:
        if attribute is None:
            self._error_map().clear()
        else:
            self._error_map().pop(attribute, None)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, attributes: Sequence[str] | None = None) -> bool:
        """Run validation rules; errors are limited to ``attributes`` when given."""
        self.clear_errors()
        wanted = None if attributes is None else set(attributes)

        validator = type(self).__validator__
        if validator is not None:
            data = {
                name: getattr(self, name, None)
                for name in validator.model_fields
            }
            try:
                validator.model_validate(data)
            except ValidationError as exc:
                for err in exc.errors():
                    loc = err.get("loc") or (RECORD_ERROR_KEY,)
                    attribute = str(loc[0])
                    if wanted is not None and attribute not in wanted:
                        continue
                    self.add_error(attribute, err["msg"])

        self.validate_record(attributes)
        return not self.has_errors()

    def validate_record(self, attributes: Sequence[str] | None = None) -> None:
        """Hook for rules a Pydantic model cannot express. Call :meth:`add_error`."""

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def validate_and_save(self, attributes: Sequence[str] | None = None) -> bool:
        if not self.validate(attributes):
            logger.info(
                "Validation failed for %s: %s",
                type(self).__name__,
                self.get_errors(),
            )
            return False
        return self.save_without_validation(attributes)

    def save_without_validation(self, attributes: Sequence[str] | None = None) -> bool:
        """Insert or update the record without running validation.

        For a persisted record, ``attributes`` limits the UPDATE to those
        columns. Changes to any other column are discarded: the attribute
        returns to its stored value, so a later flush or commit of the
        session cannot write it.
        """
        session = self.get_session()
        try:
            if attributes is not None and not self.is_new_record():
                self._update_attributes(session, attributes)
            else:
                with session.begin_nested():
                    session.add(self)
                    session.flush()
        except IntegrityError as exc:
            self.add_error(RECORD_ERROR_KEY, str(exc.orig))
            logger.warning("Integrity error saving %s: %s", type(self).__name__, exc.orig)
            return False

        logger.debug("Saved %s pk=%s", type(self).__name__, self.get_primary_key())
        return True

    def _update_attributes(self, session: Session, attributes: Sequence[str]) -> None:
        # Core UPDATE on a connection-level savepoint: Session.begin_nested()
        # would flush every pending change, not just ``attributes``.
        mapper = sa_inspect(type(self))
        values = self.get_attributes(attributes)
        if values:
            self._execute_update(session, mapper, values)
        self.discard_changes(keep=values.keys())

    def _execute_update(self, session: Session, mapper: Any, values: dict[str, Any]) -> None:
        identity = sa_inspect(self).identity
        stmt = (
            update(mapper.local_table)
            .where(*(column == value for column, value in zip(mapper.primary_key, identity)))
            .values({mapper.get_property(name).columns[0]: value for name, value in values.items()})
        )
        conn = session.connection()
        with conn.begin_nested():
            conn.execute(stmt)
        for name, value in values.items():
            set_committed_value(self, name, value)

    def discard_changes(self, keep: Iterable[str] = ()) -> None:
        """Reset changed column attributes not in ``keep`` to their stored values.

        Only applies to a persistent record; new records have nothing stored.
        """
        state = sa_inspect(self)
        if not state.persistent:
            return
        session = state.session
        skip = set(keep)
        discarded = []
        for name in self.attribute_names():
            if name in skip:
                continue
            history = state.attrs[name].history
            if not history.has_changes():
                continue
            if history.deleted:
                set_committed_value(self, name, history.deleted[0])
            else:
                # Stored value was never loaded
                session.expire(self, [name])
            discarded.append(name)
        if discarded:
            logger.debug("Discarded unsaved changes to %s on %r", discarded, self)

    def delete_record(self) -> bool:
        """Delete the backing row. A record never saved cannot be deleted."""
        state = sa_inspect(self)
        if self.is_new_record() or state.deleted or state.was_deleted:
            return False
        session = self.get_session()
        try:
            with session.begin_nested():
                session.delete(self)
                session.flush()
        except IntegrityError as exc:
            self.add_error(RECORD_ERROR_KEY, str(exc.orig))
            logger.warning("Integrity error deleting %s: %s", type(self).__name__, exc.orig)
            return False

        logger.debug("Deleted %s", type(self).__name__)
        return True

    def refresh(self) -> None:
        """Reload attribute values from the database."""
        self.get_session().refresh(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} pk={self.get_primary_key()!r}>"
