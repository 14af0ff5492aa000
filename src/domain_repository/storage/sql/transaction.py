"""Transaction boundary over a SQLAlchemy session.

``begin`` opens a real transaction when the session has none, otherwise a
SAVEPOINT, so a repository save nests correctly inside a caller's unit of
work. Every ``begin`` must be matched by exactly one ``commit`` or
``rollback``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Union

from sqlalchemy.orm import Session, SessionTransaction

from domain_repository.core.errors import TransactionError

from . import connection

logger = logging.getLogger(__name__)

SessionSource = Union[Session, Callable[[], Session], None]


class TransactionManager:
    """Stack of open transactions on one session."""

    def __init__(self, session: SessionSource = None) -> None:
        self._session_source = session
        self._stack: list[SessionTransaction] = []

    @property
    def session(self) -> Session:
        source = self._session_source
        if source is None:
            return connection.current_session()
        if isinstance(source, Session):
            return source
        return source()

    @property
    def is_active(self) -> bool:
        return bool(self._stack)

    @property
    def level(self) -> int:
        return len(self._stack)

    def begin(self) -> None:
        session = self.session
        if session.in_transaction():
            tx = session.begin_nested()
            logger.debug("Began savepoint (level=%d)", len(self._stack) + 1)
        else:
            tx = session.begin()
            logger.debug("Began transaction")
        self._stack.append(tx)

    def commit(self) -> None:
        tx = self._pop("commit")
        try:
            tx.commit()
        except Exception:
            if tx.is_active:
                tx.rollback()
            raise
        logger.debug("Committed (level=%d)", len(self._stack) + 1)

    def rollback(self) -> None:
        tx = self._pop("rollback")
        if tx.is_active:
            tx.rollback()
        logger.debug("Rolled back (level=%d)", len(self._stack) + 1)

    def _pop(self, action: str) -> SessionTransaction:
        if not self._stack:
            raise TransactionError(f"Cannot {action}: no active transaction")
        return self._stack.pop()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in a transaction, committing on success and rolling back on error."""
        self.begin()
        try:
            yield self.session
        except Exception:
            self.rollback()
            raise
        self.commit()
