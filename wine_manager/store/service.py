"""Key-value store service.

Provides has/get/set/delete over one named collection. Every call runs in its
own transaction so a write is visible to the next read in the process.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from wine_manager.db import get_session
from wine_manager.store.models import StoreEntry

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Durable mapping of names to JSON values within a collection."""

    def __init__(self, collection: str, session_factory: sessionmaker[Session]) -> None:
        """Initialize KeyValueStore.

        Args:
            collection: Collection name scoping every key.
            session_factory: SQLAlchemy session factory.
        """
        self.collection = collection
        self._session_factory = session_factory

    def _get_entry(self, session: Session, name: str) -> StoreEntry | None:
        stmt = select(StoreEntry).where(
            StoreEntry.collection == self.collection,
            StoreEntry.name == name,
        )
        return session.execute(stmt).scalars().first()

    def has(self, name: str) -> bool:
        """Return True if an entry named ``name`` exists."""
        with get_session(self._session_factory) as session:
            return self._get_entry(session, name) is not None

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value stored under ``name``, or ``default``."""
        with get_session(self._session_factory) as session:
            entry = self._get_entry(session, name)
            if entry is None:
                return default
            return entry.value

    def set(self, name: str, value: Any) -> None:
        """Store ``value`` under ``name``, replacing any previous value."""
        with get_session(self._session_factory) as session:
            entry = self._get_entry(session, name)
            if entry is None:
                session.add(
                    StoreEntry(collection=self.collection, name=name, value=value)
                )
            else:
                entry.value = value
        logger.debug("Stored %s/%s", self.collection, name)

    def delete(self, name: str) -> None:
        """Remove the entry named ``name``; no-op if absent."""
        with get_session(self._session_factory) as session:
            session.execute(
                delete(StoreEntry).where(
                    StoreEntry.collection == self.collection,
                    StoreEntry.name == name,
                )
            )
        logger.debug("Deleted %s/%s", self.collection, name)


__all__ = ["KeyValueStore"]
