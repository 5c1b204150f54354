"""StoreEntry ORM model.

Each row holds one named JSON value inside a collection, mirroring a small
file-per-collection key-value store.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from wine_manager.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreEntry(Base):
    """ORM model for a single key-value entry.

    Attributes:
        id: Primary key.
        collection: Name of the collection the entry belongs to.
        name: Key of the entry, unique within its collection.
        value: JSON-serialisable value.
        updated_at: Timestamp of the last write.
    """

    __tablename__ = "store_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_store_entries_collection_name", "collection", "name", unique=True),
    )

    def __repr__(self) -> str:
        """Return string representation of StoreEntry."""
        return f"<StoreEntry(collection='{self.collection}', name='{self.name}')>"


__all__ = ["StoreEntry"]
