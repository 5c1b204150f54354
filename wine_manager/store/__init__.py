"""Durable key-value store backing the release catalog."""

from wine_manager.store.models import StoreEntry
from wine_manager.store.service import KeyValueStore

__all__ = ["KeyValueStore", "StoreEntry"]
