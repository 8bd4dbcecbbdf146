"""Persistence for K-Line Waker: document collections and image files."""

from klinewaker.db.documents import Collection, SQLiteCollection
from klinewaker.db.images import ImageStore
from klinewaker.db.store import DataStore

__all__ = ["Collection", "SQLiteCollection", "DataStore", "ImageStore"]
