"""SQLite data store for K-Line Waker."""

import sqlite3
from pathlib import Path

from klinewaker.db.documents import Document, SQLiteCollection


def normalize_journal_document(doc: Document) -> Document:
    """Migrate legacy journal documents to the list-of-images shape.

    Early journal documents stored a single screenshot under
    ``imageFileName``; current documents use ``imageFileNames``. Readers only
    ever see the list form.
    """
    names = list(doc.get("imageFileNames") or [])
    legacy = doc.pop("imageFileName", None)
    if legacy and legacy not in names:
        names.insert(0, legacy)
    doc["imageFileNames"] = names
    return doc


class DataStore:
    """SQLite-based document store for K-Line Waker."""

    REQUIRED_TABLES = [
        "tasks",
        "journal",
        "instruments",
        "accounts",
        "strategies",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()

        self.tasks = SQLiteCollection(db_path, "tasks")
        self.journal = SQLiteCollection(
            db_path, "journal", read_hook=normalize_journal_document
        )
        self.instruments = SQLiteCollection(db_path, "instruments")
        self.accounts = SQLiteCollection(db_path, "accounts")
        self.strategies = SQLiteCollection(db_path, "strategies")

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with document counts per collection.
        """
        return {name: getattr(self, name).count() for name in self.REQUIRED_TABLES}
