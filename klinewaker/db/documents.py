"""Document collections backed by SQLite.

Each collection is a table of JSON documents keyed by a canonical string
``id``. Queries are plain dicts in the style of NeDB/Mongo::

    {"accountId": "a1"}                              # equality
    {"date": {"$gte": start, "$lte": end}}           # range
    {"status": {"$ne": "Open"}}                      # inequality

and sorting takes a ``(field, 1 | -1)`` pair.
"""

import json
import re
import sqlite3
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional

Document = dict[str, Any]
Query = dict[str, Any]
Sort = tuple[str, int]

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TABLE_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

_OPERATORS = {
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
    "$ne": "!=",
}


class Collection(ABC):
    """Abstract document collection.

    Implementations must return documents with a single canonical ``id``
    field and must never leak their storage-native key.
    """

    @abstractmethod
    def insert(self, doc: Document) -> Document:
        """Insert a document and return it with its ``id``."""
        pass

    @abstractmethod
    def find(self, query: Optional[Query] = None, sort: Optional[Sort] = None) -> list[Document]:
        """Return all documents matching ``query``, optionally sorted."""
        pass

    @abstractmethod
    def find_one(self, query: Query) -> Optional[Document]:
        """Return the first document matching ``query`` or None."""
        pass

    @abstractmethod
    def update(self, query: Query, patch: Document) -> int:
        """Set the fields in ``patch`` on matching documents.

        A ``None`` value removes the field. Returns the number of documents
        modified.
        """
        pass

    @abstractmethod
    def remove(self, query: Query) -> int:
        """Remove matching documents and return how many were removed."""
        pass

    @abstractmethod
    def count(self, query: Optional[Query] = None) -> int:
        """Count matching documents."""
        pass


class SQLiteCollection(Collection):
    """A collection stored as JSON bodies in one SQLite table."""

    def __init__(
        self,
        db_path: Path,
        name: str,
        read_hook: Optional[Callable[[Document], Document]] = None,
    ):
        """Initialize the collection.

        Args:
            db_path: Path to the SQLite database file.
            name: Table name for this collection.
            read_hook: Optional function applied to every document read,
                used to migrate legacy document shapes.
        """
        if not _TABLE_RE.match(name):
            raise ValueError(f"Invalid collection name: {name!r}")
        self.db_path = db_path
        self.name = name
        self._read_hook = read_hook
        self._init_table()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_table(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.name} (
                    id TEXT PRIMARY KEY,
                    body TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    # ==================== Query compilation ====================

    @staticmethod
    def _field_expr(field: str) -> tuple[str, list[Any]]:
        if field == "id":
            return "id", []
        if not _FIELD_RE.match(field):
            raise ValueError(f"Invalid field name: {field!r}")
        return "json_extract(body, ?)", [f"$.{field}"]

    def _compile_where(self, query: Optional[Query]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []

        for field, condition in (query or {}).items():
            expr, expr_params = self._field_expr(field)

            if isinstance(condition, dict):
                for op, value in condition.items():
                    if op not in _OPERATORS:
                        raise ValueError(f"Unsupported query operator: {op}")
                    if op == "$ne":
                        if value is None:
                            clauses.append(f"{expr} IS NOT NULL")
                            params.extend(expr_params)
                        else:
                            clauses.append(f"({expr} IS NULL OR {expr} != ?)")
                            params.extend(expr_params + expr_params + [value])
                    else:
                        clauses.append(f"{expr} {_OPERATORS[op]} ?")
                        params.extend(expr_params + [value])
            elif condition is None:
                clauses.append(f"{expr} IS NULL")
                params.extend(expr_params)
            else:
                clauses.append(f"{expr} = ?")
                params.extend(expr_params + [condition])

        if not clauses:
            return "", []
        return " WHERE " + " AND ".join(clauses), params

    def _to_document(self, row: sqlite3.Row) -> Document:
        doc = json.loads(row["body"])
        # Imported NeDB documents may still carry their native key.
        doc.pop("_id", None)
        doc["id"] = row["id"]
        if self._read_hook is not None:
            doc = self._read_hook(doc)
        return doc

    # ==================== Operations ====================

    def insert(self, doc: Document) -> Document:
        body = {k: v for k, v in doc.items() if k not in ("id", "_id") and v is not None}
        doc_id = doc.get("id") or doc.get("_id") or uuid.uuid4().hex

        conn = self._get_connection()
        try:
            conn.execute(
                f"INSERT INTO {self.name} (id, body) VALUES (?, ?)",
                (doc_id, json.dumps(body)),
            )
            conn.commit()
        finally:
            conn.close()

        return {**body, "id": doc_id}

    def find(self, query: Optional[Query] = None, sort: Optional[Sort] = None) -> list[Document]:
        where, params = self._compile_where(query)
        sql = f"SELECT id, body FROM {self.name}{where}"

        if sort is not None:
            field, direction = sort
            expr, expr_params = self._field_expr(field)
            order = "DESC" if direction < 0 else "ASC"
            sql += f" ORDER BY {expr} {order}, rowid {order}"
            params = params + expr_params
        else:
            sql += " ORDER BY rowid"

        conn = self._get_connection()
        try:
            cursor = conn.execute(sql, params)
            return [self._to_document(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def find_one(self, query: Query) -> Optional[Document]:
        where, params = self._compile_where(query)
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"SELECT id, body FROM {self.name}{where} ORDER BY rowid LIMIT 1",
                params,
            )
            row = cursor.fetchone()
            return self._to_document(row) if row else None
        finally:
            conn.close()

    def update(self, query: Query, patch: Document) -> int:
        where, params = self._compile_where(query)
        conn = self._get_connection()
        try:
            rows = conn.execute(
                f"SELECT id, body FROM {self.name}{where}", params
            ).fetchall()

            for row in rows:
                body = json.loads(row["body"])
                for key, value in patch.items():
                    if key in ("id", "_id"):
                        continue
                    if value is None:
                        body.pop(key, None)
                    else:
                        body[key] = value
                conn.execute(
                    f"UPDATE {self.name} SET body = ? WHERE id = ?",
                    (json.dumps(body), row["id"]),
                )

            conn.commit()
            return len(rows)
        finally:
            conn.close()

    def remove(self, query: Query) -> int:
        where, params = self._compile_where(query)
        conn = self._get_connection()
        try:
            cursor = conn.execute(f"DELETE FROM {self.name}{where}", params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def count(self, query: Optional[Query] = None) -> int:
        where, params = self._compile_where(query)
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"SELECT COUNT(*) AS count FROM {self.name}{where}", params
            )
            return cursor.fetchone()["count"]
        finally:
            conn.close()
