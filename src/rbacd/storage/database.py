"""
SQLite document store.

Thread-safe storage for users, roles, permissions and templates. Each table
holds an id, system-maintained timestamps and a JSON attribute bag; unique
keys live in expression indexes so the database is the source of truth for
uniqueness.
"""

import json
import re
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from loguru import logger

from ..errors import ConflictError
from .models import Record


USER = "user"
ROLE = "role"
PERMISSION = "permission"
TEMPLATE = "template"

TABLES = (USER, ROLE, PERMISSION, TEMPLATE)

# Unique index name -> (entity, field) for conflict messages
UNIQUE_INDEXES = {
    "idx_user_username": (USER, "username"),
    "idx_user_email": (USER, "email"),
    "idx_role_code": (ROLE, "code"),
    "idx_permission_code": (PERMISSION, "code"),
}

_INDEX_SQL = """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_user_username
        ON "user" (json_extract(data, '$.username'));
    CREATE UNIQUE INDEX IF NOT EXISTS idx_user_email
        ON "user" (json_extract(data, '$.email'))
        WHERE json_extract(data, '$.email') IS NOT NULL;
    CREATE UNIQUE INDEX IF NOT EXISTS idx_role_code
        ON "role" (json_extract(data, '$.code'));
    CREATE INDEX IF NOT EXISTS idx_role_name ON "role" (json_extract(data, '$.name'));
    CREATE INDEX IF NOT EXISTS idx_role_type ON "role" (json_extract(data, '$.type'));
    CREATE UNIQUE INDEX IF NOT EXISTS idx_permission_code
        ON "permission" (json_extract(data, '$.code'));
    CREATE INDEX IF NOT EXISTS idx_permission_name
        ON "permission" (json_extract(data, '$.name'));
    CREATE INDEX IF NOT EXISTS idx_permission_type
        ON "permission" (json_extract(data, '$.type'));
"""

_FIELD_RE = re.compile(r"^[a-z_]+$")
_ORDER_COLUMNS = ("created_at", "updated_at")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _json_path(field: str) -> str:
    # Field names are interpolated into SQL, so only plain identifiers pass
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"json_extract(data, '$.{field}')"


def _table(name: str) -> str:
    if name not in TABLES:
        raise ValueError(f"Unknown table: {name!r}")
    return f'"{name}"'


class Database:
    """
    Thread-safe document database.

    A connection is opened per operation and closed before returning, so no
    connection is ever held between calls. All operations are protected by
    threading.RLock.
    """

    def __init__(self, db_path: Path):
        """
        Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._lock = threading.RLock()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def create_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            for table in TABLES:
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {_table(table)} (
                        id TEXT PRIMARY KEY,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        data TEXT NOT NULL
                    )
                """)
            conn.executescript(_INDEX_SQL)

        logger.info(f"Database schema ready: {self.db_path}")

    # ========================================================================
    # Writes
    # ========================================================================

    def insert(self, table: str, data: Dict[str, Any]) -> Record:
        """
        Insert a new record.

        Args:
            table: Table name
            data: Attribute bag

        Returns:
            Created Record

        Raises:
            ConflictError: If a unique key already exists
        """
        now = _now()
        record = Record(id=str(uuid.uuid4()), created_at=now, updated_at=now, data=dict(data))

        with self._translate_conflicts(table):
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO {_table(table)} (id, created_at, updated_at, data) "
                    "VALUES (?, ?, ?, ?)",
                    (record.id, now.isoformat(), now.isoformat(), json.dumps(record.data)),
                )

        logger.debug(f"Inserted {table} {record.id}")
        return record

    def replace_data(self, table: str, record_id: str, data: Dict[str, Any]) -> bool:
        """
        Overwrite a record's attribute bag and bump updated_at.

        Args:
            table: Table name
            record_id: Record ID
            data: New attribute bag (already merged by the caller)

        Returns:
            True if a row was updated

        Raises:
            ConflictError: If the new bag collides on a unique key
        """
        with self._translate_conflicts(table):
            with self._connect() as conn:
                cursor = conn.execute(
                    f"UPDATE {_table(table)} SET data = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(data), _now().isoformat(), record_id),
                )
                success = cursor.rowcount > 0

        if success:
            logger.debug(f"Updated {table} {record_id}")
        return success

    def delete(self, table: str, record_id: str) -> bool:
        """
        Hard-delete a record.

        Returns:
            True if a row was deleted
        """
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {_table(table)} WHERE id = ?", (record_id,))
            success = cursor.rowcount > 0

        if success:
            logger.debug(f"Deleted {table} {record_id}")
        return success

    def sync_where(
        self,
        table: str,
        field: str,
        value: Any,
        key: str,
        documents: List[Dict[str, Any]],
    ) -> Tuple[int, int, int]:
        """
        Make the records with ``field == value`` match ``documents``, atomically.

        Records are matched on ``key``: matches keep their id and get the new
        bag, unmatched documents are inserted and leftover records deleted.

        Args:
            table: Table name
            field: Attribute selecting the managed records (e.g. "type")
            value: Value of that attribute
            key: Attribute identifying a record across syncs (e.g. "code")
            documents: Desired attribute bags

        Returns:
            (inserted, updated, deleted) counts

        Raises:
            ConflictError: If a document collides with an unmanaged record
        """
        inserted = updated = 0
        now = _now().isoformat()

        with self._translate_conflicts(table):
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT id, {_json_path(key)} AS k FROM {_table(table)} "
                    f"WHERE {_json_path(field)} = ?",
                    (value,),
                ).fetchall()
                existing = {row["k"]: row["id"] for row in rows}

                for document in documents:
                    record_id = existing.pop(document[key], None)
                    if record_id is None:
                        conn.execute(
                            f"INSERT INTO {_table(table)} (id, created_at, updated_at, data) "
                            "VALUES (?, ?, ?, ?)",
                            (str(uuid.uuid4()), now, now, json.dumps(document)),
                        )
                        inserted += 1
                    else:
                        conn.execute(
                            f"UPDATE {_table(table)} SET data = ?, updated_at = ? WHERE id = ?",
                            (json.dumps(document), now, record_id),
                        )
                        updated += 1

                conn.executemany(
                    f"DELETE FROM {_table(table)} WHERE id = ?",
                    [(record_id,) for record_id in existing.values()],
                )

        return inserted, updated, len(existing)

    # ========================================================================
    # Reads
    # ========================================================================

    def get(self, table: str, record_id: str) -> Optional[Record]:
        """
        Get record by ID.

        Returns:
            Record if found, None otherwise
        """
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {_table(table)} WHERE id = ?", (record_id,)
            ).fetchone()

        return self._to_record(row) if row else None

    def find_one(
        self,
        table: str,
        field: str,
        value: Any,
        exclude_id: Optional[str] = None,
    ) -> Optional[Record]:
        """
        Find a record by attribute value.

        Args:
            table: Table name
            field: Attribute name (e.g. "username")
            value: Value to match exactly
            exclude_id: Ignore this record (duplicate checks on update)

        Returns:
            First matching Record, or None
        """
        query = f"SELECT * FROM {_table(table)} WHERE {_json_path(field)} = ?"
        params: List[Any] = [value]
        if exclude_id is not None:
            query += " AND id != ?"
            params.append(exclude_id)

        with self._connect() as conn:
            row = conn.execute(query + " LIMIT 1", params).fetchone()

        return self._to_record(row) if row else None

    def find_by_field_in(self, table: str, field: str, values: Iterable[Any]) -> List[Record]:
        """
        Find all records whose attribute is one of ``values``.

        Values that match nothing are simply absent from the result.
        """
        values = list(values)
        if not values:
            return []

        placeholders = ", ".join("?" for _ in values)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_table(table)} WHERE {_json_path(field)} IN ({placeholders})",
                values,
            ).fetchall()

        return [self._to_record(row) for row in rows]

    def page(
        self,
        table: str,
        page: int,
        page_size: int,
        contains: Optional[Dict[str, str]] = None,
        equals: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        order: str = "desc",
    ) -> Tuple[int, List[Record]]:
        """
        Paginated listing with optional filters.

        Args:
            table: Table name
            page: 1-based page number
            page_size: Records per page
            contains: Case-insensitive substring filters by attribute
            equals: Exact-match filters by attribute
            order_by: "created_at" or "updated_at"
            order: "asc" or "desc"

        Returns:
            (total matching records, records on this page)
        """
        if order_by not in _ORDER_COLUMNS:
            raise ValueError(f"Invalid order column: {order_by!r}")
        direction = "ASC" if order.lower() == "asc" else "DESC"

        where = ["1=1"]
        params: List[Any] = []
        for field, value in (contains or {}).items():
            if value:
                where.append(f"{_json_path(field)} LIKE ?")
                params.append(f"%{value}%")
        for field, value in (equals or {}).items():
            if value is not None:
                where.append(f"{_json_path(field)} = ?")
                params.append(value)
        clause = " AND ".join(where)

        with self._connect() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM {_table(table)} WHERE {clause}", params
            ).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM {_table(table)} WHERE {clause} "
                f"ORDER BY {order_by} {direction}, rowid {direction} LIMIT ? OFFSET ?",
                params + [page_size, (page - 1) * page_size],
            ).fetchall()

        return total, [self._to_record(row) for row in rows]

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _to_record(row: sqlite3.Row) -> Record:
        return Record(
            id=row["id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            data=json.loads(row["data"]),
        )

    @contextmanager
    def _translate_conflicts(self, table: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as e:
            for index, (entity, field) in UNIQUE_INDEXES.items():
                if index in str(e):
                    logger.info(f"Unique constraint rejected {entity}.{field}")
                    raise ConflictError(entity, field) from e
            raise
