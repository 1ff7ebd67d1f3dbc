from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Any, Iterable, Protocol

logger = logging.getLogger(__name__)


class SqlCursorLike(Protocol):
    def to_array(self) -> list[dict[str, Any]]: ...


class SqlStorageLike(Protocol):
    """What tools need from a session's SQL store."""

    def exec(self, sql: str, *params: Any) -> SqlCursorLike: ...


class SqlCursor:
    """Materialized result of one statement."""

    def __init__(self, rows: Iterable[sqlite3.Row], rowcount: int = -1):
        self._rows = [dict(r) for r in rows]
        self.rowcount = rowcount

    def to_array(self) -> list[dict[str, Any]]:
        return list(self._rows)

    def one(self) -> dict[str, Any] | None:
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self.to_array())

    def __len__(self) -> int:
        return len(self._rows)


class SqliteStorage:
    """Tiny wrapper around a SQLite database scoped to one chat session.

    Statements run one at a time in autocommit mode, so a failed statement never
    leaves a transaction open behind it.
    """

    def __init__(self, path: str = ":memory:"):
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

    def exec(self, sql: str, *params: Any) -> SqlCursor:
        logger.debug("exec: %s", sql)
        with self._lock:
            cur = self._conn.execute(sql, params)
            try:
                rows = cur.fetchall()
                return SqlCursor(rows, rowcount=cur.rowcount)
            finally:
                cur.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SqliteStorage":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
