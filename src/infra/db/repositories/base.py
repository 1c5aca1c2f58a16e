from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Any


class BaseRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _one(self, sql: str, params: Sequence[Any] | None = None) -> dict | None:
        cur = self.conn.execute(sql, params or [])
        row = cur.fetchone()
        return dict(row) if row is not None else None

    def _all(self, sql: str, params: Sequence[Any] | None = None) -> list[dict]:
        cur = self.conn.execute(sql, params or [])
        return [dict(r) for r in cur.fetchall()]

    def _scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        row = self.conn.execute(sql, params or []).fetchone()
        return row[0] if row is not None else None

    def _write(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        """Execute a single statement and commit; roll back on failure."""
        try:
            cur = self.conn.execute(sql, params or [])
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise
        return cur
