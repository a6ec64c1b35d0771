"""Row store used to persist custom labels.

Only a tiny key/value-row interface is needed by the converter: insert rows,
select rows by equality filter, delete rows by equality filter.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Protocol, Sequence

logger = logging.getLogger(__name__)

# table → allowed columns; table and column names never come from user data
SCHEMA: dict[str, tuple[str, ...]] = {
    "xsubtypes": ("typename", "subtype", "abook_id"),
}


class StoreError(RuntimeError):
    """A row store operation failed."""


class RowStore(Protocol):
    def insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[str]]) -> None: ...

    def get(self, conditions: dict[str, str], columns: Sequence[str], table: str) -> list[dict[str, str]]: ...

    def delete(self, conditions: dict[str, str], table: str) -> int: ...


def _check_columns(table: str, columns: Iterable[str]) -> None:
    known = SCHEMA.get(table)
    if known is None:
        raise StoreError(f"unknown table {table!r}")
    bad = [c for c in columns if c not in known]
    if bad:
        raise StoreError(f"unknown column(s) {', '.join(bad)} in table {table!r}")


class SQLiteRowStore:
    """sqlite3 implementation of the row store."""

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        if db_path != ":memory:":
            db_path = Path(db_path).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._create_default_tables()

    def _create_default_tables(self) -> None:
        self._execute(
            """CREATE TABLE IF NOT EXISTS xsubtypes (
                typename TEXT NOT NULL,
                subtype TEXT NOT NULL,
                abook_id TEXT NOT NULL
            )"""
        )
        logger.debug("made sure xsubtypes table exists in %s", self.db_path)

    def _execute(self, statement: str, params: Sequence = (), many: bool = False) -> list[tuple]:
        try:
            with self.conn:
                if many:
                    cur = self.conn.executemany(statement, params)
                else:
                    cur = self.conn.execute(statement, params)
                return cur.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"database operation failed: {e}") from e

    @staticmethod
    def _where(conditions: dict[str, str]) -> tuple[str, list[str]]:
        if not conditions:
            return "", []
        clause = " AND ".join(f"{col} = ?" for col in conditions)
        return f" WHERE {clause}", list(conditions.values())

    def insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
        _check_columns(table, columns)
        rows = [tuple(r) for r in rows]
        if any(len(r) != len(columns) for r in rows):
            raise StoreError("row length does not match column list")
        placeholders = ", ".join("?" for _ in columns)
        self._execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            rows,
            many=True,
        )

    def get(self, conditions: dict[str, str], columns: Sequence[str], table: str) -> list[dict[str, str]]:
        _check_columns(table, list(columns) + list(conditions))
        where, params = self._where(conditions)
        rows = self._execute(f"SELECT {', '.join(columns)} FROM {table}{where}", params)
        return [dict(zip(columns, row)) for row in rows]

    def delete(self, conditions: dict[str, str], table: str) -> int:
        _check_columns(table, conditions)
        where, params = self._where(conditions)
        try:
            with self.conn:
                cur = self.conn.execute(f"DELETE FROM {table}{where}", params)
                return cur.rowcount
        except sqlite3.Error as e:
            raise StoreError(f"database operation failed: {e}") from e

    def close(self) -> None:
        self.conn.close()
