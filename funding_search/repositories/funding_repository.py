"""
Funding data repository.

Encapsulates SQLite operations for the single funding table. Inserts are
committed one row at a time; callers decide what a failed row means.
"""
from __future__ import annotations

import sqlite3
from typing import Any, Sequence

from ..domain import REGISTRY, Record, SchemaRegistry
from ..query import CompiledQuery, compile_insert


def connect(db_path: str) -> sqlite3.Connection:
    """Return a long-lived SQLite connection shared across requests."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
    return conn


class FundingRepository:
    """SQLite access for funding records."""

    def __init__(
        self,
        sqlite_connection: sqlite3.Connection,
        table_name: str,
        registry: SchemaRegistry = REGISTRY,
    ) -> None:
        self._conn = sqlite_connection
        self._table = table_name
        self._registry = registry
        self._insert_sql = compile_insert(table_name=table_name, registry=registry)

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def create_table(self) -> None:
        with self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self._table} ({self._registry.columns_ddl()});"
            )

    def insert_values(self, values: Sequence[Any]) -> None:
        with self._conn:
            self._conn.execute(self._insert_sql, tuple(values))

    def execute_select(self, compiled: CompiledQuery) -> list[Record]:
        cursor = self._conn.execute(compiled.sql, tuple(compiled.parameters))
        columns = [d[0] for d in cursor.description]
        return [
            Record.from_mapping(dict(zip(columns, row)), self._registry)
            for row in cursor.fetchall()
        ]

    def count(self) -> int:
        cursor = self._conn.execute(f"SELECT COUNT(1) FROM {self._table};")
        return int(cursor.fetchone()[0])
