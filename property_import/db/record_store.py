from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from typing import Any, Protocol

import psycopg2
import psycopg2.extras

"""Record store adapters.

The orchestrator only needs ``create``; ``find_unique`` / ``update`` /
``delete`` complete the interface for callers that read records back.

- InMemoryRecordStore: dict backed ("mock" mode, tests)
- PostgresRecordStore: one INSERT ... RETURNING id per record on a psycopg2
  cursor. The connection is expected to run in autocommit mode so that a
  failing record does not poison the next insert.
"""

__all__ = [
    "RecordStoreError",
    "RecordStore",
    "InMemoryRecordStore",
    "PostgresRecordStore",
]


class RecordStoreError(Exception):
    pass


class RecordStore(Protocol):
    def create(self, record: Mapping[str, Any]) -> str: ...

    def find_unique(self, record_id: str) -> dict[str, Any] | None: ...

    def update(self, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any]: ...

    def delete(self, record_id: str) -> None: ...


class InMemoryRecordStore:
    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def create(self, record: Mapping[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        stored = copy.deepcopy(dict(record))
        stored["id"] = record_id
        self._records[record_id] = stored
        return record_id

    def find_unique(self, record_id: str) -> dict[str, Any] | None:
        found = self._records.get(record_id)
        return copy.deepcopy(found) if found is not None else None

    def update(self, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        if record_id not in self._records:
            raise RecordStoreError(f"record not found: {record_id}")
        self._records[record_id].update(copy.deepcopy(dict(changes)))
        return copy.deepcopy(self._records[record_id])

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise RecordStoreError(f"record not found: {record_id}")


def _adapt(value: Any) -> Any:
    # list[str] は psycopg2 が ARRAY に変換する。dict のみ JSON 化
    if isinstance(value, dict):
        return psycopg2.extras.Json(value)
    return value


class PostgresRecordStore:
    """Record store over a psycopg2 cursor (table name sanitized by config schema)."""

    def __init__(self, cursor: Any, table: str = "properties") -> None:
        self.cursor = cursor
        self.table = table

    def _row_to_dict(self, row: tuple[Any, ...] | None) -> dict[str, Any] | None:
        if row is None:
            return None
        names = [d[0] for d in self.cursor.description]
        return dict(zip(names, row, strict=False))

    def create(self, record: Mapping[str, Any]) -> str:
        columns = list(record.keys())
        cols_sql = ",".join(f'"{c}"' for c in columns)
        placeholders = ",".join(["%s"] * len(columns))
        sql = f"INSERT INTO {self.table} ({cols_sql}) VALUES ({placeholders}) RETURNING id"
        try:
            self.cursor.execute(sql, [_adapt(record[c]) for c in columns])
            row = self.cursor.fetchone()
        except psycopg2.Error as e:
            raise RecordStoreError(str(e).strip()) from e
        if row is None:
            raise RecordStoreError(f"INSERT into {self.table} returned no id")
        return str(row[0])

    def find_unique(self, record_id: str) -> dict[str, Any] | None:
        try:
            self.cursor.execute(f"SELECT * FROM {self.table} WHERE id = %s", (record_id,))
            return self._row_to_dict(self.cursor.fetchone())
        except psycopg2.Error as e:
            raise RecordStoreError(str(e).strip()) from e

    def update(self, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        columns = list(changes.keys())
        if not columns:
            found = self.find_unique(record_id)
            if found is None:
                raise RecordStoreError(f"record not found: {record_id}")
            return found
        set_sql = ",".join(f'"{c}" = %s' for c in columns)
        sql = f"UPDATE {self.table} SET {set_sql} WHERE id = %s RETURNING *"
        try:
            self.cursor.execute(sql, [_adapt(changes[c]) for c in columns] + [record_id])
            updated = self._row_to_dict(self.cursor.fetchone())
        except psycopg2.Error as e:
            raise RecordStoreError(str(e).strip()) from e
        if updated is None:
            raise RecordStoreError(f"record not found: {record_id}")
        return updated

    def delete(self, record_id: str) -> None:
        try:
            self.cursor.execute(f"DELETE FROM {self.table} WHERE id = %s", (record_id,))
        except psycopg2.Error as e:
            raise RecordStoreError(str(e).strip()) from e
        if self.cursor.rowcount == 0:
            raise RecordStoreError(f"record not found: {record_id}")
