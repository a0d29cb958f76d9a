"""
In-process entity store.

Backs local runs and the test suite. A single lock serialises every write,
so compare-and-set updates and update_many are atomic with respect to each
other, matching what PostgresStore gets from single statements.
"""

import copy
import itertools
import threading
from enum import Enum
from typing import Any
from uuid import UUID

from core.store.base import EntityStore, TABLES, check_table, is_multi


def _plain(value: Any) -> Any:
    """Store enum members by value, as the PostgreSQL client does."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return type(value)(_plain(v) for v in value)
    return copy.deepcopy(value)


def _plain_row(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {k: _plain(v) for k, v in row.items()}


def _matches(row: dict[str, Any], where: dict[str, Any] | None) -> bool:
    if not where:
        return True
    for column, wanted in where.items():
        value = row.get(column)
        if is_multi(wanted):
            if value not in wanted:
                return False
        elif value != wanted:
            return False
    return True


class MemoryStore(EntityStore):
    """Dict-of-dicts store keyed by table then id."""

    def __init__(self):
        self._tables: dict[str, dict[UUID, dict[str, Any]]] = {t: {} for t in TABLES}
        # Insertion sequence breaks ordering ties deterministically
        self._sequence: dict[UUID, int] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        check_table(table)
        entity_id = row["id"]
        with self._lock:
            if entity_id in self._tables[table]:
                raise ValueError(f"Duplicate id {entity_id} in {table}")
            self._tables[table][entity_id] = _plain_row(row)
            self._sequence[entity_id] = next(self._counter)
            return copy.deepcopy(self._tables[table][entity_id])

    def get(self, table: str, entity_id: UUID) -> dict[str, Any] | None:
        check_table(table)
        with self._lock:
            row = self._tables[table].get(entity_id)
            return copy.deepcopy(row) if row is not None else None

    def find(
        self,
        table: str,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        check_table(table)
        with self._lock:
            rows = [r for r in self._tables[table].values() if _matches(r, _plain_row(where))]
            rows.sort(key=lambda r: self._sequence[r["id"]], reverse=descending)
            if order_by is not None:
                rows.sort(
                    key=lambda r: (r.get(order_by) is None, r.get(order_by)),
                    reverse=descending,
                )
            if limit is not None:
                rows = rows[:limit]
            return copy.deepcopy(rows)

    def count(self, table: str, where: dict[str, Any] | None = None) -> int:
        check_table(table)
        with self._lock:
            return sum(1 for r in self._tables[table].values() if _matches(r, _plain_row(where)))

    def update(
        self,
        table: str,
        entity_id: UUID,
        changes: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        check_table(table)
        with self._lock:
            row = self._tables[table].get(entity_id)
            if row is None or not _matches(row, _plain_row(expected)):
                return None
            row.update(_plain_row(changes))
            return copy.deepcopy(row)

    def update_many(self, table: str, where: dict[str, Any], changes: dict[str, Any]) -> int:
        check_table(table)
        with self._lock:
            matched = [r for r in self._tables[table].values() if _matches(r, _plain_row(where))]
            for row in matched:
                row.update(_plain_row(changes))
            return len(matched)

    def delete(self, table: str, entity_id: UUID) -> bool:
        check_table(table)
        with self._lock:
            removed = self._tables[table].pop(entity_id, None)
            self._sequence.pop(entity_id, None)
            return removed is not None
