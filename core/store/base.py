"""
Entity store contract.

The store owns persistence only: rows in, rows out. Business rules live in
the services. Rows are plain dicts keyed by column name; services convert
them with Model.model_validate(row).
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

# Tables the CRM persists. Anything else is a programming error.
TABLES = frozenset({
    "members",
    "leads",
    "tasks",
    "deals",
    "activities",
    "notifications",
    "notification_deliveries",
})


def check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown table '{table}'")


def is_multi(value: Any) -> bool:
    """Filter values given as a collection mean IN (...)."""
    return isinstance(value, (list, tuple, set, frozenset))


class EntityStore(ABC):
    """
    Durable record storage for CRM entities.

    Filters (`where`) map column -> value. A collection value matches any of
    its members, None matches NULL, anything else is equality. All criteria
    are ANDed.
    """

    @abstractmethod
    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row (must include 'id') and return it as stored."""

    @abstractmethod
    def get(self, table: str, entity_id: UUID) -> dict[str, Any] | None:
        """Row by id, or None."""

    @abstractmethod
    def find(
        self,
        table: str,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Rows matching all criteria. Empty list if none."""

    @abstractmethod
    def count(self, table: str, where: dict[str, Any] | None = None) -> int:
        """Number of rows matching all criteria."""

    @abstractmethod
    def update(
        self,
        table: str,
        entity_id: UUID,
        changes: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Apply changes to one row, atomically.

        When `expected` is given the write only applies if every expected
        column still holds the given value (compare-and-set).

        Returns:
            Updated row, or None if the row is missing or expectations failed.
        """

    @abstractmethod
    def update_many(self, table: str, where: dict[str, Any], changes: dict[str, Any]) -> int:
        """Apply changes to every matching row in one atomic step. Returns rows changed."""

    @abstractmethod
    def delete(self, table: str, entity_id: UUID) -> bool:
        """Delete by id. True if a row was removed."""

    def find_one(self, table: str, where: dict[str, Any]) -> dict[str, Any] | None:
        """First matching row or None."""
        rows = self.find(table, where, limit=1)
        return rows[0] if rows else None
