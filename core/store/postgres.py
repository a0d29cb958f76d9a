"""
PostgreSQL entity store.

Builds parameterised SQL over PostgresClient. Table names are checked against
the known set and column names against a strict pattern, so only values ever
travel as parameters.
"""

import logging
import re
from typing import Any
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.store.base import EntityStore, check_table, is_multi

logger = logging.getLogger(__name__)

_COLUMN_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def _column(name: str) -> str:
    if not _COLUMN_RE.match(name):
        raise ValueError(f"Invalid column name '{name}'")
    return name


def _where_clause(where: dict[str, Any] | None) -> tuple[str, list[Any]]:
    if not where:
        return "", []

    parts = []
    params: list[Any] = []
    for column, value in where.items():
        column = _column(column)
        if is_multi(value):
            values = list(value)
            if not values:
                parts.append("FALSE")
                continue
            parts.append(f"{column} IN ({', '.join(['%s'] * len(values))})")
            params.extend(values)
        elif value is None:
            parts.append(f"{column} IS NULL")
        else:
            parts.append(f"{column} = %s")
            params.append(value)

    return " WHERE " + " AND ".join(parts), params


class PostgresStore(EntityStore):
    """Entity store backed by PostgreSQL tables (see schema.sql)."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        check_table(table)
        columns = [_column(c) for c in row]
        return self.postgres.execute_returning(
            f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({', '.join(['%s'] * len(columns))})
            RETURNING *
            """,
            tuple(row.values())
        )[0]

    def get(self, table: str, entity_id: UUID) -> dict[str, Any] | None:
        check_table(table)
        return self.postgres.execute_single(
            f"SELECT * FROM {table} WHERE id = %s",
            (entity_id,)
        )

    def find(
        self,
        table: str,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        check_table(table)
        clause, params = _where_clause(where)
        query = f"SELECT * FROM {table}{clause}"
        if order_by is not None:
            query += f" ORDER BY {_column(order_by)} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        return self.postgres.execute(query, tuple(params))

    def count(self, table: str, where: dict[str, Any] | None = None) -> int:
        check_table(table)
        clause, params = _where_clause(where)
        return self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM {table}{clause}",
            tuple(params)
        ) or 0

    def update(
        self,
        table: str,
        entity_id: UUID,
        changes: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        check_table(table)
        if not changes:
            return self.get(table, entity_id)

        set_parts = [f"{_column(c)} = %s" for c in changes]
        clause, where_params = _where_clause({"id": entity_id, **(expected or {})})

        rows = self.postgres.execute_returning(
            f"""
            UPDATE {table}
            SET {', '.join(set_parts)}
            {clause}
            RETURNING *
            """,
            tuple(changes.values()) + tuple(where_params)
        )
        return rows[0] if rows else None

    def update_many(self, table: str, where: dict[str, Any], changes: dict[str, Any]) -> int:
        check_table(table)
        set_parts = [f"{_column(c)} = %s" for c in changes]
        clause, where_params = _where_clause(where)

        rows = self.postgres.execute_returning(
            f"""
            UPDATE {table}
            SET {', '.join(set_parts)}
            {clause}
            RETURNING id
            """,
            tuple(changes.values()) + tuple(where_params)
        )
        return len(rows)

    def delete(self, table: str, entity_id: UUID) -> bool:
        check_table(table)
        rows = self.postgres.execute_returning(
            f"DELETE FROM {table} WHERE id = %s RETURNING id",
            (entity_id,)
        )
        return bool(rows)
