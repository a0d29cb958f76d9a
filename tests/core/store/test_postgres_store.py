"""Tests for PostgresStore SQL generation (client mocked)."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.store import PostgresStore


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def pg(client):
    return PostgresStore(client)


def _sql(mock_call) -> str:
    return " ".join(mock_call.args[0].split())


class TestInsert:

    def test_insert_returning(self, pg, client):
        row_id = uuid4()
        client.execute_returning.return_value = [{"id": row_id, "title": "t"}]

        result = pg.insert("tasks", {"id": row_id, "title": "t"})

        assert result == {"id": row_id, "title": "t"}
        call = client.execute_returning.call_args
        assert _sql(call) == "INSERT INTO tasks (id, title) VALUES (%s, %s) RETURNING *"
        assert call.args[1] == (row_id, "t")

    def test_bad_column_rejected(self, pg):
        with pytest.raises(ValueError, match="Invalid column"):
            pg.insert("tasks", {"id": uuid4(), "title; DROP TABLE tasks": "x"})


class TestFind:

    def test_where_order_limit(self, pg, client):
        agency = uuid4()
        client.execute.return_value = []

        pg.find(
            "leads",
            {"agency_id": agency, "status": ["NEW", "LOST"], "assigned_to_id": None},
            order_by="created_at", descending=True, limit=10,
        )

        call = client.execute.call_args
        assert _sql(call) == (
            "SELECT * FROM leads WHERE agency_id = %s AND status IN (%s, %s) "
            "AND assigned_to_id IS NULL ORDER BY created_at DESC LIMIT %s"
        )
        assert call.args[1] == (agency, "NEW", "LOST", 10)

    def test_empty_in_list_matches_nothing(self, pg, client):
        client.execute.return_value = []
        pg.find("leads", {"id": []})
        assert _sql(client.execute.call_args) == "SELECT * FROM leads WHERE FALSE"

    def test_count_defaults_to_zero(self, pg, client):
        client.execute_scalar.return_value = None
        assert pg.count("tasks") == 0


class TestUpdate:

    def test_compare_and_set(self, pg, client):
        row_id = uuid4()
        client.execute_returning.return_value = []

        result = pg.update("tasks", row_id, {"title": "new", "version": 3}, expected={"version": 2})

        assert result is None
        call = client.execute_returning.call_args
        assert _sql(call) == (
            "UPDATE tasks SET title = %s, version = %s WHERE id = %s AND version = %s RETURNING *"
        )
        assert call.args[1] == ("new", 3, row_id, 2)

    def test_update_many_counts_rows(self, pg, client):
        client.execute_returning.return_value = [{"id": uuid4()}, {"id": uuid4()}]
        assert pg.update_many("notifications", {"is_read": False}, {"is_read": True}) == 2

    def test_delete(self, pg, client):
        client.execute_returning.return_value = []
        assert pg.delete("leads", uuid4()) is False
