"""
PostgreSQL client with connection pooling.

Uses psycopg2 with ThreadedConnectionPool. Tenant isolation is explicit: the
CRM services filter every query by agency_id, which lets the reminder scanner
read across agencies with the same client.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None


def to_db_value(value: Any) -> Any:
    """Enum members go in by value, UUIDs as text; containers are walked."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [to_db_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(to_db_value(v) for v in value)
    if isinstance(value, dict):
        return {k: to_db_value(v) for k, v in value.items()}
    return value


class PostgresClient:
    """
    PostgreSQL client returning rows as dicts.

    Usage:
        db = PostgresClient(database_url)
        leads = db.execute("SELECT * FROM leads WHERE agency_id = %s", (agency_id,))
    """

    # Pools are keyed by URL so the API and scanner share one per database
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                # UUID columns come back as uuid.UUID
                psycopg2.extras.register_uuid()
                self._connection_pools[self._database_url] = pool
                logger.info(
                    f"Connection pool created ({self._min_connections}-{self._max_connections} connections)"
                )
            return pool

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; rolls back on error."""
        pool = self._ensure_connection_pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _run(self, query: str, params: Params, fetch_rows: bool) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, to_db_value(params))
                rows = []
                if fetch_rows and cur.description:
                    rows = [dict(row) for row in cur.fetchall()]
                conn.commit()
                return rows

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        return self._run(query, params, fetch_rows=True)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        """Execute query, return first value of first row or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE/DELETE ... RETURNING and return the affected rows."""
        return self._run(query, params, fetch_rows=True)

    def close(self) -> None:
        """Close this URL's connection pool."""
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()

    @classmethod
    def close_all_pools(cls) -> None:
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
