"""Entity store implementations."""

from core.store.base import EntityStore, TABLES
from core.store.memory import MemoryStore
from core.store.postgres import PostgresStore
