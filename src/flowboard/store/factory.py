"""Pick the storage backend named in settings."""

from __future__ import annotations

from flowboard.config import Settings, StoreBackend
from flowboard.store.base import AdminStore
from flowboard.store.memory import InMemoryAdminStore


def make_store(cfg: Settings) -> AdminStore:
    if cfg.store_backend == StoreBackend.MEMORY:
        return InMemoryAdminStore()
    from flowboard.store.postgres import PostgresAdminStore

    return PostgresAdminStore()
