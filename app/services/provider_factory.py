from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.seed_example import demo_store
from app.services.inventory_store import InventoryStore
from app.services.memory_inventory_store import MemoryInventoryStore
from app.services.sql_inventory_store import SqlInventoryStore


@lru_cache(maxsize=1)
def get_memory_store() -> MemoryInventoryStore:
    return demo_store()


def get_inventory_store(session_factory: async_sessionmaker[AsyncSession]) -> InventoryStore:
    provider = settings.inventory_store.strip().lower()
    if provider == 'memory':
        return get_memory_store()
    return SqlInventoryStore(session_factory)
