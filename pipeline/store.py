"""
Async facade over Database.

Every call runs the blocking sqlite round trip in a worker thread via
asyncio.to_thread, so concurrently processed PO groups interleave at each
database read or write.  Database opens a fresh connection per call, which
keeps the worker threads from sharing a connection.
"""
import asyncio
from typing import Any, Iterable, Optional

from .database import Database, InsertResult


class AsyncStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def find_one(self, table: str, **where: Any) -> Optional[dict]:
        return await asyncio.to_thread(self.db.find_one, table, **where)

    async def find_many(self, table: str, column: str, values: Iterable[Any]) -> list[dict]:
        return await asyncio.to_thread(self.db.find_many, table, column, list(values))

    async def insert(self, table: str, values: dict) -> InsertResult:
        return await asyncio.to_thread(self.db.insert, table, values)

    async def update(self, table: str, values: dict, **where: Any) -> Optional[dict]:
        return await asyncio.to_thread(self.db.update, table, values, **where)

    async def select_purchase_orders(self, **filters: Any) -> list[dict]:
        return await asyncio.to_thread(self.db.select_purchase_orders, **filters)
