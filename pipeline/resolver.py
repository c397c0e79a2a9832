"""
Reference-entity resolution (platform, vendor, SKU landing rate).

ReferenceResolver implements get-or-create for the three reference tables:

  1. Check the in-memory memo for the natural key
  2. Look the key up in the database
  3. Insert the row if it is missing

The memo lives on the resolver instance, and a new resolver is created for
every ingestion run, so reference data that changed between runs is always
re-read from the database.

Concurrent PO groups asking for the same key share one in-flight resolution
(one database creation attempt per key per run).  A concurrent writer outside
this run can still win the insert; the database then reports ALREADY_EXISTS
and the resolver re-queries once and adopts the surviving row.
"""
import asyncio
import logging
import sqlite3
from datetime import date
from typing import Any, Awaitable, Callable, Hashable

from models.entities import Platform, Vendor, LandingRate
from .errors import DependencyWriteFailed
from .store import AsyncStore

logger = logging.getLogger(__name__)


async def get_or_create(
    store: AsyncStore,
    table: str,
    entity: str,
    key: dict[str, Any],
    values: dict[str, Any],
) -> dict:
    """
    Return the row of *table* matching *key*, inserting *values* if absent.

    Raises DependencyWriteFailed on any database error, or when an insert
    conflict is reported but the conflicting row cannot be re-read.
    """
    label = key if len(key) > 1 else next(iter(key.values()))
    try:
        existing = await store.find_one(table, **key)
        if existing is not None:
            return existing

        result = await store.insert(table, values)
        if result.inserted:
            logger.debug("Created %s %r (id=%s)", entity, label, result.row["id"])
            return result.row

        if result.already_exists:
            logger.debug("%s %r created concurrently, re-reading", entity, label)
            existing = await store.find_one(table, **key)
            if existing is not None:
                return existing
            raise DependencyWriteFailed(entity, label, "insert conflicted but no row was found")

        raise DependencyWriteFailed(entity, label, result.error)
    except sqlite3.Error as exc:
        raise DependencyWriteFailed(entity, label, exc) from exc


class ReferenceResolver:
    """Per-run get-or-create resolver with memoised lookups."""

    def __init__(self, store: AsyncStore) -> None:
        self.store = store
        self._platforms: dict[str, Platform] = {}
        self._vendors: dict[tuple[str, str], Vendor] = {}
        self._skus: dict[str, LandingRate] = {}
        self._in_flight: dict[tuple[str, Hashable], asyncio.Future] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve_platform(self, name: str, description: str | None = None) -> Platform:
        async def load() -> Platform:
            row = await get_or_create(
                self.store, "platform", "Platform",
                key={"name": name},
                values={"name": name, "description": description or f"Platform for {name}"},
            )
            return Platform(**row)

        return await self._memoised("platform", name, self._platforms, load)

    async def resolve_vendor(self, name: str, city: str, platform_id: int | None = None) -> Vendor:
        async def load() -> Vendor:
            row = await get_or_create(
                self.store, "vendors", "Vendor",
                key={"name": name},
                values={"name": name, "city": city, "platform_id": platform_id},
            )
            return Vendor(**row)

        return await self._memoised("vendor", (name, city), self._vendors, load)

    async def resolve_sku(self, platform_id: int, sku_id: str, product_name: str) -> LandingRate:
        async def load() -> LandingRate:
            row = await get_or_create(
                self.store, "landing_rate", "Landing rate",
                key={"sku_id": sku_id},
                values={
                    "platform_id": platform_id,
                    "sku_id": sku_id,
                    "product_name": product_name,
                    "mrp": 0,
                    "billing_value_per_qty": 0,
                    "effective_date": date.today().isoformat(),
                },
            )
            return LandingRate(**row)

        return await self._memoised("sku", sku_id, self._skus, load)

    @property
    def memo_sizes(self) -> dict[str, int]:
        return {
            "platforms": len(self._platforms),
            "vendors":   len(self._vendors),
            "skus":      len(self._skus),
        }

    # ------------------------------------------------------------------
    # Memo
    # ------------------------------------------------------------------

    async def _memoised(self, kind: str, key: Hashable, cache: dict, load: Callable[[], Awaitable]):
        if key in cache:
            return cache[key]

        flight_key = (kind, key)
        pending = self._in_flight.get(flight_key)
        if pending is None:
            pending = asyncio.ensure_future(load())
            self._in_flight[flight_key] = pending
            pending.add_done_callback(lambda _: self._in_flight.pop(flight_key, None))

        value = await asyncio.shield(pending)
        # Only successful resolutions are memoised; a failure leaves the key
        # unresolved so a later caller queries the database again.
        cache[key] = value
        return value
