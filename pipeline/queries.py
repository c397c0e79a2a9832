"""
Read-back and update operations over the materialised PO schema.

POQueryService returns purchase orders in the nested read-back shape
(PurchaseOrderDetail): vendor, platform and order items attached, each order
item carrying its landing rate.
"""
import logging
import math
import sqlite3
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from models.entities import (
    LandingRate, OrderItem, OrderItemDetail, Platform, PurchaseOrder,
    PurchaseOrderDetail, Vendor,
)
from .errors import DependencyWriteFailed, InvalidInput, NotFound
from .store import AsyncStore

logger = logging.getLogger(__name__)


@dataclass
class POFilters:
    """Conjunctive filters for list_pos(); None imposes no constraint."""
    city: Optional[str] = None
    status: Optional[str] = None
    from_date: Optional[str] = None         # inclusive, YYYY-MM-DD
    to_date: Optional[str] = None           # inclusive, YYYY-MM-DD
    vendor_name: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("from_date", "to_date"):
            value = getattr(self, name)
            if not value:
                setattr(self, name, None)
                continue
            try:
                setattr(self, name, date.fromisoformat(value).isoformat())
            except (TypeError, ValueError) as exc:
                raise InvalidInput(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


class POQueryService:
    def __init__(self, store: AsyncStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_po_number(self, po_number: str) -> PurchaseOrderDetail:
        try:
            row = await self.store.find_one("purchase_orders", po_number=po_number)
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Purchase order", po_number, exc) from exc
        if row is None:
            raise NotFound("Purchase order", po_number)
        details = await self._attach_details([row])
        return details[0]

    async def list_pos(self, filters: Optional[POFilters] = None) -> list[PurchaseOrderDetail]:
        filters = filters or POFilters()
        try:
            rows = await self.store.select_purchase_orders(
                city=filters.city or None,
                status=filters.status or None,
                from_date=filters.from_date,
                to_date=filters.to_date,
                vendor_name=filters.vendor_name or None,
            )
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Purchase order", "list", exc) from exc
        logger.debug("list_pos matched %d PO(s) for %s", len(rows), filters)
        return await self._attach_details(rows)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_status(self, po_number: str, status: str) -> PurchaseOrder:
        if not isinstance(status, str) or not status.strip():
            raise InvalidInput("Status is required")
        try:
            row = await self.store.update(
                "purchase_orders", {"status": status.strip()}, po_number=po_number
            )
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Purchase order", po_number, exc) from exc
        if row is None:
            raise NotFound("Purchase order", po_number)
        logger.info("PO %s status set to %r", po_number, row["status"])
        return PurchaseOrder(**row)

    async def update_received_quantity(
        self,
        po_number: str,
        sku_id: str,
        qty: Union[int, float],
    ) -> OrderItem:
        if (
            isinstance(qty, bool)
            or not isinstance(qty, (int, float))
            or not math.isfinite(qty)
            or qty < 0
        ):
            raise InvalidInput("Valid receivedQty is required (a number >= 0)")
        try:
            po = await self.store.find_one("purchase_orders", po_number=po_number)
            if po is None:
                raise NotFound("Purchase order", po_number)
            row = await self.store.update(
                "order_item", {"received_quantity": qty}, po_id=po["id"], sku_id=sku_id
            )
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Order item", f"{po_number}/{sku_id}", exc) from exc
        if row is None:
            raise NotFound("Order item", f"{po_number}/{sku_id}")
        logger.info("PO %s item %s received_quantity=%s", po_number, sku_id, qty)
        return OrderItem(**row)

    # ------------------------------------------------------------------
    # Nesting
    # ------------------------------------------------------------------

    async def _attach_details(self, po_rows: list[dict]) -> list[PurchaseOrderDetail]:
        if not po_rows:
            return []
        try:
            vendors = await self.store.find_many("vendors", "id", (r["vendor_id"] for r in po_rows))
            platforms = await self.store.find_many("platform", "id", (r["platform_id"] for r in po_rows))
            items = await self.store.find_many("order_item", "po_id", (r["id"] for r in po_rows))
            rates = await self.store.find_many("landing_rate", "sku_id", (i["sku_id"] for i in items))
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Purchase order", "details", exc) from exc

        vendors_by_id = {v["id"]: Vendor(**v) for v in vendors}
        platforms_by_id = {p["id"]: Platform(**p) for p in platforms}
        rates_by_sku = {r["sku_id"]: LandingRate(**r) for r in rates}
        items_by_po: dict[int, list[OrderItemDetail]] = {}
        for item in items:
            items_by_po.setdefault(item["po_id"], []).append(
                OrderItemDetail(**item, landing_rate=rates_by_sku.get(item["sku_id"]))
            )

        return [
            PurchaseOrderDetail(
                **row,
                vendor=vendors_by_id.get(row["vendor_id"]),
                platform=platforms_by_id.get(row["platform_id"]),
                order_items=items_by_po.get(row["id"], []),
            )
            for row in po_rows
        ]
