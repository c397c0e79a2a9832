"""
Purchase order and order item upserts.

  upsert_purchase_order  get-or-create by po_number.  An existing PO row is
                         returned untouched: status and dates set at creation
                         are never overwritten by re-ingestion.
  upsert_order_item      keyed by (po_id, sku_id).  Re-ingestion overwrites
                         ordered_quantity only; received_quantity is 0 on
                         creation and otherwise changed only through the
                         explicit received-quantity update.

Database failures raise DependencyWriteFailed and are not retried.
"""
import logging
import sqlite3
from datetime import date
from typing import Union

from models.entities import PurchaseOrder, OrderItem
from .errors import DependencyWriteFailed
from .resolver import get_or_create
from .store import AsyncStore

logger = logging.getLogger(__name__)

DEFAULT_PO_STATUS = "Pending"


class POUpserter:
    def __init__(self, store: AsyncStore) -> None:
        self.store = store

    async def upsert_purchase_order(
        self,
        po_number: str,
        vendor_id: int,
        platform_id: int,
        city: str,
        created_date: Union[date, str],
    ) -> PurchaseOrder:
        if isinstance(created_date, date):
            created_date = created_date.isoformat()
        row = await get_or_create(
            self.store, "purchase_orders", "Purchase order",
            key={"po_number": po_number},
            values={
                "po_number": po_number,
                "vendor_id": vendor_id,
                "platform_id": platform_id,
                "city": city,
                "po_created_date": created_date,
                "status": DEFAULT_PO_STATUS,
            },
        )
        return PurchaseOrder(**row)

    async def upsert_order_item(
        self,
        po_id: int,
        sku_id: str,
        ordered_qty: Union[int, float],
    ) -> OrderItem:
        key = {"po_id": po_id, "sku_id": sku_id}
        label = f"PO#{po_id}/{sku_id}"
        try:
            existing = await self.store.find_one("order_item", **key)
            if existing is None:
                result = await self.store.insert(
                    "order_item",
                    {**key, "ordered_quantity": ordered_qty, "received_quantity": 0},
                )
                if result.inserted:
                    return OrderItem(**result.row)
                if not result.already_exists:
                    raise DependencyWriteFailed("Order item", label, result.error)
                # Created concurrently; fall through to the update path
                existing = await self.store.find_one("order_item", **key)
                if existing is None:
                    raise DependencyWriteFailed(
                        "Order item", label, "insert conflicted but no row was found"
                    )

            updated = await self.store.update(
                "order_item", {"ordered_quantity": ordered_qty}, id=existing["id"]
            )
        except sqlite3.Error as exc:
            raise DependencyWriteFailed("Order item", label, exc) from exc

        if updated is None:
            raise DependencyWriteFailed("Order item", label, "row disappeared during update")
        return OrderItem(**updated)
