from pydantic import BaseModel, Field
from typing import Optional, List, Union


class Platform(BaseModel):
    """A sales platform (marketplace) that issues purchase orders."""
    id: int
    name: str
    description: Optional[str] = None


class Vendor(BaseModel):
    """
    A vendor (supplier) named on purchase orders.
    name is unique; city/platform_id record where it was first observed.
    """
    id: int
    name: str
    city: Optional[str] = None
    contact_info: Optional[str] = None
    group_id: Optional[int] = None
    platform_id: Optional[int] = None


class LandingRate(BaseModel):
    """SKU reference entry with pricing metadata, keyed by sku_id."""
    id: int
    platform_id: int
    sku_id: str
    product_name: str
    mrp: float = 0
    billing_value_per_qty: float = 0
    cases: Optional[int] = None
    effective_date: Optional[str] = None    # YYYY-MM-DD


class PurchaseOrder(BaseModel):
    """A purchase order header row, keyed by po_number."""
    id: int
    po_number: str
    vendor_id: int
    platform_id: int
    city: str
    po_created_date: str                    # YYYY-MM-DD
    status: str = "Pending"
    created_at: Optional[str] = None


class OrderItem(BaseModel):
    """One SKU line on a purchase order, unique per (po_id, sku_id)."""
    id: int
    po_id: int
    sku_id: str
    ordered_quantity: Union[int, float]
    received_quantity: Union[int, float] = 0


class OrderItemDetail(OrderItem):
    """Order item with its landing rate row attached (read-back shape)."""
    landing_rate: Optional[LandingRate] = None


class PurchaseOrderDetail(PurchaseOrder):
    """Purchase order with vendor, platform and items nested (read-back shape)."""
    vendor: Optional[Vendor] = None
    platform: Optional[Platform] = None
    order_items: List[OrderItemDetail] = Field(default_factory=list)
