from .line_item import POLineItem
from .entities import (
    Platform, Vendor, LandingRate, PurchaseOrder, OrderItem,
    OrderItemDetail, PurchaseOrderDetail,
)
from .result import GroupResult, IngestStats, IngestReport

__all__ = [
    "POLineItem",
    "Platform", "Vendor", "LandingRate", "PurchaseOrder", "OrderItem",
    "OrderItemDetail", "PurchaseOrderDetail",
    "GroupResult", "IngestStats", "IngestReport",
]
