from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List

from .entities import Platform, Vendor, PurchaseOrder, OrderItem


class _CamelModel(BaseModel):
    """Report models serialise with camelCase keys (poNumber, totalPOs, …)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GroupResult(_CamelModel):
    """Outcome of one successfully processed PO group."""
    po_number: str
    platform: Platform
    vendor: Vendor
    purchase_order: PurchaseOrder
    order_items: List[OrderItem] = Field(default_factory=list)


class IngestStats(_CamelModel):
    total_items: int = 0                    # input line items, not groups
    total_pos: int = Field(default=0, alias="totalPOs")
    processed_pos: int = Field(default=0, alias="processedPOs")
    failed_pos: int = Field(default=0, alias="failedPOs")
    processing_time_ms: int = 0

    @property
    def items_per_second(self) -> float:
        if self.processing_time_ms <= 0:
            return float(self.total_items)
        return self.total_items / (self.processing_time_ms / 1000)


class IngestReport(_CamelModel):
    """
    The complete output of one bulk ingestion run.

    success is True only when every PO group was processed.  errors holds one
    "Error processing PO <number>: <message>" entry per failed group.
    """
    success: bool
    message: str
    data: List[GroupResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    stats: IngestStats = Field(default_factory=IngestStats)

    def to_response(self) -> dict:
        """JSON-ready dict with camelCase keys; errors omitted when empty."""
        payload = self.model_dump(mode="json", by_alias=True)
        if not self.errors:
            payload.pop("errors", None)
        return payload
