"""
Pydantic models for API request bodies.
"""
from pydantic import BaseModel, Field
from typing import Any, List, Optional, Union


class POEnvelope(BaseModel):
    data: List[Any]     # raw line items, validated by the grouper


class ProcessPORequest(BaseModel):
    pos: POEnvelope
    platform: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None   # e.g. Pending | Received | Cancelled


class ReceivedQtyUpdate(BaseModel):
    received_qty: Optional[Union[int, float]] = Field(default=None, alias="receivedQty")
