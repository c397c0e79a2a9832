import math
from datetime import date
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class POLineItem(BaseModel):
    """
    A single PO line item as received in a bulk ingestion payload.

    Incoming JSON uses the upstream export's column names (PONumber, SKUId, …);
    attributes are snake_case.  Items sharing a po_number belong to one PO.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    po_number: str = Field(alias="PONumber", min_length=1)
    sku_id: str = Field(alias="SKUId", min_length=1)
    product_name: str = Field(alias="ProductName")
    ordered_qty: Union[int, float] = Field(alias="OrderedQty")
    city: str = Field(alias="City", min_length=1)
    vendor_name: str = Field(alias="VendorName", min_length=1)
    po_created_date: date = Field(alias="POCreatedDate")     # YYYY-MM-DD

    @field_validator("ordered_qty", mode="before")
    @classmethod
    def _numeric_non_negative(cls, value):
        # Reject strings and booleans, the payload must carry real numbers
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("OrderedQty must be a number")
        if not math.isfinite(value) or value < 0:
            raise ValueError("OrderedQty must be a finite number >= 0")
        return value

    @field_validator("po_created_date", mode="before")
    @classmethod
    def _iso_date_string(cls, value):
        # Integers would otherwise be read as Unix timestamps
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            raise ValueError("POCreatedDate must be an ISO date string (YYYY-MM-DD)")
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"POCreatedDate {value!r} is not an ISO date (YYYY-MM-DD)") from None
