"""
Groups flat PO line items by PO number.

Every record is validated into a POLineItem first; a malformed record
rejects the whole payload with InvalidInput before anything touches the
database.
"""
import logging
from collections.abc import Mapping, Sequence

from pydantic import ValidationError

from models.line_item import POLineItem
from .errors import InvalidInput

logger = logging.getLogger(__name__)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "item"
        parts.append(f"{field}: {err.get('msg')}")
    return "; ".join(parts)


def parse_line_items(items) -> list[POLineItem]:
    """Validate raw records (dicts or POLineItem instances) into POLineItems."""
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise InvalidInput(f"Invalid items array: expected a list, got {type(items).__name__}")

    parsed: list[POLineItem] = []
    for index, raw in enumerate(items):
        if isinstance(raw, POLineItem):
            parsed.append(raw)
            continue
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"Line item {index} is not an object")
        try:
            parsed.append(POLineItem.model_validate(raw))
        except ValidationError as exc:
            raise InvalidInput(f"Line item {index} is invalid: {_describe(exc)}") from exc
    return parsed


def group_by_po_number(items) -> dict[str, list[POLineItem]]:
    """
    Partition line items into {po_number: [items]}.

    Dict insertion order follows the first occurrence of each PO number, and
    items keep their input order within a group.
    """
    groups: dict[str, list[POLineItem]] = {}
    for item in parse_line_items(items):
        groups.setdefault(item.po_number, []).append(item)
    logger.debug("Grouped line items into %d PO(s)", len(groups))
    return groups
