"""
Exception types raised by the ingestion pipeline and query layer.

  InvalidInput           Malformed payload, missing required field or a
                         negative quantity.  Raised before any database call.
  DependencyWriteFailed  A database lookup/insert/update failed while
                         resolving or upserting an entity.  During bulk
                         ingestion this aborts only the enclosing PO group.
  NotFound               A lookup by business key matched nothing.
"""
from typing import Any, Optional


class POIngestError(Exception):
    """Base class for all pipeline errors."""


class InvalidInput(POIngestError):
    pass


class DependencyWriteFailed(POIngestError):
    def __init__(self, entity: str, key: Any, cause: Optional[BaseException | str] = None) -> None:
        self.entity = entity
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{entity} operation failed for {key!r}{detail}")


class NotFound(POIngestError):
    def __init__(self, entity: str, key: Any) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")
