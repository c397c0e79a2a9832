from .errors import POIngestError, InvalidInput, DependencyWriteFailed, NotFound
from .database import Database, InsertResult
from .store import AsyncStore
from .grouper import group_by_po_number
from .resolver import ReferenceResolver
from .upserter import POUpserter
from .processor import POIngestProcessor
from .queries import POQueryService, POFilters

__all__ = [
    "POIngestError", "InvalidInput", "DependencyWriteFailed", "NotFound",
    "Database", "InsertResult", "AsyncStore",
    "group_by_po_number", "ReferenceResolver", "POUpserter",
    "POIngestProcessor", "POQueryService", "POFilters",
]
