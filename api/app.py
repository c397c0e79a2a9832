"""
PO Ingest Service — FastAPI backend.

Endpoints
---------
  POST  /process-po                          → bulk-ingest PO line items
  GET   /po/{po_number}                      → one PO with vendor, platform, items
  GET   /pos                                 → list POs (?vendorName ?city ?status
                                               ?fromDate ?toDate)
  PATCH /po/{po_number}/status               → set PO status
  PATCH /po/{po_number}/item/{sku_id}/received → set received quantity
  GET   /health                              → liveness probe

Error responses share one envelope: {success: false, message, error}.
400 for invalid input, 404 for unknown PO / item, 500 for database failures.
A bulk ingestion with some failed POs still returns 200 with success=false.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Config
from pipeline.database import Database
from pipeline.errors import DependencyWriteFailed, InvalidInput, NotFound, POIngestError
from pipeline.processor import POIngestProcessor
from pipeline.queries import POFilters, POQueryService
from pipeline.store import AsyncStore
from .models import ProcessPORequest, ReceivedQtyUpdate, StatusUpdate

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, error: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": str(error)},
    )


# ---------------------------------------------------------------------------
# Dependencies (database is opened lazily on the first request)
# ---------------------------------------------------------------------------

def get_store(request: Request) -> AsyncStore:
    state = request.app.state
    if state.store is None:
        state.config.ensure_output_dir()
        state.store = AsyncStore(Database(state.config.db_path))
    return state.store


def get_processor(request: Request, store: AsyncStore = Depends(get_store)) -> POIngestProcessor:
    return POIngestProcessor(request.app.state.config, store=store)


def get_queries(store: AsyncStore = Depends(get_store)) -> POQueryService:
    return POQueryService(store)


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(config: Optional[Config] = None) -> FastAPI:
    app = FastAPI(title="PO Ingest Service", docs_url=None, redoc_url=None)
    app.state.config = config or Config()
    app.state.store = None

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, "Invalid request", details)

    @app.exception_handler(InvalidInput)
    async def _invalid_input(request: Request, exc: InvalidInput):
        return _error(400, str(exc), exc)

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return _error(404, str(exc), exc)

    @app.exception_handler(POIngestError)
    async def _pipeline_error(request: Request, exc: POIngestError):
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
        return _error(500, "Request failed", exc)

    # ── Routes ──────────────────────────────────────────────────────────────

    @app.post("/process-po")
    async def process_po(
        body: ProcessPORequest,
        processor: POIngestProcessor = Depends(get_processor),
    ):
        logger.info(
            "Received %d line item(s) for platform %r", len(body.pos.data), body.platform
        )
        try:
            report = await processor.process(body.pos.data, body.platform)
        except DependencyWriteFailed as exc:
            logger.error("Error processing PO data: %s", exc)
            return _error(500, "Failed to process PO data", exc)
        return report.to_response()

    @app.get("/po/{po_number}")
    async def get_po(po_number: str, queries: POQueryService = Depends(get_queries)):
        po = await queries.get_by_po_number(po_number)
        return {"success": True, "data": po.model_dump(mode="json")}

    @app.get("/pos")
    async def list_pos(
        vendor_name: Optional[str] = Query(default=None, alias="vendorName"),
        city: Optional[str] = Query(default=None),
        status: Optional[str] = Query(default=None),
        from_date: Optional[str] = Query(default=None, alias="fromDate"),
        to_date: Optional[str] = Query(default=None, alias="toDate"),
        queries: POQueryService = Depends(get_queries),
    ):
        filters = POFilters(
            city=city, status=status, from_date=from_date, to_date=to_date,
            vendor_name=vendor_name,
        )
        pos = await queries.list_pos(filters)
        return {
            "success": True,
            "data": [po.model_dump(mode="json") for po in pos],
            "count": len(pos),
        }

    @app.patch("/po/{po_number}/status")
    async def update_status(
        po_number: str,
        body: StatusUpdate,
        queries: POQueryService = Depends(get_queries),
    ):
        po = await queries.update_status(po_number, body.status)
        return {
            "success": True,
            "message": "Purchase order status updated successfully",
            "data": po.model_dump(mode="json"),
        }

    @app.patch("/po/{po_number}/item/{sku_id}/received")
    async def update_received(
        po_number: str,
        sku_id: str,
        body: ReceivedQtyUpdate,
        queries: POQueryService = Depends(get_queries),
    ):
        item = await queries.update_received_quantity(po_number, sku_id, body.received_qty)
        return {
            "success": True,
            "message": "Received quantity updated successfully",
            "data": item.model_dump(mode="json"),
        }

    @app.get("/health")
    async def health():
        return {
            "success": True,
            "message": "PO Service is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
