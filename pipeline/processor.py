"""
Bulk PO ingestion orchestrator.

POIngestProcessor.process() turns a flat list of PO line items into
database rows:

  1. Group line items by PO number (validation happens here)
  2. Resolve the platform once for the whole run
  3. Process PO groups in batches of config.batch_size, concurrently
     within a batch, pausing config.batch_delay_ms between batches.
     Each group runs:  vendor -> SKUs -> purchase order -> order items
  4. Aggregate per-group outcomes into one IngestReport

A failing group is recorded in the report's error list and does not stop
its siblings.  Rows written by a group before it failed stay in place.
Only a platform resolution failure aborts the whole run.
"""
import asyncio
import logging
import time
from typing import Optional

from config import Config
from models.line_item import POLineItem
from models.entities import Platform
from models.result import GroupResult, IngestReport, IngestStats
from .database import Database
from .grouper import group_by_po_number
from .resolver import ReferenceResolver
from .store import AsyncStore
from .upserter import POUpserter

logger = logging.getLogger(__name__)

MSG_ALL_OK      = "All POs processed successfully"
MSG_SOME_FAILED = "Some POs had errors"


class POIngestProcessor:
    """
    Orchestrates bulk ingestion of PO line items.

    The reference-entity memo is owned by a ReferenceResolver created inside
    each process() call and discarded afterwards.
    """

    def __init__(self, config: Optional[Config] = None, store: Optional[AsyncStore] = None):
        self.config = config or Config()
        if store is None:
            self.config.ensure_output_dir()
            store = AsyncStore(Database(self.config.db_path))
        self.store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, items, platform_name: Optional[str] = None) -> IngestReport:
        """
        Ingest *items* (raw dicts or POLineItems) under *platform_name*.

        Raises InvalidInput for a malformed payload (before any database
        call) and DependencyWriteFailed if the platform cannot be resolved.
        Per-PO failures are reported in the returned IngestReport instead.
        """
        groups = group_by_po_number(items)
        total_items = sum(len(g) for g in groups.values())
        platform_name = platform_name or self.config.default_platform

        logger.info(
            "=== Ingesting %d line item(s) across %d PO(s), platform=%r ===",
            total_items, len(groups), platform_name,
        )
        start = time.monotonic()

        if not groups:
            return self._report([], [], total_items, 0, start)

        resolver = ReferenceResolver(self.store)
        upserter = POUpserter(self.store)

        platform = await resolver.resolve_platform(platform_name)

        results: list[GroupResult] = []
        errors: list[str] = []
        po_numbers = list(groups)
        batch_size = self.config.batch_size
        batches = [po_numbers[i:i + batch_size] for i in range(0, len(po_numbers), batch_size)]

        for index, batch in enumerate(batches, start=1):
            if index > 1 and self.config.batch_delay_ms > 0:
                await asyncio.sleep(self.config.batch_delay_ms / 1000)

            logger.debug("Batch %d/%d: %d PO(s)", index, len(batches), len(batch))
            outcomes = await asyncio.gather(*(
                self._process_group(po_number, groups[po_number], platform, resolver, upserter)
                for po_number in batch
            ))
            for outcome in outcomes:
                if isinstance(outcome, GroupResult):
                    results.append(outcome)
                else:
                    errors.append(outcome)

        report = self._report(results, errors, total_items, len(groups), start)
        logger.info(
            "Ingestion complete: %d/%d PO(s) processed, %d failed in %d ms (%.0f items/s)",
            report.stats.processed_pos, report.stats.total_pos, report.stats.failed_pos,
            report.stats.processing_time_ms, report.stats.items_per_second,
        )
        logger.debug("Resolver memo sizes: %s", resolver.memo_sizes)
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process_group(
        self,
        po_number: str,
        items: list[POLineItem],
        platform: Platform,
        resolver: ReferenceResolver,
        upserter: POUpserter,
    ) -> GroupResult | str:
        """Run one PO group; return its GroupResult or an error string."""
        try:
            first = items[0]
            vendor = await resolver.resolve_vendor(first.vendor_name, first.city, platform.id)

            seen_skus: set[str] = set()
            for item in items:
                if item.sku_id in seen_skus:
                    continue
                seen_skus.add(item.sku_id)
                await resolver.resolve_sku(platform.id, item.sku_id, item.product_name)

            purchase_order = await upserter.upsert_purchase_order(
                po_number, vendor.id, platform.id, first.city, first.po_created_date,
            )

            order_items = []
            for item in items:
                order_items.append(
                    await upserter.upsert_order_item(purchase_order.id, item.sku_id, item.ordered_qty)
                )
        except Exception as exc:
            logger.error("PO %s failed: %s", po_number, exc)
            return f"Error processing PO {po_number}: {exc}"

        logger.debug("PO %s processed: %d item(s)", po_number, len(order_items))
        return GroupResult(
            po_number=po_number,
            platform=platform,
            vendor=vendor,
            purchase_order=purchase_order,
            order_items=order_items,
        )

    @staticmethod
    def _report(
        results: list[GroupResult],
        errors: list[str],
        total_items: int,
        total_pos: int,
        start: float,
    ) -> IngestReport:
        stats = IngestStats(
            total_items=total_items,
            total_pos=total_pos,
            processed_pos=len(results),
            failed_pos=len(errors),
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )
        return IngestReport(
            success=not errors,
            message=MSG_ALL_OK if not errors else MSG_SOME_FAILED,
            data=results,
            errors=errors,
            stats=stats,
        )
