#!/usr/bin/env python3
"""
PO Ingest Service — CLI entry point.

Usage examples:
  python main.py serve                               # Run the HTTP API (uvicorn)
  python main.py serve --port 8080
  python main.py ingest pos.json --platform Zepto    # Bulk-ingest a JSON file
  python main.py show CPCTN26-PO-2213002             # Print one PO with items
  python main.py list --city Chennai --status Pending
  python main.py list --from 2025-01-01 --to 2025-01-31
"""
import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from config import Config
from pipeline.database import Database
from pipeline.errors import InvalidInput, POIngestError
from pipeline.processor import POIngestProcessor
from pipeline.queries import POFilters, POQueryService
from pipeline.store import AsyncStore


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _store(config: Config) -> AsyncStore:
    config.ensure_output_dir()
    return AsyncStore(Database(config.db_path))


def _load_items(path: Path) -> list:
    """Accept {"data": [...]}, {"pos": {"data": [...]}} or a bare list."""
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict) and "pos" in payload:
        payload = payload["pos"]
    if isinstance(payload, dict):
        if "data" not in payload:
            raise InvalidInput("JSON object must contain a 'data' list of line items")
        payload = payload["data"]
    return payload


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """PO Ingest Service — ingest purchase order line items and query them."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# serve command
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST env var or 0.0.0.0)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: PORT env var or 3000)")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    config = Config()
    click.echo(f"\n  Starting PO Service on {host or config.host}:{port or config.port}")
    click.echo(f"  Database:  {config.db_path}\n")
    uvicorn.run("api.app:app", host=host or config.host, port=port or config.port)


# --------------------------------------------------------------------
# ingest command
# --------------------------------------------------------------------

@cli.command()
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--platform", "-p", default=None, help="Platform name (default: DEFAULT_PLATFORM)")
@click.option("--batch-size", default=None, type=int, help="POs processed concurrently")
@click.option("--db", default=None, type=click.Path(), help="Path to the SQLite database")
def ingest(json_file: str, platform: str | None, batch_size: int | None, db: str | None) -> None:
    """Bulk-ingest PO line items from JSON_FILE."""
    config = Config()
    if batch_size:
        config.batch_size = max(1, batch_size)
    if db:
        config.db_path = Path(db)

    try:
        items = _load_items(Path(json_file))
        processor = POIngestProcessor(config, store=_store(config))
        report = asyncio.run(processor.process(items, platform))
    except json.JSONDecodeError as exc:
        click.echo(f"Error: '{json_file}' is not valid JSON: {exc}", err=True)
        sys.exit(1)
    except POIngestError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    stats = report.stats
    click.echo()
    click.echo(f"  {report.message}")
    click.echo(f"  Total items:      {stats.total_items}")
    click.echo(f"  Total POs:        {stats.total_pos}")
    click.echo(f"  Processed POs:    {stats.processed_pos}")
    click.echo(f"  Failed POs:       {stats.failed_pos}")
    click.echo(f"  Processing time:  {stats.processing_time_ms} ms "
               f"({stats.items_per_second:.0f} items/s)")
    if report.errors:
        click.echo(f"\n  Errors ({len(report.errors)}):")
        for error in report.errors[:10]:
            click.echo(f"    ✗ {error}")
        if len(report.errors) > 10:
            click.echo(f"    … and {len(report.errors) - 10} more")
    click.echo()
    if not report.success:
        sys.exit(2)


# --------------------------------------------------------------------
# show / list commands
# --------------------------------------------------------------------

@cli.command()
@click.argument("po_number")
@click.option("--db", default=None, type=click.Path(), help="Path to the SQLite database")
def show(po_number: str, db: str | None) -> None:
    """Print one purchase order with its items."""
    config = Config()
    if db:
        config.db_path = Path(db)
    try:
        po = asyncio.run(POQueryService(_store(config)).get_by_po_number(po_number))
    except POIngestError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"  PO:        {po.po_number}")
    click.echo(f"  Status:    {po.status}")
    click.echo(f"  Created:   {po.po_created_date}")
    click.echo(f"  City:      {po.city}")
    click.echo(f"  Vendor:    {po.vendor.name if po.vendor else '(unknown)'}")
    click.echo(f"  Platform:  {po.platform.name if po.platform else '(unknown)'}")
    click.echo(f"\n  Items ({len(po.order_items)}):")
    for item in po.order_items:
        name = item.landing_rate.product_name if item.landing_rate else ""
        click.echo(
            f"    {item.sku_id:<12} ordered {item.ordered_quantity:>8}  "
            f"received {item.received_quantity:>8}  {name}"
        )
    click.echo()


@cli.command(name="list")
@click.option("--city", default=None)
@click.option("--status", default=None)
@click.option("--vendor", "vendor_name", default=None, help="Exact vendor name")
@click.option("--from", "from_date", default=None, help="PO created on/after (YYYY-MM-DD)")
@click.option("--to", "to_date", default=None, help="PO created on/before (YYYY-MM-DD)")
@click.option("--db", default=None, type=click.Path(), help="Path to the SQLite database")
def list_pos(
    city: str | None,
    status: str | None,
    vendor_name: str | None,
    from_date: str | None,
    to_date: str | None,
    db: str | None,
) -> None:
    """List purchase orders matching all given filters."""
    config = Config()
    if db:
        config.db_path = Path(db)
    try:
        filters = POFilters(
            city=city, status=status, from_date=from_date, to_date=to_date,
            vendor_name=vendor_name,
        )
        pos = asyncio.run(POQueryService(_store(config)).list_pos(filters))
    except POIngestError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"\n  {len(pos)} purchase order(s)\n")
    for po in pos:
        vendor = po.vendor.name if po.vendor else "(unknown)"
        click.echo(
            f"  {po.po_number:<24} {po.po_created_date}  {po.status:<10} "
            f"{po.city:<12} {vendor}  ({len(po.order_items)} items)"
        )
    click.echo()


if __name__ == "__main__":
    cli()
