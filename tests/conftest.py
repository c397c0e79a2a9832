"""
Pytest configuration and shared fixtures for the PO ingest test suite.
"""
import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest

from pipeline.store import AsyncStore


class ScriptedStore(AsyncStore):
    """
    AsyncStore with failure injection and call recording.

    fail(op, table, data) returning True makes that call raise
    sqlite3.OperationalError.  Tables listed in hide_first_lookup answer their
    first find_one() with None, simulating a concurrent writer that created
    the row between our lookup and our insert.
    """

    def __init__(
        self,
        db,
        fail: Optional[Callable[[str, str, dict], bool]] = None,
        hide_first_lookup: tuple = (),
    ) -> None:
        super().__init__(db)
        self.fail = fail or (lambda op, table, data: False)
        self.hidden = set(hide_first_lookup)
        self.calls: list[tuple[str, str, dict]] = []

    def _record(self, op: str, table: str, data: dict) -> None:
        self.calls.append((op, table, dict(data)))
        if self.fail(op, table, data):
            raise sqlite3.OperationalError(f"simulated {op} failure on {table}")

    def count(self, op: str, table: Optional[str] = None) -> int:
        return sum(1 for o, t, _ in self.calls if o == op and (table is None or t == table))

    async def find_one(self, table, **where):
        self._record("find_one", table, where)
        if table in self.hidden:
            self.hidden.discard(table)
            return None
        return await super().find_one(table, **where)

    async def find_many(self, table, column, values):
        values = list(values)
        self._record("find_many", table, {column: values})
        return await super().find_many(table, column, values)

    async def insert(self, table, values):
        self._record("insert", table, values)
        return await super().insert(table, values)

    async def update(self, table, values, **where):
        self._record("update", table, {**values, **where})
        return await super().update(table, values, **where)

    async def select_purchase_orders(self, **filters):
        self._record("select", "purchase_orders", filters)
        return await super().select_purchase_orders(**filters)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="po_ingest_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with an isolated database and no batch pause."""
    from config import Config

    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    config = Config()
    config.db_path = temp_dir / "output" / "po_ingest.db"
    config.batch_size = 10
    config.batch_delay_ms = 0
    config.default_platform = "Default Platform"
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from pipeline.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def store(test_db) -> ScriptedStore:
    """A recording store over the test database (no failures injected)."""
    return ScriptedStore(test_db)


@pytest.fixture
def make_store(test_db) -> Callable[..., ScriptedStore]:
    """Factory for ScriptedStores with failure injection."""
    def _make(**kwargs) -> ScriptedStore:
        return ScriptedStore(test_db, **kwargs)
    return _make


def line_item(po, sku, qty=10, city="Chennai", vendor="ARC FOODS AND BEVERAGES",
              created="2025-09-25", product=None) -> dict:
    return {
        "PONumber": po,
        "SKUId": sku,
        "ProductName": product or f"Product {sku}",
        "OrderedQty": qty,
        "City": city,
        "VendorName": vendor,
        "POCreatedDate": created,
    }


@pytest.fixture
def make_item() -> Callable[..., dict]:
    """Factory for raw line-item dicts in the upstream payload shape."""
    return line_item


@pytest.fixture
def two_item_po() -> list[dict]:
    """Two line items sharing PO-1, SKUs A and B."""
    return [
        line_item("PO-1", "A", qty=210),
        line_item("PO-1", "B", qty=40),
    ]


@pytest.fixture
def multi_po_items() -> list[dict]:
    """Seven line items across four POs, interleaved, two vendors and cities."""
    return [
        line_item("PO-1", "A", qty=5),
        line_item("PO-2", "C", qty=7, city="Mumbai", vendor="Bulk Vendor 1", created="2025-01-10"),
        line_item("PO-1", "B", qty=6),
        line_item("PO-3", "D", qty=1, city="Chennai", vendor="Bulk Vendor 1", created="2025-01-31"),
        line_item("PO-2", "A", qty=8, city="Mumbai", vendor="Bulk Vendor 1", created="2025-01-10"),
        line_item("PO-4", "E", qty=0, city="Delhi", vendor="ARC FOODS AND BEVERAGES", created="2025-02-01"),
        line_item("PO-3", "F", qty=3, city="Chennai", vendor="Bulk Vendor 1", created="2025-01-31"),
    ]


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
