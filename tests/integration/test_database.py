"""
Integration tests for database operations.
"""
import pytest

from pipeline.database import Database, _IN_CHUNK


def _seed_po(db: Database, po_number: str, city="Chennai", created="2025-09-25",
             vendor="ARC FOODS") -> dict:
    platform = db.find_one("platform", name="Zepto") or db.insert("platform", {"name": "Zepto"}).row
    vendor_row = db.find_one("vendors", name=vendor) or db.insert("vendors", {"name": vendor}).row
    return db.insert("purchase_orders", {
        "po_number": po_number,
        "vendor_id": vendor_row["id"],
        "platform_id": platform["id"],
        "city": city,
        "po_created_date": created,
    }).row


@pytest.mark.integration
class TestDatabase:
    """Integration tests for Database class."""

    def test_schema_created(self, test_db):
        for table in ("platform", "vendors", "landing_rate", "purchase_orders", "order_item"):
            assert test_db.count_rows(table) == 0

    def test_reopening_keeps_rows(self, test_db):
        test_db.insert("platform", {"name": "Zepto"})
        reopened = Database(test_db.db_path)
        assert reopened.count_rows("platform") == 1

    def test_insert_returns_stored_row(self, test_db):
        result = test_db.insert("platform", {"name": "Zepto", "description": "Quick commerce"})
        assert result.inserted
        assert result.row["id"] >= 1
        assert result.row["description"] == "Quick commerce"

    def test_duplicate_key_reports_already_exists(self, test_db):
        first = test_db.insert("vendors", {"name": "ARC FOODS", "city": "Chennai"})
        second = test_db.insert("vendors", {"name": "ARC FOODS", "city": "Mumbai"})

        assert first.inserted
        assert second.already_exists
        assert second.row is None
        assert test_db.find_one("vendors", name="ARC FOODS")["city"] == "Chennai"

    def test_constraint_violation_reports_error(self, test_db):
        result = test_db.insert("landing_rate", {"sku_id": "A", "product_name": "Widget"})
        assert result.status == "error"
        assert result.error is not None
        assert test_db.count_rows("landing_rate") == 0

    def test_po_defaults(self, test_db):
        po = _seed_po(test_db, "PO-1")
        assert po["status"] == "Pending"
        assert po["created_at"]

    def test_order_item_unique_per_po_and_sku(self, test_db):
        po = _seed_po(test_db, "PO-1")
        values = {"po_id": po["id"], "sku_id": "A", "ordered_quantity": 3}
        assert test_db.insert("order_item", values).inserted
        assert test_db.insert("order_item", values).already_exists

    def test_quantities_read_back_as_numbers(self, test_db):
        po = _seed_po(test_db, "PO-1")
        whole = test_db.insert("order_item", {"po_id": po["id"], "sku_id": "A", "ordered_quantity": 3}).row
        part = test_db.insert("order_item", {"po_id": po["id"], "sku_id": "B", "ordered_quantity": 1.5}).row
        assert whole["ordered_quantity"] == 3 and isinstance(whole["ordered_quantity"], int)
        assert whole["received_quantity"] == 0
        assert part["ordered_quantity"] == 1.5

    def test_update_returns_row_or_none(self, test_db):
        po = _seed_po(test_db, "PO-1")
        updated = test_db.update("purchase_orders", {"status": "Received"}, po_number="PO-1")
        assert updated["id"] == po["id"]
        assert updated["status"] == "Received"
        assert test_db.update("purchase_orders", {"status": "Received"}, po_number="PO-X") is None

    def test_update_requires_values_and_key(self, test_db):
        with pytest.raises(ValueError):
            test_db.update("purchase_orders", {}, po_number="PO-1")
        with pytest.raises(ValueError):
            test_db.update("purchase_orders", {"status": "Received"})

    def test_unknown_table_or_column_rejected(self, test_db):
        with pytest.raises(ValueError, match="Unknown table"):
            test_db.find_one("invoices", id=1)
        with pytest.raises(ValueError, match="Unknown column"):
            test_db.find_one("platform", nickname="x")
        with pytest.raises(ValueError, match="Unknown column"):
            test_db.insert("vendors", {"name": "A", "name; DROP TABLE vendors": 1})

    def test_find_many_dedupes_and_orders_by_id(self, test_db):
        ids = [test_db.insert("platform", {"name": f"P{n}"}).row["id"] for n in range(3)]
        rows = test_db.find_many("platform", "id", [ids[2], ids[0], ids[2]])
        assert [r["id"] for r in rows] == [ids[0], ids[2]]
        assert test_db.find_many("platform", "id", []) == []

    def test_find_many_spans_chunks(self, test_db):
        platform = test_db.insert("platform", {"name": "Zepto"}).row
        skus = [f"SKU-{n}" for n in range(_IN_CHUNK + 20)]
        for sku in skus:
            test_db.insert("landing_rate", {
                "platform_id": platform["id"], "sku_id": sku, "product_name": sku,
            })
        rows = test_db.find_many("landing_rate", "sku_id", skus)
        assert len(rows) == len(skus)


@pytest.mark.integration
class TestSelectPurchaseOrders:
    """Filtering for select_purchase_orders()."""

    @pytest.fixture(autouse=True)
    def seeded(self, test_db):
        _seed_po(test_db, "PO-1", city="Chennai", created="2025-01-01")
        _seed_po(test_db, "PO-2", city="Mumbai", created="2025-01-15", vendor="Bulk Vendor 1")
        _seed_po(test_db, "PO-3", city="Chennai", created="2025-01-31", vendor="Bulk Vendor 1")
        test_db.update("purchase_orders", {"status": "Received"}, po_number="PO-3")

    def _numbers(self, rows):
        return [r["po_number"] for r in rows]

    def test_no_filters_newest_first(self, test_db):
        assert self._numbers(test_db.select_purchase_orders()) == ["PO-3", "PO-2", "PO-1"]

    def test_city_and_status_are_conjunctive(self, test_db):
        assert self._numbers(test_db.select_purchase_orders(city="Chennai")) == ["PO-3", "PO-1"]
        assert self._numbers(
            test_db.select_purchase_orders(city="Chennai", status="Pending")
        ) == ["PO-1"]

    def test_date_range_inclusive(self, test_db):
        rows = test_db.select_purchase_orders(from_date="2025-01-01", to_date="2025-01-15")
        assert self._numbers(rows) == ["PO-2", "PO-1"]

    def test_vendor_name(self, test_db):
        rows = test_db.select_purchase_orders(vendor_name="Bulk Vendor 1")
        assert self._numbers(rows) == ["PO-3", "PO-2"]

    def test_no_match(self, test_db):
        assert test_db.select_purchase_orders(city="Delhi") == []
