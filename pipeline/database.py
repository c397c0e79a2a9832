"""
SQLite persistence layer for the PO ingest service.

A single database file (output/po_ingest.db) holds the materialised schema:

  platform          one row per platform name
  vendors           one row per vendor name
  landing_rate      one row per SKU id (pricing metadata)
  purchase_orders   one row per PO number
  order_item        one row per (PO, SKU) pair

The pipeline treats this class as a generic key-lookup / insert / update
store.  Every natural key is backed by a UNIQUE constraint, so concurrent
get-or-create attempts can never produce duplicate rows: the losing insert
reports ALREADY_EXISTS instead of raising.

Insert outcomes
---------------
  inserted        The row was created; InsertResult.row holds it.
  already_exists  A row with the same unique key is already present.
  error           Any other database error; InsertResult.error holds it.
"""
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

INSERTED       = "inserted"
ALREADY_EXISTS = "already_exists"
ERROR          = "error"

_IN_CHUNK = 500

_SCHEMA = """
CREATE TABLE IF NOT EXISTS platform (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL UNIQUE,
    description  TEXT
);

CREATE TABLE IF NOT EXISTS vendors (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL UNIQUE,
    city         TEXT,
    contact_info TEXT,
    group_id     INTEGER,
    platform_id  INTEGER REFERENCES platform (id)
);

CREATE TABLE IF NOT EXISTS landing_rate (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    platform_id           INTEGER NOT NULL REFERENCES platform (id),
    sku_id                TEXT    NOT NULL UNIQUE,
    product_name          TEXT    NOT NULL,
    mrp                   REAL    NOT NULL DEFAULT 0,
    billing_value_per_qty REAL    NOT NULL DEFAULT 0,
    cases                 INTEGER,
    effective_date        TEXT    -- YYYY-MM-DD
);

CREATE TABLE IF NOT EXISTS purchase_orders (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    po_number       TEXT    NOT NULL UNIQUE,
    vendor_id       INTEGER NOT NULL REFERENCES vendors (id),
    platform_id     INTEGER NOT NULL REFERENCES platform (id),
    city            TEXT    NOT NULL,
    po_created_date TEXT    NOT NULL,   -- YYYY-MM-DD
    status          TEXT    NOT NULL DEFAULT 'Pending',
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_po_city         ON purchase_orders (city);
CREATE INDEX IF NOT EXISTS idx_po_status       ON purchase_orders (status);
CREATE INDEX IF NOT EXISTS idx_po_created_date ON purchase_orders (po_created_date);

CREATE TABLE IF NOT EXISTS order_item (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    po_id             INTEGER NOT NULL REFERENCES purchase_orders (id),
    sku_id            TEXT    NOT NULL,
    ordered_quantity  REAL    NOT NULL,
    received_quantity REAL    NOT NULL DEFAULT 0,
    UNIQUE (po_id, sku_id)
);

CREATE INDEX IF NOT EXISTS idx_order_item_po ON order_item (po_id);
"""

# Table name -> columns that may appear in WHERE / SET / INSERT clauses.
# Identifiers are interpolated into SQL, so anything else is rejected.
_COLUMNS: dict[str, set[str]] = {
    "platform": {"id", "name", "description"},
    "vendors": {"id", "name", "city", "contact_info", "group_id", "platform_id"},
    "landing_rate": {
        "id", "platform_id", "sku_id", "product_name", "mrp",
        "billing_value_per_qty", "cases", "effective_date",
    },
    "purchase_orders": {
        "id", "po_number", "vendor_id", "platform_id", "city",
        "po_created_date", "status", "created_at",
    },
    "order_item": {"id", "po_id", "sku_id", "ordered_quantity", "received_quantity"},
}


def _check_columns(table: str, columns: Iterable[str]) -> None:
    allowed = _COLUMNS.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table {table!r}")
    unknown = set(columns) - allowed
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {sorted(unknown)}")


def _quantity(value: Any) -> Any:
    """REAL columns hand back floats; show whole quantities as ints."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _row_dict(row: Optional[sqlite3.Row]) -> Optional[dict]:
    if row is None:
        return None
    data = dict(row)
    for key in ("ordered_quantity", "received_quantity"):
        if key in data:
            data[key] = _quantity(data[key])
    return data


@dataclass
class InsertResult:
    """Tagged outcome of a single-row insert."""
    status: str                             # inserted | already_exists | error
    row: Optional[dict] = None
    error: Optional[Exception] = None

    @property
    def inserted(self) -> bool:
        return self.status == INSERTED

    @property
    def already_exists(self) -> bool:
        return self.status == ALREADY_EXISTS


class Database:
    """Thin wrapper around an SQLite database file for the PO schema."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def insert(self, table: str, values: dict) -> InsertResult:
        """
        Insert one row and return the stored row.

        Uniqueness conflicts are reported as ALREADY_EXISTS (the existing row
        is left untouched); any other sqlite error is returned as ERROR.
        """
        _check_columns(table, values)
        columns = ", ".join(values)
        placeholders = ", ".join(f":{c}" for c in values)
        sql = (
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT DO NOTHING RETURNING *"
        )
        try:
            with self._conn() as conn:
                rows = conn.execute(sql, values).fetchall()
        except sqlite3.Error as exc:
            logger.warning("Insert into %s failed: %s", table, exc)
            return InsertResult(ERROR, error=exc)

        if not rows:
            logger.debug("Insert into %s skipped, key already present: %s", table, values)
            return InsertResult(ALREADY_EXISTS)
        return InsertResult(INSERTED, row=_row_dict(rows[0]))

    def update(self, table: str, values: dict, **where: Any) -> Optional[dict]:
        """
        Update the single row matching *where* and return it, or None if no
        row matched.
        """
        if not values or not where:
            raise ValueError("update() needs both values and a WHERE key")
        _check_columns(table, list(values) + list(where))
        assignments = ", ".join(f"{c} = :set_{c}" for c in values)
        conditions = " AND ".join(f"{c} = :where_{c}" for c in where)
        params = {f"set_{c}": v for c, v in values.items()}
        params.update({f"where_{c}": v for c, v in where.items()})

        with self._conn() as conn:
            rows = conn.execute(
                f"UPDATE {table} SET {assignments} WHERE {conditions} RETURNING *",
                params,
            ).fetchall()
        return _row_dict(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def find_one(self, table: str, **where: Any) -> Optional[dict]:
        """Return the row matching all *where* equalities, or None."""
        if not where:
            raise ValueError("find_one() needs at least one key")
        _check_columns(table, where)
        conditions = " AND ".join(f"{c} = :{c}" for c in where)
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE {conditions} LIMIT 1", where
            ).fetchone()
        return _row_dict(row)

    def find_many(self, table: str, column: str, values: Iterable[Any]) -> list[dict]:
        """Return all rows whose *column* is one of *values*."""
        _check_columns(table, [column])
        values = list(dict.fromkeys(values))
        if not values:
            return []
        rows: list[sqlite3.Row] = []
        with self._conn() as conn:
            # Chunked to stay under SQLite's bound-parameter limit
            for i in range(0, len(values), _IN_CHUNK):
                chunk = values[i:i + _IN_CHUNK]
                placeholders = ", ".join("?" for _ in chunk)
                rows.extend(conn.execute(
                    f"SELECT * FROM {table} WHERE {column} IN ({placeholders})",
                    chunk,
                ).fetchall())
        rows.sort(key=lambda r: r["id"])
        return [_row_dict(r) for r in rows]

    def select_purchase_orders(
        self,
        city: Optional[str] = None,
        status: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        vendor_name: Optional[str] = None,
    ) -> list[dict]:
        """
        Return purchase order rows matching every supplied filter.

        Args:
            city:        Exact city match.
            status:      Exact status match.
            from_date:   po_created_date >= from_date (inclusive, YYYY-MM-DD).
            to_date:     po_created_date <= to_date (inclusive, YYYY-MM-DD).
            vendor_name: Exact vendor name match.
        """
        clauses: list[str] = []
        params: list = []

        if city:
            clauses.append("po.city = ?")
            params.append(city)
        if status:
            clauses.append("po.status = ?")
            params.append(status)
        if from_date:
            clauses.append("po.po_created_date >= ?")
            params.append(from_date)
        if to_date:
            clauses.append("po.po_created_date <= ?")
            params.append(to_date)
        if vendor_name:
            clauses.append("v.name = ?")
            params.append(vendor_name)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT po.*
                FROM purchase_orders po
                LEFT JOIN vendors v ON v.id = po.vendor_id
                {where}
                ORDER BY po.po_created_date DESC, po.id
                """,
                params,
            ).fetchall()
        return [_row_dict(r) for r in rows]

    def count_rows(self, table: str) -> int:
        _check_columns(table, [])
        with self._conn() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
