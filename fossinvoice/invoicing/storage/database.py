"""
SQLite storage handle for the invoicing database.

A handle lives for exactly one logical operation: open it, do the work, close
it. Opening also brings the schema up to date. Migration is additive only:
missing tables and columns are created, nothing is ever dropped or renamed.
"""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterator, Optional

log = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000


# Column declarations must stay valid for ALTER TABLE ADD COLUMN: no PRIMARY KEY
# or UNIQUE on anything but id, and NOT NULL only with a constant default.
TABLE_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "companies": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("name", "TEXT NOT NULL DEFAULT ''"),
        ("address", "TEXT NOT NULL DEFAULT ''"),
        ("tax_id", "TEXT NOT NULL DEFAULT ''"),
        ("icon_b64", "TEXT NOT NULL DEFAULT ''"),
        ("contact_email", "TEXT"),
        ("contact_phone", "TEXT"),
        ("contact_website", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT ''"),
        ("updated_at", "TEXT NOT NULL DEFAULT ''"),
    ],
    "clients": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("company_id", "INTEGER NOT NULL DEFAULT 0"),
        ("name", "TEXT NOT NULL DEFAULT ''"),
        ("address", "TEXT NOT NULL DEFAULT ''"),
        ("tax_id", "TEXT NOT NULL DEFAULT ''"),
        ("contact_email", "TEXT"),
        ("contact_phone", "TEXT"),
        ("contact_website", "TEXT"),
        ("created_at", "TEXT NOT NULL DEFAULT ''"),
        ("updated_at", "TEXT NOT NULL DEFAULT ''"),
    ],
    "invoices": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("company_id", "INTEGER NOT NULL DEFAULT 0"),
        ("client_id", "INTEGER NOT NULL DEFAULT 0"),
        ("number", "INTEGER NOT NULL DEFAULT 0"),
        ("issue_date", "TEXT NOT NULL DEFAULT ''"),
        ("due_date", "TEXT NOT NULL DEFAULT ''"),
        ("fiscal_year", "INTEGER NOT NULL DEFAULT 0"),
        ("currency", "TEXT NOT NULL DEFAULT ''"),
        ("subtotal", "REAL NOT NULL DEFAULT 0.0"),
        ("tax_rate", "REAL NOT NULL DEFAULT 0.0"),
        ("tax_amount", "REAL NOT NULL DEFAULT 0.0"),
        ("discount_amount", "REAL NOT NULL DEFAULT 0.0"),
        ("total", "REAL NOT NULL DEFAULT 0.0"),
        ("status", "TEXT NOT NULL DEFAULT ''"),
        ("notes", "TEXT"),
        ("footer_text", "TEXT NOT NULL DEFAULT ''"),
        ("created_at", "TEXT NOT NULL DEFAULT ''"),
        ("updated_at", "TEXT NOT NULL DEFAULT ''"),
    ],
    "invoice_items": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("invoice_id", "INTEGER NOT NULL DEFAULT 0"),
        ("description", "TEXT NOT NULL DEFAULT ''"),
        ("quantity", "REAL NOT NULL DEFAULT 0.0"),
        ("unit_price", "REAL NOT NULL DEFAULT 0.0"),
        ("total", "REAL NOT NULL DEFAULT 0.0"),
        ("created_at", "TEXT NOT NULL DEFAULT ''"),
        ("updated_at", "TEXT NOT NULL DEFAULT ''"),
    ],
    "company_defaults": [
        ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
        ("company_id", "INTEGER NOT NULL DEFAULT 0"),
        ("default_currency", "TEXT NOT NULL DEFAULT ''"),
        ("default_tax_rate", "REAL NOT NULL DEFAULT 0.0"),
        ("default_footer_text", "TEXT NOT NULL DEFAULT ''"),
        ("created_at", "TEXT NOT NULL DEFAULT ''"),
        ("updated_at", "TEXT NOT NULL DEFAULT ''"),
    ],
}

# Only applied when a table is first created. Deletes are cascaded by the
# repositories, never by the database.
TABLE_CONSTRAINTS: dict[str, list[str]] = {
    "clients": ["FOREIGN KEY (company_id) REFERENCES companies(id)"],
    "invoices": [
        "FOREIGN KEY (company_id) REFERENCES companies(id)",
        "FOREIGN KEY (client_id) REFERENCES clients(id)",
    ],
    "invoice_items": ["FOREIGN KEY (invoice_id) REFERENCES invoices(id)"],
    "company_defaults": ["FOREIGN KEY (company_id) REFERENCES companies(id)"],
}

INDEXES: dict[str, str] = {
    "idx_clients_company": "CREATE INDEX IF NOT EXISTS idx_clients_company ON clients(company_id)",
    "idx_invoices_company":
        "CREATE INDEX IF NOT EXISTS idx_invoices_company ON invoices(company_id, fiscal_year)",
    "idx_invoices_client": "CREATE INDEX IF NOT EXISTS idx_invoices_client ON invoices(client_id)",
    "idx_invoice_items_invoice":
        "CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(invoice_id)",
    "idx_company_defaults_company":
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_company_defaults_company "
        "ON company_defaults(company_id)",
}


def utc_now() -> str:
    return datetime.now(UTC).isoformat()


def get_table_columns(conn: sqlite3.Connection, table_name: str) -> list[str]:
    """Get list of column names for a table (empty if the table is missing)."""
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    return [row[1] for row in rows]


class Database:
    """An open connection scoped to one unit of work."""

    def __init__(self, path: Path, conn: sqlite3.Connection):
        self.path = path
        self.conn: Optional[sqlite3.Connection] = conn

    def execute(self, sql: str, params=()) -> sqlite3.Cursor:
        if self.conn is None:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database handle.")
        return self.conn.execute(sql, params)

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """
        Run the enclosed statements atomically.

        BEGIN IMMEDIATE takes the write lock up front, so reads made inside the
        block (existing item ids, max invoice number) cannot go stale before
        the writes that depend on them.
        """
        self.execute("BEGIN IMMEDIATE")
        try:
            yield self
        except BaseException:
            self.execute("ROLLBACK")
            raise
        self.execute("COMMIT")

    def close(self) -> None:
        if self.conn is None:
            return
        conn, self.conn = self.conn, None
        conn.close()


def _pending_schema_changes(db: Database) -> list[str]:
    """DDL statements needed to bring the schema up to date, found with plain reads."""
    statements = []
    for table, columns in TABLE_COLUMNS.items():
        existing = get_table_columns(db.conn, table)
        if not existing:
            defs = [f"{name} {decl}" for name, decl in columns]
            defs.extend(TABLE_CONSTRAINTS.get(table, []))
            statements.append(f"CREATE TABLE IF NOT EXISTS {table} ({', '.join(defs)})")
            continue
        for name, decl in columns:
            if name not in existing:
                statements.append(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")

    present = {
        row[0] for row in db.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
    }
    statements.extend(stmt for name, stmt in INDEXES.items() if name not in present)
    return statements


def _reconcile_schema(db: Database) -> None:
    """
    Apply missing tables, columns and indexes.

    An up-to-date schema takes no lock at all, so opening a handle for a read
    never waits on another writer. Pending changes are re-checked under the
    write lock before they are applied.
    """
    if not _pending_schema_changes(db):
        return
    with db.transaction():
        for stmt in _pending_schema_changes(db):
            log.debug("Schema change: %s", stmt)
            db.execute(stmt)


def open_database(db_path: Path) -> Database:
    """
    Open (creating if needed) the database at db_path and migrate its schema.

    Args:
        db_path: Path to the SQLite file

    Returns:
        An open Database handle; the caller must close it.
    """
    resolved = Path(db_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(resolved, timeout=BUSY_TIMEOUT_MS / 1000, isolation_level=None)
    db = Database(resolved, conn)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA foreign_keys = ON")
        _reconcile_schema(db)
    except BaseException:
        db.close()
        raise

    log.info("database initialized at %s", resolved)
    return db


def close_database(db: Optional[Database]) -> None:
    """Close a handle. Safe on None and on handles that are already closed."""
    if db is not None:
        db.close()


@contextmanager
def session(db_path: Path) -> Iterator[Database]:
    """Open a handle for the duration of the with-block and always close it."""
    db = open_database(db_path)
    try:
        yield db
    finally:
        db.close()


def init_database(db_path: Path) -> None:
    """Create or migrate the database file and check that it answers queries."""
    with session(db_path) as db:
        db.execute("SELECT 1").fetchone()
