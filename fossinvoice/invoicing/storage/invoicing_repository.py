"""Invoicing repository - companies, clients, invoices and their line items."""
from dataclasses import replace
from pathlib import Path

from fossinvoice.invoicing.storage.database import Database, session, utc_now
from fossinvoice.invoicing.storage.models import (
    Client,
    ClientsPage,
    CompaniesPage,
    Company,
    ContactInfo,
    Invoice,
    InvoiceItem,
    InvoicesPage,
)
from fossinvoice.shared.errors import (
    AppErrors,
    InvalidDataError,
    MissingKeyError,
    NotFoundError,
)


_COMPANY_COLUMNS = (
    "id, name, address, tax_id, icon_b64, contact_email, contact_phone, "
    "contact_website, created_at, updated_at"
)
_CLIENT_COLUMNS = (
    "id, company_id, name, address, tax_id, contact_email, contact_phone, "
    "contact_website, created_at, updated_at"
)
_INVOICE_COLUMNS = (
    "id, company_id, client_id, number, issue_date, due_date, fiscal_year, currency, "
    "subtotal, tax_rate, tax_amount, discount_amount, total, status, notes, footer_text, "
    "created_at, updated_at"
)
_ITEM_COLUMNS = "id, invoice_id, description, quantity, unit_price, total, created_at, updated_at"

_NEWEST_FIRST = " ORDER BY created_at DESC, id DESC"


# ── Row mapping ──

def _contact_from_row(row) -> ContactInfo:
    return ContactInfo(
        email=row["contact_email"],
        phone=row["contact_phone"],
        website=row["contact_website"],
    )


def _company_from_row(row) -> Company:
    return Company(
        id=row["id"],
        name=row["name"],
        address=row["address"],
        tax_id=row["tax_id"],
        icon_b64=row["icon_b64"],
        contact=_contact_from_row(row),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _client_from_row(row) -> Client:
    return Client(
        id=row["id"],
        company_id=row["company_id"],
        name=row["name"],
        address=row["address"],
        tax_id=row["tax_id"],
        contact=_contact_from_row(row),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _invoice_from_row(row) -> Invoice:
    return Invoice(
        id=row["id"],
        company_id=row["company_id"],
        client_id=row["client_id"],
        number=row["number"],
        issue_date=row["issue_date"],
        due_date=row["due_date"],
        fiscal_year=row["fiscal_year"],
        currency=row["currency"],
        subtotal=row["subtotal"],
        tax_rate=row["tax_rate"],
        tax_amount=row["tax_amount"],
        discount_amount=row["discount_amount"],
        total=row["total"],
        status=row["status"],
        notes=row["notes"],
        footer_text=row["footer_text"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _item_from_row(row) -> InvoiceItem:
    return InvoiceItem(
        id=row["id"],
        invoice_id=row["invoice_id"],
        description=row["description"],
        quantity=row["quantity"],
        unit_price=row["unit_price"],
        total=row["total"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ── Handle-scoped helpers ──

def _paginate(sql: str, params: list, limit: int, offset: int) -> tuple[str, list]:
    """Apply LIMIT/OFFSET only when a positive limit is given."""
    if limit > 0:
        return sql + " LIMIT ? OFFSET ?", [*params, limit, max(offset, 0)]
    return sql, params


def _invoice_filters(company_id: int, fiscal_year: int, client_id: int) -> tuple[str, list]:
    clauses = ["company_id = ?"]
    params: list = [company_id]
    if fiscal_year > 0:
        clauses.append("fiscal_year = ?")
        params.append(fiscal_year)
    if client_id > 0:
        clauses.append("client_id = ?")
        params.append(client_id)
    return " WHERE " + " AND ".join(clauses), params


def _fetch_company(db: Database, company_id: int) -> Company:
    row = db.execute(
        f"SELECT {_COMPANY_COLUMNS} FROM companies WHERE id = ?", (company_id,)
    ).fetchone()
    if row is None:
        raise NotFoundError("Company", company_id)
    return _company_from_row(row)


def _fetch_client(db: Database, client_id: int) -> Client:
    row = db.execute(
        f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE id = ?", (client_id,)
    ).fetchone()
    if row is None:
        raise NotFoundError("Client", client_id)
    return _client_from_row(row)


def _fetch_items(db: Database, invoice_id: int) -> list[InvoiceItem]:
    rows = db.execute(
        f"SELECT {_ITEM_COLUMNS} FROM invoice_items WHERE invoice_id = ? ORDER BY id ASC",
        (invoice_id,),
    ).fetchall()
    return [_item_from_row(r) for r in rows]


def _fetch_invoice(db: Database, invoice_id: int) -> Invoice:
    """Load an invoice with its items, company and client."""
    row = db.execute(
        f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE id = ?", (invoice_id,)
    ).fetchone()
    if row is None:
        raise NotFoundError("Invoice", invoice_id)
    invoice = _invoice_from_row(row)
    invoice.items = _fetch_items(db, invoice_id)
    invoice.company = _fetch_optional(db, _fetch_company, invoice.company_id)
    invoice.client = _fetch_optional(db, _fetch_client, invoice.client_id)
    return invoice


def _fetch_optional(db: Database, fetch, entity_id: int):
    try:
        return fetch(db, entity_id)
    except NotFoundError:
        return None


def _ensure_client_of_company(db: Database, client_id: int, company_id: int) -> None:
    client = _fetch_client(db, client_id)
    if client.company_id != company_id:
        raise InvalidDataError(AppErrors.CLIENT_COMPANY_MISMATCH)


def _next_invoice_number(db: Database, company_id: int) -> int:
    return _max_invoice_number(db, company_id) + 1


def _max_invoice_number(db: Database, company_id: int) -> int:
    row = db.execute(
        "SELECT COALESCE(MAX(number), 0) FROM invoices WHERE company_id = ?", (company_id,)
    ).fetchone()
    return row[0]


def _insert_item(db: Database, invoice_id: int, item: InvoiceItem, now: str) -> int:
    cur = db.execute(
        "INSERT INTO invoice_items (invoice_id, description, quantity, unit_price, total, "
        "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (invoice_id, item.description, item.quantity, item.unit_price, item.total, now, now),
    )
    return cur.lastrowid


def _overwrite_invoice_header(db: Database, invoice: Invoice, now: str) -> None:
    """Write every header column by id. Items and loaded relations are ignored."""
    columns = [
        ("number", invoice.number),
        ("fiscal_year", invoice.fiscal_year),
        ("issue_date", invoice.issue_date),
        ("due_date", invoice.due_date),
        ("currency", invoice.currency),
        ("subtotal", invoice.subtotal),
        ("tax_rate", invoice.tax_rate),
        ("tax_amount", invoice.tax_amount),
        ("discount_amount", invoice.discount_amount),
        ("total", invoice.total),
        ("status", invoice.status),
        ("notes", invoice.notes),
        ("footer_text", invoice.footer_text),
        ("updated_at", now),
    ]
    # client_id == 0 leaves company_id and client_id as stored
    if invoice.client_id:
        columns += [("company_id", invoice.company_id), ("client_id", invoice.client_id)]

    assignments = ", ".join(f"{name} = ?" for name, _ in columns)
    params = [value for _, value in columns] + [invoice.id]
    cur = db.execute(f"UPDATE invoices SET {assignments} WHERE id = ?", params)
    if cur.rowcount == 0:
        raise NotFoundError("Invoice", invoice.id)


def _sync_items(db: Database, invoice_id: int, items: list[InvoiceItem], now: str) -> None:
    """
    Make the stored items of invoice_id match the payload.

    Items without an id are inserted, items with an id are updated in place
    (only if they belong to this invoice), and stored items absent from the
    payload are deleted.
    """
    existing = {
        row[0]
        for row in db.execute("SELECT id FROM invoice_items WHERE invoice_id = ?", (invoice_id,))
    }
    kept: set[int] = set()

    for item in items:
        if not item.id:
            kept.add(_insert_item(db, invoice_id, item, now))
            continue
        db.execute(
            "UPDATE invoice_items SET description = ?, quantity = ?, unit_price = ?, total = ?, "
            "updated_at = ? WHERE id = ? AND invoice_id = ?",
            (item.description, item.quantity, item.unit_price, item.total, now,
             item.id, invoice_id),
        )
        kept.add(item.id)

    for stale_id in existing - kept:
        db.execute(
            "DELETE FROM invoice_items WHERE id = ? AND invoice_id = ?", (stale_id, invoice_id)
        )


class InvoicingRepository:
    """
    Repository for companies, clients, invoices and invoice items.

    Every method opens its own handle on db_path and closes it before
    returning. Multi-table writes run in a single transaction: either every
    row changes or none does.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    # ── Companies ──

    def list_companies(self) -> list[Company]:
        with session(self.db_path) as db:
            rows = db.execute(f"SELECT {_COMPANY_COLUMNS} FROM companies ORDER BY id ASC").fetchall()
            return [_company_from_row(r) for r in rows]

    def list_companies_paged(self, limit: int = 0, offset: int = 0) -> CompaniesPage:
        with session(self.db_path) as db:
            total = db.execute("SELECT COUNT(*) FROM companies").fetchone()[0]
            sql, params = _paginate(
                f"SELECT {_COMPANY_COLUMNS} FROM companies{_NEWEST_FIRST}", [], limit, offset,
            )
            rows = db.execute(sql, params).fetchall()
            return CompaniesPage(items=[_company_from_row(r) for r in rows], total=total)

    def get_company(self, company_id: int) -> Company:
        with session(self.db_path) as db:
            return _fetch_company(db, company_id)

    def create_company(self, company: Company) -> Company:
        now = utc_now()
        with session(self.db_path) as db:
            cur = db.execute(
                "INSERT INTO companies (name, address, tax_id, icon_b64, contact_email, "
                "contact_phone, contact_website, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (company.name, company.address, company.tax_id, company.icon_b64,
                 company.contact.email, company.contact.phone, company.contact.website,
                 now, now),
            )
            return _fetch_company(db, cur.lastrowid)

    def update_company(self, company: Company) -> Company:
        if not company.id:
            raise MissingKeyError()
        with session(self.db_path) as db:
            cur = db.execute(
                "UPDATE companies SET name = ?, address = ?, tax_id = ?, icon_b64 = ?, "
                "contact_email = ?, contact_phone = ?, contact_website = ?, updated_at = ? "
                "WHERE id = ?",
                (company.name, company.address, company.tax_id, company.icon_b64,
                 company.contact.email, company.contact.phone, company.contact.website,
                 utc_now(), company.id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Company", company.id)
            return _fetch_company(db, company.id)

    def delete_company(self, company_id: int) -> bool:
        """Delete a company with its clients, invoices, items and defaults."""
        with session(self.db_path) as db, db.transaction():
            db.execute(
                "DELETE FROM invoice_items WHERE invoice_id IN "
                "(SELECT id FROM invoices WHERE company_id = ?)",
                (company_id,),
            )
            db.execute("DELETE FROM invoices WHERE company_id = ?", (company_id,))
            db.execute("DELETE FROM clients WHERE company_id = ?", (company_id,))
            db.execute("DELETE FROM company_defaults WHERE company_id = ?", (company_id,))
            deleted = db.execute("DELETE FROM companies WHERE id = ?", (company_id,)).rowcount
        return deleted > 0

    # ── Clients ──

    def list_clients(self, company_id: int) -> list[Client]:
        with session(self.db_path) as db:
            rows = db.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE company_id = ? ORDER BY id ASC",
                (company_id,),
            ).fetchall()
            return [_client_from_row(r) for r in rows]

    def list_clients_paged(self, company_id: int, limit: int = 0, offset: int = 0) -> ClientsPage:
        with session(self.db_path) as db:
            total = db.execute(
                "SELECT COUNT(*) FROM clients WHERE company_id = ?", (company_id,)
            ).fetchone()[0]
            sql, params = _paginate(
                f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE company_id = ?{_NEWEST_FIRST}",
                [company_id], limit, offset,
            )
            rows = db.execute(sql, params).fetchall()
            return ClientsPage(items=[_client_from_row(r) for r in rows], total=total)

    def get_client(self, client_id: int) -> Client:
        with session(self.db_path) as db:
            return _fetch_client(db, client_id)

    def create_client(self, company_id: int, client: Client) -> Client:
        client = replace(client, company_id=company_id)
        now = utc_now()
        with session(self.db_path) as db:
            cur = db.execute(
                "INSERT INTO clients (company_id, name, address, tax_id, contact_email, "
                "contact_phone, contact_website, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (client.company_id, client.name, client.address, client.tax_id,
                 client.contact.email, client.contact.phone, client.contact.website,
                 now, now),
            )
            return _fetch_client(db, cur.lastrowid)

    def update_client(self, client: Client) -> Client:
        """Overwrite a client's data. The owning company is never changed here."""
        if not client.id:
            raise MissingKeyError()
        with session(self.db_path) as db:
            cur = db.execute(
                "UPDATE clients SET name = ?, address = ?, tax_id = ?, contact_email = ?, "
                "contact_phone = ?, contact_website = ?, updated_at = ? WHERE id = ?",
                (client.name, client.address, client.tax_id, client.contact.email,
                 client.contact.phone, client.contact.website, utc_now(), client.id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Client", client.id)
            return _fetch_client(db, client.id)

    def delete_client(self, client_id: int) -> bool:
        """Delete a client with its invoices and their items."""
        with session(self.db_path) as db, db.transaction():
            db.execute(
                "DELETE FROM invoice_items WHERE invoice_id IN "
                "(SELECT id FROM invoices WHERE client_id = ?)",
                (client_id,),
            )
            db.execute("DELETE FROM invoices WHERE client_id = ?", (client_id,))
            deleted = db.execute("DELETE FROM clients WHERE id = ?", (client_id,)).rowcount
        return deleted > 0

    # ── Invoices ──

    def list_invoices(self, company_id: int, fiscal_year: int = 0, client_id: int = 0) -> list[Invoice]:
        """List invoice headers, newest first. Zero filters mean "any"."""
        where, params = _invoice_filters(company_id, fiscal_year, client_id)
        with session(self.db_path) as db:
            rows = db.execute(
                f"SELECT {_INVOICE_COLUMNS} FROM invoices{where}{_NEWEST_FIRST}", params
            ).fetchall()
            return [_invoice_from_row(r) for r in rows]

    def list_invoices_paged(
        self,
        company_id: int,
        fiscal_year: int = 0,
        client_id: int = 0,
        limit: int = 0,
        offset: int = 0,
    ) -> InvoicesPage:
        """One page of invoice headers plus the count of all matching invoices."""
        where, params = _invoice_filters(company_id, fiscal_year, client_id)
        with session(self.db_path) as db:
            total = db.execute(f"SELECT COUNT(*) FROM invoices{where}", params).fetchone()[0]
            sql, page_params = _paginate(
                f"SELECT {_INVOICE_COLUMNS} FROM invoices{where}{_NEWEST_FIRST}",
                params, limit, offset,
            )
            rows = db.execute(sql, page_params).fetchall()
            return InvoicesPage(items=[_invoice_from_row(r) for r in rows], total=total)

    def list_client_invoices(self, company_id: int, client_id: int, fiscal_year: int = 0) -> list[Invoice]:
        params: list = [company_id, client_id]
        sql = f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE company_id = ? AND client_id = ?"
        if fiscal_year > 0:
            sql += " AND fiscal_year = ?"
            params.append(fiscal_year)
        with session(self.db_path) as db:
            rows = db.execute(sql + _NEWEST_FIRST, params).fetchall()
            return [_invoice_from_row(r) for r in rows]

    def get_invoice(self, invoice_id: int) -> Invoice:
        """Load an invoice with its items, company and client."""
        with session(self.db_path) as db:
            return _fetch_invoice(db, invoice_id)

    def create_invoice(self, invoice: Invoice) -> Invoice:
        """
        Insert an invoice header and its items atomically.

        The client must belong to invoice.company_id. A zero number is replaced
        by the company's highest number plus one, read and written inside the
        same transaction.

        Raises:
            NotFoundError: If the client does not exist
            InvalidDataError: If the client belongs to another company
        """
        with session(self.db_path) as db:
            _ensure_client_of_company(db, invoice.client_id, invoice.company_id)
            now = utc_now()
            with db.transaction():
                number = invoice.number or _next_invoice_number(db, invoice.company_id)
                cur = db.execute(
                    "INSERT INTO invoices (company_id, client_id, number, issue_date, due_date, "
                    "fiscal_year, currency, subtotal, tax_rate, tax_amount, discount_amount, "
                    "total, status, notes, footer_text, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (invoice.company_id, invoice.client_id, number, invoice.issue_date,
                     invoice.due_date, invoice.fiscal_year, invoice.currency, invoice.subtotal,
                     invoice.tax_rate, invoice.tax_amount, invoice.discount_amount,
                     invoice.total, invoice.status, invoice.notes, invoice.footer_text,
                     now, now),
                )
                invoice_id = cur.lastrowid
                for item in invoice.items:
                    _insert_item(db, invoice_id, item, now)
            return _fetch_invoice(db, invoice_id)

    def update_invoice(self, invoice: Invoice) -> Invoice:
        """
        Overwrite an invoice header and reconcile its items with invoice.items.

        Raises:
            MissingKeyError: If invoice.id is 0
            NotFoundError: If the invoice or the given client does not exist
            InvalidDataError: If the client belongs to another company
        """
        if not invoice.id:
            raise MissingKeyError()
        with session(self.db_path) as db:
            if invoice.client_id:
                _ensure_client_of_company(db, invoice.client_id, invoice.company_id)
            now = utc_now()
            with db.transaction():
                _overwrite_invoice_header(db, invoice, now)
                _sync_items(db, invoice.id, invoice.items, now)
            return _fetch_invoice(db, invoice.id)

    def delete_invoice(self, invoice_id: int) -> bool:
        with session(self.db_path) as db, db.transaction():
            db.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (invoice_id,))
            deleted = db.execute("DELETE FROM invoices WHERE id = ?", (invoice_id,)).rowcount
        return deleted > 0

    # ── Aggregates ──

    def list_fiscal_years(self, company_id: int) -> list[int]:
        """Distinct non-zero fiscal years of a company's invoices, newest first."""
        with session(self.db_path) as db:
            rows = db.execute(
                "SELECT DISTINCT fiscal_year FROM invoices "
                "WHERE company_id = ? AND fiscal_year > 0 ORDER BY fiscal_year DESC",
                (company_id,),
            ).fetchall()
            return [r[0] for r in rows]

    def get_max_invoice_number(self, company_id: int) -> int:
        """
        Highest invoice number of a company, or 0 without invoices.

        Only a proposal for the next number: nothing is reserved, so two callers
        can read the same value. Creating with number=0 allocates safely.
        """
        with session(self.db_path) as db:
            return _max_invoice_number(db, company_id)
