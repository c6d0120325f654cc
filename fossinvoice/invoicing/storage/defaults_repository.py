"""Per-company invoice defaults (currency, tax rate, footer text)."""
from pathlib import Path
from typing import Optional

from fossinvoice.invoicing.storage.database import Database, session, utc_now
from fossinvoice.invoicing.storage.models import (
    DEFAULT_CURRENCY,
    DEFAULT_TAX_RATE,
    CompanyDefaults,
)
from fossinvoice.shared.errors import MissingKeyError


def _find_defaults(db: Database, company_id: int) -> Optional[CompanyDefaults]:
    row = db.execute(
        "SELECT id, company_id, default_currency, default_tax_rate, default_footer_text, "
        "created_at, updated_at FROM company_defaults WHERE company_id = ?",
        (company_id,),
    ).fetchone()
    return CompanyDefaults(*row) if row else None


def _insert_defaults(db: Database, defaults: CompanyDefaults) -> None:
    now = utc_now()
    db.execute(
        "INSERT INTO company_defaults (company_id, default_currency, default_tax_rate, "
        "default_footer_text, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
        (defaults.company_id, defaults.default_currency, defaults.default_tax_rate,
         defaults.default_footer_text, now, now),
    )


class CompanyDefaultsRepository:
    """One defaults row per company, created lazily on first read."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def get_company_defaults(self, company_id: int) -> CompanyDefaults:
        """
        Return the company's defaults, creating them on first access.

        The first call for a company writes a row with the fallback currency
        and a zero tax rate; later calls return that same row.
        """
        with session(self.db_path) as db:
            with db.transaction():
                if _find_defaults(db, company_id) is None:
                    _insert_defaults(db, CompanyDefaults(
                        company_id=company_id,
                        default_currency=DEFAULT_CURRENCY,
                        default_tax_rate=DEFAULT_TAX_RATE,
                        default_footer_text="",
                    ))
            return _find_defaults(db, company_id)

    def update_company_defaults(self, defaults: CompanyDefaults) -> CompanyDefaults:
        """Insert or overwrite currency, tax rate and footer text for defaults.company_id."""
        if not defaults.company_id:
            raise MissingKeyError()
        with session(self.db_path) as db:
            with db.transaction():
                if _find_defaults(db, defaults.company_id) is None:
                    _insert_defaults(db, defaults)
                else:
                    db.execute(
                        "UPDATE company_defaults SET default_currency = ?, default_tax_rate = ?, "
                        "default_footer_text = ?, updated_at = ? WHERE company_id = ?",
                        (defaults.default_currency, defaults.default_tax_rate,
                         defaults.default_footer_text, utc_now(), defaults.company_id),
                    )
            return _find_defaults(db, defaults.company_id)
