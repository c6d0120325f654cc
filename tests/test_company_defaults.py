"""Tests for per-company invoice defaults."""
import sqlite3

import pytest

from fossinvoice.invoicing.storage.defaults_repository import CompanyDefaultsRepository
from fossinvoice.invoicing.storage.invoicing_repository import InvoicingRepository
from fossinvoice.invoicing.storage.models import Company, CompanyDefaults
from fossinvoice.shared.errors import MissingKeyError


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "inv.db"


@pytest.fixture
def company(db_path):
    return InvoicingRepository(db_path).create_company(Company(name="Acme"))


def _rows(db_path) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT COUNT(*) FROM company_defaults").fetchone()[0]
    finally:
        conn.close()


class TestGetCompanyDefaults:
    def test_first_read_creates_fallback_row(self, db_path, company):
        defaults = CompanyDefaultsRepository(db_path).get_company_defaults(company.id)
        assert defaults.id > 0
        assert defaults.company_id == company.id
        assert defaults.default_currency == "USD"
        assert defaults.default_tax_rate == 0.0
        assert defaults.default_footer_text == ""
        assert defaults.created_at

    def test_repeated_reads_share_one_row(self, db_path, company):
        repo = CompanyDefaultsRepository(db_path)
        first = repo.get_company_defaults(company.id)
        second = repo.get_company_defaults(company.id)
        assert first == second
        assert _rows(db_path) == 1

    def test_unknown_company_is_rejected(self, db_path):
        with pytest.raises(sqlite3.IntegrityError):
            CompanyDefaultsRepository(db_path).get_company_defaults(404)
        assert _rows(db_path) == 0


class TestUpdateCompanyDefaults:
    def test_requires_company_id(self, db_path):
        with pytest.raises(MissingKeyError):
            CompanyDefaultsRepository(db_path).update_company_defaults(CompanyDefaults())

    def test_inserts_when_absent(self, db_path, company):
        repo = CompanyDefaultsRepository(db_path)
        saved = repo.update_company_defaults(CompanyDefaults(
            company_id=company.id,
            default_currency="EUR",
            default_tax_rate=21.0,
            default_footer_text="IBAN ES00 0000",
        ))
        assert saved.default_currency == "EUR"
        assert saved.default_tax_rate == 21.0
        assert saved.default_footer_text == "IBAN ES00 0000"
        assert _rows(db_path) == 1

    def test_overwrites_existing_row(self, db_path, company):
        repo = CompanyDefaultsRepository(db_path)
        created = repo.get_company_defaults(company.id)
        saved = repo.update_company_defaults(CompanyDefaults(
            id=9999,
            company_id=company.id,
            default_currency="GBP",
            default_tax_rate=20.0,
            default_footer_text="Thanks",
        ))
        assert saved.id == created.id
        assert saved.created_at == created.created_at
        assert saved.default_currency == "GBP"
        assert repo.get_company_defaults(company.id).default_tax_rate == 20.0
        assert _rows(db_path) == 1
