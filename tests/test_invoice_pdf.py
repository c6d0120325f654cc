"""Tests for invoice PDF export and label translation."""
import pytest
from pypdf import PdfReader

from fossinvoice.invoicing.pdf.i18n import normalize_language, translate, translator
from fossinvoice.invoicing.pdf.invoice_pdf import (
    export_invoice_pdf,
    format_amount,
    format_money,
    format_number,
    render_invoice_pdf,
)
from fossinvoice.invoicing.storage.invoicing_repository import InvoicingRepository
from fossinvoice.invoicing.storage.models import (
    Client,
    Company,
    ContactInfo,
    Invoice,
    InvoiceItem,
)
from fossinvoice.shared.app_config import ConfigStore
from fossinvoice.shared.errors import InvalidDataError, NotFoundError

# 1x1 transparent PNG
PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def _pdf_text(path) -> str:
    reader = PdfReader(str(path))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "inv.db"


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config")


def _seed_invoice(db_path, icon_b64="", discount=0.0, footer="Bank: ES00 1234") -> Invoice:
    repo = InvoicingRepository(db_path)
    company = repo.create_company(Company(
        name="Acme Studio",
        address="1 Main St",
        tax_id="B12345678",
        icon_b64=icon_b64,
        contact=ContactInfo(email="hello@acme.test", website="acme.test"),
    ))
    client = repo.create_client(company.id, Client(name="Globex Corp", address="2 Side St", tax_id="X999"))
    return repo.create_invoice(Invoice(
        company_id=company.id,
        client_id=client.id,
        number=42,
        issue_date="2025-03-01",
        fiscal_year=2025,
        currency="EUR",
        subtotal=150.0,
        tax_rate=21.0,
        tax_amount=31.5,
        discount_amount=discount,
        total=181.5 - discount,
        footer_text=footer,
        items=[
            InvoiceItem(description="Design work", quantity=1.5, unit_price=100.0, total=150.0),
        ],
    ))


class TestFormatting:
    def test_format_number_trims_zeros(self):
        assert format_number(2.0) == "2"
        assert format_number(1.5) == "1.5"
        assert format_number(0.0) == "0"
        assert format_number(21.25) == "21.25"

    def test_format_amount_two_decimals(self):
        assert format_amount(3) == "3.00"
        assert format_amount(1234.567) == "1234.57"

    def test_format_money(self):
        assert format_money("EUR", 10) == "EUR 10.00"
        assert format_money("", 10) == "10.00"


class TestTranslation:
    def test_normalize_language(self):
        assert normalize_language("es-ES") == "es"
        assert normalize_language("IT") == "it"
        assert normalize_language("fr") == "en"
        assert normalize_language("") == "en"
        assert normalize_language(None) == "en"

    def test_translate(self):
        assert translate("es", "pdf.billTo") == "Facturar a"
        assert translate("it", "pdf.invoice") == "Fattura"
        assert translate("de", "pdf.subtotal") == "Subtotal"

    def test_unknown_key_falls_back_to_key(self):
        assert translate("es", "pdf.unknown") == "pdf.unknown"

    def test_translator(self):
        tr = translator("it")
        assert tr("pdf.discount") == "Sconto"


class TestRenderInvoicePdf:
    def test_renders_header_items_and_totals(self, db_path, tmp_path):
        invoice = InvoicingRepository(db_path).get_invoice(_seed_invoice(db_path).id)
        out = render_invoice_pdf(invoice, tmp_path / "out" / "invoice.pdf", lang="en")

        assert out.exists()
        text = _pdf_text(out)
        assert "Acme Studio" in text
        assert "B12345678" in text
        assert "hello@acme.test" in text
        assert "Invoice #: 42" in text
        assert "2025-03-01" in text
        assert "Bill To" in text
        assert "Globex Corp" in text
        assert "Design work" in text
        assert "1.5" in text
        assert "EUR 181.50" in text
        assert "Bank: ES00 1234" in text

    def test_discount_line_only_when_positive(self, db_path, tmp_path):
        repo = InvoicingRepository(db_path)
        without = repo.get_invoice(_seed_invoice(db_path).id)
        text = _pdf_text(render_invoice_pdf(without, tmp_path / "a.pdf"))
        assert "Discount" not in text

        with_discount = repo.get_invoice(_seed_invoice(db_path, discount=10.0).id)
        text = _pdf_text(render_invoice_pdf(with_discount, tmp_path / "b.pdf"))
        assert "Discount" in text
        assert "-10.00" in text

    def test_spanish_labels(self, db_path, tmp_path):
        invoice = InvoicingRepository(db_path).get_invoice(_seed_invoice(db_path).id)
        text = _pdf_text(render_invoice_pdf(invoice, tmp_path / "es.pdf", lang="es"))
        assert "Factura" in text
        assert "Facturar a" in text

    def test_valid_logo_is_embedded(self, db_path, tmp_path):
        invoice = InvoicingRepository(db_path).get_invoice(_seed_invoice(db_path, icon_b64=PNG_B64).id)
        out = render_invoice_pdf(invoice, tmp_path / "logo.pdf")
        assert "Acme Studio" in _pdf_text(out)

    def test_unreadable_logo_is_skipped(self, db_path, tmp_path):
        invoice = InvoicingRepository(db_path).get_invoice(
            _seed_invoice(db_path, icon_b64="not base64 at all!!").id
        )
        out = render_invoice_pdf(invoice, tmp_path / "nologo.pdf")
        assert "Acme Studio" in _pdf_text(out)


class TestExportInvoicePdf:
    def test_appends_pdf_extension(self, db_path, tmp_path, config_store):
        invoice = _seed_invoice(db_path)
        written = export_invoice_pdf(db_path, invoice.id, tmp_path / "invoice-42", config_store=config_store)
        assert written == tmp_path / "invoice-42.pdf"
        assert written.exists()

    def test_keeps_existing_extension(self, db_path, tmp_path, config_store):
        invoice = _seed_invoice(db_path)
        written = export_invoice_pdf(db_path, invoice.id, tmp_path / "x.PDF", config_store=config_store)
        assert written == tmp_path / "x.PDF"

    def test_empty_path_is_rejected(self, db_path, config_store):
        with pytest.raises(InvalidDataError):
            export_invoice_pdf(db_path, 1, "  ", config_store=config_store)

    def test_missing_invoice(self, db_path, tmp_path, config_store):
        with pytest.raises(NotFoundError):
            export_invoice_pdf(db_path, 999, tmp_path / "x.pdf", config_store=config_store)
        assert not (tmp_path / "x.pdf").exists()

    def test_uses_saved_language_when_none_given(self, db_path, tmp_path, config_store):
        config_store.set_language("it-IT")
        invoice = _seed_invoice(db_path)
        written = export_invoice_pdf(db_path, invoice.id, tmp_path / "it.pdf", config_store=config_store)
        assert "Fattura" in _pdf_text(written)

    def test_explicit_language_wins(self, db_path, tmp_path, config_store):
        config_store.set_language("it")
        invoice = _seed_invoice(db_path)
        written = export_invoice_pdf(db_path, invoice.id, tmp_path / "es.pdf", lang="es",
                                     config_store=config_store)
        assert "Facturar a" in _pdf_text(written)
