"""Invoice PDF generation using reportlab."""
import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from fossinvoice.invoicing.pdf.i18n import translator
from fossinvoice.invoicing.storage.invoicing_repository import InvoicingRepository
from fossinvoice.invoicing.storage.models import Company, Invoice
from fossinvoice.shared.app_config import ConfigStore
from fossinvoice.shared.errors import AppErrors, InvalidDataError

log = logging.getLogger(__name__)

LOGO_SIZE = 20 * mm


def format_number(v: float) -> str:
    """Shortest plain rendering of a quantity: 2.0 -> "2", 1.50 -> "1.5"."""
    text = f"{v:f}".rstrip("0").rstrip(".")
    return text or "0"


def format_amount(v: float) -> str:
    return f"{v:.2f}"


def format_money(currency: str, v: float) -> str:
    if not (currency or "").strip():
        return format_amount(v)
    return f"{currency} {format_amount(v)}"


def _logo_flowable(company: Company) -> Optional[Image]:
    """Company icon as an image flowable, or None when absent or unreadable."""
    if not company.icon_b64:
        return None
    try:
        data = base64.b64decode(company.icon_b64, validate=True)
        ImageReader(io.BytesIO(data)).getSize()
    except (binascii.Error, ValueError, OSError) as e:
        log.warning("Skipping unreadable logo for company %s: %s", company.id, e)
        return None
    return Image(io.BytesIO(data), width=LOGO_SIZE, height=LOGO_SIZE, kind="proportional")


def _contact_lines(company: Company, tr) -> list[str]:
    lines = []
    for key, value in (
        ("pdf.email", company.contact.email),
        ("pdf.phone", company.contact.phone),
        ("pdf.website", company.contact.website),
    ):
        if value and value.strip():
            lines.append(f"{tr(key)}: {value.strip()}")
    return lines


def render_invoice_pdf(invoice: Invoice, output_path: Path, lang: str = "en") -> Path:
    """Render a fully loaded invoice (company, client and items) to output_path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tr = translator(lang)
    company = invoice.company or Company()

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"{tr('pdf.invoice')} {invoice.number}",
    )
    width = doc.width

    styles = getSampleStyleSheet()
    name_style = ParagraphStyle("CompanyName", parent=styles["Heading2"], fontSize=14, spaceAfter=2 * mm)
    heading_style = ParagraphStyle(
        "SectionHeading", parent=styles["Heading3"], fontSize=11,
        spaceBefore=4 * mm, spaceAfter=2 * mm,
    )
    normal_style = ParagraphStyle("Body", parent=styles["Normal"], fontSize=10, leading=13)
    footer_style = ParagraphStyle("Footer", parent=normal_style, alignment=TA_CENTER)

    def para(text: str, style=normal_style) -> Paragraph:
        return Paragraph(escape(text).replace("\n", "<br/>"), style)

    elements = []

    # Header: logo, company name, address/tax id and contact columns
    left_lines = []
    if company.address:
        left_lines.append(company.address)
    if company.tax_id:
        left_lines.append(f"{tr('pdf.taxID')}: {company.tax_id}")
    right_lines = _contact_lines(company, tr)

    logo = _logo_flowable(company)
    info_width = width - (LOGO_SIZE + 5 * mm if logo else 0)
    info_table = Table(
        [
            [para(company.name, name_style), ""],
            [para("\n".join(left_lines)), para("\n".join(right_lines))],
        ],
        colWidths=[info_width / 2, info_width / 2],
    )
    info_table.setStyle(TableStyle([
        ("SPAN", (0, 0), (1, 0)),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    if logo:
        header = Table([[logo, info_table]], colWidths=[LOGO_SIZE + 5 * mm, info_width])
        header.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ]))
        elements.append(header)
    else:
        elements.append(info_table)
    elements.append(Spacer(1, 5 * mm))

    # Invoice number and issue date
    elements.append(Paragraph(escape(tr("pdf.invoice")), heading_style))
    meta_table = Table(
        [[f"{tr('pdf.invoiceNumber')}: {invoice.number}", f"{tr('pdf.date')}: {invoice.issue_date}"]],
        colWidths=[width / 2, width / 2],
    )
    meta_table.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    elements.append(meta_table)

    # Bill To
    elements.append(Paragraph(escape(tr("pdf.billTo")), heading_style))
    client = invoice.client
    if client is not None:
        elements.append(para(client.name))
        if client.address:
            elements.append(para(client.address))
        if client.tax_id:
            elements.append(para(client.tax_id))
    elements.append(Spacer(1, 4 * mm))

    # Items table
    col_widths = [width - 80 * mm, 20 * mm, 35 * mm, 25 * mm]
    table_data = [[tr("pdf.description"), tr("pdf.qty"), tr("pdf.unitPrice"), tr("pdf.total")]]
    for item in invoice.items:
        table_data.append([
            para(item.description),
            format_number(item.quantity),
            format_amount(item.unit_price),
            format_amount(item.total),
        ])
    items_table = Table(table_data, colWidths=col_widths, repeatRows=1)
    items_table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LINEABOVE", (0, 0), (-1, 0), 0.5, colors.black),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, colors.HexColor("#d1d5db")),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 2 * mm))

    # Totals
    totals_data = [
        [f"{tr('pdf.subtotal')}:", format_amount(invoice.subtotal)],
        [f"{tr('pdf.tax')} ({format_number(invoice.tax_rate)}%):", format_amount(invoice.tax_amount)],
    ]
    if invoice.discount_amount > 0:
        totals_data.append([f"{tr('pdf.discount')}:", f"-{format_amount(invoice.discount_amount)}"])
    totals_data.append([f"{tr('pdf.grandTotal')}:", format_money(invoice.currency, invoice.total)])

    totals_table = Table(totals_data, colWidths=[width - 45 * mm, 45 * mm])
    totals_table.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, -1), (-1, -1), 11),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
    ]))
    elements.append(totals_table)

    # Footer text closes the bill body, it is not a page footer
    footer_text = (invoice.footer_text or "").strip()
    if footer_text:
        elements.append(Spacer(1, 6 * mm))
        elements.append(para(footer_text, footer_style))

    doc.build(elements)
    return output_path


def export_invoice_pdf(
    db_path: Path,
    invoice_id: int,
    out_path: str | Path,
    lang: str = "",
    config_store: Optional[ConfigStore] = None,
) -> Path:
    """
    Load an invoice and write it as a PDF.

    Args:
        db_path: Path to the invoicing database
        invoice_id: Invoice to export
        out_path: Target file; ".pdf" is appended when missing
        lang: Language tag for labels; empty means the saved preference, then English

    Returns:
        The path actually written.
    """
    if not str(out_path).strip():
        raise InvalidDataError(AppErrors.EMPTY_OUTPUT_PATH)
    target = Path(out_path)
    if target.suffix.lower() != ".pdf":
        target = target.with_name(target.name + ".pdf")

    if not lang.strip():
        lang = (config_store or ConfigStore()).get_language()

    invoice = InvoicingRepository(db_path).get_invoice(invoice_id)
    render_invoice_pdf(invoice, target, lang)
    log.info("Exported invoice %s to %s", invoice_id, target)
    return target
