"""Invoices router - invoice CRUD, aggregates and PDF export."""
from dataclasses import asdict

from fastapi import APIRouter, Query, Request
from fastapi.responses import FileResponse, JSONResponse

from fossinvoice.invoicing.pdf.invoice_pdf import export_invoice_pdf
from fossinvoice.invoicing.storage.models import Invoice, InvoiceItem, InvoiceStatus
from fossinvoice.web.dependencies import (
    get_config_store,
    get_database_path,
    get_invoicing_repository,
    get_pdf_dir,
)
from fossinvoice.web.payload import as_float, as_int, as_list

router = APIRouter()


def _item_from_body(body: dict) -> InvoiceItem:
    return InvoiceItem(
        id=as_int(body, "id"),
        description=body.get("description") or "",
        quantity=as_float(body, "quantity"),
        unit_price=as_float(body, "unit_price"),
        total=as_float(body, "total"),
    )


def _invoice_from_body(body: dict, invoice_id: int = 0) -> Invoice:
    return Invoice(
        id=invoice_id,
        company_id=as_int(body, "company_id"),
        client_id=as_int(body, "client_id"),
        number=as_int(body, "number"),
        issue_date=body.get("issue_date") or "",
        due_date=body.get("due_date") or "",
        fiscal_year=as_int(body, "fiscal_year"),
        currency=body.get("currency") or "",
        subtotal=as_float(body, "subtotal"),
        tax_rate=as_float(body, "tax_rate"),
        tax_amount=as_float(body, "tax_amount"),
        discount_amount=as_float(body, "discount_amount"),
        total=as_float(body, "total"),
        status=body.get("status") or InvoiceStatus.DRAFT,
        notes=body.get("notes"),
        footer_text=body.get("footer_text") or "",
        items=[_item_from_body(i) for i in as_list(body, "items")],
    )


def _invoice_header_to_dict(inv: Invoice) -> dict:
    data = asdict(inv)
    for key in ("items", "company", "client"):
        data.pop(key)
    return data


# ── Listings & aggregates ──

@router.get("/api/companies/{company_id}/invoices")
async def list_invoices(
    company_id: int,
    fiscal_year: int = Query(default=0),
    client_id: int = Query(default=0),
):
    repo = get_invoicing_repository()
    invoices = repo.list_invoices(company_id, fiscal_year=fiscal_year, client_id=client_id)
    return [_invoice_header_to_dict(inv) for inv in invoices]


@router.get("/api/companies/{company_id}/invoices/paged")
async def list_invoices_paged(
    company_id: int,
    fiscal_year: int = Query(default=0),
    client_id: int = Query(default=0),
    limit: int = Query(default=0),
    offset: int = Query(default=0),
):
    repo = get_invoicing_repository()
    page = repo.list_invoices_paged(
        company_id, fiscal_year=fiscal_year, client_id=client_id, limit=limit, offset=offset,
    )
    return {"items": [_invoice_header_to_dict(inv) for inv in page.items], "total": page.total}


@router.get("/api/companies/{company_id}/clients/{client_id}/invoices")
async def list_client_invoices(
    company_id: int,
    client_id: int,
    fiscal_year: int = Query(default=0),
):
    repo = get_invoicing_repository()
    invoices = repo.list_client_invoices(company_id, client_id, fiscal_year=fiscal_year)
    return [_invoice_header_to_dict(inv) for inv in invoices]


@router.get("/api/companies/{company_id}/fiscal-years")
async def list_fiscal_years(company_id: int):
    repo = get_invoicing_repository()
    return repo.list_fiscal_years(company_id)


@router.get("/api/companies/{company_id}/max-invoice-number")
async def get_max_invoice_number(company_id: int):
    repo = get_invoicing_repository()
    return {"max_number": repo.get_max_invoice_number(company_id)}


# ── Invoices API ──

@router.post("/api/invoices")
async def create_invoice(request: Request):
    body = await request.json()
    for field in ("company_id", "client_id"):
        if not body.get(field):
            return JSONResponse({"error": f"{field} is required."}, status_code=400)
    repo = get_invoicing_repository()
    return asdict(repo.create_invoice(_invoice_from_body(body)))


@router.get("/api/invoices/{invoice_id}")
async def get_invoice(invoice_id: int):
    repo = get_invoicing_repository()
    return asdict(repo.get_invoice(invoice_id))


@router.put("/api/invoices/{invoice_id}")
async def update_invoice(invoice_id: int, request: Request):
    body = await request.json()
    repo = get_invoicing_repository()
    return asdict(repo.update_invoice(_invoice_from_body(body, invoice_id)))


@router.delete("/api/invoices/{invoice_id}")
async def delete_invoice(invoice_id: int):
    repo = get_invoicing_repository()
    if not repo.delete_invoice(invoice_id):
        return JSONResponse({"error": "Invoice not found."}, status_code=404)
    return {"status": "ok"}


# ── PDF export ──

@router.post("/api/invoices/{invoice_id}/export-pdf")
async def export_pdf(invoice_id: int, request: Request):
    """Write the invoice PDF to a caller-chosen path on the server's disk."""
    body = await request.json()
    path = export_invoice_pdf(
        get_database_path(),
        invoice_id,
        body.get("out_path", ""),
        lang=body.get("lang", ""),
        config_store=get_config_store(),
    )
    return {"path": str(path)}


@router.get("/api/invoices/{invoice_id}/pdf")
async def download_pdf(invoice_id: int, lang: str = Query(default="")):
    path = export_invoice_pdf(
        get_database_path(),
        invoice_id,
        get_pdf_dir() / f"invoice_{invoice_id}.pdf",
        lang=lang,
        config_store=get_config_store(),
    )
    return FileResponse(path=str(path), filename=path.name, media_type="application/pdf")
