"""Companies router - companies, their clients and their invoice defaults."""
from dataclasses import asdict

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from fossinvoice.invoicing.storage.models import Client, Company, CompanyDefaults, ContactInfo
from fossinvoice.web.dependencies import get_defaults_repository, get_invoicing_repository
from fossinvoice.web.payload import as_float

router = APIRouter()


def _contact_from_body(body: dict) -> ContactInfo:
    contact = body.get("contact") or {}
    return ContactInfo(
        email=contact.get("email"),
        phone=contact.get("phone"),
        website=contact.get("website"),
    )


def _company_from_body(body: dict, company_id: int = 0) -> Company:
    return Company(
        id=company_id,
        name=body.get("name", ""),
        address=body.get("address", ""),
        tax_id=body.get("tax_id", ""),
        icon_b64=body.get("icon_b64", ""),
        contact=_contact_from_body(body),
    )


def _client_from_body(body: dict, client_id: int = 0) -> Client:
    return Client(
        id=client_id,
        name=body.get("name", ""),
        address=body.get("address", ""),
        tax_id=body.get("tax_id", ""),
        contact=_contact_from_body(body),
    )


# ── Companies API ──

@router.get("/api/companies")
async def list_companies():
    repo = get_invoicing_repository()
    return [asdict(c) for c in repo.list_companies()]


@router.get("/api/companies/paged")
async def list_companies_paged(
    limit: int = Query(default=0),
    offset: int = Query(default=0),
):
    repo = get_invoicing_repository()
    return asdict(repo.list_companies_paged(limit=limit, offset=offset))


@router.post("/api/companies")
async def create_company(request: Request):
    body = await request.json()
    if not str(body.get("name", "")).strip():
        return JSONResponse({"error": "name is required."}, status_code=400)
    repo = get_invoicing_repository()
    return asdict(repo.create_company(_company_from_body(body)))


@router.get("/api/companies/{company_id}")
async def get_company(company_id: int):
    repo = get_invoicing_repository()
    return asdict(repo.get_company(company_id))


@router.put("/api/companies/{company_id}")
async def update_company(company_id: int, request: Request):
    body = await request.json()
    repo = get_invoicing_repository()
    return asdict(repo.update_company(_company_from_body(body, company_id)))


@router.delete("/api/companies/{company_id}")
async def delete_company(company_id: int):
    repo = get_invoicing_repository()
    if not repo.delete_company(company_id):
        return JSONResponse({"error": "Company not found."}, status_code=404)
    return {"status": "ok"}


# ── Clients API ──

@router.get("/api/companies/{company_id}/clients")
async def list_clients(company_id: int):
    repo = get_invoicing_repository()
    return [asdict(c) for c in repo.list_clients(company_id)]


@router.get("/api/companies/{company_id}/clients/paged")
async def list_clients_paged(
    company_id: int,
    limit: int = Query(default=0),
    offset: int = Query(default=0),
):
    repo = get_invoicing_repository()
    return asdict(repo.list_clients_paged(company_id, limit=limit, offset=offset))


@router.post("/api/companies/{company_id}/clients")
async def create_client(company_id: int, request: Request):
    body = await request.json()
    if not str(body.get("name", "")).strip():
        return JSONResponse({"error": "name is required."}, status_code=400)
    repo = get_invoicing_repository()
    return asdict(repo.create_client(company_id, _client_from_body(body)))


@router.get("/api/clients/{client_id}")
async def get_client(client_id: int):
    repo = get_invoicing_repository()
    return asdict(repo.get_client(client_id))


@router.put("/api/clients/{client_id}")
async def update_client(client_id: int, request: Request):
    body = await request.json()
    repo = get_invoicing_repository()
    return asdict(repo.update_client(_client_from_body(body, client_id)))


@router.delete("/api/clients/{client_id}")
async def delete_client(client_id: int):
    repo = get_invoicing_repository()
    if not repo.delete_client(client_id):
        return JSONResponse({"error": "Client not found."}, status_code=404)
    return {"status": "ok"}


# ── Defaults API ──

@router.get("/api/companies/{company_id}/defaults")
async def get_company_defaults(company_id: int):
    repo = get_defaults_repository()
    return asdict(repo.get_company_defaults(company_id))


@router.put("/api/companies/{company_id}/defaults")
async def update_company_defaults(company_id: int, request: Request):
    body = await request.json()
    repo = get_defaults_repository()
    defaults = CompanyDefaults(
        company_id=company_id,
        default_currency=body.get("default_currency", ""),
        default_tax_rate=as_float(body, "default_tax_rate"),
        default_footer_text=body.get("default_footer_text", ""),
    )
    return asdict(repo.update_company_defaults(defaults))
