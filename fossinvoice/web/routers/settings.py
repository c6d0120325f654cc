"""Settings router - user language preference and database initialization."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fossinvoice.invoicing.pdf.i18n import SUPPORTED_LANGUAGES
from fossinvoice.invoicing.storage.database import init_database
from fossinvoice.web.dependencies import get_config_store, get_database_path

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/settings/language")
async def get_language():
    store = get_config_store()
    return {"language": store.get_language(), "supported": list(SUPPORTED_LANGUAGES)}


@router.put("/api/settings/language")
async def set_language(request: Request):
    body = await request.json()
    lang = str(body.get("language", "")).strip()
    if not lang:
        return JSONResponse({"error": "language is required."}, status_code=400)
    store = get_config_store()
    store.set_language(lang)
    log.info("PDF language preference set to %s", store.get_language())
    return {"language": store.get_language()}


@router.post("/api/database/init")
async def init_db():
    path = get_database_path()
    init_database(path)
    return {"status": "ok", "path": str(path)}
