"""
Dependency injection for FastAPI routes.
"""
import os
from pathlib import Path

from fossinvoice.invoicing.storage.defaults_repository import CompanyDefaultsRepository
from fossinvoice.invoicing.storage.invoicing_repository import InvoicingRepository
from fossinvoice.shared.app_config import ConfigStore

DATA_ROOT = Path(os.environ.get("FOSSINVOICE_DATA_ROOT", "./data"))


def get_database_path() -> Path:
    """Database file used by the API: FOSSINVOICE_DB_PATH or <data root>/invoices.sqlite."""
    explicit = os.environ.get("FOSSINVOICE_DB_PATH")
    if explicit:
        return Path(explicit)
    DATA_ROOT.mkdir(parents=True, exist_ok=True)
    return DATA_ROOT / "invoices.sqlite"


def get_pdf_dir() -> Path:
    return DATA_ROOT / "pdf"


def get_invoicing_repository() -> InvoicingRepository:
    return InvoicingRepository(get_database_path())


def get_defaults_repository() -> CompanyDefaultsRepository:
    return CompanyDefaultsRepository(get_database_path())


def get_config_store() -> ConfigStore:
    return ConfigStore()
