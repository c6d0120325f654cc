"""
Invoicing entities: companies, clients, invoices, line items and defaults.

Plain value types. Reading and writing them is the job of the repositories in
this package; none of these classes touch the database.
"""
from dataclasses import dataclass, field
from typing import Optional


class InvoiceStatus:
    """Status labels offered by the invoice editor. Any string is stored as-is."""
    DRAFT = "Draft"
    PENDING = "Pending"
    SENT = "Sent"
    PAID = "Paid"
    VOID = "Void"


DEFAULT_CURRENCY = "USD"
DEFAULT_TAX_RATE = 0.0


@dataclass
class ContactInfo:
    """Optional contact channels, embedded into Company and Client."""
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None


@dataclass
class Company:
    """Seller profile."""
    id: int = 0
    name: str = ""
    address: str = ""
    tax_id: str = ""
    icon_b64: str = ""
    contact: ContactInfo = field(default_factory=ContactInfo)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Client:
    """Buyer profile, owned by exactly one company."""
    id: int = 0
    company_id: int = 0
    name: str = ""
    address: str = ""
    tax_id: str = ""
    contact: ContactInfo = field(default_factory=ContactInfo)
    created_at: str = ""
    updated_at: str = ""


@dataclass
class InvoiceItem:
    """Invoice line. total is computed by the caller and stored verbatim."""
    id: int = 0
    invoice_id: int = 0
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    total: float = 0.0
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Invoice:
    """
    Invoice header plus its ordered line items.

    Amounts are stored exactly as given; nothing is recomputed on write.
    company and client are only populated by single-invoice lookups.
    """
    id: int = 0
    company_id: int = 0
    client_id: int = 0
    number: int = 0
    issue_date: str = ""
    due_date: str = ""
    fiscal_year: int = 0
    currency: str = ""
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    discount_amount: float = 0.0
    total: float = 0.0
    status: str = InvoiceStatus.DRAFT
    notes: Optional[str] = None
    footer_text: str = ""
    items: list[InvoiceItem] = field(default_factory=list)
    company: Optional[Company] = None
    client: Optional[Client] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CompanyDefaults:
    """Per-company defaults used to prefill new invoices (one row per company)."""
    id: int = 0
    company_id: int = 0
    default_currency: str = DEFAULT_CURRENCY
    default_tax_rate: float = DEFAULT_TAX_RATE
    default_footer_text: str = ""
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CompaniesPage:
    items: list[Company]
    total: int


@dataclass
class ClientsPage:
    items: list[Client]
    total: int


@dataclass
class InvoicesPage:
    items: list[Invoice]
    total: int
