"""Translated labels for invoice PDFs."""
from typing import Callable

SUPPORTED_LANGUAGES = ("en", "es", "it")

LABELS: dict[str, dict[str, str]] = {
    "en": {
        "pdf.taxID": "Tax ID",
        "pdf.email": "Email",
        "pdf.phone": "Phone",
        "pdf.website": "Website",
        "pdf.invoice": "Invoice",
        "pdf.invoiceNumber": "Invoice #",
        "pdf.date": "Date",
        "pdf.billTo": "Bill To",
        "pdf.description": "Description",
        "pdf.qty": "Qty",
        "pdf.unitPrice": "Unit Price",
        "pdf.total": "Total",
        "pdf.subtotal": "Subtotal",
        "pdf.tax": "Tax",
        "pdf.discount": "Discount",
        "pdf.grandTotal": "Total",
    },
    "es": {
        "pdf.taxID": "NIF/CIF",
        "pdf.email": "Correo",
        "pdf.phone": "Teléfono",
        "pdf.website": "Sitio web",
        "pdf.invoice": "Factura",
        "pdf.invoiceNumber": "N. factura",
        "pdf.date": "Fecha",
        "pdf.billTo": "Facturar a",
        "pdf.description": "Descripción",
        "pdf.qty": "Cant.",
        "pdf.unitPrice": "Precio unit.",
        "pdf.total": "Total",
        "pdf.subtotal": "Subtotal",
        "pdf.tax": "Impuesto",
        "pdf.discount": "Descuento",
        "pdf.grandTotal": "Total",
    },
    "it": {
        "pdf.taxID": "N. partita IVA",
        "pdf.email": "Email",
        "pdf.phone": "Telefono",
        "pdf.website": "Sito web",
        "pdf.invoice": "Fattura",
        "pdf.invoiceNumber": "N. fattura",
        "pdf.date": "Data",
        "pdf.billTo": "Fatturato a",
        "pdf.description": "Descrizione",
        "pdf.qty": "Qtà.",
        "pdf.unitPrice": "Prezzo uni.",
        "pdf.total": "Totale",
        "pdf.subtotal": "Subtotale",
        "pdf.tax": "IVA",
        "pdf.discount": "Sconto",
        "pdf.grandTotal": "Totale",
    },
}


def normalize_language(lang: str | None) -> str:
    """Map a tag like "es-ES" to a supported base code, "en" when unknown."""
    tag = (lang or "").strip().lower()
    for code in SUPPORTED_LANGUAGES:
        if tag.startswith(code):
            return code
    return "en"


def translate(lang: str | None, key: str) -> str:
    """Label for key in lang, falling back to English and then to the key."""
    base = normalize_language(lang)
    if key in LABELS[base]:
        return LABELS[base][key]
    return LABELS["en"].get(key, key)


def translator(lang: str | None) -> Callable[[str], str]:
    return lambda key: translate(lang, key)
