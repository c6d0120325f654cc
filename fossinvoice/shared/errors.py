"""
Shared error types and messages for the invoicing engine.

User-visible errors must be clear and actionable.
"""


class AppErrors:
    """Centralized actionable error messages."""

    MISSING_KEY = (
        "Missing primary key. Load the record before updating it."
    )

    CLIENT_COMPANY_MISMATCH = (
        "Client does not belong to the invoice's company. Pick a client of the same company."
    )

    EMPTY_OUTPUT_PATH = (
        "Output path is empty. Choose where to save the PDF."
    )


class InvoicingError(Exception):
    """Base class for errors raised by the invoicing engine."""


class MissingKeyError(InvoicingError):
    """An update was requested for a record without an identifier."""

    def __init__(self, message: str = AppErrors.MISSING_KEY):
        super().__init__(message)


class InvalidDataError(InvoicingError):
    """Input violates a relationship or format rule."""


class NotFoundError(InvoicingError):
    """A lookup by identifier matched no row."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found.")
