"""
Invoice display status for invoice lists and documents.

The stored invoice status string is unreliable (it is written by whichever
screen last touched the invoice), so the displayed status is derived from
the allocation result. The stored string only decides "draft".
"""

from datetime import date

from .models import InvoiceDisplayStatus, InvoiceFinancialState


def normalize_raw_status(raw_status: str | None) -> InvoiceDisplayStatus | None:
    """Map legacy status strings onto the display vocabulary."""
    if not raw_status:
        return None
    lowered = raw_status.strip().lower()
    if "part-paid" in lowered or "part_paid" in lowered or "partial" in lowered:
        return InvoiceDisplayStatus.PART_PAID
    if "unpaid" in lowered:
        return InvoiceDisplayStatus.SENT
    if "paid" in lowered:
        return InvoiceDisplayStatus.PAID
    if "draft" in lowered:
        return InvoiceDisplayStatus.DRAFT
    if "overdue" in lowered:
        return InvoiceDisplayStatus.OVERDUE
    if "sent" in lowered or "pending" in lowered:
        return InvoiceDisplayStatus.SENT
    return None


def derive_invoice_display_status(
    state: InvoiceFinancialState,
    raw_status: str | None = None,
    today: date | None = None,
) -> InvoiceDisplayStatus:
    """
    Status to show for one invoice.

    paid > overdue > part-paid > draft > sent.
    """
    if state.outstanding == 0:
        return InvoiceDisplayStatus.PAID
    today = today or date.today()
    if state.due_date is not None and state.due_date < today:
        return InvoiceDisplayStatus.OVERDUE
    if state.amount_paid > 0:
        return InvoiceDisplayStatus.PART_PAID
    if normalize_raw_status(raw_status) == InvoiceDisplayStatus.DRAFT:
        return InvoiceDisplayStatus.DRAFT
    return InvoiceDisplayStatus.SENT
