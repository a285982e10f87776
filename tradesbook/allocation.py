"""
Payment Allocator - FIFO allocation of a job's payments to its invoices.

Payments are not reliably linked to the invoice they were meant for, so the
job's payments are pooled and consumed against invoices in issue order:

- invoices sorted by created_at ascending, ties by invoice_id
- invoices without created_at sort first
- each invoice consumes min(total, what is left of the pool)
- outstanding = max(0, total - consumed); is_paid = outstanding == 0

The result depends only on the inputs; calling twice gives identical states.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from .models import InvoiceFinancialState
from .normalize import Invoice, Payment

logger = logging.getLogger(__name__)

# Half a penny; smaller balances are rounding residue, not debt
MONEY_EPSILON = 0.005


def allocation_order(invoices: Iterable[Invoice]) -> list[Invoice]:
    """Invoices in the order they are paid off."""
    return sorted(invoices, key=lambda inv: (inv.created_at or datetime.min, inv.invoice_id))


def total_paid(payments: Iterable[Payment]) -> float:
    return sum(p.amount for p in payments)


def allocate(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
) -> dict[str, InvoiceFinancialState]:
    """
    Allocate pooled payments to invoices, earliest invoice first.

    Returns invoice_id -> InvoiceFinancialState in allocation order.
    Zero invoices gives an empty dict.
    """
    if not invoices:
        return {}

    pool = total_paid(payments)
    states: dict[str, InvoiceFinancialState] = {}

    for invoice in allocation_order(invoices):
        consumed = min(invoice.total, pool) if pool > 0 else 0.0
        outstanding = max(0.0, invoice.total - consumed)
        if 0 < outstanding < MONEY_EPSILON:
            # float residue from summing part-payments
            consumed, outstanding = invoice.total, 0.0
        pool = max(0.0, pool - consumed)
        states[invoice.invoice_id] = InvoiceFinancialState(
            invoice_id=invoice.invoice_id,
            number=invoice.number,
            total=invoice.total,
            amount_paid=consumed,
            outstanding=outstanding,
            is_paid=outstanding == 0,
            due_date=invoice.due_date,
        )

    if pool > 0:
        logger.debug(
            "Payments exceed invoiced total",
            extra={"unallocated_credit": pool, "invoice_count": len(invoices)},
        )
    return states


def unallocated_credit(invoices: Sequence[Invoice], payments: Sequence[Payment]) -> float:
    """Part of the payment pool left over after every invoice is paid off."""
    return max(0.0, total_paid(payments) - sum(inv.total for inv in invoices))
