"""
Status Indicator Generator - one "needs attention" badge per job.

Each job's classified, allocated invoices produce candidate indicators; the
most urgent candidate represents the job. The combined list is sorted by
IndicatorKind priority, then job title (case-sensitive), then job_id, so the
first entry is always the most urgent item for the client.
"""

import logging
from collections.abc import Iterable

from .allocation import MONEY_EPSILON
from .classify import rollup_kind
from .models import (
    Indicator,
    IndicatorKind,
    InvoiceFinancialState,
    InvoiceKind,
    JobFinancialState,
    JobStatus,
)

logger = logging.getLogger(__name__)

PRIORITY: dict[IndicatorKind, int] = {kind: rank for rank, kind in enumerate(IndicatorKind)}

LABELS: dict[IndicatorKind, str] = {
    IndicatorKind.OVERDUE: "Full Invoice Overdue",
    IndicatorKind.DEPOSIT_OVERDUE: "Deposit Overdue",
    IndicatorKind.REMAINING_OVERDUE: "Balance Overdue",
    IndicatorKind.FULL_UNPAID: "Full Invoice Sent",
    IndicatorKind.DEPOSIT_SENT: "Deposit Sent",
    IndicatorKind.REMAINING_SENT: "Balance Sent",
    IndicatorKind.DEPOSIT_PAID: "Deposit Paid",
    IndicatorKind.FULLY_PAID: "Fully Paid",
}

SEVERITY: dict[IndicatorKind, str] = {
    IndicatorKind.OVERDUE: "critical",
    IndicatorKind.DEPOSIT_OVERDUE: "critical",
    IndicatorKind.REMAINING_OVERDUE: "critical",
    IndicatorKind.FULL_UNPAID: "warning",
    IndicatorKind.DEPOSIT_SENT: "warning",
    IndicatorKind.REMAINING_SENT: "warning",
    IndicatorKind.DEPOSIT_PAID: "info",
    IndicatorKind.FULLY_PAID: "success",
}


def _indicator(
    state: JobFinancialState,
    kind: IndicatorKind,
    target: InvoiceFinancialState | None = None,
) -> Indicator:
    title = state.job_title or "Untitled Job"
    return Indicator(
        job_id=state.job_id,
        job_title=title,
        kind=kind,
        text=f"{title} - {LABELS[kind]}",
        severity=SEVERITY[kind],
        target_invoice_id=target.invoice_id if target else None,
    )


def _first(invoices: list[InvoiceFinancialState], overdue: bool) -> InvoiceFinancialState | None:
    for inv in invoices:
        if inv.is_overdue == overdue:
            return inv
    return None


def job_candidates(state: JobFinancialState) -> list[Indicator]:
    """Every indicator that applies to one job, unordered."""
    invoices = state.invoices
    if not invoices:
        return []
    if state.status == JobStatus.FULLY_PAID:
        return [_indicator(state, IndicatorKind.FULLY_PAID)]

    by_kind: dict[InvoiceKind, list[InvoiceFinancialState]] = {
        InvoiceKind.FULL: [],
        InvoiceKind.DEPOSIT: [],
        InvoiceKind.REMAINING: [],
    }
    for inv in invoices:
        by_kind[rollup_kind(inv.kind or InvoiceKind.CUSTOM)].append(inv)

    full = by_kind[InvoiceKind.FULL]
    if full:
        unpaid_full = [inv for inv in full if not inv.is_paid]
        if not unpaid_full:
            return [_indicator(state, IndicatorKind.FULLY_PAID)]
        overdue = _first(unpaid_full, overdue=True)
        if overdue:
            return [_indicator(state, IndicatorKind.OVERDUE, overdue)]
        return [_indicator(state, IndicatorKind.FULL_UNPAID, unpaid_full[0])]

    deposits = by_kind[InvoiceKind.DEPOSIT]
    remaining = by_kind[InvoiceKind.REMAINING]
    unpaid_deposits = [inv for inv in deposits if not inv.is_paid]
    paid_deposits = [inv for inv in deposits if inv.is_paid]
    unpaid_remaining = [inv for inv in remaining if not inv.is_paid]

    if (
        state.total_value > 0
        and state.total_paid >= state.total_value - MONEY_EPSILON
        and not unpaid_deposits
        and not unpaid_remaining
    ):
        return [_indicator(state, IndicatorKind.FULLY_PAID)]

    if paid_deposits and not unpaid_deposits and not remaining:
        # remaining invoice not issued yet
        return [_indicator(state, IndicatorKind.DEPOSIT_PAID)]

    candidates = []
    for kind, pool, overdue in (
        (IndicatorKind.DEPOSIT_OVERDUE, unpaid_deposits, True),
        (IndicatorKind.REMAINING_OVERDUE, unpaid_remaining, True),
        (IndicatorKind.DEPOSIT_SENT, unpaid_deposits, False),
        (IndicatorKind.REMAINING_SENT, unpaid_remaining, False),
    ):
        target = _first(pool, overdue)
        if target:
            candidates.append(_indicator(state, kind, target))
    if paid_deposits and unpaid_remaining:
        candidates.append(_indicator(state, IndicatorKind.DEPOSIT_PAID, paid_deposits[0]))
    return candidates


def sort_indicators(indicators: Iterable[Indicator]) -> list[Indicator]:
    return sorted(indicators, key=lambda i: (PRIORITY[i.kind], i.job_title, i.job_id))


def generate(job_states: Iterable[JobFinancialState]) -> list[Indicator]:
    """One indicator per job that needs one, most urgent first."""
    chosen = []
    for state in job_states:
        candidates = job_candidates(state)
        if candidates:
            chosen.append(sort_indicators(candidates)[0])
    return sort_indicators(chosen)
