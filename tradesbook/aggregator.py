"""
Financial Aggregator - client-level rollup.

Two paths:

- aggregate(): from per-job states. total_outstanding is the sum of
  per-invoice outstanding, never total_value - total_paid, which would
  understate risk whenever part of a job has not been invoiced yet.
- aggregate_simplified(): for snapshots above the size thresholds. Payments
  are still pooled per job and allocated, but classification, status and
  indicators are skipped; there is no per-job breakdown and the result is
  flagged degraded.

total_paid is always the sum of payment records, never derived.
"""

import logging
from collections.abc import Sequence
from datetime import date

from .allocation import allocate
from .config import EngineThresholds
from .errors import DegradedComputationWarning
from .models import ClientFinancialSummary, JobFinancialState
from .normalize import Invoice, Job, Payment
from .status_engine import sort_jobs_for_client_view

logger = logging.getLogger(__name__)


def exceeds_thresholds(job_count: int, invoice_count: int, thresholds: EngineThresholds) -> bool:
    return job_count > thresholds.max_jobs or invoice_count > thresholds.max_invoices


def last_payment_date(
    job_states: Sequence[JobFinancialState],
    payments: Sequence[Payment],
) -> date | None:
    """Latest payment date among payments linked to invoices that are paid off."""
    paid_invoice_ids = {
        inv.invoice_id for state in job_states for inv in state.invoices if inv.is_paid
    }
    dates = [
        p.date for p in payments if p.date is not None and p.invoice_id in paid_invoice_ids
    ]
    return max(dates) if dates else None


def aggregate(
    job_states: Sequence[JobFinancialState],
    payments: Sequence[Payment],
) -> ClientFinancialSummary:
    """Roll job states and the client's payments up into one summary."""
    total_paid = sum(p.amount for p in payments)
    total_outstanding = sum(state.outstanding_amount for state in job_states)
    total_value = sum(state.total_value for state in job_states)
    if total_value <= 0:
        total_value = total_outstanding + total_paid

    return ClientFinancialSummary(
        total_outstanding=total_outstanding,
        total_paid=total_paid,
        total_value=total_value,
        job_count=len(job_states),
        active_jobs_with_balance=sum(1 for state in job_states if state.has_balance),
        last_payment_date=last_payment_date(job_states, payments),
        jobs=sort_jobs_for_client_view(job_states),
    )


def aggregate_simplified(
    jobs: Sequence[Job],
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
) -> ClientFinancialSummary:
    """
    Rollup without classification, status or per-job states.

    Each job's payments are pooled and allocated across its invoices exactly
    as on the full path, so total_outstanding agrees with aggregate().
    Invoices of jobs outside the snapshot are left out.
    """
    job_ids = {job.job_id for job in jobs}
    invoices_by_job: dict[str, list[Invoice]] = {}
    job_of_invoice: dict[str, str] = {}
    for inv in invoices:
        if inv.job_id in job_ids:
            invoices_by_job.setdefault(inv.job_id, []).append(inv)
            job_of_invoice[inv.invoice_id] = inv.job_id

    payments_by_job: dict[str, list[Payment]] = {}
    for p in payments:
        if p.invoice_id is not None:
            job_id = job_of_invoice.get(p.invoice_id)
        else:
            job_id = p.job_id if p.job_id in job_ids else None
        if job_id is not None:
            payments_by_job.setdefault(job_id, []).append(p)

    total_outstanding = 0.0
    active_jobs_with_balance = 0
    paid_invoice_ids = set()
    for job_id, job_invoices in invoices_by_job.items():
        states = allocate(job_invoices, payments_by_job.get(job_id, []))
        outstanding = sum(state.outstanding for state in states.values())
        total_outstanding += outstanding
        if outstanding > 0:
            active_jobs_with_balance += 1
        paid_invoice_ids.update(s.invoice_id for s in states.values() if s.is_paid)

    total_paid = sum(p.amount for p in payments)
    total_value = sum(job.contract_value for job in jobs)
    if total_value <= 0:
        total_value = total_outstanding + total_paid

    dates = [p.date for p in payments if p.date is not None and p.invoice_id in paid_invoice_ids]

    warning = DegradedComputationWarning(
        f"Snapshot of {len(jobs)} jobs / {len(invoices)} invoices exceeds precision "
        "thresholds; per-job breakdown skipped",
        job_count=len(jobs),
        invoice_count=len(invoices),
    )
    logger.warning(
        str(warning), extra={"job_count": len(jobs), "invoice_count": len(invoices)}
    )

    return ClientFinancialSummary(
        total_outstanding=total_outstanding,
        total_paid=total_paid,
        total_value=total_value,
        job_count=len(jobs),
        active_jobs_with_balance=active_jobs_with_balance,
        last_payment_date=max(dates) if dates else None,
        jobs=[],
        degraded=True,
        warnings=[warning],
    )
