"""
Status Engine - per-job payment status.

Status is a pure function of the job's allocation result and its value,
re-evaluated on every call; there is no stored state machine.

    no invoices                      -> NOT_INVOICED
    job value == 0                   -> NOT_INVOICED
    paid >= job value (to half a penny) -> FULLY_PAID
    paid > 0, nothing outstanding    -> DEPOSIT_PAID
    paid > 0, something outstanding  -> PARTIALLY_PAID
    nothing paid, something owed:
        nearest unpaid due date passed      -> OVERDUE
        due within DUE_SOON_DAYS            -> DUE_SOON
        later, or no due date               -> PENDING
    nothing paid, nothing owed       -> NOT_INVOICED

Job value is the contract value, or the total invoiced when the job carries
no contract value.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime

from . import config
from .allocation import MONEY_EPSILON, allocate, total_paid
from .classify import classify_all, job_value
from .config import EngineThresholds
from .invoice_status import derive_invoice_display_status
from .models import JobFinancialState, JobStatus
from .normalize import Invoice, Job, Payment

logger = logging.getLogger(__name__)

Clock = datetime | date | Callable[[], datetime | date] | None


def _wall_clock() -> datetime:
    return datetime.now()


def resolve_today(now: Clock = None) -> date:
    """Turn an injected clock (value, callable or None) into today's date."""
    if callable(now):
        now = now()
    if now is None:
        now = _wall_clock()
    if isinstance(now, datetime):
        return now.date()
    return now


def derive_job_status(
    invoice_count: int,
    paid: float,
    outstanding: float,
    value: float,
    days_until_due: int | None,
    due_soon_days: int | None = None,
) -> JobStatus:
    """Apply the status rule to already-computed figures."""
    if invoice_count == 0:
        return JobStatus.NOT_INVOICED
    if value <= 0:
        return JobStatus.NOT_INVOICED
    if paid >= value - MONEY_EPSILON:
        return JobStatus.FULLY_PAID
    if paid > 0 and outstanding == 0:
        # issued invoices are covered but the contract is not fully invoiced yet
        return JobStatus.DEPOSIT_PAID
    if paid > 0 and outstanding > 0:
        return JobStatus.PARTIALLY_PAID
    if outstanding > 0:
        if days_until_due is None:
            return JobStatus.PENDING
        if days_until_due < 0:
            return JobStatus.OVERDUE
        window = config.DUE_SOON_DAYS if due_soon_days is None else due_soon_days
        if days_until_due <= window:
            return JobStatus.DUE_SOON
        return JobStatus.PENDING
    # nothing paid and nothing owed: only zero-total invoices issued
    return JobStatus.NOT_INVOICED


def build_job_state(
    job: Job,
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    now: Clock = None,
    thresholds: EngineThresholds | None = None,
) -> JobFinancialState:
    """
    Compute one job's financial state.

    invoices and payments must already be narrowed to this job.
    """
    thresholds = thresholds or EngineThresholds()
    today = resolve_today(now)

    states = allocate(invoices, payments)
    kinds = classify_all(invoices, job.contract_value, thresholds.full_invoice_ratio)

    raw_statuses = {inv.invoice_id: inv.raw_status for inv in invoices}
    for state in states.values():
        state.kind = kinds[state.invoice_id]
        if state.due_date is not None:
            state.days_until_due = (state.due_date - today).days
            state.is_overdue = not state.is_paid and state.due_date < today
        state.display_status = derive_invoice_display_status(
            state, raw_statuses.get(state.invoice_id), today
        )

    paid = total_paid(payments)
    outstanding = sum(state.outstanding for state in states.values())
    value = job_value(job.contract_value, invoices)

    due_date = None
    days_until_due = None
    if outstanding > 0:
        unpaid_due = [s.due_date for s in states.values() if not s.is_paid and s.due_date]
        if unpaid_due:
            due_date = min(unpaid_due)
            days_until_due = (due_date - today).days

    status = derive_job_status(
        invoice_count=len(states),
        paid=paid,
        outstanding=outstanding,
        value=value,
        days_until_due=days_until_due,
        due_soon_days=thresholds.due_soon_days,
    )

    logger.debug(
        "Job status derived",
        extra={"job_id": job.job_id, "status": status.value, "outstanding": outstanding},
    )

    return JobFinancialState(
        job_id=job.job_id,
        job_title=job.title,
        client_id=job.client_id,
        status=status,
        outstanding_amount=outstanding,
        total_value=value,
        total_paid=paid,
        total_invoiced=sum(inv.total for inv in invoices),
        due_date=due_date,
        days_until_due=days_until_due,
        invoices=list(states.values()),
    )


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================

STATUS_LABELS = {
    JobStatus.OVERDUE: "OVERDUE",
    JobStatus.DUE_SOON: "DUE SOON",
    JobStatus.PENDING: "AWAITING PAYMENT",
    JobStatus.DEPOSIT_PAID: "DEPOSIT PAID",
    JobStatus.PARTIALLY_PAID: "PARTIALLY PAID",
    JobStatus.FULLY_PAID: "FULLY PAID",
    JobStatus.NOT_INVOICED: "NOT INVOICED",
}

# Client view ordering: most urgent first
CLIENT_VIEW_ORDER = {
    JobStatus.OVERDUE: 0,
    JobStatus.DUE_SOON: 1,
    JobStatus.PENDING: 2,
    JobStatus.DEPOSIT_PAID: 3,
    JobStatus.PARTIALLY_PAID: 4,
    JobStatus.FULLY_PAID: 5,
    JobStatus.NOT_INVOICED: 6,
}


def status_label(status: JobStatus, days_until_due: int | None = None) -> str:
    """Caption shown next to a job, e.g. 'OVERDUE (3 days)'."""
    label = STATUS_LABELS[status]
    if status in (JobStatus.OVERDUE, JobStatus.DUE_SOON) and days_until_due:
        return f"{label} ({abs(days_until_due)} days)"
    return label


def sort_jobs_for_client_view(states: Iterable[JobFinancialState]) -> list[JobFinancialState]:
    """
    Order jobs for the client screen.

    By status urgency; overdue and due-soon jobs by days until due, the rest
    by outstanding amount descending; job_id breaks remaining ties.
    """

    def key(state: JobFinancialState):
        urgent = state.status in (JobStatus.OVERDUE, JobStatus.DUE_SOON)
        days = state.days_until_due if urgent and state.days_until_due is not None else 0
        return (CLIENT_VIEW_ORDER[state.status], days, -state.outstanding_amount, state.job_id)

    return sorted(states, key=key)
