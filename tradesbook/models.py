"""
Derived financial state types.

None of these are stored. They are rebuilt from a snapshot on every call and
exposed through to_dict() as plain JSON-native structures, so list screens,
job screens, client screens and document exports all read the same figures.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from .errors import DegradedComputationWarning


class InvoiceKind(StrEnum):
    """Invoice category, used for indicator wording and urgency only."""

    DEPOSIT = "deposit"
    REMAINING = "remaining"
    FULL = "full"
    CUSTOM = "custom"


class InvoiceDisplayStatus(StrEnum):
    """Status shown for an invoice in lists and on documents."""

    DRAFT = "draft"
    SENT = "sent"
    PART_PAID = "part_paid"
    PAID = "paid"
    OVERDUE = "overdue"


class JobStatus(StrEnum):
    """Payment status of a job. Exhaustive."""

    NOT_INVOICED = "not_invoiced"
    PENDING = "pending"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    DEPOSIT_PAID = "deposit_paid"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"


class IndicatorKind(StrEnum):
    """Indicator types. Declaration order is display priority."""

    OVERDUE = "job-overdue"
    DEPOSIT_OVERDUE = "job-deposit-overdue"
    REMAINING_OVERDUE = "job-remaining-overdue"
    FULL_UNPAID = "job-full-unpaid"
    DEPOSIT_SENT = "job-deposit-sent"
    REMAINING_SENT = "job-remaining-sent"
    DEPOSIT_PAID = "job-deposit-paid"
    FULLY_PAID = "job-fully-paid"


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class InvoiceFinancialState:
    """Allocation result for one invoice."""

    invoice_id: str
    total: float
    amount_paid: float
    outstanding: float
    is_paid: bool
    number: str | None = None
    kind: InvoiceKind | None = None
    due_date: date | None = None
    days_until_due: int | None = None
    is_overdue: bool = False
    display_status: InvoiceDisplayStatus | None = None

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "number": self.number,
            "total": self.total,
            "amount_paid": self.amount_paid,
            "outstanding": self.outstanding,
            "is_paid": self.is_paid,
            "kind": self.kind.value if self.kind else None,
            "due_date": _iso(self.due_date),
            "days_until_due": self.days_until_due,
            "is_overdue": self.is_overdue,
            "display_status": self.display_status.value if self.display_status else None,
        }


@dataclass
class JobFinancialState:
    """Payment status and balances for one job."""

    job_id: str
    status: JobStatus
    outstanding_amount: float
    total_value: float
    job_title: str = ""
    client_id: str | None = None
    total_paid: float = 0.0
    total_invoiced: float = 0.0
    due_date: date | None = None
    days_until_due: int | None = None
    invoices: list[InvoiceFinancialState] = field(default_factory=list)

    # Set when the entry point fell back instead of computing
    fallback: bool = False
    error: str | None = None

    @property
    def has_balance(self) -> bool:
        return self.outstanding_amount > 0

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "job_title": self.job_title,
            "client_id": self.client_id,
            "status": self.status.value,
            "outstanding_amount": self.outstanding_amount,
            "total_value": self.total_value,
            "total_paid": self.total_paid,
            "total_invoiced": self.total_invoiced,
            "due_date": _iso(self.due_date),
            "days_until_due": self.days_until_due,
            "invoices": [inv.to_dict() for inv in self.invoices],
            "fallback": self.fallback,
            "error": self.error,
        }


@dataclass
class ClientFinancialSummary:
    """Client-level rollup of job states and payments."""

    total_outstanding: float = 0.0
    total_paid: float = 0.0
    total_value: float = 0.0
    job_count: int = 0
    active_jobs_with_balance: int = 0
    last_payment_date: date | None = None
    jobs: list[JobFinancialState] = field(default_factory=list)

    degraded: bool = False
    timed_out: bool = False
    fallback: bool = False
    error: str | None = None
    warnings: list[DegradedComputationWarning] = field(default_factory=list)
    excluded_records: int = 0

    @classmethod
    def zeroed(cls, job_count: int = 0, **flags) -> "ClientFinancialSummary":
        """Fallback summary with every figure at zero."""
        return cls(job_count=job_count, **flags)

    def to_dict(self) -> dict:
        return {
            "total_outstanding": self.total_outstanding,
            "total_paid": self.total_paid,
            "total_value": self.total_value,
            "job_count": self.job_count,
            "active_jobs_with_balance": self.active_jobs_with_balance,
            "last_payment_date": _iso(self.last_payment_date),
            "jobs": [job.to_dict() for job in self.jobs],
            "degraded": self.degraded,
            "timed_out": self.timed_out,
            "fallback": self.fallback,
            "error": self.error,
            "warnings": [w.to_dict() for w in self.warnings],
            "excluded_records": self.excluded_records,
        }


@dataclass
class Indicator:
    """One "needs attention" badge for a job."""

    job_id: str
    job_title: str
    kind: IndicatorKind
    text: str
    severity: str
    target_invoice_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "job_title": self.job_title,
            "kind": self.kind.value,
            "text": self.text,
            "severity": self.severity,
            "target_invoice_id": self.target_invoice_id,
        }
