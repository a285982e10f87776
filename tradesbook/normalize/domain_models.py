"""
Domain Models - Canonical Types for Normalized Records.

These are the closed, typed records produced by the normalizer and consumed by
every later stage. Field-name ambiguity never gets past this module.

- Monetary amounts are floats in the business currency.
- Dates are `date`; creation timestamps are naive UTC `datetime`.
- NormalizationStats counts every excluded record with its reason.
"""

from dataclasses import dataclass, field
import datetime as dt

# =============================================================================
# NORMALIZATION STATS
# =============================================================================


@dataclass
class NormalizationStats:
    """
    Counts computed while normalizing a snapshot.

    Excluded records never reach the allocator; these counts let the caller
    see how much of the snapshot was dropped and why.
    """

    seen: dict[str, int] = field(default_factory=dict)
    accepted: dict[str, int] = field(default_factory=dict)
    excluded_reasons: dict[str, int] = field(default_factory=dict)
    excluded_ids: list[str] = field(default_factory=list)

    def record_accepted(self, record_type: str) -> None:
        self.seen[record_type] = self.seen.get(record_type, 0) + 1
        self.accepted[record_type] = self.accepted.get(record_type, 0) + 1

    def record_excluded(self, record_type: str, reason: str, record_id: str | None) -> None:
        self.seen[record_type] = self.seen.get(record_type, 0) + 1
        key = f"{record_type}:{reason}"
        self.excluded_reasons[key] = self.excluded_reasons.get(key, 0) + 1
        if record_id:
            self.excluded_ids.append(f"{record_type}:{record_id}")

    @property
    def excluded_total(self) -> int:
        return sum(self.excluded_reasons.values())

    def to_dict(self) -> dict:
        return {
            "seen": dict(self.seen),
            "accepted": dict(self.accepted),
            "excluded_total": self.excluded_total,
            "excluded_reasons": dict(self.excluded_reasons),
            "excluded_ids": list(self.excluded_ids),
        }


# =============================================================================
# DOMAIN MODELS
# =============================================================================


@dataclass(frozen=True)
class Client:
    """Normalized client representation."""

    client_id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }


@dataclass(frozen=True)
class Job:
    """
    Normalized job representation.

    lifecycle_status is the job's own workflow status (scheduled, completed,
    ...) and is independent of the payment status the engine derives.
    """

    job_id: str
    client_id: str | None = None
    title: str = ""
    lifecycle_status: str | None = None
    contract_value: float = 0.0
    created_at: dt.datetime | None = None


@dataclass(frozen=True)
class Invoice:
    """
    Normalized invoice representation.

    total is fixed at creation; a correction is a new invoice.
    """

    invoice_id: str
    job_id: str | None = None
    client_id: str | None = None
    number: str | None = None
    total: float = 0.0
    bill_type: str | None = None
    invoice_type: str | None = None
    is_deposit_invoice: bool = False
    description: str | None = None
    notes: str | None = None
    due_date: dt.date | None = None
    created_at: dt.datetime | None = None
    raw_status: str | None = None


@dataclass(frozen=True)
class Payment:
    """Normalized payment representation. amount is always > 0."""

    payment_id: str
    amount: float
    invoice_id: str | None = None
    job_id: str | None = None
    client_id: str | None = None
    date: dt.date | None = None
    method: str | None = None


# =============================================================================
# SNAPSHOT CONTAINER
# =============================================================================


@dataclass
class Snapshot:
    """
    One consistent, already-fetched set of records for an engine run.

    This is the output of normalization and the input to allocation,
    classification, status and aggregation.
    """

    clients: list[Client] = field(default_factory=list)
    jobs: list[Job] = field(default_factory=list)
    invoices: list[Invoice] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)

    stats: NormalizationStats = field(default_factory=NormalizationStats)

    def invoices_for_job(self, job_id: str) -> list[Invoice]:
        return [inv for inv in self.invoices if inv.job_id == job_id]

    def payments_for_job(self, job_id: str) -> list[Payment]:
        """Payments linked to one of the job's invoices, or to the job itself."""
        invoice_ids = {inv.invoice_id for inv in self.invoices if inv.job_id == job_id}
        return [
            p
            for p in self.payments
            if (p.invoice_id is not None and p.invoice_id in invoice_ids)
            or (p.invoice_id is None and p.job_id == job_id)
        ]

    def for_client(self, client_id: str) -> "Snapshot":
        """Narrow the snapshot to one client's jobs, invoices and payments."""
        jobs = [j for j in self.jobs if j.client_id == client_id]
        job_ids = {j.job_id for j in jobs}
        invoices = [
            inv
            for inv in self.invoices
            if inv.job_id in job_ids or (inv.job_id is None and inv.client_id == client_id)
        ]
        invoice_ids = {inv.invoice_id for inv in invoices}
        payments = [
            p
            for p in self.payments
            if p.invoice_id in invoice_ids
            or (p.invoice_id is None and p.job_id in job_ids)
            or (p.invoice_id is None and p.job_id is None and p.client_id == client_id)
        ]
        return Snapshot(
            clients=[c for c in self.clients if c.client_id == client_id],
            jobs=jobs,
            invoices=invoices,
            payments=payments,
            stats=self.stats,
        )
