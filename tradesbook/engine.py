"""
Engine - public entry points.

These are the only functions screens and export collaborators call. Each one:

- accepts canonical records or raw mappings (raw ones are normalized first;
  records that cannot be normalized are excluded and counted),
- runs the pure pipeline over that snapshot,
- never raises: an unexpected error is logged with its traceback and turned
  into an explicit fallback result (fallback=True, error set).

Nothing here performs I/O or keeps state between calls.
"""

import contextvars
import logging
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from . import aggregator, indicators
from .classify import classify
from .config import AGGREGATION_TIMEOUT_SECONDS, EngineThresholds
from .models import (
    ClientFinancialSummary,
    Indicator,
    InvoiceKind,
    JobFinancialState,
    JobStatus,
)
from .normalize import (
    Client,
    Invoice,
    Job,
    Payment,
    Snapshot,
    normalize_client,
    normalize_invoice,
    normalize_records,
    normalize_snapshot,
)
from .observability import ComputationContext, get_computation_id
from .status_engine import Clock, build_job_state

logger = logging.getLogger(__name__)


# =============================================================================
# SNAPSHOT HELPERS
# =============================================================================


def _raw_id(record: Any) -> str:
    if isinstance(record, Job):
        return record.job_id
    if isinstance(record, Mapping):
        return str(record.get("id") or "")
    return ""


def _job_invoices(job: Job, invoices: Iterable[Invoice]) -> list[Invoice]:
    """The job's invoices; invoices with no job reference are taken as the caller's."""
    return [inv for inv in invoices if inv.job_id in (job.job_id, None)]


def _job_payments(
    job: Job, job_invoices: Sequence[Invoice], payments: Iterable[Payment]
) -> list[Payment]:
    invoice_ids = {inv.invoice_id for inv in job_invoices}
    return [
        p
        for p in payments
        if (p.invoice_id is not None and p.invoice_id in invoice_ids)
        or (p.invoice_id is None and p.job_id in (job.job_id, None))
    ]


def _fallback_job_state(job: Any, error: str) -> JobFinancialState:
    title = job.title if isinstance(job, Job) else ""
    if isinstance(job, Mapping):
        title = str(job.get("title") or "")
    return JobFinancialState(
        job_id=_raw_id(job),
        job_title=title,
        status=JobStatus.NOT_INVOICED,
        outstanding_amount=0.0,
        total_value=0.0,
        fallback=True,
        error=error,
    )


def _summarize(snapshot: Snapshot, now: Clock, thresholds: EngineThresholds) -> ClientFinancialSummary:
    jobs, invoices, payments = snapshot.jobs, snapshot.invoices, snapshot.payments

    if aggregator.exceeds_thresholds(len(jobs), len(invoices), thresholds):
        summary = aggregator.aggregate_simplified(jobs, invoices, payments)
    else:
        states = [
            build_job_state(
                job,
                snapshot.invoices_for_job(job.job_id),
                snapshot.payments_for_job(job.job_id),
                now,
                thresholds,
            )
            for job in jobs
        ]
        job_ids = {job.job_id for job in jobs}
        orphans = [inv.invoice_id for inv in invoices if inv.job_id not in job_ids]
        if orphans:
            logger.info(
                f"{len(orphans)} invoices reference no job in this snapshot",
                extra={"invoice_ids": orphans[:20]},
            )
        summary = aggregator.aggregate(states, payments)

    summary.excluded_records = snapshot.stats.excluded_total
    return summary


# =============================================================================
# PUBLIC ENTRY POINTS
# =============================================================================


def compute_job_financial_state(
    job: Job | Mapping[str, Any],
    invoices: Iterable[Invoice | Mapping[str, Any]],
    payments: Iterable[Payment | Mapping[str, Any]],
    now: Clock = None,
    thresholds: EngineThresholds | None = None,
) -> JobFinancialState:
    """
    Financial state of one job.

    invoices and payments may be the job's own or a wider collection; records
    that reference a different job are ignored.
    """
    with ComputationContext():
        try:
            snapshot = normalize_snapshot(jobs=[job], invoices=invoices, payments=payments)
            if not snapshot.jobs:
                return _fallback_job_state(job, "job record could not be normalized")
            canonical = snapshot.jobs[0]
            job_invoices = _job_invoices(canonical, snapshot.invoices)
            return build_job_state(
                canonical,
                job_invoices,
                _job_payments(canonical, job_invoices, snapshot.payments),
                now,
                thresholds or EngineThresholds(),
            )
        except Exception as e:
            logger.exception(
                "Job financial state failed; returning fallback",
                extra={"job_id": _raw_id(job)},
            )
            return _fallback_job_state(job, f"{type(e).__name__}: {e}")


def compute_client_financial_summary(
    jobs: Iterable[Job | Mapping[str, Any]],
    invoices: Iterable[Invoice | Mapping[str, Any]],
    payments: Iterable[Payment | Mapping[str, Any]],
    now: Clock = None,
    thresholds: EngineThresholds | None = None,
) -> ClientFinancialSummary:
    """
    Client-level summary over the client's jobs, invoices and payments.

    Large snapshots take the simplified path and come back with degraded=True.
    """
    jobs = list(jobs)
    with ComputationContext():
        try:
            snapshot = normalize_snapshot(jobs=jobs, invoices=invoices, payments=payments)
            return _summarize(snapshot, now, thresholds or EngineThresholds())
        except Exception as e:
            logger.exception(
                "Client financial summary failed; returning zeroed fallback",
                extra={"job_count": len(jobs)},
            )
            return ClientFinancialSummary.zeroed(
                job_count=len(jobs), fallback=True, error=f"{type(e).__name__}: {e}"
            )


def compute_client_financial_summary_with_timeout(
    jobs: Iterable[Job | Mapping[str, Any]],
    invoices: Iterable[Invoice | Mapping[str, Any]],
    payments: Iterable[Payment | Mapping[str, Any]],
    now: Clock = None,
    thresholds: EngineThresholds | None = None,
    timeout_seconds: float | None = None,
) -> ClientFinancialSummary:
    """
    compute_client_financial_summary under a caller timeout.

    On expiry the worker is abandoned and a zeroed summary with
    timed_out=True is returned, so the UI can show reduced confidence
    instead of presenting zeros as real figures.
    """
    jobs, invoices, payments = list(jobs), list(invoices), list(payments)
    thresholds = thresholds or EngineThresholds()
    timeout = timeout_seconds if timeout_seconds is not None else (
        thresholds.aggregation_timeout_seconds or AGGREGATION_TIMEOUT_SECONDS
    )

    with ComputationContext():
        # run the worker in a copy of this context so its logs keep our computation id
        ctx = contextvars.copy_context()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tradesbook-aggregate")
        future = executor.submit(
            ctx.run, compute_client_financial_summary, jobs, invoices, payments, now, thresholds
        )
        try:
            return future.result(timeout=timeout)
        except TimeoutError:
            logger.warning(
                f"Client financial summary timed out after {timeout}s; returning fallback",
                extra={"job_count": len(jobs), "invoice_count": len(invoices)},
            )
            return ClientFinancialSummary.zeroed(
                job_count=len(jobs),
                timed_out=True,
                fallback=True,
                error=f"timed out after {timeout}s",
            )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)


def classify_invoice(
    invoice: Invoice | Mapping[str, Any],
    siblings: Iterable[Invoice | Mapping[str, Any]],
    contract_value: float | None = None,
    thresholds: EngineThresholds | None = None,
) -> InvoiceKind:
    """Kind of one invoice given the job's invoices. Falls back to CUSTOM."""
    with ComputationContext():
        try:
            canonical = invoice if isinstance(invoice, Invoice) else normalize_invoice(invoice)
            family = normalize_records("invoice", siblings)
            ratio = (thresholds or EngineThresholds()).full_invoice_ratio
            return classify(canonical, family, contract_value, ratio)
        except Exception:
            logger.exception(
                "Invoice classification failed; treating as custom",
                extra={"invoice_id": _raw_id(invoice)},
            )
            return InvoiceKind.CUSTOM


def generate_status_indicators(job_states: Iterable[JobFinancialState]) -> list[Indicator]:
    """Prioritized indicators, one per job that needs attention."""
    try:
        return indicators.generate(job_states)
    except Exception:
        logger.exception("Indicator generation failed; returning no indicators")
        return []


def compute_client_view(
    client: Client | Mapping[str, Any] | None,
    jobs: Iterable[Job | Mapping[str, Any]],
    invoices: Iterable[Invoice | Mapping[str, Any]],
    payments: Iterable[Payment | Mapping[str, Any]],
    now: Clock = None,
    thresholds: EngineThresholds | None = None,
    timeout_seconds: float | None = None,
) -> dict:
    """
    Everything the client screen (and exports) need, as one JSON-native dict.

    A degraded summary has no per-job breakdown and therefore no indicators.
    """
    with ComputationContext() as cctx:
        canonical_client = None
        if client is not None:
            try:
                canonical_client = (
                    client if isinstance(client, Client) else normalize_client(client)
                )
            except Exception:
                logger.exception("Client record could not be normalized")

        if timeout_seconds is not None:
            summary = compute_client_financial_summary_with_timeout(
                jobs, invoices, payments, now, thresholds, timeout_seconds
            )
        else:
            summary = compute_client_financial_summary(jobs, invoices, payments, now, thresholds)
        badges = generate_status_indicators(summary.jobs)

        return {
            "computation_id": get_computation_id() or cctx.computation_id,
            "client": canonical_client.to_dict() if canonical_client else None,
            "summary": summary.to_dict(),
            "indicators": [badge.to_dict() for badge in badges],
        }
