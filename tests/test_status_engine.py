"""
Tests for the per-job status engine.

Covers:
- The status rule in isolation (derive_job_status)
- Full job state from invoices and payments (build_job_state)
- Injected clocks
- Client-view captions and ordering
"""

from datetime import datetime

import pytest

from tests.fixtures import TODAY, days, make_invoice, make_job, make_payment
from tradesbook.indicators import generate
from tradesbook.models import (
    IndicatorKind,
    InvoiceDisplayStatus,
    InvoiceKind,
    JobFinancialState,
    JobStatus,
)
from tradesbook.status_engine import (
    build_job_state,
    derive_job_status,
    resolve_today,
    sort_jobs_for_client_view,
    status_label,
)

# =============================================================================
# CLOCK
# =============================================================================


class TestResolveToday:
    """Tests for clock injection."""

    def test_date_passes_through(self):
        assert resolve_today(TODAY) == TODAY

    def test_datetime_is_truncated(self):
        assert resolve_today(datetime(2026, 3, 15, 23, 59)) == TODAY

    def test_callable_is_called(self):
        assert resolve_today(lambda: datetime(2026, 3, 15, 8, 0)) == TODAY

    def test_none_reads_wall_clock(self):
        """Without an injected clock the wall clock is used (blocked under test)."""
        with pytest.raises(RuntimeError, match="DETERMINISM"):
            resolve_today(None)


# =============================================================================
# STATUS RULE
# =============================================================================


class TestDeriveJobStatus:
    """Tests for derive_job_status()."""

    def test_no_invoices(self):
        assert derive_job_status(0, 0.0, 0.0, 1000.0, None) == JobStatus.NOT_INVOICED

    def test_zero_value_short_circuits(self):
        assert derive_job_status(1, 0.0, 0.0, 0.0, None) == JobStatus.NOT_INVOICED

    def test_paid_at_value_is_fully_paid(self):
        assert derive_job_status(1, 1000.0, 0.0, 1000.0, None) == JobStatus.FULLY_PAID

    def test_paid_with_nothing_outstanding_is_deposit_paid(self):
        """Issued invoices covered but the contract is not fully invoiced."""
        assert derive_job_status(1, 300.0, 0.0, 1000.0, None) == JobStatus.DEPOSIT_PAID

    def test_paid_with_balance_is_partially_paid(self):
        assert derive_job_status(2, 300.0, 700.0, 1000.0, 10) == JobStatus.PARTIALLY_PAID

    def test_float_residue_still_fully_paid(self):
        """0.7 + 0.1 sums to 0.7999999999999999, short of 0.8 by residue only."""
        assert derive_job_status(1, 0.7 + 0.1, 0.0, 0.8, None) == JobStatus.FULLY_PAID

    def test_penny_short_is_not_fully_paid(self):
        assert derive_job_status(1, 999.99, 0.01, 1000.0, None) == JobStatus.PARTIALLY_PAID

    def test_only_zero_total_invoices_is_not_invoiced(self):
        assert derive_job_status(1, 0.0, 0.0, 1000.0, None) == JobStatus.NOT_INVOICED

    def test_partially_paid_ignores_due_date(self):
        """A part-paid job is never OVERDUE."""
        assert derive_job_status(2, 300.0, 700.0, 1000.0, -30) == JobStatus.PARTIALLY_PAID

    @pytest.mark.parametrize(
        "days_until_due,expected",
        [
            (-1, JobStatus.OVERDUE),
            (0, JobStatus.DUE_SOON),
            (7, JobStatus.DUE_SOON),
            (8, JobStatus.PENDING),
            (None, JobStatus.PENDING),
        ],
    )
    def test_unpaid_by_due_date(self, days_until_due, expected):
        assert derive_job_status(1, 0.0, 500.0, 500.0, days_until_due) == expected

    def test_due_soon_window_is_configurable(self):
        assert derive_job_status(1, 0.0, 500.0, 500.0, 10, due_soon_days=14) == JobStatus.DUE_SOON


# =============================================================================
# JOB STATE
# =============================================================================


class TestBuildJobState:
    """Tests for build_job_state()."""

    def test_no_invoices(self, today):
        state = build_job_state(make_job(), [], [], today)

        assert state.status == JobStatus.NOT_INVOICED
        assert state.outstanding_amount == 0
        assert state.invoices == []

    def test_split_payments_with_residue_are_fully_paid(self, today):
        """300 + 724.14 sums to 1024.1399999999999 in floats."""
        job = make_job(value=1024.14)
        invoices = [
            make_invoice("inv-dep", 300.0, bill_type="deposit", created_day=1),
            make_invoice("inv-rem", 724.14, bill_type="remaining", created_day=2),
        ]
        payments = [
            make_payment("p1", 300.0, invoice_id="inv-dep"),
            make_payment("p2", 724.14, invoice_id="inv-rem"),
        ]

        state = build_job_state(job, invoices, payments, today)

        assert state.status == JobStatus.FULLY_PAID
        assert state.outstanding_amount == 0
        assert [i.kind for i in generate([state])] == [IndicatorKind.FULLY_PAID]

    def test_zero_total_invoice_without_payment_is_not_invoiced(self, today):
        state = build_job_state(make_job(), [make_invoice(total=0.0)], [], today)

        assert state.status == JobStatus.NOT_INVOICED
        assert state.outstanding_amount == 0

    def test_job_outstanding_is_sum_of_invoices(self, today):
        invoices = [
            make_invoice("inv-1", 300.0, due=days(10), created_day=1),
            make_invoice("inv-2", 700.0, due=days(40), created_day=2),
        ]

        state = build_job_state(make_job(), invoices, [make_payment(amount=100.0)], today)

        assert state.outstanding_amount == sum(i.outstanding for i in state.invoices) == 900.0
        assert state.total_paid == 100.0
        assert state.total_invoiced == 1000.0

    def test_nearest_unpaid_due_date(self, today):
        """The paid invoice's due date is ignored."""
        invoices = [
            make_invoice("inv-1", 300.0, due=days(-5), created_day=1),
            make_invoice("inv-2", 700.0, due=days(12), created_day=2),
        ]

        state = build_job_state(make_job(), invoices, [make_payment(amount=300.0)], today)

        assert state.due_date == days(12)
        assert state.days_until_due == 12

    def test_invoice_states_are_enriched(self, today):
        invoices = [
            make_invoice("inv-1", 300.0, due=days(-2), created_day=1),
            make_invoice("inv-2", 700.0, due=days(20), created_day=2),
        ]

        state = build_job_state(make_job(), invoices, [], today)
        by_id = {inv.invoice_id: inv for inv in state.invoices}

        assert by_id["inv-1"].kind == InvoiceKind.DEPOSIT
        assert by_id["inv-1"].is_overdue is True
        assert by_id["inv-1"].days_until_due == -2
        assert by_id["inv-1"].display_status == InvoiceDisplayStatus.OVERDUE
        assert by_id["inv-2"].kind == InvoiceKind.REMAINING
        assert by_id["inv-2"].is_overdue is False
        assert by_id["inv-2"].display_status == InvoiceDisplayStatus.SENT

    def test_zero_contract_value_uses_total_invoiced(self, today):
        job = make_job(value=0.0)
        invoices = [make_invoice(total=400.0, due=days(30))]

        state = build_job_state(job, invoices, [make_payment(amount=400.0)], today)

        assert state.total_value == 400.0
        assert state.status == JobStatus.FULLY_PAID

    def test_overdue_job(self, today):
        state = build_job_state(
            make_job(value=500.0), [make_invoice(total=500.0, due=days(-1))], [], today
        )

        assert state.status == JobStatus.OVERDUE
        assert state.days_until_due == -1

    def test_recomputed_on_every_call(self):
        """Status follows the injected date; nothing is cached."""
        job = make_job(value=500.0)
        invoices = [make_invoice(total=500.0, due=days(3))]

        assert build_job_state(job, invoices, [], TODAY).status == JobStatus.DUE_SOON
        assert build_job_state(job, invoices, [], days(4)).status == JobStatus.OVERDUE


# =============================================================================
# PRESENTATION
# =============================================================================


class TestStatusLabel:
    """Tests for status_label()."""

    def test_overdue_shows_days(self):
        assert status_label(JobStatus.OVERDUE, -3) == "OVERDUE (3 days)"

    def test_due_soon_shows_days(self):
        assert status_label(JobStatus.DUE_SOON, 2) == "DUE SOON (2 days)"

    def test_due_today_has_no_count(self):
        assert status_label(JobStatus.DUE_SOON, 0) == "DUE SOON"

    def test_pending(self):
        assert status_label(JobStatus.PENDING) == "AWAITING PAYMENT"


def _state(job_id, status, outstanding=0.0, days_until_due=None):
    return JobFinancialState(
        job_id=job_id,
        status=status,
        outstanding_amount=outstanding,
        total_value=1000.0,
        days_until_due=days_until_due,
    )


class TestClientViewOrdering:
    """Tests for sort_jobs_for_client_view()."""

    def test_status_order(self):
        states = [
            _state("a", JobStatus.NOT_INVOICED),
            _state("b", JobStatus.FULLY_PAID),
            _state("c", JobStatus.PENDING, 100.0),
            _state("d", JobStatus.OVERDUE, 100.0, -2),
            _state("e", JobStatus.DUE_SOON, 100.0, 3),
        ]

        assert [s.job_id for s in sort_jobs_for_client_view(states)] == ["d", "e", "c", "b", "a"]

    def test_overdue_most_overdue_first(self):
        states = [
            _state("a", JobStatus.OVERDUE, 100.0, -1),
            _state("b", JobStatus.OVERDUE, 100.0, -9),
        ]

        assert [s.job_id for s in sort_jobs_for_client_view(states)] == ["b", "a"]

    def test_pending_by_outstanding_descending(self):
        states = [
            _state("a", JobStatus.PENDING, 100.0),
            _state("b", JobStatus.PENDING, 900.0),
            _state("c", JobStatus.PENDING, 100.0),
        ]

        assert [s.job_id for s in sort_jobs_for_client_view(states)] == ["b", "a", "c"]
