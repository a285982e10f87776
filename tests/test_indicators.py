"""
Tests for status indicator generation.

Covers:
- Which indicator a job gets for each invoice situation
- One indicator per job
- Priority / title / job_id ordering
- Wording and severity
"""

from dataclasses import replace

import pytest

from tests.fixtures import days, make_invoice, make_job, make_payment
from tradesbook.indicators import LABELS, PRIORITY, SEVERITY, generate, job_candidates
from tradesbook.models import IndicatorKind
from tradesbook.status_engine import build_job_state


def _job(today, invoices, payments=(), value=1000.0, job_id="job-1", title="Kitchen Fit"):
    job = make_job(job_id=job_id, value=value, title=title)
    invoices = [replace(inv, job_id=job_id) for inv in invoices]
    return build_job_state(job, invoices, list(payments), today)


class TestJobIndicator:
    """The single indicator chosen for one job."""

    def test_no_invoices_no_indicator(self, today):
        assert generate([_job(today, [])]) == []

    def test_fully_paid(self, today):
        state = _job(today, [make_invoice(total=1000.0)], [make_payment(amount=1000.0)])

        [indicator] = generate([state])

        assert indicator.kind == IndicatorKind.FULLY_PAID
        assert indicator.severity == "success"
        assert indicator.text == "Kitchen Fit - Fully Paid"

    def test_full_invoice_overdue(self, today):
        state = _job(today, [make_invoice(total=1000.0, due=days(-2))])

        [indicator] = generate([state])

        assert indicator.kind == IndicatorKind.OVERDUE
        assert indicator.severity == "critical"
        assert indicator.target_invoice_id == "inv-1"

    def test_full_invoice_sent(self, today):
        state = _job(today, [make_invoice(total=1000.0, due=days(10))])

        [indicator] = generate([state])

        assert indicator.kind == IndicatorKind.FULL_UNPAID
        assert indicator.text == "Kitchen Fit - Full Invoice Sent"

    def test_deposit_sent(self, today):
        state = _job(today, [make_invoice(total=300.0, bill_type="deposit", due=days(10))])

        [indicator] = generate([state])

        assert indicator.kind == IndicatorKind.DEPOSIT_SENT
        assert indicator.severity == "warning"

    def test_deposit_paid_before_balance_issued(self, today):
        state = _job(
            today,
            [make_invoice(total=300.0, bill_type="deposit")],
            [make_payment(amount=300.0)],
        )

        [indicator] = generate([state])

        assert indicator.kind == IndicatorKind.DEPOSIT_PAID
        assert indicator.severity == "info"

    def test_overdue_deposit_beats_balance_sent(self, today):
        invoices = [
            make_invoice("inv-1", 300.0, due=days(-1), created_day=1),
            make_invoice("inv-2", 700.0, due=days(20), created_day=2),
        ]

        [indicator] = generate([_job(today, invoices)])

        assert indicator.kind == IndicatorKind.DEPOSIT_OVERDUE
        assert indicator.target_invoice_id == "inv-1"

    def test_balance_overdue_after_deposit_paid(self, today):
        invoices = [
            make_invoice("inv-1", 300.0, due=days(-30), created_day=1),
            make_invoice("inv-2", 700.0, due=days(-2), created_day=2),
        ]

        [indicator] = generate([_job(today, invoices, [make_payment(amount=300.0)])])

        assert indicator.kind == IndicatorKind.REMAINING_OVERDUE
        assert indicator.text == "Kitchen Fit - Balance Overdue"

    def test_balance_sent_after_deposit_paid(self, today):
        invoices = [
            make_invoice("inv-1", 300.0, created_day=1),
            make_invoice("inv-2", 700.0, due=days(5), created_day=2),
        ]

        candidates = job_candidates(_job(today, invoices, [make_payment(amount=300.0)]))

        assert {c.kind for c in candidates} == {
            IndicatorKind.REMAINING_SENT,
            IndicatorKind.DEPOSIT_PAID,
        }
        assert generate([_job(today, invoices, [make_payment(amount=300.0)])])[0].kind == (
            IndicatorKind.REMAINING_SENT
        )

    def test_custom_invoices_count_as_balance(self, today):
        invoices = [
            make_invoice(f"inv-{n}", 100.0 * n, due=days(9), created_day=n) for n in (1, 2, 3)
        ]

        [indicator] = generate([_job(today, invoices)])

        assert indicator.kind == IndicatorKind.REMAINING_SENT


class TestOrdering:
    """Ordering across jobs."""

    def test_priority_follows_declaration_order(self):
        assert sorted(PRIORITY, key=PRIORITY.get) == list(IndicatorKind)

    def test_sorted_by_priority_then_title(self, today):
        paid = _job(
            today,
            [make_invoice("p-1", 1000.0)],
            [make_payment(amount=1000.0, invoice_id="p-1")],
            job_id="j-paid",
            title="Attic",
        )
        late_b = _job(
            today, [make_invoice("b-1", 1000.0, due=days(-1))], job_id="j-b", title="Bathroom"
        )
        late_a = _job(
            today, [make_invoice("a-1", 1000.0, due=days(-1))], job_id="j-a", title="Annex"
        )

        indicators = generate([paid, late_b, late_a])

        assert [i.job_id for i in indicators] == ["j-a", "j-b", "j-paid"]

    def test_title_ties_are_case_sensitive(self, today):
        upper = _job(today, [make_invoice("u-1", 1000.0, due=days(5))], job_id="j-1", title="Zed")
        lower = _job(today, [make_invoice("l-1", 1000.0, due=days(5))], job_id="j-2", title="alpha")

        assert [i.job_title for i in generate([lower, upper])] == ["Zed", "alpha"]

    def test_one_indicator_per_job(self, today):
        states = [
            _job(today, [make_invoice(f"{n}-1", 1000.0, due=days(n - 3))], job_id=f"j-{n}")
            for n in range(6)
        ]

        indicators = generate(states)

        assert sorted(i.job_id for i in indicators) == sorted(s.job_id for s in states)


@pytest.mark.parametrize("kind", list(IndicatorKind))
def test_every_kind_has_label_and_severity(kind):
    assert LABELS[kind]
    assert SEVERITY[kind] in {"critical", "warning", "info", "success"}
