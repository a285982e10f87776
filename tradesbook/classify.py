"""
Invoice classification - deposit / remaining / full / custom.

Invoices carry an optional billType tag that is often missing or wrong, so
the kind is decided by an ordered rule table. The first rule that returns a
kind wins; the last rule always matches, so every invoice gets exactly one
kind.

Rules (order is load-bearing; reordering changes historical classifications):
1. billType "full"                                        -> FULL
2. only invoice on the job, >= 80% of job value, untagged -> FULL
3. deposit tag/type/flag, or "deposit" in text fields     -> DEPOSIT
4. remaining tag/type, or "remaining"/"balance" in text   -> REMAINING
5. exactly two invoices: the complement of a tagged partner; if neither
   is tagged, smaller -> DEPOSIT, larger -> REMAINING (equal amounts:
   lower invoice_id is the DEPOSIT)
6. anything else                                          -> CUSTOM
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from . import config
from .models import InvoiceKind
from .normalize import Invoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationContext:
    """An invoice together with the rest of its job."""

    invoice: Invoice
    siblings: tuple[Invoice, ...]
    job_value: float
    full_ratio: float

    def other(self) -> Invoice | None:
        """The other invoice of a two-invoice job."""
        for sibling in self.siblings:
            if sibling.invoice_id != self.invoice.invoice_id:
                return sibling
        return None


RuleFn = Callable[[ClassificationContext], InvoiceKind | None]


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    apply: RuleFn


def _contains(text: str | None, *needles: str) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(needle in lowered for needle in needles)


def _explicit_full(ctx: ClassificationContext) -> InvoiceKind | None:
    return InvoiceKind.FULL if ctx.invoice.bill_type == "full" else None


def _single_large_invoice(ctx: ClassificationContext) -> InvoiceKind | None:
    inv = ctx.invoice
    if (
        len(ctx.siblings) == 1
        and inv.total >= ctx.job_value * ctx.full_ratio
        and inv.bill_type not in ("deposit", "remaining")
    ):
        return InvoiceKind.FULL
    return None


def _marked_deposit(inv: Invoice) -> bool:
    return (
        inv.bill_type == "deposit"
        or inv.invoice_type == "deposit"
        or inv.is_deposit_invoice
        or _contains(inv.description, "deposit")
        or _contains(inv.notes, "deposit")
        or _contains(inv.number, "deposit")
    )


def _marked_remaining(inv: Invoice) -> bool:
    return (
        inv.bill_type == "remaining"
        or inv.invoice_type == "remaining"
        or _contains(inv.description, "remaining", "balance")
    )


def _deposit_marker(ctx: ClassificationContext) -> InvoiceKind | None:
    return InvoiceKind.DEPOSIT if _marked_deposit(ctx.invoice) else None


def _remaining_marker(ctx: ClassificationContext) -> InvoiceKind | None:
    return InvoiceKind.REMAINING if _marked_remaining(ctx.invoice) else None


def _two_invoice_split(ctx: ClassificationContext) -> InvoiceKind | None:
    if len(ctx.siblings) != 2:
        return None
    other = ctx.other()
    if other is None:
        return None
    # a tagged partner fixes this invoice as its complement
    if _marked_deposit(other):
        return InvoiceKind.REMAINING
    if _marked_remaining(other):
        return InvoiceKind.DEPOSIT
    mine, theirs = ctx.invoice.total, other.total
    if mine < theirs:
        return InvoiceKind.DEPOSIT
    if mine > theirs:
        return InvoiceKind.REMAINING
    return InvoiceKind.DEPOSIT if ctx.invoice.invoice_id < other.invoice_id else InvoiceKind.REMAINING


def _custom(ctx: ClassificationContext) -> InvoiceKind | None:
    return InvoiceKind.CUSTOM


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("explicit_full", _explicit_full),
    ClassificationRule("single_large_invoice", _single_large_invoice),
    ClassificationRule("deposit_marker", _deposit_marker),
    ClassificationRule("remaining_marker", _remaining_marker),
    ClassificationRule("two_invoice_split", _two_invoice_split),
    ClassificationRule("custom", _custom),
)


def _siblings_with(invoice: Invoice, siblings: Iterable[Invoice]) -> tuple[Invoice, ...]:
    """The job's invoices, including this one exactly once."""
    seen = {invoice.invoice_id}
    out = [invoice]
    for sibling in siblings:
        if sibling.invoice_id not in seen:
            seen.add(sibling.invoice_id)
            out.append(sibling)
    return tuple(out)


def job_value(contract_value: float | None, invoices: Iterable[Invoice]) -> float:
    """Contract value, or the total invoiced when no contract value is known."""
    if contract_value and contract_value > 0:
        return contract_value
    return sum(inv.total for inv in invoices)


def classify_with_rule(
    invoice: Invoice,
    siblings: Iterable[Invoice],
    contract_value: float | None = None,
    full_ratio: float | None = None,
) -> tuple[InvoiceKind, str]:
    """Classify and also return the name of the rule that matched."""
    family = _siblings_with(invoice, siblings)
    ctx = ClassificationContext(
        invoice=invoice,
        siblings=family,
        job_value=job_value(contract_value, family),
        full_ratio=config.FULL_INVOICE_RATIO if full_ratio is None else full_ratio,
    )
    for rule in CLASSIFICATION_RULES:
        kind = rule.apply(ctx)
        if kind is not None:
            return kind, rule.name
    # unreachable: the last rule always matches
    return InvoiceKind.CUSTOM, "custom"


def classify(
    invoice: Invoice,
    siblings: Iterable[Invoice],
    contract_value: float | None = None,
    full_ratio: float | None = None,
) -> InvoiceKind:
    """
    Classify one invoice.

    siblings are the job's invoices; whether they include the invoice itself
    does not matter. contract_value is the job's resolved contract value;
    when missing or zero, the total invoiced stands in for it.
    """
    kind, _ = classify_with_rule(invoice, siblings, contract_value, full_ratio)
    return kind


def classify_all(
    invoices: Sequence[Invoice],
    contract_value: float | None = None,
    full_ratio: float | None = None,
) -> dict[str, InvoiceKind]:
    """Classify every invoice of one job. Returns invoice_id -> kind."""
    return {
        inv.invoice_id: classify(inv, invoices, contract_value, full_ratio) for inv in invoices
    }


def rollup_kind(kind: InvoiceKind) -> InvoiceKind:
    """CUSTOM carries no urgency of its own and rolls up as REMAINING."""
    return InvoiceKind.REMAINING if kind == InvoiceKind.CUSTOM else kind
