"""
Extractors - raw heterogeneous records to canonical records.

Raw records come from the data-access layer as JSON-like mappings whose field
names drifted over time (clientId / client_id / client.id, total / amount,
...). Each normalize_* function tries the known variants in a fixed order
and either returns a canonical record or raises NormalizationError.

normalize_snapshot() applies them to whole collections and excludes, rather
than fails on, records that cannot be normalized.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any

from ..errors import NormalizationError
from .domain_models import Client, Invoice, Job, NormalizationStats, Payment, Snapshot

logger = logging.getLogger(__name__)

# =============================================================================
# FIELD VARIANTS
# =============================================================================

# Job contract value: VAT-inclusive total first, pre-VAT estimates after.
CONTRACT_VALUE_FIELDS: tuple[tuple[str, ...], ...] = (
    ("total",),
    ("estimatedValue", "estimated_value"),
    ("value",),
    ("amount",),
    ("quoteTotal", "quote_total"),
    ("budget",),
)

CLIENT_ID_FIELDS = ("clientId", "client_id")
JOB_ID_FIELDS = ("jobId", "job_id")
INVOICE_ID_FIELDS = ("invoiceId", "invoice_id")
TITLE_FIELDS = ("title", "jobTitle", "job_title", "name")
NUMBER_FIELDS = ("number", "invoiceNumber", "invoice_number")
BILL_TYPE_FIELDS = ("billType", "bill_type")
DEPOSIT_FLAG_FIELDS = ("isDepositInvoice", "is_deposit_invoice")
DUE_DATE_FIELDS = ("dueDate", "due_date")
CREATED_AT_FIELDS = ("createdAt", "created_at", "issueDate", "issue_date")
PAYMENT_DATE_FIELDS = ("date", "paymentDate", "payment_date", "createdAt", "created_at")
INVOICE_TOTAL_FIELDS = ("total", "amount")

_MONEY_JUNK = re.compile(r"[£$€,\s]")

# =============================================================================
# VALUE COERCION
# =============================================================================


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_float(value: Any) -> float | None:
    """Parse a money-ish value. Returns None when missing or unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _MONEY_JUNK.sub("", str(value))
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"true", "yes", "y", "1"}


def _as_datetime(value: Any) -> datetime | None:
    """
    Parse a timestamp into naive UTC.

    Accepts datetime, date, ISO-8601 strings (with or without 'Z') and the
    dd/mm/yyyy form the backend writes for payment dates.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = datetime.strptime(text, "%d/%m/%Y")
            except ValueError:
                return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _as_date(value: Any) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = _as_datetime(value)
    return parsed.date() if parsed else None


def _first(raw: Mapping[str, Any], fields: Iterable[str]) -> Any:
    """First present, non-empty value among the field variants."""
    for name in fields:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return None


def _nested_id(raw: Mapping[str, Any], flat_fields: Iterable[str], nested: str) -> str | None:
    """Resolve a foreign key from flat variants, then from a nested object's id."""
    value = _first(raw, flat_fields)
    if value is None:
        obj = raw.get(nested)
        if isinstance(obj, Mapping):
            value = obj.get("id")
    return _as_str(value)


def _require_id(raw: Any, record_type: str) -> str:
    if not isinstance(raw, Mapping):
        raise NormalizationError(
            record_type, "id", detail=f"expected a mapping, got {type(raw).__name__}"
        )
    record_id = _as_str(raw.get("id"))
    if record_id is None:
        raise NormalizationError(record_type, "id")
    return record_id


def resolve_contract_value(raw: Mapping[str, Any]) -> float:
    """
    Resolve a job's contract value.

    Order: total -> estimatedValue -> value -> amount -> quoteTotal -> budget -> 0.
    The first non-null, non-zero candidate wins.
    """
    for variants in CONTRACT_VALUE_FIELDS:
        for name in variants:
            number = _as_float(raw.get(name))
            if number:
                return number
    return 0.0


# =============================================================================
# RECORD NORMALIZERS
# =============================================================================


def normalize_client(raw: Mapping[str, Any]) -> Client:
    client_id = _require_id(raw, "client")
    return Client(
        client_id=client_id,
        name=_as_str(_first(raw, ("name", "clientName", "client_name"))) or "",
        email=_as_str(raw.get("email")),
        phone=_as_str(raw.get("phone")),
        address=_as_str(raw.get("address")),
    )


def normalize_job(raw: Mapping[str, Any]) -> Job:
    job_id = _require_id(raw, "job")
    return Job(
        job_id=job_id,
        client_id=_nested_id(raw, CLIENT_ID_FIELDS, "client"),
        title=_as_str(_first(raw, TITLE_FIELDS)) or "Untitled Job",
        lifecycle_status=_as_str(raw.get("status")),
        contract_value=resolve_contract_value(raw),
        created_at=_as_datetime(_first(raw, CREATED_AT_FIELDS)),
    )


def normalize_invoice(raw: Mapping[str, Any]) -> Invoice:
    invoice_id = _require_id(raw, "invoice")

    total = 0.0
    for name in INVOICE_TOTAL_FIELDS:
        number = _as_float(raw.get(name))
        if number:
            total = number
            break

    bill_type = _as_str(_first(raw, BILL_TYPE_FIELDS))
    invoice_type = _as_str(raw.get("type"))
    return Invoice(
        invoice_id=invoice_id,
        job_id=_nested_id(raw, JOB_ID_FIELDS, "job"),
        client_id=_nested_id(raw, CLIENT_ID_FIELDS, "client"),
        number=_as_str(_first(raw, NUMBER_FIELDS)),
        total=max(0.0, total),
        bill_type=bill_type.lower() if bill_type else None,
        invoice_type=invoice_type.lower() if invoice_type else None,
        is_deposit_invoice=_as_bool(_first(raw, DEPOSIT_FLAG_FIELDS)),
        description=_as_str(raw.get("description")),
        notes=_as_str(raw.get("notes")),
        due_date=_as_date(_first(raw, DUE_DATE_FIELDS)),
        created_at=_as_datetime(_first(raw, CREATED_AT_FIELDS)),
        raw_status=_as_str(raw.get("status")),
    )


def normalize_payment(raw: Mapping[str, Any]) -> Payment:
    payment_id = _require_id(raw, "payment")
    amount = _as_float(raw.get("amount"))
    if amount is None or amount <= 0:
        raise NormalizationError(
            "payment",
            "amount",
            kind="invalid_amount",
            record_id=payment_id,
            detail=f"amount must be > 0, got {raw.get('amount')!r}",
        )
    return Payment(
        payment_id=payment_id,
        amount=amount,
        invoice_id=_as_str(_first(raw, INVOICE_ID_FIELDS)),
        job_id=_nested_id(raw, JOB_ID_FIELDS, "job"),
        client_id=_nested_id(raw, CLIENT_ID_FIELDS, "client"),
        date=_as_date(_first(raw, PAYMENT_DATE_FIELDS)),
        method=_as_str(raw.get("method")),
    )


def _check_canonical(record_type: str, record: Any) -> None:
    """Hold already-canonical records to the same rules as raw ones."""
    if record_type == "payment" and not record.amount > 0:
        raise NormalizationError(
            "payment",
            "amount",
            kind="invalid_amount",
            record_id=record.payment_id,
            detail=f"amount must be > 0, got {record.amount!r}",
        )


NORMALIZERS = {
    "client": normalize_client,
    "job": normalize_job,
    "invoice": normalize_invoice,
    "payment": normalize_payment,
}

_CANONICAL_TYPES = {
    "client": Client,
    "job": Job,
    "invoice": Invoice,
    "payment": Payment,
}


def normalize_records(
    record_type: str,
    records: Iterable[Any] | None,
    stats: NormalizationStats | None = None,
) -> list:
    """
    Normalize a collection of one record type.

    Already-canonical records are checked but not rebuilt. Records that fail
    are excluded, logged and counted in stats.
    """
    normalizer = NORMALIZERS[record_type]
    canonical_type = _CANONICAL_TYPES[record_type]
    stats = stats if stats is not None else NormalizationStats()
    out = []
    seen_ids: set[str] = set()
    for raw in records or ():
        try:
            if isinstance(raw, canonical_type):
                _check_canonical(record_type, raw)
                record = raw
            else:
                record = normalizer(raw)
        except NormalizationError as e:
            record_id = e.record_id or (
                _as_str(raw.get("id")) if isinstance(raw, Mapping) else None
            )
            logger.warning(
                f"Excluded {record_type} record: {e}",
                extra={"record_type": record_type, "reason": e.reason, "record_id": record_id},
            )
            stats.record_excluded(record_type, e.reason, record_id)
            continue

        record_id = getattr(record, f"{record_type}_id")
        if record_id in seen_ids:
            logger.warning(
                f"Excluded duplicate {record_type} record {record_id}",
                extra={"record_type": record_type, "record_id": record_id},
            )
            stats.record_excluded(record_type, "duplicate_id", record_id)
            continue
        seen_ids.add(record_id)
        out.append(record)
        stats.record_accepted(record_type)
    return out


def normalize_snapshot(
    clients: Iterable[Any] | None = None,
    jobs: Iterable[Any] | None = None,
    invoices: Iterable[Any] | None = None,
    payments: Iterable[Any] | None = None,
) -> Snapshot:
    """Normalize all four collections into one Snapshot."""
    stats = NormalizationStats()
    snapshot = Snapshot(
        clients=normalize_records("client", clients, stats),
        jobs=normalize_records("job", jobs, stats),
        invoices=normalize_records("invoice", invoices, stats),
        payments=normalize_records("payment", payments, stats),
        stats=stats,
    )
    logger.debug(
        "Normalized snapshot",
        extra={"accepted": dict(stats.accepted), "excluded": stats.excluded_total},
    )
    return snapshot
