"""
Exception and warning types for the reconciliation engine.

Only the configuration loader raises to the caller. Normalization errors are
caught per record by the snapshot builder; degraded computation is reported as
a flag on the result.
"""

from typing import Literal

NormalizationErrorKind = Literal["missing_required_field", "invalid_amount"]


class EngineError(Exception):
    """Base class for tradesbook errors."""

    pass


class ConfigError(EngineError):
    """Raised when the thresholds file is present but invalid."""

    pass


class NormalizationError(EngineError, ValueError):
    """
    A raw record could not be mapped to a canonical record.

    The record is excluded from the snapshot; the rest of the computation
    carries on without it.
    """

    def __init__(
        self,
        record_type: str,
        field: str,
        kind: NormalizationErrorKind = "missing_required_field",
        record_id: str | None = None,
        detail: str | None = None,
    ):
        self.record_type = record_type
        self.field = field
        self.kind = kind
        self.record_id = record_id
        self.detail = detail
        message = f"{record_type} record: {kind} ({field})"
        if record_id:
            message = f"{message} id={record_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def reason(self) -> str:
        """Short key used to count exclusions."""
        return f"{self.kind}:{self.field}"


class DegradedComputationWarning(UserWarning):
    """
    Aggregation ran on the simplified path.

    Never raised; instances are attached to ClientFinancialSummary.warnings.
    """

    code = "degraded_computation"

    def __init__(self, reason: str, job_count: int = 0, invoice_count: int = 0):
        self.reason = reason
        self.job_count = job_count
        self.invoice_count = invoice_count
        super().__init__(reason)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.reason,
            "job_count": self.job_count,
            "invoice_count": self.invoice_count,
        }
