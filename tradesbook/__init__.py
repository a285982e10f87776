# tradesbook - payment reconciliation and financial-status engine
"""
Exports for screens, document exports and the CLI.
"""

from .engine import (
    classify_invoice,
    compute_client_financial_summary,
    compute_client_financial_summary_with_timeout,
    compute_client_view,
    compute_job_financial_state,
    generate_status_indicators,
)
from .errors import ConfigError, DegradedComputationWarning, EngineError, NormalizationError
from .models import (
    ClientFinancialSummary,
    Indicator,
    IndicatorKind,
    InvoiceDisplayStatus,
    InvoiceFinancialState,
    InvoiceKind,
    JobFinancialState,
    JobStatus,
)

__version__ = "0.1.0"

__all__ = [
    "compute_job_financial_state",
    "compute_client_financial_summary",
    "compute_client_financial_summary_with_timeout",
    "compute_client_view",
    "classify_invoice",
    "generate_status_indicators",
    "InvoiceFinancialState",
    "JobFinancialState",
    "ClientFinancialSummary",
    "Indicator",
    "IndicatorKind",
    "InvoiceKind",
    "InvoiceDisplayStatus",
    "JobStatus",
    "EngineError",
    "ConfigError",
    "NormalizationError",
    "DegradedComputationWarning",
]
