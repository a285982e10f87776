"""
Normalize Module - Canonical Records and Snapshot Building.

This module provides:
- domain_models.py: Client, Job, Invoice, Payment, Snapshot + NormalizationStats
- extractors.py: field-variant tolerant normalizers for raw records

Resolution of field-name variants happens HERE, not in allocation or
aggregation. A record missing its id is excluded and counted, never fatal.
"""

from .domain_models import (
    Client,
    Invoice,
    Job,
    NormalizationStats,
    Payment,
    Snapshot,
)
from .extractors import (
    CONTRACT_VALUE_FIELDS,
    normalize_client,
    normalize_invoice,
    normalize_job,
    normalize_payment,
    normalize_records,
    normalize_snapshot,
    resolve_contract_value,
)

__all__ = [
    # Domain models
    "Client",
    "Job",
    "Invoice",
    "Payment",
    "Snapshot",
    "NormalizationStats",
    # Normalizers
    "CONTRACT_VALUE_FIELDS",
    "resolve_contract_value",
    "normalize_client",
    "normalize_job",
    "normalize_invoice",
    "normalize_payment",
    "normalize_records",
    "normalize_snapshot",
]
