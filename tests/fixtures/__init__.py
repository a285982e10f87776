"""
Test fixtures for deterministic testing.

This module provides:
- builders: canonical record builders pinned to a fixed TODAY
- snapshot.json: a raw, field-variant heavy snapshot for CLI and engine tests
"""

from pathlib import Path

from .builders import TODAY, created, days, make_invoice, make_job, make_payment

SNAPSHOT_PATH = Path(__file__).parent / "snapshot.json"

__all__ = [
    "TODAY",
    "SNAPSHOT_PATH",
    "created",
    "days",
    "make_job",
    "make_invoice",
    "make_payment",
]
