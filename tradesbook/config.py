"""
Centralized configuration for the tradesbook engine.

Every tunable threshold lives here. Override via environment variables, or
via config/thresholds.yaml for values that differ per deployment.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ============================================================
# Status thresholds
# ============================================================

DUE_SOON_DAYS: int = int(os.environ.get("TRADESBOOK_DUE_SOON_DAYS", "7"))
"""An unpaid invoice due within this many days makes its job DUE_SOON."""

FULL_INVOICE_RATIO: float = float(os.environ.get("TRADESBOOK_FULL_INVOICE_RATIO", "0.8"))
"""A job's only invoice covering at least this share of the job value is FULL."""

# ============================================================
# Degradation thresholds
# ============================================================

MAX_JOBS: int = int(os.environ.get("TRADESBOOK_MAX_JOBS", "50"))
"""Above this many jobs the aggregator takes the simplified path."""

MAX_INVOICES: int = int(os.environ.get("TRADESBOOK_MAX_INVOICES", "200"))
"""Above this many invoices the aggregator takes the simplified path."""

AGGREGATION_TIMEOUT_SECONDS: float = float(
    os.environ.get("TRADESBOOK_AGGREGATION_TIMEOUT", "2.0")
)
"""Default caller timeout for compute_client_financial_summary_with_timeout."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("TRADESBOOK_LOG_LEVEL", "INFO")
"""Root log level used by the CLI."""

# ============================================================
# Thresholds file
# ============================================================

THRESHOLDS_PATH: Path = Path(
    os.environ.get(
        "TRADESBOOK_THRESHOLDS",
        str(Path(__file__).parent.parent / "config" / "thresholds.yaml"),
    )
)
"""YAML file holding per-deployment overrides of the thresholds above."""


@dataclass(frozen=True)
class EngineThresholds:
    """Thresholds one engine run is evaluated with."""

    due_soon_days: int = DUE_SOON_DAYS
    full_invoice_ratio: float = FULL_INVOICE_RATIO
    max_jobs: int = MAX_JOBS
    max_invoices: int = MAX_INVOICES
    aggregation_timeout_seconds: float = AGGREGATION_TIMEOUT_SECONDS

    def to_dict(self) -> dict:
        return asdict(self)


_INT_FIELDS = ("due_soon_days", "max_jobs", "max_invoices")
_FLOAT_FIELDS = ("full_invoice_ratio", "aggregation_timeout_seconds")


def load_thresholds(path: Optional[str | Path] = None) -> EngineThresholds:
    """
    Load engine thresholds from YAML config.

    Expected shape:
        thresholds:
          due_soon_days: 7
          full_invoice_ratio: 0.8
          max_jobs: 50
          max_invoices: 200
          aggregation_timeout_seconds: 2.0

    A missing file yields the environment defaults. Unknown keys are ignored
    with a warning.

    Raises:
        ConfigError if the file is not valid YAML or a value has the wrong type.
    """
    config_path = Path(path) if path else THRESHOLDS_PATH
    if not config_path.exists():
        logger.debug(f"Thresholds file not found, using defaults: {config_path}")
        return EngineThresholds()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not data:
        return EngineThresholds()
    if not isinstance(data, dict) or not isinstance(data.get("thresholds", {}), dict):
        raise ConfigError(f"{config_path} must have a 'thresholds' mapping")

    values = {}
    for key, value in (data.get("thresholds") or {}).items():
        if key in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{key} must be a non-negative integer, got {value!r}")
            values[key] = value
        elif key in _FLOAT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{key} must be a positive number, got {value!r}")
            values[key] = float(value)
        else:
            logger.warning(f"Ignoring unknown threshold: {key}")

    return EngineThresholds(**values)
