"""
Test configuration - ensures repo root is in sys.path + determinism guards.

This allows tests to import tradesbook.* and tests.fixtures without installing
the package.

Determinism: no test may depend on the wall clock. Every due-date comparison
goes through an injected date (the `today` fixture). The guard below is
installed for every test and fails any engine call that falls back to the
system clock.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import tradesbook.*, tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tests.fixtures import TODAY  # noqa: E402

# =============================================================================
# DETERMINISM GUARD: Block wall-clock reads
# =============================================================================


def _raise_determinism_violation():
    raise RuntimeError(
        "DETERMINISM VIOLATION: engine read the wall clock.\n"
        "Pass now=<date> (use the `today` fixture) to every engine call."
    )


@pytest.fixture(autouse=True)
def wall_clock_guard(monkeypatch):
    """Fail loudly if the engine resolves 'today' from the system clock."""
    import tradesbook.status_engine as status_engine

    monkeypatch.setattr(status_engine, "_wall_clock", _raise_determinism_violation)
    yield


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def thresholds():
    from tradesbook.config import EngineThresholds

    return EngineThresholds(
        due_soon_days=7,
        full_invoice_ratio=0.8,
        max_jobs=50,
        max_invoices=200,
        aggregation_timeout_seconds=2.0,
    )
