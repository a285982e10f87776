"""
Computation context management with context-local storage.

One engine run (a screen render, a CLI invocation) gets one computation ID,
and every log line emitted while it is active carries that ID.
"""

import contextvars
import uuid
from typing import Optional

_computation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "computation_id", default=None
)


def get_computation_id() -> Optional[str]:
    """Get the current computation ID from context."""
    return _computation_id_var.get()


def _new_computation_id() -> str:
    return f"calc-{uuid.uuid4().hex[:16]}"


class ComputationContext:
    """
    Context manager for one engine run.

    Usage:
        with ComputationContext() as ctx:
            logger.info("Aggregating", extra={"client_id": client_id})

        # Or reuse the caller's ID:
        with ComputationContext(computation_id="calc-abc123"):
            ...

    Nested contexts keep the outer ID so a summary computed inside a client
    view logs under the same ID as the view itself.
    """

    def __init__(self, computation_id: Optional[str] = None):
        self.computation_id = computation_id or get_computation_id() or _new_computation_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "ComputationContext":
        self._token = _computation_id_var.set(self.computation_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _computation_id_var.reset(self._token)
