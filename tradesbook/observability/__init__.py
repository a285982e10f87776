"""
Observability module: structured logging and per-computation IDs.

Usage:
    from tradesbook.observability import get_logger, ComputationContext

    logger = get_logger(__name__)

    with ComputationContext() as ctx:
        logger.info("Summary computed", extra={"client_id": "c-1"})
"""

from .context import ComputationContext, get_computation_id
from .logging import HumanFormatter, JSONFormatter, configure_logging, get_logger

__all__ = [
    "ComputationContext",
    "get_computation_id",
    "JSONFormatter",
    "HumanFormatter",
    "configure_logging",
    "get_logger",
]
