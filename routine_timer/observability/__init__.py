"""
Observability module: structured logging and invocation IDs.

Usage:
    from routine_timer.observability import get_logger, InvocationContext

    logger = get_logger(__name__)

    with InvocationContext() as ctx:
        logger.info("Command started", extra={"command": "pause"})
"""

from .context import InvocationContext, get_invocation_id, set_invocation_id
from .logging import HumanFormatter, JSONFormatter, configure_logging, get_logger

__all__ = [
    "InvocationContext",
    "get_invocation_id",
    "set_invocation_id",
    "JSONFormatter",
    "HumanFormatter",
    "configure_logging",
    "get_logger",
]
