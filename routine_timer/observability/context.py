"""
Invocation context management with context-local storage.
"""

import contextvars
import uuid
from typing import Optional

# Context variable for the current command invocation ID
_invocation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "invocation_id", default=None
)


def get_invocation_id() -> Optional[str]:
    """Get the current invocation ID from context."""
    return _invocation_id_var.get()


def set_invocation_id(invocation_id: str) -> contextvars.Token:
    """Set the invocation ID in context. Returns token for reset."""
    return _invocation_id_var.set(invocation_id)


def generate_invocation_id() -> str:
    """Generate a new invocation ID."""
    return f"inv-{uuid.uuid4().hex[:16]}"


class InvocationContext:
    """
    Context manager for one command invocation.

    Usage:
        with InvocationContext() as ctx:
            logger.info("Pausing session")
            # All logs within this block carry ctx.invocation_id
    """

    def __init__(self, invocation_id: Optional[str] = None):
        self.invocation_id = invocation_id or generate_invocation_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "InvocationContext":
        self._token = set_invocation_id(self.invocation_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _invocation_id_var.reset(self._token)
            self._token = None
