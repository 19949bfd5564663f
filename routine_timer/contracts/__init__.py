"""
Contracts Module - shape validation for everything the CLI emits.

- schema.py: pydantic envelopes and the session payload
"""

from .schema import (
    CONTRACT_VERSION,
    ComputedTimes,
    ErrorDetail,
    ErrorEnvelope,
    PauseSpan,
    SessionPayload,
    SuccessEnvelope,
)

__all__ = [
    "CONTRACT_VERSION",
    "ComputedTimes",
    "ErrorDetail",
    "ErrorEnvelope",
    "PauseSpan",
    "SessionPayload",
    "SuccessEnvelope",
]
