"""
Schema Module - Pydantic models for command output.

Every JSON document the command layer prints is validated against one of
these envelopes before it is emitted. Field names are snake_case in Python
and camelCase on the wire.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

CONTRACT_VERSION = "1.0"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# SESSION PAYLOAD
# =============================================================================


class PauseSpan(_WireModel):
    start: str
    end: str | None = None


class ComputedTimes(_WireModel):
    as_of: str
    duration_seconds: int
    paused_seconds: int = Field(ge=0)
    active_seconds: int = Field(ge=0)


class SessionPayload(_WireModel):
    """One session as shown to callers."""

    id: str
    routine_id: str
    routine_name: str
    start: str
    end: str | None = None
    status: Literal["running", "paused", "stopped"]
    pauses: list[PauseSpan] = Field(default_factory=list)
    computed: ComputedTimes
    note: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @model_validator(mode="after")
    def validate_status_matches_facts(self):
        """Status must agree with end and the trailing pause."""
        open_pauses = [i for i, p in enumerate(self.pauses) if p.end is None]
        if len(open_pauses) > 1 or (open_pauses and open_pauses[0] != len(self.pauses) - 1):
            raise ValueError("only the last pause may be open")
        if (self.status == "stopped") != (self.end is not None):
            raise ValueError(f"status {self.status!r} disagrees with end {self.end!r}")
        if self.status == "paused" and not open_pauses:
            raise ValueError("paused session has no open pause")
        return self


# =============================================================================
# ENVELOPES
# =============================================================================


class ErrorDetail(BaseModel):
    code: str = Field(pattern=r"^ERR_[A-Z_]+$")
    message: str
    details: dict[str, Any] | None = None


class SuccessEnvelope(BaseModel):
    ok: Literal[True] = True
    command: str
    data: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


class ErrorEnvelope(BaseModel):
    ok: Literal[False] = False
    error: ErrorDetail
