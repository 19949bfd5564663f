"""
Routine Directory - create, list and resolve routines.

Resolution is two-tier and never guesses:
- identifier with the rtn_ prefix -> exact id lookup
- anything else -> name lookup among non-archived routines;
  zero matches is RoutineNotFound, several is AmbiguousRoutine
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass

from routine_timer import ids
from routine_timer.errors import (
    AmbiguousRoutine,
    InvalidArgs,
    RoutineNotFound,
    TimestampRequired,
)
from routine_timer.state_store import StateStore
from routine_timer.timer.temporal import parse_instant, validate_timezone

logger = logging.getLogger(__name__)

# Filesystem/log-safe names: alphanumeric start, then alphanumerics, dot, dash, underscore
SAFE_NAME_REGEX = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
MAX_NAME_LENGTH = 128


@dataclass
class Routine:
    id: str
    name: str
    tz: str
    rule: str
    created_at: str
    archived_at: str | None = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tz": self.tz,
            "rule": self.rule,
            "createdAt": self.created_at,
            "archivedAt": self.archived_at,
        }

    def candidate(self) -> dict:
        return {"id": self.id, "name": self.name, "tz": self.tz}


def validate_name(name: str) -> str:
    if not name:
        raise InvalidArgs("routine name is required", {"field": "name"})
    if len(name) > MAX_NAME_LENGTH or not SAFE_NAME_REGEX.match(name):
        raise InvalidArgs(
            "routine name must be alphanumeric (may include ._-), no spaces or special chars",
            {"field": "name", "name": name},
        )
    return name


class RoutineDirectory:
    """
    Routines by id or unique live name.

    add() does not check name uniqueness. Duplicate live names are allowed
    to exist and surface as AmbiguousRoutine when looked up by name.
    """

    def __init__(self, store: StateStore, default_tz: str = "UTC"):
        self.store = store
        self.default_tz = default_tz

    def add(self, name: str, timezone: str | None, rule: str, at: str) -> Routine:
        """Create a routine. `at` is the explicit creation instant."""
        validate_name(name)
        if not rule:
            raise InvalidArgs("rule is required", {"field": "rule"})
        if not at:
            raise TimestampRequired("ts is required for state-changing commands")
        parse_instant(at)

        tz = timezone or self.default_tz
        validate_timezone(tz)

        routine = Routine(
            id=ids.new_routine_id(),
            name=name,
            tz=tz,
            rule=rule,
            created_at=at,
        )
        self.store.insert("routines", asdict(routine))

        logger.info("routine added", extra={"routine_id": routine.id, "routine_name": name})
        return routine

    def resolve(self, identifier: str) -> Routine:
        """Resolve an id or a unique live name to a routine."""
        if not identifier:
            raise InvalidArgs("routine is required", {"field": "routine"})

        if ids.is_routine_id(identifier):
            rows = self.store.query(
                "SELECT * FROM routines WHERE id = ? AND archived_at IS NULL", [identifier]
            )
            if not rows:
                raise RoutineNotFound(f"routine not found: {identifier}", {"id": identifier})
            return Routine(**rows[0])

        rows = self.store.query(
            "SELECT * FROM routines WHERE name = ? AND archived_at IS NULL ORDER BY id",
            [identifier],
        )
        if not rows:
            raise RoutineNotFound(f"routine not found: {identifier}", {"name": identifier})

        if len(rows) > 1:
            candidates = [Routine(**row).candidate() for row in rows]
            logger.debug("ambiguous routine name %s: %d candidates", identifier, len(rows))
            raise AmbiguousRoutine(
                "multiple routines match name",
                {"name": identifier, "candidates": candidates},
            )

        return Routine(**rows[0])

    def show(self, identifier: str) -> Routine:
        return self.resolve(identifier)

    def list(self) -> list[Routine]:
        """All routines: active first, then by name, then by id."""
        rows = self.store.query(
            "SELECT * FROM routines ORDER BY (archived_at IS NOT NULL), name ASC, id ASC"
        )
        return [Routine(**row) for row in rows]

    def archive(self, identifier: str, at: str) -> Routine:
        """Soft-disable a routine. Its sessions are kept."""
        if not at:
            raise TimestampRequired("ts is required for state-changing commands")
        parse_instant(at)

        with self.store.transaction():
            routine = self.resolve(identifier)
            self.store.update("routines", routine.id, {"archived_at": at})

        routine.archived_at = at
        logger.info("routine archived", extra={"routine_id": routine.id})
        return routine

    def get_name(self, routine_id: str) -> str:
        """Display name for any routine id, archived or not."""
        row = self.store.get("routines", routine_id)
        return row["name"] if row else ""
