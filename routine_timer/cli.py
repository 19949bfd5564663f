#!/usr/bin/env python3
"""
routine-timer CLI

Deterministic routine timer. Every state change takes an explicit --ts.

Usage:
    routine-timer add --name Deep-Work --rule "daily>=30m" --ts 2026-01-31T09:00:00+09:00
    routine-timer list
    routine-timer show --routine Deep-Work
    routine-timer archive --routine Deep-Work --ts ...
    routine-timer start --routine Deep-Work --ts ... [--note N] [--tag T ...]
    routine-timer active [--as-of TS]
    routine-timer status [--session ID | --routine R] [--as-of TS]
    routine-timer pause --session ID --ts ...
    routine-timer resume --session ID --ts ...
    routine-timer stop --session ID --ts ... [--note N] [--tag T ...]
    routine-timer rm --session ID --ts ...
    routine-timer today [--date YYYY-MM-DD] [--routine R] [--as-of TS]

Global options: --format human|json, --db PATH, --tz IANA_TZ, --log-level LEVEL

Exit codes: 0 success, 1 generic failure, 2 input error, 3 not found, 4 ambiguity
"""

import argparse
import json
import sys

from routine_timer import __version__
from routine_timer.config import load_settings
from routine_timer.contracts import (
    CONTRACT_VERSION,
    ErrorDetail,
    ErrorEnvelope,
    SessionPayload,
    SuccessEnvelope,
)
from routine_timer.errors import (
    ERR_INTERNAL,
    EXIT_GENERIC_FAILURE,
    EXIT_SUCCESS,
    InvalidArgs,
    RoutineTimerError,
)
from routine_timer.observability import InvocationContext, configure_logging, get_logger
from routine_timer.state_store import close_all, get_store
from routine_timer.timer import (
    RoutineDirectory,
    SessionMachine,
    SessionQueries,
    SessionView,
    day_summary,
)
from routine_timer.timer.temporal import format_duration

logger = get_logger(__name__)


class Services:
    """Everything a command handler needs, wired to one store."""

    def __init__(self, db_path: str | None, default_tz: str):
        self.store = get_store(db_path)
        self.default_tz = default_tz
        self.routines = RoutineDirectory(self.store, default_tz=default_tz)
        self.queries = SessionQueries(self.store, self.routines)
        self.sessions = SessionMachine(self.store, self.routines, self.queries)


def session_payload(view: SessionView) -> dict:
    """Validated wire shape of a session view."""
    return SessionPayload.model_validate(view.to_dict()).model_dump(by_alias=True)


# ==================== Routine commands ====================


def cmd_add(args, svc: Services) -> dict:
    routine = svc.routines.add(args.name, args.tz, args.rule, args.ts)
    return {"routine": routine.to_dict()}


def cmd_list(args, svc: Services) -> dict:
    return {"routines": [r.to_dict() for r in svc.routines.list()]}


def cmd_show(args, svc: Services) -> dict:
    return {"routine": svc.routines.show(args.routine).to_dict()}


def cmd_archive(args, svc: Services) -> dict:
    return {"routine": svc.routines.archive(args.routine, args.ts).to_dict()}


# ==================== Session commands ====================


def cmd_start(args, svc: Services) -> dict:
    view = svc.sessions.start(args.routine, args.ts, note=args.note, tags=args.tag)
    return {"session": session_payload(view)}


def cmd_active(args, svc: Services) -> dict:
    result = svc.queries.active(as_of=args.as_of)
    return {"asOf": result["asOf"], "sessions": [session_payload(v) for v in result["sessions"]]}


def cmd_status(args, svc: Services) -> dict:
    result = svc.queries.status_of(
        session_id=args.session, routine_identifier=args.routine, as_of=args.as_of
    )
    if "session" in result:
        return {"session": session_payload(result["session"])}
    return {"asOf": result["asOf"], "sessions": [session_payload(v) for v in result["sessions"]]}


def cmd_pause(args, svc: Services) -> dict:
    return {"session": session_payload(svc.sessions.pause(args.session, args.ts))}


def cmd_resume(args, svc: Services) -> dict:
    return {"session": session_payload(svc.sessions.resume(args.session, args.ts))}


def cmd_stop(args, svc: Services) -> dict:
    view = svc.sessions.stop(args.session, args.ts, note=args.note, tags=args.tag)
    return {"session": session_payload(view)}


def cmd_rm(args, svc: Services) -> dict:
    return {"session": session_payload(svc.sessions.delete(args.session, args.ts))}


# ==================== Summary ====================


def cmd_today(args, svc: Services) -> dict:
    summary = day_summary(
        svc.queries,
        date=args.date,
        tz=args.tz,
        routine_identifier=args.routine,
        as_of=args.as_of,
        default_tz=svc.default_tz,
    )
    summary["sessions"] = [session_payload(v) for v in summary["sessions"]]
    return summary


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "show": cmd_show,
    "archive": cmd_archive,
    "start": cmd_start,
    "active": cmd_active,
    "status": cmd_status,
    "pause": cmd_pause,
    "resume": cmd_resume,
    "stop": cmd_stop,
    "rm": cmd_rm,
    "today": cmd_today,
}


# ==================== Rendering ====================


def _human_session(s: dict) -> str:
    c = s["computed"]
    line = (
        f"{s['id']}  {s['routineName']}  {s['status']}  "
        f"active {format_duration(c['activeSeconds'])}  "
        f"paused {format_duration(c['pausedSeconds'])}  "
        f"total {format_duration(c['durationSeconds'])}"
    )
    span = f"  {s['start']} -> {s['end'] or '(open)'}"
    if s["tags"]:
        span += f"  [{', '.join(s['tags'])}]"
    return line + "\n" + span


def _human_routine(r: dict) -> str:
    archived = f"  (archived {r['archivedAt']})" if r["archivedAt"] else ""
    return f"{r['id']}  {r['name']}  {r['tz']}  {r['rule']}{archived}"


def render_human(command: str, data: dict) -> str:
    if "routine" in data:
        return _human_routine(data["routine"])
    if "routines" in data:
        if not data["routines"]:
            return "No routines"
        return "\n".join(_human_routine(r) for r in data["routines"])
    if "session" in data:
        return _human_session(data["session"])

    lines = []
    if command == "today":
        t = data["totals"]
        lines.append(f"## {data['date']} ({data['tz']})")
        lines.append(
            f"{t['sessionsCount']} sessions  active {format_duration(t['activeSeconds'])}  "
            f"paused {format_duration(t['pausedSeconds'])}  "
            f"total {format_duration(t['durationSeconds'])}"
        )
    else:
        lines.append(f"## Active sessions as of {data['asOf']} ({len(data['sessions'])})")
    lines.extend(_human_session(s) for s in data["sessions"])
    return "\n".join(lines)


def emit_success(command: str, data: dict, meta: dict, fmt: str) -> None:
    if fmt == "json":
        envelope = SuccessEnvelope(command=command, data=data, meta=meta)
        print(json.dumps(envelope.model_dump(), indent=2))
    else:
        print(render_human(command, data))


def emit_error(code: str, message: str, details: dict | None, fmt: str) -> None:
    if fmt == "json":
        envelope = ErrorEnvelope(error=ErrorDetail(code=code, message=message, details=details))
        print(json.dumps(envelope.model_dump(), indent=2))
    else:
        print(f"Error [{code}]: {message}", file=sys.stderr)
        if details:
            print(f"Details: {json.dumps(details, indent=2)}", file=sys.stderr)


# ==================== Parser ====================


class CommandParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors become InvalidArgs instead of exiting."""

    def error(self, message: str):
        raise InvalidArgs(message, {"usage": self.format_usage().strip()})


def requested_format(argv: list[str]) -> str:
    """--format as written on the command line, for errors raised before parsing finishes."""
    fmt = "human"
    for i, arg in enumerate(argv):
        if arg == "--format" and i + 1 < len(argv):
            fmt = argv[i + 1]
        elif arg.startswith("--format="):
            fmt = arg.split("=", 1)[1]
    return "json" if fmt == "json" else "human"


def _add_global_options(parser: argparse.ArgumentParser, default) -> None:
    parser.add_argument("--format", choices=["human", "json"], default=default, help="Output format")
    parser.add_argument("--db", default=default, help="Database path")
    parser.add_argument("--tz", default=default, help="IANA timezone")
    parser.add_argument("--log-level", default=default, help="Log level (default from config)")


def build_parser() -> argparse.ArgumentParser:
    parser = CommandParser(prog="routine-timer", description="Deterministic routine timer")
    parser.add_argument("--version", action="version", version=f"routine-timer {__version__}")
    _add_global_options(parser, None)

    # Global options may also follow the subcommand
    common = CommandParser(add_help=False)
    _add_global_options(common, argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command", required=True)

    def sub(name, help_text):
        return subparsers.add_parser(name, help=help_text, parents=[common])

    # add
    p = sub("add", "Create a routine")
    p.add_argument("--name", help="Routine name ([A-Za-z0-9._-])")
    p.add_argument("--rule", help='Target rule, e.g. "daily>=30m"')
    p.add_argument("--ts", help="Creation instant (RFC3339 with offset)")

    # list
    sub("list", "List routines")

    # show
    p = sub("show", "Show one routine")
    p.add_argument("--routine", help="Routine id or name")

    # archive
    p = sub("archive", "Archive a routine")
    p.add_argument("--routine", help="Routine id or name")
    p.add_argument("--ts", help="Archive instant")

    # start
    p = sub("start", "Start a session")
    p.add_argument("--routine", help="Routine id or name")
    p.add_argument("--ts", help="Start instant")
    p.add_argument("--note", help="Session note")
    p.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    # active
    p = sub("active", "List open sessions")
    p.add_argument("--as-of", help="Query instant (default now)")

    # status
    p = sub("status", "Session status")
    p.add_argument("--session", help="Session id")
    p.add_argument("--routine", help="Routine id or name")
    p.add_argument("--as-of", help="Query instant (default now)")

    # pause / resume / rm
    for name, help_text in (
        ("pause", "Pause a session"),
        ("resume", "Resume a paused session"),
        ("rm", "Delete a session"),
    ):
        p = sub(name, help_text)
        p.add_argument("--session", help="Session id")
        p.add_argument("--ts", help="Transition instant")

    # stop
    p = sub("stop", "Stop a session")
    p.add_argument("--session", help="Session id")
    p.add_argument("--ts", help="End instant")
    p.add_argument("--note", help="Replace the session note")
    p.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    # today
    p = sub("today", "Daily summary")
    p.add_argument("--date", help="Local date YYYY-MM-DD (default today)")
    p.add_argument("--routine", help="Routine id or name")
    p.add_argument("--as-of", help="Query instant (default now)")

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)

    with InvocationContext() as ctx:
        # Must precede load_settings; reconfigured once settings are known
        configure_logging()
        settings = load_settings()

        try:
            args = build_parser().parse_args(argv)
        except InvalidArgs as e:
            emit_error(e.code, e.message, e.details or None, requested_format(argv))
            return e.exit_code

        fmt = args.format or "human"
        configure_logging(level=args.log_level or settings.log_level, json_format=settings.log_json)
        logger.debug("command %s", args.command)

        try:
            svc = Services(args.db, default_tz=args.tz or settings.default_tz)
            data = COMMANDS[args.command](args, svc)
            meta = {
                "invocationId": ctx.invocation_id,
                "contractVersion": CONTRACT_VERSION,
                "db": svc.store.db_path,
                "tz": args.tz,
            }
            emit_success(args.command, data, meta, fmt)
            return EXIT_SUCCESS
        except RoutineTimerError as e:
            logger.info("command %s failed: %s", args.command, e.code)
            emit_error(e.code, e.message, e.details or None, fmt)
            return e.exit_code
        except Exception as e:
            logger.exception("command %s crashed", args.command)
            emit_error(ERR_INTERNAL, str(e), None, fmt)
            return EXIT_GENERIC_FAILURE
        finally:
            close_all()


if __name__ == "__main__":
    sys.exit(main())
