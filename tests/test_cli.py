"""
Tests for the command layer - envelopes, exit codes and human output.

Commands run in-process through main(argv); JSON output is read back
from captured stdout.
"""

import json

import pytest

from routine_timer import paths
from routine_timer.cli import main


@pytest.fixture
def cli(db_path, capsys):
    """Run a command in JSON mode and return (exit_code, envelope)."""

    def run(*argv):
        code = main([*argv, "--format", "json", "--db", str(db_path)])
        out = capsys.readouterr().out
        return code, json.loads(out)

    return run


@pytest.fixture
def routine(cli):
    code, env = cli("add", "--name", "Deep-Work", "--rule", "daily>=30m", "--tz", "Asia/Tokyo",
                    "--ts", "2026-01-31T08:00:00+09:00")
    assert code == 0
    return env["data"]["routine"]


class TestEnvelope:
    def test_success_shape(self, cli, routine):
        code, env = cli("list")
        assert code == 0
        assert env["ok"] is True
        assert env["command"] == "list"
        assert env["warnings"] == []
        assert env["meta"]["invocationId"].startswith("inv-")
        assert [r["name"] for r in env["data"]["routines"]] == ["Deep-Work"]

    def test_error_shape(self, cli):
        code, env = cli("show", "--routine", "Nope")
        assert code == 3
        assert env["ok"] is False
        assert env["error"]["code"] == "ERR_ROUTINE_NOT_FOUND"
        assert env["error"]["details"] == {"name": "Nope"}

    def test_global_options_before_subcommand(self, db_path, capsys, routine):
        code = main(["--format", "json", "--db", str(db_path), "show", "--routine", "Deep-Work"])
        env = json.loads(capsys.readouterr().out)
        assert code == 0
        assert env["data"]["routine"]["tz"] == "Asia/Tokyo"

    def test_unknown_command_is_invalid_args(self, cli):
        code, env = cli("frobnicate")
        assert code == 2
        assert env["ok"] is False
        assert env["error"]["code"] == "ERR_INVALID_ARGS"
        assert "frobnicate" in env["error"]["message"]
        assert env["error"]["details"]["usage"].startswith("usage:")

    def test_unknown_option_is_invalid_args(self, cli):
        code, env = cli("pause", "--sesion", "ses_x", "--ts", "2026-01-31T09:00:00+09:00")
        assert code == 2
        assert env["error"]["code"] == "ERR_INVALID_ARGS"
        assert "--sesion" in env["error"]["message"]

    def test_missing_command_is_invalid_args(self, db_path, capsys):
        code = main(["--format=json", "--db", str(db_path)])
        env = json.loads(capsys.readouterr().out)
        assert code == 2
        assert env["error"]["code"] == "ERR_INVALID_ARGS"

    def test_format_choice_error_falls_back_to_human(self, db_path, capsys):
        code = main(["list", "--format", "yaml", "--db", str(db_path)])
        captured = capsys.readouterr()
        assert code == 2
        assert captured.out == ""
        assert "ERR_INVALID_ARGS" in captured.err


class TestSessionFlow:
    def test_pause_resume_stop(self, cli, routine):
        _, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00",
                     "--tag", "focus")
        sid = env["data"]["session"]["id"]
        assert env["data"]["session"]["status"] == "running"

        assert cli("pause", "--session", sid, "--ts", "2026-01-31T09:10:00+09:00")[0] == 0
        assert cli("resume", "--session", sid, "--ts", "2026-01-31T09:15:00+09:00")[0] == 0
        code, env = cli("stop", "--session", sid, "--ts", "2026-01-31T09:30:00+09:00")

        assert code == 0
        session = env["data"]["session"]
        assert session["status"] == "stopped"
        assert session["tags"] == ["focus"]
        assert session["computed"]["durationSeconds"] == 1800
        assert session["computed"]["pausedSeconds"] == 300
        assert session["computed"]["activeSeconds"] == 1500

    def test_active_and_status(self, cli, routine):
        _, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00")
        sid = env["data"]["session"]["id"]

        _, active = cli("active", "--as-of", "2026-01-31T09:20:00+09:00")
        assert [s["id"] for s in active["data"]["sessions"]] == [sid]
        assert active["data"]["asOf"] == "2026-01-31T09:20:00+09:00"

        _, status = cli("status", "--session", sid, "--as-of", "2026-01-31T09:20:00+09:00")
        assert status["data"]["session"]["computed"]["activeSeconds"] == 1200

    def test_rm(self, cli, routine):
        _, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00")
        sid = env["data"]["session"]["id"]

        code, env = cli("rm", "--session", sid, "--ts", "2026-01-31T09:05:00+09:00")
        assert code == 0
        assert env["data"]["session"]["deletedAt"] == "2026-01-31T09:05:00+09:00"
        assert cli("status", "--session", sid)[0] == 3

    def test_today(self, cli, routine):
        _, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00")
        cli("stop", "--session", env["data"]["session"]["id"], "--ts", "2026-01-31T09:30:00+09:00")

        code, env = cli("today", "--routine", "Deep-Work", "--date", "2026-01-31",
                        "--as-of", "2026-02-01T00:00:00Z")
        assert code == 0
        assert env["data"]["tz"] == "Asia/Tokyo"
        assert env["data"]["totals"]["sessionsCount"] == 1
        assert env["data"]["totals"]["activeSeconds"] == 1800


class TestExitCodes:
    def test_ambiguous_routine(self, cli):
        for _ in range(2):
            cli("add", "--name", "Run", "--rule", "daily", "--ts", "2026-01-31T08:00:00Z")

        code, env = cli("start", "--routine", "Run", "--ts", "2026-01-31T09:00:00Z")
        assert code == 4
        assert env["error"]["code"] == "ERR_AMBIGUOUS_ROUTINE"
        assert len(env["error"]["details"]["candidates"]) == 2

    def test_unknown_session(self, cli):
        code, env = cli("pause", "--session", "ses_missing", "--ts", "2026-01-31T09:00:00Z")
        assert code == 3
        assert env["error"]["code"] == "ERR_SESSION_NOT_FOUND"

    def test_ts_required(self, cli, routine):
        code, env = cli("start", "--routine", "Deep-Work")
        assert code == 2
        assert env["error"]["code"] == "ERR_TS_REQUIRED"

    def test_ts_without_offset(self, cli, routine):
        code, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00")
        assert code == 2
        assert env["error"]["code"] == "ERR_INVALID_TIME_FORMAT"

    def test_session_required(self, cli, routine):
        cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00")
        code, env = cli("pause", "--ts", "2026-01-31T09:10:00+09:00")
        assert code == 2
        assert env["error"]["code"] == "ERR_SESSION_REQUIRED"
        assert len(env["error"]["details"]["activeSessions"]) == 1

    def test_end_before_start(self, cli, routine):
        _, env = cli("start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00")
        code, env = cli("stop", "--session", env["data"]["session"]["id"],
                        "--ts", "2026-01-31T08:00:00+09:00")
        assert code == 2
        assert env["error"]["code"] == "ERR_END_BEFORE_START"


class TestHumanOutput:
    def test_session_line(self, db_path, capsys, routine):
        code = main(["start", "--routine", "Deep-Work", "--ts", "2026-01-31T09:00:00+09:00",
                     "--db", str(db_path)])
        out = capsys.readouterr().out
        assert code == 0
        assert "Deep-Work" in out
        assert "running" in out

    def test_error_goes_to_stderr(self, db_path, capsys):
        code = main(["show", "--routine", "Nope", "--db", str(db_path)])
        captured = capsys.readouterr()
        assert code == 3
        assert captured.out == ""
        assert "ERR_ROUTINE_NOT_FOUND" in captured.err

    def test_empty_list(self, db_path, capsys):
        assert main(["list", "--db", str(db_path)]) == 0
        assert "No routines" in capsys.readouterr().out


class TestLogging:
    def test_broken_config_warning_is_structured(self, db_path, capsys):
        config = paths.config_path()
        config.parent.mkdir(parents=True, exist_ok=True)
        config.write_text("default_tz: [unclosed\n", encoding="utf-8")

        code = main(["list", "--format", "json", "--db", str(db_path)])
        captured = capsys.readouterr()
        assert code == 0

        records = [json.loads(line) for line in captured.err.splitlines() if line.startswith("{")]
        warnings = [r for r in records if r["message"].startswith("Failed to load config")]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["logger"] == "routine_timer.config"
        assert warnings[0]["invocation_id"] == json.loads(captured.out)["meta"]["invocationId"]
