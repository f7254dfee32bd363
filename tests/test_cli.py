# ==============================================================================
# Tests for the CLI
# ==============================================================================
"""
Tests for the code-time Typer application using typer.testing.CliRunner.
"""

from datetime import datetime, timedelta, timezone

from typer.testing import CliRunner

from code_time.cli import app
from code_time.db import database_connection, insert_events

runner = CliRunner()


class TestHelp:
    def test_root_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Local-first coding time tracker" in result.output

    def test_commands_listed(self):
        result = runner.invoke(app, ["--help"])
        for command in ("serve", "create-user", "minutes", "summary"):
            assert command in result.output


class TestCommands:
    def test_create_user_prints_token(self, db_path):
        result = runner.invoke(app, ["create-user", "new@example.com", "--db", str(db_path)])
        assert result.exit_code == 0
        assert len(result.stdout.strip().splitlines()[-1]) == 64

    def test_duplicate_user_fails(self, db_path, user):
        result = runner.invoke(app, ["create-user", user.email, "--db", str(db_path)])
        assert result.exit_code == 1

    def test_unknown_user_fails(self, db_path):
        result = runner.invoke(app, ["summary", "nobody@example.com", "--db", str(db_path)])
        assert result.exit_code == 1

    def test_minutes(self, db_path, user, make_event):
        now = datetime.now(timezone.utc)
        events = [
            make_event(at=now - timedelta(minutes=4)),
            make_event(at=now - timedelta(minutes=2)),
        ]
        with database_connection(db_path) as conn:
            insert_events(conn, user.id, events)
        result = runner.invoke(
            app, ["minutes", user.email, "--minutes", "30", "--db", str(db_path)]
        )
        assert result.exit_code == 0
        assert result.stdout.strip().splitlines()[-1] == "2"

    def test_summary(self, db_path, user, make_event):
        now = datetime.now(timezone.utc)
        events = [
            make_event(at=now - timedelta(minutes=6), language="Ruby"),
            make_event(at=now - timedelta(minutes=3), language="Ruby"),
        ]
        with database_connection(db_path) as conn:
            insert_events(conn, user.id, events)
        result = runner.invoke(
            app, ["summary", user.email, "--period", "7d", "--db", str(db_path)]
        )
        assert result.exit_code == 0
        assert "Languages:" in result.stdout
        assert "Daily:" in result.stdout

    def test_minutes_with_huge_window(self, db_path, user, make_event):
        now = datetime.now(timezone.utc)
        with database_connection(db_path) as conn:
            insert_events(
                conn,
                user.id,
                [
                    make_event(at=now - timedelta(minutes=4)),
                    make_event(at=now - timedelta(minutes=2)),
                ],
            )
        result = runner.invoke(
            app, ["minutes", user.email, "--minutes", "10000000000", "--db", str(db_path)]
        )
        assert result.exit_code == 0
        assert result.stdout.strip().splitlines()[-1] == "2"


class TestServe:
    def _capture(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(
            "code_time.server_runner.run_server",
            lambda settings: captured.setdefault("settings", settings),
        )
        return captured

    def test_verbose_sets_debug_log_level(self, monkeypatch, db_path):
        captured = self._capture(monkeypatch)
        result = runner.invoke(app, ["--verbose", "serve", "--db", str(db_path)])
        assert result.exit_code == 0
        assert captured["settings"].log_level == "debug"

    def test_default_log_level(self, monkeypatch, db_path):
        captured = self._capture(monkeypatch)
        result = runner.invoke(app, ["serve", "--port", "9000", "--db", str(db_path)])
        assert result.exit_code == 0
        assert captured["settings"].log_level == "info"
        assert captured["settings"].port == 9000
