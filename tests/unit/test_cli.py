from __future__ import annotations

import json

import pytest

from slugregistry import __version__
from slugregistry.presentation.cli.main import create_parser, run_cli


@pytest.fixture(autouse=True)
def _no_config(monkeypatch):
    monkeypatch.delenv("SLUGREG_CONFIG", raising=False)
    monkeypatch.delenv("SLUGREG_SCHEMA_AUTO_ENSURE", raising=False)


def _json(capsys):
    return json.loads(capsys.readouterr().out)


def test_parser_commands():
    parser = create_parser()
    args = parser.parse_args(["--db-url", "sqlite:///x.db", "check", "ann", "--user-id", "u1"])
    assert args.command == "check"
    assert args.slug == "ann"
    assert args.user_id == "u1"
    assert parser.parse_args(["backfill", "--dry-run"]).dry_run is True


def test_version(capsys):
    assert run_cli(["--version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert run_cli([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_ensure_then_probe(db_url, capsys):
    assert run_cli(["--db-url", db_url, "ensure-schema"]) == 0
    assert _json(capsys) == {"primary_ready": True}

    assert run_cli(["--db-url", db_url, "probe"]) == 0
    assert _json(capsys)["primary_ready"] is True


def test_assign_check_rename_resolve(db_url, capsys):
    assert run_cli(["--db-url", db_url, "assign", "u1", "Ann Smith"]) == 0
    assert _json(capsys)["public_slug"] == "ann-smith"

    assert run_cli(["--db-url", db_url, "check", "ann-smith", "--user-id", "u1"]) == 0
    assert _json(capsys) == {"available": False, "mine": True}

    assert run_cli(["--db-url", db_url, "rename", "u1", "annie"]) == 0
    assert _json(capsys)["previous_slug"] == "ann-smith"

    assert run_cli(["--db-url", db_url, "resolve", "ann-smith"]) == 0
    assert _json(capsys) == {"slug": "ann-smith", "redirect_to": "annie"}

    assert run_cli(["--db-url", db_url, "clear", "u1"]) == 0
    assert _json(capsys)["released"] == "annie"


def test_rename_conflict_exit_code(db_url, capsys):
    run_cli(["--db-url", db_url, "assign", "u1", "Ann"])
    capsys.readouterr()

    assert run_cli(["--db-url", db_url, "rename", "u2", "ann"]) == 2
    payload = _json(capsys)
    assert payload["code"] == "SLUG_CONFLICT"
    assert payload["current_owner"] == "u1"


def test_reserved_rename_reports_error(db_url, capsys):
    assert run_cli(["--db-url", db_url, "rename", "u1", "admin"]) == 1
    assert "RESERVED_SLUG" in capsys.readouterr().err
