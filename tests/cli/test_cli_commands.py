"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from hireflow.cli import main as cli_main
from hireflow.cli.main import app

DEFINITION = {
    "name": "Tech screening",
    "trigger": {"type": "application_received", "params": {}},
    "conditions": [{"field": "job.department", "operator": "equals", "value": "Tech"}],
    "actions": [{"type": "add_tag", "params": {"tag": "tech"}}],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Redirect ~ so every database and log lands in tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    monkeypatch.chdir(tmp_path)
    # Wide enough that rich tables never wrap cell text.
    monkeypatch.setattr(cli_main.console, "width", 200)
    return tmp_path


@pytest.fixture
def definition_file(home):
    path = home / "rule.json"
    path.write_text(json.dumps(DEFINITION))
    return path


def write_json(home, name, data):
    path = home / name
    path.write_text(json.dumps(data))
    return path


def created_id(home):
    """The id of the only automation in the store."""
    import sqlite3

    db = sqlite3.connect(home / ".hireflow" / "automations.db")
    try:
        return db.execute("SELECT id FROM automations").fetchone()[0]
    finally:
        db.close()


def test_version(runner):
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.stdout


def test_validate_ok(runner, definition_file):
    result = runner.invoke(app, ["validate", str(definition_file)])
    assert result.exit_code == 0
    assert "Tech screening" in result.stdout


def test_validate_reports_every_error(runner, home):
    path = write_json(home, "bad.json", {"name": "", "actions": []})
    result = runner.invoke(app, ["validate", str(path)])
    assert result.exit_code == 1
    assert "name is required" in result.stdout
    assert "trigger is required" in result.stdout
    assert "at least one action is required" in result.stdout


def test_validate_missing_file(runner, home):
    result = runner.invoke(app, ["validate", str(home / "nope.json")])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_create_list_show(runner, definition_file, home):
    result = runner.invoke(app, ["create", str(definition_file)])
    assert result.exit_code == 0
    assert "inactive" in result.stdout

    automation_id = created_id(home)

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "Tech screening" in result.stdout

    result = runner.invoke(app, ["list", "--active"])
    assert "No automations found" in result.stdout

    result = runner.invoke(app, ["show", automation_id])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["id"] == automation_id


def test_toggle_event_runs(runner, definition_file, home):
    runner.invoke(app, ["create", str(definition_file)])
    automation_id = created_id(home)

    result = runner.invoke(app, ["toggle", automation_id])
    assert result.exit_code == 0
    assert "now active" in result.stdout

    payload = write_json(home, "event.json", {"job": {"department": "Tech"}})
    result = runner.invoke(app, ["event", "application_received", str(payload)])
    assert result.exit_code == 0
    assert "dispatched" in result.stdout
    assert "add_tag" in result.stdout

    log = home / ".hireflow" / "actions.jsonl"
    assert json.loads(log.read_text().splitlines()[0])["action_type"] == "add_tag"

    result = runner.invoke(app, ["runs", automation_id])
    assert result.exit_code == 0
    assert "success" in result.stdout


def test_event_unknown_trigger(runner, home):
    payload = write_json(home, "event.json", {})
    result = runner.invoke(app, ["event", "candidate_hired", str(payload)])
    assert result.exit_code == 1


def test_dry_run(runner, definition_file, home):
    runner.invoke(app, ["create", str(definition_file)])
    automation_id = created_id(home)
    payload = write_json(home, "sample.json", {"job": {"department": "Sales"}})

    result = runner.invoke(app, ["test", automation_id, str(payload), "--json"])

    assert result.exit_code == 0
    trace = json.loads(result.stdout)
    assert trace["all_conditions_passed"] is False
    assert trace["conditions_evaluation"][0]["actual_value"] == "Sales"
    assert not (home / ".hireflow" / "actions.jsonl").exists()

    result = runner.invoke(app, ["test", automation_id, str(payload)])
    assert result.exit_code == 0
    assert "NO MATCH" in result.stdout
    assert "trigger: application received" in result.stdout


def test_templates_and_clone(runner, home):
    result = runner.invoke(app, ["templates"])
    assert result.exit_code == 0
    assert "tech_screening" in result.stdout

    result = runner.invoke(app, ["clone", "stale_alert"])
    assert result.exit_code == 0
    assert "inactive" in result.stdout


def test_clone_unknown_template(runner, home):
    result = runner.invoke(app, ["clone", "nope"])
    assert result.exit_code == 1
    assert "Template not found" in result.stdout


def test_delete(runner, definition_file, home):
    runner.invoke(app, ["create", str(definition_file)])
    automation_id = created_id(home)

    result = runner.invoke(app, ["delete", automation_id, "--yes"])
    assert result.exit_code == 0

    result = runner.invoke(app, ["show", automation_id])
    assert result.exit_code == 1
    assert "Automation not found" in result.stdout


def test_worker_once(runner, home):
    result = runner.invoke(app, ["worker", "--once"])
    assert result.exit_code == 0
    assert "Fired 0 delayed action(s)" in result.stdout
