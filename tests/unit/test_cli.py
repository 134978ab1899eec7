"""Tests for the taskscan command-line interface."""
import json
import logging
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from taskscan import cli
from taskscan.capture import CaptureSourceError
from taskscan.shared.logger import _BridgeHandler
from taskscan.storage import SQLiteTaskStore
from taskscan.types import CapturedItem, Task

CAPTURED = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TASKSCAN_SETTINGS_PATH", "TASKSCAN_DB_PATH", "TASKSCAN_LLM_MODELS", "QUEUE_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli.signal, "signal", lambda *args: None)
    yield
    root = logging.getLogger("taskscan")
    for handler in [h for h in root.handlers if isinstance(h, _BridgeHandler)]:
        root.removeHandler(handler)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "tasks.db")


@pytest.fixture
def runner():
    return CliRunner()


def _fake_client(items=(), error=None):
    class FakeClient:
        def __init__(self, base_url, *args, **kwargs):
            self.base_url = base_url

        async def query(self, start=None, end=None, limit=500, **kwargs):
            if error is not None:
                raise error
            return list(items)

    return FakeClient


class TestExtract:
    """taskscan extract"""

    def test_text_argument(self, runner):
        result = runner.invoke(
            cli.main,
            ["--no-llm", "extract", "please remember to send the invoice by 11/01/2025", "--source", "Slack"],
        )
        assert result.exit_code == 0, result.output
        assert "[medium] Remember to send the invoice by 11/01/2025 (due 2025-11-01)" in result.output
        assert "method: fallback" in result.output

    def test_json_output(self, runner, tmp_path):
        text_file = tmp_path / "note.txt"
        text_file.write_text("TODO: renew the domain ASAP\n")
        result = runner.invoke(cli.main, ["--no-llm", "extract", "--file", str(text_file), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["method"] == "fallback"
        assert data["data"][0]["title"] == "Renew the domain ASAP"
        assert data["data"][0]["priority"] == "high"

    def test_nothing_found(self, runner):
        result = runner.invoke(cli.main, ["--no-llm", "extract", "lunch was great"])
        assert result.exit_code == 0
        assert "No tasks found." in result.output

    def test_requires_text(self, runner):
        result = runner.invoke(cli.main, ["--no-llm", "extract"])
        assert result.exit_code == 1
        assert "Provide TEXT or --file" in result.output


class TestTaskCommands:
    """taskscan tasks / status / remind"""

    def _seed(self, db_path):
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        tasks = [
            Task(title="Send the invoice", priority="high", source="Slack", created_at=old),
            Task(title="Call the bank", status="completed", created_at=old),
        ]
        SQLiteTaskStore(db_path).save(tasks)
        return tasks

    def test_list(self, runner, db_path):
        self._seed(db_path)
        result = runner.invoke(cli.main, ["--db", db_path, "tasks"])
        assert result.exit_code == 0, result.output
        assert "Send the invoice" in result.output
        assert "Call the bank" in result.output

    def test_list_by_status_json(self, runner, db_path):
        self._seed(db_path)
        result = runner.invoke(cli.main, ["--db", db_path, "tasks", "--status", "completed", "--json"])
        assert [t["title"] for t in json.loads(result.stdout)] == ["Call the bank"]

    def test_empty_list(self, runner, db_path):
        result = runner.invoke(cli.main, ["--db", db_path, "tasks"])
        assert "No tasks found." in result.output

    def test_set_status(self, runner, db_path):
        invoice, _ = self._seed(db_path)
        result = runner.invoke(cli.main, ["--db", db_path, "status", invoice.id, "cancelled"])
        assert result.exit_code == 0, result.output
        assert f"{invoice.id}: cancelled" in result.output
        assert SQLiteTaskStore(db_path).get(invoice.id).status == "cancelled"

    def test_set_status_unknown(self, runner, db_path):
        self._seed(db_path)
        result = runner.invoke(cli.main, ["--db", db_path, "status", "missing", "completed"])
        assert result.exit_code == 1
        assert "Task not found: missing" in result.output

    def test_remind(self, runner, db_path):
        self._seed(db_path)
        result = runner.invoke(cli.main, ["--db", db_path, "remind"])
        assert result.exit_code == 0, result.output
        assert "Reminded about 1 pending tasks" in result.output


class TestScan:
    """taskscan scan / watch"""

    def test_scan_json(self, runner, db_path, monkeypatch):
        items = [
            CapturedItem(source_app="Slack", text="please call the bank asap about the card", captured_at=CAPTURED),
        ]
        monkeypatch.setattr(cli, "ScreenpipeClient", _fake_client(items))

        result = runner.invoke(cli.main, ["--db", db_path, "--no-llm", "scan", "--json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["added"] == 1
        assert report["high_priority_added"] == 1
        assert [t.title for t in SQLiteTaskStore(db_path).load()] == ["Call the bank asap about the card"]

    def test_scan_capture_source_down(self, runner, db_path, monkeypatch):
        error = CaptureSourceError("Could not connect to Screenpipe at http://localhost:3030")
        monkeypatch.setattr(cli, "ScreenpipeClient", _fake_client(error=error))
        result = runner.invoke(cli.main, ["--db", db_path, "--no-llm", "scan"])
        assert result.exit_code == 1
        assert "Could not connect to Screenpipe" in result.output

    def test_scan_logs_to_file(self, runner, db_path, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "ScreenpipeClient", _fake_client())
        log_file = tmp_path / "scan.log"
        result = runner.invoke(cli.main, ["--db", db_path, "--no-llm", "scan", "--log-file", str(log_file)])
        assert result.exit_code == 0, result.output
        content = log_file.read_text()
        assert "SCAN" in content
        assert "captured = 0" in content

    def test_watch_single_scan(self, runner, db_path, monkeypatch):
        items = [CapturedItem(source_app="Mail", text="TODO: renew the domain before friday", captured_at=CAPTURED)]
        monkeypatch.setattr(cli, "ScreenpipeClient", _fake_client(items))
        result = runner.invoke(cli.main, ["--db", db_path, "--no-llm", "watch", "--max-scans", "1"])
        assert result.exit_code == 0, result.output
        assert "Watching every 5 min" in result.output
        assert len(SQLiteTaskStore(db_path).load()) == 1


def test_invalid_settings_file(runner, tmp_path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"priorityKeywords": {"high": 5}}))
    result = runner.invoke(cli.main, ["--settings", str(settings), "--no-llm", "extract", "please do it now"])
    assert result.exit_code == 1
    assert "Invalid settings" in result.output
