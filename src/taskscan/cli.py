"""Command-line interface for taskscan.

Usage:
    taskscan scan --log-file ~/.taskscan/scan.log
    taskscan watch --interval 5
    taskscan extract "please send the invoice by 11/01/2025" --source Slack
    taskscan tasks --status pending
    taskscan status <task-id> completed
    taskscan remind
"""

from __future__ import annotations

import asyncio
import json
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, NoReturn

import click
import httpx

from taskscan.capture.screenpipe import CaptureSourceError, ScreenpipeClient
from taskscan.config import ScanSettings
from taskscan.extraction.orchestrator import TaskExtractor
from taskscan.extraction.strategies import PatternStrategy, group_by_source
from taskscan.notify import Notifier
from taskscan.pipeline import ScanReport, scan_window, send_reminders
from taskscan.shared.logger import ScanLogger
from taskscan.shared.queue import create_queue
from taskscan.storage.sqlite import SQLiteTaskStore
from taskscan.types import CapturedItem, Task

shutdown_requested = False


def signal_handler(sig: int, frame: Any) -> None:
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    shutdown_requested = True


def _load_settings(settings_path: str | None, db_path: str | None, no_llm: bool) -> ScanSettings:
    settings = ScanSettings.from_json(settings_path) if settings_path else ScanSettings.from_env()
    if db_path:
        settings = replace(settings, db_path=db_path)
    if no_llm:
        settings = replace(settings, llm_models=[])
    return settings


def _build_extractor(settings: ScanSettings) -> TaskExtractor:
    if not settings.llm_models:
        return TaskExtractor([PatternStrategy()])
    return TaskExtractor.default(settings.llm_models, settings.llm_timeout)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _format_tasks(tasks: list[Task]) -> str:
    """Format tasks as a terminal table."""
    if not tasks:
        return "No tasks found."

    lines = [
        "Status     Priority  Due         Source        Title",
        "------     --------  ---         ------        -----",
    ]
    for task in tasks:
        due = task.due_date.strftime("%Y-%m-%d") if task.due_date else "-"
        title = task.title if len(task.title) <= 60 else task.title[:57] + "..."
        lines.append(f"{task.status:<11}{task.priority:<10}{due:<12}{task.source[:12]:<14}{title}")
    return "\n".join(lines)


def _report_lines(log: ScanLogger, report: ScanReport) -> None:
    log.metric("captured", report.captured)
    log.metric("filtered", report.filtered)
    log.metric("extracted", report.extracted)
    log.metric("new_tasks", report.added)
    log.metric("high_priority", report.high_priority_added)
    log.metric("total_tasks", report.total_tasks)


@click.group()
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False), help="JSON settings file")
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="SQLite task database")
@click.option("--no-llm", is_flag=True, help="Pattern extraction only; never call a model")
@click.pass_context
def main(ctx: click.Context, settings_path: str | None, db_path: str | None, no_llm: bool) -> None:
    """Extract tasks from captured screen text."""
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings_path
    ctx.obj["db_path"] = db_path
    ctx.obj["no_llm"] = no_llm


def _settings(ctx: click.Context) -> ScanSettings:
    try:
        return _load_settings(ctx.obj["settings_path"], ctx.obj["db_path"], ctx.obj["no_llm"])
    except ValueError as e:
        _fail(f"Invalid settings: {e}")


def _run_scan(settings: ScanSettings, log: ScanLogger) -> ScanReport:
    store = SQLiteTaskStore(str(settings.resolved_db_path))
    notifier = Notifier(
        create_queue(),
        stream=settings.notify_stream,
        enabled=settings.enable_notifications,
        source_service="taskscan-cli",
    )
    client = ScreenpipeClient(settings.screenpipe_url)
    with log.timer("scan"):
        report = asyncio.run(scan_window(client, settings, store, notifier, _build_extractor(settings)))
    _report_lines(log, report)
    return report


@main.command()
@click.option("--log-file", type=click.Path(dir_okay=False), help="Append the run log to this file")
@click.option("--json", "json_output", is_flag=True, help="Print the scan report as JSON")
@click.pass_context
def scan(ctx: click.Context, log_file: str | None, json_output: bool) -> None:
    """Scan the recent capture window once."""
    settings = _settings(ctx)
    with ScanLogger(log_file=log_file, console=not json_output) as log:
        log.install_stdlib_bridge()
        log.section("SCAN")
        try:
            report = _run_scan(settings, log)
        except CaptureSourceError as e:
            _fail(str(e))
        except httpx.HTTPError as e:
            _fail(f"Request failed: {e}")

    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))


@main.command()
@click.option("--interval", type=int, default=None, help="Minutes between scans (default: settings)")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Append the run log to this file")
@click.option("--max-scans", type=int, default=0, help="Stop after N scans (0 = run until interrupted)")
@click.pass_context
def watch(ctx: click.Context, interval: int | None, log_file: str | None, max_scans: int) -> None:
    """Scan repeatedly until interrupted."""
    global shutdown_requested
    shutdown_requested = False
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    settings = _settings(ctx)
    minutes = interval or settings.scan_interval

    with ScanLogger(log_file=log_file) as log:
        log.install_stdlib_bridge()
        log.info(f"Watching every {minutes} min (Ctrl+C to stop)")
        scans = 0
        while not shutdown_requested:
            if settings.enable_auto_detection:
                log.section(f"SCAN {scans + 1}")
                try:
                    _run_scan(settings, log)
                except (CaptureSourceError, httpx.HTTPError) as e:
                    log.warn(f"Scan skipped: {e}")
            else:
                log.info("Auto-detection is disabled; skipping scan")
            scans += 1
            if max_scans and scans >= max_scans:
                break

            deadline = time.monotonic() + minutes * 60
            while not shutdown_requested and time.monotonic() < deadline:
                time.sleep(1.0)

        log.summary()


@main.command()
@click.argument("text", required=False)
@click.option("--file", "file_path", type=click.Path(exists=True, dir_okay=False), help="Read text from a file")
@click.option("--source", default="Unknown", help="Application label for the text")
@click.option("--json", "json_output", is_flag=True, help="Output raw JSON")
@click.pass_context
def extract(
    ctx: click.Context, text: str | None, file_path: str | None, source: str, json_output: bool
) -> None:
    """Extract tasks from TEXT (or --file) without saving them."""
    if file_path:
        text = Path(file_path).read_text(encoding="utf-8")
    if not text or not text.strip():
        _fail("Provide TEXT or --file")

    settings = _settings(ctx)
    extractor = _build_extractor(settings)
    groups = group_by_source([CapturedItem(source_app=source, text=text)], extractor.max_text_chars)
    result = asyncio.run(extractor.extract_group(groups[0], settings.keywords))

    if json_output:
        click.echo(json.dumps(
            {
                "method": result.method,
                "errors": result.errors,
                "data": [c.to_dict() for c in result.candidates],
            },
            indent=2,
        ))
        return

    if not result.candidates:
        click.echo("No tasks found.")
    for candidate in result.candidates:
        due = f" (due {candidate.due_date:%Y-%m-%d})" if candidate.due_date else ""
        click.echo(f"[{candidate.priority}] {candidate.title}{due}")
    click.echo(f"method: {result.method}")


@main.command()
@click.option(
    "--status",
    type=click.Choice(["pending", "completed", "cancelled"]),
    default=None,
    help="Only show tasks with this status",
)
@click.option("--json", "json_output", is_flag=True, help="Output raw JSON")
@click.pass_context
def tasks(ctx: click.Context, status: str | None, json_output: bool) -> None:
    """List persisted tasks."""
    settings = _settings(ctx)
    loaded = SQLiteTaskStore(str(settings.resolved_db_path)).load()
    if status:
        loaded = [t for t in loaded if t.status == status]

    if json_output:
        click.echo(json.dumps([t.to_dict() for t in loaded], indent=2))
    else:
        click.echo(_format_tasks(loaded))


@main.command("status")
@click.argument("task_id")
@click.argument("new_status", type=click.Choice(["pending", "completed", "cancelled"]))
@click.pass_context
def set_status(ctx: click.Context, task_id: str, new_status: str) -> None:
    """Set the status of TASK_ID."""
    settings = _settings(ctx)
    store = SQLiteTaskStore(str(settings.resolved_db_path))
    try:
        task = store.update_status(task_id, new_status)
    except KeyError:
        _fail(f"Task not found: {task_id}")
    click.echo(f"{task.id}: {task.status}")


@main.command()
@click.pass_context
def remind(ctx: click.Context) -> None:
    """Publish a reminder for pending tasks whose interval has elapsed."""
    settings = _settings(ctx)
    store = SQLiteTaskStore(str(settings.resolved_db_path))
    notifier = Notifier(
        create_queue(),
        stream=settings.notify_stream,
        enabled=settings.enable_notifications,
        source_service="taskscan-cli",
    )
    due = send_reminders(store, settings, notifier)
    click.echo(f"Reminded about {len(due)} pending tasks" if due else "No pending tasks need a reminder")


if __name__ == "__main__":
    main()
