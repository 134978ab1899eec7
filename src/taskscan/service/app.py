"""FastAPI application exposing task extraction and the task list.

Endpoints:
- POST /extract-todos         - Extract tasks from one text (no persistence)
- GET  /scan-todos            - Scan the capture window and merge into the store
- GET  /send-reminders        - Publish a reminder for overdue pending tasks
- GET  /tasks                 - List persisted tasks, optionally by status
- POST /tasks/{task_id}/status - Change a task's status
- GET  /health                - Service health status

Environment variables:
- TASKSCAN_SETTINGS_PATH, TASKSCAN_DB_PATH, SCREENPIPE_URL, ... (see taskscan.config)
- TASKSCAN_SCHEDULE: Run scans every scan interval in the background (default: false)
- HOST / PORT: Bind address for ``taskscan-service`` (default: 127.0.0.1:8000)

Usage:
    uvicorn taskscan.service.app:app --port 8000
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from taskscan.capture.screenpipe import CaptureSourceError, ScreenpipeClient
from taskscan.config import ScanSettings, parse_bool
from taskscan.extraction.orchestrator import TaskExtractor
from taskscan.extraction.strategies import group_by_source
from taskscan.notify import Notifier
from taskscan.pipeline import scan_window, send_reminders
from taskscan.shared.queue import create_queue
from taskscan.storage.base import TaskStore
from taskscan.storage.sqlite import SQLiteTaskStore
from taskscan.types import CapturedItem, KeywordSetError, PriorityKeywordSet, Task

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExtractRequest(_CamelModel):
    """Request body for /extract-todos."""
    text: str = Field(..., min_length=1, description="Captured text to extract tasks from")
    source: str = Field(default="Unknown", description="Application the text came from")
    priority_keywords: dict[str, Any] | None = Field(
        default=None,
        alias="priorityKeywords",
        description="high/medium/low keyword lists; defaults to the configured set",
    )


class CandidateModel(_CamelModel):
    """One extracted task candidate."""
    title: str
    description: str = ""
    priority: Literal["high", "medium", "low"]
    due_date: str | None = Field(default=None, alias="dueDate")
    source: str
    source_url: str | None = Field(default=None, alias="sourceUrl")
    screenshot: str | None = None


class TaskModel(CandidateModel):
    """A persisted task."""
    id: str
    status: Literal["pending", "completed", "cancelled"]
    created_at: str = Field(alias="createdAt")


class ExtractResponse(_CamelModel):
    success: bool
    data: list[CandidateModel]
    method: str = Field(..., description="'ai' or 'fallback'")
    errors: list[str] = Field(default_factory=list)


class ScanResponse(_CamelModel):
    success: bool
    message: str
    todos_extracted: int = Field(default=0, alias="todosExtracted")
    new_tasks: int = Field(default=0, alias="newTasks")
    high_priority: int = Field(default=0, alias="highPriority")


class ReminderResponse(_CamelModel):
    success: bool
    message: str
    reminded: int = 0


class StatusUpdate(BaseModel):
    status: Literal["pending", "completed", "cancelled"]


class HealthResponse(_CamelModel):
    status: str = Field(..., description="'ok'")
    task_count: int = Field(..., alias="taskCount")
    queue_available: bool = Field(..., alias="queueAvailable")
    uptime_s: float = Field(..., alias="uptimeS")


async def _scheduled_scans(app: FastAPI) -> None:
    """Scan every ``scan_interval`` minutes until cancelled."""
    settings: ScanSettings = app.state.settings
    while True:
        await asyncio.sleep(max(1, settings.scan_interval) * 60)
        if not settings.enable_auto_detection:
            continue
        try:
            await _scan(app)
        except CaptureSourceError as e:
            logger.warning(f"[Service] Scheduled scan skipped: {e}")
        except Exception:
            logger.exception("[Service] Scheduled scan failed; retrying next interval")


async def _scan(app: FastAPI):
    state = app.state
    return await scan_window(
        state.capture,
        state.settings,
        state.store,
        state.notifier,
        state.extractor,
        lock=state.scan_lock,
    )


def create_app(
    settings: ScanSettings | None = None,
    store: TaskStore | None = None,
    notifier: Notifier | None = None,
    extractor: TaskExtractor | None = None,
    capture: ScreenpipeClient | None = None,
    schedule: bool | None = None,
) -> FastAPI:
    """Build the service; anything not injected is built from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = app.state
        state.settings = settings or ScanSettings.from_env()
        # Fail fast on malformed keyword lists
        PriorityKeywordSet.from_mapping(state.settings.priority_keywords)
        logger.info(f"[Service] Starting with DB={state.settings.db_path}, SCREENPIPE={state.settings.screenpipe_url}")

        state.store = store or SQLiteTaskStore(str(state.settings.resolved_db_path))
        state.notifier = notifier or Notifier(
            create_queue(),
            stream=state.settings.notify_stream,
            enabled=state.settings.enable_notifications,
            source_service="taskscan-service",
        )
        state.extractor = extractor or TaskExtractor.default(
            state.settings.llm_models, state.settings.llm_timeout
        )
        state.capture = capture or ScreenpipeClient(state.settings.screenpipe_url)
        state.scan_lock = asyncio.Lock()
        state.startup_time = time.time()

        run_schedule = schedule if schedule is not None else parse_bool(os.environ.get("TASKSCAN_SCHEDULE", "false"))
        state.scheduler = asyncio.create_task(_scheduled_scans(app)) if run_schedule else None
        if state.scheduler:
            logger.info(f"[Service] Scheduled scans every {state.settings.scan_interval} min")

        logger.info("[Service] Startup complete")
        yield

        logger.info("[Service] Shutting down...")
        if state.scheduler:
            state.scheduler.cancel()
            try:
                await state.scheduler
            except asyncio.CancelledError:
                pass
        logger.info("[Service] Shutdown complete")

    app = FastAPI(
        title="taskscan",
        description="Task extraction from captured screen text",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.post("/extract-todos", response_model=ExtractResponse)
    async def extract_todos(body: ExtractRequest, request: Request) -> ExtractResponse:
        """Extract tasks from a single text, model first with pattern fallback."""
        state = request.app.state
        try:
            keywords = (
                PriorityKeywordSet.from_mapping(body.priority_keywords)
                if body.priority_keywords is not None
                else state.settings.keywords
            )
        except KeywordSetError as e:
            raise HTTPException(status_code=422, detail=str(e))

        extractor: TaskExtractor = state.extractor
        groups = group_by_source(
            [CapturedItem(source_app=body.source, text=body.text)],
            max_chars=extractor.max_text_chars,
        )
        if not groups:
            return ExtractResponse(success=True, data=[], method="fallback")

        result = await extractor.extract_group(groups[0], keywords)
        return ExtractResponse(
            success=True,
            data=[CandidateModel.model_validate(c.to_dict()) for c in result.candidates],
            method=result.method,
            errors=result.errors,
        )

    @app.get("/scan-todos", response_model=ScanResponse)
    async def scan_todos(request: Request) -> ScanResponse:
        """Scan the lookback window and merge new tasks into the store."""
        settings: ScanSettings = request.app.state.settings
        if not settings.enable_auto_detection:
            return ScanResponse(success=True, message="Auto-detection is disabled")

        try:
            report = await _scan(request.app)
        except CaptureSourceError as e:
            logger.error(f"[Service] Scan failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))

        return ScanResponse(
            success=True,
            message=f"Extracted {report.extracted} todos from screen data",
            todos_extracted=report.extracted,
            new_tasks=report.added,
            high_priority=report.high_priority_added,
        )

    @app.get("/send-reminders", response_model=ReminderResponse)
    async def reminders(request: Request) -> ReminderResponse:
        state = request.app.state
        due = send_reminders(state.store, state.settings, state.notifier)
        return ReminderResponse(
            success=True,
            message="Reminder sent" if due else "No pending tasks need a reminder",
            reminded=len(due),
        )

    @app.get("/tasks", response_model=list[TaskModel])
    async def list_tasks(request: Request, status: str | None = None) -> list[TaskModel]:
        tasks: list[Task] = request.app.state.store.load()
        if status:
            tasks = [t for t in tasks if t.status == status]
        return [TaskModel.model_validate(t.to_dict()) for t in tasks]

    @app.post("/tasks/{task_id}/status", response_model=TaskModel)
    async def update_status(task_id: str, body: StatusUpdate, request: Request) -> TaskModel:
        state = request.app.state
        async with state.scan_lock:
            try:
                task = state.store.update_status(task_id, body.status)
            except KeyError:
                raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
        return TaskModel.model_validate(task.to_dict())

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        state = request.app.state
        return HealthResponse(
            status="ok",
            task_count=len(state.store.load()),
            queue_available=state.notifier.queue.is_available(),
            uptime_s=time.time() - state.startup_time,
        )

    return app


app = create_app()


def main() -> None:
    """Entry point for ``taskscan-service``."""
    import uvicorn

    uvicorn.run(
        "taskscan.service.app:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
    )
