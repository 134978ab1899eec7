"""FastAPI service for task extraction and the persisted task list."""

from taskscan.service.app import app, create_app

__all__ = ["app", "create_app"]
