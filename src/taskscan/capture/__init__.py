"""Capture-source clients."""

from taskscan.capture.screenpipe import CaptureSourceError, ScreenpipeClient

__all__ = ["CaptureSourceError", "ScreenpipeClient"]
