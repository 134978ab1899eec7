from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO


@dataclass
class _TimerEntry:
    name: str
    start: float
    end: float | None = None

    @property
    def elapsed(self) -> float:
        return (self.end or time.perf_counter()) - self.start


class ScanLogger:
    """Run logger for command-line scans with two sinks.

    - console : min_level+ (human-readable, optional)
    - log_file: DEBUG+     (every line, persisted across the run)

    Library modules keep using stdlib ``logging``; install_stdlib_bridge()
    routes their records here so one run produces one readable log.
    """

    LEVELS: dict[str, int] = {
        "DEBUG":  0,
        "INFO":   1,
        "METRIC": 1,
        "WARN":   2,
        "ERROR":  3,
    }

    def __init__(
        self,
        log_file: str | Path | None = None,
        console: bool = True,
        min_level: str = "INFO",
    ) -> None:
        self.console = console
        self.min_level = self.LEVELS.get(min_level.upper(), 1)
        self._file: TextIO | None = None
        self.log_path: Path | None = None
        self._timers: dict[str, _TimerEntry] = {}
        self._metrics: dict[str, list[tuple[float, Any]]] = {}
        self._start = time.perf_counter()

        if log_file:
            self.log_path = Path(log_file).expanduser()
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a", encoding="utf-8", buffering=1)
            self._raw("=" * 80)
            self._raw(f"taskscan run - {time.strftime('%Y-%m-%d %H:%M:%S')}")
            self._raw("=" * 80)

    def _raw(self, line: str) -> None:
        if self._file:
            self._file.write(line + "\n")

    def _emit(self, level: str, msg: str) -> None:
        level_int = self.LEVELS.get(level, 1)
        ts = time.strftime("%H:%M:%S")
        elapsed = time.perf_counter() - self._start
        line = f"[{ts}] [{elapsed:7.2f}s] {level:6} | {msg}"

        if self.console and level_int >= self.min_level:
            print(line, flush=True)
        self._raw(line)

    def debug(self, msg: str) -> None:
        self._emit("DEBUG", msg)

    def info(self, msg: str) -> None:
        self._emit("INFO", msg)

    def warn(self, msg: str) -> None:
        self._emit("WARN", msg)

    def error(self, msg: str) -> None:
        self._emit("ERROR", msg)

    def section(self, title: str) -> None:
        sep = "=" * 60
        for line in ("", sep, f"  {title}", sep):
            if self.console:
                print(line, flush=True)
            self._raw(line)

    def metric(self, name: str, value: Any, unit: str = "") -> None:
        t = time.perf_counter() - self._start
        self._metrics.setdefault(name, []).append((t, value))
        vstr = f"{value:.3f}" if isinstance(value, float) else str(value)
        if unit:
            vstr += f" {unit}"
        self._emit("METRIC", f"{name} = {vstr}")

    def timer_start(self, name: str) -> None:
        self._timers[name] = _TimerEntry(name=name, start=time.perf_counter())

    def timer_end(self, name: str) -> float:
        t = self._timers.get(name)
        if t is None:
            self.warn(f"Timer '{name}' never started")
            return 0.0
        t.end = time.perf_counter()
        return t.elapsed

    @contextmanager
    def timer(self, name: str):
        self.timer_start(name)
        try:
            yield
        finally:
            elapsed = self.timer_end(name)
            self._emit("METRIC", f"timer:{name} = {elapsed:.3f}s")

    def metric_total(self, name: str) -> float:
        return sum(value for _, value in self._metrics.get(name, []) if isinstance(value, (int, float)))

    def summary(self) -> None:
        self.section("RUN SUMMARY")
        total = time.perf_counter() - self._start
        self.info(f"Total wall time: {total:.2f}s")

        for name in sorted(self._metrics):
            if len(self._metrics[name]) > 1:
                self.info(f"  {name:<30} total={self.metric_total(name):g}")

        completed = {n: t.elapsed for n, t in self._timers.items() if t.end}
        for name, elapsed in sorted(completed.items(), key=lambda x: -x[1])[:10]:
            self.info(f"  {name:<30} {elapsed:>8.3f}s")

        if self.log_path:
            self.info(f"Log file: {self.log_path}")

    def install_stdlib_bridge(self, root_logger: str = "taskscan", level: int = logging.INFO) -> None:
        """Route stdlib records under ``root_logger`` into this logger.

        Replaces a bridge left by an earlier ScanLogger on the same logger.
        """
        root = logging.getLogger(root_logger)
        for existing in [h for h in root.handlers if isinstance(h, _BridgeHandler)]:
            root.removeHandler(existing)
        handler = _BridgeHandler(self)
        handler.setLevel(level)
        root.setLevel(min(root.level or logging.DEBUG, level))
        root.addHandler(handler)

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    def __enter__(self) -> "ScanLogger":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class _BridgeHandler(logging.Handler):
    _MAP = {
        logging.DEBUG:    "debug",
        logging.INFO:     "info",
        logging.WARNING:  "warn",
        logging.ERROR:    "error",
        logging.CRITICAL: "error",
    }

    def __init__(self, logger: ScanLogger) -> None:
        super().__init__()
        self._scan_logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            getattr(self._scan_logger, self._MAP.get(record.levelno, "info"))(
                f"[{record.name}] {msg}"
            )
        except Exception:
            self.handleError(record)
