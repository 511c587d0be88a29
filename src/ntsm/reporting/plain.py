from __future__ import annotations

import sys
import time
from typing import Any, Dict
from .base import (
    Reporter,
    TaskStatus,
    TaskRecord,
    format_stats,
    get_verbosity,
)

ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
    TaskStatus.SKIPPED: "→",
}


class PlainReporter(Reporter):
    """Line-oriented reporter with optional ANSI color."""

    supports_progress = False

    def __init__(self, stream=None, use_color: bool | None = None):
        super().__init__()
        self.stream = stream or sys.stderr
        self.use_color = (
            use_color
            if use_color is not None
            else getattr(self.stream, "isatty", lambda: False)()
        )
        self._tasks: Dict[str, TaskRecord] = {}

    def _c(self, code: str, text: str):
        if not self.use_color:
            return text
        return f"\x1b[{code}m{text}\x1b[0m"

    def _write(self, line: str) -> None:
        with self._lock:
            self.stream.write(line + "\n")

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        with self._lock:
            self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        with self._lock:
            rec = self._tasks.get(task_id)
            if not rec:
                return
            rec.completed += step
            rec.meta.update(meta)
            item = meta.get("current_item") or f"item#{rec.completed}"
            total = rec.total if rec.total is not None else "?"
            self._write(f"   · {rec.name}: {item} ({rec.completed}/{total})")

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        with self._lock:
            rec = self._tasks.pop(task_id, None)
            if not rec:
                return
            rec.status = status
            rec.end_time = time.time()
            rec.meta.update(final_meta)
            icon = ICONS.get(status, "?")
            extra = (
                f" {rec.completed}/{rec.total}" if rec.total is not None else ""
            )
            self._write(
                f" {icon} {rec.name}{extra} ({rec.duration:.2f}s)"
                + format_stats(rec.meta)
            )

    def status(self, message: str, **fields: Any) -> None:
        self._write(f"{self._c('32', 'INFO')}: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self._write(f"{self._c('36', f'VERB{level}')}: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self._write(f"{self._c('31', 'ERROR')}: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self._write(f"{self._c('33', 'WARN')}: {message}")

    def section(self, title: str) -> None:
        self._write(f"\n[{title}]")
