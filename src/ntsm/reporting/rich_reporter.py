from __future__ import annotations

import os
import time
from typing import Any, Dict, List

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .base import (
    Reporter,
    TaskStatus,
    TaskRecord,
    format_stats,
    get_verbosity,
)

_STATUS_ICON = {
    TaskStatus.SUCCESS: "[green]✔[/]",
    TaskStatus.FAILED: "[red]✖[/]",
    TaskStatus.SKIPPED: "→",
}


def _transient_from_env() -> bool:
    return os.getenv("NTSM_PROGRESS_TRANSIENT", "0").lower() in (
        "1",
        "true",
        "yes",
    )


class RichReporter(Reporter):
    """Progress bars for counted tasks, rules for uncounted ones."""

    supports_progress = True

    def __init__(self, console: Console | None = None):
        super().__init__()
        self.console = console or Console(
            stderr=True, highlight=False, soft_wrap=False
        )
        self._transient = _transient_from_env()
        self.progress: Progress | None = None
        self._tasks: Dict[str, TaskRecord] = {}
        self._task_ids: Dict[str, Any] = {}
        self._completions: List[str] = []

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.fields[name]}", justify="left"),
                BarColumn(bar_width=None),
                MofNCompleteColumn(),
                TextColumn("{task.fields[detail]}"),
                TimeElapsedColumn(),
                transient=self._transient,
                console=self.console,
                expand=True,
            )
            self.progress.start()
        return self.progress

    def _stop_progress(self) -> None:
        if self.progress is None:
            return
        try:
            self.progress.stop()
        finally:
            self.progress = None
            self._task_ids.clear()
            if self._completions:
                self.console.print("\n".join(self._completions))
                self._completions.clear()

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        with self._lock:
            self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)
            if total is None:
                self.console.rule(name)
                return
            progress = self._ensure_progress()
            self._task_ids[task_id] = progress.add_task(
                "", total=total, name=name, detail=""
            )

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        with self._lock:
            rec = self._tasks.get(task_id)
            if not rec:
                return
            rec.completed += step
            rec.meta.update(meta)
            rid = self._task_ids.get(task_id)
            if rid is not None and self.progress is not None:
                self.progress.update(
                    rid,
                    completed=rec.completed,
                    detail=str(meta.get("current_item", "")),
                )

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
            total_part = (
                f" {rec.completed}/{rec.total}" if rec.total is not None else ""
            )
            line = (
                f"{_STATUS_ICON.get(status, '')} {rec.name}{total_part}"
                f" ({rec.duration:.2f}s){format_stats(rec.meta)}"
            )
            rid = self._task_ids.pop(task_id, None)
            if rid is not None and self.progress is not None:
                self.progress.update(rid, completed=rec.completed, detail="")
                self._completions.append(line)
            else:
                self.console.print(line)
            if not self._task_ids:
                self._stop_progress()

    def status(self, message: str, **fields: Any) -> None:
        self.console.print(f"[green]INFO[/]: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self.console.print(f"[cyan]VERB{level}[/]: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self.console.print(f"[bold red]ERROR[/]: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self.console.print(f"[yellow]WARN[/]: {message}")

    def section(self, title: str) -> None:
        self.console.rule(title)

    def flush(self) -> None:
        with self._lock:
            self._stop_progress()
