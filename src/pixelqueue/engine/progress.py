# src/pixelqueue/engine/progress.py
"""Progress reporters driven by the scheduler's backlog.

Lifecycle (per busy period):
    backlog 0 → 1   : factory() creates a reporter, start() is called
    batch dequeued  : total is set to the current backlog
    output settled  : tick() (when report_status is enabled)
    queue drained   : done()

A fresh reporter is created for each busy period.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressReporterProtocol(Protocol):
    """What the scheduler needs from a progress reporter."""

    total: int

    def start(self) -> None: ...

    def tick(self) -> None: ...

    def done(self) -> None: ...


ProgressFactory = Callable[[], ProgressReporterProtocol]


class NullProgressReporter:
    """Reporter that renders nothing. Used for library calls without a terminal."""

    def __init__(self) -> None:
        self.total = 0

    def start(self) -> None:
        pass

    def tick(self) -> None:
        pass

    def done(self) -> None:
        pass


class CountingProgressReporter:
    """Reporter that only counts lifecycle calls (thread-safe).

    Useful for headless runs that report totals at the end, and for tests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.starts = 0
        self.ticks = 0
        self.dones = 0

    def start(self) -> None:
        with self._lock:
            self.starts += 1

    def tick(self) -> None:
        with self._lock:
            self.ticks += 1

    def done(self) -> None:
        with self._lock:
            self.dones += 1


class RichProgressReporter:
    """Terminal progress bar backed by ``rich.progress``.

    Example:
        scheduler = Scheduler(
            transform,
            progress_factory=lambda: RichProgressReporter("Generating image thumbnails"),
        )
    """

    def __init__(self, label: str, *, console: Console | None = None) -> None:
        self._label = label
        self._total = 0
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self._task: TaskID | None = None

    @property
    def total(self) -> int:
        return self._total

    @total.setter
    def total(self, value: int) -> None:
        self._total = value
        if self._task is not None:
            self._progress.update(self._task, total=value)

    def start(self) -> None:
        self._progress.start()
        self._task = self._progress.add_task(self._label, total=self._total or None)

    def tick(self) -> None:
        if self._task is not None:
            self._progress.advance(self._task)

    def done(self) -> None:
        self._progress.stop()
