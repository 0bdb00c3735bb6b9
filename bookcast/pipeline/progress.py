"""Progress aggregation across concurrently completing chunk tasks.

Responsibilities:
- Count completed chunks and characters under one lock.
- Emit one `ProgressSnapshot` per successful chunk while still holding that lock.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Callable, Sequence

from ..models.datatypes import ChunkTask, ProgressSnapshot

ProgressListener = Callable[[ProgressSnapshot], None]


class ProgressAggregator:
    """Accumulate completion counters and notify a listener after each chunk."""

    def __init__(
        self,
        tasks: Sequence[ChunkTask],
        listener: ProgressListener | None = None,
    ) -> None:
        """Initialize totals from the full task list."""

        self.total_chunks = len(tasks)
        self.total_characters = sum(len(task.text) for task in tasks)
        self._listener = listener
        self._lock = threading.Lock()
        self._completed_chunks = 0
        self._completed_characters = 0

    @property
    def completed_chunks(self) -> int:
        with self._lock:
            return self._completed_chunks

    @property
    def completed_characters(self) -> int:
        with self._lock:
            return self._completed_characters

    def record(self, task: ChunkTask) -> ProgressSnapshot:
        """Count one successful chunk and emit the resulting snapshot."""

        with self._lock:
            self._completed_chunks += 1
            self._completed_characters += len(task.text)
            snapshot = ProgressSnapshot(
                completed_chunks=self._completed_chunks,
                total_chunks=self.total_chunks,
                completed_characters=self._completed_characters,
                total_characters=self.total_characters,
                current_chapter_index=task.chapter_index,
                current_chapter_title=task.chapter_title,
                percent_complete=percent_complete(self._completed_chunks, self.total_chunks),
            )
            # Emission stays inside the lock so listeners observe counters in order.
            if self._listener is not None:
                self._listener(snapshot)
        return snapshot


def percent_complete(completed: int, total: int) -> int:
    """Return `completed / total * 100` rounded half-up, reaching 100 only when done."""

    if total <= 0:
        return 100
    percent = int(math.floor(completed * 100 / total + 0.5))
    if completed < total:
        percent = min(percent, 99)
    return max(0, min(100, percent))
