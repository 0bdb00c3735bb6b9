"""Concurrency-limited dispatch of chunk synthesis tasks.

Responsibilities:
- Run every chunk task with at most `max_workers` calls in flight, across chapters.
- Skip tasks that have not started once cancellation is requested or a task failed.
- Resolve only after every task settled, then report completion, abort, or failure.
- Return completed results as they finished; restoring source order is the assembler's job.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from ..errors import JobAborted
from ..models.datatypes import ChunkResult, ChunkTask
from ..telemetry.logger import RunLogger
from .cancellation import CancellationToken

DEFAULT_CONCURRENCY = 4

ChunkWorker = Callable[[ChunkTask, CancellationToken], Path]
ChunkCallback = Callable[[ChunkTask, Path], None]


class ConcurrencyLimitedDispatcher:
    """Fixed-size worker pool pulling chunk tasks from one shared queue."""

    def __init__(
        self,
        max_workers: int = DEFAULT_CONCURRENCY,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize worker budget and optional structured logging."""

        if max_workers <= 0:
            raise ValueError("`max_workers` must be a positive integer.")
        self.max_workers = max_workers
        self._run_logger = run_logger

    def dispatch(
        self,
        tasks: Sequence[ChunkTask],
        worker: ChunkWorker,
        token: CancellationToken,
        on_complete: ChunkCallback | None = None,
    ) -> list[ChunkResult]:
        """Run `worker` once per task and return one result per completed task.

        Results are listed in completion order; `OrderedResultAssembler` restores
        source order.

        Raises:
            JobAborted: If the token was set at any point during dispatch.
            Exception: The first task failure, after in-flight tasks settle.
        """

        halted = threading.Event()
        failure_lock = threading.Lock()
        failures: list[BaseException] = []
        completed: list[ChunkResult] = []

        def _run(task: ChunkTask) -> ChunkResult | None:
            if token.cancelled or halted.is_set():
                return None
            try:
                artifact_path = worker(task, token)
                if on_complete is not None:
                    on_complete(task, artifact_path)
            except JobAborted:
                raise
            except Exception:
                # Queued tasks must not start once any task has failed.
                halted.set()
                raise
            return ChunkResult(
                global_order_index=task.global_order_index,
                artifact_path=artifact_path,
            )

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="bookcast-tts",
        ) as executor:
            futures: dict[Future[ChunkResult | None], ChunkTask] = {
                executor.submit(_run, task): task for task in tasks
            }
            for future in as_completed(futures):
                task = futures[future]
                if future.cancelled():
                    continue
                try:
                    result = future.result()
                except JobAborted:
                    continue
                except Exception as exc:
                    if token.cancelled:
                        continue
                    with failure_lock:
                        failures.append(exc)
                        first_failure = len(failures) == 1
                    halted.set()
                    if first_failure:
                        self._log(
                            "ERROR",
                            "chunk_failed",
                            index=task.global_order_index,
                            error_type=type(exc).__name__,
                        )
                        for pending in futures:
                            pending.cancel()
                    continue
                if result is not None:
                    completed.append(result)

        if token.cancelled:
            self._log("WARNING", "aborted", completed=len(completed), total=len(tasks))
            raise JobAborted()
        if failures:
            raise failures[0]
        return completed

    def _log(self, level: str, event: str, **context: object) -> None:
        """Forward one dispatcher event to the structured run logger when configured."""

        if self._run_logger is not None:
            self._run_logger.log_event(level, event, "tts", **context)
