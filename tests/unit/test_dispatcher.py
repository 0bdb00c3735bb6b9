"""Unit tests for concurrency-limited chunk dispatch."""

from __future__ import annotations

from pathlib import Path
import random
import threading
import time

import pytest

from bookcast.errors import JobAborted, SynthesisError
from bookcast.models.datatypes import ChunkTask
from bookcast.pipeline.assembly import OrderedResultAssembler
from bookcast.pipeline.cancellation import CancellationToken
from bookcast.pipeline.dispatcher import ConcurrencyLimitedDispatcher


def _tasks(count: int) -> list[ChunkTask]:
    return [
        ChunkTask(
            text=f"chunk {index} ",
            chapter_title="Chapter",
            chapter_index=index // 3,
            chunk_index=index % 3,
            global_order_index=index,
        )
        for index in range(count)
    ]


class _InstrumentedWorker:
    def __init__(self, delays: dict[int, float] | None = None) -> None:
        self.delays = delays or {}
        self.started: list[int] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, task: ChunkTask, token: CancellationToken) -> Path:
        with self._lock:
            self.started.append(task.global_order_index)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(task.global_order_index, 0.01))
            return Path(f"{task.global_order_index:04d}.mp3")
        finally:
            with self._lock:
                self.in_flight -= 1


def test_dispatch_never_exceeds_worker_budget() -> None:
    worker = _InstrumentedWorker()

    ConcurrencyLimitedDispatcher(max_workers=2).dispatch(_tasks(12), worker, CancellationToken())

    assert sorted(worker.started) == list(range(12))
    assert 1 <= worker.peak_in_flight <= 2


def test_results_assemble_into_global_order_under_shuffled_latencies() -> None:
    rng = random.Random(7)
    delays = {index: rng.uniform(0.0, 0.03) for index in range(16)}
    worker = _InstrumentedWorker(delays)

    results = ConcurrencyLimitedDispatcher(max_workers=4).dispatch(
        _tasks(16), worker, CancellationToken()
    )

    assert sorted(result.global_order_index for result in results) == list(range(16))
    assembler = OrderedResultAssembler(16)
    for result in results:
        assert result.artifact_path is not None
        assembler.store(result.global_order_index, result.artifact_path)
    assert assembler.ordered_paths() == [Path(f"{index:04d}.mp3") for index in range(16)]


def test_results_are_reported_in_completion_order() -> None:
    worker = _InstrumentedWorker({0: 0.15, 1: 0.0})

    results = ConcurrencyLimitedDispatcher(max_workers=2).dispatch(
        _tasks(2), worker, CancellationToken()
    )

    assert [result.global_order_index for result in results] == [1, 0]


def test_on_complete_runs_once_per_successful_task() -> None:
    completed: list[int] = []
    lock = threading.Lock()

    def _on_complete(task: ChunkTask, path: Path) -> None:
        with lock:
            completed.append(task.global_order_index)

    ConcurrencyLimitedDispatcher(max_workers=3).dispatch(
        _tasks(7), _InstrumentedWorker(), CancellationToken(), on_complete=_on_complete
    )

    assert sorted(completed) == list(range(7))


def test_cancel_before_dispatch_starts_no_tasks() -> None:
    token = CancellationToken()
    token.cancel()
    worker = _InstrumentedWorker()

    with pytest.raises(JobAborted):
        ConcurrencyLimitedDispatcher(max_workers=4).dispatch(_tasks(8), worker, token)

    assert worker.started == []


def test_cancel_mid_flight_stops_unstarted_tasks() -> None:
    token = CancellationToken()
    started: list[int] = []

    def _worker(task: ChunkTask, worker_token: CancellationToken) -> Path:
        started.append(task.global_order_index)
        if task.global_order_index == 2:
            worker_token.cancel()
        return Path(f"{task.global_order_index}.mp3")

    with pytest.raises(JobAborted):
        ConcurrencyLimitedDispatcher(max_workers=1).dispatch(_tasks(10), _worker, token)

    assert started == [0, 1, 2]


def test_first_failure_halts_pending_tasks_and_is_raised() -> None:
    started: list[int] = []

    def _worker(task: ChunkTask, token: CancellationToken) -> Path:
        started.append(task.global_order_index)
        if task.global_order_index == 1:
            raise SynthesisError("Chunk 2 failed", global_order_index=1, failure_kind="http_error")
        return Path(f"{task.global_order_index}.mp3")

    with pytest.raises(SynthesisError) as exc_info:
        ConcurrencyLimitedDispatcher(max_workers=1).dispatch(_tasks(6), _worker, CancellationToken())

    assert exc_info.value.global_order_index == 1
    assert started == [0, 1]


def test_abort_takes_precedence_over_failure() -> None:
    token = CancellationToken()

    def _worker(task: ChunkTask, worker_token: CancellationToken) -> Path:
        worker_token.cancel()
        raise SynthesisError("late failure", global_order_index=task.global_order_index)

    with pytest.raises(JobAborted):
        ConcurrencyLimitedDispatcher(max_workers=2).dispatch(_tasks(4), _worker, token)


def test_dispatcher_rejects_non_positive_worker_budget() -> None:
    with pytest.raises(ValueError):
        ConcurrencyLimitedDispatcher(max_workers=0)
