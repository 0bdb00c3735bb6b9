"""Unit tests for ordered result assembly and the cancellation token."""

from __future__ import annotations

from pathlib import Path

import pytest

from bookcast.pipeline.assembly import OrderedResultAssembler
from bookcast.pipeline.cancellation import CancellationToken


def test_assembler_orders_paths_by_global_index_regardless_of_store_order() -> None:
    assembler = OrderedResultAssembler(3)
    assembler.store(2, Path("c.mp3"))
    assembler.store(0, Path("a.mp3"))
    assembler.store(1, Path("b.mp3"))

    assert assembler.ordered_paths() == [Path("a.mp3"), Path("b.mp3"), Path("c.mp3")]


def test_assembler_rejects_duplicate_and_out_of_range_slots() -> None:
    assembler = OrderedResultAssembler(2)
    assembler.store(0, Path("a.mp3"))

    with pytest.raises(RuntimeError):
        assembler.store(0, Path("again.mp3"))
    with pytest.raises(IndexError):
        assembler.store(2, Path("overflow.mp3"))


def test_assembler_refuses_to_emit_with_missing_slots() -> None:
    assembler = OrderedResultAssembler(3)
    assembler.store(1, Path("b.mp3"))

    assert assembler.missing_indices() == [0, 2]
    with pytest.raises(RuntimeError):
        assembler.ordered_paths()


def test_cancel_is_set_once_and_irreversible() -> None:
    token = CancellationToken()

    assert token.cancelled is False
    assert token.cancel("first") is True
    assert token.cancel("second") is False
    assert token.cancelled is True
    assert token.reason == "first"
    assert token.wait(0) is True


def test_registered_callbacks_run_once_on_cancel() -> None:
    token = CancellationToken()
    calls: list[str] = []
    token.register(lambda: calls.append("abort"))

    token.cancel()
    token.cancel()

    assert calls == ["abort"]


def test_unregistered_callback_does_not_run() -> None:
    token = CancellationToken()
    calls: list[str] = []
    handle = token.register(lambda: calls.append("abort"))
    token.unregister(handle)

    token.cancel()

    assert calls == []


def test_register_after_cancel_runs_immediately() -> None:
    token = CancellationToken()
    token.cancel()
    calls: list[str] = []

    handle = token.register(lambda: calls.append("abort"))

    assert handle is None
    assert calls == ["abort"]


def test_failing_callback_does_not_block_other_callbacks() -> None:
    token = CancellationToken()
    calls: list[str] = []

    def _boom() -> None:
        raise OSError("socket already closed")

    token.register(_boom)
    token.register(lambda: calls.append("second"))

    assert token.cancel() is True
    assert calls == ["second"]
