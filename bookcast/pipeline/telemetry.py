"""Stage telemetry helper methods for the generation job.

Responsibilities:
- Attach stage index/total metadata to structured stage logs.
- Wrap stage actions with consistent start/complete/failure/aborted hooks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ..errors import JobAborted
from ..telemetry.logger import RunLogger

_StageResult = TypeVar("_StageResult")


class PipelineTelemetryMixin:
    """Provide stage-telemetry helper methods."""

    _PHASE_SEQUENCE = ("parse", "chunk", "tts", "merge")
    _run_logger: RunLogger | None

    def _stage_position(self, stage_name: str) -> tuple[int, int] | None:
        """Return 1-based stage index and total stage count for known stages."""

        try:
            index = self._PHASE_SEQUENCE.index(stage_name) + 1
        except ValueError:
            return None
        return index, len(self._PHASE_SEQUENCE)

    def _on_stage_start(self, stage_name: str) -> None:
        if self._run_logger is None:
            return
        position = self._stage_position(stage_name)
        if position is None:
            self._run_logger.log_stage_start(stage_name)
        else:
            self._run_logger.log_stage_start(stage_name, index=position[0], total=position[1])

    def _on_stage_complete(self, stage_name: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage_name)

    def _on_stage_failure(self, stage_name: str, exc: Exception) -> None:
        """Emit stage-failure event with sanitized exception metadata."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure(stage_name, type(exc).__name__)

    def _on_stage_aborted(self, stage_name: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_stage_aborted(stage_name)

    def _run_stage(
        self,
        stage_name: str,
        action: Callable[[], _StageResult],
    ) -> _StageResult:
        """Run one named stage and emit start/complete/failure telemetry events."""

        self._on_stage_start(stage_name)
        try:
            result = action()
        except JobAborted:
            self._on_stage_aborted(stage_name)
            raise
        except Exception as exc:
            self._on_stage_failure(stage_name, exc)
            raise
        self._on_stage_complete(stage_name)
        return result
