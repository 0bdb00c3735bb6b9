"""Remaining-time estimation from cumulative character throughput.

Responsibilities:
- Compute a fresh point estimate on every progress event (no smoothing, no history).
- Render the estimate as whole minutes above one minute, otherwise whole seconds.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic

DEFAULT_WARMUP_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class EtaEstimate:
    """One remaining-time estimate.

    Attributes:
        remaining_seconds: Raw estimate in seconds.
        display_seconds: Ceiling-rounded seconds.
        text: Presentation string, e.g. `3 minutes remaining`.
    """

    remaining_seconds: float
    display_seconds: int
    text: str


class EtaEstimator:
    """Estimate time to completion from elapsed time and completed characters."""

    def __init__(
        self,
        warmup_seconds: float = DEFAULT_WARMUP_SECONDS,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize estimator and record the job start time."""

        self.warmup_seconds = warmup_seconds
        self._clock = clock
        self._started_at = clock()

    def elapsed_seconds(self) -> float:
        """Return wall-clock seconds since the estimator was created."""

        return self._clock() - self._started_at

    def estimate(
        self,
        completed_characters: int,
        total_characters: int,
        elapsed_seconds: float | None = None,
    ) -> EtaEstimate | None:
        """Return an estimate, or `None` during warm-up or before any throughput."""

        elapsed = self.elapsed_seconds() if elapsed_seconds is None else elapsed_seconds
        remaining = remaining_seconds(
            elapsed_seconds=elapsed,
            completed_characters=completed_characters,
            total_characters=total_characters,
            warmup_seconds=self.warmup_seconds,
        )
        if remaining is None:
            return None
        return EtaEstimate(
            remaining_seconds=remaining,
            display_seconds=int(math.ceil(remaining)),
            text=format_remaining(remaining),
        )


def remaining_seconds(
    *,
    elapsed_seconds: float,
    completed_characters: int,
    total_characters: int,
    warmup_seconds: float = DEFAULT_WARMUP_SECONDS,
) -> float | None:
    """Compute `(total - completed) / (completed / elapsed)` after warm-up."""

    if elapsed_seconds <= warmup_seconds or completed_characters <= 0:
        return None
    throughput = completed_characters / elapsed_seconds
    return max(0.0, (total_characters - completed_characters) / throughput)


def format_remaining(seconds: float) -> str:
    """Render whole minutes when above 60 seconds, otherwise whole seconds (ceiling)."""

    if seconds > 60:
        return _remaining_text(math.ceil(seconds / 60), "minute")
    return _remaining_text(math.ceil(seconds), "second")


def _remaining_text(count: int, unit: str) -> str:
    suffix = "" if count == 1 else "s"
    return f"{count} {unit}{suffix} remaining"
