"""Domain exceptions for pipeline, CLI, and web diagnostics.

Responsibilities:
- Carry the stage that failed plus an actionable hint for every job failure.
- Keep caller-requested cancellation distinct from unexpected faults.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class InputError(PipelineStageError):
    """Raised when a job request carries neither a source file nor raw text."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="input", detail=detail, hint=hint)


class ParseError(PipelineStageError):
    """Raised when chapters cannot be extracted from the source document."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="parse", detail=detail, hint=hint)


class SynthesisError(PipelineStageError):
    """Raised when one chunk synthesis call fails for a reason other than cancellation."""

    def __init__(
        self,
        detail: str,
        *,
        global_order_index: int | None = None,
        failure_kind: str = "unknown",
        hint: str | None = None,
    ) -> None:
        super().__init__(stage="tts", detail=detail, hint=hint)
        self.global_order_index = global_order_index
        self.failure_kind = failure_kind


class EncodeError(PipelineStageError):
    """Raised when chunk artifacts cannot be merged into the final container."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="merge", detail=detail, hint=hint)


class JobAborted(RuntimeError):
    """Raised when the caller cancelled the job; this is a graceful stop, not a failure."""

    def __init__(self, detail: str = "Generation aborted") -> None:
        super().__init__(detail)
        self.detail = detail
