"""Core datatypes shared across bookcast modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Provide explicit typing for job requests, chunk tasks, and progress snapshots.

Key types:
- `Chapter`, `BookMeta`, `ParsedDocument`, `ChunkTask`, `ChunkResult`,
  `ProgressSnapshot`, `JobRequest`, and `JobOutcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..errors import InputError

CHAPTERED_AUDIOBOOK = "m4b"
FLAT_AUDIO = "mp3"
OUTPUT_FORMATS = (CHAPTERED_AUDIOBOOK, FLAT_AUDIO)


@dataclass(frozen=True, slots=True)
class Chapter:
    """A chapter handed to the pipeline by the document collaborator.

    Attributes:
        title: Chapter title or inferred label.
        text: Full plain chapter text; paragraphs are separated by newlines.
    """

    title: str
    text: str


@dataclass(frozen=True, slots=True)
class BookMeta:
    """Metadata tags written into the merged output container."""

    title: str
    author: str | None = None


@dataclass(frozen=True, slots=True)
class ParsedDocument:
    """Ordered chapters plus the base name used for output files."""

    chapters: tuple[Chapter, ...]
    base_name: str
    meta: BookMeta


@dataclass(frozen=True, slots=True)
class ChunkTask:
    """A bounded text segment scheduled as one synthesis call.

    Attributes:
        text: Chunk text, each paragraph followed by one separator space.
        chapter_title: Title of the owning chapter.
        chapter_index: 0-based chapter position, counting empty chapters too.
        chunk_index: 0-based chunk position within the chapter.
        global_order_index: Dense 0-based position in the flattened task list.
    """

    text: str
    chapter_title: str
    chapter_index: int
    chunk_index: int
    global_order_index: int


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """Outcome of one chunk task; `artifact_path` is `None` when never produced."""

    global_order_index: int
    artifact_path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Progress derived after one chunk completes.

    `current_chapter_index`/`current_chapter_title` describe the chunk that just
    finished, not a synchronized playhead.
    """

    completed_chunks: int
    total_chunks: int
    completed_characters: int
    total_characters: int
    current_chapter_index: int
    current_chapter_title: str
    percent_complete: int


@dataclass(frozen=True, slots=True)
class JobRequest:
    """Parameters for one generation job.

    Exactly one of `source_path` and `text` must be provided.

    Attributes:
        source_path: Path to an uploaded/local document.
        text: Raw text input.
        voice: Provider voice identifier.
        speed: Speed factor in `[0.5, 2.0]`.
        output_format: `m4b` (chaptered audiobook) or `mp3` (flat audio).
        source_name: Original upload filename; defaults to `source_path.name`.
    """

    source_path: Path | None = None
    text: str | None = None
    voice: str = "af_heart"
    speed: float = 1.0
    output_format: str = CHAPTERED_AUDIOBOOK
    source_name: str | None = None

    def validate(self) -> None:
        """Reject requests without a usable source before any event is streamed."""

        has_text = bool(self.text and self.text.strip())
        if self.source_path is None and not has_text:
            raise InputError(
                "No file or text provided",
                hint="Pass a document path or `--text` with non-empty content.",
            )
        if self.source_path is not None and has_text:
            raise InputError(
                "Provide either a file or text, not both",
                hint="Send exactly one source per generation request.",
            )
        if self.output_format not in OUTPUT_FORMATS:
            supported = ", ".join(OUTPUT_FORMATS)
            raise InputError(
                f"Unsupported output format `{self.output_format}`; supported: {supported}.",
            )


@dataclass(frozen=True, slots=True)
class JobOutcome:
    """Terminal record of one generation job.

    Attributes:
        state: `completed`, `aborted`, or `failed`.
        output_path: Merged output path for completed jobs.
        download_url: Public download path for completed jobs.
        chapters: Number of chapters reported by the document collaborator.
        duration: Human-readable duration, or `Unknown`.
        error: Failure message for failed jobs.
        artifact_paths: Ordered chunk artifacts handed to the merge collaborator.
    """

    state: str
    output_path: Path | None = None
    download_url: str | None = None
    chapters: int = 0
    duration: str = "Unknown"
    error: str | None = None
    artifact_paths: tuple[Path, ...] = field(default_factory=tuple)
