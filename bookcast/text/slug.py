"""Deterministic naming helpers for chunk artifacts and output files.

Responsibilities:
- Sanitize chapter titles and book names into filesystem-safe tokens.
- Derive chunk artifact filenames whose lexical order matches playback order.
"""

from __future__ import annotations

import re

from ..models.datatypes import ChunkTask

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_TITLE_SLUG_MAX_CHARS = 50


def sanitize_name(value: str) -> str:
    """Replace every non-alphanumeric character with `_` and case-fold the result."""

    return _NON_ALNUM_RE.sub("_", value).lower()


def sanitize_chapter_title(title: str) -> str:
    """Return the sanitized chapter title truncated to 50 characters."""

    return sanitize_name(title)[:_TITLE_SLUG_MAX_CHARS]


def chunk_artifact_filename(task: ChunkTask, extension: str = "mp3") -> str:
    """Build the deterministic artifact filename for one chunk task."""

    title_safe = sanitize_chapter_title(task.chapter_title)
    return f"{task.chapter_index:03d}_{title_safe}_part{task.chunk_index:04d}.{extension}"
