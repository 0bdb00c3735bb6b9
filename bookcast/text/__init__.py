"""Text processing modules for chunking and deterministic naming."""

from .chunking import DEFAULT_CHUNK_SIZE_CHARS, Chunker
from .slug import chunk_artifact_filename, sanitize_chapter_title, sanitize_name

__all__ = [
    "DEFAULT_CHUNK_SIZE_CHARS",
    "Chunker",
    "chunk_artifact_filename",
    "sanitize_chapter_title",
    "sanitize_name",
]
