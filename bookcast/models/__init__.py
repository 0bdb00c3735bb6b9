"""Shared typed data models for bookcast.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    CHAPTERED_AUDIOBOOK,
    FLAT_AUDIO,
    OUTPUT_FORMATS,
    BookMeta,
    Chapter,
    ChunkResult,
    ChunkTask,
    JobOutcome,
    JobRequest,
    ParsedDocument,
    ProgressSnapshot,
)

__all__ = [
    "CHAPTERED_AUDIOBOOK",
    "FLAT_AUDIO",
    "OUTPUT_FORMATS",
    "BookMeta",
    "Chapter",
    "ChunkResult",
    "ChunkTask",
    "JobOutcome",
    "JobRequest",
    "ParsedDocument",
    "ProgressSnapshot",
]
