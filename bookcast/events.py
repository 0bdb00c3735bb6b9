"""NDJSON event stream payloads shared by the CLI and the web route.

Responsibilities:
- Build the `progress`, `status`, `result`, and `error` event payloads.
- Serialize events as one JSON object per line, one writer at a time.
"""

from __future__ import annotations

import json
import sys
import threading
from collections.abc import Callable
from typing import Any, TextIO

from .models.datatypes import ProgressSnapshot
from .pipeline.eta import EtaEstimate

Event = dict[str, Any]
EventSink = Callable[[Event], None]

MERGING_STATUS = "Merging audio files..."
ABORTED_STATUS = "Generation aborted"


def progress_event(
    snapshot: ProgressSnapshot,
    total_chapters: int,
    eta: EtaEstimate | None = None,
) -> Event:
    """Build a progress event; `chapterIndex` is reported 1-based."""

    return {
        "type": "progress",
        "chapterIndex": snapshot.current_chapter_index + 1,
        "totalChapters": total_chapters,
        "chapterTitle": snapshot.current_chapter_title,
        "progress": snapshot.percent_complete,
        "processedCharacters": snapshot.completed_characters,
        "totalCharacters": snapshot.total_characters,
        "etaSeconds": eta.display_seconds if eta is not None else None,
        "eta": eta.text if eta is not None else None,
    }


def status_event(message: str) -> Event:
    return {"type": "status", "message": message}


def result_event(download_url: str, chapters: int, duration: str) -> Event:
    return {
        "type": "result",
        "success": True,
        "downloadUrl": download_url,
        "stats": {"chapters": chapters, "duration": duration},
    }


def error_event(message: str) -> Event:
    return {"type": "error", "error": message}


def encode_event(event: Event) -> str:
    """Serialize one event as a newline-terminated JSON line."""

    return json.dumps(event, ensure_ascii=False) + "\n"


class NdjsonEventWriter:
    """Write events to a text stream as NDJSON, serializing concurrent writers."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def __call__(self, event: Event) -> None:
        self.write(event)

    def write(self, event: Event) -> None:
        line = encode_event(event)
        with self._lock:
            self._stream.write(line)
            self._stream.flush()
