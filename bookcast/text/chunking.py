"""Chapter-to-chunk segmentation logic.

Responsibilities:
- Split chapter text into bounded chunks at paragraph boundaries.
- Flatten chunks across chapters into one task list with dense global order indices.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..models.datatypes import Chapter, ChunkTask

DEFAULT_CHUNK_SIZE_CHARS = 2000

_PARAGRAPH_SPLIT_RE = re.compile(r"[\r\n]+")


class Chunker:
    """Create paragraph-aligned chunk tasks from ordered chapters.

    Paragraphs are never split. Consecutive paragraphs are joined by single
    spaces while the joined text stays at or under `max_chars`. Every chunk also
    ends with one trailing space, so a full chunk may be `max_chars + 1` long. A
    paragraph longer than `max_chars` becomes its own oversized chunk.
    """

    def __init__(self, max_chars: int = DEFAULT_CHUNK_SIZE_CHARS) -> None:
        """Initialize chunker with a positive per-chunk character bound."""

        if max_chars <= 0:
            raise ValueError("`max_chars` must be a positive integer.")
        self.max_chars = max_chars

    def split_paragraphs(self, text: str) -> list[str]:
        """Return non-blank paragraphs separated by one or more newlines."""

        return [
            paragraph
            for paragraph in _PARAGRAPH_SPLIT_RE.split(text)
            if paragraph.strip()
        ]

    def split_chapter(self, text: str) -> list[str]:
        """Split one chapter text into ordered chunk texts.

        Args:
            text: Plain chapter text.

        Returns:
            Chunk texts in source order; empty for blank chapters.
        """

        chunks: list[str] = []
        current = ""
        for paragraph in self.split_paragraphs(text):
            if current and len(current) + len(paragraph) > self.max_chars:
                chunks.append(current)
                current = ""
            current += paragraph + " "
        if current.strip():
            chunks.append(current)
        return chunks

    def to_tasks(self, chapters: Iterable[Chapter]) -> list[ChunkTask]:
        """Flatten chapters into chunk tasks stamped with a dense global order index.

        Blank chapters produce no tasks but still consume a chapter index, so chapter
        numbering stays aligned with the chapter count reported to the caller.
        """

        tasks: list[ChunkTask] = []
        for chapter_index, chapter in enumerate(chapters):
            if not chapter.text.strip():
                continue
            for chunk_index, chunk_text in enumerate(self.split_chapter(chapter.text)):
                tasks.append(
                    ChunkTask(
                        text=chunk_text,
                        chapter_title=chapter.title,
                        chapter_index=chapter_index,
                        chunk_index=chunk_index,
                        global_order_index=len(tasks),
                    )
                )
        return tasks
