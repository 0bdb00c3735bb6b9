"""Heading-based chapter splitting for documents without structural markup.

Responsibilities:
- Convert extracted plain text into ordered chapter objects.
- Keep paragraph newlines intact so downstream chunking can align to them.
"""

from __future__ import annotations

import re

from ..models.datatypes import Chapter


class ChapterSplitter:
    """Split plain book text into chapter records."""

    _HEADING_RE = re.compile(
        r"^(?P<title>\s*(?:chapter|part|book)\s+(?:\d+|[ivxlcdm]+)(?:[ \t]*[:.\-][ \t]*[^\n]+|[ \t]+[^\n]+)?)\s*$",
        re.IGNORECASE | re.MULTILINE,
    )

    def split(self, text: str, fallback_title: str = "Full Text") -> list[Chapter]:
        """Split text into chapters.

        Uses simple heading-line heuristics for common formats:
        - `Chapter 1`
        - `CHAPTER 2: Title`
        - `Part IV - Title`

        Text before the first heading becomes its own leading chapter; text with
        no headings becomes one chapter titled `fallback_title`.
        """

        if not text or not text.strip():
            return []

        normalized = text.replace("\r\n", "\n").replace("\r", "\n").strip()
        matches = list(self._HEADING_RE.finditer(normalized))
        if not matches:
            return [Chapter(title=fallback_title, text=normalized)]

        chapters: list[Chapter] = []
        leading_text = normalized[: matches[0].start()].strip()
        if leading_text:
            chapters.append(Chapter(title="Front Matter", text=leading_text))

        for idx, match in enumerate(matches):
            content_start = match.end()
            content_end = matches[idx + 1].start() if idx + 1 < len(matches) else len(normalized)
            content = normalized[content_start:content_end].strip()
            title = " ".join(match.group("title").split())
            chapters.append(Chapter(title=title, text=content))

        return chapters
