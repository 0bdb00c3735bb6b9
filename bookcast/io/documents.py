"""Document collaborator: turn an uploaded file or raw text into ordered chapters.

Responsibilities:
- Parse EPUB spine documents into chapters with paragraph-preserving plain text.
- Parse text-based PDFs via `pypdf` plus heading heuristics.
- Treat any other file as UTF-8 plain text and raw text input as one chapter.
- Raise `ParseError` for anything that cannot be read.
"""

from __future__ import annotations

import re
import time
from pathlib import Path

import ebooklib
from bs4 import BeautifulSoup, NavigableString
from ebooklib import epub
from pypdf import PdfReader

from ..errors import ParseError
from ..models.datatypes import BookMeta, Chapter, ParsedDocument
from .chapter_splitter import ChapterSplitter

FULL_TEXT_TITLE = "Full Text"
TEXT_INPUT_TITLE = "Text Input"
UNTITLED_CHAPTER = "Untitled"

_BLOCK_TAGS = ("p", "div", "li", "blockquote", "pre", "h1", "h2", "h3", "h4", "h5", "h6", "br")
_WHITESPACE_RE = re.compile(r"\s+")


class DocumentParser:
    """Parse source documents into the chapter list consumed by the pipeline."""

    def parse_file(self, path: Path, source_name: str | None = None) -> ParsedDocument:
        """Parse a document file; the extension of `source_name` selects the format.

        Args:
            path: Local file path.
            source_name: Original upload name; defaults to `path.name`.
        """

        name = source_name or path.name
        base_name = Path(name).stem or "document"
        suffix = Path(name).suffix.lower()
        if not path.exists():
            raise ParseError(
                f"Input document not found: {path}",
                hint="Check the path and rerun.",
            )

        try:
            if suffix == ".epub":
                chapters, meta = self._parse_epub(path, base_name)
            elif suffix == ".pdf":
                chapters = self._parse_pdf(path)
                meta = BookMeta(title=base_name)
            else:
                chapters = [Chapter(title=FULL_TEXT_TITLE, text=path.read_text(encoding="utf-8"))]
                meta = BookMeta(title=base_name)
        except ParseError:
            raise
        except Exception as exc:
            raise ParseError(
                f"Failed to parse `{name}`: {exc}",
                hint="Verify the file is a readable EPUB, text-based PDF, or UTF-8 text file.",
            ) from exc

        if not chapters:
            raise ParseError(
                f"No readable text found in `{name}`.",
                hint="Scanned or image-only documents are not supported.",
            )
        return ParsedDocument(chapters=tuple(chapters), base_name=base_name, meta=meta)

    def parse_text(self, text: str) -> ParsedDocument:
        """Wrap raw text input as a single chapter with a timestamped base name."""

        base_name = f"text-input-{int(time.time() * 1000)}"
        return ParsedDocument(
            chapters=(Chapter(title=TEXT_INPUT_TITLE, text=text),),
            base_name=base_name,
            meta=BookMeta(title=base_name),
        )

    def _parse_epub(self, path: Path, base_name: str) -> tuple[list[Chapter], BookMeta]:
        """Read spine documents in order, skipping documents with no text."""

        book = epub.read_epub(str(path))
        toc_labels = self._toc_labels(book.toc)
        chapters: list[Chapter] = []
        for item_id, _linear in book.spine:
            item = book.get_item_with_id(item_id)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            soup = BeautifulSoup(item.get_content(), "html.parser")
            text = self._html_to_text(soup)
            if not text:
                continue
            title = toc_labels.get(item.get_name()) or self._heading_title(soup) or UNTITLED_CHAPTER
            chapters.append(Chapter(title=title, text=text))

        title = self._first_metadata(book, "title") or base_name
        author = self._first_metadata(book, "creator")
        return chapters, BookMeta(title=title, author=author)

    def _parse_pdf(self, path: Path) -> list[Chapter]:
        """Extract page text with `pypdf` and split it at chapter headings."""

        reader = PdfReader(str(path))
        pages = [(page.extract_text() or "").replace("\f", "\n").strip() for page in reader.pages]
        return ChapterSplitter().split("\n".join(pages), fallback_title=FULL_TEXT_TITLE)

    @staticmethod
    def _html_to_text(soup: BeautifulSoup) -> str:
        """Flatten HTML to text with one line per block element."""

        for tag in soup(["script", "style", "head"]):
            tag.decompose()
        # Source newlines are plain whitespace; only block boundaries end a line.
        for node in soup.find_all(string=True):
            if type(node) is NavigableString:
                node.replace_with(_WHITESPACE_RE.sub(" ", str(node)))
        for tag in soup.find_all(_BLOCK_TAGS):
            tag.insert_after("\n")
        lines = []
        for raw_line in soup.get_text().splitlines():
            line = raw_line.strip()
            if line:
                lines.append(line)
        return "\n".join(lines)

    @staticmethod
    def _heading_title(soup: BeautifulSoup) -> str | None:
        heading = soup.find(["h1", "h2", "h3", "title"])
        if heading is None:
            return None
        title = " ".join(heading.get_text().split())
        return title or None

    @classmethod
    def _toc_labels(cls, entries: object) -> dict[str, str]:
        """Map document hrefs (without fragments) to their first table-of-contents label."""

        labels: dict[str, str] = {}
        if not isinstance(entries, (list, tuple)):
            return labels
        for entry in entries:
            if isinstance(entry, tuple) and len(entry) == 2:
                section, children = entry
                cls._add_label(labels, section)
                for href, label in cls._toc_labels(children).items():
                    labels.setdefault(href, label)
            else:
                cls._add_label(labels, entry)
        return labels

    @staticmethod
    def _add_label(labels: dict[str, str], entry: object) -> None:
        href = getattr(entry, "href", None)
        title = getattr(entry, "title", None)
        if not href or not title:
            return
        labels.setdefault(str(href).split("#", 1)[0], " ".join(str(title).split()))

    @staticmethod
    def _first_metadata(book: epub.EpubBook, field: str) -> str | None:
        values = book.get_metadata("DC", field)
        if not values:
            return None
        value = values[0][0] if isinstance(values[0], tuple) else values[0]
        text = " ".join(str(value).split())
        return text or None
