"""Input/output collaborators for documents and artifact storage."""

from .chapter_splitter import ChapterSplitter
from .documents import DocumentParser
from .storage import ArtifactStore, create_temp_dir, remove_tree

__all__ = [
    "ArtifactStore",
    "ChapterSplitter",
    "DocumentParser",
    "create_temp_dir",
    "remove_tree",
]
