"""Filesystem storage collaborator.

Responsibilities:
- Write chunk audio bytes under a job working directory.
- Create and recursively delete temporary directories for uploads, merges, and jobs.
- Reserve merged output filenames so concurrent jobs never share one.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path


class ArtifactStore:
    """Filesystem-backed artifact store rooted at one working directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def ensure_root(self) -> Path:
        """Create the root directory when missing and return it."""

        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def save_audio(self, relative_path: Path, data: bytes) -> Path:
        """Save audio bytes and return final path."""

        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


def create_temp_dir(prefix: str, parent: Path | None = None) -> Path:
    """Create a fresh uniquely named directory and return its path.

    Args:
        prefix: Directory name prefix.
        parent: Directory to create it in; the system temp dir when omitted.
    """

    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=prefix, dir=None if parent is None else str(parent)))


def reserve_output_path(output_dir: Path, stem: str, extension: str) -> Path:
    """Atomically claim `<stem>.<extension>` in `output_dir`, else `<stem>-2`, `<stem>-3`, ...

    The claimed path exists as an empty placeholder that the merge overwrites.
    """

    output_dir.mkdir(parents=True, exist_ok=True)
    attempt = 1
    while True:
        candidate_stem = stem if attempt == 1 else f"{stem}-{attempt}"
        candidate = output_dir / f"{candidate_stem}.{extension}"
        try:
            with candidate.open("xb"):
                pass
        except FileExistsError:
            attempt += 1
            continue
        return candidate


def remove_tree(path: Path) -> None:
    """Recursively delete a directory; a missing directory is not an error."""

    shutil.rmtree(path, ignore_errors=True)
