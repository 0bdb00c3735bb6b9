"""External executable resolution for the media toolchain.

Responsibilities:
- Locate `ffmpeg`/`ffprobe`, honouring an explicit override directory first.
- Fall back to the raw command name so `subprocess` reports a missing binary natively.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil

TOOLS_DIR_ENV = "BOOKCAST_TOOLS_DIR"


def resolve_executable(command_name: str, tools_dir: Path | None = None) -> str:
    """Resolve an executable from `tools_dir` (or `BOOKCAST_TOOLS_DIR`), then `PATH`."""

    normalized = command_name.strip()
    if not normalized:
        return command_name

    override = tools_dir
    if override is None and os.environ.get(TOOLS_DIR_ENV):
        override = Path(os.environ[TOOLS_DIR_ENV])
    if override is not None:
        for name in (normalized, f"{normalized}.exe"):
            candidate = override / name
            if candidate.is_file():
                return str(candidate)

    return shutil.which(normalized) or normalized
