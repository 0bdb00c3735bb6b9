"""Merge collaborator: concatenate ordered chunk audio into one deliverable.

Responsibilities:
- Write an ffmpeg concat list for ordered chunk artifacts in a private temp dir.
- Encode `m4b` (AAC, fast-start) or `mp3` (LAME) with title/artist metadata.
- Probe the merged file duration with `ffprobe` when it is available.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import subprocess

from ..errors import EncodeError
from ..io.storage import create_temp_dir, remove_tree
from ..models.datatypes import CHAPTERED_AUDIOBOOK, FLAT_AUDIO
from ..parsing import normalize_optional_string
from ..runtime_tools import resolve_executable


@dataclass(frozen=True, slots=True)
class MergeMetadata:
    """Container tags written to the merged deliverable."""

    title: str
    artist: str | None = None


class AudioMerger:
    """Concatenate chunk artifacts with ffmpeg's concat demuxer."""

    _ENCODING_PROFILES = {
        CHAPTERED_AUDIOBOOK: ("aac", "128k", ("-movflags", "+faststart")),
        FLAT_AUDIO: ("libmp3lame", "192k", ()),
    }

    def merge(
        self,
        paths: list[Path],
        output_dir: Path,
        base_name: str,
        container_format: str,
        metadata: MergeMetadata,
    ) -> Path:
        """Merge `paths` in the given order into `<output_dir>/<base_name>.<format>`.

        Raises:
            EncodeError: On an empty input list, unsupported format, missing
                ffmpeg, or a non-zero ffmpeg exit.
        """

        if not paths:
            raise EncodeError(
                "No audio chunks to merge.",
                hint="The document produced no speakable text.",
            )
        profile = self._ENCODING_PROFILES.get(container_format)
        if profile is None:
            raise EncodeError(
                f"Unsupported output format `{container_format}`.",
                hint="Use `m4b` or `mp3`.",
            )
        codec, bitrate, extra_args = profile

        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{base_name}.{container_format}"
        temp_dir = create_temp_dir("bookcast-merge-")
        try:
            concat_path = temp_dir / "concat.txt"
            concat_path.write_text(
                "\n".join(f"file '{self._escape_concat_path(path.resolve())}'" for path in paths)
                + "\n",
                encoding="utf-8",
            )
            command = [
                resolve_executable("ffmpeg"),
                "-y",
                "-hide_banner",
                "-loglevel",
                "error",
                "-f",
                "concat",
                "-safe",
                "0",
                "-i",
                str(concat_path),
                "-vn",
                "-c:a",
                codec,
                "-b:a",
                bitrate,
                *extra_args,
                "-metadata",
                f"title={metadata.title}",
            ]
            if metadata.artist:
                command.extend(["-metadata", f"artist={metadata.artist}"])
            command.append(str(output_path))
            self._run_ffmpeg(command, output_path)
        finally:
            remove_tree(temp_dir)
        return output_path

    def probe_duration(self, path: Path) -> str | None:
        """Return the media duration as `H:MM:SS`, or `None` when it cannot be probed."""

        command = [
            resolve_executable("ffprobe"),
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            completed = subprocess.run(command, check=True, capture_output=True, text=True)
        except (FileNotFoundError, subprocess.CalledProcessError):
            return None
        raw = normalize_optional_string(completed.stdout)
        if raw is None:
            return None
        try:
            seconds = float(raw.splitlines()[0])
        except ValueError:
            return None
        return format_duration(seconds)

    def _run_ffmpeg(self, command: list[str], output_path: Path) -> None:
        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise EncodeError(
                "Merge tool `ffmpeg` is not available on PATH.",
                hint="Install ffmpeg or point `BOOKCAST_TOOLS_DIR` at a directory containing it.",
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(exc.stderr) or "no stderr output"
            raise EncodeError(
                f"ffmpeg merge failed for `{output_path.name}`: {stderr}",
                hint="Verify local ffmpeg codec support (`aac` for m4b, `libmp3lame` for mp3).",
            ) from exc

    @staticmethod
    def _escape_concat_path(path: Path) -> str:
        return str(path).replace("'", "'\\''")


def format_duration(seconds: float) -> str:
    """Format seconds as `H:MM:SS`."""

    total = max(0, int(round(seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
