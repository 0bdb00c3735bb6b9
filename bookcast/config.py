"""Configuration model and loaders for bookcast.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `BookcastConfig`: normalized runtime settings shared by CLI and web runs.
- `ConfigLoader`: static construction helpers for `BookcastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import OUTPUT_FORMATS
from .parsing import normalize_optional_string, parse_permissive_boolean
from .text.chunking import DEFAULT_CHUNK_SIZE_CHARS
from .tts.kokoro_client import DEFAULT_KOKORO_BASE_URL, DEFAULT_TTS_MODEL
from .tts.voices import DEFAULT_VOICE, MAX_SPEED, MIN_SPEED


@dataclass(slots=True)
class BookcastConfig:
    """Runtime configuration for generation jobs.

    Attributes:
        kokoro_base_url: Base URL of the OpenAI-compatible Kokoro server.
        tts_model: Model identifier sent with every synthesis request.
        voice: Default voice identifier.
        speed: Default speed factor in `[0.5, 2.0]`.
        output_format: Default output container (`m4b` or `mp3`).
        chunk_size_chars: Upper bound for chunk text length.
        concurrency: Maximum synthesis calls in flight.
        downloads_dir: Root directory for book directories and merged outputs.
        request_timeout_seconds: Per-request HTTP timeout.
        eta_warmup_seconds: Elapsed time before ETA estimates are reported.
        keep_chunks: Keep per-chunk artifacts after a successful merge.
        api_key: Optional bearer token for the TTS server.
    """

    kokoro_base_url: str = DEFAULT_KOKORO_BASE_URL
    tts_model: str = DEFAULT_TTS_MODEL
    voice: str = DEFAULT_VOICE
    speed: float = 1.0
    output_format: str = "m4b"
    chunk_size_chars: int = DEFAULT_CHUNK_SIZE_CHARS
    concurrency: int = 4
    downloads_dir: Path = Path("downloads")
    request_timeout_seconds: float = 300.0
    eta_warmup_seconds: float = 5.0
    keep_chunks: bool = True
    api_key: str | None = None

    def validate(self) -> None:
        """Validate runtime configuration values before a job starts."""

        self._require_non_empty(self.kokoro_base_url, "kokoro_base_url")
        self._require_non_empty(self.tts_model, "tts_model")
        self._require_non_empty(self.voice, "voice")
        if self.chunk_size_chars <= 0:
            raise ValueError("`chunk_size_chars` must be a positive integer.")
        if self.concurrency <= 0:
            raise ValueError("`concurrency` must be a positive integer.")
        if not MIN_SPEED <= self.speed <= MAX_SPEED:
            raise ValueError(f"`speed` must lie between {MIN_SPEED} and {MAX_SPEED}.")
        if self.output_format not in OUTPUT_FORMATS:
            supported = ", ".join(OUTPUT_FORMATS)
            raise ValueError(
                f"Unsupported `output_format` value `{self.output_format}`; supported: {supported}."
            )
        if self.request_timeout_seconds <= 0:
            raise ValueError("`request_timeout_seconds` must be positive.")
        if self.eta_warmup_seconds < 0:
            raise ValueError("`eta_warmup_seconds` must not be negative.")

    def with_overrides(self, **overrides: object) -> BookcastConfig:
        """Return a validated copy with non-`None` overrides applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        updated = replace(self, **applied)
        updated.validate()
        return updated

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `BookcastConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(item.name for item in fields(BookcastConfig))
    _ENV_KEYS = {
        "kokoro_base_url": "KOKORO_BASE_URL",
        "tts_model": "BOOKCAST_TTS_MODEL",
        "voice": "BOOKCAST_VOICE",
        "speed": "BOOKCAST_SPEED",
        "output_format": "BOOKCAST_OUTPUT_FORMAT",
        "chunk_size_chars": "BOOKCAST_CHUNK_SIZE_CHARS",
        "concurrency": "BOOKCAST_CONCURRENCY",
        "downloads_dir": "BOOKCAST_DOWNLOADS_DIR",
        "request_timeout_seconds": "BOOKCAST_REQUEST_TIMEOUT_SECONDS",
        "eta_warmup_seconds": "BOOKCAST_ETA_WARMUP_SECONDS",
        "keep_chunks": "BOOKCAST_KEEP_CHUNKS",
        "api_key": "KOKORO_API_KEY",
    }

    @staticmethod
    def from_yaml(path: Path) -> BookcastConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"YAML `{path}` includes unsupported key(s): {', '.join(unknown)}.")
        return ConfigLoader._build(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> BookcastConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload = {
            key: env_map[env_key]
            for key, env_key in ConfigLoader._ENV_KEYS.items()
            if normalize_optional_string(env_map.get(env_key)) is not None
        }
        return ConfigLoader._build(payload, source_label="Environment")

    @staticmethod
    def _build(payload: Mapping[str, Any], source_label: str) -> BookcastConfig:
        """Build a validated config from a normalized mapping payload."""

        defaults = BookcastConfig()
        config = BookcastConfig(
            kokoro_base_url=ConfigLoader._string(payload, "kokoro_base_url", defaults.kokoro_base_url),
            tts_model=ConfigLoader._string(payload, "tts_model", defaults.tts_model),
            voice=ConfigLoader._string(payload, "voice", defaults.voice),
            speed=ConfigLoader._number(payload, "speed", source_label, defaults.speed),
            output_format=ConfigLoader._string(
                payload, "output_format", defaults.output_format
            ).lower(),
            chunk_size_chars=ConfigLoader._positive_int(
                payload, "chunk_size_chars", source_label, defaults.chunk_size_chars
            ),
            concurrency=ConfigLoader._positive_int(
                payload, "concurrency", source_label, defaults.concurrency
            ),
            downloads_dir=Path(
                ConfigLoader._string(payload, "downloads_dir", str(defaults.downloads_dir))
            ),
            request_timeout_seconds=ConfigLoader._number(
                payload, "request_timeout_seconds", source_label, defaults.request_timeout_seconds
            ),
            eta_warmup_seconds=ConfigLoader._number(
                payload, "eta_warmup_seconds", source_label, defaults.eta_warmup_seconds
            ),
            keep_chunks=ConfigLoader._boolean(
                payload, "keep_chunks", source_label, defaults.keep_chunks
            ),
            api_key=normalize_optional_string(payload.get("api_key")),
        )
        config.validate()
        return config

    @staticmethod
    def _string(payload: Mapping[str, Any], key: str, default: str) -> str:
        return normalize_optional_string(payload.get(key)) or default

    @staticmethod
    def _positive_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer payload field."""

        if key not in payload:
            return default
        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        if isinstance(raw_value, int):
            parsed = raw_value
        else:
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return default
            try:
                parsed = int(normalized)
            except ValueError as exc:
                raise ValueError(
                    f"{source_label} field `{key}` must be a positive integer."
                ) from exc
        if parsed <= 0:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        return parsed

    @staticmethod
    def _number(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        if key not in payload:
            return default
        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be a number.")
        normalized = normalize_optional_string(raw_value)
        if normalized is None:
            return default
        try:
            return float(normalized)
        except ValueError as exc:
            raise ValueError(f"{source_label} field `{key}` must be a number.") from exc

    @staticmethod
    def _boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        if key not in payload:
            return default
        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed
