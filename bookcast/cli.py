"""Command-line interface for bookcast.

Responsibilities:
- Run a generation job from a document or raw text and stream NDJSON to stdout.
- Serve the HTTP generation route and manage the optional TTS server API key.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
import signal
import threading
from typing import Annotated

import typer
import uvicorn

from .cli_rendering import echo_voice_list, exit_with_command_error, exit_with_outcome
from .config import BookcastConfig, ConfigLoader
from .credentials import create_credential_store
from .errors import PipelineStageError
from .events import NdjsonEventWriter
from .models.datatypes import JobRequest
from .parsing import normalize_optional_string
from .pipeline import CancellationToken, GenerationJob
from .telemetry.logger import RunLogger
from .tts.voices import DEFAULT_VOICE, KNOWN_VOICES
from .web import create_app

app = typer.Typer(
    name="bookcast",
    no_args_is_help=True,
    help="bookcast CLI.",
)


def _load_config(config_path: Path | None) -> BookcastConfig:
    """Load YAML config when requested, else environment config; map failures to stage errors."""

    try:
        if config_path is None:
            return ConfigLoader.from_env()
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except Exception as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc


def _resolve_config(config_path: Path | None, **overrides: object) -> BookcastConfig:
    """Apply explicit CLI overrides, then fall back to a keyring-stored API key."""

    base_config = _load_config(config_path)
    try:
        config = base_config.with_overrides(**overrides)
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid option value: {exc}",
            hint="Check `--speed`, `--format`, `--concurrency`, and `--chunk-size`.",
        ) from exc
    if config.api_key is None:
        stored_key = create_credential_store().get_api_key()
        if stored_key is not None:
            config = config.with_overrides(api_key=stored_key)
    return config


class _InterruptHandler:
    """Route Ctrl-C to the job cancellation token while a job runs."""

    def __init__(self, token: CancellationToken) -> None:
        self._token = token
        self._previous = None

    def __enter__(self) -> _InterruptHandler:
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)

    def _handle(self, signum: int, frame: object) -> None:
        self._token.cancel("interrupted")


@app.command("generate")
def generate_command(
    source: Annotated[
        Path | None,
        typer.Argument(help="EPUB, PDF, or plain-text document to convert."),
    ] = None,
    text: Annotated[
        str | None,
        typer.Option("--text", help="Raw text to convert instead of a document."),
    ] = None,
    voice: Annotated[str | None, typer.Option("--voice", help="TTS voice id.")] = None,
    speed: Annotated[
        float | None,
        typer.Option("--speed", help="Speaking rate between 0.5 and 2.0."),
    ] = None,
    output_format: Annotated[
        str | None,
        typer.Option("--format", help="Output container: `m4b` or `mp3`."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file."),
    ] = None,
    concurrency: Annotated[
        int | None,
        typer.Option("--concurrency", help="Maximum synthesis requests in flight."),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Maximum chunk length in characters."),
    ] = None,
    downloads_dir: Annotated[
        Path | None,
        typer.Option("--downloads-dir", help="Directory for chunk and merged outputs."),
    ] = None,
    kokoro_url: Annotated[
        str | None,
        typer.Option("--kokoro-url", help="Base URL of the Kokoro TTS server."),
    ] = None,
    keep_chunks: Annotated[
        bool | None,
        typer.Option(
            "--keep-chunks/--no-keep-chunks",
            help="Keep per-chunk audio files after merging.",
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Structured log level written to stderr."),
    ] = "INFO",
) -> None:
    """Convert a document or text into one audiobook file, streaming NDJSON events."""

    try:
        config = _resolve_config(
            config_file,
            output_format=normalize_optional_string(output_format),
            concurrency=concurrency,
            chunk_size_chars=chunk_size,
            downloads_dir=downloads_dir,
            kokoro_base_url=normalize_optional_string(kokoro_url),
            keep_chunks=keep_chunks,
        )
        request = JobRequest(
            source_path=source,
            text=text,
            voice=normalize_optional_string(voice) or config.voice,
            speed=speed if speed is not None else config.speed,
            output_format=(normalize_optional_string(output_format) or config.output_format).lower(),
        )
        job = GenerationJob(config, run_logger=RunLogger(level=log_level.upper()))
        token = CancellationToken()
        with _InterruptHandler(token):
            outcome = job.run(request, NdjsonEventWriter(), token)
    except Exception as exc:
        exit_with_command_error("generate", exc)

    exit_with_outcome("generate", outcome)


@app.command("voices")
def voices_command() -> None:
    """List known Kokoro voices."""

    echo_voice_list(KNOWN_VOICES, DEFAULT_VOICE)


@app.command("serve")
def serve_command(
    host: Annotated[str, typer.Option("--host", help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port.")] = 3000,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file."),
    ] = None,
    downloads_dir: Annotated[
        Path | None,
        typer.Option("--downloads-dir", help="Directory for chunk and merged outputs."),
    ] = None,
) -> None:
    """Serve `POST /api/generate` and the downloads directory over HTTP."""

    try:
        config = _resolve_config(config_file, downloads_dir=downloads_dir)
        web_app = create_app(config, run_logger=RunLogger())
    except Exception as exc:
        exit_with_command_error("serve", exc)

    uvicorn.run(web_app, host=host, port=port, log_level="info")


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for the TTS server API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear the stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored TTS server API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "TTS server API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
