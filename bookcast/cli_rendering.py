"""CLI output and error rendering helpers.

Console diagnostics go to stderr so stdout carries only the NDJSON event stream.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import JobOutcome

ABORTED_EXIT_CODE = 130


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def exit_with_outcome(command_name: str, outcome: JobOutcome) -> None:
    """Summarize a terminal job outcome on stderr; exit non-zero unless completed."""

    if outcome.state == "completed":
        typer.secho(f"Audiobook: {outcome.output_path}", fg=typer.colors.GREEN, err=True)
        typer.echo(f"Chapters: {outcome.chapters}", err=True)
        typer.echo(f"Duration: {outcome.duration}", err=True)
        return
    if outcome.state == "aborted":
        typer.secho(f"{command_name} aborted.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=ABORTED_EXIT_CODE)
    typer.secho(f"{command_name} failed: {outcome.error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def echo_voice_list(voices: tuple[str, ...], default_voice: str) -> None:
    """Print known voices, marking the default."""

    for voice in voices:
        marker = " (default)" if voice == default_voice else ""
        typer.echo(f"{voice}{marker}")
