"""Telemetry helpers for structured job logging."""

from .logger import RunLogger

__all__ = ["RunLogger"]
