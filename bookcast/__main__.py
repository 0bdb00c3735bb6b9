"""Module entrypoint for running bookcast as ``python -m bookcast``."""

from __future__ import annotations

from bookcast.cli import main


if __name__ == "__main__":
    main()
