"""Top-level package for bookcast.

This package converts chaptered documents or raw text into a single audiobook
file by fanning chunk synthesis out to a remote TTS service and stitching the
results back together in source order. The main orchestration entry point is
`GenerationJob`.
"""

from .pipeline import GenerationJob

__all__ = ["GenerationJob", "__version__"]

__version__ = "0.3.0"
