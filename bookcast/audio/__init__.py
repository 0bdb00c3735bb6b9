"""Audio merge collaborator."""

from .merger import AudioMerger, MergeMetadata, format_duration

__all__ = ["AudioMerger", "MergeMetadata", "format_duration"]
