"""Text-to-speech collaborators.

This package contains the HTTP speech client, voice profile types, and the
chunk synthesizer used by the dispatch stage.
"""

from .kokoro_client import KokoroSpeechClient, SpeechClient, TTSProviderError
from .synthesizer import ChunkSynthesizer
from .voices import DEFAULT_VOICE, KNOWN_VOICES, VoiceProfile

__all__ = [
    "ChunkSynthesizer",
    "DEFAULT_VOICE",
    "KNOWN_VOICES",
    "KokoroSpeechClient",
    "SpeechClient",
    "TTSProviderError",
    "VoiceProfile",
]
