"""Voice profile models for synthesis configuration.

Responsibilities:
- Represent the provider voice identity and speed factor used for one job.
- Validate speed bounds before any chunk is dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_VOICE = "af_heart"
KNOWN_VOICES = ("af_heart", "af_sky", "af_bella", "af_nicole", "af_sarah")
MIN_SPEED = 0.5
MAX_SPEED = 2.0


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by the speech client.

    Attributes:
        provider_voice_id: Provider-native voice identifier.
        speed: Relative speaking rate multiplier in `[0.5, 2.0]`.
    """

    provider_voice_id: str = DEFAULT_VOICE
    speed: float = 1.0

    def validate(self) -> None:
        """Validate voice identifier and speed bounds."""

        if not self.provider_voice_id or not self.provider_voice_id.strip():
            raise ValueError("Voice identifier must be a non-empty string.")
        if not MIN_SPEED <= self.speed <= MAX_SPEED:
            raise ValueError(
                f"Speed {self.speed} is outside the supported range {MIN_SPEED}-{MAX_SPEED}."
            )
