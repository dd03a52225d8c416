from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from scriptura.catalog import VoiceProfile

ResponseFormat = Literal["mp3", "wav", "ogg", "aac"]


class SpeechProvider(ABC):
    """Abstract base class for speech synthesis providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the (unique) short-name for this provider (e.g. 'speechify')."""

    @abstractmethod
    async def synth(
        self,
        *,  # force keyword-only args
        text: str,
        voice: VoiceProfile,
        format: ResponseFormat = "mp3",
    ) -> str:
        """Synthesise *text* with *voice* and return the Base64-encoded audio."""
