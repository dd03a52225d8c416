"""Speech synthesis provider implementations."""

# Re-export for easier access, e.g. `from scriptura.infrastructure.tts import SpeechifyProvider`
from .base import ResponseFormat, SpeechProvider
from .speechify_provider import SpeechifyProvider

__all__ = [
    "ResponseFormat",
    "SpeechProvider",
    "SpeechifyProvider",
]
