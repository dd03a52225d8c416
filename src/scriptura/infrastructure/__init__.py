"""I/O boundary adapters (object storage, upstream site, speech API, audio files)."""

# Base classes, provider implementations
from .tts import (
    ResponseFormat,
    SpeechifyProvider,
    SpeechProvider,
)

__all__ = [
    "ResponseFormat",
    "SpeechProvider",
    "SpeechifyProvider",
]
