"""
Scriptura – scripture text extraction and narrated chapter audio.

This top-level package exposes the core models used by the text and
audio pipelines.
"""

from .models import (
    AudioArtifact,
    AudioBibleRequest,
    ChapterReference,
    StructuredChapter,
    VersionInfo,
)

__all__ = [
    "AudioArtifact",
    "AudioBibleRequest",
    "ChapterReference",
    "StructuredChapter",
    "VersionInfo",
]
