"""Parsing, chunking, caching and the text/audio pipelines live here."""

from .audio_service import AudioSynthesisOrchestrator
from .text_service import TextRetrievalService
