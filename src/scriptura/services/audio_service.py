"""Narrated chapter audio: chunk, synthesize, decode, concatenate, publish.

Flow for one uncached chapter::

    StructuredChapter -> narration text -> chunks
      -> bounded concurrent synthesis (Base64 per chunk) -> staged files
      -> concatenation (if more than one chunk) -> upload -> public URL

Every staged or intermediate file is removed on every exit path. A failure
in any chunk aborts the request; partial audio is never published.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import tempfile
from pathlib import Path

from opentelemetry import trace

from scriptura.catalog import VoiceProfile, get_voice_profile
from scriptura.errors import SynthesisError
from scriptura.infrastructure.audio import StagingArea, concatenate_audio_files
from scriptura.infrastructure.tts.base import SpeechProvider
from scriptura.models import (
    AudioArtifact,
    ChapterReference,
    HeadingItem,
    ReferenceItem,
    StructuredChapter,
)
from scriptura.services.chunker import split_text_into_chunks
from scriptura.services.content_cache import ContentCache, audio_key
from scriptura.services.single_flight import SingleFlight
from scriptura.services.text_service import TextRetrievalService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

AUDIO_MIME_TYPE = "audio/mpeg"
DEFAULT_CHAR_LIMIT = 3000
DEFAULT_CONCURRENCY = 4


def build_narration_text(chapter: StructuredChapter) -> str:
    """Title, then the first heading as an introduction, then every other text node.

    Reference items are never narrated.
    """
    parts: list[str] = []
    if chapter.title:
        parts.append(f"{chapter.title}:")

    first_heading = next(
        (i for i, item in enumerate(chapter.content) if isinstance(item, HeadingItem)), None
    )
    if first_heading is not None and chapter.content[first_heading].text:
        parts.append(f"{chapter.content[first_heading].text}...")

    for i, item in enumerate(chapter.content):
        if i == first_heading or isinstance(item, ReferenceItem):
            continue
        if item.text:
            parts.append(item.text)

    return "\n".join(parts)


class AudioSynthesisOrchestrator:
    """Produces (or finds) the published narration of one chapter."""

    def __init__(
        self,
        text_service: TextRetrievalService,
        speech_provider: SpeechProvider,
        cache: ContentCache,
        *,
        char_limit: int = DEFAULT_CHAR_LIMIT,
        max_concurrency: int = DEFAULT_CONCURRENCY,
        staging_dir: str | Path | None = None,
        single_flight: SingleFlight | None = None,
    ):
        if char_limit <= 0:
            raise ValueError("char_limit must be positive")
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.text_service = text_service
        self.speech_provider = speech_provider
        self.cache = cache
        self.char_limit = char_limit
        self.max_concurrency = max_concurrency
        self.staging_dir = Path(staging_dir or tempfile.gettempdir())
        self.single_flight = single_flight

    async def synthesize(self, reference: ChapterReference) -> str:
        """Return the public URL of the narrated chapter, generating it if needed."""
        artifact = await self.get_audio(reference)
        return artifact.url

    async def get_audio(self, reference: ChapterReference) -> AudioArtifact:
        key = audio_key(reference)

        cached_url = await self.cache.lookup_url(key)
        if cached_url:
            logger.info(f"Found cached audio for {reference}: {cached_url}")
            return AudioArtifact(reference=reference, storage_key=key, url=cached_url)

        voice = get_voice_profile(reference.language)
        logger.info(f"Audio not cached for {reference}, generating")

        if self.single_flight is None:
            url = await self._generate(reference, voice, key)
        else:
            url = await self.single_flight.do(key, lambda: self._generate(reference, voice, key))
        return AudioArtifact(reference=reference, storage_key=key, url=url)

    async def _generate(self, reference: ChapterReference, voice: VoiceProfile, key: str) -> str:
        with tracer.start_as_current_span("synthesize_chapter_audio") as span:
            span.set_attribute("scripture.reference", str(reference))

            chapter = await self.text_service.get_chapter_text(reference)
            narration = build_narration_text(chapter)
            chunks = split_text_into_chunks(narration, self.char_limit)
            if not chunks:
                raise SynthesisError(f"No narratable text for {reference}")
            logger.info(f"Narration text for {reference} split into {len(chunks)} chunk(s)")
            span.set_attribute("scripture.chunk_count", len(chunks))

            prefix = f"{reference.version}_{reference.book}_{reference.chapter}_"
            with StagingArea(self.staging_dir, prefix=prefix) as staging:
                chunk_paths = await self._synthesize_chunks(chunks, voice, staging)

                if len(chunk_paths) == 1:
                    logger.info("Single audio chunk, no concatenation needed")
                    final_path = chunk_paths[0]
                else:
                    final_path = staging.new_file(suffix="_final.mp3")
                    await concatenate_audio_files(chunk_paths, final_path)

                url = await self.cache.put(key, final_path, AUDIO_MIME_TYPE)

            logger.info(f"Audio generated for {reference}: {url}")
            return url

    async def _synthesize_chunks(
        self, chunks: list[str], voice: VoiceProfile, staging: StagingArea
    ) -> list[Path]:
        """Synthesize every chunk with at most ``max_concurrency`` calls in flight.

        Results are returned in chunk order. On the first failure the
        remaining calls are cancelled and awaited before the error propagates.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def synthesize_chunk(index: int, chunk: str) -> Path:
            async with semaphore:
                with tracer.start_as_current_span("synthesize_chunk") as span:
                    span.set_attribute("scripture.chunk_index", index)
                    logger.debug(f"Processing chunk {index + 1}/{len(chunks)} ({len(chunk)} chars)")
                    audio_b64 = await self.speech_provider.synth(text=chunk, voice=voice, format="mp3")
            path = staging.new_file()
            save = asyncio.ensure_future(asyncio.to_thread(self._save_chunk, audio_b64, path))
            try:
                await asyncio.shield(save)
            except asyncio.CancelledError:
                # The thread keeps writing; let it finish so cleanup sees the file.
                await asyncio.wait([save])
                raise
            return path

        tasks = [asyncio.create_task(synthesize_chunk(i, c)) for i, c in enumerate(chunks)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    @staticmethod
    def _save_chunk(audio_b64: str, path: Path) -> None:
        try:
            audio = base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SynthesisError(f"Failed to decode Base64 audio chunk: {e}") from e
        try:
            path.write_bytes(audio)
        except OSError as e:
            raise SynthesisError(f"Failed to save audio chunk to {path}: {e}") from e
        logger.debug(f"Saved decoded audio chunk to {path}")
