"""Structured chapter text and version metadata, cache-first.

Token-addressed upstream fetches follow a refresh-once protocol: a "not
found" answer invalidates the shared token and the fetch is retried exactly
one more time. Every other upstream failure surfaces immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from scriptura.catalog import get_language_tag, get_version_id
from scriptura.errors import UpstreamStaleTokenError, UpstreamUnavailableError
from scriptura.infrastructure.bible_com import BibleComClient
from scriptura.models import (
    ApiEnvelope,
    BookSummary,
    ChapterPage,
    ChapterReference,
    ContentItem,
    FooterNote,
    HeadingItem,
    PublisherSummary,
    ReferenceItem,
    StructuredChapter,
    VerseItem,
    VerseNote,
    VersionInfo,
    VersionPage,
)
from scriptura.services.content_cache import (
    VERSIONS_INDEX_KEY,
    ContentCache,
    language_versions_key,
    text_key,
    version_key,
)
from scriptura.services.markup_parser import Block, Document, Heading, Reference, parse
from scriptura.services.single_flight import SingleFlight
from scriptura.services.token_resolver import TokenResolver

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def flatten_document(document: Document) -> list[ContentItem]:
    """Project a parsed document onto the flat content list.

    Headings and references pass through; verses are lifted out of their
    blocks in document order.
    """
    content: list[ContentItem] = []
    for node in document:
        if isinstance(node, Heading):
            content.append(HeadingItem(text=node.text))
        elif isinstance(node, Reference):
            content.append(ReferenceItem(text=node.text))
        elif isinstance(node, Block):
            for verse in node.verses:
                if verse.number is None and not verse.identifier and not verse.text and not verse.notes:
                    continue
                content.append(
                    VerseItem(
                        number=verse.number,
                        usfm=verse.identifier or None,
                        text=verse.text,
                        notes=[VerseNote(type=n.kind, label=n.label, body=n.body) for n in verse.notes],
                    )
                )
    return content


def build_structured_chapter(page: ChapterPage) -> StructuredChapter:
    props = page.page_props
    info = props.chapter_info
    version_data = props.version_data
    language = version_data.language if version_data else None

    document = parse(info.content if info else None)
    if info and info.content and document.is_empty:
        logger.warning(f"Chapter markup for {props.usfm} produced no content")

    return StructuredChapter(
        title=info.reference.human if info and info.reference else None,
        usfm=props.usfm,
        locale=props.locale,
        content=flatten_document(document),
        previous_chapter=info.previous if info else None,
        next_chapter=info.next if info else None,
        language=language.iso_639_1 if language else None,
        direction=language.text_direction if language else None,
        publisher=version_data.publisher.name if version_data and version_data.publisher else None,
        copyright=info.copyright.text if info and info.copyright else None,
        notes=[
            FooterNote(
                text=version_data.reader_footer.text
                if version_data and version_data.reader_footer
                else None,
                url=version_data.reader_footer_url if version_data else None,
            )
        ],
    )


def build_version_info(page: VersionPage) -> VersionInfo:
    props = page.page_props
    version = props.version

    books = []
    for book in version.books:
        summary = BookSummary(
            text=book.text, usfm=book.usfm, audio=book.audio, canon=book.canon, human=book.human
        )
        if book.chapters:
            summary.first_chapter = {**book.chapters[0], "usfm": f"{book.usfm}.1"}
            summary.last_chapter = book.chapters[-1]
        books.append(summary)

    publisher = version.publisher
    version_data = props.version_data
    return VersionInfo(
        title=version.title,
        usfm=version.abbreviation,
        books=books,
        language=version.language.iso_639_1 if version.language else None,
        direction=version.language.text_direction if version.language else None,
        publisher=[
            PublisherSummary(
                name=publisher.name if publisher else None,
                description=publisher.description if publisher else None,
                url=publisher.url if publisher else None,
            )
        ],
        copyright=props.chapter_info.copyright.text
        if props.chapter_info and props.chapter_info.copyright
        else None,
        notes=[
            FooterNote(
                text=version_data.reader_footer.text
                if version_data and version_data.reader_footer
                else None,
                url=version_data.reader_footer_url if version_data else None,
            )
        ],
    )


def _validate(model: type[M], data: Any, what: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Unexpected data structure received for {what}: {e.error_count()} error(s)")
        raise UpstreamUnavailableError(f"Unexpected data structure received from upstream for {what}") from e


class TextRetrievalService:
    """Answers "structured text for chapter R" and the version metadata lookups."""

    def __init__(
        self,
        upstream: BibleComClient,
        token_resolver: TokenResolver,
        cache: ContentCache,
        single_flight: SingleFlight | None = None,
    ):
        self.upstream = upstream
        self.token_resolver = token_resolver
        self.cache = cache
        self.single_flight = single_flight

    async def get_chapter_text(self, reference: ChapterReference) -> StructuredChapter:
        # Client errors first: nothing below may contact the upstream for a bad reference.
        version_id = get_version_id(reference.version)
        get_language_tag(reference.language)

        key = text_key(reference)
        cached = await self._cached_model(key, StructuredChapter)
        if cached is not None:
            return cached

        async def generate() -> StructuredChapter:
            logger.info(f"Text not cached for {reference}, fetching from upstream")
            chapter = await self._with_token_retry(
                f"chapter {reference}",
                lambda token: self._fetch_chapter(token, reference, version_id),
            )
            await self.cache.store_json(key, {"data": chapter.model_dump(mode="json")})
            return chapter

        return await self._coalesce(key, generate)

    async def get_version_info(self, language: str, abbreviation: str) -> VersionInfo:
        version_id = get_version_id(abbreviation)
        get_language_tag(language)
        language = language.lower()

        key = version_key(abbreviation)
        cached = await self._cached_model(key, VersionInfo)
        if cached is not None:
            return cached

        async def generate() -> VersionInfo:
            info = await self._with_token_retry(
                f"version {abbreviation}",
                lambda token: self._fetch_version(token, language, version_id),
            )
            await self.cache.store_json(key, {"data": info.model_dump(mode="json")})
            return info

        return await self._coalesce(key, generate)

    async def list_versions(self, language: str) -> dict[str, Any]:
        """Versions available in a language, as published by the upstream listing."""
        language_tag = get_language_tag(language)
        key = language_versions_key(language)

        cached = await self.cache.lookup_json(key)
        if isinstance(cached, dict) and isinstance(cached.get("data"), dict):
            return cached["data"]

        logger.info(f"Fetching versions for language {language} ({language_tag})")
        envelope = _validate(ApiEnvelope, await self.upstream.fetch_versions(language_tag), "versions")
        if envelope.response.data is None:
            raise UpstreamUnavailableError(f"No versions found for language tag: {language}", 404)

        await self.cache.store_json(key, {"data": envelope.response.data})
        return envelope.response.data

    async def get_versions_configuration(self) -> Any:
        cached = await self.cache.lookup_json(VERSIONS_INDEX_KEY)
        if isinstance(cached, dict) and "data" in cached:
            return cached["data"]

        logger.info("Fetching versions configuration")
        envelope = _validate(
            ApiEnvelope, await self.upstream.fetch_configuration(), "versions configuration"
        )
        data = envelope.response.data or {}
        default_versions = data.get("default_versions")
        if default_versions is None:
            raise UpstreamUnavailableError("No versions configuration found", 404)

        await self.cache.store_json(VERSIONS_INDEX_KEY, {"data": default_versions})
        return default_versions

    async def _fetch_chapter(
        self, token: str, reference: ChapterReference, version_id: int
    ) -> StructuredChapter:
        data = await self.upstream.fetch_chapter(
            token,
            language=reference.language,
            version_id=version_id,
            book=reference.book,
            chapter=reference.chapter,
            abbreviation=reference.version,
        )
        return build_structured_chapter(_validate(ChapterPage, data, f"chapter {reference}"))

    async def _fetch_version(self, token: str, language: str, version_id: int) -> VersionInfo:
        data = await self.upstream.fetch_version(token, language=language, version_id=version_id)
        return build_version_info(_validate(VersionPage, data, f"version {version_id}"))

    async def _with_token_retry(self, what: str, fetch: Callable[[str], Awaitable[T]]) -> T:
        attempt = 1
        while True:
            token = await self.token_resolver.resolve()
            logger.info(f"Attempt {attempt}: fetching {what}")
            try:
                result = await fetch(token)
            except UpstreamStaleTokenError as e:
                if attempt >= MAX_ATTEMPTS:
                    logger.error(f"Attempt {attempt} failed for {what}: {e}")
                    raise
                logger.warning(f"Attempt {attempt}: possible stale token for {what}, refreshing and retrying")
                self.token_resolver.invalidate()
                attempt += 1
                continue
            logger.info(f"Attempt {attempt}: successfully fetched {what}")
            return result

    async def _cached_model(self, key: str, model: type[M]) -> M | None:
        cached = await self.cache.lookup_json(key)
        if cached is None:
            return None
        try:
            return model.model_validate(cached.get("data") if isinstance(cached, dict) else cached)
        except ValidationError:
            logger.warning(f"Cached document {key} has an unexpected shape, ignoring it")
            return None

    async def _coalesce(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        if self.single_flight is None:
            return await operation()
        return await self.single_flight.do(key, operation)
