from __future__ import annotations

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scriptura.errors import MalformedReferenceError

_BOOK_RE = re.compile(r"^[A-Z0-9]+$")
_CHAPTER_RE = re.compile(r"^[A-Za-z0-9]+$")

# =============================================================================
# Request / addressing models
# =============================================================================


class ChapterReference(BaseModel):
    """Natural key of a chapter: (language, version, book, chapter).

    Values are normalized on construction (language lower-cased, book
    upper-cased, chapter as string) so that equivalent inputs share one
    cache key. A book or chapter that is not alphanumeric raises
    :class:`MalformedReferenceError` before anything is fetched.
    """

    model_config = ConfigDict(frozen=True)

    language: str = Field(..., description="ISO 639-1 language code (e.g. 'es')")
    version: str = Field(..., description="Version abbreviation (e.g. 'RVR1960')")
    book: str = Field(..., description="Book code (e.g. 'GEN')")
    chapter: str = Field(..., description="Chapter number as a string")

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, v: Any) -> str:
        return str(v).strip().lower()

    @field_validator("version", mode="before")
    @classmethod
    def _normalize_version(cls, v: Any) -> str:
        return str(v).strip()

    @field_validator("book", mode="before")
    @classmethod
    def _normalize_book(cls, v: Any) -> str:
        book = str(v).strip().upper()
        if not _BOOK_RE.match(book):
            raise MalformedReferenceError("book", v)
        return book

    @field_validator("chapter", mode="before")
    @classmethod
    def _normalize_chapter(cls, v: Any) -> str:
        chapter = str(v).strip()
        if not _CHAPTER_RE.match(chapter):
            raise MalformedReferenceError("chapter", v)
        return chapter

    @property
    def usfm(self) -> str:
        """Upstream chapter locator, e.g. ``GEN.1.RVR1960``."""
        return f"{self.book}.{self.chapter}.{self.version}"

    def __str__(self) -> str:
        return f"{self.language}/{self.version}/{self.book}/{self.chapter}"


class AudioBibleRequest(BaseModel):
    """Body of the narrated-chapter request."""

    bible_lang: str = Field(..., min_length=1, description="Language code (e.g. 'es')")
    bible_abbreviation: str = Field(..., min_length=1, description="Version abbreviation")
    bible_book: str = Field(..., min_length=1, description="Book code")
    bible_chapter: str | int = Field(..., description="Chapter number")

    def to_reference(self) -> ChapterReference:
        return ChapterReference(
            language=self.bible_lang,
            version=self.bible_abbreviation,
            book=self.bible_book,
            chapter=self.bible_chapter,
        )


# =============================================================================
# Structured chapter (cached text projection)
# =============================================================================


class VerseNote(BaseModel):
    type: str | None = Field(None, description="Note kind taken from its class list (f, x, ...)")
    label: str = ""
    body: str = ""


class HeadingItem(BaseModel):
    type: Literal["heading"] = "heading"
    text: str = ""


class ReferenceItem(BaseModel):
    type: Literal["reference"] = "reference"
    text: str = ""


class VerseItem(BaseModel):
    type: Literal["verse"] = "verse"
    number: int | None = None
    usfm: str | None = None
    text: str = ""
    notes: list[VerseNote] = Field(default_factory=list)


ContentItem = Annotated[HeadingItem | ReferenceItem | VerseItem, Field(discriminator="type")]


class FooterNote(BaseModel):
    text: str | None = None
    url: str | None = None


class StructuredChapter(BaseModel):
    """Flattened, cache-stored projection of a parsed chapter."""

    title: str | None = Field(None, description="Human readable reference, e.g. 'Génesis 1'")
    usfm: str | None = Field(None, description="Chapter locator")
    locale: str | None = None
    content: list[ContentItem] = Field(default_factory=list)
    previous_chapter: dict[str, Any] | None = None
    next_chapter: dict[str, Any] | None = None
    language: str | None = None
    direction: str | None = None
    publisher: str | None = None
    copyright: str | None = None
    notes: list[FooterNote] = Field(default_factory=list)


# =============================================================================
# Version metadata
# =============================================================================


class BookSummary(BaseModel):
    text: bool | None = None
    usfm: str | None = None
    audio: bool | None = None
    canon: str | None = None
    human: str | None = None
    first_chapter: dict[str, Any] | None = None
    last_chapter: dict[str, Any] | None = None


class PublisherSummary(BaseModel):
    name: str | None = None
    description: str | None = None
    url: str | None = None


class VersionInfo(BaseModel):
    title: str | None = None
    usfm: str | None = Field(None, description="Version abbreviation")
    books: list[BookSummary] = Field(default_factory=list)
    language: str | None = None
    direction: str | None = None
    publisher: list[PublisherSummary] = Field(default_factory=list)
    copyright: str | None = None
    notes: list[FooterNote] = Field(default_factory=list)


# =============================================================================
# Audio
# =============================================================================


class AudioArtifact(BaseModel):
    reference: ChapterReference
    storage_key: str
    mime_type: str = "audio/mpeg"
    url: str


# =============================================================================
# Upstream response records (validated at the boundary)
# =============================================================================


class _UpstreamRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _HumanReference(_UpstreamRecord):
    human: str | None = None


class _CopyrightText(_UpstreamRecord):
    text: str | None = None


class _LanguageInfo(_UpstreamRecord):
    iso_639_1: str | None = None
    text_direction: str | None = None


class _PublisherInfo(_UpstreamRecord):
    name: str | None = None
    description: str | None = None
    url: str | None = None


class _ReaderFooter(_UpstreamRecord):
    text: str | None = None


class UpstreamChapterInfo(_UpstreamRecord):
    content: str | None = None
    reference: _HumanReference | None = None
    previous: dict[str, Any] | None = None
    next: dict[str, Any] | None = None
    copyright: _CopyrightText | None = None


class UpstreamVersionData(_UpstreamRecord):
    language: _LanguageInfo | None = None
    publisher: _PublisherInfo | None = None
    reader_footer: _ReaderFooter | None = None
    reader_footer_url: str | None = None


class ChapterPageProps(_UpstreamRecord):
    chapter_info: UpstreamChapterInfo | None = Field(None, alias="chapterInfo")
    usfm: str | None = None
    locale: str | None = None
    version_data: UpstreamVersionData | None = Field(None, alias="versionData")


class ChapterPage(_UpstreamRecord):
    """Token-addressed chapter data document."""

    page_props: ChapterPageProps = Field(..., alias="pageProps")


class UpstreamBook(_UpstreamRecord):
    text: bool | None = None
    usfm: str | None = None
    audio: bool | None = None
    canon: str | None = None
    human: str | None = None
    chapters: list[dict[str, Any]] = Field(default_factory=list)


class UpstreamVersion(_UpstreamRecord):
    title: str | None = None
    abbreviation: str | None = None
    books: list[UpstreamBook] = Field(default_factory=list)
    language: _LanguageInfo | None = None
    publisher: _PublisherInfo | None = None


class VersionPageProps(_UpstreamRecord):
    version: UpstreamVersion
    chapter_info: UpstreamChapterInfo | None = Field(None, alias="chapterInfo")
    version_data: UpstreamVersionData | None = Field(None, alias="versionData")


class VersionPage(_UpstreamRecord):
    """Token-addressed version data document."""

    page_props: VersionPageProps = Field(..., alias="pageProps")


class SpeechResponse(_UpstreamRecord):
    audio_stream: str | None = Field(None, alias="audioStream")


class _ApiResponseBody(_UpstreamRecord):
    data: dict[str, Any] | None = None


class ApiEnvelope(_UpstreamRecord):
    """Envelope of the upstream JSON API (versions listing, configuration)."""

    response: _ApiResponseBody
