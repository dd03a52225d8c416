"""Turn upstream chapter markup into a verse-addressable document tree.

The upstream renders a chapter as nested ``div``/``span`` elements::

    div.version[data-vid][data-iso6393]
      div.book.bk<BOOK>
        div.chapter.ch<N>[data-usfm]
          div.s | div.s1        section heading   (span.heading)
          div.r                 cross-reference   (span.heading, repeated)
          div.p | div.m | div.li1 | div.q
            span.verse[data-usfm]
              span.label        verse number
              span.content      verse text (zero or more)
              span.note.<kind>  footnote / cross-reference note
                span.label
                span.body

Parsing is total: anything unrecognised is skipped, and markup without a
chapter container yields an empty :class:`Document`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Literal

from bs4 import BeautifulSoup, Comment, Tag

from scriptura.errors import ParseError

logger = logging.getLogger(__name__)

HEADING_CLASSES = frozenset({"s", "s1"})
REFERENCE_CLASSES = frozenset({"r"})
QUOTE_CLASSES = frozenset({"q"})
PARAGRAPH_CLASSES = frozenset({"p", "m", "li1"})

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")
_BOOK_CLASS_RE = re.compile(r"^bk([A-Z0-9]+)$")
_CHAPTER_CLASS_RE = re.compile(r"^ch(\d+)$")

BlockKind = Literal["paragraph", "quote_line"]


@dataclass(frozen=True)
class Note:
    kind: str | None
    label: str
    body: str


@dataclass(frozen=True)
class Verse:
    number: int | None
    identifier: str
    text: str
    notes: tuple[Note, ...] = ()

    def merged_with(self, fragment: Verse) -> Verse:
        """Fold a later fragment of the same verse into this one."""
        text = self.text
        if fragment.text:
            text = f"{text} {fragment.text}" if text else fragment.text
        return replace(
            self,
            text=text,
            notes=self.notes + fragment.notes,
            number=self.number if self.number is not None else fragment.number,
        )


@dataclass(frozen=True)
class Heading:
    text: str


@dataclass(frozen=True)
class Reference:
    text: str


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    verses: tuple[Verse, ...]


ContentNode = Heading | Reference | Block


@dataclass(frozen=True)
class Document:
    nodes: tuple[ContentNode, ...] = ()
    version_id: str | None = None
    language: str | None = None
    book: str | None = None
    chapter_number: int | None = None
    usfm: str | None = None

    def __iter__(self) -> Iterator[ContentNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def is_empty(self) -> bool:
        return not self.nodes


@dataclass
class _BlockBuilder:
    kind: BlockKind
    verses: list[Verse] = field(default_factory=list)

    def add(self, verse: Verse) -> None:
        last = self.verses[-1] if self.verses else None
        if last is not None and verse.identifier and last.identifier == verse.identifier:
            self.verses[-1] = last.merged_with(verse)
        else:
            self.verses.append(verse)

    def build(self) -> Block | None:
        if not self.verses:
            return None
        return Block(kind=self.kind, verses=tuple(self.verses))


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def parse(raw_markup: str | None) -> Document:
    """Parse chapter markup into a :class:`Document`; never raises on bad input."""
    document, _ = _parse(raw_markup)
    return document


def parse_strict(raw_markup: str | None) -> Document:
    """Like :func:`parse` but raise :class:`ParseError` when no chapter container exists."""
    document, found = _parse(raw_markup)
    if not found:
        raise ParseError("Chapter container not found in markup", document=document)
    return document


def _parse(raw_markup: str | None) -> tuple[Document, bool]:
    if not raw_markup:
        return Document(), False

    soup = BeautifulSoup(raw_markup, "html.parser")
    chapter_div = soup.select_one("div.chapter")
    version_id, language = _version_info(soup)
    book = _class_match(soup.select_one("div.book"), _BOOK_CLASS_RE)

    if chapter_div is None:
        logger.warning("Chapter container not found in markup, returning empty document")
        return Document(version_id=version_id, language=language, book=book), False

    chapter_number = _class_match(chapter_div, _CHAPTER_CLASS_RE)
    nodes: list[ContentNode] = []

    for element in chapter_div.find_all("div", recursive=False):
        classes = set(element.get("class") or [])

        if classes & HEADING_CLASSES:
            nodes.append(Heading(text=_heading_text(element)))
        elif classes & REFERENCE_CLASSES:
            nodes.append(Reference(text=_heading_text(element)))
        elif classes & (QUOTE_CLASSES | PARAGRAPH_CLASSES):
            kind: BlockKind = "quote_line" if classes & QUOTE_CLASSES else "paragraph"
            builder = _BlockBuilder(kind=kind)
            for verse_span in element.select("span.verse"):
                verse = _parse_verse(verse_span)
                if verse is not None:
                    builder.add(verse)
            block = builder.build()
            if block is not None:
                nodes.append(block)

    document = Document(
        nodes=tuple(nodes),
        version_id=version_id,
        language=language,
        book=book,
        chapter_number=_to_int(chapter_number),
        usfm=chapter_div.get("data-usfm"),
    )
    return document, True


def _version_info(soup: BeautifulSoup) -> tuple[str | None, str | None]:
    version_div = soup.select_one("div.version")
    if version_div is None:
        return None, None
    return version_div.get("data-vid"), version_div.get("data-iso6393")


def _class_match(element: Tag | None, pattern: re.Pattern[str]) -> str | None:
    if element is None:
        return None
    for cls in element.get("class") or []:
        match = pattern.match(cls)
        if match:
            return match.group(1)
    return None


def _to_int(value: str | None) -> int | None:
    if not value:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def _heading_text(element: Tag) -> str:
    return "".join(span.get_text() for span in element.select("span.heading")).strip()


def _parse_verse(verse_span: Tag) -> Verse | None:
    identifier = verse_span.get("data-usfm") or ""

    label = verse_span.find("span", class_="label", recursive=False)
    number = _to_int(label.get_text()) if label is not None else None

    content_spans = verse_span.find_all("span", class_="content", recursive=False)
    if content_spans:
        text = normalize_whitespace(" ".join(span.get_text() for span in content_spans))
    else:
        own_strings = (
            s for s in verse_span.find_all(string=True, recursive=False) if not isinstance(s, Comment)
        )
        text = normalize_whitespace("".join(own_strings))

    notes = tuple(_parse_note(note) for note in verse_span.select("span.note"))

    if not text and not notes and number is None:
        return None
    return Verse(number=number, identifier=identifier, text=text, notes=notes)


def _parse_note(note_span: Tag) -> Note:
    kind = next((cls for cls in note_span.get("class") or [] if cls != "note"), None)
    label = "".join(span.get_text() for span in note_span.select("span.label"))
    body = normalize_whitespace(" ".join(span.get_text() for span in note_span.select("span.body")))
    return Note(kind=kind, label=label, body=body)
