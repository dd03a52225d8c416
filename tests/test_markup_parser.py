"""Tests for the chapter markup parser."""

import pytest
from conftest import GENESIS_1_MARKUP, REFERENCE_MARKUP

from scriptura.errors import ParseError
from scriptura.services.markup_parser import Block, Heading, Note, Reference, parse, parse_strict


def _verses(document):
    return [verse for node in document if isinstance(node, Block) for verse in node.verses]


def test_parse_genesis_structure():
    document = parse(GENESIS_1_MARKUP)

    kinds = [type(node).__name__ for node in document]
    assert kinds == ["Heading", "Block", "Heading", "Block"]
    assert document.nodes[0] == Heading(text="La creación")
    assert document.nodes[2] == Heading(text="El primer día")
    assert document.nodes[1].kind == "paragraph"
    assert document.nodes[3].kind == "quote_line"


def test_parse_document_metadata():
    document = parse(GENESIS_1_MARKUP)

    assert document.version_id == "149"
    assert document.language == "spa"
    assert document.book == "GEN"
    assert document.chapter_number == 1
    assert document.usfm == "GEN.1"


def test_verse_fragments_with_same_identifier_are_merged():
    verses = _verses(parse(GENESIS_1_MARKUP))

    assert [v.identifier for v in verses] == [f"GEN.1.{i}" for i in range(1, 6)]
    verse_3 = verses[2]
    assert verse_3.number == 3
    assert verse_3.text == "Y dijo Dios: Sea la luz; y fue la luz."


def test_merge_unions_notes_and_fills_missing_number():
    markup = """
    <div class="chapter ch2" data-usfm="GEN.2">
      <div class="p">
        <span class="verse v4" data-usfm="GEN.2.4"><span class="content">Estos son los orígenes</span><span class="note x"><span class="label">a</span><span class="body">Gn 1.1</span></span></span>
        <span class="verse v4" data-usfm="GEN.2.4"><span class="label">4</span><span class="content">de los cielos</span><span class="note f"><span class="label">b</span><span class="body">Heb. generaciones</span></span></span>
      </div>
    </div>
    """
    verses = _verses(parse(markup))

    assert len(verses) == 1
    assert verses[0].number == 4
    assert verses[0].text == "Estos son los orígenes de los cielos"
    assert verses[0].notes == (
        Note(kind="x", label="a", body="Gn 1.1"),
        Note(kind="f", label="b", body="Heb. generaciones"),
    )


def test_fragments_in_different_blocks_are_not_merged():
    markup = """
    <div class="chapter ch1">
      <div class="p"><span class="verse v1" data-usfm="PSA.1.1"><span class="label">1</span><span class="content">Bienaventurado el varón</span></span></div>
      <div class="s"><span class="heading">Título</span></div>
      <div class="p"><span class="verse v1" data-usfm="PSA.1.1"><span class="content">que no anduvo</span></span></div>
    </div>
    """
    document = parse(markup)

    assert [type(n).__name__ for n in document] == ["Block", "Heading", "Block"]
    assert len(_verses(document)) == 2


def test_notes_are_extracted_with_kind_label_and_body():
    verse_2 = _verses(parse(GENESIS_1_MARKUP))[1]

    assert verse_2.notes == (Note(kind="f", label="#", body="O, sin forma."),)
    assert verse_2.text == "Y la tierra estaba desordenada y vacía,"


def test_reference_heading_concatenates_labels():
    document = parse(REFERENCE_MARKUP)

    assert document.nodes[1] == Reference(text="(Jn. 10.11)")


@pytest.mark.parametrize("css_class", ["m", "li1"])
def test_additional_paragraph_variants(css_class):
    markup = f"""
    <div class="chapter ch1">
      <div class="{css_class}"><span class="verse v1" data-usfm="JHN.1.1"><span class="label">1</span><span class="content">En el principio era el Verbo</span></span></div>
    </div>
    """
    document = parse(markup)

    assert len(document) == 1
    assert document.nodes[0].kind == "paragraph"


def test_text_falls_back_to_own_text_without_content_spans():
    markup = """
    <div class="chapter ch1">
      <div class="p"><span class="verse v7" data-usfm="JHN.1.7"><span class="label">7</span>  Este vino   por testimonio </span></div>
    </div>
    """
    verse = _verses(parse(markup))[0]

    assert verse.number == 7
    assert verse.text == "Este vino por testimonio"


def test_whitespace_is_normalized_across_content_spans():
    markup = """
    <div class="chapter ch1">
      <div class="p"><span class="verse v1" data-usfm="ROM.1.1"><span class="label">1</span><span class="content">Pablo,
        siervo</span><span class="content">  de Jesucristo </span></span></div>
    </div>
    """
    assert _verses(parse(markup))[0].text == "Pablo, siervo de Jesucristo"


def test_blocks_without_verses_are_dropped():
    markup = """
    <div class="chapter ch1">
      <div class="p"></div>
      <div class="q"><span class="verse" data-usfm="PSA.1.1"></span></div>
      <div class="s"><span class="heading">Libro I</span></div>
    </div>
    """
    document = parse(markup)

    assert document.nodes == (Heading(text="Libro I"),)


def test_missing_number_label_yields_none():
    markup = """
    <div class="chapter ch1">
      <div class="p"><span class="verse" data-usfm="GEN.1.1"><span class="content">Texto</span></span></div>
    </div>
    """
    assert _verses(parse(markup))[0].number is None


def test_unknown_elements_are_ignored():
    markup = """
    <div class="chapter ch1">
      <div class="label">1</div>
      <div class="footnotes"><span class="verse" data-usfm="GEN.1.1"><span class="content">x</span></span></div>
    </div>
    """
    assert parse(markup).is_empty


@pytest.mark.parametrize("markup", ["", None, "<p>not scripture</p>", "<div class='book'></div>", "<<>>"])
def test_malformed_input_yields_empty_document(markup):
    document = parse(markup)

    assert document.is_empty
    assert list(document) == []


def test_parse_strict_raises_with_partial_document():
    with pytest.raises(ParseError) as exc_info:
        parse_strict('<div class="version" data-vid="149"><p>nothing</p></div>')

    assert exc_info.value.document is not None
    assert exc_info.value.document.version_id == "149"


def test_parse_strict_accepts_empty_chapter():
    assert parse_strict('<div class="chapter ch1"></div>').is_empty
