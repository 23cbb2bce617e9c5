"""Tests for verse references and rc:// links."""

import pytest

from bookpackage.ingest.references import (
    VerseReference,
    article_id_from_link,
    helps_for_reference,
    parse_rc_link,
    parse_verse_reference,
    word_id_from_link,
)
from bookpackage.ingest.tsv_parser import parse_translation_notes

from conftest import JONAH_NOTES


class TestParseVerseReference:
    def test_simple(self):
        ref = parse_verse_reference("1:3")
        assert (ref.chapter, ref.verse, ref.end_verse) == (1, 3, None)

    def test_range(self):
        ref = parse_verse_reference("1:3-5")
        assert (ref.chapter, ref.verse, ref.end_verse) == (1, 3, 5)

    def test_cross_chapter(self):
        ref = parse_verse_reference("1:17-2:1")
        assert (ref.chapter, ref.verse, ref.end_chapter, ref.end_verse) == (1, 17, 2, 1)
        assert str(ref) == "1:17-2:1"

    def test_chapter_only(self):
        ref = parse_verse_reference("3")
        assert ref.chapter == 3
        assert ref.verse is None

    def test_book_prefix(self):
        ref = parse_verse_reference("jon 1:3")
        assert ref.book == "JON"
        assert str(ref) == "JON 1:3"

    def test_numbered_book_prefix(self):
        assert parse_verse_reference("1JN 4:8").book == "1JN"

    @pytest.mark.parametrize("text", ["front:intro", "1:intro", "not a ref", ""])
    def test_unparseable(self, text):
        assert parse_verse_reference(text) is None


class TestContains:
    def test_range_contains(self):
        ref = parse_verse_reference("1:17-2:1")
        assert ref.contains(1, 17)
        assert ref.contains(2, 1)
        assert not ref.contains(2, 2)

    def test_chapter_contains_every_verse(self):
        assert VerseReference(chapter=2).contains(2, 10)


class TestHelpsForReference:
    def setup_method(self):
        self.notes = parse_translation_notes(JONAH_NOTES, "JON").notes

    def test_single_verse(self):
        matched = helps_for_reference(parse_verse_reference("1:2"), notes=self.notes)
        assert [n.id for n in matched["notes"]] == ["xy34"]
        assert matched["questions"] == []

    def test_range_note_overlaps_verse(self):
        """A note on 1:3-4 belongs to a query for 1:4."""
        matched = helps_for_reference(parse_verse_reference("1:4"), notes=self.notes)
        assert [n.id for n in matched["notes"]] == ["zz99"]

    def test_range_query(self):
        matched = helps_for_reference(parse_verse_reference("1:1-2"), notes=self.notes)
        assert [n.id for n in matched["notes"]] == ["qw12", "xy34"]

    def test_chapter_query(self):
        matched = helps_for_reference(parse_verse_reference("1"), notes=self.notes)
        assert len(matched["notes"]) == 3


class TestRCLinks:
    def test_parse_word_link(self):
        link = parse_rc_link("rc://*/tw/dict/bible/kt/god")
        assert link.language == "*"
        assert link.resource == "tw"
        assert link.type == "dict"
        assert link.project == "bible"
        assert link.path == ("kt", "god")
        assert link.category == "kt"
        assert link.item == "god"

    def test_not_a_link(self):
        assert parse_rc_link("kt/god") is None
        assert parse_rc_link("rc://en") is None

    def test_word_id(self):
        assert word_id_from_link("rc://*/tw/dict/bible/kt/god") == "kt/god"
        assert word_id_from_link("names/nineveh") == "names/nineveh"

    def test_article_id(self):
        assert article_id_from_link("rc://*/ta/man/translate/figs-metaphor") == (
            "translate/figs-metaphor"
        )
        assert article_id_from_link("figs-metaphor") == "figs-metaphor"
