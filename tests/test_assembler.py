"""Tests for book package assembly."""

import asyncio

import pytest

from bookpackage.cache import TTLCache
from bookpackage.config import (
    BOOK_SPECIFIC_TYPES,
    LITERAL_TEXT,
    SIMPLIFIED_TEXT,
    TRANSLATION_NOTES,
    TRANSLATION_QUESTIONS,
    TRANSLATION_WORDS_LINKS,
)
from bookpackage.ingest.tsv_parser import TranslationNotes
from bookpackage.ingest.usfm_parser import BibleText
from bookpackage.package.assembler import BookPackageAssembler, process_content
from bookpackage.package.models import BookPackageRequest


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def request(book="JON", resource_types=None):
    return BookPackageRequest(
        book=book,
        language="en",
        organization="unfoldingWord",
        resource_types=tuple(resource_types or BOOK_SPECIFIC_TYPES),
    )


@pytest.fixture
def assembler(client, settings):
    return BookPackageAssembler.from_client(client, settings)


class TestRequest:
    def test_book_upper_and_cache_key(self):
        req = BookPackageRequest(book="jon", language="en", organization="unfoldingWord")
        assert req.book == "JON"
        assert req.cache_key == "unfoldingWord/en/JON"
        assert req.resource_types == tuple(BOOK_SPECIFIC_TYPES)

    def test_for_book_uses_settings_scope(self, settings):
        req = BookPackageRequest.for_book("rev", settings, [LITERAL_TEXT])
        assert req.cache_key == "unfoldingWord/en/REV"
        assert req.resource_types == (LITERAL_TEXT,)


class TestProcessContent:
    def test_known_type(self):
        assert isinstance(process_content(LITERAL_TEXT, "\\id JON", "JON"), BibleText)

    def test_unknown_type(self):
        assert process_content("translation_academy", "text", "JON") is None


class TestAssemble:
    @pytest.mark.asyncio
    async def test_every_type_resolved(self, assembler):
        package = await assembler.assemble(request())
        assert set(package.slots) == {
            LITERAL_TEXT,
            SIMPLIFIED_TEXT,
            TRANSLATION_NOTES,
            TRANSLATION_WORDS_LINKS,
            TRANSLATION_QUESTIONS,
        }
        literal = package.slot(LITERAL_TEXT)
        assert literal.source == "en_ult"
        assert literal.path == "32-JON.usfm"
        assert literal.processed.has_alignment

    @pytest.mark.asyncio
    async def test_processed_records(self, assembler):
        package = await assembler.assemble(request())
        notes = package.processed(TRANSLATION_NOTES)
        assert isinstance(notes, TranslationNotes)
        assert len(notes.notes) == 3
        assert package.slot(TRANSLATION_QUESTIONS).path == "tq_JON.tsv"

    @pytest.mark.asyncio
    async def test_repositories_recorded(self, assembler):
        package = await assembler.assemble(request())
        info = package.repositories["en_ult"]
        assert info.url == "https://door43.test/api/v1/repos/unfoldingWord/en_ult"
        assert info.manifest_identifier == "ult"
        assert info.projects == ("jon",)

    @pytest.mark.asyncio
    async def test_backup_source_named(self, assembler):
        """ust is absent, so the simplified text slot names the gst backup."""
        package = await assembler.assemble(request())
        slot = package.slot(SIMPLIFIED_TEXT)
        assert slot.source == "en_gst"
        assert slot.processed.translation == "UST"

    @pytest.mark.asyncio
    async def test_non_json_primary_falls_through_to_backup(self, assembler, door43):
        door43.serve_page("/api/v1/repos/unfoldingWord/en_ust")
        package = await assembler.assemble(request(resource_types=[SIMPLIFIED_TEXT]))
        assert package.slot(SIMPLIFIED_TEXT).source == "en_gst"

    @pytest.mark.asyncio
    async def test_second_call_makes_no_requests(self, assembler, door43):
        first = await assembler.assemble(request())
        count = door43.request_count
        second = await assembler.assemble(request())
        assert second is first
        assert door43.request_count == count

    @pytest.mark.asyncio
    async def test_rate_limit_is_invisible(self, assembler, door43, recording_sleep):
        """A 429 followed by success yields the slot after one backoff wait."""
        door43.fail("en_ult/contents/32-JON.usfm", 429)
        package = await assembler.assemble(request(resource_types=[LITERAL_TEXT]))
        assert package.slot(LITERAL_TEXT).source == "en_ult"
        assert recording_sleep.delays == [0.02]

    @pytest.mark.asyncio
    async def test_missing_type_does_not_abort_others(self, assembler, door43):
        del door43.repos["unfoldingWord/en_tn"]
        package = await assembler.assemble(request())
        assert package.slot(TRANSLATION_NOTES) is None
        assert package.slot(LITERAL_TEXT) is not None
        assert len(package.slots) == 4

    @pytest.mark.asyncio
    async def test_exhausted_type_does_not_abort_others(self, assembler, door43):
        door43.fail("en_twl/contents/twl_JON.tsv", *([503] * 6))
        package = await assembler.assemble(request())
        assert package.slot(TRANSLATION_WORDS_LINKS) is None
        assert package.slot(TRANSLATION_QUESTIONS) is not None

    @pytest.mark.asyncio
    async def test_empty_package_is_valid(self, assembler):
        package = await assembler.assemble(request(book="REV"))
        assert package.is_empty
        assert package.book == "REV"

    @pytest.mark.asyncio
    async def test_unknown_and_on_demand_types_skipped(self, assembler):
        package = await assembler.assemble(
            request(resource_types=[LITERAL_TEXT, "translation_words", "bogus"])
        )
        assert package.resolved_types == [LITERAL_TEXT]


class TestCaching:
    @pytest.mark.asyncio
    async def test_cache_hit_ignores_new_types(self, assembler):
        """A cached package is returned as-is even when more types are requested."""
        partial = await assembler.assemble(request(resource_types=[LITERAL_TEXT]))
        again = await assembler.assemble(request())
        assert again is partial
        assert again.resolved_types == [LITERAL_TEXT]

    @pytest.mark.asyncio
    async def test_expired_package_refetched(self, assembler, door43):
        clock = FakeClock()
        assembler.cache = TTLCache(ttl=3600, clock=clock)
        first = await assembler.assemble(request(resource_types=[LITERAL_TEXT]))

        clock.now = 3600
        second = await assembler.assemble(request(resource_types=[LITERAL_TEXT]))
        assert second is not first
        assert assembler.cached_packages() == ["unfoldingWord/en/JON"]

    @pytest.mark.asyncio
    async def test_keys_per_language_and_book(self, assembler):
        await assembler.assemble(request(resource_types=[LITERAL_TEXT]))
        await assembler.assemble(request(book="REV", resource_types=[LITERAL_TEXT]))
        assert sorted(assembler.cached_packages()) == [
            "unfoldingWord/en/JON",
            "unfoldingWord/en/REV",
        ]

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_assembly(self, assembler, door43):
        first, second = await asyncio.gather(
            assembler.assemble(request()), assembler.assemble(request())
        )
        assert first is second
        fetched = door43.requested_paths("GET").count(
            "/api/v1/repos/unfoldingWord/en_ult/contents/32-JON.usfm"
        )
        assert fetched == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_shared_assembly_running(self, assembler):
        first = asyncio.ensure_future(assembler.assemble(request()))
        second = asyncio.ensure_future(assembler.assemble(request()))
        await asyncio.sleep(0)
        first.cancel()

        package = await second
        assert first.cancelled()
        assert package.slot(LITERAL_TEXT).source == "en_ult"
        assert assembler.cached_packages() == ["unfoldingWord/en/JON"]


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_shape(self, assembler):
        package = await assembler.assemble(request(resource_types=[LITERAL_TEXT]))
        summary = package.summary()
        assert summary["book"] == "JON"
        assert summary["slots"] == {
            LITERAL_TEXT: {"source": "en_ult", "path": "32-JON.usfm"}
        }
        assert summary["repositories"]["en_ult"]["manifest"] == "ult"
