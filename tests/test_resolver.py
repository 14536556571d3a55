"""Tests for the tiered citation resolver."""

import pytest

from seforim.citations.index import CanonicalRefIndex
from seforim.citations.parser import CitationParser
from seforim.citations.resolver import CANDIDATE_TIERS, CitationResolver, citation_text
from seforim.models.book import RefEntry
from seforim.models.citation import Citation


def _entries(book_id: int, refs: list[str]) -> list[RefEntry]:
    return [
        RefEntry(ref=ref, he_ref="", line_index=idx, book_id=book_id)
        for idx, ref in enumerate(refs, start=1)
    ]


@pytest.fixture
def resolver() -> CitationResolver:
    entries = _entries(1, ["Genesis 1:1", "Genesis 1:2", "Genesis 1:5", "Genesis 2:1"])
    entries += _entries(
        2,
        ["Beit Yosef, Orach Chayim 325:34:1", "Beit Yosef, Orach Chayim 325:34:2"],
    )
    entries += _entries(3, ["Shabbat 2a:1", "Shabbat 2a:2", "Shabbat 2b:1"])
    index = CanonicalRefIndex.build(
        entries,
        {1: ["Genesis"], 2: ["Beit Yosef"], 3: ["Shabbat"]},
        {1: 0, 2: 10, 3: 20},
    )
    return CitationResolver(index)


class TestResolveTiers:
    def test_exact(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Genesis 1:2")
        assert target is not None
        assert (target.book_id, target.line_index) == (1, 1)

    def test_normalization_differences(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("  GENESIS   1:2 ")
        assert target is not None
        assert target.line_index == 1

    def test_alias_stripped(self, resolver: CitationResolver) -> None:
        # The citation omits the section title
        target = resolver.resolve("Beit Yosef 325:34:2")
        assert target is not None
        assert (target.book_id, target.line_id) == (2, 11)

    def test_range_start(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Genesis 1:2-2:1")
        assert target is not None
        assert target.line_index == 1

    def test_depth_expansion(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Beit Yosef, Orach Chayim 325:34")
        assert target is not None
        assert target.line_id == 10

    def test_chapter_reference_expands_to_first_verse(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Genesis 2")
        assert target is not None
        assert target.line_index == 3

    def test_chapter_fallback(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Genesis 2:7")
        assert target is not None
        assert target.line_index == 3

    def test_within_chapter_backward_scan_is_imprecise(self, resolver: CitationResolver) -> None:
        # 325:34:5 was never emitted; the scan settles on 325:34:2
        target = resolver.resolve("Beit Yosef, Orach Chayim 325:34:5")
        assert target is not None
        assert target.line_id == 11

    def test_chapter_start_takes_precedence_over_backward_scan(self) -> None:
        entries = _entries(
            2,
            [
                "Beit Yosef, Orach Chayim 325:1:1",
                "Beit Yosef, Orach Chayim 325:34:1",
                "Beit Yosef, Orach Chayim 325:34:2",
            ],
        )
        resolver = CitationResolver(CanonicalRefIndex.build(entries, {2: ["Beit Yosef"]}, {2: 10}))

        target = resolver.resolve("Beit Yosef, Orach Chayim 325:34:5")

        assert target is not None
        assert target.line_id == 10

    def test_fallbacks_can_be_suppressed(self, resolver: CitationResolver) -> None:
        assert resolver.resolve("Genesis 2:7", allow_chapter_fallback=False) is None
        assert (
            resolver.resolve("Beit Yosef, Orach Chayim 325:34:5", allow_chapter_fallback=False)
            is None
        )

    def test_daf_citation(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("Shabbat 2b:1", allow_chapter_fallback=False)
        assert target is not None
        assert target.line_id == 22

    def test_unknown_book(self, resolver: CitationResolver) -> None:
        assert resolver.resolve("Leviticus 1:1") is None

    def test_blank(self, resolver: CitationResolver) -> None:
        assert resolver.resolve("   ") is None

    def test_parsed_citation(self, resolver: CitationResolver) -> None:
        citation = CitationParser().parse("Genesis 1:5")
        assert citation is not None
        target = resolver.resolve(citation)
        assert target is not None
        assert target.line_index == 2

    def test_explicit_book_scope(self, resolver: CitationResolver) -> None:
        target = resolver.resolve("1:1", book_id=1)
        assert target is not None
        assert target.book_id == 1

    def test_deterministic_regardless_of_order(self, resolver: CitationResolver) -> None:
        citations = ["Genesis 1:4", "Beit Yosef 325:34:2", "Genesis 2", "Shabbat 2a:2"]
        forward = [resolver.resolve(c) for c in citations]
        backward = [resolver.resolve(c) for c in reversed(citations)]
        assert forward == list(reversed(backward))


class TestCitationText:
    def test_raw_text_is_preferred(self) -> None:
        assert citation_text(Citation(book_title="x", raw="Genesis 1:1")) == "Genesis 1:1"

    def test_rebuilt_from_parts(self) -> None:
        citation = Citation(book_title="Beit Yosef", section="Orach Chayim", references=[325, 34])
        assert citation_text(citation) == "Beit Yosef, Orach Chayim 325:34"

    def test_rebuilt_daf(self) -> None:
        citation = Citation(book_title="Shabbat", references=[91, 3], is_daf=True)
        assert citation_text(citation) == "Shabbat 45b:3"


class TestTierOrder:
    def test_tiers_in_order(self) -> None:
        assert [name for name, _ in CANDIDATE_TIERS] == [
            "exact",
            "alias_stripped",
            "numeric_tail",
            "range_start",
            "chapter_start",
            "within_chapter",
        ]
