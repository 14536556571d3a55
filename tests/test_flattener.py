"""Tests for the schema-driven flattener."""

import logging

import pytest

from seforim.ingestion.flattener import HierarchicalFlattener, address_labels, is_blank
from seforim.models.schema import AddressType, ContainerNode, LeafNode


@pytest.fixture
def flattener() -> HierarchicalFlattener:
    return HierarchicalFlattener()


@pytest.fixture
def chapter_verse() -> LeafNode:
    return LeafNode(
        depth=2,
        section_names=["Chapter", "Verse"],
        he_section_names=["פרק", "פסוק"],
    )


class TestIsBlank:
    def test_blank_values(self) -> None:
        assert is_blank(None)
        assert is_blank("  ")
        assert is_blank([])
        assert is_blank(["", ["  "]])
        assert is_blank({})
        assert is_blank({"a": "", "b": {"": ["", " "]}})

    def test_non_blank_values(self) -> None:
        assert not is_blank("text")
        assert not is_blank(["", "x"])
        assert not is_blank({"a": "", "b": ["x"]})


class TestAddressLabels:
    def test_plain_levels(self) -> None:
        assert address_labels(AddressType.CHAPTER, 3) == ("3", "ג")

    def test_talmud_levels(self) -> None:
        assert address_labels(AddressType.TALMUD_PAGE, 3) == ("2a", "ב.")


class TestLeafFlattening:
    def test_chapter_verse_refs(self, flattener: HierarchicalFlattener, chapter_verse: LeafNode) -> None:
        book = flattener.flatten(chapter_verse, [["a", "b"], ["c"]], "Book", "ספר")

        assert [line.ref for line in book.lines] == ["Book 1:1", "Book 1:2", "Book 2:1"]
        assert [line.content for line in book.lines] == ["(א) a", "(ב) b", "c"]
        assert [line.he_ref for line in book.lines] == ["ספר א, א", "ספר א, ב", "ספר ב, א"]
        assert [line.line_index for line in book.lines] == [0, 1, 2]

    def test_ref_entries_track_line_count(
        self, flattener: HierarchicalFlattener, chapter_verse: LeafNode
    ) -> None:
        book = flattener.flatten(chapter_verse, [["a", "b"], ["c"]], "Book", "ספר")

        assert len(book.ref_entries) == len(book.lines)
        assert [entry.line_index for entry in book.ref_entries] == [1, 2, 3]
        assert book.ref_entries[2].ref == "Book 2:1"

    def test_headings_for_referenceable_sections(
        self, flattener: HierarchicalFlattener, chapter_verse: LeafNode
    ) -> None:
        book = flattener.flatten(chapter_verse, [["a", "b"], ["c"]], "Book", "ספר")

        assert [(h.title, h.level, h.line_index) for h in book.headings] == [
            ("ספר", 0, 0),
            ("פרק א", 1, 0),
            ("פרק ב", 1, 2),
        ]

    def test_blank_branches_are_skipped(
        self, flattener: HierarchicalFlattener, chapter_verse: LeafNode
    ) -> None:
        book = flattener.flatten(chapter_verse, [["a"], [], ["", "  "], ["d"]], "Book")

        assert [line.ref for line in book.lines] == ["Book 1:1", "Book 4:1"]
        assert len(book.ref_entries) == 2
        # No heading for the blank chapters 2 and 3
        assert [h.title for h in book.headings[1:]] == ["פרק א", "פרק ד"]

    def test_inline_labels_for_multiple_siblings(self, flattener: HierarchicalFlattener) -> None:
        leaf = LeafNode(depth=2, section_names=["Siman", "Seif"])
        book = flattener.flatten(leaf, [["first", "second"], ["only"]], "Code")

        assert [line.content for line in book.lines] == ["(א) first", "(ב) second", "only"]

    def test_no_inline_labels_for_integer_levels(self, flattener: HierarchicalFlattener) -> None:
        leaf = LeafNode(depth=1, section_names=["Line"])
        book = flattener.flatten(leaf, ["x", "y"], "Poem")

        assert [line.content for line in book.lines] == ["x", "y"]
        assert [line.ref for line in book.lines] == ["Poem 1", "Poem 2"]

    def test_talmud_refs_use_daf_form(self, flattener: HierarchicalFlattener) -> None:
        leaf = LeafNode(
            depth=2,
            section_names=["Daf", "Line"],
            he_section_names=["דף", "שורה"],
        )
        book = flattener.flatten(leaf, [[], [], ["x"], ["y"]], "Berakhot", "ברכות")

        assert [line.ref for line in book.lines] == ["Berakhot 2a:1", "Berakhot 2b:1"]
        assert [line.he_ref for line in book.lines] == ["ברכות ב., א", "ברכות ב:, א"]
        assert [h.title for h in book.headings[1:]] == ["דף ב.", "דף ב:"]

    def test_newlines_removed_from_content(self, flattener: HierarchicalFlattener) -> None:
        leaf = LeafNode(depth=1, section_names=["Paragraph"])
        book = flattener.flatten(leaf, ["a\nb"], "Book")

        assert book.lines[0].content == "ab"


class TestContainerFlattening:
    def test_titled_children_add_headings_and_ref_segments(
        self, flattener: HierarchicalFlattener
    ) -> None:
        schema = ContainerNode(
            title="Tur",
            children=[
                LeafNode(key="oc", title="Orach Chayim", he_title="אורח חיים", depth=1, section_names=["Siman"]),
                LeafNode(key="yd", title="Yoreh Deah", he_title="יורה דעה", depth=1, section_names=["Siman"]),
            ],
        )
        content = {"Orach Chayim": ["x", "y"], "Yoreh Deah": ["z"]}

        book = flattener.flatten(schema, content, "Tur", "טור")

        assert [line.ref for line in book.lines] == [
            "Tur, Orach Chayim 1",
            "Tur, Orach Chayim 2",
            "Tur, Yoreh Deah 1",
        ]
        assert book.lines[0].he_ref == "טור, אורח חיים א"
        assert [(h.title, h.level, h.line_index) for h in book.headings] == [
            ("טור", 0, 0),
            ("אורח חיים", 1, 0),
            ("יורה דעה", 1, 2),
        ]

    def test_default_child_is_transparent(self, flattener: HierarchicalFlattener) -> None:
        schema = ContainerNode(
            title="Book",
            children=[
                LeafNode(key="Introduction", title="Introduction", he_title="הקדמה", depth=1, section_names=["Paragraph"]),
                LeafNode(key="default", title="", depth=1, section_names=["Chapter"]),
            ],
        )
        content = {"Introduction": ["intro"], "": ["body"]}

        book = flattener.flatten(schema, content, "Book", "ספר")

        assert [line.ref for line in book.lines] == ["Book, Introduction 1", "Book 1"]
        assert [h.title for h in book.headings] == ["ספר", "הקדמה"]

    def test_missing_child_content_is_skipped(self, flattener: HierarchicalFlattener) -> None:
        schema = ContainerNode(
            title="Book",
            children=[
                LeafNode(key="a", title="A", depth=1, section_names=["Paragraph"]),
                LeafNode(key="b", title="B", depth=1, section_names=["Paragraph"]),
            ],
        )
        book = flattener.flatten(schema, {"B": ["text"]}, "Book")

        assert [line.ref for line in book.lines] == ["Book, B 1"]
        assert book.structural_mismatches == 0

    def test_child_with_only_blank_content_adds_no_heading(
        self, flattener: HierarchicalFlattener
    ) -> None:
        schema = ContainerNode(
            title="Book",
            children=[
                ContainerNode(
                    key="a",
                    title="Part A",
                    he_title="חלק א",
                    children=[LeafNode(key="default", title="", depth=1, section_names=["Paragraph"])],
                ),
                LeafNode(key="b", title="Part B", he_title="חלק ב", depth=1, section_names=["Paragraph"]),
            ],
        )
        content = {"Part A": {"": ["", " "]}, "Part B": ["b1"]}

        book = flattener.flatten(schema, content, "Book", "ספר")

        assert [line.ref for line in book.lines] == ["Book, Part B 1"]
        assert [(h.title, h.level, h.line_index) for h in book.headings] == [
            ("ספר", 0, 0),
            ("חלק ב", 1, 0),
        ]


class TestStructuralMismatch:
    def test_mismatched_subtree_is_skipped_and_counted(
        self,
        flattener: HierarchicalFlattener,
        chapter_verse: LeafNode,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING):
            book = flattener.flatten(chapter_verse, [["a"], "not a list", ["c"]], "Book")

        assert [line.ref for line in book.lines] == ["Book 1:1", "Book 3:1"]
        assert book.structural_mismatches == 1
        assert "Skipping subtree" in caplog.text

    def test_container_with_array_content(self, flattener: HierarchicalFlattener) -> None:
        schema = ContainerNode(
            title="Book",
            children=[LeafNode(key="a", title="A", depth=1, section_names=["Paragraph"])],
        )
        book = flattener.flatten(schema, ["unexpected"], "Book")

        assert book.lines == []
        assert book.structural_mismatches == 1
