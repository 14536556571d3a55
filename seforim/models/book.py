"""Book-level data models: source documents, lines, headings and references."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from seforim.models.alt_structure import AltStructure
from seforim.models.link import ConnectionType
from seforim.models.schema import SchemaNode


class SourceDocument(BaseModel):
    """One document as delivered by the document source.

    ``content`` mirrors the shape of ``schema``: an object keyed by child
    titles for containers, nested arrays of strings for leaves.
    """

    title_en: str
    title_he: str = ""
    categories: list[str] = Field(default_factory=list)  # Hebrew category path
    schema_node: SchemaNode
    content: Any = None
    alt_structures: list[AltStructure] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    dependence: ConnectionType | None = None  # set for commentaries / targumim
    is_base_book: bool | None = None

    @property
    def aliases(self) -> list[str]:
        """Titles by which citations may name this book."""
        return [t for t in (self.title_en, self.title_he) if t and t.strip()]


class Line(BaseModel):
    """A single addressable line of a book."""

    model_config = ConfigDict(frozen=True)

    book_id: int
    line_index: int  # 0-based within the book
    content: str
    ref: str | None = None
    he_ref: str | None = None
    id: int | None = None  # assigned by the orchestrator


class Heading(BaseModel):
    """A heading emitted while flattening.

    ``line_index`` is the number of lines emitted before the heading, i.e.
    the index of the first line it covers.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    level: int  # 0 = book root
    line_index: int


class RefEntry(BaseModel):
    """A canonical reference pointing at one line (1-based ``line_index``)."""

    model_config = ConfigDict(frozen=True)

    ref: str
    he_ref: str
    line_index: int
    book_id: int = 0


class FlattenedBook(BaseModel):
    """Result of flattening one document."""

    book_id: int
    title_en: str
    title_he: str
    lines: list[Line] = Field(default_factory=list)
    headings: list[Heading] = Field(default_factory=list)
    ref_entries: list[RefEntry] = Field(default_factory=list)
    structural_mismatches: int = 0


class BookMeta(BaseModel):
    """Per-book facts used to orient commentary links."""

    model_config = ConfigDict(frozen=True)

    is_base_book: bool = False
    category_level: int = 0
    dependence: ConnectionType | None = None


class BookRecord(BaseModel):
    """A book as handed to the persistence collaborator."""

    id: int
    title: str  # Hebrew title
    title_en: str
    categories: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    is_base_book: bool = False
    total_lines: int = 0
    has_alt_structures: bool = False
