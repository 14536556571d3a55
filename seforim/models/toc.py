"""Table-of-contents models."""

from pydantic import BaseModel, ConfigDict, Field


class TocEntry(BaseModel):
    """One entry of a book's primary table of contents."""

    model_config = ConfigDict(frozen=True)

    id: int
    book_id: int
    parent_id: int | None = None
    text: str
    level: int
    line_index: int
    line_id: int | None = None
    has_children: bool = False
    is_last_child: bool = False


class BookToc(BaseModel):
    """A book's TOC entries in traversal order plus its line mapping."""

    book_id: int
    entries: list[TocEntry] = Field(default_factory=list)
    line_toc: list[tuple[int, int]] = Field(default_factory=list)  # (line_id, toc_id)
