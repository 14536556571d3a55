"""Primary table-of-contents construction from flattened headings."""

from collections.abc import Sequence

from seforim.models.book import Heading
from seforim.models.toc import BookToc, TocEntry


def build_toc(
    book_id: int,
    headings: Sequence[Heading],
    first_line_id: int,
    total_lines: int,
    first_entry_id: int,
) -> BookToc:
    """Build a book's TOC tree in a single pass.

    Parents are resolved with a list indexed by level: ``open_ids[level]``
    holds the most recent entry at that level, and a heading's parent is the
    closest non-empty slot above it. Headings are consumed in emission
    order, so every parent is created before its children.

    Args:
        book_id: Owning book.
        headings: Headings in emission order.
        first_line_id: Global id of the book's line 0.
        total_lines: Number of lines in the book.
        first_entry_id: Id given to the first TOC entry; the rest follow.

    Returns:
        The entries plus the (line_id, toc_id) mapping for every line.
    """
    open_ids: list[int | None] = []
    parents: list[int | None] = []
    child_count: dict[int, int] = {}
    last_child: dict[int | None, int] = {}

    for offset, heading in enumerate(headings):
        entry_id = first_entry_id + offset
        del open_ids[heading.level:]
        parent_id = next((i for i in reversed(open_ids) if i is not None), None)
        open_ids.extend([None] * (heading.level - len(open_ids)))
        open_ids.append(entry_id)

        parents.append(parent_id)
        if parent_id is not None:
            child_count[parent_id] = child_count.get(parent_id, 0) + 1
        last_child[parent_id] = entry_id

    last_child_ids = set(last_child.values())
    entries = [
        TocEntry(
            id=first_entry_id + offset,
            book_id=book_id,
            parent_id=parents[offset],
            text=heading.title,
            level=heading.level,
            line_index=heading.line_index,
            line_id=first_line_id + heading.line_index if heading.line_index < total_lines else None,
            has_children=child_count.get(first_entry_id + offset, 0) > 0,
            is_last_child=(first_entry_id + offset) in last_child_ids,
        )
        for offset, heading in enumerate(headings)
    ]

    return BookToc(
        book_id=book_id,
        entries=entries,
        line_toc=map_lines_to_entries(
            [(entry.line_index, entry.id) for entry in entries], first_line_id, total_lines
        ),
    )


def map_lines_to_entries(
    anchors: Sequence[tuple[int, int]], first_line_id: int, total_lines: int
) -> list[tuple[int, int]]:
    """Assign every line to the latest anchor at or before it.

    Args:
        anchors: (line_index, entry_id) pairs; among pairs sharing a line
            index the last one wins.
        first_line_id: Global id of the book's line 0.
        total_lines: Number of lines in the book.

    Returns:
        (line_id, entry_id) pairs for every covered line.
    """
    by_line: dict[int, int] = {}
    for line_index, entry_id in anchors:
        by_line[line_index] = entry_id
    starts = sorted(by_line)

    mapping: list[tuple[int, int]] = []
    cursor = -1
    current: int | None = None
    for line_index in range(total_lines):
        while cursor + 1 < len(starts) and starts[cursor + 1] <= line_index:
            cursor += 1
            current = by_line[starts[cursor]]
        if current is not None:
            mapping.append((first_line_id + line_index, current))
    return mapping
