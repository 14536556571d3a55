"""Per-import id arena."""

from dataclasses import dataclass


@dataclass
class IdArena:
    """Mints monotonically increasing ids for one import.

    Only the coordinator touches the arena, and it does so in document
    order, so ids do not depend on worker completion order. ``reserve_*``
    methods hand out a contiguous block and return its first id.
    """

    next_book_id: int = 1
    next_line_id: int = 1
    next_toc_id: int = 1
    next_structure_id: int = 1
    next_alt_entry_id: int = 1

    def book(self) -> int:
        book_id = self.next_book_id
        self.next_book_id += 1
        return book_id

    def structure(self) -> int:
        structure_id = self.next_structure_id
        self.next_structure_id += 1
        return structure_id

    def reserve_lines(self, count: int) -> int:
        first = self.next_line_id
        self.next_line_id += count
        return first

    def reserve_toc_entries(self, count: int) -> int:
        first = self.next_toc_id
        self.next_toc_id += count
        return first

    def reserve_alt_entries(self, count: int) -> int:
        first = self.next_alt_entry_id
        self.next_alt_entry_id += count
        return first
