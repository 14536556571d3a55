"""Persistence collaborators receiving the import's output."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from seforim.models.alt_structure import AltTocTree
from seforim.models.book import BookRecord, Line
from seforim.models.link import Link
from seforim.models.toc import BookToc
from seforim.storage.database import get_connection, initialize_database

logger = logging.getLogger(__name__)


class PersistenceSink(Protocol):
    """Receives books, lines, TOC trees and links as they are published."""

    def add_book(self, book: BookRecord) -> None: ...

    def add_lines(self, lines: Sequence[Line]) -> None: ...

    def add_toc(self, toc: BookToc) -> None: ...

    def add_alt_toc(self, tree: AltTocTree) -> None: ...

    def add_links(self, links: Sequence[Link]) -> None: ...

    def set_has_alt_structures(self, book_id: int, value: bool) -> None: ...

    def close(self) -> None: ...


class MemorySink:
    """Keeps everything in memory."""

    def __init__(self) -> None:
        self.books: dict[int, BookRecord] = {}
        self.lines: list[Line] = []
        self.tocs: list[BookToc] = []
        self.alt_tocs: list[AltTocTree] = []
        self.links: list[Link] = []
        self.closed = False

    def add_book(self, book: BookRecord) -> None:
        self.books[book.id] = book

    def add_lines(self, lines: Sequence[Line]) -> None:
        self.lines.extend(lines)

    def add_toc(self, toc: BookToc) -> None:
        self.tocs.append(toc)

    def add_alt_toc(self, tree: AltTocTree) -> None:
        self.alt_tocs.append(tree)

    def add_links(self, links: Sequence[Link]) -> None:
        self.links.extend(links)

    def set_has_alt_structures(self, book_id: int, value: bool) -> None:
        self.books[book_id] = self.books[book_id].model_copy(update={"has_alt_structures": value})

    def close(self) -> None:
        self.closed = True


class SqliteSink:
    """Writes to a SQLite database created by ``initialize_database``.

    Args:
        db_path: Path to the SQLite database file (created if missing).
    """

    def __init__(self, db_path: str | Path) -> None:
        initialize_database(db_path)
        self._conn = get_connection(db_path)
        logger.info("Writing import output to %s", db_path)

    def add_book(self, book: BookRecord) -> None:
        self._conn.execute(
            """
            INSERT OR REPLACE INTO book
                (id, title, title_en, categories, authors, is_base_book, total_lines, has_alt_structures)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                book.id,
                book.title,
                book.title_en,
                json.dumps(book.categories, ensure_ascii=False),
                json.dumps(book.authors, ensure_ascii=False),
                int(book.is_base_book),
                book.total_lines,
                int(book.has_alt_structures),
            ),
        )
        self._conn.commit()

    def add_lines(self, lines: Sequence[Line]) -> None:
        self._conn.executemany(
            "INSERT INTO line (id, book_id, line_index, content, ref, he_ref) VALUES (?, ?, ?, ?, ?, ?)",
            [(l.id, l.book_id, l.line_index, l.content, l.ref, l.he_ref) for l in lines],
        )
        self._conn.commit()

    def add_toc(self, toc: BookToc) -> None:
        self._conn.executemany(
            """
            INSERT INTO toc_entry (id, book_id, parent_id, text, level, line_id, has_children, is_last_child)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (e.id, e.book_id, e.parent_id, e.text, e.level, e.line_id, int(e.has_children), int(e.is_last_child))
                for e in toc.entries
            ],
        )
        self._conn.executemany(
            "INSERT OR REPLACE INTO line_toc (line_id, toc_entry_id) VALUES (?, ?)",
            toc.line_toc,
        )
        self._conn.commit()

    def add_alt_toc(self, tree: AltTocTree) -> None:
        structure = tree.structure
        self._conn.execute(
            "INSERT INTO alt_toc_structure (id, book_id, key, title, he_title) VALUES (?, ?, ?, ?, ?)",
            (structure.id, structure.book_id, structure.key, structure.title, structure.he_title),
        )
        self._conn.executemany(
            """
            INSERT INTO alt_toc_entry
                (id, structure_id, parent_id, text, level, line_id, has_children, is_last_child)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (e.id, e.structure_id, e.parent_id, e.text, e.level, e.line_id, int(e.has_children), int(e.is_last_child))
                for e in tree.entries
            ],
        )
        self._conn.executemany(
            "INSERT OR REPLACE INTO line_alt_toc (line_id, structure_id, alt_toc_entry_id) VALUES (?, ?, ?)",
            [(line_id, structure.id, entry_id) for line_id, entry_id in tree.line_mapping],
        )
        self._conn.commit()

    def add_links(self, links: Sequence[Link]) -> None:
        self._conn.executemany(
            """
            INSERT INTO link (source_book_id, source_line_id, target_book_id, target_line_id, connection_type)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (l.source_book_id, l.source_line_id, l.target_book_id, l.target_line_id, l.connection_type.value)
                for l in links
            ],
        )
        self._conn.commit()

    def set_has_alt_structures(self, book_id: int, value: bool) -> None:
        self._conn.execute("UPDATE book SET has_alt_structures = ? WHERE id = ?", (int(value), book_id))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
