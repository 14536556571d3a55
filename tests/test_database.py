"""Tests for database initialization and the SQLite sink."""

import json
import sqlite3
from pathlib import Path

from seforim.models.alt_structure import AltTocEntry, AltTocStructure, AltTocTree
from seforim.models.book import BookRecord, Line
from seforim.models.link import ConnectionType, Link
from seforim.models.toc import BookToc, TocEntry
from seforim.storage.database import get_connection, initialize_database
from seforim.storage.sink import MemorySink, SqliteSink


def _tables(db_path: Path) -> list[str]:
    conn = sqlite3.connect(str(db_path))
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in cursor.fetchall()]
    conn.close()
    return tables


class TestInitializeDatabase:
    def test_creates_tables(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        tables = _tables(db_path)

        for name in (
            "book",
            "line",
            "toc_entry",
            "line_toc",
            "alt_toc_structure",
            "alt_toc_entry",
            "line_alt_toc",
            "link",
        ):
            assert name in tables

    def test_idempotent(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)
        initialize_database(db_path)  # Should not raise

        assert "book" in _tables(db_path)

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "test.db"
        initialize_database(db_path)
        assert db_path.exists()

    def test_link_table_schema(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = sqlite3.connect(str(db_path))
        cursor = conn.execute("PRAGMA table_info(link)")
        columns = {row[1]: row[2] for row in cursor.fetchall()}
        conn.close()

        assert "source_line_id" in columns
        assert "target_line_id" in columns
        assert "connection_type" in columns


class TestGetConnection:
    def test_returns_connection_with_row_factory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = get_connection(db_path)
        assert conn.row_factory == sqlite3.Row
        conn.close()

    def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        initialize_database(db_path)

        conn = get_connection(db_path)
        cursor = conn.execute("PRAGMA journal_mode")
        mode = cursor.fetchone()[0]
        conn.close()
        assert mode == "wal"


def _book() -> BookRecord:
    return BookRecord(
        id=1,
        title="בראשית",
        title_en="Genesis",
        categories=["תנך", "תורה"],
        is_base_book=True,
        total_lines=2,
    )


def _lines() -> list[Line]:
    return [
        Line(id=1, book_id=1, line_index=0, content="a", ref="Genesis 1:1", he_ref="בראשית א, א"),
        Line(id=2, book_id=1, line_index=1, content="b", ref="Genesis 1:2", he_ref="בראשית א, ב"),
    ]


def _toc() -> BookToc:
    return BookToc(
        book_id=1,
        entries=[
            TocEntry(id=1, book_id=1, text="בראשית", level=0, line_index=0, line_id=1, has_children=True, is_last_child=True),
            TocEntry(id=2, book_id=1, parent_id=1, text="פרק א", level=1, line_index=0, line_id=1, is_last_child=True),
        ],
        line_toc=[(1, 2), (2, 2)],
    )


def _alt_toc() -> AltTocTree:
    return AltTocTree(
        structure=AltTocStructure(id=1, book_id=1, key="Parasha"),
        entries=[AltTocEntry(id=1, structure_id=1, text="בראשית", level=0, line_id=1, line_index=0, is_last_child=True)],
        line_mapping=[(1, 1), (2, 1)],
    )


def _link() -> Link:
    return Link(
        source_book_id=1,
        source_line_id=1,
        target_book_id=1,
        target_line_id=2,
        connection_type=ConnectionType.REFERENCE,
    )


class TestSqliteSink:
    def test_writes_all_tables(self, tmp_path: Path) -> None:
        db_path = tmp_path / "out.db"
        sink = SqliteSink(db_path)
        sink.add_book(_book())
        sink.add_lines(_lines())
        sink.add_toc(_toc())
        sink.add_alt_toc(_alt_toc())
        sink.add_links([_link()])
        sink.set_has_alt_structures(1, True)
        sink.close()

        conn = get_connection(db_path)
        book = conn.execute("SELECT * FROM book WHERE id = 1").fetchone()
        assert book["title"] == "בראשית"
        assert json.loads(book["categories"]) == ["תנך", "תורה"]
        assert book["has_alt_structures"] == 1
        assert conn.execute("SELECT COUNT(*) FROM line").fetchone()[0] == 2
        assert conn.execute("SELECT toc_entry_id FROM line_toc WHERE line_id = 2").fetchone()[0] == 2
        assert conn.execute("SELECT COUNT(*) FROM line_alt_toc WHERE structure_id = 1").fetchone()[0] == 2
        link = conn.execute("SELECT * FROM link").fetchone()
        assert link["connection_type"] == "REFERENCE"
        conn.close()


class TestMemorySink:
    def test_collects_output(self) -> None:
        sink = MemorySink()
        sink.add_book(_book())
        sink.add_lines(_lines())
        sink.add_links([_link()])
        sink.set_has_alt_structures(1, True)
        sink.close()

        assert sink.books[1].has_alt_structures is True
        assert len(sink.lines) == 2
        assert sink.links == [_link()]
        assert sink.closed
