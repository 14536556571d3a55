"""SQLite database initialization and connection management."""

import sqlite3
from pathlib import Path


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Create a connection to the SQLite database.

    Foreign keys stay off: the import writes tables in dependency-free
    batches.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A sqlite3 Connection with row_factory set to Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=OFF")
    return conn


def initialize_database(db_path: str | Path) -> None:
    """Create the database schema if it doesn't exist.

    Args:
        db_path: Path to the SQLite database file.
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS book (
                id INTEGER PRIMARY KEY,
                title TEXT NOT NULL,
                title_en TEXT NOT NULL,
                categories TEXT DEFAULT '[]',
                authors TEXT DEFAULT '[]',
                is_base_book INTEGER DEFAULT 0,
                total_lines INTEGER DEFAULT 0,
                has_alt_structures INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS line (
                id INTEGER PRIMARY KEY,
                book_id INTEGER NOT NULL REFERENCES book(id),
                line_index INTEGER NOT NULL,
                content TEXT NOT NULL,
                ref TEXT,
                he_ref TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_line_book ON line(book_id, line_index);

            CREATE TABLE IF NOT EXISTS toc_entry (
                id INTEGER PRIMARY KEY,
                book_id INTEGER NOT NULL REFERENCES book(id),
                parent_id INTEGER REFERENCES toc_entry(id),
                text TEXT NOT NULL,
                level INTEGER NOT NULL,
                line_id INTEGER REFERENCES line(id),
                has_children INTEGER DEFAULT 0,
                is_last_child INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS line_toc (
                line_id INTEGER PRIMARY KEY REFERENCES line(id),
                toc_entry_id INTEGER NOT NULL REFERENCES toc_entry(id)
            );

            CREATE TABLE IF NOT EXISTS alt_toc_structure (
                id INTEGER PRIMARY KEY,
                book_id INTEGER NOT NULL REFERENCES book(id),
                key TEXT NOT NULL,
                title TEXT,
                he_title TEXT
            );

            CREATE TABLE IF NOT EXISTS alt_toc_entry (
                id INTEGER PRIMARY KEY,
                structure_id INTEGER NOT NULL REFERENCES alt_toc_structure(id),
                parent_id INTEGER REFERENCES alt_toc_entry(id),
                text TEXT NOT NULL,
                level INTEGER NOT NULL,
                line_id INTEGER REFERENCES line(id),
                has_children INTEGER DEFAULT 0,
                is_last_child INTEGER DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS line_alt_toc (
                line_id INTEGER NOT NULL REFERENCES line(id),
                structure_id INTEGER NOT NULL REFERENCES alt_toc_structure(id),
                alt_toc_entry_id INTEGER NOT NULL REFERENCES alt_toc_entry(id),
                PRIMARY KEY (line_id, structure_id)
            );

            CREATE TABLE IF NOT EXISTS link (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_book_id INTEGER NOT NULL,
                source_line_id INTEGER NOT NULL,
                target_book_id INTEGER NOT NULL,
                target_line_id INTEGER NOT NULL,
                connection_type TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_link_source ON link(source_line_id);
            CREATE INDEX IF NOT EXISTS idx_link_target ON link(target_line_id);
            """
        )
        conn.commit()
    finally:
        conn.close()
