"""Document ingestion: corpus reading, flattening and TOC construction."""

from seforim.ingestion.flattener import HierarchicalFlattener, is_blank
from seforim.ingestion.source import CorpusReader, read_text_file
from seforim.ingestion.toc import build_toc, map_lines_to_entries

__all__ = [
    "CorpusReader",
    "HierarchicalFlattener",
    "build_toc",
    "is_blank",
    "map_lines_to_entries",
    "read_text_file",
]
