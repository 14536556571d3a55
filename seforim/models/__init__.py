"""Data models for the Seforim import pipeline."""

from seforim.models.alt_structure import (
    AltNode,
    AltStructure,
    AltTocEntry,
    AltTocStructure,
    AltTocTree,
)
from seforim.models.book import (
    BookMeta,
    BookRecord,
    FlattenedBook,
    Heading,
    Line,
    RefEntry,
    SourceDocument,
)
from seforim.models.citation import Citation
from seforim.models.link import ConnectionType, Link, RawLink
from seforim.models.schema import AddressType, ContainerNode, LeafNode, SchemaNode
from seforim.models.toc import BookToc, TocEntry

__all__ = [
    "AddressType",
    "AltNode",
    "AltStructure",
    "AltTocEntry",
    "AltTocStructure",
    "AltTocTree",
    "BookMeta",
    "BookRecord",
    "BookToc",
    "Citation",
    "ConnectionType",
    "ContainerNode",
    "FlattenedBook",
    "Heading",
    "LeafNode",
    "Line",
    "Link",
    "RawLink",
    "RefEntry",
    "SchemaNode",
    "SourceDocument",
    "TocEntry",
]
