"""Citation parsing, canonical reference indexing and resolution."""

from seforim.citations.index import CanonicalRefIndex, RefTarget
from seforim.citations.normalize import canonical_citation, canonical_tail, strip_book_alias
from seforim.citations.parser import CitationParser
from seforim.citations.resolver import CitationResolver

__all__ = [
    "CanonicalRefIndex",
    "CitationParser",
    "CitationResolver",
    "RefTarget",
    "canonical_citation",
    "canonical_tail",
    "strip_book_alias",
]
