"""Resolution of raw citation pairs into directed link records."""

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from seforim.citations.index import RefTarget
from seforim.citations.parser import CitationParser
from seforim.citations.resolver import CitationResolver
from seforim.models.book import BookMeta
from seforim.models.citation import Citation
from seforim.models.link import ConnectionType, Link, RawLink

logger = logging.getLogger(__name__)


class DropReason(str, Enum):
    """Why a citation pair produced no links."""

    UNRESOLVED_SOURCE = "unresolved_source"
    UNRESOLVED_TARGET = "unresolved_target"
    MALFORMED = "malformed"


@dataclass
class LinkStats:
    """Counters kept by a LinkResolver."""

    created: int = 0  # links, two per resolved pair
    dropped: Counter = field(default_factory=Counter)

    @property
    def total_dropped(self) -> int:
        return sum(self.dropped.values())

    def merge(self, other: "LinkStats") -> None:
        self.created += other.created
        self.dropped.update(other.dropped)


class LinkResolver:
    """Turns citation pairs into forward and reverse Links.

    Commentary and targum links are oriented from the base text: the forward
    link starts at the base side and is typed SOURCE, the reverse link
    starts at the dependent side and keeps the original type. Every other
    type yields citation1 -> citation2 and its mirror with the same type.

    A pair where either side fails to resolve is dropped and counted in
    ``stats``; nothing is raised.

    Args:
        resolver: Resolver over the corpus reference index.
        book_meta: Per-book metadata used to orient directional links.
        parser: Citation parser (a default one is created when omitted).
    """

    def __init__(
        self,
        resolver: CitationResolver,
        book_meta: Mapping[int, BookMeta],
        parser: CitationParser | None = None,
    ) -> None:
        self._resolver = resolver
        self._book_meta = book_meta
        self._parser = parser or CitationParser()
        self.stats = LinkStats()

    def resolve(self, citation1: str, citation2: str, raw_type: str | None = "") -> list[Link]:
        """Resolve one pair.

        Args:
            citation1: First citation string.
            citation2: Second citation string.
            raw_type: Free-text connection type label.

        Returns:
            Two links (forward then reverse), or an empty list when dropped.
        """
        source = self._resolve_side(citation1)
        if not isinstance(source, RefTarget):
            return self._drop(source or DropReason.UNRESOLVED_SOURCE, citation1, citation2)
        target = self._resolve_side(citation2)
        if not isinstance(target, RefTarget):
            return self._drop(target or DropReason.UNRESOLVED_TARGET, citation1, citation2)

        connection_type = ConnectionType.from_label(raw_type)
        if connection_type is None:
            connection_type = self._infer_type(source.book_id, target.book_id)

        links = self._orient(source, target, connection_type)
        self.stats.created += len(links)
        return links

    def resolve_all(self, raw_links: Iterable[RawLink]) -> Iterable[Link]:
        """Resolve a stream of raw links, yielding every created Link."""
        for raw in raw_links:
            yield from self.resolve(raw.citation1, raw.citation2, raw.connection_type)

    def _resolve_side(self, raw: str) -> RefTarget | DropReason | None:
        citation = self._parser.parse(raw)
        if citation is None or not citation.book_title:
            return DropReason.MALFORMED
        target = self._resolver.resolve(
            citation, allow_chapter_fallback=not citation.is_daf
        )
        if target is None and not _has_address(citation):
            return DropReason.MALFORMED
        return target

    def _drop(self, reason: DropReason, citation1: str, citation2: str) -> list[Link]:
        self.stats.dropped[reason] += 1
        logger.debug("Dropped link %r -> %r (%s)", citation1, citation2, reason.value)
        return []

    def _infer_type(self, book1: int, book2: int) -> ConnectionType:
        """Use the dependence of exactly one dependent side; otherwise OTHER."""
        dependences = [
            meta.dependence
            for meta in (self._book_meta.get(book1), self._book_meta.get(book2))
            if meta is not None and meta.dependence is not None
        ]
        if len(dependences) == 1:
            return dependences[0]
        return ConnectionType.OTHER

    def _orient(
        self, first: RefTarget, second: RefTarget, connection_type: ConnectionType
    ) -> list[Link]:
        if not connection_type.is_directional:
            return [
                _link(first, second, connection_type),
                _link(second, first, connection_type),
            ]
        base, dependent = (first, second) if self._first_is_base(first, second) else (second, first)
        return [
            _link(base, dependent, ConnectionType.SOURCE),
            _link(dependent, base, connection_type),
        ]

    def _first_is_base(self, first: RefTarget, second: RefTarget) -> bool:
        """Explicit base flag, then shallower category, then lower book id."""
        meta1 = self._book_meta.get(first.book_id, BookMeta())
        meta2 = self._book_meta.get(second.book_id, BookMeta())
        if meta1.is_base_book != meta2.is_base_book:
            return meta1.is_base_book
        if meta1.category_level != meta2.category_level:
            return meta1.category_level < meta2.category_level
        return first.book_id <= second.book_id


def _has_address(citation: Citation) -> bool:
    return citation.has_references or bool(citation.section)


def _link(source: RefTarget, target: RefTarget, connection_type: ConnectionType) -> Link:
    return Link(
        source_book_id=source.book_id,
        source_line_id=source.line_id,
        target_book_id=target.book_id,
        target_line_id=target.line_id,
        connection_type=connection_type,
    )
