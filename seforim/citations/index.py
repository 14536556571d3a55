"""Canonical reference index: normalized reference strings to lines."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from seforim.citations.normalize import (
    canonical_citation,
    canonical_tail,
    normalize_title_key,
    strip_book_alias,
)
from seforim.models.book import RefEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RefTarget:
    """The line a reference resolves to."""

    book_id: int
    line_id: int
    line_index: int  # 0-based within the book


@dataclass
class _BookScope:
    aliases: tuple[str, ...] = ()
    keys: dict[str, RefTarget] = field(default_factory=dict)
    max_depth: int = 0


class CanonicalRefIndex:
    """Multi-key lookup from normalized references to line identities.

    Every reference entry registers its full English and Hebrew keys in a
    corpus-wide table, and its alias-stripped and numeric-tail keys in its
    own book's scope (tails such as "1:1" are only meaningful once the book
    is known). On collision the first registered entry wins, so a later
    duplicate never shadows the line that first carried a reference.

    Built once with :meth:`build`; read-only afterwards.
    """

    def __init__(self) -> None:
        self._global: dict[str, RefTarget] = {}
        self._books: dict[int, _BookScope] = {}
        self._alias_to_book: dict[str, int] = {}
        self._aliases_longest_first: list[str] = []
        self._max_depth = 0

    @classmethod
    def build(
        cls,
        ref_entries: Iterable[RefEntry],
        book_aliases: Mapping[int, Iterable[str]],
        line_offsets: Mapping[int, int] | None = None,
    ) -> "CanonicalRefIndex":
        """Build the index.

        Args:
            ref_entries: Reference entries of every book, in line order.
            book_aliases: Titles per book id used to recognize and strip the
                book part of a citation.
            line_offsets: Global line id of each book's line 0. Books without
                an offset use 0, so line ids equal 0-based line indices.

        Returns:
            The populated index.
        """
        index = cls()
        offsets = line_offsets or {}

        for book_id, titles in book_aliases.items():
            keys = sorted(index._alias_keys(titles), key=len, reverse=True)
            index._books.setdefault(book_id, _BookScope()).aliases = tuple(keys)
            for key in keys:
                index._alias_to_book.setdefault(key, book_id)
        index._aliases_longest_first = sorted(index._alias_to_book, key=len, reverse=True)

        count = 0
        for entry in ref_entries:
            line_index = entry.line_index - 1
            target = RefTarget(
                book_id=entry.book_id,
                line_id=offsets.get(entry.book_id, 0) + line_index,
                line_index=line_index,
            )
            scope = index._books.setdefault(entry.book_id, _BookScope())
            for value in (entry.ref, entry.he_ref):
                canonical = canonical_citation(value)
                if not canonical:
                    continue
                index._global.setdefault(canonical, target)
                for key in (
                    canonical,
                    strip_book_alias(canonical, scope.aliases),
                    canonical_tail(value),
                ):
                    if key:
                        scope.keys.setdefault(key, target)
                        scope.max_depth = max(scope.max_depth, key.count(":"))
            count += 1

        index._max_depth = max((s.max_depth for s in index._books.values()), default=0)
        logger.info(
            "Built reference index: %d entries, %d global keys, %d books",
            count,
            len(index._global),
            len(index._books),
        )
        return index

    @staticmethod
    def _alias_keys(titles: Iterable[str]) -> set[str]:
        keys: set[str] = set()
        for title in titles:
            for key in (canonical_citation(title), normalize_title_key(title)):
                if key:
                    keys.add(key)
        return keys

    def __len__(self) -> int:
        return len(self._global)

    def lookup(self, key: str, book_id: int | None = None) -> RefTarget | None:
        """Look up a canonical key.

        Without ``book_id`` only the corpus-wide table is searched. With it,
        the book's scope is searched and global hits from other books are
        ignored.
        """
        if book_id is None:
            return self._global.get(key)
        scope = self._books.get(book_id)
        if scope is None:
            return None
        return scope.keys.get(key)

    def book_for(self, canonical: str) -> int | None:
        """Identify the book a canonical citation starts with (longest alias)."""
        for alias in self._aliases_longest_first:
            if canonical == alias or canonical.startswith(alias + " "):
                return self._alias_to_book[alias]
        return None

    def aliases_for(self, book_id: int) -> tuple[str, ...]:
        scope = self._books.get(book_id)
        return scope.aliases if scope else ()

    def max_depth(self, book_id: int | None = None) -> int:
        """Deepest colon count among a book's keys (or the whole corpus)."""
        if book_id is None:
            return self._max_depth
        scope = self._books.get(book_id)
        return scope.max_depth if scope else 0
