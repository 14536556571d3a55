"""Citation resolution through an ordered chain of candidate-key tiers."""

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace

from seforim.citations.index import CanonicalRefIndex, RefTarget
from seforim.citations.normalize import (
    canonical_citation,
    canonical_tail,
    citation_range_start,
    dotted_variants,
    strip_book_alias,
)
from seforim.citations.parser import CitationParser
from seforim.models.citation import Citation

logger = logging.getLogger(__name__)

_LEADING_DIGITS = re.compile(r"\d+")


@dataclass(frozen=True)
class _Query:
    canonical: str
    aliases: tuple[str, ...]
    allow_tail: bool


def _exact(query: _Query) -> Iterator[str]:
    yield query.canonical


def _alias_stripped(query: _Query) -> Iterator[str]:
    yield strip_book_alias(query.canonical, query.aliases)


def _numeric_tail(query: _Query) -> Iterator[str]:
    if query.allow_tail:
        yield canonical_tail(query.canonical)


def _direct(query: _Query) -> Iterator[str]:
    yield from _exact(query)
    yield from _alias_stripped(query)
    yield from _numeric_tail(query)


def _range_start(query: _Query) -> Iterator[str]:
    start = citation_range_start(query.canonical)
    if start:
        yield from _direct(replace(query, canonical=start))


def _chapter_start(query: _Query) -> Iterator[str]:
    chapter = query.canonical.split("-", 1)[0].split(":", 1)[0].strip()
    if chapter:
        yield from _direct(replace(query, canonical=f"{chapter}:1"))


def _within_chapter(query: _Query) -> Iterator[str]:
    """Hold the chapter fixed and count the trailing component down to 1.

    Known to be imprecise: when the cited sub-unit was never emitted this
    lands on an earlier sibling rather than the one actually cited. It is
    also shadowed by ``chapter_start``, whose depth expansion sends
    325:34:5 to 325:1:1 whenever that key exists; the scan only runs when
    it does not.
    """
    key = citation_range_start(query.canonical) or query.canonical
    head, sep, last = key.rpartition(":")
    match = _LEADING_DIGITS.match(last)
    if not sep or not head or match is None:
        return
    for n in range(int(match.group()), 0, -1):
        candidate = f"{head}:{n}"
        yield candidate
        yield strip_book_alias(candidate, query.aliases)


CandidateTier = Callable[[_Query], Iterator[str]]

# Evaluated in order, lazily; the first key that hits wins.
CANDIDATE_TIERS: tuple[tuple[str, CandidateTier], ...] = (
    ("exact", _exact),
    ("alias_stripped", _alias_stripped),
    ("numeric_tail", _numeric_tail),
    ("range_start", _range_start),
    ("chapter_start", _chapter_start),
    ("within_chapter", _within_chapter),
)

FALLBACK_TIERS = frozenset({"chapter_start", "within_chapter"})


def citation_text(citation: Citation) -> str:
    """Rebuild a citation string for a Citation that carries no raw text."""
    if citation.raw.strip():
        return citation.raw
    refs = [str(n) for n in citation.references]
    if citation.is_daf and refs:
        page, side = divmod(citation.references[0], 2)
        refs[0] = f"{page}{'b' if side else 'a'}"
    parts = [citation.book_title]
    if citation.section:
        parts[0] += f", {citation.section}"
    if refs:
        parts.append(":".join(refs))
    return " ".join(parts)


class CitationResolver:
    """Resolves citations to lines against a built CanonicalRefIndex.

    The book is identified from the citation's leading title (longest
    alias); lookups then stay inside that book. A citation naming no known
    book is looked up in the corpus-wide table only.

    Resolution never raises. ``None`` means the caller should drop the
    citation and continue.
    """

    def __init__(self, index: CanonicalRefIndex, parser: CitationParser | None = None) -> None:
        self.index = index
        self.parser = parser or CitationParser()

    def resolve(
        self,
        citation: Citation | str,
        *,
        book_id: int | None = None,
        allow_chapter_fallback: bool = True,
        allow_tail_fallback: bool = True,
    ) -> RefTarget | None:
        """Resolve a citation to the line it points at.

        Args:
            citation: A parsed Citation or a raw citation string.
            book_id: Restrict the lookup to this book instead of inferring it
                from the citation's title.
            allow_chapter_fallback: Enable the chapter-start and
                within-chapter tiers. Disabled for daf citations, where a
                "chapter" is not meaningful.
            allow_tail_fallback: Enable numeric-tail-only candidates.

        Returns:
            The resolved target, or None.
        """
        try:
            return self._resolve(citation, book_id, allow_chapter_fallback, allow_tail_fallback)
        except Exception:
            logger.exception("Error resolving citation: %r", citation)
            return None

    def _resolve(
        self,
        citation: Citation | str,
        book_id: int | None,
        allow_chapter_fallback: bool,
        allow_tail_fallback: bool,
    ) -> RefTarget | None:
        text = citation if isinstance(citation, str) else citation_text(citation)
        canonical = canonical_citation(text)
        if not canonical:
            return None

        if book_id is None:
            book_id = self.index.book_for(canonical)
        query = _Query(
            canonical=canonical,
            aliases=self.index.aliases_for(book_id) if book_id is not None else (),
            allow_tail=allow_tail_fallback and book_id is not None,
        )
        depth = self.index.max_depth(book_id)

        for name, tier in CANDIDATE_TIERS:
            if name in FALLBACK_TIERS and not allow_chapter_fallback:
                continue
            for key in tier(query):
                if not key:
                    continue
                hit = self.match_key(key, book_id, depth)
                if hit is not None:
                    logger.debug("Resolved %r via %s tier (key %r)", text, name, key)
                    return hit
        return None

    def match_key(self, key: str, book_id: int | None, depth: int) -> RefTarget | None:
        """Look up a key, its dotted spellings, and ":1" depth expansions."""
        for variant in dotted_variants(key):
            hit = self.index.lookup(variant, book_id)
            if hit is not None:
                return hit
            current = variant
            for _ in range(depth - variant.count(":")):
                current += ":1"
                hit = self.index.lookup(current, book_id)
                if hit is not None:
                    return hit
        return None
