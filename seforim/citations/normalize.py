"""Normalization helpers shared by the reference index and the resolver."""

import re
from collections.abc import Iterable

# ASCII quotes, Hebrew geresh / gershayim, and typographic variants
QUOTE_CHARS = "\"'׳״‘’“”`"
_QUOTE_TABLE = str.maketrans("", "", QUOTE_CHARS + ",")
_WHITESPACE = re.compile(r"\s+")
_DOTTED_NUMBER = re.compile(r"\.(\d+)")


def canonical_citation(raw: str | None) -> str:
    """Normalize a reference string into a lookup key.

    Lowercases, strips commas and quote variants, and collapses whitespace.

    Args:
        raw: The reference string.

    Returns:
        The canonical key ("" for None or blank input).
    """
    if not raw:
        return ""
    return _WHITESPACE.sub(" ", raw.translate(_QUOTE_TABLE)).strip().lower()


def normalize_title_key(value: str | None) -> str | None:
    """Normalize a book title: canonical form with underscores as spaces."""
    if value is None or not value.strip():
        return None
    return canonical_citation(value.replace("_", " ")) or None


def canonical_tail(raw: str) -> str:
    """Drop leading tokens that carry no numeric address.

    "beit yosef orach chayim 325:34:1" -> "325:34:1". A key with no
    numeric token is returned whole.
    """
    canonical = canonical_citation(raw)
    tokens = canonical.split(" ")
    for idx, token in enumerate(tokens):
        if any(ch.isdigit() for ch in token) or ":" in token or "-" in token:
            return " ".join(tokens[idx:])
    return canonical


def strip_book_alias(canonical: str, aliases: Iterable[str]) -> str:
    """Remove a leading book-title phrase from a canonical key.

    Aliases are tried in the given order (longest first is expected). A key
    that is exactly an alias, or that starts with none, is returned as is.
    """
    for alias in aliases:
        if not alias:
            continue
        if canonical == alias:
            return canonical
        if canonical.startswith(alias + " "):
            return canonical[len(alias):].lstrip() or canonical
    return canonical


def citation_range_start(canonical: str) -> str | None:
    """Return the start of a dash range ("x 1:1-6:8" -> "x 1:1"), else None."""
    if "-" not in canonical:
        return None
    start = canonical.split("-", 1)[0].strip()
    return start or None


def dotted_variants(key: str) -> list[str]:
    """Alternative spellings of a key written with dots ("genesis.1.1")."""
    variants = [key]
    if "." in key:
        variants.extend(
            [
                key.replace(".", " "),
                _DOTTED_NUMBER.sub(r":\1", _DOTTED_NUMBER.sub(r" \1", key, count=1)),
                _DOTTED_NUMBER.sub(r":\1", key),
                _DOTTED_NUMBER.sub(r" \1", key),
                key.replace(".", ""),
            ]
        )
    seen: set[str] = set()
    unique: list[str] = []
    for variant in variants:
        variant = _WHITESPACE.sub(" ", variant).strip()
        if variant and variant not in seen:
            seen.add(variant)
            unique.append(variant)
    return unique
