"""Hebrew numerals (gematria) and daf page/side addresses."""

import re
from dataclasses import dataclass
from functools import lru_cache

HUNDREDS: tuple[tuple[int, str], ...] = (
    (400, "ת"),
    (300, "ש"),
    (200, "ר"),
    (100, "ק"),
)

TENS: tuple[tuple[int, str], ...] = (
    (90, "צ"),
    (80, "פ"),
    (70, "ע"),
    (60, "ס"),
    (50, "נ"),
    (40, "מ"),
    (30, "ל"),
    (20, "כ"),
    (10, "י"),
)

UNITS: tuple[tuple[int, str], ...] = (
    (9, "ט"),
    (8, "ח"),
    (7, "ז"),
    (6, "ו"),
    (5, "ה"),
    (4, "ד"),
    (3, "ג"),
    (2, "ב"),
    (1, "א"),
)

# 15 and 16 are never written as yod-he / yod-vav
SPECIAL_REMAINDERS: dict[int, str] = {15: "טו", 16: "טז"}

DAF_PATTERN = re.compile(r"(\d+)\s*([ab])?", re.IGNORECASE)


@lru_cache(maxsize=4096)
def gematria(num: int) -> str:
    """Convert a positive integer to Hebrew numeral letters.

    Thousands are written as their own gematria followed by a space
    (1001 -> "א א"). Non-positive values are returned as plain digits.

    Args:
        num: The number to convert.

    Returns:
        The Hebrew letter representation.
    """
    if num <= 0:
        return str(num)

    thousands, remainder = divmod(num, 1000)
    parts: list[str] = []
    if thousands:
        parts.append(gematria(thousands) + " ")

    for value, letter in HUNDREDS:
        while remainder >= value:
            parts.append(letter)
            remainder -= value

    if remainder in SPECIAL_REMAINDERS:
        parts.append(SPECIAL_REMAINDERS[remainder])
        remainder = 0

    for table in (TENS, UNITS):
        for value, letter in table:
            if remainder >= value:
                parts.append(letter)
                remainder -= value

    return "".join(parts)


@dataclass(frozen=True, slots=True)
class DafAddress:
    """A page of a paginated work plus its side ("a" or "b")."""

    page: int
    side: str

    @property
    def position(self) -> int:
        """1-based sequential position (1 = 1a, 2 = 1b, 3 = 2a)."""
        return (self.page - 1) * 2 + (1 if self.side == "a" else 2)

    def hebrew(self) -> str:
        """Internal label: gematria page plus "." for side a, ":" for side b."""
        return gematria(self.page) + ("." if self.side == "a" else ":")

    def english(self) -> str:
        """External label such as "45b"."""
        return f"{self.page}{self.side}"


def daf_address(position: int) -> DafAddress:
    """Map a 1-based sequential position to its page and side.

    Odd positions are side "a" of page ceil(position / 2), even ones side "b".
    """
    if position < 1:
        raise ValueError(f"Daf position must be >= 1, got {position}")
    return DafAddress(page=(position + 1) // 2, side="a" if position % 2 else "b")


def parse_daf_position(address: str | None) -> int | None:
    """Parse an address like "2a" or "17b" back into its 1-based position.

    A bare page number is treated as side "a".
    """
    if not address or not address.strip():
        return None
    match = DAF_PATTERN.search(address.strip())
    if match is None:
        return None
    page = int(match.group(1))
    if page < 1:
        return None
    side = (match.group(2) or "a").lower()
    return DafAddress(page=page, side=side).position
