"""Parser for free-form citation strings."""

import logging
import re

from seforim.models.citation import Citation

logger = logging.getLogger(__name__)

DAF_TOKEN = re.compile(r"(\d+)([ab])((?::\d+)*)")


def parse_references(token: str) -> tuple[list[int], bool]:
    """Parse a trailing reference token like "1:1", "45b:3" or "325:34:1".

    A page+side token becomes a linear index (page * 2, plus 1 for side b)
    followed by the remaining colon-separated numbers. Only the start of a
    dash range is read.

    Args:
        token: The reference token.

    Returns:
        The numbers (empty when the token is not numeric) and whether the
        token was a page+side address.
    """
    token = token.split("-", 1)[0].strip()
    if not token:
        return [], False

    daf = DAF_TOKEN.fullmatch(token)
    if daf:
        refs = [int(daf.group(1)) * 2 + (1 if daf.group(2) == "b" else 0)]
        refs.extend(int(part) for part in daf.group(3).split(":") if part)
        return refs, True

    parts = token.split(":")
    if not all(part.strip().isdigit() for part in parts):
        return [], False
    return [int(part) for part in parts], False


class CitationParser:
    """Splits citations into book title, optional section and numbers.

    Examples:
        "Genesis 1:1" -> book "Genesis", refs [1, 1]
        "Beit Yosef, Orach Chayim 325:34:1" -> book "Beit Yosef",
            section "Orach Chayim", refs [325, 34, 1]
        "Tur, Orach Chayim, Introduction" -> book "Tur",
            section "Orach Chayim, Introduction", refs []
    """

    def parse(self, raw: str) -> Citation | None:
        """Parse one citation string.

        Malformed input yields a Citation without references rather than an
        error. None is returned only when parsing itself fails.
        """
        try:
            return self._parse(raw)
        except Exception:
            logger.exception("Error parsing citation: %r", raw)
            return None

    def _parse(self, raw: str) -> Citation:
        text = raw.strip()

        if "," in text:
            book_title, rest = (part.strip() for part in text.split(",", 1))
            space = rest.rfind(" ")
            if space <= 0:
                return Citation(book_title=book_title, section=rest or None, raw=raw)
            refs, is_daf = parse_references(rest[space + 1:])
            if not refs:
                return Citation(book_title=book_title, section=rest, raw=raw)
            return Citation(
                book_title=book_title,
                section=rest[:space].strip() or None,
                references=refs,
                raw=raw,
                is_daf=is_daf,
            )

        space = text.rfind(" ")
        if space > 0:
            refs, is_daf = parse_references(text[space + 1:])
            if refs:
                return Citation(
                    book_title=text[:space].strip(),
                    references=refs,
                    raw=raw,
                    is_daf=is_daf,
                )
        return Citation(book_title=text, raw=raw)
