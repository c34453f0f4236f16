import re
import math
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RELEASE_DATE_FORMAT = "%d.%m.%Y"
LINK_PREFIXES = ("http://", "https://")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# One or more blank (or whitespace-only) lines between stanzas
STANZA_SEPARATOR = re.compile(r'\n(?:[ \t]*\n)+')


class ParsingError(ValueError):
    """Raised when a user or upstream value does not match the expected format."""
    pass


class PageOutOfRangeError(IndexError):
    """Raised when a requested page starts beyond the last item."""
    pass


def parse_release_date(value: str) -> date:
    """
    Parse a release date in DD.MM.YYYY form.

    Raises:
        ParsingError: if the value is empty or does not match the format.
    """
    if not value:
        raise ParsingError("empty release date")
    try:
        return datetime.strptime(value.strip(), RELEASE_DATE_FORMAT).date()
    except ValueError as e:
        raise ParsingError(f"invalid release date {value!r}") from e


def format_release_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime(RELEASE_DATE_FORMAT)


def validate_link(value: str) -> str:
    """Ensure the link starts with a recognized URL scheme."""
    if not value or not value.strip().lower().startswith(LINK_PREFIXES):
        raise ParsingError(f"invalid link {value!r}")
    return value.strip()


def split_stanzas(text: Optional[str]) -> List[str]:
    """
    Split lyrics into stanzas on blank lines.

    Runs of several blank lines count as a single separator, and an empty
    text has no stanzas at all.
    """
    if not text:
        return []
    normalized = text.replace('\r\n', '\n').strip()
    if not normalized:
        return []
    return [stanza for stanza in STANZA_SEPARATOR.split(normalized) if stanza.strip()]


def _to_positive_int(value, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def normalize_pagination(page=None, limit=None) -> Tuple[int, int]:
    """Invalid or sub-1 values silently fall back to page=1, limit=10."""
    return _to_positive_int(page, DEFAULT_PAGE), _to_positive_int(limit, DEFAULT_LIMIT)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


def paginate(items: Sequence[T], page: int, limit: int) -> List[T]:
    """
    Return one page of items (1-based).

    Raises:
        PageOutOfRangeError: if the page begins at or past the end of items.
    """
    begin = page_offset(page, limit)
    if begin >= len(items):
        raise PageOutOfRangeError(f"page {page} out of range for {len(items)} items")
    return list(items[begin:begin + limit])
