"""
Utility functions for tensionchart.
"""

from datetime import date, datetime
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

DATE_FORMATS = [
    "%Y-%m-%d",      # YYYY-MM-DD (ISO 8601)
    "%Y/%m/%d",      # YYYY/MM/DD
    "%d/%m/%Y",      # DD/MM/YYYY
    "%Y%m%d",        # YYYYMMDD
    "%d %B %Y",      # DD Month YYYY (e.g., 31 December 2024)
    "%B %d, %Y",     # Month DD, YYYY (e.g., December 31, 2024)
]


def parse_date(date_string: str) -> Optional[date]:
    """
    Parse a date string using multiple supported formats.

    Args:
        date_string: The date string to parse.

    Returns:
        A date if parsing succeeds, None otherwise.

    Examples:
        >>> parse_date("2024-12-31")  # ISO 8601
        >>> parse_date("31/12/2024")  # DD/MM/YYYY
        >>> parse_date("December 31, 2024")  # Month DD, YYYY
    """
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_string.strip(), fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: Optional[date]) -> str:
    """Format a date as YYYY-MM-DD, or an empty string."""
    return value.strftime("%Y-%m-%d") if value else ""


def _order_key(item) -> int:
    return getattr(item, "sort_order", 0) or 0


def split_items_by_date(
    items: Sequence[T],
    get_date: Callable[[T], Optional[date]] = lambda item: getattr(item, "due_date", None),
    descending: bool = False,
) -> Tuple[List[T], List[T]]:
    """
    Split items into a dated bucket and an undated bucket.

    Dated items are ordered strictly by date (ties keep their input order);
    undated items by sort_order. The two buckets are never compared.

    Returns:
        (dated_items, undated_items)
    """
    dated = sorted(
        (item for item in items if get_date(item) is not None),
        key=lambda item: get_date(item),
        reverse=descending,
    )
    undated = sorted(
        (item for item in items if get_date(item) is None),
        key=_order_key,
    )
    return dated, undated


def item_label(item, max_length: int = 40) -> str:
    """Short display text of any store item: its title, name or content."""
    text = (
        getattr(item, "title", None)
        or getattr(item, "name", None)
        or getattr(item, "content", None)
        or item.id
    )
    text = " ".join(str(text).split())
    if len(text) > max_length:
        return text[: max_length - 1] + "…"
    return text
