"""
Keyset (cursor) pagination over a driver's trips.

Trips are totally ordered by (trip_date DESC, trip_id DESC): trip_date alone
is not unique, trip_id breaks ties. A cursor is the order key of the last
trip on the previous page, and the next page is everything strictly after it:

    trip_date < cursor_date OR (trip_date = cursor_date AND trip_id < cursor_id)

Because the predicate is positional rather than an OFFSET, trips inserted with
later dates between two page fetches never shift the next page, and a cursor
whose trip has since been deleted still resolves.

Each page fetches ``limit + 1`` rows; the extra row only signals that another
page exists and is never returned.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

from driver_analytics.domain.models import CursorPayload
from driver_analytics.errors import InvalidRequestError
from driver_analytics.infrastructure.gateway import DataGateway, Row

DEFAULT_PAGE_LIMIT = 100

_PAGE_SELECT = """
    SELECT
        t.trip_id,
        t.start_location,
        t.end_location,
        t.trip_date,
        p.amount,
        p.payment_date,
        r.rating_value,
        r.comment
    FROM trips t
    LEFT JOIN payments p ON t.trip_id = p.trip_id
    LEFT JOIN ratings r ON t.trip_id = r.trip_id
    WHERE t.driver_id = %s
"""
_KEYSET_PREDICATE = "AND (t.trip_date < %s OR (t.trip_date = %s AND t.trip_id < %s))"
_PAGE_ORDER = "ORDER BY t.trip_date DESC, t.trip_id DESC LIMIT %s"


@dataclass(frozen=True)
class Cursor:
    """Order key of the last trip on the previous page."""

    cursor_date: date
    cursor_id: int

    def as_payload(self) -> CursorPayload:
        return CursorPayload(cursor_date=self.cursor_date, cursor_id=self.cursor_id)


@dataclass(frozen=True)
class TripPage:
    rows: List[Row] = field(default_factory=list)
    limit: int = DEFAULT_PAGE_LIMIT
    has_next_page: bool = False
    next_cursor: Optional[Cursor] = None


def parse_limit(
    raw: Any,
    default: int = DEFAULT_PAGE_LIMIT,
    maximum: Optional[int] = None,
) -> int:
    """
    Coerce a query-string ``limit`` into a page size.

    Missing, blank or non-numeric values fall back to ``default``. Negative
    and non-finite values (``inf``, ``nan``) are rejected. Fractions truncate.
    Values above ``maximum`` are clamped to it. Zero is allowed and yields an
    empty page.

    Raises
    ------
    InvalidRequestError
        If the value is negative or not finite.
    """
    if raw is None or isinstance(raw, bool):
        return default
    text = str(raw).strip()
    if not text:
        return default
    try:
        value = float(text)
    except ValueError:
        return default

    if not math.isfinite(value):
        raise InvalidRequestError("limit must be a finite number")
    if value < 0:
        raise InvalidRequestError("limit must not be negative")

    limit = int(value)
    if maximum is not None and limit > maximum:
        limit = maximum
    return limit


def _parse_cursor_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise InvalidRequestError(f"cursor_date is not a valid date: {text!r}") from None


def _parse_cursor_id(raw: Any) -> int:
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidRequestError(f"cursor_id is not an integer: {raw!r}") from None
    if value <= 0:
        raise InvalidRequestError("cursor_id must be a positive integer")
    return value


def parse_cursor(cursor_date: Any, cursor_id: Any) -> Optional[Cursor]:
    """
    Build a cursor from the two query-string values.

    Both must be supplied together; neither means "first page".

    Raises
    ------
    InvalidRequestError
        If only one half is supplied or either half is malformed.
    """
    has_date = cursor_date is not None and str(cursor_date).strip() != ""
    has_id = cursor_id is not None and str(cursor_id).strip() != ""
    if not has_date and not has_id:
        return None
    if has_date != has_id:
        raise InvalidRequestError("cursor_date and cursor_id must be supplied together")
    return Cursor(cursor_date=_parse_cursor_date(cursor_date), cursor_id=_parse_cursor_id(cursor_id))


def build_page_query(
    driver_id: int, limit: int, cursor: Optional[Cursor] = None
) -> Tuple[str, Tuple[Any, ...]]:
    """Return the SQL and parameters fetching ``limit + 1`` trips after ``cursor``."""
    params: List[Any] = [driver_id]
    parts = [_PAGE_SELECT]
    if cursor is not None:
        parts.append(_KEYSET_PREDICATE)
        params.extend([cursor.cursor_date, cursor.cursor_date, cursor.cursor_id])
    parts.append(_PAGE_ORDER)
    params.append(limit + 1)
    return "\n".join(parts), tuple(params)


def paginate_rows(rows: List[Row], limit: int) -> TripPage:
    """
    Turn up to ``limit + 1`` ordered rows into a page.

    The continuation cursor is the order key of the last kept row, so a
    zero-sized page reports ``has_next_page`` but carries no cursor.
    """
    has_next_page = len(rows) > limit
    kept = rows[:limit] if has_next_page else list(rows)

    next_cursor: Optional[Cursor] = None
    if has_next_page and kept:
        last = kept[-1]
        next_cursor = Cursor(cursor_date=last["trip_date"], cursor_id=last["trip_id"])

    return TripPage(rows=kept, limit=limit, has_next_page=has_next_page, next_cursor=next_cursor)


async def fetch_trip_page(
    gateway: DataGateway,
    driver_id: int,
    limit: int,
    cursor: Optional[Cursor] = None,
) -> TripPage:
    """Fetch one page of a driver's trips in (trip_date DESC, trip_id DESC) order."""
    sql, params = build_page_query(driver_id, limit, cursor)
    rows = await gateway.execute(sql, params)
    return paginate_rows(rows, limit)


__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "Cursor",
    "TripPage",
    "build_page_query",
    "fetch_trip_page",
    "paginate_rows",
    "parse_cursor",
    "parse_limit",
]
