from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Callable, Final, Iterable, Literal

logger = logging.getLogger(__name__)

UNKNOWN_DEADLINE_DAYS: Final[int] = 999
URGENT_MAX_DAYS: Final[int] = 3
CLOSING_MAX_DAYS: Final[int] = 14
URGENT_COUNT_MAX_DAYS: Final[int] = 7

DeadlineStatus = Literal["urgent", "closing", "open", "closed"]

_DD_MM_YYYY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_MONTH_D_YYYY = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_MONTHS: Final[dict[str, int]] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
_MONTHS.update({name[:3]: number for name, number in list(_MONTHS.items())})
_MONTHS["sept"] = 9


def _parse_native(text: str) -> date | None:
    candidate = text.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _parse_day_month_year(text: str) -> date | None:
    match = _DD_MM_YYYY.match(text)
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_month_day_year(text: str) -> date | None:
    match = _MONTH_D_YYYY.match(text)
    if match is None:
        return None
    month = _MONTHS.get(match.group(1).lower())
    if month is None:
        return None
    try:
        return date(int(match.group(3)), month, int(match.group(2)))
    except ValueError:
        return None


DEADLINE_PARSERS: Final[tuple[Callable[[str], date | None], ...]] = (
    _parse_native,
    _parse_day_month_year,
    _parse_month_day_year,
)


def parse_deadline(deadline: str | date | None) -> date | None:
    if deadline is None:
        return None
    if isinstance(deadline, datetime):
        return deadline.date()
    if isinstance(deadline, date):
        return deadline

    text = deadline.strip()
    if not text:
        return None
    for parser in DEADLINE_PARSERS:
        parsed = parser(text)
        if parsed is not None:
            return parsed
    logger.debug(
        "Unparsable deadline %r; treating as %d days out.", deadline, UNKNOWN_DEADLINE_DAYS
    )
    return None


def days_until_deadline(deadline: str | date | None, today: date | None = None) -> int:
    parsed = parse_deadline(deadline)
    if parsed is None:
        return UNKNOWN_DEADLINE_DAYS
    effective_today = today or date.today()
    return (parsed - effective_today).days


def deadline_status(deadline: str | date | None, today: date | None = None) -> DeadlineStatus:
    days = days_until_deadline(deadline, today)
    if days < 0:
        return "closed"
    if days <= URGENT_MAX_DAYS:
        return "urgent"
    if days <= CLOSING_MAX_DAYS:
        return "closing"
    return "open"


def format_deadline_display(deadline: str, today: date | None = None) -> str:
    days = days_until_deadline(deadline, today)
    if days < 0:
        return "Closed"
    if days == 0:
        return "Today!"
    if days == 1:
        return "1 day left"
    if days <= 7:
        return f"{days} days left"
    if days <= 30:
        weeks = days // 7
        if weeks == 1:
            return "~1 week left"
        return f"~{weeks} weeks left"
    return deadline


def count_urgent_scholarships(deadlines: Iterable[str], today: date | None = None) -> int:
    """Count deadlines that fall within the next week, today included."""
    count = 0
    for deadline in deadlines:
        days = days_until_deadline(deadline, today)
        if 0 <= days <= URGENT_COUNT_MAX_DAYS:
            count += 1
    return count
