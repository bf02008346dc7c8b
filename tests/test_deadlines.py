from __future__ import annotations

from datetime import date, datetime

import pytest

from scholarmatch.deadlines import (
    DEADLINE_PARSERS,
    UNKNOWN_DEADLINE_DAYS,
    count_urgent_scholarships,
    days_until_deadline,
    deadline_status,
    format_deadline_display,
    parse_deadline,
)

TODAY = date(2026, 3, 1)


@pytest.mark.parametrize(
    "deadline",
    ["2026-03-15", "15/03/2026", "March 15, 2026", "Mar 15 2026", "2026-03-15T18:30:00Z"],
)
def test_supported_formats_give_the_same_day_count(deadline: str) -> None:
    assert days_until_deadline(deadline, TODAY) == 14


def test_parsers_are_tried_in_order() -> None:
    assert [parser.__name__ for parser in DEADLINE_PARSERS] == [
        "_parse_native",
        "_parse_day_month_year",
        "_parse_month_day_year",
    ]


@pytest.mark.parametrize("deadline", ["", "rolling", "31/02/2026", "Smarch 3, 2026", None])
def test_unparsable_deadline_uses_far_sentinel(deadline: str | None) -> None:
    assert parse_deadline(deadline) is None
    assert days_until_deadline(deadline, TODAY) == UNKNOWN_DEADLINE_DAYS
    assert deadline_status(deadline, TODAY) == "open"


def test_parse_deadline_accepts_date_objects() -> None:
    assert parse_deadline(date(2026, 1, 2)) == date(2026, 1, 2)
    assert parse_deadline(datetime(2026, 1, 2, 23, 59)) == date(2026, 1, 2)


@pytest.mark.parametrize(
    ("deadline", "expected"),
    [
        ("2026-02-28", "closed"),
        ("2026-03-01", "urgent"),
        ("2026-03-04", "urgent"),
        ("2026-03-05", "closing"),
        ("2026-03-15", "closing"),
        ("2026-03-16", "open"),
    ],
)
def test_deadline_status_buckets(deadline: str, expected: str) -> None:
    assert deadline_status(deadline, TODAY) == expected


@pytest.mark.parametrize(
    ("deadline", "expected"),
    [
        ("2026-02-20", "Closed"),
        ("2026-03-01", "Today!"),
        ("2026-03-02", "1 day left"),
        ("2026-03-06", "5 days left"),
        ("2026-03-15", "~2 weeks left"),
        ("2026-06-01", "2026-06-01"),
    ],
)
def test_format_deadline_display(deadline: str, expected: str) -> None:
    assert format_deadline_display(deadline, TODAY) == expected


def test_count_urgent_scholarships_includes_today_and_next_week() -> None:
    deadlines = ["2026-02-27", "2026-03-01", "2026-03-08", "2026-03-09", "unknown"]

    assert count_urgent_scholarships(deadlines, TODAY) == 2
