"""Date-range helpers for the report CLIs."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable

# Date-range presets used by the CLIs (key → label + generator)
PRESET_RANGES: dict[str, tuple[str, Callable[[date], tuple[date, date]]]] = {
    "mtd": ("Month-to-Date", lambda today: (today.replace(day=1), today - timedelta(days=1))),
    "ytd": ("Year-to-Date",  lambda today: (today.replace(month=1, day=1), today - timedelta(days=1))),
    "l7":  ("Last 7 Days",   lambda today: (today - timedelta(days=7),  today - timedelta(days=1))),
    "l30": ("Last 30 Days",  lambda today: (today - timedelta(days=30), today - timedelta(days=1))),
    # Full previous calendar month
    "last-month": ("Last Month", lambda today: (
        (today.replace(day=1) - timedelta(days=1)).replace(day=1),
        (today.replace(day=1) - timedelta(days=1))
    )),
}


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``; raise ``ValueError`` with the offending value."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date {value!r}; use YYYY-MM-DD") from None


def resolve_range(start: str | None, end: str | None, preset: str | None,
                  today: date | None = None) -> tuple[date, date]:
    """Resolve CLI date arguments into an inclusive ``(start, end)`` pair.

    Explicit ``start``/``end`` win over ``preset``; with neither, the last 30
    days are used.
    """
    today = today or date.today()
    if start or end:
        if not (start and end):
            raise ValueError("--start and --end must be given together")
        rng = (parse_date(start), parse_date(end))
    else:
        key = preset or "l30"
        if key not in PRESET_RANGES:
            raise ValueError(f"Unknown preset {key!r}; choose from {', '.join(PRESET_RANGES)}")
        rng = PRESET_RANGES[key][1](today)
    if rng[0] > rng[1]:
        raise ValueError("start must be <= end")
    return rng


def add_date_args(p) -> None:
    """Attach the shared ``--start/--end/--preset`` options to an ArgumentParser."""
    p.add_argument("--start", default=None, help="Start date (YYYY-MM-DD)")
    p.add_argument("--end", default=None, help="End date (YYYY-MM-DD)")
    p.add_argument("--preset", default=None, choices=sorted(PRESET_RANGES),
                   help="Named date range (default: l30 when no --start/--end)")
