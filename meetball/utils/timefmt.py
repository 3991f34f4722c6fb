from __future__ import annotations

import re
from datetime import date
from typing import List, Optional, Tuple

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """Return the minute-of-day for a strict ``HH:MM`` string, or None."""
    if not isinstance(value, str):
        return None
    match = _HHMM_RE.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def time_to_minutes(value: Optional[str]) -> int:
    """
    Lenient ``HH:MM`` to minute-of-day conversion used on stored documents.

    Only the first two colon-separated fields count, and an empty field reads
    as zero, so ``"9:"`` is 540 and ``"09:00:00"`` is 540. A value without a
    colon or with a non-numeric field counts as midnight.
    """
    if not isinstance(value, str):
        return 0
    parts = value.split(":")
    if len(parts) < 2:
        return 0
    try:
        hours, minutes = (int(part.strip() or "0") for part in parts[:2])
    except ValueError:
        return 0
    return hours * 60 + minutes


def minutes_to_hhmm(total_minutes: int) -> str:
    safe = max(0, min(MINUTES_PER_DAY - 1, int(total_minutes)))
    return f"{safe // 60:02d}:{safe % 60:02d}"


def format_minutes(total_minutes: int) -> str:
    """Render a minute offset as a 12-hour clock label, e.g. ``9:30 AM``."""
    safe = max(0, int(total_minutes))
    hour24 = safe // 60
    minutes = safe % 60
    suffix = "PM" if hour24 >= 12 else "AM"
    hour12 = hour24 % 12 or 12
    return f"{hour12}:{minutes:02d} {suffix}"


def build_time_options(step_minutes: int = 30) -> List[Tuple[str, str]]:
    """Return ``(HH:MM, label)`` pairs covering one day at the given step."""
    step = max(5, int(step_minutes))
    return [
        (minutes_to_hhmm(total), format_minutes(total))
        for total in range(0, MINUTES_PER_DAY, step)
    ]


def parse_date_key(value: Optional[str]) -> Optional[date]:
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def format_day_label(date_key: str) -> str:
    """``2025-03-10`` -> ``Mon, Mar 10``; unparseable keys are returned as-is."""
    parsed = parse_date_key(date_key)
    if parsed is None:
        return date_key
    return f"{parsed:%a}, {parsed:%b} {parsed.day}"
