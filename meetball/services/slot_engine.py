from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol, Sequence

from ..utils.timefmt import format_minutes, time_to_minutes


class SlotSource(Protocol):
    window_start: str
    window_end: str
    duration_minutes: int
    dates: Sequence[str]


@dataclass(frozen=True)
class SlotDefinition:
    id: str
    date_key: str
    start_minutes: int
    end_minutes: int


def slot_id(date_key: str, start_minutes: int) -> str:
    return f"{date_key}-{start_minutes}"


def build_slots(meeting: SlotSource) -> List[SlotDefinition]:
    """
    Expand a meeting's window into fixed-length slots, date by date.

    Dates are walked in ascending order and each day yields back-to-back slots
    from the window start while a full slot still fits before the window end.
    A window that is empty or inverted, or a non-positive duration, yields
    no slots.
    """
    start = time_to_minutes(meeting.window_start)
    end = time_to_minutes(meeting.window_end)
    duration = meeting.duration_minutes
    if end <= start or duration <= 0:
        return []

    slots: List[SlotDefinition] = []
    for date_key in sorted(meeting.dates):
        cursor = start
        while cursor + duration <= end:
            slots.append(
                SlotDefinition(
                    id=slot_id(date_key, cursor),
                    date_key=date_key,
                    start_minutes=cursor,
                    end_minutes=cursor + duration,
                )
            )
            cursor += duration
    return slots


def group_slots_by_date(slots: Sequence[SlotDefinition]) -> Dict[str, List[SlotDefinition]]:
    grouped: Dict[str, List[SlotDefinition]] = {}
    for slot in slots:
        grouped.setdefault(slot.date_key, []).append(slot)
    return grouped


def slot_label(slot: SlotDefinition) -> str:
    return f"{format_minutes(slot.start_minutes)} - {format_minutes(slot.end_minutes)}"
