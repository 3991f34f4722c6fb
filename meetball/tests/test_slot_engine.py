from types import SimpleNamespace

import pytest

from meetball.schemas.meeting import MeetingDocument
from meetball.services.slot_engine import (
    SlotDefinition,
    build_slots,
    group_slots_by_date,
    slot_label,
)


def _meeting(**overrides):
    values = {
        "window_start": "09:00",
        "window_end": "10:00",
        "duration_minutes": 30,
        "dates": ["2025-03-10"],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_single_day_hour_window_yields_two_half_hour_slots():
    slots = build_slots(_meeting())

    assert slots == [
        SlotDefinition(id="2025-03-10-540", date_key="2025-03-10", start_minutes=540, end_minutes=570),
        SlotDefinition(id="2025-03-10-570", date_key="2025-03-10", start_minutes=570, end_minutes=600),
    ]


@pytest.mark.parametrize(
    "window_start,window_end,duration,expected_per_day",
    [
        ("09:00", "17:00", 30, 16),
        ("09:00", "17:00", 45, 10),
        ("08:15", "09:00", 15, 3),
        ("00:00", "23:59", 60, 23),
        ("10:00", "10:50", 50, 1),
    ],
)
def test_slot_count_per_day_is_window_divided_by_duration(
    window_start, window_end, duration, expected_per_day
):
    meeting = _meeting(
        window_start=window_start,
        window_end=window_end,
        duration_minutes=duration,
        dates=["2025-03-11", "2025-03-10"],
    )
    slots = build_slots(meeting)
    grouped = group_slots_by_date(slots)

    assert list(grouped) == ["2025-03-10", "2025-03-11"]
    for day_slots in grouped.values():
        assert len(day_slots) == expected_per_day
        assert day_slots[0].start_minutes == int(window_start[:2]) * 60 + int(window_start[3:])
        for earlier, later in zip(day_slots, day_slots[1:]):
            assert earlier.end_minutes == later.start_minutes
        assert all(slot.end_minutes - slot.start_minutes == duration for slot in day_slots)


def test_dates_are_walked_in_ascending_order():
    slots = build_slots(_meeting(dates=["2025-04-02", "2025-03-30", "2025-04-01"]))

    assert [slot.date_key for slot in slots] == [
        "2025-03-30",
        "2025-03-30",
        "2025-04-01",
        "2025-04-01",
        "2025-04-02",
        "2025-04-02",
    ]


def test_build_slots_is_deterministic():
    meeting = _meeting(window_end="12:00", dates=["2025-03-12", "2025-03-10"])

    assert build_slots(meeting) == build_slots(meeting)
    assert [slot.id for slot in build_slots(meeting)] == [
        slot.id for slot in build_slots(_meeting(window_end="12:00", dates=["2025-03-10", "2025-03-12"]))
    ]


@pytest.mark.parametrize(
    "overrides",
    [
        {"window_start": "10:00", "window_end": "10:00"},
        {"window_start": "11:00", "window_end": "10:00"},
        {"duration_minutes": 0},
        {"duration_minutes": -15},
    ],
)
def test_degenerate_window_or_duration_yields_no_slots(overrides):
    assert build_slots(_meeting(**overrides)) == []


def test_window_shorter_than_duration_yields_no_slots():
    assert build_slots(_meeting(window_end="09:20")) == []


def test_no_dates_yields_no_slots():
    assert build_slots(_meeting(dates=[])) == []


def test_unparseable_time_counts_as_midnight():
    slots = build_slots(_meeting(window_start="garbage", window_end="01:00", duration_minutes=30))

    assert [slot.id for slot in slots] == ["2025-03-10-0", "2025-03-10-30"]


def test_accepts_meeting_documents():
    document = MeetingDocument(slug="abc", dates=["2025-03-10"], window_start="09:00", window_end="09:30")

    assert [slot.id for slot in build_slots(document)] == ["2025-03-10-540"]


def test_slot_label_uses_twelve_hour_clock():
    slot = SlotDefinition(id="2025-03-10-720", date_key="2025-03-10", start_minutes=720, end_minutes=765)

    assert slot_label(slot) == "12:00 PM - 12:45 PM"
