from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from meetball.schemas.meeting import (
    Meeting,
    MeetingDocument,
    MeetingDraft,
    MeetingResponse,
    ResponseDraft,
)
from meetball.services.errors import first_validation_message


def _draft(**overrides):
    payload = {
        "title": "Team sync",
        "dates": ["2025-03-10"],
        "window_start": "09:00",
        "window_end": "10:00",
        "duration_minutes": 30,
    }
    payload.update(overrides)
    return MeetingDraft(**payload)


def _message(callable_, **overrides):
    with pytest.raises(ValidationError) as exc_info:
        callable_(**overrides)
    return first_validation_message(exc_info.value)


def test_meeting_draft_normalises_fields():
    draft = _draft(
        title="  Team sync  ",
        dates=["2025-03-12", "2025-03-10", "2025-03-12"],
        window_start="9:05",
        description="  agenda  ",
        time_zone=" Europe/Berlin ",
    )

    assert draft.title == "Team sync"
    assert draft.dates == ["2025-03-10", "2025-03-12"]
    assert draft.window_start == "09:05"
    assert draft.description == "agenda"
    assert draft.time_zone == "Europe/Berlin"


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"title": "   "}, "Add a meeting name before creating the link."),
        ({"title": None}, "Add a meeting name before creating the link."),
        ({"dates": []}, "Pick at least one day on the calendar."),
        ({"window_end": "09:00"}, "Meeting window end time must be after the start time."),
        ({"window_end": "08:00"}, "Meeting window end time must be after the start time."),
        (
            {"window_end": "09:20", "duration_minutes": 30},
            "Meeting window must be longer than your meeting length.",
        ),
    ],
)
def test_meeting_draft_messages(overrides, expected):
    assert _message(_draft, **overrides) == expected


def test_meeting_draft_without_dates_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        MeetingDraft(title="Team sync")

    assert first_validation_message(exc_info.value) == "Pick at least one day on the calendar."


@pytest.mark.parametrize(
    "overrides",
    [
        {"dates": ["2025-13-01"]},
        {"window_start": "25:00"},
        {"window_end": "nine"},
        {"duration_minutes": 0},
        {"time_zone": "Mars/Olympus_Mons"},
        {"title": "x" * 91},
    ],
)
def test_meeting_draft_rejects_bad_fields(overrides):
    with pytest.raises(ValidationError):
        _draft(**overrides)


def test_window_exactly_one_duration_is_allowed():
    draft = _draft(window_end="09:30", duration_minutes=30)

    assert draft.window_end == "09:30"


def test_response_draft_normalises_fields():
    draft = ResponseDraft(
        name="  Ada ",
        email="  Ada@Example.COM ",
        slot_ids=["2025-03-10-570", "2025-03-10-540", "2025-03-10-570"],
    )

    assert draft.name == "Ada"
    assert draft.email == "ada@example.com"
    assert draft.slot_ids == ["2025-03-10-540", "2025-03-10-570"]


def test_response_draft_blank_email_is_absent():
    draft = ResponseDraft(name="Ada", email="   ", slot_ids=["2025-03-10-540"])

    assert draft.email is None


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"name": " ", "slot_ids": ["a"]}, "Please add your name to confirm your response."),
        ({"name": "Ada", "slot_ids": []}, "Select at least one slot before confirming."),
        ({"name": "Ada"}, "Select at least one slot before confirming."),
    ],
)
def test_response_draft_messages(payload, expected):
    assert _message(ResponseDraft, **payload) == expected


def test_stored_meeting_gets_defaults_for_missing_fields():
    document = MeetingDocument.from_stored("abc", {"dates": "not-a-list", "duration_minutes": "45"})

    assert document.slug == "abc"
    assert document.title == "Untitled Meeting"
    assert document.time_zone == "UTC"
    assert document.window_start == "09:00"
    assert document.window_end == "17:00"
    assert document.duration_minutes == 30
    assert document.dates == []
    assert document.created_at.tzinfo is not None


def test_stored_meeting_keeps_string_dates_only():
    document = MeetingDocument.from_stored(
        "abc",
        {
            "title": "Planning",
            "dates": ["2025-03-11", 7, None, "2025-03-10", "2025-03-11"],
            "created_at": "2025-03-01T10:00:00",
        },
    )

    assert document.title == "Planning"
    assert document.dates == ["2025-03-10", "2025-03-11"]
    assert document.created_at == datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def test_stored_response_gets_defaults():
    response = MeetingResponse.from_stored(
        "resp1",
        {"name": 12, "email": "", "slot_ids": ["a", 3, "b"], "device_id": None},
    )

    assert response.id == "resp1"
    assert response.name == "Anonymous"
    assert response.email is None
    assert response.slot_ids == ["a", "b"]
    assert response.device_id == ""


def test_stored_response_prefers_embedded_id():
    response = MeetingResponse.from_stored("key", {"id": "embedded", "slot_ids": None})

    assert response.id == "embedded"
    assert response.slot_ids == []


def test_meeting_assembles_document_and_responses():
    document = MeetingDocument(slug="abc", title="Planning", dates=["2025-03-10"])
    response = MeetingResponse(id="r1", name="Ada", slot_ids=["2025-03-10-540"])

    meeting = Meeting.assemble(document, [response])

    assert meeting.responses == [response]
    assert meeting.model_dump(exclude={"responses"}) == document.model_dump()


def test_missing_title_key_gets_the_form_message():
    with pytest.raises(ValidationError) as exc_info:
        MeetingDraft(dates=["2025-03-10"])

    assert first_validation_message(exc_info.value) == "Add a meeting name before creating the link."


def test_missing_name_key_gets_the_form_message():
    with pytest.raises(ValidationError) as exc_info:
        ResponseDraft(slot_ids=["2025-03-10-540"])

    assert (
        first_validation_message(exc_info.value)
        == "Please add your name to confirm your response."
    )
