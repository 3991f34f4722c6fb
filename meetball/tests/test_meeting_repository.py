from datetime import datetime, timedelta, timezone

import pytest

from meetball.data.meeting_repository import MeetingRepository
from meetball.schemas.meeting import MeetingDocument, MeetingResponse
from meetball.services.errors import MeetingAlreadyExistsError, MeetingNotFoundError

SUBMITTED = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _document(slug="k3y9m2p8q1", **overrides):
    values = {
        "slug": slug,
        "title": "Team sync",
        "dates": ["2025-03-11", "2025-03-10"],
        "window_start": "09:00",
        "window_end": "12:00",
        "duration_minutes": 30,
        "time_zone": "Europe/Berlin",
        "owner_device_id": "ownerdevice001",
    }
    values.update(overrides)
    return MeetingDocument(**values)


def _response(response_id, minutes=0, slot_ids=("2025-03-10-540",), name=None):
    return MeetingResponse(
        id=response_id,
        name=name or response_id,
        slot_ids=list(slot_ids),
        submitted_at=SUBMITTED + timedelta(minutes=minutes),
        device_id="device",
    )


def test_create_and_get_meeting(db_session):
    repository = MeetingRepository(db_session)

    created = repository.create_meeting(_document())
    fetched = repository.get_meeting("k3y9m2p8q1")

    assert created.slug == "k3y9m2p8q1"
    assert fetched is not None
    assert fetched.title == "Team sync"
    assert fetched.dates == ["2025-03-10", "2025-03-11"]
    assert fetched.time_zone == "Europe/Berlin"
    assert fetched.owner_device_id == "ownerdevice001"
    assert fetched.created_at.tzinfo is not None


def test_missing_meeting(db_session):
    repository = MeetingRepository(db_session)

    assert repository.get_meeting("nope") is None
    assert repository.meeting_exists("nope") is False
    assert repository.list_responses("nope") == []


def test_meeting_exists_after_create(db_session):
    repository = MeetingRepository(db_session)
    repository.create_meeting(_document())

    assert repository.meeting_exists("k3y9m2p8q1") is True


def test_create_rejects_taken_slug(db_session):
    repository = MeetingRepository(db_session)
    repository.create_meeting(_document())

    with pytest.raises(MeetingAlreadyExistsError) as exc_info:
        repository.create_meeting(_document(title="Other"))

    assert exc_info.value.slug == "k3y9m2p8q1"
    assert repository.get_meeting("k3y9m2p8q1").title == "Team sync"


def test_responses_are_listed_in_submission_order(db_session):
    repository = MeetingRepository(db_session)
    repository.create_meeting(_document())

    repository.add_response("k3y9m2p8q1", _response("late", minutes=10))
    repository.add_response("k3y9m2p8q1", _response("early", minutes=0))
    repository.add_response("k3y9m2p8q1", _response("tie_a", minutes=5))
    repository.add_response("k3y9m2p8q1", _response("tie_b", minutes=5))

    ids = [response.id for response in repository.list_responses("k3y9m2p8q1")]
    assert ids == ["early", "tie_a", "tie_b", "late"]


def test_add_response_to_missing_meeting(db_session):
    repository = MeetingRepository(db_session)

    with pytest.raises(MeetingNotFoundError):
        repository.add_response("nope", _response("r1"))


def test_add_response_overwrites_same_id(db_session):
    repository = MeetingRepository(db_session)
    repository.create_meeting(_document())

    repository.add_response("k3y9m2p8q1", _response("r1", name="First"))
    stored = repository.add_response(
        "k3y9m2p8q1",
        _response("r1", minutes=3, slot_ids=("2025-03-10-600", "2025-03-10-570"), name="Second"),
    )

    responses = repository.list_responses("k3y9m2p8q1")
    assert len(responses) == 1
    assert stored.name == "Second"
    assert responses[0].slot_ids == ["2025-03-10-570", "2025-03-10-600"]


def test_response_fields_round_trip(db_session):
    repository = MeetingRepository(db_session)
    repository.create_meeting(_document())
    response = MeetingResponse(
        id="r1",
        name="Ada",
        email="ada@example.com",
        slot_ids=["2025-03-10-540"],
        submitted_at=SUBMITTED,
        device_id="adadevice00001",
    )

    repository.add_response("k3y9m2p8q1", response)

    assert repository.list_responses("k3y9m2p8q1") == [response]
