from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from meetball.utils.timefmt import parse_date_key, parse_hhmm

MAX_TITLE_LENGTH = 90
MAX_NAME_LENGTH = 120

DEFAULT_TITLE = "Untitled Meeting"
DEFAULT_RESPONDENT_NAME = "Anonymous"
DEFAULT_TIME_ZONE = "UTC"
DEFAULT_WINDOW_START = "09:00"
DEFAULT_WINDOW_END = "17:00"
DEFAULT_DURATION_MINUTES = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalise_date_keys(value: Optional[Iterable[Any]]) -> List[str]:
    """Drop non-string entries and duplicates, returning keys sorted ascending."""
    if value is None:
        return []
    return sorted({item for item in value if isinstance(item, str)})


def is_valid_time_zone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


class MeetingDraft(BaseModel):
    """Organizer input for a new meeting; validation enforces the window invariant."""

    title: str = Field("", validate_default=True)
    dates: List[str] = Field(default_factory=list, validate_default=True)
    window_start: str = DEFAULT_WINDOW_START
    window_end: str = DEFAULT_WINDOW_END
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    time_zone: Optional[str] = None
    description: str = ""

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, value: Any) -> str:
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise ValueError("Add a meeting name before creating the link.")
        if len(cleaned) > MAX_TITLE_LENGTH:
            raise ValueError(
                f"Meeting name must be {MAX_TITLE_LENGTH} characters or fewer."
            )
        return cleaned

    @field_validator("dates", mode="before")
    @classmethod
    def clean_dates(cls, value: Any) -> List[str]:
        if value is None:
            value = []
        if not isinstance(value, (list, tuple, set)):
            raise ValueError("dates must be a list of YYYY-MM-DD keys")
        keys = set()
        for raw in value:
            key = str(raw).strip()
            if parse_date_key(key) is None:
                raise ValueError(f"Invalid date '{key}'; expected YYYY-MM-DD.")
            keys.add(key)
        if not keys:
            raise ValueError("Pick at least one day on the calendar.")
        return sorted(keys)

    @field_validator("window_start", "window_end")
    @classmethod
    def check_hhmm(cls, value: str) -> str:
        minutes = parse_hhmm(value)
        if minutes is None:
            raise ValueError(f"Invalid time '{value}'; expected HH:MM.")
        return f"{minutes // 60:02d}:{minutes % 60:02d}"

    @field_validator("duration_minutes")
    @classmethod
    def check_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Meeting length must be a positive number of minutes.")
        return value

    @field_validator("time_zone")
    @classmethod
    def check_time_zone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        if not trimmed:
            return None
        if not is_valid_time_zone(trimmed):
            raise ValueError(f"Unknown time zone '{trimmed}'.")
        return trimmed

    @field_validator("description", mode="before")
    @classmethod
    def trim_description(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @model_validator(mode="after")
    def check_window(self) -> "MeetingDraft":
        start = parse_hhmm(self.window_start)
        end = parse_hhmm(self.window_end)
        if end <= start:
            raise ValueError("Meeting window end time must be after the start time.")
        if end - start < self.duration_minutes:
            raise ValueError("Meeting window must be longer than your meeting length.")
        return self


class MeetingDocument(BaseModel):
    """A meeting as persisted by the store, without its responses."""

    slug: str = Field(..., min_length=1, max_length=32)
    title: str = DEFAULT_TITLE
    description: str = ""
    time_zone: str = DEFAULT_TIME_ZONE
    window_start: str = DEFAULT_WINDOW_START
    window_end: str = DEFAULT_WINDOW_END
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    dates: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    owner_device_id: str = ""

    model_config = {"from_attributes": True}

    @field_validator("dates", mode="before")
    @classmethod
    def normalise_dates(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple, set)):
            return []
        return normalise_date_keys(value)

    @field_validator("created_at")
    @classmethod
    def normalise_created_at(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @classmethod
    def from_stored(cls, slug: str, data: Dict[str, Any]) -> "MeetingDocument":
        """Build a document from loosely typed stored data, substituting defaults."""

        def _text(key: str, fallback: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else fallback

        duration = data.get("duration_minutes")
        if isinstance(duration, bool) or not isinstance(duration, int):
            duration = DEFAULT_DURATION_MINUTES
        created_at = data.get("created_at")
        if not isinstance(created_at, (str, datetime)):
            created_at = _now()
        return cls(
            slug=slug,
            title=_text("title", DEFAULT_TITLE),
            description=_text("description", ""),
            time_zone=_text("time_zone", DEFAULT_TIME_ZONE),
            window_start=_text("window_start", DEFAULT_WINDOW_START),
            window_end=_text("window_end", DEFAULT_WINDOW_END),
            duration_minutes=duration,
            dates=data.get("dates"),
            created_at=created_at,
            owner_device_id=_text("owner_device_id", ""),
        )


class ResponseDraft(BaseModel):
    """Participant input confirming availability."""

    name: str = Field("", validate_default=True)
    email: Optional[str] = None
    slot_ids: List[str] = Field(default_factory=list, validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, value: Any) -> str:
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise ValueError("Please add your name to confirm your response.")
        if len(cleaned) > MAX_NAME_LENGTH:
            raise ValueError(f"Name must be {MAX_NAME_LENGTH} characters or fewer.")
        return cleaned

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        cleaned = value.strip().lower()
        return cleaned or None

    @field_validator("slot_ids", mode="before")
    @classmethod
    def clean_slot_ids(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple, set, frozenset)):
            value = []
        cleaned = {str(item).strip() for item in value if str(item).strip()}
        if not cleaned:
            raise ValueError("Select at least one slot before confirming.")
        return sorted(cleaned)


class MeetingResponse(BaseModel):
    """A confirmed participant response, appended to its meeting."""

    id: str = Field(..., min_length=1, max_length=32)
    name: str = DEFAULT_RESPONDENT_NAME
    email: Optional[str] = None
    slot_ids: List[str] = Field(default_factory=list)
    submitted_at: datetime = Field(default_factory=_now)
    device_id: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_absent(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value:
            return value
        return None

    @field_validator("slot_ids", mode="before")
    @classmethod
    def keep_string_slot_ids(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, str)]

    @field_validator("submitted_at")
    @classmethod
    def normalise_submitted_at(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @classmethod
    def from_stored(cls, response_id: str, data: Dict[str, Any]) -> "MeetingResponse":
        stored_id = data.get("id")
        name = data.get("name")
        submitted_at = data.get("submitted_at")
        device_id = data.get("device_id")
        return cls(
            id=stored_id if isinstance(stored_id, str) and stored_id else response_id,
            name=name if isinstance(name, str) else DEFAULT_RESPONDENT_NAME,
            email=data.get("email"),
            slot_ids=data.get("slot_ids"),
            submitted_at=(
                submitted_at if isinstance(submitted_at, (str, datetime)) else _now()
            ),
            device_id=device_id if isinstance(device_id, str) else "",
        )


class Meeting(MeetingDocument):
    """A meeting document together with its responses in submission order."""

    responses: List[MeetingResponse] = Field(default_factory=list)

    @classmethod
    def assemble(
        cls, document: MeetingDocument, responses: Iterable[MeetingResponse]
    ) -> "Meeting":
        return cls(**document.model_dump(), responses=list(responses))


class MeetingExistsResponse(BaseModel):
    slug: str
    exists: bool
