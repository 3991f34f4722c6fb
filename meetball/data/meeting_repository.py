import logging
from typing import List, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.meeting import Meeting, MeetingResponseRecord
from ..schemas.meeting import MeetingDocument, MeetingResponse
from ..services.errors import MeetingAlreadyExistsError, MeetingNotFoundError

logger = logging.getLogger(__name__)


class MeetingRepository:
    """Keyed-document persistence for meetings and their responses using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ #
    # Conversions
    # ------------------------------------------------------------------ #

    @staticmethod
    def _to_document(meeting: Meeting) -> MeetingDocument:
        return MeetingDocument.from_stored(
            meeting.slug,
            {
                "title": meeting.title,
                "description": meeting.description,
                "time_zone": meeting.time_zone,
                "window_start": meeting.window_start,
                "window_end": meeting.window_end,
                "duration_minutes": meeting.duration_minutes,
                "dates": meeting.dates,
                "created_at": meeting.created_at,
                "owner_device_id": meeting.owner_device_id,
            },
        )

    @staticmethod
    def _to_response(record: MeetingResponseRecord) -> MeetingResponse:
        return MeetingResponse.from_stored(
            record.response_id,
            {
                "id": record.response_id,
                "name": record.name,
                "email": record.email,
                "slot_ids": record.slot_ids,
                "submitted_at": record.submitted_at,
                "device_id": record.device_id,
            },
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_meeting(self, slug: str) -> Optional[MeetingDocument]:
        meeting = self.db.get(Meeting, slug)
        if meeting is None:
            return None
        return self._to_document(meeting)

    def meeting_exists(self, slug: str) -> bool:
        return (
            self.db.query(Meeting.slug).filter(Meeting.slug == slug).first()
            is not None
        )

    def list_responses(self, slug: str) -> List[MeetingResponse]:
        """Return the meeting's responses in submission order."""
        records = (
            self.db.query(MeetingResponseRecord)
            .filter(MeetingResponseRecord.meeting_slug == slug)
            .order_by(
                MeetingResponseRecord.submitted_at.asc(),
                MeetingResponseRecord.row_id.asc(),
            )
            .all()
        )
        return [self._to_response(record) for record in records]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def create_meeting(self, document: MeetingDocument) -> MeetingDocument:
        if self.meeting_exists(document.slug):
            raise MeetingAlreadyExistsError(document.slug)

        meeting = Meeting(
            slug=document.slug,
            title=document.title,
            description=document.description,
            time_zone=document.time_zone,
            window_start=document.window_start,
            window_end=document.window_end,
            duration_minutes=document.duration_minutes,
            dates=sorted(set(document.dates)),
            created_at=document.created_at,
            owner_device_id=document.owner_device_id,
        )
        self.db.add(meeting)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost the race between the existence check and the insert.
            self.db.rollback()
            raise MeetingAlreadyExistsError(document.slug) from exc
        self.db.refresh(meeting)
        logger.info("Created meeting %s", meeting.slug)
        return self._to_document(meeting)

    def add_response(self, slug: str, response: MeetingResponse) -> MeetingResponse:
        """Append a response; an existing response id is overwritten (last write wins)."""
        if not self.meeting_exists(slug):
            raise MeetingNotFoundError(slug)

        record = (
            self.db.query(MeetingResponseRecord)
            .filter(
                MeetingResponseRecord.meeting_slug == slug,
                MeetingResponseRecord.response_id == response.id,
            )
            .first()
        )
        if record is None:
            record = MeetingResponseRecord(meeting_slug=slug, response_id=response.id)
            self.db.add(record)
        else:
            logger.info("Overwriting response %s on meeting %s", response.id, slug)

        record.name = response.name
        record.email = response.email
        record.slot_ids = sorted(set(response.slot_ids))
        record.submitted_at = response.submitted_at
        record.device_id = response.device_id
        self.db.commit()
        self.db.refresh(record)
        logger.info("Stored response %s on meeting %s", response.id, slug)
        return self._to_response(record)


def get_meeting_repository(db: Session = Depends(get_db)) -> MeetingRepository:
    return MeetingRepository(db)
