from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func  # For default timestamps

from ..database import Base


class Meeting(Base):
    __tablename__ = "meetings"

    slug = Column(String(32), primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    time_zone = Column(String(64), nullable=False, default="UTC")
    window_start = Column(String(5), nullable=False)  # HH:MM
    window_end = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    dates = Column(JSON, default=list, nullable=False)  # sorted YYYY-MM-DD keys
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    owner_device_id = Column(String(64), nullable=False, default="")

    responses = relationship(
        "MeetingResponseRecord",
        back_populates="meeting",
        order_by="[MeetingResponseRecord.submitted_at, MeetingResponseRecord.row_id]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"Meeting(slug={self.slug!r}, title={self.title!r})"


class MeetingResponseRecord(Base):
    __tablename__ = "meeting_responses"
    __table_args__ = (
        UniqueConstraint("meeting_slug", "response_id", name="uq_meeting_response_id"),
    )

    # Surrogate key doubles as the insertion sequence for equal submitted_at values.
    row_id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_slug = Column(
        String(32),
        ForeignKey("meetings.slug", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    response_id = Column(String(32), nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=True)
    slot_ids = Column(JSON, default=list, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    device_id = Column(String(64), nullable=False, default="")

    meeting = relationship("Meeting", back_populates="responses")

    def __repr__(self) -> str:
        return (
            f"MeetingResponseRecord(meeting_slug={self.meeting_slug!r}, "
            f"response_id={self.response_id!r})"
        )
