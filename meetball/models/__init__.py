# Import models so they are registered with SQLAlchemy's Base metadata
from .meeting import Meeting, MeetingResponseRecord

__all__ = [
    "Meeting",
    "MeetingResponseRecord",
]
