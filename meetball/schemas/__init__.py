from .meeting import (
    Meeting,
    MeetingDocument,
    MeetingDraft,
    MeetingResponse,
    ResponseDraft,
)

__all__ = [
    "Meeting",
    "MeetingDocument",
    "MeetingDraft",
    "MeetingResponse",
    "ResponseDraft",
]
