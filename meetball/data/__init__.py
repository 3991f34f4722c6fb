"""
Data access layer: the SQLAlchemy meeting repository, the asynchronous store
adapters built on it, and per-device local storage.
"""

from .local_storage import JsonFileStorage, LocalStorage, MemoryStorage
from .meeting_repository import MeetingRepository
from .meeting_store import DatabaseMeetingStore, HttpMeetingStore, MeetingStore

__all__ = [
    "DatabaseMeetingStore",
    "HttpMeetingStore",
    "JsonFileStorage",
    "LocalStorage",
    "MeetingRepository",
    "MeetingStore",
    "MemoryStorage",
]
