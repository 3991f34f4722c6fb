"""Exception types shared by the store adapters and the meeting session."""

from typing import Optional

from pydantic import ValidationError


class MeetballError(Exception):
    """Base class for recoverable Meetball failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MeetingValidationError(MeetballError):
    """Draft input rejected before any store call."""


class MeetingWriteError(MeetballError):
    """A create/append was rejected by the store; local state is unchanged."""


class StoreError(MeetballError):
    """The backing store was unreachable or failed to answer."""


class MeetingAlreadyExistsError(StoreError):
    def __init__(self, slug: str):
        super().__init__(f"Meeting '{slug}' already exists")
        self.slug = slug


class MeetingNotFoundError(StoreError):
    def __init__(self, slug: str):
        super().__init__(f"Meeting '{slug}' not found")
        self.slug = slug


def first_validation_message(exc: ValidationError) -> str:
    """Return the user-facing text of the first pydantic error."""
    for error in exc.errors():
        ctx: Optional[dict] = error.get("ctx") or {}
        if "error" in ctx:
            return str(ctx["error"])
        return str(error.get("msg") or "Invalid input")
    return "Invalid input"
