"""
Asynchronous store collaborators used by the meeting session.

Two adapters satisfy the same protocol: one talks to the database directly
through ``MeetingRepository`` and one talks to the Meetball HTTP API.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, TypeVar
from urllib.parse import quote

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config.loader import get_store_settings
from ..schemas.meeting import MeetingDocument, MeetingResponse
from ..services.errors import (
    MeetingAlreadyExistsError,
    MeetingNotFoundError,
    StoreError,
)
from .meeting_repository import MeetingRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MeetingStore(Protocol):
    async def get_meeting(self, slug: str) -> Optional[MeetingDocument]: ...

    async def list_responses(self, slug: str) -> List[MeetingResponse]: ...

    async def meeting_exists(self, slug: str) -> bool: ...

    async def create_meeting(self, document: MeetingDocument) -> MeetingDocument: ...

    async def add_response(
        self, slug: str, response: MeetingResponse
    ) -> MeetingResponse: ...


class DatabaseMeetingStore:
    """Runs repository calls on a worker thread with a fresh session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _run(self, operation: Callable[[MeetingRepository], T]) -> T:
        db = self._session_factory()
        try:
            return operation(MeetingRepository(db))
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Database store operation failed")
            raise StoreError(f"Database error: {exc}") from exc
        finally:
            db.close()

    async def _call(self, operation: Callable[[MeetingRepository], T]) -> T:
        return await asyncio.to_thread(self._run, operation)

    async def get_meeting(self, slug: str) -> Optional[MeetingDocument]:
        return await self._call(lambda repo: repo.get_meeting(slug))

    async def list_responses(self, slug: str) -> List[MeetingResponse]:
        return await self._call(lambda repo: repo.list_responses(slug))

    async def meeting_exists(self, slug: str) -> bool:
        return await self._call(lambda repo: repo.meeting_exists(slug))

    async def create_meeting(self, document: MeetingDocument) -> MeetingDocument:
        return await self._call(lambda repo: repo.create_meeting(document))

    async def add_response(
        self, slug: str, response: MeetingResponse
    ) -> MeetingResponse:
        return await self._call(lambda repo: repo.add_response(slug, response))


class HttpMeetingStore:
    """Store adapter for the ``/api/meetings`` JSON API."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, follow_redirects=True
        )

    @classmethod
    def from_config(cls) -> "HttpMeetingStore":
        settings = get_store_settings()
        return cls(settings["base_url"], settings["timeout_seconds"])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpMeetingStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def _meeting_path(slug: str) -> str:
        return f"/api/meetings/{quote(slug, safe='')}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Store request %s %s failed: %s", method, path, exc)
            raise StoreError(f"Store unreachable: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response, expected: type, what: str):
        """Parse a JSON body of the expected shape or raise StoreError."""
        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Store sent a non-JSON %s (HTTP %s)", what, response.status_code)
            raise StoreError(f"Store returned a malformed {what}") from exc
        if not isinstance(payload, expected):
            logger.error("Store sent a %s that is not a JSON %s", what, expected.__name__)
            raise StoreError(f"Store returned a malformed {what}")
        return payload

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = payload.get("detail")
        else:
            detail = response.text
        raise StoreError(f"Store returned HTTP {response.status_code}: {detail}")

    async def get_meeting(self, slug: str) -> Optional[MeetingDocument]:
        response = await self._request("GET", self._meeting_path(slug))
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return MeetingDocument.from_stored(
            slug, self._decode(response, dict, "meeting document")
        )

    async def list_responses(self, slug: str) -> List[MeetingResponse]:
        response = await self._request("GET", f"{self._meeting_path(slug)}/responses")
        if response.status_code == 404:
            return []
        self._raise_for_status(response)
        payload = self._decode(response, list, "response list")
        responses = [
            MeetingResponse.from_stored(str(item.get("id") or ""), item)
            for item in payload
            if isinstance(item, dict)
        ]
        # Stable sort keeps the store's insertion order for equal timestamps.
        return sorted(responses, key=lambda item: item.submitted_at)

    async def meeting_exists(self, slug: str) -> bool:
        response = await self._request("GET", f"{self._meeting_path(slug)}/exists")
        self._raise_for_status(response)
        return bool(self._decode(response, dict, "existence check").get("exists"))

    async def create_meeting(self, document: MeetingDocument) -> MeetingDocument:
        response = await self._request(
            "PUT",
            self._meeting_path(document.slug),
            json=document.model_dump(mode="json"),
        )
        if response.status_code == 409:
            raise MeetingAlreadyExistsError(document.slug)
        self._raise_for_status(response)
        return MeetingDocument.from_stored(
            document.slug, self._decode(response, dict, "meeting document")
        )

    async def add_response(
        self, slug: str, response: MeetingResponse
    ) -> MeetingResponse:
        reply = await self._request(
            "PUT",
            f"{self._meeting_path(slug)}/responses/{quote(response.id, safe='')}",
            json=response.model_dump(mode="json"),
        )
        if reply.status_code == 404:
            raise MeetingNotFoundError(slug)
        self._raise_for_status(reply)
        return MeetingResponse.from_stored(
            response.id, self._decode(reply, dict, "response")
        )
