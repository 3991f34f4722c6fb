from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Mapping, Optional, Set, Union

from pydantic import ValidationError

from ..config.loader import get_meeting_defaults
from ..schemas.meeting import (
    DEFAULT_TIME_ZONE,
    Meeting,
    MeetingDocument,
    MeetingDraft,
    MeetingResponse,
    ResponseDraft,
)
from ..utils.identifiers import SlugGenerator
from .device_identity import DeviceIdentityProvider
from .errors import (
    MeetingValidationError,
    MeetingWriteError,
    StoreError,
    first_validation_message,
)
from .navigation import NavigationHistory
from .response_aggregator import ResponseAggregator
from .routing import Route, RouteKind, parse_route, route_to_path
from .selection import SlotSelection
from .slot_engine import SlotDefinition, build_slots

if TYPE_CHECKING:
    from ..data.meeting_store import MeetingStore

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Unable to load this meeting right now. Please try again."
CREATE_FAILED_MESSAGE = "Could not create meeting right now. Please try again."
RESPONSE_FAILED_MESSAGE = "Could not save your response right now. Please try again."
NO_MEETING_MESSAGE = "Open a meeting before adding a response."
DURATION_OPTION_MESSAGE = "Choose one of the offered meeting lengths."

_DEFAULTED_DRAFT_FIELDS = ("window_start", "window_end", "duration_minutes", "time_zone")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    CREATE = "create"
    LOADING = "loading"
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    LOAD_ERROR = "load_error"


@dataclass(frozen=True)
class SessionState:
    route: Route
    status: SessionStatus
    meeting: Optional[Meeting] = None
    load_error: Optional[str] = None


@dataclass(frozen=True)
class ConfirmedResponse:
    """A response the store has accepted for the meeting ``slug``."""

    slug: str
    response: MeetingResponse


class CancellationToken:
    """Marks one load as superseded; results that arrive afterwards are dropped."""

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


def state_for_route(route: Route) -> SessionState:
    if route.needs_meeting:
        return SessionState(route=route, status=SessionStatus.LOADING)
    return SessionState(route=route, status=SessionStatus.CREATE)


def merge_confirmed_response(
    prior: SessionState, confirmed: ConfirmedResponse
) -> SessionState:
    """
    Append a store-confirmed response to the loaded meeting.

    The prior state is returned untouched when it no longer shows the meeting
    the response was written to.
    """
    meeting = prior.meeting
    if (
        prior.status is not SessionStatus.LOADED
        or meeting is None
        or meeting.slug != confirmed.slug
    ):
        return prior
    merged = meeting.model_copy(
        update={"responses": [*meeting.responses, confirmed.response]}
    )
    return replace(prior, meeting=merged)


class MeetingSession:
    """
    Composition root for one client: routes, loads, creates and responds.

    Loads run as tasks on the running event loop. Each route change cancels
    the previous load's token, so a slow load finishing late never
    overwrites the state of the route that replaced it.
    """

    def __init__(
        self,
        store: "MeetingStore",
        history: NavigationHistory,
        identity: DeviceIdentityProvider,
        slugs: Optional[SlugGenerator] = None,
        clock: Callable[[], datetime] = _now,
        meeting_defaults: Optional[Mapping[str, Any]] = None,
    ):
        self._store = store
        self._history = history
        self._identity = identity
        self._slugs = slugs or SlugGenerator()
        self._clock = clock
        self._meeting_defaults = dict(
            meeting_defaults if meeting_defaults is not None else get_meeting_defaults()
        )
        self._state = SessionState(route=Route.create(), status=SessionStatus.CREATE)
        self._active_token: Optional[CancellationToken] = None
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.selection = SlotSelection()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def route(self) -> Route:
        return self._state.route

    # ------------------------------------------------------------------ #
    # Routing
    # ------------------------------------------------------------------ #

    def start(self) -> Optional["asyncio.Task[None]"]:
        """Read the initial path, canonicalise ``/`` and listen for back/forward."""
        path = self._history.current_path()
        route = parse_route(path)
        if route.kind is RouteKind.CREATE and path.strip("/") == "":
            self._history.replace(route_to_path(route))
        if self._unsubscribe is None:
            self._unsubscribe = self._history.subscribe(self.on_history_change)
        return self._apply_route(route)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._active_token is not None:
            self._active_token.cancel()

    def navigate(self, route: Route) -> Optional["asyncio.Task[None]"]:
        self._history.push(route_to_path(route))
        return self._apply_route(route)

    def on_history_change(self) -> Optional["asyncio.Task[None]"]:
        return self._apply_route(parse_route(self._history.current_path()))

    def _apply_route(self, route: Route) -> Optional["asyncio.Task[None]"]:
        if self._active_token is not None:
            self._active_token.cancel()
            self._active_token = None
        self.selection.cancel()
        self._state = state_for_route(route)
        if not route.needs_meeting:
            return None

        token = CancellationToken()
        self._active_token = token
        task = asyncio.get_running_loop().create_task(self._load(route, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_until_idle(self) -> None:
        """Wait for every in-flight load, including superseded ones."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _load(self, route: Route, token: CancellationToken) -> None:
        slug = route.slug
        try:
            document = await self._store.get_meeting(slug)
            if token.cancelled:
                logger.debug("Discarding superseded load of %s", slug)
                return
            responses: List[MeetingResponse] = []
            if document is not None:
                responses = await self._store.list_responses(slug)
        except (StoreError, ValidationError) as exc:
            logger.error("Failed to load meeting %s: %s", slug, exc)
            if token.cancelled:
                return
            self._state = replace(
                self._state,
                status=SessionStatus.LOAD_ERROR,
                meeting=None,
                load_error=LOAD_FAILED_MESSAGE,
            )
            return

        if token.cancelled:
            logger.debug("Discarding superseded load of %s", slug)
            return
        if document is None:
            self._state = replace(self._state, status=SessionStatus.NOT_FOUND)
            return
        self._state = replace(
            self._state,
            status=SessionStatus.LOADED,
            meeting=Meeting.assemble(document, responses),
            load_error=None,
        )

    # ------------------------------------------------------------------ #
    # Derived views
    # ------------------------------------------------------------------ #

    def slots(self) -> List[SlotDefinition]:
        meeting = self._state.meeting
        return build_slots(meeting) if meeting is not None else []

    def aggregator(self) -> ResponseAggregator:
        meeting = self._state.meeting
        if meeting is None:
            return ResponseAggregator([], [])
        return ResponseAggregator(meeting.responses, build_slots(meeting))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def create_meeting(
        self, draft: Union[MeetingDraft, Mapping[str, Any]]
    ) -> MeetingDocument:
        """
        Validate and persist a new meeting, then open it for responses.

        Window, length and time zone left out of the draft come from the
        configured meeting defaults, and the length must be one of the
        offered ``duration_options``. Raises MeetingValidationError before
        touching the store and MeetingWriteError when the store refuses or
        fails.
        """
        if isinstance(draft, MeetingDraft):
            payload = draft.model_dump(exclude_unset=True)
        else:
            payload = dict(draft)
        for field in _DEFAULTED_DRAFT_FIELDS:
            fallback = self._meeting_defaults.get(field)
            if payload.get(field) is None and fallback is not None:
                payload[field] = fallback
        try:
            validated = MeetingDraft.model_validate(payload)
        except ValidationError as exc:
            raise MeetingValidationError(first_validation_message(exc)) from exc

        options = self._meeting_defaults.get("duration_options") or []
        if options and validated.duration_minutes not in options:
            raise MeetingValidationError(DURATION_OPTION_MESSAGE)

        try:
            slug = await self._slugs.create_unique_meeting_slug(
                self._store.meeting_exists
            )
            document = MeetingDocument(
                slug=slug,
                title=validated.title,
                description=validated.description,
                time_zone=validated.time_zone or DEFAULT_TIME_ZONE,
                window_start=validated.window_start,
                window_end=validated.window_end,
                duration_minutes=validated.duration_minutes,
                dates=validated.dates,
                created_at=self._clock(),
                owner_device_id=self._identity.ensure_device_id(),
            )
            created = await self._store.create_meeting(document)
        except (StoreError, ValidationError) as exc:
            logger.error("Failed to create meeting: %s", exc)
            raise MeetingWriteError(CREATE_FAILED_MESSAGE) from exc

        logger.info("Meeting %s created", created.slug)
        self.navigate(Route.respond(created.slug))
        return created

    async def submit_response(
        self, draft: Union[ResponseDraft, Mapping[str, Any]]
    ) -> MeetingResponse:
        """
        Append a response to the loaded meeting. Local state changes only
        after the store confirms the write.
        """
        meeting = self._state.meeting
        if self._state.status is not SessionStatus.LOADED or meeting is None:
            raise MeetingWriteError(NO_MEETING_MESSAGE)

        if isinstance(draft, ResponseDraft):
            validated = draft
        else:
            try:
                validated = ResponseDraft.model_validate(dict(draft))
            except ValidationError as exc:
                raise MeetingValidationError(first_validation_message(exc)) from exc

        response = MeetingResponse(
            id=self._slugs.generate_response_id(),
            name=validated.name,
            email=validated.email,
            slot_ids=validated.slot_ids,
            submitted_at=self._clock(),
            device_id=self._identity.ensure_device_id(),
        )
        try:
            await self._store.add_response(meeting.slug, response)
        except StoreError as exc:
            logger.error("Failed to save response to %s: %s", meeting.slug, exc)
            raise MeetingWriteError(RESPONSE_FAILED_MESSAGE) from exc

        self._state = merge_confirmed_response(
            self._state, ConfirmedResponse(slug=meeting.slug, response=response)
        )
        logger.info("Response %s saved to %s", response.id, meeting.slug)
        return response

    async def submit_selection(
        self, name: str, email: Optional[str] = None
    ) -> MeetingResponse:
        """Submit the slots picked through ``selection`` and stop composing."""
        response = await self.submit_response(
            {
                "name": name,
                "email": email,
                "slot_ids": self.selection.selected_slot_ids(),
            }
        )
        self.selection.cancel()
        return response


def build_session_from_config(
    history: NavigationHistory,
    store: Optional["MeetingStore"] = None,
) -> MeetingSession:
    """Wire a session to the configured HTTP store and on-disk device identity."""
    from ..data.meeting_store import HttpMeetingStore

    return MeetingSession(
        store=store or HttpMeetingStore.from_config(),
        history=history,
        identity=DeviceIdentityProvider.from_config(),
        meeting_defaults=get_meeting_defaults(),
    )
