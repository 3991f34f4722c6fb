"""URL path <-> view route mapping for the three application modes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

CREATE_PATH = "/new"


class RouteKind(str, Enum):
    CREATE = "create"
    RESPOND = "respond"
    HOST = "host"


_PATH_PREFIXES = {
    RouteKind.RESPOND: "m",
    RouteKind.HOST: "host",
}


@dataclass(frozen=True)
class Route:
    kind: RouteKind
    slug: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is RouteKind.CREATE:
            if self.slug is not None:
                raise ValueError("create route carries no slug")
        elif not self.slug:
            raise ValueError(f"{self.kind.value} route requires a slug")

    @classmethod
    def create(cls) -> "Route":
        return cls(RouteKind.CREATE)

    @classmethod
    def respond(cls, slug: str) -> "Route":
        return cls(RouteKind.RESPOND, slug)

    @classmethod
    def host(cls, slug: str) -> "Route":
        return cls(RouteKind.HOST, slug)

    @property
    def needs_meeting(self) -> bool:
        return self.kind is not RouteKind.CREATE


def parse_route(path: Any) -> Route:
    """Map a URL path to a route; anything unrecognised falls back to create."""
    if not isinstance(path, str):
        return Route.create()
    normalized = path.strip("/")
    if not normalized or normalized == "new":
        return Route.create()

    head, _, rest = normalized.partition("/")
    slug = rest.split("/", 1)[0]
    if head == _PATH_PREFIXES[RouteKind.RESPOND] and slug:
        return Route.respond(slug)
    if head == _PATH_PREFIXES[RouteKind.HOST] and slug:
        return Route.host(slug)
    return Route.create()


def route_to_path(route: Route) -> str:
    if route.kind is RouteKind.CREATE:
        return CREATE_PATH
    if route.kind is RouteKind.RESPOND:
        return f"/m/{route.slug}"
    if route.kind is RouteKind.HOST:
        return f"/host/{route.slug}"
    raise ValueError(f"Unhandled route kind: {route.kind!r}")
