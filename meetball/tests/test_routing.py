import pytest

from meetball.services.navigation import MemoryHistory
from meetball.services.routing import Route, RouteKind, parse_route, route_to_path


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/", Route.create()),
        ("", Route.create()),
        ("/new", Route.create()),
        ("/new/", Route.create()),
        ("/m/abc123", Route.respond("abc123")),
        ("/m/abc123/", Route.respond("abc123")),
        ("m/abc123", Route.respond("abc123")),
        ("/m/abc123/extra/segments", Route.respond("abc123")),
        ("/host/xyz", Route.host("xyz")),
        ("//host/xyz//", Route.host("xyz")),
        ("/m", Route.create()),
        ("/m/", Route.create()),
        ("/host", Route.create()),
        ("/unknown/path", Route.create()),
        ("/M/abc123", Route.create()),
    ],
)
def test_parse_route(path, expected):
    assert parse_route(path) == expected


@pytest.mark.parametrize("value", [None, 42, b"/m/abc", ["/m/abc"], object()])
def test_parse_route_never_raises_on_odd_input(value):
    assert parse_route(value) == Route.create()


@pytest.mark.parametrize(
    "route",
    [Route.create(), Route.respond("abc123"), Route.host("k3y9m2p8q1")],
)
def test_route_round_trips_through_its_path(route):
    assert parse_route(route_to_path(route)) == route


def test_route_paths():
    assert route_to_path(Route.create()) == "/new"
    assert route_to_path(Route.respond("abc")) == "/m/abc"
    assert route_to_path(Route.host("abc")) == "/host/abc"


def test_routes_that_need_a_meeting():
    assert not Route.create().needs_meeting
    assert Route.respond("abc").needs_meeting
    assert Route.host("abc").needs_meeting


def test_route_shape_is_enforced():
    with pytest.raises(ValueError):
        Route(RouteKind.RESPOND)
    with pytest.raises(ValueError):
        Route(RouteKind.HOST, "")
    with pytest.raises(ValueError):
        Route(RouteKind.CREATE, "abc")


def test_memory_history_push_and_replace_are_silent():
    history = MemoryHistory("/")
    calls = []
    history.subscribe(lambda: calls.append(history.current_path()))

    history.replace("/new")
    history.push("/m/abc")

    assert calls == []
    assert history.entries == ["/new", "/m/abc"]
    assert history.current_path() == "/m/abc"


def test_memory_history_back_and_forward_notify():
    history = MemoryHistory("/new")
    history.push("/m/abc")
    history.push("/m/def")
    seen = []
    unsubscribe = history.subscribe(lambda: seen.append(history.current_path()))

    assert history.back()
    assert history.back()
    assert not history.back()
    assert history.forward()
    assert seen == ["/m/abc", "/new", "/m/abc"]

    unsubscribe()
    history.forward()
    assert seen == ["/m/abc", "/new", "/m/abc"]
    assert history.current_path() == "/m/def"


def test_memory_history_push_drops_forward_entries():
    history = MemoryHistory("/new")
    history.push("/m/abc")
    history.back()
    history.push("/host/abc")

    assert history.entries == ["/new", "/host/abc"]
    assert not history.forward()
