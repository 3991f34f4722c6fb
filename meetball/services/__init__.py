"""Service layer: slot generation, aggregation, routing and the meeting session."""

from .response_aggregator import MatchQuality, PopularityTier, ResponseAggregator
from .routing import Route, RouteKind, parse_route, route_to_path
from .slot_engine import SlotDefinition, build_slots

__all__ = [
    "MatchQuality",
    "PopularityTier",
    "ResponseAggregator",
    "Route",
    "RouteKind",
    "SlotDefinition",
    "build_slots",
    "parse_route",
    "route_to_path",
]
