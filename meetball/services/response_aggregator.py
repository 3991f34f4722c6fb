from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..schemas.meeting import MeetingResponse
from .slot_engine import SlotDefinition

HIGH_TIER_RATIO = 0.75
MEDIUM_TIER_RATIO = 0.4
GOOD_MATCH_RATIO = 0.66
OKAY_MATCH_RATIO = 0.5


class PopularityTier(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MatchQuality(str, Enum):
    NONE = "none"
    POOR = "Poor"
    OKAY = "Okay"
    GOOD = "Good"


class ResponseHighlight(str, Enum):
    NONE = "none"
    LINKED = "linked"
    DIM = "dim"


@dataclass(frozen=True)
class HeatmapCell:
    slot: SlotDefinition
    count: int
    tier: PopularityTier


def active_focus_slot(
    hovered_slot_id: Optional[str],
    mobile_focused_slot_id: Optional[str],
    is_mobile: bool = False,
    drawer_open: bool = False,
) -> Optional[str]:
    """The mobile selection wins while the mobile responses drawer is open."""
    if is_mobile and drawer_open:
        return mobile_focused_slot_id
    return hovered_slot_id


class ResponseAggregator:
    """
    Availability statistics derived from a meeting's responses.

    Every figure is recomputed from the response list handed in; responses
    are expected in submission order, which fixes the order of responder ids.
    """

    def __init__(
        self,
        responses: Sequence[MeetingResponse],
        slots: Sequence[SlotDefinition] = (),
    ):
        self.responses: Tuple[MeetingResponse, ...] = tuple(responses)
        self.slots: Tuple[SlotDefinition, ...] = tuple(slots)

        responder_ids: Dict[str, List[str]] = {}
        for response in self.responses:
            for selected in response.slot_ids:
                responder_ids.setdefault(selected, []).append(response.id)
        self.slot_responder_ids: Dict[str, Tuple[str, ...]] = {
            key: tuple(value) for key, value in responder_ids.items()
        }
        self._responses_by_id: Dict[str, MeetingResponse] = {}
        for response in self.responses:
            # First submission wins for duplicate ids, matching list lookup order.
            self._responses_by_id.setdefault(response.id, response)
        self.max_slot_response_count: int = max(
            (len(ids) for ids in self.slot_responder_ids.values()), default=0
        )

    @property
    def total_responses(self) -> int:
        return len(self.responses)

    def responders_for(self, slot_id: Optional[str]) -> Tuple[str, ...]:
        if not slot_id:
            return ()
        return self.slot_responder_ids.get(slot_id, ())

    def slot_response_count(self, slot_id: str) -> int:
        return len(self.responders_for(slot_id))

    def popularity_tier(self, slot_id: str) -> PopularityTier:
        count = self.slot_response_count(slot_id)
        if count == 0:
            return PopularityTier.NONE
        if self.max_slot_response_count == 1:
            return PopularityTier.LOW
        ratio = count / self.max_slot_response_count
        if ratio >= HIGH_TIER_RATIO:
            return PopularityTier.HIGH
        if ratio >= MEDIUM_TIER_RATIO:
            return PopularityTier.MEDIUM
        return PopularityTier.LOW

    def match_quality(self, focused_slot_id: Optional[str]) -> MatchQuality:
        """Share of all respondents who can attend the focused slot."""
        if not focused_slot_id or self.total_responses == 0:
            return MatchQuality.NONE
        ratio = len(self.responders_for(focused_slot_id)) / self.total_responses
        if ratio >= GOOD_MATCH_RATIO:
            return MatchQuality.GOOD
        if ratio >= OKAY_MATCH_RATIO:
            return MatchQuality.OKAY
        return MatchQuality.POOR

    def response_slot_ids(self, focused_response_id: Optional[str]) -> FrozenSet[str]:
        if not focused_response_id:
            return frozenset()
        response = self._responses_by_id.get(focused_response_id)
        if response is None:
            return frozenset()
        return frozenset(response.slot_ids)

    def responses_count_label(self, focused_slot_id: Optional[str]) -> str:
        if focused_slot_id and self.total_responses > 0:
            return f"{len(self.responders_for(focused_slot_id))}/{self.total_responses}"
        return str(self.total_responses)

    def response_highlight(
        self, response_id: str, focused_slot_id: Optional[str]
    ) -> ResponseHighlight:
        if not focused_slot_id:
            return ResponseHighlight.NONE
        if response_id in self.responders_for(focused_slot_id):
            return ResponseHighlight.LINKED
        return ResponseHighlight.DIM

    def heatmap(self) -> List[HeatmapCell]:
        return [
            HeatmapCell(
                slot=slot,
                count=self.slot_response_count(slot.id),
                tier=self.popularity_tier(slot.id),
            )
            for slot in self.slots
        ]
