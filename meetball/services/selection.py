from __future__ import annotations

from enum import Enum
from typing import List, Optional, Set


class DragMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class SlotSelection:
    """
    Slot picking state for a response being composed.

    A drag gesture latches its mode on pointer-down from the first slot's
    prior state and applies that mode to every slot entered until release.
    """

    def __init__(self) -> None:
        self._selected: Set[str] = set()
        self.composing = False
        self.drag_mode: Optional[DragMode] = None

    def start_composing(self) -> None:
        self.composing = True
        self._selected.clear()
        self.drag_mode = None

    def cancel(self) -> None:
        self.composing = False
        self._selected.clear()
        self.drag_mode = None

    def is_selected(self, slot_id: str) -> bool:
        return slot_id in self._selected

    def _apply(self, slot_id: str, mode: DragMode) -> None:
        if mode is DragMode.ADD:
            self._selected.add(slot_id)
        else:
            self._selected.discard(slot_id)

    def begin(self, slot_id: str) -> Optional[DragMode]:
        if not self.composing:
            return None
        self.drag_mode = DragMode.REMOVE if slot_id in self._selected else DragMode.ADD
        self._apply(slot_id, self.drag_mode)
        return self.drag_mode

    def enter(self, slot_id: str) -> None:
        if self.drag_mode is None or not self.composing:
            return
        self._apply(slot_id, self.drag_mode)

    def end(self) -> None:
        self.drag_mode = None

    def selected_slot_ids(self) -> List[str]:
        return sorted(self._selected)

    def __len__(self) -> int:
        return len(self._selected)
