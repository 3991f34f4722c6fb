from __future__ import annotations

from typing import Callable, List, Protocol

HistoryListener = Callable[[], None]


class NavigationHistory(Protocol):
    """Browser-style history: the session only ever reads and writes path strings."""

    def current_path(self) -> str: ...

    def push(self, path: str) -> None: ...

    def replace(self, path: str) -> None: ...

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]: ...


class MemoryHistory:
    """
    In-process history stack. ``push``/``replace`` are silent, like
    ``pushState``; ``back``/``forward`` notify listeners, like ``popstate``.
    """

    def __init__(self, initial_path: str = "/"):
        self._entries: List[str] = [initial_path]
        self._index = 0
        self._listeners: List[HistoryListener] = []

    def current_path(self) -> str:
        return self._entries[self._index]

    def push(self, path: str) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(path)
        self._index += 1

    def replace(self, path: str) -> None:
        self._entries[self._index] = path

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        self._notify()
        return True

    @property
    def entries(self) -> List[str]:
        return list(self._entries)
