"""Connectivity signal consumed by the sync engine."""

from __future__ import annotations

from typing import Callable

Listener = Callable[[bool], None]


class ConnectivitySignal:
    """
    Boolean online state plus edge-triggered change notifications.

    Detection is owned by the host application, which calls set_online();
    listeners fire only when the value actually changes.
    """

    def __init__(self, online: bool = False) -> None:
        self._online = online
        self._listeners: list[Listener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        for listener in list(self._listeners):
            listener(online)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove
