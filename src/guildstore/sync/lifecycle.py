"""Binding of sync engine handlers to the host's event bus."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from guildstore.sync.host import SettingsHost
from guildstore.util.logger import get_logger

logger = get_logger("sync_lifecycle")


class SyncLifecycle:
    """
    Tracks which listeners were added to which host so they can be removed.

    ``bind`` is meant to run once per provider lifetime; ``unbind`` removes
    whatever was bound and is safe to call at any time.
    """

    def __init__(self) -> None:
        self._host: Optional[SettingsHost] = None
        self._listeners: Dict[str, Callable[..., Any]] = {}

    @property
    def bound(self) -> bool:
        return bool(self._listeners)

    @property
    def events(self) -> tuple[str, ...]:
        return tuple(self._listeners)

    def bind(self, host: SettingsHost, listeners: Mapping[str, Callable[..., Any]]) -> None:
        """
        Add each listener to the host under its event name.

        Raises:
            RuntimeError: If listeners are already bound.
        """
        if self._listeners:
            raise RuntimeError("Sync listeners are already bound; call unbind() first")

        self._host = host
        for event, listener in listeners.items():
            host.add_listener(listener, event)
            self._listeners[event] = listener
        logger.info("[SYNC LIFECYCLE] Bound %d listeners", len(self._listeners))

    def unbind(self) -> None:
        """Remove every bound listener and forget the host."""
        if self._host is None:
            self._listeners.clear()
            return

        for event, listener in self._listeners.items():
            try:
                self._host.remove_listener(listener, event)
            except (KeyError, ValueError):
                logger.debug("[SYNC LIFECYCLE] Listener for %s was not registered", event)

        logger.info("[SYNC LIFECYCLE] Unbound %d listeners", len(self._listeners))
        self._listeners.clear()
        self._host = None
