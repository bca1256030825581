"""Change notifications for presentation-layer subscribers.

Handlers run synchronously on the ingestion thread and carry no payload
guarantee beyond "re-read the session state now". A failing handler is
logged and isolated so that it can never stop message processing.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Optional


logger = logging.getLogger(__name__)


class Notification(Enum):
    CONNECTED = "connected"
    TERRORS_UPDATED = "terrors_updated"
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"
    INSTANCE_STATE_CHANGED = "instance_state_changed"
    PLAYER_COUNT_CHANGED = "player_count_changed"
    PLAYER_JOINED = "player_joined"
    WARNING_USER_JOINED = "warning_user_joined"


# Alerts that only make sense live, not while replaying buffered events
LIVE_ONLY = frozenset({
    Notification.PLAYER_JOINED,
    Notification.WARNING_USER_JOINED,
})


Handler = Callable[..., None]


class SessionNotifier:
    """Observer registry keyed by notification kind."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[Notification, List[Handler]] = defaultdict(list)
        self.replaying = False
        self._last_errors: List[Exception] = []

    def subscribe(self, kind: Notification, handler: Handler) -> None:
        self._subscribers[kind].append(handler)

    def unsubscribe(self, kind: Notification, handler: Handler) -> None:
        handlers = self._subscribers.get(kind, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, kind: Notification, arg: Optional[Any] = None) -> bool:
        """Invoke every handler for ``kind``. Returns False when suppressed."""
        if self.replaying and kind in LIVE_ONLY:
            logger.debug(f"Suppressed {kind.value} during replay")
            return False

        self._last_errors = []
        for handler in list(self._subscribers[kind]):
            try:
                if arg is None:
                    handler()
                else:
                    handler(arg)
            except Exception as exc:
                self._last_errors.append(exc)
                handler_name = getattr(handler, "__qualname__", getattr(handler, "__name__", repr(handler)))
                logger.exception(f"Notification handler {handler_name} failed for {kind.value}")
        return True

    def last_errors(self) -> List[Exception]:
        return list(self._last_errors)
