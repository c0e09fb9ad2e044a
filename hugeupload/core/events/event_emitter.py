"""Event bus implementation using Observer Pattern."""
from typing import Dict, List, Callable, Optional

from ..logging import get_logger


class UploadEvent:
    """Names of the events emitted by an upload session."""

    PROGRESS = 'progress'
    FILE_RETRY = 'fileRetry'
    ERROR = 'error'
    ONLINE = 'online'
    OFFLINE = 'offline'
    FINISH = 'finish'

    ALL = (PROGRESS, FILE_RETRY, ERROR, ONLINE, OFFLINE, FINISH)


class EventBus:
    """
    Ordered, synchronous publish/subscribe channel.

    Callbacks run in subscription order. Each emit works on a snapshot of
    the subscribers, so a callback registered while (or after) an event
    fires never sees that event.
    """

    def __init__(self, logger_name: str = 'events'):
        """Initializes event bus."""
        self._events: Dict[str, List[Callable]] = {}
        self._logger = get_logger(logger_name)

    def on(self, event: str, callback: Callable) -> 'EventBus':
        """Registers an event handler."""
        if not callable(callback):
            raise TypeError(f"Handler for '{event}' must be callable")
        self._events.setdefault(event, []).append(callback)
        return self

    def once(self, event: str, callback: Callable) -> 'EventBus':
        """Registers a handler that is removed after its first call."""
        def wrapper(*args, **kwargs):
            self.off(event, wrapper)
            callback(*args, **kwargs)

        return self.on(event, wrapper)

    def emit(self, event: str, *args, **kwargs) -> int:
        """
        Emits an event.

        A handler that raises is logged and skipped; the remaining
        handlers still receive the event.

        Returns:
            Number of handlers invoked
        """
        handlers = list(self._events.get(event, ()))
        for callback in handlers:
            try:
                callback(*args, **kwargs)
            except Exception:
                self._logger.exception(f"Handler {callback!r} for '{event}' failed")
        return len(handlers)

    def off(self, event: str, callback: Optional[Callable] = None) -> 'EventBus':
        """Removes an event handler, or every handler of the event."""
        if event not in self._events:
            return self

        if callback is None:
            del self._events[event]
        else:
            self._events[event] = [cb for cb in self._events[event] if cb != callback]

        return self

    def listener_count(self, event: str) -> int:
        """Returns the number of handlers registered for an event."""
        return len(self._events.get(event, ()))
