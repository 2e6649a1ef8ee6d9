# eval_bar/services/listener_registry.py
"""
Fan-out of raw engine output to every mounted session.

`ListenerRegistry` holds the subscriptions and outlives any single engine
process. Each process instance publishes through its own `BroadcastChannel`;
the supervisor closes the channel when it lets go of the process, so lines a
dying process still flushes can never reach subscribers.
"""

from typing import List

import structlog

from eval_bar.types import LineListener

logger = structlog.get_logger(__name__)


class ListenerRegistry:
    """A set of line callbacks, one per mounted session."""

    def __init__(self) -> None:
        self._listeners: List[LineListener] = []

    def add(self, listener: LineListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def discard(self, listener: LineListener) -> None:
        """Removes a listener. Removing an unknown listener is a no-op."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def broadcast(self, line: str) -> None:
        # Iterate over a snapshot: listeners may unsubscribe while being notified.
        for listener in list(self._listeners):
            try:
                listener(line)
            except Exception:
                logger.error("Engine line listener failed.", line=line, exc_info=True)


class BroadcastChannel:
    """The publishing end bound to one engine process instance."""

    def __init__(self, registry: ListenerRegistry, candidate: str):
        self._registry = registry
        self.candidate = candidate
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def publish(self, line: str) -> None:
        if self._closed:
            return
        self._registry.broadcast(line)
