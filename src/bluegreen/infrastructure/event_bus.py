"""Event delivery for deployment sessions.

The coordinator and the health verifier publish onto an ``AsyncEventBus``
that the caller builds and injects; nothing is broadcast through module
state.  Observers (the recorder, the CLI console) register on it before the
session starts.  An observer that raises is logged and skipped, so the phase
that published the event carries on.

``EventStore`` is the bounded buffer behind ``DeploymentRecorder``.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from bluegreen.domain.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Any]  # plain function or coroutine function


class AsyncEventBus:
    """Delivers each published event to its observers, in order.

    Catch-all observers see an event before the observers registered for
    its exact type.  Coroutine results are awaited.
    """

    def __init__(self) -> None:
        self._by_type: dict[type[DomainEvent], list[Handler]] = defaultdict(list)
        self._catch_all: list[Handler] = []

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        self._by_type[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        self._catch_all.append(handler)

    async def publish(self, event: DomainEvent) -> None:
        observers = [*self._catch_all, *self._by_type.get(type(event), ())]
        for handler in observers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "Observer %r failed on %s", handler, type(event).__name__
                )


class EventStore:
    """Thread-safe list of events, optionally capped to the newest *max_size*.

    Parameters
    ----------
    max_size:
        Number of events kept; ``0`` keeps everything.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._events: list[DomainEvent] = []
        self._max_size = max_size
        self._lock = threading.Lock()

    def append(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)
            overflow = len(self._events) - self._max_size
            if self._max_size > 0 and overflow > 0:
                del self._events[:overflow]

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        deployment_id: str | None = None,
        limit: int = 0,
    ) -> list[DomainEvent]:
        """Return stored events, oldest first.

        Filters by class (``isinstance``) and by the event's
        ``deployment_id``; *limit* keeps only the newest matches.
        """
        with self._lock:
            matches = list(self._events)
        if event_type is not None:
            matches = [e for e in matches if isinstance(e, event_type)]
        if deployment_id is not None:
            matches = [e for e in matches if getattr(e, "deployment_id", None) == deployment_id]
        return matches[-limit:] if limit > 0 else matches

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
