"""Outbound domain events.

Services publish events here; notifiers (chat alerts, e-mail, ...) subscribe
from outside the package. Delivery is never attempted from a service.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Protocol, Type

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventPublisher(Protocol):
    def publish(self, event: Any) -> None:
        raise NotImplementedError


class NullDispatcher(EventPublisher):
    def publish(self, event: Any) -> None:
        return None


class EventDispatcher(EventPublisher):
    def __init__(self):
        self._handlers: DefaultDict[type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[Any], handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception as e:
                # Handlers run after the write committed; their failures never reach the caller.
                logger.warning("Event handler %r failed for %s: %s", handler, type(event).__name__, e)
