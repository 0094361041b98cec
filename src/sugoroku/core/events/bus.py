from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, DefaultDict, Deque, Iterable, TypeAlias

import structlog

from sugoroku.core.events.base import Event

log = structlog.get_logger()

EventHandler: TypeAlias = Callable[[Event], None]

# subscribe with this key to receive every event (after type-specific handlers)
ALL_EVENTS = "*"


@dataclass(frozen=True)
class Subscription:
    """
    A handler bound to one event_type (or ALL_EVENTS).
    """

    event_type: str
    handler: EventHandler


class EventBus:
    """
    Deterministic synchronous event bus.

    - publish(event) dispatches to handlers for event.event_type, then ALL_EVENTS handlers
    - dispatch order is subscription order
    - no subscribers is a no-op; the simulation never depends on being observed
    - handler failures propagate (fail-fast)
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, *, event_type: str, handler: EventHandler) -> Subscription:
        if not event_type:
            raise ValueError("event_type must be non-empty")
        self._handlers[event_type].append(handler)
        log.debug("bus.subscribed", event_type=event_type, handler=getattr(handler, "__name__", "handler"))
        return Subscription(event_type=event_type, handler=handler)

    def unsubscribe(self, subscription: Subscription) -> bool:
        handlers = self._handlers.get(subscription.event_type)
        if not handlers or subscription.handler not in handlers:
            return False
        handlers.remove(subscription.handler)
        return True

    def publish(self, event: Event) -> None:
        handlers = [*self._handlers.get(event.event_type, ()), *self._handlers.get(ALL_EVENTS, ())]
        if not handlers:
            return
        log.debug("bus.publish", event_type=event.event_type, sequence=event.sequence, handlers=len(handlers))
        for handler in handlers:
            handler(event)

    def subscribers_for(self, event_type: str) -> Iterable[EventHandler]:
        return tuple(self._handlers.get(event_type, []))


class EventQueue:
    """
    Bounded buffer of published events for hosts that poll once per frame.

    When full, the oldest events are dropped so an undrained queue never
    blocks or grows the simulation.
    """

    def __init__(self, *, maxlen: int = 1024, event_types: Iterable[str] = (ALL_EVENTS,)) -> None:
        if maxlen <= 0:
            raise ValueError("maxlen must be > 0")
        self._events: Deque[Event] = deque(maxlen=maxlen)
        self._event_types = tuple(event_types)
        self.dropped = 0

    def subscriptions(self) -> list[tuple[str, EventHandler]]:
        return [(et, self._on_event) for et in self._event_types]

    def _on_event(self, event: Event) -> None:
        if len(self._events) == self._events.maxlen:
            self.dropped += 1
        self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def drain(self) -> list[Event]:
        out = list(self._events)
        self._events.clear()
        return out
