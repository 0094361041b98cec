from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence

from sugoroku.core.events.base import Event
from sugoroku.core.events.bus import EventBus, Subscription

EventHandler = Callable[[Event], None]


class EventComponent(Protocol):
    """
    Anything that listens on the bus: autosave, event log, host observers.
    """

    def subscriptions(self) -> Sequence[tuple[str, EventHandler]]:
        """
        Return (event_type, handler) tuples, in dispatch order.
        """
        ...


@dataclass(frozen=True, slots=True)
class WiredSubscription:
    component: str
    subscription: Subscription


@dataclass(frozen=True, slots=True)
class RouterWiring:
    """
    Snapshot of what got wired, written into session metadata.
    """

    subscriptions: tuple[WiredSubscription, ...]

    def components(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for w in self.subscriptions:
            seen.setdefault(w.component, None)
        return tuple(seen)


class EngineRouter:
    """
    Wires components onto an EventBus in the order given.

    A handler registered twice for the same event_type is a wiring bug
    and raises.
    """

    def __init__(self, *, bus: EventBus) -> None:
        self._bus = bus
        self._seen: set[tuple[str, EventHandler]] = set()

    def register(self, components: Iterable[EventComponent]) -> RouterWiring:
        wired: list[WiredSubscription] = []

        for component in components:
            name = type(component).__name__
            subs = component.subscriptions()
            if not isinstance(subs, Sequence):
                raise TypeError(f"{name}.subscriptions() must return a Sequence")

            for event_type, handler in subs:
                if not event_type:
                    raise ValueError(f"{name} produced empty event_type")

                key = (event_type, handler)
                if key in self._seen:
                    raise RuntimeError(f"duplicate subscription: component={name} event_type={event_type}")
                self._seen.add(key)

                wired.append(
                    WiredSubscription(
                        component=name,
                        subscription=self._bus.subscribe(event_type=event_type, handler=handler),
                    )
                )

        return RouterWiring(subscriptions=tuple(wired))
