from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from tick_scheduler.events import Event, EventType


class EventSink(ABC):
    """
    Consumer of structured events.
    The scheduler must be able to run with event_sink=None (no events).
    """

    @abstractmethod
    def emit(self, event_type: EventType, *, tick: int, actor: int | None = None, **data: Any) -> Event | None: ...


@dataclass
class InMemoryEventSink(EventSink):
    """
    Simple sink for tests/demos.
    Owns seq numbering; ticks must never go backwards.
    """

    events: list[Event] = field(default_factory=list)
    _tick: int = field(default=0, init=False)
    _seq: int = field(default=0, init=False)

    @property
    def current_tick(self) -> int:
        return self._tick

    def emit(self, event_type: EventType, *, tick: int, actor: int | None = None, **data: Any) -> Event:
        if tick < self._tick:
            raise RuntimeError(f"event tick went backwards ({tick} after {self._tick}).")
        if tick != self._tick:
            self._tick = tick
            self._seq = 0
        self._seq += 1
        event = Event(
            tick=tick,
            seq=self._seq,
            type=event_type,
            actor=actor,
            data=dict(data),
        )
        self.events.append(event)
        return event

    def of_type(self, event_type: EventType) -> list[Event]:
        return [e for e in self.events if e.type == event_type]


@dataclass
class LoggingEventSink(InMemoryEventSink):
    """Records events like InMemoryEventSink and mirrors each one to a logger."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("tick_scheduler.events"))
    level: int = logging.DEBUG

    def emit(self, event_type: EventType, *, tick: int, actor: int | None = None, **data: Any) -> Event:
        event = super().emit(event_type, tick=tick, actor=actor, **data)
        if self.logger.isEnabledFor(self.level):
            details = " ".join(f"{k}={v}" for k, v in sorted(event.data.items()))
            self.logger.log(
                self.level,
                "tick=%d seq=%d %s actor=%s %s",
                event.tick,
                event.seq,
                event.type.value,
                "-" if event.actor is None else event.actor,
                details,
            )
        return event
