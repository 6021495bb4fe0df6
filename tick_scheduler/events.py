from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """
    Event vocabulary for the scheduler.
    Keep this small; add types only when tests require them.
    """

    ACTOR_REGISTERED = "ACTOR_REGISTERED"
    ACTOR_UNREGISTERED = "ACTOR_UNREGISTERED"
    TICK_START = "TICK_START"
    ACTOR_READY = "ACTOR_READY"
    ACTIVE_CHANGED = "ACTIVE_CHANGED"
    ACTION_APPLIED = "ACTION_APPLIED"
    ACTION_REJECTED = "ACTION_REJECTED"


@dataclass(frozen=True, slots=True)
class Event:
    """
    A structured, orderable fact emitted by the scheduler (optionally).

    tick comes from the scheduler; seq is owned by the sink and restarts at 1
    on every new tick.
    """

    tick: int
    seq: int
    type: EventType
    actor: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
