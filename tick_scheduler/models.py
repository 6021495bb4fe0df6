from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class TimerEntry:
    # Timer and speed are integers; timer <= 0 means the actor may act.
    speed: int
    timer: int = 0


@dataclass
class ActorProfile:
    """
    Host-side description of an actor. The scheduler itself only sees the id.
    """

    actor_id: int
    name: str
    speed: int
    # Skill levels by skill category (e.g. {"technical": 8}).
    skills: dict[str, int] = field(default_factory=dict)
    # Optional scripted actions for auto-play; one entry consumed per turn.
    action_sequence: list[str] | None = None
    action_sequence_cursor: int = 0


class SchedulerState(str, Enum):
    AWAITING_ACTOR = "AWAITING_ACTOR"
    NO_ONE_READY = "NO_ONE_READY"
