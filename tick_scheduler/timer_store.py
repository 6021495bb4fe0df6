from __future__ import annotations

from typing import Iterator

from tick_scheduler.errors import DuplicateActorError, InvalidSpeedError, UnknownActorError
from tick_scheduler.models import TimerEntry


def require_int(value: object, label: str) -> int:
    # bool is an int subclass but never a valid timer/speed/cost.
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be an int (got {type(value).__name__})")
    return value


class _ActorIds:
    """Restartable view over the store's actor ids (registration order)."""

    __slots__ = ("_entries",)

    def __init__(self, entries: dict[int, TimerEntry]):
        self._entries = entries

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._entries


class TimerStore:
    """
    Per-actor (timer, speed) pairs.

    Insertion order is registration order and is the final tie-break used by
    the scheduler, so entries are never re-inserted in place of existing ones.
    """

    def __init__(self) -> None:
        self._entries: dict[int, TimerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._entries

    def register(self, actor_id: int, speed: int, initial_timer: int = 0) -> None:
        speed = require_int(speed, "speed")
        initial_timer = require_int(initial_timer, "initial_timer")
        if actor_id in self._entries:
            raise DuplicateActorError(actor_id)
        if speed <= 0:
            raise InvalidSpeedError(actor_id, speed)
        self._entries[actor_id] = TimerEntry(speed=speed, timer=initial_timer)

    def unregister(self, actor_id: int) -> None:
        if actor_id not in self._entries:
            raise UnknownActorError(actor_id)
        del self._entries[actor_id]

    def get(self, actor_id: int) -> tuple[int, int]:
        """Return (timer, speed)."""
        entry = self._entries.get(actor_id)
        if entry is None:
            raise UnknownActorError(actor_id)
        return entry.timer, entry.speed

    def set_timer(self, actor_id: int, new_timer: int) -> None:
        entry = self._entries.get(actor_id)
        if entry is None:
            raise UnknownActorError(actor_id)
        entry.timer = require_int(new_timer, "timer")

    def all_actor_ids(self) -> _ActorIds:
        """
        Lazy, finite, restartable sequence of actor ids in registration order.

        Each iteration walks a copy taken when it starts, so the scheduler may
        mutate timers (or the host may unregister) while iterating.
        """
        return _ActorIds(self._entries)

    def position(self, actor_id: int) -> int:
        """Registration-order index of actor_id among live actors."""
        for i, a in enumerate(self._entries):
            if a == actor_id:
                return i
        raise UnknownActorError(actor_id)
