from __future__ import annotations

from dataclasses import dataclass

from tick_scheduler.models import SchedulerState


@dataclass(frozen=True, slots=True)
class ActorSnapshot:
    actor_id: int
    timer: int
    speed: int
    is_ready: bool
    is_active: bool
    # Filled in by the session; the scheduler only knows ids.
    name: str | None = None


@dataclass(frozen=True, slots=True)
class SchedulerSnapshot:
    """
    Read-only view for presentation/logging.

    Taken after a scheduler operation; re-query instead of caching it across calls.
    Actors are listed in registration order.
    """

    tick: int
    active_actor_id: int | None
    state: SchedulerState
    actors: tuple[ActorSnapshot, ...]

    @property
    def ready_actor_ids(self) -> list[int]:
        return [a.actor_id for a in self.actors if a.is_ready]

    def actor(self, actor_id: int) -> ActorSnapshot | None:
        return next((a for a in self.actors if a.actor_id == actor_id), None)
