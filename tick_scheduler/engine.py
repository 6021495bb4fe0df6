from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from tick_scheduler.errors import ActorNotReadyError, InvalidCostError
from tick_scheduler.event_sink import EventSink
from tick_scheduler.events import EventType
from tick_scheduler.models import SchedulerState
from tick_scheduler.snapshots import ActorSnapshot, SchedulerSnapshot
from tick_scheduler.timer_store import TimerStore, require_int

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDLE_TICKS = 100


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    ticks_advanced: int
    active_actor_id: int | None
    timed_out: bool


def select_next_actor(timers: Iterable[tuple[int, int]]) -> int | None:
    """
    Pick the actor that acts next from (actor_id, timer) pairs given in
    registration order.

    Rules:
    - Only actors with timer <= 0 are eligible.
    - The lowest timer (most overdue) wins.

    Tie-break (deterministic):
    - Equal timers go to the earlier-registered actor.
    """
    ready_indexed = [(i, actor_id, timer) for i, (actor_id, timer) in enumerate(timers) if timer <= 0]
    if not ready_indexed:
        return None
    _, best, _ = min(ready_indexed, key=lambda t: (t[2], t[0]))
    return best


class Scheduler:
    """
    Turn-order state machine over a TimerStore.

    The scheduler is the only writer of timers. It is synchronous and holds no
    locks; a host with several callers must serialize access itself.
    """

    def __init__(self, store: TimerStore | None = None, event_sink: EventSink | None = None):
        self.store = store if store is not None else TimerStore()
        self.event_sink = event_sink
        self._tick = 0
        self._active: int | None = None
        self._refresh_active()

    # ----------------------------
    # Read side
    # ----------------------------

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def active_actor_id(self) -> int | None:
        """
        The designated actor, or None when nobody is ready.

        Reading never emits events. If the store lost the active actor
        (unregistered directly), the answer is recomputed here and the next
        scheduler operation reports the ACTIVE_CHANGED.
        """
        if self._active is not None and not self._is_ready(self._active):
            return self._select()
        return self._active

    @property
    def state(self) -> SchedulerState:
        if self.active_actor_id is None:
            return SchedulerState.NO_ONE_READY
        return SchedulerState.AWAITING_ACTOR

    def eligible_actors(self) -> list[int]:
        """Ids with timer <= 0, in registration order."""
        return [a for a in self.store.all_actor_ids() if self.store.get(a)[0] <= 0]

    def snapshot(self) -> SchedulerSnapshot:
        active = self.active_actor_id
        actors: list[ActorSnapshot] = []
        for actor_id in self.store.all_actor_ids():
            timer, speed = self.store.get(actor_id)
            actors.append(
                ActorSnapshot(
                    actor_id=actor_id,
                    timer=timer,
                    speed=speed,
                    is_ready=timer <= 0,
                    is_active=actor_id == active,
                )
            )
        return SchedulerSnapshot(
            tick=self._tick,
            active_actor_id=active,
            state=self.state,
            actors=tuple(actors),
        )

    def validate(self) -> list[str]:
        """
        Consistency check for debugging; returns a list of issues (empty when fine).

        Checks the designated active actor against the store:
        - it must still be registered;
        - it must be ready (timer <= 0);
        - it must be the actor the selection rule picks now.
        Only a direct write to the store can produce these.
        """
        issues: list[str] = []
        active = self._active
        if active is not None:
            if active not in self.store:
                issues.append(f"active actor {active} is not registered")
            elif not self._is_ready(active):
                timer = self.store.get(active)[0]
                issues.append(f"active actor {active} is not ready to act (timer: {timer})")

        expected = self._select()
        if expected != active:
            issues.append(f"active actor is {active} but {expected} should act next")

        for issue in issues:
            logger.warning("scheduler check: %s", issue)
        return issues

    # ----------------------------
    # Roster
    # ----------------------------

    def register(self, actor_id: int, speed: int, initial_timer: int = 0, *, name: str | None = None) -> None:
        """Register an actor. name only labels the ACTOR_REGISTERED event."""
        self.store.register(actor_id, speed, initial_timer)
        data: dict[str, Any] = {"speed": speed, "timer": initial_timer}
        if name is not None:
            data["name"] = name
        self._emit(EventType.ACTOR_REGISTERED, actor=actor_id, **data)
        self._refresh_active()

    def unregister(self, actor_id: int) -> None:
        self.store.unregister(actor_id)
        self._emit(EventType.ACTOR_UNREGISTERED, actor=actor_id)
        if self._active == actor_id:
            self._refresh_active()

    # ----------------------------
    # Scheduling
    # ----------------------------

    def find_next_eligible_actor(self) -> int | None:
        """
        Designate and return the next actor, or None when nobody has timer <= 0
        (the caller should advance_tick()).
        """
        return self._refresh_active()

    def advance_tick(self) -> list[int]:
        """
        Advance the simulation by exactly one global tick.

        Rules:
        - Every actor: timer -= speed (integers).
        - tick += 1, always, even with no actors registered.
        - The active actor is recomputed with the same rule as
          find_next_eligible_actor().

        Returns the ids whose timer crossed from > 0 to <= 0 on this tick,
        in registration order. This is informational only.
        """
        self._tick += 1
        self._emit(EventType.TICK_START)

        newly_ready: list[int] = []
        for actor_id in self.store.all_actor_ids():
            timer, speed = self.store.get(actor_id)
            new_timer = timer - speed
            self.store.set_timer(actor_id, new_timer)
            if timer > 0 and new_timer <= 0:
                newly_ready.append(actor_id)
                self._emit(EventType.ACTOR_READY, actor=actor_id, timer=new_timer)

        logger.debug("tick %d: newly ready %s", self._tick, newly_ready)
        self._refresh_active()
        return newly_ready

    def apply_action(self, actor_id: int, cost_in_ticks: int, *, action_id: str | None = None) -> int:
        """
        Charge an eligible actor for an action and return its new timer.

        The cost is added to the current timer, never reset to it: an actor
        that was overdue (negative timer) keeps the banked ticks.
        Nothing is mutated when a precondition fails.
        """
        cost = require_int(cost_in_ticks, "cost_in_ticks")
        timer, _ = self.store.get(actor_id)
        if cost < 0:
            raise InvalidCostError(cost)
        if timer > 0:
            raise ActorNotReadyError(actor_id, timer)

        new_timer = timer + cost
        self.store.set_timer(actor_id, new_timer)

        data: dict[str, Any] = {"cost": cost, "timer_before": timer, "timer_after": new_timer}
        if action_id is not None:
            data["action_id"] = str(action_id)
        self._emit(EventType.ACTION_APPLIED, actor=actor_id, **data)
        logger.info("actor %s paid %d ticks, timer %d -> %d", actor_id, cost, timer, new_timer)

        self._refresh_active()
        return new_timer

    def advance_until_ready(self, max_ticks: int = DEFAULT_MAX_IDLE_TICKS) -> AdvanceResult:
        """
        Call advance_tick() one tick at a time until someone is eligible.

        There is no batched shortcut: every tick is a real advance_tick() call.
        Gives up (timed_out=True) after max_ticks ticks.
        """
        if require_int(max_ticks, "max_ticks") < 0:
            raise ValueError(f"max_ticks must be >= 0 (got {max_ticks})")

        ticks = 0
        while True:
            active = self.find_next_eligible_actor()
            if active is not None:
                return AdvanceResult(ticks_advanced=ticks, active_actor_id=active, timed_out=False)
            if ticks >= max_ticks:
                logger.warning("advance_until_ready timed out after %d ticks", ticks)
                return AdvanceResult(ticks_advanced=ticks, active_actor_id=None, timed_out=True)
            self.advance_tick()
            ticks += 1

    # ----------------------------
    # Internals
    # ----------------------------

    def _is_ready(self, actor_id: int) -> bool:
        return actor_id in self.store and self.store.get(actor_id)[0] <= 0

    def _select(self) -> int | None:
        return select_next_actor((a, self.store.get(a)[0]) for a in self.store.all_actor_ids())

    def _refresh_active(self) -> int | None:
        best = self._select()
        if best != self._active:
            previous = self._active
            self._active = best
            self._emit(EventType.ACTIVE_CHANGED, actor=best, previous=previous)
            logger.debug("active actor %s -> %s", previous, best)
        return best

    def _emit(self, event_type: EventType, actor: int | None = None, **data: Any) -> None:
        if self.event_sink is not None:
            self.event_sink.emit(event_type, tick=self._tick, actor=actor, **data)
