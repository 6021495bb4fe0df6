from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping

from tick_scheduler.actions import (
    ActionCatalog,
    ActionContext,
    ActionDef,
    ActionId,
    CostModifiers,
    default_catalog,
    normalize_action_id,
)
from tick_scheduler.engine import DEFAULT_MAX_IDLE_TICKS, AdvanceResult, Scheduler
from tick_scheduler.errors import ActorNotReadyError, UnknownActionError, UnknownActorError
from tick_scheduler.event_sink import EventSink
from tick_scheduler.events import EventType
from tick_scheduler.models import ActorProfile
from tick_scheduler.snapshots import SchedulerSnapshot
from tick_scheduler.stream_io import Roster
from tick_scheduler.timer_store import TimerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    actor_id: int
    action_id: str
    cost: int
    new_timer: int
    next_active_actor_id: int | None


class Session:
    """
    Host layer for one simulation session.

    Owns one TimerStore and one Scheduler, names actors, and turns
    (actor, action, modifiers) requests into tick costs via the catalog.
    Actor ids are assigned from 1 upwards and never reused.
    """

    def __init__(self, catalog: ActionCatalog | None = None, *, event_sink: EventSink | None = None):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.event_sink = event_sink
        self.scheduler = Scheduler(TimerStore(), event_sink=event_sink)
        self._profiles: dict[int, ActorProfile] = {}
        self._next_id = 1

    @property
    def tick(self) -> int:
        return self.scheduler.tick

    @property
    def active_actor_id(self) -> int | None:
        return self.scheduler.active_actor_id

    # ----------------------------
    # Roster
    # ----------------------------

    def add_actor(
            self,
            name: str,
            speed: int,
            *,
            timer: int = 0,
            skills: Mapping[str, int] | None = None,
            action_sequence: list[str] | None = None,
    ) -> int:
        actor_id = self._next_id
        self.scheduler.register(actor_id, speed, timer, name=name)
        self._next_id += 1
        self._profiles[actor_id] = ActorProfile(
            actor_id=actor_id,
            name=name,
            speed=speed,
            skills=dict(skills or {}),
            action_sequence=list(action_sequence) if action_sequence is not None else None,
        )
        logger.debug("added actor %d (%s) speed=%d timer=%d", actor_id, name, speed, timer)
        return actor_id

    def remove_actor(self, actor_id: int) -> None:
        """Take an actor out of the simulation (e.g. incapacitated)."""
        self.actor(actor_id)
        self.scheduler.unregister(actor_id)
        del self._profiles[actor_id]
        logger.info("removed actor %d", actor_id)

    def actor(self, actor_id: int) -> ActorProfile:
        profile = self._profiles.get(actor_id)
        if profile is None:
            logger.warning("unknown actor id %s (stale after removal?)", actor_id)
            raise UnknownActorError(actor_id)
        return profile

    def actors(self) -> list[ActorProfile]:
        return [self._profiles[a] for a in self.scheduler.store.all_actor_ids() if a in self._profiles]

    def _name_of(self, actor_id: int) -> str | None:
        profile = self._profiles.get(actor_id)
        return profile.name if profile is not None else None

    def find_actor(self, name: str) -> ActorProfile | None:
        return next((p for p in self._profiles.values() if p.name == name), None)

    def validate(self) -> list[str]:
        """Profiles and timers must match one to one; then the scheduler's own checks."""
        store = self.scheduler.store
        issues: list[str] = []
        for actor_id, profile in self._profiles.items():
            if actor_id not in store:
                issues.append(f"actor {actor_id} ({profile.name}) has a profile but no timer")
            elif store.get(actor_id)[1] != profile.speed:
                issues.append(
                    f"actor {actor_id} ({profile.name}) speed {profile.speed} "
                    f"does not match its timer speed {store.get(actor_id)[1]}"
                )
        for actor_id in store.all_actor_ids():
            if actor_id not in self._profiles:
                issues.append(f"timer exists for actor {actor_id} but it has no profile")

        for issue in issues:
            logger.warning("session check: %s", issue)
        return issues + self.scheduler.validate()

    # ----------------------------
    # Requests
    # ----------------------------

    def cost_for(
            self,
            actor_id: int,
            action_id: str | ActionId,
            modifiers: CostModifiers | None = None,
    ) -> int:
        """Tick cost of action_id for this actor; the actor's skills fill in unset skills."""
        profile = self.actor(actor_id)
        modifiers = (modifiers or CostModifiers()).with_skills(profile.skills)
        try:
            return self.catalog.modified_cost(action_id, modifiers)
        except UnknownActionError:
            logger.error("unknown action %r requested for actor %d", action_id, actor_id)
            raise

    def request_action(
            self,
            actor_id: int,
            action_id: str | ActionId,
            modifiers: CostModifiers | None = None,
    ) -> ActionOutcome:
        key = normalize_action_id(action_id)
        cost = self.cost_for(actor_id, key, modifiers)
        try:
            new_timer = self.scheduler.apply_action(actor_id, cost, action_id=key)
        except ActorNotReadyError as e:
            logger.info("actor %d tried %s but is not ready (timer %d)", actor_id, key, e.timer)
            if self.event_sink is not None:
                self.event_sink.emit(
                    EventType.ACTION_REJECTED,
                    tick=self.scheduler.tick,
                    actor=actor_id,
                    action_id=key,
                    timer=e.timer,
                    reason="not_ready",
                )
            raise

        return ActionOutcome(
            actor_id=actor_id,
            action_id=key,
            cost=cost,
            new_timer=new_timer,
            next_active_actor_id=self.scheduler.active_actor_id,
        )

    def request_advance_time(self) -> list[int]:
        return self.scheduler.advance_tick()

    def advance_until_ready(self, max_ticks: int = DEFAULT_MAX_IDLE_TICKS) -> AdvanceResult:
        return self.scheduler.advance_until_ready(max_ticks)

    def available_actions(self, actor_id: int, context: ActionContext | None = None) -> list[ActionDef]:
        return self.catalog.available_actions(self.actor(actor_id).skills, context)

    # ----------------------------
    # Outbound view
    # ----------------------------

    def snapshot(self) -> SchedulerSnapshot:
        snap = self.scheduler.snapshot()
        named = tuple(replace(a, name=self._name_of(a.actor_id)) for a in snap.actors)
        return replace(snap, actors=named)


def build_session(
        roster: Roster,
        catalog: ActionCatalog | None = None,
        *,
        event_sink: EventSink | None = None,
) -> Session:
    """Create a session and register roster actors in file order."""
    session = Session(catalog, event_sink=event_sink)
    for a in roster.actors:
        session.add_actor(
            a.name,
            a.speed,
            timer=a.timer,
            skills=a.skills,
            action_sequence=a.action_sequence,
        )
    return session
