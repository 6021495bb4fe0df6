from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from tick_scheduler.actions import ActionId
from tick_scheduler.engine import DEFAULT_MAX_IDLE_TICKS
from tick_scheduler.models import ActorProfile
from tick_scheduler.session import Session
from tick_scheduler.snapshots import SchedulerSnapshot


class SequenceExhaustedError(RuntimeError):
    """Raised when an action_sequence is exhausted under a fail-fast policy."""


class IdleLimitError(RuntimeError):
    """Raised when nobody becomes ready within the idle tick cap."""


@dataclass
class ActionSequencePolicy:
    """
    Chooses each actor's next action from its scripted action_sequence.

    Actors without a sequence use default_action. When a sequence runs out:
      - "cycle": start over from the first entry
      - "error_if_exhausted": raise SequenceExhaustedError
    """

    policy: str = "cycle"
    default_action: str = ActionId.QUICK_LOOK.value

    def __call__(self, profile: ActorProfile) -> str:
        seq = profile.action_sequence
        if not seq:
            return self.default_action

        cursor = profile.action_sequence_cursor
        if cursor >= len(seq):
            if self.policy == "error_if_exhausted":
                raise SequenceExhaustedError(
                    f"action_sequence exhausted for {profile.name} (len={len(seq)}, cursor={cursor})"
                )
            cursor = 0

        profile.action_sequence_cursor = cursor + 1
        return seq[cursor]


@dataclass(frozen=True)
class StepTrace:
    step: int
    # tick at which the step happened (after the advance, for advances)
    tick: int
    kind: str  # "action" | "advance"
    actor_id: int | None
    actor_name: str | None
    action_id: str | None
    cost: int | None
    newly_ready: tuple[int, ...]
    # Post-step state
    snapshot: SchedulerSnapshot


def run_with_trace(
        session: Session,
        num_turns: int,
        choose_action: Callable[[ActorProfile], str] | None = None,
        *,
        max_idle_ticks: int = DEFAULT_MAX_IDLE_TICKS,
) -> list[StepTrace]:
    """
    Drive a session for num_turns actions, returning a per-step trace log.

    Notes:
    - The next actor comes from the scheduler; choose_action only picks what it does.
    - When nobody is ready, each advance is its own step.
    - Adds observability only (no rule changes).
    """
    choose = choose_action if choose_action is not None else ActionSequencePolicy()
    log: list[StepTrace] = []
    if not session.actors():
        return log

    turns = 0
    idle = 0
    while turns < num_turns:
        actor_id = session.scheduler.find_next_eligible_actor()
        if actor_id is None:
            if idle >= max_idle_ticks:
                raise IdleLimitError(f"no actor became ready within {max_idle_ticks} ticks")
            newly_ready = session.request_advance_time()
            idle += 1
            log.append(
                StepTrace(
                    step=len(log) + 1,
                    tick=session.tick,
                    kind="advance",
                    actor_id=None,
                    actor_name=None,
                    action_id=None,
                    cost=None,
                    newly_ready=tuple(newly_ready),
                    snapshot=session.snapshot(),
                )
            )
            continue

        idle = 0
        profile = session.actor(actor_id)
        outcome = session.request_action(actor_id, choose(profile))
        turns += 1
        log.append(
            StepTrace(
                step=len(log) + 1,
                tick=session.tick,
                kind="action",
                actor_id=actor_id,
                actor_name=profile.name,
                action_id=outcome.action_id,
                cost=outcome.cost,
                newly_ready=(),
                snapshot=session.snapshot(),
            )
        )
    return log
