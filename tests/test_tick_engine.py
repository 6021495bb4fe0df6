from __future__ import annotations

import logging
import random

import pytest

from tests._support.scheduler_helpers import A, B, C, make_scheduler, timers
from tick_scheduler.engine import Scheduler, select_next_actor
from tick_scheduler.event_sink import InMemoryEventSink
from tick_scheduler.errors import ActorNotReadyError, InvalidCostError, UnknownActorError
from tick_scheduler.events import EventType
from tick_scheduler.models import SchedulerState


def test_worked_example_sequence():
    """
    A(5), B(3), C(2), all timers 0.

    Expected:
      A acts (6)   -> B is next (tie at 0, registered before C)
      B acts (10)  -> C is next
      C acts (3)   -> nobody ready (6, 10, 3)
      advance      -> (1, 7, 1), still nobody
      advance      -> (-4, 4, -1), A wins on the lower timer
    """
    s = make_scheduler()

    assert s.find_next_eligible_actor() == A
    s.apply_action(A, 6)
    assert timers(s)[A] == 6

    assert s.find_next_eligible_actor() == B
    s.apply_action(B, 10)

    assert s.find_next_eligible_actor() == C
    s.apply_action(C, 3)

    assert s.find_next_eligible_actor() is None
    assert s.state == SchedulerState.NO_ONE_READY

    assert s.advance_tick() == []
    assert timers(s) == {A: 1, B: 7, C: 1}
    assert s.tick == 1
    assert s.find_next_eligible_actor() is None

    assert s.advance_tick() == [A, C]
    assert timers(s) == {A: -4, B: 4, C: -1}
    assert s.tick == 2
    assert s.find_next_eligible_actor() == A
    assert s.state == SchedulerState.AWAITING_ACTOR


def test_lowest_timer_wins_among_eligible():
    s = Scheduler()
    s.register(1, 2, initial_timer=0)
    s.register(2, 2, initial_timer=-3)
    s.register(3, 2, initial_timer=-1)
    assert s.find_next_eligible_actor() == 2


def test_tie_break_is_registration_order_not_id():
    s = Scheduler()
    s.register(7, 1)
    s.register(3, 1)
    assert s.find_next_eligible_actor() == 7


def test_select_next_actor_ignores_positive_timers():
    assert select_next_actor([(1, 1), (2, 5)]) is None
    assert select_next_actor([(1, 1), (2, 0)]) == 2
    assert select_next_actor([]) is None


def test_eligibility_matches_brute_force_over_random_timers():
    rng = random.Random(1234)
    for _ in range(200):
        n = rng.randint(1, 8)
        s = Scheduler()
        expected_timers = []
        for actor_id in range(1, n + 1):
            t = rng.randint(-10, 10)
            s.register(actor_id, rng.randint(1, 6), initial_timer=t)
            expected_timers.append((actor_id, t))

        eligible = [(a, t) for a, t in expected_timers if t <= 0]
        winner = s.find_next_eligible_actor()
        if not eligible:
            assert winner is None
            continue

        best_timer = min(t for _, t in eligible)
        first_with_best = next(a for a, t in eligible if t == best_timer)
        assert winner == first_with_best
        assert s.eligible_actors() == [a for a, _ in eligible]


def test_action_cost_is_added_not_reset():
    s = Scheduler()
    s.register(1, 1, initial_timer=-5)
    assert s.apply_action(1, 10) == 5
    assert s.store.get(1) == (5, 1)


def test_overdue_actor_keeps_head_start():
    """
    Both actors pay 10, but A was 5 ticks overdue when acting, so A is ready
    again after 5 ticks while B still has 5 to go.
    """
    s = Scheduler()
    s.register(1, 1, initial_timer=-5)
    s.register(2, 1, initial_timer=0)

    s.apply_action(1, 10)
    s.apply_action(2, 10)

    for _ in range(5):
        s.advance_tick()

    assert timers(s) == {1: 0, 2: 5}
    assert s.find_next_eligible_actor() == 1


def test_zero_cost_action_keeps_actor_ready():
    s = make_scheduler()
    assert s.apply_action(A, 0) == 0
    assert s.find_next_eligible_actor() == A


def test_tick_counter_is_monotonic():
    s = make_scheduler()
    for n in range(1, 26):
        s.advance_tick()
        assert s.tick == n


def test_tick_counter_advances_with_no_actors():
    s = Scheduler()
    s.advance_tick()
    s.advance_tick()
    assert s.tick == 2
    assert s.find_next_eligible_actor() is None


def test_single_advance_subtracts_speed_exactly_once():
    s = Scheduler()
    s.register(1, 5, initial_timer=12)
    s.register(2, 3, initial_timer=-2)
    s.register(3, 7, initial_timer=0)

    before = timers(s)
    s.advance_tick()
    after = timers(s)
    assert after == {1: before[1] - 5, 2: before[2] - 3, 3: before[3] - 7}

    s.advance_tick()
    assert timers(s) == {1: before[1] - 10, 2: before[2] - 6, 3: before[3] - 14}


def test_newly_ready_only_reports_crossings():
    s = Scheduler()
    s.register(1, 5, initial_timer=3)
    s.register(2, 1, initial_timer=-1)
    s.register(3, 1, initial_timer=5)
    assert s.advance_tick() == [1]


@pytest.mark.parametrize(
    "timer, speed",
    [(10, 3), (9, 3), (1, 5), (100, 7), (5, 1), (37, 37)],
)
def test_forward_progress_within_ceil_timer_over_speed(timer: int, speed: int):
    s = Scheduler()
    s.register(1, speed, initial_timer=timer)

    expected = -(-timer // speed)
    ticks = 0
    while s.store.get(1)[0] > 0:
        s.advance_tick()
        ticks += 1
        assert ticks <= expected

    assert ticks == expected
    assert s.find_next_eligible_actor() == 1


def test_not_ready_actor_is_rejected_without_mutation():
    s = make_scheduler()
    s.apply_action(A, 6)
    active_before = s.active_actor_id

    with pytest.raises(ActorNotReadyError) as e:
        s.apply_action(A, 3)

    assert e.value.actor_id == A
    assert e.value.timer == 6
    assert timers(s)[A] == 6
    assert s.tick == 0
    assert s.active_actor_id == active_before == B


def test_negative_cost_is_rejected_without_mutation():
    s = make_scheduler()
    with pytest.raises(InvalidCostError):
        s.apply_action(A, -1)
    assert timers(s)[A] == 0


def test_non_int_cost_is_rejected():
    s = make_scheduler()
    with pytest.raises(TypeError):
        s.apply_action(A, 2.5)  # type: ignore[arg-type]


def test_unknown_actor_is_rejected():
    s = make_scheduler()
    with pytest.raises(UnknownActorError):
        s.apply_action(99, 1)


def test_active_actor_always_has_timer_at_or_below_zero():
    rng = random.Random(99)
    s = make_scheduler()
    for _ in range(300):
        active = s.find_next_eligible_actor()
        if active is None:
            s.advance_tick()
        else:
            s.apply_action(active, rng.randint(0, 12))

        current = s.active_actor_id
        if current is not None:
            assert s.store.get(current)[0] <= 0
        else:
            assert all(t > 0 for t in timers(s).values())


def test_unregistering_active_actor_moves_activity_on():
    s = make_scheduler()
    assert s.active_actor_id == A

    s.unregister(A)
    assert s.active_actor_id == B
    assert A not in s.eligible_actors()


def test_removal_directly_from_store_is_noticed_on_next_query():
    s = make_scheduler()
    s.store.unregister(A)
    assert s.active_actor_id == B


def test_removed_actor_never_becomes_eligible_again():
    s = make_scheduler()
    s.apply_action(A, 1)
    s.unregister(A)
    for _ in range(5):
        s.advance_tick()
        assert A not in s.eligible_actors()
    with pytest.raises(UnknownActorError):
        s.apply_action(A, 1)


def test_state_starts_no_one_ready_and_flips_on_first_registration():
    s = Scheduler()
    assert s.state == SchedulerState.NO_ONE_READY
    assert s.active_actor_id is None

    s.register(1, 4)
    assert s.state == SchedulerState.AWAITING_ACTOR
    assert s.active_actor_id == 1


def test_staggered_actor_is_not_active_at_start():
    s = Scheduler()
    s.register(1, 4, initial_timer=8)
    assert s.active_actor_id is None
    s.register(2, 4)
    assert s.active_actor_id == 2


def test_advance_until_ready_stops_at_first_ready_actor():
    s = Scheduler()
    s.register(1, 3, initial_timer=10)
    s.register(2, 1, initial_timer=10)

    result = s.advance_until_ready()

    assert result.ticks_advanced == 4
    assert result.active_actor_id == 1
    assert result.timed_out is False
    assert s.tick == 4
    assert timers(s) == {1: -2, 2: 6}


def test_advance_until_ready_does_nothing_when_someone_is_ready():
    s = make_scheduler()
    result = s.advance_until_ready()
    assert result.ticks_advanced == 0
    assert result.active_actor_id == A
    assert s.tick == 0


def test_advance_until_ready_times_out():
    s = Scheduler()
    s.register(1, 1, initial_timer=50)

    result = s.advance_until_ready(max_ticks=2)

    assert result.timed_out is True
    assert result.active_actor_id is None
    assert result.ticks_advanced == 2
    assert s.tick == 2
    assert timers(s) == {1: 48}


def test_snapshot_reports_timers_speeds_and_active_flag():
    s = make_scheduler()
    s.apply_action(A, 6)

    snap = s.snapshot()

    assert snap.tick == 0
    assert snap.active_actor_id == B
    assert snap.state == SchedulerState.AWAITING_ACTOR
    assert [(a.actor_id, a.timer, a.speed, a.is_active) for a in snap.actors] == [
        (A, 6, 5, False),
        (B, 0, 3, True),
        (C, 0, 2, False),
    ]
    assert snap.ready_actor_ids == [B, C]
    assert snap.actor(A).is_ready is False
    assert snap.actor(99) is None


def test_snapshot_is_not_affected_by_later_operations():
    s = make_scheduler()
    snap = s.snapshot()
    s.apply_action(A, 6)
    s.advance_tick()
    assert snap.tick == 0
    assert snap.actor(A).timer == 0


def test_reading_after_direct_store_removal_emits_nothing():
    sink = InMemoryEventSink()
    s = make_scheduler(event_sink=sink)
    s.store.unregister(A)
    emitted = len(sink.events)

    assert s.active_actor_id == B
    assert s.state == SchedulerState.AWAITING_ACTOR
    assert s.snapshot().active_actor_id == B
    assert len(sink.events) == emitted

    # The next operation reports the hand-off.
    assert s.find_next_eligible_actor() == B
    changed = sink.events[-1]
    assert (changed.type, changed.actor, changed.data) == (EventType.ACTIVE_CHANGED, B, {"previous": A})


def test_validate_is_clean_after_scheduler_operations():
    s = make_scheduler()
    s.apply_action(A, 6)
    s.advance_tick()
    s.unregister(B)
    assert s.validate() == []


def test_validate_reports_direct_store_writes(caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.WARNING, logger="tick_scheduler.engine")

    s = make_scheduler()
    s.store.set_timer(A, 4)
    assert s.validate() == [
        "active actor 1 is not ready to act (timer: 4)",
        "active actor is 1 but 2 should act next",
    ]
    assert len(caplog.records) == 2

    s = make_scheduler()
    s.store.unregister(A)
    assert s.validate() == [
        "active actor 1 is not registered",
        "active actor is 1 but 2 should act next",
    ]

    s = Scheduler()
    s.register(1, 2, initial_timer=5)
    s.store.set_timer(1, 0)
    assert s.validate() == ["active actor is None but 1 should act next"]

    assert s.find_next_eligible_actor() == 1
    assert s.validate() == []
