import logging

import pytest

from tests._support.scheduler_helpers import A, B, C, make_scheduler
from tick_scheduler.event_sink import InMemoryEventSink, LoggingEventSink
from tick_scheduler.events import EventType


def test_registration_and_first_actions_at_tick_zero():
    """
    Asserts causality ordering (not formatting):
      - Registration events come first, and the first registration designates A.
      - Every applied action is followed by the hand-off to the next actor.
    """
    sink = InMemoryEventSink()
    s = make_scheduler(event_sink=sink)
    s.apply_action(A, 6)
    s.apply_action(B, 10)

    tick0 = [(e.type, e.actor) for e in sink.events if e.tick == 0]
    assert tick0 == [
        (EventType.ACTOR_REGISTERED, A),
        (EventType.ACTIVE_CHANGED, A),
        (EventType.ACTOR_REGISTERED, B),
        (EventType.ACTOR_REGISTERED, C),
        (EventType.ACTION_APPLIED, A),
        (EventType.ACTIVE_CHANGED, B),
        (EventType.ACTION_APPLIED, B),
        (EventType.ACTIVE_CHANGED, C),
    ]
    assert [e.seq for e in sink.events] == list(range(1, 9))

    applied = sink.of_type(EventType.ACTION_APPLIED)[0]
    assert applied.data == {"cost": 6, "timer_before": 0, "timer_after": 6}


def test_event_order_on_advance_tick():
    """
    On the tick where A and C become ready:
      TICK_START -> ACTOR_READY(A) -> ACTOR_READY(C) -> ACTIVE_CHANGED(A)
    """
    sink = InMemoryEventSink()
    s = make_scheduler(event_sink=sink)
    s.apply_action(A, 6)
    s.apply_action(B, 10)
    s.apply_action(C, 3)
    s.advance_tick()
    s.advance_tick()

    tick1 = [e.type for e in sink.events if e.tick == 1]
    assert tick1 == [EventType.TICK_START]

    tick2 = [e for e in sink.events if e.tick == 2]
    assert [(e.type, e.actor) for e in tick2] == [
        (EventType.TICK_START, None),
        (EventType.ACTOR_READY, A),
        (EventType.ACTOR_READY, C),
        (EventType.ACTIVE_CHANGED, A),
    ]
    assert [e.seq for e in tick2] == [1, 2, 3, 4]
    assert tick2[1].data["timer"] == -4
    assert tick2[3].data["previous"] is None


def test_action_id_is_recorded_when_given():
    sink = InMemoryEventSink()
    s = make_scheduler(event_sink=sink)
    s.apply_action(A, 3, action_id="QUICK_LOOK")
    assert sink.of_type(EventType.ACTION_APPLIED)[0].data["action_id"] == "QUICK_LOOK"


def test_scheduler_runs_without_sink():
    s = make_scheduler()
    s.apply_action(A, 1)
    s.advance_tick()
    assert s.tick == 1


def test_sink_rejects_ticks_going_backwards():
    sink = InMemoryEventSink()
    sink.emit(EventType.TICK_START, tick=3)
    with pytest.raises(RuntimeError):
        sink.emit(EventType.TICK_START, tick=2)


def test_sink_restarts_seq_on_new_tick():
    sink = InMemoryEventSink()
    sink.emit(EventType.TICK_START, tick=1)
    sink.emit(EventType.ACTOR_READY, tick=1, actor=1)
    sink.emit(EventType.TICK_START, tick=4)
    assert [(e.tick, e.seq) for e in sink.events] == [(1, 1), (1, 2), (4, 1)]
    assert sink.current_tick == 4


def test_logging_sink_records_and_logs(caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.DEBUG, logger="tick_scheduler.events")
    sink = LoggingEventSink()
    s = make_scheduler(event_sink=sink)
    s.apply_action(A, 6, action_id="SEARCH_AREA")

    assert len(sink.events) == 6
    messages = [r.getMessage() for r in caplog.records if r.name == "tick_scheduler.events"]
    assert len(messages) == 6
    assert any("ACTION_APPLIED actor=1" in m and "action_id=SEARCH_AREA" in m for m in messages)
