from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tick_scheduler.events import Event, EventType


@dataclass(frozen=True, slots=True)
class TurnRow:
    """A single applied action, taken from one ACTION_APPLIED event."""

    tick: int
    actor: int
    action_id: str | None
    cost: int
    timer_before: int
    timer_after: int


@dataclass(frozen=True, slots=True)
class TickFrame:
    """
    Everything that happened at one tick: who became ready, then who acted.

    Ticks where nothing became ready and nobody acted have no frame.
    """

    tick: int
    newly_ready: tuple[int, ...]
    rows: tuple[TurnRow, ...]


def actor_names(events: Iterable[Event]) -> dict[int, str]:
    """Actor id -> name, from ACTOR_REGISTERED payloads that carry one."""
    names: dict[int, str] = {}
    for e in events:
        if e.type == EventType.ACTOR_REGISTERED and e.actor is not None:
            name = e.data.get("name")
            if isinstance(name, str) and name:
                names[e.actor] = name
    return names


def derive_turn_rows(events: Iterable[Event]) -> list[TurnRow]:
    """
    Derive one TurnRow per ACTION_APPLIED event, in stream order.

    Events without an actor are skipped (they cannot come from the scheduler).
    """
    rows: list[TurnRow] = []
    for e in events:
        if e.type != EventType.ACTION_APPLIED or e.actor is None:
            continue
        action_id = e.data.get("action_id")
        rows.append(
            TurnRow(
                tick=e.tick,
                actor=e.actor,
                action_id=str(action_id) if action_id is not None else None,
                cost=int(e.data["cost"]),
                timer_before=int(e.data["timer_before"]),
                timer_after=int(e.data["timer_after"]),
            )
        )
    return rows


def group_events_into_tick_frames(events: Iterable[Event]) -> list[TickFrame]:
    """
    Group an ordered event stream into TickFrames.

    Rules:
      - Events are assumed to be in deterministic order already (tick, seq).
      - ACTOR_READY events give newly_ready; ACTION_APPLIED events give rows.
      - Frames come out in tick order.
    """
    ready: dict[int, list[int]] = {}
    rows: dict[int, list[TurnRow]] = {}
    order: list[int] = []

    events = list(events)
    for e in events:
        if e.type == EventType.ACTOR_READY and e.actor is not None:
            if e.tick not in ready and e.tick not in rows:
                order.append(e.tick)
            ready.setdefault(e.tick, []).append(e.actor)

    for row in derive_turn_rows(events):
        if row.tick not in ready and row.tick not in rows:
            order.append(row.tick)
        rows.setdefault(row.tick, []).append(row)

    return [
        TickFrame(
            tick=t,
            newly_ready=tuple(ready.get(t, ())),
            rows=tuple(rows.get(t, ())),
        )
        for t in sorted(order)
    ]
