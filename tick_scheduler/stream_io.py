from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from tick_scheduler.actions import (
    SKILL_DIVISORS,
    ActionCatalog,
    ActionDef,
    CategoryInfo,
    describe_action_id,
    normalize_action_id,
)
from tick_scheduler.engine import DEFAULT_MAX_IDLE_TICKS
from tick_scheduler.events import Event, EventType

SEQUENCE_POLICIES = ("cycle", "error_if_exhausted")


class InputFormatError(ValueError):
    """Raised when an input file (roster, catalog, event stream) fails validation."""


@dataclass(frozen=True)
class RosterActor:
    name: str
    speed: int
    # Optional stagger; 0 means ready immediately.
    timer: int = 0
    skills: dict[str, int] = field(default_factory=dict)
    # Optional: deterministic action selection for auto-play.
    # Each time the actor takes a turn, one entry is consumed.
    action_sequence: list[str] | None = None


@dataclass(frozen=True)
class RosterOptions:
    # Behavior when an actor consumes all entries in action_sequence:
    #   - "cycle": start over from the first entry (default).
    #   - "error_if_exhausted": fail fast.
    sequence_policy: str = "cycle"
    # Auto-play safety cap on consecutive ticks with nobody ready.
    max_idle_ticks: int = DEFAULT_MAX_IDLE_TICKS


@dataclass(frozen=True)
class Roster:
    actors: list[RosterActor]
    options: RosterOptions = RosterOptions()


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise InputFormatError(f"file not found: {path}")
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ----------------------------
# Roster
# ----------------------------

def load_roster(path: Path) -> Roster:
    """Load and validate a roster file.

    Format:
      {
        "actors": [
          {"name": "Sarge", "speed": 5},
          {"name": "Rook", "speed": 3, "skills": {"technical": 8},
           "action_sequence": ["HACK_TERMINAL", "QUICK_LOOK"]},
          {"name": "Doc", "speed": 2, "timer": 4}
        ],
        "options": {"sequence_policy": "cycle", "max_idle_ticks": 100}
      }

    Actor order is registration order (and therefore the tie-break order).
    """
    return parse_roster(_read_json(path))


def parse_roster(raw: object) -> Roster:
    if not isinstance(raw, dict):
        raise InputFormatError("root must be a JSON object")

    actors_raw = raw.get("actors")
    if not isinstance(actors_raw, list) or not actors_raw:
        raise InputFormatError("actors must be a non-empty array")

    actors: list[RosterActor] = []
    seen_names: set[str] = set()
    for i, item in enumerate(actors_raw):
        if not isinstance(item, dict):
            raise InputFormatError(f"actors[{i}] must be an object")
        actor = _parse_roster_actor(item, label=f"actors[{i}]")
        if actor.name in seen_names:
            raise InputFormatError(f"duplicate actor name {actor.name!r}")
        seen_names.add(actor.name)
        actors.append(actor)

    options = _parse_roster_options(raw.get("options", {}))
    return Roster(actors=actors, options=options)


def _parse_roster_actor(raw: dict[str, Any], *, label: str) -> RosterActor:
    name = raw.get("name")
    speed = raw.get("speed")
    if not isinstance(name, str) or not name.strip():
        raise InputFormatError(f"{label}.name must be a non-empty string")
    if not _is_int(speed) or speed <= 0:
        raise InputFormatError(f"{label}.speed must be a positive int")

    timer = raw.get("timer", 0)
    if not _is_int(timer):
        raise InputFormatError(f"{label}.timer must be an int when provided")

    skills_raw = raw.get("skills", None)
    skills: dict[str, int] = {}
    if skills_raw is not None:
        if not isinstance(skills_raw, dict):
            raise InputFormatError(f"{label}.skills must be an object when provided")
        for k, v in skills_raw.items():
            if not isinstance(k, str) or not k.strip():
                raise InputFormatError(f"{label}.skills keys must be non-empty strings")
            if not _is_int(v) or v < 0:
                raise InputFormatError(f"{label}.skills[{k!r}] must be an int >= 0")
            skills[k] = int(v)

    sequence = raw.get("action_sequence", None)
    if sequence is not None:
        if not isinstance(sequence, list) or not sequence:
            raise InputFormatError(f"{label}.action_sequence must be a non-empty array when provided")
        parsed_seq: list[str] = []
        for i, s in enumerate(sequence):
            if not isinstance(s, str) or not s.strip():
                raise InputFormatError(f"{label}.action_sequence[{i}] must be a non-empty string")
            parsed_seq.append(normalize_action_id(s))
        sequence = parsed_seq

    return RosterActor(
        name=name.strip(),
        speed=int(speed),
        timer=int(timer),
        skills=skills,
        action_sequence=sequence,
    )


def _parse_roster_options(raw: object) -> RosterOptions:
    if raw is None:
        return RosterOptions()
    if not isinstance(raw, dict):
        raise InputFormatError("options must be an object")

    sequence_policy = raw.get("sequence_policy", "cycle")
    if not isinstance(sequence_policy, str) or sequence_policy not in SEQUENCE_POLICIES:
        raise InputFormatError(
            "options.sequence_policy must be one of: " + ", ".join(SEQUENCE_POLICIES)
        )

    max_idle_ticks = raw.get("max_idle_ticks", DEFAULT_MAX_IDLE_TICKS)
    if not _is_int(max_idle_ticks) or max_idle_ticks < 1:
        raise InputFormatError("options.max_idle_ticks must be an int >= 1")

    return RosterOptions(sequence_policy=sequence_policy, max_idle_ticks=int(max_idle_ticks))


# ----------------------------
# Action catalog
# ----------------------------

def load_action_catalog(path: Path) -> ActionCatalog:
    """Load a custom action catalog.

    Format:
      {
        "skill_divisors": {"technical": 2, "medical": 2, "stealth": 3},
        "categories": {
          "core": {
            "display_name": "Basic Actions",
            "actions": {
              "QUICK_LOOK": 3,
              "SNEAK_MOVE": {"cost": 12, "skill": "stealth", "description": "Move quietly"}
            }
          },
          "technical": {"skill": "technical", "actions": {"HACK_TERMINAL": 15}},
          "combat": {"offered": false, "actions": {"QUICK_ATTACK": 4}}
        }
      }

    skill_divisors is optional and defaults to the built-in divisors.
    """
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise InputFormatError("root must be a JSON object")

    divisors_raw = raw.get("skill_divisors", None)
    divisors: dict[str, int] = dict(SKILL_DIVISORS)
    if divisors_raw is not None:
        if not isinstance(divisors_raw, dict):
            raise InputFormatError("skill_divisors must be an object when provided")
        divisors = {}
        for k, v in divisors_raw.items():
            if not isinstance(k, str) or not k.strip():
                raise InputFormatError("skill_divisors keys must be non-empty strings")
            if not _is_int(v) or v < 1:
                raise InputFormatError(f"skill_divisors[{k!r}] must be an int >= 1")
            divisors[k] = int(v)

    categories_raw = raw.get("categories")
    if not isinstance(categories_raw, dict) or not categories_raw:
        raise InputFormatError("categories must be a non-empty object")

    categories: list[CategoryInfo] = []
    actions: list[ActionDef] = []
    for cname, craw in categories_raw.items():
        label = f"categories[{cname!r}]"
        if not isinstance(craw, dict):
            raise InputFormatError(f"{label} must be an object")

        skill = _optional_str(craw, "skill", label)
        if skill is not None and skill not in divisors:
            raise InputFormatError(f"{label}.skill {skill!r} has no skill divisor")
        offered = craw.get("offered", True)
        if not isinstance(offered, bool):
            raise InputFormatError(f"{label}.offered must be a boolean when provided")

        categories.append(
            CategoryInfo(
                name=cname,
                display_name=_optional_str(craw, "display_name", label) or cname.title(),
                description=_optional_str(craw, "description", label) or "",
                skill=skill,
                offered=offered,
            )
        )

        actions_raw = craw.get("actions")
        if not isinstance(actions_raw, dict) or not actions_raw:
            raise InputFormatError(f"{label}.actions must be a non-empty object")
        for aid, araw in actions_raw.items():
            actions.append(_parse_action(aid, araw, category=cname, divisors=divisors, label=f"{label}.actions"))

    try:
        return ActionCatalog(actions, categories, skill_divisors=divisors)
    except ValueError as e:
        raise InputFormatError(str(e)) from e


def _optional_str(raw: dict[str, Any], key: str, label: str) -> str | None:
    value = raw.get(key, None)
    if value is not None and (not isinstance(value, str) or not value.strip()):
        raise InputFormatError(f"{label}.{key} must be a non-empty string when provided")
    return value


def _parse_action(aid: str, raw: object, *, category: str, divisors: dict[str, int], label: str) -> ActionDef:
    if not aid.strip():
        raise InputFormatError(f"{label} keys must be non-empty strings")
    key = normalize_action_id(aid)
    label = f"{label}[{aid!r}]"

    if _is_int(raw):
        raw = {"cost": raw}
    if not isinstance(raw, dict):
        raise InputFormatError(f"{label} must be an int cost or an object")

    cost = raw.get("cost")
    if not _is_int(cost) or cost < 1:
        raise InputFormatError(f"{label}.cost must be an int >= 1")

    skill = _optional_str(raw, "skill", label)
    if skill is not None and skill not in divisors:
        raise InputFormatError(f"{label}.skill {skill!r} has no skill divisor")

    return ActionDef(
        action_id=key,
        category=category,
        cost=int(cost),
        description=_optional_str(raw, "description", label) or describe_action_id(key),
        skill=skill,
    )


# ----------------------------
# Event stream
# ----------------------------

# Events about one actor must name it; TICK_START never does.
_ACTOR_EVENTS = frozenset(
    {
        EventType.ACTOR_REGISTERED,
        EventType.ACTOR_UNREGISTERED,
        EventType.ACTOR_READY,
        EventType.ACTION_APPLIED,
        EventType.ACTION_REJECTED,
    }
)

# Integer payload keys each event type must carry.
_REQUIRED_INTS: dict[EventType, tuple[str, ...]] = {
    EventType.ACTOR_REGISTERED: ("speed", "timer"),
    EventType.ACTOR_READY: ("timer",),
    EventType.ACTION_APPLIED: ("cost", "timer_before", "timer_after"),
    EventType.ACTION_REJECTED: ("timer",),
}


def load_event_stream(path: Path) -> list[Event]:
    """
    Load and validate a recorded scheduler event stream.

    Besides the envelope (tick, seq, type, actor, data) every event must carry
    the payload its type promises, so a stream that loads can always be
    rendered. Ordering is strictly increasing by (tick, seq).
    """
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise InputFormatError("root must be a JSON array of events")

    events: list[Event] = []
    for i, item in enumerate(raw):
        event = _parse_event(item, label=f"event[{i}]")
        if events and (event.tick, event.seq) <= (events[-1].tick, events[-1].seq):
            raise InputFormatError(
                "events must be strictly increasing by (tick, seq); "
                f"event[{i}] has (tick, seq)={(event.tick, event.seq)} "
                f"after {(events[-1].tick, events[-1].seq)}"
            )
        events.append(event)
    return events


def _parse_event(item: object, *, label: str) -> Event:
    if not isinstance(item, dict):
        raise InputFormatError(f"{label} must be an object")

    tick = item.get("tick")
    seq = item.get("seq")
    etype = item.get("type")
    actor = item.get("actor", None)
    data = item.get("data", {})

    if not _is_int(tick) or tick < 0:
        raise InputFormatError(f"{label}.tick must be an int >= 0")
    if not _is_int(seq) or seq < 1:
        raise InputFormatError(f"{label}.seq must be an int >= 1")
    if not isinstance(etype, str):
        raise InputFormatError(f"{label}.type must be a string")
    try:
        event_type = EventType(etype)
    except ValueError as e:
        raise InputFormatError(f"{label}.type is not a valid EventType: {etype!r}") from e

    if actor is not None and not _is_int(actor):
        raise InputFormatError(f"{label}.actor must be an int or null")
    if event_type in _ACTOR_EVENTS and actor is None:
        raise InputFormatError(f"{label}.actor is required for {event_type.value}")
    if event_type == EventType.TICK_START and actor is not None:
        raise InputFormatError(f"{label}.actor must be null for TICK_START")

    if not isinstance(data, dict):
        raise InputFormatError(f"{label}.data must be an object")
    for key in _REQUIRED_INTS.get(event_type, ()):
        if not _is_int(data.get(key)):
            raise InputFormatError(f"{label}.data.{key} must be an int")

    if event_type == EventType.ACTOR_REGISTERED and data["speed"] <= 0:
        raise InputFormatError(f"{label}.data.speed must be a positive int")
    if event_type == EventType.ACTOR_READY and data["timer"] > 0:
        raise InputFormatError(f"{label}.data.timer must be <= 0 for ACTOR_READY")
    if event_type == EventType.ACTION_APPLIED:
        if data["cost"] < 0:
            raise InputFormatError(f"{label}.data.cost must be >= 0")
        if data["timer_before"] > 0:
            raise InputFormatError(f"{label}.data.timer_before must be <= 0 (actor was not ready)")
        if data["timer_after"] != data["timer_before"] + data["cost"]:
            raise InputFormatError(f"{label}.data.timer_after must equal timer_before + cost")
    previous = data.get("previous")
    if event_type == EventType.ACTIVE_CHANGED and previous is not None and not _is_int(previous):
        raise InputFormatError(f"{label}.data.previous must be an int or null")

    return Event(tick=tick, seq=seq, type=event_type, actor=actor, data=data)


def dump_event_stream(events: list[Event]) -> list[dict[str, Any]]:
    """Return a JSON-serializable event stream (load_event_stream reads it back)."""
    out: list[dict[str, Any]] = []
    for e in events:
        d = asdict(e)
        d["type"] = str(e.type.value)
        out.append(d)
    return out


def write_event_stream(path: Path, events: list[Event]) -> None:
    path.write_text(json.dumps(dump_event_stream(events), indent=2) + "\n", encoding="utf-8")
