from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Iterator, Mapping

from tick_scheduler.errors import UnknownActionError

# Skill reduces cost by floor(level / divisor).
SKILL_DIVISORS: dict[str, int] = {
    "technical": 2,
    "medical": 2,
    "stealth": 3,
}

# Situational deltas (ticks).
DARKNESS_PENALTY = 2
INJURED_PENALTY = 3
PROPER_TOOLS_BONUS = 2
TIME_PRESSED_BONUS = 1

# An action can be made cheaper but never free.
MIN_ACTION_COST = 1

# Skill level above which a skill-gated category is offered.
SKILL_UNLOCK_LEVEL = 5


class ActionId(str, Enum):
    """Built-in action identifiers. Catalog lookups also accept plain strings."""

    # core: movement
    MOVE_ROOM = "MOVE_ROOM"
    MOVE_ADJACENT = "MOVE_ADJACENT"
    # core: investigation
    SEARCH_AREA = "SEARCH_AREA"
    SEARCH_THOROUGH = "SEARCH_THOROUGH"
    EXAMINE_ITEM = "EXAMINE_ITEM"
    # core: interaction
    USE_ITEM = "USE_ITEM"
    USE_COMPLEX_ITEM = "USE_COMPLEX_ITEM"
    PICK_UP_ITEM = "PICK_UP_ITEM"
    PICK_UP_HEAVY = "PICK_UP_HEAVY"
    DROP_ITEM = "DROP_ITEM"
    # core: quick
    QUICK_LOOK = "QUICK_LOOK"
    LISTEN = "LISTEN"
    CHECK_HEALTH = "CHECK_HEALTH"
    COMMUNICATE = "COMMUNICATE"
    # core: stealth
    HIDE_IN_COVER = "HIDE_IN_COVER"
    SNEAK_MOVE = "SNEAK_MOVE"
    PEEK_AROUND = "PEEK_AROUND"
    # core: emergency
    DUCK_FOR_COVER = "DUCK_FOR_COVER"
    DODGE_DANGER = "DODGE_DANGER"
    EMERGENCY_STOP = "EMERGENCY_STOP"

    FIRST_AID = "FIRST_AID"
    ADVANCED_MEDICAL = "ADVANCED_MEDICAL"
    APPLY_BANDAGE = "APPLY_BANDAGE"
    INJECT_MEDICINE = "INJECT_MEDICINE"
    MEDICAL_SCAN = "MEDICAL_SCAN"
    STABILIZE_PATIENT = "STABILIZE_PATIENT"

    HACK_TERMINAL = "HACK_TERMINAL"
    USE_COMPUTER = "USE_COMPUTER"
    REPAIR_ITEM = "REPAIR_ITEM"
    BYPASS_LOCK = "BYPASS_LOCK"
    SCAN_WITH_DEVICE = "SCAN_WITH_DEVICE"
    ACCESS_LOGS = "ACCESS_LOGS"
    OVERRIDE_DOOR = "OVERRIDE_DOOR"

    QUICK_ATTACK = "QUICK_ATTACK"
    AIMED_ATTACK = "AIMED_ATTACK"
    DEFENSIVE_STANCE = "DEFENSIVE_STANCE"
    RELOAD_WEAPON = "RELOAD_WEAPON"
    THROW_GRENADE = "THROW_GRENADE"
    TAKE_COVER = "TAKE_COVER"

    OPEN_DOOR = "OPEN_DOOR"
    FORCE_DOOR = "FORCE_DOOR"
    CLIMB_OBSTACLE = "CLIMB_OBSTACLE"
    ACTIVATE_SWITCH = "ACTIVATE_SWITCH"
    READ_SIGN = "READ_SIGN"
    BREAK_GLASS = "BREAK_GLASS"


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    name: str
    display_name: str
    description: str = ""
    # Skill that reduces every action in this category and, when set, gates
    # whether the category is offered to a character.
    skill: str | None = None
    # False: accepted by the catalog but never listed by available_actions().
    offered: bool = True


@dataclass(frozen=True, slots=True)
class ActionDef:
    action_id: str
    category: str
    cost: int
    description: str
    # Per-action skill override (e.g. stealth moves inside the core category).
    skill: str | None = None


@dataclass(frozen=True)
class CostModifiers:
    """
    Enumerated cost modifiers.

    skills: skill level by skill category; only the action's own skill applies.
    darkness / injured: fixed penalties.
    has_proper_tools / time_pressed: fixed bonuses, clamped at MIN_ACTION_COST.
    """

    skills: Mapping[str, int] = field(default_factory=dict)
    darkness: bool = False
    injured: bool = False
    has_proper_tools: bool = False
    time_pressed: bool = False

    def with_skills(self, skills: Mapping[str, int]) -> CostModifiers:
        """Fill in skills the caller did not set explicitly."""
        merged = dict(skills)
        merged.update(self.skills)
        return replace(self, skills=merged)


@dataclass(frozen=True)
class ActionContext:
    """Situation that can unlock skill-gated categories without the skill."""

    has_medical_items: bool = False
    has_system_access: bool = False

    def unlocks(self, category: str) -> bool:
        if category == "medical":
            return self.has_medical_items
        if category == "technical":
            return self.has_system_access
        return False


def normalize_action_id(action_id: str | ActionId) -> str:
    if isinstance(action_id, ActionId):
        return action_id.value
    return str(action_id).strip().upper()


def describe_action_id(action_id: str) -> str:
    """Fallback description for actions without one."""
    return f"Perform {action_id.lower().replace('_', ' ')}"


class ActionCatalog:
    """
    Action id -> tick cost lookup with skill/situation modifiers.

    Stateless after construction. Unknown ids raise UnknownActionError.
    """

    def __init__(
            self,
            actions: Iterable[ActionDef],
            categories: Iterable[CategoryInfo],
            *,
            skill_divisors: Mapping[str, int] | None = None,
    ):
        self._divisors = dict(SKILL_DIVISORS if skill_divisors is None else skill_divisors)
        for skill, divisor in self._divisors.items():
            if isinstance(divisor, bool) or not isinstance(divisor, int) or divisor <= 0:
                raise ValueError(f"skill divisor for {skill!r} must be a positive int")

        self._categories: dict[str, CategoryInfo] = {}
        for c in categories:
            if c.name in self._categories:
                raise ValueError(f"duplicate category {c.name!r}")
            self._check_skill(c.skill, f"category {c.name!r}")
            self._categories[c.name] = c

        self._actions: dict[str, ActionDef] = {}
        for a in actions:
            key = normalize_action_id(a.action_id)
            if key in self._actions:
                raise ValueError(f"duplicate action {key!r}")
            if a.category not in self._categories:
                raise ValueError(f"action {key!r} has unknown category {a.category!r}")
            if isinstance(a.cost, bool) or not isinstance(a.cost, int) or a.cost < MIN_ACTION_COST:
                raise ValueError(f"action {key!r} cost must be an int >= {MIN_ACTION_COST}")
            self._check_skill(a.skill, f"action {key!r}")
            self._actions[key] = a if a.action_id == key else replace(a, action_id=key)

    def _check_skill(self, skill: str | None, label: str) -> None:
        if skill is not None and skill not in self._divisors:
            raise ValueError(f"{label} uses skill {skill!r} with no divisor")

    def __contains__(self, action_id: object) -> bool:
        if not isinstance(action_id, str):
            return False
        return normalize_action_id(action_id) in self._actions

    def __iter__(self) -> Iterator[ActionDef]:
        return iter(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def skill_divisors(self) -> dict[str, int]:
        return dict(self._divisors)

    def get(self, action_id: str | ActionId) -> ActionDef:
        key = normalize_action_id(action_id)
        action = self._actions.get(key)
        if action is None:
            raise UnknownActionError(key)
        return action

    def base_cost(self, action_id: str | ActionId) -> int:
        return self.get(action_id).cost

    def skill_for(self, action_id: str | ActionId) -> str | None:
        action = self.get(action_id)
        if action.skill is not None:
            return action.skill
        return self._categories[action.category].skill

    def modified_cost(self, action_id: str | ActionId, modifiers: CostModifiers | None = None) -> int:
        """
        Base cost adjusted by skill and situation. Never below MIN_ACTION_COST.

        Order: skill reduction, penalties, then bonuses. Every subtraction is
        clamped at MIN_ACTION_COST as it is applied.
        """
        cost = self.base_cost(action_id)
        if modifiers is None:
            return cost

        skill = self.skill_for(action_id)
        if skill is not None:
            level = modifiers.skills.get(skill, 0)
            if isinstance(level, bool) or not isinstance(level, int) or level < 0:
                raise ValueError(f"skill level for {skill!r} must be an int >= 0 (got {level!r})")
            if level:
                cost = max(MIN_ACTION_COST, cost - level // self._divisors[skill])

        if modifiers.darkness:
            cost += DARKNESS_PENALTY
        if modifiers.injured:
            cost += INJURED_PENALTY
        if modifiers.has_proper_tools:
            cost = max(MIN_ACTION_COST, cost - PROPER_TOOLS_BONUS)
        if modifiers.time_pressed:
            cost = max(MIN_ACTION_COST, cost - TIME_PRESSED_BONUS)

        return max(MIN_ACTION_COST, cost)

    def describe(self, action_id: str | ActionId) -> str:
        return self.get(action_id).description

    def categories(self) -> list[CategoryInfo]:
        return list(self._categories.values())

    def category(self, name: str) -> CategoryInfo:
        info = self._categories.get(name)
        if info is None:
            raise KeyError(name)
        return info

    def actions_in(self, category: str) -> list[ActionDef]:
        return [a for a in self._actions.values() if a.category == category]

    def available_actions(
            self,
            skills: Mapping[str, int] | None = None,
            context: ActionContext | None = None,
    ) -> list[ActionDef]:
        """
        Actions a character may choose from, in catalog order.

        Ungated offered categories are always listed. A category gated by a
        skill is listed when that skill is above SKILL_UNLOCK_LEVEL or the
        context unlocks it (medical items, system access).
        """
        skills = skills or {}
        context = context or ActionContext()
        out: list[ActionDef] = []
        for info in self._categories.values():
            if not info.offered:
                continue
            if info.skill is not None:
                if skills.get(info.skill, 0) <= SKILL_UNLOCK_LEVEL and not context.unlocks(info.name):
                    continue
            out.extend(self.actions_in(info.name))
        return out


# ----------------------------
# Built-in catalog
# ----------------------------

# Light actions 3-4 ticks, medium 6-8, heavy 10+, emergency 1-2.
_DEFAULT_CATEGORIES: tuple[CategoryInfo, ...] = (
    CategoryInfo("core", "Basic Actions", "Actions available to all characters"),
    CategoryInfo("medical", "Medical Actions", "Medical treatment and health management", skill="medical"),
    CategoryInfo("technical", "Technical Actions", "Computer and equipment operations", skill="technical"),
    CategoryInfo("combat", "Combat Actions", "Defensive and offensive actions", offered=False),
    CategoryInfo("environmental", "Environmental Actions", "Interactions with the station", offered=False),
)

# (id, category, cost, description or None, skill override)
_DEFAULT_ACTIONS: tuple[tuple[ActionId, str, int, str | None, str | None], ...] = (
    (ActionId.MOVE_ROOM, "core", 10, "Move to a connected room", None),
    (ActionId.MOVE_ADJACENT, "core", 8, "Move to different area in current room", None),
    (ActionId.SEARCH_AREA, "core", 6, "Search containers and furniture", None),
    (ActionId.SEARCH_THOROUGH, "core", 10, "Perform detailed search of area", None),
    (ActionId.EXAMINE_ITEM, "core", 4, "Look closely at an item", None),
    (ActionId.USE_ITEM, "core", 4, "Use a simple item", None),
    (ActionId.USE_COMPLEX_ITEM, "core", 8, "Operate complex equipment", None),
    (ActionId.PICK_UP_ITEM, "core", 3, "Pick up a small item", None),
    (ActionId.PICK_UP_HEAVY, "core", 6, "Pick up a heavy item", None),
    (ActionId.DROP_ITEM, "core", 2, "Drop item from inventory", None),
    (ActionId.QUICK_LOOK, "core", 3, "Take a quick look around", None),
    (ActionId.LISTEN, "core", 3, "Listen carefully for sounds", None),
    (ActionId.CHECK_HEALTH, "core", 2, "Check your health status", None),
    (ActionId.COMMUNICATE, "core", 2, "Send radio message", None),
    (ActionId.HIDE_IN_COVER, "core", 6, "Find cover and hide", "stealth"),
    (ActionId.SNEAK_MOVE, "core", 12, "Move quietly and carefully", "stealth"),
    (ActionId.PEEK_AROUND, "core", 4, "Carefully look around corner", None),
    (ActionId.DUCK_FOR_COVER, "core", 1, "Quick defensive reaction", None),
    (ActionId.DODGE_DANGER, "core", 2, "Dodge incoming danger", None),
    (ActionId.EMERGENCY_STOP, "core", 1, "Stop current action immediately", None),
    (ActionId.FIRST_AID, "medical", 8, "Provide basic medical treatment", None),
    (ActionId.ADVANCED_MEDICAL, "medical", 15, "Perform complex medical procedure", None),
    (ActionId.APPLY_BANDAGE, "medical", 4, "Apply bandage to wound", None),
    (ActionId.INJECT_MEDICINE, "medical", 3, "Use medical injection", None),
    (ActionId.MEDICAL_SCAN, "medical", 6, "Check someone's health", None),
    (ActionId.STABILIZE_PATIENT, "medical", 12, "Provide emergency life support", None),
    (ActionId.HACK_TERMINAL, "technical", 15, "Break into computer system", None),
    (ActionId.USE_COMPUTER, "technical", 6, "Use computer normally", None),
    (ActionId.REPAIR_ITEM, "technical", 12, "Repair broken equipment", None),
    (ActionId.BYPASS_LOCK, "technical", 10, "Override electronic lock", None),
    (ActionId.SCAN_WITH_DEVICE, "technical", 4, "Use handheld scanner", None),
    (ActionId.ACCESS_LOGS, "technical", 8, "Read system data logs", None),
    (ActionId.OVERRIDE_DOOR, "technical", 12, "Force electronic door open", None),
    (ActionId.QUICK_ATTACK, "combat", 4, None, None),
    (ActionId.AIMED_ATTACK, "combat", 8, None, None),
    (ActionId.DEFENSIVE_STANCE, "combat", 3, None, None),
    (ActionId.RELOAD_WEAPON, "combat", 5, None, None),
    (ActionId.THROW_GRENADE, "combat", 6, None, None),
    (ActionId.TAKE_COVER, "combat", 2, None, None),
    (ActionId.OPEN_DOOR, "environmental", 2, "Open unlocked door", None),
    (ActionId.FORCE_DOOR, "environmental", 8, "Force locked door open", None),
    (ActionId.CLIMB_OBSTACLE, "environmental", 6, "Climb over obstacle", None),
    (ActionId.ACTIVATE_SWITCH, "environmental", 3, "Use control switch", None),
    (ActionId.READ_SIGN, "environmental", 2, "Read information display", None),
    (ActionId.BREAK_GLASS, "environmental", 4, "Break glass or container", None),
)


def default_catalog() -> ActionCatalog:
    return ActionCatalog(
        (
            ActionDef(
                action_id=aid.value,
                category=category,
                cost=cost,
                description=desc if desc is not None else describe_action_id(aid.value),
                skill=skill,
            )
            for aid, category, cost, desc, skill in _DEFAULT_ACTIONS
        ),
        _DEFAULT_CATEGORIES,
    )
