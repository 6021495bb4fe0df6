from __future__ import annotations


class SchedulerError(Exception):
    """Base class for every scheduling precondition violation."""


class DuplicateActorError(SchedulerError, ValueError):
    def __init__(self, actor_id: int):
        super().__init__(f"actor {actor_id} is already registered")
        self.actor_id = actor_id


class UnknownActorError(SchedulerError, LookupError):
    def __init__(self, actor_id: int):
        super().__init__(f"actor {actor_id} is not registered")
        self.actor_id = actor_id


class InvalidSpeedError(SchedulerError, ValueError):
    def __init__(self, actor_id: int, speed: int):
        super().__init__(f"actor {actor_id} speed must be > 0 (got {speed})")
        self.actor_id = actor_id
        self.speed = speed


class InvalidCostError(SchedulerError, ValueError):
    def __init__(self, cost: int):
        super().__init__(f"action cost must be >= 0 (got {cost})")
        self.cost = cost


class ActorNotReadyError(SchedulerError, RuntimeError):
    """
    Raised when an actor with a positive timer tries to act.

    Routine during interactive play: re-query the next eligible actor and retry.
    """

    def __init__(self, actor_id: int, timer: int):
        super().__init__(f"actor {actor_id} is not ready to act (timer: {timer})")
        self.actor_id = actor_id
        self.timer = timer


class UnknownActionError(SchedulerError, LookupError):
    def __init__(self, action_id: str):
        super().__init__(f"unknown action {action_id!r}")
        self.action_id = action_id
