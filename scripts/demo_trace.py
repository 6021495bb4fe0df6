from __future__ import annotations

from tick_scheduler.session import Session
from tick_scheduler.trace import run_with_trace


def main() -> None:
    session = Session()
    session.add_actor("Sarge", 5, action_sequence=["MOVE_ROOM", "QUICK_LOOK"])
    session.add_actor("Rook", 3, skills={"technical": 8}, action_sequence=["HACK_TERMINAL"])
    session.add_actor("Doc", 2, skills={"medical": 8}, action_sequence=["FIRST_AID", "LISTEN"])

    log = run_with_trace(session, 10)

    for entry in log:
        if entry.kind == "advance":
            ready = ", ".join(str(a) for a in entry.newly_ready) or "-"
            print(f"\nTick {entry.tick:2d} | advance (newly ready: {ready})")
        else:
            print(
                f"\nTick {entry.tick:2d} | {entry.actor_name} does {entry.action_id} "
                f"(+{entry.cost} ticks)"
            )

        for a in entry.snapshot.actors:
            # * = ready, > = active
            marker = ">" if a.is_active else ("*" if a.is_ready else " ")
            print(f"  {marker} {a.name:<8s} timer={a.timer:4d}  speed={a.speed}")


if __name__ == "__main__":
    main()
