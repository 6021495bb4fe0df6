from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tick_scheduler.actions import ActionCatalog, default_catalog
from tick_scheduler.errors import SchedulerError
from tick_scheduler.event_sink import LoggingEventSink
from tick_scheduler.events import Event
from tick_scheduler.reporting import actor_names, group_events_into_tick_frames
from tick_scheduler.session import build_session
from tick_scheduler.stream_io import (
    InputFormatError,
    Roster,
    RosterActor,
    load_action_catalog,
    load_event_stream,
    load_roster,
    write_event_stream,
)
from tick_scheduler.trace import (
    ActionSequencePolicy,
    IdleLimitError,
    SequenceExhaustedError,
    run_with_trace,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("tick_scheduler")


def _demo_roster() -> Roster:
    # v0 deterministic demo: the 5/3/2 speed squad
    return Roster(
        actors=[
            RosterActor(
                name="Sarge",
                speed=5,
                action_sequence=["MOVE_ROOM", "QUICK_LOOK", "COMMUNICATE"],
            ),
            RosterActor(
                name="Rook",
                speed=3,
                skills={"technical": 8},
                action_sequence=["HACK_TERMINAL", "SEARCH_AREA"],
            ),
            RosterActor(
                name="Doc",
                speed=2,
                skills={"medical": 8},
                action_sequence=["FIRST_AID", "LISTEN"],
            ),
        ]
    )


def _check_sequences(roster: Roster, catalog: ActionCatalog) -> None:
    for i, a in enumerate(roster.actors):
        for j, action_id in enumerate(a.action_sequence or ()):
            if action_id not in catalog:
                raise InputFormatError(
                    f"actors[{i}].action_sequence[{j}] is not a known action: {action_id!r}"
                )


def _render_text_report(*, events: list[Event], row_index_start: int | None = None) -> str:
    names = actor_names(events)
    frames = group_events_into_tick_frames(events)

    def _label(actor: int) -> str:
        return names.get(actor, f"#{actor}")

    out: list[str] = []
    if not any(frame.rows for frame in frames):
        out.append("(No actions were taken. Try increasing --turns.)")
        return "\n".join(out) + "\n"

    row_idx = row_index_start

    for frame in frames:
        header = f"Tick #{frame.tick}"
        if frame.newly_ready:
            header += "  ready: " + ", ".join(_label(a) for a in frame.newly_ready)
        out.append(header)

        # Pad actor and action columns per frame.
        labels = [_label(row.actor) for row in frame.rows]
        actions = [row.action_id or "-" for row in frame.rows]
        max_actor_len = max((len(label) for label in labels), default=0)
        max_action_len = max((len(action) for action in actions), default=0)

        for row, label, action in zip(frame.rows, labels, actions):
            line = (
                f"{label.ljust(max_actor_len)}  {action.ljust(max_action_len)}  "
                f"+{row.cost} ticks  timer {row.timer_before} -> {row.timer_after}"
            )
            if row_idx is None:
                out.append(f"  {line}")
            else:
                out.append(f"  {row_idx}: {line}")
                row_idx += 1

        out.append("")

    return "\n".join(out).rstrip() + "\n"


def _cmd_run(args: argparse.Namespace) -> int:
    chosen = sum(1 for v in [bool(args.demo), bool(args.roster), bool(args.input)] if v)
    if chosen != 1:
        print("ERROR: choose exactly one of --demo, --roster, or --input.", file=sys.stderr)
        return 2

    if args.input:
        try:
            events = load_event_stream(Path(str(args.input)))
        except InputFormatError as e:
            print(f"ERROR: invalid input stream: {e}", file=sys.stderr)
            return 2
        sys.stdout.write(_render_text_report(events=events, row_index_start=args.row_index_start))
        return 0

    catalog = default_catalog()
    if args.catalog:
        try:
            catalog = load_action_catalog(Path(str(args.catalog)))
        except InputFormatError as e:
            print(f"ERROR: invalid action catalog: {e}", file=sys.stderr)
            return 2

    if args.roster:
        try:
            roster = load_roster(Path(str(args.roster)))
        except InputFormatError as e:
            print(f"ERROR: invalid roster: {e}", file=sys.stderr)
            return 2
    else:
        roster = _demo_roster()

    try:
        _check_sequences(roster, catalog)
    except InputFormatError as e:
        print(f"ERROR: invalid roster: {e}", file=sys.stderr)
        return 2

    sink = LoggingEventSink()
    try:
        session = build_session(roster, catalog, event_sink=sink)
        policy = ActionSequencePolicy(policy=roster.options.sequence_policy)
        run_with_trace(
            session,
            int(args.turns),
            policy,
            max_idle_ticks=roster.options.max_idle_ticks,
        )
    except (SequenceExhaustedError, IdleLimitError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except SchedulerError as e:
        logger.error("scheduling failed: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.events_out:
        write_event_stream(Path(str(args.events_out)), sink.events)

    sys.stdout.write(_render_text_report(events=sink.events, row_index_start=args.row_index_start))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="tick_scheduler",
        description=(
            "Tick Turn Scheduler: user harness.\n"
            "\n"
            "Auto-plays a roster through the tick scheduler and prints,\n"
            "per tick, who became ready and which actions were paid for."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics on stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a simulation and print per-tick frames.")
    run.add_argument("--demo", action="store_true", help="Run the built-in deterministic demo roster.")
    run.add_argument("--roster", type=str, help="Run a roster JSON.")
    run.add_argument("--input", type=str, help="Render an existing event stream JSON.")
    run.add_argument("--catalog", type=str, help="Action catalog JSON (default: built-in catalog).")
    run.add_argument("--turns", type=int, default=12, help="Number of actions to simulate.")
    run.add_argument("--events-out", type=str, default=None, help="Write the event stream JSON here.")
    run.add_argument(
        "--row-index-start",
        type=int,
        default=None,
        help="Optional: prefix each printed action row with an incrementing index starting at this value.",
    )
    run.set_defaults(func=_cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT, stream=sys.stderr)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
