"""Headless runner: load a mission, play a scripted action list, log the story."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from infiltrator import config
from infiltrator.events import (
    ActionBlockedEvent,
    AdvisorLineEvent,
    EventBus,
    MessageEvent,
    MissionCompleteEvent,
    MissionFailedEvent,
    ModeChangedEvent,
    RoomEnteredEvent,
)
from infiltrator.game.engine import Engine
from infiltrator.game.world import WorldState
from infiltrator.util.clock import TickPacer

logger = logging.getLogger("infiltrator")


def _log_events(bus: EventBus) -> None:
    bus.subscribe(
        AdvisorLineEvent,
        lambda e: logger.info(f"[advisor/{e.reliability.value}] {e.text}"),
    )
    bus.subscribe(
        ModeChangedEvent,
        lambda e: logger.info(f"Mode {e.from_mode.value} -> {e.to_mode.value}"),
    )
    bus.subscribe(RoomEnteredEvent, lambda e: logger.info(f"Entered {e.room_id}"))
    bus.subscribe(MessageEvent, lambda e: logger.info(e.text))
    bus.subscribe(
        ActionBlockedEvent, lambda e: logger.info(f"Blocked {e.verb}: {e.reason}")
    )
    bus.subscribe(MissionFailedEvent, lambda e: logger.info(f"FAILED: {e.reason}"))
    bus.subscribe(
        MissionCompleteEvent,
        lambda e: logger.info(
            f"COMPLETE (optional: {e.optional_completed}, ghost: {e.ghosted})"
        ),
    )


def _parse_action(raw: str) -> tuple[str, str | None]:
    verb, _, target = raw.strip().partition(" ")
    return verb, target.strip() or None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run an infiltration mission headless")
    parser.add_argument("mission", type=Path, help="Mission JSON file")
    parser.add_argument(
        "--action",
        action="append",
        default=[],
        help='Player action as "verb [target]". Repeat for a sequence.',
    )
    parser.add_argument(
        "--action-interval",
        type=int,
        default=10,
        help="Ticks between scripted actions (default: 10)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=config.MAX_HEADLESS_TICKS,
        help="Maximum ticks to run",
    )
    parser.add_argument("--seed", default=config.RANDOM_SEED, help="Master RNG seed")
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace ticks to wall-clock time instead of running flat out",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--save", type=Path, help="Write the final state as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    raw = json.loads(args.mission.read_text())
    world = WorldState.from_dict(raw)
    bus = EventBus()
    _log_events(bus)
    engine = Engine(world, bus=bus, seed=args.seed)
    engine.enter_room(world.current_room_id)

    pending = [_parse_action(a) for a in args.action]
    pacer = TickPacer(config.TICK_INTERVAL_MS) if args.realtime else None
    ticks = 0
    while ticks < args.ticks and not engine.is_over:
        if pending and ticks % max(1, args.action_interval) == 0:
            verb, target = pending.pop(0)
            engine.execute(verb, target)
        ticks += engine.run(1, pacer)

    logger.info(
        f"Stopped after {ticks} ticks in {engine.world.current_room_id} "
        f"({engine.modes.current.value} mode)"
    )
    if args.save is not None:
        args.save.write_text(json.dumps(engine.serialize(), indent=2))

    if engine.game_over:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
