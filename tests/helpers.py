from __future__ import annotations

import copy
from typing import Any

from infiltrator.events import EventBus, GameEvent
from infiltrator.game.actors import NPC
from infiltrator.game.engine import Engine
from infiltrator.game.enums import (
    AdvisorTrigger,
    Awareness,
    Behavior,
    Facing,
    Reliability,
)
from infiltrator.game.world import WorldState
from infiltrator.types import NpcId, RoomId, RoomPos
from infiltrator.util.clock import SimulationClock

BASE_MISSION: dict[str, Any] = {
    "id": "test-mission",
    "title": "Test Mission",
    "starting_room": "lobby-main",
    "starting_position": [0, 0],
    "starting_equipment": [],
    "extraction_room": "lobby-main",
    "items": {"medkit": {"name": "Medkit", "heal_amount": 30, "uses": 2}},
    "rooms": {
        "lobby-main": {
            "name": "Lobby",
            "attributes": {"lighting": "normal", "noise": "normal"},
            "exits": [
                {"destination": "hallway-east", "label": "Hallway", "position": [9, 0]}
            ],
            "elements": [
                {
                    "id": "reception-desk",
                    "name": "Reception desk",
                    "type": "furniture",
                    "description": "A visitor log lies open.",
                    "interactive": True,
                    "default_action": "examine",
                    "provides_cover": True,
                }
            ],
        },
        "hallway-east": {
            "name": "Hallway",
            "attributes": {"lighting": "dim"},
            "exits": [
                {"destination": "lobby-main", "label": "Lobby", "position": [0, 0]},
                {
                    "destination": "server-room-3",
                    "label": "Server room",
                    "locked": True,
                    "keycard_level": 2,
                },
            ],
        },
        "server-room-3": {
            "name": "Server Room",
            "attributes": {"noise": "loud", "cover": True},
            "exits": [{"destination": "hallway-east", "label": "Hallway"}],
            "elements": [
                {
                    "id": "admin-terminal",
                    "name": "Admin terminal",
                    "type": "terminal",
                    "interactive": True,
                    "is_objective": True,
                    "default_action": "hack",
                    "difficulty": 40,
                    "contents": ["access-logs"],
                }
            ],
        },
    },
    "npcs": [],
    "objectives": [
        {"id": "obj-extract-logs", "description": "Get the logs"},
        {"id": "obj-extract-exit", "description": "Get out"},
    ],
}


def make_mission(**overrides: Any) -> dict[str, Any]:
    """A small three-room mission, with top-level keys replaced by overrides."""
    mission = copy.deepcopy(BASE_MISSION)
    mission.update(overrides)
    return mission


def make_world(**overrides: Any) -> WorldState:
    return WorldState.from_dict(make_mission(**overrides))


def add_npc(
    world: WorldState,
    npc_id: str,
    npc_type: str = "guard",
    *,
    room: str | None = None,
    position: RoomPos = (2.0, 0.0),
    facing: Facing = Facing.WEST,
    awareness: Awareness = Awareness.UNAWARE,
    behavior: Behavior = Behavior.STATIONARY,
    dialogue_id: str | None = None,
) -> NPC:
    """Place an NPC directly into the world.

    The defaults put it two tiles east of a player at the origin, looking
    straight at them.
    """
    npc = NPC.from_template(
        NpcId(npc_id),
        npc_type,
        RoomId(room or world.current_room_id),
        position=position,
        facing=facing,
        awareness=awareness,
        behavior=behavior,
        dialogue_id=dialogue_id,
    )
    world.npcs[npc.id] = npc
    return npc


def make_engine(world: WorldState | None = None, **kwargs: Any) -> Engine:
    return Engine(world or make_world(), clock=SimulationClock(), **kwargs)


def collect(bus: EventBus, event_type: type[GameEvent]) -> list[Any]:
    """Subscribe a recorder for one event type and return its list."""
    received: list[Any] = []
    bus.subscribe(event_type, received.append)
    return received


class RecordingProvider:
    """Line provider that echoes its inputs and remembers every request."""

    def __init__(self) -> None:
        self.calls: list[tuple[AdvisorTrigger, Reliability, str | None]] = []

    def line(
        self,
        trigger: AdvisorTrigger,
        reliability: Reliability,
        context: str | None = None,
    ) -> str | None:
        self.calls.append((trigger, reliability, context))
        return f"{trigger.value}:{context}"
