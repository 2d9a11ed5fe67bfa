"""Mission snapshot and the mutable world context passed to every stage.

Mission data arrives as plain dicts (parsed from JSON by the caller) and is
turned into typed, read-mostly records here: rooms with their exits,
elements and attributes, NPC placements, objectives and item definitions.
:class:`WorldState` then carries everything that changes during play. It is
created once per mission and handed explicitly to the components that need
it; there is no module-level game state.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from infiltrator import config
from infiltrator.game.actors import NPC, Player
from infiltrator.game.enums import (
    AdvisorMode,
    Awareness,
    Behavior,
    Facing,
    Lighting,
    Noise,
    Verb,
)
from infiltrator.types import ElementId, ItemId, NpcId, PlainData, RoomId, RoomPos

logger = logging.getLogger(__name__)


def _pos(raw: Any, default: RoomPos = (0.0, 0.0)) -> RoomPos:
    """Accept ``[x, y]`` or ``{"x": .., "y": ..}`` positions."""
    if raw is None:
        return default
    if isinstance(raw, dict):
        return (float(raw.get("x", 0)), float(raw.get("y", 0)))
    x, y = raw
    return (float(x), float(y))


@dataclass(slots=True)
class Exit:
    destination: RoomId
    label: str = ""
    locked: bool = False
    keycard_level: int = 0
    position: RoomPos | None = None

    @classmethod
    def from_dict(cls, raw: PlainData) -> Exit:
        return cls(
            destination=RoomId(raw["destination"]),
            label=raw.get("label", ""),
            locked=raw.get("locked", False),
            keycard_level=raw.get("keycard_level", 0),
            position=_pos(raw["position"]) if "position" in raw else None,
        )


@dataclass(slots=True)
class Element:
    """Something in a room the player can look at or interact with."""

    id: ElementId
    name: str
    type: str = "object"
    description: str = ""
    interactive: bool = False
    is_objective: bool = False
    default_action: Verb | None = None
    position: RoomPos = (0.0, 0.0)
    contents: list[ItemId] = field(default_factory=list)
    provides_cover: bool = False
    keycard_level: int = 0
    difficulty: int = config.DEFAULT_ELEMENT_DIFFICULTY

    @classmethod
    def from_dict(cls, raw: PlainData) -> Element:
        action = raw.get("default_action")
        return cls(
            id=ElementId(raw["id"]),
            name=raw.get("name", raw["id"]),
            type=raw.get("type", "object"),
            description=raw.get("description", ""),
            interactive=raw.get("interactive", False),
            is_objective=raw.get("is_objective", False),
            default_action=Verb(action) if action else None,
            position=_pos(raw.get("position")),
            contents=[ItemId(item) for item in raw.get("contents", [])],
            provides_cover=raw.get("provides_cover", False),
            keycard_level=raw.get("keycard_level", 0),
            difficulty=raw.get("difficulty", config.DEFAULT_ELEMENT_DIFFICULTY),
        )


@dataclass(frozen=True, slots=True)
class RoomAttributes:
    lighting: Lighting = Lighting.NORMAL
    noise: Noise = Noise.NORMAL
    cover: bool = False
    security: str = "low"

    @classmethod
    def from_dict(cls, raw: PlainData) -> RoomAttributes:
        return cls(
            lighting=Lighting(raw.get("lighting", Lighting.NORMAL.value)),
            noise=Noise(raw.get("noise", Noise.NORMAL.value)),
            cover=raw.get("cover", False),
            security=raw.get("security", "low"),
        )


@dataclass(frozen=True, slots=True)
class NpcSlot:
    """A placement spot in a room that an NPC can be assigned to."""

    id: str
    position: RoomPos = (0.0, 0.0)
    facing: Facing = Facing.SOUTH
    behavior: Behavior = Behavior.STATIONARY
    patrol_path: tuple[RoomPos, ...] = ()
    work_stations: tuple[RoomPos, ...] = ()

    @classmethod
    def from_dict(cls, raw: PlainData) -> NpcSlot:
        return cls(
            id=raw["id"],
            position=_pos(raw.get("position")),
            facing=Facing(raw.get("facing", Facing.SOUTH.value)),
            behavior=Behavior(raw.get("behavior", Behavior.STATIONARY.value)),
            patrol_path=tuple(_pos(p) for p in raw.get("patrol_path", [])),
            work_stations=tuple(_pos(p) for p in raw.get("work_stations", [])),
        )


@dataclass(slots=True)
class Room:
    id: RoomId
    name: str
    description: str = ""
    exits: list[Exit] = field(default_factory=list)
    elements: list[Element] = field(default_factory=list)
    attributes: RoomAttributes = field(default_factory=RoomAttributes)
    npc_slots: list[NpcSlot] = field(default_factory=list)

    @classmethod
    def from_dict(cls, room_id: str, raw: PlainData) -> Room:
        return cls(
            id=RoomId(room_id),
            name=raw.get("name", room_id),
            description=raw.get("description", ""),
            exits=[Exit.from_dict(e) for e in raw.get("exits", [])],
            elements=[Element.from_dict(e) for e in raw.get("elements", [])],
            attributes=RoomAttributes.from_dict(raw.get("attributes", {})),
            npc_slots=[NpcSlot.from_dict(s) for s in raw.get("npc_slots", [])],
        )

    def exit_to(self, destination: str) -> Exit | None:
        return next((e for e in self.exits if e.destination == destination), None)

    def element(self, element_id: str) -> Element | None:
        return next((e for e in self.elements if e.id == element_id), None)

    def slot(self, slot_id: str | None) -> NpcSlot | None:
        if slot_id is not None:
            for slot in self.npc_slots:
                if slot.id == slot_id:
                    return slot
        return self.npc_slots[0] if self.npc_slots else None

    @property
    def interactive_elements(self) -> list[Element]:
        return [e for e in self.elements if e.interactive]

    @property
    def objective_elements(self) -> list[Element]:
        return [e for e in self.elements if e.is_objective]

    @property
    def offers_cover(self) -> bool:
        return self.attributes.cover or any(e.provides_cover for e in self.elements)


@dataclass(slots=True)
class Objective:
    """A mission objective.

    ``type`` drives automatic completion: ``retrieve`` (carry ``target``),
    ``reach`` (stand in ``location``), ``subdue`` (NPC ``target`` is
    unconscious) and ``hack`` (terminal ``target`` was hacked). Any other
    type is completed only by scripted game logic.
    """

    id: str
    description: str = ""
    type: str = "custom"
    target: str | None = None
    location: RoomId | None = None
    optional: bool = False
    completed: bool = False

    @classmethod
    def from_dict(cls, raw: PlainData) -> Objective:
        location = raw.get("location")
        return cls(
            id=raw["id"],
            description=raw.get("description", ""),
            type=raw.get("type", "custom"),
            target=raw.get("target"),
            location=RoomId(location) if location else None,
            optional=raw.get("optional", False),
            completed=raw.get("completed", False),
        )

    def to_dict(self) -> PlainData:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type,
            "target": self.target,
            "location": self.location,
            "optional": self.optional,
            "completed": self.completed,
        }


@dataclass(frozen=True, slots=True)
class NpcPlacement:
    id: NpcId
    type: str
    location: RoomId
    slot: str | None = None
    name: str | None = None
    dialogue_id: str | None = None
    awareness: Awareness = Awareness.UNAWARE

    @classmethod
    def from_dict(cls, raw: PlainData) -> NpcPlacement:
        return cls(
            id=NpcId(raw["id"]),
            type=raw.get("type", "generic"),
            location=RoomId(raw["location"]),
            slot=raw.get("slot"),
            name=raw.get("name"),
            dialogue_id=raw.get("dialogue_id"),
            awareness=Awareness(raw.get("awareness", Awareness.UNAWARE.value)),
        )


@dataclass(frozen=True, slots=True)
class ItemSpec:
    """Static item definition for usable equipment."""

    id: ItemId
    name: str
    heal_amount: int = 0
    uses: int | None = None

    @classmethod
    def from_dict(cls, item_id: str, raw: PlainData) -> ItemSpec:
        return cls(
            id=ItemId(item_id),
            name=raw.get("name", item_id),
            heal_amount=raw.get("heal_amount", 0),
            uses=raw.get("uses"),
        )


@dataclass(slots=True)
class MissionData:
    """Read-only mission definition as supplied by the content loader."""

    id: str
    title: str
    rooms: dict[RoomId, Room]
    starting_room: RoomId
    starting_position: RoomPos = (0.0, 0.0)
    starting_equipment: list[ItemId] = field(default_factory=list)
    npcs: list[NpcPlacement] = field(default_factory=list)
    objectives: list[Objective] = field(default_factory=list)
    items: dict[ItemId, ItemSpec] = field(default_factory=dict)
    advisor_mode: AdvisorMode = AdvisorMode.BALANCED
    extraction_room: RoomId = RoomId(config.DEFAULT_EXTRACTION_ROOM)

    @classmethod
    def from_dict(cls, raw: PlainData) -> MissionData:
        """Build a mission from parsed JSON.

        Raises:
            ValueError: If the mission has no rooms, names an unknown
                starting room, or places two NPCs with the same id.
        """
        rooms = {
            RoomId(room_id): Room.from_dict(room_id, room_raw)
            for room_id, room_raw in raw.get("rooms", {}).items()
        }
        if not rooms:
            raise ValueError("Mission defines no rooms")

        starting_room = RoomId(raw.get("starting_room", next(iter(rooms))))
        if starting_room not in rooms:
            raise ValueError(f"Unknown starting room '{starting_room}'")

        placements = [NpcPlacement.from_dict(n) for n in raw.get("npcs", [])]
        seen: set[NpcId] = set()
        for placement in placements:
            if placement.id in seen:
                raise ValueError(f"Duplicate NPC id '{placement.id}'")
            seen.add(placement.id)

        return cls(
            id=raw.get("id", "mission"),
            title=raw.get("title", "Untitled"),
            rooms=rooms,
            starting_room=starting_room,
            starting_position=_pos(raw.get("starting_position")),
            starting_equipment=[ItemId(i) for i in raw.get("starting_equipment", [])],
            npcs=placements,
            objectives=[Objective.from_dict(o) for o in raw.get("objectives", [])],
            items={
                ItemId(item_id): ItemSpec.from_dict(item_id, item_raw)
                for item_id, item_raw in raw.get("items", {}).items()
            },
            advisor_mode=AdvisorMode(
                raw.get("advisor_mode", AdvisorMode.BALANCED.value)
            ),
            extraction_room=RoomId(
                raw.get("extraction_room", config.DEFAULT_EXTRACTION_ROOM)
            ),
        )

    def spawn_npcs(self) -> dict[NpcId, NPC]:
        """Instantiate every placed NPC from its template and room slot."""
        npcs: dict[NpcId, NPC] = {}
        for placement in self.npcs:
            room = self.rooms.get(placement.location)
            if room is None:
                logger.warning(
                    f"NPC '{placement.id}' placed in unknown room "
                    f"'{placement.location}', skipping"
                )
                continue
            slot = room.slot(placement.slot)
            npc = NPC.from_template(
                placement.id,
                placement.type,
                placement.location,
                name=placement.name,
                dialogue_id=placement.dialogue_id,
                awareness=placement.awareness,
                position=slot.position if slot else None,
                facing=slot.facing if slot else None,
                behavior=slot.behavior if slot else None,
                patrol_path=list(slot.patrol_path) if slot else None,
                work_stations=list(slot.work_stations) if slot else None,
            )
            npcs[npc.id] = npc
        return npcs


class WorldState:
    """Everything that changes during a mission.

    Attributes:
        mission: The immutable mission definition this world was built from.
        rooms: Room graph. Exits may be locked at runtime by NPCs.
        player: The player actor.
        npcs: All NPCs keyed by id, in any room.
        objectives: Working copies of the mission objectives.
        flags: Story flags (``logs_acquired``, ``alarm_triggered``, ...).
        current_room_id: The room the player is in.
        room_items: Items lying loose in each room (dropped by NPCs).
        item_uses: Remaining uses of limited-use items, once first used.
        intel: Discovered information strings.
    """

    def __init__(self, mission: MissionData) -> None:
        self.mission = mission
        self.rooms: dict[RoomId, Room] = copy.deepcopy(mission.rooms)
        self.player = Player(
            inventory=list(mission.starting_equipment),
            position=mission.starting_position,
        )
        self.npcs: dict[NpcId, NPC] = mission.spawn_npcs()
        self.objectives = [copy.copy(o) for o in mission.objectives]
        self.flags: dict[str, Any] = {}
        self.current_room_id: RoomId = mission.starting_room
        self.room_items: dict[RoomId, list[ItemId]] = {}
        self.item_uses: dict[ItemId, int] = {}
        self.intel: list[str] = []

    @classmethod
    def from_dict(cls, raw: PlainData) -> WorldState:
        return cls(MissionData.from_dict(raw))

    @property
    def current_room(self) -> Room | None:
        return self.rooms.get(self.current_room_id)

    def room(self, room_id: str) -> Room | None:
        return self.rooms.get(RoomId(room_id))

    def npc(self, npc_id: str) -> NPC | None:
        return self.npcs.get(NpcId(npc_id))

    def npcs_in_room(self, room_id: str | None = None) -> list[NPC]:
        room_id = room_id or self.current_room_id
        return [npc for npc in self.npcs.values() if npc.location == room_id]

    def element(self, element_id: str) -> Element | None:
        room = self.current_room
        return room.element(element_id) if room else None

    def has_flag(self, key: str) -> bool:
        return self.flags.get(key) is True

    def set_flag(self, key: str, value: Any = True) -> None:
        self.flags[key] = value

    def objective(self, objective_id: str) -> Objective | None:
        return next((o for o in self.objectives if o.id == objective_id), None)

    def complete_objective(self, objective_id: str) -> bool:
        """Mark an objective complete. Returns True if it wasn't already."""
        objective = self.objective(objective_id)
        if objective is None or objective.completed:
            return False
        objective.completed = True
        logger.info(f"Objective complete: {objective.description or objective.id}")
        return True

    def objectives_data(self) -> list[PlainData]:
        return [o.to_dict() for o in self.objectives]
