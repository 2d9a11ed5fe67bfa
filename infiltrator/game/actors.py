"""Player and NPC actors.

NPCs are built from a type template (capabilities, carried items, health)
merged with a mission placement and the room slot it occupies. Each NPC owns
a :class:`Vitals` instance and an :class:`AwarenessComponent`; idle
behaviors draw from the ``"npc.behavior"`` random stream.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from infiltrator import config
from infiltrator.events import AlarmRaisedEvent, BackupCalledEvent, EventBus
from infiltrator.game.awareness import AwarenessComponent
from infiltrator.game.enums import (
    Awareness,
    Behavior,
    Capability,
    ConditionTag,
    Facing,
)
from infiltrator.game.vitals import HEALTH, Vitals
from infiltrator.types import ItemId, NpcId, PlainData, RoomId, RoomPos

if TYPE_CHECKING:
    from infiltrator.util.rng import RNG

logger = logging.getLogger(__name__)

_KEYCARD_PATTERN = re.compile(r"keycard-level(\d+)")


def keycard_level(item_id: str) -> int:
    """Access level granted by an item id, or 0 if it isn't a keycard."""
    match = _KEYCARD_PATTERN.fullmatch(item_id)
    return int(match.group(1)) if match else 0


@dataclass(slots=True)
class Player:
    vitals: Vitals = field(default_factory=Vitals)
    inventory: list[ItemId] = field(default_factory=list)
    position: RoomPos = (0.0, 0.0)

    def has_item(self, item_id: str) -> bool:
        return item_id in self.inventory

    def add_item(self, item_id: ItemId) -> bool:
        """Add an item if not already carried. Returns True if added."""
        if item_id in self.inventory:
            return False
        self.inventory.append(item_id)
        return True

    def remove_item(self, item_id: ItemId) -> bool:
        if item_id not in self.inventory:
            return False
        self.inventory.remove(item_id)
        return True

    def keycard_level(self) -> int:
        """Highest keycard level carried."""
        return max((keycard_level(item) for item in self.inventory), default=0)

    def can_open(self, required_level: int) -> bool:
        return required_level <= 0 or self.keycard_level() >= required_level

    @property
    def is_hidden(self) -> bool:
        return ConditionTag.HIDDEN in self.vitals.situational


@dataclass(frozen=True, slots=True)
class NPCTemplate:
    type: str
    name: str
    capabilities: frozenset[Capability]
    inventory: tuple[ItemId, ...]
    health: int


NPC_TEMPLATES: dict[str, NPCTemplate] = {
    "guard": NPCTemplate(
        type="guard",
        name="Security Guard",
        capabilities=frozenset(
            {Capability.CALL_BACKUP, Capability.ARMED, Capability.KEYS}
        ),
        inventory=(ItemId("keycard-level1"), ItemId("radio-guard")),
        health=80,
    ),
    "tech": NPCTemplate(
        type="tech",
        name="Technician",
        capabilities=frozenset({Capability.ACCESS_CODES}),
        inventory=(ItemId("keycard-level2"),),
        health=50,
    ),
    "receptionist": NPCTemplate(
        type="receptionist",
        name="Receptionist",
        capabilities=frozenset({Capability.SOUND_ALARM}),
        inventory=(ItemId("keycard-level1"),),
        health=40,
    ),
    "executive": NPCTemplate(
        type="executive",
        name="Executive",
        capabilities=frozenset({Capability.ACCESS_CODES, Capability.LOCK_DOORS}),
        inventory=(ItemId("keycard-level3"),),
        health=40,
    ),
}


class NPC:
    """A non-player character placed in a room.

    Positions are in room-local tile units. ``location`` is the room the NPC
    currently occupies; NPCs never move between rooms on their own.
    """

    def __init__(
        self,
        npc_id: NpcId,
        location: RoomId,
        *,
        npc_type: str = "generic",
        name: str = "Unknown",
        position: RoomPos = (0.0, 0.0),
        facing: Facing = Facing.SOUTH,
        behavior: Behavior = Behavior.STATIONARY,
        patrol_path: list[RoomPos] | None = None,
        work_stations: list[RoomPos] | None = None,
        capabilities: set[Capability] | None = None,
        inventory: list[ItemId] | None = None,
        dialogue_id: str | None = None,
        awareness: Awareness = Awareness.UNAWARE,
        health: float = config.DEFAULT_MAX_HEALTH,
    ) -> None:
        self.id = npc_id
        self.type = npc_type
        self.name = name
        self.location = location
        self.position = position
        self.facing = facing
        self.behavior = behavior
        self.patrol_path = list(patrol_path or [])
        self.patrol_index = 0
        self.patrol_direction = 1
        self.work_stations = list(work_stations or [])
        self.current_work_station = 0
        self.capabilities = set(capabilities or ())
        self.inventory = list(inventory or [])
        self.dialogue_id = dialogue_id

        self.vitals = Vitals(health=health, max_health=health)
        self.awareness = AwarenessComponent(awareness)

        self.idle_timer = 0
        self.action_cooldown = 0

    def __repr__(self) -> str:
        return (
            f"NPC(id={self.id!r}, type={self.type!r}, location={self.location!r}, "
            f"awareness={self.awareness.awareness.value})"
        )

    @classmethod
    def from_template(
        cls,
        npc_id: NpcId,
        npc_type: str,
        location: RoomId,
        **overrides,
    ) -> NPC:
        """Create an NPC from a type template, with placement overrides.

        Overrides that are None fall back to the template (or the NPC
        defaults for unknown types).
        """
        kwargs = {}
        template = NPC_TEMPLATES.get(npc_type)
        if template is None:
            logger.warning(f"No NPC template for type '{npc_type}', using defaults")
        else:
            kwargs = {
                "name": template.name,
                "capabilities": set(template.capabilities),
                "inventory": list(template.inventory),
                "health": template.health,
            }
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(npc_id, location, npc_type=npc_type, **kwargs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def can_act(self) -> bool:
        return self.vitals.is_alive() and not self.is_unconscious

    @property
    def is_unconscious(self) -> bool:
        return ConditionTag.UNCONSCIOUS in self.vitals.situational

    @property
    def engaged(self) -> bool:
        return self.awareness.engaged

    @property
    def is_hostile(self) -> bool:
        return self.awareness.awareness == Awareness.HOSTILE

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def has_dialogue(self) -> bool:
        return self.dialogue_id is not None

    @property
    def can_talk(self) -> bool:
        """Whether the NPC will hold a conversation. Guards always challenge."""
        return self.has_dialogue or self.type == "guard"

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------

    def tick(self, rng: RNG) -> None:
        """Advance suspicion decay, idle behavior and cooldowns by one tick."""
        if not self.can_act():
            return

        self.awareness.decay()

        match self.behavior:
            case Behavior.PATROL:
                self._patrol()
            case Behavior.WORKER:
                self._work(rng)
            case Behavior.WANDER:
                self._wander(rng)
            case Behavior.GUARD:
                self._guard(rng)
            case Behavior.STATIONARY:
                pass

        if self.action_cooldown > 0:
            self.action_cooldown -= 1

        self.vitals.tick()
        if not self.vitals.is_alive():
            self._go_down()

    def _patrol(self) -> None:
        if len(self.patrol_path) < 2:
            return
        if self.awareness.awareness == Awareness.ALERT or self.engaged:
            return

        if self._move_toward(self.patrol_path[self.patrol_index]):
            self.patrol_index += self.patrol_direction
            # Walk the path back and forth.
            if self.patrol_index >= len(self.patrol_path):
                self.patrol_direction = -1
                self.patrol_index = len(self.patrol_path) - 2
            elif self.patrol_index < 0:
                self.patrol_direction = 1
                self.patrol_index = 1

    def _work(self, rng: RNG) -> None:
        if self.awareness.awareness != Awareness.UNAWARE or not self.work_stations:
            return
        self.idle_timer += 1
        if self.idle_timer > 50 + rng.random() * 50:
            self.idle_timer = 0
            self.current_work_station = (self.current_work_station + 1) % len(
                self.work_stations
            )
            self.position = self.work_stations[self.current_work_station]

    def _wander(self, rng: RNG) -> None:
        if self.awareness.awareness != Awareness.UNAWARE:
            return
        self.idle_timer += 1
        if self.idle_timer > 30 + rng.random() * 40:
            self.idle_timer = 0
            dx = rng.randint(-1, 1)
            dy = rng.randint(-1, 1)
            self.position = (self.position[0] + dx, self.position[1] + dy)
            self._face(dx, dy)

    def _guard(self, rng: RNG) -> None:
        self.idle_timer += 1
        if self.idle_timer > 40 + rng.random() * 20:
            self.idle_timer = 0
            self.facing = rng.choice(list(Facing))

    def _move_toward(self, target: RoomPos, speed: float = 1.0) -> bool:
        """Step toward a point. Returns True once the point is reached."""
        dx = target[0] - self.position[0]
        dy = target[1] - self.position[1]
        distance = math.hypot(dx, dy)
        if distance < 0.5:
            return True
        step = min(speed, distance)
        self.position = (
            self.position[0] + dx / distance * step,
            self.position[1] + dy / distance * step,
        )
        self._face(dx, dy)
        return False

    def _face(self, dx: float, dy: float) -> None:
        if dx == 0 and dy == 0:
            return
        if abs(dx) >= abs(dy):
            self.facing = Facing.EAST if dx > 0 else Facing.WEST
        else:
            self.facing = Facing.SOUTH if dy > 0 else Facing.NORTH

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def call_backup(self, bus: EventBus) -> bool:
        if not self.has_capability(Capability.CALL_BACKUP) or self.action_cooldown > 0:
            return False
        bus.publish(BackupCalledEvent(npc_id=self.id, room_id=self.location))
        self.action_cooldown = config.BACKUP_COOLDOWN_TICKS
        return True

    def sound_alarm(self, bus: EventBus) -> bool:
        if not self.has_capability(Capability.SOUND_ALARM) or self.action_cooldown > 0:
            return False
        bus.publish(AlarmRaisedEvent(npc_id=self.id, room_id=self.location))
        self.action_cooldown = config.ALARM_COOLDOWN_TICKS
        return True

    def can_lock_doors(self) -> bool:
        return self.has_capability(Capability.LOCK_DOORS) and self.action_cooldown == 0

    # ------------------------------------------------------------------
    # Harm
    # ------------------------------------------------------------------

    def take_damage(self, amount: float) -> None:
        self.vitals.modify(HEALTH, -amount)
        if not self.vitals.is_alive():
            self._go_down()

    def _go_down(self) -> None:
        self.vitals.add_condition(ConditionTag.UNCONSCIOUS)
        self.awareness.engaged = False

    def subdue(self) -> list[ItemId]:
        """Knock the NPC out. Returns (and empties) its carried items."""
        self.vitals.add_condition(ConditionTag.UNCONSCIOUS)
        self.awareness.force(Awareness.UNAWARE, engaged=False)
        dropped, self.inventory = self.inventory, []
        return dropped

    def drop_inventory(self) -> list[ItemId]:
        dropped, self.inventory = self.inventory, []
        return dropped

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> PlainData:
        """Runtime state that differs from what mission data reconstructs."""
        return {
            "location": self.location,
            "position": list(self.position),
            "facing": self.facing.value,
            "inventory": list(self.inventory),
            "awareness": self.awareness.to_dict(),
            "vitals": self.vitals.to_dict(),
        }

    def apply_overrides(self, data: PlainData) -> None:
        """Restore persisted runtime state over a freshly built NPC."""
        self.location = RoomId(data.get("location", self.location))
        if "position" in data:
            x, y = data["position"]
            self.position = (x, y)
        if "facing" in data:
            self.facing = Facing(data["facing"])
        if "inventory" in data:
            self.inventory = [ItemId(item) for item in data["inventory"]]
        if "awareness" in data:
            self.awareness = AwarenessComponent.from_dict(data["awareness"])
        if "vitals" in data:
            self.vitals = Vitals.from_dict(data["vitals"])
