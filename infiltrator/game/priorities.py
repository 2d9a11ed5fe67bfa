"""Attention ranking: what the interface should emphasize right now.

The evaluator inspects the world and produces a list of
:class:`PriorityItem` entries, each carrying a coarse tier and a numeric
weight. The list is sorted by weight alone (stable, so equal weights keep
the order they were appended in). Tiers are descriptive; to keep them
meaningful, a weight table is checked at construction so that every
Immediate weight beats every Environmental weight, which in turn beats
every Self weight.

Results are cached for a short window so per-frame callers don't recompute.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from infiltrator import config
from infiltrator.game.conditions import CRITICAL_CONDITIONS
from infiltrator.game.enums import (
    Awareness,
    Capability,
    ConditionTag,
    ModeId,
    PriorityTier,
    Verb,
)
from infiltrator.game.vitals import Vitals
from infiltrator.game.world import Room, WorldState
from infiltrator.types import Millis

logger = logging.getLogger(__name__)

CONDITION_OVERLAY = "condition-overlay"
COMBAT = "combat"
NPC_INTERACTION = "npc-interaction"
CRITICAL_STATUS = "critical-status"
OBJECTIVE_NEAR = "objective-near"
NPC_NEARBY = "npc-nearby"
ENVIRONMENT_ACTIONS = "environment-actions"
INTERACTIVE_ELEMENTS = "interactive-elements"
INVENTORY = "inventory"
VITALS = "vitals"

WeightTable: TypeAlias = Mapping[str, tuple[PriorityTier, float]]

DEFAULT_WEIGHTS: WeightTable = {
    CONDITION_OVERLAY: (PriorityTier.MODIFIER, 90),
    COMBAT: (PriorityTier.IMMEDIATE, 100),
    NPC_INTERACTION: (PriorityTier.IMMEDIATE, 95),
    CRITICAL_STATUS: (PriorityTier.IMMEDIATE, 85),
    OBJECTIVE_NEAR: (PriorityTier.ENVIRONMENTAL, 70),
    NPC_NEARBY: (PriorityTier.ENVIRONMENTAL, 60),
    ENVIRONMENT_ACTIONS: (PriorityTier.ENVIRONMENTAL, 50),
    INTERACTIVE_ELEMENTS: (PriorityTier.ENVIRONMENTAL, 45),
    INVENTORY: (PriorityTier.SELF, 20),
    VITALS: (PriorityTier.SELF, 15),
}

# Tiers whose weight bands must not overlap, highest first. The modifier
# tier rides on top of the others and is exempt.
_BANDED_TIERS = (PriorityTier.IMMEDIATE, PriorityTier.ENVIRONMENTAL, PriorityTier.SELF)


@dataclass(slots=True)
class PriorityItem:
    """One ranked attention candidate.

    Attributes:
        type: What kind of item this is (``"combat"``, ``"vitals"``, ...).
        tier: Coarse attention band. Informative only; not the sort key.
        weight: Sort key, highest first.
        data: Payload for the UI (NPC summaries, actions, modifiers...).
    """

    type: str
    tier: PriorityTier
    weight: float
    data: Any = None


@dataclass(slots=True)
class UIModifiers:
    """Overlay intensities derived from the player's vitals and conditions."""

    shake: float = 0.0
    blur: float = 0.0
    darken: float = 0.0
    pulse: float = 0.0
    vignette: float = 0.0
    tint: str | None = None
    has_effects: bool = False
    sources: list[str] = field(default_factory=list)


def validate_weights(weights: WeightTable) -> None:
    """Check that tier weight bands don't overlap.

    Raises:
        ValueError: If a lower tier's highest weight reaches a higher
            tier's lowest weight, or the table is missing an item type.
    """
    missing = set(DEFAULT_WEIGHTS) - set(weights)
    if missing:
        raise ValueError(f"Weight table missing item types: {sorted(missing)}")

    bands: dict[PriorityTier, list[float]] = {tier: [] for tier in _BANDED_TIERS}
    for item_type, (tier, weight) in weights.items():
        if tier in bands:
            bands[tier].append(weight)

    for higher, lower in zip(_BANDED_TIERS, _BANDED_TIERS[1:]):
        if not bands[higher] or not bands[lower]:
            continue
        if min(bands[higher]) <= max(bands[lower]):
            raise ValueError(
                f"{higher.name} weights (min {min(bands[higher])}) overlap "
                f"{lower.name} weights (max {max(bands[lower])})"
            )


def ui_modifiers(vitals: Vitals) -> UIModifiers:
    """Overlay intensities from stress, health, detection and conditions."""
    mods = UIModifiers()

    if vitals.stress > config.STRESS_HIGH:
        mods.shake = min(1.0, (vitals.stress - config.STRESS_HIGH) / 30)
        mods.pulse = mods.shake * 0.5
        mods.sources.append("stress")
    if vitals.stress >= config.STRESS_CRITICAL:
        mods.blur = 0.3
        mods.sources.append("stress-critical")

    if vitals.health < config.HEALTH_WOUNDED:
        mods.vignette = min(1.0, (config.HEALTH_WOUNDED - vitals.health) / 30)
        mods.sources.append("health")
    if vitals.health <= config.HEALTH_CRITICAL:
        mods.tint = "rgba(255, 0, 0, 0.1)"
        mods.pulse = max(mods.pulse, 0.8)
        mods.sources.append("health-critical")

    if vitals.detection > config.DETECTION_SUSPICIOUS:
        alpha = (vitals.detection - config.DETECTION_SUSPICIOUS) / 200
        mods.tint = f"rgba(255, 165, 0, {alpha:.2f})"
        mods.sources.append("detection")

    active = vitals.conditions
    if ConditionTag.PANICKED in active:
        mods.shake = max(mods.shake, 0.6)
        mods.blur = max(mods.blur, 0.2)
        mods.sources.append(ConditionTag.PANICKED.value)
    if ConditionTag.HIDDEN in active:
        mods.darken = 0.2
        mods.sources.append(ConditionTag.HIDDEN.value)
    if ConditionTag.ADRENALINE in active:
        mods.pulse = max(mods.pulse, 0.7)
        mods.tint = "rgba(255, 100, 100, 0.05)"
        mods.sources.append(ConditionTag.ADRENALINE.value)
    if ConditionTag.EXHAUSTED in active:
        mods.blur = max(mods.blur, 0.1)
        mods.darken = max(mods.darken, 0.15)
        mods.sources.append(ConditionTag.EXHAUSTED.value)

    mods.has_effects = bool(mods.sources)
    return mods


class PriorityEvaluator:
    """Ranks attention items for the current world state."""

    def __init__(self, weights: WeightTable | None = None) -> None:
        table = dict(weights) if weights is not None else dict(DEFAULT_WEIGHTS)
        validate_weights(table)
        self.weights: dict[str, tuple[PriorityTier, float]] = table
        self._cache: list[PriorityItem] | None = None
        self._cached_at: Millis = Millis(0.0)

    def invalidate(self) -> None:
        self._cache = None

    def _item(self, item_type: str, data: Any) -> PriorityItem:
        tier, weight = self.weights[item_type]
        return PriorityItem(item_type, tier, weight, data)

    def evaluate(self, world: WorldState, now_ms: float) -> list[PriorityItem]:
        """Rank attention items, reusing a result younger than the cache window."""
        if (
            self._cache is not None
            and now_ms - self._cached_at < config.PRIORITY_CACHE_LIFETIME_MS
        ):
            return self._cache

        player = world.player
        room = world.current_room
        items: list[PriorityItem] = []

        modifiers = ui_modifiers(player.vitals)
        if modifiers.has_effects:
            items.append(self._item(CONDITION_OVERLAY, modifiers))

        combatants = self._combatants(world)
        if combatants:
            items.append(self._item(COMBAT, combatants))

        engaged = self._engaged_npcs(world)
        if engaged and not combatants:
            items.append(self._item(NPC_INTERACTION, engaged))

        critical = self._critical_conditions(player.vitals)
        if critical:
            items.append(self._item(CRITICAL_STATUS, critical))

        nearby = self._nearby_npcs(world)
        if nearby and not engaged:
            items.append(self._item(NPC_NEARBY, nearby))

        if room is not None:
            objective = self._objective_proximity(world, room)
            if objective is not None:
                items.append(self._item(OBJECTIVE_NEAR, objective))
            items.append(
                self._item(ENVIRONMENT_ACTIONS, self._environment_actions(world, room))
            )
            elements = self._interactive_elements(room)
            if elements:
                items.append(self._item(INTERACTIVE_ELEMENTS, elements))

        items.append(self._item(INVENTORY, list(player.inventory)))
        items.append(self._item(VITALS, player.vitals.to_dict()))

        items.sort(key=lambda item: item.weight, reverse=True)

        self._cache = items
        self._cached_at = Millis(now_ms)
        return items

    def get_top_priority(
        self, world: WorldState, now_ms: float
    ) -> PriorityItem | None:
        priorities = self.evaluate(world, now_ms)
        return priorities[0] if priorities else None

    @staticmethod
    def determine_mode(priorities: Sequence[PriorityItem]) -> ModeId:
        """The mode called for by the highest-ranked NPC item.

        Overlay, status and environment items never pick a mode; a hidden
        or wounded player with a guard in the room is still sneaking.
        """
        for item in priorities:
            match item.type:
                case "combat":
                    return ModeId.COMBAT
                case "npc-interaction":
                    if item.data[0]["has_dialogue"]:
                        return ModeId.DIALOGUE
                    return ModeId.STEALTH
                case "npc-nearby":
                    return ModeId.STEALTH
        return ModeId.EXPLORATION

    # ------------------------------------------------------------------
    # Item builders
    # ------------------------------------------------------------------

    @staticmethod
    def _combatants(world: WorldState) -> list[dict[str, Any]]:
        return [
            {
                "id": npc.id,
                "name": npc.name,
                "type": npc.type,
                "health": npc.vitals.health,
                "armed": npc.has_capability(Capability.ARMED),
                "position": npc.position,
            }
            for npc in world.npcs_in_room()
            if npc.is_hostile and npc.engaged and npc.can_act()
        ]

    @staticmethod
    def _engaged_npcs(world: WorldState) -> list[dict[str, Any]]:
        return [
            {
                "id": npc.id,
                "name": npc.name,
                "type": npc.type,
                "awareness": npc.awareness.awareness.value,
                "position": npc.position,
                "has_dialogue": npc.can_talk,
                "capabilities": sorted(c.value for c in npc.capabilities),
            }
            for npc in world.npcs_in_room()
            if npc.engaged
            and npc.awareness.awareness != Awareness.UNAWARE
            and npc.can_act()
        ]

    @staticmethod
    def _nearby_npcs(world: WorldState) -> list[dict[str, Any]]:
        return [
            {
                "id": npc.id,
                "name": npc.name,
                "type": npc.type,
                "awareness": npc.awareness.awareness.value,
                "position": npc.position,
                "facing": npc.facing.value,
                "behavior": npc.behavior.value,
            }
            for npc in world.npcs_in_room()
            if not npc.engaged and npc.can_act()
        ]

    @staticmethod
    def _critical_conditions(vitals: Vitals) -> list[dict[str, Any]]:
        critical: list[dict[str, Any]] = []
        if vitals.health <= config.HEALTH_CRITICAL:
            critical.append(
                {
                    "type": "health-critical",
                    "value": vitals.health,
                    "message": "Health critical!",
                }
            )
        if vitals.stress >= config.STRESS_CRITICAL:
            critical.append(
                {
                    "type": "stress-critical",
                    "value": vitals.stress,
                    "message": "Stress overwhelming!",
                }
            )
        if vitals.detection >= config.DETECTION_SPOTTED:
            critical.append(
                {
                    "type": "detection-critical",
                    "value": vitals.detection,
                    "message": "About to be spotted!",
                }
            )
        flagged = vitals.conditions & CRITICAL_CONDITIONS
        for tag in sorted(flagged, key=lambda t: t.value):
            critical.append(
                {
                    "type": "condition-critical",
                    "condition": tag.value,
                    "message": f"{tag.value.capitalize()} condition active",
                }
            )
        return critical

    @staticmethod
    def _objective_proximity(world: WorldState, room: Room) -> dict[str, Any] | None:
        objective_elements = room.objective_elements
        if objective_elements:
            return {
                "type": "objective-in-room",
                "elements": [
                    {"id": e.id, "name": e.name, "position": e.position}
                    for e in objective_elements
                ],
            }
        reach = [
            o.to_dict()
            for o in world.objectives
            if o.type == "reach" and o.location == room.id and not o.completed
        ]
        if reach:
            return {"type": "reach-objective", "objectives": reach}
        return None

    @staticmethod
    def _environment_actions(world: WorldState, room: Room) -> list[dict[str, Any]]:
        player = world.player
        actions: list[dict[str, Any]] = []
        for exit_ in room.exits:
            blocked = exit_.locked and not player.can_open(exit_.keycard_level)
            actions.append(
                {
                    "verb": Verb.MOVE,
                    "target": exit_.destination,
                    "label": exit_.label,
                    "type": "movement",
                    "blocked": blocked,
                    "block_reason": (
                        f"Requires Level {exit_.keycard_level} Keycard"
                        if blocked
                        else None
                    ),
                    "position": exit_.position,
                }
            )
        for element in room.interactive_elements:
            if element.default_action is None:
                continue
            blocked = not player.can_open(element.keycard_level)
            verb = element.default_action
            actions.append(
                {
                    "verb": verb,
                    "target": element.id,
                    "label": f"{verb.value.capitalize()} {element.name}",
                    "type": "interaction",
                    "blocked": blocked,
                    "block_reason": (
                        f"Requires Level {element.keycard_level} Keycard"
                        if blocked
                        else None
                    ),
                    "position": element.position,
                }
            )
        actions.append(
            {
                "verb": Verb.LOOK,
                "target": "room",
                "label": "Survey Room",
                "type": "observation",
            }
        )
        actions.append(
            {
                "verb": Verb.LISTEN,
                "target": "room",
                "label": "Listen",
                "type": "observation",
            }
        )
        return actions

    @staticmethod
    def _interactive_elements(room: Room) -> list[dict[str, Any]]:
        return [
            {
                "id": e.id,
                "name": e.name,
                "type": e.type,
                "position": e.position,
                "default_action": e.default_action,
                "is_objective": e.is_objective,
                "contents": list(e.contents),
                "provides_cover": e.provides_cover,
            }
            for e in room.interactive_elements
        ]
