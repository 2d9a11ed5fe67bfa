"""Ambient NPC detection: throttled, gated rolls and their consequences.

Two clocks matter here. The engine ticks every ``TICK_INTERVAL_MS``, but
detection rolls only happen once per ``DETECTION_CHECK_INTERVAL_MS``.
Rolling every tick would make the per-second detection probability so
high that the grace period after entering a room would mean nothing.

A pass is skipped entirely:

- during the grace window after entering a room,
- inside the throttle interval since the previous pass,
- while the active mode is combat or dialogue, which handle engagement
  themselves.

Each eligible NPC first runs its spatial perception check; only an NPC
that actually perceives the player gets to roll. A successful roll nudges
the player's detection meter up by a fixed increment and then applies the
consequence ladder (first alert, suspicion notice, engagement, caught).
The ladder's per-visit flags live on the NPC's awareness component so
repeated rolls never repeat a notice.

This module reports what happened as a list of :class:`DetectionOutcome`
values. It never switches modes itself; the engine owns that decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto

from infiltrator import config
from infiltrator.events import (
    DetectionIncreasedEvent,
    EventBus,
    NpcAlertedEvent,
    NpcEngagedEvent,
    NpcSpottedEvent,
)
from infiltrator.game.actors import NPC
from infiltrator.game.enums import Awareness, Lighting, ModeId, Noise
from infiltrator.game.vitals import DETECTION
from infiltrator.game.world import Room, WorldState
from infiltrator.modes.base import ENGAGEMENT_MODES
from infiltrator.types import Millis, NpcId, PlainData
from infiltrator.util.rng import RNG

logger = logging.getLogger(__name__)


class Consequence(Enum):
    """What a successful detection roll led to."""

    NOTICED = auto()  # Detection went up, no threshold crossed
    ALERTED = auto()  # First alert from this NPC (30+)
    SPOTTED = auto()  # Suspicion notice for this NPC (50+)
    ENGAGED = auto()  # NPC engages the player (80+)
    CAUGHT = auto()  # Detection maxed out, mission failed


@dataclass(frozen=True, slots=True)
class DetectionOutcome:
    """One successful detection roll.

    Attributes:
        npc_id: The NPC that spotted the player.
        level: Player detection after the increment.
        consequence: The ladder rung this roll landed on.
        mode: For ``ENGAGED``, the mode the engagement calls for, if any.
    """

    npc_id: NpcId
    level: float
    consequence: Consequence
    mode: ModeId | None = None


def detection_chance(
    npc: NPC, room: Room, player_hidden: bool, player_stress: float
) -> float:
    """Percent chance that a perceiving NPC's roll succeeds.

    Never negative; a heavily penalized roll simply can't succeed.
    """
    chance = float(config.DETECTION_BASE_CHANCE)

    match npc.awareness.awareness:
        case Awareness.ALERT:
            chance += config.DETECTION_ALERT_BONUS
        case Awareness.HOSTILE:
            chance += config.DETECTION_HOSTILE_BONUS

    match room.attributes.lighting:
        case Lighting.BRIGHT:
            chance += config.DETECTION_BRIGHT_BONUS
        case Lighting.DIM:
            chance -= config.DETECTION_DIM_PENALTY

    if player_hidden:
        chance -= config.DETECTION_HIDDEN_PENALTY
    if player_stress > config.NERVOUS_STRESS:
        chance += config.DETECTION_NERVOUS_BONUS

    match room.attributes.noise:
        case Noise.LOUD:
            chance -= config.DETECTION_LOUD_PENALTY
        case Noise.SILENT:
            chance += config.DETECTION_SILENT_BONUS

    return max(0.0, chance)


def engagement_mode(npc: NPC) -> ModeId | None:
    """The mode an engaging NPC pulls the player into.

    Hostile NPCs start a fight. NPCs with something to say (and guards,
    who always challenge) start a conversation. Anyone else engages
    without forcing a mode.
    """
    if npc.is_hostile:
        return ModeId.COMBAT
    if npc.can_talk:
        return ModeId.DIALOGUE
    return None


class DetectionSystem:
    """Throttled detection rolls for NPCs in the player's room.

    Attributes:
        world: The shared world context.
        rng: The ``"detection.roll"`` stream.
        bus: Boundary notification channel.
        entered_at: Simulation time of the last room entry.
        last_check: Simulation time of the last detection pass.
    """

    def __init__(self, world: WorldState, rng: RNG, bus: EventBus) -> None:
        self.world = world
        self.rng = rng
        self.bus = bus
        self.entered_at: Millis = Millis(0.0)
        self.last_check: Millis = Millis(float("-inf"))

    def on_room_enter(self, now_ms: float) -> None:
        """Start a fresh grace window and clear per-visit flags in the new room."""
        self.entered_at = Millis(now_ms)
        for npc in self.world.npcs_in_room():
            npc.awareness.reset_room_flags()

    def to_dict(self) -> PlainData:
        last_check = self.last_check if self.last_check != float("-inf") else None
        return {"entered_at": self.entered_at, "last_check": last_check}

    def restore(self, data: PlainData) -> None:
        self.entered_at = Millis(data.get("entered_at", 0.0))
        last_check = data.get("last_check")
        self.last_check = Millis(float("-inf") if last_check is None else last_check)

    def in_grace_period(self, now_ms: float) -> bool:
        return now_ms - self.entered_at < config.DETECTION_GRACE_PERIOD_MS

    def can_check(self, now_ms: float, mode: ModeId) -> bool:
        if self.in_grace_period(now_ms):
            return False
        if now_ms - self.last_check < config.DETECTION_CHECK_INTERVAL_MS:
            return False
        return mode not in ENGAGEMENT_MODES

    def update(self, now_ms: float, mode: ModeId) -> list[DetectionOutcome]:
        """Run one detection pass if the gates allow it."""
        if not self.can_check(now_ms, mode):
            return []
        self.last_check = Millis(now_ms)

        room = self.world.current_room
        if room is None:
            logger.warning(
                f"Detection pass in unknown room '{self.world.current_room_id}'"
            )
            return []

        outcomes: list[DetectionOutcome] = []
        for npc in self.world.npcs_in_room():
            if not self._eligible(npc):
                continue
            outcome = self._check_npc(npc, room)
            if outcome is None:
                continue
            outcomes.append(outcome)
            if outcome.consequence == Consequence.CAUGHT:
                break
        return outcomes

    def _eligible(self, npc: NPC) -> bool:
        if npc.is_unconscious or not npc.can_act():
            return False
        if npc.engaged:
            return False
        return not npc.awareness.awareness.is_scripted

    def _check_npc(self, npc: NPC, room: Room) -> DetectionOutcome | None:
        player = self.world.player
        perceived = npc.awareness.check_detection(
            npc.position,
            npc.facing,
            player.position,
            player_hidden=player.is_hidden,
            room_noise=room.attributes.noise,
        )
        if perceived is None:
            return None

        chance = detection_chance(npc, room, player.is_hidden, player.vitals.stress)
        if self.rng.random() * 100 >= chance:
            return None

        previous = player.vitals.detection
        level = player.vitals.modify(DETECTION, config.DETECTION_INCREMENT)
        logger.info(
            f"NPC {npc.id} detected player. Detection: {previous:.0f} -> {level:.0f}"
        )
        self.bus.publish(DetectionIncreasedEvent(level=level, npc_id=npc.id))

        return self._apply_ladder(npc, level)

    def _apply_ladder(self, npc: NPC, level: float) -> DetectionOutcome:
        """Map the new detection level onto this NPC's consequence."""
        awareness = npc.awareness

        if level >= config.DETECTION_CAUGHT:
            return DetectionOutcome(npc.id, level, Consequence.CAUGHT)

        if level >= config.DETECTION_ENGAGE:
            if awareness.engagement_handled:
                return DetectionOutcome(npc.id, level, Consequence.NOTICED)
            # An engaging NPC knows the player is there, even straight
            # after a room change reset its per-visit flags.
            awareness.escalate_to(Awareness.ALERT)
            awareness.engaged = True
            awareness.engagement_handled = True
            mode = engagement_mode(npc)
            logger.info(
                f"NPC {npc.id} engages the player "
                f"({mode.value if mode else 'no mode'})"
            )
            self.bus.publish(NpcEngagedEvent(npc_id=npc.id, mode=mode))
            return DetectionOutcome(npc.id, level, Consequence.ENGAGED, mode)

        if level >= config.DETECTION_SUSPICIOUS_NOTICE:
            awareness.escalate_to(Awareness.SUSPICIOUS)
            if awareness.already_spotted:
                return DetectionOutcome(npc.id, level, Consequence.NOTICED)
            awareness.already_spotted = True
            self.bus.publish(NpcSpottedEvent(npc_id=npc.id, npc_type=npc.type))
            return DetectionOutcome(npc.id, level, Consequence.SPOTTED)

        if level >= config.DETECTION_FIRST_ALERT and not awareness.already_alerted:
            awareness.escalate_to(Awareness.ALERT)
            awareness.already_alerted = True
            self.bus.publish(NpcAlertedEvent(npc_id=npc.id))
            return DetectionOutcome(npc.id, level, Consequence.ALERTED)

        return DetectionOutcome(npc.id, level, Consequence.NOTICED)
