"""Per-NPC awareness state machine.

AwarenessComponent turns accumulated suspicion into a discrete awareness
level and answers "did this NPC just notice the player?". It does not decide
what the engine does about it; the detection system maps player detection
thresholds onto consequences.

Awareness only escalates through suspicion:

    unaware -(>30)-> suspicious -(>70)-> alert -(>=100)-> hostile

The single backward edge driven by decay is suspicious -> unaware, once
suspicion falls below 30 while the NPC is not engaged. Alert and hostile
NPCs stay that way until something explicit (subdue, flee, a successful
de-escalation) calls :meth:`AwarenessComponent.force`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from infiltrator import config
from infiltrator.game.enums import Awareness, Facing, Noise
from infiltrator.types import PlainData, RoomPos

logger = logging.getLogger(__name__)

# Awareness levels reachable through accumulated suspicion, lowest first.
ESCALATION_LADDER = (
    Awareness.UNAWARE,
    Awareness.SUSPICIOUS,
    Awareness.ALERT,
    Awareness.HOSTILE,
)


@dataclass(frozen=True, slots=True)
class PerceivedPlayer:
    """Result of a successful perception check.

    Attributes:
        distance: Euclidean distance from the NPC to the player.
        effective_range: Detection radius after hidden/facing/noise penalties.
        suspicion_gained: Suspicion added to the NPC by this sighting.
    """

    distance: float
    effective_range: float
    suspicion_gained: float


def is_in_front(facing: Facing, dx: float, dy: float) -> bool:
    """Whether an offset from the NPC lies in its facing half-plane.

    Room coordinates grow east (x) and south (y).
    """
    match facing:
        case Facing.NORTH:
            return dy < 0
        case Facing.SOUTH:
            return dy > 0
        case Facing.EAST:
            return dx > 0
        case Facing.WEST:
            return dx < 0


class AwarenessComponent:
    """Suspicion accumulator and awareness level for a single NPC.

    Attributes:
        awareness: Current discrete awareness.
        suspicion: Accumulated suspicion in [0, 100].
        engaged: True once the NPC is actively dealing with the player.
            Engaged NPCs don't decay and are skipped by ambient detection.
        alert_cooldown: Ticks remaining before suspicion starts to decay.
        already_alerted: Sticky per-room-visit flag set once this NPC has
            delivered its first alert.
        already_spotted: Sticky per-room-visit flag set once the player has
            been shown the "they're suspicious" notice for this NPC.
        engagement_handled: Sticky per-room-visit flag set once the
            engagement transition for this NPC has fired.
    """

    def __init__(
        self,
        awareness: Awareness = Awareness.UNAWARE,
        suspicion: float = 0.0,
    ) -> None:
        self.awareness = awareness
        self.suspicion = max(0.0, min(float(config.SUSPICION_HOSTILE), suspicion))
        self.engaged = False
        self.alert_cooldown = 0
        self.already_alerted = False
        self.already_spotted = False
        self.engagement_handled = False

    def add_suspicion(self, amount: float) -> Awareness:
        """Accumulate suspicion and follow any forward edges it crosses.

        A single large increment may cross several thresholds at once.
        Scripted (allied/neutral) NPCs accumulate suspicion but keep their
        awareness.
        """
        self.suspicion = max(
            0.0, min(float(config.SUSPICION_HOSTILE), self.suspicion + amount)
        )
        if self.awareness.is_scripted:
            return self.awareness

        previous = self.awareness
        if (
            self.suspicion > config.SUSPICION_SUSPICIOUS
            and self.awareness == Awareness.UNAWARE
        ):
            self.awareness = Awareness.SUSPICIOUS
        if (
            self.suspicion > config.SUSPICION_ALERT
            and self.awareness == Awareness.SUSPICIOUS
        ):
            self.awareness = Awareness.ALERT
        if self.suspicion >= config.SUSPICION_HOSTILE:
            self.awareness = Awareness.HOSTILE

        if self.awareness != previous:
            logger.debug(
                f"Awareness {previous.value} -> {self.awareness.value} "
                f"(suspicion {self.suspicion:.0f})"
            )
        return self.awareness

    def decay(self, amount: float = config.SUSPICION_DECAY_PER_TICK) -> None:
        """Let suspicion fade by one tick's worth.

        Engaged and hostile NPCs don't decay. While the hold cooldown is
        running it counts down instead of suspicion.
        """
        if self.engaged or self.awareness == Awareness.HOSTILE:
            return
        if self.alert_cooldown > 0:
            self.alert_cooldown -= 1
            return

        self.suspicion = max(0.0, self.suspicion - amount)
        if (
            self.suspicion < config.SUSPICION_SUSPICIOUS
            and self.awareness == Awareness.SUSPICIOUS
        ):
            self.awareness = Awareness.UNAWARE

    def force(self, awareness: Awareness, *, engaged: bool | None = None) -> None:
        """Set awareness directly for a narrative transition.

        Used for subdue, escape, de-escalation and failed interactions.
        Suspicion is pulled into the band that matches the new level so a
        later decay or accumulation continues from a consistent place.
        """
        self.awareness = awareness
        match awareness:
            case Awareness.UNAWARE:
                self.suspicion = 0.0
            case Awareness.SUSPICIOUS:
                self.suspicion = max(self.suspicion, float(config.SUSPICION_SUSPICIOUS))
            case Awareness.ALERT:
                self.suspicion = max(self.suspicion, float(config.SUSPICION_ALERT))
            case Awareness.HOSTILE:
                self.suspicion = float(config.SUSPICION_HOSTILE)
        if engaged is not None:
            self.engaged = engaged

    def escalate_to(self, awareness: Awareness) -> bool:
        """Raise awareness to at least ``awareness`` along the ladder.

        Never lowers awareness and leaves scripted NPCs alone. Returns True
        if the level changed.
        """
        if self.awareness.is_scripted or awareness.is_scripted:
            return False
        if ESCALATION_LADDER.index(awareness) <= ESCALATION_LADDER.index(
            self.awareness
        ):
            return False
        self.force(awareness)
        return True

    def reset_room_flags(self) -> None:
        """Clear the sticky per-visit flags when the player enters the room."""
        self.already_alerted = False
        self.already_spotted = False
        self.engagement_handled = False

    def check_detection(
        self,
        npc_pos: RoomPos,
        facing: Facing,
        player_pos: RoomPos,
        *,
        player_hidden: bool = False,
        room_noise: Noise = Noise.NORMAL,
    ) -> PerceivedPlayer | None:
        """Spatial perception check against the player.

        The base radius shrinks when the player is hidden, when the player
        is behind the NPC and when the room is loud. Inside the radius the
        NPC gains suspicion that falls off with distance. Perception alone
        never engages the NPC.

        Returns:
            A PerceivedPlayer record, or None if the player was out of range.
        """
        dx = player_pos[0] - npc_pos[0]
        dy = player_pos[1] - npc_pos[1]
        distance = math.hypot(dx, dy)

        detection_range = config.NPC_DETECTION_RANGE
        if player_hidden:
            detection_range *= config.HIDDEN_RANGE_MULTIPLIER
        if not is_in_front(facing, dx, dy):
            detection_range *= config.BEHIND_RANGE_MULTIPLIER
        if room_noise == Noise.LOUD:
            detection_range *= config.LOUD_ROOM_RANGE_MULTIPLIER

        if distance > detection_range:
            return None

        gained = max(
            config.MIN_SUSPICION_GAIN,
            config.MAX_SUSPICION_GAIN - distance * config.SUSPICION_FALLOFF_PER_TILE,
        )
        self.add_suspicion(gained)
        self.alert_cooldown = config.SUSPICION_HOLD_TICKS

        return PerceivedPlayer(
            distance=distance,
            effective_range=detection_range,
            suspicion_gained=gained,
        )

    def to_dict(self) -> PlainData:
        return {
            "awareness": self.awareness.value,
            "suspicion": self.suspicion,
            "engaged": self.engaged,
            "alert_cooldown": self.alert_cooldown,
        }

    @classmethod
    def from_dict(cls, data: PlainData) -> AwarenessComponent:
        component = cls(
            awareness=Awareness(data.get("awareness", Awareness.UNAWARE.value)),
            suspicion=data.get("suspicion", 0.0),
        )
        component.engaged = data.get("engaged", False)
        component.alert_cooldown = data.get("alert_cooldown", 0)
        return component
