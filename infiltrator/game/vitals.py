"""Per-actor vital statistics and the conditions derived from them.

A :class:`Vitals` instance holds four bounded meters (health, stamina,
stress, detection) plus any situational conditions an action or effect has
placed on the actor. Every mutation clamps; there is no error path, only
saturation.

Vital-driven conditions (``high-stress``, ``injured`` and friends) are never
stored. :func:`derive_conditions` recomputes them from the meters whenever
they are asked for, so thresholds live in exactly one place.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from infiltrator import config
from infiltrator.game import conditions
from infiltrator.game.enums import (
    ConditionTag,
    DetectionStatus,
    HealthStatus,
    StressStatus,
)
from infiltrator.types import PlainData

logger = logging.getLogger(__name__)

HEALTH = "health"
STAMINA = "stamina"
STRESS = "stress"
DETECTION = "detection"
VITAL_NAMES = (HEALTH, STAMINA, STRESS, DETECTION)

# Conditions that derive_conditions() owns. These cannot be added by hand.
DERIVED_CONDITIONS = frozenset(
    {
        ConditionTag.HIGH_STRESS,
        ConditionTag.PANICKED,
        ConditionTag.INJURED,
        ConditionTag.CRITICAL,
        ConditionTag.EXHAUSTED,
        ConditionTag.SPOTTED,
    }
)


@dataclass(slots=True)
class TimedEffect:
    """An effect that counts down once per tick and then expires."""

    remaining_ticks: int
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Vitals:
    """Bounded vital meters for one actor.

    Attributes:
        health: Current health in [0, max_health].
        max_health: Health ceiling.
        stamina: Current stamina in [0, max_stamina].
        max_stamina: Stamina ceiling.
        stress: Stress in [0, 100].
        detection: Exposure meter in [0, 100]. Reaching 100 fails the mission.
        situational: Conditions placed by actions or effects rather than
            derived from the meters (hidden, adrenaline, ...).
        effects: Active timed effects keyed by effect id. When an effect id
            names a situational condition, the condition lasts exactly as
            long as the effect.
    """

    health: float = config.DEFAULT_MAX_HEALTH
    max_health: float = config.DEFAULT_MAX_HEALTH
    stamina: float = config.DEFAULT_MAX_STAMINA
    max_stamina: float = config.DEFAULT_MAX_STAMINA
    stress: float = 0.0
    detection: float = 0.0
    situational: set[ConditionTag] = field(default_factory=set)
    effects: dict[str, TimedEffect] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in VITAL_NAMES:
            self.set_vital(name, getattr(self, name))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _ceiling(self, vital: str) -> float:
        if vital == HEALTH:
            return self.max_health
        if vital == STAMINA:
            return self.max_stamina
        return config.VITAL_CEILING

    def set_vital(self, vital: str, value: float) -> float:
        """Assign a vital directly, clamped to its range."""
        if vital not in VITAL_NAMES:
            logger.warning(f"Ignoring unknown vital '{vital}'")
            return 0.0
        clamped = max(0.0, min(self._ceiling(vital), float(value)))
        setattr(self, vital, clamped)
        return clamped

    def modify(self, vital: str, delta: float) -> float:
        """Add ``delta`` to a vital and return the clamped result."""
        if vital not in VITAL_NAMES:
            logger.warning(f"Ignoring unknown vital '{vital}'")
            return 0.0
        return self.set_vital(vital, getattr(self, vital) + delta)

    def add_condition(
        self, tag: ConditionTag, duration_ticks: int | None = None
    ) -> bool:
        """Place a situational condition on the actor.

        Timed conditions (adrenaline, by default) expire on their own.
        Returns True if the condition was not already active.
        """
        if tag in DERIVED_CONDITIONS:
            logger.warning(f"Condition '{tag.value}' is derived from vitals")
            return False
        newly_added = tag not in self.situational
        self.situational.add(tag)
        if duration_ticks is None:
            duration_ticks = conditions.CONDITIONS[tag].duration_ticks
        if duration_ticks is not None:
            self.effects[tag.value] = TimedEffect(duration_ticks)
        return newly_added

    def remove_condition(self, tag: ConditionTag) -> bool:
        """Remove a situational condition. Returns True if it was active."""
        self.effects.pop(tag.value, None)
        if tag in self.situational:
            self.situational.discard(tag)
            return True
        return False

    def apply_effect(
        self,
        effect_id: str,
        duration_ticks: int,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Start (or restart) a generic timed effect."""
        self.effects[effect_id] = TimedEffect(duration_ticks, dict(data or {}))

    def has_effect(self, effect_id: str) -> bool:
        return effect_id in self.effects

    def tick(self) -> None:
        """Apply one tick of passive drift.

        Bleeding comes first so a wound at the edge of the threshold still
        costs health this tick. Then timed effects count down, stress eases
        while the player is not under suspicion and stamina regenerates.
        """
        active = self.conditions
        if ConditionTag.INJURED in active:
            self.modify(HEALTH, -conditions.total_bleed_rate(active))

        for effect_id, effect in list(self.effects.items()):
            effect.remaining_ticks -= 1
            if effect.remaining_ticks <= 0:
                del self.effects[effect_id]
                self._expire(effect_id)

        if self.detection < config.DETECTION_SUSPICIOUS:
            self.modify(STRESS, -config.STRESS_DECAY_PER_TICK)

        regen = config.STAMINA_REGEN_PER_TICK
        if ConditionTag.EXHAUSTED in active:
            # Only the recovery modifier slows regen; all_actions does not.
            recovery = conditions.CONDITIONS[ConditionTag.EXHAUSTED].modifiers.get(
                conditions.RECOVERY, 0
            )
            regen *= max(0.0, 1 + recovery / 100)
        self.modify(STAMINA, regen)

    def _expire(self, effect_id: str) -> None:
        try:
            tag = ConditionTag(effect_id)
        except ValueError:
            return
        self.situational.discard(tag)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def conditions(self) -> frozenset[ConditionTag]:
        """All currently active conditions, derived and situational."""
        return derive_conditions(self) | frozenset(self.situational)

    def has_condition(self, tag: ConditionTag) -> bool:
        return tag in self.conditions

    def get_effect_modifier(self, category: str) -> int:
        """Total modifier all active conditions give an action category."""
        return conditions.total_modifier(self.conditions, category)

    def is_alive(self) -> bool:
        return self.health > 0

    def health_status(self) -> HealthStatus:
        if self.health >= config.HEALTH_HEALTHY:
            return HealthStatus.HEALTHY
        if self.health >= config.HEALTH_HURT:
            return HealthStatus.HURT
        if self.health >= config.HEALTH_WOUNDED:
            return HealthStatus.WOUNDED
        if self.health > 0:
            return HealthStatus.CRITICAL
        return HealthStatus.DEAD

    def stress_status(self) -> StressStatus:
        if self.stress <= config.STRESS_LOW:
            return StressStatus.CALM
        if self.stress <= config.STRESS_MEDIUM:
            return StressStatus.TENSE
        if self.stress <= config.STRESS_HIGH:
            return StressStatus.STRESSED
        if self.stress <= config.STRESS_CRITICAL:
            return StressStatus.PANICKED
        return StressStatus.OVERWHELMED

    def detection_status(self) -> DetectionStatus:
        if self.detection <= config.DETECTION_SAFE:
            return DetectionStatus.HIDDEN
        if self.detection <= config.DETECTION_NOTICED:
            return DetectionStatus.NOTICED
        if self.detection <= config.DETECTION_SUSPICIOUS:
            return DetectionStatus.SUSPICIOUS
        if self.detection <= config.DETECTION_SPOTTED:
            return DetectionStatus.SPOTTED
        return DetectionStatus.CAUGHT

    @property
    def pulse(self) -> int:
        """Heart rate in beats per minute, driven by stress."""
        return config.RESTING_PULSE + math.floor(self.stress * config.PULSE_PER_STRESS)

    @property
    def breathing_rate(self) -> int:
        """Breaths per minute, driven by stress."""
        return config.RESTING_BREATHING_RATE + math.floor(
            self.stress * config.BREATHING_PER_STRESS
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> PlainData:
        return {
            "health": self.health,
            "max_health": self.max_health,
            "stamina": self.stamina,
            "max_stamina": self.max_stamina,
            "stress": self.stress,
            "detection": self.detection,
            "situational": sorted(tag.value for tag in self.situational),
            "effects": {
                effect_id: {"remaining_ticks": e.remaining_ticks, "data": dict(e.data)}
                for effect_id, e in self.effects.items()
            },
        }

    @classmethod
    def from_dict(cls, data: PlainData) -> Vitals:
        vitals = cls(
            max_health=data.get("max_health", config.DEFAULT_MAX_HEALTH),
            max_stamina=data.get("max_stamina", config.DEFAULT_MAX_STAMINA),
        )
        for name in VITAL_NAMES:
            if name in data:
                vitals.set_vital(name, data[name])
        vitals.situational = {ConditionTag(tag) for tag in data.get("situational", [])}
        vitals.effects = {
            effect_id: TimedEffect(raw["remaining_ticks"], dict(raw.get("data", {})))
            for effect_id, raw in data.get("effects", {}).items()
        }
        return vitals


def derive_conditions(vitals: Vitals) -> frozenset[ConditionTag]:
    """Map vital meters to the set of threshold conditions they imply.

    This is the only place vital-driven condition thresholds are checked.
    """
    derived: set[ConditionTag] = set()
    if vitals.stress > config.STRESS_HIGH:
        derived.add(ConditionTag.HIGH_STRESS)
    if vitals.stress > config.STRESS_CRITICAL:
        derived.add(ConditionTag.PANICKED)
    if vitals.health < config.HEALTH_WOUNDED:
        derived.add(ConditionTag.INJURED)
    if vitals.health <= config.HEALTH_CRITICAL:
        derived.add(ConditionTag.CRITICAL)
    if vitals.stamina < config.STAMINA_EXHAUSTED:
        derived.add(ConditionTag.EXHAUSTED)
    if vitals.detection >= config.DETECTION_SPOTTED:
        derived.add(ConditionTag.SPOTTED)
    return frozenset(derived)
