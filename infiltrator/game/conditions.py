"""Condition definitions: what each condition tag does while it is active.

Conditions are identified by :class:`ConditionTag`. Whether a tag is active
is decided elsewhere (``vitals.derive_conditions`` for the vital-driven tags,
actions and timed effects for the situational ones). This module only holds
the fixed tables describing their effects:

- ``modifiers``: additive skill-check modifiers per action category, read by
  any resolver outside the core through ``Vitals.get_effect_modifier``.
- ``overlay``: contributions to the UI overlay channels (shake, blur,
  darken, pulse, vignette), summed and clamped by ``view.overlay``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from infiltrator.game.enums import ConditionTag

# Action categories consulted by skill checks.
FINE_MOTOR = "fine_motor"
COMBAT = "combat"
MOVEMENT = "movement"
STEALTH = "stealth"
RECOVERY = "recovery"
DETECTION = "detection"
VISIBILITY = "visibility"
ADVISOR_CONNECTION = "advisor_connection"
READING_COMPREHENSION = "reading_comprehension"
DECISION_MAKING = "decision_making"
PAIN_RESISTANCE = "pain_resistance"


@dataclass(frozen=True, slots=True)
class Condition:
    """Static description of a condition's effects.

    Attributes:
        tag: The condition's identifier.
        name: Short display name, sized for a status panel.
        description: Flavor text shown in the UI.
        modifiers: Additive modifier per action category.
        all_actions: Modifier applied on top of every category.
        bleed_rate: Health lost per tick while active.
        overlay: Contribution to each overlay channel in [0, 1].
        duration_ticks: Ticks until a timed application expires.
            ``None`` means the condition lasts until its cause goes away.
    """

    tag: ConditionTag
    name: str
    description: str = ""
    modifiers: dict[str, int] = field(default_factory=dict)
    all_actions: int = 0
    bleed_rate: float = 0.0
    overlay: dict[str, float] = field(default_factory=dict)
    duration_ticks: int | None = None

    def modifier(self, category: str) -> int:
        """Return this condition's total modifier for an action category."""
        return self.modifiers.get(category, 0) + self.all_actions


CONDITIONS: dict[ConditionTag, Condition] = {
    condition.tag: condition
    for condition in (
        Condition(
            tag=ConditionTag.HIGH_STRESS,
            name="Stressed",
            description="Your hands are shaking. Fine motor tasks are harder.",
            modifiers={FINE_MOTOR: -30, COMBAT: 10, ADVISOR_CONNECTION: -50},
            overlay={"shake": 0.3, "pulse": 0.5},
        ),
        Condition(
            tag=ConditionTag.PANICKED,
            name="Panicked",
            description="Fight or flight is overwhelming you. Hard to think clearly.",
            modifiers={
                FINE_MOTOR: -60,
                COMBAT: 20,
                ADVISOR_CONNECTION: -80,
                READING_COMPREHENSION: -60,
                DECISION_MAKING: -40,
            },
            overlay={"shake": 0.6, "blur": 0.2, "pulse": 0.8},
        ),
        Condition(
            tag=ConditionTag.INJURED,
            name="Injured",
            description="You're bleeding. Movement is impaired.",
            modifiers={MOVEMENT: -40, STEALTH: -20},
            bleed_rate=2.0,
            overlay={"darken": 0.1, "pulse": 0.3},
        ),
        Condition(
            tag=ConditionTag.CRITICAL,
            name="Critical",
            description="Fading fast. Need medical attention immediately.",
            all_actions=-50,
            bleed_rate=5.0,
            overlay={"darken": 0.3, "pulse": 0.9},
        ),
        Condition(
            tag=ConditionTag.EXHAUSTED,
            name="Exhausted",
            description="Running on empty. Everything is harder.",
            modifiers={RECOVERY: -50, MOVEMENT: -20},
            all_actions=-20,
            overlay={"blur": 0.1, "darken": 0.15},
        ),
        Condition(
            tag=ConditionTag.SPOTTED,
            name="Spotted",
            description="Someone has seen you. Act fast.",
            overlay={"vignette": 0.4},
        ),
        Condition(
            tag=ConditionTag.HIDDEN,
            name="Hidden",
            description="You're concealed. Stay quiet.",
            modifiers={DETECTION: -50, STEALTH: 30},
            overlay={"darken": 0.2},
        ),
        Condition(
            tag=ConditionTag.ILLUMINATED,
            name="Flashlight On",
            description="You can see better, but so can they.",
            modifiers={VISIBILITY: 50, DETECTION: 30},
        ),
        Condition(
            tag=ConditionTag.ADRENALINE,
            name="Adrenaline Rush",
            description="Time seems to slow. You feel invincible.",
            modifiers={COMBAT: 30, MOVEMENT: 20, PAIN_RESISTANCE: 50},
            overlay={"pulse": 0.7},
            duration_ticks=30,
        ),
        Condition(
            tag=ConditionTag.UNCONSCIOUS,
            name="Unconscious",
            description="Out cold.",
            all_actions=-100,
        ),
    )
}

# Conditions that warrant an Immediate-tier alert when active on the player.
CRITICAL_CONDITIONS = frozenset({ConditionTag.CRITICAL, ConditionTag.PANICKED})


def total_modifier(tags: Iterable[ConditionTag], category: str) -> int:
    """Sum the modifier contributions of every active condition."""
    return sum(CONDITIONS[tag].modifier(category) for tag in tags)


def total_bleed_rate(tags: Iterable[ConditionTag]) -> float:
    """Return the health lost per tick from all bleeding conditions.

    The worst bleed wins; critical bleeding replaces, not adds to, the
    ordinary injury bleed.
    """
    return max((CONDITIONS[tag].bleed_rate for tag in tags), default=0.0)
