"""Interaction modes and their static descriptors.

A mode is the player's current interaction context. It decides which verbs
are legal and how each UI card is laid out by default. Exactly one mode is
active at a time; :class:`~infiltrator.modes.machine.ModeStateMachine` owns
the switching.

The descriptors here are plain data. Modes have no per-mode behavior beyond
their tables; anything a mode "does" happens in the action router or the
engine pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from infiltrator.game.enums import CardState, ModeId, Verb
from infiltrator.types import CardId

# Card ids with a per-mode layout entry.
ACTION_PALETTE = CardId("action-palette")
INVENTORY = CardId("inventory")
MAP = CardId("map")
VITALS = CardId("vitals")
ADVISOR = CardId("advisor")
ENVIRONMENT = CardId("environment")
DIALOGUE = CardId("dialogue")
COMBAT = CardId("combat")

LAYOUT_CARDS = (
    ACTION_PALETTE,
    INVENTORY,
    MAP,
    VITALS,
    ADVISOR,
    ENVIRONMENT,
    DIALOGUE,
    COMBAT,
)


@dataclass(frozen=True, slots=True)
class ModeTransitionEffect:
    """Animation hints for the renderer when entering or leaving a mode."""

    enter_ms: int = 300
    exit_ms: int = 200
    flash: str | None = None
    darken: float = 0.0
    focus_blur: bool = False


@dataclass(frozen=True, slots=True)
class ModeDescriptor:
    """Static description of one interaction mode.

    Attributes:
        id: The mode's identifier.
        name: Display name.
        description: One-line description.
        available_cards: Cards the renderer should offer in this mode.
        primary_focus: What the layout is built around.
        card_states: Default state of every layout card.
        allowed_actions: Verb whitelist. Anything else is rejected.
        transition: Renderer animation hints.
    """

    id: ModeId
    name: str
    description: str
    available_cards: tuple[CardId, ...]
    primary_focus: str
    card_states: Mapping[CardId, CardState]
    allowed_actions: frozenset[Verb]
    transition: ModeTransitionEffect = ModeTransitionEffect()

    def card_state(self, card_id: str) -> CardState:
        return self.card_states.get(CardId(card_id), CardState.COLLAPSED)


def _layout(**states: CardState) -> Mapping[CardId, CardState]:
    """Build a full card-state map; unlisted cards are collapsed."""
    layout = {card: CardState.COLLAPSED for card in LAYOUT_CARDS}
    for key, state in states.items():
        layout[CardId(key.replace("_", "-"))] = state
    return MappingProxyType(layout)


S = CardState.STANDARD
M = CardState.MINIMIZED
E = CardState.EXPANDED

MODES: Mapping[ModeId, ModeDescriptor] = MappingProxyType(
    {
        ModeId.EXPLORATION: ModeDescriptor(
            id=ModeId.EXPLORATION,
            name="Exploration",
            description="Free movement and investigation",
            available_cards=(
                ACTION_PALETTE,
                INVENTORY,
                MAP,
                VITALS,
                ADVISOR,
                ENVIRONMENT,
            ),
            primary_focus="environment-actions",
            card_states=_layout(
                action_palette=S,
                inventory=M,
                map=M,
                vitals=S,
                advisor=S,
                environment=S,
            ),
            allowed_actions=frozenset(
                {
                    Verb.LOOK,
                    Verb.EXAMINE,
                    Verb.LISTEN,
                    Verb.SEARCH,
                    Verb.MOVE,
                    Verb.SNEAK,
                    Verb.RUN,
                    Verb.HIDE,
                    Verb.TAKE,
                    Verb.USE,
                    Verb.HACK,
                    Verb.LOCKPICK,
                    Verb.TALK,
                    Verb.DISTRACT,
                    Verb.WAIT,
                    Verb.DROP,
                }
            ),
            transition=ModeTransitionEffect(enter_ms=300, exit_ms=200),
        ),
        ModeId.DIALOGUE: ModeDescriptor(
            id=ModeId.DIALOGUE,
            name="Dialogue",
            description="Conversation with NPCs",
            available_cards=(DIALOGUE, VITALS, ADVISOR),
            primary_focus="dialogue",
            card_states=_layout(vitals=M, advisor=M, dialogue=E),
            allowed_actions=frozenset(
                {Verb.TALK, Verb.PERSUADE, Verb.INTIMIDATE, Verb.DISTRACT, Verb.FLEE}
            ),
            transition=ModeTransitionEffect(enter_ms=400, exit_ms=300, focus_blur=True),
        ),
        ModeId.COMBAT: ModeDescriptor(
            id=ModeId.COMBAT,
            name="Combat",
            description="Active conflict",
            available_cards=(CardId("combat-actions"), VITALS, ADVISOR),
            primary_focus="combat",
            card_states=_layout(inventory=M, vitals=E, advisor=M, combat=E),
            allowed_actions=frozenset(
                {Verb.ATTACK, Verb.SUBDUE, Verb.FLEE, Verb.HIDE, Verb.USE}
            ),
            transition=ModeTransitionEffect(enter_ms=150, exit_ms=200, flash="red"),
        ),
        ModeId.STEALTH: ModeDescriptor(
            id=ModeId.STEALTH,
            name="Stealth",
            description="Evading detection",
            available_cards=(
                CardId("stealth-actions"),
                CardId("map-mini"),
                VITALS,
                ADVISOR,
            ),
            primary_focus="detection-meter",
            card_states=_layout(map=S, vitals=E, advisor=M, environment=M),
            allowed_actions=frozenset(
                {Verb.SNEAK, Verb.HIDE, Verb.FLEE, Verb.DISTRACT, Verb.SUBDUE}
            ),
            transition=ModeTransitionEffect(enter_ms=400, exit_ms=300, darken=0.2),
        ),
        ModeId.PUZZLE: ModeDescriptor(
            id=ModeId.PUZZLE,
            name="Puzzle",
            description="Solving challenges",
            available_cards=(CardId("puzzle-interface"), INVENTORY, ADVISOR),
            primary_focus="puzzle-interface",
            card_states=_layout(inventory=S, vitals=M, advisor=S),
            allowed_actions=frozenset({Verb.USE, Verb.COMBINE, Verb.EXAMINE}),
        ),
        ModeId.CUTSCENE: ModeDescriptor(
            id=ModeId.CUTSCENE,
            name="Cutscene",
            description="Narrative sequence",
            available_cards=(),
            primary_focus="narrative",
            card_states=_layout(),
            allowed_actions=frozenset(),
        ),
    }
)

# Modes with their own engagement semantics. Ambient detection is
# suppressed while one of these is active.
ENGAGEMENT_MODES = frozenset({ModeId.COMBAT, ModeId.DIALOGUE})
