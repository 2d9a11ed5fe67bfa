"""UI cards and the resolver that assigns each one a state.

A card is a named UI surface. The resolver looks at the active mode and the
top-ranked priority item and decides, per card, which
:class:`~infiltrator.game.enums.CardState` it should be in. State changes
are animated: a card moving to a new state reports a blend factor in [0, 1]
on an ease-in-out curve until it arrives. Rendering is left entirely to the
consumer; cards only hold state and progress.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from infiltrator import config
from infiltrator.game.enums import Awareness, CardState, ModeId
from infiltrator.types import CardId, Millis, PlainData
from infiltrator.util.clock import SimulationClock
from infiltrator.view.overlay import OverlayModifiers

if TYPE_CHECKING:
    from infiltrator.game.priorities import PriorityItem
    from infiltrator.modes.machine import ModeStateMachine

logger = logging.getLogger(__name__)

# Card types with their own decision table.
ACTION_PALETTE = "action-palette"
ADVISOR_PANEL = "advisor-panel"
INVENTORY = "inventory"
VITALS = "vitals"
MAP = "map"
DIALOGUE = "dialogue"


def ease_in_out(t: float) -> float:
    """Quadratic ease-in-out on [0, 1]."""
    t = max(0.0, min(1.0, t))
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


@dataclass(frozen=True, slots=True)
class VisualState:
    """What a renderer needs to draw a card this frame.

    Attributes:
        state: The state the card is in (or leaving).
        target_state: The state it is moving to, or None when at rest.
        blend: Eased progress toward ``target_state``. 0 when at rest.
    """

    state: CardState
    target_state: CardState | None = None
    blend: float = 0.0


class Card:
    """A single UI surface with an animated state."""

    def __init__(
        self,
        card_id: str,
        card_type: str,
        data: dict[str, Any] | None = None,
        *,
        state: CardState = CardState.STANDARD,
    ) -> None:
        self.id = CardId(card_id)
        self.type = card_type
        self.data: dict[str, Any] = dict(data or {})
        self.state = state

        self.target_state: CardState | None = None
        self.progress = 0.0
        self.duration_ms = float(config.CARD_TRANSITION_MS)
        self._on_complete: Callable[[Card], None] | None = None

    @property
    def transitioning(self) -> bool:
        return self.target_state is not None

    def transition_to(
        self,
        state: CardState,
        duration_ms: float = config.CARD_TRANSITION_MS,
        on_complete: Callable[[Card], None] | None = None,
    ) -> bool:
        """Start animating toward ``state``.

        Returns False if the card is already in (or already heading to)
        that state.
        """
        if self.target_state == state or (
            self.target_state is None and self.state == state
        ):
            return False
        self.target_state = state
        self.progress = 0.0
        self.duration_ms = duration_ms
        self._on_complete = on_complete
        if duration_ms <= 0:
            self._finish()
        return True

    def update(self, delta_ms: float) -> None:
        if self.target_state is None:
            return
        self.progress += delta_ms / self.duration_ms
        if self.progress >= 1:
            self._finish()

    def _finish(self) -> None:
        assert self.target_state is not None
        self.state = self.target_state
        self.target_state = None
        self.progress = 0.0
        callback, self._on_complete = self._on_complete, None
        if callback is not None:
            callback(self)

    def get_visual_state(self) -> VisualState:
        if self.target_state is None:
            return VisualState(self.state)
        return VisualState(self.state, self.target_state, ease_in_out(self.progress))


class CardResolver:
    """Registry of cards plus the per-type decision tables."""

    def __init__(
        self,
        clock: SimulationClock,
        overlay: OverlayModifiers | None = None,
    ) -> None:
        self.clock = clock
        self.overlay = overlay or OverlayModifiers()
        self.cards: dict[CardId, Card] = {}
        self._popup_expiry: dict[CardId, Millis] = {}
        self._popups: set[CardId] = set()

    def register(self, card: Card) -> Card:
        self.cards[card.id] = card
        self._popups.discard(card.id)
        self._popup_expiry.pop(card.id, None)
        return card

    def unregister(self, card_id: str) -> None:
        self.cards.pop(CardId(card_id), None)
        self._popup_expiry.pop(CardId(card_id), None)
        self._popups.discard(CardId(card_id))

    def get(self, card_id: str) -> Card | None:
        return self.cards.get(CardId(card_id))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        modes: ModeStateMachine,
        priorities: Sequence[PriorityItem],
    ) -> dict[CardId, CardState]:
        """Assign every registered card its target state and start transitions.

        Popups are left alone; they leave on their own timer.
        """
        top = priorities[0] if priorities else None
        targets: dict[CardId, CardState] = {}
        for card in self.cards.values():
            if card.id in self._popups:
                continue
            target = self.determine_card_state(card, top, modes)
            targets[card.id] = target
            card.transition_to(target)
        return targets

    def determine_card_state(
        self,
        card: Card,
        top: PriorityItem | None,
        modes: ModeStateMachine,
    ) -> CardState:
        """A card's decision table result, else the active mode's layout."""
        match card.type:
            case "action-palette":
                state = self._action_palette_state(card, top)
            case "advisor-panel":
                state = self._advisor_panel_state(card, top)
            case "inventory":
                state = self._inventory_state(top)
            case "vitals":
                state = self._vitals_state(card, top)
            case "map":
                state = self._map_state(card, top)
            case "dialogue":
                state = self._dialogue_state(card, top, modes.current)
            case _:
                state = None
        if state is not None:
            return state
        if card.id in modes.descriptor.card_states:
            return modes.get_card_state(card.id)
        return CardState.STANDARD

    @staticmethod
    def _action_palette_state(card: Card, top: PriorityItem | None) -> CardState | None:
        if top is None:
            return None
        action_type = card.data.get("action_type")
        if top.type == "npc-interaction":
            if action_type == "environment":
                return CardState.COLLAPSED
            if action_type in ("social", "combat"):
                return CardState.EXPANDED
        if top.type == "environment-actions":
            if action_type == "environment":
                return CardState.EXPANDED
            return CardState.STANDARD
        return None

    @staticmethod
    def _advisor_panel_state(card: Card, top: PriorityItem | None) -> CardState | None:
        if card.data.get("speaking"):
            return CardState.EXPANDED
        if top is not None and top.type == "npc-interaction":
            if any(npc["awareness"] == Awareness.HOSTILE.value for npc in top.data):
                return CardState.MINIMIZED
        return None

    @staticmethod
    def _inventory_state(top: PriorityItem | None) -> CardState | None:
        if top is not None and top.type == "npc-interaction":
            return CardState.MINIMIZED
        return None

    @staticmethod
    def _vitals_state(card: Card, top: PriorityItem | None) -> CardState | None:
        if card.data.get("critical") or (
            top is not None and top.type == "critical-status"
        ):
            return CardState.EXPANDED
        return None

    @staticmethod
    def _map_state(card: Card, top: PriorityItem | None) -> CardState | None:
        if top is not None and top.type == "npc-interaction":
            return CardState.MINIMIZED
        if card.data.get("studying"):
            return CardState.EXPANDED
        return None

    @staticmethod
    def _dialogue_state(
        card: Card, top: PriorityItem | None, mode: ModeId
    ) -> CardState:
        active = card.data.get("active") or mode == ModeId.DIALOGUE
        if top is not None and top.type == "npc-interaction" and active:
            return CardState.EXPANDED
        return CardState.COLLAPSED

    # ------------------------------------------------------------------
    # Popups and animation
    # ------------------------------------------------------------------

    def popup(
        self,
        card_id: str,
        card_type: str = "popup",
        data: dict[str, Any] | None = None,
        duration_ms: float | None = config.POPUP_DEFAULT_DURATION_MS,
    ) -> Card:
        """Show a popup card. It collapses and is removed after ``duration_ms``.

        A ``duration_ms`` of None keeps the popup until it is unregistered.
        """
        card = self.register(Card(card_id, card_type, data, state=CardState.POPUP))
        self._popups.add(card.id)
        if duration_ms is not None:
            self._popup_expiry[card.id] = Millis(self.clock.now() + duration_ms)
        return card

    def update(self, delta_ms: float) -> None:
        """Advance card animations and retire expired popups."""
        now = self.clock.now()
        for card_id, expires_at in list(self._popup_expiry.items()):
            if now >= expires_at:
                del self._popup_expiry[card_id]
                card = self.cards.get(card_id)
                if card is not None:
                    card.transition_to(
                        CardState.COLLAPSED,
                        on_complete=lambda c: self.unregister(c.id),
                    )
        for card in list(self.cards.values()):
            card.update(delta_ms)

    def render_state(self) -> PlainData:
        cards = [
            {
                "id": card.id,
                "type": card.type,
                "data": dict(card.data),
                "visual": card.get_visual_state(),
            }
            for card in self.cards.values()
        ]
        cards.sort(key=lambda c: c["data"].get("priority", 0), reverse=True)
        return {"cards": cards, "modifiers": self.overlay.as_dict()}


def default_cards() -> list[Card]:
    """The standard card set, one per mode layout entry."""
    return [
        Card("action-palette", ACTION_PALETTE, {"action_type": "social"}),
        Card("environment", ACTION_PALETTE, {"action_type": "environment"}),
        Card("combat", ACTION_PALETTE, {"action_type": "combat"}),
        Card("inventory", INVENTORY),
        Card("map", MAP),
        Card("vitals", VITALS),
        Card("advisor", ADVISOR_PANEL),
        Card("dialogue", DIALOGUE, state=CardState.COLLAPSED),
    ]
