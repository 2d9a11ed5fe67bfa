"""Mode state machine: guarded transitions, debounce lock and history.

Two ways back out of a mode exist and they are not interchangeable:

- :meth:`ModeStateMachine.return_to_previous` goes back to the single
  remembered ``previous_mode``. It only ever knows one level.
- :meth:`ModeStateMachine.pop_mode` unwinds the explicit history stack
  built by ``transition_to(..., push_to_stack=True)``, so nested
  interruptions (combat over stealth over exploration) unwind in order.

Every successful transition takes a short lock so rapid repeated triggers
can't thrash the layout. The lock is measured on the simulation clock.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from infiltrator import config
from infiltrator.events import CardStateOverrideEvent, EventBus, ModeChangedEvent
from infiltrator.game.enums import CardState, ModeId, Verb
from infiltrator.modes.base import MODES, ModeDescriptor
from infiltrator.types import CardId, Millis
from infiltrator.util.clock import SimulationClock

logger = logging.getLogger(__name__)


def _resolve_mode(target: ModeId | str) -> ModeId | None:
    if isinstance(target, ModeId):
        return target if target in MODES else None
    try:
        return ModeId(target)
    except ValueError:
        return None


class ModeStateMachine:
    """Owns the active interaction mode."""

    def __init__(
        self,
        clock: SimulationClock,
        bus: EventBus,
        initial: ModeId = ModeId.EXPLORATION,
    ) -> None:
        self.clock = clock
        self.bus = bus
        self.current: ModeId = initial
        self.previous: ModeId | None = None
        self.stack: list[ModeId] = []
        self._locked_until: Millis = Millis(float("-inf"))
        self._overrides: dict[tuple[ModeId, CardId], CardState] = {}

    @property
    def descriptor(self) -> ModeDescriptor:
        return MODES[self.current]

    def is_locked(self) -> bool:
        return self.clock.now() < self._locked_until

    def transition_to(
        self,
        target: ModeId | str,
        *,
        push_to_stack: bool = False,
        lock_duration_ms: float | None = None,
    ) -> bool:
        """Switch to ``target``.

        Returns False, changing nothing, while the transition lock is held,
        when ``target`` is already active, or when it isn't a known mode.
        """
        if self.is_locked():
            logger.debug(f"Mode transition to {target} rejected: locked")
            return False
        mode = _resolve_mode(target)
        if mode is None:
            logger.debug(f"Mode transition rejected: unknown mode {target!r}")
            return False
        if mode == self.current:
            return False

        from_mode = self.current
        if push_to_stack:
            self.stack.append(from_mode)
            if len(self.stack) > config.MODE_STACK_LIMIT:
                del self.stack[0]

        self.previous = from_mode
        self.current = mode

        if lock_duration_ms is None:
            lock_duration_ms = config.MODE_TRANSITION_LOCK_MS
        self._locked_until = Millis(self.clock.now() + lock_duration_ms)

        logger.debug(f"Mode {from_mode.value} -> {mode.value}")
        self.bus.publish(
            ModeChangedEvent(
                from_mode=from_mode,
                to_mode=mode,
                card_states=self.get_all_card_states(),
            )
        )
        return True

    def return_to_previous(self) -> bool:
        """Go back to the one remembered previous mode."""
        if self.previous is None:
            return False
        return self.transition_to(self.previous)

    def pop_mode(self) -> bool:
        """Unwind one level of the explicit history stack.

        The stack entry is only consumed if the transition succeeds.
        """
        if not self.stack:
            return False
        if not self.transition_to(self.stack[-1]):
            return False
        self.stack.pop()
        return True

    def is_action_allowed(self, verb: Verb) -> bool:
        return verb in self.descriptor.allowed_actions

    def get_card_state(self, card_id: str) -> CardState:
        override = self._overrides.get((self.current, CardId(card_id)))
        if override is not None:
            return override
        return self.descriptor.card_state(card_id)

    def get_all_card_states(self) -> dict[CardId, CardState]:
        states = dict(self.descriptor.card_states)
        for (mode, card_id), state in self._overrides.items():
            if mode == self.current:
                states[card_id] = state
        return states

    def get_available_cards(self) -> tuple[CardId, ...]:
        return self.descriptor.available_cards

    def override_card_state(self, card_id: str, state: CardState) -> bool:
        """Override the active mode's layout for one card.

        Only cards the mode has a layout entry for can be overridden. The
        override lasts for this machine's lifetime (or until reset), and
        never touches the shared mode tables.
        """
        card = CardId(card_id)
        if card not in self.descriptor.card_states:
            logger.debug(f"No layout entry for card '{card_id}' in {self.current}")
            return False
        original = self.get_card_state(card)
        self._overrides[(self.current, card)] = state
        self.bus.publish(
            CardStateOverrideEvent(
                card_id=card,
                original_state=original,
                new_state=state,
                mode=self.current,
            )
        )
        return True

    def reset(self) -> None:
        """Return to exploration with empty history, ignoring the lock."""
        self.stack.clear()
        self.previous = None
        self._overrides.clear()
        self._locked_until = Millis(float("-inf"))
        self.transition_to(ModeId.EXPLORATION)
        # Reset never leaves a lock or a previous mode behind.
        self.previous = None
        self._locked_until = Millis(float("-inf"))

    def restore(
        self,
        current: ModeId,
        previous: ModeId | None = None,
        stack: list[ModeId] | None = None,
    ) -> None:
        """Set mode state directly, without events or a lock (persistence)."""
        self.current = current
        self.previous = previous
        self.stack = list(stack or [])
        self._locked_until = Millis(float("-inf"))

    def debug_info(self) -> Mapping[str, Any]:
        return {
            "current": self.current.value,
            "previous": self.previous.value if self.previous else None,
            "stack": [mode.value for mode in self.stack],
            "locked": self.is_locked(),
            "available_cards": list(self.get_available_cards()),
        }
