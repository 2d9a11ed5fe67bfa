from __future__ import annotations

import pytest

from infiltrator import config
from infiltrator.events import CardStateOverrideEvent, EventBus, ModeChangedEvent
from infiltrator.game.enums import CardState, ModeId, Verb
from infiltrator.modes import ENGAGEMENT_MODES, MODES, ModeStateMachine
from infiltrator.util.clock import SimulationClock
from tests.helpers import collect


@pytest.fixture
def machine(clock: SimulationClock, bus: EventBus) -> ModeStateMachine:
    return ModeStateMachine(clock, bus)


def unlock(clock: SimulationClock) -> None:
    clock.advance(config.MODE_TRANSITION_LOCK_MS)


class TestTransitions:
    def test_starts_in_exploration(self, machine: ModeStateMachine) -> None:
        assert machine.current == ModeId.EXPLORATION
        assert machine.previous is None
        assert machine.stack == []

    def test_successful_transition_publishes(
        self, machine: ModeStateMachine, bus: EventBus
    ) -> None:
        changes = collect(bus, ModeChangedEvent)

        assert machine.transition_to(ModeId.STEALTH)

        assert machine.current == ModeId.STEALTH
        assert machine.previous == ModeId.EXPLORATION
        (event,) = changes
        assert event.from_mode == ModeId.EXPLORATION
        assert event.to_mode == ModeId.STEALTH
        assert event.card_states["vitals"] == CardState.EXPANDED

    def test_lock_rejects_rapid_transitions(
        self, machine: ModeStateMachine, clock: SimulationClock
    ) -> None:
        assert machine.transition_to(ModeId.STEALTH)
        clock.advance(299)
        assert machine.is_locked()
        assert not machine.transition_to(ModeId.COMBAT)
        assert machine.current == ModeId.STEALTH

        clock.advance(1)
        assert machine.transition_to(ModeId.COMBAT)

    def test_custom_lock_duration(
        self, machine: ModeStateMachine, clock: SimulationClock
    ) -> None:
        machine.transition_to(ModeId.STEALTH, lock_duration_ms=0)
        assert machine.transition_to(ModeId.COMBAT)

    def test_same_or_unknown_target_is_a_no_op(
        self, machine: ModeStateMachine, bus: EventBus
    ) -> None:
        changes = collect(bus, ModeChangedEvent)
        assert not machine.transition_to(ModeId.EXPLORATION)
        assert not machine.transition_to("hacking")
        assert changes == []

    def test_string_targets_are_accepted(self, machine: ModeStateMachine) -> None:
        assert machine.transition_to("dialogue")
        assert machine.current == ModeId.DIALOGUE


class TestHistory:
    def test_return_to_previous_knows_one_level(
        self, machine: ModeStateMachine, clock: SimulationClock
    ) -> None:
        machine.transition_to(ModeId.STEALTH)
        unlock(clock)
        machine.transition_to(ModeId.COMBAT)
        unlock(clock)

        assert machine.return_to_previous()
        assert machine.current == ModeId.STEALTH
        unlock(clock)
        # previous is now COMBAT, not EXPLORATION
        assert machine.return_to_previous()
        assert machine.current == ModeId.COMBAT

    def test_pop_mode_unwinds_the_stack(
        self, machine: ModeStateMachine, clock: SimulationClock
    ) -> None:
        machine.transition_to(ModeId.STEALTH, push_to_stack=True)
        unlock(clock)
        machine.transition_to(ModeId.COMBAT, push_to_stack=True)
        unlock(clock)
        assert machine.stack == [ModeId.EXPLORATION, ModeId.STEALTH]

        assert machine.pop_mode()
        assert machine.current == ModeId.STEALTH
        unlock(clock)
        assert machine.pop_mode()
        assert machine.current == ModeId.EXPLORATION
        assert not machine.pop_mode()

    def test_pop_keeps_entry_when_transition_fails(
        self, machine: ModeStateMachine
    ) -> None:
        machine.transition_to(ModeId.COMBAT, push_to_stack=True)
        assert not machine.pop_mode()
        assert machine.stack == [ModeId.EXPLORATION]

    def test_stack_drops_oldest_past_limit(
        self, machine: ModeStateMachine
    ) -> None:
        targets = [ModeId.STEALTH, ModeId.COMBAT] * 5
        for target in targets:
            machine.transition_to(target, push_to_stack=True, lock_duration_ms=0)

        assert len(machine.stack) == config.MODE_STACK_LIMIT
        assert machine.stack[-1] == ModeId.STEALTH
        assert ModeId.EXPLORATION not in machine.stack

    def test_reset_ignores_lock(
        self, machine: ModeStateMachine, bus: EventBus
    ) -> None:
        machine.transition_to(ModeId.COMBAT, push_to_stack=True)
        assert machine.is_locked()

        machine.reset()

        assert machine.current == ModeId.EXPLORATION
        assert machine.previous is None
        assert machine.stack == []
        assert not machine.is_locked()

    def test_restore_sets_state_without_events(
        self, machine: ModeStateMachine, bus: EventBus
    ) -> None:
        changes = collect(bus, ModeChangedEvent)
        machine.restore(ModeId.COMBAT, ModeId.STEALTH, [ModeId.EXPLORATION])
        assert machine.current == ModeId.COMBAT
        assert machine.debug_info()["stack"] == ["exploration"]
        assert changes == []


class TestWhitelist:
    @pytest.mark.parametrize(
        ("mode", "verb", "allowed"),
        [
            (ModeId.EXPLORATION, Verb.HACK, True),
            (ModeId.EXPLORATION, Verb.ATTACK, False),
            (ModeId.COMBAT, Verb.ATTACK, True),
            (ModeId.COMBAT, Verb.TALK, False),
            (ModeId.STEALTH, Verb.SUBDUE, True),
            (ModeId.STEALTH, Verb.MOVE, False),
            (ModeId.DIALOGUE, Verb.PERSUADE, True),
            (ModeId.CUTSCENE, Verb.WAIT, False),
        ],
    )
    def test_verbs_per_mode(
        self, machine: ModeStateMachine, mode: ModeId, verb: Verb, allowed: bool
    ) -> None:
        machine.restore(mode)
        assert machine.is_action_allowed(verb) is allowed

    def test_every_mode_has_a_descriptor(self) -> None:
        assert set(MODES) == set(ModeId)
        assert ENGAGEMENT_MODES == {ModeId.COMBAT, ModeId.DIALOGUE}


class TestCardStates:
    def test_unlisted_card_is_collapsed(self, machine: ModeStateMachine) -> None:
        assert machine.get_card_state("action-palette") == CardState.STANDARD
        assert machine.get_card_state("dialogue") == CardState.COLLAPSED
        assert machine.get_card_state("nonexistent") == CardState.COLLAPSED

    def test_override_is_per_machine_and_per_mode(
        self, clock: SimulationClock, bus: EventBus
    ) -> None:
        first = ModeStateMachine(clock, bus)
        second = ModeStateMachine(clock, bus)
        overrides = collect(bus, CardStateOverrideEvent)

        assert first.override_card_state("inventory", CardState.EXPANDED)

        assert first.get_card_state("inventory") == CardState.EXPANDED
        assert first.get_all_card_states()["inventory"] == CardState.EXPANDED
        assert second.get_card_state("inventory") == CardState.MINIMIZED
        assert MODES[ModeId.EXPLORATION].card_state("inventory") == CardState.MINIMIZED
        assert overrides[0].original_state == CardState.MINIMIZED

        first.restore(ModeId.STEALTH)
        assert first.get_card_state("inventory") == CardState.COLLAPSED

    def test_override_unknown_card_rejected(
        self, machine: ModeStateMachine
    ) -> None:
        assert not machine.override_card_state("combat-actions", CardState.EXPANDED)
