from __future__ import annotations

from unittest.mock import patch

import pytest

from infiltrator.events import DetectionIncreasedEvent, EventBus, NpcEngagedEvent
from infiltrator.game.detection import (
    Consequence,
    DetectionOutcome,
    DetectionSystem,
    detection_chance,
)
from infiltrator.game.enums import Awareness, ConditionTag, Facing, ModeId
from infiltrator.game.vitals import DETECTION, STRESS
from infiltrator.game.world import WorldState
from infiltrator.util.rng import RNGProvider
from tests.helpers import add_npc, collect

# Past the grace window and the throttle for a system that entered at 0.
FIRST_CHECK_MS = 3000.0


@pytest.fixture
def system(world: WorldState, rng: RNGProvider, bus: EventBus) -> DetectionSystem:
    return DetectionSystem(world, rng.get("detection.roll"), bus)


def run_pass(
    system: DetectionSystem,
    now_ms: float = FIRST_CHECK_MS,
    mode: ModeId = ModeId.STEALTH,
    roll: float = 0.0,
) -> list[DetectionOutcome]:
    with patch.object(system.rng, "random", return_value=roll):
        return system.update(now_ms, mode)


class TestGating:
    def test_no_rolls_during_grace_period(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "guard-1")
        with patch.object(system.rng, "random", return_value=0.0) as roll:
            assert system.update(2999, ModeId.STEALTH) == []
        roll.assert_not_called()
        assert system.in_grace_period(2999)
        assert not system.in_grace_period(3000)

    def test_throttle_spaces_passes(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "guard-1")
        assert system.can_check(3000, ModeId.STEALTH)
        run_pass(system, 3000)
        assert not system.can_check(4000, ModeId.STEALTH)
        assert system.can_check(4500, ModeId.STEALTH)

    @pytest.mark.parametrize("mode", [ModeId.COMBAT, ModeId.DIALOGUE])
    def test_engagement_modes_suppress_rolls(
        self, system: DetectionSystem, world: WorldState, mode: ModeId
    ) -> None:
        add_npc(world, "guard-1")
        assert run_pass(system, mode=mode) == []
        assert world.player.vitals.detection == 0

    def test_room_entry_restarts_grace_and_clears_flags(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        guard = add_npc(world, "guard-1")
        guard.awareness.already_alerted = True
        system.on_room_enter(10_000)
        assert system.in_grace_period(12_000)
        assert not guard.awareness.already_alerted


class TestRolls:
    def test_npc_that_cannot_perceive_never_rolls(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "guard-1", facing=Facing.EAST)
        with patch.object(system.rng, "random", return_value=0.0) as roll:
            assert system.update(FIRST_CHECK_MS, ModeId.STEALTH) == []
        roll.assert_not_called()

    def test_failed_roll_leaves_detection_alone(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        guard = add_npc(world, "guard-1")
        assert run_pass(system, roll=0.5) == []
        assert world.player.vitals.detection == 0
        # Perception still happened.
        assert guard.awareness.suspicion == 20

    def test_successful_roll_adds_increment(
        self, system: DetectionSystem, world: WorldState, bus: EventBus
    ) -> None:
        add_npc(world, "guard-1")
        events = collect(bus, DetectionIncreasedEvent)

        outcomes = run_pass(system)

        assert [o.consequence for o in outcomes] == [Consequence.NOTICED]
        assert world.player.vitals.detection == 5
        assert events[0].npc_id == "guard-1"

    def test_scripted_and_unconscious_npcs_are_skipped(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "ally-1", awareness=Awareness.ALLIED)
        downed = add_npc(world, "guard-1")
        downed.subdue()
        with patch.object(system.rng, "random", return_value=0.0) as roll:
            assert system.update(FIRST_CHECK_MS, ModeId.STEALTH) == []
        roll.assert_not_called()


class TestConsequenceLadder:
    def test_first_alert_at_thirty(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        guard = add_npc(world, "guard-1")
        world.player.vitals.set_vital(DETECTION, 25)

        (outcome,) = run_pass(system)

        assert outcome.consequence == Consequence.ALERTED
        assert guard.awareness.awareness == Awareness.ALERT
        assert guard.awareness.already_alerted

        (again,) = run_pass(system, FIRST_CHECK_MS + 1500)
        assert again.consequence == Consequence.NOTICED

    def test_suspicion_notice_at_fifty(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        guard = add_npc(world, "guard-1")
        world.player.vitals.set_vital(DETECTION, 45)

        (outcome,) = run_pass(system)

        assert outcome.consequence == Consequence.SPOTTED
        assert guard.awareness.already_spotted
        assert guard.awareness.awareness == Awareness.SUSPICIOUS

    def test_guard_engages_with_dialogue(
        self, system: DetectionSystem, world: WorldState, bus: EventBus
    ) -> None:
        guard = add_npc(world, "guard-1")
        world.player.vitals.set_vital(DETECTION, 75)
        engaged = collect(bus, NpcEngagedEvent)

        (outcome,) = run_pass(system)

        assert outcome.consequence == Consequence.ENGAGED
        assert outcome.mode == ModeId.DIALOGUE
        assert guard.engaged
        assert guard.awareness.awareness == Awareness.ALERT
        assert engaged[0].mode == ModeId.DIALOGUE

        # Engaged NPCs stop rolling.
        assert run_pass(system, FIRST_CHECK_MS + 1500) == []

    def test_hostile_npc_engages_with_combat(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "guard-1", awareness=Awareness.HOSTILE)
        world.player.vitals.set_vital(DETECTION, 75)

        (outcome,) = run_pass(system)

        assert outcome.mode == ModeId.COMBAT

    def test_silent_npc_engages_without_mode(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "tech-1", "tech")
        world.player.vitals.set_vital(DETECTION, 75)

        (outcome,) = run_pass(system)

        assert outcome.consequence == Consequence.ENGAGED
        assert outcome.mode is None

    def test_caught_stops_the_pass(
        self, system: DetectionSystem, world: WorldState
    ) -> None:
        add_npc(world, "guard-1")
        add_npc(world, "guard-2", position=(3.0, 0.0))
        world.player.vitals.set_vital(DETECTION, 95)

        outcomes = run_pass(system)

        assert [o.consequence for o in outcomes] == [Consequence.CAUGHT]
        assert outcomes[0].level == 100


class TestChance:
    def test_penalties_floor_at_zero(self, world: WorldState) -> None:
        guard = add_npc(world, "guard-1")
        hallway = world.room("hallway-east")
        assert hallway is not None
        assert detection_chance(guard, hallway, True, 0) == 0

    def test_bonuses_stack(self, world: WorldState) -> None:
        guard = add_npc(world, "guard-1", awareness=Awareness.HOSTILE)
        lobby = world.current_room
        assert lobby is not None
        world.player.vitals.set_vital(STRESS, 60)
        chance = detection_chance(guard, lobby, False, world.player.vitals.stress)
        assert chance == 8 + 20 + 5

    def test_hidden_player_is_harder_to_roll(self, world: WorldState) -> None:
        guard = add_npc(world, "guard-1")
        lobby = world.current_room
        assert lobby is not None
        world.player.vitals.add_condition(ConditionTag.HIDDEN)
        assert detection_chance(guard, lobby, True, 0) == 0
        assert detection_chance(guard, lobby, False, 0) == 8
