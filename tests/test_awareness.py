from __future__ import annotations

import pytest

from infiltrator import config
from infiltrator.game.awareness import AwarenessComponent, is_in_front
from infiltrator.game.enums import Awareness, Facing, Noise


class TestEscalation:
    def test_exact_threshold_does_not_escalate(self) -> None:
        component = AwarenessComponent()
        component.add_suspicion(30)
        assert component.awareness == Awareness.UNAWARE

    def test_crossing_thresholds_step_by_step(self) -> None:
        component = AwarenessComponent()
        assert component.add_suspicion(31) == Awareness.SUSPICIOUS
        assert component.add_suspicion(40) == Awareness.ALERT
        assert component.add_suspicion(29) == Awareness.HOSTILE

    def test_one_large_increment_crosses_every_threshold(self) -> None:
        component = AwarenessComponent()
        assert component.add_suspicion(150) == Awareness.HOSTILE
        assert component.suspicion == 100

    @pytest.mark.parametrize("scripted", [Awareness.ALLIED, Awareness.NEUTRAL])
    def test_scripted_npcs_keep_their_awareness(self, scripted: Awareness) -> None:
        component = AwarenessComponent(scripted)
        component.add_suspicion(100)
        assert component.awareness == scripted
        assert not component.escalate_to(Awareness.HOSTILE)

    def test_escalate_to_never_lowers(self) -> None:
        component = AwarenessComponent()
        component.force(Awareness.ALERT)
        assert not component.escalate_to(Awareness.SUSPICIOUS)
        assert component.awareness == Awareness.ALERT
        assert component.escalate_to(Awareness.HOSTILE)
        assert component.suspicion == 100


class TestDecay:
    def test_suspicious_falls_back_to_unaware(self) -> None:
        component = AwarenessComponent()
        component.add_suspicion(31)
        component.decay()
        component.decay()
        assert component.suspicion == 29
        assert component.awareness == Awareness.UNAWARE

    def test_alert_is_sticky(self) -> None:
        component = AwarenessComponent()
        component.add_suspicion(75)
        for _ in range(80):
            component.decay()
        assert component.suspicion == 0
        assert component.awareness == Awareness.ALERT

    def test_engaged_and_hostile_do_not_decay(self) -> None:
        engaged = AwarenessComponent(suspicion=50)
        engaged.engaged = True
        hostile = AwarenessComponent()
        hostile.force(Awareness.HOSTILE)

        engaged.decay()
        hostile.decay()

        assert engaged.suspicion == 50
        assert hostile.suspicion == 100

    def test_hold_cooldown_delays_decay(self) -> None:
        component = AwarenessComponent(suspicion=40)
        component.alert_cooldown = 2
        component.decay()
        component.decay()
        assert component.suspicion == 40
        component.decay()
        assert component.suspicion == 39


class TestForce:
    def test_force_pulls_suspicion_into_band(self) -> None:
        component = AwarenessComponent(suspicion=10)
        component.force(Awareness.SUSPICIOUS, engaged=True)
        assert component.suspicion == config.SUSPICION_SUSPICIOUS
        assert component.engaged

        component.force(Awareness.UNAWARE)
        assert component.suspicion == 0
        assert component.engaged

    def test_reset_room_flags(self) -> None:
        component = AwarenessComponent()
        component.already_alerted = True
        component.already_spotted = True
        component.engagement_handled = True
        component.reset_room_flags()
        assert not (
            component.already_alerted
            or component.already_spotted
            or component.engagement_handled
        )


class TestPerception:
    def test_player_in_front_within_range(self) -> None:
        component = AwarenessComponent()
        seen = component.check_detection((0, 0), Facing.EAST, (3, 0))
        assert seen is not None
        assert seen.distance == 3
        assert seen.suspicion_gained == 15
        assert component.suspicion == 15
        assert component.alert_cooldown == config.SUSPICION_HOLD_TICKS

    def test_gain_never_drops_below_floor(self) -> None:
        component = AwarenessComponent()
        seen = component.check_detection((0, 0), Facing.EAST, (5, 0))
        assert seen is not None
        assert seen.suspicion_gained == config.MIN_SUSPICION_GAIN

    def test_player_behind_is_outside_shrunken_range(self) -> None:
        component = AwarenessComponent()
        assert component.check_detection((0, 0), Facing.EAST, (-3, 0)) is None
        assert component.suspicion == 0

    def test_hidden_player_needs_to_be_close(self) -> None:
        component = AwarenessComponent()
        assert (
            component.check_detection((0, 0), Facing.EAST, (3, 0), player_hidden=True)
            is None
        )
        assert (
            component.check_detection((0, 0), Facing.EAST, (1, 0), player_hidden=True)
            is not None
        )

    def test_loud_room_shrinks_range(self) -> None:
        component = AwarenessComponent()
        seen = component.check_detection(
            (0, 0), Facing.EAST, (4, 0), room_noise=Noise.LOUD
        )
        assert seen is None

    def test_perception_never_engages(self) -> None:
        component = AwarenessComponent()
        for _ in range(10):
            component.check_detection((0, 0), Facing.EAST, (1, 0))
        assert component.awareness == Awareness.HOSTILE
        assert not component.engaged


@pytest.mark.parametrize(
    ("facing", "offset", "expected"),
    [
        (Facing.NORTH, (0, -1), True),
        (Facing.NORTH, (0, 1), False),
        (Facing.SOUTH, (0, 1), True),
        (Facing.EAST, (1, 0), True),
        (Facing.WEST, (1, 0), False),
    ],
)
def test_is_in_front(facing: Facing, offset: tuple[int, int], expected: bool) -> None:
    assert is_in_front(facing, *offset) is expected


def test_round_trip_keeps_runtime_fields() -> None:
    component = AwarenessComponent()
    component.add_suspicion(45)
    component.engaged = True
    component.alert_cooldown = 7

    restored = AwarenessComponent.from_dict(component.to_dict())

    assert restored.awareness == Awareness.SUSPICIOUS
    assert restored.suspicion == 45
    assert restored.engaged
    assert restored.alert_cooldown == 7
