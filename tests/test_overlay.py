from __future__ import annotations

import pytest

from infiltrator.events import EventBus, OverlayChangedEvent
from infiltrator.game.enums import ConditionTag
from infiltrator.view import OverlayModifiers
from tests.helpers import collect


def test_contributions_sum_and_clamp() -> None:
    overlay = OverlayModifiers()
    overlay.add_condition(ConditionTag.HIGH_STRESS)
    overlay.add_condition(ConditionTag.PANICKED)

    assert overlay.get("shake") == pytest.approx(0.9)
    assert overlay.get("blur") == pytest.approx(0.2)
    assert overlay.get("pulse") == 1.0
    assert overlay.has_effects


def test_removing_a_condition_recomputes() -> None:
    overlay = OverlayModifiers()
    overlay.add_condition(ConditionTag.INJURED)
    overlay.add_condition(ConditionTag.HIDDEN)
    overlay.remove_condition(ConditionTag.INJURED)

    assert overlay.as_dict() == {
        "shake": 0.0,
        "blur": 0.0,
        "darken": pytest.approx(0.2),
        "pulse": 0.0,
        "vignette": 0.0,
    }


def test_event_published_only_on_change() -> None:
    bus = EventBus()
    changes = collect(bus, OverlayChangedEvent)
    overlay = OverlayModifiers(bus)

    assert overlay.add_condition(ConditionTag.SPOTTED)
    assert not overlay.add_condition(ConditionTag.SPOTTED)
    assert not overlay.remove_condition(ConditionTag.HIDDEN)

    assert len(changes) == 1
    assert changes[0].modifiers["vignette"] == pytest.approx(0.4)


def test_sync_applies_each_step() -> None:
    bus = EventBus()
    changes = collect(bus, OverlayChangedEvent)
    overlay = OverlayModifiers(bus)
    overlay.add_condition(ConditionTag.HIDDEN)

    added, removed = overlay.sync({ConditionTag.INJURED, ConditionTag.CRITICAL})

    assert added == {ConditionTag.INJURED, ConditionTag.CRITICAL}
    assert removed == {ConditionTag.HIDDEN}
    assert overlay.get("darken") == pytest.approx(0.4)
    # one add, then one remove and two adds
    assert len(changes) == 4


def test_condition_without_overlay_leaves_channels_empty() -> None:
    overlay = OverlayModifiers()
    overlay.add_condition(ConditionTag.ILLUMINATED)
    assert not overlay.has_effects
