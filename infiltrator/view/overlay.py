"""Continuous overlay modifiers accumulated from active conditions.

Unlike card states, overlay intensities are not picked from an enum. Every
active condition contributes a fixed amount to each channel (see
``conditions.CONDITIONS[...].overlay``), the contributions are summed and
each channel is clamped to [0, 1].

The channel vector is recomputed on every single condition add or remove,
so a renderer subscribed to :class:`OverlayChangedEvent` sees each step.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from infiltrator.events import EventBus, OverlayChangedEvent
from infiltrator.game.conditions import CONDITIONS
from infiltrator.game.enums import ConditionTag

CHANNELS = ("shake", "blur", "darken", "pulse", "vignette")
_CHANNEL_INDEX = {name: i for i, name in enumerate(CHANNELS)}


def contribution(tag: ConditionTag) -> np.ndarray:
    """A condition's overlay contribution as a channel vector."""
    vector = np.zeros(len(CHANNELS), dtype=np.float64)
    for channel, amount in CONDITIONS[tag].overlay.items():
        vector[_CHANNEL_INDEX[channel]] = amount
    return vector


class OverlayModifiers:
    """Accumulated overlay channels for the set of active conditions."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus
        self.active: set[ConditionTag] = set()
        self.values = np.zeros(len(CHANNELS), dtype=np.float64)

    def add_condition(self, tag: ConditionTag) -> bool:
        if tag in self.active:
            return False
        self.active.add(tag)
        self.recalculate()
        return True

    def remove_condition(self, tag: ConditionTag) -> bool:
        if tag not in self.active:
            return False
        self.active.discard(tag)
        self.recalculate()
        return True

    def sync(
        self, tags: Iterable[ConditionTag]
    ) -> tuple[set[ConditionTag], set[ConditionTag]]:
        """Bring the active set in line with ``tags``, one change at a time.

        Returns the (added, removed) tags.
        """
        target = set(tags)
        removed = self.active - target
        added = target - self.active
        for tag in sorted(removed, key=lambda t: t.value):
            self.remove_condition(tag)
        for tag in sorted(added, key=lambda t: t.value):
            self.add_condition(tag)
        return added, removed

    def recalculate(self) -> None:
        total = np.zeros(len(CHANNELS), dtype=np.float64)
        for tag in self.active:
            total += contribution(tag)
        self.values = np.clip(total, 0.0, 1.0)
        if self.bus is not None:
            self.bus.publish(OverlayChangedEvent(modifiers=self.as_dict()))

    def get(self, channel: str) -> float:
        return float(self.values[_CHANNEL_INDEX[channel]])

    @property
    def has_effects(self) -> bool:
        return bool(np.any(self.values > 0))

    def as_dict(self) -> dict[str, float]:
        return {name: float(value) for name, value in zip(CHANNELS, self.values)}
