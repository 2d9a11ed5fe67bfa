"""The remote advisor: a voice in the player's ear with a flaky connection.

What the advisor actually says comes from a :class:`LineProvider`, which
the core treats as a black box: given a trigger and the channel's
reliability it returns a line (or nothing). :class:`AdvisorChannel` decides
*whether* a line is requested at all.

- Requests are fire-and-forget and never block the tick.
- A cooldown counter, in ticks, suppresses requests until it runs out.
- When the connection drops below the offline threshold, requests are
  suppressed too.
- :meth:`AdvisorChannel.force` is for critical moments. It bypasses the
  cooldown and leaves the minimum cooldown behind.

Connection quality degrades with the player's stress and injuries.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Protocol

from infiltrator import config
from infiltrator.events import AdvisorLineEvent, EventBus
from infiltrator.game.enums import (
    AdvisorMode,
    AdvisorTrigger,
    ConditionTag,
    Reliability,
)
from infiltrator.game.vitals import Vitals
from infiltrator.types import PlainData
from infiltrator.util.rng import RNG

logger = logging.getLogger(__name__)

# Lines kept for the UI's advisor history panel.
HISTORY_LENGTH = 20


class LineProvider(Protocol):
    """Anything that can come up with an advisor line."""

    def line(
        self,
        trigger: AdvisorTrigger,
        reliability: Reliability,
        context: str | None = None,
    ) -> str | None: ...


SCRIPTED_LINES: dict[AdvisorTrigger, dict[str, tuple[str, ...]]] = {
    AdvisorTrigger.ENTER_ROOM: {
        "lobby-main": (
            "Main lobby. Security desk straight ahead. Camera in the corner.",
            "Lots of open space here. Not much cover.",
            "Reception's quiet. That's either good or suspicious.",
        ),
        "server-room-3": (
            "Server room. The terminal you need should be against the far wall.",
            "Loud in here. Might mask your footsteps.",
            "There. The admin terminal. That's your target.",
        ),
        "hallway-east": (
            "Long corridor. Nowhere to hide if someone comes.",
            "I'm picking up patrol patterns on this floor. Stay alert.",
            "Keep moving. Hallways are exposed.",
        ),
        "default": (
            "New room. Take a moment to look around.",
            "Scanning... looks clear for now.",
            "Watch your corners.",
        ),
    },
    AdvisorTrigger.SPOT_NPC: {
        "guard": (
            "Guard. Stay back until you know their pattern.",
            "Security. Don't let them see you.",
            "Careful. That one's armed.",
        ),
        "tech": (
            "Technician. Might have the access you need.",
            "Worker. They might not report you immediately if you look confident.",
            "Non-security. Still a risk, but less than a guard.",
        ),
        "default": (
            "Someone's there. Be careful.",
            "Contact. Assess before acting.",
            "You're not alone in here.",
        ),
    },
    AdvisorTrigger.PLAYER_IDLE: {
        "low_stress": (
            "Take your time. No rush.",
            "What's the plan?",
            "I'm here when you're ready.",
        ),
        "medium_stress": (
            "We should keep moving.",
            "Don't freeze up on me.",
            "Focus. What's next?",
        ),
        "high_stress": (
            "Hey. Breathe. We've got this.",
            "One step at a time. What can you do right now?",
            "Stay with me. What do you see?",
        ),
    },
    AdvisorTrigger.DANGER: {
        "spotted": (
            "You've been seen! Move!",
            "Cover's blown. Go go go!",
            "They're onto you!",
        ),
        "alarm": (
            "Alarm's triggered. Time to improvise.",
            "That's not good. Find an exit.",
            "Security's incoming. You need to move.",
        ),
        "combat": (
            "Engage or run. Your call.",
            "Make it quick. Noise attracts attention.",
            "Finish this and get out.",
        ),
    },
    AdvisorTrigger.OBJECTIVE_NEAR: {
        "default": (
            "You're close. The objective should be nearby.",
            "Almost there. Stay focused.",
            "Target's in range. Finish the job.",
        ),
    },
    AdvisorTrigger.ACTION_RESULT: {
        "success": ("Nice.", "Good work.", "That's the way."),
        "failure": (
            "Didn't work. Try something else.",
            "No luck. Think of another approach.",
        ),
        "partial": (
            "Partially successful. It's something.",
            "Progress, but not complete.",
        ),
    },
    AdvisorTrigger.HINT_REQUEST: {
        "stuck": (
            "Look around. There's usually another way.",
            "What do you have in your inventory? Something might help.",
        ),
        "navigation": (
            "Check your map. I've marked what I know.",
            "Look for alternative routes. Vents, back doors, anything.",
        ),
    },
}

RECONNECT_LINES = (
    "I'm back. Lost you for a second there.",
    "Connection restored. What'd I miss?",
)

_DOT_RUN = re.compile(r"\.{4,}")


class ScriptedLineProvider:
    """Picks canned lines by trigger and context.

    Lines delivered over a static-filled channel lose characters to
    ``...`` dropouts.
    """

    def __init__(self, rng: RNG, garble_chance: float = 0.15) -> None:
        self.rng = rng
        self.garble_chance = garble_chance

    def line(
        self,
        trigger: AdvisorTrigger,
        reliability: Reliability,
        context: str | None = None,
    ) -> str | None:
        by_context = SCRIPTED_LINES.get(trigger)
        if not by_context:
            return None
        if context is not None and context in by_context:
            lines = by_context[context]
        elif "default" in by_context:
            lines = by_context["default"]
        else:
            lines = tuple(line for group in by_context.values() for line in group)

        text = self.rng.choice(lines)
        if reliability == Reliability.STATIC:
            text = self.garble(text)
        return text

    def garble(self, text: str) -> str:
        chars = [
            "..." if self.rng.random() < self.garble_chance else char for char in text
        ]
        return _DOT_RUN.sub("...", "".join(chars))


def connection_quality(vitals: Vitals) -> float:
    """Signal quality in [0, 100] as the player's state wears on it."""
    quality = 100 - vitals.stress
    if ConditionTag.INJURED in vitals.conditions:
        quality -= config.ADVISOR_INJURY_PENALTY
    return max(0.0, quality)


def reliability_for(quality: float) -> Reliability:
    if quality >= config.ADVISOR_STATIC_THRESHOLD:
        return Reliability.CLEAR
    if quality >= config.ADVISOR_OFFLINE_THRESHOLD:
        return Reliability.STATIC
    return Reliability.OFFLINE


class AdvisorChannel:
    """Cooldown-gated advisor speech.

    Attributes:
        bus: Where delivered lines are published.
        provider: The black-box line source.
        mode: Behavioral mode; sets the cooldown after a normal line.
        cooldown: Ticks until the next requested line may be delivered.
        quality: Current connection quality in [0, 100].
        history: The most recent delivered lines.
    """

    def __init__(
        self,
        bus: EventBus,
        provider: LineProvider,
        mode: AdvisorMode = AdvisorMode.BALANCED,
    ) -> None:
        self.bus = bus
        self.provider = provider
        self.mode = mode
        self.cooldown = 0
        self.quality = 100.0
        self.history: deque[str] = deque(maxlen=HISTORY_LENGTH)

    @property
    def reliability(self) -> Reliability:
        return reliability_for(self.quality)

    @property
    def is_offline(self) -> bool:
        return self.reliability == Reliability.OFFLINE

    def tick(self) -> None:
        if self.cooldown > 0:
            self.cooldown -= 1

    def update_connection(self, vitals: Vitals) -> None:
        """Recompute connection quality, announcing a reconnection."""
        was_offline = self.is_offline
        self.quality = connection_quality(vitals)
        if was_offline and not self.is_offline:
            logger.debug("Advisor connection restored")
            self._speak(None, RECONNECT_LINES[0])

    def request(
        self, trigger: AdvisorTrigger, context: str | None = None
    ) -> str | None:
        """Ask for a line. Returns the delivered text, or None if suppressed."""
        if self.cooldown > 0 or self.is_offline:
            return None
        text = self.provider.line(trigger, self.reliability, context)
        if not text:
            return None
        self._speak(trigger, text)
        self.cooldown = config.ADVISOR_COOLDOWN_TICKS[self.mode.value]
        return text

    def force(self, text: str, trigger: AdvisorTrigger | None = None) -> None:
        """Deliver a line regardless of cooldown, then hold the minimum cooldown."""
        self._speak(trigger, text)
        self.cooldown = config.ADVISOR_MIN_COOLDOWN_TICKS

    def _speak(self, trigger: AdvisorTrigger | None, text: str) -> None:
        self.history.append(text)
        self.bus.publish(
            AdvisorLineEvent(trigger=trigger, text=text, reliability=self.reliability)
        )

    def to_dict(self) -> PlainData:
        return {
            "mode": self.mode.value,
            "cooldown": self.cooldown,
            "quality": self.quality,
        }

    def restore(self, data: PlainData) -> None:
        self.mode = AdvisorMode(data.get("mode", self.mode.value))
        self.cooldown = data.get("cooldown", 0)
        self.quality = data.get("quality", 100.0)
