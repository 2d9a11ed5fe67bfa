"""Event system for notifying the rendering/UI layer about core state changes.

This event bus sits only at the boundary between the simulation core and
whatever renders it. Inside the core, stages talk to each other through
explicit return values (detection -> priorities -> mode -> display); the bus
is how the outside world hears about the results.

USE FOR:
- Messages to a message log
- Mode changes and card state overrides
- Overlay modifier changes (shake, blur, vignette)
- Advisor lines
- Mission outcome notifications

DO NOT USE FOR:
- Core game mechanics (detection, priority evaluation, mode decisions)
- Operations that need immediate return values or synchronous confirmation
- Error handling or exception propagation

The event bus is fire-and-forget: publish an event without expecting return values
or confirmations. All handlers execute immediately (synchronously). If you need a
return value or confirmation, use direct method calls.

There is no global bus. Each Engine owns its own instance and hands it to
the components that publish.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from infiltrator.game.enums import (
    AdvisorTrigger,
    CardState,
    ConditionTag,
    ModeId,
    Reliability,
    Verb,
)
from infiltrator.types import CardId, ItemId, NpcId, RoomId

logger = logging.getLogger(__name__)


@dataclass
class GameEvent:
    """Base class for all game events."""

    pass


@dataclass
class MessageEvent(GameEvent):
    """Event for adding messages to the message log."""

    text: str


@dataclass
class ModeChangedEvent(GameEvent):
    """Fired after a successful mode transition.

    Attributes:
        from_mode: The mode that was active before the transition.
        to_mode: The newly active mode.
        card_states: The new mode's card-state map, so the UI can relayout
            without querying the mode machine.
    """

    from_mode: ModeId
    to_mode: ModeId
    card_states: dict[CardId, CardState]


@dataclass
class CardStateOverrideEvent(GameEvent):
    card_id: CardId
    original_state: CardState
    new_state: CardState
    mode: ModeId


@dataclass
class ConditionAddedEvent(GameEvent):
    actor_id: str
    condition: ConditionTag


@dataclass
class ConditionRemovedEvent(GameEvent):
    actor_id: str
    condition: ConditionTag


@dataclass
class OverlayChangedEvent(GameEvent):
    """Fired whenever the accumulated overlay channels change."""

    modifiers: dict[str, float]


@dataclass
class DetectionIncreasedEvent(GameEvent):
    level: float
    npc_id: NpcId


@dataclass
class NpcAlertedEvent(GameEvent):
    """First alert from an NPC in the current room (detection 30+)."""

    npc_id: NpcId


@dataclass
class NpcSpottedEvent(GameEvent):
    """An NPC has grown suspicious of the player (detection 50+).

    Published at most once per NPC per room visit.
    """

    npc_id: NpcId
    npc_type: str


@dataclass
class NpcEngagedEvent(GameEvent):
    """An NPC started dealing with the player directly.

    ``mode`` is the mode the engagement calls for, or None if the NPC
    engages without forcing one.
    """

    npc_id: NpcId
    mode: ModeId | None


@dataclass
class RoomEnteredEvent(GameEvent):
    room_id: RoomId
    npc_ids: list[NpcId] = field(default_factory=list)


@dataclass
class ObjectiveNearEvent(GameEvent):
    room_id: RoomId


@dataclass
class ObjectivesUpdatedEvent(GameEvent):
    objectives: list[dict[str, Any]]


@dataclass
class ItemAddedEvent(GameEvent):
    item_id: ItemId


@dataclass
class ItemDroppedEvent(GameEvent):
    item_id: ItemId
    room_id: RoomId


@dataclass
class ActionExecutedEvent(GameEvent):
    verb: Verb
    target_id: str | None
    succeeded: bool
    message: str = ""


@dataclass
class ActionBlockedEvent(GameEvent):
    verb: Verb | str
    reason: str


@dataclass
class AdvisorLineEvent(GameEvent):
    """A line from the remote advisor reached the player."""

    trigger: AdvisorTrigger | None
    text: str
    reliability: Reliability


@dataclass
class BackupCalledEvent(GameEvent):
    npc_id: NpcId
    room_id: RoomId


@dataclass
class AlarmRaisedEvent(GameEvent):
    npc_id: NpcId
    room_id: RoomId


@dataclass
class PrioritiesUpdatedEvent(GameEvent):
    priorities: list[Any]


@dataclass
class MissionFailedEvent(GameEvent):
    reason: str


@dataclass
class MissionCompleteEvent(GameEvent):
    """Fired exactly once when the extraction conditions are met.

    Attributes:
        optional_completed: Number of optional objectives completed.
        ghosted: True if the player finished with detection below the
            "safe" threshold.
    """

    optional_completed: int
    ghosted: bool


@dataclass
class TickCompletedEvent(GameEvent):
    """One engine tick finished. Carries the mode the tick settled on."""

    tick: int
    now_ms: float
    mode: ModeId


class EventBus:
    """Simple event bus for publish/subscribe pattern."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = {}

    def subscribe(self, event_type: type, handler: Callable) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

    def publish(self, event: GameEvent) -> None:
        """Publish an event to all subscribed handlers."""
        event_type = type(event)
        if event_type in self._handlers:
            # Copy the handler list to allow safe subscribe/unsubscribe during dispatch
            for handler in list(self._handlers[event_type]):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Error handling event {event_type.__name__}")
