"""
The simulation engine: one explicit pipeline per tick.

Stages hand their results to the next stage directly; nothing in the core
reacts to the event bus. The bus only tells the outside world what
happened. Per tick, in order:

1. Advance the simulation clock.
2. Detection (throttled and gated) and its consequences.
3. NPC ticks: suspicion decay, idle behavior, capability reactions.
4. Player vitals drift.
5. Condition diff: added/removed conditions are published and the overlay
   is brought in line.
6. Advisor connection quality and cooldown.
7. Objective auto-completion.
8. Terminal checks (failure, then extraction).
9. Priority evaluation.
10. Automatic mode decision.
11. Card resolution and animation.

Terminal states are one-shot. Once the mission has failed or completed,
``tick`` does nothing and ``execute`` rejects every action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from infiltrator import config
from infiltrator.events import (
    ConditionAddedEvent,
    ConditionRemovedEvent,
    EventBus,
    ItemDroppedEvent,
    MissionCompleteEvent,
    MissionFailedEvent,
    ObjectiveNearEvent,
    ObjectivesUpdatedEvent,
    PrioritiesUpdatedEvent,
    RoomEnteredEvent,
    TickCompletedEvent,
)
from infiltrator.game.actions import ActionResult, ActionRouter
from infiltrator.game.actors import NPC
from infiltrator.game.advisor import AdvisorChannel, ScriptedLineProvider
from infiltrator.game.detection import (
    Consequence,
    DetectionOutcome,
    DetectionSystem,
)
from infiltrator.game.enums import (
    AdvisorTrigger,
    Awareness,
    CardState,
    ConditionTag,
    ModeId,
    Verb,
)
from infiltrator.game.priorities import PriorityEvaluator, PriorityItem
from infiltrator.game.vitals import DETECTION, STRESS, Vitals
from infiltrator.game.world import Objective, WorldState
from infiltrator.modes.base import ENGAGEMENT_MODES
from infiltrator.modes.machine import ModeStateMachine
from infiltrator.types import CardId, ItemId, Millis, PlainData, RandomSeed, RoomId
from infiltrator.util.clock import SimulationClock, TickPacer
from infiltrator.util.rng import RNGProvider
from infiltrator.view.cards import CardResolver, default_cards
from infiltrator.view.overlay import OverlayModifiers

logger = logging.getLogger(__name__)

SAVE_VERSION = 1

# Modes the automatic decision never leaves on its own.
_SCRIPTED_MODES = frozenset({ModeId.PUZZLE, ModeId.CUTSCENE})


@dataclass(slots=True)
class TickReport:
    """What one call to :meth:`Engine.tick` produced."""

    tick: int
    now_ms: Millis
    mode: ModeId
    detections: list[DetectionOutcome] = field(default_factory=list)
    top_priority: PriorityItem | None = None
    card_states: dict[CardId, CardState] = field(default_factory=dict)
    game_over: bool = False
    mission_complete: bool = False


class Engine:
    """Owns every subsystem of one mission and drives them tick by tick.

    Attributes:
        world: The mutable world context.
        clock: Simulation time. Only :meth:`tick` advances it.
        bus: Boundary notification channel for renderers and loggers.
        rng: Isolated random streams for every subsystem.
        modes: The interaction mode state machine.
        detection: Throttled ambient detection.
        priorities: Cached attention ranking.
        overlay: Accumulated condition overlay.
        cards: UI card registry and resolver.
        advisor: The advisor channel.
        actions: The player action router.
        dialogue_npc_id: The NPC the player is talking to, if any.
    """

    def __init__(
        self,
        world: WorldState,
        clock: SimulationClock | None = None,
        bus: EventBus | None = None,
        advisor: AdvisorChannel | None = None,
        seed: RandomSeed = config.RANDOM_SEED,
    ) -> None:
        self.world = world
        self.clock = clock or SimulationClock()
        self.bus = bus or EventBus()
        self.rng = RNGProvider(seed)

        self.modes = ModeStateMachine(self.clock, self.bus)
        self.detection = DetectionSystem(
            world, self.rng.get("detection.roll"), self.bus
        )
        self.priorities = PriorityEvaluator()
        self.overlay = OverlayModifiers(self.bus)
        self.cards = CardResolver(self.clock, self.overlay)
        for card in default_cards():
            self.cards.register(card)
        self.advisor = advisor or AdvisorChannel(
            self.bus,
            ScriptedLineProvider(self.rng.get("advisor.lines")),
            world.mission.advisor_mode,
        )
        self.actions = ActionRouter(self)

        self.dialogue_npc_id: str | None = None
        self.tick_count = 0
        self.game_over = False
        self.mission_complete = False
        self._conditions: frozenset[ConditionTag] = frozenset()

    @property
    def is_over(self) -> bool:
        return self.game_over or self.mission_complete

    # ------------------------------------------------------------------
    # Tick pipeline
    # ------------------------------------------------------------------

    def tick(self, delta_ms: float = config.TICK_INTERVAL_MS) -> TickReport:
        """Run the full pipeline once."""
        if self.is_over:
            return self._report([], None, {})

        now = self.clock.advance(delta_ms)
        self.tick_count += 1

        outcomes = self.detection.update(now, self.modes.current)
        self._handle_detections(outcomes)

        self._tick_npcs()
        self.world.player.vitals.tick()
        self._sync_conditions()
        self.advisor.update_connection(self.world.player.vitals)
        self.advisor.tick()
        self._update_objectives()
        self._check_terminal_states()

        if self.is_over:
            return self._report(outcomes, None, {})

        self.priorities.invalidate()
        priorities = self.priorities.evaluate(self.world, now)
        self.bus.publish(PrioritiesUpdatedEvent(priorities=priorities))

        self._decide_mode(priorities)

        self._update_card_data()
        card_states = self.cards.resolve(self.modes, priorities)
        self.cards.update(delta_ms)

        self.bus.publish(
            TickCompletedEvent(
                tick=self.tick_count, now_ms=now, mode=self.modes.current
            )
        )
        top = priorities[0] if priorities else None
        return self._report(outcomes, top, card_states)

    def _report(
        self,
        outcomes: list[DetectionOutcome],
        top: PriorityItem | None,
        card_states: dict[CardId, CardState],
    ) -> TickReport:
        return TickReport(
            tick=self.tick_count,
            now_ms=self.clock.now(),
            mode=self.modes.current,
            detections=outcomes,
            top_priority=top,
            card_states=card_states,
            game_over=self.game_over,
            mission_complete=self.mission_complete,
        )

    def _handle_detections(self, outcomes: list[DetectionOutcome]) -> None:
        for outcome in outcomes:
            match outcome.consequence:
                case Consequence.CAUGHT:
                    self.handle_game_over("You've been caught.")
                    return
                case Consequence.ALERTED:
                    self.advisor.force(
                        "Watch it. Someone's looking around.", AdvisorTrigger.DANGER
                    )
                case Consequence.SPOTTED:
                    self.advisor.force(
                        "They're getting suspicious. Be careful.",
                        AdvisorTrigger.DANGER,
                    )
                case Consequence.ENGAGED:
                    self._engage(outcome)
                case Consequence.NOTICED:
                    pass

    def _engage(self, outcome: DetectionOutcome) -> None:
        npc = self.world.npc(outcome.npc_id)
        if npc is None:
            return
        match outcome.mode:
            case ModeId.COMBAT:
                self.advisor.force("Contact! You've been made!", AdvisorTrigger.DANGER)
                self.modes.transition_to(ModeId.COMBAT, push_to_stack=True)
            case ModeId.DIALOGUE:
                self.start_dialogue(npc)
            case _:
                pass

    def _tick_npcs(self) -> None:
        behavior_rng = self.rng.get("npc.behavior")
        for npc in self.world.npcs.values():
            npc.tick(behavior_rng)
        for npc in self.world.npcs_in_room():
            if npc.can_act() and npc.is_hostile and npc.engaged:
                self._react(npc)

    def _react(self, npc: NPC) -> None:
        """Let a hostile NPC use whatever it can to shut the player down."""
        if npc.call_backup(self.bus):
            logger.info(f"NPC {npc.id} called for backup")
            for other in self.world.npcs.values():
                if other is not npc and other.can_act():
                    other.awareness.escalate_to(Awareness.ALERT)
        if npc.sound_alarm(self.bus):
            logger.info(f"NPC {npc.id} sounded the alarm")
            self.world.set_flag("alarm_triggered")
        if npc.can_lock_doors():
            room = self.world.room(npc.location)
            if room is not None:
                for exit_ in room.exits:
                    exit_.locked = True
                    exit_.keycard_level = max(exit_.keycard_level, 1)
                logger.info(f"NPC {npc.id} locked the doors of {room.id}")
            npc.action_cooldown = config.LOCK_DOORS_COOLDOWN_TICKS

    def _sync_conditions(self) -> None:
        current = self.world.player.vitals.conditions
        added = current - self._conditions
        removed = self._conditions - current
        self._conditions = current
        for tag in sorted(added, key=lambda t: t.value):
            self.bus.publish(ConditionAddedEvent(actor_id="player", condition=tag))
        for tag in sorted(removed, key=lambda t: t.value):
            self.bus.publish(ConditionRemovedEvent(actor_id="player", condition=tag))
        if added or removed:
            self.overlay.sync(current)

    def _update_objectives(self) -> None:
        changed = False
        for objective in self.world.objectives:
            if not objective.completed and self._objective_met(objective):
                changed |= self.world.complete_objective(objective.id)
        if changed:
            self.bus.publish(
                ObjectivesUpdatedEvent(objectives=self.world.objectives_data())
            )

    def _objective_met(self, objective: Objective) -> bool:
        world = self.world
        match objective.type:
            case "retrieve":
                return objective.target is not None and world.player.has_item(
                    objective.target
                )
            case "reach":
                return objective.location == world.current_room_id
            case "subdue":
                npc = world.npc(objective.target) if objective.target else None
                return npc is not None and not npc.can_act()
            case "hack":
                return world.has_flag(f"hacked_{objective.target}")
            case _:
                return False

    def _check_terminal_states(self) -> None:
        vitals = self.world.player.vitals
        if not vitals.is_alive():
            self.handle_game_over("You didn't make it out.")
        elif vitals.detection >= config.DETECTION_CAUGHT:
            self.handle_game_over("You've been caught.")
        elif self.world.has_flag("alarm_triggered"):
            self.handle_game_over("The alarm is up. The building is locked down.")
        elif self._extraction_ready():
            self.handle_mission_complete()

    def _extraction_ready(self) -> bool:
        world = self.world
        return (
            world.player.has_item(config.OBJECTIVE_ITEM_ID)
            and world.has_flag(config.OBJECTIVE_FLAG)
            and world.current_room_id == world.mission.extraction_room
        )

    def _decide_mode(self, priorities: list[PriorityItem]) -> None:
        desired = self.priorities.determine_mode(priorities)
        current = self.modes.current
        if desired == current or current in _SCRIPTED_MODES:
            return
        if desired in ENGAGEMENT_MODES:
            self.modes.transition_to(desired, push_to_stack=True)
        elif current in ENGAGEMENT_MODES:
            self.end_engagement()
        else:
            self.modes.transition_to(desired)

    def _update_card_data(self) -> None:
        vitals_card = self.cards.get("vitals")
        if vitals_card is not None:
            vitals_card.data["critical"] = ConditionTag.CRITICAL in self._conditions
        dialogue_card = self.cards.get("dialogue")
        if dialogue_card is not None:
            dialogue_card.data["active"] = self.dialogue_npc_id is not None

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def handle_game_over(self, reason: str) -> bool:
        """Fail the mission. Only the first call has any effect."""
        if self.is_over:
            return False
        self.game_over = True
        logger.info(f"Mission failed: {reason}")
        self.advisor.force("We've lost contact. Mission failed.")
        self.bus.publish(MissionFailedEvent(reason=reason))
        return True

    def handle_mission_complete(self) -> bool:
        """Complete the mission. Only the first call has any effect."""
        if self.is_over:
            return False
        for objective in self.world.objectives:
            if objective.type == "avoid_detection":
                self.world.complete_objective(objective.id)
        if self.world.complete_objective(config.EXTRACT_EXIT_OBJECTIVE_ID):
            self.bus.publish(
                ObjectivesUpdatedEvent(objectives=self.world.objectives_data())
            )
        self.mission_complete = True
        optional = sum(1 for o in self.world.objectives if o.optional and o.completed)
        ghosted = self.world.player.vitals.detection < config.DETECTION_SAFE
        logger.info(
            f"Mission complete in {self.tick_count} ticks "
            f"(optional objectives: {optional}, ghost: {ghosted})"
        )
        self.bus.publish(
            MissionCompleteEvent(optional_completed=optional, ghosted=ghosted)
        )
        return True

    # ------------------------------------------------------------------
    # Player-facing operations
    # ------------------------------------------------------------------

    def execute(self, verb: Verb | str, target_id: str | None = None) -> ActionResult:
        return self.actions.execute(verb, target_id)

    def set_mode(self, mode: ModeId | str, *, push: bool = False) -> bool:
        """Explicit mode request, e.g. for puzzles and cutscenes."""
        return self.modes.transition_to(mode, push_to_stack=push)

    def enter_room(self, room_id: str) -> bool:
        """Move the player into ``room_id`` and start a fresh visit there."""
        room = self.world.room(room_id)
        if room is None:
            logger.warning(f"Cannot enter unknown room '{room_id}'")
            return False

        # Arrive at the doorway that leads back where the player came from.
        # Re-entering the current room (mission start) keeps the position.
        way_back = room.exit_to(self.world.current_room_id)
        if way_back is not None and way_back.position is not None:
            self.world.player.position = way_back.position
        elif room.id != self.world.current_room_id:
            self.world.player.position = (0.0, 0.0)
        self.world.current_room_id = room.id
        self.world.player.vitals.remove_condition(ConditionTag.HIDDEN)
        self.detection.on_room_enter(self.clock.now())
        self.priorities.invalidate()

        npcs = self.world.npcs_in_room()
        logger.debug(f"Entered {room.id} ({len(npcs)} NPCs)")
        self.bus.publish(
            RoomEnteredEvent(room_id=room.id, npc_ids=[npc.id for npc in npcs])
        )
        self.advisor.request(AdvisorTrigger.ENTER_ROOM, room.id)
        if npcs:
            self.advisor.request(AdvisorTrigger.SPOT_NPC, npcs[0].type)
        if room.objective_elements:
            self.bus.publish(ObjectiveNearEvent(room_id=room.id))
            self.advisor.request(AdvisorTrigger.OBJECTIVE_NEAR)
        return True

    def start_dialogue(self, npc: NPC) -> bool:
        """Engage ``npc`` in conversation and switch to dialogue mode."""
        self.dialogue_npc_id = npc.id
        npc.awareness.engaged = True
        logger.debug(f"Dialogue with {npc.id}")
        return self.modes.transition_to(ModeId.DIALOGUE, push_to_stack=True)

    def end_engagement(self) -> bool:
        """Leave dialogue or combat, unwinding whatever mode it interrupted."""
        self.dialogue_npc_id = None
        if self.modes.stack:
            return self.modes.pop_mode()
        return self.modes.return_to_previous()

    def dialogue_failed(self, npc: NPC) -> None:
        """A failed social check: the NPC turns hostile and the fight is on."""
        vitals = self.world.player.vitals
        vitals.modify(DETECTION, config.DIALOGUE_FAILURE_DETECTION)
        vitals.modify(STRESS, config.DIALOGUE_FAILURE_STRESS)
        npc.awareness.force(Awareness.HOSTILE, engaged=True)
        self.dialogue_npc_id = None
        self.advisor.force("Contact! You've been made!", AdvisorTrigger.DANGER)
        self.modes.transition_to(ModeId.COMBAT, push_to_stack=True)

    def drop_items(self, items: list[ItemId], room_id: str | None = None) -> None:
        """Leave items loose in a room (the player's, by default)."""
        room = RoomId(room_id or self.world.current_room_id)
        loose = self.world.room_items.setdefault(room, [])
        for item in items:
            loose.append(item)
            self.bus.publish(ItemDroppedEvent(item_id=item, room_id=room))

    # ------------------------------------------------------------------
    # Headless loop
    # ------------------------------------------------------------------

    def run(
        self,
        max_ticks: int = config.MAX_HEADLESS_TICKS,
        pacer: TickPacer | None = None,
    ) -> int:
        """Tick until the mission ends or ``max_ticks`` have run.

        With a ``pacer`` each tick waits for its slot in real time.
        Returns the number of ticks run.
        """
        ran = 0
        while ran < max_ticks and not self.is_over:
            if pacer is not None:
                pacer.wait()
            self.tick()
            ran += 1
        return ran

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize(self) -> PlainData:
        """Plain-data snapshot of everything mission data can't rebuild."""
        world = self.world
        player = world.player
        return {
            "version": SAVE_VERSION,
            "tick": self.tick_count,
            "now_ms": self.clock.now(),
            "room": world.current_room_id,
            "player": {
                "vitals": player.vitals.to_dict(),
                "inventory": list(player.inventory),
                "position": list(player.position),
            },
            "mode": {
                "current": self.modes.current.value,
                "previous": self.modes.previous.value if self.modes.previous else None,
                "stack": [mode.value for mode in self.modes.stack],
            },
            "objectives": world.objectives_data(),
            "flags": dict(world.flags),
            "room_items": {
                room: list(items) for room, items in world.room_items.items()
            },
            "item_uses": dict(world.item_uses),
            "intel": list(world.intel),
            "exits": {
                room.id: [
                    {
                        "destination": exit_.destination,
                        "locked": exit_.locked,
                        "keycard_level": exit_.keycard_level,
                    }
                    for exit_ in room.exits
                ]
                for room in world.rooms.values()
            },
            "contents": {
                room.id: {
                    element.id: list(element.contents) for element in room.elements
                }
                for room in world.rooms.values()
            },
            "npcs": {npc.id: npc.to_dict() for npc in world.npcs.values()},
            "advisor": self.advisor.to_dict(),
            "detection": self.detection.to_dict(),
            "dialogue_npc": self.dialogue_npc_id,
            "game_over": self.game_over,
            "mission_complete": self.mission_complete,
        }

    def deserialize(self, data: PlainData) -> None:
        """Restore a snapshot taken by :meth:`serialize` from the same mission.

        Raises:
            ValueError: If the snapshot was written by an incompatible version.
        """
        version = data.get("version")
        if version != SAVE_VERSION:
            raise ValueError(f"Unsupported save version: {version!r}")

        world = WorldState(self.world.mission)
        self.world = world
        self.detection.world = world

        world.current_room_id = RoomId(data.get("room", world.current_room_id))
        player = data.get("player", {})
        if "vitals" in player:
            world.player.vitals = Vitals.from_dict(player["vitals"])
        world.player.inventory = [ItemId(i) for i in player.get("inventory", [])]
        if "position" in player:
            x, y = player["position"]
            world.player.position = (x, y)

        for raw in data.get("objectives", []):
            objective = world.objective(raw["id"])
            if objective is None:
                logger.warning(f"Saved objective '{raw['id']}' not in mission")
                continue
            objective.completed = raw.get("completed", False)
        world.flags = dict(data.get("flags", {}))
        world.room_items = {
            RoomId(room): [ItemId(i) for i in items]
            for room, items in data.get("room_items", {}).items()
        }
        world.item_uses = {
            ItemId(item): uses for item, uses in data.get("item_uses", {}).items()
        }
        world.intel = list(data.get("intel", []))

        for room_id, exits in data.get("exits", {}).items():
            room = world.room(room_id)
            if room is None:
                logger.warning(f"Saved exits for unknown room '{room_id}'")
                continue
            for raw in exits:
                exit_ = room.exit_to(raw["destination"])
                if exit_ is not None:
                    exit_.locked = raw.get("locked", exit_.locked)
                    exit_.keycard_level = raw.get("keycard_level", exit_.keycard_level)
        for room_id, contents in data.get("contents", {}).items():
            room = world.room(room_id)
            for element_id, items in contents.items():
                element = room.element(element_id) if room else None
                if element is None:
                    logger.warning(f"Saved contents for unknown element '{element_id}'")
                    continue
                element.contents = [ItemId(i) for i in items]

        for npc_id, overrides in data.get("npcs", {}).items():
            npc = world.npc(npc_id)
            if npc is None:
                logger.warning(f"Saved NPC '{npc_id}' not in mission")
                continue
            npc.apply_overrides(overrides)

        mode = data.get("mode", {})
        previous = mode.get("previous")
        self.modes.restore(
            ModeId(mode.get("current", ModeId.EXPLORATION.value)),
            ModeId(previous) if previous else None,
            [ModeId(m) for m in mode.get("stack", [])],
        )
        self.advisor.restore(data.get("advisor", {}))
        self.dialogue_npc_id = data.get("dialogue_npc")
        self.tick_count = data.get("tick", 0)
        self.clock.set(data.get("now_ms", 0.0))
        self.detection.restore(data.get("detection", {}))
        self.game_over = data.get("game_over", False)
        self.mission_complete = data.get("mission_complete", False)
        self._conditions = world.player.vitals.conditions
        self.overlay.sync(self._conditions)
        self.priorities.invalidate()
