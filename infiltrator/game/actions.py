"""
The single entry point for player actions.

``ActionRouter.execute(verb, target_id)`` runs every player action through
the same gates, in order:

1. The verb must be one the active mode allows. Anything else is rejected
   with a reason and changes nothing.
2. The verb's static preconditions (minimum stamina, required item, cover,
   nobody watching) must hold, or the action is rejected just the same.
3. The verb's handler runs. A handler that can't find its target rejects
   the action as a missing reference; nothing is mutated.
4. If the action actually happened, even as a failed skill roll, its
   stamina cost, noise and detection risk are applied.

Dispatch is a ``Verb -> handler`` registry, checked for completeness at
construction time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from infiltrator import config
from infiltrator.events import (
    ActionBlockedEvent,
    ActionExecutedEvent,
    ItemAddedEvent,
    MessageEvent,
    ObjectivesUpdatedEvent,
)
from infiltrator.game import conditions
from infiltrator.game.actors import NPC, Player
from infiltrator.game.enums import Awareness, ConditionTag, Verb
from infiltrator.game.vitals import DETECTION, HEALTH, STAMINA, STRESS
from infiltrator.game.world import Element, Exit, WorldState
from infiltrator.types import ItemId
from infiltrator.util.rng import RNG

if TYPE_CHECKING:
    from infiltrator.game.engine import Engine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActionResult:
    """Outcome of one call to :meth:`ActionRouter.execute`.

    ``block_reason`` is set when the action never happened (not allowed in
    this mode, a precondition failed, the target doesn't exist). A blocked
    action changes nothing. An action that happened but failed, such as a
    missed skill roll, has ``succeeded=False`` and no block reason.
    """

    succeeded: bool = True
    block_reason: str | None = None
    message: str = ""
    partial: bool = False

    @property
    def blocked(self) -> bool:
        return self.block_reason is not None


def blocked(reason: str) -> ActionResult:
    return ActionResult(succeeded=False, block_reason=reason, message=reason)


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """Static costs and preconditions for one verb.

    Attributes:
        detection_risk: Detection added when someone is around to notice.
        stamina_cost: Stamina spent whenever the action happens.
        noise: Noise level; 2 or more raises suspicion in unaware NPCs.
        min_stamina: Stamina needed to attempt the action at all.
        needs_unwatched: Message when an engaged, aware NPC forbids it.
        needs_item: Item that must be carried.
        needs_cover: Whether the room must offer something to hide behind.
    """

    detection_risk: float = 0
    stamina_cost: float = 0
    noise: int = 0
    min_stamina: tuple[float, str] | None = None
    needs_unwatched: str | None = None
    needs_item: tuple[str, str] | None = None
    needs_cover: bool = False


ACTION_SPECS: dict[Verb, ActionSpec] = {
    Verb.LOOK: ActionSpec(detection_risk=5),
    Verb.EXAMINE: ActionSpec(
        detection_risk=10,
        needs_unwatched="You can't examine that while being watched",
    ),
    Verb.LISTEN: ActionSpec(),
    Verb.SEARCH: ActionSpec(
        detection_risk=20,
        stamina_cost=5,
        noise=1,
        needs_unwatched="Too risky to search while being watched",
    ),
    Verb.WAIT: ActionSpec(),
    Verb.MOVE: ActionSpec(
        detection_risk=15, stamina_cost=config.MOVE_STAMINA_COST, noise=2
    ),
    Verb.SNEAK: ActionSpec(
        detection_risk=5,
        stamina_cost=config.SNEAK_STAMINA_COST,
        min_stamina=(config.SNEAK_STAMINA_COST, "Too tired to move carefully"),
    ),
    Verb.RUN: ActionSpec(
        detection_risk=40,
        stamina_cost=config.RUN_STAMINA_COST,
        noise=4,
        min_stamina=(config.RUN_STAMINA_COST, "Not enough stamina to run"),
    ),
    Verb.HIDE: ActionSpec(stamina_cost=5, noise=1, needs_cover=True),
    Verb.TAKE: ActionSpec(
        detection_risk=10,
        needs_unwatched="Can't take that while being watched",
    ),
    Verb.USE: ActionSpec(detection_risk=5, noise=1),
    Verb.COMBINE: ActionSpec(),
    Verb.DROP: ActionSpec(),
    Verb.TALK: ActionSpec(noise=2),
    Verb.PERSUADE: ActionSpec(),
    Verb.INTIMIDATE: ActionSpec(noise=2),
    Verb.DISTRACT: ActionSpec(detection_risk=30, stamina_cost=5, noise=3),
    Verb.HACK: ActionSpec(
        detection_risk=5,
        stamina_cost=config.HACK_STAMINA_COST,
        needs_unwatched="Can't hack while being watched",
    ),
    Verb.LOCKPICK: ActionSpec(
        detection_risk=15,
        stamina_cost=5,
        noise=1,
        needs_item=(config.LOCKPICK_ITEM_ID, "Need lockpicks"),
        needs_unwatched="Can't pick locks while being watched",
    ),
    Verb.DISABLE: ActionSpec(
        detection_risk=10,
        noise=1,
        needs_unwatched="Can't do that while being watched",
    ),
    Verb.ATTACK: ActionSpec(stamina_cost=config.ATTACK_STAMINA_COST),
    Verb.SUBDUE: ActionSpec(
        detection_risk=50,
        stamina_cost=config.SUBDUE_STAMINA_COST,
        noise=2,
        min_stamina=(config.SUBDUE_STAMINA_COST, "You're too tired for that."),
    ),
    Verb.FLEE: ActionSpec(
        stamina_cost=config.FLEE_STAMINA_COST,
        noise=4,
        min_stamina=(config.FLEE_STAMINA_COST, "You're too exhausted to run!"),
    ),
}


@dataclass(frozen=True, slots=True)
class SkillCheck:
    succeeded: bool
    partial: bool
    roll: float
    chance: float


def skill_check(rng: RNG, difficulty: float, modifier: float = 0) -> SkillCheck:
    """Percentile roll against ``100 - difficulty + modifier``.

    The chance is clamped so nothing is ever certain either way. A roll that
    misses by less than the partial margin counts as a partial success.
    """
    chance = max(
        config.SKILL_CHECK_FLOOR,
        min(config.SKILL_CHECK_CEILING, 100 - difficulty + modifier),
    )
    roll = rng.random() * 100
    return SkillCheck(
        succeeded=roll < chance,
        partial=roll < chance + config.PARTIAL_SUCCESS_MARGIN,
        roll=roll,
        chance=chance,
    )


def make_noise(npcs: list[NPC], level: int) -> None:
    """Raise the suspicion of unaware NPCs that hear the player."""
    if level < config.NOISE_ALERT_LEVEL:
        return
    for npc in npcs:
        if npc.can_act() and npc.awareness.awareness == Awareness.UNAWARE:
            npc.awareness.add_suspicion(level * config.NOISE_SUSPICION_PER_LEVEL)


Handler: TypeAlias = Callable[[str | None], ActionResult]


class ActionRouter:
    """Validates player actions against the active mode and dispatches them.

    This class should only be driven through :meth:`Engine.execute`, which
    owns the world, the mode machine and the advisor the handlers act on.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.rng = engine.rng.get("combat.resolve")
        self._handlers: dict[Verb, Handler] = {
            Verb.MOVE: self._move,
            Verb.SNEAK: self._move,
            Verb.RUN: self._move,
            Verb.HIDE: self._hide,
            Verb.LOOK: self._look,
            Verb.EXAMINE: self._examine,
            Verb.LISTEN: self._listen,
            Verb.SEARCH: self._search,
            Verb.WAIT: self._wait,
            Verb.TAKE: self._take,
            Verb.USE: self._use,
            Verb.COMBINE: self._combine,
            Verb.DROP: self._drop,
            Verb.TALK: self._talk,
            Verb.PERSUADE: self._persuade,
            Verb.INTIMIDATE: self._intimidate,
            Verb.DISTRACT: self._distract,
            Verb.HACK: self._hack,
            Verb.LOCKPICK: self._lockpick,
            Verb.DISABLE: self._disable,
            Verb.ATTACK: self._attack,
            Verb.SUBDUE: self._subdue,
            Verb.FLEE: self._flee,
        }
        missing = set(Verb) - set(self._handlers) | set(Verb) - set(ACTION_SPECS)
        if missing:
            raise ValueError(
                f"No handler or spec for verbs: {sorted(v.value for v in missing)}"
            )

    @property
    def world(self) -> WorldState:
        return self.engine.world

    @property
    def player(self) -> Player:
        return self.engine.world.player

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(self, verb: Verb | str, target_id: str | None = None) -> ActionResult:
        """Validate and perform one player action."""
        if not isinstance(verb, Verb):
            try:
                verb = Verb(verb)
            except ValueError:
                return self._reject(verb, f"Unknown action '{verb}'")

        if self.engine.is_over:
            return self._reject(verb, "The mission is over")

        modes = self.engine.modes
        if not modes.is_action_allowed(verb):
            return self._reject(
                verb, f"Can't {verb.value} in {modes.descriptor.name.lower()} mode"
            )

        spec = ACTION_SPECS[verb]
        reason = self._precondition_failure(spec)
        if reason is not None:
            return self._reject(verb, reason)

        origin = self.world.current_room_id
        watchers = [npc for npc in self.world.npcs_in_room(origin) if npc.can_act()]
        # Movement restarts the grace window, so decide exposure up front.
        exposed = not self.engine.detection.in_grace_period(self.engine.clock.now())

        result = self._handlers[verb](target_id)
        if result.blocked:
            assert result.block_reason is not None
            return self._reject(verb, result.block_reason)

        self._apply_costs(spec, watchers, exposed)
        logger.debug(
            f"Action {verb.value} -> {target_id}: "
            f"{'ok' if result.succeeded else 'failed'} {result.message}"
        )
        self.engine.bus.publish(
            ActionExecutedEvent(
                verb=verb,
                target_id=target_id,
                succeeded=result.succeeded,
                message=result.message,
            )
        )
        if result.message:
            self.engine.bus.publish(MessageEvent(text=result.message))
        self.engine.priorities.invalidate()
        return result

    def _reject(self, verb: Verb | str, reason: str) -> ActionResult:
        logger.debug(f"Action {verb} rejected: {reason}")
        self.engine.bus.publish(ActionBlockedEvent(verb=verb, reason=reason))
        return blocked(reason)

    def _precondition_failure(self, spec: ActionSpec) -> str | None:
        if spec.min_stamina is not None:
            amount, message = spec.min_stamina
            if self.player.vitals.stamina < amount:
                return message
        if spec.needs_item is not None:
            item, message = spec.needs_item
            if not self.player.has_item(item):
                return message
        if spec.needs_cover:
            room = self.world.current_room
            if room is None or not room.offers_cover:
                return "Nothing to hide behind here"
        if spec.needs_unwatched is not None and self._being_watched():
            return spec.needs_unwatched
        return None

    def _being_watched(self) -> bool:
        return any(
            npc.engaged
            and npc.awareness.awareness != Awareness.UNAWARE
            and npc.can_act()
            for npc in self.world.npcs_in_room()
        )

    def _apply_costs(
        self, spec: ActionSpec, watchers: list[NPC], exposed: bool
    ) -> None:
        vitals = self.player.vitals
        if spec.stamina_cost:
            vitals.modify(STAMINA, -spec.stamina_cost)
        make_noise(watchers, spec.noise)
        # Risk only counts when someone conscious could have seen it, and
        # never during the post-entry grace window.
        if spec.detection_risk and exposed and any(npc.can_act() for npc in watchers):
            vitals.modify(DETECTION, spec.detection_risk)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _element(self, target_id: str | None) -> Element | ActionResult:
        element = self.world.element(target_id) if target_id else None
        if element is None:
            logger.warning(f"No element '{target_id}' in {self.world.current_room_id}")
            return blocked(f"There's no '{target_id}' here")
        return element

    def _npc(self, target_id: str | None) -> NPC | ActionResult:
        npc = self.world.npc(target_id) if target_id else None
        if npc is None or npc.location != self.world.current_room_id:
            logger.warning(f"No NPC '{target_id}' in {self.world.current_room_id}")
            return blocked(f"There's nobody called '{target_id}' here")
        return npc

    def _exit(self, target_id: str | None) -> Exit | ActionResult:
        room = self.world.current_room
        exit_ = room.exit_to(target_id) if room and target_id else None
        if exit_ is None:
            logger.warning(
                f"No exit to '{target_id}' from {self.world.current_room_id}"
            )
            return blocked(f"No way to '{target_id}' from here")
        return exit_

    def _engaged_npc(self, target_id: str | None) -> NPC | ActionResult:
        """The named NPC, or whoever the player is currently talking to."""
        return self._npc(target_id or self.engine.dialogue_npc_id)

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def _move(self, target_id: str | None) -> ActionResult:
        exit_ = self._exit(target_id)
        if isinstance(exit_, ActionResult):
            return exit_
        if exit_.locked and not self.player.can_open(exit_.keycard_level):
            return blocked(f"Requires Level {exit_.keycard_level} Keycard")
        self.engine.enter_room(exit_.destination)
        return ActionResult(message=f"You head to {exit_.label or exit_.destination}.")

    def _hide(self, target_id: str | None) -> ActionResult:
        vitals = self.player.vitals
        vitals.add_condition(ConditionTag.HIDDEN)
        vitals.modify(DETECTION, -config.HIDE_DETECTION_REDUCTION)
        return ActionResult(message="You slip out of sight.")

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _look(self, target_id: str | None) -> ActionResult:
        room = self.world.current_room
        interactives = room.interactive_elements if room else []
        if interactives:
            line = f"I see {len(interactives)} things worth checking out."
        else:
            line = "Nothing stands out."
        self.engine.advisor.force(line)
        return ActionResult(message=line)

    def _listen(self, target_id: str | None) -> ActionResult:
        if self.world.npcs_in_room():
            line = "Footsteps. Someone's nearby."
        else:
            line = "All quiet."
        self.engine.advisor.force(line)
        return ActionResult(message=line)

    def _examine(self, target_id: str | None) -> ActionResult:
        element = self._element(target_id)
        if isinstance(element, ActionResult):
            return element
        line = f"{element.name}. {element.description or 'Nothing special.'}"
        if element.description and element.description not in self.world.intel:
            self.world.intel.append(element.description)
        self.engine.advisor.force(line)
        return ActionResult(message=line)

    def _search(self, target_id: str | None) -> ActionResult:
        if target_id is None:
            items = self.world.room_items.get(self.world.current_room_id, [])
            found = ", ".join(items) if items else "nothing useful"
            return ActionResult(message=f"You search the room and find {found}.")
        element = self._element(target_id)
        if isinstance(element, ActionResult):
            return element
        found = ", ".join(element.contents) if element.contents else "nothing"
        return ActionResult(message=f"Inside {element.name}: {found}.")

    def _wait(self, target_id: str | None) -> ActionResult:
        vitals = self.player.vitals
        vitals.modify(STRESS, -config.WAIT_STRESS_RELIEF)
        vitals.modify(STAMINA, config.WAIT_STAMINA_RECOVERY)
        self.engine.advisor.force("Taking a moment. Stay alert.")
        return ActionResult(message="You take a breath.")

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def _take(self, target_id: str | None) -> ActionResult:
        if target_id is None:
            return blocked("Take what?")
        if self.player.has_item(target_id):
            return blocked(f"You already have {target_id}")

        item = ItemId(target_id)
        room_items = self.world.room_items.get(self.world.current_room_id, [])
        if item in room_items:
            room_items.remove(item)
            self.acquire(item)
            return ActionResult(message=f"Took {item}.")

        room = self.world.current_room
        for element in room.elements if room else []:
            if item not in element.contents:
                continue
            if (
                element.type in config.HACKABLE_ELEMENT_TYPES
                and not self.world.has_flag(f"hacked_{element.id}")
            ):
                return blocked(f"It's locked inside {element.name}")
            element.contents.remove(item)
            self.acquire(item)
            return ActionResult(message=f"Took {item}.")

        logger.warning(f"No item '{target_id}' in {self.world.current_room_id}")
        return blocked(f"There's no '{target_id}' here")

    def acquire(self, item: ItemId) -> None:
        """Put an item in the player's inventory and react to objective items."""
        if not self.player.add_item(item):
            return
        self.engine.bus.publish(ItemAddedEvent(item_id=item))
        self.engine.advisor.force("Got it.")

        if item == config.OBJECTIVE_ITEM_ID:
            self.world.set_flag(config.OBJECTIVE_FLAG)
            if self.world.complete_objective(config.EXTRACT_LOGS_OBJECTIVE_ID):
                self.engine.bus.publish(
                    ObjectivesUpdatedEvent(objectives=self.world.objectives_data())
                )
            self.engine.advisor.force("That's the package. Now get to the exit.")

    def _use(self, target_id: str | None) -> ActionResult:
        if target_id is None or not self.player.has_item(target_id):
            return blocked(f"You don't have '{target_id}'")
        item = ItemId(target_id)
        spec = self.world.mission.items.get(item)
        if spec is None or not spec.heal_amount:
            return blocked(f"Nothing to use {target_id} for")

        self.player.vitals.modify(HEALTH, spec.heal_amount)
        self.engine.advisor.force("That should help.")
        if spec.uses is not None:
            remaining = self.world.item_uses.get(item, spec.uses) - 1
            self.world.item_uses[item] = remaining
            if remaining <= 0:
                self.player.remove_item(item)
                del self.world.item_uses[item]
        return ActionResult(message=f"Used {spec.name}.")

    def _combine(self, target_id: str | None) -> ActionResult:
        return blocked("Nothing here combines")

    def _drop(self, target_id: str | None) -> ActionResult:
        if target_id is None or not self.player.has_item(target_id):
            return blocked(f"You don't have '{target_id}'")
        item = ItemId(target_id)
        self.player.remove_item(item)
        self.engine.drop_items([item])
        return ActionResult(message=f"Dropped {item}.")

    # ------------------------------------------------------------------
    # Technical
    # ------------------------------------------------------------------

    def _hack(self, target_id: str | None) -> ActionResult:
        element = self._element(target_id)
        if isinstance(element, ActionResult):
            return element
        if element.type not in config.HACKABLE_ELEMENT_TYPES:
            return blocked("Nothing to hack here")
        flag = f"hacked_{element.id}"
        if self.world.has_flag(flag):
            return blocked(f"You're already into {element.name}")

        self.player.vitals.modify(STRESS, config.HACK_STRESS)
        self.engine.advisor.force("Working on it... stay alert.")
        check = self._check(element.difficulty, conditions.FINE_MOTOR)
        if not check.succeeded:
            return ActionResult(
                succeeded=False, message="Failed skill check", partial=check.partial
            )

        self.world.set_flag(flag)
        for item in list(element.contents):
            element.contents.remove(item)
            self.acquire(item)
        self.engine.advisor.force("Got it. Now get out of there.")
        return ActionResult(message=f"You're into {element.name}.")

    def _lockpick(self, target_id: str | None) -> ActionResult:
        exit_ = self._exit(target_id)
        if isinstance(exit_, ActionResult):
            return exit_
        if not exit_.locked:
            return blocked("It isn't locked")
        check = self._check(config.LOCKPICK_DIFFICULTY, conditions.FINE_MOTOR)
        if not check.succeeded:
            return ActionResult(
                succeeded=False, message="The lock holds.", partial=check.partial
            )
        exit_.locked = False
        return ActionResult(message="The lock clicks open.")

    def _disable(self, target_id: str | None) -> ActionResult:
        element = self._element(target_id)
        if isinstance(element, ActionResult):
            return element
        flag = f"disabled_{element.id}"
        if self.world.has_flag(flag):
            return blocked(f"{element.name} is already disabled")
        check = self._check(config.DISABLE_DIFFICULTY, conditions.FINE_MOTOR)
        if not check.succeeded:
            return ActionResult(
                succeeded=False, message="Failed skill check", partial=check.partial
            )
        self.world.set_flag(flag)
        return ActionResult(message=f"{element.name} goes dark.")

    def _check(self, difficulty: float, category: str) -> SkillCheck:
        modifier = self.player.vitals.get_effect_modifier(category)
        return skill_check(self.rng, difficulty, modifier)

    # ------------------------------------------------------------------
    # Social
    # ------------------------------------------------------------------

    def _talk(self, target_id: str | None) -> ActionResult:
        npc = self._engaged_npc(target_id)
        if isinstance(npc, ActionResult):
            return npc
        if not npc.can_act():
            return blocked("No one to talk to")
        if not npc.can_talk:
            return blocked(f"{npc.name} has nothing to say")
        if self.engine.dialogue_npc_id != npc.id:
            self.engine.start_dialogue(npc)
        return ActionResult(message="Hey, you're not supposed to be here after hours.")

    def _persuade(self, target_id: str | None) -> ActionResult:
        return self._social_check(
            target_id, config.PERSUADE_DIFFICULTY, "IT, huh? Fine, but make it quick."
        )

    def _intimidate(self, target_id: str | None) -> ActionResult:
        return self._social_check(
            target_id,
            config.INTIMIDATE_DIFFICULTY,
            "Okay, okay. I didn't see anything.",
        )

    def _social_check(
        self, target_id: str | None, difficulty: float, success_line: str
    ) -> ActionResult:
        npc = self._engaged_npc(target_id)
        if isinstance(npc, ActionResult):
            return npc
        check = self._check(difficulty, conditions.DECISION_MAKING)
        if check.succeeded:
            npc.awareness.force(Awareness.SUSPICIOUS, engaged=False)
            self.engine.end_engagement()
            return ActionResult(message=success_line)
        self.engine.dialogue_failed(npc)
        return ActionResult(
            succeeded=False, message="They aren't buying it.", partial=check.partial
        )

    def _distract(self, target_id: str | None) -> ActionResult:
        player_pos = self.player.position
        broke_engagement = False
        for npc in self.world.npcs_in_room():
            if not npc.can_act() or npc.is_hostile:
                continue
            # Turn them toward the diversion, away from the player.
            npc._face(npc.position[0] - player_pos[0], npc.position[1] - player_pos[1])
            if npc.engaged:
                npc.awareness.engaged = False
                broke_engagement = True
        if broke_engagement:
            self.engine.end_engagement()
        return ActionResult(message="You create a diversion.")

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------

    def _subdue(self, target_id: str | None) -> ActionResult:
        npc = self._npc(target_id)
        if isinstance(npc, ActionResult):
            return npc
        if not npc.can_act():
            return blocked("Target is not vulnerable")

        vitals = self.player.vitals
        vitals.modify(STRESS, config.SUBDUE_STRESS)
        if npc.is_hostile:
            difficulty = config.SUBDUE_HOSTILE_DIFFICULTY
        else:
            difficulty = config.SUBDUE_DIFFICULTY
        roll = self.rng.random() * 100
        if roll < config.PLAYER_COMBAT_SKILL + config.SUBDUE_SKILL_BONUS - difficulty:
            self.engine.drop_items(npc.subdue())
            self.engine.advisor.force("Target down. Grab what you can and move.")
            self.engine.end_engagement()
            return ActionResult(message=f"{npc.name} goes limp.")

        self.engine.advisor.force("Didn't work! They're fighting back!")
        vitals.modify(HEALTH, -config.FAILED_SUBDUE_DAMAGE)
        vitals.modify(STRESS, config.FAILED_SUBDUE_STRESS)
        npc.awareness.force(Awareness.HOSTILE)
        return ActionResult(succeeded=False, message=f"{npc.name} breaks free.")

    def _attack(self, target_id: str | None) -> ActionResult:
        npc = self._npc(target_id)
        if isinstance(npc, ActionResult):
            return npc
        if not npc.can_act():
            return blocked("Target is already down")

        armed = any(item in config.PLAYER_WEAPONS for item in self.player.inventory)
        damage = config.ARMED_ATTACK_DAMAGE if armed else config.UNARMED_ATTACK_DAMAGE
        self.player.vitals.modify(STRESS, config.ATTACK_STRESS)
        npc.take_damage(damage)

        if not npc.vitals.is_alive():
            self.engine.advisor.force(
                "Target neutralized. That's going to leave a trail."
            )
            self.engine.drop_items(npc.drop_inventory())
            self.engine.end_engagement()
            return ActionResult(message=f"{npc.name} is down.")

        npc.awareness.force(Awareness.HOSTILE, engaged=True)
        self.engine.advisor.force("They're still up! Watch yourself!")
        self.player.vitals.modify(HEALTH, -config.RETALIATION_DAMAGE)
        return ActionResult(message=f"{npc.name} hits back.")

    def _flee(self, target_id: str | None) -> ActionResult:
        room = self.world.current_room
        exits = [e for e in room.exits if not e.locked] if room else []
        if not exits:
            return blocked("No way out")

        vitals = self.player.vitals
        vitals.modify(STRESS, config.FLEE_STRESS)
        vitals.modify(DETECTION, config.FLEE_DETECTION)

        for npc in self.world.npcs_in_room():
            npc.awareness.engaged = False
            npc.awareness.engagement_handled = False

        self.engine.advisor.force("Go go go! Get out of there!")
        self.engine.end_engagement()
        self.engine.enter_room(exits[0].destination)
        return ActionResult(message="You break away.")
