from enum import Enum, IntEnum


class Awareness(Enum):
    """Discrete NPC perception state.

    UNAWARE -> SUSPICIOUS -> ALERT -> HOSTILE is driven by accumulated
    suspicion. ALLIED and NEUTRAL are scripted by mission data and are never
    reached through suspicion.
    """

    UNAWARE = "unaware"  # Doesn't know the player exists
    SUSPICIOUS = "suspicious"  # Something's off, investigating
    ALERT = "alert"  # Knows the player is there, reacting
    HOSTILE = "hostile"  # Active threat
    ALLIED = "allied"  # Friendly
    NEUTRAL = "neutral"  # Knows the player, doesn't care

    @property
    def is_scripted(self) -> bool:
        return self in {Awareness.ALLIED, Awareness.NEUTRAL}


class Behavior(Enum):
    STATIONARY = "stationary"  # Stays in one spot
    PATROL = "patrol"  # Moves along a path
    WANDER = "wander"  # Random movement
    GUARD = "guard"  # Watches an area, rotates facing
    WORKER = "worker"  # Cycles between work stations


class Facing(Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class Capability(Enum):
    CALL_BACKUP = "call_backup"
    LOCK_DOORS = "lock_doors"
    SOUND_ALARM = "sound_alarm"
    ARMED = "armed"
    KEYS = "has_keys"
    ACCESS_CODES = "has_codes"


class ModeId(Enum):
    """Mutually exclusive player interaction modes."""

    EXPLORATION = "exploration"
    DIALOGUE = "dialogue"
    COMBAT = "combat"
    STEALTH = "stealth"
    PUZZLE = "puzzle"
    CUTSCENE = "cutscene"


class CardState(Enum):
    EXPANDED = "expanded"
    STANDARD = "standard"
    MINIMIZED = "minimized"
    COLLAPSED = "collapsed"
    POPUP = "popup"


class PriorityTier(IntEnum):
    """Coarse attention band carried alongside a priority weight.

    The tier is descriptive metadata. Ordering is done by weight.
    """

    MODIFIER = 0  # Overlays that modify other displays
    IMMEDIATE = 1  # NPCs, active threats
    ENVIRONMENTAL = 2  # Room actions, objects
    SELF = 3  # Inventory, status


class Verb(Enum):
    # Movement
    MOVE = "move"
    SNEAK = "sneak"
    RUN = "run"
    HIDE = "hide"

    # Observation
    LOOK = "look"
    EXAMINE = "examine"
    LISTEN = "listen"
    SEARCH = "search"
    WAIT = "wait"

    # Interaction
    TAKE = "take"
    USE = "use"
    COMBINE = "combine"
    DROP = "drop"

    # Social
    TALK = "talk"
    PERSUADE = "persuade"
    INTIMIDATE = "intimidate"
    DISTRACT = "distract"

    # Technical
    HACK = "hack"
    LOCKPICK = "lockpick"
    DISABLE = "disable"

    # Combat
    ATTACK = "attack"
    SUBDUE = "subdue"
    FLEE = "flee"


class ConditionTag(Enum):
    # Derived from vitals every tick
    HIGH_STRESS = "high-stress"
    PANICKED = "panicked"
    INJURED = "injured"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"
    SPOTTED = "spotted"

    # Situational, set by actions and effects
    HIDDEN = "hidden"
    ILLUMINATED = "illuminated"
    ADRENALINE = "adrenaline"
    UNCONSCIOUS = "unconscious"


class HealthStatus(Enum):
    HEALTHY = "healthy"
    HURT = "hurt"
    WOUNDED = "wounded"
    CRITICAL = "critical"
    DEAD = "dead"


class StressStatus(Enum):
    CALM = "calm"
    TENSE = "tense"
    STRESSED = "stressed"
    PANICKED = "panicked"
    OVERWHELMED = "overwhelmed"


class DetectionStatus(Enum):
    HIDDEN = "hidden"
    NOTICED = "noticed"
    SUSPICIOUS = "suspicious"
    SPOTTED = "spotted"
    CAUGHT = "caught"


class Lighting(Enum):
    DARK = "dark"
    DIM = "dim"
    NORMAL = "normal"
    BRIGHT = "bright"


class Noise(Enum):
    SILENT = "silent"
    QUIET = "quiet"
    NORMAL = "normal"
    LOUD = "loud"


class AdvisorMode(Enum):
    CAUTIOUS = "cautious"  # Speaks less, warns more
    BALANCED = "balanced"  # Normal operation
    AGGRESSIVE = "aggressive"  # More tactical suggestions


class Reliability(Enum):
    """How well the advisor's channel is getting through."""

    CLEAR = "clear"
    STATIC = "static"
    OFFLINE = "offline"


class AdvisorTrigger(Enum):
    ENTER_ROOM = "enter_room"
    SPOT_NPC = "spot_npc"
    SPOT_ITEM = "spot_item"
    PLAYER_IDLE = "player_idle"
    STRESS_CHANGE = "stress_change"
    OBJECTIVE_NEAR = "objective_near"
    DANGER = "danger"
    HINT_REQUEST = "hint_request"
    ACTION_RESULT = "action_result"
