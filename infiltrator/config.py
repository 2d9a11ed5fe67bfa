"""
Configuration constants.

Centralizes all magic numbers and configuration values used throughout the codebase.
Organized by functional area for easy maintenance.
"""

import sys
from pathlib import Path

# =============================================================================
# GENERAL
# =============================================================================

PROJECT_ROOT_PATH = Path(__file__).resolve().parent.parent

# RANDOM_SEED = None
RANDOM_SEED = "glass-shadow"

# Test environment detection
IS_TEST_ENVIRONMENT = "pytest" in sys.modules

# Room the player must reach with the package to finish the mission.
DEFAULT_EXTRACTION_ROOM = "lobby-main"
OBJECTIVE_ITEM_ID = "access-logs"
OBJECTIVE_FLAG = "logs_acquired"
EXTRACT_LOGS_OBJECTIVE_ID = "obj-extract-logs"
EXTRACT_EXIT_OBJECTIVE_ID = "obj-extract-exit"

# =============================================================================
# SIMULATION TIMING
# =============================================================================

# Coarse simulation tick. Awareness decay, vitals drift, win/lose checks
# and priority re-evaluation all run at this cadence.
TICK_INTERVAL_MS = 100

# Upper bound on ticks a headless run may execute before giving up.
MAX_HEADLESS_TICKS = 10_000

# =============================================================================
# DETECTION
# =============================================================================

# No detection rolls at all for this long after entering a room.
DETECTION_GRACE_PERIOD_MS = 3000

# Detection rolls are throttled to one pass per interval, independent of
# the render/animation frame rate.
DETECTION_CHECK_INTERVAL_MS = 1500

DETECTION_BASE_CHANCE = 8  # Percent per NPC per check
DETECTION_INCREMENT = 5  # Detection added per successful spot

# Roll modifiers (percentage points)
DETECTION_ALERT_BONUS = 10
DETECTION_HOSTILE_BONUS = 20
DETECTION_BRIGHT_BONUS = 5
DETECTION_DIM_PENALTY = 5
DETECTION_HIDDEN_PENALTY = 15
DETECTION_NERVOUS_BONUS = 5  # Applied while player stress > NERVOUS_STRESS
DETECTION_LOUD_PENALTY = 5
DETECTION_SILENT_BONUS = 10
NERVOUS_STRESS = 50

# Player-visible consequence ladder
DETECTION_FIRST_ALERT = 30
DETECTION_SUSPICIOUS_NOTICE = 50
DETECTION_ENGAGE = 80
DETECTION_CAUGHT = 100

# NPC perception geometry
NPC_DETECTION_RANGE = 5.0
HIDDEN_RANGE_MULTIPLIER = 0.3
BEHIND_RANGE_MULTIPLIER = 0.2
LOUD_ROOM_RANGE_MULTIPLIER = 0.7
MIN_SUSPICION_GAIN = 5.0
MAX_SUSPICION_GAIN = 30.0
SUSPICION_FALLOFF_PER_TILE = 5.0

# Awareness thresholds on accumulated suspicion
SUSPICION_SUSPICIOUS = 30
SUSPICION_ALERT = 70
SUSPICION_HOSTILE = 100
SUSPICION_DECAY_PER_TICK = 1.0
# Ticks an NPC holds its suspicion after actually perceiving the player.
SUSPICION_HOLD_TICKS = 20

# NPC capability cooldowns (ticks)
BACKUP_COOLDOWN_TICKS = 100
ALARM_COOLDOWN_TICKS = 999  # Effectively once per mission
LOCK_DOORS_COOLDOWN_TICKS = 100

# =============================================================================
# VITALS
# =============================================================================

DEFAULT_MAX_HEALTH = 100
DEFAULT_MAX_STAMINA = 100
VITAL_CEILING = 100  # Upper bound for stress and detection

STRESS_LOW = 30
STRESS_MEDIUM = 50
STRESS_HIGH = 70
STRESS_CRITICAL = 90

HEALTH_HEALTHY = 70
HEALTH_HURT = 50
HEALTH_WOUNDED = 30
HEALTH_CRITICAL = 10

DETECTION_SAFE = 20
DETECTION_NOTICED = 40
DETECTION_SUSPICIOUS = 60
DETECTION_SPOTTED = 80

STAMINA_EXHAUSTED = 20

# Passive drift per tick
STRESS_DECAY_PER_TICK = 1.0
STAMINA_REGEN_PER_TICK = 0.5

# Physiology (player only)
RESTING_PULSE = 70
PULSE_PER_STRESS = 0.6
RESTING_BREATHING_RATE = 12
BREATHING_PER_STRESS = 0.1

# =============================================================================
# ACTIONS
# =============================================================================

MOVE_STAMINA_COST = 5
SNEAK_STAMINA_COST = 10
RUN_STAMINA_COST = 20
SUBDUE_STAMINA_COST = 30
FLEE_STAMINA_COST = 25
ATTACK_STAMINA_COST = 20

PLAYER_COMBAT_SKILL = 40
SUBDUE_SKILL_BONUS = 20
SUBDUE_DIFFICULTY = 40
SUBDUE_HOSTILE_DIFFICULTY = 60
ARMED_ATTACK_DAMAGE = 40
UNARMED_ATTACK_DAMAGE = 20
RETALIATION_DAMAGE = 15
FAILED_SUBDUE_DAMAGE = 20
PLAYER_WEAPONS = frozenset({"knife", "taser", "fire-extinguisher"})
LOCKPICK_ITEM_ID = "lockpick-set"

HACK_STAMINA_COST = 15
HACK_STRESS = 10
HACKABLE_ELEMENT_TYPES = frozenset({"terminal", "computer"})
DEFAULT_ELEMENT_DIFFICULTY = 50
LOCKPICK_DIFFICULTY = 60
DISABLE_DIFFICULTY = 50
PERSUADE_DIFFICULTY = 40
INTIMIDATE_DIFFICULTY = 60

SUBDUE_STRESS = 15
FAILED_SUBDUE_STRESS = 25
ATTACK_STRESS = 30
FLEE_STRESS = 20
FLEE_DETECTION = 15
WAIT_STRESS_RELIEF = 10
WAIT_STAMINA_RECOVERY = 5

DIALOGUE_FAILURE_DETECTION = 30
DIALOGUE_FAILURE_STRESS = 20
HIDE_DETECTION_REDUCTION = 30
NOISE_SUSPICION_PER_LEVEL = 10
NOISE_ALERT_LEVEL = 2  # Noise at or above this level bothers unaware NPCs

# Skill checks clamp the success chance to this band (percent).
SKILL_CHECK_FLOOR = 5
SKILL_CHECK_CEILING = 95
PARTIAL_SUCCESS_MARGIN = 20

# =============================================================================
# PRIORITIES
# =============================================================================

PRIORITY_CACHE_LIFETIME_MS = 100

# =============================================================================
# MODES
# =============================================================================

MODE_TRANSITION_LOCK_MS = 300

# Oldest entries are dropped once the history stack grows past this.
MODE_STACK_LIMIT = 8

# =============================================================================
# DISPLAY
# =============================================================================

CARD_TRANSITION_MS = 300
POPUP_DEFAULT_DURATION_MS = 2500

# =============================================================================
# ADVISOR
# =============================================================================

ADVISOR_MIN_COOLDOWN_TICKS = 20
ADVISOR_COOLDOWN_TICKS = {
    "cautious": 60,
    "balanced": 40,
    "aggressive": 25,
}
ADVISOR_STATIC_THRESHOLD = 50
ADVISOR_OFFLINE_THRESHOLD = 10
ADVISOR_INJURY_PENALTY = 20
