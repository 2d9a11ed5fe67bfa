from __future__ import annotations

from typing import Any, NewType, TypeAlias

# =============================================================================
# SPATIAL TYPES
# =============================================================================

# Position inside a room, in tiles. Fractional values occur while NPCs move
# between patrol points.
RoomCoord: TypeAlias = float
RoomPos: TypeAlias = tuple[RoomCoord, RoomCoord]  # Example: (3.0, 4.5)

# =============================================================================
# TIME-RELATED TYPES
# =============================================================================

# Milliseconds on the simulation clock. All timing in the core (grace
# windows, throttles, transition locks, caches) is expressed in these units
# so tests can advance time tick by tick without wall-clock timers.
Millis = NewType("Millis", float)

# Real time elapsed between two rendered frames, in seconds. Only the
# headless runner and card animations care about it.
DeltaTime = NewType("DeltaTime", float)

# =============================================================================
# GAME-RELATED TYPES
# =============================================================================

# Identifier of a room in the mission's room graph (e.g. "lobby-main").
RoomId = NewType("RoomId", str)

# Identifier of an NPC placed by the mission (e.g. "guard-1").
NpcId = NewType("NpcId", str)

# Identifier of an interactive element within a room.
ElementId = NewType("ElementId", str)

# Identifier of an inventory item (e.g. "keycard-level2").
ItemId = NewType("ItemId", str)

# Identifier of a UI surface ("card") such as "vitals" or "action-palette".
CardId = NewType("CardId", str)

# Plain JSON-compatible data crossing the persistence boundary.
PlainData: TypeAlias = dict[str, Any]

# Random seed for deterministic streams. Can be an int or a descriptive string.
RandomSeed: TypeAlias = int | str | None
