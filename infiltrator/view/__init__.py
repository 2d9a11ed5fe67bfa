"""Display state exports."""

from .cards import Card, CardResolver, VisualState, default_cards
from .overlay import OverlayModifiers

__all__ = ["Card", "CardResolver", "OverlayModifiers", "VisualState", "default_cards"]
