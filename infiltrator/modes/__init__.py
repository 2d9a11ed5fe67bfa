"""Interaction mode exports."""

from infiltrator.modes.base import ENGAGEMENT_MODES, MODES, ModeDescriptor
from infiltrator.modes.machine import ModeStateMachine

__all__ = ["ENGAGEMENT_MODES", "MODES", "ModeDescriptor", "ModeStateMachine"]
