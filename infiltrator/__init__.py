"""Stealth infiltration simulation core."""
