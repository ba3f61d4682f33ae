"""Operational scripts (popularity sweep)."""
