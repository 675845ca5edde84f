"""Ephemeris calculation engine for Lunary."""

from ephemeris.calculator import calculate_cosmic_day

__all__ = ["calculate_cosmic_day"]
