"""Lunar phase naming from Sun and Moon longitudes."""

from __future__ import annotations

import math
from datetime import date

from lunary.schemas.cosmic import MoonPhase

SYNODIC_MONTH_DAYS = 29.530588853

# Traditional full moon names by calendar month
FULL_MOON_NAMES: dict[int, str] = {
    1: "Wolf Moon",
    2: "Snow Moon",
    3: "Worm Moon",
    4: "Pink Moon",
    5: "Flower Moon",
    6: "Strawberry Moon",
    7: "Buck Moon",
    8: "Sturgeon Moon",
    9: "Harvest Moon",
    10: "Hunter Moon",
    11: "Beaver Moon",
    12: "Cold Moon",
}

# Exact phase angles; within SIGNIFICANT_WINDOW of one the day counts as a peak
PRINCIPAL_ANGLES = (0.0, 90.0, 180.0, 270.0)
SIGNIFICANT_WINDOW = 2.0


def phase_angle(sun_longitude: float, moon_longitude: float) -> float:
    """Moon's elongation from the Sun: 0 new, 90 first quarter, 180 full."""
    return (moon_longitude - sun_longitude) % 360.0


def illumination_pct(angle: float) -> float:
    return (1.0 - math.cos(math.radians(angle))) / 2.0 * 100.0


def _is_significant(angle: float) -> bool:
    for target in PRINCIPAL_ANGLES:
        delta = abs(angle - target) % 360.0
        if min(delta, 360.0 - delta) <= SIGNIFICANT_WINDOW:
            return True
    return False


def calculate_moon_phase(sun_longitude: float, moon_longitude: float, on: date) -> MoonPhase:
    """Name the lunar phase; illumination drives new/full, angle drives quarters."""
    angle = phase_angle(sun_longitude, moon_longitude)
    illumination = illumination_pct(angle)

    if illumination <= 3.0:
        name, energy = "New Moon", "New Beginnings"
    elif illumination >= 97.0:
        name, energy = FULL_MOON_NAMES.get(on.month, "Full Moon"), "Peak Power"
    elif 85.0 <= angle <= 95.0:
        name, energy = "First Quarter", "Action & Decision"
    elif 265.0 <= angle <= 275.0:
        name, energy = "Third Quarter", "Release & Letting Go"
    elif angle < 90.0:
        name, energy = "Waxing Crescent", "Growing Energy"
    elif angle < 180.0:
        name, energy = "Waxing Gibbous", "Building Power"
    elif angle < 270.0:
        name, energy = "Waning Gibbous", "Gratitude & Wisdom"
    else:
        name, energy = "Waning Crescent", "Rest & Reflection"

    return MoonPhase(
        name=name,
        energy=energy,
        phase_angle=round(angle, 4),
        illumination=round(illumination, 2),
        age_days=round(angle / 360.0 * SYNODIC_MONTH_DAYS, 2),
        is_significant=_is_significant(angle),
    )
