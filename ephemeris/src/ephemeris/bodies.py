"""Planet definitions, orb tables, and sign data."""

from __future__ import annotations

# Celestial body IDs for pyswisseph
# These map to swisseph constants
BODY_IDS: dict[str, int] = {
    "sun": 0,  # SE_SUN
    "moon": 1,  # SE_MOON
    "mercury": 2,  # SE_MERCURY
    "venus": 3,  # SE_VENUS
    "mars": 4,  # SE_MARS
    "jupiter": 5,  # SE_JUPITER
    "saturn": 6,  # SE_SATURN
    "uranus": 7,  # SE_URANUS
    "neptune": 8,  # SE_NEPTUNE
    "pluto": 9,  # SE_PLUTO
    "north_node": 11,  # SE_TRUE_NODE
}

ALL_BODIES = list(BODY_IDS.keys())

# Bodies to check for aspects (nodes excluded)
ASPECT_BODIES = [b for b in ALL_BODIES if b != "north_node"]

# Bodies whose sign changes are reported as daily ingress events
INGRESS_BODIES = [b for b in ASPECT_BODIES if b != "moon"]

SIGNS = [
    "Aries",
    "Taurus",
    "Gemini",
    "Cancer",
    "Leo",
    "Virgo",
    "Libra",
    "Scorpio",
    "Sagittarius",
    "Capricorn",
    "Aquarius",
    "Pisces",
]

# Aspect definitions: name -> exact angle
ASPECTS: dict[str, float] = {
    "conjunction": 0.0,
    "sextile": 60.0,
    "square": 90.0,
    "trine": 120.0,
    "opposition": 180.0,
}

# Default orbs by aspect type (in degrees)
DEFAULT_ORBS: dict[str, float] = {
    "conjunction": 8.0,
    "opposition": 8.0,
    "square": 8.0,
    "trine": 8.0,
    "sextile": 6.0,
}

# Luminaries get full orb; outer planets get reduced
ORB_MODIFIERS: dict[str, float] = {
    "sun": 1.0,
    "moon": 1.0,
    "mercury": 0.8,
    "venus": 0.8,
    "mars": 0.8,
    "jupiter": 0.7,
    "saturn": 0.7,
    "uranus": 0.6,
    "neptune": 0.6,
    "pluto": 0.6,
    "north_node": 0.5,
}

MAJOR_ASPECTS = {"conjunction", "opposition", "square", "trine"}


def normalize_body(name: object) -> str:
    """Normalize a body label ("Sun", " north node ") to its table key."""
    return str(name or "").strip().lower().replace(" ", "_")


def normalize_longitude(longitude: float) -> float:
    longitude = float(longitude) % 360.0
    # -1e-15 % 360.0 rounds to 360.0
    return 0.0 if longitude >= 360.0 else longitude


def sign_index(longitude: float) -> int:
    """Zodiac sign index; an exact 30-degree boundary belongs to the higher sign."""
    return int(normalize_longitude(longitude) // 30.0)


def longitude_to_sign(longitude: float) -> tuple[str, float]:
    """Convert ecliptic longitude to sign and degree within sign."""
    longitude = normalize_longitude(longitude)
    index = sign_index(longitude)
    return SIGNS[index], longitude - (index * 30.0)


def get_effective_orb(body1: str, body2: str, aspect: str) -> float:
    """Calculate effective orb for an aspect between two bodies."""
    base_orb = DEFAULT_ORBS.get(aspect, 5.0)
    mod1 = ORB_MODIFIERS.get(body1, 0.7)
    mod2 = ORB_MODIFIERS.get(body2, 0.7)
    return base_orb * (mod1 + mod2) / 2


def aspect_significance(aspect_type: str) -> str:
    return "major" if aspect_type in MAJOR_ASPECTS else "moderate"
