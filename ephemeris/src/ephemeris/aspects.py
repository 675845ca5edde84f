"""Aspect detection and orb calculations."""

from __future__ import annotations

from ephemeris.bodies import (
    ASPECTS,
    ASPECT_BODIES,
    aspect_significance,
    get_effective_orb,
    normalize_body,
)


def angular_distance(lon1: float, lon2: float) -> float:
    """Calculate the shortest angular distance between two longitudes."""
    diff = abs(lon1 - lon2) % 360.0
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


def find_aspects(positions: dict[str, dict]) -> list[dict]:
    """Find all active aspects between bodies in one sky.

    Args:
        positions: Dict of body name -> {longitude, speed_deg_day, ...}

    Returns:
        List of aspect dicts with body1, body2, type, orb_degrees, applying,
        significance; major aspects first, tightest orb first.
    """
    aspects_found = []
    bodies = [b for b in ASPECT_BODIES if b in positions]

    for i, body1 in enumerate(bodies):
        for body2 in bodies[i + 1:]:
            lon1 = positions[body1]["longitude"]
            lon2 = positions[body2]["longitude"]
            dist = angular_distance(lon1, lon2)

            for aspect_name, aspect_angle in ASPECTS.items():
                orb = abs(dist - aspect_angle)
                if orb > get_effective_orb(body1, body2, aspect_name):
                    continue
                speed1 = positions[body1].get("speed_deg_day", 0.0)
                speed2 = positions[body2].get("speed_deg_day", 0.0)
                aspects_found.append({
                    "body1": body1,
                    "body2": body2,
                    "type": aspect_name,
                    "orb_degrees": round(orb, 4),
                    "applying": _is_applying(lon1, lon2, speed1, speed2, aspect_angle),
                    "significance": aspect_significance(aspect_name),
                })

    sig_order = {"major": 0, "moderate": 1}
    aspects_found.sort(key=lambda a: (sig_order.get(a["significance"], 2), a["orb_degrees"]))
    return aspects_found


def find_transit_to_natal_aspects(
    transit_positions: dict[str, dict],
    natal_positions: list[dict],
    orb_factor: float = 0.8,
) -> list[dict]:
    """Find aspects between current transits and natal planet positions.

    Uses tighter orbs (multiplied by orb_factor) for transit-to-natal.
    """
    aspects_found = []
    natal_by_name = {
        normalize_body(p.get("body")): p for p in natal_positions if p.get("longitude") is not None
    }

    for transit_name, transit_data in transit_positions.items():
        if transit_name not in ASPECT_BODIES:
            continue
        t_lon = transit_data["longitude"]
        for natal_name, natal_data in natal_by_name.items():
            dist = angular_distance(t_lon, float(natal_data["longitude"]))
            for aspect_name, aspect_angle in ASPECTS.items():
                orb_limit = get_effective_orb(transit_name, natal_name, aspect_name) * orb_factor
                orb = abs(dist - aspect_angle)
                if orb <= orb_limit:
                    aspects_found.append({
                        "transit_body": transit_name,
                        "natal_body": natal_name,
                        "type": aspect_name,
                        "orb_degrees": round(orb, 4),
                        "significance": aspect_significance(aspect_name),
                    })

    sig_order = {"major": 0, "moderate": 1}
    aspects_found.sort(key=lambda a: (sig_order.get(a["significance"], 2), a["orb_degrees"]))
    return aspects_found


def _is_applying(
    lon1: float, lon2: float, speed1: float, speed2: float, aspect_angle: float
) -> bool:
    """Determine if an aspect is applying (getting tighter) or separating."""
    dist_now = angular_distance(lon1, lon2)

    # Project positions forward slightly
    lon1_future = (lon1 + speed1 * 0.1) % 360.0
    lon2_future = (lon2 + speed2 * 0.1) % 360.0
    dist_future = angular_distance(lon1_future, lon2_future)

    return abs(dist_future - aspect_angle) < abs(dist_now - aspect_angle)
