"""Sign-ingress scanning: daily stepping plus binary-search refinement.

A body is sampled once per day across the scan range. Whenever the sign at a
sample differs from the sign being tracked, the preceding window is bisected
a fixed number of times to locate the ingress instant, the open segment is
closed there, and a new one is opened. A body that retrogrades back into a
sign it already left gets a second, later segment for that sign; segments are
never merged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from lunary.schemas.cosmic import SignSegment

from ephemeris.adapter import ecliptic_longitude
from ephemeris.bodies import SIGNS, normalize_body, sign_index

logger = logging.getLogger(__name__)

LongitudeFn = Callable[[str, datetime], float]

SCAN_STEP = timedelta(days=1)
REFINE_ITERATIONS = 20


def refine_ingress(
    body: str,
    lo: datetime,
    hi: datetime,
    current_sign: int,
    longitude_fn: LongitudeFn = ecliptic_longitude,
    iterations: int = REFINE_ITERATIONS,
) -> datetime:
    """Bisect [lo, hi] for the first instant the body is no longer in current_sign.

    Requires sign(lo) == current_sign and sign(hi) != current_sign. After 20
    iterations a one-day window narrows to under 0.1 seconds.
    """
    for _ in range(iterations):
        mid = lo + (hi - lo) / 2
        if sign_index(longitude_fn(body, mid)) == current_sign:
            lo = mid
        else:
            hi = mid
    return hi


def _sample_instants(scan_start: datetime, scan_end: datetime):
    instant = scan_start + SCAN_STEP
    while instant < scan_end:
        yield instant
        instant += SCAN_STEP
    yield scan_end


def compute_sign_segments(
    body: str,
    scan_start: datetime,
    scan_end: datetime,
    longitude_fn: LongitudeFn = ecliptic_longitude,
) -> dict[str, list[SignSegment]]:
    """Group a body's occupancy of [scan_start, scan_end] into per-sign segments.

    The union of the returned segments covers the scan range exactly, with
    each segment ending where the next begins. Ephemeris errors propagate.
    """
    if scan_end <= scan_start:
        raise ValueError("scan_end must be after scan_start")

    name = normalize_body(body)
    current = sign_index(longitude_fn(name, scan_start))
    segment_start = scan_start
    previous = scan_start
    ordered: list[SignSegment] = []

    for instant in _sample_instants(scan_start, scan_end):
        observed = sign_index(longitude_fn(name, instant))
        if observed != current:
            ingress_at = refine_ingress(name, previous, instant, current, longitude_fn)
            ordered.append(
                SignSegment(body=name, sign=SIGNS[current], start=segment_start, end=ingress_at)
            )
            logger.debug("%s enters %s at %s", name, SIGNS[observed], ingress_at.isoformat())
            current = observed
            segment_start = ingress_at
        previous = instant

    ordered.append(SignSegment(body=name, sign=SIGNS[current], start=segment_start, end=scan_end))

    grouped: dict[str, list[SignSegment]] = {}
    for segment in ordered:
        grouped.setdefault(segment.sign, []).append(segment)
    return grouped


def find_ingresses(
    body: str,
    scan_start: datetime,
    scan_end: datetime,
    longitude_fn: LongitudeFn = ecliptic_longitude,
) -> list[SignSegment]:
    """Segments that begin strictly inside the range, i.e. actual ingresses."""
    segments = compute_sign_segments(body, scan_start, scan_end, longitude_fn)
    entered = [s for group in segments.values() for s in group if s.start > scan_start]
    entered.sort(key=lambda s: s.start)
    return entered
