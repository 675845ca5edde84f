"""Pydantic schemas for cosmic computation and cache payloads."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

BadgeLevel = Literal["bronze", "silver", "gold"]
EclipseKind = Literal["solar", "lunar"]


class CelestialPosition(BaseModel):
    """Ecliptic position of a body at one instant."""

    model_config = ConfigDict(frozen=True)

    body: str
    longitude: float = Field(ge=0.0, lt=360.0)
    sign: str
    degree: float
    speed_deg_day: float = 0.0
    retrograde: bool = False
    computed_at: datetime


class SignSegment(BaseModel):
    """Contiguous interval during which a body stays in one sign."""

    body: str
    sign: str
    start: datetime
    end: datetime


class RetrogradePeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    planet: str
    sign: str
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_order(self) -> RetrogradePeriod:
        if self.start_date >= self.end_date:
            raise ValueError(
                f"retrograde period for {self.planet} must start before it ends"
            )
        return self


class RetrogradeStatus(BaseModel):
    is_active: bool = False
    is_completed: bool = False
    survival_days: int = 0
    badge_level: BadgeLevel | None = None
    period: RetrogradePeriod | None = None


class EclipseEvent(BaseModel):
    peak: datetime
    kind: EclipseKind
    obscuration: float
    longitude: float
    sign: str


class ClosestAspect(BaseModel):
    planet: str
    orb: float


class EclipseRelevance(BaseModel):
    is_relevant: bool
    affected_planets: list[str] = Field(default_factory=list)
    closest_aspect: ClosestAspect | None = None


class MoonPhase(BaseModel):
    name: str
    energy: str
    phase_angle: float
    illumination: float
    age_days: float
    is_significant: bool


class PlanetPosition(BaseModel):
    sign: str
    degree: float
    longitude: float
    speed_deg_day: float
    retrograde: bool


class SkyAspect(BaseModel):
    body1: str
    body2: str
    type: str
    orb_degrees: float
    applying: bool
    significance: str


class CosmicEvent(BaseModel):
    """A notable sky event for one day (ingress, seasonal marker, eclipse)."""

    type: str
    name: str
    body: str | None = None
    sign: str | None = None
    at: datetime | None = None
    priority: int = 5


class GlobalCosmicDay(BaseModel):
    """The user-independent cosmic snapshot for one UTC day."""

    data_date: date
    moon_phase: MoonPhase
    planetary_positions: dict[str, PlanetPosition]
    general_transits: list[SkyAspect] = Field(default_factory=list)
    significant_events: list[CosmicEvent] = Field(default_factory=list)
    eclipse_flags: dict = Field(default_factory=dict)
    retrograde_flags: dict = Field(default_factory=dict)
    computed_at: datetime


class PersonalTransit(BaseModel):
    body: str
    sign: str
    degree: float
    retrograde: bool
    solar_house: int | None = None


class PersonalAspect(BaseModel):
    transit_body: str
    natal_body: str
    type: str
    orb_degrees: float
    significance: str


class Highlight(BaseModel):
    kind: str
    title: str
    priority: int


class CosmicSnapshotPayload(BaseModel):
    user_id: uuid.UUID
    snapshot_date: date
    global_date: date
    personal_transits: list[PersonalTransit] = Field(default_factory=list)
    personal_aspects: list[PersonalAspect] = Field(default_factory=list)
    highlights: list[Highlight] = Field(default_factory=list)
    display: dict = Field(default_factory=dict)
    computed_at: datetime
