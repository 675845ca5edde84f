"""SQLAlchemy ORM models for Lunary."""

from lunary.models.base import Base
from lunary.models.user import User
from lunary.models.user_profile import UserProfile
from lunary.models.notification_subscription import NotificationSubscription
from lunary.models.friend_connection import FriendConnection
from lunary.models.global_cosmic_data import GlobalCosmicData
from lunary.models.cosmic_snapshot import CosmicSnapshot
from lunary.models.derived_cache import (
    CosmicReport,
    DailyHoroscope,
    JournalPattern,
    MonthlyInsight,
    PatternAnalysis,
    SynastryReport,
    YearAnalysis,
)
from lunary.models.batch_run import BatchRun

__all__ = [
    "Base",
    "User",
    "UserProfile",
    "NotificationSubscription",
    "FriendConnection",
    "GlobalCosmicData",
    "CosmicSnapshot",
    "SynastryReport",
    "DailyHoroscope",
    "MonthlyInsight",
    "CosmicReport",
    "JournalPattern",
    "PatternAnalysis",
    "YearAnalysis",
    "BatchRun",
]
