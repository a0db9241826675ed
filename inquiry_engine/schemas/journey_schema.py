"""Visitor session state and the immutable contact context snapshot."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from inquiry_engine.schemas.service_schema import ServiceType


class ReferralSourceType(str, Enum):
    """Where the visitor came from, in decreasing order of intent signal."""
    CAMPAIGN = "campaign"
    REFERRAL = "referral"
    SEARCH = "search"
    SOCIAL = "social"
    DIRECT = "direct"
    UNKNOWN = "unknown"


@dataclass
class PageView:
    """One navigation event and the time the visitor spent on it."""
    path: str
    viewed_at: datetime
    service: Optional[ServiceType] = None
    dwell: timedelta = field(default_factory=timedelta)


@dataclass
class SessionContext:
    """
    Per-visitor session state owned by the JourneyTracker.

    Only the tracker mutates this; every other component works from a
    ``SessionSnapshot`` taken via ``JourneyTracker.snapshot()``.
    """
    session_id: str
    started_at: datetime
    pages_visited: list[str] = field(default_factory=list)
    page_views: list[PageView] = field(default_factory=list)
    total_time_spent: timedelta = field(default_factory=timedelta)
    primary_service_interest: Optional[ServiceType] = None
    confidence_score: float = 0.0
    interaction_count: int = 0


class SessionSnapshot(BaseModel):
    """Frozen copy of a SessionContext."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    started_at: datetime
    pages_visited: tuple[str, ...] = ()
    total_time_spent: timedelta = timedelta()
    primary_service_interest: Optional[ServiceType] = None
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    interaction_count: int = 0


class ContactContext(BaseModel):
    """Snapshot handed to pricing and email automation at the moment of an estimate or submission."""

    model_config = ConfigDict(frozen=True)

    session: SessionSnapshot
    referral_source_type: ReferralSourceType = ReferralSourceType.UNKNOWN
    campaign_data: dict[str, str] = Field(default_factory=dict)
    user_journey: tuple[ServiceType, ...] = ()
    captured_at: datetime

    @property
    def confidence_score(self) -> float:
        return self.session.confidence_score

    @property
    def primary_service_interest(self) -> Optional[ServiceType]:
        return self.session.primary_service_interest
