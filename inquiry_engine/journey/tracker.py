"""
Visitor journey tracking: which service an anonymous visitor is leaning
towards, and how sure we are about it.

The tracker owns a single mutable ``SessionContext``. Everything downstream
(pricing, email automation) only ever sees the frozen ``ContactContext``
returned by ``snapshot()``.
"""

import uuid
from datetime import datetime, timedelta
from typing import Mapping, Optional
from urllib.parse import urlparse

from inquiry_engine.clock import Clock, SystemClock
from inquiry_engine.config import AppConfig, JourneyConfig, settings
from inquiry_engine.journey.referral import (
    REFERRAL_QUALITY,
    detect_referral_source,
    parse_campaign_data,
)
from inquiry_engine.logging_context import get_inquiry_logger, set_correlation_id
from inquiry_engine.schemas.journey_schema import (
    ContactContext,
    PageView,
    ReferralSourceType,
    SessionContext,
    SessionSnapshot,
)
from inquiry_engine.schemas.service_schema import ServiceType

logger = get_inquiry_logger(__name__)

# Checked in order; the first service with a matching fragment wins.
SERVICE_PATH_PATTERNS: dict[ServiceType, tuple[str, ...]] = {
    ServiceType.PERFORMANCE: ("/performance", "#performances", "/gigs", "/concerts"),
    ServiceType.COLLABORATION: ("/collaboration", "#collaboration", "/projects", "/creative"),
    ServiceType.TEACHING: ("/lessons", "/teaching", "/learn", "#lessons", "#approach"),
    ServiceType.GENERAL: ("/contact", "/about", "#contact", "#about"),
}

# General pages say less about intent than a service page does.
SERVICE_INTEREST_WEIGHTS: dict[ServiceType, float] = {
    ServiceType.PERFORMANCE: 1.0,
    ServiceType.TEACHING: 1.0,
    ServiceType.COLLABORATION: 1.0,
    ServiceType.GENERAL: 0.5,
}

# Seconds credited to a view that has not accumulated dwell yet (the current page).
MIN_VIEW_SECONDS = 10.0

VISIT_STEP, VISIT_CAP = 0.05, 0.25
DWELL_CAP = 0.25
SERVICE_STEP, SERVICE_CAP = 0.1, 0.3


def classify_path(path: str) -> Optional[ServiceType]:
    """
    Map a site path (optionally with a #fragment) to the service it advertises.

    Examples:
        >>> classify_path("/performance/weddings")
        <ServiceType.PERFORMANCE: 'performance'>
        >>> classify_path("/") is None
        True
    """
    normalized = path.strip().lower()
    if not normalized:
        return None
    for service, patterns in SERVICE_PATH_PATTERNS.items():
        if any(pattern in normalized for pattern in patterns):
            return service
    return None


def _new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:12]}"


class JourneyTracker:
    """Accumulates page views for one visitor session."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
        referral_source_type: ReferralSourceType = ReferralSourceType.UNKNOWN,
        campaign_data: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config: JourneyConfig = (config or settings).journey
        self.clock = clock or SystemClock()
        self.referral_source_type = referral_source_type
        self.campaign_data: dict[str, str] = dict(campaign_data or {})
        self._session = SessionContext(session_id=_new_session_id(), started_at=self.clock.now())
        self._last_event_at: Optional[datetime] = None

    @classmethod
    def from_landing(
        cls,
        url: str,
        referrer: Optional[str] = None,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
    ) -> "JourneyTracker":
        """Start a session from the first page load, detecting referral and UTM data."""
        app_config = config or settings
        campaign = parse_campaign_data(url)
        source = detect_referral_source(referrer, campaign, site_host=app_config.journey.site_host)
        tracker = cls(
            config=app_config,
            clock=clock,
            referral_source_type=source,
            campaign_data=campaign,
        )
        parsed = urlparse(url)
        landing_path = (parsed.path or "/") + (f"#{parsed.fragment}" if parsed.fragment else "")
        tracker.record_page_view(landing_path)
        return tracker

    @property
    def session(self) -> SessionContext:
        return self._session

    def record_page_view(self, path: str) -> None:
        """Register a navigation and credit the elapsed time to the previous page."""
        set_correlation_id(self._session.session_id)
        now = self.clock.now()
        self._flush_dwell(now)

        service = classify_path(path)
        self._session.pages_visited.append(path)
        self._session.page_views.append(PageView(path=path, viewed_at=now, service=service))
        self._last_event_at = now

        self._recompute()
        logger.debug(
            "Page view %s (service=%s, interest=%s, confidence=%.2f)",
            path,
            service.value if service else None,
            self._session.primary_service_interest,
            self._session.confidence_score,
        )

    def record_interaction(self, kind: str) -> None:
        """Count a click, scroll or form focus on the current page."""
        now = self.clock.now()
        self._flush_dwell(now)
        self._last_event_at = now
        self._session.interaction_count += 1
        self._recompute()
        logger.debug("Interaction %s recorded (%d total)", kind, self._session.interaction_count)

    def snapshot(self) -> ContactContext:
        """Freeze the current session into a ContactContext."""
        session = self._session
        snapshot = SessionSnapshot(
            session_id=session.session_id,
            started_at=session.started_at,
            pages_visited=tuple(session.pages_visited),
            total_time_spent=session.total_time_spent,
            primary_service_interest=session.primary_service_interest,
            confidence_score=session.confidence_score,
            interaction_count=session.interaction_count,
        )
        return ContactContext(
            session=snapshot,
            referral_source_type=self.referral_source_type,
            campaign_data=dict(self.campaign_data),
            user_journey=self._user_journey(),
            captured_at=self.clock.now(),
        )

    def reset(self) -> None:
        """Discard everything known about the visitor."""
        logger.info("Journey session %s discarded", self._session.session_id)
        self._session = SessionContext(session_id=_new_session_id(), started_at=self.clock.now())
        self._last_event_at = None
        self.referral_source_type = ReferralSourceType.UNKNOWN
        self.campaign_data = {}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _flush_dwell(self, now: datetime) -> None:
        if self._last_event_at is None or not self._session.page_views:
            return
        gap = now - self._last_event_at
        if gap <= timedelta(0):
            return
        gap = min(gap, timedelta(seconds=self.config.max_dwell_seconds))
        self._session.page_views[-1].dwell += gap
        self._session.total_time_spent += gap

    def _recompute(self) -> None:
        self._session.primary_service_interest = self._primary_interest()
        self._session.confidence_score = self._confidence()

    def _primary_interest(self) -> Optional[ServiceType]:
        views = self._session.page_views
        scores: dict[ServiceType, float] = {}
        last_seen: dict[ServiceType, int] = {}
        count = len(views)
        for index, view in enumerate(views):
            if view.service is None:
                continue
            recency = (index + 1) / count
            seconds = max(view.dwell.total_seconds(), MIN_VIEW_SECONDS)
            weight = recency * seconds * SERVICE_INTEREST_WEIGHTS[view.service]
            scores[view.service] = scores.get(view.service, 0.0) + weight
            last_seen[view.service] = index

        total = sum(scores.values())
        if total <= 0:
            return None
        best = max(scores.values())
        tied = [service for service, score in scores.items() if score == best]
        winner = max(tied, key=lambda service: last_seen[service])
        if best / total < self.config.min_interest_share:
            return None
        return winner

    def _confidence(self) -> float:
        session = self._session
        visits = min(len(session.page_views) * VISIT_STEP, VISIT_CAP)
        dwell = min(
            session.total_time_spent.total_seconds() / self.config.dwell_saturation_seconds, 1.0
        ) * DWELL_CAP
        tagged = sum(1 for view in session.page_views if view.service is not None)
        service_signal = min(tagged * SERVICE_STEP, SERVICE_CAP)
        referral = REFERRAL_QUALITY[self.referral_source_type]
        return round(min(visits + dwell + service_signal + referral, 1.0), 4)

    def _user_journey(self) -> tuple[ServiceType, ...]:
        journey: list[ServiceType] = []
        for view in self._session.page_views:
            if view.service is not None and (not journey or journey[-1] != view.service):
                journey.append(view.service)
        return tuple(journey)
