"""
Inquiry pricing orchestrator for an anonymous visitor.

Wraps the pricing estimators, consultation booking and follow-up
bookkeeping around the pure ``transition`` reducer. Expected failures
(bad input, a disabled feature, a second booking) never escape: they are
recorded on ``state.error`` / ``state.error_message``.

Usage:
    engine = InquiryPricingEngine(clock=clock, scheduler=scheduler)
    estimate = engine.estimate_performance_price({...})
    engine.schedule_consultation({"serviceType": "performance", "preferredDates": ["2025-06-01"]})
    scheduler.run_pending()  # promotes the booking once the settle delay has passed
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Callable, Optional

from inquiry_engine.clock import Clock, ScheduledCall, Scheduler, SystemClock
from inquiry_engine.config import AppConfig, settings
from inquiry_engine.errors import (
    BookingConflictError,
    FeatureDisabledError,
    InquiryEngineError,
    NotFoundError,
    ValidationError,
)
from inquiry_engine.inquiry.availability import AvailabilityProvider, PreferredSlotAvailability
from inquiry_engine.inquiry.state_machine import (
    InquiryPhase,
    InquiryPricingState,
    InquiryTrigger,
    transition,
)
from inquiry_engine.journey.tracker import JourneyTracker
from inquiry_engine.pricing.estimation import (
    estimate_collaboration_pricing,
    estimate_performance_pricing,
    format_price_estimate,
)
from inquiry_engine.schemas.consultation_schema import (
    ConsultationBooking,
    ConsultationRequest,
    ConsultationStatus,
)
from inquiry_engine.schemas.journey_schema import ContactContext
from inquiry_engine.schemas.pricing_schema import FormattedEstimate, PriceEstimate
from inquiry_engine.schemas.service_schema import ServiceType
from inquiry_engine.utils import parse_model

logger = logging.getLogger(__name__)

Estimator = Callable[[Any, Optional[ContactContext], Optional[AppConfig]], PriceEstimate]


def generate_consultation_id() -> str:
    return f"CONS-{uuid.uuid4().hex[:8].upper()}"


class InquiryPricingEngine:
    """
    Owns one visitor's ``InquiryPricingState``.

    Single-threaded; the consultation promotion is the only deferred work and
    it runs from the injected scheduler's ``run_pending``.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        availability: Optional[AvailabilityProvider] = None,
        tracker: Optional[JourneyTracker] = None,
        service_type: Optional[ServiceType] = None,
    ) -> None:
        self.config = config or settings
        self.clock = clock or (scheduler.clock if scheduler else SystemClock())
        self.scheduler = scheduler or Scheduler(self.clock)
        self.availability = availability or PreferredSlotAvailability(self.config.consultation)
        self.tracker = tracker
        self._state = InquiryPricingState(service_type=service_type)
        self._phase_trace: list[InquiryPhase] = [self._state.phase]
        # Bumped whenever a pending promotion must be invalidated.
        self._generation = 0
        self._pending_promotion: Optional[ScheduledCall] = None
        self._disposed = False

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> InquiryPricingState:
        self._expire_if_stale()
        return self._state

    @property
    def has_estimate(self) -> bool:
        return self.state.current_estimate is not None

    @property
    def is_consultation_recommended(self) -> bool:
        estimate = self.state.current_estimate
        return bool(estimate and estimate.consultation_recommended)

    @property
    def formatted_estimate(self) -> Optional[FormattedEstimate]:
        estimate = self.state.current_estimate
        return format_price_estimate(estimate) if estimate else None

    @property
    def estimate_expired(self) -> bool:
        """True once the current estimate has outlived its validity window. Never mutates state."""
        estimate = self._state.current_estimate
        created_at = self._state.estimate_created_at
        if estimate is None or created_at is None:
            return False
        return self.clock.now() > created_at + timedelta(days=estimate.estimate_valid_days)

    @property
    def can_book(self) -> bool:
        booking = self.state.consultation_booking
        return (
            self.config.consultation.enabled
            and self.has_estimate
            and not (booking is not None and booking.is_active)
        )

    def get_phase_trace(self) -> list[str]:
        """Return the ordered list of phases visited."""
        return [phase.value for phase in self._phase_trace]

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def estimate_performance_price(
        self, data: Any, context: Optional[ContactContext] = None
    ) -> Optional[PriceEstimate]:
        """Estimate a performance fee. Returns None (and records the error) on bad input."""
        return self._estimate(ServiceType.PERFORMANCE, estimate_performance_pricing, data, context)

    def estimate_collaboration_price(
        self, data: Any, context: Optional[ContactContext] = None
    ) -> Optional[PriceEstimate]:
        """Estimate a collaboration project. Returns None (and records the error) on bad input."""
        return self._estimate(ServiceType.COLLABORATION, estimate_collaboration_pricing, data, context)

    def _estimate(
        self,
        service_type: ServiceType,
        estimator: Estimator,
        data: Any,
        context: Optional[ContactContext],
    ) -> Optional[PriceEstimate]:
        self._expire_if_stale()
        self._dispatch(InquiryTrigger.START_ESTIMATE, service_type=service_type)
        if context is None and self.tracker is not None:
            context = self.tracker.snapshot()

        try:
            estimate = estimator(data, context, self.config)
        except InquiryEngineError as exc:
            logger.info("%s estimate rejected: %s", service_type.value, exc.message)
            self._dispatch(InquiryTrigger.ESTIMATE_FAILED, error=exc.kind, message=exc.message)
            return None

        self._dispatch(
            InquiryTrigger.ESTIMATE_SUCCEEDED,
            estimate=estimate,
            created_at=self.clock.now(),
            track_history=self.config.pricing.track_history,
            history_limit=self.config.pricing.history_limit,
        )
        logger.info(
            "%s estimate ready: %d-%d %s",
            service_type.value, estimate.range_low, estimate.range_high, estimate.currency,
        )
        return estimate

    def clear_estimate(self) -> None:
        """Drop the shown estimate and any error; a not-yet-confirmed consultation goes with it."""
        payload: dict[str, Any] = {}
        booking = self._state.consultation_booking
        if booking is not None and booking.status == ConsultationStatus.PENDING:
            self._invalidate_promotion()
            cancelled = booking.with_status(ConsultationStatus.CANCELLED)
            logger.info("Pending consultation %s cancelled with its estimate", cancelled.id)
            payload["consultation_booking"] = None
        self._dispatch(InquiryTrigger.CLEAR_ESTIMATE, **payload)

    def clear_error(self) -> None:
        self._expire_if_stale()
        if self._state.phase != InquiryPhase.ERROR:
            return
        self._dispatch(InquiryTrigger.CLEAR_ERROR)

    # ------------------------------------------------------------------
    # Consultation
    # ------------------------------------------------------------------

    def schedule_consultation(self, request: Any) -> Optional[ConsultationBooking]:
        """
        Request a consultation. The booking starts ``pending`` and is
        promoted to ``scheduled`` by the scheduler after the settle delay.

        Returns:
            The pending booking, or None if the request was rejected.
        """
        try:
            if not self.config.consultation.enabled:
                raise FeatureDisabledError("Consultation booking is disabled")
            current = self._state.consultation_booking
            if current is not None and current.is_active:
                raise BookingConflictError(
                    f"Consultation {current.id} is already {current.status.value}"
                )
            parsed = parse_model(ConsultationRequest, request, "consultation request")
        except InquiryEngineError as exc:
            self._fail(exc)
            return None

        booking = ConsultationBooking(
            **parsed.model_dump(),
            id=generate_consultation_id(),
            requested_at=self.clock.now(),
        )
        self._dispatch(InquiryTrigger.CONSULTATION_CHANGED, booking=booking)

        self._invalidate_promotion()
        generation = self._generation
        self._pending_promotion = self.scheduler.call_later(
            self.config.consultation.settle_delay_seconds,
            lambda: self._promote(generation, booking.id),
        )
        logger.info(
            "Consultation %s requested for %s (%s)",
            booking.id, booking.service_type.value, booking.consultation_type.value,
        )
        return booking

    def cancel_consultation(self) -> Optional[ConsultationBooking]:
        """Cancel the active consultation, if any."""
        booking = self._state.consultation_booking
        if booking is None or not booking.is_active:
            self._fail(NotFoundError("No active consultation to cancel"))
            return None
        self._invalidate_promotion()
        cancelled = booking.with_status(ConsultationStatus.CANCELLED)
        self._dispatch(InquiryTrigger.CONSULTATION_CHANGED, booking=cancelled)
        logger.info("Consultation %s cancelled", cancelled.id)
        return cancelled

    def complete_consultation(self) -> Optional[ConsultationBooking]:
        """Mark a scheduled consultation as held."""
        booking = self._state.consultation_booking
        if booking is None:
            self._fail(NotFoundError("No consultation to complete"))
            return None
        if booking.status != ConsultationStatus.SCHEDULED:
            self._fail(ValidationError(
                f"Consultation {booking.id} is {booking.status.value}, not scheduled",
                fields=["status"],
            ))
            return None
        completed = booking.with_status(ConsultationStatus.COMPLETED)
        self._dispatch(InquiryTrigger.CONSULTATION_CHANGED, booking=completed)
        logger.info("Consultation %s completed", completed.id)
        return completed

    def _promote(self, generation: int, booking_id: str) -> None:
        if self._disposed or generation != self._generation:
            logger.debug("Skipping stale promotion for consultation %s", booking_id)
            return
        self._pending_promotion = None
        booking = self._state.consultation_booking
        if booking is None or booking.id != booking_id or booking.status != ConsultationStatus.PENDING:
            logger.debug("Consultation %s no longer pending", booking_id)
            return

        try:
            scheduled_date, scheduled_time = self.availability.assign_slot(booking)
        except InquiryEngineError as exc:
            logger.warning("Could not schedule consultation %s: %s", booking_id, exc.message)
            self._fail(exc)
            return

        scheduled = booking.with_status(
            ConsultationStatus.SCHEDULED,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
        )
        self._dispatch(InquiryTrigger.CONSULTATION_CHANGED, booking=scheduled)

    def _invalidate_promotion(self) -> None:
        self._generation += 1
        if self._pending_promotion is not None:
            self._pending_promotion.cancel()
            self._pending_promotion = None

    # ------------------------------------------------------------------
    # Follow-up
    # ------------------------------------------------------------------

    def schedule_follow_up(self, days: int) -> bool:
        """Record that the visitor should be followed up in ``days`` days. Idempotent."""
        if days < 1:
            self._fail(ValidationError(f"Follow-up days must be >= 1, got {days}", fields=["days"]))
            return False
        if self._state.follow_up_scheduled:
            logger.debug(
                "Follow-up already scheduled in %s days; ignoring %s", self._state.follow_up_days, days
            )
            return True
        self._dispatch(InquiryTrigger.FOLLOW_UP_SCHEDULED, days=days)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Stop any deferred work. The engine must not be used afterwards."""
        self._invalidate_promotion()
        self._disposed = True

    def _fail(self, exc: InquiryEngineError) -> None:
        logger.info("Inquiry operation failed (%s): %s", exc.kind.value, exc.message)
        self._dispatch(InquiryTrigger.OPERATION_FAILED, error=exc.kind, message=exc.message)

    def _expire_if_stale(self) -> None:
        if self.estimate_expired:
            logger.info("Estimate expired; clearing")
            self._dispatch(InquiryTrigger.ESTIMATE_EXPIRED)

    def _dispatch(self, trigger: InquiryTrigger, **payload: Any) -> None:
        previous = self._state.phase
        self._state = transition(self._state, trigger, **payload)
        if self._state.phase != previous:
            self._phase_trace.append(self._state.phase)
