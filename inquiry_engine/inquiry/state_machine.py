"""
Pure reducer for the inquiry pricing lifecycle.

The engine never mutates ``InquiryPricingState`` in place: every change goes
through ``transition(state, trigger, **payload)``, which looks the
(phase, trigger) pair up in an explicit table and returns a new state.

Usage:
    state = InquiryPricingState()
    state = transition(state, InquiryTrigger.START_ESTIMATE, service_type=ServiceType.PERFORMANCE)
    assert state.phase == InquiryPhase.ESTIMATING
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from inquiry_engine.errors import ErrorKind, InvalidTransitionError
from inquiry_engine.schemas.consultation_schema import ConsultationBooking
from inquiry_engine.schemas.pricing_schema import PriceEstimate
from inquiry_engine.schemas.service_schema import ServiceType

logger = logging.getLogger(__name__)


class InquiryPhase(str, Enum):
    """Where the visitor is in getting a price."""
    IDLE = "idle"
    ESTIMATING = "estimating"
    ESTIMATED = "estimated"
    ERROR = "error"


class InquiryTrigger(str, Enum):
    """Events that move the inquiry between phases."""
    START_ESTIMATE = "start_estimate"
    ESTIMATE_SUCCEEDED = "estimate_succeeded"
    ESTIMATE_FAILED = "estimate_failed"
    ESTIMATE_EXPIRED = "estimate_expired"
    CLEAR_ESTIMATE = "clear_estimate"
    CLEAR_ERROR = "clear_error"
    CONSULTATION_CHANGED = "consultation_changed"
    FOLLOW_UP_SCHEDULED = "follow_up_scheduled"
    OPERATION_FAILED = "operation_failed"


@dataclass(frozen=True)
class InquiryPricingState:
    """Snapshot of one visitor's inquiry. Replaced wholesale on every transition."""
    phase: InquiryPhase = InquiryPhase.IDLE
    service_type: Optional[ServiceType] = None
    current_estimate: Optional[PriceEstimate] = None
    estimate_created_at: Optional[datetime] = None
    is_estimating: bool = False
    estimate_history: tuple[PriceEstimate, ...] = ()
    consultation_booking: Optional[ConsultationBooking] = None
    follow_up_scheduled: bool = False
    follow_up_days: Optional[int] = None
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None


StateGuard = Callable[[InquiryPricingState], bool]


@dataclass(frozen=True)
class Transition:
    """A single valid phase transition."""
    from_phase: InquiryPhase
    to_phase: InquiryPhase
    trigger: InquiryTrigger
    guard: Optional[StateGuard] = None


def _has_estimate(state: InquiryPricingState) -> bool:
    return state.current_estimate is not None


def _has_no_estimate(state: InquiryPricingState) -> bool:
    return state.current_estimate is None


_SETTLED = (InquiryPhase.IDLE, InquiryPhase.ESTIMATED, InquiryPhase.ERROR)

TRANSITIONS: list[Transition] = [
    # --- Estimation ---
    *[Transition(p, InquiryPhase.ESTIMATING, InquiryTrigger.START_ESTIMATE) for p in _SETTLED],
    Transition(InquiryPhase.ESTIMATING, InquiryPhase.ESTIMATED, InquiryTrigger.ESTIMATE_SUCCEEDED),
    Transition(InquiryPhase.ESTIMATING, InquiryPhase.ERROR, InquiryTrigger.ESTIMATE_FAILED),

    # --- Expiry (lazy, on read) ---
    Transition(InquiryPhase.ESTIMATED, InquiryPhase.IDLE, InquiryTrigger.ESTIMATE_EXPIRED),
    Transition(InquiryPhase.ERROR, InquiryPhase.ERROR, InquiryTrigger.ESTIMATE_EXPIRED),

    # --- Clearing ---
    *[Transition(p, InquiryPhase.IDLE, InquiryTrigger.CLEAR_ESTIMATE) for p in _SETTLED],
    Transition(InquiryPhase.ERROR, InquiryPhase.ESTIMATED, InquiryTrigger.CLEAR_ERROR, _has_estimate),
    Transition(InquiryPhase.ERROR, InquiryPhase.IDLE, InquiryTrigger.CLEAR_ERROR, _has_no_estimate),

    # --- Consultation and follow-up bookkeeping never change the phase ---
    *[Transition(p, p, InquiryTrigger.CONSULTATION_CHANGED) for p in _SETTLED],
    *[Transition(p, p, InquiryTrigger.FOLLOW_UP_SCHEDULED) for p in _SETTLED],

    # --- Failures outside estimation ---
    *[Transition(p, InquiryPhase.ERROR, InquiryTrigger.OPERATION_FAILED) for p in _SETTLED],
]


def _start_estimate(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(
        state,
        service_type=payload.get("service_type", state.service_type),
        is_estimating=True,
        error=None,
        error_message=None,
    )


def _estimate_succeeded(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    estimate: PriceEstimate = payload["estimate"]
    history = state.estimate_history
    if payload.get("track_history", True):
        limit = payload.get("history_limit", 5)
        history = (history + (estimate,))[-limit:]
    return replace(
        state,
        service_type=estimate.service_type,
        current_estimate=estimate,
        estimate_created_at=payload["created_at"],
        is_estimating=False,
        estimate_history=history,
        error=None,
        error_message=None,
    )


def _failed(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(
        state,
        is_estimating=False,
        error=payload["error"],
        error_message=payload.get("message"),
    )


def _estimate_expired(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(state, current_estimate=None, estimate_created_at=None)


def _clear_estimate(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    booking = payload.get("consultation_booking", state.consultation_booking)
    return replace(
        state,
        current_estimate=None,
        estimate_created_at=None,
        consultation_booking=booking,
        error=None,
        error_message=None,
    )


def _clear_error(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(state, error=None, error_message=None)


def _consultation_changed(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(state, consultation_booking=payload["booking"])


def _follow_up_scheduled(state: InquiryPricingState, payload: dict[str, Any]) -> InquiryPricingState:
    return replace(state, follow_up_scheduled=True, follow_up_days=payload["days"])


_REDUCERS: dict[InquiryTrigger, Callable[[InquiryPricingState, dict[str, Any]], InquiryPricingState]] = {
    InquiryTrigger.START_ESTIMATE: _start_estimate,
    InquiryTrigger.ESTIMATE_SUCCEEDED: _estimate_succeeded,
    InquiryTrigger.ESTIMATE_FAILED: _failed,
    InquiryTrigger.ESTIMATE_EXPIRED: _estimate_expired,
    InquiryTrigger.CLEAR_ESTIMATE: _clear_estimate,
    InquiryTrigger.CLEAR_ERROR: _clear_error,
    InquiryTrigger.CONSULTATION_CHANGED: _consultation_changed,
    InquiryTrigger.FOLLOW_UP_SCHEDULED: _follow_up_scheduled,
    InquiryTrigger.OPERATION_FAILED: _failed,
}


def get_valid_triggers(phase: InquiryPhase) -> list[InquiryTrigger]:
    """Return all triggers valid from ``phase`` (ignoring guards)."""
    seen: list[InquiryTrigger] = []
    for t in TRANSITIONS:
        if t.from_phase == phase and t.trigger not in seen:
            seen.append(t.trigger)
    return seen


def transition(state: InquiryPricingState, trigger: InquiryTrigger, **payload: Any) -> InquiryPricingState:
    """
    Apply ``trigger`` to ``state`` and return the resulting state.

    Raises:
        InvalidTransitionError: If no transition matches the current phase and trigger.
    """
    for t in TRANSITIONS:
        if t.from_phase != state.phase or t.trigger != trigger:
            continue
        if t.guard is not None and not t.guard(state):
            continue

        new_state = replace(_REDUCERS[trigger](state, payload), phase=t.to_phase)
        logger.debug(
            "Inquiry transition: %s -> %s (trigger: %s)",
            state.phase.value, new_state.phase.value, trigger.value,
        )
        return new_state

    valid = [t.value for t in get_valid_triggers(state.phase)]
    raise InvalidTransitionError(
        f"No valid transition from '{state.phase.value}' "
        f"with trigger '{trigger.value}'. Valid triggers: {valid}"
    )
