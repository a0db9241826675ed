"""Tests for the inquiry pricing state machine."""

from datetime import date

import pytest

from inquiry_engine.errors import ErrorKind, InvalidTransitionError
from inquiry_engine.inquiry.state_machine import (
    TRANSITIONS,
    InquiryPhase,
    InquiryPricingState,
    InquiryTrigger,
    get_valid_triggers,
    transition,
)
from inquiry_engine.pricing.estimation import estimate_performance_pricing
from inquiry_engine.schemas.consultation_schema import ConsultationBooking
from inquiry_engine.schemas.service_schema import ServiceType
from tests.conftest import START, make_config, make_performance_data


@pytest.fixture
def estimate():
    return estimate_performance_pricing(make_performance_data(), config=make_config())


def _estimated(estimate, **extra):
    state = transition(InquiryPricingState(), InquiryTrigger.START_ESTIMATE,
                       service_type=ServiceType.PERFORMANCE)
    return transition(state, InquiryTrigger.ESTIMATE_SUCCEEDED, estimate=estimate,
                      created_at=START, **extra)


class TestTransitions:
    def test_initial_state(self):
        state = InquiryPricingState()
        assert state.phase == InquiryPhase.IDLE
        assert state.current_estimate is None
        assert state.estimate_history == ()

    def test_start_estimate(self):
        state = transition(InquiryPricingState(), InquiryTrigger.START_ESTIMATE,
                           service_type=ServiceType.PERFORMANCE)
        assert state.phase == InquiryPhase.ESTIMATING
        assert state.is_estimating is True
        assert state.service_type == ServiceType.PERFORMANCE

    def test_estimate_succeeded(self, estimate):
        state = _estimated(estimate)
        assert state.phase == InquiryPhase.ESTIMATED
        assert state.is_estimating is False
        assert state.current_estimate == estimate
        assert state.estimate_created_at == START
        assert state.estimate_history == (estimate,)

    def test_estimate_failed_keeps_previous_estimate(self, estimate):
        state = _estimated(estimate)
        state = transition(state, InquiryTrigger.START_ESTIMATE)
        state = transition(state, InquiryTrigger.ESTIMATE_FAILED,
                           error=ErrorKind.VALIDATION, message="missing required fields: duration")
        assert state.phase == InquiryPhase.ERROR
        assert state.error == ErrorKind.VALIDATION
        assert state.error_message == "missing required fields: duration"
        assert state.current_estimate == estimate

    def test_history_is_trimmed_oldest_first(self, estimate):
        state = InquiryPricingState()
        for _ in range(4):
            state = transition(state, InquiryTrigger.START_ESTIMATE)
            state = transition(state, InquiryTrigger.ESTIMATE_SUCCEEDED, estimate=estimate,
                               created_at=START, history_limit=3)
        assert len(state.estimate_history) == 3

    def test_history_tracking_can_be_disabled(self, estimate):
        state = _estimated(estimate, track_history=False)
        assert state.estimate_history == ()

    def test_expiry_from_estimated(self, estimate):
        state = transition(_estimated(estimate), InquiryTrigger.ESTIMATE_EXPIRED)
        assert state.phase == InquiryPhase.IDLE
        assert state.current_estimate is None
        assert state.estimate_created_at is None

    def test_expiry_while_in_error_keeps_error(self, estimate):
        state = transition(_estimated(estimate), InquiryTrigger.OPERATION_FAILED,
                           error=ErrorKind.NOT_FOUND, message="no booking")
        state = transition(state, InquiryTrigger.ESTIMATE_EXPIRED)
        assert state.phase == InquiryPhase.ERROR
        assert state.current_estimate is None
        assert state.error == ErrorKind.NOT_FOUND

    def test_clear_error_returns_to_estimated_when_estimate_remains(self, estimate):
        state = transition(_estimated(estimate), InquiryTrigger.OPERATION_FAILED,
                           error=ErrorKind.BOOKING_CONFLICT, message="busy")
        state = transition(state, InquiryTrigger.CLEAR_ERROR)
        assert state.phase == InquiryPhase.ESTIMATED
        assert state.error is None

    def test_clear_error_returns_to_idle_without_estimate(self):
        state = transition(InquiryPricingState(), InquiryTrigger.OPERATION_FAILED,
                           error=ErrorKind.FEATURE_DISABLED, message="off")
        state = transition(state, InquiryTrigger.CLEAR_ERROR)
        assert state.phase == InquiryPhase.IDLE

    def test_clear_estimate(self, estimate):
        state = transition(_estimated(estimate), InquiryTrigger.CLEAR_ESTIMATE)
        assert state.phase == InquiryPhase.IDLE
        assert state.current_estimate is None
        assert state.estimate_history == (estimate,)

    def test_consultation_changes_do_not_move_phase(self, estimate):
        booking = ConsultationBooking(
            id="CONS-1234ABCD",
            service_type=ServiceType.PERFORMANCE,
            preferred_dates=[date(2025, 4, 1)],
            requested_at=START,
        )
        state = transition(_estimated(estimate), InquiryTrigger.CONSULTATION_CHANGED, booking=booking)
        assert state.phase == InquiryPhase.ESTIMATED
        assert state.consultation_booking == booking

    def test_follow_up(self):
        state = transition(InquiryPricingState(), InquiryTrigger.FOLLOW_UP_SCHEDULED, days=3)
        assert state.follow_up_scheduled is True
        assert state.follow_up_days == 3

    def test_transitions_return_new_objects(self):
        before = InquiryPricingState()
        after = transition(before, InquiryTrigger.START_ESTIMATE)
        assert before.phase == InquiryPhase.IDLE
        assert after is not before


class TestInvalidTransitions:
    def test_cannot_succeed_without_starting(self, estimate):
        with pytest.raises(InvalidTransitionError, match="No valid transition"):
            transition(InquiryPricingState(), InquiryTrigger.ESTIMATE_SUCCEEDED,
                       estimate=estimate, created_at=START)

    def test_cannot_start_twice(self):
        state = transition(InquiryPricingState(), InquiryTrigger.START_ESTIMATE)
        with pytest.raises(InvalidTransitionError):
            transition(state, InquiryTrigger.START_ESTIMATE)

    def test_clear_error_outside_error_phase(self):
        with pytest.raises(InvalidTransitionError):
            transition(InquiryPricingState(), InquiryTrigger.CLEAR_ERROR)

    def test_error_message_lists_valid_triggers(self):
        state = transition(InquiryPricingState(), InquiryTrigger.START_ESTIMATE)
        with pytest.raises(InvalidTransitionError, match="estimate_succeeded"):
            transition(state, InquiryTrigger.CLEAR_ESTIMATE)


class TestTransitionTable:
    def test_estimating_only_settles(self):
        assert set(get_valid_triggers(InquiryPhase.ESTIMATING)) == {
            InquiryTrigger.ESTIMATE_SUCCEEDED,
            InquiryTrigger.ESTIMATE_FAILED,
        }

    def test_every_phase_is_reachable(self):
        targets = {t.to_phase for t in TRANSITIONS}
        assert targets == set(InquiryPhase)

    def test_no_duplicate_unguarded_transitions(self):
        seen = set()
        for t in TRANSITIONS:
            if t.guard is None:
                key = (t.from_phase, t.trigger)
                assert key not in seen, f"duplicate transition {key}"
                seen.add(key)
