"""Inquiry pricing lifecycle: estimates, consultations and follow-up bookkeeping."""

from inquiry_engine.inquiry.availability import AvailabilityProvider, PreferredSlotAvailability
from inquiry_engine.inquiry.engine import InquiryPricingEngine
from inquiry_engine.inquiry.state_machine import (
    InquiryPhase,
    InquiryPricingState,
    InquiryTrigger,
    transition,
)

__all__ = [
    "AvailabilityProvider",
    "InquiryPhase",
    "InquiryPricingEngine",
    "InquiryPricingState",
    "InquiryTrigger",
    "PreferredSlotAvailability",
    "transition",
]
