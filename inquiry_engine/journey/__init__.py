"""Anonymous visitor journey tracking."""

from inquiry_engine.journey.referral import detect_referral_source, parse_campaign_data
from inquiry_engine.journey.tracker import JourneyTracker, classify_path

__all__ = [
    "JourneyTracker",
    "classify_path",
    "detect_referral_source",
    "parse_campaign_data",
]
