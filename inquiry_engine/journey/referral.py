"""
Referral source and campaign parameter detection for landing page views.

Classifies the referrer into a ``ReferralSourceType`` so the journey
tracker can weight intent signal by where the visitor came from.
"""

import logging
from typing import Mapping, Optional
from urllib.parse import parse_qs, urlparse

from inquiry_engine.schemas.journey_schema import ReferralSourceType

logger = logging.getLogger(__name__)

CAMPAIGN_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")

REFERRAL_HOSTS: dict[ReferralSourceType, tuple[str, ...]] = {
    ReferralSourceType.SOCIAL: (
        "facebook.com", "instagram.com", "twitter.com", "x.com", "linkedin.com",
        "youtube.com", "tiktok.com", "snapchat.com", "pinterest.com",
    ),
    ReferralSourceType.SEARCH: (
        "google.", "bing.com", "yahoo.com", "duckduckgo.com", "baidu.com", "ecosia.org",
    ),
    ReferralSourceType.CAMPAIGN: (
        "mailchimp.com", "campaign-archive.com", "constantcontact.com",
    ),
}

# Contribution of each source to the confidence score
REFERRAL_QUALITY: dict[ReferralSourceType, float] = {
    ReferralSourceType.CAMPAIGN: 0.2,
    ReferralSourceType.REFERRAL: 0.15,
    ReferralSourceType.SEARCH: 0.1,
    ReferralSourceType.SOCIAL: 0.1,
    ReferralSourceType.DIRECT: 0.05,
    ReferralSourceType.UNKNOWN: 0.0,
}


def _host_matches(host: str, pattern: str) -> bool:
    """Domain match on label boundaries; a trailing dot ("google.") matches any TLD."""
    if pattern.endswith("."):
        return f".{pattern}" in f".{host}"
    return host == pattern or host.endswith(f".{pattern}")


def parse_campaign_data(url: str) -> dict[str, str]:
    """Extract non-empty UTM parameters from a landing URL."""
    query = parse_qs(urlparse(url).query)
    return {
        key: values[0].strip()
        for key in CAMPAIGN_KEYS
        if (values := query.get(key)) and values[0].strip()
    }


def detect_referral_source(
    referrer: Optional[str],
    campaign_data: Optional[Mapping[str, str]] = None,
    site_host: str = "",
) -> ReferralSourceType:
    """
    Classify a visit by referrer URL and campaign parameters.

    Campaign parameters win over the referrer because they were put on
    the link deliberately. Same-site referrers count as direct traffic.
    """
    if campaign_data and any(campaign_data.get(k) for k in ("utm_source", "utm_campaign")):
        return ReferralSourceType.CAMPAIGN

    if not referrer or not referrer.strip():
        return ReferralSourceType.DIRECT

    parsed = urlparse(referrer.strip().lower())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ReferralSourceType.UNKNOWN

    host = parsed.netloc.split(":")[0]
    if site_host and (host == site_host or host.endswith("." + site_host)):
        return ReferralSourceType.DIRECT

    for source_type, patterns in REFERRAL_HOSTS.items():
        if any(_host_matches(host, pattern) for pattern in patterns):
            logger.debug("Referrer %s classified as %s", host, source_type.value)
            return source_type

    return ReferralSourceType.REFERRAL
