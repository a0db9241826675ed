"""
Centralized configuration with environment variable overrides.

Pricing policy, consultation booking, email automation and journey
tracking thresholds are all configurable here. Engine classes take an
explicit ``AppConfig`` so independently configured instances can coexist;
``settings`` is only the default used when none is passed.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from inquiry_engine.logging_context import install_correlation_filter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag (true/false, yes/no, 1/0, on/off)."""
    raw = os.getenv(env_var, default)
    normalized = str(raw).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class PricingConfig:
    """Estimate policy: validity windows, history size, consultation tie-breaks."""

    currency: str = os.getenv("PRICING_CURRENCY", "AUD")
    history_limit: int = _safe_int("ESTIMATE_HISTORY_LIMIT", "5")
    track_history: bool = _safe_bool("TRACK_ESTIMATE_HISTORY", "true")
    max_range_spread: float = _safe_float("MAX_RANGE_SPREAD", "0.5")
    context_confidence_threshold: float = _safe_float("CONTEXT_CONFIDENCE_THRESHOLD", "0.6")
    performance_valid_days: int = _safe_int("PERFORMANCE_ESTIMATE_VALID_DAYS", "30")
    collaboration_valid_days: int = _safe_int("COLLABORATION_ESTIMATE_VALID_DAYS", "14")


@dataclass(frozen=True)
class ConsultationConfig:
    """Consultation booking settings."""

    enabled: bool = _safe_bool("CONSULTATION_BOOKING_ENABLED", "true")
    settle_delay_seconds: float = _safe_float("CONSULTATION_SETTLE_DELAY", "1.0")
    default_time: str = os.getenv("CONSULTATION_DEFAULT_TIME", "14:00")


@dataclass(frozen=True)
class AutomationConfig:
    """Follow-up email automation switches."""

    enabled: bool = _safe_bool("EMAIL_AUTOMATION_ENABLED", "true")
    debug_mode: bool = _safe_bool("EMAIL_AUTOMATION_DEBUG", "false")


@dataclass(frozen=True)
class JourneyConfig:
    """Visitor journey tracking thresholds."""

    max_dwell_seconds: float = _safe_float("JOURNEY_MAX_DWELL_SECONDS", "300")
    dwell_saturation_seconds: float = _safe_float("JOURNEY_DWELL_SATURATION_SECONDS", "600")
    min_interest_share: float = _safe_float("JOURNEY_MIN_INTEREST_SHARE", "0.3")
    site_host: str = os.getenv("SITE_HOST", "rrishmusic.com")


@dataclass(frozen=True)
class BrandConfig:
    """Names and links substituted into outgoing emails."""

    artist_name: str = os.getenv("ARTIST_NAME", "Rrish")
    site_url: str = os.getenv("SITE_URL", "https://www.rrishmusic.com")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    consultation: ConsultationConfig = field(default_factory=ConsultationConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    journey: JourneyConfig = field(default_factory=JourneyConfig)
    brand: BrandConfig = field(default_factory=BrandConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.pricing.history_limit < 1:
        raise ValueError(
            f"ESTIMATE_HISTORY_LIMIT must be >= 1, got {config.pricing.history_limit}"
        )
    if config.pricing.max_range_spread <= 0:
        raise ValueError(
            f"MAX_RANGE_SPREAD must be > 0, got {config.pricing.max_range_spread}"
        )
    if not 0.0 <= config.pricing.context_confidence_threshold <= 1.0:
        raise ValueError(
            "CONTEXT_CONFIDENCE_THRESHOLD must be between 0.0 and 1.0, "
            f"got {config.pricing.context_confidence_threshold}"
        )
    for name, days in [
        ("PERFORMANCE_ESTIMATE_VALID_DAYS", config.pricing.performance_valid_days),
        ("COLLABORATION_ESTIMATE_VALID_DAYS", config.pricing.collaboration_valid_days),
    ]:
        if days < 1:
            raise ValueError(f"{name} must be >= 1, got {days}")
    if len(config.pricing.currency) != 3:
        raise ValueError(
            f"PRICING_CURRENCY must be a 3-letter code, got {config.pricing.currency!r}"
        )

    if config.consultation.settle_delay_seconds < 0:
        raise ValueError(
            "CONSULTATION_SETTLE_DELAY must be >= 0, "
            f"got {config.consultation.settle_delay_seconds}"
        )

    if config.journey.max_dwell_seconds <= 0:
        raise ValueError(
            f"JOURNEY_MAX_DWELL_SECONDS must be > 0, got {config.journey.max_dwell_seconds}"
        )
    if config.journey.dwell_saturation_seconds <= 0:
        raise ValueError(
            "JOURNEY_DWELL_SATURATION_SECONDS must be > 0, "
            f"got {config.journey.dwell_saturation_seconds}"
        )
    if not 0.0 <= config.journey.min_interest_share <= 1.0:
        raise ValueError(
            "JOURNEY_MIN_INTEREST_SHARE must be between 0.0 and 1.0, "
            f"got {config.journey.min_interest_share}"
        )

    if not config.brand.site_url.startswith(("http://", "https://")):
        raise ValueError(f"SITE_URL must be an http(s) URL, got {config.brand.site_url!r}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(correlation_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        install_correlation_filter(handler)
    logger.info("Configuration loaded for '%s'", config.brand.artist_name)
    return config


# Singleton instance
settings = load_config()
