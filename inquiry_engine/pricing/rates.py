"""Rate tables for performance and collaboration estimates (AUD)."""

from typing import Optional

from inquiry_engine.schemas.pricing_schema import (
    Complexity,
    EventType,
    ExperienceLevel,
    PerformanceFormat,
    PerformanceStyle,
    ProjectScope,
    ProjectType,
    Timeline,
)

# Base fee for the performance itself, before event/duration/guest adjustments.
PERFORMANCE_BASE_RATES: dict[PerformanceFormat, dict[PerformanceStyle, int]] = {
    PerformanceFormat.SOLO: {
        PerformanceStyle.ACOUSTIC: 300,
        PerformanceStyle.ELECTRIC: 400,
        PerformanceStyle.BOTH: 450,
    },
    PerformanceFormat.BAND: {
        PerformanceStyle.ACOUSTIC: 800,
        PerformanceStyle.ELECTRIC: 1200,
        PerformanceStyle.BOTH: 1400,
    },
}

# Undecided visitors are quoted the cheapest configuration.
FORMAT_FALLBACK = PerformanceFormat.SOLO
STYLE_FALLBACK = PerformanceStyle.ACOUSTIC

EVENT_TYPE_MULTIPLIERS: dict[EventType, float] = {
    EventType.WEDDING: 1.5,
    EventType.CORPORATE: 1.3,
    EventType.VENUE: 1.0,
    EventType.PRIVATE: 1.2,
    EventType.OTHER: 1.0,
}

EVENT_TYPE_LABELS: dict[EventType, str] = {
    EventType.WEDDING: "Wedding",
    EventType.CORPORATE: "Corporate event",
    EventType.VENUE: "Venue",
    EventType.PRIVATE: "Private event",
    EventType.OTHER: "Other event",
}

DURATION_1_2 = "1-2"
DURATION_3_4 = "3-4"
DURATION_5_6 = "5-6"
DURATION_7_8 = "7-8"
DURATION_FULL_DAY = "full-day"
DURATION_MULTI_DAY = "multi-day"

# (upper bound in hours, bracket) checked in order
DURATION_BRACKETS: tuple[tuple[float, str], ...] = (
    (2, DURATION_1_2),
    (4, DURATION_3_4),
    (6, DURATION_5_6),
    (8, DURATION_7_8),
    (12, DURATION_FULL_DAY),
)

DURATION_ADJUSTMENTS: dict[str, float] = {
    DURATION_1_2: 0.0,
    DURATION_3_4: 0.25,
    DURATION_5_6: 0.5,
    DURATION_7_8: 0.75,
    DURATION_FULL_DAY: 1.0,
    DURATION_MULTI_DAY: 1.5,
}

# (exclusive upper bound on guests, bracket, adjustment); None = no bound
GUEST_COUNT_BRACKETS: tuple[tuple[Optional[int], str, float], ...] = (
    (50, "small", 0.0),
    (150, "medium", 0.1),
    (300, "large", 0.2),
    (None, "xlarge", 0.3),
)

COLLABORATION_HOURLY_RATES: dict[ProjectType, int] = {
    ProjectType.STUDIO: 150,
    ProjectType.CREATIVE: 100,
    ProjectType.PARTNERSHIP: 200,
    ProjectType.OTHER: 125,
}

SCOPE_MULTIPLIERS: dict[ProjectScope, float] = {
    ProjectScope.SINGLE_SESSION: 1.0,
    ProjectScope.SHORT_TERM: 0.9,
    ProjectScope.LONG_TERM: 0.8,
    ProjectScope.ONGOING: 0.75,
}

PROJECT_BASE_HOURS: dict[ProjectScope, int] = {
    ProjectScope.SINGLE_SESSION: 2,
    ProjectScope.SHORT_TERM: 8,
    ProjectScope.LONG_TERM: 24,
    ProjectScope.ONGOING: 16,
}

TIMELINE_ADJUSTMENTS: dict[Timeline, float] = {
    Timeline.URGENT: 0.5,
    Timeline.FLEXIBLE: -0.1,
    Timeline.SPECIFIC_DATE: 0.2,
    Timeline.ONGOING: -0.05,
}

EXPERIENCE_ADJUSTMENTS: dict[ExperienceLevel, float] = {
    ExperienceLevel.FIRST_TIME: 0.1,
    ExperienceLevel.SOME_EXPERIENCE: 0.0,
    ExperienceLevel.EXPERIENCED: -0.05,
    ExperienceLevel.PROFESSIONAL: -0.1,
}

COMPLEXITY_ADJUSTMENTS: dict[Complexity, float] = {
    Complexity.SIMPLE: 0.0,
    Complexity.MODERATE: 0.2,
    Complexity.COMPLEX: 0.4,
    Complexity.EXPERT: 0.6,
}

COMPLEXITY_HOUR_MULTIPLIERS: dict[Complexity, float] = {
    Complexity.SIMPLE: 1.0,
    Complexity.MODERATE: 1.25,
    Complexity.COMPLEX: 1.5,
    Complexity.EXPERT: 2.0,
}

COMPLEXITY_KEYWORDS: dict[Complexity, tuple[str, ...]] = {
    Complexity.EXPERT: ("experimental", "innovative", "cutting-edge", "masterclass", "expert"),
    Complexity.COMPLEX: ("complex", "advanced", "professional", "sophisticated", "intricate"),
}

# Creative visions longer than this read as at least moderately involved.
MODERATE_VISION_LENGTH = 200

# Half-width of the quoted range as a share of the final price, by confidence.
PERFORMANCE_VARIANCE = {"high": 0.15, "medium": 0.2, "low": 0.3}
COLLABORATION_VARIANCE = {"high": 0.2, "medium": 0.25, "low": 0.35}

HIGH_CONFIDENCE_SHARE = 0.8
MEDIUM_CONFIDENCE_SHARE = 0.5
