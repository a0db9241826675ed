"""Inquiry inputs and price estimate value objects."""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from inquiry_engine.schemas.service_schema import ServiceType


class PerformanceFormat(str, Enum):
    SOLO = "solo"
    BAND = "band"
    FLEXIBLE = "flexible"
    UNSURE = "unsure"


class PerformanceStyle(str, Enum):
    ACOUSTIC = "acoustic"
    ELECTRIC = "electric"
    BOTH = "both"
    UNSURE = "unsure"


class EventType(str, Enum):
    WEDDING = "wedding"
    CORPORATE = "corporate"
    VENUE = "venue"
    PRIVATE = "private"
    OTHER = "other"


class ProjectType(str, Enum):
    STUDIO = "studio"
    CREATIVE = "creative"
    PARTNERSHIP = "partnership"
    OTHER = "other"


class ProjectScope(str, Enum):
    SINGLE_SESSION = "single-session"
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"
    ONGOING = "ongoing"


class Timeline(str, Enum):
    URGENT = "urgent"
    FLEXIBLE = "flexible"
    SPECIFIC_DATE = "specific-date"
    ONGOING = "ongoing"


class ExperienceLevel(str, Enum):
    FIRST_TIME = "first-time"
    SOME_EXPERIENCE = "some-experience"
    EXPERIENCED = "experienced"
    PROFESSIONAL = "professional"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EXPERT = "expert"


class EstimateConfidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BudgetFit(str, Enum):
    """Where the quoted range sits relative to the lead's stated budget."""
    BELOW = "below"
    WITHIN = "within"
    ABOVE = "above"
    UNKNOWN = "unknown"


BUDGET_DISCUSS = "discuss"

_BUDGET_UNDER = re.compile(r"^under-(\d+)$")
_BUDGET_PLUS = re.compile(r"^(\d+)-plus$")
_BUDGET_BAND = re.compile(r"^(\d+)-(\d+)$")


def parse_budget_range(label: str) -> tuple[Optional[int], Optional[int]]:
    """
    Parse a budget band label into (low, high) bounds.

    Accepted forms: ``discuss`` -> (None, None), ``under-500`` -> (0, 500),
    ``2000-plus`` -> (2000, None), ``1000-2000`` -> (1000, 2000).

    Raises:
        ValueError: For any other label, or a band whose low end is not below its high end.
    """
    normalized = label.strip().lower()
    if normalized == BUDGET_DISCUSS:
        return None, None
    match = _BUDGET_UNDER.match(normalized)
    if match:
        return 0, int(match.group(1))
    match = _BUDGET_PLUS.match(normalized)
    if match:
        return int(match.group(1)), None
    match = _BUDGET_BAND.match(normalized)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
        if low >= high:
            raise ValueError(f"budget band low end must be below high end: {label!r}")
        return low, high
    raise ValueError(
        f"unrecognized budget range {label!r}; expected 'discuss', 'under-N', 'N-plus' or 'N-M'"
    )


_INQUIRY_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
    frozen=True,
)


class _InquiryData(BaseModel):
    model_config = _INQUIRY_MODEL_CONFIG

    budget_range: str = Field(min_length=1)

    @field_validator("budget_range")
    @classmethod
    def _check_budget(cls, value: str) -> str:
        parse_budget_range(value)
        return value.lower()

    @property
    def budget_bounds(self) -> tuple[Optional[int], Optional[int]]:
        return parse_budget_range(self.budget_range)

    @property
    def wants_to_discuss_budget(self) -> bool:
        return self.budget_range == BUDGET_DISCUSS


class PerformancePricingData(_InquiryData):
    """Structured live-performance inquiry."""

    performance_format: PerformanceFormat
    performance_style: PerformanceStyle
    event_type: EventType
    duration: str = Field(min_length=1)
    guest_count: Optional[str] = None
    event_date: Optional[str] = None
    venue_address: Optional[str] = None

    @field_validator("guest_count", "event_date", "venue_address", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CollaborationPricingData(_InquiryData):
    """Structured collaboration project inquiry."""

    project_type: ProjectType
    project_scope: ProjectScope
    timeline: Timeline
    experience: ExperienceLevel
    creative_vision: str = ""


class PriceAdjustment(BaseModel):
    """One line of rationale explaining how the estimate moved away from the base rate."""

    model_config = ConfigDict(frozen=True)

    factor: str
    impact: str  # "increase" | "decrease"
    percentage: int
    amount: float
    description: str


class PriceEstimate(BaseModel):
    """
    Result of a pricing estimation.

    Carries no timestamps so that identical inputs produce identical
    estimates; the inquiry engine records when an estimate was created.
    """

    model_config = ConfigDict(frozen=True)

    service_type: ServiceType
    range_low: int
    range_high: int
    base_price: int
    adjustments: tuple[PriceAdjustment, ...] = ()
    total_adjustment: int = 0
    confidence: EstimateConfidence
    factors: tuple[str, ...] = ()
    consultation_recommended: bool
    consultation_reasons: tuple[str, ...] = ()
    estimate_valid_days: int = Field(gt=0)
    currency: str = "AUD"
    budget_fit: BudgetFit = BudgetFit.UNKNOWN
    estimated_hours: Optional[int] = None
    complexity: Optional[Complexity] = None

    @property
    def midpoint(self) -> float:
        return (self.range_low + self.range_high) / 2


class FormattedEstimate(BaseModel):
    """Human-readable projection of a PriceEstimate for display."""

    model_config = ConfigDict(frozen=True)

    range: str
    confidence: str
    summary: str
