"""
Price estimation for performance and collaboration inquiries.

Both estimators are pure: the same inquiry (and journey context) always
yields an equal ``PriceEstimate``. Malformed input raises
``ValidationError``; nothing is silently corrected.
"""

import logging
import re
from typing import Any, Optional

from inquiry_engine.config import AppConfig, settings
from inquiry_engine.pricing import rates
from inquiry_engine.schemas.journey_schema import ContactContext
from inquiry_engine.schemas.pricing_schema import (
    BudgetFit,
    CollaborationPricingData,
    Complexity,
    EstimateConfidence,
    EventType,
    ExperienceLevel,
    FormattedEstimate,
    PerformanceFormat,
    PerformancePricingData,
    PerformanceStyle,
    PriceAdjustment,
    PriceEstimate,
    ProjectScope,
    ProjectType,
    Timeline,
)
from inquiry_engine.schemas.service_schema import ServiceType
from inquiry_engine.utils import parse_model, round_half_up

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS: dict[str, str] = {"AUD": "$", "USD": "US$", "NZD": "NZ$", "EUR": "€", "GBP": "£"}

TIMELINE_DESCRIPTIONS: dict[Timeline, str] = {
    Timeline.URGENT: "Rush delivery premium",
    Timeline.FLEXIBLE: "Flexible schedule discount",
    Timeline.SPECIFIC_DATE: "Fixed deadline premium",
    Timeline.ONGOING: "Long-term commitment discount",
}

EXPERIENCE_DESCRIPTIONS: dict[ExperienceLevel, str] = {
    ExperienceLevel.FIRST_TIME: "Extra guidance for a first collaboration",
    ExperienceLevel.EXPERIENCED: "Experienced collaborator discount",
    ExperienceLevel.PROFESSIONAL: "Professional collaborator discount",
}

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_MINUTE_WORDS = ("min", "mins", "minute", "minutes")

# Visions longer than this count as a well-specified brief.
DETAILED_VISION_LENGTH = 50


# ----------------------------------------------------------------------
# Free-text parsing
# ----------------------------------------------------------------------

def parse_duration(text: str) -> Optional[str]:
    """
    Map a free-text duration to a rate bracket, or None if it can't be read.

    Examples:
        >>> parse_duration("4 hours")
        '3-4'
        >>> parse_duration("2-3 hrs")
        '3-4'
        >>> parse_duration("full day")
        'full-day'
        >>> parse_duration("a while") is None
        True
    """
    lower = text.strip().lower()
    if "multi" in lower or "weekend" in lower:
        return rates.DURATION_MULTI_DAY

    numbers = [float(n) for n in _NUMBER.findall(lower)]
    if numbers:
        hours = max(numbers)
        words = re.findall(r"[a-z]+", lower)
        if any(w in _MINUTE_WORDS for w in words) and not any(w.startswith(("hour", "hr")) for w in words):
            hours = hours / 60
        if hours <= 0:
            return None
        for upper, bracket in rates.DURATION_BRACKETS:
            if hours <= upper:
                return bracket
        return rates.DURATION_MULTI_DAY

    if "full" in lower or "day" in lower:
        return rates.DURATION_FULL_DAY
    return None


def parse_guest_count(text: Optional[str]) -> Optional[int]:
    """Largest number mentioned in a guest-count answer ("100-150" -> 150)."""
    if not text:
        return None
    numbers = [int(n) for n in re.findall(r"\d+", text)]
    return max(numbers) if numbers else None


def guest_count_bracket(count: int) -> tuple[str, float]:
    for upper, bracket, adjustment in rates.GUEST_COUNT_BRACKETS:
        if upper is None or count < upper:
            return bracket, adjustment
    raise AssertionError("guest count brackets must end with an open bracket")


def assess_project_complexity(creative_vision: str) -> Complexity:
    """Keyword scan of the creative brief; long briefs are at least moderate."""
    vision = creative_vision.lower()
    for level in (Complexity.EXPERT, Complexity.COMPLEX):
        if any(keyword in vision for keyword in rates.COMPLEXITY_KEYWORDS[level]):
            return level
    if len(vision) > rates.MODERATE_VISION_LENGTH:
        return Complexity.MODERATE
    return Complexity.SIMPLE


def get_project_hours(scope: ProjectScope, complexity: Complexity) -> int:
    return round_half_up(
        rates.PROJECT_BASE_HOURS[scope] * rates.COMPLEXITY_HOUR_MULTIPLIERS[complexity]
    )


# ----------------------------------------------------------------------
# Shared policy helpers
# ----------------------------------------------------------------------

def estimate_confidence(signals: list[bool]) -> EstimateConfidence:
    share = sum(signals) / len(signals)
    if share >= rates.HIGH_CONFIDENCE_SHARE:
        return EstimateConfidence.HIGH
    if share >= rates.MEDIUM_CONFIDENCE_SHARE:
        return EstimateConfidence.MEDIUM
    return EstimateConfidence.LOW


def _context_signal(
    context: Optional[ContactContext], service: ServiceType, config: AppConfig
) -> bool:
    return (
        context is not None
        and context.confidence_score >= config.pricing.context_confidence_threshold
        and context.primary_service_interest == service
    )


def _budget_fit(bounds: tuple[Optional[int], Optional[int]], low: int, high: int) -> BudgetFit:
    budget_low, budget_high = bounds
    if budget_low is None and budget_high is None:
        return BudgetFit.UNKNOWN
    if budget_high is not None and low > budget_high:
        return BudgetFit.ABOVE
    if budget_low is not None and high < budget_low:
        return BudgetFit.BELOW
    return BudgetFit.WITHIN


def _adjustment(factor: str, share: float, base: float, description: str) -> PriceAdjustment:
    return PriceAdjustment(
        factor=factor,
        impact="increase" if share > 0 else "decrease",
        percentage=round_half_up(abs(share) * 100),
        amount=round(base * share, 2),
        description=description,
    )


def _coerce_context(context: Any) -> Optional[ContactContext]:
    if context is None or isinstance(context, ContactContext):
        return context
    return parse_model(ContactContext, context, "journey context")


def _range(final: float, variance: float) -> tuple[int, int]:
    spread = final * variance
    return max(round_half_up(final - spread), 0), round_half_up(final + spread)


# ----------------------------------------------------------------------
# Estimators
# ----------------------------------------------------------------------

def estimate_performance_pricing(
    data: Any,
    context: Optional[ContactContext] = None,
    config: Optional[AppConfig] = None,
) -> PriceEstimate:
    """
    Estimate a live performance fee.

    Args:
        data: ``PerformancePricingData`` or a mapping with snake_case or camelCase keys.
        context: Optional journey snapshot; a confident, matching journey raises confidence.
        config: Pricing policy; defaults to the module-level settings.

    Raises:
        ValidationError: If any field is missing or outside its allowed values.
    """
    config = config or settings
    inquiry = parse_model(PerformancePricingData, data, "performance inquiry")
    context = _coerce_context(context)

    factors: list[str] = []
    fmt = inquiry.performance_format
    style = inquiry.performance_style
    if fmt in (PerformanceFormat.FLEXIBLE, PerformanceFormat.UNSURE):
        fmt = rates.FORMAT_FALLBACK
        factors.append("Format flexibility considered")
    if style == PerformanceStyle.UNSURE:
        style = rates.STYLE_FALLBACK
        factors.append("Performance style flexibility considered")

    base_price = rates.PERFORMANCE_BASE_RATES[fmt][style]
    adjustments: list[PriceAdjustment] = []

    event_share = rates.EVENT_TYPE_MULTIPLIERS[inquiry.event_type] - 1
    if event_share != 0:
        label = rates.EVENT_TYPE_LABELS[inquiry.event_type]
        adjustments.append(
            _adjustment("event_type", event_share, base_price, f"{label} premium service")
        )
        factors.append(f"Event type: {inquiry.event_type.value}")

    duration_bracket = parse_duration(inquiry.duration)
    duration_share = rates.DURATION_ADJUSTMENTS[duration_bracket or rates.DURATION_1_2]
    if duration_share > 0:
        adjustments.append(
            _adjustment(
                "duration", duration_share, base_price,
                f"Extended performance duration ({inquiry.duration})",
            )
        )
        factors.append(f"Duration: {inquiry.duration}")

    guests = parse_guest_count(inquiry.guest_count)
    if guests is not None:
        _, guest_share = guest_count_bracket(guests)
        if guest_share > 0:
            adjustments.append(
                _adjustment(
                    "guest_count", guest_share, base_price,
                    f"Larger audience ({inquiry.guest_count} guests)",
                )
            )
            factors.append(f"Guest count: {inquiry.guest_count}")

    signals = [
        inquiry.performance_format not in (PerformanceFormat.FLEXIBLE, PerformanceFormat.UNSURE),
        inquiry.performance_style != PerformanceStyle.UNSURE,
        guests is not None,
        inquiry.event_date is not None,
        inquiry.event_type != EventType.OTHER,
        duration_bracket is not None,
    ]
    if context is not None:
        context_match = _context_signal(context, ServiceType.PERFORMANCE, config)
        signals.append(context_match)
        if context_match:
            factors.append("Browsing history shows performance interest")
    confidence = estimate_confidence(signals)

    total_adjustment = sum(adj.amount for adj in adjustments)
    final_price = base_price + total_adjustment
    variance = rates.PERFORMANCE_VARIANCE[confidence.value]
    range_low, range_high = _range(final_price, variance)

    reasons: list[str] = []
    if inquiry.performance_format == PerformanceFormat.UNSURE:
        reasons.append("Performance format not decided")
    if inquiry.performance_style == PerformanceStyle.UNSURE:
        reasons.append("Performance style not decided")
    reasons.extend(_common_reasons(inquiry.wants_to_discuss_budget, confidence, variance, config))

    estimate = PriceEstimate(
        service_type=ServiceType.PERFORMANCE,
        range_low=range_low,
        range_high=range_high,
        base_price=base_price,
        adjustments=tuple(adjustments),
        total_adjustment=round_half_up(total_adjustment),
        confidence=confidence,
        factors=tuple(factors),
        consultation_recommended=bool(reasons),
        consultation_reasons=tuple(reasons),
        estimate_valid_days=config.pricing.performance_valid_days,
        currency=config.pricing.currency,
        budget_fit=_budget_fit(inquiry.budget_bounds, range_low, range_high),
    )
    logger.debug(
        "Performance estimate %d-%d (%s confidence, consultation=%s)",
        range_low, range_high, confidence.value, estimate.consultation_recommended,
    )
    return estimate


def estimate_collaboration_pricing(
    data: Any,
    context: Optional[ContactContext] = None,
    config: Optional[AppConfig] = None,
) -> PriceEstimate:
    """
    Estimate a collaboration project: hourly rate adjusted for scope, timeline,
    experience and complexity, times the expected hours.

    Raises:
        ValidationError: If any field is missing or outside its allowed values.
    """
    config = config or settings
    inquiry = parse_model(CollaborationPricingData, data, "collaboration inquiry")
    context = _coerce_context(context)

    hourly = rates.COLLABORATION_HOURLY_RATES[inquiry.project_type]
    complexity = assess_project_complexity(inquiry.creative_vision)
    hours = get_project_hours(inquiry.project_scope, complexity)
    base_price = hourly * hours

    factors: list[str] = [f"Project scope: {inquiry.project_scope.value}"]
    adjustments: list[PriceAdjustment] = []

    scope_share = rates.SCOPE_MULTIPLIERS[inquiry.project_scope] - 1
    if scope_share != 0:
        adjustments.append(
            _adjustment("project_scope", scope_share, base_price, "Multi-session rate")
        )

    timeline_share = rates.TIMELINE_ADJUSTMENTS[inquiry.timeline]
    if timeline_share != 0:
        adjustments.append(
            _adjustment("timeline", timeline_share, base_price, TIMELINE_DESCRIPTIONS[inquiry.timeline])
        )
        factors.append(f"Timeline: {inquiry.timeline.value}")

    experience_share = rates.EXPERIENCE_ADJUSTMENTS[inquiry.experience]
    if experience_share != 0:
        adjustments.append(
            _adjustment(
                "experience", experience_share, base_price,
                EXPERIENCE_DESCRIPTIONS[inquiry.experience],
            )
        )
        factors.append(f"Experience: {inquiry.experience.value}")

    complexity_share = rates.COMPLEXITY_ADJUSTMENTS[complexity]
    if complexity_share > 0:
        adjustments.append(
            _adjustment(
                "complexity", complexity_share, base_price,
                f"{complexity.value.capitalize()} project complexity",
            )
        )
        factors.append(f"Complexity: {complexity.value}")
    factors.append(f"Estimated hours: {hours}")

    signals = [
        inquiry.project_type != ProjectType.OTHER,
        len(inquiry.creative_vision) > DETAILED_VISION_LENGTH,
        inquiry.timeline != Timeline.ONGOING,
        not inquiry.wants_to_discuss_budget,
    ]
    if context is not None:
        context_match = _context_signal(context, ServiceType.COLLABORATION, config)
        signals.append(context_match)
        if context_match:
            factors.append("Browsing history shows collaboration interest")
    confidence = estimate_confidence(signals)

    total_adjustment = sum(adj.amount for adj in adjustments)
    final_price = base_price + total_adjustment
    variance = rates.COLLABORATION_VARIANCE[confidence.value]
    range_low, range_high = _range(final_price, variance)

    reasons: list[str] = []
    if complexity == Complexity.EXPERT:
        reasons.append("Expert-level project needs scoping")
    reasons.extend(_common_reasons(inquiry.wants_to_discuss_budget, confidence, variance, config))

    estimate = PriceEstimate(
        service_type=ServiceType.COLLABORATION,
        range_low=range_low,
        range_high=range_high,
        base_price=base_price,
        adjustments=tuple(adjustments),
        total_adjustment=round_half_up(total_adjustment),
        confidence=confidence,
        factors=tuple(factors),
        consultation_recommended=bool(reasons),
        consultation_reasons=tuple(reasons),
        estimate_valid_days=config.pricing.collaboration_valid_days,
        currency=config.pricing.currency,
        budget_fit=_budget_fit(inquiry.budget_bounds, range_low, range_high),
        estimated_hours=hours,
        complexity=complexity,
    )
    logger.debug(
        "Collaboration estimate %d-%d over %d hours (%s confidence)",
        range_low, range_high, hours, confidence.value,
    )
    return estimate


def _common_reasons(
    discuss_budget: bool,
    confidence: EstimateConfidence,
    variance: float,
    config: AppConfig,
) -> list[str]:
    reasons: list[str] = []
    if confidence == EstimateConfidence.LOW:
        reasons.append("Not enough detail for a confident estimate")
    if discuss_budget:
        reasons.append("Budget to be discussed")
    # Compared before rounding: the quoted bounds are whole dollars.
    if 2 * variance > config.pricing.max_range_spread:
        reasons.append("Price range too wide to quote")
    return reasons


# ----------------------------------------------------------------------
# Display
# ----------------------------------------------------------------------

def format_price(amount: float, currency: str = "AUD", show_cents: bool = False) -> str:
    """
    Format an amount for display.

    Examples:
        >>> format_price(1120)
        '$1,120'
        >>> format_price(45.5, show_cents=True)
        '$45.50'
    """
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)
    body = f"{magnitude:,.2f}" if show_cents else f"{round_half_up(magnitude):,}"
    return f"{sign}{symbol}{body}"


def format_price_estimate(estimate: PriceEstimate) -> FormattedEstimate:
    """Display strings for an estimate: price range, confidence label and summary line."""
    price_range = (
        f"{format_price(estimate.range_low, estimate.currency)} - "
        f"{format_price(estimate.range_high, estimate.currency)}"
    )
    if estimate.consultation_recommended:
        summary = "Consultation recommended for accurate pricing"
    else:
        summary = f"Based on {len(estimate.factors)} project factors"
    return FormattedEstimate(
        range=price_range,
        confidence=f"{estimate.confidence.value} confidence",
        summary=summary,
    )

