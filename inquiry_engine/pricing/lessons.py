"""Guitar lesson package catalog with bulk discount pricing."""

import logging
from typing import Optional, TypedDict

from inquiry_engine.errors import ValidationError
from inquiry_engine.utils import round_half_up

logger = logging.getLogger(__name__)

BASE_LESSON_PRICE = 50
TRIAL_LESSON_PRICE = 45
LESSON_CURRENCY = "AUD"
MAX_DISCOUNT_PERCENT = 25

# (minimum sessions, discount percent, name), best tier wins
DISCOUNT_TIERS: tuple[tuple[int, int, str], ...] = (
    (4, 5, "Foundation Discount"),
    (8, 10, "Transformation Discount"),
    (12, 15, "Mastery Discount"),
)

LESSON_PACKAGES: dict[str, dict] = {
    "trial": {
        "sessions": 1,
        "duration": 30,
        "validity": 30,
        "popular": False,
        "features": ["30-minute session", "Teaching style introduction", "Goal assessment"],
    },
    "single": {
        "sessions": 1,
        "duration": 60,
        "validity": 60,
        "popular": False,
        "features": ["Full 60-minute lesson", "Personalized instruction", "Practice materials"],
    },
    "foundation": {
        "sessions": 4,
        "duration": 60,
        "validity": 90,
        "popular": False,
        "features": ["4 weekly lessons", "5% bulk discount", "Progress tracking", "Email support"],
    },
    "transformation": {
        "sessions": 8,
        "duration": 60,
        "validity": 120,
        "popular": True,
        "features": [
            "8 weekly lessons",
            "10% bulk discount",
            "Comprehensive curriculum",
            "Performance preparation",
        ],
    },
}


class BulkPricing(TypedDict):
    """Price breakdown for a number of lessons."""

    base_price: int
    total_sessions: int
    discount_percentage: int
    discount_amount: int
    total_price: int
    price_per_session: int
    currency: str
    savings: int
    discount_applied: bool


class LessonPackage(TypedDict):
    """A package from the catalog with its computed price."""

    id: str
    name: str
    sessions: int
    price: int
    original_price: Optional[int]
    savings: Optional[int]
    description: str
    popular: bool
    features: list[str]
    duration: int
    validity: int


def calculate_bulk_pricing(
    sessions: int,
    include_discount: bool = True,
    loyalty_discount: int = 0,
) -> BulkPricing:
    """
    Price ``sessions`` standard lessons with the best applicable bulk tier.

    A loyalty discount stacks on top of the bulk tier; the combined discount
    never exceeds 25%.

    Raises:
        ValidationError: If sessions < 1 or the loyalty discount is negative.
    """
    if sessions < 1:
        raise ValidationError(f"sessions must be >= 1, got {sessions}", fields=["sessions"])
    if loyalty_discount < 0:
        raise ValidationError(
            f"loyalty_discount must be >= 0, got {loyalty_discount}", fields=["loyalty_discount"]
        )

    total_base = BASE_LESSON_PRICE * sessions
    discount_percent = 0
    discount_applied = False

    if include_discount:
        applicable = [percent for minimum, percent, _ in DISCOUNT_TIERS if sessions >= minimum]
        if applicable:
            discount_percent = max(applicable)
            discount_applied = True

    if loyalty_discount > 0:
        discount_percent = min(discount_percent + loyalty_discount, MAX_DISCOUNT_PERCENT)
        discount_applied = True

    discount_amount = round_half_up(total_base * discount_percent / 100)
    total_price = total_base - discount_amount
    savings = total_base - total_price if sessions > 1 else 0

    return BulkPricing(
        base_price=total_base,
        total_sessions=sessions,
        discount_percentage=discount_percent,
        discount_amount=discount_amount,
        total_price=total_price,
        price_per_session=round_half_up(total_price / sessions),
        currency=LESSON_CURRENCY,
        savings=savings,
        discount_applied=discount_applied,
    )


def _package_name(sessions: int) -> str:
    if sessions == 1:
        return "Single Lesson"
    if sessions <= 4:
        return "Foundation Package"
    return "Transformation Intensive"


def _package_description(sessions: int, pricing: BulkPricing) -> str:
    if sessions == 1:
        return "A full one-on-one lesson tailored to your goals"
    if pricing["discount_applied"]:
        return (
            f"{sessions} lessons at ${pricing['price_per_session']} each "
            f"({pricing['discount_percentage']}% off)"
        )
    return f"{sessions} lessons at ${pricing['price_per_session']} each"


def get_package_with_pricing(package_id: str, loyalty_discount: int = 0) -> Optional[LessonPackage]:
    """Return a catalog package with its current price, or None if the id is unknown."""
    config = LESSON_PACKAGES.get(package_id)
    if config is None:
        logger.warning("Unknown lesson package: %s", package_id)
        return None

    if package_id == "trial":
        return LessonPackage(
            id=package_id,
            name="Trial Lesson",
            sessions=config["sessions"],
            price=TRIAL_LESSON_PRICE,
            original_price=None,
            savings=None,
            description="Shorter 30-minute introduction to my teaching style",
            popular=config["popular"],
            features=list(config["features"]),
            duration=config["duration"],
            validity=config["validity"],
        )

    pricing = calculate_bulk_pricing(config["sessions"], loyalty_discount=loyalty_discount)
    return LessonPackage(
        id=package_id,
        name=_package_name(config["sessions"]),
        sessions=config["sessions"],
        price=pricing["total_price"],
        original_price=pricing["base_price"] if pricing["discount_applied"] else None,
        savings=pricing["discount_amount"] if pricing["discount_applied"] else None,
        description=_package_description(config["sessions"], pricing),
        popular=config["popular"],
        features=list(config["features"]),
        duration=config["duration"],
        validity=config["validity"],
    )


def get_all_packages_with_pricing(loyalty_discount: int = 0) -> list[LessonPackage]:
    """All catalog packages in display order."""
    packages = []
    for package_id in LESSON_PACKAGES:
        package = get_package_with_pricing(package_id, loyalty_discount=loyalty_discount)
        if package is not None:
            packages.append(package)
    return packages


def get_recommended_package(experience: str, commitment: str, budget: str) -> str:
    """
    Suggest a package id from a student's self-assessment.

    Args:
        experience: "beginner", "intermediate" or "advanced".
        commitment: "low", "medium" or "high".
        budget: "low", "medium" or "high".
    """
    if commitment == "low" or budget == "low":
        return "trial" if experience == "beginner" else "single"
    if commitment == "high" and budget == "high":
        return "transformation"
    return "foundation"
