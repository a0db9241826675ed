"""Tests for lesson packages and bulk discounts."""

import pytest

from inquiry_engine.errors import ValidationError
from inquiry_engine.pricing.lessons import (
    calculate_bulk_pricing,
    get_all_packages_with_pricing,
    get_package_with_pricing,
    get_recommended_package,
)


class TestBulkPricing:
    def test_single_lesson(self):
        pricing = calculate_bulk_pricing(1)
        assert pricing["total_price"] == 50
        assert pricing["discount_applied"] is False
        assert pricing["savings"] == 0

    @pytest.mark.parametrize("sessions,percent,total", [
        (3, 0, 150),
        (4, 5, 190),
        (8, 10, 360),
        (12, 15, 510),
    ])
    def test_discount_tiers(self, sessions, percent, total):
        pricing = calculate_bulk_pricing(sessions)
        assert pricing["discount_percentage"] == percent
        assert pricing["total_price"] == total

    def test_discount_can_be_disabled(self):
        pricing = calculate_bulk_pricing(8, include_discount=False)
        assert pricing["total_price"] == 400
        assert pricing["discount_applied"] is False

    def test_loyalty_stacks_up_to_cap(self):
        pricing = calculate_bulk_pricing(12, loyalty_discount=20)
        assert pricing["discount_percentage"] == 25
        assert pricing["total_price"] == 450
        assert pricing["savings"] == 150

    def test_per_session_price(self):
        assert calculate_bulk_pricing(8)["price_per_session"] == 45

    def test_invalid_sessions(self):
        with pytest.raises(ValidationError) as exc_info:
            calculate_bulk_pricing(0)
        assert exc_info.value.fields == ["sessions"]

    def test_negative_loyalty(self):
        with pytest.raises(ValidationError):
            calculate_bulk_pricing(4, loyalty_discount=-5)


class TestPackages:
    def test_trial_package(self):
        package = get_package_with_pricing("trial")
        assert package["name"] == "Trial Lesson"
        assert package["price"] == 45
        assert package["original_price"] is None
        assert package["duration"] == 30

    def test_foundation_package(self):
        package = get_package_with_pricing("foundation")
        assert package["name"] == "Foundation Package"
        assert package["price"] == 190
        assert package["original_price"] == 200
        assert package["savings"] == 10

    def test_transformation_is_popular(self):
        package = get_package_with_pricing("transformation")
        assert package["name"] == "Transformation Intensive"
        assert package["price"] == 360
        assert package["popular"] is True

    def test_single_package_has_no_savings(self):
        package = get_package_with_pricing("single")
        assert package["price"] == 50
        assert package["savings"] is None

    def test_unknown_package(self):
        assert get_package_with_pricing("masterclass") is None

    def test_all_packages_in_order(self):
        ids = [p["id"] for p in get_all_packages_with_pricing()]
        assert ids == ["trial", "single", "foundation", "transformation"]

    def test_loyalty_applies_to_catalog(self):
        packages = {p["id"]: p for p in get_all_packages_with_pricing(loyalty_discount=5)}
        assert packages["foundation"]["price"] == 180
        assert packages["trial"]["price"] == 45


class TestRecommendation:
    @pytest.mark.parametrize("experience,commitment,budget,expected", [
        ("beginner", "low", "medium", "trial"),
        ("intermediate", "medium", "low", "single"),
        ("advanced", "high", "high", "transformation"),
        ("beginner", "medium", "medium", "foundation"),
    ])
    def test_recommendations(self, experience, commitment, budget, expected):
        assert get_recommended_package(experience, commitment, budget) == expected
