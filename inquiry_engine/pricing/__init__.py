"""Price estimation for performance, collaboration and lesson inquiries."""

from inquiry_engine.pricing.estimation import (
    estimate_collaboration_pricing,
    estimate_performance_pricing,
    format_price,
    format_price_estimate,
)
from inquiry_engine.pricing.lessons import (
    calculate_bulk_pricing,
    get_all_packages_with_pricing,
    get_package_with_pricing,
    get_recommended_package,
)

__all__ = [
    "calculate_bulk_pricing",
    "estimate_collaboration_pricing",
    "estimate_performance_pricing",
    "format_price",
    "format_price_estimate",
    "get_all_packages_with_pricing",
    "get_package_with_pricing",
    "get_recommended_package",
]
