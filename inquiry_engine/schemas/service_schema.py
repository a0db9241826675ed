"""Service types offered on the site and their display names."""

from enum import Enum
from typing import Optional


class ServiceType(str, Enum):
    """The closed set of services an inquiry can be about."""
    PERFORMANCE = "performance"
    TEACHING = "teaching"
    COLLABORATION = "collaboration"
    GENERAL = "general"


SERVICE_DISPLAY_NAMES: dict[ServiceType, str] = {
    ServiceType.PERFORMANCE: "Performance Services",
    ServiceType.TEACHING: "Guitar Lessons",
    ServiceType.COLLABORATION: "Creative Collaboration",
    ServiceType.GENERAL: "General Inquiry",
}


def parse_service_type(value: object) -> Optional[ServiceType]:
    """Return the matching ServiceType, or None for anything unrecognized."""
    if isinstance(value, ServiceType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ServiceType(value.strip().lower())
    except ValueError:
        return None


def get_display_name(service_type: ServiceType) -> str:
    return SERVICE_DISPLAY_NAMES.get(service_type, service_type.value)
