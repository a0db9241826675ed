"""
Consultation slot assignment.

In production this would ask the artist's calendar for a free slot; the
default provider simply honours the visitor's first available preferred
date at the time of day they asked for.
"""

import logging
from datetime import date
from typing import Iterable, Optional, Protocol

from inquiry_engine.config import ConsultationConfig
from inquiry_engine.errors import NotFoundError
from inquiry_engine.schemas.consultation_schema import ConsultationBooking, PreferredTime

logger = logging.getLogger(__name__)

PREFERRED_TIME_SLOTS: dict[PreferredTime, str] = {
    PreferredTime.MORNING: "10:00",
    PreferredTime.AFTERNOON: "14:00",
    PreferredTime.EVENING: "18:00",
}


class AvailabilityProvider(Protocol):
    """Assigns a concrete date and time to a pending consultation."""

    def assign_slot(self, booking: ConsultationBooking) -> tuple[date, str]: ...


class PreferredSlotAvailability:
    """Books the first preferred date that isn't blocked out."""

    def __init__(
        self,
        config: Optional[ConsultationConfig] = None,
        unavailable_dates: Iterable[date] = (),
    ) -> None:
        self.config = config or ConsultationConfig()
        self.unavailable_dates = set(unavailable_dates)

    def block(self, day: date) -> None:
        self.unavailable_dates.add(day)

    def assign_slot(self, booking: ConsultationBooking) -> tuple[date, str]:
        """
        Pick the slot for ``booking``.

        Raises:
            NotFoundError: If every preferred date is unavailable.
        """
        for day in booking.preferred_dates:
            if day in self.unavailable_dates:
                continue
            slot_time = PREFERRED_TIME_SLOTS.get(booking.preferred_time, self.config.default_time)
            logger.info("Consultation %s assigned %s at %s", booking.id, day.isoformat(), slot_time)
            return day, slot_time

        raise NotFoundError(
            f"None of the preferred dates for consultation {booking.id} are available"
        )
