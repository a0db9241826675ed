"""Consultation booking request and booking record models."""

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inquiry_engine.errors import InvalidTransitionError
from inquiry_engine.schemas.service_schema import ServiceType


class PreferredTime(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    FLEXIBLE = "flexible"


class ConsultationType(str, Enum):
    PHONE = "phone"
    VIDEO = "video"
    IN_PERSON = "in-person"


class ConsultationStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_STATUS_TRANSITIONS: dict[ConsultationStatus, frozenset[ConsultationStatus]] = {
    ConsultationStatus.PENDING: frozenset({ConsultationStatus.SCHEDULED, ConsultationStatus.CANCELLED}),
    ConsultationStatus.SCHEDULED: frozenset({ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED}),
    ConsultationStatus.COMPLETED: frozenset(),
    ConsultationStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({ConsultationStatus.PENDING, ConsultationStatus.SCHEDULED})


class ConsultationRequest(BaseModel):
    """What the visitor asks for when booking a consultation."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    service_type: ServiceType
    preferred_dates: list[date] = Field(min_length=1)
    preferred_time: PreferredTime = PreferredTime.FLEXIBLE
    duration: Literal[30, 45, 60] = 30
    consultation_type: ConsultationType = ConsultationType.VIDEO
    notes: Optional[str] = None


class ConsultationBooking(ConsultationRequest):
    """A consultation request the engine has accepted."""

    id: str
    status: ConsultationStatus = ConsultationStatus.PENDING
    requested_at: datetime
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def with_status(self, status: ConsultationStatus, **updates: object) -> "ConsultationBooking":
        """Return a copy moved to ``status``; status only ever moves forward."""
        if status not in ALLOWED_STATUS_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Consultation {self.id} cannot move from '{self.status.value}' "
                f"to '{status.value}'"
            )
        return self.model_copy(update={"status": status, **updates})
