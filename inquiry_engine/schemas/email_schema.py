"""Follow-up email templates, scheduled emails and automation results."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from inquiry_engine.errors import ErrorKind
from inquiry_engine.schemas.service_schema import ServiceType


class EmailTemplateType(str, Enum):
    """Sequence stages, declared in send order."""
    IMMEDIATE_CONFIRMATION = "immediate_confirmation"
    FOLLOW_UP_24H = "follow_up_24h"
    FOLLOW_UP_3DAYS = "follow_up_3days"
    FOLLOW_UP_1WEEK = "follow_up_1week"
    FINAL_FOLLOW_UP = "final_follow_up"


STAGE_ORDER: tuple[EmailTemplateType, ...] = tuple(EmailTemplateType)


class EmailStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


class SequenceStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EmailTemplate(BaseModel):
    """One stage of a follow-up sequence, before personalization."""

    model_config = ConfigDict(frozen=True)

    template_type: EmailTemplateType
    subject: str
    html_content: str
    text_content: str
    delay_hours: int = Field(ge=0)
    tags: tuple[str, ...] = ()


class FollowUpSequence(BaseModel):
    """All stages for one service type, in send order."""

    model_config = ConfigDict(frozen=True)

    service_type: ServiceType
    total_duration_days: int
    templates: tuple[EmailTemplate, ...]

    def template(self, template_type: EmailTemplateType) -> Optional[EmailTemplate]:
        for tpl in self.templates:
            if tpl.template_type == template_type:
                return tpl
        return None

    @property
    def stage_count(self) -> int:
        return len(self.templates)


class ContactFormData(BaseModel):
    """A submitted contact form. Service-specific extras are optional."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    service_type: str = Field(min_length=1)
    message: Optional[str] = None
    phone: Optional[str] = None
    preferred_contact: Optional[str] = None
    event_date: Optional[str] = None
    budget: Optional[str] = None
    experience: Optional[str] = None
    goals: Optional[str] = None

    @field_validator("service_type")
    @classmethod
    def _lower_service(cls, value: str) -> str:
        return value.lower()


class ScheduledEmail(BaseModel):
    """A fully personalized email with an absolute send time."""

    model_config = ConfigDict(frozen=True)

    email_id: str
    sequence_id: str
    template_type: EmailTemplateType
    to: str
    subject: str
    html_content: str
    text_content: str
    send_time: datetime
    status: EmailStatus = EmailStatus.SCHEDULED
    tags: tuple[str, ...] = ()
    metadata: dict[str, str] = Field(default_factory=dict)
    sent_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class SequenceMetadata(BaseModel):
    """Tracking record for one follow-up sequence."""

    model_config = ConfigDict(frozen=True)

    sequence_id: str
    service_type: ServiceType
    customer_email: str
    customer_name: str
    start_time: datetime
    total_duration_days: int
    status: SequenceStatus = SequenceStatus.ACTIVE
    emails_scheduled: int
    emails_sent: int = 0
    catalog_version: str = ""
    tags: tuple[str, ...] = ()
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EmailAutomationResult(BaseModel):
    """Outcome of initializing a follow-up sequence."""

    success: bool
    sequence_id: Optional[str] = None
    scheduled_emails: int = 0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class CancelResult(BaseModel):
    """Outcome of cancelling a follow-up sequence."""

    success: bool
    sequence_id: str
    cancelled_emails: int = 0
    already_cancelled: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
