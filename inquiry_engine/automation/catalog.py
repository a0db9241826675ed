"""
Follow-up sequence catalog.

Each service type gets a five-stage sequence, from the instant confirmation
to a final check-in. Every template is validated when it is registered:
all stages present and in order, delays starting at zero and strictly
increasing, and only known placeholders. A broken catalog fails at
startup, never when an email is being scheduled.
"""

import logging
from typing import Iterable, Optional

from inquiry_engine.automation.personalization import text_to_html, unknown_tokens
from inquiry_engine.errors import CatalogError
from inquiry_engine.schemas.email_schema import (
    STAGE_ORDER,
    EmailTemplate,
    EmailTemplateType,
    FollowUpSequence,
)
from inquiry_engine.schemas.service_schema import ServiceType

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2025.1"

SEQUENCE_DELAYS: dict[ServiceType, tuple[int, ...]] = {
    ServiceType.PERFORMANCE: (0, 24, 72, 168, 336),
    ServiceType.TEACHING: (0, 24, 72, 168, 504),
    ServiceType.COLLABORATION: (0, 24, 72, 168, 240),
    ServiceType.GENERAL: (0, 24, 72, 168, 336),
}

STAGE_TAGS: dict[EmailTemplateType, str] = {
    EmailTemplateType.IMMEDIATE_CONFIRMATION: "confirmation",
    EmailTemplateType.FOLLOW_UP_24H: "follow_up",
    EmailTemplateType.FOLLOW_UP_3DAYS: "follow_up",
    EmailTemplateType.FOLLOW_UP_1WEEK: "follow_up",
    EmailTemplateType.FINAL_FOLLOW_UP: "final",
}

_SIGN_OFF = "Cheers,\n{{artist}}\n{{site_url}}"

# (subject, body) per stage, in STAGE_ORDER
DEFAULT_COPY: dict[ServiceType, tuple[tuple[str, str], ...]] = {
    ServiceType.PERFORMANCE: (
        (
            "Thanks for your performance inquiry, {{name}}!",
            "Hi {{name}},\n\n"
            "Thanks for reaching out about live music for your event. I've got your details "
            "and will check my calendar and come back to you within 24 hours with availability "
            "and a tailored quote.\n\n"
            "If anything changes in the meantime (date, venue, guest numbers), just reply to "
            "this email.",
        ),
        (
            "Your performance inquiry: next steps",
            "Hi {{name}},\n\n"
            "Following up on your {{service}} inquiry. The quickest way to lock in a date is a "
            "short call where we can talk through the set list, timings and any special songs.\n\n"
            "Reply with a couple of times that suit you and I'll send an invite.",
        ),
        (
            "Still planning live music for your event?",
            "Hi {{name}},\n\n"
            "Popular dates book out quickly, so I wanted to check in before yours goes. "
            "You can hear recent sets and see past events at {{site_url}}.\n\n"
            "Happy to answer any questions, big or small.",
        ),
        (
            "One last check-in about your event music",
            "Hi {{name}},\n\n"
            "I haven't heard back, so I'll assume plans are still taking shape. Whenever you're "
            "ready to talk music for the event, reply here and we'll pick things up.",
        ),
        (
            "Thank you, and future events",
            "Hi {{name}},\n\n"
            "Thanks again for thinking of me for your event. This is my last note about this "
            "inquiry. If another occasion comes up that needs live music, I'd love to hear "
            "from you.",
        ),
    ),
    ServiceType.TEACHING: (
        (
            "Welcome! Your guitar journey starts here",
            "Hi {{name}},\n\n"
            "Thanks for your interest in {{service}}. I'll be in touch within 24 hours to find "
            "a time for a trial lesson and talk about what you'd like to play.\n\n"
            "Lessons are one-on-one and shaped around your goals, whatever your level.",
        ),
        (
            "Let's book your trial lesson",
            "Hi {{name}},\n\n"
            "A trial lesson is the easiest way to see whether my teaching style suits you. "
            "It's 30 minutes and we'll map out a plan for your first few weeks.\n\n"
            "Reply with the days and times that work for you.",
        ),
        (
            "Your guitar goals are within reach",
            "Hi {{name}},\n\n"
            "Most students notice real progress within their first month of regular lessons. "
            "Package options and student stories are on {{site_url}}.\n\n"
            "Any questions about gear, practice time or where to start? Just ask.",
        ),
        (
            "Still keen to learn guitar?",
            "Hi {{name}},\n\n"
            "Just checking in. If timing or budget is the sticking point, tell me and we'll "
            "work out something that fits, including shorter or less frequent lessons.",
        ),
        (
            "Your guitar journey awaits (whenever you're ready)",
            "Hi {{name}},\n\n"
            "This is my last note about lessons for now. Whenever you're ready to pick up the "
            "guitar, reply to this email and we'll get started.",
        ),
    ),
    ServiceType.COLLABORATION: (
        (
            "Excited about your creative project, {{name}}!",
            "Hi {{name}},\n\n"
            "Thanks for reaching out about a {{service}} project. I'll read through your vision "
            "and come back within 24 hours with thoughts and next steps.\n\n"
            "Feel free to send demos, references or mood boards in the meantime.",
        ),
        (
            "Your creative project: let's dive deeper",
            "Hi {{name}},\n\n"
            "I'd love to hear more about where you want this project to go. A short call is "
            "usually the best way to agree on scope, timeline and how we'll work together.\n\n"
            "Reply with a few times that suit you.",
        ),
        (
            "Still interested in collaborating?",
            "Hi {{name}},\n\n"
            "Checking in on your project. Past collaborations and studio work are on "
            "{{site_url}} if you want a feel for how I work.",
        ),
        (
            "Final check-in about your creative project",
            "Hi {{name}},\n\n"
            "I haven't heard back, so I'll assume the project is on hold. If it comes back to "
            "life, reply here and we'll pick it up.",
        ),
        (
            "Thank you, and future creative opportunities",
            "Hi {{name}},\n\n"
            "Thanks for thinking of me for your project. This is my last note about it, but my "
            "door is always open for new ideas.",
        ),
    ),
    ServiceType.GENERAL: (
        (
            "Thanks for getting in touch!",
            "Hi {{name}},\n\n"
            "Thanks for your message. I read every one personally and will reply within "
            "24 hours.",
        ),
        (
            "Following up on your message",
            "Hi {{name}},\n\n"
            "Just following up on your {{service}}. If there's anything else I can help with, "
            "reply to this email.",
        ),
        (
            "Still here to help",
            "Hi {{name}},\n\n"
            "Checking in again. You can find lessons, performances and collaborations on "
            "{{site_url}}.",
        ),
        (
            "Anything else I can help with?",
            "Hi {{name}},\n\n"
            "I haven't heard back, so I'll assume your question is sorted. Reply any time if "
            "it isn't.",
        ),
        (
            "Thank you, and stay in touch",
            "Hi {{name}},\n\n"
            "Thanks again for getting in touch. This is my last follow-up. I hope to hear from "
            "you again.",
        ),
    ),
}


def build_template(
    service_type: ServiceType,
    template_type: EmailTemplateType,
    subject: str,
    text: str,
    delay_hours: int,
) -> EmailTemplate:
    """Build a template whose HTML body is rendered from its text body."""
    text_content = f"{text}\n\n{_SIGN_OFF}"
    return EmailTemplate(
        template_type=template_type,
        subject=subject,
        html_content=text_to_html(text_content),
        text_content=text_content,
        delay_hours=delay_hours,
        tags=(service_type.value, STAGE_TAGS[template_type]),
    )


def build_sequence(
    service_type: ServiceType,
    copy: Iterable[tuple[str, str]],
    delays: Iterable[int],
) -> FollowUpSequence:
    copy, delays = tuple(copy), tuple(delays)
    if len(copy) != len(STAGE_ORDER) or len(delays) != len(STAGE_ORDER):
        raise CatalogError(
            f"{service_type.value} sequence needs exactly {len(STAGE_ORDER)} stages"
        )
    templates = tuple(
        build_template(service_type, stage, subject, text, delay)
        for stage, (subject, text), delay in zip(STAGE_ORDER, copy, delays)
    )
    return FollowUpSequence(
        service_type=service_type,
        total_duration_days=delays[-1] // 24,
        templates=templates,
    )


def validate_sequence(sequence: FollowUpSequence) -> None:
    """
    Raises:
        CatalogError: On missing or out-of-order stages, delays that don't start
            at zero or don't strictly increase, or unknown placeholders.
    """
    name = sequence.service_type.value
    stages = tuple(t.template_type for t in sequence.templates)
    if stages != STAGE_ORDER:
        raise CatalogError(
            f"{name} sequence stages {[s.value for s in stages]} "
            f"must be {[s.value for s in STAGE_ORDER]}"
        )

    delays = [t.delay_hours for t in sequence.templates]
    if delays[0] != 0:
        raise CatalogError(f"{name} confirmation must send immediately, got {delays[0]}h")
    for earlier, later in zip(delays, delays[1:]):
        if later <= earlier:
            raise CatalogError(f"{name} sequence delays must strictly increase: {delays}")

    for template in sequence.templates:
        for part in (template.subject, template.html_content, template.text_content):
            bad = unknown_tokens(part)
            if bad:
                raise CatalogError(
                    f"{name}/{template.template_type.value} uses unknown placeholders: "
                    f"{sorted(bad)}"
                )


class SequenceCatalog:
    """Versioned, validated set of follow-up sequences keyed by service type."""

    def __init__(
        self,
        sequences: Optional[Iterable[FollowUpSequence]] = None,
        version: str = CATALOG_VERSION,
    ) -> None:
        self.version = version
        self._sequences: dict[ServiceType, FollowUpSequence] = {}
        for sequence in sequences if sequences is not None else default_sequences():
            self.register(sequence)
        logger.debug("Catalog %s loaded with %d sequences", version, len(self._sequences))

    def register(self, sequence: FollowUpSequence) -> None:
        """Validate and add a sequence for a service that has none yet."""
        if sequence.service_type in self._sequences:
            raise CatalogError(f"{sequence.service_type.value} sequence is already registered")
        validate_sequence(sequence)
        self._sequences[sequence.service_type] = sequence

    def get(self, service_type: ServiceType) -> Optional[FollowUpSequence]:
        return self._sequences.get(service_type)

    def services(self) -> list[ServiceType]:
        return list(self._sequences)

    @property
    def template_count(self) -> int:
        return sum(sequence.stage_count for sequence in self._sequences.values())

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._sequences

    def __len__(self) -> int:
        return len(self._sequences)


def default_sequences() -> list[FollowUpSequence]:
    return [
        build_sequence(service_type, DEFAULT_COPY[service_type], SEQUENCE_DELAYS[service_type])
        for service_type in ServiceType
    ]
