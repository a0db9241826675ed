"""
Email automation sequencer: turns a contact form submission into a
personalized, timed follow-up sequence and manages its lifecycle.

Scheduling is declarative. Every email is stored with an absolute
``send_time`` and handed to the mail transport up front; a dispatcher
delivers them when due and reports back through ``record_delivery``.
Expected failures (disabled automation, bad form data, an unreachable
store) come back as result objects instead of exceptions.

Usage:
    sequencer = EmailAutomationSequencer(store=JsonFileSequenceStore("sequences.json"))
    result = sequencer.initialize_follow_up_sequence(
        {"name": "Emma", "email": "emma@example.com", "serviceType": "teaching"}
    )
    sequencer.cancel_sequence(result.sequence_id)
"""

import hashlib
import uuid
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, TypedDict

from inquiry_engine.automation.catalog import SequenceCatalog
from inquiry_engine.automation.personalization import (
    DEFAULT_SAMPLE_DATA,
    build_token_values,
    personalize,
)
from inquiry_engine.automation.store import InMemorySequenceStore, SequenceStore
from inquiry_engine.automation.transport import MailTransport, OutboxTransport
from inquiry_engine.clock import Clock, SystemClock
from inquiry_engine.config import AppConfig, settings
from inquiry_engine.errors import (
    ErrorKind,
    InquiryEngineError,
    NotFoundError,
    TransportUnavailableError,
    ValidationError,
)
from inquiry_engine.logging_context import get_inquiry_logger, set_correlation_id
from inquiry_engine.schemas.email_schema import (
    CancelResult,
    ContactFormData,
    EmailAutomationResult,
    EmailTemplateType,
    FollowUpSequence,
    ScheduledEmail,
    SequenceMetadata,
    SequenceStatus,
)
from inquiry_engine.schemas.journey_schema import ContactContext
from inquiry_engine.schemas.service_schema import ServiceType, parse_service_type
from inquiry_engine.utils import is_valid_email, normalize_email, parse_model

logger = get_inquiry_logger(__name__)

DEFAULT_CANCEL_REASON = "user_request"
DISABLED_ERROR = "disabled"
# Debug records kept in memory; older ones are dropped first.
DEBUG_EMAIL_LIMIT = 200


class EmailPreview(TypedDict):
    """A rendered template, as the recipient would see it."""

    subject: str
    html_content: str
    text_content: str


class EmailAutomationSequencer:
    """Schedules and cancels follow-up sequences for submitted contact forms."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        catalog: Optional[SequenceCatalog] = None,
        store: Optional[SequenceStore] = None,
        transport: Optional[MailTransport] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or settings
        self.catalog = catalog or SequenceCatalog()
        self.store = store if store is not None else InMemorySequenceStore()
        self.transport = transport if transport is not None else OutboxTransport()
        self.clock = clock or SystemClock()
        self.debug_mode = self.config.automation.debug_mode
        self._enabled = self.config.automation.enabled
        # Keeps ids from two sequencers with the same submission apart.
        self._nonce = uuid.uuid4().hex
        self._debug_emails: deque[ScheduledEmail] = deque(maxlen=DEBUG_EMAIL_LIMIT)
        # Cancelled sequences the mail service has confirmed.
        self._transport_cancelled: set[str] = set()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        logger.info("Email automation %s", "enabled" if enabled else "disabled")

    def get_status(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "debug_mode": self.debug_mode,
            "templates_count": self.catalog.template_count,
            "catalog_version": self.catalog.version,
        }

    @property
    def debug_emails(self) -> list[ScheduledEmail]:
        """Emails recorded instead of submitted while in debug mode."""
        return list(self._debug_emails)

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def initialize_follow_up_sequence(
        self, form_data: Any, context: Optional[ContactContext] = None
    ) -> EmailAutomationResult:
        """
        Schedule the full follow-up sequence for a contact form submission.

        Each call starts an independent sequence; resubmitting the same form
        schedules a second one.
        """
        if not self._enabled:
            logger.info("Email automation disabled; no sequence scheduled")
            return EmailAutomationResult(
                success=False, error=DISABLED_ERROR, error_kind=ErrorKind.FEATURE_DISABLED
            )

        try:
            form = self._validate_form(form_data)
            service_type = parse_service_type(form.service_type)
            if service_type is None:
                raise ValidationError(
                    f"Unknown service type '{form.service_type}'", fields=["service_type"]
                )
            sequence = self.catalog.get(service_type)
            if sequence is None:
                raise NotFoundError(f"No follow-up sequence for '{service_type.value}'")

            submitted_at = self.clock.now()
            to = normalize_email(form.email)
            sequence_id = self._new_sequence_id(service_type, to, submitted_at)
            set_correlation_id(sequence_id)
            emails = self._build_emails(sequence_id, sequence, form, to, submitted_at, context)
            metadata = SequenceMetadata(
                sequence_id=sequence_id,
                service_type=service_type,
                customer_email=to,
                customer_name=form.name,
                start_time=submitted_at,
                total_duration_days=sequence.total_duration_days,
                emails_scheduled=len(emails),
                catalog_version=self.catalog.version,
                tags=self._context_tags(context),
            )
            self.store.save_sequence(metadata, emails)
        except InquiryEngineError as exc:
            logger.warning("Follow-up sequence not scheduled (%s): %s", exc.kind.value, exc.message)
            return EmailAutomationResult(success=False, error=exc.message, error_kind=exc.kind)

        self._dispatch(emails)
        logger.info(
            "Scheduled %d follow-up emails for %s (%s)",
            len(emails), metadata.customer_email, service_type.value,
        )
        return EmailAutomationResult(
            success=True, sequence_id=sequence_id, scheduled_emails=len(emails)
        )

    def cancel_sequence(self, sequence_id: str, reason: str = DEFAULT_CANCEL_REASON) -> CancelResult:
        """Cancel every unsent email of a sequence. Safe to call more than once."""
        set_correlation_id(sequence_id)
        try:
            existing = self.store.get_sequence(sequence_id)
            if existing is None:
                raise NotFoundError(f"Sequence {sequence_id} not found")
            already_cancelled = existing.status == SequenceStatus.CANCELLED
            metadata, cancelled = self.store.cancel_sequence(sequence_id, reason, self.clock.now())
        except InquiryEngineError as exc:
            logger.warning("Cancel of %s failed: %s", sequence_id, exc.message)
            return CancelResult(
                success=False,
                sequence_id=sequence_id,
                error=exc.kind.value,
                error_kind=exc.kind,
            )

        if (
            metadata.status == SequenceStatus.CANCELLED
            and not self.debug_mode
            and sequence_id not in self._transport_cancelled
        ):
            try:
                self.transport.cancel(sequence_id, metadata.cancel_reason or reason)
            except TransportUnavailableError as exc:
                logger.warning("Mail service not told about cancellation of %s: %s", sequence_id, exc.message)
            else:
                self._transport_cancelled.add(sequence_id)

        if not already_cancelled:
            logger.info(
                "Sequence %s %s (%d emails cancelled, reason: %s)",
                sequence_id, metadata.status.value, cancelled, reason,
            )
        return CancelResult(
            success=True,
            sequence_id=sequence_id,
            cancelled_emails=cancelled,
            already_cancelled=already_cancelled,
        )

    def record_delivery(self, email_id: str) -> SequenceMetadata:
        """
        Mark one email as sent (called by the dispatcher after delivery).

        Raises:
            NotFoundError: If the email id is unknown.
            TransportUnavailableError: If the store can't be reached.
        """
        metadata = self.store.mark_sent(email_id, self.clock.now())
        if metadata.status == SequenceStatus.COMPLETED:
            logger.info("Sequence %s completed", metadata.sequence_id)
        return metadata

    def get_sequence(self, sequence_id: str) -> Optional[SequenceMetadata]:
        return self.store.get_sequence(sequence_id)

    def get_emails(self, sequence_id: str) -> list[ScheduledEmail]:
        return self.store.get_emails(sequence_id)

    # ------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------

    def get_sequence_templates(self, service_type: Any) -> Optional[FollowUpSequence]:
        resolved = parse_service_type(service_type)
        return self.catalog.get(resolved) if resolved else None

    def preview_email(
        self,
        service_type: Any,
        template_type: Any,
        sample_data: Optional[Mapping[str, str]] = None,
    ) -> Optional[EmailPreview]:
        """Render one stage with sample recipient data. Returns None for unknown service or stage."""
        sequence = self.get_sequence_templates(service_type)
        if sequence is None:
            return None
        try:
            stage = EmailTemplateType(template_type)
        except ValueError:
            return None
        template = sequence.template(stage)
        if template is None:
            return None

        sample = {**DEFAULT_SAMPLE_DATA, **(sample_data or {})}
        values = build_token_values(sample["name"], sample["email"], sequence.service_type, self.config.brand)
        return EmailPreview(
            subject=personalize(template.subject, values),
            html_content=personalize(template.html_content, values, escape_html=True),
            text_content=personalize(template.text_content, values),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_form(self, form_data: Any) -> ContactFormData:
        form = parse_model(ContactFormData, form_data, "contact form")
        if not is_valid_email(form.email):
            raise ValidationError("Invalid contact form - invalid fields: email.", fields=["email"])
        return form

    def _new_sequence_id(self, service_type: ServiceType, email: str, submitted_at: datetime) -> str:
        epoch_ms = int(submitted_at.timestamp() * 1000)
        attempt = 0
        while True:
            seed = f"{email}|{service_type.value}|{submitted_at.isoformat()}|{self._nonce}|{attempt}"
            digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]
            sequence_id = f"seq_{service_type.value}_{epoch_ms}_{digest}"
            if self.store.get_sequence(sequence_id) is None:
                return sequence_id
            logger.debug("Sequence id %s taken, retrying", sequence_id)
            attempt += 1

    def _context_tags(self, context: Optional[ContactContext]) -> tuple[str, ...]:
        if context is None:
            return ()
        tags = [f"referral:{context.referral_source_type.value}"]
        if context.primary_service_interest is not None:
            tags.append(f"interest:{context.primary_service_interest.value}")
        return tuple(tags)

    def _build_emails(
        self,
        sequence_id: str,
        sequence: FollowUpSequence,
        form: ContactFormData,
        to: str,
        submitted_at: datetime,
        context: Optional[ContactContext],
    ) -> list[ScheduledEmail]:
        values = build_token_values(form.name, to, sequence.service_type, self.config.brand)
        extra_tags = self._context_tags(context)
        metadata = {
            "service_type": sequence.service_type.value,
            "submitted_at": submitted_at.isoformat(),
            "customer_name": form.name,
        }
        if context is not None:
            metadata["referral_source"] = context.referral_source_type.value

        return [
            ScheduledEmail(
                email_id=f"{sequence_id}_{index + 1}",
                sequence_id=sequence_id,
                template_type=template.template_type,
                to=to,
                subject=personalize(template.subject, values),
                html_content=personalize(template.html_content, values, escape_html=True),
                text_content=personalize(template.text_content, values),
                send_time=submitted_at + timedelta(hours=template.delay_hours),
                tags=template.tags + extra_tags,
                metadata=metadata,
            )
            for index, template in enumerate(sequence.templates)
        ]

    def _dispatch(self, emails: list[ScheduledEmail]) -> None:
        for email in emails:
            if self.debug_mode:
                self._debug_emails.append(email)
                logger.info(
                    "[debug] %s to %s at %s: %s",
                    email.template_type.value, email.to, email.send_time.isoformat(), email.subject,
                )
                continue
            try:
                self.transport.submit(email)
            except TransportUnavailableError as exc:
                logger.warning(
                    "Mail service rejected %s; it stays scheduled in the store: %s",
                    email.email_id, exc.message,
                )
