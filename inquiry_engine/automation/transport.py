"""
Boundary to the mail delivery service.

The engine never sends email itself: it hands fully personalized, timed
messages to a ``MailTransport``. ``OutboxTransport`` keeps them in memory
for a dispatcher process or for tests; the dispatcher drains it with
``take_due`` so delivered emails don't pile up.
"""

import logging
from datetime import datetime
from typing import Protocol

from inquiry_engine.errors import TransportUnavailableError
from inquiry_engine.schemas.email_schema import ScheduledEmail

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    def submit(self, email: ScheduledEmail) -> None: ...

    def cancel(self, sequence_id: str, reason: str) -> None: ...


class OutboxTransport:
    """In-memory outbox. Set ``available = False`` to simulate an outage."""

    def __init__(self) -> None:
        self.outbox: list[ScheduledEmail] = []
        self.cancellations: list[tuple[str, str]] = []
        self.available = True

    def submit(self, email: ScheduledEmail) -> None:
        if not self.available:
            raise TransportUnavailableError("Mail service is unavailable")
        self.outbox.append(email)
        logger.debug("Queued %s for %s at %s", email.template_type.value, email.to, email.send_time)

    def cancel(self, sequence_id: str, reason: str) -> None:
        if not self.available:
            raise TransportUnavailableError("Mail service is unavailable")
        self.outbox = [e for e in self.outbox if e.sequence_id != sequence_id]
        self.cancellations.append((sequence_id, reason))
        logger.debug("Dropped queued emails for %s (%s)", sequence_id, reason)

    def take_due(self, now: datetime) -> list[ScheduledEmail]:
        """Remove and return queued emails whose send time has arrived, oldest first."""
        due = sorted((e for e in self.outbox if e.send_time <= now), key=lambda e: e.send_time)
        self.outbox = [e for e in self.outbox if e.send_time > now]
        return due

    def emails_for(self, sequence_id: str) -> list[ScheduledEmail]:
        return [e for e in self.outbox if e.sequence_id == sequence_id]

    def reset(self) -> None:
        """Clear the outbox. Used by test fixtures for isolation."""
        self.outbox.clear()
        self.cancellations.clear()
