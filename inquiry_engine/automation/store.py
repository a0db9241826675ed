"""
Persistence for follow-up sequences.

In production this would be the CRM or email platform's scheduled-send
API. ``InMemorySequenceStore`` backs tests and the demo;
``JsonFileSequenceStore`` keeps sequences across restarts in a single JSON
document that is rewritten atomically (temp file + ``os.replace``), so a
cancellation issued after a restart still finds its sequence.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Union

from inquiry_engine.errors import NotFoundError, TransportUnavailableError
from inquiry_engine.schemas.email_schema import (
    EmailStatus,
    ScheduledEmail,
    SequenceMetadata,
    SequenceStatus,
)

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


class SequenceStore(Protocol):
    """Where sequences and their scheduled emails live."""

    def save_sequence(self, metadata: SequenceMetadata, emails: list[ScheduledEmail]) -> None: ...

    def get_sequence(self, sequence_id: str) -> Optional[SequenceMetadata]: ...

    def get_emails(self, sequence_id: str) -> list[ScheduledEmail]: ...

    def cancel_sequence(
        self, sequence_id: str, reason: str, cancelled_at: datetime
    ) -> tuple[SequenceMetadata, int]: ...

    def mark_sent(self, email_id: str, sent_at: datetime) -> SequenceMetadata: ...

    def due_emails(self, now: datetime) -> list[ScheduledEmail]: ...

    def list_sequences(self, status: Optional[SequenceStatus] = None) -> list[SequenceMetadata]: ...


class InMemorySequenceStore:
    """Process-local store. Set ``available = False`` to simulate an outage."""

    def __init__(self) -> None:
        self._sequences: dict[str, SequenceMetadata] = {}
        self._emails: dict[str, list[ScheduledEmail]] = {}
        self.available = True

    def save_sequence(self, metadata: SequenceMetadata, emails: list[ScheduledEmail]) -> None:
        """Store a new sequence and all of its emails together."""
        self._check_available()
        if metadata.sequence_id in self._sequences:
            raise ValueError(f"Sequence {metadata.sequence_id} already exists")
        self._apply(metadata, list(emails))
        logger.debug("Saved sequence %s with %d emails", metadata.sequence_id, len(emails))

    def get_sequence(self, sequence_id: str) -> Optional[SequenceMetadata]:
        self._check_available()
        return self._sequences.get(sequence_id)

    def get_emails(self, sequence_id: str) -> list[ScheduledEmail]:
        self._check_available()
        return list(self._emails.get(sequence_id, []))

    def list_sequences(self, status: Optional[SequenceStatus] = None) -> list[SequenceMetadata]:
        self._check_available()
        return [m for m in self._sequences.values() if status is None or m.status == status]

    def cancel_sequence(
        self, sequence_id: str, reason: str, cancelled_at: datetime
    ) -> tuple[SequenceMetadata, int]:
        """
        Cancel every still-scheduled email of a sequence.

        Already-sent emails are left alone, and cancelling a sequence that is
        no longer active changes nothing.

        Returns:
            The updated metadata and how many emails were cancelled.

        Raises:
            NotFoundError: If the sequence id is unknown.
        """
        self._check_available()
        metadata = self._sequences.get(sequence_id)
        if metadata is None:
            raise NotFoundError(f"Sequence {sequence_id} not found")
        if metadata.status != SequenceStatus.ACTIVE:
            return metadata, 0

        cancelled = 0
        emails = []
        for email in self._emails[sequence_id]:
            if email.status == EmailStatus.SCHEDULED:
                email = email.model_copy(
                    update={"status": EmailStatus.CANCELLED, "cancelled_at": cancelled_at}
                )
                cancelled += 1
            emails.append(email)

        metadata = metadata.model_copy(update={
            "status": SequenceStatus.CANCELLED,
            "cancel_reason": reason,
            "cancelled_at": cancelled_at,
        })
        self._apply(metadata, emails)
        return metadata, cancelled

    def mark_sent(self, email_id: str, sent_at: datetime) -> SequenceMetadata:
        """
        Record delivery of one email. A sequence with nothing left to send
        becomes ``completed``.

        Raises:
            NotFoundError: If no stored email has this id.
        """
        self._check_available()
        for sequence_id, emails in self._emails.items():
            for index, email in enumerate(emails):
                if email.email_id == email_id:
                    return self._mark_sent(sequence_id, index, sent_at)
        raise NotFoundError(f"Email {email_id} not found")

    def _mark_sent(self, sequence_id: str, index: int, sent_at: datetime) -> SequenceMetadata:
        emails = list(self._emails[sequence_id])
        metadata = self._sequences[sequence_id]
        email = emails[index]
        if email.status != EmailStatus.SCHEDULED:
            logger.debug("Email %s already %s", email.email_id, email.status.value)
            return metadata

        emails[index] = email.model_copy(update={"status": EmailStatus.SENT, "sent_at": sent_at})
        update: dict = {"emails_sent": metadata.emails_sent + 1}
        if all(e.status != EmailStatus.SCHEDULED for e in emails) and metadata.status == SequenceStatus.ACTIVE:
            update.update(status=SequenceStatus.COMPLETED, completed_at=sent_at)
        metadata = metadata.model_copy(update=update)
        self._apply(metadata, emails)
        return metadata

    def due_emails(self, now: datetime) -> list[ScheduledEmail]:
        """Scheduled emails of active sequences whose send time has arrived, oldest first."""
        self._check_available()
        due = [
            email
            for sequence_id, metadata in self._sequences.items()
            if metadata.status == SequenceStatus.ACTIVE
            for email in self._emails[sequence_id]
            if email.status == EmailStatus.SCHEDULED and email.send_time <= now
        ]
        return sorted(due, key=lambda e: e.send_time)

    def reset(self) -> None:
        """Clear all sequences. Used by test fixtures for isolation."""
        self._sequences.clear()
        self._emails.clear()
        self._commit()

    def _check_available(self) -> None:
        if not self.available:
            raise TransportUnavailableError("Sequence store is unavailable")

    def _apply(self, metadata: SequenceMetadata, emails: list[ScheduledEmail]) -> None:
        """Install one sequence's new state; restores the previous state if it can't be persisted."""
        sequence_id = metadata.sequence_id
        previous = self._sequences.get(sequence_id), self._emails.get(sequence_id)
        self._sequences[sequence_id] = metadata
        self._emails[sequence_id] = emails
        try:
            self._commit()
        except TransportUnavailableError:
            if previous[0] is None:
                del self._sequences[sequence_id]
                del self._emails[sequence_id]
            else:
                self._sequences[sequence_id], self._emails[sequence_id] = previous
            raise

    def _commit(self) -> None:
        """
        Persist the current contents. In-memory stores have nothing to do.

        Raises:
            TransportUnavailableError: If the contents could not be written.
        """


class JsonFileSequenceStore(InMemorySequenceStore):
    """Store backed by one JSON document on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        document = json.loads(self.path.read_text(encoding="utf-8"))
        for entry in document.get("sequences", []):
            metadata = SequenceMetadata.model_validate(entry["metadata"])
            self._sequences[metadata.sequence_id] = metadata
            self._emails[metadata.sequence_id] = [
                ScheduledEmail.model_validate(email) for email in entry["emails"]
            ]
        logger.info("Loaded %d sequences from %s", len(self._sequences), self.path)

    def _commit(self) -> None:
        document = {
            "version": STORE_FORMAT_VERSION,
            "sequences": [
                {
                    "metadata": metadata.model_dump(mode="json"),
                    "emails": [e.model_dump(mode="json") for e in self._emails[sequence_id]],
                }
                for sequence_id, metadata in self._sequences.items()
            ],
        }
        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".sequences-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error("Could not write sequence store %s: %s", self.path, exc)
            raise TransportUnavailableError(f"Sequence store {self.path} could not be written") from exc
