"""Tests for sequence persistence."""

import json
import os
from datetime import timedelta

import pytest

from inquiry_engine.automation.store import InMemorySequenceStore, JsonFileSequenceStore
from inquiry_engine.errors import NotFoundError, TransportUnavailableError
from inquiry_engine.schemas.email_schema import (
    EmailStatus,
    EmailTemplateType,
    ScheduledEmail,
    SequenceMetadata,
    SequenceStatus,
)
from inquiry_engine.schemas.service_schema import ServiceType
from tests.conftest import START

SEQUENCE_ID = "seq_general_1742032800000_abcd1234"


def _sequence(sequence_id=SEQUENCE_ID, stages=2):
    metadata = SequenceMetadata(
        sequence_id=sequence_id,
        service_type=ServiceType.GENERAL,
        customer_email="emma@example.com",
        customer_name="Emma",
        start_time=START,
        total_duration_days=14,
        emails_scheduled=stages,
    )
    emails = [
        ScheduledEmail(
            email_id=f"{sequence_id}_{index + 1}",
            sequence_id=sequence_id,
            template_type=stage,
            to="emma@example.com",
            subject=f"Stage {index + 1}",
            html_content="<p>Hi Emma</p>",
            text_content="Hi Emma",
            send_time=START + timedelta(hours=24 * index),
        )
        for index, stage in enumerate(list(EmailTemplateType)[:stages])
    ]
    return metadata, emails


class TestInMemoryStore:
    def test_save_and_get(self, store):
        metadata, emails = _sequence()
        store.save_sequence(metadata, emails)
        assert store.get_sequence(SEQUENCE_ID) == metadata
        assert store.get_emails(SEQUENCE_ID) == emails
        assert store.list_sequences(SequenceStatus.ACTIVE) == [metadata]

    def test_duplicate_id_rejected(self, store):
        store.save_sequence(*_sequence())
        with pytest.raises(ValueError, match="already exists"):
            store.save_sequence(*_sequence())

    def test_unknown_sequence(self, store):
        assert store.get_sequence("seq_missing") is None
        assert store.get_emails("seq_missing") == []

    def test_cancel_only_touches_scheduled_emails(self, store):
        store.save_sequence(*_sequence())
        store.mark_sent(f"{SEQUENCE_ID}_1", START)

        later = START + timedelta(hours=2)
        metadata, cancelled = store.cancel_sequence(SEQUENCE_ID, "replied", later)

        assert cancelled == 1
        assert metadata.status == SequenceStatus.CANCELLED
        assert metadata.cancel_reason == "replied"
        assert metadata.cancelled_at == later
        statuses = [e.status for e in store.get_emails(SEQUENCE_ID)]
        assert statuses == [EmailStatus.SENT, EmailStatus.CANCELLED]

    def test_cancel_twice_changes_nothing(self, store):
        store.save_sequence(*_sequence())
        first, _ = store.cancel_sequence(SEQUENCE_ID, "user_request", START)
        second, cancelled = store.cancel_sequence(SEQUENCE_ID, "other", START + timedelta(days=1))
        assert cancelled == 0
        assert second == first

    def test_cancel_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.cancel_sequence("seq_missing", "user_request", START)

    def test_mark_sent_completes_sequence(self, store):
        store.save_sequence(*_sequence())
        metadata = store.mark_sent(f"{SEQUENCE_ID}_1", START)
        assert metadata.emails_sent == 1
        assert metadata.status == SequenceStatus.ACTIVE

        metadata = store.mark_sent(f"{SEQUENCE_ID}_2", START + timedelta(days=1))
        assert metadata.emails_sent == 2
        assert metadata.status == SequenceStatus.COMPLETED
        assert metadata.completed_at == START + timedelta(days=1)

    def test_mark_sent_twice_counts_once(self, store):
        store.save_sequence(*_sequence())
        store.mark_sent(f"{SEQUENCE_ID}_1", START)
        assert store.mark_sent(f"{SEQUENCE_ID}_1", START).emails_sent == 1

    def test_mark_sent_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.mark_sent("nope_1", START)

    def test_due_emails(self, store):
        store.save_sequence(*_sequence())
        assert [e.email_id for e in store.due_emails(START)] == [f"{SEQUENCE_ID}_1"]
        assert len(store.due_emails(START + timedelta(days=2))) == 2

    def test_cancelled_sequences_have_nothing_due(self, store):
        store.save_sequence(*_sequence())
        store.cancel_sequence(SEQUENCE_ID, "user_request", START)
        assert store.due_emails(START + timedelta(days=30)) == []

    def test_unavailable_store(self, store):
        store.available = False
        with pytest.raises(TransportUnavailableError):
            store.get_sequence(SEQUENCE_ID)
        with pytest.raises(TransportUnavailableError):
            store.save_sequence(*_sequence())

    def test_reset(self, store):
        store.save_sequence(*_sequence())
        store.reset()
        assert store.list_sequences() == []


class TestJsonFileStore:
    def test_sequences_survive_restart(self, tmp_path):
        path = tmp_path / "sequences.json"
        JsonFileSequenceStore(path).save_sequence(*_sequence())

        reopened = JsonFileSequenceStore(path)
        metadata = reopened.get_sequence(SEQUENCE_ID)
        assert metadata.customer_email == "emma@example.com"
        assert metadata.start_time == START
        assert len(reopened.get_emails(SEQUENCE_ID)) == 2

    def test_cancel_after_restart(self, tmp_path):
        path = tmp_path / "sequences.json"
        JsonFileSequenceStore(path).save_sequence(*_sequence())

        _, cancelled = JsonFileSequenceStore(path).cancel_sequence(SEQUENCE_ID, "user_request", START)
        assert cancelled == 2
        assert JsonFileSequenceStore(path).get_sequence(SEQUENCE_ID).status == SequenceStatus.CANCELLED

    def test_document_format(self, tmp_path):
        path = tmp_path / "nested" / "sequences.json"
        JsonFileSequenceStore(path).save_sequence(*_sequence())

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert document["sequences"][0]["metadata"]["sequence_id"] == SEQUENCE_ID
        assert list(tmp_path.joinpath("nested").glob(".sequences-*.tmp")) == []

    def test_missing_file_is_empty_store(self, tmp_path):
        store = JsonFileSequenceStore(tmp_path / "absent.json")
        assert store.list_sequences() == []

    def test_in_memory_store_is_the_base(self, tmp_path):
        assert isinstance(JsonFileSequenceStore(tmp_path / "s.json"), InMemorySequenceStore)


def _fail_next_replace(monkeypatch):
    """Make the next os.replace raise, then behave normally again."""
    real_replace = os.replace
    calls = []

    def replace(src, dst):
        calls.append(dst)
        if len(calls) == 1:
            raise OSError("disk full")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace)
    return calls


class TestJsonFileStoreWriteFailures:
    def test_failed_save_leaves_nothing_behind(self, tmp_path, monkeypatch):
        path = tmp_path / "sequences.json"
        store = JsonFileSequenceStore(path)
        _fail_next_replace(monkeypatch)

        with pytest.raises(TransportUnavailableError):
            store.save_sequence(*_sequence())

        assert store.get_sequence(SEQUENCE_ID) is None
        assert not path.exists()
        assert list(tmp_path.glob(".sequences-*.tmp")) == []

    def test_failed_cancel_keeps_memory_and_disk_in_step(self, tmp_path, monkeypatch):
        path = tmp_path / "sequences.json"
        store = JsonFileSequenceStore(path)
        store.save_sequence(*_sequence())
        _fail_next_replace(monkeypatch)

        with pytest.raises(TransportUnavailableError):
            store.cancel_sequence(SEQUENCE_ID, "replied", START)
        assert store.get_sequence(SEQUENCE_ID).status == SequenceStatus.ACTIVE
        assert [e.status for e in store.get_emails(SEQUENCE_ID)] == [EmailStatus.SCHEDULED] * 2

        metadata, cancelled = store.cancel_sequence(SEQUENCE_ID, "replied", START)
        assert cancelled == 2
        assert metadata.status == SequenceStatus.CANCELLED
        assert JsonFileSequenceStore(path).get_sequence(SEQUENCE_ID).status == SequenceStatus.CANCELLED

    def test_failed_mark_sent_is_rolled_back(self, tmp_path, monkeypatch):
        path = tmp_path / "sequences.json"
        store = JsonFileSequenceStore(path)
        store.save_sequence(*_sequence())
        _fail_next_replace(monkeypatch)

        with pytest.raises(TransportUnavailableError):
            store.mark_sent(f"{SEQUENCE_ID}_1", START)
        assert store.get_sequence(SEQUENCE_ID).emails_sent == 0
        assert store.get_emails(SEQUENCE_ID)[0].status == EmailStatus.SCHEDULED
        assert [e.email_id for e in store.due_emails(START)] == [f"{SEQUENCE_ID}_1"]

        assert store.mark_sent(f"{SEQUENCE_ID}_1", START).emails_sent == 1
        assert JsonFileSequenceStore(path).get_sequence(SEQUENCE_ID).emails_sent == 1

    def test_directory_blocked_by_a_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = JsonFileSequenceStore(blocker / "sequences.json")

        with pytest.raises(TransportUnavailableError):
            store.save_sequence(*_sequence())
        assert store.list_sequences() == []
