"""Follow-up email sequences for submitted contact forms."""

from inquiry_engine.automation.catalog import SequenceCatalog
from inquiry_engine.automation.sequencer import EmailAutomationSequencer
from inquiry_engine.automation.store import InMemorySequenceStore, JsonFileSequenceStore, SequenceStore
from inquiry_engine.automation.transport import MailTransport, OutboxTransport

__all__ = [
    "EmailAutomationSequencer",
    "InMemorySequenceStore",
    "JsonFileSequenceStore",
    "MailTransport",
    "OutboxTransport",
    "SequenceCatalog",
    "SequenceStore",
]
