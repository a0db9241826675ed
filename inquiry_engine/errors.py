"""Error taxonomy shared by the pricing, inquiry and automation modules.

Every expected failure carries an ``ErrorKind`` so the inquiry engine can
store it on its state and the sequencer can return it in a result object
instead of raising.
"""

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    """Recoverable failure categories."""
    VALIDATION = "validation"
    FEATURE_DISABLED = "feature_disabled"
    BOOKING_CONFLICT = "booking_conflict"
    TRANSPORT_UNAVAILABLE = "transport_unavailable"
    NOT_FOUND = "not_found"


class InquiryEngineError(Exception):
    """Base class for recoverable engine errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(InquiryEngineError):
    """Inquiry or form data is missing fields or holds values outside the allowed set."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None) -> None:
        super().__init__(message)
        self.fields: list[str] = list(fields or [])


class FeatureDisabledError(InquiryEngineError):
    """Raised when consultation booking or email automation is switched off."""

    kind = ErrorKind.FEATURE_DISABLED


class BookingConflictError(InquiryEngineError):
    """Raised when a consultation is requested while another one is still active."""

    kind = ErrorKind.BOOKING_CONFLICT


class TransportUnavailableError(InquiryEngineError):
    """A downstream mail or storage collaborator could not be reached."""

    kind = ErrorKind.TRANSPORT_UNAVAILABLE


class NotFoundError(InquiryEngineError):
    """An id or service type is unknown to the catalog or store."""

    kind = ErrorKind.NOT_FOUND


class CatalogError(Exception):
    """A follow-up catalog entry is malformed. Raised at load time, never recovered."""


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current phase."""
