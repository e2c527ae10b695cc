"""
Booking error taxonomy
"""
from enum import Enum
from typing import List, Optional

from google.api_core import exceptions as gcp_exceptions


class BookingError(Exception):
    """Base class for booking failures"""


class BookingValidationError(BookingError):
    """One or more form fields are missing or invalid; carries every message"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class BookingNotFoundError(BookingError):
    """No booking with the given id (or not visible to the caller)"""

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class BookingStoreError(BookingError):
    """The backing store rejected or failed a call"""

    def __init__(self, message: str, code: Optional[str] = None, cause: Optional[BaseException] = None):
        self.code = code
        self.cause = cause
        super().__init__(message)


class InvalidWorkflowState(BookingError):
    """Operation not allowed in the workflow's current state"""


class SubmissionErrorKind(str, Enum):
    PERMISSION = "permission"
    AUTH = "auth"
    NETWORK = "network"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value


SUBMISSION_MESSAGES = {
    SubmissionErrorKind.PERMISSION: "Permission denied. Please ensure you are signed in with proper access.",
    SubmissionErrorKind.AUTH: "Authentication error. Please sign in again.",
    SubmissionErrorKind.NETWORK: "Network error. Please check your internet connection.",
    SubmissionErrorKind.UNAVAILABLE: "Service temporarily unavailable. Please try again later.",
    SubmissionErrorKind.TIMEOUT: "Booking submission timed out. Please try again.",
    SubmissionErrorKind.UNKNOWN: "Failed to submit booking. Please try again.",
}


class SubmissionError(BookingError):
    """Creating the booking failed; the quote is kept for a retry"""

    def __init__(self, kind: SubmissionErrorKind, cause: Optional[BaseException] = None):
        self.kind = kind
        self.cause = cause
        self.user_message = SUBMISSION_MESSAGES[kind]
        super().__init__(self.user_message)


_CODE_KINDS = {
    'permission-denied': SubmissionErrorKind.PERMISSION,
    'unauthenticated': SubmissionErrorKind.AUTH,
    'network-request-failed': SubmissionErrorKind.NETWORK,
    'unavailable': SubmissionErrorKind.UNAVAILABLE,
    'resource-exhausted': SubmissionErrorKind.UNAVAILABLE,
    'deadline-exceeded': SubmissionErrorKind.TIMEOUT,
}


def classify_submission_error(error: BaseException) -> SubmissionErrorKind:
    """Map a store failure to the user-facing category"""
    if isinstance(error, BookingStoreError) and error.cause is not None:
        kind = classify_submission_error(error.cause)
        if kind != SubmissionErrorKind.UNKNOWN:
            return kind

    if isinstance(error, gcp_exceptions.PermissionDenied):
        return SubmissionErrorKind.PERMISSION
    if isinstance(error, gcp_exceptions.Unauthenticated):
        return SubmissionErrorKind.AUTH
    if isinstance(error, (gcp_exceptions.ServiceUnavailable, gcp_exceptions.ResourceExhausted)):
        return SubmissionErrorKind.UNAVAILABLE
    if isinstance(error, (gcp_exceptions.DeadlineExceeded, TimeoutError)):
        return SubmissionErrorKind.TIMEOUT
    if isinstance(error, (ConnectionError, OSError)):
        return SubmissionErrorKind.NETWORK

    code = getattr(error, 'code', None)
    if isinstance(code, str) and code in _CODE_KINDS:
        return _CODE_KINDS[code]

    message = str(error).lower()
    if 'auth' in message:
        return SubmissionErrorKind.AUTH
    if 'quota' in message:
        return SubmissionErrorKind.UNAVAILABLE
    return SubmissionErrorKind.UNKNOWN
