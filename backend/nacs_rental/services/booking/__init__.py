"""Booking services package"""
from nacs_rental.services.booking.errors import (
    BookingError,
    BookingNotFoundError,
    BookingStoreError,
    BookingValidationError,
    InvalidWorkflowState,
    SubmissionError,
    SubmissionErrorKind,
)
from nacs_rental.services.booking.store import BookingStore, FirestoreBookingStore
from nacs_rental.services.booking.workflow import (
    BookingConfirmationWorkflow,
    WorkflowState,
    extend_booking,
    validate_booking_form,
)
from nacs_rental.services.booking.viewer import AdminViewer, CustomerViewer, Viewer, viewer_for

__all__ = [
    'BookingError',
    'BookingNotFoundError',
    'BookingStoreError',
    'BookingValidationError',
    'InvalidWorkflowState',
    'SubmissionError',
    'SubmissionErrorKind',
    'BookingStore',
    'FirestoreBookingStore',
    'BookingConfirmationWorkflow',
    'WorkflowState',
    'extend_booking',
    'validate_booking_form',
    'AdminViewer',
    'CustomerViewer',
    'Viewer',
    'viewer_for',
]
