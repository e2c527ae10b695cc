"""
Booking endpoints for NACS Car Rental
Confirm bookings from the fleet, read them back, extend them, and (staff only)
move them through their lifecycle
"""
from fastapi import APIRouter, HTTPException, status, Depends, Query
from typing import Optional
import logging

from nacs_rental.api.deps import (
    get_admin_viewer,
    get_catalog_provider,
    get_customer_viewer,
    get_viewer,
)
from nacs_rental.core.security import safe_log_error
from nacs_rental.schemas.booking import (
    Booking,
    BookingCreateRequest,
    BookingCreatedResponse,
    BookingListResponse,
    BookingStatus,
    ExtensionRequest,
    Payment,
    PaymentUpdateRequest,
    StatusUpdateRequest,
)
from nacs_rental.services.booking.errors import (
    BookingNotFoundError,
    BookingStoreError,
    BookingValidationError,
    InvalidWorkflowState,
    SubmissionError,
    SubmissionErrorKind,
)
from nacs_rental.services.booking.viewer import AdminViewer, CustomerViewer, Viewer
from nacs_rental.services.catalog.provider import FirestoreCatalogProvider

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Helper Functions ====================

SUBMISSION_STATUS_CODES = {
    SubmissionErrorKind.PERMISSION: status.HTTP_403_FORBIDDEN,
    SubmissionErrorKind.AUTH: status.HTTP_401_UNAUTHORIZED,
    SubmissionErrorKind.NETWORK: status.HTTP_502_BAD_GATEWAY,
    SubmissionErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    SubmissionErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    SubmissionErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def validation_exception(error: BookingValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": "Please fix the booking form", "errors": error.errors}
    )


def not_found_exception(booking_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Booking {booking_id} not found"
    )


# ==================== Endpoints ====================

@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    viewer: CustomerViewer = Depends(get_customer_viewer),
    provider: FirestoreCatalogProvider = Depends(get_catalog_provider),
):
    """
    Quote the selected vehicle for the form and confirm the booking.

    Every form problem is reported at once (422). Store failures come back
    with a message describing what the renter can do next.
    """
    try:
        vehicle = provider.get_vehicle(request.vehicle_id)
        if not vehicle:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Vehicle {request.vehicle_id} not found"
            )

        workflow = viewer.start_booking(request)
        pricing = workflow.select_vehicle(vehicle)
        booking_id = await workflow.confirm()

        return BookingCreatedResponse(
            booking_id=booking_id,
            status=BookingStatus.PROCESSING,
            total_amount=pricing.final_total,
        )

    except HTTPException:
        raise
    except BookingValidationError as e:
        raise validation_exception(e)
    except SubmissionError as e:
        raise HTTPException(
            status_code=SUBMISSION_STATUS_CODES[e.kind],
            detail={"kind": e.kind.value, "message": e.user_message}
        )
    except Exception as e:
        safe_log_error(f"Error creating booking for {viewer.uid}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking"
        )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status", description="Filter by booking status"),
    active: bool = Query(False, description="Only processing, reserved and ongoing bookings"),
    renter_id: Optional[str] = Query(None, description="Filter by renter (staff only)"),
    viewer: Viewer = Depends(get_viewer),
):
    """List the caller's bookings, or every booking for staff"""
    try:
        if isinstance(viewer, AdminViewer):
            bookings = await viewer.list_bookings(status=status_filter, active_only=active, renter_id=renter_id)
        else:
            bookings = await viewer.list_bookings(status=status_filter, active_only=active)

        return BookingListResponse(bookings=bookings, total=len(bookings))

    except HTTPException:
        raise
    except Exception as e:
        safe_log_error(f"Error listing bookings for {viewer.uid}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list bookings"
        )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    viewer: Viewer = Depends(get_viewer),
):
    """Get a booking by ID; another renter's booking is reported as missing"""
    try:
        return await viewer.get_booking(booking_id)

    except HTTPException:
        raise
    except BookingNotFoundError:
        raise not_found_exception(booking_id)
    except Exception as e:
        safe_log_error(f"Error fetching booking {booking_id}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch booking"
        )


@router.post("/{booking_id}/extensions", response_model=Booking)
async def extend_booking(
    booking_id: str,
    request: ExtensionRequest,
    viewer: CustomerViewer = Depends(get_customer_viewer),
):
    """Extend a booking to a later return date and re-price it"""
    try:
        return await viewer.extend_booking(booking_id, request.new_return_date, request.new_return_time)

    except HTTPException:
        raise
    except BookingValidationError as e:
        raise validation_exception(e)
    except BookingNotFoundError:
        raise not_found_exception(booking_id)
    except InvalidWorkflowState as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except BookingStoreError as e:
        safe_log_error(f"Store error extending booking {booking_id}", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking service temporarily unavailable. Please try again later."
        )
    except Exception as e:
        safe_log_error(f"Error extending booking {booking_id}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to extend booking"
        )


@router.patch("/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    request: StatusUpdateRequest,
    viewer: AdminViewer = Depends(get_admin_viewer),
):
    """Set a booking's status, optionally assigning a unit (staff only)"""
    try:
        return await viewer.update_status(booking_id, request.status, request.assigned_vehicle)

    except HTTPException:
        raise
    except BookingNotFoundError:
        raise not_found_exception(booking_id)
    except Exception as e:
        safe_log_error(f"Error updating status of booking {booking_id}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking status"
        )


@router.patch("/{booking_id}/payment", response_model=Payment)
async def record_payment(
    booking_id: str,
    request: PaymentUpdateRequest,
    viewer: AdminViewer = Depends(get_admin_viewer),
):
    """Record the amount paid so far; balance and status follow the booking total (staff only)"""
    try:
        return await viewer.record_payment(booking_id, request.paid, request.status)

    except HTTPException:
        raise
    except BookingNotFoundError:
        raise not_found_exception(booking_id)
    except Exception as e:
        safe_log_error(f"Error recording payment for booking {booking_id}", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record payment"
        )
