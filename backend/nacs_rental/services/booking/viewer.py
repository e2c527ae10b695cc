"""
Capability-scoped booking access
A Viewer exposes only the booking operations its role may perform
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from nacs_rental.schemas.booking import (
    ACTIVE_STATUSES,
    AssignedVehicle,
    Booking,
    BookingFormData,
    BookingStatus,
    Payment,
    PaymentStatus,
)
from nacs_rental.services.booking.errors import BookingNotFoundError
from nacs_rental.services.booking.store import BookingStore
from nacs_rental.services.booking.workflow import BookingConfirmationWorkflow, extend_booking
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine

logger = logging.getLogger(__name__)

ADMIN_ROLES = ('admin', 'support')


class Viewer:
    """Signed-in user bound to the store and pricing engine"""

    role = "viewer"

    def __init__(self, user: Dict[str, Any], store: BookingStore, engine: BookingPricingEngine):
        self.user = user
        self.store = store
        self.engine = engine

    @property
    def uid(self) -> str:
        return self.user['uid']

    async def get_booking(self, booking_id: str) -> Booking:
        raise NotImplementedError

    async def list_bookings(
        self, status: Optional[BookingStatus] = None, active_only: bool = False
    ) -> List[Booking]:
        raise NotImplementedError


class CustomerViewer(Viewer):
    """A renter: books vehicles and manages their own bookings"""

    role = "customer"

    @property
    def is_verified(self) -> bool:
        return bool(self.user.get('is_verified', False))

    def start_booking(self, form: BookingFormData) -> BookingConfirmationWorkflow:
        return BookingConfirmationWorkflow(
            store=self.store,
            engine=self.engine,
            renter_id=self.uid,
            form=form,
            is_verified_user=self.is_verified,
        )

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        # Someone else's booking looks the same as a missing one
        if booking.renter_id != self.uid:
            raise BookingNotFoundError(booking_id)
        return booking

    async def list_bookings(
        self, status: Optional[BookingStatus] = None, active_only: bool = False
    ) -> List[Booking]:
        """Own bookings; active_only keeps processing, reserved and ongoing ones"""
        return await self.store.list_bookings(
            renter_id=self.uid, status=status, statuses=ACTIVE_STATUSES if active_only else None
        )

    async def extend_booking(
        self, booking_id: str, new_return_date: date, new_return_time: Optional[str] = None
    ) -> Booking:
        booking = await self.get_booking(booking_id)
        return await extend_booking(self.store, self.engine, booking, new_return_date, new_return_time)


class AdminViewer(Viewer):
    """Staff: reads every booking and moves bookings through their lifecycle"""

    role = "admin"

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.store.get_booking(booking_id)

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        active_only: bool = False,
        renter_id: Optional[str] = None,
    ) -> List[Booking]:
        return await self.store.list_bookings(
            renter_id=renter_id, status=status, statuses=ACTIVE_STATUSES if active_only else None
        )

    async def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        assigned_vehicle: Optional[AssignedVehicle] = None,
    ) -> Booking:
        await self.store.update_status(booking_id, status, assigned_vehicle)
        logger.info(f"Admin {self.uid} set booking {booking_id} to {status}")
        return await self.store.get_booking(booking_id)

    async def record_payment(
        self, booking_id: str, paid: Decimal, status: Optional[PaymentStatus] = None
    ) -> Payment:
        payment = await self.store.record_payment(booking_id, paid, status)
        logger.info(f"Admin {self.uid} recorded payment on booking {booking_id}: {payment.status}")
        return payment


def viewer_for(user: Dict[str, Any], store: BookingStore, engine: BookingPricingEngine) -> Viewer:
    """Pick the viewer matching the user's role"""
    if user.get('role') in ADMIN_ROLES:
        return AdminViewer(user, store, engine)
    return CustomerViewer(user, store, engine)
