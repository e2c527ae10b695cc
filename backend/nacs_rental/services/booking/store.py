"""
Booking store
Persistence boundary for booking records; the Firestore implementation runs
the blocking SDK calls on a worker thread
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import asyncio
import logging

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from nacs_rental.core.firebase import Collections
from nacs_rental.schemas.booking import (
    AssignedVehicle,
    Booking,
    BookingStatus,
    Extension,
    Payment,
    PaymentStatus,
    SelectedVehicleSnapshot,
)
from nacs_rental.services.booking.errors import BookingError, BookingNotFoundError, BookingStoreError

logger = logging.getLogger(__name__)

# Given the booking as currently stored, returns the entry to append and the re-derived totals
ExtensionPlanner = Callable[[Booking], Tuple[Extension, Payment, SelectedVehicleSnapshot]]


class BookingStore(ABC):
    """Operations the booking workflow needs from persistence"""

    @abstractmethod
    async def create_booking(self, booking: Booking) -> str:
        """Persist a new booking and return its id"""

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Booking:
        """Booking by id; raises BookingNotFoundError"""

    @abstractmethod
    async def list_bookings(
        self,
        renter_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        statuses: Optional[Sequence[BookingStatus]] = None,
    ) -> List[Booking]:
        """Bookings, newest first, optionally filtered by renter and status (or any of statuses)"""

    @abstractmethod
    async def add_extension(self, booking_id: str, plan: ExtensionPlanner) -> Booking:
        """
        Atomically append an extension and store the re-derived totals.

        plan sees the booking as stored at write time and may raise to abort.
        Returns the updated booking.
        """

    @abstractmethod
    async def record_payment(
        self, booking_id: str, paid: Decimal, status: Optional[PaymentStatus] = None
    ) -> Payment:
        """Set the cumulative amount paid; balance and status follow the stored total"""

    @abstractmethod
    async def update_status(
        self, booking_id: str, status: BookingStatus, assigned_vehicle: Optional[AssignedVehicle] = None
    ) -> None:
        """Change the booking status"""


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, gcp_exceptions.GoogleAPICallError) and error.grpc_status_code is not None:
        return error.grpc_status_code.name.lower().replace('_', '-')
    code = getattr(error, 'code', None)
    return code if isinstance(code, str) else None


def booking_doc_to_model(doc_id: str, data: Dict[str, Any]) -> Booking:
    """Convert a Firestore bookings document to a Booking"""
    return Booking.model_validate({**data, 'id': doc_id})


class FirestoreBookingStore(BookingStore):
    """Bookings stored in the Firestore bookings collection"""

    def __init__(self, client):
        self.client = client

    def _collection(self):
        return self.client.collection(Collections.BOOKINGS)

    async def _run(self, operation: str, fn, booking_id: Optional[str] = None):
        try:
            return await asyncio.to_thread(fn)
        except BookingError:
            raise
        except gcp_exceptions.NotFound as e:
            raise BookingNotFoundError(booking_id or "") from e
        except Exception as e:
            logger.error(f"Error during {operation}: {e}")
            raise BookingStoreError(f"Failed to {operation}", code=_error_code(e), cause=e) from e

    def _read(self, doc_ref, booking_id: str, transaction=None) -> Booking:
        doc = doc_ref.get(transaction=transaction)
        if not doc.exists:
            raise BookingNotFoundError(booking_id)
        return booking_doc_to_model(doc.id, doc.to_dict())

    async def create_booking(self, booking: Booking) -> str:
        data = booking.to_firestore()
        data['createdAt'] = firestore.SERVER_TIMESTAMP
        data['updatedAt'] = firestore.SERVER_TIMESTAMP

        def _create():
            _, doc_ref = self._collection().add(data)
            return doc_ref.id

        booking_id = await self._run("create booking", _create)
        logger.info(f"Booking created with ID: {booking_id} (renter {booking.renter_id})")
        return booking_id

    async def get_booking(self, booking_id: str) -> Booking:
        def _get():
            return self._read(self._collection().document(booking_id), booking_id)

        return await self._run("fetch booking", _get, booking_id=booking_id)

    async def list_bookings(
        self,
        renter_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        statuses: Optional[Sequence[BookingStatus]] = None,
    ) -> List[Booking]:
        def _list():
            query = self._collection()
            if renter_id:
                query = query.where(filter=FieldFilter('renterId', '==', renter_id))
            if status:
                query = query.where(filter=FieldFilter('status', '==', status.value))
            elif statuses:
                query = query.where(filter=FieldFilter('status', 'in', [s.value for s in statuses]))
            query = query.order_by('createdAt', direction=firestore.Query.DESCENDING)

            bookings = []
            for doc in query.stream():
                try:
                    bookings.append(booking_doc_to_model(doc.id, doc.to_dict()))
                except Exception as e:
                    logger.warning(f"Skipping malformed booking {doc.id}: {e}")
            return bookings

        return await self._run("list bookings", _list)

    async def add_extension(self, booking_id: str, plan: ExtensionPlanner) -> Booking:
        def _extend():
            doc_ref = self._collection().document(booking_id)

            @firestore.transactional
            def txn_extend(transaction):
                # Validate against the stored booking, not the caller's copy
                current = self._read(doc_ref, booking_id, transaction=transaction)
                extension, payment, selected_vehicle = plan(current)
                extension = extension.model_copy(update={'extended_at': datetime.now(timezone.utc)})
                extensions = list(current.extensions) + [extension]

                update = {
                    'extensions': [e.to_firestore() for e in extensions],
                    'returnDate': extension.new_return_date.isoformat(),
                    'payment': payment.to_firestore(),
                    'selectedVehicle': selected_vehicle.to_firestore(),
                    'updatedAt': firestore.SERVER_TIMESTAMP,
                }
                if extension.new_return_time:
                    update['returnTime'] = extension.new_return_time
                transaction.update(doc_ref, update)

                return current.model_copy(update={
                    'return_date': extension.new_return_date,
                    'return_time': extension.new_return_time or current.return_time,
                    'extensions': extensions,
                    'payment': payment,
                    'selected_vehicle': selected_vehicle,
                })

            return txn_extend(self.client.transaction())

        booking = await self._run("add booking extension", _extend, booking_id=booking_id)
        logger.info(f"Booking {booking_id} extended to {booking.return_date.isoformat()}")
        return booking

    async def record_payment(
        self, booking_id: str, paid: Decimal, status: Optional[PaymentStatus] = None
    ) -> Payment:
        def _pay():
            doc_ref = self._collection().document(booking_id)

            @firestore.transactional
            def txn_pay(transaction):
                current = self._read(doc_ref, booking_id, transaction=transaction)
                payment = Payment.settle(current.payment.total_amount, paid, status)
                transaction.update(doc_ref, {
                    'payment': payment.to_firestore(),
                    'updatedAt': firestore.SERVER_TIMESTAMP,
                })
                return payment

            return txn_pay(self.client.transaction())

        payment = await self._run("update payment", _pay, booking_id=booking_id)
        logger.info(f"Booking {booking_id} payment recorded: paid {paid}, status {payment.status.value}")
        return payment

    async def update_status(
        self, booking_id: str, status: BookingStatus, assigned_vehicle: Optional[AssignedVehicle] = None
    ) -> None:
        def _update():
            update: Dict[str, Any] = {
                'status': status.value,
                'updatedAt': firestore.SERVER_TIMESTAMP,
            }
            if assigned_vehicle:
                update['assignedVehicle'] = assigned_vehicle.to_firestore()
            self._collection().document(booking_id).update(update)

        await self._run("update booking status", _update, booking_id=booking_id)
        logger.info(f"Booking {booking_id} status updated to {status.value}")
