"""
Booking request/response schemas
Field names are stored camelCased in the Firestore bookings collection
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from nacs_rental.schemas.pricing import DriveOption


class BookingStatus(str, Enum):
    PROCESSING = "processing"
    RESERVED = "reserved"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    def __str__(self):
        return self.value


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"

    def __str__(self):
        return self.value


# Bookings still on the renter's active rentals list
ACTIVE_STATUSES = (BookingStatus.PROCESSING, BookingStatus.RESERVED, BookingStatus.ONGOING)


def payment_status_for(paid: Decimal, total: Decimal) -> PaymentStatus:
    if paid <= 0:
        return PaymentStatus.UNPAID
    if paid >= total:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


class FirestoreModel(BaseModel):
    """Base for documents persisted in Firestore"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_firestore(self) -> Dict[str, Any]:
        """Dump with camelCase keys and Firestore-compatible values"""
        return _firestore_value(self.model_dump(by_alias=True, exclude={'id'}, exclude_none=True))


def _firestore_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _firestore_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_firestore_value(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


class SnapshotDiscount(FirestoreModel):
    label: str
    type: str
    percent: Decimal
    amount_per_day: Decimal
    amount: Decimal
    applied: bool = True


class SnapshotCharge(FirestoreModel):
    label: str
    type: str
    amount_per_day: Decimal
    amount: Decimal


class SelectedVehicleSnapshot(FirestoreModel):
    """Pricing frozen at confirmation time; never a live reference to the catalog"""
    vehicle_id: Optional[str] = None
    vehicle_url: Optional[str] = None
    name: str
    base_price: Decimal
    price_per_day: Decimal
    total_duration: int
    is_verified_user: bool = False
    is_promo_vehicle: bool = False
    driver_fee_per_day: Optional[Decimal] = None
    discounts: List[SnapshotDiscount] = Field(default_factory=list)
    extra_charges: List[SnapshotCharge] = Field(default_factory=list)
    subtotal_before_discounts: Decimal
    total_discounts: Decimal
    total_amount: Decimal


class Payment(FirestoreModel):
    total_amount: Decimal
    paid: Decimal = Decimal("0")
    balance: Decimal
    status: PaymentStatus = PaymentStatus.UNPAID

    @classmethod
    def settle(cls, total_amount: Decimal, paid: Decimal, status: Optional[PaymentStatus] = None) -> "Payment":
        """Payment with the balance and status derived from what has been paid"""
        return cls(
            total_amount=total_amount,
            paid=paid,
            balance=total_amount - paid,
            status=status or payment_status_for(paid, total_amount),
        )


class Extension(FirestoreModel):
    """One append-only extension entry"""
    previous_return_date: date
    new_return_date: date
    new_return_time: Optional[str] = None
    additional_days: int
    additional_amount: Decimal
    new_total_days: int
    new_total_amount: Decimal
    extended_at: Optional[datetime] = None


class AssignedDriver(FirestoreModel):
    driver_id: str
    name: str
    contact: str


class AssignedVehicle(FirestoreModel):
    vehicle_id: str
    plate_number: str
    name: str
    driver_assigned: Optional[AssignedDriver] = None


class Booking(FirestoreModel):
    """Persisted booking record"""
    id: Optional[str] = None
    renter_id: str
    drive_option: DriveOption
    driver_per_day: Optional[Decimal] = None
    destination: str
    pick_up_address: str
    pick_up_date: date
    pick_up_time: str
    return_address: str
    return_date: date
    return_time: str
    selected_vehicle: SelectedVehicleSnapshot
    payment: Payment
    status: BookingStatus = BookingStatus.PROCESSING
    extensions: List[Extension] = Field(default_factory=list)
    assigned_vehicle: Optional[AssignedVehicle] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingFormData(FirestoreModel):
    """Customer-entered booking form; validated as a whole by the workflow"""
    destination: str = ""
    pick_up_address: Optional[str] = None
    pick_up_date: date
    pick_up_time: Optional[str] = None
    return_address: Optional[str] = None
    return_date: date
    return_time: Optional[str] = None
    drive_option: DriveOption = DriveOption.SELF_DRIVE


class BookingCreateRequest(BookingFormData):
    """Confirm a booking for a catalog vehicle"""
    vehicle_id: str


class BookingCreatedResponse(FirestoreModel):
    booking_id: str
    status: BookingStatus
    total_amount: Decimal


class BookingListResponse(FirestoreModel):
    bookings: List[Booking]
    total: int


class ExtensionRequest(FirestoreModel):
    new_return_date: date
    new_return_time: Optional[str] = None


class StatusUpdateRequest(FirestoreModel):
    status: BookingStatus
    assigned_vehicle: Optional[AssignedVehicle] = None


class PaymentUpdateRequest(FirestoreModel):
    """Record the cumulative amount paid; status is derived unless given"""
    paid: Decimal = Field(..., ge=0)
    status: Optional[PaymentStatus] = None
