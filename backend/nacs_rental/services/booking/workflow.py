"""
Booking Confirmation Workflow
Draft form -> quoted vehicle -> submitting -> confirmed | failed, plus the
later-stage extension transition
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
import asyncio
import logging

from nacs_rental.core.config import settings
from nacs_rental.schemas.booking import (
    Booking,
    BookingFormData,
    BookingStatus,
    Extension,
    Payment,
    SelectedVehicleSnapshot,
    SnapshotCharge,
    SnapshotDiscount,
    payment_status_for,
)
from nacs_rental.schemas.pricing import DetailedPricingData, DriveOption
from nacs_rental.schemas.vehicle import VehicleListing
from nacs_rental.services.booking.errors import (
    BookingValidationError,
    InvalidWorkflowState,
    SubmissionError,
    SubmissionErrorKind,
    classify_submission_error,
)
from nacs_rental.services.booking.store import BookingStore
from nacs_rental.services.pricing.money import calendar_day_difference, quantize_cents
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Bookings in these states can no longer be extended
CLOSED_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED)


class WorkflowState(str, Enum):
    DRAFT = "draft"
    QUOTED = "quoted"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    def __str__(self):
        return self.value


def _blank(value: Optional[str]) -> bool:
    return not (value or '').strip()


def validate_booking_form(form: BookingFormData, renter_id: Optional[str]) -> List[str]:
    """
    Check every required field and return all problems found.

    An empty list means the form can be quoted and submitted.
    """
    errors = []
    if _blank(form.destination):
        errors.append("Destination is required")
    if _blank(form.pick_up_address):
        errors.append("Pickup address is required")
    if _blank(form.pick_up_time):
        errors.append("Pickup time is required")
    if _blank(form.return_address):
        errors.append("Return address is required")
    if _blank(form.return_time):
        errors.append("Return time is required")
    if not renter_id:
        errors.append("Please sign in to make a booking")
    if calendar_day_difference(form.return_date, form.pick_up_date) < 1:
        errors.append("Return date must be at least 1 day after pickup date")
    return errors


def freeze_pricing(
    pricing: DetailedPricingData,
    name: str,
    vehicle_id: Optional[str] = None,
    vehicle_url: Optional[str] = None,
    is_verified_user: bool = False,
    is_promo_vehicle: bool = False,
) -> SelectedVehicleSnapshot:
    """Copy a quote into the booking's selected vehicle snapshot"""
    days = pricing.total_days or 1
    return SelectedVehicleSnapshot(
        vehicle_id=vehicle_id,
        vehicle_url=vehicle_url,
        name=name,
        base_price=pricing.base_price_per_day,
        price_per_day=quantize_cents(pricing.final_total / days),
        total_duration=pricing.total_days,
        is_verified_user=is_verified_user,
        is_promo_vehicle=is_promo_vehicle,
        driver_fee_per_day=pricing.driver_fee_per_day,
        discounts=[
            SnapshotDiscount(
                label=d.label,
                type=d.type.value,
                percent=d.percent_off,
                amount_per_day=d.amount_per_day,
                amount=d.total_amount,
                applied=d.applied,
            )
            for d in pricing.discounts
        ],
        extra_charges=[
            SnapshotCharge(
                label=c.label,
                type=c.type,
                amount_per_day=c.amount_per_day,
                amount=c.total_amount,
            )
            for c in pricing.extra_charges
        ],
        subtotal_before_discounts=pricing.subtotal_before_discounts,
        total_discounts=pricing.total_discounts,
        total_amount=pricing.final_total,
    )


class BookingConfirmationWorkflow:
    """
    One customer's booking attempt.

    The quote computed on vehicle selection is the one persisted on confirm; a
    failed submission keeps it so a retry never re-prices. Only a single
    submission can be in flight at a time.
    """

    def __init__(
        self,
        store: BookingStore,
        engine: BookingPricingEngine,
        renter_id: Optional[str],
        form: BookingFormData,
        is_verified_user: bool = False,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.engine = engine
        self.renter_id = renter_id
        self.form = form
        self.is_verified_user = is_verified_user
        self.timeout = settings.BOOKING_SUBMIT_TIMEOUT_SECONDS if timeout is None else timeout

        self.state = WorkflowState.DRAFT
        self.vehicle: Optional[VehicleListing] = None
        self.pricing: Optional[DetailedPricingData] = None
        self.booking_id: Optional[str] = None
        self.error: Optional[SubmissionError] = None
        self._submitting = False

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def select_vehicle(self, vehicle: VehicleListing) -> DetailedPricingData:
        """Validate the form and quote the chosen vehicle"""
        if self.state in (WorkflowState.SUBMITTING, WorkflowState.CONFIRMED):
            raise InvalidWorkflowState(f"Cannot select a vehicle while {self.state}")

        errors = validate_booking_form(self.form, self.renter_id)
        if errors:
            self.state = WorkflowState.DRAFT
            raise BookingValidationError(errors)

        self.vehicle = vehicle
        self.pricing = self.engine.quote_vehicle(
            vehicle.price_per_day_raw,
            self.form.pick_up_date,
            self.form.return_date,
            is_verified_user=self.is_verified_user,
            is_promo_vehicle=vehicle.is_promotional,
            drive_option=self.form.drive_option,
        )
        self.error = None
        self.state = WorkflowState.QUOTED
        logger.info(
            f"Quoted {vehicle.name} for {self.pricing.total_days} day(s): {self.pricing.final_total}"
        )
        return self.pricing

    def build_booking(self) -> Booking:
        """Booking record for the current quote, frozen as submitted"""
        form = self.form
        pricing = self.pricing
        with_driver = form.drive_option == DriveOption.WITH_DRIVER
        snapshot = freeze_pricing(
            pricing,
            name=self.vehicle.name,
            vehicle_id=self.vehicle.id,
            vehicle_url=self.vehicle.image_url,
            is_verified_user=self.is_verified_user,
            is_promo_vehicle=self.vehicle.is_promotional,
        )
        return Booking(
            renter_id=self.renter_id,
            drive_option=form.drive_option,
            driver_per_day=pricing.driver_fee_per_day if with_driver else None,
            destination=form.destination.strip(),
            pick_up_address=form.pick_up_address.strip(),
            pick_up_date=form.pick_up_date,
            pick_up_time=form.pick_up_time,
            return_address=form.return_address.strip(),
            return_date=form.return_date,
            return_time=form.return_time,
            selected_vehicle=snapshot,
            payment=Payment.settle(pricing.final_total, ZERO),
            status=BookingStatus.PROCESSING,
            extensions=[],
        )

    async def confirm(self) -> Optional[str]:
        """
        Persist the quoted booking.

        Returns the booking id, or None when another confirm for this workflow
        is already in flight. Raises SubmissionError when the store call fails.
        """
        if self.state == WorkflowState.CONFIRMED:
            return self.booking_id
        if self._submitting:
            logger.warning("Booking submission already in progress; ignoring duplicate confirm")
            return None
        if self.state not in (WorkflowState.QUOTED, WorkflowState.FAILED) or self.pricing is None:
            raise InvalidWorkflowState(f"Cannot confirm a booking while {self.state}")

        self._submitting = True
        try:
            errors = validate_booking_form(self.form, self.renter_id)
            if errors:
                raise BookingValidationError(errors)

            booking = self.build_booking()
            self.state = WorkflowState.SUBMITTING

            try:
                booking_id = await asyncio.wait_for(self.store.create_booking(booking), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                self._fail(SubmissionError(SubmissionErrorKind.TIMEOUT, cause=e))
                raise self.error from e
            except Exception as e:
                self._fail(SubmissionError(classify_submission_error(e), cause=e))
                raise self.error from e

            self.booking_id = booking_id
            self.error = None
            self.state = WorkflowState.CONFIRMED
            logger.info(f"Booking {booking_id} confirmed for renter {self.renter_id}")
            return booking_id
        finally:
            self._submitting = False

    def _fail(self, error: SubmissionError) -> None:
        self.error = error
        self.state = WorkflowState.FAILED
        logger.error(f"Booking submission failed ({error.kind}): {error.cause}")


def plan_extension(
    engine: BookingPricingEngine,
    booking: Booking,
    new_return_date: date,
    new_return_time: Optional[str] = None,
) -> Tuple[Extension, Payment, SelectedVehicleSnapshot]:
    """
    Re-price a booking to a later return date.

    The quote runs from the original pickup date with the rate, flags and
    driver fee frozen in the snapshot, so catalog or fee changes made after
    booking never reach it.
    """
    if booking.status in CLOSED_STATUSES:
        raise InvalidWorkflowState(f"Cannot extend a {booking.status} booking")
    if new_return_date <= booking.return_date:
        raise BookingValidationError(["New return date must be after the current return date"])

    snapshot = booking.selected_vehicle
    pricing = engine.quote_vehicle(
        snapshot.base_price,
        booking.pick_up_date,
        new_return_date,
        is_verified_user=snapshot.is_verified_user,
        is_promo_vehicle=snapshot.is_promo_vehicle,
        drive_option=booking.drive_option,
        driver_fee_per_day=snapshot.driver_fee_per_day or booking.driver_per_day,
    )

    new_total = pricing.final_total
    extension = Extension(
        previous_return_date=booking.return_date,
        new_return_date=new_return_date,
        new_return_time=new_return_time,
        additional_days=pricing.total_days - snapshot.total_duration,
        additional_amount=new_total - snapshot.total_amount,
        new_total_days=pricing.total_days,
        new_total_amount=new_total,
    )
    payment = Payment.settle(new_total, booking.payment.paid)
    new_snapshot = freeze_pricing(
        pricing,
        name=snapshot.name,
        vehicle_id=snapshot.vehicle_id,
        vehicle_url=snapshot.vehicle_url,
        is_verified_user=snapshot.is_verified_user,
        is_promo_vehicle=snapshot.is_promo_vehicle,
    )
    return extension, payment, new_snapshot


async def extend_booking(
    store: BookingStore,
    engine: BookingPricingEngine,
    booking: Booking,
    new_return_date: date,
    new_return_time: Optional[str] = None,
) -> Booking:
    """
    Move a booking's return date later and append an Extension.

    The checks and re-pricing run against the booking as stored when the
    extension is written, so concurrent extensions cannot overwrite each
    other. Earlier extension entries are left untouched.
    """
    def plan(current: Booking):
        return plan_extension(engine, current, new_return_date, new_return_time)

    return await store.add_extension(booking.id, plan)
