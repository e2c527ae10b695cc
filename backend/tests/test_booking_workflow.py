import asyncio
from datetime import date
from decimal import Decimal

import pytest
from google.api_core import exceptions as gcp_exceptions

from nacs_rental.core.firebase import Collections
from nacs_rental.schemas.booking import BookingFormData, BookingStatus, PaymentStatus
from nacs_rental.schemas.pricing import DriveOption
from nacs_rental.services.booking.errors import (
    BookingStoreError,
    BookingValidationError,
    InvalidWorkflowState,
    SubmissionError,
    SubmissionErrorKind,
    classify_submission_error,
)
from nacs_rental.services.booking.workflow import (
    BookingConfirmationWorkflow,
    WorkflowState,
    extend_booking,
    validate_booking_form,
)
from nacs_rental.services.catalog.cache import CatalogCache
from nacs_rental.services.catalog.provider import FirestoreCatalogProvider
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine


class RecordingStore:
    """Wraps a store, counting creates and optionally delaying or failing them"""

    def __init__(self, inner, delay=0.0, errors=()):
        self.inner = inner
        self.delay = delay
        self.errors = list(errors)
        self.create_calls = 0

    async def create_booking(self, booking):
        self.create_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        return await self.inner.create_booking(booking)

    def __getattr__(self, name):
        return getattr(self.inner, name)


def workflow_for(store, engine, form, renter_id="mock-user-id", verified=True, timeout=5.0):
    return BookingConfirmationWorkflow(
        store=store,
        engine=engine,
        renter_id=renter_id,
        form=form,
        is_verified_user=verified,
        timeout=timeout,
    )


class TestValidateBookingForm:

    def test_valid_form(self, form):
        assert validate_booking_form(form, "mock-user-id") == []

    def test_collects_every_problem(self):
        form = BookingFormData(
            destination="  ",
            pick_up_date=date(2025, 3, 1),
            return_date=date(2025, 3, 1),
        )
        assert validate_booking_form(form, None) == [
            "Destination is required",
            "Pickup address is required",
            "Pickup time is required",
            "Return address is required",
            "Return time is required",
            "Please sign in to make a booking",
            "Return date must be at least 1 day after pickup date",
        ]

    def test_return_before_pickup(self, form):
        form = form.model_copy(update={'return_date': date(2025, 2, 27)})
        assert validate_booking_form(form, "mock-user-id") == [
            "Return date must be at least 1 day after pickup date",
        ]


class TestSelectVehicle:

    def test_invalid_form_stays_in_draft(self, store, engine, form, sedan):
        form = form.model_copy(update={'destination': '', 'pick_up_time': None})
        workflow = workflow_for(store, engine, form)

        with pytest.raises(BookingValidationError) as exc_info:
            workflow.select_vehicle(sedan)

        assert exc_info.value.errors == ["Destination is required", "Pickup time is required"]
        assert workflow.state == WorkflowState.DRAFT
        assert workflow.pricing is None

    def test_quotes_the_vehicle(self, store, engine, form, sedan):
        workflow = workflow_for(store, engine, form)
        pricing = workflow.select_vehicle(sedan)

        assert workflow.state == WorkflowState.QUOTED
        assert pricing.total_days == 7
        assert pricing.total_discounts == Decimal("2800")
        assert pricing.final_total == Decimal("11200")


class TestConfirm:

    async def test_confirm_persists_frozen_quote(self, store, engine, form, sedan):
        workflow = workflow_for(store, engine, form)
        pricing = workflow.select_vehicle(sedan)

        booking_id = await workflow.confirm()

        assert workflow.state == WorkflowState.CONFIRMED
        assert workflow.booking_id == booking_id
        booking = await store.get_booking(booking_id)
        assert booking.status == BookingStatus.PROCESSING
        assert booking.payment.paid == Decimal("0")
        assert booking.payment.balance == pricing.final_total
        assert booking.payment.status == PaymentStatus.UNPAID
        assert booking.driver_per_day is None
        assert booking.selected_vehicle.total_amount == pricing.final_total
        assert booking.selected_vehicle.base_price == Decimal("2000")
        assert [d.label for d in booking.selected_vehicle.discounts] == [
            "Verified User Discount", "Promotional Vehicle", "Weekly Rental (4-7 days)",
        ]

    async def test_with_driver_records_driver_rate(self, store, engine, form, sedan):
        form = form.model_copy(update={'drive_option': DriveOption.WITH_DRIVER})
        workflow = workflow_for(store, engine, form)
        workflow.select_vehicle(sedan)

        booking = await store.get_booking(await workflow.confirm())
        assert booking.driver_per_day == Decimal("750")
        assert booking.selected_vehicle.driver_fee_per_day == Decimal("750")
        assert booking.payment.total_amount == Decimal("16450")

    async def test_confirm_before_quote_is_rejected(self, store, engine, form):
        workflow = workflow_for(store, engine, form)
        with pytest.raises(InvalidWorkflowState):
            await workflow.confirm()

    async def test_concurrent_confirms_create_one_booking(self, store, engine, form, sedan):
        slow_store = RecordingStore(store, delay=0.05)
        workflow = workflow_for(slow_store, engine, form)
        workflow.select_vehicle(sedan)

        first, second = await asyncio.gather(workflow.confirm(), workflow.confirm())

        assert slow_store.create_calls == 1
        assert first is not None
        assert second is None
        assert len(await store.list_bookings()) == 1

    async def test_confirming_twice_returns_same_booking(self, store, engine, form, sedan):
        counting_store = RecordingStore(store)
        workflow = workflow_for(counting_store, engine, form)
        workflow.select_vehicle(sedan)

        first = await workflow.confirm()
        assert await workflow.confirm() == first
        assert counting_store.create_calls == 1

    async def test_timeout_fails_with_timeout_kind(self, store, engine, form, sedan):
        slow_store = RecordingStore(store, delay=1.0)
        workflow = workflow_for(slow_store, engine, form, timeout=0.01)
        workflow.select_vehicle(sedan)

        with pytest.raises(SubmissionError) as exc_info:
            await workflow.confirm()

        assert exc_info.value.kind == SubmissionErrorKind.TIMEOUT
        assert workflow.state == WorkflowState.FAILED
        assert workflow.pricing is not None

    async def test_failure_keeps_quote_for_retry(self, store, engine, form, sedan):
        flaky_store = RecordingStore(store, errors=[BookingStoreError(
            "Failed to create booking", code="unavailable", cause=gcp_exceptions.ServiceUnavailable("down"),
        )])
        workflow = workflow_for(flaky_store, engine, form)
        quoted = workflow.select_vehicle(sedan)

        with pytest.raises(SubmissionError) as exc_info:
            await workflow.confirm()

        assert exc_info.value.kind == SubmissionErrorKind.UNAVAILABLE
        assert exc_info.value.user_message == "Service temporarily unavailable. Please try again later."
        assert workflow.state == WorkflowState.FAILED
        assert workflow.pricing is quoted

        booking_id = await workflow.confirm()
        assert workflow.state == WorkflowState.CONFIRMED
        assert workflow.pricing is quoted
        assert (await store.get_booking(booking_id)).payment.total_amount == quoted.final_total
        assert flaky_store.create_calls == 2


class TestClassifySubmissionError:

    @pytest.mark.parametrize("error,kind", [
        (gcp_exceptions.PermissionDenied("rules"), SubmissionErrorKind.PERMISSION),
        (gcp_exceptions.Unauthenticated("token"), SubmissionErrorKind.AUTH),
        (gcp_exceptions.ServiceUnavailable("down"), SubmissionErrorKind.UNAVAILABLE),
        (gcp_exceptions.ResourceExhausted("quota"), SubmissionErrorKind.UNAVAILABLE),
        (gcp_exceptions.DeadlineExceeded("slow"), SubmissionErrorKind.TIMEOUT),
        (ConnectionError("reset"), SubmissionErrorKind.NETWORK),
        (BookingStoreError("x", code="network-request-failed"), SubmissionErrorKind.NETWORK),
        (RuntimeError("auth/user-token-expired"), SubmissionErrorKind.AUTH),
        (RuntimeError("Quota exceeded"), SubmissionErrorKind.UNAVAILABLE),
        (RuntimeError("boom"), SubmissionErrorKind.UNKNOWN),
    ])
    def test_categories(self, error, kind):
        assert classify_submission_error(error) == kind


class TestExtendBooking:

    async def confirmed_booking(self, store, engine, form, sedan):
        workflow = workflow_for(store, engine, form)
        workflow.select_vehicle(sedan)
        return await store.get_booking(await workflow.confirm())

    async def test_extension_reprices_from_pickup(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)

        extended = await extend_booking(store, engine, booking, date(2025, 3, 10), "12:00")

        # 9 days: verified 100 + promo 200 + bi-weekly 200 per day
        [extension] = extended.extensions
        assert extension.previous_return_date == date(2025, 3, 8)
        assert extension.additional_days == 2
        assert extension.new_total_days == 9
        assert extension.new_total_amount == Decimal("13500")
        assert extension.additional_amount == Decimal("2300")

        stored = await store.get_booking(booking.id)
        assert stored.return_date == date(2025, 3, 10)
        assert stored.return_time == "12:00"
        assert stored.payment.total_amount == Decimal("13500")
        assert stored.payment.balance == Decimal("13500")
        assert stored.selected_vehicle.total_duration == 9
        assert len(stored.extensions) == 1

    async def test_balance_accounts_for_payments(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        await store.record_payment(booking.id, Decimal("5000"))

        extended = await extend_booking(store, engine, booking, date(2025, 3, 10))

        assert extended.payment.paid == Decimal("5000")
        assert extended.payment.balance == Decimal("8500")
        assert extended.payment.status == PaymentStatus.PARTIAL

    async def test_earlier_extensions_are_kept(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        booking = await extend_booking(store, engine, booking, date(2025, 3, 10))
        booking = await extend_booking(store, engine, booking, date(2025, 3, 16))

        stored = await store.get_booking(booking.id)
        assert [e.new_return_date for e in stored.extensions] == [date(2025, 3, 10), date(2025, 3, 16)]
        assert stored.extensions[0].new_total_amount == Decimal("13500")
        assert stored.extensions[1].previous_return_date == date(2025, 3, 10)

    async def test_stale_copy_cannot_move_return_date_back(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        await extend_booking(store, engine, booking, date(2025, 3, 15))

        # same pre-extension copy, earlier date than what is now stored
        with pytest.raises(BookingValidationError):
            await extend_booking(store, engine, booking, date(2025, 3, 10))

        stored = await store.get_booking(booking.id)
        assert stored.return_date == date(2025, 3, 15)
        assert [(e.previous_return_date, e.new_return_date) for e in stored.extensions] == [
            (date(2025, 3, 8), date(2025, 3, 15)),
        ]

    async def test_extension_builds_on_stored_booking(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        await extend_booking(store, engine, booking, date(2025, 3, 10))

        extended = await extend_booking(store, engine, booking, date(2025, 3, 11))

        second = extended.extensions[-1]
        assert second.previous_return_date == date(2025, 3, 10)
        assert second.additional_days == 1
        # 10 days at 1500 after verified, promo and bi-weekly discounts
        assert second.new_total_amount == Decimal("15000")
        assert second.additional_amount == Decimal("1500")
        assert len((await store.get_booking(booking.id)).extensions) == 2

    async def test_driver_fee_stays_at_booked_rate(self, store, engine, form, sedan):
        form = form.model_copy(update={'drive_option': DriveOption.WITH_DRIVER})
        booking = await self.confirmed_booking(store, engine, form, sedan)
        raised_fee = BookingPricingEngine(driver_fee_per_day=Decimal("1000"))

        extended = await extend_booking(store, raised_fee, booking, date(2025, 3, 9))

        # 8 days: vehicle 1500 per day plus the 750 driver fee agreed at booking
        assert extended.selected_vehicle.driver_fee_per_day == Decimal("750")
        assert extended.payment.total_amount == Decimal("18000")
        assert extended.extensions[-1].additional_amount == Decimal("1550")

    async def test_catalog_price_change_leaves_booking_untouched(self, store, engine, form, mock_db):
        provider = FirestoreCatalogProvider(mock_db, CatalogCache(ttl_seconds=300))
        workflow = workflow_for(store, engine, form)
        workflow.select_vehicle(provider.get_vehicle("group-e-sedan"))
        booking_id = await workflow.confirm()

        mock_db.collection(Collections.CAR_LISTINGS).document("group-e-sedan").update({'price': "₱ 3,500"})
        provider.cache.invalidate()
        assert provider.get_vehicle("group-e-sedan").price_per_day_raw == "₱ 3,500"

        stored = await store.get_booking(booking_id)
        assert stored.selected_vehicle.base_price == Decimal("2800")
        assert stored.selected_vehicle.total_amount == Decimal("15680")

        extended = await extend_booking(store, engine, stored, date(2025, 3, 10))
        # 9 days at the booked 2800 rate, 25% off
        assert extended.selected_vehicle.base_price == Decimal("2800")
        assert extended.payment.total_amount == Decimal("18900")
        assert (await store.get_booking(booking_id)).selected_vehicle.base_price == Decimal("2800")

    async def test_new_return_date_must_be_later(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        with pytest.raises(BookingValidationError):
            await extend_booking(store, engine, booking, date(2025, 3, 8))

    async def test_closed_bookings_cannot_be_extended(self, store, engine, form, sedan):
        booking = await self.confirmed_booking(store, engine, form, sedan)
        await store.update_status(booking.id, BookingStatus.CANCELLED)
        with pytest.raises(InvalidWorkflowState):
            await extend_booking(store, engine, booking, date(2025, 3, 12))
