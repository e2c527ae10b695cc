"""
Pricing Rule Engine
Combines the base daily rate, optional driver fee and discount rules into an itemized quote
"""
from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Iterable, List, Optional, Union
import logging

from nacs_rental.core.config import settings
from nacs_rental.schemas.pricing import (
    DetailedPricingData,
    DiscountCandidate,
    DiscountLine,
    DriveOption,
    ExtraChargeInput,
    ExtraChargeLine,
    RentalContext,
)
from nacs_rental.services.pricing.discounts import DEFAULT_RULES, DiscountRuleSet
from nacs_rental.services.pricing.money import (
    extract_price_value,
    quantize_cents,
    rental_duration,
    to_decimal,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _zero_pricing(total_days: int) -> DetailedPricingData:
    return DetailedPricingData(
        base_price_per_day=ZERO,
        total_days=total_days,
        base_subtotal=ZERO,
        discounts=[],
        extra_charges=[],
        subtotal_before_discounts=ZERO,
        total_discounts=ZERO,
        total_savings=ZERO,
        final_total=ZERO,
    )


def _extra_charge_line(charge: ExtraChargeInput, total_days: int) -> ExtraChargeLine:
    if charge.amount_per_day:
        per_day = quantize_cents(charge.amount_per_day)
        total = charge.total_amount if charge.total_amount else per_day * total_days
    elif charge.total_amount:
        total = charge.total_amount
        per_day = quantize_cents(total / total_days)
    else:
        per_day, total = ZERO, ZERO
    return ExtraChargeLine(label=charge.label, type=charge.type, amount_per_day=per_day, total_amount=total)


def compute_pricing(
    base_price_per_day: Union[Decimal, int, float],
    total_days: int,
    driver_fee_per_day: Union[Decimal, int, float, None] = None,
    discount_candidates: Iterable[DiscountCandidate] = (),
    extra_charges: Iterable[ExtraChargeInput] = (),
) -> DetailedPricingData:
    """
    Build an itemized quote.

    Discounts are additive on the original vehicle base price: each one is
    base_price_per_day × percent, never taken from a discounted running total.
    The driver fee is a flat per-day add and is never discounted. A zero base
    price yields an all-zero quote without discounts or charges.
    """
    base = to_decimal(base_price_per_day)
    days = max(1, int(total_days))

    if base <= 0:
        return _zero_pricing(days)

    # === BASE & DRIVER ===
    base_subtotal = base * days

    driver_fee = to_decimal(driver_fee_per_day)
    has_driver_fee = driver_fee > 0
    driver_subtotal = driver_fee * days if has_driver_fee else ZERO

    # === EXTRA CHARGES ===
    charge_lines: List[ExtraChargeLine] = [_extra_charge_line(c, days) for c in extra_charges]
    extra_total = sum((c.total_amount for c in charge_lines), ZERO)

    subtotal_before_discounts = base_subtotal + driver_subtotal + extra_total

    # === DISCOUNTS ===
    discount_lines: List[DiscountLine] = []
    for candidate in discount_candidates:
        amount_per_day = quantize_cents(base * candidate.percent_off / 100)
        discount_lines.append(DiscountLine(
            label=candidate.label,
            type=candidate.type,
            percent_off=candidate.percent_off,
            applied_to=candidate.applied_to,
            applied=candidate.applied,
            amount_per_day=amount_per_day,
            total_amount=amount_per_day * days,
        ))

    total_discounts = sum((d.total_amount for d in discount_lines if d.applied), ZERO)

    final_total = subtotal_before_discounts - total_discounts
    if final_total < 0:
        logger.warning(
            f"Discounts {total_discounts} exceed subtotal {subtotal_before_discounts}; clamping final total to 0"
        )
        final_total = ZERO

    return DetailedPricingData(
        base_price_per_day=base,
        total_days=days,
        base_subtotal=base_subtotal,
        driver_fee_per_day=driver_fee if has_driver_fee else None,
        driver_subtotal=driver_subtotal if has_driver_fee else None,
        discounts=discount_lines,
        extra_charges=charge_lines,
        subtotal_before_discounts=subtotal_before_discounts,
        total_discounts=total_discounts,
        total_savings=total_discounts,
        final_total=final_total,
    )


class BookingPricingEngine:
    """
    Booking-flow pricing: rule set + driver fee on top of compute_pricing.

    Quotes are pure functions of the RentalContext, so they are memoized by it.
    """

    def __init__(
        self,
        rules: DiscountRuleSet = DEFAULT_RULES,
        driver_fee_per_day: Optional[Decimal] = None,
        memo_size: Optional[int] = None,
    ):
        self.rules = rules
        self.driver_fee_per_day = to_decimal(
            settings.DRIVER_FEE_PER_DAY if driver_fee_per_day is None else driver_fee_per_day
        )
        self._cached_quote = lru_cache(maxsize=memo_size or settings.PRICING_MEMO_SIZE)(self._quote)

    def driver_fee_for(self, drive_option: DriveOption, fee_override: Optional[Decimal] = None) -> Decimal:
        if drive_option != DriveOption.WITH_DRIVER:
            return ZERO
        return self.driver_fee_per_day if fee_override is None else fee_override

    def build_context(
        self,
        price: Union[str, Decimal, int, float, None],
        pickup_date: date,
        return_date: date,
        is_verified_user: bool = False,
        is_promo_vehicle: bool = False,
        drive_option: DriveOption = DriveOption.SELF_DRIVE,
        driver_fee_per_day: Optional[Decimal] = None,
    ) -> RentalContext:
        return RentalContext(
            base_price_per_day=extract_price_value(price),
            total_days=rental_duration(pickup_date, return_date),
            is_verified_user=is_verified_user,
            is_promo_vehicle=is_promo_vehicle,
            drive_option=drive_option,
            driver_fee_per_day=None if driver_fee_per_day is None else to_decimal(driver_fee_per_day),
        )

    def quote(self, context: RentalContext) -> DetailedPricingData:
        """Itemized quote for a rental context"""
        return self._cached_quote(context)

    def quote_vehicle(
        self,
        price: Union[str, Decimal, int, float, None],
        pickup_date: date,
        return_date: date,
        is_verified_user: bool = False,
        is_promo_vehicle: bool = False,
        drive_option: DriveOption = DriveOption.SELF_DRIVE,
        driver_fee_per_day: Optional[Decimal] = None,
    ) -> DetailedPricingData:
        """
        Quote from a raw catalog price and the rental dates.

        driver_fee_per_day pins the driver fee, e.g. to the one frozen in a booking.
        """
        context = self.build_context(
            price, pickup_date, return_date, is_verified_user, is_promo_vehicle, drive_option,
            driver_fee_per_day,
        )
        return self.quote(context)

    def cache_info(self):
        return self._cached_quote.cache_info()

    def _quote(self, context: RentalContext) -> DetailedPricingData:
        if context.base_price_per_day <= 0:
            logger.info("Base price is zero or unparseable; returning zero quote")
            return compute_pricing(ZERO, context.total_days)

        pricing = compute_pricing(
            base_price_per_day=context.base_price_per_day,
            total_days=context.total_days,
            driver_fee_per_day=self.driver_fee_for(context.drive_option, context.driver_fee_per_day),
            discount_candidates=self.rules.evaluate(context),
        )
        logger.debug(
            f"Quoted {context.total_days} day(s) at {context.base_price_per_day}/day: "
            f"{len(pricing.discounts)} discount(s), final {pricing.final_total}"
        )
        return pricing
