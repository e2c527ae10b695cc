"""
Quotation rendering
Read-only projection of a DetailedPricingData into display rows and totals
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from nacs_rental.schemas.pricing import DetailedPricingData, QuoteLine, Quotation
from nacs_rental.services.pricing.money import format_price, quantize_cents, savings_percentage

ONE_DECIMAL = Decimal("0.1")


def _line(label: str, kind: str, per_day: Decimal, days: int, total: Decimal, percent_off=None) -> QuoteLine:
    sign = "-" if kind == "discount" else ""
    return QuoteLine(
        label=label,
        kind=kind,
        percent_off=percent_off,
        amount_per_day=per_day,
        days=days,
        total_amount=total,
        formatted_per_day=f"{sign}{format_price(per_day)}",
        formatted_total=f"{sign}{format_price(total)}",
    )


def render_quotation(pricing: DetailedPricingData) -> Quotation:
    """
    Render the quote rows exactly as computed.

    Amounts are taken from the pricing data as-is; nothing is recomputed here
    except the display ratios (savings percentage, effective price per day).
    """
    days = pricing.total_days
    lines: List[QuoteLine] = [
        _line("Vehicle rental", "base", pricing.base_price_per_day, days, pricing.base_subtotal),
    ]

    if pricing.driver_fee_per_day:
        lines.append(_line(
            "Professional driver", "driver", pricing.driver_fee_per_day, days, pricing.driver_subtotal or Decimal("0")
        ))

    for charge in pricing.extra_charges:
        lines.append(_line(charge.label, "extra", charge.amount_per_day, days, charge.total_amount))

    for discount in pricing.applied_discounts:
        lines.append(_line(
            discount.label, "discount", discount.amount_per_day, days, discount.total_amount,
            percent_off=discount.percent_off,
        ))

    subtotal = pricing.subtotal_before_discounts
    percent_saved = savings_percentage(subtotal, subtotal - pricing.total_savings).quantize(
        ONE_DECIMAL, rounding=ROUND_HALF_UP
    )

    final_price_per_day = quantize_cents(pricing.final_total / days) if days > 0 else Decimal("0")

    return Quotation(
        lines=lines,
        total_days=days,
        subtotal_before_discounts=pricing.subtotal_before_discounts,
        total_savings=pricing.total_savings,
        savings_percentage=percent_saved,
        final_total=pricing.final_total,
        final_price_per_day=final_price_per_day,
        formatted_subtotal=format_price(pricing.subtotal_before_discounts),
        formatted_savings=format_price(pricing.total_savings),
        formatted_final_total=format_price(pricing.final_total),
        formatted_final_price_per_day=format_price(final_price_per_day),
    )
