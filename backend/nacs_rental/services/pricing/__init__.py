"""Pricing services package"""
from nacs_rental.services.pricing.money import (
    extract_price_value,
    format_price,
    calendar_day_difference,
    rental_duration,
    savings_percentage,
)
from nacs_rental.services.pricing.discounts import (
    DiscountRuleSet,
    DurationTier,
    evaluate_discounts,
)
from nacs_rental.services.pricing.rule_engine import (
    BookingPricingEngine,
    compute_pricing,
)
from nacs_rental.services.pricing.quotation import render_quotation

__all__ = [
    'extract_price_value',
    'format_price',
    'calendar_day_difference',
    'rental_duration',
    'savings_percentage',
    'DiscountRuleSet',
    'DurationTier',
    'evaluate_discounts',
    'BookingPricingEngine',
    'compute_pricing',
    'render_quotation',
]
