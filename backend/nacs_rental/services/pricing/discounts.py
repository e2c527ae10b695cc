"""
Discount rule set
Declarative verified-user, promotional-vehicle and duration-tier discounts
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from nacs_rental.schemas.pricing import DiscountCandidate, DiscountType, RentalContext


@dataclass(frozen=True)
class DurationTier:
    """Discount bracket for rentals of at most max_days (None = unbounded)"""
    max_days: Optional[int]
    percent_off: Decimal
    label: Optional[str]

    def matches(self, total_days: int) -> bool:
        return self.max_days is None or total_days <= self.max_days


VERIFIED_USER_PERCENT = Decimal("5")
PROMO_VEHICLE_PERCENT = Decimal("10")

# Ascending thresholds; first match wins
DEFAULT_DURATION_TIERS: Tuple[DurationTier, ...] = (
    DurationTier(1, Decimal("0"), None),
    DurationTier(3, Decimal("2.5"), "Short-term Rental (2-3 days)"),
    DurationTier(7, Decimal("5"), "Weekly Rental (4-7 days)"),
    DurationTier(14, Decimal("10"), "Bi-weekly Rental (8-14 days)"),
    DurationTier(21, Decimal("20"), "Long-term Rental (15-21 days)"),
    DurationTier(29, Decimal("25"), "Monthly Rental (22-29 days)"),
    DurationTier(None, Decimal("30"), "Extended Monthly Rental (30+ days)"),
)


@dataclass(frozen=True)
class DiscountRuleSet:
    """
    Discount rules evaluated against a RentalContext.

    Rules are independent and all qualifying ones apply together. Evaluation
    order is fixed: verified user, promotional vehicle, duration tier.
    """
    verified_user_percent: Decimal = VERIFIED_USER_PERCENT
    promo_vehicle_percent: Decimal = PROMO_VEHICLE_PERCENT
    duration_tiers: Tuple[DurationTier, ...] = field(default=DEFAULT_DURATION_TIERS)

    def duration_tier_for(self, total_days: int) -> Optional[DurationTier]:
        for tier in self.duration_tiers:
            if tier.matches(total_days):
                return tier
        return None

    def evaluate(self, context: RentalContext) -> List[DiscountCandidate]:
        candidates: List[DiscountCandidate] = []

        if context.is_verified_user and self.verified_user_percent > 0:
            candidates.append(DiscountCandidate(
                label="Verified User Discount",
                type=DiscountType.VERIFIED_USER,
                percent_off=self.verified_user_percent,
            ))

        if context.is_promo_vehicle and self.promo_vehicle_percent > 0:
            candidates.append(DiscountCandidate(
                label="Promotional Vehicle",
                type=DiscountType.PROMO_VEHICLE,
                percent_off=self.promo_vehicle_percent,
            ))

        tier = self.duration_tier_for(context.total_days)
        if tier is not None and tier.percent_off > 0:
            candidates.append(DiscountCandidate(
                label=tier.label or "Extended Rental",
                type=DiscountType.DURATION,
                percent_off=tier.percent_off,
            ))

        return candidates


DEFAULT_RULES = DiscountRuleSet()


def evaluate_discounts(context: RentalContext, rules: DiscountRuleSet = DEFAULT_RULES) -> List[DiscountCandidate]:
    """Candidate discounts for a rental context using the standard rule table"""
    return rules.evaluate(context)
