"""
Pricing endpoints for NACS Car Rental
Itemized rental quotes with verified-user, promotional and duration discounts
"""
from fastapi import APIRouter, HTTPException, status, Depends
from typing import Dict, Any, Optional
import logging

from nacs_rental.api.deps import get_pricing_engine
from nacs_rental.core.security import get_current_user_optional
from nacs_rental.schemas.pricing import QuoteRequest, QuoteResponse
from nacs_rental.services.pricing.quotation import render_quotation
from nacs_rental.services.pricing.rule_engine import BookingPricingEngine

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Endpoints ====================

@router.post("/quote", response_model=QuoteResponse)
async def quote_rental(
    request: QuoteRequest,
    current_user: Optional[Dict[str, Any]] = Depends(get_current_user_optional),
    engine: BookingPricingEngine = Depends(get_pricing_engine),
):
    """
    Quote a rental for a daily rate and a pickup/return date pair.

    The verified-user discount comes from the signed-in user's profile;
    anonymous callers are quoted as unverified.
    """
    try:
        is_verified = bool(current_user and current_user.get('is_verified'))

        pricing = engine.quote_vehicle(
            request.price,
            request.pickup_date,
            request.return_date,
            is_verified_user=is_verified,
            is_promo_vehicle=request.is_promo_vehicle,
            drive_option=request.drive_option,
        )

        logger.info(
            f"Quote: {pricing.total_days} day(s) at {pricing.base_price_per_day}/day, "
            f"verified={is_verified}, promo={request.is_promo_vehicle}, final={pricing.final_total}"
        )

        return QuoteResponse(pricing=pricing, quotation=render_quotation(pricing))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing quote: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute quote"
        )
