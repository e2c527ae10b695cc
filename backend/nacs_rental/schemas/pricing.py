"""
Pricing request/response schemas
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, validator


class DriveOption(str, Enum):
    SELF_DRIVE = "self-drive"
    WITH_DRIVER = "with-driver"

    def __str__(self):
        return self.value


class DiscountType(str, Enum):
    VERIFIED_USER = "verified_user"
    PROMO_VEHICLE = "promo_vehicle"
    DURATION = "duration"

    def __str__(self):
        return self.value


class RentalContext(BaseModel):
    """Inputs for a single pricing computation"""
    base_price_per_day: Decimal = Field(..., ge=0)
    total_days: int = Field(..., ge=1)
    is_verified_user: bool = False
    is_promo_vehicle: bool = False
    drive_option: DriveOption = DriveOption.SELF_DRIVE
    # Fee agreed at booking time; None uses the engine's current fee
    driver_fee_per_day: Optional[Decimal] = Field(None, ge=0)

    class Config:
        frozen = True


class DiscountCandidate(BaseModel):
    """A qualifying discount before amounts are derived"""
    label: str
    type: DiscountType
    percent_off: Decimal = Field(..., ge=0, le=100)
    applied_to: Literal["vehicle"] = "vehicle"
    applied: bool = True

    class Config:
        frozen = True


class DiscountLine(DiscountCandidate):
    """A discount with its per-day and total amounts"""
    amount_per_day: Decimal
    total_amount: Decimal


class ExtraChargeInput(BaseModel):
    """Extra charge as supplied by the caller; one of the amounts is enough"""
    label: str
    type: str
    amount_per_day: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None

    class Config:
        frozen = True


class ExtraChargeLine(BaseModel):
    """Positive line item added on top of the rental"""
    label: str
    type: str
    amount_per_day: Decimal
    total_amount: Decimal

    class Config:
        frozen = True


class DetailedPricingData(BaseModel):
    """Fully itemized quote; immutable once produced"""
    base_price_per_day: Decimal
    total_days: int
    base_subtotal: Decimal

    driver_fee_per_day: Optional[Decimal] = None
    driver_subtotal: Optional[Decimal] = None

    discounts: List[DiscountLine] = Field(default_factory=list)
    extra_charges: List[ExtraChargeLine] = Field(default_factory=list)

    subtotal_before_discounts: Decimal
    total_discounts: Decimal
    total_savings: Decimal
    final_total: Decimal

    class Config:
        frozen = True

    @property
    def applied_discounts(self) -> List[DiscountLine]:
        return [d for d in self.discounts if d.applied]


class QuoteLine(BaseModel):
    """One rendered row of a quotation"""
    label: str
    kind: str  # base, driver, extra, discount
    percent_off: Optional[Decimal] = None
    amount_per_day: Decimal
    days: int
    total_amount: Decimal
    formatted_per_day: str
    formatted_total: str


class Quotation(BaseModel):
    """Display projection of a DetailedPricingData"""
    lines: List[QuoteLine]
    total_days: int
    subtotal_before_discounts: Decimal
    total_savings: Decimal
    savings_percentage: Decimal
    final_total: Decimal
    final_price_per_day: Decimal
    formatted_subtotal: str
    formatted_savings: str
    formatted_final_total: str
    formatted_final_price_per_day: str


class QuoteRequest(BaseModel):
    """Request for a single-vehicle quote"""
    price: Union[str, Decimal] = Field(..., description="Daily rate, e.g. '₱ 2,500' or 2500")
    pickup_date: date
    return_date: date
    is_promo_vehicle: bool = False
    drive_option: DriveOption = DriveOption.SELF_DRIVE

    @validator('price', pre=True)
    def coerce_price(cls, v):
        if isinstance(v, (int, float)):
            return str(v)
        return v


class QuoteResponse(BaseModel):
    """Quote with its rendered breakdown"""
    pricing: DetailedPricingData
    quotation: Quotation
