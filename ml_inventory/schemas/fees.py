"""Schemas for marketplace fee, profit and pricing calculations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ListingType(str, Enum):
    """Marketplace listing tier; each tier carries its own fee percentage."""

    CLASSIC = "classic"
    PREMIUM = "premium"


class FeeConfig(BaseModel):
    """Per-user fee overrides. ``None`` fields fall back to the defaults."""

    classic_percent: Optional[float] = None
    premium_percent: Optional[float] = None
    fixed_fee_threshold: Optional[float] = None
    fixed_fee_amount: Optional[float] = None

    @classmethod
    def from_user_settings(cls, row: Optional[Dict[str, Any]]) -> "FeeConfig":
        """Build overrides from a stored ``user_settings`` row."""
        if not row:
            return cls()
        return cls(
            classic_percent=row.get("fee_classic_percent"),
            premium_percent=row.get("fee_premium_percent"),
            fixed_fee_threshold=row.get("fixed_fee_threshold"),
            fixed_fee_amount=row.get("fixed_fee_amount"),
        )


class FeeQuote(BaseModel):
    listing_type: ListingType
    fee_percent: float
    fee_percent_amount: float
    fixed_fee: float
    total_fees: float


class MarginCalculation(BaseModel):
    """Per-unit profit breakdown."""

    sale_price: float
    cost_price: float
    listing_type: ListingType
    fee_percent: float
    fixed_fee: float
    total_fees: float
    profit: float
    margin_percent: float


class OrderProfit(BaseModel):
    """Profit of one order; the fixed fee is charged once per order."""

    unit_price: float
    unit_cost: float
    quantity: int
    gross_revenue: float
    total_cost: float
    fee_percent: float
    fixed_fee: float
    total_fees: float
    profit: float
    margin_percent: float


class ReverseCalculation(BaseModel):
    """Maximum purchase cost that still yields the desired margin."""

    market_price: float
    desired_margin_percent: float
    total_fees: float
    max_purchase_cost: float = Field(..., ge=0)
    expected_profit: float


CompetitivenessStatus = Literal["excellent", "good", "regular", "high", "very_high"]


class CompetitivenessRating(BaseModel):
    status: CompetitivenessStatus
    delta_percent: float = Field(
        ..., description="Distance of the price from the market median, in percent."
    )
    recommendation: str


class FeeQuoteRequest(BaseModel):
    sale_price: float = Field(..., ge=0)
    listing_type: ListingType = ListingType.CLASSIC
    user_id: Optional[str] = Field(
        None, description="When provided, the user's stored fee overrides apply."
    )


class UnitProfitRequest(FeeQuoteRequest):
    cost_price: float = Field(..., ge=0)


class OrderProfitRequest(BaseModel):
    unit_price: float = Field(..., ge=0)
    unit_cost: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    listing_type: ListingType = ListingType.CLASSIC
    user_id: Optional[str] = None


class MaxPurchaseCostRequest(BaseModel):
    market_price: float = Field(..., ge=0)
    desired_margin_percent: float = Field(..., ge=0, le=100)
    listing_type: ListingType = ListingType.CLASSIC
    user_id: Optional[str] = None


class MarginScenariosRequest(BaseModel):
    market_price: float = Field(..., ge=0)
    listing_type: ListingType = ListingType.CLASSIC
    user_id: Optional[str] = None


class MarginScenariosResponse(BaseModel):
    scenarios: List[ReverseCalculation]


class CompetitivenessRequest(BaseModel):
    my_price: float = Field(..., ge=0)
    mean_price: float = Field(..., ge=0)
    median_price: float = Field(..., ge=0)
    min_price: float = Field(..., ge=0)


__all__ = [
    "CompetitivenessRating",
    "CompetitivenessRequest",
    "CompetitivenessStatus",
    "FeeConfig",
    "FeeQuote",
    "FeeQuoteRequest",
    "ListingType",
    "MarginCalculation",
    "MarginScenariosRequest",
    "MarginScenariosResponse",
    "MaxPurchaseCostRequest",
    "OrderProfit",
    "OrderProfitRequest",
    "ReverseCalculation",
    "UnitProfitRequest",
]
