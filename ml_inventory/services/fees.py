"""
Marketplace fee, profit and pricing calculations.

Pure functions, no I/O. Every function accepts an optional ``FeeConfig`` whose
unset fields fall back to the marketplace defaults below. ``listing_type`` must
be a ``ListingType`` member; anything else is a caller error and is not checked.
"""

from __future__ import annotations

from typing import List, Optional

from ml_inventory.schemas.fees import (
    CompetitivenessRating,
    FeeConfig,
    FeeQuote,
    ListingType,
    MarginCalculation,
    OrderProfit,
    ReverseCalculation,
)

DEFAULT_CLASSIC_PERCENT = 11.0
DEFAULT_PREMIUM_PERCENT = 16.0
DEFAULT_FIXED_FEE_THRESHOLD = 79.0
DEFAULT_FIXED_FEE_AMOUNT = 6.0

MARGIN_LADDER = (10, 15, 20, 25, 30, 35, 40)

_RECOMMENDATIONS = {
    "excellent": "Price sits at the market floor; there is room to raise it and stay competitive.",
    "good": "Price is below the market median and well positioned to sell.",
    "regular": "Price is in line with the market median.",
    "high": "Price is above the median; consider lowering it to gain visibility.",
    "very_high": "Price is well above the market; lower it to compete.",
}


def _config(config: Optional[FeeConfig]) -> FeeConfig:
    return config or FeeConfig()


def fee_percent_for(listing_type: ListingType, config: Optional[FeeConfig] = None) -> float:
    cfg = _config(config)
    if listing_type == ListingType.PREMIUM:
        return _or_default(cfg.premium_percent, DEFAULT_PREMIUM_PERCENT)
    return _or_default(cfg.classic_percent, DEFAULT_CLASSIC_PERCENT)


def fixed_fee_for(sale_price: float, config: Optional[FeeConfig] = None) -> float:
    """Fixed surcharge for sales strictly below the threshold."""
    cfg = _config(config)
    threshold = _or_default(cfg.fixed_fee_threshold, DEFAULT_FIXED_FEE_THRESHOLD)
    amount = _or_default(cfg.fixed_fee_amount, DEFAULT_FIXED_FEE_AMOUNT)
    return amount if sale_price < threshold else 0.0


def compute_fees(
    sale_price: float,
    listing_type: ListingType,
    config: Optional[FeeConfig] = None,
) -> FeeQuote:
    fee_percent = fee_percent_for(listing_type, config)
    fee_percent_amount = sale_price * fee_percent / 100
    fixed_fee = fixed_fee_for(sale_price, config)
    return FeeQuote(
        listing_type=listing_type,
        fee_percent=fee_percent,
        fee_percent_amount=fee_percent_amount,
        fixed_fee=fixed_fee,
        total_fees=fee_percent_amount + fixed_fee,
    )


def unit_profit(
    sale_price: float,
    cost_price: float,
    listing_type: ListingType,
    config: Optional[FeeConfig] = None,
) -> MarginCalculation:
    """Net profit of selling one unit: price minus cost minus fees."""
    fees = compute_fees(sale_price, listing_type, config)
    profit = sale_price - cost_price - fees.total_fees
    return MarginCalculation(
        sale_price=sale_price,
        cost_price=cost_price,
        listing_type=listing_type,
        fee_percent=fees.fee_percent,
        fixed_fee=fees.fixed_fee,
        total_fees=fees.total_fees,
        profit=profit,
        margin_percent=_margin(profit, sale_price),
    )


def order_profit(
    unit_price: float,
    unit_cost: float,
    quantity: int,
    listing_type: ListingType,
    config: Optional[FeeConfig] = None,
) -> OrderProfit:
    """Net profit of an order.

    The fixed fee applies once per order and is judged against the gross
    revenue, so three units at 50 pay no fixed fee (150 is above the threshold).
    """
    gross_revenue = unit_price * quantity
    total_cost = unit_cost * quantity
    fees = compute_fees(gross_revenue, listing_type, config)
    profit = gross_revenue - total_cost - fees.total_fees
    return OrderProfit(
        unit_price=unit_price,
        unit_cost=unit_cost,
        quantity=quantity,
        gross_revenue=gross_revenue,
        total_cost=total_cost,
        fee_percent=fees.fee_percent,
        fixed_fee=fees.fixed_fee,
        total_fees=fees.total_fees,
        profit=profit,
        margin_percent=_margin(profit, gross_revenue),
    )


def max_purchase_cost(
    market_price: float,
    desired_margin_percent: float,
    listing_type: ListingType,
    config: Optional[FeeConfig] = None,
) -> ReverseCalculation:
    """Highest acquisition cost that still leaves the desired margin.

    An infeasible target (negative theoretical cost) reports a cost of 0.
    """
    fees = compute_fees(market_price, listing_type, config)
    target_profit = market_price * desired_margin_percent / 100
    cost = max(0.0, market_price - fees.total_fees - target_profit)
    return ReverseCalculation(
        market_price=market_price,
        desired_margin_percent=desired_margin_percent,
        total_fees=fees.total_fees,
        max_purchase_cost=cost,
        expected_profit=market_price - fees.total_fees - cost,
    )


def margin_scenarios(
    market_price: float,
    listing_type: ListingType,
    config: Optional[FeeConfig] = None,
) -> List[ReverseCalculation]:
    return [
        max_purchase_cost(market_price, margin, listing_type, config)
        for margin in MARGIN_LADDER
    ]


def rate_competitiveness(
    my_price: float,
    mean_price: float,
    median_price: float,
    min_price: float,
) -> CompetitivenessRating:
    """Classify a price against market statistics; first matching rule wins."""
    delta_percent = (
        (my_price - median_price) / median_price * 100 if median_price > 0 else 0.0
    )

    if my_price <= min_price * 1.05:
        status = "excellent"
    elif my_price <= median_price * 0.95:
        status = "good"
    elif my_price <= median_price * 1.05:
        status = "regular"
    elif my_price <= mean_price * 1.15:
        status = "high"
    else:
        status = "very_high"

    return CompetitivenessRating(
        status=status,
        delta_percent=delta_percent,
        recommendation=_RECOMMENDATIONS[status],
    )


def _margin(profit: float, revenue: float) -> float:
    return profit / revenue * 100 if revenue > 0 else 0.0


def _or_default(value: Optional[float], default: float) -> float:
    return default if value is None else value


__all__ = [
    "DEFAULT_CLASSIC_PERCENT",
    "DEFAULT_FIXED_FEE_AMOUNT",
    "DEFAULT_FIXED_FEE_THRESHOLD",
    "DEFAULT_PREMIUM_PERCENT",
    "MARGIN_LADDER",
    "compute_fees",
    "fee_percent_for",
    "fixed_fee_for",
    "margin_scenarios",
    "max_purchase_cost",
    "order_profit",
    "rate_competitiveness",
    "unit_profit",
]
