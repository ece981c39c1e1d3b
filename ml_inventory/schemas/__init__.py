"""Public schema exports."""

from .auth import ConnectionStatus, DisconnectRequest, OAuthCallbackPayload
from .fees import (
    CompetitivenessRating,
    CompetitivenessRequest,
    FeeConfig,
    FeeQuote,
    FeeQuoteRequest,
    ListingType,
    MarginCalculation,
    MarginScenariosRequest,
    MarginScenariosResponse,
    MaxPurchaseCostRequest,
    OrderProfit,
    OrderProfitRequest,
    ReverseCalculation,
    UnitProfitRequest,
)
from .market import CompetitorListing, MarketSummary

__all__ = [
    "CompetitivenessRating",
    "CompetitivenessRequest",
    "CompetitorListing",
    "ConnectionStatus",
    "DisconnectRequest",
    "FeeConfig",
    "FeeQuote",
    "FeeQuoteRequest",
    "ListingType",
    "MarginCalculation",
    "MarginScenariosRequest",
    "MarginScenariosResponse",
    "MarketSummary",
    "MaxPurchaseCostRequest",
    "OAuthCallbackPayload",
    "OrderProfit",
    "OrderProfitRequest",
    "ReverseCalculation",
    "UnitProfitRequest",
]
