"""Schemas describing competitor listings and market summaries."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CompetitorListing(BaseModel):
    """Subset of a marketplace search result used for price analysis."""

    id: str
    title: str = ""
    price: float
    permalink: Optional[str] = None
    thumbnail: Optional[str] = None
    condition: Optional[str] = None
    sold_quantity: Optional[int] = None
    available_quantity: Optional[int] = None
    seller_id: Optional[int] = None
    seller_nickname: Optional[str] = None
    power_seller_status: Optional[str] = None
    free_shipping: bool = False

    @classmethod
    def from_search_result(cls, result: Dict[str, Any]) -> "CompetitorListing":
        seller = result.get("seller") or {}
        shipping = result.get("shipping") or {}
        return cls(
            id=str(result.get("id", "")),
            title=result.get("title") or "",
            price=float(result.get("price") or 0),
            permalink=result.get("permalink"),
            thumbnail=result.get("thumbnail"),
            condition=result.get("condition"),
            sold_quantity=result.get("sold_quantity"),
            available_quantity=result.get("available_quantity"),
            seller_id=seller.get("id"),
            seller_nickname=seller.get("nickname"),
            power_seller_status=seller.get("power_seller_status"),
            free_shipping=bool(shipping.get("free_shipping")),
        )


class MarketSummary(BaseModel):
    query: str
    total_results: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    mean_price: float = 0.0
    median_price: float = 0.0
    suggested_price: float = 0.0
    free_shipping_percent: float = 0.0
    premium_seller_count: int = 0
    listings: List[CompetitorListing] = Field(default_factory=list)


__all__ = ["CompetitorListing", "MarketSummary"]
