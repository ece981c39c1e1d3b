"""
Competitor price analysis built on marketplace search results.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ml_inventory.clients.mercadolivre_api import MercadoLivreClient, ProviderError
from ml_inventory.schemas.market import CompetitorListing, MarketSummary
from ml_inventory.services.token_manager import TokenManager

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 50
LISTINGS_IN_SUMMARY = 20
PREMIUM_SELLER_STATUSES = frozenset({"platinum", "gold"})


def median(values: Sequence[float]) -> float:
    """Standard median; the mean of the two middle values for even counts."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def suggested_price(median_price: float, min_price: float) -> float:
    """Aim 5% under the median but never below 5% over the cheapest competitor."""
    return max(median_price * 0.95, min_price * 1.05)


def summarize_listings(query: str, listings: List[CompetitorListing]) -> MarketSummary:
    if not listings:
        return MarketSummary(query=query)

    prices = [listing.price for listing in listings]
    min_price = min(prices)
    median_price = median(prices)
    free_shipping = sum(1 for listing in listings if listing.free_shipping)
    premium_sellers = sum(
        1 for listing in listings if listing.power_seller_status in PREMIUM_SELLER_STATUSES
    )

    return MarketSummary(
        query=query,
        total_results=len(listings),
        min_price=min_price,
        max_price=max(prices),
        mean_price=sum(prices) / len(prices),
        median_price=median_price,
        suggested_price=suggested_price(median_price, min_price),
        free_shipping_percent=free_shipping / len(listings) * 100,
        premium_seller_count=premium_sellers,
        listings=listings[:LISTINGS_IN_SUMMARY],
    )


class MarketAnalyzer:
    """Summarize competitor pricing for a search query or one of the user's items."""

    def __init__(self, token_manager: TokenManager, ml_client: MercadoLivreClient) -> None:
        self._tokens = token_manager
        self._ml = ml_client

    async def analyze(
        self,
        *,
        user_id: str,
        query: Optional[str] = None,
        item_id: Optional[str] = None,
        limit: int = MAX_SEARCH_RESULTS,
    ) -> MarketSummary:
        """Search competitors and compute price statistics.

        When only ``item_id`` is given its title becomes the query; a missing
        item raises ``NotFoundError``. With ``item_id`` present, listings from
        the item's own seller are excluded.
        """
        if not query and not item_id:
            raise ValueError("Either a query or an item id is required.")

        credentials = await self._tokens.get_valid_credentials(user_id)

        own_item: Optional[Dict[str, Any]] = None
        if item_id and not query:
            own_item = await self._ml.get_item(credentials, item_id)
            query = own_item.get("title") or ""

        limit = max(1, min(limit, MAX_SEARCH_RESULTS))
        results = await self._ml.search(credentials, query, limit=limit)
        listings = [CompetitorListing.from_search_result(result) for result in results]

        if item_id and listings:
            if own_item is None:
                try:
                    own_item = await self._ml.get_item(credentials, item_id)
                except ProviderError as exc:
                    logger.warning(
                        "Could not load item %s for self-exclusion: %s", item_id, exc
                    )
            if own_item is not None:
                seller_id = own_item.get("seller_id")
                listings = [listing for listing in listings if listing.seller_id != seller_id]

        return summarize_listings(query, listings)


__all__ = [
    "MarketAnalyzer",
    "median",
    "suggested_price",
    "summarize_listings",
]
