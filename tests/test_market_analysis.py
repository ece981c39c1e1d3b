try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from ml_inventory.clients.mercadolivre_api import NotFoundError, ProviderError
from ml_inventory.models import MarketplaceCredentials
from ml_inventory.services.market_analysis import MarketAnalyzer, median, suggested_price


class FakeTokenManager:
    async def get_valid_credentials(self, user_id: str) -> MarketplaceCredentials:
        return MarketplaceCredentials(user_id=user_id, ml_user_id="42", access_token="token")


class FakeMarketplaceClient:
    def __init__(self, results=None, items=None, item_error=None) -> None:
        self.results = results or []
        self.items = items or {}
        self.item_error = item_error
        self.searches: list[tuple[str, int]] = []
        self.item_lookups: list[str] = []

    async def search(self, credentials, query, *, limit=50):
        self.searches.append((query, limit))
        return self.results

    async def get_item(self, credentials, item_id):
        self.item_lookups.append(item_id)
        if self.item_error is not None:
            raise self.item_error
        if item_id not in self.items:
            raise NotFoundError(404, f"Item {item_id} not found")
        return self.items[item_id]


def _listing(item_id: str, price: float, seller_id: int = 1, **extra) -> dict:
    return {
        "id": item_id,
        "title": f"Listing {item_id}",
        "price": price,
        "seller": {"id": seller_id, "power_seller_status": extra.get("status")},
        "shipping": {"free_shipping": extra.get("free_shipping", False)},
    }


def test_median_handles_odd_and_even_counts() -> None:
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2.5
    assert median([]) == 0.0


def test_suggested_price_never_undercuts_the_floor() -> None:
    assert suggested_price(100.0, 80.0) == pytest.approx(95.0)
    assert suggested_price(100.0, 98.0) == pytest.approx(102.9)


@pytest.mark.anyio
async def test_zero_results_yield_zeroed_summary() -> None:
    analyzer = MarketAnalyzer(FakeTokenManager(), FakeMarketplaceClient())

    summary = await analyzer.analyze(user_id="user-1", query="nothing matches")

    assert summary.total_results == 0
    assert summary.min_price == 0
    assert summary.max_price == 0
    assert summary.mean_price == 0
    assert summary.median_price == 0
    assert summary.suggested_price == 0
    assert summary.free_shipping_percent == 0
    assert summary.listings == []


@pytest.mark.anyio
async def test_price_statistics_for_known_market() -> None:
    results = [
        _listing("A", 80, free_shipping=True, status="platinum"),
        _listing("B", 90, status="gold"),
        _listing("C", 100, free_shipping=True),
        _listing("D", 110, status="silver"),
        _listing("E", 500),
    ]
    analyzer = MarketAnalyzer(FakeTokenManager(), FakeMarketplaceClient(results))

    summary = await analyzer.analyze(user_id="user-1", query="caneca")

    assert summary.total_results == 5
    assert summary.min_price == 80
    assert summary.max_price == 500
    assert summary.median_price == 100
    assert summary.mean_price == pytest.approx(176)
    assert summary.suggested_price == pytest.approx(95)
    assert summary.free_shipping_percent == pytest.approx(40)
    assert summary.premium_seller_count == 2


@pytest.mark.anyio
async def test_item_title_becomes_query_and_own_listings_are_excluded() -> None:
    results = [
        _listing("MLB1", 100, seller_id=42),
        _listing("MLB2", 120, seller_id=7),
        _listing("MLB3", 140, seller_id=8),
    ]
    client = FakeMarketplaceClient(
        results, items={"MLB1": {"id": "MLB1", "title": "Caneca termica", "seller_id": 42}}
    )
    analyzer = MarketAnalyzer(FakeTokenManager(), client)

    summary = await analyzer.analyze(user_id="user-1", item_id="MLB1")

    assert client.searches == [("Caneca termica", 50)]
    assert summary.query == "Caneca termica"
    assert [listing.id for listing in summary.listings] == ["MLB2", "MLB3"]
    assert summary.min_price == 120
    assert client.item_lookups == ["MLB1"]


@pytest.mark.anyio
async def test_missing_item_raises_not_found() -> None:
    analyzer = MarketAnalyzer(FakeTokenManager(), FakeMarketplaceClient())

    with pytest.raises(NotFoundError):
        await analyzer.analyze(user_id="user-1", item_id="MLB404")


@pytest.mark.anyio
async def test_failed_self_exclusion_lookup_keeps_all_listings() -> None:
    results = [_listing("MLB1", 100, seller_id=42), _listing("MLB2", 120, seller_id=7)]
    client = FakeMarketplaceClient(
        results, item_error=ProviderError(500, "internal error")
    )
    analyzer = MarketAnalyzer(FakeTokenManager(), client)

    summary = await analyzer.analyze(user_id="user-1", query="caneca", item_id="MLB1")

    assert summary.total_results == 2


@pytest.mark.anyio
async def test_summary_keeps_only_first_twenty_listings() -> None:
    results = [_listing(f"MLB{index}", 10 + index) for index in range(30)]
    analyzer = MarketAnalyzer(FakeTokenManager(), FakeMarketplaceClient(results))

    summary = await analyzer.analyze(user_id="user-1", query="caneca", limit=500)

    assert summary.total_results == 30
    assert len(summary.listings) == 20


@pytest.mark.anyio
async def test_search_limit_is_capped() -> None:
    client = FakeMarketplaceClient()
    analyzer = MarketAnalyzer(FakeTokenManager(), client)

    await analyzer.analyze(user_id="user-1", query="caneca", limit=500)

    assert client.searches == [("caneca", 50)]


@pytest.mark.anyio
async def test_query_or_item_is_required() -> None:
    analyzer = MarketAnalyzer(FakeTokenManager(), FakeMarketplaceClient())

    with pytest.raises(ValueError):
        await analyzer.analyze(user_id="user-1")
