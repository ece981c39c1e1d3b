try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from ml_inventory.clients.mercadolivre_api import (
    AuthenticatedApiClient,
    MercadoLivreClient,
    NotFoundError,
    ProviderError,
)
from ml_inventory.models import MarketplaceCredentials


class StubTokenManager:
    """Token manager double; the client under test never hits auth failures here."""

    def current_refresh_token(self, user_id: str):
        return None

    def invalidate(self, user_id: str) -> None:
        raise AssertionError("credentials must not be invalidated")


def _client(settings, handler) -> MercadoLivreClient:
    api = AuthenticatedApiClient(
        StubTokenManager(), settings.mercadolivre, transport=httpx.MockTransport(handler)
    )
    return MercadoLivreClient(api, site_id="MLB")


@pytest.fixture
def credentials() -> MarketplaceCredentials:
    return MarketplaceCredentials(user_id="user-1", ml_user_id="999", access_token="token")


@pytest.mark.anyio
async def test_get_me_returns_account(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/users/me"
        return httpx.Response(200, json={"id": 999, "nickname": "SELLER"})

    account = await _client(settings, handler).get_me(credentials)

    assert account["nickname"] == "SELLER"


@pytest.mark.anyio
async def test_list_items_fetches_ids_then_details(settings, credentials):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/users/999/items/search":
            return httpx.Response(200, json={"results": ["MLB1", "MLB2", "MLB3"]})
        assert request.url.path == "/items"
        return httpx.Response(
            200,
            json=[
                {"code": 200, "body": {"id": "MLB1", "price": 10}},
                {"code": 404, "body": {"message": "not found"}},
                {"code": 200, "body": {"id": "MLB3", "price": 30}},
            ],
        )

    items = await _client(settings, handler).list_items(credentials, limit=3)

    assert [item["id"] for item in items] == ["MLB1", "MLB3"]
    assert seen[0].url.params["limit"] == "3"
    assert seen[1].url.params["ids"] == "MLB1,MLB2,MLB3"


@pytest.mark.anyio
async def test_list_items_without_listings_skips_detail_call(settings, credentials):
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"results": []})

    items = await _client(settings, handler).list_items(credentials)

    assert items == []
    assert calls == ["/users/999/items/search"]


@pytest.mark.anyio
async def test_get_orders_filters_paid_by_default(settings, credentials):
    params: list[httpx.QueryParams] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params.append(request.url.params)
        return httpx.Response(200, json={"results": [{"id": 1}]})

    client = _client(settings, handler)
    orders = await client.get_orders(credentials)
    await client.get_orders(credentials, status="all")

    assert orders == [{"id": 1}]
    assert params[0]["seller"] == "999"
    assert params[0]["order.status"] == "paid"
    assert params[0]["sort"] == "date_desc"
    assert "order.status" not in params[1]


@pytest.mark.anyio
async def test_get_questions_requests_unanswered(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["status"] == "UNANSWERED"
        assert request.url.params["seller_id"] == "999"
        return httpx.Response(200, json={"questions": [{"id": 7, "text": "Tem azul?"}]})

    questions = await _client(settings, handler).get_questions(credentials)

    assert questions[0]["id"] == 7


@pytest.mark.anyio
async def test_search_uses_configured_site(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/sites/MLB/search"
        assert request.url.params["q"] == "fone bluetooth"
        assert request.url.params["limit"] == "20"
        return httpx.Response(200, json={"results": [{"id": "MLB9", "price": 99.9}]})

    results = await _client(settings, handler).search(credentials, "fone bluetooth", limit=20)

    assert results == [{"id": "MLB9", "price": 99.9}]


@pytest.mark.anyio
async def test_missing_item_raises_not_found(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Item with id MLB0 not found"})

    with pytest.raises(NotFoundError) as excinfo:
        await _client(settings, handler).get_item(credentials, "MLB0")

    assert excinfo.value.status_code == 404
    assert "MLB0" in excinfo.value.message


@pytest.mark.anyio
async def test_server_error_raises_provider_error(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    with pytest.raises(ProviderError) as excinfo:
        await _client(settings, handler).get_me(credentials)

    assert excinfo.value.status_code == 503
    assert not isinstance(excinfo.value, NotFoundError)


@pytest.mark.anyio
async def test_non_json_success_raises_provider_error(settings, credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(ProviderError) as excinfo:
        await _client(settings, handler).search(credentials, "caneca")

    assert excinfo.value.status_code == 502
