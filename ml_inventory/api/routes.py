"""
FastAPI routes for the marketplace inventory backend.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any, Literal, NoReturn

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from ml_inventory.clients.mercadolivre_api import NotFoundError, ProviderError
from ml_inventory.clients.mercadolivre_auth import (
    NotConnectedError,
    OAuthTokenExchangeError,
    SessionExpiredError,
)
from ml_inventory.dependencies import (
    AppSettingsDep,
    get_market_analyzer,
    get_marketplace_client,
    get_oauth_client,
    get_oauth_state_encoder,
    get_sqlite_store,
    get_token_manager,
)
from ml_inventory.schemas import (
    CompetitivenessRating,
    CompetitivenessRequest,
    ConnectionStatus,
    DisconnectRequest,
    FeeConfig,
    FeeQuote,
    FeeQuoteRequest,
    MarginCalculation,
    MarginScenariosRequest,
    MarginScenariosResponse,
    MarketSummary,
    MaxPurchaseCostRequest,
    OAuthCallbackPayload,
    OrderProfit,
    OrderProfitRequest,
    ReverseCalculation,
    UnitProfitRequest,
)
from ml_inventory.services import fees

router = APIRouter()
logger = logging.getLogger(__name__)


def _raise_http_error(exc: Exception) -> NoReturn:
    """Translate a marketplace domain error into an HTTP error response."""
    if isinstance(exc, NotConnectedError):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={"message": "Mercado Livre account not connected.", "action": "connect"},
        ) from exc
    if isinstance(exc, SessionExpiredError):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={
                "message": "Mercado Livre session expired. Please reconnect.",
                "action": "reconnect",
            },
        ) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=exc.message) from exc
    if isinstance(exc, ProviderError):
        status_code = exc.status_code
        if status_code >= 500:
            status_code = HTTPStatus.BAD_GATEWAY
        raise HTTPException(status_code=status_code, detail=exc.message) from exc
    if isinstance(exc, httpx.HTTPError):
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Mercado Livre is unreachable.",
        ) from exc
    raise exc


_DOMAIN_ERRORS = (NotConnectedError, SessionExpiredError, ProviderError, httpx.HTTPError)


def _fee_config(record_store: Any, user_id: str | None) -> FeeConfig | None:
    if not user_id:
        return None
    return FeeConfig.from_user_settings(record_store.get_user_settings(user_id))


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/mercadolivre/authorize", status_code=HTTPStatus.OK)
async def start_mercadolivre_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    user_id: str = Query(..., description="User identifier initiating authentication."),
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Mercado Livre consent screen.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(state=state)

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.post("/auth/mercadolivre/callback", status_code=HTTPStatus.OK)
async def handle_mercadolivre_oauth_callback(
    payload: OAuthCallbackPayload,
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    record_store: Annotated[Any, Depends(get_sqlite_store)],
    settings: AppSettingsDep,
) -> dict:
    """Complete the OAuth exchange, store the connection and return redirect metadata."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    if datetime.now(timezone.utc) - issued_at > timedelta(
        seconds=settings.oauth.state_ttl_seconds
    ):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    user_id = state_data.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing user identifier in state token.",
        )

    try:
        credentials = await token_manager.connect(user_id, payload.code)
    except (OAuthTokenExchangeError, httpx.HTTPError) as exc:
        logger.warning("Authorization code exchange failed for user %s: %s", user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    nickname = None
    try:
        account = await ml_client.get_me(credentials)
    except _DOMAIN_ERRORS as exc:
        logger.warning("Could not load marketplace profile for user %s: %s", user_id, exc)
    else:
        nickname = account.get("nickname")
        if nickname:
            record_store.update_user_settings(user_id, {"ml_nickname": nickname})

    return {
        "status": "connected",
        "ml_user_id": credentials.ml_user_id,
        "nickname": nickname,
        "redirect_to": state_data.get("redirect_to"),
    }


@router.get("/auth/mercadolivre/callback", status_code=HTTPStatus.OK)
async def handle_mercadolivre_oauth_callback_get(
    request: Request,
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    record_store: Annotated[Any, Depends(get_sqlite_store)],
    settings: AppSettingsDep,
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by Mercado Livre."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    payload = OAuthCallbackPayload(state=state, code=code)
    result = await handle_mercadolivre_oauth_callback(
        payload=payload,
        state_encoder=state_encoder,
        token_manager=token_manager,
        ml_client=ml_client,
        record_store=record_store,
        settings=settings,
    )

    wants_html = "text/html" in request.headers.get("accept", "").lower()
    redirect_target = result.get("redirect_to") or settings.frontend_base_url

    if redirect_target and (redirect or wants_html):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result)


@router.post("/auth/mercadolivre/disconnect", status_code=HTTPStatus.OK)
async def disconnect_mercadolivre(
    payload: DisconnectRequest,
    token_manager: Annotated[Any, Depends(get_token_manager)],
) -> dict:
    token_manager.disconnect(payload.user_id)
    return {"status": "disconnected"}


@router.get(
    "/mercadolivre/status",
    status_code=HTTPStatus.OK,
    response_model=ConnectionStatus,
)
async def get_connection_status(
    record_store: Annotated[Any, Depends(get_sqlite_store)],
    user_id: str = Query(..., description="User identifier."),
) -> ConnectionStatus:
    """Report whether the user has a marketplace connection on file."""
    row = record_store.get_user_settings(user_id) or {}
    connected = bool(row.get("ml_access_token") and row.get("ml_user_id"))
    if not connected:
        return ConnectionStatus(connected=False)
    return ConnectionStatus(
        connected=True,
        ml_user_id=row.get("ml_user_id"),
        nickname=row.get("ml_nickname"),
        expires_at=row.get("ml_token_expires_at"),
    )


@router.get("/mercadolivre/me", status_code=HTTPStatus.OK)
async def get_marketplace_account(
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    user_id: str = Query(..., description="User identifier."),
) -> dict:
    try:
        credentials = await token_manager.get_valid_credentials(user_id)
        return await ml_client.get_me(credentials)
    except _DOMAIN_ERRORS as exc:
        _raise_http_error(exc)


@router.get("/mercadolivre/items", status_code=HTTPStatus.OK)
async def list_marketplace_items(
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    user_id: str = Query(..., description="User identifier."),
    limit: int = Query(default=50, ge=1, le=50),
) -> dict:
    """Return the seller's listings with full item details."""
    try:
        credentials = await token_manager.get_valid_credentials(user_id)
        items = await ml_client.list_items(credentials, limit=limit)
    except _DOMAIN_ERRORS as exc:
        _raise_http_error(exc)
    return {"items": items, "total": len(items)}


@router.get("/mercadolivre/orders", status_code=HTTPStatus.OK)
async def list_marketplace_orders(
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    user_id: str = Query(..., description="User identifier."),
    status: Literal["paid", "all"] = Query(default="paid"),
    limit: int = Query(default=50, ge=1, le=50),
) -> dict:
    try:
        credentials = await token_manager.get_valid_credentials(user_id)
        orders = await ml_client.get_orders(credentials, status=status, limit=limit)
    except _DOMAIN_ERRORS as exc:
        _raise_http_error(exc)
    return {"orders": orders, "total": len(orders)}


@router.get("/mercadolivre/questions", status_code=HTTPStatus.OK)
async def list_unanswered_questions(
    token_manager: Annotated[Any, Depends(get_token_manager)],
    ml_client: Annotated[Any, Depends(get_marketplace_client)],
    user_id: str = Query(..., description="User identifier."),
) -> dict:
    try:
        credentials = await token_manager.get_valid_credentials(user_id)
        questions = await ml_client.get_questions(credentials)
    except _DOMAIN_ERRORS as exc:
        _raise_http_error(exc)
    return {"questions": questions, "total": len(questions)}


@router.get(
    "/mercadolivre/search",
    status_code=HTTPStatus.OK,
    response_model=MarketSummary,
)
async def analyze_market(
    analyzer: Annotated[Any, Depends(get_market_analyzer)],
    user_id: str = Query(..., description="User identifier."),
    q: str | None = Query(default=None, description="Search terms."),
    item_id: str | None = Query(
        default=None,
        description="One of the user's items; its title is searched and its seller excluded.",
    ),
    limit: int = Query(default=50, ge=1, le=50),
) -> MarketSummary:
    """Summarize competitor prices for a query or one of the user's items."""
    if not q and not item_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Either a query or an item id is required.",
        )
    try:
        return await analyzer.analyze(user_id=user_id, query=q, item_id=item_id, limit=limit)
    except _DOMAIN_ERRORS as exc:
        _raise_http_error(exc)


@router.post("/fees/quote", status_code=HTTPStatus.OK, response_model=FeeQuote)
async def quote_fees(
    payload: FeeQuoteRequest,
    record_store: Annotated[Any, Depends(get_sqlite_store)],
) -> FeeQuote:
    config = _fee_config(record_store, payload.user_id)
    return fees.compute_fees(payload.sale_price, payload.listing_type, config)


@router.post("/fees/unit-profit", status_code=HTTPStatus.OK, response_model=MarginCalculation)
async def calculate_unit_profit(
    payload: UnitProfitRequest,
    record_store: Annotated[Any, Depends(get_sqlite_store)],
) -> MarginCalculation:
    config = _fee_config(record_store, payload.user_id)
    return fees.unit_profit(payload.sale_price, payload.cost_price, payload.listing_type, config)


@router.post("/fees/order-profit", status_code=HTTPStatus.OK, response_model=OrderProfit)
async def calculate_order_profit(
    payload: OrderProfitRequest,
    record_store: Annotated[Any, Depends(get_sqlite_store)],
) -> OrderProfit:
    config = _fee_config(record_store, payload.user_id)
    return fees.order_profit(
        payload.unit_price,
        payload.unit_cost,
        payload.quantity,
        payload.listing_type,
        config,
    )


@router.post(
    "/fees/max-purchase-cost",
    status_code=HTTPStatus.OK,
    response_model=ReverseCalculation,
)
async def calculate_max_purchase_cost(
    payload: MaxPurchaseCostRequest,
    record_store: Annotated[Any, Depends(get_sqlite_store)],
) -> ReverseCalculation:
    """Highest purchase cost that keeps the desired margin at market price."""
    config = _fee_config(record_store, payload.user_id)
    return fees.max_purchase_cost(
        payload.market_price,
        payload.desired_margin_percent,
        payload.listing_type,
        config,
    )


@router.post(
    "/fees/scenarios",
    status_code=HTTPStatus.OK,
    response_model=MarginScenariosResponse,
)
async def calculate_margin_scenarios(
    payload: MarginScenariosRequest,
    record_store: Annotated[Any, Depends(get_sqlite_store)],
) -> MarginScenariosResponse:
    config = _fee_config(record_store, payload.user_id)
    scenarios = fees.margin_scenarios(payload.market_price, payload.listing_type, config)
    return MarginScenariosResponse(scenarios=scenarios)


@router.post(
    "/fees/competitiveness",
    status_code=HTTPStatus.OK,
    response_model=CompetitivenessRating,
)
async def rate_price_competitiveness(payload: CompetitivenessRequest) -> CompetitivenessRating:
    return fees.rate_competitiveness(
        payload.my_price,
        payload.mean_price,
        payload.median_price,
        payload.min_price,
    )


__all__ = ["router"]
