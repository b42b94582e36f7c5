"""
Shared fixtures.

No real network calls: quote services are faked with httpx.MockTransport.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

import httpx
import pytest

from src.config import PriceSettings, get_settings
from src.models.records import AssetType, Holding, Transaction, TransactionType
from src.services.pricing import PriceLookupService
from src.services.storage import InMemoryRecordStore


@pytest.fixture
def settings(monkeypatch):
    """Settings with cheap bcrypt and in-memory storage."""
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def store():
    return InMemoryRecordStore()


def make_transaction(
    amount: str,
    txn_type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    user_id: int = 1,
) -> Transaction:
    return Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        type=txn_type,
        category=category,
        description="",
        transaction_date=date(2024, 6, 1),
    )


def make_holding(
    symbol: str,
    quantity: str,
    purchase_price: str,
    asset_type: AssetType = AssetType.STOCK,
    name: Optional[str] = None,
    user_id: int = 1,
) -> Holding:
    return Holding(
        user_id=user_id,
        symbol=symbol,
        name=name or symbol,
        quantity=Decimal(quantity),
        purchase_price=Decimal(purchase_price),
        purchase_date=date(2024, 1, 15),
        type=asset_type,
    )


class FakeQuoteServer:
    """
    Stand-in for the Yahoo and CoinGecko endpoints.

    equity: {ticker: price}; crypto: {coin_id: price}.
    Symbols in `failing` raise a connection error; symbols missing
    from both maps get an empty (but well-formed) response.
    """

    def __init__(
        self,
        equity: Optional[dict[str, Any]] = None,
        crypto: Optional[dict[str, Any]] = None,
        failing: tuple[str, ...] = (),
    ):
        self.equity = equity or {}
        self.crypto = crypto or {}
        self.failing = set(failing)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        if "yahoo" in request.url.host:
            symbol = params["symbols"]
            if symbol in self.failing:
                raise httpx.ConnectError("connection refused", request=request)
            result = []
            if symbol in self.equity:
                result = [{"symbol": symbol, "regularMarketPrice": self.equity[symbol]}]
            return httpx.Response(200, json={"quoteResponse": {"result": result, "error": None}})

        if "coingecko" in request.url.host:
            coin_id = params["ids"]
            currency = params["vs_currencies"]
            if coin_id in self.failing:
                raise httpx.ConnectError("connection refused", request=request)
            body = {}
            if coin_id in self.crypto:
                body = {coin_id: {currency: self.crypto[coin_id]}}
            return httpx.Response(200, json=body)

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def quote_server():
    return FakeQuoteServer(
        equity={"AAPL": 190.5, "MSFT": 410.25},
        crypto={"bitcoin": 50000, "ethereum": 3000.75},
    )


@pytest.fixture
def price_service(quote_server):
    return PriceLookupService(settings=PriceSettings(), client=quote_server.client())
