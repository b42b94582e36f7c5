"""
Price Lookup Service

Fetches current unit prices from two public quote services:
1. Yahoo Finance quote API for stocks
2. CoinGecko simple price API for digital assets

CRITICAL: A lookup NEVER raises to the caller. Network errors, timeouts,
non-2xx responses, malformed JSON and missing or nonsensical price fields
all come back as None ("price unavailable"). The aggregation engine then
values that holding at its purchase price.

No caching, no retries. One request per distinct symbol, all in flight
at once, and the batch waits for every one of them.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import httpx
import structlog

from src.config import PriceSettings, get_settings
from src.models.records import AssetType, Holding, PriceMap

logger = structlog.get_logger(__name__)

USER_AGENT = "personal-finance-tracker/1.0"

# CoinGecko wants coin IDs, not tickers. Anything not listed here
# is sent as the lower-cased symbol.
CRYPTO_SYMBOL_IDS = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "sol": "solana",
    "ada": "cardano",
    "xrp": "ripple",
    "doge": "dogecoin",
    "dot": "polkadot",
    "ltc": "litecoin",
    "bnb": "binancecoin",
    "usdt": "tether",
    "usdc": "usd-coin",
}

# Everything a quote response can throw at us while being parsed
_LOOKUP_ERRORS = (
    httpx.HTTPError,
    asyncio.TimeoutError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
)


def crypto_coin_id(symbol: str) -> str:
    """Map a ticker like 'BTC' to a CoinGecko coin ID like 'bitcoin'."""
    key = symbol.strip().lower()
    return CRYPTO_SYMBOL_IDS.get(key, key)


def _to_price(value) -> Optional[Decimal]:
    """Convert a JSON price field to a positive, finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


async def _get_json(
    client: Optional[httpx.AsyncClient],
    url: str,
    params: dict[str, str],
    timeout_s: float,
):
    """GET a JSON document, bounded by timeout_s overall."""

    async def _request(c: httpx.AsyncClient):
        response = await c.get(
            url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout_s,
        )
        response.raise_for_status()
        return response.json()

    if client is not None:
        return await asyncio.wait_for(_request(client), timeout=timeout_s)

    async with httpx.AsyncClient() as c:
        return await asyncio.wait_for(_request(c), timeout=timeout_s)


async def fetch_equity_price(
    symbol: str,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[PriceSettings] = None,
) -> Optional[Decimal]:
    """
    Fetch the latest market price for a stock.

    Args:
        symbol: Ticker, e.g. 'AAPL'
        client: Shared HTTP client (a throwaway one is created if None)
        settings: Price settings (defaults to global settings)

    Returns:
        Price per share, or None if unavailable for any reason
    """
    settings = settings or get_settings().prices
    try:
        data = await _get_json(
            client,
            settings.equity_quote_url,
            {"symbols": symbol},
            settings.timeout_seconds,
        )
        results = data["quoteResponse"]["result"]
        value = results[0].get("regularMarketPrice") if results else None
    except _LOOKUP_ERRORS as e:
        logger.warning(
            "price_unavailable",
            symbol=symbol,
            asset_type=AssetType.STOCK.value,
            error=f"{type(e).__name__}: {e}",
        )
        return None

    price = _to_price(value)
    if price is None:
        logger.warning(
            "price_unavailable",
            symbol=symbol,
            asset_type=AssetType.STOCK.value,
            error="missing or invalid regularMarketPrice",
        )
    return price


async def fetch_digital_asset_price(
    symbol: str,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[PriceSettings] = None,
) -> Optional[Decimal]:
    """
    Fetch the latest price for a digital asset.

    Args:
        symbol: Ticker or CoinGecko ID, e.g. 'BTC' or 'bitcoin'
        client: Shared HTTP client (a throwaway one is created if None)
        settings: Price settings (defaults to global settings)

    Returns:
        Price per coin in the configured currency, or None if unavailable
    """
    settings = settings or get_settings().prices
    coin_id = crypto_coin_id(symbol)
    currency = settings.vs_currency.lower()
    try:
        data = await _get_json(
            client,
            settings.crypto_quote_url,
            {"ids": coin_id, "vs_currencies": currency},
            settings.timeout_seconds,
        )
        value = (data.get(coin_id) or {}).get(currency)
    except _LOOKUP_ERRORS as e:
        logger.warning(
            "price_unavailable",
            symbol=symbol,
            asset_type=AssetType.CRYPTO.value,
            error=f"{type(e).__name__}: {e}",
        )
        return None

    price = _to_price(value)
    if price is None:
        logger.warning(
            "price_unavailable",
            symbol=symbol,
            asset_type=AssetType.CRYPTO.value,
            error=f"missing or invalid {coin_id}.{currency}",
        )
    return price


def distinct_symbols(holdings: Iterable[Holding]) -> dict[str, AssetType]:
    """
    Collapse holdings to one entry per symbol, first asset type wins.

    The price map is keyed by symbol alone, so a symbol held as both
    stock and crypto is looked up once.
    """
    symbols: dict[str, AssetType] = {}
    for holding in holdings:
        symbols.setdefault(holding.symbol, holding.type)
    return symbols


class PriceLookupService:
    """
    Batch price lookups for a list of holdings.

    Owns (or borrows) one httpx.AsyncClient so a whole batch shares
    a connection pool.
    """

    def __init__(
        self,
        settings: Optional[PriceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().prices
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_price(
        self,
        symbol: str,
        asset_type: AssetType,
    ) -> Optional[Decimal]:
        """Route one lookup to the right quote service."""
        client = self._get_client()
        if asset_type == AssetType.CRYPTO:
            return await fetch_digital_asset_price(symbol, client, self._settings)
        return await fetch_equity_price(symbol, client, self._settings)

    async def fetch_price_map(self, holdings: Iterable[Holding]) -> PriceMap:
        """
        Look up every distinct symbol concurrently.

        Returns:
            {symbol: price} for the lookups that succeeded. A failed
            lookup only drops its own symbol; it never fails the batch.
        """
        symbols = distinct_symbols(holdings)
        if not symbols:
            return {}

        results = await asyncio.gather(
            *(self.fetch_price(symbol, asset_type) for symbol, asset_type in symbols.items()),
            return_exceptions=True,
        )

        price_map: PriceMap = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                # fetch_* already swallow expected failures; this is a bug path
                logger.error(
                    "price_lookup_crashed",
                    symbol=symbol,
                    error=f"{type(result).__name__}: {result}",
                )
                continue
            if result is not None:
                price_map[symbol] = result

        logger.info(
            "price_map_built",
            requested=len(symbols),
            resolved=len(price_map),
        )
        return price_map
