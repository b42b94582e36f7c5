"""Price lookup services."""

from src.services.pricing.quotes import (
    CRYPTO_SYMBOL_IDS,
    PriceLookupService,
    crypto_coin_id,
    distinct_symbols,
    fetch_digital_asset_price,
    fetch_equity_price,
)

__all__ = [
    "CRYPTO_SYMBOL_IDS",
    "PriceLookupService",
    "crypto_coin_id",
    "distinct_symbols",
    "fetch_digital_asset_price",
    "fetch_equity_price",
]
