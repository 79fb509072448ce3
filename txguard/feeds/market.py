"""Token price and volume lookups from CoinGecko."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..cache import TTLCache
from ..models import normalize_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnownToken:
    symbol: str
    coingecko_id: str


@dataclass(frozen=True)
class TokenMarketData:
    """Market snapshot for one token."""
    token: str
    symbol: str
    price_usd: Optional[float] = None
    price_change_24h: Optional[float] = None  # percent
    volume_24h_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    source: str = "coingecko"


KNOWN_TOKENS: dict[str, KnownToken] = {
    "0x1::aptos_coin::AptosCoin": KnownToken(symbol="APT", coingecko_id="aptos"),
    "0x1::aptos_coin::MOVE": KnownToken(symbol="MOVE", coingecko_id="movement"),
}


def normalize_token(token: str) -> str:
    """Canonical form of a token type tag, with a normalized address part."""
    parts = token.strip().split("::", 1)
    if len(parts) == 2 and parts[0].lower().startswith("0x"):
        return f"{normalize_address(parts[0])}::{parts[1]}"
    return token.strip()


class MarketDataClient:
    """Fetch market data for catalogued tokens, cached per token."""

    API_BASE = "https://api.coingecko.com/api/v3"

    def __init__(self, http: httpx.AsyncClient, cache: TTLCache, ttl: float = 300):
        self.http = http
        self.cache = cache
        self.ttl = ttl

    def lookup(self, token: str) -> Optional[KnownToken]:
        return KNOWN_TOKENS.get(normalize_token(token))

    async def get_market_data(self, token: str) -> Optional[TokenMarketData]:
        """Return market data, or None for tokens that are not catalogued."""
        known = self.lookup(token)
        if known is None:
            return None
        return await self.cache.get_or_fetch(
            f"market:{known.coingecko_id}",
            lambda: self._fetch(token, known),
            ttl=self.ttl,
        )

    async def _fetch(self, token: str, known: KnownToken) -> TokenMarketData:
        resp = await self.http.get(
            f"{self.API_BASE}/coins/{known.coingecko_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        resp.raise_for_status()
        market = resp.json().get("market_data") or {}

        volume = (market.get("total_volume") or {}).get("usd")
        return TokenMarketData(
            token=token,
            symbol=known.symbol,
            price_usd=(market.get("current_price") or {}).get("usd"),
            price_change_24h=market.get("price_change_percentage_24h"),
            volume_24h_usd=volume,
            # CoinGecko has no pool depth; 24h volume stands in for liquidity.
            liquidity_usd=volume,
        )
