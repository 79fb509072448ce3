"""Ledger environment from a Movement fullnode."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..cache import TTLCache
from ..config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerInfo:
    """The chain values a contract can branch on."""
    network: str
    chain_id: Optional[int] = None
    epoch: Optional[int] = None
    ledger_version: Optional[int] = None
    block_height: Optional[int] = None
    ledger_timestamp: Optional[int] = None  # microseconds


def _int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LedgerClient:
    def __init__(self, http: httpx.AsyncClient, config: Config, cache: TTLCache):
        self.http = http
        self.config = config
        self.cache = cache

    async def get_ledger_info(self, network: str) -> LedgerInfo:
        return await self.cache.get_or_fetch(
            f"ledger:{network}",
            lambda: self._fetch(network),
            ttl=self.config.ledger_cache_ttl_seconds,
        )

    async def _fetch(self, network: str) -> LedgerInfo:
        resp = await self.http.get(self.config.get_node_url(network))
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected ledger info from {network} node: {type(data).__name__}")
        return LedgerInfo(
            network=network,
            chain_id=_int(data.get("chain_id")),
            epoch=_int(data.get("epoch")),
            ledger_version=_int(data.get("ledger_version")),
            block_height=_int(data.get("block_height")),
            ledger_timestamp=_int(data.get("ledger_timestamp")),
        )
