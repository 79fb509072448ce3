"""Clients for the external services the I/O-bound detectors consult."""
from .ledger import LedgerClient, LedgerInfo
from .market import KNOWN_TOKENS, MarketDataClient, TokenMarketData
from .threats import ThreatFeedClient, ThreatFeedResult, ThreatFinding

__all__ = [
    "KNOWN_TOKENS",
    "LedgerClient",
    "LedgerInfo",
    "MarketDataClient",
    "ThreatFeedClient",
    "ThreatFeedResult",
    "ThreatFinding",
    "TokenMarketData",
]
