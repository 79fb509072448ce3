"""Detector ensemble."""
import httpx

from ..cache import TTLCache
from ..config import Config
from ..feeds import LedgerClient, MarketDataClient, ThreatFeedClient
from .ai_review import AIReviewDetector
from .attack_pattern import AttackPatternDetector
from .base import Detector, StaticDetector
from .market import MarketContextDetector
from .red_pill import RedPillDetector
from .risk_pattern import RiskPatternDetector
from .scam_db import ScamDatabaseDetector
from .signature import SignatureDetector
from .temporal import TemporalDetector
from .threat_feed import ThreatFeedDetector
from .trace import TraceDetector


def build_default_detectors(config: Config, http: httpx.AsyncClient, cache: TTLCache) -> list[Detector]:
    """The standard ensemble, in reporting order."""
    detectors: list[Detector] = [
        SignatureDetector(),
        AttackPatternDetector(),
        TemporalDetector(),
        TraceDetector(),
        RiskPatternDetector(),
        ScamDatabaseDetector(),
        MarketContextDetector(MarketDataClient(http, cache, ttl=config.market_cache_ttl_seconds)),
        RedPillDetector(LedgerClient(http, config, cache)),
        ThreatFeedDetector(ThreatFeedClient(http, config, cache)),
    ]
    if config.ai_enabled:
        detectors.append(AIReviewDetector(config))
    return detectors


__all__ = [
    "AIReviewDetector",
    "AttackPatternDetector",
    "Detector",
    "MarketContextDetector",
    "RedPillDetector",
    "RiskPatternDetector",
    "ScamDatabaseDetector",
    "SignatureDetector",
    "StaticDetector",
    "TemporalDetector",
    "ThreatFeedDetector",
    "TraceDetector",
    "build_default_detectors",
]
