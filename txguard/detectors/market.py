"""Market-context checks on the tokens a call touches."""

import asyncio
import logging
import re

from ..feeds.market import MarketDataClient, TokenMarketData
from ..models import AnalysisContext, DetectedIssue, RiskCategory, Severity
from .base import CONFIDENCE_HIGH, CONFIDENCE_MEDIUM, Detector

logger = logging.getLogger(__name__)

LOW_LIQUIDITY_USD = 10_000
HIGH_VOLATILITY_PERCENT = 20

GENERIC_CALL_RE = re.compile(r"0x[0-9a-fA-F]+::\w+::\w+<(.+)>")


def extract_tokens(context: AnalysisContext) -> list[str]:
    """Token type tags from type arguments and any generic suffix on the function."""
    tokens = [t.strip() for t in context.type_arguments if "::" in t]
    match = GENERIC_CALL_RE.search(context.function_path)
    if match:
        tokens.extend(t.strip() for t in match.group(1).split(",") if "::" in t)
    return list(dict.fromkeys(tokens))


class MarketContextDetector(Detector):
    name = "market_context"

    def __init__(self, client: MarketDataClient):
        self.client = client

    async def run(self, context: AnalysisContext) -> list[DetectedIssue]:
        tokens = extract_tokens(context)
        if not tokens:
            return []

        issues = []
        known = []
        for token in tokens:
            if self.client.lookup(token) is None:
                issues.append(self._unknown_token(token))
            else:
                known.append(token)

        snapshots = await asyncio.gather(*(self.client.get_market_data(t) for t in known))
        for data in snapshots:
            if data is not None:
                issues.extend(self._evaluate(data))
        return issues

    def _unknown_token(self, token: str) -> DetectedIssue:
        return DetectedIssue(
            pattern_id="market:unknown_token",
            category=RiskCategory.RUG_PULL,
            severity=Severity.HIGH,
            title="Unverified Token",
            description=f"{token} has no verified market listing.",
            recommendation="Unlisted tokens are often worthless or traps. Verify the token before trading it.",
            confidence=CONFIDENCE_HIGH,
            source=self.name,
            evidence={"token": token},
        )

    def _evaluate(self, data: TokenMarketData) -> list[DetectedIssue]:
        issues = []
        evidence = {
            "token": data.token,
            "symbol": data.symbol,
            "price_usd": data.price_usd,
            "price_change_24h": data.price_change_24h,
            "liquidity_usd": data.liquidity_usd,
            "source": data.source,
        }

        if data.liquidity_usd is not None and data.liquidity_usd < LOW_LIQUIDITY_USD:
            issues.append(DetectedIssue(
                pattern_id="market:low_liquidity",
                category=RiskCategory.EXPLOIT,
                severity=Severity.MEDIUM,
                title="Low Liquidity",
                description=f"{data.symbol} trades only ${data.liquidity_usd:,.0f} per day.",
                recommendation="Thin markets move sharply on small trades. Expect heavy slippage.",
                confidence=CONFIDENCE_MEDIUM,
                source=self.name,
                evidence=evidence,
            ))

        change = data.price_change_24h
        if change is not None and abs(change) > HIGH_VOLATILITY_PERCENT:
            issues.append(DetectedIssue(
                pattern_id="market:high_volatility",
                category=RiskCategory.EXPLOIT,
                severity=Severity.MEDIUM if change > 0 else Severity.HIGH,
                title="High Volatility",
                description=f"{data.symbol} moved {change:+.1f}% in 24 hours.",
                recommendation="Large swings can signal manipulation or an exit in progress.",
                confidence=CONFIDENCE_MEDIUM,
                source=self.name,
                evidence=evidence,
            ))
        return issues
