"""Address reputation from external threat-intelligence services.

Sources:
- GoPlus Security token checks (honeypot, hidden owner, taxes, ...)
- Forta Network alerts
- DeFiHackLabs incident addresses (local table)
- ChainAbuse community reports (needs CHAINABUSE_API_KEY)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..cache import TTLCache
from ..config import Config
from ..exceptions import FeedUnavailableError
from ..models import Severity, normalize_address

logger = logging.getLogger(__name__)

GOPLUS = "GoPlus Security"
FORTA = "Forta Network"
DEFIHACKLABS = "DeFiHackLabs"
CHAINABUSE = "ChainAbuse"

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 25,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
}
MALICIOUS_SCORE = 50

# GoPlus flag -> (finding type, severity, confidence, description)
GOPLUS_FLAGS = (
    ("is_honeypot", "honeypot", Severity.CRITICAL, 0.95, "Token cannot be sold after buying"),
    ("is_blacklisted", "blacklisted", Severity.HIGH, 0.9, "Token contract can blacklist holders"),
    ("hidden_owner", "hidden_owner", Severity.HIGH, 0.85, "Contract has a hidden owner"),
    ("can_take_back_ownership", "ownership_takeback", Severity.CRITICAL, 0.9,
     "Ownership can be reclaimed after renouncing"),
    ("selfdestruct", "selfdestruct", Severity.CRITICAL, 0.95, "Contract can self-destruct"),
    ("fake_token", "fake_token", Severity.CRITICAL, 0.9, "Token is identified as counterfeit"),
    ("cannot_sell_all", "cannot_sell_all", Severity.CRITICAL, 0.9, "Holders cannot sell their full balance"),
)
HIGH_TAX_PERCENT = 10
EXTREME_TAX_PERCENT = 50

# Addresses tied to catalogued incidents.
DEFIHACKLABS_INCIDENTS = {
    "0x8d87a65ba30e09357fa2edea2c80dbac296e5dec2b18287113500b902942929d": {
        "incident": "Thala Protocol Exploit",
        "loss": "$25.5M",
        "date": "2024-11-15",
    },
}


@dataclass(frozen=True)
class ThreatFinding:
    type: str
    severity: Severity
    description: str
    source: str
    confidence: float
    reported_at: Optional[str] = None
    loss_amount: Optional[str] = None


@dataclass(frozen=True)
class ThreatFeedResult:
    address: str
    findings: tuple[ThreatFinding, ...] = ()
    queried_sources: tuple[str, ...] = ()
    failed_sources: tuple[str, ...] = ()
    risk_score: int = 0

    @property
    def flagging_sources(self) -> list[str]:
        """Distinct sources that reported at least one finding, in report order."""
        return list(dict.fromkeys(f.source.split(" (")[0] for f in self.findings))

    @property
    def is_malicious(self) -> bool:
        return self.risk_score > MALICIOUS_SCORE or any(
            f.severity == Severity.CRITICAL for f in self.findings
        )


def score_findings(findings) -> int:
    total = sum(SEVERITY_WEIGHTS[f.severity] * f.confidence for f in findings)
    return min(100, round(total))


def _severity(value: str) -> Severity:
    try:
        return Severity.parse(value)
    except ValueError:
        return Severity.LOW


class ThreatFeedClient:
    """Query every configured reputation source for an address."""

    GOPLUS_URL = "https://api.gopluslabs.io/api/v1/token_security/{chain_id}"
    FORTA_URL = "https://api.forta.network/alerts"
    CHAINABUSE_URL = "https://api.chainabuse.com/v0/report"

    def __init__(self, http: httpx.AsyncClient, config: Config, cache: TTLCache):
        self.http = http
        self.config = config
        self.cache = cache

    async def query(self, address: str, network: str = "mainnet") -> ThreatFeedResult:
        key = f"threat:{network}:{normalize_address(address)}"
        return await self.cache.get_or_fetch(
            key,
            lambda: self._query_all(address),
            ttl=self.config.threat_cache_ttl_seconds,
        )

    async def _query_all(self, address: str) -> ThreatFeedResult:
        remote = {
            GOPLUS: self._query_goplus(address),
            FORTA: self._query_forta(address),
        }
        if self.config.chainabuse_api_key:
            remote[CHAINABUSE] = self._query_chainabuse(address)

        results = await asyncio.gather(*remote.values(), return_exceptions=True)

        findings = list(self._query_defihacklabs(address))
        failures = {}
        for name, result in zip(remote, results):
            if isinstance(result, Exception):
                logger.warning("Threat source %s failed for %s: %s", name, address, result)
                failures[name] = str(result) or type(result).__name__
            else:
                findings.extend(result)

        if len(failures) == len(remote):
            raise FeedUnavailableError(address, failures)

        return ThreatFeedResult(
            address=address,
            findings=tuple(findings),
            queried_sources=tuple([DEFIHACKLABS, *remote]),
            failed_sources=tuple(failures),
            risk_score=score_findings(findings),
        )

    async def _query_goplus(self, address: str) -> list[ThreatFinding]:
        resp = await self.http.get(
            self.GOPLUS_URL.format(chain_id=self.config.goplus_chain_id),
            params={"contract_addresses": address},
        )
        resp.raise_for_status()
        data = resp.json()

        result = (data.get("result") or {}).get(address.lower())
        if data.get("code") != 1 or not result:
            return []

        findings = []
        for flag, kind, severity, confidence, description in GOPLUS_FLAGS:
            if result.get(flag) == "1":
                findings.append(ThreatFinding(kind, severity, description, GOPLUS, confidence))

        buy_tax = float(result.get("buy_tax") or 0)
        sell_tax = float(result.get("sell_tax") or 0)
        if buy_tax > HIGH_TAX_PERCENT or sell_tax > HIGH_TAX_PERCENT:
            findings.append(ThreatFinding(
                type="high_tax",
                severity=Severity.CRITICAL if sell_tax > EXTREME_TAX_PERCENT else Severity.HIGH,
                description=f"High trading tax: buy {buy_tax}%, sell {sell_tax}%",
                source=GOPLUS,
                confidence=0.95,
            ))
        return findings

    async def _query_forta(self, address: str) -> list[ThreatFinding]:
        resp = await self.http.get(self.FORTA_URL, params={"addresses": address, "limit": 10})
        resp.raise_for_status()

        findings = []
        for alert in resp.json().get("alerts") or []:
            findings.append(ThreatFinding(
                type=alert.get("alertId") or "forta_alert",
                severity=_severity(alert.get("severity", "LOW")),
                description=f"{alert.get('name', 'Forta alert')}: {alert.get('description', '')}",
                source=f"{FORTA} ({alert.get('protocol') or 'General'})",
                confidence=0.8,
                reported_at=alert.get("createdAt"),
            ))
        return findings

    def _query_defihacklabs(self, address: str) -> list[ThreatFinding]:
        incident = DEFIHACKLABS_INCIDENTS.get(address.lower())
        if not incident:
            return []
        return [ThreatFinding(
            type="known_exploit",
            severity=Severity.CRITICAL,
            description=f"Address associated with {incident['incident']} ({incident['loss']} lost)",
            source=DEFIHACKLABS,
            confidence=0.99,
            reported_at=incident["date"],
            loss_amount=incident["loss"],
        )]

    async def _query_chainabuse(self, address: str) -> list[ThreatFinding]:
        resp = await self.http.get(
            self.CHAINABUSE_URL,
            params={"address": address},
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {self.config.chainabuse_api_key}",
            },
        )
        resp.raise_for_status()

        findings = []
        for report in resp.json().get("reports") or []:
            verified = bool(report.get("verified"))
            findings.append(ThreatFinding(
                type=report.get("category") or "abuse_report",
                severity=Severity.CRITICAL if verified else Severity.HIGH,
                description=report.get("description") or "Community abuse report",
                source=CHAINABUSE,
                confidence=0.95 if verified else 0.7,
                reported_at=report.get("reportedAt"),
            ))
        return findings
