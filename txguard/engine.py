"""The detector-fusion engine."""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Iterable, Optional

import httpx

from .cache import TTLCache
from .config import Config
from .detectors import Detector, build_default_detectors
from .knowledge import check_whitelist, validate_knowledge_base
from .models import AnalysisContext, DetectedIssue, RiskCategory, RiskVerdict, Severity
from .scoring import ScoringPolicy, WeightedConfidencePolicy, aggregate

logger = logging.getLogger(__name__)


def whitelisted_verdict(context: AnalysisContext, reason: str) -> RiskVerdict:
    """Fixed answer for known-safe framework calls."""
    issue = DetectedIssue(
        pattern_id="info:framework_function",
        category=RiskCategory.PERMISSION,
        severity=Severity.LOW,
        title="Standard Framework Function",
        description=f"{context.function_path} is a standard framework function. {reason}.",
        recommendation="This is a well-known, audited framework call.",
        confidence=1.0,
        source="whitelist",
        evidence={"function": context.function_path, "reason": reason},
    )
    return RiskVerdict(
        overall_severity=Severity.LOW,
        risk_score=0,
        issues=(issue,),
        skipped_ensemble=True,
        whitelist_reason=reason,
    )


class Guardian:
    """Runs every detector against a transaction and fuses the results.

    Use as an async context manager so the shared HTTP client and any
    background cache refreshes are closed.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        detectors: Optional[Iterable[Detector]] = None,
        policy: Optional[ScoringPolicy] = None,
        cache: Optional[TTLCache] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or Config()
        validate_knowledge_base()

        self.policy = policy or WeightedConfidencePolicy()
        self.cache = cache or TTLCache(
            default_ttl=self.config.threat_cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
            refresh_ahead=self.config.cache_refresh_ahead_seconds,
        )
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=self.config.http_timeout_seconds)

        if detectors is None:
            self.detectors = build_default_detectors(self.config, self.http, self.cache)
        else:
            self.detectors = list(detectors)

    async def __aenter__(self) -> "Guardian":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.cache.aclose()
        if self._owns_http:
            await self.http.aclose()

    async def analyze(self, context: AnalysisContext) -> RiskVerdict:
        """Produce a verdict for one transaction."""
        start_time = time.time()

        gate = check_whitelist(context.module_address, context.module_name, context.function_name)
        if gate.is_whitelisted:
            logger.debug("Whitelisted %s: %s", context.function_path, gate.reason)
            verdict = whitelisted_verdict(context, gate.reason)
            return replace(verdict, analysis_time=time.time() - start_time)

        results = await asyncio.gather(*(self._invoke(d, context) for d in self.detectors))

        issues = []
        failures = []
        for detector, found in zip(self.detectors, results):
            if found is None:
                failures.append(detector.name)
            else:
                issues.extend(found)

        verdict = aggregate(issues, failures, self.policy)
        return replace(verdict, analysis_time=time.time() - start_time)

    async def analyze_request(self, payload: dict) -> RiskVerdict:
        """Validate a JSON request body and analyze it. Raises InputError."""
        return await self.analyze(AnalysisContext.from_payload(payload))

    async def _invoke(self, detector: Detector, context: AnalysisContext) -> Optional[list[DetectedIssue]]:
        """Run one detector; None means it failed or timed out."""
        timeout = detector.timeout or self.config.detector_timeout_seconds
        started = time.monotonic()
        try:
            issues = await asyncio.wait_for(detector.run(context), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Detector %s timed out after %.1fs", detector.name, timeout)
            return None
        except Exception:
            logger.warning("Detector %s failed", detector.name, exc_info=True)
            return None

        logger.debug(
            "Detector %s returned %d issues in %.3fs",
            detector.name, len(issues), time.monotonic() - started,
        )
        return list(issues)


def analyze_transaction(payload: dict, config: Optional[Config] = None) -> RiskVerdict:
    """Blocking helper: analyze one request body with a fresh engine."""

    async def _run() -> RiskVerdict:
        async with Guardian(config) as guardian:
            return await guardian.analyze_request(payload)

    return asyncio.run(_run())
