"""The Detector interface shared by every member of the ensemble."""

import re
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..models import AnalysisContext, DetectedIssue


# Self-reported certainty levels used across detectors.
CONFIDENCE_VERY_HIGH = 0.95
CONFIDENCE_HIGH = 0.85
CONFIDENCE_MEDIUM = 0.70
CONFIDENCE_LOW = 0.60
CONFIDENCE_MINIMAL = 0.50

HEX_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]+$")
DECIMAL_RE = re.compile(r"[0-9]+")


class Detector(ABC):
    """Inspects one AnalysisContext and returns zero or more issues.

    ``timeout`` overrides the engine's per-detector timeout when set.
    """

    name: str = "detector"
    timeout: Optional[float] = None

    @abstractmethod
    async def run(self, context: AnalysisContext) -> list[DetectedIssue]:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class StaticDetector(Detector):
    """Detector that only reads the context and the rule tables."""

    async def run(self, context: AnalysisContext) -> list[DetectedIssue]:
        return self.detect(context)

    @abstractmethod
    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        ...


def flatten_arguments(arguments) -> Iterator[str]:
    """Yield every scalar argument as text, descending into vector arguments."""
    for arg in arguments:
        if isinstance(arg, (list, tuple)):
            yield from flatten_arguments(arg)
        elif isinstance(arg, bool):
            yield "true" if arg else "false"
        elif arg is not None:
            yield str(arg)


def parse_uint(value) -> Optional[int]:
    """Read a plain decimal amount, or None for anything else.

    Only ASCII digits count: ``str.isdigit`` also accepts characters such
    as superscripts that ``int`` refuses.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        if DECIMAL_RE.fullmatch(text):
            return int(text)
    return None
