"""Helpers shared by the rule tables."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..exceptions import KnowledgeBaseError


def compile_patterns(*sources: str) -> tuple[re.Pattern, ...]:
    """Compile case-insensitive rule regexes, failing loudly on bad data."""
    compiled = []
    for source in sources:
        try:
            compiled.append(re.compile(source, re.IGNORECASE))
        except re.error as e:
            raise KnowledgeBaseError(f"Invalid rule pattern {source!r}: {e}") from e
    return tuple(compiled)


def first_match(patterns: Iterable[re.Pattern], *texts: str) -> Optional[re.Pattern]:
    """Return the first pattern that matches any of the texts."""
    for pattern in patterns:
        for text in texts:
            if pattern.search(text):
                return pattern
    return None


@dataclass(frozen=True)
class CountRange:
    """Inclusive bounds; either side may be open."""
    min: Optional[int] = None
    max: Optional[int] = None

    def contains(self, value: int) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def __str__(self) -> str:
        return f"[{'' if self.min is None else self.min}, {'' if self.max is None else self.max}]"
