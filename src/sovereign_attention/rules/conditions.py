"""
Rule conditions.

Keyword and regex conditions test the content text; the machine-learning
condition is a typed placeholder that never matches.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from sovereign_attention.content import Content
from sovereign_attention.rules.base import Condition
from sovereign_attention.rules.patterns import PatternCache


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordCondition(Condition):
    """Case-insensitive substring test against the content text."""

    keyword: str
    kind = "keyword"

    @property
    def description(self) -> str:
        return f"text contains '{self.keyword}' (case-insensitive)"

    async def evaluate(self, content: Content, patterns: PatternCache) -> bool:
        return self.keyword.lower() in content.text.lower()

    def to_wire(self) -> Dict[str, Any]:
        return {"Keyword": self.keyword}


@dataclass(frozen=True)
class RegexCondition(Condition):
    """
    Regular expression test against the content text.

    The pattern may match anywhere in the text. The compiled matcher comes from
    the shared PatternCache; a pattern missing from the cache (for example
    after a concurrent removal) is compiled on the fly instead of failing.
    """

    pattern: str
    kind = "regex"

    @property
    def description(self) -> str:
        return f"text matches /{self.pattern}/"

    async def evaluate(self, content: Content, patterns: PatternCache) -> bool:
        matcher = await patterns.get(self.pattern)
        if matcher is None:
            logger.debug(f"Pattern {self.pattern!r} not cached, compiling on demand")
            matcher = await patterns.compile(self.pattern)
        return matcher.search(content.text) is not None

    def to_wire(self) -> Dict[str, Any]:
        return {"Regex": self.pattern}


@dataclass(frozen=True)
class MachineLearningCondition(Condition):
    """
    Placeholder for model-based classification.

    Always evaluates to False; kept as an explicit variant so stored rules
    referencing a model round-trip unchanged.
    """

    model_id: str
    threshold: float = 0.5
    kind = "ml"

    @property
    def description(self) -> str:
        return f"model '{self.model_id}' scores above {self.threshold}"

    async def evaluate(self, content: Content, patterns: PatternCache) -> bool:
        return False

    def to_wire(self) -> Dict[str, Any]:
        return {"ml": {"model_id": self.model_id, "threshold": self.threshold}}
