"""
Rule Engine

Evaluates content units against an ordered set of condition/action rules.
Rules are evaluated in insertion order and the first matching rule decides
the outcome; later rules are never consulted for that content unit.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Any

from sovereign_attention.content import Content
from sovereign_attention.rules.base import Rule
from sovereign_attention.rules.conditions import RegexCondition
from sovereign_attention.rules.patterns import PatternCache


class RuleEngine:
    """
    Ordered rule set with short-circuit evaluation.

    The rule set is guarded by an asyncio.Lock held only while it is mutated
    or snapshotted; condition evaluation runs on the snapshot without the lock.
    Replacing a rule by identifier keeps its original evaluation position.
    """

    def __init__(self, patterns: Optional[PatternCache] = None):
        self._rules: "OrderedDict[str, Rule]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.patterns = patterns or PatternCache()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def add_rule(self, rule: Rule) -> None:
        """
        Insert or replace a rule.

        Regex patterns are compiled and cached before the rule is accepted, so
        an uncompilable rule is never stored.

        Raises:
            ValidationError: If the rule's regex pattern does not compile
        """
        if isinstance(rule.condition, RegexCondition):
            await self.patterns.compile(rule.condition.pattern)

        async with self._lock:
            replaced = rule.id in self._rules
            self._rules[rule.id] = rule

        self.logger.info(f"{'Replaced' if replaced else 'Added'} rule {rule.describe()}")

    async def remove_rule(self, rule_id: str) -> Optional[Rule]:
        """Remove a rule, returning it or None if it was not present."""
        async with self._lock:
            removed = self._rules.pop(rule_id, None)

        if removed is not None:
            self.logger.info(f"Removed rule {rule_id}")
        return removed

    async def get_rules(self) -> List[Rule]:
        """Snapshot of the active rules in evaluation order."""
        async with self._lock:
            return list(self._rules.values())

    async def process(self, content: Content) -> Optional[Content]:
        """
        Run a content unit through the rules.

        Args:
            content: Content to evaluate; never mutated

        Returns:
            Result of the first matching rule's action (None when filtered),
            or the original content if no rule matches
        """
        rules = await self.get_rules()

        for rule in rules:
            if await rule.condition.evaluate(content, self.patterns):
                result = rule.action.apply(content)
                self.logger.debug(
                    f"Content {content.id} matched rule {rule.id} "
                    f"({'filtered' if result is None else rule.action.kind})"
                )
                return result

        self.logger.debug(f"Content {content.id} matched no rule")
        return content

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            'rules': len(self._rules),
            'patterns': self.patterns.stats(),
        }
