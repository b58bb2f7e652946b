"""
Rule-based content filtering.

A rule pairs one condition (keyword, regex or machine-learning placeholder)
with one action (filter, modify or flag). The RuleEngine evaluates rules in
insertion order and stops at the first match.
"""

from sovereign_attention.rules.base import Action, Condition, Rule
from sovereign_attention.rules.conditions import (
    KeywordCondition,
    MachineLearningCondition,
    RegexCondition,
)
from sovereign_attention.rules.actions import FilterAction, FlagAction, ModifyAction
from sovereign_attention.rules.patterns import PatternCache, compile_pattern
from sovereign_attention.rules.engine import RuleEngine
from sovereign_attention.rules.factory import RuleFactory

__all__ = [
    'Action',
    'Condition',
    'Rule',
    'KeywordCondition',
    'RegexCondition',
    'MachineLearningCondition',
    'FilterAction',
    'ModifyAction',
    'FlagAction',
    'PatternCache',
    'compile_pattern',
    'RuleEngine',
    'RuleFactory',
]
