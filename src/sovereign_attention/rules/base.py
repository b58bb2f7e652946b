"""
Abstract Rule Base Classes

Defines the core interfaces of the rule model. A rule pairs exactly one
Condition with exactly one Action; the first rule whose condition matches a
content unit decides what happens to it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from sovereign_attention.content import Content
from sovereign_attention.core.exceptions import ValidationError, ErrorCode
from sovereign_attention.rules.patterns import PatternCache


class Condition(ABC):
    """
    Abstract base class for rule conditions.

    Conditions are immutable predicates over a content unit. Subclasses are
    frozen dataclasses so two conditions with the same parameters compare equal.
    """

    #: Tag used by the CLI and the rule factory registry
    kind: str = ""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the condition tests."""
        pass

    @abstractmethod
    async def evaluate(self, content: Content, patterns: PatternCache) -> bool:
        """
        Evaluate the condition against a content unit.

        Args:
            content: Content to test
            patterns: Shared compiled-pattern cache

        Returns:
            True if the condition matches
        """
        pass

    @abstractmethod
    def to_wire(self) -> Any:
        """Externally tagged JSON-compatible encoding of the condition."""
        pass

    def __str__(self) -> str:
        return f"{self.kind}: {self.description}"


class Action(ABC):
    """Abstract base class for rule actions."""

    kind: str = ""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the action does."""
        pass

    @abstractmethod
    def apply(self, content: Content) -> Optional[Content]:
        """
        Apply the action to a content unit.

        Args:
            content: Matched content; never mutated

        Returns:
            New content value, or None when the content is dropped
        """
        pass

    @abstractmethod
    def to_wire(self) -> Any:
        """Externally tagged JSON-compatible encoding of the action."""
        pass

    def __str__(self) -> str:
        return f"{self.kind}: {self.description}"


@dataclass(frozen=True)
class Rule:
    """
    A condition/action pair keyed by identifier.

    Attributes:
        id: Unique rule identifier, also its persistence key
        condition: Predicate deciding whether the rule fires
        action: Transformation applied when the rule fires
    """

    id: str
    condition: Condition
    action: Action

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValidationError(
                "Rule id is required",
                error_code=ErrorCode.VALIDATION_MISSING_FIELD,
                field_name="id",
                field_value=self.id
            )
        if not isinstance(self.condition, Condition):
            raise ValidationError(
                f"Rule condition must be a Condition, got {type(self.condition).__name__}",
                error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
                field_name="condition"
            )
        if not isinstance(self.action, Action):
            raise ValidationError(
                f"Rule action must be an Action, got {type(self.action).__name__}",
                error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
                field_name="action"
            )

    def describe(self) -> str:
        """One-line summary used by listings and log messages."""
        return f"{self.id}: when {self.condition} then {self.action}"
