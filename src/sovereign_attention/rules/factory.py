"""
Rule Factory for creating rules from CLI arguments and stored documents.

Provides a centralized registry of condition and action types, builds rules
from the flat arguments the command line accepts, and encodes/decodes the
externally tagged JSON form used by the durable store.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Type, Union

from sovereign_attention.core.config.models import MODIFY_MARKER
from sovereign_attention.core.exceptions import ValidationError, ErrorCode
from sovereign_attention.rules.base import Action, Condition, Rule
from sovereign_attention.rules.actions import FilterAction, FlagAction, ModifyAction
from sovereign_attention.rules.conditions import (
    KeywordCondition,
    MachineLearningCondition,
    RegexCondition,
)


logger = logging.getLogger(__name__)

DEFAULT_FLAGS = ["flagged"]
DEFAULT_ML_THRESHOLD = 0.5


def _unknown_variant(kind: str, value: Any, available: List[str]) -> ValidationError:
    return ValidationError(
        f"Unknown {kind} '{value}'. Available types: {', '.join(available)}",
        error_code=ErrorCode.VALIDATION_UNKNOWN_VARIANT,
        field_name=kind,
        field_value=value
    )


def _malformed(kind: str, data: Any, reason: str) -> ValidationError:
    return ValidationError(
        f"Malformed {kind} encoding {data!r}: {reason}",
        error_code=ErrorCode.VALIDATION_FORMAT_ERROR,
        field_name=kind,
        field_value=data
    )


class RuleFactory:
    """
    Factory class for creating rule components.

    Condition and action types are looked up by their CLI tag in the
    registries below.
    """

    # Registry of available condition types
    CONDITION_REGISTRY: Dict[str, Type[Condition]] = {
        'keyword': KeywordCondition,
        'regex': RegexCondition,
        'ml': MachineLearningCondition,
    }

    # Registry of available action types
    ACTION_REGISTRY: Dict[str, Type[Action]] = {
        'filter': FilterAction,
        'modify': ModifyAction,
        'flag': FlagAction,
    }

    @classmethod
    def create_condition(
        cls,
        condition_type: str,
        value: str,
        threshold: float = DEFAULT_ML_THRESHOLD
    ) -> Condition:
        """
        Create a condition from a type tag and its value.

        Args:
            condition_type: One of 'keyword', 'regex', 'ml'
            value: Keyword, pattern or model id
            threshold: Score threshold for 'ml' conditions

        Returns:
            Condition instance

        Raises:
            ValidationError: If the condition type is unknown
        """
        condition_type = condition_type.lower()
        if condition_type not in cls.CONDITION_REGISTRY:
            raise _unknown_variant("condition type", condition_type, sorted(cls.CONDITION_REGISTRY))

        if condition_type == 'ml':
            return MachineLearningCondition(model_id=value, threshold=float(threshold))
        return cls.CONDITION_REGISTRY[condition_type](value)

    @classmethod
    def create_action(cls, action_type: str, params: Optional[str] = None) -> Action:
        """
        Create an action from a type tag and its optional parameter string.

        'modify' uses params as the template (default ``{content}``); 'flag'
        parses params as a JSON list of strings (default ``["flagged"]``);
        'filter' ignores params.

        Raises:
            ValidationError: If the action type is unknown or params are malformed
        """
        action_type = action_type.lower()
        if action_type not in cls.ACTION_REGISTRY:
            raise _unknown_variant("action type", action_type, sorted(cls.ACTION_REGISTRY))

        if action_type == 'filter':
            return FilterAction()

        if action_type == 'modify':
            return ModifyAction(transform=params if params is not None else MODIFY_MARKER)

        if params is None:
            return FlagAction(flags=DEFAULT_FLAGS)

        try:
            flags = json.loads(params)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Flag params must be a JSON list of strings: {e}",
                error_code=ErrorCode.VALIDATION_FORMAT_ERROR,
                field_name="params",
                field_value=params,
                cause=e
            )
        if not isinstance(flags, list) or not all(isinstance(flag, str) for flag in flags):
            raise ValidationError(
                "Flag params must be a JSON list of strings, e.g. '[\"spam\", \"ads\"]'",
                error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
                field_name="params",
                field_value=params
            )
        return FlagAction(flags=flags)

    @classmethod
    def create_rule(
        cls,
        rule_id: str,
        condition_type: str,
        value: str,
        action_type: str,
        params: Optional[str] = None,
        threshold: float = DEFAULT_ML_THRESHOLD
    ) -> Rule:
        """Create a complete rule from flat CLI-style arguments."""
        condition = cls.create_condition(condition_type, value, threshold)
        action = cls.create_action(action_type, params)
        rule = Rule(id=rule_id, condition=condition, action=action)
        logger.debug(f"Created rule {rule.describe()}")
        return rule

    # Wire encoding

    @staticmethod
    def condition_to_json(condition: Condition) -> str:
        return json.dumps(condition.to_wire())

    @staticmethod
    def action_to_json(action: Action) -> str:
        return json.dumps(action.to_wire())

    @classmethod
    def condition_from_json(cls, document: str) -> Condition:
        """Decode a condition from its JSON document."""
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, TypeError) as e:
            raise ValidationError(
                f"Condition is not valid JSON: {e}",
                error_code=ErrorCode.VALIDATION_FORMAT_ERROR,
                field_name="condition",
                field_value=document,
                cause=e
            )
        return cls.condition_from_wire(data)

    @classmethod
    def action_from_json(cls, document: str) -> Action:
        """Decode an action from its JSON document."""
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, TypeError) as e:
            raise ValidationError(
                f"Action is not valid JSON: {e}",
                error_code=ErrorCode.VALIDATION_FORMAT_ERROR,
                field_name="action",
                field_value=document,
                cause=e
            )
        return cls.action_from_wire(data)

    @classmethod
    def condition_from_wire(cls, data: Any) -> Condition:
        """
        Decode an externally tagged condition.

        Accepted shapes: ``{"Keyword": str}``, ``{"Regex": str}`` and
        ``{"ml": {"model_id": str, "threshold": number}}``.

        Raises:
            ValidationError: On unknown tags or malformed shapes
        """
        if not isinstance(data, dict) or len(data) != 1:
            raise _malformed("condition", data, "expected an object with exactly one tag")

        tag, body = next(iter(data.items()))

        if tag in ("Keyword", "Regex"):
            if not isinstance(body, str):
                raise _malformed("condition", data, f"{tag} expects a string")
            return KeywordCondition(body) if tag == "Keyword" else RegexCondition(body)

        if tag == "ml":
            if not isinstance(body, dict) or not isinstance(body.get("model_id"), str):
                raise _malformed("condition", data, "ml expects model_id and threshold")
            threshold = body.get("threshold")
            if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
                raise _malformed("condition", data, "ml threshold must be a number")
            return MachineLearningCondition(model_id=body["model_id"], threshold=float(threshold))

        raise _unknown_variant("condition", tag, ["Keyword", "Regex", "ml"])

    @classmethod
    def action_from_wire(cls, data: Any) -> Action:
        """
        Decode an externally tagged action.

        Accepted shapes: ``"Filter"``, ``{"Modify": {"transform": str}}`` and
        ``{"Flag": {"flags": [str, ...]}}``.

        Raises:
            ValidationError: On unknown tags or malformed shapes
        """
        if isinstance(data, str):
            if data == "Filter":
                return FilterAction()
            raise _unknown_variant("action", data, ["Filter", "Modify", "Flag"])

        if not isinstance(data, dict) or len(data) != 1:
            raise _malformed("action", data, "expected a string or an object with exactly one tag")

        tag, body = next(iter(data.items()))

        if tag == "Filter" and body is None:
            return FilterAction()

        if tag == "Modify":
            if not isinstance(body, dict) or not isinstance(body.get("transform"), str):
                raise _malformed("action", data, "Modify expects a transform string")
            return ModifyAction(transform=body["transform"])

        if tag == "Flag":
            flags = body.get("flags") if isinstance(body, dict) else None
            if not isinstance(flags, list) or not all(isinstance(flag, str) for flag in flags):
                raise _malformed("action", data, "Flag expects a list of strings")
            return FlagAction(flags=flags)

        raise _unknown_variant("action", tag, ["Filter", "Modify", "Flag"])

    @classmethod
    def rule_to_dict(cls, rule: Rule) -> Dict[str, Any]:
        """Serialize a rule to a JSON-compatible dictionary."""
        return {
            'id': rule.id,
            'condition': rule.condition.to_wire(),
            'action': rule.action.to_wire(),
        }

    @classmethod
    def rule_from_dict(cls, data: Union[Dict[str, Any], Any]) -> Rule:
        """Deserialize a rule produced by ``rule_to_dict``."""
        if not isinstance(data, dict) or 'id' not in data:
            raise _malformed("rule", data, "expected an object with id, condition and action")
        return Rule(
            id=data['id'],
            condition=cls.condition_from_wire(data.get('condition')),
            action=cls.action_from_wire(data.get('action')),
        )
