"""
Attention metrics record and timestamp helpers.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Union

from sovereign_attention.core.exceptions import ValidationError, ErrorCode


# Largest value an SQLite INTEGER column holds
MAX_COUNTER = 2 ** 63 - 1


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch(value: datetime) -> int:
    """Convert a datetime to whole epoch seconds (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_epoch(seconds: Union[int, float]) -> datetime:
    """Convert epoch seconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp from an export file or dictionary.

    Accepts datetimes, ISO-8601 strings (a trailing 'Z' is allowed) and epoch
    seconds. The result is always timezone-aware UTC.

    Raises:
        ValidationError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValidationError(
            f"Invalid timestamp: {value!r}",
            error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
            field_value=value
        )
    elif isinstance(value, (int, float)):
        return from_epoch(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(
                f"Invalid ISO-8601 timestamp: {value!r}",
                error_code=ErrorCode.VALIDATION_FORMAT_ERROR,
                field_value=value,
                cause=e
            )
    else:
        raise ValidationError(
            f"Invalid timestamp: {value!r}",
            error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
            field_value=value
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Metrics:
    """
    Accumulated attention metrics for one content identifier.

    Attributes:
        content_id: Content identifier, unique per store
        total_duration: Total view time in milliseconds
        interactions: Number of tracked events
        last_interaction: Time of the most recent tracked event (UTC)
        created_at: Time of the first tracked event (UTC)
    """

    content_id: str
    total_duration: int
    interactions: int
    last_interaction: datetime
    created_at: datetime

    def copy(self) -> 'Metrics':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary with ISO-8601 UTC timestamps."""
        return {
            'content_id': self.content_id,
            'total_duration': self.total_duration,
            'interactions': self.interactions,
            'last_interaction': self.last_interaction.astimezone(timezone.utc).isoformat(),
            'created_at': self.created_at.astimezone(timezone.utc).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Metrics':
        """
        Create Metrics from a dictionary.

        Raises:
            ValidationError: On missing fields or wrongly typed values
        """
        if not isinstance(data, dict):
            raise ValidationError(
                f"Metrics record must be an object, got {type(data).__name__}",
                error_code=ErrorCode.VALIDATION_TYPE_MISMATCH
            )

        missing = [key for key in ('content_id', 'total_duration', 'interactions',
                                   'last_interaction', 'created_at') if key not in data]
        if missing:
            raise ValidationError(
                f"Metrics record missing fields: {', '.join(missing)}",
                error_code=ErrorCode.VALIDATION_MISSING_FIELD,
                field_name=missing[0]
            )

        content_id = data['content_id']
        if not isinstance(content_id, str) or not content_id:
            raise ValidationError(
                "Metrics content_id must be a non-empty string",
                error_code=ErrorCode.VALIDATION_TYPE_MISMATCH,
                field_name="content_id",
                field_value=content_id
            )

        counters = {}
        for key in ('total_duration', 'interactions'):
            value = data[key]
            valid = isinstance(value, int) and not isinstance(value, bool)
            if not valid or not 0 <= value <= MAX_COUNTER:
                raise ValidationError(
                    f"Metrics {key} must be an integer in 0..{MAX_COUNTER}, got {value!r}",
                    error_code=ErrorCode.VALIDATION_RANGE_ERROR,
                    field_name=key,
                    field_value=value
                )
            counters[key] = value

        return cls(
            content_id=content_id,
            total_duration=counters['total_duration'],
            interactions=counters['interactions'],
            last_interaction=parse_timestamp(data['last_interaction']),
            created_at=parse_timestamp(data['created_at']),
        )
