"""
Content Model

A content unit is one item of text plus metadata submitted for filtering and
attention tracking. Rule actions never mutate a content unit in place; they
produce a new value through ``Content.evolve``.
"""

import copy
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List

from sovereign_attention.attention.metrics import MAX_COUNTER
from sovereign_attention.core.exceptions import ValidationError, ErrorCode


@dataclass
class Content:
    """
    Container for a single unit of content.

    Attributes:
        id: Unique content identifier, also the metrics key
        text: Text body evaluated by rule conditions
        view_duration: View time in milliseconds
        metadata: Open string to string mapping
        flags: Flags accumulated from rule actions
    """

    id: str
    text: str = ""
    view_duration: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.id:
            raise ValidationError(
                "Content id is required",
                error_code=ErrorCode.VALIDATION_MISSING_FIELD,
                field_name="id",
                field_value=self.id
            )
        if not 0 <= self.view_duration <= MAX_COUNTER:
            raise ValidationError(
                f"view_duration must be in 0..{MAX_COUNTER}, got {self.view_duration}",
                error_code=ErrorCode.VALIDATION_RANGE_ERROR,
                field_name="view_duration",
                field_value=self.view_duration
            )

    def evolve(self, **changes: Any) -> 'Content':
        """
        Return a deep copy of this content with some fields replaced.

        Args:
            **changes: Field values to replace

        Returns:
            New Content instance; the original is left untouched
        """
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"Unknown Content fields: {', '.join(sorted(unknown))}")

        values = {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}
        values.update(changes)
        return Content(**values)
