"""
Rule actions.

Actions never mutate the content they receive. Filter drops it; Modify and
Flag return an evolved copy.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from sovereign_attention.content import Content
from sovereign_attention.core.config.models import MODIFY_MARKER
from sovereign_attention.rules.base import Action


@dataclass(frozen=True)
class FilterAction(Action):
    """Drop the content entirely."""

    kind = "filter"

    @property
    def description(self) -> str:
        return "drop content"

    def apply(self, content: Content) -> Optional[Content]:
        return None

    def to_wire(self) -> str:
        return "Filter"


@dataclass(frozen=True)
class ModifyAction(Action):
    """
    Replace the text using a template.

    Every occurrence of ``{content}`` in the template is replaced by the
    original text; a template without the marker replaces the text wholesale.
    """

    transform: str = MODIFY_MARKER
    kind = "modify"

    @property
    def description(self) -> str:
        return f"rewrite text as '{self.transform}'"

    def apply(self, content: Content) -> Optional[Content]:
        return content.evolve(text=self.transform.replace(MODIFY_MARKER, content.text))

    def to_wire(self) -> Dict[str, Any]:
        return {"Modify": {"transform": self.transform}}


@dataclass(frozen=True)
class FlagAction(Action):
    """Append flags to the content, leaving everything else unchanged."""

    flags: Tuple[str, ...] = field(default_factory=tuple)
    kind = "flag"

    def __post_init__(self):
        # Lists from JSON or the CLI are stored as tuples
        object.__setattr__(self, 'flags', tuple(self.flags))

    @property
    def description(self) -> str:
        return f"add flags {', '.join(self.flags) or '(none)'}"

    def apply(self, content: Content) -> Optional[Content]:
        evolved = content.evolve()
        evolved.flags.extend(self.flags)
        return evolved

    def to_wire(self) -> Dict[str, Any]:
        return {"Flag": {"flags": list(self.flags)}}
