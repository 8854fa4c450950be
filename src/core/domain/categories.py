"""Enumerations shared across the reply core.

Keeping them in the domain layer lets the classifier, the registry, the
validator and the CLI share one source of truth without import cycles.
"""

from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    """Response-shape classes the agent can owe the user."""

    GROUNDING = "grounding"
    CALMING_STORY = "calming_story"
    EMOTIONAL_VALIDATION = "emotional_validation"
    GENTLE_REDIRECT = "gentle_redirect"
    COMPANIONSHIP = "companionship"
    REASSURANCE = "reassurance"

    def label(self) -> str:
        """Human readable label for tables and logging."""

        return self.value.replace("_", " ")


class Variant(str, Enum):
    """Contract variant. Only `calming_story` defines `extended`."""

    STANDARD = "standard"
    EXTENDED = "extended"

    @classmethod
    def from_bool(cls, extended: bool) -> "Variant":
        return cls.EXTENDED if extended else cls.STANDARD


class Provenance(str, Enum):
    """How a classification was reached."""

    PATTERN_MATCH = "pattern_match"
    INFERRED = "inferred"
    DEFAULT = "default"


class SafetyStatus(str, Enum):
    SAFE = "SAFE"
    REDIRECT = "REDIRECT"
    ESCALATE = "ESCALATE"


class RejectionReason(str, Enum):
    """Identifiers of the validator checks, in evaluation order.

    The identifier of the first failing check is fed verbatim into the
    corrective instruction of the regeneration.
    """

    EMPTY_RESPONSE = "empty_response"
    TOO_FEW_UNITS = "too_few_units"
    INCOMPLETE_ENDING = "incomplete_ending"
    PROMISE_WITHOUT_DELIVERY = "promise_without_delivery"
    STORY_TOO_SHORT = "story_too_short"
    MISSING_PEACEFUL_ENDING = "missing_peaceful_ending"
    FORBIDDEN_CONTENT = "forbidden_content"
    OFFERS_CONTINUATION = "offers_continuation"
    MISSING_COMPLETION_SIGNAL = "missing_completion_signal"
    GENERATION_UNAVAILABLE = "generation_unavailable"
