"""Completeness validation of generated replies.

A boolean gate, not a score: checks run in a fixed order and the first failure
becomes the rejection reason. That identifier is fed verbatim into the
corrective instruction of the single regeneration, so behaviour stays
auditable and reproducible.
"""

from __future__ import annotations

import logging
import re

from core.contract_registry import WARMTH_GLYPHS, ContractRegistry, load_registry
from core.domain.categories import Category, RejectionReason, Variant
from core.domain.models import ClassificationResult, ResponseContract, ValidationOutcome

logger = logging.getLogger(__name__)

_UNIT_SPLIT_RE = re.compile(r"[.!?]+")
MIN_UNIT_CHARS = 4

TRUNCATION_WINDOW_CHARS = 20
CLOSURE_WINDOW_CHARS = 5
PEACEFUL_ENDING_WINDOW_CHARS = 300

STANDARD_STORY_MIN_UNITS = 7
EXTENDED_STORY_MIN_UNITS = 30
PROMISE_MIN_UNITS = 4

PROMISE_PHRASES: tuple[str, ...] = (
    "let me tell you a story",
    "here's a story",
    "i'll tell you a story",
    "once upon a time",
)

CONTINUATION_OFFERS: tuple[str, ...] = (
    "would you like to hear more",
    "shall i continue",
    "want to hear more",
    "would you like another",
    "want me to go on",
    "should i tell you more",
    "do you want more",
    "i can tell you more",
)

PEACEFUL_ENDING_MARKERS: tuple[str, ...] = (
    "and all was",
    "everything was",
    "peacefully",
    "drifted",
    "settled",
    "the end",
    "fell asleep",
    "closed its eyes",
    "softly to sleep",
    "from that day",
    "and so",
    "quiet and still",
    "warm and safe",
    "gently",
    "at last",
    "finally",
    "came to rest",
    "thankful",
    "grateful",
    *WARMTH_GLYPHS,
)


# Lo que nunca debe leer el usuario: reproches por repetir, lenguaje clínico,
# fechas y citas.
FORBIDDEN_OUTPUT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(you\s*(already|just)\s*(asked|said|told|mentioned))\b",
        r"\b(as\s*i\s*(mentioned|said|told))\b",
        r"\b(like\s*i\s*said)\b",
        r"\b(i\s*(already|just)\s*(told|said|mentioned|explained))\b",
        r"\b(remember\s*when\s*i\s*said)\b",
        r"\bdementia\b",
        r"\bmemory\s*loss\b",
        r"\bcognitive\s*(decline|impairment|issue)",
        r"\balzheimer",
        r"\bdiagnos[ei]s?\b",
        r"\bmedication\b",
        r"\bprescri(be|ption)\b",
        r"\btreatment\s*plan\b",
        r"\bdoctor\s*recommend",
        r"\byou\s*should\s*(see|visit|call)\s*(a|your|the)\s*doctor",
        r"\b(tomorrow|next\s*week|next\s*month|next\s*year|schedule|appointment)\b",
    )
)


def structural_units(text: str) -> list[str]:
    """Sentence-like fragments; emoji-only or punctuation-only splits are dropped."""

    fragments = (fragment.strip() for fragment in _UNIT_SPLIT_RE.split(text))
    return [fragment for fragment in fragments if len(fragment) >= MIN_UNIT_CHARS]


def count_structural_units(text: str) -> int:
    return len(structural_units(text))


def ends_with_incompletion_signal(text: str, signals: tuple[str, ...]) -> str | None:
    """Return the signal the tail of `text` ends with, if any.

    Signals written with a leading space (" and", " then") are words: they only
    match on a word boundary, so "sand" does not count as a dangling "and".
    """

    tail = text[-TRUNCATION_WINDOW_CHARS:].lower().rstrip()
    for signal in signals:
        token = signal.strip().lower()
        if not token or not tail.endswith(token):
            continue
        if signal[:1].isspace():
            before = tail[: -len(token)]
            if before and before[-1].isalnum():
                continue
        return signal
    return None


def ends_with_completion_signal(text: str, signals: tuple[str, ...]) -> bool:
    tail = text[-CLOSURE_WINDOW_CHARS:]
    return any(signal in tail for signal in signals)


def has_peaceful_ending(text: str) -> bool:
    tail = text[-PEACEFUL_ENDING_WINDOW_CHARS:].lower()
    return any(marker in tail for marker in PEACEFUL_ENDING_MARKERS)


def forbidden_content(text: str) -> str | None:
    """Return the first forbidden fragment found in `text`, if any."""

    for pattern in FORBIDDEN_OUTPUT_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def offers_continuation(text: str) -> str | None:
    lower = text.lower()
    for phrase in CONTINUATION_OFFERS:
        if phrase in lower:
            return phrase
    return None


class CompletenessValidator:
    """Checks a reply against the contract of its (category, variant)."""

    def __init__(self, registry: ContractRegistry | None = None) -> None:
        self._registry = registry or load_registry()

    def validate(
        self,
        text: str | None,
        classification: ClassificationResult,
        variant: Variant = Variant.STANDARD,
    ) -> ValidationOutcome:
        contract = self._registry.get(classification.category, variant)
        outcome = self.check(text, classification.category, variant, contract)
        if not outcome.accepted:
            logger.info(
                "Rejected %s/%s reply: %s (%s)",
                classification.category.value,
                variant.value,
                outcome.reason.value if outcome.reason else None,
                outcome.detail,
            )
        return outcome

    def check(
        self,
        text: str | None,
        category: Category,
        variant: Variant,
        contract: ResponseContract,
    ) -> ValidationOutcome:
        trimmed = (text or "").strip()

        # a. vacío
        if not trimmed:
            return ValidationOutcome.reject(RejectionReason.EMPTY_RESPONSE, "empty response")

        # b. mínimo de unidades
        units = count_structural_units(trimmed)
        if units < contract.min_structural_units:
            return ValidationOutcome.reject(
                RejectionReason.TOO_FEW_UNITS,
                f"got {units} units, need at least {contract.min_structural_units} for {category.value}",
            )

        # c. truncado
        signal = ends_with_incompletion_signal(trimmed, contract.incompletion_signals)
        if signal is not None:
            return ValidationOutcome.reject(
                RejectionReason.INCOMPLETE_ENDING,
                f"ends with truncation signal {signal.strip()!r}",
            )

        # d. promesa sin entrega + estructura del cuento
        lower = trimmed.lower()
        if units < PROMISE_MIN_UNITS and any(phrase in lower for phrase in PROMISE_PHRASES):
            return ValidationOutcome.reject(
                RejectionReason.PROMISE_WITHOUT_DELIVERY,
                f"a story was promised but only {units} units were delivered",
            )
        if category is Category.CALMING_STORY:
            outcome = self._check_story(trimmed, units, variant)
            if not outcome.accepted:
                return outcome

        # e. contenido prohibido
        fragment = forbidden_content(trimmed)
        if fragment is not None:
            return ValidationOutcome.reject(
                RejectionReason.FORBIDDEN_CONTENT,
                f"contains forbidden wording {fragment!r}",
            )

        # f. ofrecer continuación
        phrase = offers_continuation(trimmed)
        if phrase is not None:
            return ValidationOutcome.reject(
                RejectionReason.OFFERS_CONTINUATION,
                f"offers to continue ({phrase!r}); the reply must be self-contained",
            )

        # g. cierre
        if not ends_with_completion_signal(trimmed, contract.completion_signals):
            return ValidationOutcome.reject(
                RejectionReason.MISSING_COMPLETION_SIGNAL,
                f"does not end with a proper conclusion for {category.value}",
            )

        return ValidationOutcome.accept()

    @staticmethod
    def _check_story(text: str, units: int, variant: Variant) -> ValidationOutcome:
        # Floors sit below the nominal targets to tolerate generation variance.
        floor = EXTENDED_STORY_MIN_UNITS if variant is Variant.EXTENDED else STANDARD_STORY_MIN_UNITS
        if units < floor:
            return ValidationOutcome.reject(
                RejectionReason.STORY_TOO_SHORT,
                f"{variant.value} story has {units} units, need at least {floor}",
            )
        if variant is Variant.EXTENDED and not has_peaceful_ending(text):
            return ValidationOutcome.reject(
                RejectionReason.MISSING_PEACEFUL_ENDING,
                "extended story does not close on a settled, peaceful note",
            )
        return ValidationOutcome.accept()
