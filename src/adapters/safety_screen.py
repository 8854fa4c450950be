"""Safety pre-screen over the user's message.

Runs before classification. Its status feeds the classifier's safety
override (ESCALATE -> reassurance, REDIRECT -> gentle redirect); human
escalation itself belongs to the session layer.
"""

from __future__ import annotations

import logging
import re

from core.domain.categories import SafetyStatus
from core.domain.models import EmotionSignal, SafetySignal

logger = logging.getLogger(__name__)

ESCALATION_DISTRESS_THRESHOLD = 0.85

CRISIS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(kill\s*(my)?self)\b",
        r"\b(want\s*to\s*die)\b",
        r"\b(end\s*it\s*all)\b",
        r"\bsuicid",
        r"\b(hurt\s*(my)?self)\b",
        r"\b(self[\s-]?harm)\b",
        r"\b(don'?t\s*want\s*to\s*live)\b",
        r"\b(no\s*reason\s*to\s*live)\b",
        r"\b(better\s*off\s*dead)\b",
    )
)

MEDICAL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(what\s*(medicine|medication|pill|drug|dose))\b",
        r"\b(should\s*i\s*take)\b",
        r"\b(medical\s*advice)\b",
        r"\b(diagnos[ei]s?)\b",
        r"\b(treatment|prescription|symptom)",
        r"\b(what('?s)?\s*wrong\s*with\s*me)\b",
    )
)

IDENTITY_CONFUSION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bare\s*you\s*(my|a)\s*(daughter|son|mother|father|wife|husband|sister|brother|friend|nurse|doctor)",
        r"\b(you'?re\s*(my|a)\s*(daughter|son|mother|father|wife|husband))",
    )
)


def _matches(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


class SafetyScreen:
    def screen(self, message: str, emotion: EmotionSignal | None = None) -> SafetySignal:
        emotion = emotion or EmotionSignal()
        text = message or ""

        if emotion.is_crisis or _matches(CRISIS_PATTERNS, text):
            logger.warning("Crisis language detected; escalating")
            return SafetySignal(status=SafetyStatus.ESCALATE, category="crisis", severity="critical")

        if emotion.distress_score > ESCALATION_DISTRESS_THRESHOLD and emotion.trajectory == "escalating":
            logger.warning("Distress %.2f and escalating; escalating", emotion.distress_score)
            return SafetySignal(status=SafetyStatus.ESCALATE, category="distress_threshold", severity="high")

        if _matches(MEDICAL_PATTERNS, text):
            return SafetySignal(status=SafetyStatus.REDIRECT, category="medical", severity="low")

        if _matches(IDENTITY_CONFUSION_PATTERNS, text):
            return SafetySignal(
                status=SafetyStatus.SAFE,
                category="identity_confusion",
                flag="identity_confusion",
            )

        return SafetySignal()
