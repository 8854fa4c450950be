"""Deterministic intent classification.

The classifier decides WHAT kind of reply is owed; the emotion signal only
changes HOW it is generated. Rules are evaluated in strict priority order and
the first match wins:

1. safety override (REDIRECT -> gentle redirect, ESCALATE -> reassurance)
2. explicit long-story phrases (sets ``is_explicit_variant``)
3. lexical groups: story > grounding > validation > redirect > companionship
4. emotion-inferred fallback
5. default reassurance

An utterance such as "I'm scared, tell me a story" matches several groups;
deliverable-shaped requests win because failing to deliver a promised story
hurts trust more than a tonal mismatch.
"""

from __future__ import annotations

import logging

from core.domain.categories import Category, Provenance, SafetyStatus
from core.domain.models import ClassificationResult, EmotionSignal, SafetySignal

logger = logging.getLogger(__name__)


# Checked before the general story group so the explicit flag is not lost.
# Short fragments ("tell me more", "another story", "long one") are kept as-is;
# they may fire on unrelated chat and are pending review with the care team.
EXPLICIT_LONG_STORY_PHRASES: tuple[str, ...] = (
    "tell me a long story",
    "a really long story",
    "a longer story",
    "tell me a big story",
    "tell me a very long story",
    "long bedtime story",
    "tell me a bedtime story",
    "read me a long story",
    "i want a long story",
    "can you tell me a long story",
    "i need a long story",
    "a detailed story",
    "tell me a detailed story",
    "story to help me fall asleep",
    "a story to fall asleep to",
    "keep telling me a story",
    "a story that goes on for a while",
    "longer story please",
    "another story",
    "more story",
    "tell me more",
    "100 words",
    "200 words",
    "many words",
    "long one",
)

INTENT_PHRASE_GROUPS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.CALMING_STORY,
        (
            "tell me a story",
            "can you tell me a story",
            "i want a story",
            "read me something",
            "tell me something nice",
            "tell me something calming",
            "tell me something soothing",
            "i need a story",
            "story to calm",
            "calming story",
            "tell me a calming story",
            "a story please",
            "make me feel better with a story",
            "story to help me sleep",
            "tell me a gentle story",
            "i want to hear a story",
            "can you read me a story",
            "sing me a story",
            "a bedtime story",
            "something to make me feel better",
            "tell me something beautiful",
            "tell me something peaceful",
            "calm me down",
            "help me relax",
        ),
    ),
    (
        Category.GROUNDING,
        (
            "where am i",
            "what is this place",
            "who am i",
            "do you know me",
            "what is my name",
            "do you know my name",
            "tell me my name",
            "who am i talking to",
            "what day is it",
            "what's happening",
            "nothing makes sense",
            "i don't recognize",
            "i don't understand anything",
            "what is going on",
            "what time is it",
            "where is this",
            "i don't know this place",
            "how did i get here",
        ),
    ),
    (
        Category.EMOTIONAL_VALIDATION,
        (
            "i miss",
            "i lost",
            "nobody loves me",
            "nobody cares",
            "everyone left",
            "i'm all alone",
            "why did they leave",
            "they forgot about me",
            "no one visits",
            "i feel so alone",
            "my heart hurts",
            "i'm so sad",
            "why am i so sad",
            "everything hurts",
            "i can't stop crying",
        ),
    ),
    (
        Category.GENTLE_REDIRECT,
        (
            "what medicine",
            "what should i take",
            "am i sick",
            "what's wrong with me",
            "when is my appointment",
            "can i go home",
            "take me home",
            "what pills",
            "my medication",
            "when can i leave",
            "i need my doctor",
            "call my doctor",
            "what's my diagnosis",
        ),
    ),
    (
        Category.COMPANIONSHIP,
        (
            "hello",
            "hi clara",
            "hey",
            "how are you",
            "what's your name",
            "tell me about yourself",
            "what do you like",
            "let's talk",
            "i'm bored",
            "talk to me",
            "keep me company",
            "are you there",
            "good morning",
            "good evening",
            "good afternoon",
            "hi there",
        ),
    ),
)

DISORIENTATION_EMOTIONS = frozenset({"confused"})
GRIEF_EMOTIONS = frozenset({"sad", "lonely"})
SETTLED_EMOTIONS = frozenset({"calm", "neutral"})

DISORIENTATION_CONFIDENCE_FLOOR = 0.5
GRIEF_CONFIDENCE_FLOOR = 0.6
SETTLED_CONFIDENCE_FLOOR = 0.3
SHORT_UTTERANCE_CHARS = 50
LOW_DISTRESS_CEILING = 0.2


def _first_phrase(text: str, phrases: tuple[str, ...]) -> str | None:
    for phrase in phrases:
        if phrase in text:
            return phrase
    return None


class IntentClassifier:
    """Maps an utterance plus side signals to exactly one category.

    `detect` is total: it never raises and always returns a valid category.
    """

    def __init__(
        self,
        *,
        phrase_groups: tuple[tuple[Category, tuple[str, ...]], ...] = INTENT_PHRASE_GROUPS,
        explicit_long_phrases: tuple[str, ...] = EXPLICIT_LONG_STORY_PHRASES,
    ) -> None:
        self._phrase_groups = phrase_groups
        self._explicit_long_phrases = explicit_long_phrases

    def detect(
        self,
        utterance: str,
        emotion: EmotionSignal | None = None,
        safety: SafetySignal | None = None,
    ) -> ClassificationResult:
        emotion = emotion or EmotionSignal()
        safety = safety or SafetySignal()
        text = (utterance or "").lower()

        if safety.status is SafetyStatus.REDIRECT:
            return self._result(Category.GENTLE_REDIRECT, Provenance.PATTERN_MATCH, "safety_redirect")
        if safety.status is SafetyStatus.ESCALATE:
            return self._result(Category.REASSURANCE, Provenance.PATTERN_MATCH, "safety_escalate")

        phrase = _first_phrase(text, self._explicit_long_phrases)
        if phrase is not None:
            return self._result(Category.CALMING_STORY, Provenance.PATTERN_MATCH, phrase, explicit=True)

        for category, phrases in self._phrase_groups:
            phrase = _first_phrase(text, phrases)
            if phrase is not None:
                return self._result(category, Provenance.PATTERN_MATCH, phrase)

        inferred = self._infer_from_emotion(text.strip(), emotion)
        if inferred is not None:
            return inferred

        return self._result(Category.REASSURANCE, Provenance.DEFAULT, "no_match")

    def _infer_from_emotion(self, text: str, emotion: EmotionSignal) -> ClassificationResult | None:
        label = (emotion.category or "").lower()

        if label in DISORIENTATION_EMOTIONS and emotion.confidence >= DISORIENTATION_CONFIDENCE_FLOOR:
            return self._result(Category.GROUNDING, Provenance.INFERRED, f"{label}_high_confidence")

        if label in GRIEF_EMOTIONS and emotion.confidence >= GRIEF_CONFIDENCE_FLOOR:
            return self._result(Category.EMOTIONAL_VALIDATION, Provenance.INFERRED, f"{label}_high_confidence")

        if (
            label in SETTLED_EMOTIONS
            and emotion.confidence >= SETTLED_CONFIDENCE_FLOOR
            and len(text) < SHORT_UTTERANCE_CHARS
            and emotion.distress_score < LOW_DISTRESS_CEILING
        ):
            return self._result(Category.COMPANIONSHIP, Provenance.INFERRED, "calm_conversational")

        return None

    @staticmethod
    def _result(
        category: Category,
        provenance: Provenance,
        matched_rule: str,
        *,
        explicit: bool = False,
    ) -> ClassificationResult:
        result = ClassificationResult(
            category=category,
            provenance=provenance,
            matched_rule=matched_rule,
            is_explicit_variant=explicit,
        )
        logger.debug(
            "Classified as %s (%s, rule=%r, explicit=%s)",
            category.value,
            provenance.value,
            matched_rule,
            explicit,
        )
        return result
