"""Keyword-based emotion estimate for a single message.

Por qué heurístico:
- Sin modelo externo ni latencia; el resultado es reproducible y auditable.
- Solo cambia el TONO de la respuesta (directiva del prompt), nunca la
  categoría salvo en la inferencia de último recurso del clasificador.

El historial (señales previas de la misma conversación) lo aporta el llamador;
este módulo no guarda nada entre llamadas.
"""

from __future__ import annotations

from typing import Sequence

from core.domain.models import EmotionSignal

STRONG_WEIGHT = 3
MODERATE_WEIGHT = 2
MILD_WEIGHT = 1

NEUTRAL_CONFIDENCE_FLOOR = 0.15
CURRENT_DISTRESS_WEIGHT = 0.4
HISTORY_DISTRESS_WEIGHT = 0.6
DISTRESS_HISTORY_WINDOW = 5
TRAJECTORY_WINDOW = 3

DISTRESS_EMOTIONS = frozenset({"anxious", "confused", "fearful", "lonely", "sad"})

# emotion -> (strong, moderate, mild)
EMOTION_KEYWORDS: dict[str, tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]] = {
    "anxious": (
        ("panic", "panicking", "terrified", "can't breathe", "heart racing", "shaking", "trembling"),
        ("worried", "nervous", "anxious", "stressed", "uneasy", "tense", "restless", "on edge"),
        ("unsure", "uncomfortable", "bothered", "uncertain", "don't know what to do"),
    ),
    "confused": (
        ("where am i", "who am i", "what's happening", "what is this place", "i don't understand anything", "nothing makes sense"),
        ("confused", "lost", "don't remember", "can't remember", "forgot", "what was i saying", "what day is it", "don't recognize"),
        ("not sure", "i think", "maybe", "what do you mean", "i forget"),
    ),
    "fearful": (
        ("help me", "i'm scared", "someone is here", "danger", "they're coming", "please help", "frightened"),
        ("afraid", "scared", "fear", "don't feel safe", "something is wrong", "worried something bad"),
        ("a little scared", "bit nervous", "something feels off", "not comfortable"),
    ),
    "lonely": (
        ("nobody loves me", "all alone", "nobody cares", "everyone left", "abandoned", "nobody visits"),
        ("lonely", "alone", "miss someone", "no one is here", "by myself", "i miss", "where is everyone"),
        ("wish someone was here", "quiet", "empty", "just me"),
    ),
    "sad": (
        ("i want to die", "hopeless", "can't go on", "what's the point", "crying", "heartbroken"),
        ("sad", "unhappy", "miserable", "depressed", "hurts", "painful", "miss them so much"),
        ("a bit down", "not great", "not my best", "not feeling good", "low"),
    ),
    "calm": (
        ("very happy", "wonderful", "great", "fantastic", "blessed", "grateful", "love this"),
        ("good", "fine", "okay", "nice", "pleasant", "comfortable", "relaxed", "peaceful"),
        ("alright", "not bad", "okay i guess", "doing well"),
    ),
}

CRISIS_KEYWORDS: tuple[str, ...] = (
    "kill myself",
    "want to die",
    "end it all",
    "suicide",
    "hurt myself",
    "self harm",
    "don't want to live",
    "no reason to live",
    "better off dead",
)


def score_emotions(text: str) -> dict[str, int]:
    scores: dict[str, int] = {}
    for emotion, (strong, moderate, mild) in EMOTION_KEYWORDS.items():
        score = 0
        score += STRONG_WEIGHT * sum(1 for keyword in strong if keyword in text)
        score += MODERATE_WEIGHT * sum(1 for keyword in moderate if keyword in text)
        score += MILD_WEIGHT * sum(1 for keyword in mild if keyword in text)
        scores[emotion] = score
    return scores


def _distress_of(signal: EmotionSignal) -> float:
    return signal.confidence if signal.category in DISTRESS_EMOTIONS else 0.0


class EmotionAnalyzer:
    def analyze(self, message: str, history: Sequence[EmotionSignal] = ()) -> EmotionSignal:
        text = (message or "").lower().strip()
        is_crisis = any(keyword in text for keyword in CRISIS_KEYWORDS)

        primary = "neutral"
        highest = 0
        # First emotion with the strictly highest score wins ties.
        for emotion, score in score_emotions(text).items():
            if score > highest:
                highest = score
                primary = emotion

        confidence = min(highest / STRONG_WEIGHT, 1.0)
        if confidence < NEUTRAL_CONFIDENCE_FLOOR:
            primary = "neutral"

        distress = self._distress(primary, confidence, history)
        trajectory = self._trajectory(primary, history)

        return EmotionSignal(
            category=primary,
            confidence=round(confidence, 2),
            distress_score=round(distress, 2),
            trajectory=trajectory,
            is_crisis=is_crisis,
        )

    @staticmethod
    def _distress(emotion: str, confidence: float, history: Sequence[EmotionSignal]) -> float:
        current = confidence if emotion in DISTRESS_EMOTIONS else 0.0
        if not history:
            return current
        recent = list(history)[-DISTRESS_HISTORY_WINDOW:]
        past = sum(_distress_of(signal) for signal in recent) / len(recent)
        return current * CURRENT_DISTRESS_WEIGHT + past * HISTORY_DISTRESS_WEIGHT

    @staticmethod
    def _trajectory(emotion: str, history: Sequence[EmotionSignal]) -> str:
        if len(history) < 2:
            return "stable"
        recent = list(history)[-TRAJECTORY_WINDOW:]
        distressed = sum(1 for signal in recent if signal.category in DISTRESS_EMOTIONS)
        if distressed >= 2:
            return "escalating" if emotion in DISTRESS_EMOTIONS else "de-escalating"
        return "stable"
