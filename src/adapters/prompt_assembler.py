"""Prompt assembly for the generation call.

Responsabilidad:
- Unir persona, directiva emocional, notas de distress/trayectoria/identidad,
  contexto del cuidador, directiva del contrato y semilla de tema en un único
  system prompt.
- Devolver la lista `[{role, content}]` que consume el generador.

El contrato es la única fuente de la forma de la respuesta: la persona habla de
tono, la directiva del contrato de estructura.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from adapters.story_themes import StoryTheme
from core.domain.categories import Variant
from core.domain.models import EmotionSignal, ResponseContract, SafetySignal

logger = logging.getLogger(__name__)

PERSONA_VERSION = "1.0.0"

ELEVATED_DISTRESS = 0.5

BASE_PROMPT = """You are Clara, an emotion-aware AI companion designed to support older adults who may feel confused or unsettled.

Your primary role is to provide emotional reassurance, calmness, and a sense of safety through gentle conversation.

CORE BEHAVIOR:
- Always speak slowly, warmly, and kindly, like a caring mother.
- Use the user's preferred name (if provided in context). Using their name helps them feel recognized and safe.
- Use simple language. Short sentences. Familiar words.
- Never sound robotic, technical, or impatient.
- Emotional comfort is more important than factual correctness.
- Use gentle emoji sparingly (💛, 🌸) to add warmth.

REPETITION HANDLING:
- The user may ask the same question many times.
- NEVER point out that the question was already asked.
- NEVER say "as I mentioned" or "like I said" or "you already asked."
- Respond as if hearing it for the very first time, with full patience and warmth.

MEMORY SAFETY:
- Do not introduce new or complex information.
- Do not reference time, dates, or schedules unless the caregiver context provides them.
- Do not correct the user if they are confused. Follow their lead gently.

ETHICAL CONSTRAINTS:
- Do not provide medical advice, diagnoses, or treatment suggestions.
- Do not deceive the user into believing you are a human.
- If asked directly, gently say you are Clara, an AI companion here to help.
- Do not encourage emotional dependency.
- Never mention the words "dementia", "memory loss", "cognitive", or "diagnosis".

FAIL-SAFE:
- If unsure what to say, default to reassurance.
- Say things like: "You are safe." "I am here with you." "Everything is okay right now."
"""

EMOTION_DIRECTIVES: dict[str, str] = {
    "anxious": (
        "The user seems anxious or worried. Use an especially soft, reassuring tone. "
        "Speak as if gently calming a loved one. Validate their feelings without amplifying them."
    ),
    "confused": (
        "The user seems confused or disoriented. Be extra patient and grounding. Use short, clear sentences. "
        "Do not add new information. Help them feel oriented and safe."
    ),
    "fearful": (
        "The user seems frightened. Prioritize safety and presence above all. Use calming, protective language. "
        "Reassure them that they are not alone and that they are safe."
    ),
    "lonely": (
        "The user seems lonely or isolated. Be extra warm and present. Let them know you are here and happy "
        "to be with them. Make them feel valued and not alone."
    ),
    "sad": (
        "The user seems sad or sorrowful. Be gentle and compassionate. Acknowledge their feelings softly "
        "without probing. Offer comfort, not solutions."
    ),
    "neutral": "The user seems calm or neutral. Maintain a warm, friendly tone. Be pleasant and gently conversational.",
    "calm": "The user seems relaxed and at ease. Match their calm energy. Be warm and conversational. This is a good moment.",
}


@dataclass
class CaregiverContext:
    """Datos aportados por el cuidador (opcional)."""

    preferred_name: str | None = None
    known_topics: list[str] = field(default_factory=list)
    avoid_topics: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.preferred_name or self.known_topics or self.avoid_topics)


def _distress_note(emotion: EmotionSignal) -> str | None:
    if emotion.distress_score <= ELEVATED_DISTRESS:
        return None
    return (
        f"DISTRESS LEVEL: The user's distress is elevated ({round(emotion.distress_score * 100)}%). "
        "Be especially gentle and warm. Prioritize making them feel safe above all else."
    )


def _trajectory_note(emotion: EmotionSignal) -> str | None:
    if emotion.trajectory == "escalating":
        return (
            "EMOTIONAL TRAJECTORY: The user's distress has been increasing. "
            "Focus on grounding and calming."
        )
    if emotion.trajectory == "de-escalating":
        return (
            "EMOTIONAL TRAJECTORY: The user is beginning to calm down. "
            "Maintain warmth but you can be slightly more conversational."
        )
    return None


def _caregiver_note(context: CaregiverContext | None) -> str | None:
    if context is None or context.is_empty():
        return None
    lines = ["CAREGIVER-PROVIDED CONTEXT:"]
    if context.preferred_name:
        lines.append(
            f'- The user\'s preferred name is "{context.preferred_name}". Use it occasionally to make them feel known.'
        )
    if context.known_topics:
        lines.append(
            f"- Familiar topics the user enjoys: {', '.join(context.known_topics)}. "
            "You may gently reference these if the conversation allows."
        )
    if context.avoid_topics:
        lines.append(
            f"- Topics to AVOID (may cause distress): {', '.join(context.avoid_topics)}. Do NOT bring these up."
        )
    return "\n".join(lines)


def _theme_note(theme: StoryTheme, variant: Variant) -> str:
    tone = "long, detailed bedtime" if variant is Variant.EXTENDED else "gentle, short"
    return (
        "STORY THEME SEED (use this as inspiration, do NOT copy it literally):\n"
        f"- Setting: {theme.label}\n"
        f"- Sensory details to weave in: {theme.sensory_hints}\n"
        f"- Tone: {tone} story\n"
        "- IMPORTANT: Make this story unique and fresh."
    )


def build_system_prompt(
    *,
    contract: ResponseContract,
    emotion: EmotionSignal | None = None,
    safety: SafetySignal | None = None,
    caregiver: CaregiverContext | None = None,
    theme: StoryTheme | None = None,
    variant: Variant = Variant.STANDARD,
) -> str:
    emotion = emotion or EmotionSignal()
    parts: list[str] = [BASE_PROMPT.strip()]

    directive = EMOTION_DIRECTIVES.get(emotion.category)
    if directive:
        parts.append(f"CURRENT EMOTIONAL STATE:\n{directive}")

    for note in (_distress_note(emotion), _trajectory_note(emotion)):
        if note:
            parts.append(note)

    if safety is not None and safety.flag == "identity_confusion":
        parts.append(
            "IDENTITY NOTE: The user may be confusing you with a real person. "
            "Do NOT harshly correct them. Gently and warmly clarify that you are Clara, "
            "an AI companion here to help. Do not make them feel embarrassed."
        )

    caregiver_note = _caregiver_note(caregiver)
    if caregiver_note:
        parts.append(caregiver_note)

    parts.append(contract.directive_text)

    if theme is not None:
        parts.append(_theme_note(theme, variant))

    return "\n\n".join(parts)


def assemble_messages(
    utterance: str,
    *,
    contract: ResponseContract,
    emotion: EmotionSignal | None = None,
    safety: SafetySignal | None = None,
    caregiver: CaregiverContext | None = None,
    theme: StoryTheme | None = None,
    variant: Variant = Variant.STANDARD,
    conversation: Sequence[dict[str, str]] = (),
) -> list[dict[str, str]]:
    """System prompt, optional conversation window, then the user's message."""

    system_prompt = build_system_prompt(
        contract=contract,
        emotion=emotion,
        safety=safety,
        caregiver=caregiver,
        theme=theme,
        variant=variant,
    )
    messages: list[dict[str, str]] = [{"role": "system", "content": system_prompt}]
    messages.extend(dict(message) for message in conversation)
    messages.append({"role": "user", "content": utterance})
    logger.debug("Assembled %d messages (persona %s, %s)", len(messages), PERSONA_VERSION, variant.value)
    return messages
