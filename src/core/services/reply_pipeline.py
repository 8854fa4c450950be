"""One-turn reply pipeline.

This module wires the per-turn flow so every entry-point (CLI, an HTTP layer,
batch replays, tests) runs the exact same sequence:

    emotion estimate -> safety pre-screen -> classification -> variant
    selection -> contract lookup -> prompt assembly -> generation with one
    bounded regeneration and a fallback -> audit record -> delivery plan

Nothing here survives the turn. Conversation history, emotion history and the
last story theme are supplied by the caller through `TurnRequest`.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Sequence

from adapters.audit_recorder import JsonlTurnRecorder, LoggingTurnRecorder
from adapters.emotion_analyzer import EmotionAnalyzer
from adapters.prompt_assembler import PERSONA_VERSION, CaregiverContext, assemble_messages
from adapters.safety_screen import SafetyScreen
from adapters.story_themes import StoryTheme, select_theme
from core.config import AppSettings
from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import Category, Variant
from core.domain.models import (
    ClassificationResult,
    DeliveryPlan,
    EmotionSignal,
    SafetySignal,
)
from core.interfaces.generator import ReplyGenerator
from core.interfaces.recorder import TurnRecorder
from core.services.delivery_pacer import DeliveryPacer
from core.services.intent_classifier import IntentClassifier
from core.services.turn_orchestrator import TurnOrchestrator, TurnResolution


@dataclass
class TurnRequest:
    """Inputs of a single turn.

    `emotion` and `safety` may be supplied by an upstream layer; when absent
    they are computed from the utterance (and `emotion_history`).
    """

    utterance: str
    emotion: EmotionSignal | None = None
    safety: SafetySignal | None = None
    emotion_history: Sequence[EmotionSignal] = ()
    caregiver: CaregiverContext | None = None
    conversation: Sequence[dict[str, str]] = ()
    last_theme_id: str | None = None
    response_id: str | None = None


@dataclass
class TurnResult:
    text: str
    classification: ClassificationResult
    variant: Variant
    emotion: EmotionSignal
    safety: SafetySignal
    plan: DeliveryPlan
    resolution: TurnResolution
    theme: StoryTheme | None = None
    messages: list[dict[str, str]] = field(default_factory=list)
    persona_version: str = PERSONA_VERSION

    @property
    def used_fallback(self) -> bool:
        return self.resolution.used_fallback

    @property
    def response_id(self) -> str | None:
        return self.resolution.record.response_id if self.resolution.record else None


def select_variant(
    classification: ClassificationResult,
    emotion: EmotionSignal,
    *,
    registry: ContractRegistry,
    distress_threshold: float = 0.75,
) -> Variant:
    """Extended only for stories, when asked for explicitly or under high distress."""

    if classification.category is not Category.CALMING_STORY:
        return Variant.STANDARD
    if not registry.has_variant(classification.category, Variant.EXTENDED):
        return Variant.STANDARD
    wants_long = classification.is_explicit_variant or emotion.distress_score > distress_threshold
    return Variant.from_bool(wants_long)


def recorder_from_settings(settings: AppSettings) -> TurnRecorder:
    if settings.audit_log_path is not None:
        return JsonlTurnRecorder(settings.audit_log_path)
    return LoggingTurnRecorder()


class ReplyPipeline:
    def __init__(
        self,
        generator: ReplyGenerator,
        *,
        settings: AppSettings | None = None,
        registry: ContractRegistry | None = None,
        recorder: TurnRecorder | None = None,
        rng: random.Random | None = None,
        classifier: IntentClassifier | None = None,
        emotion_analyzer: EmotionAnalyzer | None = None,
        safety_screen: SafetyScreen | None = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self.registry = registry or load_registry(self.settings.contracts_path)
        self._rng = rng or random.Random()
        self._classifier = classifier or IntentClassifier()
        self._emotion_analyzer = emotion_analyzer or EmotionAnalyzer()
        self._safety_screen = safety_screen or SafetyScreen()
        self._orchestrator = TurnOrchestrator(
            generator,
            registry=self.registry,
            recorder=recorder if recorder is not None else recorder_from_settings(self.settings),
            rng=self._rng,
            standard_timeout_seconds=self.settings.generation_timeout_seconds,
            extended_timeout_seconds=self.settings.extended_generation_timeout_seconds,
        )
        self._pacer = DeliveryPacer(self.registry, rng=self._rng)

    async def run(self, request: TurnRequest) -> TurnResult:
        emotion = request.emotion or self._emotion_analyzer.analyze(request.utterance, request.emotion_history)
        safety = request.safety or self._safety_screen.screen(request.utterance, emotion)

        classification = self._classifier.detect(request.utterance, emotion, safety)
        variant = select_variant(
            classification,
            emotion,
            registry=self.registry,
            distress_threshold=self.settings.extended_story_distress_threshold,
        )
        contract = self.registry.get(classification.category, variant)

        theme = None
        if classification.category is Category.CALMING_STORY:
            theme = select_theme(self._rng, exclude=request.last_theme_id)

        messages = assemble_messages(
            request.utterance,
            contract=contract,
            emotion=emotion,
            safety=safety,
            caregiver=request.caregiver,
            theme=theme,
            variant=variant,
            conversation=request.conversation,
        )

        resolution = await self._orchestrator.run(
            messages,
            classification,
            variant,
            response_id=request.response_id,
        )
        plan = self._pacer.pace(resolution.text, emotion.distress_score, classification, variant)

        return TurnResult(
            text=resolution.text,
            classification=classification,
            variant=variant,
            emotion=emotion,
            safety=safety,
            plan=plan,
            resolution=resolution,
            theme=theme,
            messages=messages,
        )


async def reply(
    *,
    settings: AppSettings,
    utterance: str,
    generator: ReplyGenerator,
    recorder: TurnRecorder | None = None,
) -> TurnResult:
    pipeline = ReplyPipeline(generator, settings=settings, recorder=recorder)
    return await pipeline.run(TurnRequest(utterance=utterance))
