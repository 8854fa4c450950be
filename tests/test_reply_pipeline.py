from __future__ import annotations

import json
import random

import pytest

from adapters.prompt_assembler import CaregiverContext
from core.config import AppSettings
from core.domain.categories import Category, Provenance, SafetyStatus, Variant
from core.domain.models import EmotionSignal, SafetySignal
from core.safe_responses import fallback_pool
from core.services.reply_pipeline import ReplyPipeline, TurnRequest, reply, select_variant
from core.services.turn_orchestrator import TurnState

EXTENDED_STORY = fallback_pool(Category.CALMING_STORY, Variant.EXTENDED)[0]
REDIRECT = fallback_pool(Category.GENTLE_REDIRECT)[0]
REASSURANCE = fallback_pool(Category.REASSURANCE)[0]


def _pipeline(generator, settings, registry, recorder, seed: int = 3) -> ReplyPipeline:
    return ReplyPipeline(generator, settings=settings, registry=registry, recorder=recorder, rng=random.Random(seed))


class TestSelectVariant:
    def test_explicit_request_is_extended(self, registry, make_classification):
        classification = make_classification(Category.CALMING_STORY, explicit=True)
        assert select_variant(classification, EmotionSignal(), registry=registry) is Variant.EXTENDED

    def test_high_distress_story_is_extended(self, registry, make_classification):
        emotion = EmotionSignal(category="fearful", confidence=1.0, distress_score=0.8)
        variant = select_variant(make_classification(Category.CALMING_STORY), emotion, registry=registry)
        assert variant is Variant.EXTENDED

    def test_threshold_is_exclusive(self, registry, make_classification):
        emotion = EmotionSignal(category="sad", confidence=0.75, distress_score=0.75)
        variant = select_variant(make_classification(Category.CALMING_STORY), emotion, registry=registry)
        assert variant is Variant.STANDARD

    def test_other_categories_stay_standard(self, registry, make_classification):
        emotion = EmotionSignal(category="fearful", confidence=1.0, distress_score=1.0)
        for category in Category:
            if category is Category.CALMING_STORY:
                continue
            classification = make_classification(category, explicit=True)
            assert select_variant(classification, emotion, registry=registry) is Variant.STANDARD


@pytest.mark.asyncio
async def test_long_story_request_runs_the_extended_contract(scripted, settings, registry, recorder):
    generator = scripted(EXTENDED_STORY)

    result = await _pipeline(generator, settings, registry, recorder).run(
        TurnRequest(utterance="Tell me a very long story")
    )

    assert result.classification.category is Category.CALMING_STORY
    assert result.classification.is_explicit_variant is True
    assert result.variant is Variant.EXTENDED
    assert result.resolution.state is TurnState.ACCEPTED
    assert generator.calls[0][2] == registry.get(Category.CALMING_STORY, Variant.EXTENDED).max_generation_size
    assert result.theme is not None
    assert result.theme.label in result.messages[0]["content"]
    assert len(result.plan.chunks) == 1


@pytest.mark.asyncio
async def test_frightened_story_request_gets_a_longer_story(scripted, settings, registry, recorder):
    result = await _pipeline(scripted(EXTENDED_STORY), settings, registry, recorder).run(
        TurnRequest(utterance="I'm scared, tell me a story")
    )

    assert result.emotion.category == "fearful"
    assert result.classification.category is Category.CALMING_STORY
    assert result.classification.is_explicit_variant is False
    assert result.variant is Variant.EXTENDED


@pytest.mark.asyncio
async def test_medical_question_is_redirected(scripted, settings, registry, recorder):
    result = await _pipeline(scripted(REDIRECT), settings, registry, recorder).run(
        TurnRequest(utterance="What medicine should I take?")
    )

    assert result.safety.status is SafetyStatus.REDIRECT
    assert result.classification.category is Category.GENTLE_REDIRECT
    assert result.classification.matched_rule == "safety_redirect"
    assert result.theme is None
    assert result.text == REDIRECT


@pytest.mark.asyncio
async def test_upstream_signals_are_used_as_given(scripted, settings, registry, recorder):
    request = TurnRequest(
        utterance="tell me a story",
        safety=SafetySignal(status=SafetyStatus.ESCALATE, category="crisis", severity="critical"),
    )

    result = await _pipeline(scripted(REASSURANCE), settings, registry, recorder).run(request)

    assert result.classification.category is Category.REASSURANCE
    assert result.classification.matched_rule == "safety_escalate"


@pytest.mark.asyncio
async def test_caregiver_context_conversation_and_theme_rotation(scripted, settings, registry, recorder):
    story = fallback_pool(Category.CALMING_STORY)[0]
    conversation = [{"role": "user", "content": "good morning"}, {"role": "assistant", "content": "Good morning!"}]
    pipeline = _pipeline(scripted(story), settings, registry, recorder)

    first = await pipeline.run(
        TurnRequest(
            utterance="tell me a story",
            caregiver=CaregiverContext(preferred_name="Walter"),
            conversation=conversation,
        )
    )
    second = await pipeline.run(TurnRequest(utterance="tell me a story", last_theme_id=first.theme.id))

    assert '"Walter"' in first.messages[0]["content"]
    assert first.messages[1:3] == conversation
    assert first.messages[-1] == {"role": "user", "content": "tell me a story"}
    assert first.variant is Variant.STANDARD
    assert second.theme.id != first.theme.id


@pytest.mark.asyncio
async def test_fallback_turn_is_still_paced(scripted, settings, registry, recorder):
    result = await _pipeline(scripted(""), settings, registry, recorder).run(TurnRequest(utterance="where am i"))

    assert result.classification.category is Category.GROUNDING
    assert result.used_fallback is True
    assert result.text in fallback_pool(Category.GROUNDING)
    assert " ".join(chunk.text for chunk in result.plan.chunks) == result.text
    assert recorder.records[0].provenance is Provenance.PATTERN_MATCH


@pytest.mark.asyncio
async def test_audit_log_path_writes_jsonl(scripted, clean_env, tmp_path):
    path = tmp_path / "turns.jsonl"
    settings = AppSettings(_env_file=None, audit_log_path=path)

    result = await reply(settings=settings, utterance="hello", generator=scripted(""))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["response_id"] == result.response_id
    assert payload["category"] == "companionship"
    assert payload["used_fallback"] is True
