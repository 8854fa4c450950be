from __future__ import annotations

import logging
import random

import pytest

from core.domain.categories import Category, RejectionReason, Variant
from core.domain.models import ValidationOutcome
from core.errors import GenerationUnavailable
from core.safe_responses import fallback_pool
from core.services.turn_orchestrator import (
    RetryState,
    TurnOrchestrator,
    TurnState,
    next_state,
)

MESSAGES = [{"role": "system", "content": "be kind"}, {"role": "user", "content": "hello"}]

GOOD_REASSURANCE = "You are safe. I am right here with you. 💛"
GOOD_STORY = (
    "There was once a quiet meadow at the edge of a small village. "
    "Soft green grass swayed in the warm afternoon breeze. "
    "A little rabbit sat beside a clear, bubbling stream. "
    "Nearby, a bluebird sang a slow and happy song. "
    "The sun painted everything in gentle golden light. "
    "A butterfly landed softly on a yellow daisy. "
    "The rabbit closed its eyes and listened to the water. "
    "Everything in the meadow was calm and beautiful. 💛"
)
TRUNCATED_STORY = GOOD_STORY.removesuffix(" 💛") + " The little bird flew up...and then"


class TestNextState:
    def test_generation_always_goes_to_validation(self):
        retry = RetryState()
        assert next_state(TurnState.GENERATED, retry) is TurnState.VALIDATING
        assert next_state(TurnState.REGENERATING, retry) is TurnState.VALIDATING

    def test_accepted(self):
        assert next_state(TurnState.VALIDATING, RetryState(), ValidationOutcome.accept()) is TurnState.ACCEPTED

    def test_first_rejection_regenerates(self):
        rejected = ValidationOutcome.reject(RejectionReason.TOO_FEW_UNITS)
        assert next_state(TurnState.VALIDATING, RetryState(), rejected) is TurnState.REGENERATING

    def test_second_rejection_falls_back(self):
        rejected = ValidationOutcome.reject(RejectionReason.TOO_FEW_UNITS)
        assert next_state(TurnState.VALIDATING, RetryState(attempts_used=1), rejected) is TurnState.FALLBACK

    @pytest.mark.parametrize("state", [TurnState.ACCEPTED, TurnState.FALLBACK])
    def test_terminal_states_have_no_successor(self, state):
        with pytest.raises(ValueError):
            next_state(state, RetryState(), ValidationOutcome.accept())

    def test_validation_needs_an_outcome(self):
        with pytest.raises(ValueError):
            next_state(TurnState.VALIDATING, RetryState())


@pytest.mark.asyncio
async def test_accepts_first_attempt(scripted, registry, recorder, make_classification):
    generator = scripted(GOOD_REASSURANCE)
    orchestrator = TurnOrchestrator(generator, registry=registry, recorder=recorder)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE))

    assert resolution.state is TurnState.ACCEPTED
    assert resolution.text == GOOD_REASSURANCE
    assert resolution.generation_calls == 1
    assert generator.calls[0][2] == registry.get(Category.REASSURANCE).max_generation_size
    assert len(recorder.records) == 1
    assert recorder.records[0].terminal_state == "accepted"
    assert recorder.records[0].response_id.startswith("resp_")


@pytest.mark.asyncio
async def test_regenerates_once_with_the_rejection_reason(scripted, registry, recorder, make_classification):
    generator = scripted("Ok.", GOOD_REASSURANCE)
    orchestrator = TurnOrchestrator(generator, registry=registry, recorder=recorder)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE))

    assert resolution.state is TurnState.ACCEPTED
    assert resolution.generation_calls == 2
    assert resolution.rejection_reasons == ["too_few_units"]
    method, messages, reason, _ = generator.calls[1]
    assert method == "regenerate"
    assert reason == "too_few_units"
    assert messages == MESSAGES


@pytest.mark.asyncio
async def test_truncated_story_falls_back_after_one_regeneration(scripted, registry, recorder, make_classification):
    generator = scripted(TRUNCATED_STORY)
    orchestrator = TurnOrchestrator(generator, registry=registry, recorder=recorder, rng=random.Random(1))

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.CALMING_STORY))

    assert [call[0] for call in generator.calls] == ["generate", "regenerate"]
    assert resolution.state is TurnState.FALLBACK
    assert resolution.used_fallback is True
    assert resolution.rejection_reasons == ["incomplete_ending", "incomplete_ending"]
    assert resolution.text in fallback_pool(Category.CALMING_STORY, Variant.STANDARD)
    assert recorder.records[0].used_fallback is True
    assert recorder.records[0].generation_calls == 2


@pytest.mark.asyncio
async def test_never_more_than_two_generation_calls(scripted, registry, make_classification):
    generator = scripted("", "", "", "", "")
    orchestrator = TurnOrchestrator(generator, registry=registry)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.GROUNDING))

    assert len(generator.calls) == 2
    assert resolution.generation_calls == 2
    assert resolution.text in fallback_pool(Category.GROUNDING)


@pytest.mark.asyncio
async def test_generation_failure_consumes_the_retry(scripted, registry, make_classification):
    generator = scripted(GenerationUnavailable("transport"), GOOD_REASSURANCE)
    orchestrator = TurnOrchestrator(generator, registry=registry)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE))

    assert resolution.state is TurnState.ACCEPTED
    assert resolution.rejection_reasons == ["generation_unavailable"]
    assert resolution.rejections[0].detail == "transport"
    assert generator.calls[1][2] == "generation_unavailable"


@pytest.mark.asyncio
async def test_repeated_failure_resolves_to_fallback(scripted, registry, make_classification):
    generator = scripted(GenerationUnavailable("missing_ai_api_key"))
    orchestrator = TurnOrchestrator(generator, registry=registry)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.EMOTIONAL_VALIDATION))

    assert resolution.state is TurnState.FALLBACK
    assert resolution.text in fallback_pool(Category.EMOTIONAL_VALIDATION)


@pytest.mark.asyncio
async def test_unexpected_generator_errors_are_contained(scripted, registry, make_classification):
    generator = scripted(RuntimeError("boom"))
    orchestrator = TurnOrchestrator(generator, registry=registry)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.COMPANIONSHIP))

    assert resolution.state is TurnState.FALLBACK
    assert resolution.rejections[0].detail == "unexpected:RuntimeError"


@pytest.mark.asyncio
async def test_timeout_is_a_generation_failure(scripted, registry, make_classification):
    generator = scripted(GOOD_REASSURANCE, delay=0.5)
    orchestrator = TurnOrchestrator(generator, registry=registry, standard_timeout_seconds=0.01)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE))

    assert resolution.state is TurnState.FALLBACK
    assert [outcome.detail for outcome in resolution.rejections] == ["timeout", "timeout"]


@pytest.mark.asyncio
async def test_extended_variant_uses_the_longer_budget(scripted, registry, make_classification):
    story = fallback_pool(Category.CALMING_STORY, Variant.EXTENDED)[0]
    generator = scripted(story, delay=0.05)
    orchestrator = TurnOrchestrator(
        generator,
        registry=registry,
        standard_timeout_seconds=0.01,
        extended_timeout_seconds=2.0,
    )

    resolution = await orchestrator.run(
        MESSAGES,
        make_classification(Category.CALMING_STORY, explicit=True),
        Variant.EXTENDED,
    )

    assert resolution.state is TurnState.ACCEPTED
    assert generator.calls[0][2] == registry.get(Category.CALMING_STORY, Variant.EXTENDED).max_generation_size


@pytest.mark.asyncio
async def test_recorder_failure_never_blocks_delivery(scripted, registry, broken_recorder, make_classification):
    orchestrator = TurnOrchestrator(scripted(GOOD_STORY), registry=registry, recorder=broken_recorder)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.CALMING_STORY))

    assert resolution.state is TurnState.ACCEPTED
    assert resolution.record is not None


@pytest.mark.asyncio
async def test_fallback_choice_follows_the_injected_rng(scripted, registry, make_classification):
    texts = []
    for _ in range(2):
        orchestrator = TurnOrchestrator(scripted(""), registry=registry, rng=random.Random(42))
        resolution = await orchestrator.run(MESSAGES, make_classification(Category.CALMING_STORY))
        texts.append(resolution.text)

    assert texts[0] == texts[1]


@pytest.mark.asyncio
async def test_caller_supplied_response_id(scripted, registry, recorder, make_classification):
    orchestrator = TurnOrchestrator(scripted(GOOD_REASSURANCE), registry=registry, recorder=recorder)

    await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE), response_id="resp_fixed")

    assert recorder.records[0].response_id == "resp_fixed"


@pytest.mark.asyncio
async def test_forbidden_wording_uses_the_single_retry(scripted, registry, recorder, make_classification):
    generator = scripted("You already asked that, dear. You are safe. 💛", GOOD_REASSURANCE)
    orchestrator = TurnOrchestrator(generator, registry=registry, recorder=recorder)

    resolution = await orchestrator.run(MESSAGES, make_classification(Category.REASSURANCE))

    assert resolution.state is TurnState.ACCEPTED
    assert resolution.text == GOOD_REASSURANCE
    assert resolution.rejection_reasons == ["forbidden_content"]
    method, _, reason, _ = generator.calls[1]
    assert (method, reason) == ("regenerate", "forbidden_content")
    assert recorder.records[0].generation_calls == 2


@pytest.mark.asyncio
async def test_generator_errors_are_logged_without_tracebacks(scripted, registry, make_classification, caplog):
    generator = scripted(RuntimeError("provider rejected Bearer abc.def"))
    orchestrator = TurnOrchestrator(generator, registry=registry)

    with caplog.at_level(logging.ERROR, logger="core.services.turn_orchestrator"):
        await orchestrator.run(MESSAGES, make_classification(Category.COMPANIONSHIP))

    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert errors
    assert all(record.exc_info is None for record in errors)
    assert "RuntimeError" in errors[0].getMessage()
