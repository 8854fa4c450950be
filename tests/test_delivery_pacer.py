from __future__ import annotations

import random

import pytest

from core.domain.categories import Category, Variant
from core.safe_responses import fallback_pool
from core.services.delivery_pacer import DeliveryPacer, split_sentences


class NoJitter(random.Random):
    def uniform(self, a: float, b: float) -> float:
        return 0.0


NINE_UNIT_STORY = " ".join(
    [
        "There was once a small pond at the edge of a quiet forest.",
        "Lily pads floated gently on the still water.",
        "A tiny frog hopped from one lily pad to another.",
        "The trees around the pond stood tall and still.",
        "Their leaves whispered softly in the breeze.",
        "A dragonfly landed on a reed and rested there.",
        "The water sparkled in the afternoon light.",
        "A duck paddled slowly past the reeds.",
        "Everything around the pond was calm and beautiful. 💛",
    ]
)


@pytest.fixture()
def pacer(registry) -> DeliveryPacer:
    return DeliveryPacer(registry, rng=random.Random(3))


def test_non_chunkable_story_is_a_single_chunk(pacer, make_classification):
    plan = pacer.pace(NINE_UNIT_STORY, 0.4, make_classification(Category.CALMING_STORY))

    assert len(plan.chunks) == 1
    assert plan.chunks[0].text == NINE_UNIT_STORY
    assert plan.chunks[0].pre_delay_ms == 0
    assert 3000 <= plan.initial_delay_ms <= 4500


def test_extended_story_is_a_single_chunk(pacer, make_classification):
    story = fallback_pool(Category.CALMING_STORY, Variant.EXTENDED)[1]

    plan = pacer.pace(story, 0.9, make_classification(Category.CALMING_STORY, explicit=True), Variant.EXTENDED)

    assert len(plan.chunks) == 1
    assert plan.chunks[0].text == story


def test_chunkable_reply_splits_in_two_at_sentence_boundaries(pacer, make_classification):
    text = "You are safe. I am right here. Everything is okay. 💛"

    plan = pacer.pace(text, 0.5, make_classification(Category.REASSURANCE))

    assert [chunk.text for chunk in plan.chunks] == ["You are safe. I am right here.", "Everything is okay. 💛"]
    assert 1500 <= plan.initial_delay_ms <= 4000
    assert 800 <= plan.chunks[1].pre_delay_ms <= 1800


def test_never_more_than_two_chunks(pacer, make_classification):
    text = " ".join(f"Sentence number {i} is here." for i in range(6))

    plan = pacer.pace(text, 0.1, make_classification(Category.COMPANIONSHIP))

    assert len(plan.chunks) == 2
    assert " ".join(chunk.text for chunk in plan.chunks) == text


def test_single_sentence_is_not_split(pacer, make_classification):
    plan = pacer.pace("Hello, dear! ", 0.0, make_classification(Category.COMPANIONSHIP))

    assert [chunk.text for chunk in plan.chunks] == ["Hello, dear!"]


def test_delays_grow_with_distress(registry, make_classification):
    pacer = DeliveryPacer(registry, rng=NoJitter())
    story = make_classification(Category.CALMING_STORY)
    short = make_classification(Category.GROUNDING)
    text = "You are in a safe place. I can hear the birds."

    assert pacer.pace(NINE_UNIT_STORY, 0.0, story).initial_delay_ms == 3000
    assert pacer.pace(NINE_UNIT_STORY, 1.0, story).initial_delay_ms == 3500

    calm = pacer.pace(text, 0.0, short)
    upset = pacer.pace(text, 1.0, short)
    assert calm.initial_delay_ms < upset.initial_delay_ms
    assert calm.chunks[1].pre_delay_ms == 900
    assert upset.chunks[1].pre_delay_ms == 1300


def test_split_sentences():
    assert split_sentences("One. Two! Three? ") == ["One.", "Two!", "Three?"]
    assert split_sentences("You are safe. 💛") == ["You are safe. 💛"]
