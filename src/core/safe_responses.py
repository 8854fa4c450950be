"""Banco de respuestas seguras (pre-escritas y revisadas).

Por qué existe:
- Cuando la generación falla dos veces, el turno termina con una de estas
  respuestas, elegida al azar dentro del pool de su (categoría, variante).
- Cada entrada cumple el mismo contrato que se exige al generador, así que la
  garantía de completitud se mantiene incluso sin proveedor disponible.
"""

from __future__ import annotations

import random
from types import MappingProxyType
from typing import Mapping

from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import Category, Variant
from core.domain.models import ValidationOutcome
from core.services.completeness_validator import CompletenessValidator

_STANDARD_STORIES: tuple[str, ...] = (
    "There was once a little garden tucked behind a stone wall. "
    "In the garden, golden flowers swayed gently in the warm breeze. "
    "A small orange butterfly drifted from bloom to bloom. "
    "A soft rain began to fall, and each drop made the flowers nod. "
    "When the sun came back out, a little rainbow stretched quietly across the sky. "
    "The butterfly rested on a warm leaf to dry its wings. "
    "The flowers lifted their faces toward the light. "
    "Everything in the garden was peaceful and still, just as it should be. 💛",
    "In a sunny meadow, a tiny rabbit sat by a stream and watched the water sparkle. "
    "A soft breeze carried the scent of wildflowers across the grass. "
    "A small bluebird landed nearby and sang a gentle song. "
    "The rabbit's ears twitched happily as it listened. "
    "The sun was warm, and the air was sweet. "
    "A butterfly floated past and landed on a daisy. "
    "The little rabbit closed its eyes and smiled. "
    "Everything was exactly right. 🌸",
    "One warm morning, a little cat found a patch of sunlight on a wooden porch. "
    "The cat stretched out slowly, feeling the warmth spread through its soft fur. "
    "Nearby, a wind chime tinkled softly in the breeze. "
    "It played a tiny, happy melody. "
    "Bees hummed lazily around the lavender bushes by the steps. "
    "A small bird hopped along the railing and chirped hello. "
    "The little cat purred and tucked its paws beneath its chest. "
    "Soon it drifted into the most peaceful sleep, wrapped in sunshine and quiet. 💛",
    "There was once a small pond at the edge of a quiet forest. "
    "Lily pads floated gently on the still water. "
    "Every now and then, a tiny frog hopped from one lily pad to another. "
    "The trees around the pond stood tall and still. "
    "Their leaves whispered softly in the breeze. "
    "A dragonfly with shimmering wings landed on a reed and rested there. "
    "The water sparkled in the afternoon light. "
    "Everything around the pond was calm, gentle, and beautiful. 💛",
    "In a cozy kitchen, a warm pie sat cooling by the window. "
    "The smell of cinnamon and apples drifted through the room like a soft hug. "
    "Outside, golden leaves spun slowly down from a big oak tree. "
    "They danced in the gentle wind. "
    "A small bird perched on the windowsill and tilted its head. "
    "It seemed to enjoy the sweet smell too. "
    "The kettle hummed quietly on the stove. "
    "The whole house felt warm and safe and full of quiet happiness. 🌸",
)

_EXTENDED_STORIES: tuple[str, ...] = (
    "On the edge of a quiet village, there was a little garden that rested beside an old stone cottage. "
    "The evening light was soft and golden, and it spilled over the garden wall like warm honey. "
    "Tall sunflowers stood in a row, their faces turned toward the last of the sun. "
    "The air smelled of lavender and fresh bread from a kitchen window nearby. "
    "Somewhere in the hedge, a small bird was singing a slow, sleepy song. "
    "A little brown rabbit hopped out from under the rosemary bush. "
    "It sat very still and listened to the bird for a while. "
    "The grass under its paws was cool and soft. "
    "Slowly, the rabbit began to wander along the garden path. "
    "It passed a row of round cabbages that glowed green in the fading light. "
    "It passed a tiny pond where two lily pads floated side by side. "
    "A dragonfly rested on a reed, its wings shining like thin glass. "
    "The rabbit stopped to watch the ripples move gently across the water. "
    "A soft breeze came through the garden and made the leaves whisper. "
    "The wind chimes on the cottage porch answered with a quiet little tune. "
    "Near the apple tree, the rabbit found a patch of clover. "
    "It nibbled a few sweet leaves and felt warm and content. "
    "Above the tree, the sky was turning pink and then pale violet. "
    "One by one, the flowers began to close their petals for the night. "
    "The sunflowers bowed their heads as if they were saying goodnight. "
    "A kind old cat stepped out onto the porch and stretched slowly. "
    "The cat looked at the garden and blinked its calm green eyes. "
    "It walked down the steps and sat in the grass near the rabbit. "
    "The two of them watched the first star appear above the hedge. "
    "The star was small and bright, and it twinkled softly. "
    "Soon another star appeared, and then many more. "
    "Fireflies rose from the tall grass and floated like tiny lanterns. "
    "The bird in the hedge sang one last gentle note and tucked its head under its wing. "
    "Inside the cottage, a lamp glowed warm behind the curtains. "
    "The smell of bread and lavender still floated on the evening air. "
    "The rabbit curled up beneath the rosemary bush, where the earth was warm. "
    "The old cat settled beside the porch steps and began to purr. "
    "The garden grew quiet and still under the soft light of the stars. "
    "Everything was calm, and everything was safe, and the whole garden drifted peacefully to sleep. 💛",
    "There was once a small cottage by the sea, with a blue door and a garden full of daisies. "
    "In the late afternoon, the sun hung low and warm over the water. "
    "The waves rolled in slowly and whispered across the sand. "
    "A gentle breeze carried the smell of salt and sweet sea grass. "
    "On the windowsill of the cottage sat a little white cat. "
    "The cat watched the water sparkle and swayed its tail from side to side. "
    "After a while, it jumped down and padded out through the open door. "
    "The sand was warm under its small paws. "
    "It walked along the edge of the water, where the foam made soft lace patterns. "
    "A tiny crab scuttled past and disappeared into a little hole. "
    "The cat sniffed at a smooth pebble that shone pink and grey. "
    "Further along the beach, a row of seashells lay in the sun. "
    "Some were white, some were cream, and one was the color of a peach. "
    "The cat sat beside the shells and listened to the sea. "
    "Gulls floated high above, gliding in slow, wide circles. "
    "Out on the water, a little sailboat rocked gently on the waves. "
    "Its sail was the color of butter, and it glowed in the evening light. "
    "The boat moved slowly toward the harbor, where the lamps were beginning to shine. "
    "The sky turned orange, then rose, then a soft lilac. "
    "The sea held every color like a great calm mirror. "
    "A friendly old dog came trotting down the beach, wagging its tail. "
    "It greeted the cat with a gentle sniff and lay down beside it. "
    "Together they watched the sun touch the edge of the water. "
    "The light spread across the waves in a long golden path. "
    "Slowly, the sun sank lower, until only a warm glow remained. "
    "The breeze grew cooler and carried the sound of distant bells. "
    "In the cottage, a lamp was lit and a kettle began to sing on the stove. "
    "The warm light shone through the window and onto the sand. "
    "The first stars came out one by one above the quiet sea. "
    "The waves kept their slow, steady rhythm, like a lullaby. "
    "The dog yawned and rested its head on its paws. "
    "The little cat stood, stretched, and walked back toward the blue door. "
    "It curled up on a soft blanket by the warm stove. "
    "Outside, the sea kept whispering softly to the shore. "
    "The cat closed its eyes and listened until it fell asleep. "
    "All was well by the sea that night, and everything was quiet and still. 💛",
)

FALLBACK_POOLS: Mapping[tuple[Category, Variant], tuple[str, ...]] = MappingProxyType(
    {
        (Category.REASSURANCE, Variant.STANDARD): (
            "You are safe, dear. I am right here with you. Everything is okay. 💛",
            "It's alright. You are safe, and I am not going anywhere. 💛",
            "You are not alone. I am right here. 💛",
            "Everything is okay right now. You are safe.",
        ),
        (Category.GROUNDING, Variant.STANDARD): (
            "You are in a safe, comfortable place. I am right here. You are okay. 💛",
            "You are somewhere safe and warm right now. Everything around you is peaceful. 💛",
            "It's okay, dear. You are in a safe place. I am here with you. 💛",
        ),
        (Category.EMOTIONAL_VALIDATION, Variant.STANDARD): (
            "That sounds really hard, dear. What you are feeling matters. I am here with you. 💛",
            "I can feel how much that weighs on you. It's okay to feel this way. I am right here. 💛",
        ),
        (Category.GENTLE_REDIRECT, Variant.STANDARD): (
            "That is a really good question. "
            "Your care team knows all about that, and they are taking such good care of you. 💛",
            "Your doctors and care team are wonderful. They have everything taken care of. 💛",
        ),
        (Category.COMPANIONSHIP, Variant.STANDARD): (
            "I am so happy to be here with you. You are wonderful company. 🌸",
            "Hello, dear! It is so lovely to talk with you. 💛",
        ),
        (Category.CALMING_STORY, Variant.STANDARD): _STANDARD_STORIES,
        (Category.CALMING_STORY, Variant.EXTENDED): _EXTENDED_STORIES,
    }
)


def fallback_pool(category: Category, variant: Variant = Variant.STANDARD) -> tuple[str, ...]:
    return FALLBACK_POOLS[(category, variant)]


def pick_fallback(
    category: Category,
    variant: Variant = Variant.STANDARD,
    rng: random.Random | None = None,
) -> str:
    """Elige una respuesta del pool de la categoría (uniforme, nunca genérica)."""

    pool = fallback_pool(category, variant)
    return (rng or random).choice(pool)


def invalid_fallbacks(
    registry: ContractRegistry | None = None,
) -> list[tuple[Category, Variant, int, ValidationOutcome]]:
    """Entradas del banco que NO pasan su propio contrato (debe estar vacío)."""

    registry = registry or load_registry()
    validator = CompletenessValidator(registry)
    failures: list[tuple[Category, Variant, int, ValidationOutcome]] = []
    for (category, variant), pool in FALLBACK_POOLS.items():
        contract = registry.get(category, variant)
        for index, text in enumerate(pool):
            outcome = validator.check(text, category, variant, contract)
            if not outcome.accepted:
                failures.append((category, variant, index, outcome))
    return failures
