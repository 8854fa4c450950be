"""Curated story themes used to seed calming stories.

Every theme is nature or comfort based, free of conflict or sadness, and
comes with sensory hints for the prompt. The caller keeps track of the last
theme it used and passes its id back so consecutive stories differ.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class StoryTheme:
    id: str
    label: str
    sensory_hints: str


SAFE_THEMES: tuple[StoryTheme, ...] = (
    StoryTheme("garden_butterflies", "a small garden full of butterflies and golden flowers", "warm sunshine, soft petals, fluttering wings"),
    StoryTheme("cottage_rain", "a cozy cottage on a rainy afternoon with a warm fireplace", "rain on the roof, crackling fire, warm blankets"),
    StoryTheme("meadow_stream", "a sunny meadow beside a gentle stream", "sparkling water, wildflowers, birdsong"),
    StoryTheme("bakery_morning", "a warm bakery on a quiet morning with fresh bread baking", "warm dough, golden crust, sweet cinnamon"),
    StoryTheme("forest_path", "a peaceful walk along a quiet forest path in autumn", "golden leaves, soft earth, gentle breeze"),
    StoryTheme("seaside_sunset", "a calm seaside beach at sunset with gentle waves", "warm sand, soft waves, orange and pink sky"),
    StoryTheme("starry_night", "a still night under a sky full of softly glowing stars", "cool air, twinkling stars, quiet stillness"),
    StoryTheme("cat_windowsill", "a little cat napping on a sunny windowsill", "warm fur, soft purring, golden sunlight"),
    StoryTheme("pond_lilies", "a quiet pond with lily pads and a tiny frog", "still water, green leaves, dragonfly wings"),
    StoryTheme("orchard_harvest", "a sunny orchard with ripe apples and a gentle breeze", "sweet fruit, rustling leaves, warm sunlight"),
    StoryTheme("robin_nest", "a small robin building a cozy nest in a blooming tree", "soft feathers, tiny twigs, cherry blossoms"),
    StoryTheme("lavender_field", "a sprawling lavender field humming with bees on a warm day", "purple rows, sweet fragrance, buzzing bees"),
    StoryTheme("snow_cabin", "a snowy morning outside a warm cabin with hot cocoa", "soft snow, warm mug, gentle woodsmoke"),
    StoryTheme("turtle_journey", "a tiny turtle making its way slowly across a sunlit meadow", "warm grass, slow steps, patient journey"),
    StoryTheme("windchime_porch", "a breezy porch with soft wind chimes and a rocking chair", "gentle tinkling, creaking wood, afternoon light"),
    StoryTheme("duckling_pond", "a family of ducklings paddling across a quiet pond", "rippling water, tiny quacks, soft down feathers"),
    StoryTheme("rainbow_after_rain", "a gentle rainbow appearing after a soft spring rain", "glistening drops, bright colors, fresh air"),
    StoryTheme("teacup_garden", "a peaceful afternoon sipping tea in a small flower garden", "warm teacup, fragrant blooms, dappled shade"),
)


def select_theme(rng: random.Random | None = None, exclude: str | None = None) -> StoryTheme:
    """Random theme, never the one whose id is `exclude`."""

    available = [theme for theme in SAFE_THEMES if theme.id != exclude] or list(SAFE_THEMES)
    return (rng or random).choice(available)


def get_theme(theme_id: str) -> StoryTheme | None:
    for theme in SAFE_THEMES:
        if theme.id == theme_id:
            return theme
    return None
