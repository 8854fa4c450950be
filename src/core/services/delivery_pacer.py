"""Timed disclosure of an already accepted reply.

The pacer has no validation authority: it only decides how long to wait before
showing the text and, for chunkable categories, where to split it. Delays grow
with distress (a calmer, slower rhythm for an upset user) and carry a little
random jitter so the rhythm never feels mechanical.
"""

from __future__ import annotations

import math
import random
import re

from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import Variant
from core.domain.models import ClassificationResult, DeliveryChunk, DeliveryPlan

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

MAX_CHUNKS = 2

# (base, per-distress, jitter low, jitter high, floor, ceiling), all in ms.
SINGLE_BLOCK_DELAY = (3000, 500, -200, 600, 3000, 4500)
CHUNKED_INITIAL_DELAY = (1200, 800, -200, 400, 1500, 4000)
INTER_CHUNK_DELAY = (900, 400, -100, 300, 800, 1800)
CHARS_DELAY_FACTOR = 0.8


def split_sentences(text: str) -> list[str]:
    sentences: list[str] = []
    for part in _SENTENCE_SPLIT_RE.split(text.strip()):
        part = part.strip()
        if not part:
            continue
        # A trailing glyph ("💛") stays with its sentence.
        if sentences and not any(ch.isalnum() for ch in part):
            sentences[-1] = f"{sentences[-1]} {part}"
        else:
            sentences.append(part)
    return sentences


def _clamp(value: float, floor: int, ceiling: int) -> int:
    return int(round(min(max(value, floor), ceiling)))


class DeliveryPacer:
    def __init__(self, registry: ContractRegistry | None = None, rng: random.Random | None = None) -> None:
        self._registry = registry or load_registry()
        self._rng = rng or random.Random()

    def pace(
        self,
        text: str,
        distress_score: float,
        classification: ClassificationResult,
        variant: Variant = Variant.STANDARD,
    ) -> DeliveryPlan:
        contract = self._registry.get(classification.category, variant)
        distress = min(max(distress_score, 0.0), 1.0)
        text = text.strip()

        if not contract.chunkable:
            return DeliveryPlan(
                initial_delay_ms=self._delay(SINGLE_BLOCK_DELAY, distress),
                chunks=(DeliveryChunk(text=text),),
            )

        initial = self._delay(CHUNKED_INITIAL_DELAY, distress, extra=CHARS_DELAY_FACTOR * len(text))
        sentences = split_sentences(text)
        if len(sentences) < MAX_CHUNKS:
            return DeliveryPlan(initial_delay_ms=initial, chunks=(DeliveryChunk(text=text),))

        half = math.ceil(len(sentences) / MAX_CHUNKS)
        chunks = (
            DeliveryChunk(text=" ".join(sentences[:half])),
            DeliveryChunk(
                text=" ".join(sentences[half:]),
                pre_delay_ms=self._delay(INTER_CHUNK_DELAY, distress),
            ),
        )
        return DeliveryPlan(initial_delay_ms=initial, chunks=chunks)

    def _delay(self, shape: tuple[int, int, int, int, int, int], distress: float, extra: float = 0.0) -> int:
        base, per_distress, jitter_low, jitter_high, floor, ceiling = shape
        jitter = self._rng.uniform(jitter_low, jitter_high)
        return _clamp(base + per_distress * distress + extra + jitter, floor, ceiling)
