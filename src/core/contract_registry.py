"""Registro de contratos de respuesta.

Por qué una tabla estática:
- Los contratos son un punto de control editorial/clínico: cambiar el
  comportamiento exige desplegar una tabla nueva, nunca mutarla en caliente.
- Se carga una vez por proceso; `get` devuelve siempre la misma instancia
  congelada para el mismo (categoría, variante).

La tabla integrada puede sustituirse en el despliegue con un JSON
(`CLARA_CONTRACTS_PATH`), validado con Pydantic antes de construir el registro.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from pydantic import BaseModel, Field, ValidationError

from core.domain.categories import Category, Variant
from core.domain.models import ResponseContract
from core.errors import ContractTableError, UnknownContractError

logger = logging.getLogger(__name__)

CONTRACTS_VERSION = "1.3.0"

WARMTH_GLYPHS: tuple[str, ...] = ("💛", "🌸")

_SHORT_COMPLETION = (".", "!", *WARMTH_GLYPHS)
_STORY_INCOMPLETION = (
    "...",
    "—",
    " and then",
    "to be continued",
    "would you like",
    "shall I continue",
    "want to hear more",
)

_BUILTIN_TABLE: dict[tuple[Category, Variant], dict[str, object]] = {
    (Category.REASSURANCE, Variant.STANDARD): {
        "max_generation_size": 100,
        "min_structural_units": 1,
        "max_structural_units": 3,
        "chunkable": True,
        "required_parts": ("affirmation",),
        "completion_signals": _SHORT_COMPLETION,
        "incompletion_signals": ("...", "—", ",", " and", " but", " so", " then"),
        "directive_text": (
            "RESPONSE TYPE: REASSURANCE\n"
            "- Respond with 1 to 2 short, warm sentences.\n"
            '- Include at least one affirmation of safety or presence (e.g. "You are safe", "I am here").\n'
            "- Use present tense only.\n"
            "- Do NOT ask questions or introduce new information."
        ),
    },
    (Category.GROUNDING, Variant.STANDARD): {
        "max_generation_size": 150,
        "min_structural_units": 2,
        "max_structural_units": 3,
        "chunkable": True,
        "required_parts": ("acknowledge", "anchor"),
        "completion_signals": _SHORT_COMPLETION,
        "incompletion_signals": ("...", "—", ","),
        "directive_text": (
            "RESPONSE TYPE: GROUNDING\n"
            "- Respond with 2 to 3 short sentences.\n"
            "- First: acknowledge the user's feeling gently.\n"
            "- Second: provide a concrete sensory anchor (something they can see, hear, feel, or touch right now).\n"
            "- Third (optional): reassure them.\n"
            '- IDENTITY: If the user asks "who am I" or "do you know me", use their name from context to reassure them. '
            "If you don't know their name, acknowledge this warmly and politely ask them to share it with you.\n"
            "- Use present tense. Do NOT reference time, dates, or schedules.\n"
            '- Do NOT say "you should remember" or correct them.'
        ),
    },
    (Category.CALMING_STORY, Variant.STANDARD): {
        "max_generation_size": 500,
        "min_structural_units": 7,
        "max_structural_units": 8,
        "chunkable": False,
        "required_parts": ("opening", "middle", "ending"),
        "completion_signals": (
            *_SHORT_COMPLETION,
            "and everything was",
            "the end",
            "as the sun",
            "from that day",
            "and all was",
        ),
        "incompletion_signals": _STORY_INCOMPLETION,
        "directive_text": (
            "RESPONSE TYPE: CALMING STORY (Standard)\n"
            "You must tell a complete, gentle story in exactly 7 to 8 sentences. This is very important.\n\n"
            "STORY RULES:\n"
            "- The story MUST have a clear beginning (2 sentences), a soft middle (3 to 4 sentences), "
            "and a warm, conclusive ending (2 sentences).\n"
            "- Use nature, warmth, light, and sensory details (flowers, birds, gentle rain, sunshine, warm kitchens, meadows).\n"
            '- Do NOT use character names. Use descriptions instead: "a small bird", "a little cat", "a tiny rabbit".\n'
            "- The story must feel FINISHED. The last sentence must be a gentle conclusion.\n"
            '- Do NOT say "would you like to hear more?" or "shall I continue?". This IS the complete story.\n'
            "- Do NOT include conflict, danger, suspense, sadness, or anything frightening.\n"
            '- Do NOT start with "Once upon a time". Use a gentler opening like "There was once..." or "One warm morning...".\n'
            '- End with something peaceful: "...and everything was still and beautiful. 💛"\n'
            "- Tell the story as a single, uninterrupted block of text.\n"
            "- Keep vocabulary simple and sentences short."
        ),
    },
    (Category.CALMING_STORY, Variant.EXTENDED): {
        "max_generation_size": 1500,
        "min_structural_units": 20,
        "max_structural_units": 50,
        "chunkable": False,
        "required_parts": ("opening", "middle", "ending"),
        "completion_signals": (
            *_SHORT_COMPLETION,
            "and everything was",
            "the end",
            "as the sun",
            "from that day",
            "all was well",
            "drifted softly to sleep",
            "peacefully",
            "and so",
        ),
        "incompletion_signals": _STORY_INCOMPLETION,
        "directive_text": (
            "RESPONSE TYPE: CALMING STORY (Extended Bedtime Story)\n"
            "You must tell a long, slow, detailed, gentle bedtime-style story in 40 to 50 sentences. "
            "This is very important.\n\n"
            "STORY STRUCTURE:\n"
            "- OPENING (5 to 8 sentences): Set the scene slowly. Describe the place, the light, the air, the sounds.\n"
            "- MIDDLE (25 to 35 sentences): Unfold a gentle journey or discovery with rich sensory detail.\n"
            "- ENDING (5 to 8 sentences): Bring everything to a warm, peaceful close. The story must feel finished.\n\n"
            "STORY RULES:\n"
            "- Use nature, warmth, and deep sensory details.\n"
            '- Do NOT use character names. Use "a small bird", "a little cat", "a tiny rabbit".\n'
            "- The story MUST be finished. Do not stop halfway.\n"
            "- Tell the story as a single, uninterrupted block of text.\n"
            "- Do NOT ask if they want to hear more or offer to continue.\n"
            "- Keep vocabulary simple but the tone rich and soothing."
        ),
    },
    (Category.EMOTIONAL_VALIDATION, Variant.STANDARD): {
        "max_generation_size": 150,
        "min_structural_units": 2,
        "max_structural_units": 3,
        "chunkable": True,
        "required_parts": ("mirror", "normalize"),
        "completion_signals": _SHORT_COMPLETION,
        "incompletion_signals": ("...", "—", ","),
        "directive_text": (
            "RESPONSE TYPE: EMOTIONAL VALIDATION\n"
            "- Respond with 2 to 3 sentences.\n"
            '- First: mirror the user\'s emotion gently ("That sounds really hard").\n'
            '- Second: normalize the feeling ("It is okay to feel this way").\n'
            '- Third (optional): offer your presence ("I am right here with you").\n'
            "- Do NOT try to cheer them up or offer silver linings.\n"
            "- Do NOT suggest activities or distractions.\n"
            '- Do NOT say "don\'t worry" or "it will be okay". Sit with the feeling.'
        ),
    },
    (Category.GENTLE_REDIRECT, Variant.STANDARD): {
        "max_generation_size": 100,
        "min_structural_units": 2,
        "max_structural_units": 2,
        "chunkable": True,
        "required_parts": ("acknowledge", "redirect"),
        "completion_signals": _SHORT_COMPLETION,
        "incompletion_signals": ("...", "—"),
        "directive_text": (
            "RESPONSE TYPE: GENTLE REDIRECT\n"
            "- Respond with exactly 2 sentences.\n"
            '- First: warmly validate their question or concern ("That\'s a really good question, dear").\n'
            '- Second: gently redirect to their care team ("Your care team knows all about that").\n'
            "- Do NOT actually answer medical, factual, or time-sensitive questions.\n"
            '- Do NOT say "I can\'t help with that". Always redirect warmly.'
        ),
    },
    (Category.COMPANIONSHIP, Variant.STANDARD): {
        "max_generation_size": 150,
        "min_structural_units": 1,
        "max_structural_units": 3,
        "chunkable": True,
        "required_parts": ("engagement",),
        "completion_signals": (".", "!", "?", *WARMTH_GLYPHS),
        "incompletion_signals": ("...", "—"),
        "directive_text": (
            "RESPONSE TYPE: COMPANIONSHIP\n"
            "- Respond with 1 to 3 warm, conversational sentences.\n"
            "- Be friendly, light, and present.\n"
            "- If the user greeted you, greet them back warmly.\n"
            "- If the user asked a question about you, answer within Clara's gentle persona.\n"
            "- You may include a soft conversational cue but do NOT ask probing or personal questions."
        ),
    },
}

REQUIRED_KEYS: frozenset[tuple[Category, Variant]] = frozenset(
    [(category, Variant.STANDARD) for category in Category] + [(Category.CALMING_STORY, Variant.EXTENDED)]
)


class _ContractEntry(ResponseContract):
    category: Category
    variant: Variant = Variant.STANDARD


class ContractTableFile(BaseModel):
    """Formato del JSON desplegable: {"version": "...", "contracts": [...]}."""

    version: str = Field(..., min_length=1)
    contracts: list[_ContractEntry] = Field(default_factory=list)


class ContractRegistry:
    """Lookup de solo lectura (categoría, variante) -> `ResponseContract`."""

    def __init__(self, contracts: Mapping[tuple[Category, Variant], ResponseContract], *, version: str) -> None:
        keys = set(contracts)
        missing = REQUIRED_KEYS - keys
        unexpected = keys - REQUIRED_KEYS
        if missing or unexpected:
            raise ContractTableError(
                f"contract table {version!r} mismatch: "
                f"missing={sorted(f'{c.value}/{v.value}' for c, v in missing)} "
                f"unexpected={sorted(f'{c.value}/{v.value}' for c, v in unexpected)}"
            )
        self._contracts: Mapping[tuple[Category, Variant], ResponseContract] = MappingProxyType(dict(contracts))
        self.version = version

    @classmethod
    def builtin(cls) -> "ContractRegistry":
        contracts = {key: ResponseContract.model_validate(data) for key, data in _BUILTIN_TABLE.items()}
        return cls(contracts, version=CONTRACTS_VERSION)

    @classmethod
    def from_json(cls, path: Path) -> "ContractRegistry":
        try:
            table = ContractTableFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise ContractTableError(f"cannot load contract table from {path}: {exc}") from exc

        contracts: dict[tuple[Category, Variant], ResponseContract] = {}
        for entry in table.contracts:
            key = (entry.category, entry.variant)
            if key in contracts:
                raise ContractTableError(f"duplicate contract for {entry.category.value}/{entry.variant.value}")
            contracts[key] = ResponseContract.model_validate(entry.model_dump(exclude={"category", "variant"}))
        return cls(contracts, version=table.version)

    def get(self, category: Category, variant: Variant = Variant.STANDARD) -> ResponseContract:
        try:
            return self._contracts[(category, variant)]
        except KeyError:
            raise UnknownContractError(f"no contract for {category.value}/{variant.value}") from None

    def has_variant(self, category: Category, variant: Variant) -> bool:
        return (category, variant) in self._contracts

    def items(self) -> Iterator[tuple[tuple[Category, Variant], ResponseContract]]:
        for category in Category:
            for variant in Variant:
                key = (category, variant)
                if key in self._contracts:
                    yield key, self._contracts[key]


@lru_cache(maxsize=None)
def load_registry(path: Path | None = None) -> ContractRegistry:
    """Construye (una sola vez por ruta) el registro del proceso."""

    if path is None:
        registry = ContractRegistry.builtin()
    else:
        registry = ContractRegistry.from_json(path)
    logger.info("Loaded response contracts version %s (%d entries)", registry.version, len(REQUIRED_KEYS))
    return registry
