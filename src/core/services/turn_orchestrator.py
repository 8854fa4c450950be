"""Generation / validation / retry state machine for one turn.

    GENERATED -> VALIDATING -> ACCEPTED
                            -> REGENERATING -> VALIDATING -> ACCEPTED
                                                          -> FALLBACK

At most one regeneration per turn, so at most two generation calls. A
generation failure (timeout, empty output, transport error) is a rejection
like any other and consumes the retry slot. When the budget is spent the turn
resolves to a pre-authored reply of the same category and variant.

The orchestrator keeps nothing between turns; every terminal outcome is handed
to the caller-supplied recorder.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable

from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import RejectionReason, Variant
from core.domain.models import ClassificationResult, TurnRecord, ValidationOutcome
from core.errors import GenerationUnavailable
from core.interfaces.generator import PromptMessages, ReplyGenerator
from core.interfaces.recorder import TurnRecorder
from core.safe_responses import pick_fallback
from core.services.completeness_validator import CompletenessValidator

logger = logging.getLogger(__name__)

MAX_REGENERATIONS = 1


class TurnState(str, Enum):
    GENERATED = "generated"
    VALIDATING = "validating"
    REGENERATING = "regenerating"
    ACCEPTED = "accepted"
    FALLBACK = "fallback"


TERMINAL_STATES = frozenset({TurnState.ACCEPTED, TurnState.FALLBACK})


@dataclass
class RetryState:
    """Turn-scoped retry budget."""

    attempts_used: int = 0
    last_reason: str | None = None


def next_state(state: TurnState, retry: RetryState, outcome: ValidationOutcome | None = None) -> TurnState:
    """Pure transition function of the turn state machine."""

    if state in (TurnState.GENERATED, TurnState.REGENERATING):
        return TurnState.VALIDATING
    if state is TurnState.VALIDATING:
        if outcome is None:
            raise ValueError("VALIDATING needs a validation outcome")
        if outcome.accepted:
            return TurnState.ACCEPTED
        if retry.attempts_used < MAX_REGENERATIONS:
            return TurnState.REGENERATING
        return TurnState.FALLBACK
    raise ValueError(f"{state.value} is a terminal state")


@dataclass
class TurnResolution:
    """Final text of a turn plus what it took to get there."""

    text: str
    state: TurnState
    variant: Variant
    generation_calls: int
    rejections: list[ValidationOutcome] = field(default_factory=list)
    record: TurnRecord | None = None

    @property
    def used_fallback(self) -> bool:
        return self.state is TurnState.FALLBACK

    @property
    def rejection_reasons(self) -> list[str]:
        return [outcome.reason.value for outcome in self.rejections if outcome.reason is not None]


def _new_response_id() -> str:
    return f"resp_{uuid.uuid4().hex[:12]}"


class TurnOrchestrator:
    """Coordinates the generator, the validator and the fallback bank."""

    def __init__(
        self,
        generator: ReplyGenerator,
        *,
        registry: ContractRegistry | None = None,
        validator: CompletenessValidator | None = None,
        recorder: TurnRecorder | None = None,
        rng: random.Random | None = None,
        standard_timeout_seconds: float = 10.0,
        extended_timeout_seconds: float = 45.0,
    ) -> None:
        self._generator = generator
        self._registry = registry or load_registry()
        self._validator = validator or CompletenessValidator(self._registry)
        self._recorder = recorder
        self._rng = rng or random.Random()
        self._standard_timeout = standard_timeout_seconds
        self._extended_timeout = extended_timeout_seconds

    async def run(
        self,
        messages: PromptMessages,
        classification: ClassificationResult,
        variant: Variant = Variant.STANDARD,
        *,
        response_id: str | None = None,
    ) -> TurnResolution:
        contract = self._registry.get(classification.category, variant)
        retry = RetryState()
        rejections: list[ValidationOutcome] = []
        calls = 0

        text, failure = await self._attempt(
            self._generator.generate(messages, contract.max_generation_size, variant), variant
        )
        calls += 1
        state = TurnState.GENERATED
        outcome: ValidationOutcome | None = None

        while state not in TERMINAL_STATES:
            if state is TurnState.VALIDATING:
                outcome = failure or self._validator.validate(text, classification, variant)
                if not outcome.accepted:
                    rejections.append(outcome)
                    retry.last_reason = outcome.reason.value if outcome.reason else "rejected"
            elif state is TurnState.REGENERATING:
                retry.attempts_used += 1
                logger.warning(
                    "Regenerating %s/%s reply after rejection: %s",
                    classification.category.value,
                    variant.value,
                    retry.last_reason,
                )
                text, failure = await self._attempt(
                    self._generator.regenerate(messages, retry.last_reason or "rejected", variant), variant
                )
                calls += 1
                outcome = None
            state = next_state(state, retry, outcome)

        if state is TurnState.FALLBACK:
            logger.warning(
                "Regeneration still rejected; using %s/%s fallback",
                classification.category.value,
                variant.value,
            )
            text = pick_fallback(classification.category, variant, self._rng)

        resolution = TurnResolution(
            text=(text or "").strip(),
            state=state,
            variant=variant,
            generation_calls=calls,
            rejections=rejections,
        )
        resolution.record = TurnRecord(
            response_id=response_id or _new_response_id(),
            category=classification.category,
            variant=variant,
            provenance=classification.provenance,
            matched_rule=classification.matched_rule,
            terminal_state=state.value,
            generation_calls=calls,
            rejection_reasons=tuple(resolution.rejection_reasons),
            used_fallback=resolution.used_fallback,
        )
        self._record(resolution.record)
        return resolution

    async def _attempt(
        self,
        call: Awaitable[str],
        variant: Variant,
    ) -> tuple[str | None, ValidationOutcome | None]:
        timeout = self._extended_timeout if variant is Variant.EXTENDED else self._standard_timeout
        try:
            text = await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            return None, self._unavailable("timeout")
        except GenerationUnavailable as exc:
            return None, self._unavailable(exc.kind)
        except Exception as exc:
            logger.error("Generator raised %s: %s", type(exc).__name__, str(exc))
            return None, self._unavailable(f"unexpected:{type(exc).__name__}")

        if not text or not text.strip():
            return None, self._unavailable("empty_output")
        return text, None

    @staticmethod
    def _unavailable(kind: str) -> ValidationOutcome:
        logger.warning("Generation unavailable: %s", kind)
        return ValidationOutcome.reject(RejectionReason.GENERATION_UNAVAILABLE, kind)

    def _record(self, record: TurnRecord) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder.record(record)
        except Exception as exc:
            logger.warning("Turn recorder failed for %s: %s", record.response_id, str(exc))
