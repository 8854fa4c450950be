"""Pytest fixtures shared by the suite.

No test touches the network: the generator is always a scripted fake and the
OpenAI client is replaced by an in-memory stand-in.
"""

from __future__ import annotations

import asyncio
import random

import pytest

from core.config import AppSettings
from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import Category, Provenance, Variant
from core.domain.models import ClassificationResult, TurnRecord


class ScriptedGenerator:
    """Returns (or raises) the scripted items in call order."""

    def __init__(self, *outputs: object, delay: float = 0.0) -> None:
        self.outputs = list(outputs)
        self.delay = delay
        self.calls: list[tuple[str, list[dict[str, str]], object, Variant]] = []

    async def generate(self, messages, max_size, variant):
        self.calls.append(("generate", list(messages), max_size, variant))
        return await self._next()

    async def regenerate(self, messages, rejection_reason, variant):
        self.calls.append(("regenerate", list(messages), rejection_reason, variant))
        return await self._next()

    async def _next(self) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(item, BaseException):
            raise item
        return item  # type: ignore[return-value]


class ListRecorder:
    def __init__(self) -> None:
        self.records: list[TurnRecord] = []

    def record(self, record: TurnRecord) -> None:
        self.records.append(record)


class BrokenRecorder:
    def record(self, record: TurnRecord) -> None:
        raise RuntimeError("audit sink is down")


@pytest.fixture()
def registry() -> ContractRegistry:
    return load_registry()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture()
def make_classification():
    def _make(category: Category, *, explicit: bool = False) -> ClassificationResult:
        return ClassificationResult(
            category=category,
            provenance=Provenance.PATTERN_MATCH,
            matched_rule="test",
            is_explicit_variant=explicit,
        )

    return _make


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in (
        "CLARA_AI_API_KEY",
        "CLARA_AI_BASE_URL",
        "CLARA_AI_MODEL",
        "CLARA_AUDIT_LOG_PATH",
        "CLARA_CONTRACTS_PATH",
        "CLARA_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture()
def settings(clean_env) -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture()
def recorder() -> ListRecorder:
    return ListRecorder()


@pytest.fixture()
def scripted():
    return ScriptedGenerator


@pytest.fixture()
def broken_recorder() -> BrokenRecorder:
    return BrokenRecorder()
