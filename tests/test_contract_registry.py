from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from core.contract_registry import (
    CONTRACTS_VERSION,
    REQUIRED_KEYS,
    ContractRegistry,
    load_registry,
)
from core.domain.categories import Category, Variant
from core.errors import ContractTableError, UnknownContractError


def _table_payload(registry: ContractRegistry) -> dict[str, object]:
    return {
        "version": "9.9.9",
        "contracts": [
            {"category": category.value, "variant": variant.value, **contract.model_dump(mode="json")}
            for (category, variant), contract in registry.items()
        ],
    }


def test_lookup_is_idempotent(registry: ContractRegistry):
    first = registry.get(Category.CALMING_STORY, Variant.STANDARD)
    second = registry.get(Category.CALMING_STORY, Variant.STANDARD)

    assert first is second


def test_load_registry_is_built_once():
    assert load_registry() is load_registry()
    assert load_registry().version == CONTRACTS_VERSION


def test_every_category_has_a_standard_contract(registry: ContractRegistry):
    for category in Category:
        assert registry.has_variant(category, Variant.STANDARD)
    assert {key for key, _ in registry.items()} == REQUIRED_KEYS


def test_only_calming_story_has_an_extended_variant(registry: ContractRegistry):
    extended = [category for (category, variant), _ in registry.items() if variant is Variant.EXTENDED]
    assert extended == [Category.CALMING_STORY]

    with pytest.raises(UnknownContractError):
        registry.get(Category.GROUNDING, Variant.EXTENDED)


def test_unknown_contract_is_a_key_error(registry: ContractRegistry):
    with pytest.raises(KeyError):
        registry.get(Category.COMPANIONSHIP, Variant.EXTENDED)


def test_contracts_are_immutable(registry: ContractRegistry):
    contract = registry.get(Category.REASSURANCE)

    with pytest.raises(ValidationError):
        contract.min_structural_units = 5  # type: ignore[misc]
    assert isinstance(contract.completion_signals, tuple)


def test_story_contracts_are_not_chunkable(registry: ContractRegistry):
    assert registry.get(Category.CALMING_STORY, Variant.STANDARD).chunkable is False
    assert registry.get(Category.CALMING_STORY, Variant.EXTENDED).chunkable is False
    assert registry.get(Category.REASSURANCE).chunkable is True


def test_extended_story_contract_bounds(registry: ContractRegistry):
    contract = registry.get(Category.CALMING_STORY, Variant.EXTENDED)

    assert contract.min_structural_units == 20
    assert contract.max_structural_units == 50
    assert contract.max_generation_size > registry.get(Category.CALMING_STORY).max_generation_size


def test_from_json_loads_a_deployed_table(tmp_path: Path, registry: ContractRegistry):
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps(_table_payload(registry)), encoding="utf-8")

    loaded = ContractRegistry.from_json(path)

    assert loaded.version == "9.9.9"
    assert loaded.get(Category.GROUNDING) == registry.get(Category.GROUNDING)


def test_from_json_rejects_missing_entries(tmp_path: Path, registry: ContractRegistry):
    payload = _table_payload(registry)
    payload["contracts"] = [c for c in payload["contracts"] if c["category"] != "grounding"]  # type: ignore[index]
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ContractTableError, match="grounding/standard"):
        ContractRegistry.from_json(path)


def test_from_json_rejects_duplicates(tmp_path: Path, registry: ContractRegistry):
    payload = _table_payload(registry)
    payload["contracts"].append(dict(payload["contracts"][0]))  # type: ignore[union-attr,index]
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ContractTableError, match="duplicate"):
        ContractRegistry.from_json(path)


def test_from_json_rejects_unknown_fields(tmp_path: Path, registry: ContractRegistry):
    payload = _table_payload(registry)
    payload["contracts"][0]["tone"] = "cheerful"  # type: ignore[index]
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ContractTableError):
        ContractRegistry.from_json(path)


def test_from_json_rejects_broken_files(tmp_path: Path):
    path = tmp_path / "contracts.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ContractTableError):
        ContractRegistry.from_json(path)
    with pytest.raises(ContractTableError):
        ContractRegistry.from_json(tmp_path / "missing.json")
