"""CLI principal (Typer).

Comandos:
- `reply`: turno completo (clasificación -> generación -> validación -> pacing).
- `classify`: solo la decisión de categoría/variante, sin llamar al proveedor.
- `validate`: pasa un texto por el validador de completitud.
- `contracts`: muestra la tabla de contratos cargada.
- `doctor`: diagnósticos y configuración.
"""

from __future__ import annotations

import asyncio
import json
import random

import typer
from rich.console import Console

from adapters.emotion_analyzer import EmotionAnalyzer
from adapters.llm_generator import OpenAIReplyGenerator
from adapters.prompt_assembler import CaregiverContext
from adapters.safety_screen import SafetyScreen
from cli import doctor
from cli.ui_components import (
    build_classification_table,
    build_contracts_table,
    build_plan_panel,
    build_validation_panel,
    print_banner,
)
from core.config import AppSettings
from core.contract_registry import load_registry
from core.domain.categories import Category, Provenance, Variant
from core.domain.models import ClassificationResult
from core.errors import ContractTableError
from core.logging_setup import configure_logging
from core.services.completeness_validator import CompletenessValidator
from core.services.intent_classifier import IntentClassifier
from core.services.reply_pipeline import ReplyPipeline, TurnRequest, select_variant

app = typer.Typer(no_args_is_help=True, help="Clara reply core: contract-checked replies for a gentle companion.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True))


def _load_settings() -> AppSettings:
    settings = AppSettings()
    try:
        load_registry(settings.contracts_path)
    except ContractTableError as exc:
        _console.print(f"[red]Invalid contract table:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    return settings


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override CLARA_LOG_LEVEL for this run."),
) -> None:
    settings = AppSettings()
    configure_logging(log_level or settings.log_level)


@app.command()
def reply(
    text: str = typer.Argument(..., help="What the user said."),
    as_json: bool = typer.Option(False, "--json", help="Print the turn result as JSON."),
    name: str = typer.Option(None, "--name", help="Caregiver-provided preferred name."),
    seed: int = typer.Option(None, "--seed", help="Seed for theme, fallback and pacing jitter."),
) -> None:
    """Run one full turn against the configured provider."""

    settings = _load_settings()
    rng = random.Random(seed)
    pipeline = ReplyPipeline(OpenAIReplyGenerator(settings), settings=settings, rng=rng)
    request = TurnRequest(
        utterance=text,
        caregiver=CaregiverContext(preferred_name=name) if name else None,
    )
    result = asyncio.run(pipeline.run(request))

    if as_json:
        _emit_json(
            {
                "response_id": result.response_id,
                "text": result.text,
                "classification": result.classification.model_dump(mode="json"),
                "variant": result.variant.value,
                "emotion": result.emotion.model_dump(mode="json"),
                "safety": result.safety.model_dump(mode="json"),
                "terminal_state": result.resolution.state.value,
                "generation_calls": result.resolution.generation_calls,
                "rejection_reasons": result.resolution.rejection_reasons,
                "used_fallback": result.used_fallback,
                "theme": result.theme.id if result.theme else None,
                "persona_version": result.persona_version,
                "plan": result.plan.model_dump(mode="json"),
            }
        )
        return

    print_banner(_console)
    _console.print(
        build_classification_table(
            result.classification,
            variant=result.variant,
            emotion=result.emotion,
            safety=result.safety,
        )
    )
    _console.print(build_plan_panel(result.plan, used_fallback=result.used_fallback))
    if result.resolution.rejection_reasons:
        _console.print(f"[dim]rejections: {', '.join(result.resolution.rejection_reasons)}[/dim]")


@app.command()
def classify(
    text: str = typer.Argument(..., help="What the user said."),
    as_json: bool = typer.Option(False, "--json", help="Print the classification as JSON."),
) -> None:
    """Show which category and variant a message would get (no generation)."""

    settings = _load_settings()
    registry = load_registry(settings.contracts_path)
    emotion = EmotionAnalyzer().analyze(text)
    safety = SafetyScreen().screen(text, emotion)
    classification = IntentClassifier().detect(text, emotion, safety)
    variant = select_variant(
        classification,
        emotion,
        registry=registry,
        distress_threshold=settings.extended_story_distress_threshold,
    )

    if as_json:
        _emit_json(
            {
                "classification": classification.model_dump(mode="json"),
                "variant": variant.value,
                "emotion": emotion.model_dump(mode="json"),
                "safety": safety.model_dump(mode="json"),
            }
        )
        return

    _console.print(build_classification_table(classification, variant=variant, emotion=emotion, safety=safety))


@app.command()
def validate(
    text: str = typer.Argument(..., help="Reply text to check."),
    category: Category = typer.Option(..., "--category", "-c", case_sensitive=False),
    variant: Variant = typer.Option(Variant.STANDARD, "--variant", "-v", case_sensitive=False),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON."),
) -> None:
    """Check a reply against the contract of a category/variant.

    Exit code 1 when the reply is rejected.
    """

    settings = _load_settings()
    registry = load_registry(settings.contracts_path)
    if not registry.has_variant(category, variant):
        raise typer.BadParameter(f"{category.value} has no {variant.value} variant", param_hint="--variant")

    classification = ClassificationResult(category=category, provenance=Provenance.PATTERN_MATCH, matched_rule="cli")
    outcome = CompletenessValidator(registry).validate(text, classification, variant)

    if as_json:
        _emit_json(outcome.model_dump(mode="json"))
    else:
        _console.print(build_validation_panel(outcome))

    if not outcome.accepted:
        raise typer.Exit(code=1)


@app.command()
def contracts(
    as_json: bool = typer.Option(False, "--json", help="Print the table as JSON."),
) -> None:
    """List the loaded response contracts."""

    settings = _load_settings()
    registry = load_registry(settings.contracts_path)

    if as_json:
        _emit_json(
            {
                "version": registry.version,
                "contracts": [
                    {"category": category.value, "variant": variant.value, **contract.model_dump(mode="json")}
                    for (category, variant), contract in registry.items()
                ],
            }
        )
        return

    _console.print(build_contracts_table(registry))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
