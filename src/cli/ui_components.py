"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.contract_registry import ContractRegistry
from core.domain.categories import Variant
from core.domain.models import (
    ClassificationResult,
    DeliveryPlan,
    EmotionSignal,
    SafetySignal,
    ValidationOutcome,
)


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Se omite en modos no interactivos (`--json`).
    """

    title = Text("Clara", style="bold magenta")
    subtitle = Text("Reply core • Contracts • Completeness", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="magenta", padding=(1, 4)))


def build_classification_table(
    classification: ClassificationResult,
    *,
    variant: Variant | None = None,
    emotion: EmotionSignal | None = None,
    safety: SafetySignal | None = None,
) -> Table:
    table = Table(title="Classification", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Category", classification.category.label())
    table.add_row("Provenance", classification.provenance.value)
    table.add_row("Matched rule", classification.matched_rule)
    table.add_row("Explicit long", "yes" if classification.is_explicit_variant else "no")
    if variant is not None:
        table.add_row("Variant", variant.value)
    if emotion is not None:
        table.add_row(
            "Emotion",
            f"{emotion.category} ({emotion.confidence:.2f}), distress {emotion.distress_score:.2f}, {emotion.trajectory}",
        )
    if safety is not None:
        detail = safety.status.value
        if safety.category:
            detail += f" / {safety.category}"
        table.add_row("Safety", detail)
    return table


def build_plan_panel(plan: DeliveryPlan, *, used_fallback: bool = False) -> Panel:
    """Panel con el texto final y sus tiempos de entrega."""

    body = Text()
    body.append(f"initial delay: {plan.initial_delay_ms} ms\n", style="dim")
    for index, chunk in enumerate(plan.chunks, start=1):
        if chunk.pre_delay_ms:
            body.append(f"\n… {chunk.pre_delay_ms} ms …\n", style="dim")
        body.append(f"[{index}] ", style="bold")
        body.append(chunk.text + "\n")

    title = Text("Reply (fallback)" if used_fallback else "Reply", style="bold yellow")
    return Panel(body, title=title, border_style="yellow")


def build_validation_panel(outcome: ValidationOutcome) -> Panel:
    if outcome.accepted:
        return Panel(Text("accepted", style="bold green"), title="Validation", border_style="green")
    body = Text()
    body.append(outcome.reason.value if outcome.reason else "rejected", style="bold red")
    if outcome.detail:
        body.append(f"\n{outcome.detail}", style="dim")
    return Panel(body, title="Validation", border_style="red")


def build_contracts_table(registry: ContractRegistry) -> Table:
    table = Table(title=f"Response contracts v{registry.version}")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Variant", style="white")
    table.add_column("Max size", justify="right")
    table.add_column("Units", justify="right")
    table.add_column("Chunkable", style="green")
    table.add_column("Parts", style="magenta")
    for (category, variant), contract in registry.items():
        table.add_row(
            category.label(),
            variant.value,
            str(contract.max_generation_size),
            f"{contract.min_structural_units}-{contract.max_structural_units}",
            "yes" if contract.chunkable else "no",
            ", ".join(contract.required_parts),
        )
    return table
