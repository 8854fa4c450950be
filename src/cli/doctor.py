"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import probe_provider
from core.config import AppSettings, write_user_env_vars
from core.contract_registry import load_registry
from core.errors import ContractTableError
from core.safe_responses import FALLBACK_POOLS, invalid_fallbacks

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()

PROVIDER_PRESETS: dict[str, dict[str, str]] = {
    "groq": {"CLARA_AI_BASE_URL": "https://api.groq.com/openai/v1", "CLARA_AI_MODEL": "llama-3.3-70b-versatile"},
    "groq-fast": {"CLARA_AI_BASE_URL": "https://api.groq.com/openai/v1", "CLARA_AI_MODEL": "llama-3.1-8b-instant"},
    "openai": {"CLARA_AI_BASE_URL": "https://api.openai.com/v1", "CLARA_AI_MODEL": "gpt-4o-mini"},
    "openrouter": {"CLARA_AI_BASE_URL": "https://openrouter.ai/api/v1", "CLARA_AI_MODEL": "openai/gpt-4o-mini"},
    "ollama": {"CLARA_AI_BASE_URL": "http://localhost:11434/v1", "CLARA_AI_MODEL": "llama3"},
}


@app.command()
def run(
    offline: bool = typer.Option(False, "--offline", help="Skip the provider connectivity check."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="Clara Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if settings.ai_api_key:
        table.add_row("AI key", "OK", "Generation enabled")
    else:
        table.add_row("AI key", "MISSING", "No key set -> every turn resolves to a fallback reply")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", settings.ai_model)
    table.add_row(
        "Timeouts",
        "OK",
        f"standard {settings.generation_timeout_seconds:g}s / extended {settings.extended_generation_timeout_seconds:g}s",
    )

    # Contracts
    failed = False
    try:
        registry = load_registry(settings.contracts_path)
    except ContractTableError as exc:
        table.add_row("Contracts", "FAIL", str(exc))
        failed = True
    else:
        source = str(settings.contracts_path) if settings.contracts_path else "built-in"
        table.add_row("Contracts", "OK", f"v{registry.version} ({source})")

        failures = invalid_fallbacks(registry)
        total = sum(len(pool) for pool in FALLBACK_POOLS.values())
        if failures:
            detail = "; ".join(
                f"{category.value}/{variant.value}#{index}: {outcome.reason.value if outcome.reason else '?'}"
                for category, variant, index, outcome in failures
            )
            table.add_row("Fallback bank", "FAIL", detail)
            failed = True
        else:
            table.add_row("Fallback bank", "OK", f"{total} replies pass their contracts")

    # Connectivity (best-effort)
    if offline:
        table.add_row("Provider", "SKIPPED", "--offline")
    else:
        ok_http, detail_http = asyncio.run(probe_provider(settings))
        table.add_row("Provider", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if failed:
        raise typer.Exit(code=1)


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt(
        "AI provider",
        default="groq",
        show_default=True,
    ).strip().lower()

    values = PROVIDER_PRESETS.get(provider, {}).copy()
    if not values:
        _console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get("CLARA_AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get("CLARA_AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", default="", hide_input=True, show_default=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    env_values = {
        "CLARA_AI_BASE_URL": base_url,
        "CLARA_AI_MODEL": model,
    }
    if api_key:
        env_values["CLARA_AI_API_KEY"] = api_key

    env_path = write_user_env_vars(env_values)

    _console.print(f"[green]Saved AI config to:[/green] {env_path}")
