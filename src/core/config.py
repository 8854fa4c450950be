"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (generación/auditoría) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "clara"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "clara"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "clara"
    return Path.home() / ".config" / "clara"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# Clara user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLARA_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key para el proveedor de generación (compatible OpenAI).",
    )
    ai_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        min_length=8,
        description="Base URL compatible OpenAI (Groq por defecto).",
    )
    ai_model: str = Field(
        default="llama-3.3-70b-versatile",
        min_length=1,
        description="Modelo usado para generar respuestas.",
    )
    ai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperatura de muestreo.",
    )
    ai_top_p: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Nucleus sampling (top_p).",
    )

    # Presupuestos de tiempo por llamada de generación (segundos).
    generation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout para respuestas estándar.",
    )
    extended_generation_timeout_seconds: float = Field(
        default=45.0,
        gt=0,
        description="Timeout para la variante extendida (cuento largo).",
    )

    http_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout de las comprobaciones HTTP del doctor.",
    )
    user_agent: str = Field(
        default="clara-reply-core/0.1",
        min_length=1,
        description="User-Agent de las peticiones HTTP propias.",
    )

    extended_story_distress_threshold: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Distress por encima del cual un cuento usa la variante extendida.",
    )

    contracts_path: Path | None = Field(
        default=None,
        description="Tabla de contratos JSON (deploy-time). Si es None se usa la tabla integrada.",
    )
    audit_log_path: Path | None = Field(
        default=None,
        description="Archivo JSONL para el registro de auditoría de cada turno.",
    )
    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )
