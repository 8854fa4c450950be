"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los modelos congelados (`frozen=True`) garantizan que contratos, clasificaciones
  y planes no cambian una vez creados.

Nota:
- Salvo los contratos, todo lo que vive aquí se crea y se descarta dentro de un
  único turno.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.categories import (
    Category,
    Provenance,
    RejectionReason,
    SafetyStatus,
    Variant,
)


class ResponseContract(BaseModel):
    """Obligaciones estructurales y tonales de una (categoría, variante).

    Por qué tuplas y no listas:
    - El modelo es `frozen`; con tuplas tampoco se pueden mutar los campos
      internos, así que el contrato es inmutable en profundidad.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_generation_size: int = Field(
        ...,
        gt=0,
        description="Tokens máximos a pedir al generador.",
    )
    min_structural_units: int = Field(
        ...,
        ge=1,
        description="Mínimo de unidades (frases) para considerar completa la respuesta.",
    )
    max_structural_units: int = Field(
        ...,
        ge=1,
        description="Máximo nominal de unidades (guía para el prompt).",
    )
    chunkable: bool = Field(
        default=True,
        description="Si la entrega puede partirse en varios fragmentos.",
    )
    required_parts: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Roles semánticos ordenados (p.ej. opening/middle/ending).",
    )
    completion_signals: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Señales léxicas de cierre genuino.",
    )
    incompletion_signals: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Señales léxicas de truncado (coma, guion, elipsis, conjunción colgante).",
    )
    directive_text: str = Field(
        ...,
        min_length=1,
        description="Instrucción que el ensamblador de prompt añade al system prompt.",
    )


class EmotionSignal(BaseModel):
    """Estado emocional estimado del usuario (entrada externa)."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(
        default="neutral",
        description="Etiqueta de emoción (confused, sad, lonely, calm, neutral...).",
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    distress_score: float = Field(default=0.0, ge=0.0, le=1.0)
    trajectory: str = Field(
        default="stable",
        description="stable | escalating | de-escalating",
    )
    is_crisis: bool = Field(default=False)


class SafetySignal(BaseModel):
    """Resultado del pre-filtro de seguridad sobre el mensaje del usuario."""

    model_config = ConfigDict(frozen=True)

    status: SafetyStatus = Field(default=SafetyStatus.SAFE)
    category: str | None = Field(default=None)
    severity: str | None = Field(default=None)
    flag: str | None = Field(
        default=None,
        description="Marca informativa para el prompt (p.ej. identity_confusion).",
    )


class ClassificationResult(BaseModel):
    """Categoría elegida para el turno y cómo se llegó a ella."""

    model_config = ConfigDict(frozen=True)

    category: Category
    provenance: Provenance
    matched_rule: str = Field(..., min_length=1)
    is_explicit_variant: bool = Field(
        default=False,
        description="El usuario pidió explícitamente un cuento largo.",
    )


class ValidationOutcome(BaseModel):
    """Veredicto booleano del validador de completitud."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: RejectionReason | None = None
    detail: str | None = None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason, detail: str | None = None) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason, detail=detail)


class DeliveryChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    pre_delay_ms: int = Field(default=0, ge=0)


class DeliveryPlan(BaseModel):
    """Plan de entrega temporizado de un texto ya aceptado."""

    model_config = ConfigDict(frozen=True)

    initial_delay_ms: int = Field(..., ge=0)
    chunks: tuple[DeliveryChunk, ...] = Field(..., min_length=1)


class TurnRecord(BaseModel):
    """Registro de auditoría de un turno resuelto.

    Por qué existe:
    - Cada rechazo y cada uso del respaldo debe quedar auditado.
    - Es lo único que sale del turno hacia fuera (best-effort).
    """

    model_config = ConfigDict(frozen=True)

    response_id: str
    category: Category
    variant: Variant
    provenance: Provenance
    matched_rule: str
    terminal_state: str
    generation_calls: int = Field(..., ge=0, le=2)
    rejection_reasons: tuple[str, ...] = Field(default_factory=tuple)
    used_fallback: bool = False
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
