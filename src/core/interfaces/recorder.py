"""Contrato del registro de auditoría de turnos."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import TurnRecord


@runtime_checkable
class TurnRecorder(Protocol):
    """Recibe el resultado terminal de cada turno.

    Best-effort: el orquestador registra y descarta cualquier excepción que
    lance `record`; un fallo de auditoría nunca bloquea la entrega.
    """

    def record(self, record: TurnRecord) -> None:
        ...
