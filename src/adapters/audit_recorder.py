"""Registro de auditoría de turnos.

Por qué JSON Lines:
- Un turno = una línea; se puede hacer `tail -f` y procesar con cualquier
  herramienta sin cargar el archivo entero.
- Solo escritura (append). Nada de lo registrado se vuelve a leer en el turno.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from core.domain.models import TurnRecord

logger = logging.getLogger(__name__)


class JsonlTurnRecorder:
    """Añade cada `TurnRecord` como una línea JSON UTF-8."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def record(self, record: TurnRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump(mode="json")
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(payload, ensure_ascii=False, sort_keys=True) + "\n")


class LoggingTurnRecorder:
    """Envía cada turno al logger (útil en desarrollo y en la CLI)."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def record(self, record: TurnRecord) -> None:
        logger.log(
            self.level,
            "turn %s: %s/%s -> %s (calls=%d, rejections=%s, fallback=%s)",
            record.response_id,
            record.category.value,
            record.variant.value,
            record.terminal_state,
            record.generation_calls,
            ",".join(record.rejection_reasons) or "-",
            record.used_fallback,
        )
