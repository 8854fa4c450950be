"""Configuración de logging del proceso.

Los módulos solo hacen `logger = logging.getLogger(__name__)`; la CLI llama a
`configure_logging` una vez al arrancar. La salida va a stderr (Rich) para que
`--json` deje stdout limpio.
"""

from __future__ import annotations

import logging
import re

from rich.console import Console
from rich.logging import RichHandler

_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\"'\s&]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"(Bearer\s+)[^\s\"]+"), r"\1***"),
    (re.compile(r"\b(gsk|sk)-?[A-Za-z0-9_-]{16,}"), "***"),
)


class SecretMaskingFilter(logging.Filter):
    """Enmascara API keys en mensajes de error del proveedor."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(mask_secrets(arg) if isinstance(arg, str) else arg for arg in record.args)
        # El traceback se renderiza aquí ya enmascarado; sin exc_info, Rich imprime exc_text.
        if record.exc_info:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
            record.exc_info = None
        if record.exc_text:
            record.exc_text = mask_secrets(record.exc_text)
        return True


def mask_secrets(text: str) -> str:
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def configure_logging(level: str | int = "INFO", *, console: Console | None = None) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.addFilter(SecretMaskingFilter())
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # El SDK y httpx loguean cada request a INFO.
    for noisy in ("httpx", "openai"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
