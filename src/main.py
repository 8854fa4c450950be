"""Entrada `python -m main` (desde `src/`).

El script instalado `clara` apunta directamente a `cli.main:run`.
"""

from __future__ import annotations

import sys

# Fallbacks y banner llevan emoji; cp1252 en Windows no los codifica.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run  # noqa: E402

if __name__ == "__main__":
    run()
