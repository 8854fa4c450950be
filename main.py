"""Ejecuta la CLI de Clara desde un checkout sin instalar.

    python main.py classify "tell me a story"
    python main.py doctor run --offline

Con `pip install -e .` sobra: el script `clara` ya resuelve `src/`.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"

if __name__ == "__main__":
    sys.path.insert(0, str(SRC_DIR))

    from cli.main import run  # noqa: PLC0415

    run()
