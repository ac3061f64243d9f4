"""Exportación JSON de operaciones.

- Una línea JSON por operación (append-only), fácil de procesar con jq.
- Formato estable: claves ordenadas, UTF-8 sin escapar.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def append_json_line(output_path: Path, payload: dict[str, Any]) -> Path:
    """Añade `payload` como una línea JSON al final de `output_path`."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)
    with output_path.open("a", encoding="utf-8") as fh:
        fh.write(line + "\n")
    return output_path
