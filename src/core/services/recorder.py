"""Operation recorder.

Every replacement run ends with one `record` call. The outcome always goes to
the log; with `log_to_file` enabled it is also appended to a JSON lines file.
Persistence failures are logged and never reach the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from adapters.json_exporter import append_json_line
from core.config import AppSettings
from core.domain.models import utc_now

logger = logging.getLogger(__name__)


class OperationRecorder:
    def __init__(
        self,
        *,
        log_path: Path | None = None,
        sink: Callable[[Path, dict[str, Any]], Path] = append_json_line,
    ) -> None:
        self._log_path = log_path
        self._sink = sink

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "OperationRecorder":
        return cls(log_path=settings.operations_log_path if settings.log_to_file else None)

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def record(self, status: str, context: dict[str, Any]) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "status": status,
            "timestamp": utc_now().isoformat(),
            **context,
        }
        logger.info("Operation logged: %s %s", status, context)

        if self._log_path is not None:
            try:
                self._sink(self._log_path, entry)
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to write to operations log %s: %s", self._log_path, exc)
        return entry
