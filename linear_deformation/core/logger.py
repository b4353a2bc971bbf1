"""Structured logging: a rotating application log plus JSON-lines records."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class StructuredLogger:
    """Writes ``app.log`` and the ``*.jsonl`` record files under ``log_dir``.

    The application log handler is attached to the ``linear_deformation``
    package logger, so module loggers (``logging.getLogger(__name__)``)
    throughout the package end up in ``app.log``.
    """

    def __init__(self, log_dir: str = "data/logs", level: str = "INFO"):
        self._log_dir = log_dir
        os.makedirs(log_dir, exist_ok=True)
        self._handler = self._make_handler(level)
        self._app_logger = logging.getLogger("linear_deformation")
        self._app_logger.addHandler(self._handler)
        current = self._app_logger.level
        if current == logging.NOTSET or current > self._handler.level:
            self._app_logger.setLevel(self._handler.level)

    def _make_handler(self, level: str) -> logging.Handler:
        handler = RotatingFileHandler(
            os.path.join(self._log_dir, "app.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        return handler

    @property
    def app(self) -> logging.Logger:
        return self._app_logger

    @property
    def log_dir(self) -> str:
        return self._log_dir

    def close(self) -> None:
        """Detach and close the application log handler."""
        self._app_logger.removeHandler(self._handler)
        self._handler.close()

    def _write_jsonl(self, filename: str, record: dict) -> None:
        filepath = os.path.join(self._log_dir, filename)
        with open(filepath, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")

    def log_operation(
        self,
        session_id: str,
        event_type: str,
        user_action: str = "",
        data: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "event_type": event_type,
            "user_action": user_action,
            "data": data or {},
            "metadata": metadata or {},
        }
        self._write_jsonl("operations.jsonl", record)

    def log_analysis(
        self,
        session_id: str,
        analysis: str,
        inputs: dict,
        outputs: dict,
        status: str = "completed",
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append one analysis run (static or modal) to ``analyses.jsonl``."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "event_type": f"analysis.{status}",
            "analysis": analysis,
            "inputs": inputs,
            "outputs": outputs,
            "metadata": metadata or {},
        }
        self._write_jsonl("analyses.jsonl", record)
