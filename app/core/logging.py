from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Mapping

from ..middlewares import request_id_ctx_var
from .config import settings

# uvicorn's own access log duplicates ``request.completed``.
QUIETED_LOGGERS = {"uvicorn.access": logging.WARNING}


class JsonLogFormatter(logging.Formatter):
    """Render log records as JSON lines tagged with the service and request."""

    def __init__(self, service: str | None = None, environment: str | None = None) -> None:
        super().__init__()
        self.service = service or settings.APP_NAME
        self.environment = environment or settings.APP_ENV

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "env": self.environment,
            "message": record.getMessage(),
        }
        request_id = request_id_ctx_var.get()
        if request_id:
            payload["request_id"] = request_id
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel((level or settings.LOG_LEVEL).upper())
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        # Route server logs through the JSON handler on root.
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
    for name, quiet_level in QUIETED_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
