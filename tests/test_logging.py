import json
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.core.logging import JsonLogFormatter
from app.middlewares import request_id_ctx_var


def _record(message, **extra):
    record = logging.LogRecord("app.crud.inventory", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_extra_data():
    formatter = JsonLogFormatter(service="ops", environment="test")

    line = formatter.format(_record("stock.adjusted", extra_data={"material_id": 3, "change": -1.5}))

    payload = json.loads(line)
    assert payload["message"] == "stock.adjusted"
    assert payload["service"] == "ops"
    assert payload["env"] == "test"
    assert payload["material_id"] == 3
    assert payload["change"] == -1.5
    assert "request_id" not in payload


def test_formatter_includes_current_request_id():
    formatter = JsonLogFormatter(service="ops", environment="test")
    token = request_id_ctx_var.set("req-42")
    try:
        payload = json.loads(formatter.format(_record("purchase.created")))
    finally:
        request_id_ctx_var.reset(token)

    assert payload["request_id"] == "req-42"
