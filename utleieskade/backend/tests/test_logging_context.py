# backend/tests/test_logging_context.py
from __future__ import annotations

import json
import logging

from app.logging_config import JsonFormatter
from app.middleware.request_id import REQUEST_ID_HEADER, bind_request_id, get_request_id


def test_well_formed_request_id_is_echoed(client):
    r = client.get("/health", headers={REQUEST_ID_HEADER: "lb-1234.abcd"})
    assert r.headers[REQUEST_ID_HEADER] == "lb-1234.abcd"


def test_malformed_request_id_is_replaced(client):
    r = client.get("/health", headers={REQUEST_ID_HEADER: "x" * 200})
    rid = r.headers[REQUEST_ID_HEADER]
    assert rid != "x" * 200
    assert len(rid) == 32


def test_json_lines_carry_bound_request_id_and_extras():
    record = logging.LogRecord("utleieskade.workers", logging.INFO, __file__, 1, "purged %s", (3,), None)
    record.case_id = "CASE-2401011200-abcd1234"

    with bind_request_id("task-abc") as rid:
        line = json.loads(JsonFormatter().format(record))
        assert get_request_id() == rid
    assert get_request_id() is None

    assert line["message"] == "purged 3"
    assert line["request_id"] == "task-abc"
    assert line["case_id"] == "CASE-2401011200-abcd1234"
    assert line["service"] == "utleieskade-api"
