from __future__ import annotations
import json
import logging

from blueprints.core.routes import JSONFormatter


def test_health_ok(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"


def test_csrf_token_endpoint(client):
    rv = client.get("/api/v1/csrf")
    assert rv.status_code == 200
    assert rv.get_json()["csrf"]


def test_unknown_route_is_404(client):
    assert client.get("/api/v1/nope").status_code == 404


def test_json_formatter_keeps_domain_extras():
    record = logging.LogRecord("blueprints.electives.services", logging.INFO, __file__, 1,
                               "elective students added", None, None)
    record.event = "elective_add"
    record.elective_subject_id = 7
    record.created_count = 2
    record.failed_count = 1
    record.secret = "not-logged"
    out = json.loads(JSONFormatter().format(record))
    assert out["msg"] == "elective students added"
    assert out["level"] == "INFO"
    assert (out["event"], out["elective_subject_id"], out["created_count"], out["failed_count"]) == ("elective_add", 7, 2, 1)
    assert "secret" not in out
