"""Tests for the HTTP / JSON-RPC surface."""

import sqlite3
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

import api.logging
from api.dependencies import get_diary_service, get_optional_diary_service
from api.main import app
from scripts.init_db import create_database
from services.diary import DiaryService
from services.reports import ExcelChartRenderer


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "db" / "requests.db"
    create_database(path)
    monkeypatch.setattr(api.logging, "DB_PATH", path)
    return path


@pytest.fixture
def client(store, db_path):
    service = DiaryService(store, ExcelChartRenderer())
    app.dependency_overrides[get_optional_diary_service] = lambda: service
    app.dependency_overrides[get_diary_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def rpc(client, method, params=None, request_id=1, headers=None):
    body = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        body["params"] = params
    response = client.post("/mcp", json=body, headers=headers or {})
    assert response.status_code == 200
    return response.json()


def call_tool(client, name, arguments=None, headers=None):
    return rpc(client, "tools/call", {"name": name, "arguments": arguments or {}}, headers=headers)


# =============================================================================
# PROTOCOL
# =============================================================================


def test_initialize(client):
    body = rpc(client, "initialize")
    assert body["id"] == 1
    assert body["result"]["serverInfo"]["name"] == "diary-analyzer"
    assert "tools" in body["result"]["capabilities"]


def test_ping_and_empty_listings(client):
    assert rpc(client, "ping")["result"] == {}
    assert rpc(client, "resources/list")["result"] == {"resources": []}
    assert rpc(client, "prompts/list")["result"] == {"prompts": []}


def test_tools_list(client):
    tools = rpc(client, "tools/list")["result"]["tools"]
    names = [tool["name"] for tool in tools]
    assert names == [
        "diary.log",
        "diary.logHighlight",
        "diary.listCalendars",
        "diary.queryEvents",
        "diary.getTimeStats",
        "diary.processMessage",
    ]
    log_schema = tools[0]["inputSchema"]
    assert "title" in log_schema["required"]
    assert "startTime" in log_schema["properties"]


def test_notification_gets_no_body(client):
    response = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert response.status_code == 202
    assert response.content == b""


def test_parse_error(client):
    response = client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})
    body = response.json()
    assert body["id"] is None
    assert body["error"]["code"] == -32700


def test_invalid_request(client):
    body = client.post("/mcp", json={"method": "ping", "id": 7}).json()
    assert body["id"] == 7
    assert body["error"]["code"] == -32600


def test_unknown_method(client):
    body = rpc(client, "tools/destroy")
    assert body["error"]["code"] == -32601
    assert body["error"]["data"]["code"] == "METHOD_NOT_FOUND"


def test_unknown_tool(client):
    body = call_tool(client, "diary.delete")
    assert body["error"]["code"] == -32003
    assert body["error"]["data"]["code"] == "TOOL_NOT_FOUND"


# =============================================================================
# TOOLS
# =============================================================================


def test_log_tool(client, store):
    body = call_tool(client, "diary.log", {"title": "Coding", "category": "prod", "startTime": "9am"})
    result = body["result"]
    assert result["structuredContent"]["success"] is True
    assert result["content"][0]["type"] == "text"
    assert store.created[0][0] == "cal-prod"


def test_missing_title_is_invalid_params(client, store):
    body = call_tool(client, "diary.log", {"category": "prod"})
    error = body["error"]
    assert error["code"] == -32602
    assert error["data"]["code"] == "VALIDATION_ERROR"
    assert error["data"]["field"] == "title"
    assert store.created == []


def test_blank_title_is_invalid_params(client):
    body = call_tool(client, "diary.log", {"title": "   "})
    assert body["error"]["code"] == -32602


def test_bad_period_is_invalid_params(client):
    body = call_tool(client, "diary.getTimeStats", {"period": "fortnight"})
    assert body["error"]["code"] == -32602
    assert body["error"]["data"]["field"] == "period"


def test_follow_up_is_flagged(client):
    body = call_tool(client, "diary.log", {"title": "xyzzy"})
    assert body["result"]["isFollowUp"] is True
    assert body["result"]["structuredContent"]["code"] == "AMBIGUOUS_CATEGORY"


def test_upstream_failure(client, store):
    store.fail_create = True
    body = call_tool(client, "diary.log", {"title": "Coding", "category": "prod", "startTime": "9am"})
    assert body["error"]["code"] == -32000
    assert body["error"]["data"]["code"] == "UPSTREAM_ERROR"
    assert body["error"]["data"]["retryable"] is True


def test_offset_header_applies_to_clock_tokens(client, store):
    body = call_tool(
        client,
        "diary.processMessage",
        {"message": "log coding from 9am to 11am"},
        headers={"X-UTC-Offset-Minutes": "-420"},
    )
    assert body["result"]["structuredContent"]["success"] is True
    _, entry = store.created[0]
    assert entry.start_time.hour == 9
    assert entry.start_time.utcoffset() == timedelta(minutes=-420)


def test_bad_offset_header(client):
    response = client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "ping", "id": 1},
        headers={"X-UTC-Offset-Minutes": "west"},
    )
    assert response.status_code == 400


def test_list_calendars_tool(client):
    body = call_tool(client, "diary.listCalendars")
    assert len(body["result"]["structuredContent"]["calendars"]) == 5


def test_stats_tool_with_chart(client):
    body = call_tool(
        client,
        "diary.getTimeStats",
        {"period": "custom", "from": "2024-01-15", "to": "2024-01-15", "includeChart": True},
    )
    content = body["result"]["content"]
    assert body["result"]["structuredContent"]["stats"]["totalMinutes"] == 300
    assert content[1]["type"] == "resource"
    assert content[1]["resource"]["uri"] == "chart://time-stats.xlsx"


def test_escalation_is_flagged(client):
    body = call_tool(client, "diary.processMessage", {"message": "what did I do today?"})
    assert body["result"]["needsInterpreter"] is True


# =============================================================================
# HEALTH AND REQUEST LOG
# =============================================================================


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["tools"] == 6


def test_health_unhealthy(client, store):
    store.fail_listing = True
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_health_unconfigured():
    app.dependency_overrides[get_optional_diary_service] = lambda: None
    try:
        response = TestClient(app).get("/health")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["checks"]["configuration"]["status"] == "error"


def test_tool_call_unconfigured_is_server_error():
    app.dependency_overrides[get_optional_diary_service] = lambda: None
    try:
        response = TestClient(app).post("/mcp", json={"jsonrpc": "2.0", "method": "ping", "id": 1})
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500


def test_requests_are_logged(client, db_path):
    call_tool(client, "diary.log", {"category": "prod"})

    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute(
            "SELECT rpc_method, tool_name, rpc_error_code, error_code FROM api_requests"
        ).fetchone()
        details = conn.execute("SELECT detail_type FROM api_request_details").fetchall()
    finally:
        conn.close()

    assert row == ("tools/call", "diary.log", -32602, "VALIDATION_ERROR")
    assert details and all(detail_type == "validation_error" for (detail_type,) in details)


def test_logging_failure_does_not_fail_request(client, monkeypatch, tmp_path):
    monkeypatch.setattr(api.logging, "DB_PATH", tmp_path / "missing" / "dir" / "requests.db")
    assert rpc(client, "ping")["result"] == {}
