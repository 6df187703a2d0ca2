"""Integration tests for the SHIMS Daily Monitoring MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from shims.core.server.app import create_app
from shims.core.server.main import _is_loopback_host


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    content = getattr(result, "content", result)
    return json.loads(content[0].text)


# Always registered; audit_summary needs the SQLite store (default wiring)
ALL_EXPECTED_TOOLS = [
    "health_check",
    "score_check_in",
    "submit_check_in",
    "list_submissions",
    "clear_submissions",
    "list_profiles",
    "audit_summary",
]


@pytest.fixture
def client():
    """Create an MCP client connected to a server on an in-memory SQLite store."""
    return Client(create_app())


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    """health_check tool should return status ok."""
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            payload = _payload(result)
            assert payload["status"] == "ok"
            assert payload["storage_backend"] == "sqlite"
            assert payload["profile_source"] == "bundled"
            assert payload["audit_enabled"] is True
            assert payload["submissions_stored"] == 0
    _run(_check())


def test_override_store_has_no_audit_tools(kv_store, profile_source):
    mcp = create_app(kv_store_override=kv_store, profile_source_override=profile_source)

    async def _check():
        async with Client(mcp) as client:
            tool_names = [t.name for t in await client.list_tools()]
            assert "audit_summary" not in tool_names
            payload = _payload(await client.call_tool("health_check", {}))
            assert payload["storage_backend"] == "override"
            assert payload["profile_source"] == "static"
            assert payload["audit_enabled"] is False
    _run(_check())


def test_bundled_roster_check_in_flow(client):
    """A High check-in against the bundled roster updates that profile."""
    async def _check():
        async with client:
            roster = _payload(await client.call_tool("list_profiles", {}))
            assert roster["status"] == "ok"
            first = roster["profiles"][0]

            saved = _payload(await client.call_tool("submit_check_in", {
                "student_id": first["id"].upper(),
                "pain": 8,
                "hydration": "poor",
                "temperature": "38.4",
            }))
            assert saved["risk_category"] == "High"
            assert saved["profile_updated"] is True
            assert saved["profile"]["id"] == first["id"]

            roster = _payload(await client.call_tool("list_profiles", {}))
            assert roster["profiles"][0]["risk"] == "High"
            assert roster["profiles"][0]["last_crisis"] == saved["profile"]["last_crisis"]

            health = _payload(await client.call_tool("health_check", {}))
            assert health["submissions_stored"] == 1
    _run(_check())


def test_check_in_before_roster_listing_updates_profile(kv_store):
    """The first check-in seeds the bundled roster and reconciles onto it."""
    mcp = create_app(kv_store_override=kv_store)

    async def _check():
        async with Client(mcp) as client:
            saved = _payload(await client.call_tool("submit_check_in", {
                "student_id": "s001", "pain": 8, "hydration": "poor", "fatigue": "high",
            }))
            assert saved["risk_category"] == "High"
            assert saved["profile_updated"] is True

            roster = _payload(await client.call_tool("list_profiles", {}))
            s001 = next(p for p in roster["profiles"] if p["id"] == "s001")
            assert s001["risk"] == "High"
            assert s001["last_crisis"] == saved["profile"]["last_crisis"]
    _run(_check())


def test_encrypted_store(monkeypatch, tmp_path):
    """With ENCRYPTION_KEY set, values on disk are Fernet tokens."""
    from cryptography.fernet import Fernet

    from shims.core.storage.database import MonitoringDatabase

    db_path = tmp_path / "monitoring.db"
    monkeypatch.setenv("STORE_PATH", str(db_path))
    monkeypatch.setenv("ENCRYPTION_KEY", Fernet.generate_key().decode())

    async def _check():
        async with Client(create_app()) as client:
            health = _payload(await client.call_tool("health_check", {}))
            assert health["storage_backend"] == "sqlite+fernet"
            await client.call_tool("submit_check_in", {
                "student_id": "s001", "pain": 4, "notes": "Knee pain",
            })
            listed = _payload(await client.call_tool("list_submissions", {}))
            assert listed["submissions"][0]["notes"] == "Knee pain"
    _run(_check())

    db = MonitoringDatabase(str(db_path))
    db.initialize()
    try:
        row = db.connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", ("shims_demo_submissions",)
        ).fetchone()
    finally:
        db.close()
    assert row is not None
    assert "Knee pain" not in row[0]


def test_invalid_encryption_key_falls_back_to_plaintext(monkeypatch):
    monkeypatch.setenv("ENCRYPTION_KEY", "not-a-fernet-key")

    async def _check():
        async with Client(create_app()) as client:
            health = _payload(await client.call_tool("health_check", {}))
            assert health["storage_backend"] == "sqlite"
    _run(_check())


class TestLoopbackGuard:
    @pytest.mark.parametrize("host", ["127.0.0.1", "localhost", "::1"])
    def test_loopback_hosts(self, host):
        assert _is_loopback_host(host)

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.10", "example.org"])
    def test_non_loopback_hosts(self, host):
        assert not _is_loopback_host(host)
