"""Integration tests for the Care Companion MCP server."""

from __future__ import annotations

import asyncio
import base64
import json

import pytest
from fastmcp import Client

from companion.core.server.app import create_app


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "list_people",
    "search_people",
    "add_person",
    "update_person",
    "delete_person",
    "list_pending_people",
    "approve_person",
    "reject_person",
    "recognize_person",
    "list_health_metrics",
    "add_health_metric",
    "delete_health_metric",
    "list_metric_presets",
    "list_medical_reports",
    "add_medical_report",
    "delete_medical_report",
    "upload_file",
    "get_file",
    "purge_orphan_files",
    "unlock_caregiver_mode",
    "lock_caregiver_mode",
    "current_mode",
    "get_app_settings",
    "update_app_settings",
    "dashboard_summary",
]


@pytest.fixture
def client(repository):
    """Create an MCP client connected to a server over the in-memory repository."""
    mcp = create_app(repository_override=repository)
    return Client(mcp)


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
    async def _check():
        async with client:
            data = _payload(await client.call_tool("health_check", {}))
            assert data["status"] == "ok"
            assert data["mode"] == "patient"
            assert data["encrypted_at_rest"] is False
    _run(_check())


def test_create_app_without_override_uses_settings():
    """With DB_PATH=:memory: the default factory builds its own store."""
    async def _check():
        async with Client(create_app()) as c:
            data = _payload(await c.call_tool("health_check", {}))
            assert data["people_stored"] == 0
    _run(_check())


class TestModes:
    def test_wrong_pin(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("unlock_caregiver_mode", {"pin": "0000"}))
                assert data["status"] == "error"
                assert data["message"] == "Incorrect PIN. Please try again."
                assert data["mode"] == "patient"
        _run(_check())

    def test_unlock_and_lock(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("unlock_caregiver_mode", {"pin": "1234"}))
                assert data["mode"] == "caregiver"
                data = _payload(await client.call_tool("lock_caregiver_mode", {}))
                assert data["mode"] == "patient"
                data = _payload(await client.call_tool("current_mode", {}))
                assert data["mode"] == "patient"
        _run(_check())

    def test_caregiver_tools_forbidden_in_patient_mode(self, client):
        async def _check():
            async with client:
                for tool, args in (
                    ("list_pending_people", {}),
                    ("approve_person", {"person_id": "x"}),
                    ("reject_person", {"person_id": "x"}),
                    ("delete_person", {"person_id": "x"}),
                    ("delete_health_metric", {"metric_id": "1"}),
                    ("purge_orphan_files", {}),
                ):
                    data = _payload(await client.call_tool(tool, args))
                    assert data["status"] == "forbidden", tool
        _run(_check())


class TestPeopleFlow:
    def test_patient_addition_waits_for_approval(self, client, repository):
        async def _check():
            async with client:
                added = _payload(await client.call_tool(
                    "add_person", {"name": "Ben", "relation": "Neighbor"}
                ))
                assert added["status"] == "saved"
                assert added["person"]["status"] == "pending"
                person_id = added["person"]["id"]

                # Patients only see approved people
                listed = _payload(await client.call_tool("list_people", {}))
                assert listed["count"] == 0

                await client.call_tool("unlock_caregiver_mode", {"pin": "1234"})
                pending = _payload(await client.call_tool("list_pending_people", {}))
                assert [p["id"] for p in pending["people"]] == [person_id]

                approved = _payload(await client.call_tool(
                    "approve_person", {"person_id": person_id}
                ))
                assert approved["status"] == "approved"

                again = _payload(await client.call_tool(
                    "approve_person", {"person_id": person_id}
                ))
                assert again["status"] == "not_found"

                await client.call_tool("lock_caregiver_mode", {})
                listed = _payload(await client.call_tool("list_people", {}))
                assert listed["count"] == 1
        _run(_check())
        assert repository.get_person(repository.list_people()[0].id).status == "approved"

    def test_caregiver_addition_is_approved(self, client):
        async def _check():
            async with client:
                await client.call_tool("unlock_caregiver_mode", {"pin": "1234"})
                added = _payload(await client.call_tool("add_person", {"name": "Ana"}))
                assert added["person"]["status"] == "approved"
                assert added["person"]["relation"] == "Other"
        _run(_check())

    def test_reject_removes_person(self, client, repository):
        async def _check():
            async with client:
                added = _payload(await client.call_tool("add_person", {"name": "Ben"}))
                await client.call_tool("unlock_caregiver_mode", {"pin": "1234"})
                data = _payload(await client.call_tool(
                    "reject_person", {"person_id": added["person"]["id"]}
                ))
                assert data["status"] == "rejected"
        _run(_check())
        assert repository.list_people() == []

    def test_add_person_requires_name(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("add_person", {"name": "  "}))
                assert data["status"] == "error"
        _run(_check())

    def test_add_person_with_photo(self, client, repository):
        photo = base64.b64encode(b"\xff\xd8fake").decode()

        async def _check():
            async with client:
                added = _payload(await client.call_tool(
                    "add_person", {"name": "Ana", "photo_base64": photo}
                ))
                ref = added["person"]["photo"]
                assert ref.startswith("local-file://")
                info = _payload(await client.call_tool("get_file", {"reference": ref}))
                assert info["status"] == "ok"
                assert info["size_bytes"] == 6
        _run(_check())

    def test_recognize(self, client, repository):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("recognize_person", {}))
                assert data["status"] == "no_people"

                repository.add_person("Ana", approved=True)
                data = _payload(await client.call_tool("recognize_person", {}))
                assert data["status"] == "recognized"
                assert data["person"]["name"] == "Ana"
                assert data["person"]["last_met"]
        _run(_check())


class TestHealthFlow:
    def test_seeded_metrics_listed(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("list_health_metrics", {}))
                assert data["count"] == 4
        _run(_check())

    def test_add_metric_uses_preset_target(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "add_health_metric", {"name": "Blood Sugar", "value": 50}
                ))
                assert data["status"] == "saved"
                assert data["metric"]["unit"] == "mg/dL"
                assert data["metric"]["target"] == 100.0
                assert data["metric"]["status"] == "critical"
        _run(_check())

    def test_add_metric_zero_target_is_error(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "add_health_metric", {"name": "Custom", "value": 5, "target": 0}
                ))
                assert data["status"] == "error"
        _run(_check())

    def test_medical_report_upload(self, client):
        pdf = base64.b64encode(b"%PDF-1.4").decode()

        async def _check():
            async with client:
                data = _payload(await client.call_tool("add_medical_report", {
                    "title": "Blood panel",
                    "report_type": "lab_result",
                    "file_base64": pdf,
                    "filename": "panel.pdf",
                    "tags": ["blood"],
                }))
                assert data["status"] == "saved"
                listed = _payload(await client.call_tool(
                    "list_medical_reports", {"tag": "blood"}
                ))
                assert listed["count"] == 1
                info = _payload(await client.call_tool(
                    "get_file", {"reference": data["report"]["file_url"]}
                ))
                assert info["category"] == "reports"
        _run(_check())

    def test_purge_orphans_after_report_delete(self, client):
        pdf = base64.b64encode(b"%PDF-1.4").decode()

        async def _check():
            async with client:
                data = _payload(await client.call_tool("add_medical_report", {
                    "title": "Rx",
                    "report_type": "prescription",
                    "file_base64": pdf,
                    "filename": "rx.pdf",
                }))
                await client.call_tool("unlock_caregiver_mode", {"pin": "1234"})
                deleted = _payload(await client.call_tool(
                    "delete_medical_report", {"report_id": data["report"]["id"]}
                ))
                assert deleted["status"] == "deleted"
                purged = _payload(await client.call_tool("purge_orphan_files", {}))
                assert purged["files_deleted"] == 1
        _run(_check())


class TestSettingsAndDashboard:
    def test_settings_defaults_and_update(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("get_app_settings", {}))
                assert data["settings"]["patient_name"] == "Patient"
                data = _payload(await client.call_tool(
                    "update_app_settings", {"patient_name": "Maria"}
                ))
                assert data["status"] == "updated"
                assert data["settings"]["patient_name"] == "Maria"
                assert data["settings"]["voice_enabled"] is True
        _run(_check())

    def test_dashboard_hides_pending_from_patient(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("dashboard_summary", {}))
                assert "people_pending" not in data["summary"]
                assert data["summary"]["metrics_total"] == 4
                await client.call_tool("unlock_caregiver_mode", {"pin": "1234"})
                data = _payload(await client.call_tool("dashboard_summary", {}))
                assert data["summary"]["people_pending"] == 0
        _run(_check())
