"""MCP tools for the care session, app settings and the dashboard summary."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.storage.validation import ValidationError
from companion.domains.care.domain_logic.dashboard import summarize

if TYPE_CHECKING:
    from companion.core.storage.repository import CareRepository
    from companion.domains.care.domain_logic.access import CareSession

logger = logging.getLogger(__name__)


def register_session_tools(
    mcp: FastMCP,
    repository: CareRepository,
    session: CareSession,
) -> None:
    """Register mode switching, settings and dashboard tools."""

    @mcp.tool
    async def unlock_caregiver_mode(ctx: Context, pin: str) -> str:
        """Switch to caregiver mode.

        Args:
            pin: The caregiver PIN.
        """
        if not session.unlock(pin):
            return json.dumps({
                "status": "error",
                "mode": session.mode,
                "message": "Incorrect PIN. Please try again.",
            })
        return json.dumps({"status": "ok", "mode": session.mode})

    @mcp.tool
    async def lock_caregiver_mode(ctx: Context) -> str:
        """Return to patient mode."""
        session.lock()
        return json.dumps({"status": "ok", "mode": session.mode})

    @mcp.tool
    async def current_mode(ctx: Context) -> str:
        """Report whether the session is in patient or caregiver mode."""
        return json.dumps({"status": "ok", "mode": session.mode})

    @mcp.tool
    async def get_app_settings(ctx: Context) -> str:
        """Show the app settings (language, voice, notifications, patient name)."""
        return json.dumps({"status": "ok", "settings": repository.get_app_settings().to_dict()})

    @mcp.tool
    async def update_app_settings(
        ctx: Context,
        language: str | None = None,
        voice_enabled: bool | None = None,
        notifications: bool | None = None,
        patient_name: str | None = None,
    ) -> str:
        """Change app settings. Omitted values are left unchanged.

        Args:
            language: Language code (e.g., 'en').
            voice_enabled: Enable the voice assistant.
            notifications: Enable notifications.
            patient_name: Name used to greet the patient.
        """
        changes = {
            key: value
            for key, value in (
                ("language", language),
                ("voice_enabled", voice_enabled),
                ("notifications", notifications),
                ("patient_name", patient_name),
            )
            if value is not None
        }
        try:
            settings = repository.update_app_settings(**changes)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "updated", "settings": settings.to_dict()})

    @mcp.tool
    async def dashboard_summary(ctx: Context) -> str:
        """Summarize people, approvals, health status and the last recognition."""
        summary = summarize(repository)
        if not session.is_caregiver:
            summary.pop("people_pending", None)
        return json.dumps({
            "status": "ok",
            "mode": session.mode,
            "patient_name": repository.get_app_settings().patient_name,
            "summary": summary,
        }, indent=2)
