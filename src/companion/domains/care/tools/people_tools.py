"""MCP tools for people: the known-people list, approvals and recognition.

Patients see approved people only and their additions wait for caregiver
approval. Approving, rejecting and deleting require caregiver mode.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.storage.blob_store import decode_upload
from companion.core.storage.validation import ValidationError

if TYPE_CHECKING:
    from companion.core.storage.blob_store import FileBlobStore
    from companion.core.storage.repository import CareRepository
    from companion.domains.care.domain_logic.access import CareSession
    from companion.domains.care.domain_logic.approval import ApprovalWorkflow
    from companion.domains.care.domain_logic.recognition import Recognizer

logger = logging.getLogger(__name__)

_FORBIDDEN = json.dumps({
    "status": "forbidden",
    "message": "Caregiver mode is required. Unlock it with the caregiver PIN.",
})


def register_people_tools(
    mcp: FastMCP,
    repository: CareRepository,
    blob_store: FileBlobStore,
    workflow: ApprovalWorkflow,
    recognizer: Recognizer,
    session: CareSession,
) -> None:
    """Register people management, approval and recognition tools."""

    @mcp.tool
    async def list_people(ctx: Context, status: str = "") -> str:
        """List known people.

        In patient mode only approved people are listed.

        Args:
            status: Optional filter: 'approved' or 'pending' (caregiver only).
        """
        if not session.is_caregiver:
            status = "approved"
        try:
            people = repository.list_people(status=status or None)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({
            "status": "ok",
            "mode": session.mode,
            "count": len(people),
            "people": [p.to_dict() for p in people],
        }, indent=2)

    @mcp.tool
    async def search_people(ctx: Context, term: str, status: str = "") -> str:
        """Search people by name, relation or notes.

        Args:
            term: Text to look for (case-insensitive).
            status: Optional filter: 'approved' or 'pending' (caregiver only).
        """
        if not session.is_caregiver:
            status = "approved"
        try:
            people = repository.search_people(term, status=status or None)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({
            "status": "ok",
            "count": len(people),
            "people": [p.to_dict() for p in people],
        }, indent=2)

    @mcp.tool
    async def add_person(
        ctx: Context,
        name: str,
        relation: str = "",
        notes: str = "",
        photo_base64: str = "",
        photo_filename: str = "photo.jpg",
        photo_mime_type: str = "image/jpeg",
    ) -> str:
        """Add someone the patient knows.

        People added in caregiver mode are approved immediately; people added
        in patient mode wait for caregiver approval.

        Args:
            name: The person's name.
            relation: Relationship to the patient (e.g., 'Daughter', 'Doctor').
                Defaults to 'Other'.
            notes: Optional notes (e.g., 'Visits on Sundays').
            photo_base64: Optional photo, base64-encoded.
            photo_filename: Original filename of the photo.
            photo_mime_type: MIME type of the photo.
        """
        try:
            if not name.strip():
                raise ValidationError("name is required")
            photo = ""
            if photo_base64:
                content = decode_upload(photo_base64)
                photo = await blob_store.save(
                    content, photo_filename, photo_mime_type, "photos"
                )
            person = repository.add_person(
                name, relation, notes, photo, approved=session.is_caregiver
            )
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        return json.dumps({
            "status": "saved",
            "person": person.to_dict(),
            "message": (
                "Person added."
                if person.status == "approved"
                else "Person added for caregiver approval."
            ),
        })

    @mcp.tool
    async def update_person(
        ctx: Context,
        person_id: str,
        name: str | None = None,
        relation: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Edit a person's name, relation or notes.

        Args:
            person_id: The person's ID.
            name: New name.
            relation: New relation.
            notes: New notes.
        """
        changes = {
            key: value
            for key, value in (("name", name), ("relation", relation), ("notes", notes))
            if value is not None
        }
        if not changes:
            return json.dumps({"status": "error", "message": "No changes provided"})
        try:
            person = repository.update_person(person_id, **changes)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        if person is None:
            return json.dumps({"status": "not_found", "person_id": person_id})
        return json.dumps({"status": "updated", "person": person.to_dict()})

    @mcp.tool
    async def delete_person(ctx: Context, person_id: str) -> str:
        """Remove a person (caregiver only).

        Args:
            person_id: The person's ID.
        """
        if not session.is_caregiver:
            return _FORBIDDEN
        if not repository.delete_person(person_id):
            return json.dumps({"status": "not_found", "person_id": person_id})
        return json.dumps({"status": "deleted", "person_id": person_id})

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    @mcp.tool
    async def list_pending_people(ctx: Context) -> str:
        """List people waiting for caregiver approval (caregiver only)."""
        if not session.is_caregiver:
            return _FORBIDDEN
        pending = workflow.list_pending()
        return json.dumps({
            "status": "ok",
            "count": len(pending),
            "people": [p.to_dict() for p in pending],
        }, indent=2)

    @mcp.tool
    async def approve_person(ctx: Context, person_id: str) -> str:
        """Approve a pending person so they can be recognized (caregiver only).

        Args:
            person_id: The pending person's ID.
        """
        if not session.is_caregiver:
            return _FORBIDDEN
        person = workflow.approve(person_id)
        if person is None:
            return json.dumps({
                "status": "not_found",
                "person_id": person_id,
                "message": "No pending person with that ID.",
            })
        return json.dumps({
            "status": "approved",
            "person": person.to_dict(),
            "message": f"{person.name} has been approved and is now available for recognition.",
        })

    @mcp.tool
    async def reject_person(ctx: Context, person_id: str) -> str:
        """Reject a pending person, removing them permanently (caregiver only).

        Args:
            person_id: The pending person's ID.
        """
        if not session.is_caregiver:
            return _FORBIDDEN
        if not workflow.reject(person_id):
            return json.dumps({
                "status": "not_found",
                "person_id": person_id,
                "message": "No pending person with that ID.",
            })
        return json.dumps({
            "status": "rejected",
            "person_id": person_id,
            "message": "The person has been removed from the system.",
        })

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    @mcp.tool
    async def recognize_person(ctx: Context) -> str:
        """Identify the person in front of the camera.

        This is a simulation: it picks one of the approved people at random
        and records that they were just met.
        """
        person = recognizer.recognize()
        if person is None:
            return json.dumps({
                "status": "no_people",
                "message": "No approved people to recognize yet.",
            })
        return json.dumps({
            "status": "recognized",
            "simulated": True,
            "person": person.to_dict(),
        })

