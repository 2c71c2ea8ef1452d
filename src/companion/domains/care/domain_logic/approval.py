"""Approval workflow for people added from the patient's side.

States are ``pending`` and ``approved``. Rejection is not a state: a rejected
person is deleted outright, with no tombstone.

The workflow trusts its caller to have checked caregiver privileges.
"""

from __future__ import annotations

import logging

from companion.core.storage.models import Person
from companion.core.storage.repository import CareRepository

logger = logging.getLogger(__name__)


class ApprovalWorkflow:
    """Moves pending people to approved, or removes them.

    Usage::

        workflow = ApprovalWorkflow(repository)
        for person in workflow.list_pending():
            workflow.approve(person.id)
    """

    def __init__(self, repository: CareRepository) -> None:
        self._repo = repository

    def list_pending(self) -> list[Person]:
        return self._repo.list_people(status="pending")

    def approve(self, person_id: str) -> Person | None:
        """Approve a pending person.

        Returns:
            The approved record, or None if the id is unknown or the person
            is already approved (nothing is written in either case).
        """
        person = self._repo.get_person(person_id)
        if person is None or person.status != "pending":
            return None
        approved = self._repo.set_person_status(person_id, "approved")
        if approved is not None:
            logger.info("Approved person %s", person_id)
        return approved

    def reject(self, person_id: str) -> bool:
        """Permanently delete a pending person.

        Returns:
            True if a pending person was removed, False if the id is unknown
            or the person is not pending.
        """
        person = self._repo.get_person(person_id)
        if person is None or person.status != "pending":
            return False
        removed = self._repo.delete_person(person_id)
        if removed:
            logger.info("Rejected and removed person %s", person_id)
        return removed
