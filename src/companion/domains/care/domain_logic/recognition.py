"""Face recognition stand-in.

:class:`SimulatedRecognizer` does no biometric matching: it picks an approved
person at random and records that they were just met. A real matcher would
implement the same :class:`Recognizer` protocol (and could make use of
``Person.face_encoding``).
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Protocol

from companion.core.storage.models import Person
from companion.core.storage.repository import CareRepository

logger = logging.getLogger(__name__)


class Recognizer(Protocol):
    def recognize(self) -> Person | None: ...


class SimulatedRecognizer:
    """Picks a uniformly random approved person. Not for production use."""

    def __init__(
        self, repository: CareRepository, rng: random.Random | None = None
    ) -> None:
        self._repo = repository
        self._rng = rng or random.Random()

    def recognize(self) -> Person | None:
        """Return the "recognized" person with last_met set to now.

        Returns None, without writing anything, when nobody is approved.
        """
        approved = self._repo.list_people(status="approved")
        if not approved:
            logger.info("Recognition requested with no approved people")
            return None

        chosen = approved[self._rng.randrange(len(approved))]
        updated = self._repo.update_person(
            chosen.id, last_met=datetime.now(timezone.utc).isoformat()
        )
        logger.info("Simulated recognition matched person %s", chosen.id)
        return updated
