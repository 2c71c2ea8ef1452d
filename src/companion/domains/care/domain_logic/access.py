"""Patient / caregiver mode switching behind a PIN.

The PIN is a fixed-value comparison from settings. It keeps the patient out
of caregiver screens; it is not an authentication mechanism.
"""

from __future__ import annotations

import logging
from typing import Literal

logger = logging.getLogger(__name__)

Mode = Literal["patient", "caregiver"]


class CareSession:
    """In-process mode state shared by the tool layer."""

    def __init__(self, caregiver_pin: str) -> None:
        self._pin = caregiver_pin
        self._mode: Mode = "patient"

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def is_caregiver(self) -> bool:
        return self._mode == "caregiver"

    def unlock(self, pin: str) -> bool:
        """Switch to caregiver mode if ``pin`` matches. Returns success."""
        if pin != self._pin:
            logger.info("Caregiver unlock failed")
            return False
        self._mode = "caregiver"
        logger.info("Caregiver mode unlocked")
        return True

    def lock(self) -> None:
        self._mode = "patient"
