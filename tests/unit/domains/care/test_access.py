"""Tests for patient / caregiver mode switching."""

from __future__ import annotations

from companion.domains.care.domain_logic.access import CareSession


class TestCareSession:
    def test_starts_in_patient_mode(self):
        session = CareSession("1234")
        assert session.mode == "patient"
        assert not session.is_caregiver

    def test_correct_pin_unlocks(self):
        session = CareSession("1234")
        assert session.unlock("1234") is True
        assert session.mode == "caregiver"

    def test_wrong_pin_stays_locked(self):
        session = CareSession("1234")
        assert session.unlock("0000") is False
        assert session.unlock("") is False
        assert session.mode == "patient"

    def test_lock(self):
        session = CareSession("1234")
        session.unlock("1234")
        session.lock()
        assert session.mode == "patient"
