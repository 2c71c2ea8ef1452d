"""Tests for the dashboard summary."""

from __future__ import annotations

import random

from companion.domains.care.domain_logic.dashboard import summarize
from companion.domains.care.domain_logic.recognition import SimulatedRecognizer


class TestSummarize:
    def test_fresh_install(self, repository):
        summary = summarize(repository)
        assert summary["people_total"] == 0
        assert summary["people_pending"] == 0
        # Starter readings: Hydration is the one warning
        assert summary["metrics_total"] == 4
        assert summary["metrics_warning"] == 1
        assert summary["metrics_critical"] == 0
        assert summary["medical_reports"] == 0
        assert summary["last_recognized"] is None

    def test_counts(self, repository):
        repository.add_person("Ana", approved=True)
        repository.add_person("Ben")
        repository.add_health_metric("Blood Sugar", 40, "mg/dL", 100)
        repository.add_medical_report("Rx", "prescription", "local-file://x")

        summary = summarize(repository)
        assert summary["people_total"] == 2
        assert summary["people_approved"] == 1
        assert summary["people_pending"] == 1
        assert summary["metrics_total"] == 5
        assert summary["metrics_critical"] == 1
        assert summary["medical_reports"] == 1

    def test_last_recognized(self, repository):
        ana = repository.add_person("Ana", approved=True)
        SimulatedRecognizer(repository, random.Random(0)).recognize()
        last = summarize(repository)["last_recognized"]
        assert last["id"] == ana.id
        assert last["name"] == "Ana"
