"""Dashboard summary counts."""

from __future__ import annotations

from typing import Any

from companion.core.storage.repository import CareRepository


def summarize(repository: CareRepository) -> dict[str, Any]:
    """Counts shown on the home screen, plus the most recently met person."""
    counts = repository.count_people_by_status()
    metrics = repository.list_health_metrics()

    met = [p for p in repository.list_people(status="approved") if p.last_met]
    last_met = max(met, key=lambda p: p.last_met) if met else None

    return {
        "people_total": counts["total"],
        "people_approved": counts["approved"],
        "people_pending": counts["pending"],
        "metrics_total": len(metrics),
        "metrics_critical": sum(1 for m in metrics if m.status == "critical"),
        "metrics_warning": sum(1 for m in metrics if m.status == "warning"),
        "medical_reports": len(repository.list_medical_reports()),
        "last_recognized": (
            {"id": last_met.id, "name": last_met.name, "last_met": last_met.last_met}
            if last_met
            else None
        ),
    }
