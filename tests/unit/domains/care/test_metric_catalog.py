"""Tests for the packaged metric catalog."""

from __future__ import annotations

from companion.domains.care.domain_logic.metric_catalog import (
    default_metrics,
    get_metric_catalog,
    load_metric_catalog,
)


class TestPackagedCatalog:
    def test_presets(self):
        catalog = get_metric_catalog()
        heart = catalog.find_preset("heart rate")
        assert heart.unit == "bpm"
        assert heart.target == 80.0
        assert catalog.find_preset("Weight").target is None
        assert catalog.find_preset("Unknown") is None

    def test_relations_end_with_other(self):
        relations = get_metric_catalog().relations
        assert "Daughter" in relations
        assert relations[-1] == "Other"

    def test_catalog_is_cached(self):
        assert get_metric_catalog() is get_metric_catalog()


class TestDefaultMetrics:
    def test_starter_readings(self):
        metrics = default_metrics("2026-01-01T00:00:00+00:00")
        assert [(m.id, m.name, m.value) for m in metrics] == [
            ("1", "Heart Rate", 72.0),
            ("2", "Blood Pressure", 120.0),
            ("3", "Temperature", 98.6),
            ("4", "Hydration", 6.0),
        ]
        assert metrics[3].status == "warning"
        assert metrics[1].trend == "down"
        assert metrics[2].target is None
        assert all(m.timestamp == "2026-01-01T00:00:00+00:00" for m in metrics)


class TestLoadCatalog:
    def test_custom_file(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "presets:\n"
            "  - name: Oxygen\n"
            "    unit: '%'\n"
            "    target: 97\n"
            "relations: [Friend]\n",
            encoding="utf-8",
        )
        catalog = load_metric_catalog(path)
        assert catalog.presets[0].name == "Oxygen"
        assert catalog.presets[0].target == 97.0
        assert catalog.defaults == ()
        assert catalog.relations == ("Friend",)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        catalog = load_metric_catalog(path)
        assert catalog.presets == ()
