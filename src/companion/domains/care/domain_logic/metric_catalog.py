"""Metric catalog loader — presets, starter readings and relation labels.

The catalog is a YAML file shipped with the package
(``domains/care/catalog/metrics.yaml``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from companion.core.storage.models import HealthMetric

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).resolve().parent.parent / "catalog" / "metrics.yaml"


@dataclass(frozen=True)
class MetricPreset:
    """A commonly recorded metric with its unit and optional target."""

    name: str
    unit: str = ""
    target: float | None = None


@dataclass(frozen=True)
class MetricCatalog:
    presets: tuple[MetricPreset, ...]
    defaults: tuple[dict[str, Any], ...]
    relations: tuple[str, ...]

    def find_preset(self, name: str) -> MetricPreset | None:
        key = name.strip().lower()
        for preset in self.presets:
            if preset.name.lower() == key:
                return preset
        return None


def load_metric_catalog(path: str | Path = CATALOG_PATH) -> MetricCatalog:
    """Parse a catalog YAML file."""
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    presets = tuple(
        MetricPreset(
            name=item["name"],
            unit=item.get("unit", "") or "",
            target=float(item["target"]) if item.get("target") is not None else None,
        )
        for item in data.get("presets", [])
    )
    catalog = MetricCatalog(
        presets=presets,
        defaults=tuple(data.get("defaults", [])),
        relations=tuple(data.get("relations", [])),
    )
    logger.debug(
        "Loaded metric catalog from %s: %d presets, %d defaults",
        path,
        len(catalog.presets),
        len(catalog.defaults),
    )
    return catalog


@lru_cache(maxsize=1)
def get_metric_catalog() -> MetricCatalog:
    """Return the packaged catalog (parsed once per process)."""
    return load_metric_catalog()


def default_metrics(now: str | None = None) -> list[HealthMetric]:
    """Build the starter readings, stamped with ``now`` (default: current time)."""
    timestamp = now or datetime.now(timezone.utc).isoformat()
    metrics = []
    for item in get_metric_catalog().defaults:
        target = item.get("target")
        metrics.append(HealthMetric(
            id=str(item["id"]),
            name=item["name"],
            value=float(item["value"]),
            unit=item.get("unit", "") or "",
            status=item.get("status", "normal"),
            trend=item.get("trend", "stable"),
            target=float(target) if target is not None else None,
            timestamp=timestamp,
        ))
    return metrics
