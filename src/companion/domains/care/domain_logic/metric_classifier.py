"""Status and trend derivation for new health measurements.

Status is a deterministic function of the value and its optional target.
Trend comes from a pluggable :class:`TrendEstimator`: the simulated variant
picks at random, the previous-reading variant compares against the last
stored reading of the same metric.
"""

from __future__ import annotations

import logging
import random
from typing import Protocol, Sequence

from companion.core.storage.models import METRIC_TRENDS, HealthMetric
from companion.core.storage.validation import ValidationError, parse_number

logger = logging.getLogger(__name__)

# Ratio bands (value / target), inclusive
NORMAL_BAND = (0.8, 1.2)
WARNING_BAND = (0.6, 1.4)


def classify_status(value: float, target: float | None = None) -> str:
    """Classify a reading as 'normal', 'warning' or 'critical'.

    Without a target every reading is normal. Otherwise the ratio
    ``value / target`` is checked against the normal band, then the wider
    warning band.

    Raises:
        ValidationError: If the target is zero or either number is not finite.
    """
    value = parse_number(value, "value")
    if target is None:
        return "normal"
    target = parse_number(target, "target")
    if target == 0:
        raise ValidationError("target must be non-zero")

    ratio = value / target
    if NORMAL_BAND[0] <= ratio <= NORMAL_BAND[1]:
        return "normal"
    if WARNING_BAND[0] <= ratio <= WARNING_BAND[1]:
        return "warning"
    return "critical"


# ---------------------------------------------------------------------------
# Trend estimators
# ---------------------------------------------------------------------------

class TrendEstimator(Protocol):
    """Derives 'up' / 'down' / 'stable' for a new reading."""

    def estimate(
        self, name: str, value: float, history: Sequence[HealthMetric]
    ) -> str: ...


class SimulatedTrendEstimator:
    """Uniformly random trend. A placeholder, not a real comparison.

    Useful for dashboard demos; pass a seeded ``random.Random`` for
    reproducible output.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def estimate(
        self, name: str, value: float, history: Sequence[HealthMetric]
    ) -> str:
        return self._rng.choice(METRIC_TRENDS)


class PreviousReadingTrendEstimator:
    """Compares a reading with the most recent stored reading of the same name.

    A first reading is 'stable'. Differences within ``tolerance`` are also
    'stable'.
    """

    def __init__(self, tolerance: float = 0.0) -> None:
        if tolerance < 0:
            raise ValueError("tolerance must be >= 0")
        self._tolerance = tolerance

    def estimate(
        self, name: str, value: float, history: Sequence[HealthMetric]
    ) -> str:
        previous = latest_reading(name, history)
        if previous is None:
            return "stable"
        diff = value - previous.value
        if diff > self._tolerance:
            return "up"
        if diff < -self._tolerance:
            return "down"
        return "stable"


def latest_reading(name: str, history: Sequence[HealthMetric]) -> HealthMetric | None:
    """Return the last reading named ``name`` (case-insensitive), or None."""
    key = name.strip().lower()
    for metric in reversed(history):
        if metric.name.strip().lower() == key:
            return metric
    return None


def create_trend_estimator(
    strategy: str, *, rng: random.Random | None = None
) -> TrendEstimator:
    """Build the trend estimator named by the ``trend_strategy`` setting."""
    if strategy == "previous_reading":
        return PreviousReadingTrendEstimator()
    if strategy == "simulated":
        logger.info("Using simulated (random) metric trends")
        return SimulatedTrendEstimator(rng)
    raise ValueError(f"Unknown trend strategy: {strategy!r}")
