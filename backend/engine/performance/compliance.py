"""Last-day compliance checks for feeder delivery.

Only the final day of the report window is judged, against the resolved
actual of the day before it.  Rules are evaluated independently and their
labels reported in a fixed order:

1. Day-over-day decline: consumption must strictly increase.
2. Cumulative actual versus nomination (70 % / 130 % band).
3. Daily delta versus the feeder's daily uptake (70 % / 130 % band).

Rules 1 and 3 need at least two days in the window.  A feeder whose last
day has no reading, or a non-positive one, is not classified at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from engine.performance.matrix import FeederMatrixRow

logger = logging.getLogger(__name__)

DECLINE_VIOLATION = "Actual D-0 < Actual D-1"
NOMINATION_LOW = "< 70% Nom"
NOMINATION_HIGH = "> 130% Nom"
DAILY_UPTAKE_LOW = "< 70% Daily Uptake"
DAILY_UPTAKE_HIGH = "> 130% Daily Uptake"

RULE_LABELS: tuple[str, ...] = (
    DECLINE_VIOLATION,
    NOMINATION_LOW,
    NOMINATION_HIGH,
    DAILY_UPTAKE_LOW,
    DAILY_UPTAKE_HIGH,
)


@dataclass(frozen=True)
class ComplianceThresholds:
    """Acceptance band as fractions of the expected value."""
    low_ratio: float = 0.7
    high_ratio: float = 1.3

    def check(self, value: float, expected: float) -> str | None:
        """Return "low", "high" or None if *value* is within the band."""
        if value < self.low_ratio * expected:
            return "low"
        if value > self.high_ratio * expected:
            return "high"
        return None


DEFAULT_THRESHOLDS = ComplianceThresholds()


@dataclass(frozen=True)
class ComplianceResult:
    """Outcome of classifying one feeder row.

    ``sufficient`` is False when the last day lacks a positive reading;
    ``failed_checks`` is then always empty.
    """
    feeder_id: str
    sufficient: bool
    failed_checks: tuple[str, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.sufficient and not self.failed_checks


def has_sufficient_data(row: FeederMatrixRow) -> bool:
    """True when the last day carries its own reading with a positive value."""
    last = row.last
    return last.has_reading and last.actual > 0


def classify_feeder(
    row: FeederMatrixRow,
    thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
) -> ComplianceResult:
    """Run every rule against the last day of *row*."""
    feeder = row.feeder
    if not has_sufficient_data(row):
        logger.info(
            "Skipping compliance for feeder %s (%s): insufficient data on %s",
            feeder.name, feeder.id, row.last.day,
        )
        return ComplianceResult(feeder_id=feeder.id, sufficient=False)

    multi_day = len(row.cells) > 1
    actual = row.last.actual
    nomination = row.last.nomination
    previous_actual = row.previous.actual if multi_day else 0.0

    failed: list[str] = []

    if multi_day and actual <= previous_actual:
        failed.append(DECLINE_VIOLATION)

    band = thresholds.check(actual, nomination)
    if band == "low":
        failed.append(NOMINATION_LOW)
    elif band == "high":
        failed.append(NOMINATION_HIGH)

    if multi_day:
        daily_actual = actual - previous_actual
        band = thresholds.check(daily_actual, feeder.daily_energy_uptake)
        if band == "low":
            failed.append(DAILY_UPTAKE_LOW)
        elif band == "high":
            failed.append(DAILY_UPTAKE_HIGH)

    return ComplianceResult(
        feeder_id=feeder.id, sufficient=True, failed_checks=tuple(failed)
    )
