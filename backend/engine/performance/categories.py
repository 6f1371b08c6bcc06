"""Route classified feeder rows into analysis categories.

Categories are not exclusive: a row may land in several rule buckets and
in ``Positive Variance`` at the same time.  Rows without sufficient
last-day data land in none.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from engine.performance import compliance
from engine.performance.compliance import ComplianceResult
from engine.performance.date_range import format_day
from engine.performance.matrix import FeederMatrixRow

FAILED_CHECKS_SEPARATOR = ", "


class AnalysisCategory(str, Enum):
    """Analysis sheets, in workbook order."""
    DECLINE_VIOLATION = compliance.DECLINE_VIOLATION
    NOMINATION_LOW = compliance.NOMINATION_LOW
    NOMINATION_HIGH = compliance.NOMINATION_HIGH
    DAILY_UPTAKE_LOW = compliance.DAILY_UPTAKE_LOW
    DAILY_UPTAKE_HIGH = compliance.DAILY_UPTAKE_HIGH
    POSITIVE_VARIANCE = "Positive Variance"
    NO_FLAGS = "No Flags"
    FAILED_CHECKS_SUMMARY = "Failed Checks Summary"

    @property
    def sheet_title(self) -> str:
        return self.value


ANALYSIS_CATEGORIES: tuple[AnalysisCategory, ...] = tuple(AnalysisCategory)


@dataclass(frozen=True)
class FailedCheckSummary:
    """One summary-sheet line for a feeder that failed at least one rule."""
    region: str
    business_hub: str
    feeder_name: str
    date: str
    failed_checks: tuple[str, ...]

    @property
    def joined_checks(self) -> str:
        return FAILED_CHECKS_SEPARATOR.join(self.failed_checks)

    def as_row(self) -> tuple[str, str, str, str, str]:
        return (
            self.region,
            self.business_hub,
            self.feeder_name,
            self.date,
            self.joined_checks,
        )


@dataclass(frozen=True)
class CategoryAssignment:
    """Which categories a feeder row belongs to."""
    feeder_id: str
    categories: tuple[AnalysisCategory, ...]
    summary: FailedCheckSummary | None = None

    def __contains__(self, category: AnalysisCategory) -> bool:
        return category in self.categories


def route_feeder(row: FeederMatrixRow, result: ComplianceResult) -> CategoryAssignment:
    """Assign *row* to its categories given its compliance *result*."""
    feeder = row.feeder
    if not result.sufficient:
        return CategoryAssignment(feeder_id=feeder.id, categories=())

    categories = [AnalysisCategory(label) for label in result.failed_checks]

    if row.last.variance >= 0:
        categories.append(AnalysisCategory.POSITIVE_VARIANCE)

    summary = None
    if result.failed_checks:
        categories.append(AnalysisCategory.FAILED_CHECKS_SUMMARY)
        summary = FailedCheckSummary(
            region=feeder.region,
            business_hub=feeder.business_hub,
            feeder_name=feeder.name,
            date=format_day(row.last.day),
            failed_checks=result.failed_checks,
        )
    else:
        categories.append(AnalysisCategory.NO_FLAGS)

    ordered = tuple(c for c in ANALYSIS_CATEGORIES if c in categories)
    return CategoryAssignment(feeder_id=feeder.id, categories=ordered, summary=summary)
