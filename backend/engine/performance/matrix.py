"""Day-by-day nomination / actual / variance matrix.

For a feeder with daily uptake ``u`` the expected cumulative delivery on
the i-th day of the window (1-indexed) is ``u * i``.  The actual value is
the reading recorded on exactly that day; days without a reading carry the
previous day's resolved actual forward (0 before the first reading), so a
gap shows as a flat line rather than a drop.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class FeederProfile:
    """Fully resolved feeder attributes needed by the report.

    Attributes:
        id: Feeder identifier (string form)
        name: Feeder display name
        business_hub: Owning business hub's display name
        region: Owning region's display name
        band: Capacity band (A20H, B16H, C12H, D8H or E4H)
        daily_energy_uptake: Nominal daily energy delivery
        monthly_delivery_plan: Planned delivery for the month
    """
    id: str
    name: str
    business_hub: str
    region: str
    band: str
    daily_energy_uptake: float
    monthly_delivery_plan: float = 0.0


@dataclass(frozen=True)
class ReadingPoint:
    """A single cumulative meter value on one calendar day."""
    feeder_id: str
    day: date
    cumulative_energy_consumption: float


@dataclass(frozen=True)
class DayCell:
    """Nomination, actual and variance for one feeder on one day."""
    day: date
    nomination: float
    actual: float
    variance: float
    has_reading: bool


@dataclass(frozen=True)
class FeederMatrixRow:
    """A feeder profile with its ordered day cells."""
    feeder: FeederProfile
    cells: tuple[DayCell, ...]

    @property
    def last(self) -> DayCell:
        return self.cells[-1]

    @property
    def previous(self) -> DayCell | None:
        return self.cells[-2] if len(self.cells) > 1 else None

    def nominations(self) -> NDArray[np.float64]:
        return np.array([c.nomination for c in self.cells], dtype=np.float64)

    def actuals(self) -> NDArray[np.float64]:
        return np.array([c.actual for c in self.cells], dtype=np.float64)

    def variances(self) -> NDArray[np.float64]:
        return np.array([c.variance for c in self.cells], dtype=np.float64)


def group_readings_by_feeder(
    readings: Iterable[ReadingPoint],
) -> dict[str, dict[date, float]]:
    """Bucket readings per feeder, keyed by calendar day.

    A later reading for the same (feeder, day) replaces an earlier one.
    """
    grouped: dict[str, dict[date, float]] = {}
    for reading in readings:
        grouped.setdefault(reading.feeder_id, {})[reading.day] = float(
            reading.cumulative_energy_consumption
        )
    return grouped


def build_feeder_row(
    feeder: FeederProfile,
    days: Sequence[date],
    readings_by_day: dict[date, float] | None = None,
) -> FeederMatrixRow:
    """Reconstruct one feeder's row over *days*.

    Parameters
    ----------
    feeder : FeederProfile
        Resolved feeder attributes.
    days : Sequence[date]
        Ordered calendar days of the report window.
    readings_by_day : dict[date, float] or None
        Cumulative consumption recorded on each day that has a reading.

    Returns
    -------
    FeederMatrixRow
    """
    readings_by_day = readings_by_day or {}
    n = len(days)

    nominations = float(feeder.daily_energy_uptake) * np.arange(1, n + 1, dtype=np.float64)
    actuals = np.zeros(n, dtype=np.float64)
    recorded = np.zeros(n, dtype=bool)

    carried = 0.0
    for i, day in enumerate(days):
        value = readings_by_day.get(day)
        if value is not None:
            carried = float(value)
            recorded[i] = True
        actuals[i] = carried

    variances = actuals - nominations

    cells = tuple(
        DayCell(
            day=day,
            nomination=float(nominations[i]),
            actual=float(actuals[i]),
            variance=float(variances[i]),
            has_reading=bool(recorded[i]),
        )
        for i, day in enumerate(days)
    )
    return FeederMatrixRow(feeder=feeder, cells=cells)


def build_matrix(
    feeders: Sequence[FeederProfile],
    days: Sequence[date],
    readings: Iterable[ReadingPoint],
) -> list[FeederMatrixRow]:
    """Build rows for every feeder, preserving the feeder order."""
    by_feeder = group_readings_by_feeder(readings)
    return [build_feeder_row(f, days, by_feeder.get(f.id)) for f in feeders]
