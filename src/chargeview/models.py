"""Data shapes shared by the generator, the aggregator and the calendar."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .errors import DomainError


class TimeScale(str, Enum):
    """Display granularity of the dashboard chart."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "TimeScale | str") -> "TimeScale":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise DomainError(f"Unsupported time scale '{value}'") from None

    @property
    def days(self) -> int:
        """Number of days simulated for this scale."""
        return _SCALE_DAYS[self]


_SCALE_DAYS = {
    TimeScale.DAY: 1,
    TimeScale.MONTH: 30,
    TimeScale.YEAR: 365,
}


@dataclass(frozen=True)
class SimulationParameters:
    """Inputs handed to the simulation generator."""

    point_count: int
    arrival_multiplier: float
    charging_power_kw: float
    days_to_simulate: int

    def __post_init__(self) -> None:
        for name in ("point_count", "days_to_simulate"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise DomainError(f"{name} must be a positive integer, got {value!r}")
        for name in ("arrival_multiplier", "charging_power_kw"):
            value = getattr(self, name)
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
                or value <= 0
            ):
                raise DomainError(f"{name} must be a positive finite number, got {value!r}")


@dataclass(frozen=True)
class HourlyRecord:
    hour: int
    events: int
    total_power: float


@dataclass(frozen=True)
class DailyRecord:
    day: int
    events: int
    total_power: float


@dataclass(frozen=True)
class MonthlyRecord:
    month: int
    events: int
    total_power: float


@dataclass(frozen=True)
class HeatmapSample:
    date: date
    count: int


@dataclass(frozen=True)
class SimulationDataset:
    """Output of one simulation run.

    A series is ``None`` when an external producer did not supply it; the
    aggregator reports that when the series is requested.
    """

    hourly: Optional[List[HourlyRecord]]
    daily: Optional[List[DailyRecord]]
    monthly: Optional[List[MonthlyRecord]]
    total_energy_charged: float = 0.0
    total_events: int = 0
    peak_power_load: float = 0.0
    average_events_per_day: float = 0.0
    heatmap: List[HeatmapSample] = field(default_factory=list)
    parameters: Optional[SimulationParameters] = None


@dataclass(frozen=True)
class ChartSeriesPoint:
    label: str
    event_count: int
    energy_kwh: float


@dataclass(frozen=True)
class CalendarCell:
    date: date
    # None when no sample exists for the date
    raw_count: Optional[int]
    intensity_bucket: int


@dataclass(frozen=True)
class CalendarGrid:
    start: date
    end: date
    min_count: Optional[int]
    max_count: Optional[int]
    cells: Sequence[CalendarCell]

    def __len__(self) -> int:
        return len(self.cells)


def summary(dataset: SimulationDataset) -> Dict[str, Any]:
    """Return the scalar summaries shown on the dashboard cards."""
    return {
        "total_energy_charged": dataset.total_energy_charged,
        "total_events": dataset.total_events,
        "peak_power_load": dataset.peak_power_load,
        "average_events_per_day": dataset.average_events_per_day,
    }
