"""Select the chart series matching a time scale and regenerate datasets."""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

from .errors import DomainError, GeneratorFailure, MalformedDatasetError
from .fleet import Fleet
from .generator import generate
from .models import (
    ChartSeriesPoint,
    SimulationDataset,
    SimulationParameters,
    TimeScale,
)

logger = logging.getLogger(__name__)

Generator = Callable[[SimulationParameters], SimulationDataset]

# Series attribute and index field exposed for each scale
_SERIES_FOR_SCALE = {
    TimeScale.DAY: ("hourly", "hour"),
    TimeScale.MONTH: ("daily", "day"),
    TimeScale.YEAR: ("monthly", "month"),
}


def select_series(
    dataset: SimulationDataset, time_scale: TimeScale | str
) -> List[ChartSeriesPoint]:
    """Project the series for ``time_scale`` into chart points."""
    scale = TimeScale.parse(time_scale)
    attr, index_field = _SERIES_FOR_SCALE[scale]
    records = getattr(dataset, attr, None)
    if records is None:
        raise MalformedDatasetError(
            f"Dataset has no {attr} series required for the '{scale.value}' scale"
        )
    points = [
        ChartSeriesPoint(
            label=str(getattr(r, index_field)),
            event_count=r.events,
            energy_kwh=r.total_power,
        )
        for r in records
    ]
    logger.debug("Selected %d %s points for %s", len(points), attr, scale.value)
    return points


def params_for_scale(fleet: Fleet, time_scale: TimeScale | str) -> SimulationParameters:
    scale = TimeScale.parse(time_scale)
    return SimulationParameters(
        point_count=fleet.point_count,
        arrival_multiplier=fleet.arrival_multiplier,
        charging_power_kw=fleet.charging_power_kw,
        days_to_simulate=scale.days,
    )


def regenerate(
    params: SimulationParameters, generator: Generator = generate
) -> SimulationDataset:
    """Produce a fresh dataset for ``params``.

    Anything raised by ``generator`` is re-raised as :class:`GeneratorFailure`.
    """
    logger.debug("Regenerating dataset with %s", params)
    try:
        return generator(params)
    except Exception as exc:
        raise GeneratorFailure(f"Simulation generator failed: {exc}") from exc


def change_time_scale(
    fleet: Fleet,
    time_scale: TimeScale | str,
    generator: Generator = generate,
) -> Tuple[SimulationDataset, List[ChartSeriesPoint]]:
    """Handle a time-scale change: new dataset and its chart series."""
    scale = TimeScale.parse(time_scale)
    dataset = regenerate(params_for_scale(fleet, scale), generator)
    return dataset, select_series(dataset, scale)


class DatasetSlot:
    """Holds the dataset currently shown.

    Each regeneration takes a ticket from :meth:`begin`; a result is only
    installed if no later ticket has been committed before it, so a slow
    stale run never overwrites a newer dataset.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._committed = 0
        self._current: Optional[Tuple[SimulationDataset, TimeScale]] = None

    def begin(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def commit(
        self, ticket: int, dataset: SimulationDataset, time_scale: TimeScale | str
    ) -> bool:
        scale = TimeScale.parse(time_scale)
        with self._lock:
            if ticket > self._issued:
                raise DomainError(f"Unknown ticket {ticket}")
            if ticket < self._committed:
                logger.info(
                    "Discarding stale dataset %d (current is %d)", ticket, self._committed
                )
                return False
            self._committed = ticket
            self._current = (dataset, scale)
            return True

    @property
    def current(self) -> Optional[Tuple[SimulationDataset, TimeScale]]:
        with self._lock:
            return self._current
