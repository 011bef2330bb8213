"""Stochastic generator for simulated charging-network activity."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List

import numpy as np

from .models import (
    DailyRecord,
    HeatmapSample,
    HourlyRecord,
    MonthlyRecord,
    SimulationDataset,
    SimulationParameters,
)

logger = logging.getLogger(__name__)

# Expected arrivals per charging point for each hour of the day. Morning
# commute and evening return peaks, quiet nights.
HOURLY_ARRIVAL_PROFILE = np.array(
    [
        0.02, 0.01, 0.01, 0.01, 0.02, 0.04,
        0.08, 0.14, 0.18, 0.15, 0.10, 0.09,
        0.10, 0.09, 0.08, 0.09, 0.12, 0.17,
        0.20, 0.18, 0.13, 0.09, 0.05, 0.03,
    ]
)

# Mean plugged-in charging time of one session (hours)
MEAN_SESSION_HOURS = 1.5
DEFAULT_YEAR = 2024


def generate(
    params: SimulationParameters,
    *,
    seed: int | None = None,
    year: int = DEFAULT_YEAR,
) -> SimulationDataset:
    """Simulate ``params.days_to_simulate`` days starting on 1 January of ``year``."""
    rng = np.random.default_rng(seed)
    days = params.days_to_simulate

    rates = HOURLY_ARRIVAL_PROFILE * params.point_count * params.arrival_multiplier
    events = rng.poisson(rates, size=(days, 24))
    # A sum of n exponential session lengths is gamma(n) distributed
    durations = np.where(
        events > 0,
        rng.gamma(np.maximum(events, 1), MEAN_SESSION_HOURS),
        0.0,
    )
    energy = durations * params.charging_power_kw

    concurrent = np.minimum(events, params.point_count)
    peak_power = float(concurrent.max() * params.charging_power_kw)

    hourly: List[HourlyRecord] = [
        HourlyRecord(
            hour=hour,
            events=int(events[:, hour].sum()),
            total_power=round(float(energy[:, hour].sum()), 2),
        )
        for hour in range(24)
    ]

    first_day = date(year, 1, 1)
    daily: List[DailyRecord] = []
    heatmap: List[HeatmapSample] = []
    month_events = np.zeros(12, dtype=int)
    month_energy = np.zeros(12)
    for index in range(days):
        day_events = int(events[index].sum())
        day_energy = float(energy[index].sum())
        current = first_day + timedelta(days=index)
        daily.append(
            DailyRecord(day=index + 1, events=day_events, total_power=round(day_energy, 2))
        )
        heatmap.append(HeatmapSample(date=current, count=day_events))
        # Runs longer than a year wrap onto the same months
        month_events[current.month - 1] += day_events
        month_energy[current.month - 1] += day_energy

    monthly = [
        MonthlyRecord(
            month=month + 1,
            events=int(month_events[month]),
            total_power=round(float(month_energy[month]), 2),
        )
        for month in range(12)
    ]

    total_events = int(events.sum())
    dataset = SimulationDataset(
        hourly=hourly,
        daily=daily,
        monthly=monthly,
        total_energy_charged=round(float(energy.sum()), 2),
        total_events=total_events,
        peak_power_load=round(peak_power, 2),
        average_events_per_day=round(total_events / days, 2),
        heatmap=heatmap,
        parameters=params,
    )
    logger.debug(
        "Simulated %d days for %d points: %d events, %.1f kWh",
        days,
        params.point_count,
        total_events,
        dataset.total_energy_charged,
    )
    return dataset
