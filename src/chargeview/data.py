import json
import logging
from dataclasses import asdict, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence
import requests

from .errors import MalformedDatasetError
from .generator import generate
from .heatmap import to_day
from .models import (
    DailyRecord,
    HeatmapSample,
    HourlyRecord,
    MonthlyRecord,
    SimulationDataset,
    SimulationParameters,
)

logger = logging.getLogger(__name__)

# Key aliases accepted from external producers (camelCase wire format first)
_SERIES_KEYS = {
    "hourly": ("hourlyData", "hourly"),
    "daily": ("dailyData", "daily"),
    "monthly": ("monthlyData", "monthly"),
}
_HEATMAP_KEYS = ("heatmapData", "heatmap")
_SCALAR_KEYS = {
    "total_energy_charged": ("totalEnergyCharged", "total_energy_charged"),
    "peak_power_load": ("peakPowerLoad", "peak_power_load"),
    "average_events_per_day": ("averageEventsPerDay", "average_events_per_day"),
}
_EVENTS_KEYS = ("totalEvents", "total_events")
_POWER_KEYS = ("totalPower", "total_power")


def _first(entry: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def _parse_count(value: Any, what: str) -> int:
    """Return ``value`` as a non-negative integer count.

    Integral floats such as ``12.0`` are accepted; booleans, fractions and
    negative numbers are not.
    """
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedDatasetError(f"Invalid {what}: {value!r}")
    return value


def _parse_records(raw: Any, index_key: str, record_type: Callable) -> List[Any]:
    if not isinstance(raw, list):
        raise MalformedDatasetError(f"Series '{index_key}' must be a list")
    records = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise MalformedDatasetError(f"Invalid {index_key} record: {item!r}")
        index = item.get(index_key)
        events = item.get("events")
        power = _first(item, _POWER_KEYS)
        if index is None or events is None or power is None:
            raise MalformedDatasetError(f"Incomplete {index_key} record: {item!r}")
        try:
            records.append(
                record_type(int(index), int(events), float(power))
            )
        except (TypeError, ValueError) as exc:
            raise MalformedDatasetError(f"Invalid {index_key} record: {item!r}") from exc
    return records


def _parse_heatmap(raw: Any) -> List[HeatmapSample]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise MalformedDatasetError("Heatmap data must be a list")
    samples = []
    for item in raw:
        try:
            samples.append(
                HeatmapSample(
                    date=to_day(item["date"]),
                    count=_parse_count(item["count"], "heatmap count"),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedDatasetError(f"Invalid heatmap sample: {item!r}") from exc
    return samples


def _parse_parameters(raw: Any) -> SimulationParameters | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        return SimulationParameters(
            point_count=int(_first(raw, ("numberOfChargePoints", "point_count"))),
            arrival_multiplier=float(
                _first(raw, ("arrivalProbabilityMultiplier", "arrival_multiplier"))
            ),
            charging_power_kw=float(
                _first(raw, ("chargingPowerPerPointKW", "charging_power_kw"))
            ),
            days_to_simulate=int(_first(raw, ("daysToSimulate", "days_to_simulate"))),
        )
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable parameters: %s", raw)
        return None


def parse_dataset(payload: Any) -> SimulationDataset:
    """Convert a generator payload into a dataset.

    Series missing from the payload are left as ``None``.
    """
    if not isinstance(payload, Mapping):
        raise MalformedDatasetError("Simulation payload must be a JSON object")
    series: Dict[str, Any] = {}
    for name, keys in _SERIES_KEYS.items():
        raw = _first(payload, keys)
        if raw is None:
            logger.debug("Payload has no %s series", name)
            series[name] = None
            continue
        series[name] = raw
    scalars: Dict[str, Any] = {}
    for name, keys in _SCALAR_KEYS.items():
        value = _first(payload, keys)
        try:
            scalars[name] = float(value) if value is not None else 0.0
        except (TypeError, ValueError) as exc:
            raise MalformedDatasetError(f"Invalid value for {name}: {value!r}") from exc
    events = _first(payload, _EVENTS_KEYS)
    dataset = SimulationDataset(
        hourly=(
            _parse_records(series["hourly"], "hour", HourlyRecord)
            if series["hourly"] is not None
            else None
        ),
        daily=(
            _parse_records(series["daily"], "day", DailyRecord)
            if series["daily"] is not None
            else None
        ),
        monthly=(
            _parse_records(series["monthly"], "month", MonthlyRecord)
            if series["monthly"] is not None
            else None
        ),
        total_energy_charged=scalars["total_energy_charged"],
        total_events=_parse_count(events, "total_events") if events is not None else 0,
        peak_power_load=scalars["peak_power_load"],
        average_events_per_day=scalars["average_events_per_day"],
        heatmap=_parse_heatmap(_first(payload, _HEATMAP_KEYS)),
        parameters=_parse_parameters(payload.get("parameters")),
    )
    logger.debug("Parsed dataset with %d heatmap samples", len(dataset.heatmap))
    return dataset


def dataset_to_dict(dataset: SimulationDataset) -> Dict[str, Any]:
    """Return a JSON-ready representation of ``dataset``."""
    return {
        "hourly": [asdict(r) for r in dataset.hourly] if dataset.hourly is not None else None,
        "daily": [asdict(r) for r in dataset.daily] if dataset.daily is not None else None,
        "monthly": [asdict(r) for r in dataset.monthly] if dataset.monthly is not None else None,
        "total_energy_charged": dataset.total_energy_charged,
        "total_events": dataset.total_events,
        "peak_power_load": dataset.peak_power_load,
        "average_events_per_day": dataset.average_events_per_day,
        "heatmap": [
            {"date": s.date.isoformat(), "count": s.count} for s in dataset.heatmap
        ],
        "parameters": asdict(dataset.parameters) if dataset.parameters else None,
    }


def load_dataset(path: Path) -> SimulationDataset:
    """Read a dataset previously written as JSON."""
    logger.debug("Loading dataset from %s", path)
    with path.open() as f:
        payload = json.load(f)
    return parse_dataset(payload)


def fetch_dataset(url: str, params: SimulationParameters) -> SimulationDataset:
    """Ask a remote simulation service for a dataset."""
    body = {
        "numberOfChargePoints": params.point_count,
        "arrivalProbabilityMultiplier": params.arrival_multiplier,
        "chargingPowerPerPointKW": params.charging_power_kw,
        "daysToSimulate": params.days_to_simulate,
    }
    logger.debug("Requesting dataset from %s with %s", url, body)
    resp = requests.post(url, json=body, timeout=30)
    resp.raise_for_status()
    logger.debug("Fetched %d bytes from remote", len(resp.content))
    dataset = parse_dataset(resp.json())
    if dataset.parameters is None:
        dataset = replace(dataset, parameters=params)
    return dataset


def remote_generator(url: str) -> Callable[[SimulationParameters], SimulationDataset]:
    """Return a generator callable backed by :func:`fetch_dataset`."""

    def _generate(params: SimulationParameters) -> SimulationDataset:
        return fetch_dataset(url, params)

    return _generate


def make_generator(
    url: str | None = None, seed: int | None = None
) -> Callable[[SimulationParameters], SimulationDataset]:
    """Return the remote generator for ``url`` or the local simulation."""
    if url:
        logger.debug("Using remote generator at %s", url)
        return remote_generator(url)
    return partial(generate, seed=seed)
