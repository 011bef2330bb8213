import pytest

from chargeview.aggregate import (
    DatasetSlot,
    change_time_scale,
    params_for_scale,
    regenerate,
    select_series,
)
from chargeview.data import parse_dataset
from chargeview.errors import DomainError, GeneratorFailure, MalformedDatasetError
from chargeview.fleet import Fleet
from chargeview.generator import generate
from chargeview.models import ChartSeriesPoint, SimulationDataset, TimeScale


def test_series_lengths_per_scale(make_params):
    day = generate(make_params(1), seed=1)
    month = generate(make_params(30), seed=1)
    year = generate(make_params(365), seed=1)

    assert len(select_series(day, "day")) == 24
    assert len(select_series(month, "month")) == 30
    assert len(select_series(year, "year")) == 12


def test_series_projects_counts_and_power(wire_payload):
    dataset = parse_dataset(wire_payload)
    points = select_series(dataset, TimeScale.DAY)

    assert points[5] == ChartSeriesPoint(label="5", event_count=2, energy_kwh=5.0)
    year = select_series(dataset, TimeScale.YEAR)
    assert [p.label for p in year] == [str(m) for m in range(1, 13)]
    assert year[0].event_count == 12


def test_missing_series_is_malformed():
    dataset = SimulationDataset(hourly=None, daily=[], monthly=[])
    with pytest.raises(MalformedDatasetError):
        select_series(dataset, "day")
    # other scales are unaffected
    assert select_series(dataset, "month") == []


def test_unknown_scale_rejected(year_dataset):
    with pytest.raises(DomainError):
        select_series(year_dataset, "week")


def test_scale_parse_is_case_insensitive():
    assert TimeScale.parse(" Month ") is TimeScale.MONTH
    assert TimeScale.parse(TimeScale.YEAR) is TimeScale.YEAR


def test_params_for_scale_uses_canonical_days():
    fleet = Fleet(point_count=4, arrival_multiplier=1.5, charging_power_kw=22.0)
    assert params_for_scale(fleet, "day").days_to_simulate == 1
    assert params_for_scale(fleet, "month").days_to_simulate == 30
    params = params_for_scale(fleet, "year")
    assert params.days_to_simulate == 365
    assert params.point_count == 4
    assert params.charging_power_kw == 22.0


def test_invalid_fleet_rejected_before_generation():
    calls = []

    def generator(params):
        calls.append(params)
        return generate(params)

    with pytest.raises(DomainError):
        change_time_scale(Fleet(point_count=0), "day", generator)
    assert calls == []


def test_regenerate_wraps_generator_errors(make_params):
    def broken(params):
        raise ConnectionError("simulation service down")

    with pytest.raises(GeneratorFailure) as info:
        regenerate(make_params(1), broken)
    assert isinstance(info.value.__cause__, ConnectionError)


def test_change_time_scale_returns_matching_series():
    dataset, series = change_time_scale(Fleet(), "month", lambda p: generate(p, seed=3))

    assert dataset.parameters.days_to_simulate == 30
    assert len(series) == 30
    assert sum(p.event_count for p in series) == dataset.total_events


def test_selection_is_repeatable(year_dataset):
    assert select_series(year_dataset, "year") == select_series(year_dataset, "year")


def test_slot_discards_stale_results(year_dataset, make_params):
    slot = DatasetSlot()
    month = generate(make_params(30), seed=2)

    older = slot.begin()
    newer = slot.begin()
    assert slot.commit(newer, month, "month") is True
    assert slot.commit(older, year_dataset, "year") is False

    dataset, scale = slot.current
    assert dataset is month
    assert scale is TimeScale.MONTH


def test_slot_replaces_dataset_wholesale(year_dataset, make_params):
    slot = DatasetSlot()
    assert slot.current is None

    first = slot.begin()
    slot.commit(first, year_dataset, "year")
    day = generate(make_params(1), seed=2)
    second = slot.begin()
    slot.commit(second, day, "day")

    assert slot.current == (day, TimeScale.DAY)
    # the superseded dataset is untouched
    assert len(year_dataset.daily) == 365


def test_slot_rejects_unknown_ticket(year_dataset):
    slot = DatasetSlot()
    with pytest.raises(DomainError):
        slot.commit(5, year_dataset, "year")
