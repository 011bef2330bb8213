import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from chargeview.generator import generate
from chargeview.models import SimulationParameters


def _params(days: int, points: int = 10) -> SimulationParameters:
    return SimulationParameters(
        point_count=points,
        arrival_multiplier=1.0,
        charging_power_kw=11.0,
        days_to_simulate=days,
    )


@pytest.fixture
def make_params():
    return _params


@pytest.fixture
def year_dataset():
    return generate(_params(365), seed=7)


@pytest.fixture
def wire_payload():
    """Dataset in the camelCase format external generators send."""
    return {
        "hourlyData": [
            {"hour": h, "events": h % 3, "totalPower": float(h)} for h in range(24)
        ],
        "dailyData": [{"day": 1, "events": 12, "totalPower": 80.5}],
        "monthlyData": [
            {"month": m, "events": 12 if m == 1 else 0, "totalPower": 80.5 if m == 1 else 0.0}
            for m in range(1, 13)
        ],
        "totalEnergyCharged": 80.5,
        "totalEvents": 12,
        "peakPowerLoad": 33.0,
        "averageEventsPerDay": 12.0,
        "heatmapData": [{"date": "2024-01-01", "count": 12}],
    }
