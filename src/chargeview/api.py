"""FastAPI backend serving the charging network dashboard."""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .aggregate import DatasetSlot, params_for_scale, regenerate, select_series
from .data import make_generator
from .errors import DomainError, GeneratorFailure, MalformedDatasetError
from .fleet import Fleet
from .heatmap import build_grid, grid_to_dict, resolve_samples, to_day
from .logging_utils import setup_logging
from .models import SimulationDataset, TimeScale, summary
from .render import BUCKET_COLORS, NO_ACTIVITY_COLOR, chart_rows

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Runtime configuration for the backend service."""

    fleet: Fleet
    default_scale: TimeScale
    seed: int | None
    generator_url: str | None
    calendar_start: str
    calendar_end: str
    cors_origins: list[str]
    debug: bool


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _parse_seed(value: Optional[str]) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer CHARGEVIEW_SEED '%s'", value)
        return None


def load_settings() -> Settings:
    """Load backend configuration from environment variables."""

    default_fleet = Fleet()
    fleet = Fleet(
        point_count=int(
            os.getenv("CHARGEVIEW_POINT_COUNT", str(default_fleet.point_count))
        ),
        arrival_multiplier=float(
            os.getenv(
                "CHARGEVIEW_ARRIVAL_MULTIPLIER", str(default_fleet.arrival_multiplier)
            )
        ),
        charging_power_kw=float(
            os.getenv(
                "CHARGEVIEW_CHARGING_POWER_KW", str(default_fleet.charging_power_kw)
            )
        ),
    )
    default_scale = TimeScale.parse(os.getenv("CHARGEVIEW_DEFAULT_SCALE", "year"))
    try:
        params_for_scale(fleet, default_scale)
    except DomainError as exc:
        raise RuntimeError(f"Invalid fleet configuration: {exc}") from exc
    calendar_start = os.getenv("CHARGEVIEW_CALENDAR_START", "2024-01-01")
    calendar_end = os.getenv("CHARGEVIEW_CALENDAR_END", "2024-12-31")
    if to_day(calendar_end) < to_day(calendar_start):
        raise RuntimeError("CHARGEVIEW_CALENDAR_END is before CHARGEVIEW_CALENDAR_START")

    cors_env = os.getenv("CHARGEVIEW_CORS_ORIGINS", "*")
    cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]

    return Settings(
        fleet=fleet,
        default_scale=default_scale,
        seed=_parse_seed(os.getenv("CHARGEVIEW_SEED")),
        generator_url=os.getenv("CHARGEVIEW_GENERATOR_URL") or None,
        calendar_start=calendar_start,
        calendar_end=calendar_end,
        cors_origins=cors_origins or ["*"],
        debug=_parse_bool(os.getenv("CHARGEVIEW_DEBUG"), False),
    )

_INITIAL_SETTINGS = load_settings()

app = FastAPI(title="Chargeview API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=_INITIAL_SETTINGS.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


def _require_settings() -> Settings:
    settings = getattr(app.state, "settings", None)
    if settings is None:  # pragma: no cover - startup should populate
        raise HTTPException(status_code=503, detail="Service not initialised")
    return settings


def _require_current() -> Tuple[SimulationDataset, TimeScale]:
    slot: DatasetSlot | None = getattr(app.state, "slot", None)
    current = slot.current if slot is not None else None
    if current is None:
        raise HTTPException(status_code=503, detail="No simulation data available yet")
    return current


def _parse_scale(value: str) -> TimeScale:
    try:
        return TimeScale.parse(value)
    except DomainError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _switch_scale(settings: Settings, scale: TimeScale) -> Tuple[SimulationDataset, TimeScale]:
    """Regenerate the dataset for ``scale`` and install it.

    On failure the previous dataset stays in place.
    """
    slot: DatasetSlot = app.state.slot
    ticket = slot.begin()
    params = params_for_scale(settings.fleet, scale)
    generator = make_generator(settings.generator_url, settings.seed)
    try:
        dataset = await asyncio.to_thread(regenerate, params, generator)
        # Validate before installing so a broken dataset never replaces a good one
        select_series(dataset, scale)
        resolve_samples(dataset.heatmap)
    except (GeneratorFailure, MalformedDatasetError, DomainError) as exc:
        logger.exception("Regeneration for %s scale failed; keeping previous data", scale.value)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if slot.commit(ticket, dataset, scale):
        logger.info("Installed %s dataset (%d events)", scale.value, dataset.total_events)
    return slot.current


def _dashboard_payload(
    settings: Settings, dataset: SimulationDataset, scale: TimeScale
) -> Dict[str, Any]:
    try:
        series = select_series(dataset, scale)
        grid = build_grid(settings.calendar_start, settings.calendar_end, dataset.heatmap)
    except MalformedDatasetError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except DomainError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {
        "scale": scale.value,
        "parameters": asdict(dataset.parameters) if dataset.parameters else None,
        "summary": summary(dataset),
        "series": chart_rows(scale, series),
        "calendar": grid_to_dict(grid),
        "colors": {"buckets": BUCKET_COLORS, "no_activity": NO_ACTIVITY_COLOR},
    }


@app.on_event("startup")
async def on_startup() -> None:
    settings = load_settings()
    setup_logging(settings.debug)
    logger.debug("Loaded settings: %s", settings)
    app.state.settings = settings
    if settings.cors_origins != _INITIAL_SETTINGS.cors_origins:
        logger.warning(
            "CORS origin configuration changed to %s after startup; restart required for changes to apply.",
            settings.cors_origins,
        )
    app.state.slot = DatasetSlot()
    try:
        await _switch_scale(settings, settings.default_scale)
    except HTTPException:
        # /api/heatmap answers 503 until a regeneration succeeds
        logger.error("Initial simulation failed")


@app.get("/healthz")
async def healthz() -> Dict[str, Any]:
    settings = _require_settings()
    slot: DatasetSlot | None = getattr(app.state, "slot", None)
    current = slot.current if slot is not None else None
    return {
        "status": "ok",
        "scale": current[1].value if current else None,
        "generator": settings.generator_url or "local",
    }


@app.get("/api/dashboard")
async def dashboard(scale: Optional[str] = Query(None)) -> Dict[str, Any]:
    settings = _require_settings()
    requested = _parse_scale(scale) if scale is not None else None
    slot: DatasetSlot | None = getattr(app.state, "slot", None)
    current = slot.current if slot is not None else None
    if current is None or (requested is not None and requested is not current[1]):
        current = await _switch_scale(settings, requested or settings.default_scale)
    dataset, current_scale = current
    return _dashboard_payload(settings, dataset, current_scale)


@app.post("/api/timescale")
async def change_scale(scale: str = Query(...)) -> Dict[str, Any]:
    settings = _require_settings()
    requested = _parse_scale(scale)
    dataset, current_scale = await _switch_scale(settings, requested)
    return _dashboard_payload(settings, dataset, current_scale)


@app.get("/api/heatmap")
async def heatmap(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
) -> Dict[str, Any]:
    settings = _require_settings()
    dataset, _ = _require_current()
    try:
        grid = build_grid(
            start or settings.calendar_start,
            end or settings.calendar_end,
            dataset.heatmap,
        )
    except DomainError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return grid_to_dict(grid)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    import uvicorn

    uvicorn.run(
        "chargeview.api:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
