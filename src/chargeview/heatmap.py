"""Calendar heatmap: dense day grid with discrete intensity buckets."""
from __future__ import annotations

import logging
import numbers
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping

from .errors import DomainError
from .models import CalendarCell, CalendarGrid, HeatmapSample

logger = logging.getLogger(__name__)

NO_ACTIVITY_BUCKET = -1
MAX_BUCKET = 10


def to_day(value: date | datetime | str) -> date:
    """Return the calendar day of ``value``.

    Aware datetimes are converted to UTC before the time of day is dropped;
    naive ones are taken as already being UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise DomainError(f"Invalid date '{value}'") from None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise DomainError(f"Invalid date {value!r}")


def _coerce_sample(sample: HeatmapSample | Mapping[str, Any]) -> HeatmapSample:
    if isinstance(sample, HeatmapSample):
        day, count = sample.date, sample.count
    else:
        try:
            day, count = sample["date"], sample["count"]
        except (KeyError, TypeError):
            raise DomainError(f"Invalid heatmap sample {sample!r}") from None
    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise DomainError(f"Heatmap count must be an integer, got {count!r}")
    if count < 0:
        raise DomainError(f"Heatmap count must be non-negative, got {count}")
    return HeatmapSample(date=to_day(day), count=int(count))


def resolve_samples(
    samples: Iterable[HeatmapSample | Mapping[str, Any]],
) -> Dict[date, int]:
    """Map each date to its count; a later entry for a date replaces earlier ones."""
    counts: Dict[date, int] = {}
    for raw in samples:
        sample = _coerce_sample(raw)
        if sample.date in counts:
            logger.debug(
                "Duplicate heatmap sample for %s: %d replaces %d",
                sample.date,
                sample.count,
                counts[sample.date],
            )
        counts[sample.date] = sample.count
    return counts


def normalize(count: int, min_count: int, max_count: int) -> float:
    """Linear min-max normalisation of a positive count, clamped to [0, 1]."""
    if max_count == min_count:
        return 1.0
    value = (count - min_count) / (max_count - min_count)
    return min(max(value, 0.0), 1.0)


def intensity_bucket(count: int | None, min_count: int, max_count: int) -> int:
    """Return the bucket in [0, 10] for ``count`` or -1 when there is no activity."""
    if not count:
        return NO_ACTIVITY_BUCKET
    if max_count == min_count:
        return MAX_BUCKET
    # floor(normalized * 10) computed on integers so float rounding
    # cannot move a count across a bucket edge
    bucket = ((count - min_count) * MAX_BUCKET) // (max_count - min_count)
    return min(max(bucket, 0), MAX_BUCKET)


def build_grid(
    start: date | datetime | str,
    end: date | datetime | str,
    samples: Iterable[HeatmapSample | Mapping[str, Any]],
) -> CalendarGrid:
    """Build the calendar grid for the inclusive range ``start``..``end``.

    The count range used for normalisation covers every sample, including
    those outside the displayed range and duplicates whose count was
    replaced by a later entry; such samples never add cells.
    """
    start_day = to_day(start)
    end_day = to_day(end)
    if end_day < start_day:
        raise DomainError(f"End date {end_day} is before start date {start_day}")

    coerced = [_coerce_sample(sample) for sample in samples]
    min_count = min((s.count for s in coerced), default=None)
    max_count = max((s.count for s in coerced), default=None)
    counts = resolve_samples(coerced)

    length = (end_day - start_day).days + 1
    cells: List[CalendarCell] = []
    for offset in range(length):
        day = start_day + timedelta(days=offset)
        raw = counts.get(day)
        cells.append(
            CalendarCell(
                date=day,
                raw_count=raw,
                intensity_bucket=intensity_bucket(raw, min_count, max_count),
            )
        )

    logger.debug(
        "Built %d calendar cells from %d samples (min=%s max=%s)",
        len(cells),
        len(counts),
        min_count,
        max_count,
    )
    return CalendarGrid(
        start=start_day,
        end=end_day,
        min_count=min_count,
        max_count=max_count,
        cells=cells,
    )


def grid_to_dict(grid: CalendarGrid) -> Dict[str, Any]:
    """JSON-ready form of a calendar grid."""
    return {
        "start": grid.start.isoformat(),
        "end": grid.end.isoformat(),
        "min_count": grid.min_count,
        "max_count": grid.max_count,
        "cells": [
            {
                "date": cell.date.isoformat(),
                "count": cell.raw_count,
                "bucket": cell.intensity_bucket,
            }
            for cell in grid.cells
        ],
    }
