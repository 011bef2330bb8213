from typing import Any, Dict, List, Sequence
from .heatmap import MAX_BUCKET, NO_ACTIVITY_BUCKET
from .models import (
    CalendarGrid,
    ChartSeriesPoint,
    SimulationDataset,
    TimeScale,
    summary,
)
import html
import json
import logging

logger = logging.getLogger(__name__)

# Intensity colours for buckets 0..10
BUCKET_COLORS = [
    "#FFEEEE",
    "#FFDDDD",
    "#FFCCCC",
    "#FFBBBB",
    "#FFAAAA",
    "#FF9999",
    "#FF8888",
    "#FF7777",
    "#FF6666",
    "#FF5555",
    "#FF4444",
]
NO_ACTIVITY_COLOR = "#ffffff10"

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# Rows of the calendar grid; cells flow down each column
CALENDAR_ROWS = 10

INDEX_TEMPLATE = """
<!DOCTYPE html>
<html lang='en'>
<head>
    <meta charset='UTF-8'>
    <title>Charging Network Dashboard</title>
    <link href="https://cdn.jsdelivr.net/npm/bootswatch@5.3.2/dist/flatly/bootstrap.min.css" rel="stylesheet">
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <style>
        .heatmap {{ display: grid; grid-auto-flow: column; grid-template-rows: repeat({rows}, 1rem); gap: 0.25rem; }}
        .heatmap div {{ width: 1rem; height: 1rem; border-radius: 0.2rem; }}
    </style>
</head>
<body>
<div class="container py-4">
<h1 class="mb-4">Dashboard</h1>
<p class="text-muted">Time scale: {scale}</p>
<ul class="list-group mb-4">
    <li class="list-group-item">Total energy (kWh): {total_energy_charged}</li>
    <li class="list-group-item">Total events: {total_events}</li>
    <li class="list-group-item">Peak power load (kW): {peak_power_load}</li>
    <li class="list-group-item">Average events/day: {average_events_per_day}</li>
</ul>
<div class="mb-4">
    <canvas id="seriesChart" height="80"></canvas>
</div>
<script>
{chart_js}
</script>
<h2 class="mt-4">Heatmap of Events Per Day</h2>
<div class="mb-2 small">
    <span class="me-3"><span class="d-inline-block border" style="width:1rem;height:1rem;background:{no_activity}"></span> No Activity</span>
    <span class="me-3"><span class="d-inline-block" style="width:1rem;height:1rem;background:{moderate}"></span> Moderate</span>
    <span><span class="d-inline-block" style="width:1rem;height:1rem;background:{high}"></span> High Activity</span>
</div>
<div class="heatmap border rounded p-3 mb-4">
{cells}
</div>
<div class="text-muted small mt-4">
    <p>Page last updated: {updated}</p>
    <p>Processed in {elapsed:.2f} s</p>
</div>
</div>
</body>
</html>
"""


def format_label(time_scale: TimeScale | str, label: str) -> str:
    """Return the display name for an opaque series label."""
    scale = TimeScale.parse(time_scale)
    index = int(label)
    if scale is TimeScale.YEAR:
        return MONTH_NAMES[(index - 1) % 12]
    # hours and days of month are both two-digit numbers
    return f"{index:02d}"


def bucket_color(bucket: int) -> str:
    if bucket == NO_ACTIVITY_BUCKET:
        return NO_ACTIVITY_COLOR
    return BUCKET_COLORS[min(max(bucket, 0), MAX_BUCKET)]


def chart_rows(
    time_scale: TimeScale | str, series: Sequence[ChartSeriesPoint]
) -> List[Dict[str, Any]]:
    """Series points with display names, as the chart consumes them."""
    return [
        {
            "name": format_label(time_scale, p.label),
            "label": p.label,
            "events": p.event_count,
            "energy": p.energy_kwh,
        }
        for p in series
    ]


def _render_cells(grid: CalendarGrid) -> str:
    cells: List[str] = []
    for cell in grid.cells:
        count = cell.raw_count or 0
        title = html.escape(f"Date: {cell.date.isoformat()} - Total Count: {count}")
        cells.append(
            f"<div title='{title}' style='background-color: {bucket_color(cell.intensity_bucket)}'></div>"
        )
    return "\n".join(cells)


def render(
    dataset: SimulationDataset,
    time_scale: TimeScale | str,
    series: Sequence[ChartSeriesPoint],
    grid: CalendarGrid,
    updated: str | None = None,
    elapsed: float | None = None,
) -> str:
    """Return the HTML for the dashboard page."""
    scale = TimeScale.parse(time_scale)
    logger.debug("Rendering %d series points and %d calendar cells", len(series), len(grid))
    rows = chart_rows(scale, series)
    chart_js = "const seriesData = " + json.dumps(rows) + "\n"
    chart_js += (
        "new Chart(document.getElementById('seriesChart').getContext('2d'), {"+
        "type: 'bar', data: {labels: seriesData.map(d => d.name), datasets: ["+
        "{label: 'Events', data: seriesData.map(d => d.events), backgroundColor: '#0d6efd'},"+
        "{label: 'Energy', data: seriesData.map(d => d.energy), backgroundColor: '#fd7e14'}]},"+
        "options: {scales: {y: {beginAtZero: true}}}});\n"
    )
    page = INDEX_TEMPLATE.format(
        rows=CALENDAR_ROWS,
        scale=scale.value,
        chart_js=chart_js,
        no_activity=NO_ACTIVITY_COLOR,
        moderate=bucket_color(MAX_BUCKET // 2),
        high=bucket_color(MAX_BUCKET),
        cells=_render_cells(grid),
        updated=updated or "N/A",
        elapsed=(elapsed if elapsed is not None else 0.0),
        **summary(dataset),
    )
    logger.debug("Generated dashboard HTML for %s scale", scale.value)
    return page
