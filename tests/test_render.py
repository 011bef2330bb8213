from chargeview.aggregate import select_series
from chargeview.heatmap import build_grid
from chargeview.models import ChartSeriesPoint
from chargeview.render import (
    BUCKET_COLORS,
    NO_ACTIVITY_COLOR,
    bucket_color,
    chart_rows,
    format_label,
    render,
)


def test_format_label():
    assert format_label("day", "0") == "00"
    assert format_label("day", "23") == "23"
    assert format_label("month", "7") == "07"
    assert format_label("year", "1") == "Jan"
    assert format_label("year", "12") == "Dec"


def test_bucket_color():
    assert len(BUCKET_COLORS) == 11
    assert bucket_color(-1) == NO_ACTIVITY_COLOR
    assert bucket_color(0) == "#FFEEEE"
    assert bucket_color(10) == "#FF4444"


def test_chart_rows():
    rows = chart_rows("year", [ChartSeriesPoint("3", 4, 12.5)])
    assert rows == [{"name": "Mar", "label": "3", "events": 4, "energy": 12.5}]


def test_render_page(year_dataset):
    series = select_series(year_dataset, "year")
    grid = build_grid("2024-01-01", "2024-12-31", year_dataset.heatmap)

    page = render(year_dataset, "year", series, grid, updated="now", elapsed=0.5)

    assert "Total events: %d" % year_dataset.total_events in page
    assert page.count("Total Count:") == 366
    assert '"name": "Jan"' in page
    assert "Page last updated: now" in page
