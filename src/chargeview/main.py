import argparse
import json
import logging
import time
from datetime import datetime
from pathlib import Path

from .aggregate import change_time_scale, select_series
from .data import dataset_to_dict, load_dataset, make_generator
from .fleet import Fleet
from .heatmap import build_grid
from .models import TimeScale
from .render import render
from .logging_utils import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_START = "2024-01-01"
DEFAULT_CALENDAR_END = "2024-12-31"


def main() -> None:
    defaults = Fleet()
    parser = argparse.ArgumentParser(description="Render the charging network dashboard")
    parser.add_argument(
        "--scale",
        choices=[s.value for s in TimeScale],
        default=TimeScale.YEAR.value,
        help="Chart granularity (default: year)",
    )
    parser.add_argument("--points", type=int, default=defaults.point_count)
    parser.add_argument("--multiplier", type=float, default=defaults.arrival_multiplier)
    parser.add_argument("--power", type=float, default=defaults.charging_power_kw)
    parser.add_argument("--seed", type=int, help="Seed for a reproducible simulation")
    parser.add_argument(
        "--dataset-file",
        type=Path,
        help="Render a dataset stored as JSON instead of simulating",
    )
    parser.add_argument(
        "--generator-url",
        help="Remote simulation service (default: simulate locally)",
    )
    parser.add_argument("--start", default=DEFAULT_CALENDAR_START)
    parser.add_argument("--end", default=DEFAULT_CALENDAR_END)
    parser.add_argument("--output", type=Path, default=Path("site/index.html"))
    parser.add_argument(
        "--write-dataset",
        type=Path,
        help="Also write the dataset as JSON to this path",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    setup_logging(args.debug)

    start = time.monotonic()
    scale = TimeScale.parse(args.scale)
    if args.dataset_file:
        logger.info("Reading dataset from %s", args.dataset_file)
        dataset = load_dataset(args.dataset_file)
        series = select_series(dataset, scale)
    else:
        fleet = Fleet(
            point_count=args.points,
            arrival_multiplier=args.multiplier,
            charging_power_kw=args.power,
        )
        logger.info("Simulating %s scale for %d points", scale.value, fleet.point_count)
        dataset, series = change_time_scale(
            fleet, scale, make_generator(args.generator_url, args.seed)
        )
    grid = build_grid(args.start, args.end, dataset.heatmap)

    html = render(
        dataset,
        scale,
        series,
        grid,
        updated=datetime.now().astimezone().isoformat(timespec="seconds"),
        elapsed=time.monotonic() - start,
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(html, encoding="utf-8")
    if args.write_dataset:
        args.write_dataset.parent.mkdir(parents=True, exist_ok=True)
        args.write_dataset.write_text(
            json.dumps(dataset_to_dict(dataset), indent=2), encoding="utf-8"
        )
        logger.info("Wrote dataset to %s", args.write_dataset)
    logger.info("Wrote report to %s", args.output)


if __name__ == "__main__":
    main()
