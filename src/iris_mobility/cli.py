"""
IRIS Mobility Command-Line Interface

Exposes three subcommands:

    iris setup     --target <folder>                     Create a new site folder
    iris aggregate --target <folder> (--range R | --date D)  Print a dataset summary
    iris report    --target <folder> (--range R | --date D)  Write the PDF report

A site folder holds ``metadata.json``, a ``raw_data/`` directory with one
``YYYY-MM-DD.csv`` per day, and an ``outputs/`` directory for reports.

The package must be installed (``pip install -e .``) for the ``iris`` entry
point to be available.

Package Location: src/iris_mobility/cli.py
"""

from __future__ import annotations

import argparse
import json
import sys
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

from .data.catalog import RANGE_SELECTORS


# ===========================================================================
# Shared path helpers
# ===========================================================================

def _get_target_dir(target: str, must_exist: bool = True) -> Path:
    """Resolve the site folder.

    Args:
        target: Folder path, absolute or relative to the working directory.
        must_exist: When ``True`` exit with an error if the folder is absent.

    Returns:
        Absolute Path to the site folder.

    Raises:
        SystemExit: If ``must_exist`` is ``True`` and the folder is absent.
    """
    target_dir = Path(target).expanduser().resolve()
    if must_exist and not target_dir.exists():
        _die(
            f"Target directory not found: {target_dir}\n"
            f"Tip: run 'iris setup --target {target}' first."
        )
    return target_dir


def _load_site_config(target_dir: Path):
    """Load ``metadata.json`` for a site, exiting on any config error."""
    from .config import ConfigError, load_config

    try:
        return load_config(target_dir / "metadata.json")
    except ConfigError as exc:
        _die(
            f"{exc}\n"
            f"Tip: run 'iris setup --target {target_dir}' to create a template."
        )


def _selector(args: argparse.Namespace) -> Tuple[str, str]:
    """Return ``(selector, report_type)`` from ``--range`` / ``--date``."""
    if args.date:
        return args.date, "daily"
    return args.range, args.range


def _die(message: str) -> None:
    """Print an error message and exit with status 1.

    Args:
        message: Human-readable error text.
    """
    print(f"\n❌  Error: {message}", file=sys.stderr)
    sys.exit(1)


# ===========================================================================
# Subcommand handlers
# ===========================================================================

# ---------------------------------------------------------------------------
# setup
# ---------------------------------------------------------------------------

def handle_setup(args: argparse.Namespace) -> None:
    """Create the standard site directory structure.

    Generates:
    - ``<target>/``
    - ``<target>/raw_data/``
    - ``<target>/outputs/``
    - ``<target>/metadata.json``  (template)

    Args:
        args: Parsed CLI arguments.  Required field: ``args.target``.
    """
    from .config import default_metadata

    target_dir    = _get_target_dir(args.target, must_exist=False)
    raw_dir       = target_dir / "raw_data"
    outputs_dir   = target_dir / "outputs"
    metadata_path = target_dir / "metadata.json"

    print(f"\n📂  Setting up site: {target_dir.name}")
    print(f"    Location: {target_dir}")

    target_dir.mkdir(parents=True, exist_ok=True)
    raw_dir.mkdir(exist_ok=True)
    outputs_dir.mkdir(exist_ok=True)
    print("    ✅  Directories created")

    if metadata_path.exists():
        print(
            "    ⏭️   metadata.json already exists — "
            "skipping (delete it to regenerate)"
        )
    else:
        with metadata_path.open("w", encoding="utf-8") as fh:
            json.dump(default_metadata(target_dir.name), fh, indent=4)
        print("    ✅  metadata.json created")

    print("\n✅  Setup complete.")
    print(f"    1. Edit metadata:        {metadata_path}")
    print(f"    2. Add YYYY-MM-DD.csv to: {raw_dir}")
    print(f"    3. Build a report:       iris report --target \"{args.target}\" --range weekly")


# ---------------------------------------------------------------------------
# aggregate
# ---------------------------------------------------------------------------

def handle_aggregate(args: argparse.Namespace) -> None:
    """Aggregate a range and print its summary (or the full JSON).

    Args:
        args: Parsed CLI arguments.
    """
    dataset = _load_dataset(args)

    if args.json:
        print(json.dumps(dataset.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"\n📊  {dataset.range_label}  ({dataset.date_range_label})")
    print(f"    Days:        {dataset.num_days}")
    print(f"    Vehicles:    {dataset.total_vehicles:,}")
    print(f"    Pedestrians: {dataset.estimated_pedestrians:,} (estimated)")
    print(f"    Avg speed:   {dataset.avg_speed_kmh} km/h ({dataset.avg_speed_mph} mph)")
    print(f"    Violations:  {dataset.over_limit_count:,} (≥{dataset.speed_limit_kmh:g} km/h)")
    for flow in dataset.top_flows_by_direction:
        print(f"    {flow.rank}. {flow.name:<12} {flow.stats}")


# ---------------------------------------------------------------------------
# report
# ---------------------------------------------------------------------------

def handle_report(args: argparse.Namespace) -> None:
    """Aggregate a range and write its PDF report to ``<target>/outputs``.

    Args:
        args: Parsed CLI arguments.
    """
    from .errors import IrisError
    from .reports.capture import PlotlyRasterizer
    from .reports.generators import ReportGenerator

    target_dir = _get_target_dir(args.target)
    config     = _load_site_config(target_dir)
    _, report_type = _selector(args)

    dataset = _load_dataset(args, config)

    print(f"\n🖼️   Generating {report_type} report for {config.city_name}")
    print(f"    Output: {config.output_dir}")

    gen = ReportGenerator(
        output_dir=config.output_dir,
        rasterizer=PlotlyRasterizer(width=config.chart_width, scale=config.chart_scale),
        metadata=config.metadata,
        product_name=config.product_name,
        capture_timeout=config.capture_timeout,
    )
    try:
        path = gen.generate(
            dataset,
            report_type=report_type,
            selected_date=args.date,
            include_charts=not args.no_charts,
            write_html=args.html,
        )
    except IrisError as exc:
        if args.verbose:
            traceback.print_exc()
        _die(f"Report generation failed: {exc}")

    print(f"\n✅  Report saved → {path}")


def _load_dataset(args: argparse.Namespace, config=None):
    """Resolve the range and aggregate it, exiting on any pipeline error."""
    from .data.catalog import build_catalog, resolve_range
    from .data.loader import DatasetLoader
    from .errors import IrisError

    if config is None:
        config = _load_site_config(_get_target_dir(args.target))
    selector, _ = _selector(args)

    try:
        catalog = build_catalog(config.catalog_start, config.catalog_end)
        days = resolve_range(selector, catalog)
        print(f"\n🚦  Loading {len(days)} day(s) from {config.data_dir}", file=sys.stderr)
        return DatasetLoader(config.data_dir).load(
            days, config.speed_limit_kmh, range_label=selector
        )
    except (IrisError, ValueError) as exc:
        if getattr(args, "verbose", False):
            traceback.print_exc()
        _die(str(exc))


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _add_range_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--target",
        required=True,
        metavar="FOLDER",
        help="Site folder containing metadata.json.",
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--range",
        choices=RANGE_SELECTORS,
        help="Trailing range of the day catalog.",
    )
    group.add_argument(
        "--date",
        metavar="YYYY-MM-DD",
        help="A single catalog day.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print full tracebacks on errors.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct and return the top-level argument parser.

    Returns:
        Configured ``ArgumentParser`` with ``setup``, ``aggregate``, and
        ``report`` subcommands attached.
    """
    parser = argparse.ArgumentParser(
        prog="iris",
        description=(
            "IRIS Mobility – traffic sensor reports\n"
            "Aggregate daily sensor CSV files and build PDF reports."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        metavar="LEVEL",
        help="Logging level for the iris_mobility logger (default: WARNING).",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=False,
        help="Emit log records as single-line JSON.",
    )
    subs = parser.add_subparsers(dest="command", metavar="<command>")
    subs.required = True

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------
    p_setup = subs.add_parser(
        "setup",
        help="Create a new site folder and metadata template.",
    )
    p_setup.add_argument(
        "--target",
        required=True,
        metavar="FOLDER",
        help="Site folder to create, e.g. 'sites/lima_centro'.",
    )
    p_setup.set_defaults(func=handle_setup)

    # ------------------------------------------------------------------
    # aggregate
    # ------------------------------------------------------------------
    p_agg = subs.add_parser(
        "aggregate",
        help="Aggregate a range and print the summary.",
    )
    _add_range_arguments(p_agg)
    p_agg.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the full aggregated dataset as JSON.",
    )
    p_agg.set_defaults(func=handle_aggregate)

    # ------------------------------------------------------------------
    # report
    # ------------------------------------------------------------------
    p_rep = subs.add_parser(
        "report",
        help="Write the PDF report for a range.",
        description=(
            "Aggregate the range, render the charts and write\n"
            "  <target>/outputs/traffic-report-<type>-<period>.pdf"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_range_arguments(p_rep)
    p_rep.add_argument(
        "--no-charts",
        action="store_true",
        default=False,
        help="Skip chart capture; the report holds the cover and tables only.",
    )
    p_rep.add_argument(
        "--html",
        action="store_true",
        default=False,
        help="Also write each chart as an interactive HTML file.",
    )
    p_rep.set_defaults(func=handle_report)

    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[List[str]] = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate handler.

    This function is registered as the ``iris`` console script entry point
    in ``pyproject.toml``.
    """
    from .utils.logging import configure_logging

    parser = _build_parser()
    args   = parser.parse_args(argv)
    try:
        configure_logging(args.log_level, json_format=args.json_logs)
    except ValueError as exc:
        _die(str(exc))
    args.func(args)


if __name__ == "__main__":
    main()
