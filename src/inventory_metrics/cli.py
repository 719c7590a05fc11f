# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Inventory Metrics.

The CLI is intentionally thin: it does not implement any accounting logic
itself. It loads the configuration, sets up logging and dispatches each
subcommand to ``metrics_service`` or to the database helpers.

Configuration
-------------

By default, the CLI reads ``inventory_metrics_config.toml`` from the
current working directory; when that file does not exist, built-in defaults
are used (SQLite database under ``data/db/``). Use ``--config PATH`` to
point to another file.

Subcommands
-----------

- ``init-db``
    Create the SQLite database and its schema.

- ``business add --id ID --name NAME [--created-at YYYY-MM-DD]``
  ``business list``
    Register and list businesses (tenants).

- ``import {products,transactions,expenses,stock} CSV_PATH --business ID``
    Load raw inputs for a business from CSV (see io.py for formats).
    ``stock`` replaces the current warehouse items of the business.

- ``calculate --business ID --month YYYY-MM [--reset]``
    Compute the metrics of a closed month, persist them and print them with
    the data-quality report and the sync outcome.

- ``show --business ID --month YYYY-MM``
    Print the persisted metrics of a month.

- ``history --business ID [--metric NAME ...] [--limit N]``
    Print the metrics of the last N months as a table.

- ``sync-all [--month YYYY-MM]``
    Compute the metrics of every business (default: previous month).

Exit status is 0 on success and 1 when a command fails without producing a
result (rejected month, unknown business, database error...). A partial
sync still prints the metrics and exits with 0.
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from . import __version__, metrics_service
from .catalog import METRIC_NAMES, metric_set_to_frame
from .config import DEFAULT_CONFIG_FILE, AppConfig, default_app_config, load_app_config
from .db import add_business, init_database, list_businesses
from .log import configure_logging
from .periods import parse_month


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m inventory_metrics.cli",
        description=(
            "Inventory Metrics - Monthly financial KPIs engine for inventory "
            "businesses. Computes revenue, cost, profitability and inventory "
            "metrics for a closed month and stores them as a time series."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of inventory_metrics and exit.",
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when it "
            "exists, built-in defaults otherwise."
        ),
    )

    ap.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging (overrides [logging].level).",
    )

    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="Subcommand to run.",
    )

    # ------------------------------------------------------------------
    # init-db
    # ------------------------------------------------------------------
    subparsers.add_parser("init-db", help="Create the database and its schema.")

    # ------------------------------------------------------------------
    # business add / list
    # ------------------------------------------------------------------
    business_parser = subparsers.add_parser(
        "business", help="Register and list businesses."
    )
    business_subparsers = business_parser.add_subparsers(
        dest="business_command",
        metavar="business-command",
    )

    business_add = business_subparsers.add_parser("add", help="Register a business.")
    business_add.add_argument("--id", dest="business_id", required=True)
    business_add.add_argument("--name", required=True)
    business_add.add_argument(
        "--created-at",
        dest="created_at",
        help="Creation date (YYYY-MM-DD). Defaults to now.",
    )

    business_subparsers.add_parser("list", help="List registered businesses.")

    # ------------------------------------------------------------------
    # import
    # ------------------------------------------------------------------
    import_parser = subparsers.add_parser(
        "import", help="Import products, transactions, expenses or stock from CSV."
    )
    import_parser.add_argument("kind", choices=metrics_service.IMPORT_KINDS)
    import_parser.add_argument("csv_path", metavar="CSV_PATH")
    import_parser.add_argument("--business", dest="business_id", required=True)

    # ------------------------------------------------------------------
    # calculate / show
    # ------------------------------------------------------------------
    calculate_parser = subparsers.add_parser(
        "calculate", help="Compute and persist the metrics of a closed month."
    )
    calculate_parser.add_argument("--business", dest="business_id", required=True)
    calculate_parser.add_argument("--month", required=True, help="Month (YYYY-MM).")
    calculate_parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the metrics already stored for the month before writing.",
    )

    show_parser = subparsers.add_parser(
        "show", help="Print the persisted metrics of a month."
    )
    show_parser.add_argument("--business", dest="business_id", required=True)
    show_parser.add_argument("--month", required=True, help="Month (YYYY-MM).")

    # ------------------------------------------------------------------
    # history
    # ------------------------------------------------------------------
    history_parser = subparsers.add_parser(
        "history", help="Print the metrics of the last months."
    )
    history_parser.add_argument("--business", dest="business_id", required=True)
    history_parser.add_argument(
        "--metric",
        dest="metrics",
        action="append",
        choices=METRIC_NAMES,
        metavar="NAME",
        help="Metric to include (repeatable). All metrics when omitted.",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=12,
        help="Number of most recent months to show (default: 12).",
    )

    # ------------------------------------------------------------------
    # sync-all
    # ------------------------------------------------------------------
    sync_all_parser = subparsers.add_parser(
        "sync-all", help="Compute the metrics of every business for one month."
    )
    sync_all_parser.add_argument(
        "--month", help="Month (YYYY-MM). Defaults to the previous month."
    )

    return ap


def _load_config(
    parser: argparse.ArgumentParser, config_path: Optional[str]
) -> AppConfig:
    """Load the TOML configuration, falling back to defaults when absent."""
    try:
        if config_path:
            return load_app_config(config_path)
        if Path(DEFAULT_CONFIG_FILE).is_file():
            return load_app_config()
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    return default_app_config()


def _parse_month_arg(parser: argparse.ArgumentParser, value: str):
    try:
        return parse_month(value)
    except ValueError as exc:
        parser.error(str(exc))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_business(args: argparse.Namespace, config: AppConfig, parser) -> int:
    if args.business_command == "add":
        created_at = None
        if args.created_at:
            try:
                created_at = datetime.fromisoformat(args.created_at)
            except ValueError:
                parser.error(
                    f"Invalid --created-at {args.created_at!r}. Expected YYYY-MM-DD."
                )
        business = add_business(
            config.database, args.business_id, args.name, created_at=created_at
        )
        print(
            f"Registered business {business.id} ({business.name}), "
            f"created {business.created_at.date().isoformat()}."
        )
        return 0

    if args.business_command == "list":
        businesses = list_businesses(config.database)
        if not businesses:
            print("No businesses registered.")
            return 0
        df = pd.DataFrame(
            [
                {
                    "id": b.id,
                    "name": b.name,
                    "created_at": b.created_at.isoformat(sep=" "),
                }
                for b in businesses
            ]
        )
        print(df.to_string(index=False))
        return 0

    parser.error("Missing business subcommand: use 'add' or 'list'.")
    return 2


def _handle_import(args: argparse.Namespace, config: AppConfig, parser) -> int:
    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        parser.error(f"CSV file not found: {csv_path}")

    try:
        count = metrics_service.import_csv(
            config, args.kind, csv_path, args.business_id
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Imported {count} {args.kind} row(s) for business {args.business_id}.")
    return 0


def _handle_calculate(args: argparse.Namespace, config: AppConfig, parser) -> int:
    """
    Handle the 'calculate' subcommand.

    Prints the metrics table, the data-quality report and the sync outcome.
    A run that produced metrics exits with 0 even if the sync was partial.
    """
    month = _parse_month_arg(parser, args.month)
    result = metrics_service.calculate_month(
        config, args.business_id, month, reset=args.reset
    )

    if result.metrics is None:
        detail = f" ({result.detail})" if result.detail else ""
        print(f"Error: {result.error}{detail}", file=sys.stderr)
        return 1

    print(f"Metrics for business {args.business_id}, month {month.strftime('%Y-%m')}")
    print()
    table = metric_set_to_frame(result.metrics, decimals=config.display_decimals)
    print(table.to_string(index=False))

    quality = result.metrics.data_quality
    print()
    print(
        f"Data quality: {quality.valid_transactions}/{quality.total_transactions} "
        f"valid transactions | inventory data: "
        f"{'yes' if quality.has_inventory_data else 'no'} | expense data: "
        f"{'yes' if quality.has_expense_data else 'no'}"
    )

    if result.sync is not None:
        print(
            f"Sync: {len(result.sync.successful)} stored, "
            f"{len(result.sync.failed)} failed, "
            f"{len(result.sync.skipped)} skipped"
        )
    if result.error is not None:
        print(f"Warning: metrics synced with error {result.error}", file=sys.stderr)

    return 0


def _handle_show(args: argparse.Namespace, config: AppConfig, parser) -> int:
    month = _parse_month_arg(parser, args.month)
    result = metrics_service.get_monthly_metrics(config, args.business_id, month)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    if not result.data:
        print(f"No metrics stored for {month.strftime('%Y-%m')}.")
        return 0

    decimals = config.display_decimals
    df = pd.DataFrame(
        [{"name": k, "value": round(v, decimals)} for k, v in result.data.items()]
    )
    print(df.to_string(index=False))
    return 0


def _handle_history(args: argparse.Namespace, config: AppConfig, parser) -> int:
    if args.limit < 1:
        parser.error("--limit must be >= 1.")

    result = metrics_service.metrics_history(
        config, args.business_id, names=args.metrics, limit=args.limit
    )
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    df = result.data
    if df is None or df.empty:
        print("No metrics stored yet.")
        return 0

    print(df.round(config.display_decimals).to_string())
    return 0


def _handle_sync_all(args: argparse.Namespace, config: AppConfig, parser) -> int:
    month = _parse_month_arg(parser, args.month) if args.month else None
    result = metrics_service.sync_all_businesses(config, month=month)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    summary = result.data
    print(
        f"Processed businesses: {summary.success_count} succeeded, "
        f"{summary.error_count} failed."
    )
    for business_id, error in summary.errors:
        print(f"  - {business_id}: {error}")
    return 0 if summary.error_count == 0 else 1


_HANDLERS = {
    "business": _handle_business,
    "import": _handle_import,
    "calculate": _handle_calculate,
    "show": _handle_show,
    "history": _handle_history,
    "sync-all": _handle_sync_all,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point for the Inventory Metrics CLI.

    Parses command-line arguments, loads the configuration, configures
    logging, initializes the database and dispatches to the subcommand.
    Returns the process exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"inventory_metrics version {__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    config = _load_config(parser, args.config_path)

    level = "DEBUG" if args.verbose else config.logging.level
    configure_logging(level, config.logging.file)

    init_database(config.database)

    if args.command == "init-db":
        print(f"Database ready at {config.database.path}")
        return 0

    return _HANDLERS[args.command](args, config, parser)


if __name__ == "__main__":
    sys.exit(main())
