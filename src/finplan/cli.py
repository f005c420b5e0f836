# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for FinPlan.

The CLI is intentionally thin: it does not implement any planning or
aggregation logic itself. It loads the configuration, restores the
application state from its JSON document, runs one command and, for the
commands that change the state, writes the document back.


High-level pipeline
-------------------

1) Load the TOML configuration (``finplan_config.toml`` by default, see
   ``config.load_app_config``) and configure logging.

2) Restore the application state from ``[data].state_file`` (or
   ``--state``). When the file does not exist yet, the seed budget and the
   default assumptions are used.

3) Run the requested command:

   report (default)
       Budget vs actual statements, ratios and/or multi-period series of
       one period, optionally followed by a narrative analysis.
   import-document FILE / export-document FILE
       Replace the state with a versioned document / write the state.
   edit-budget
       Edit one yearly budget field; the plan is recalculated and
       redistributed from that year onwards.
   import-ledgers
       Replace the sales, cash journal and/or inventory ledgers from CSV.
   sales-progress
       Realized and pipeline sales against the budget over a date range.
   startup-costs
       Planned vs actual startup costs.

4) Render tables to stdout and/or CSV files depending on the display mode
   (``[display].mode`` or ``--display-mode``).


Examples
--------

    finplan report --year 2025 --granularity monthly --sub-period 3
    finplan report --scope all --view detailed --display-mode both
    finplan edit-budget --year 2026 --field incomeStatement.revenue.online \\
        --value 250000
    finplan import-ledgers --sales data/sales.csv --cash data/cash.csv
    finplan sales-progress --from-date 2025-01-01 --to-date 2025-03-31
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .analysis import AnalysisSession, NarrativeAnalyzer
from .config import DISPLAY_MODES, LOG_LEVELS, VIEW_LEVELS, AppConfig, load_app_config
from .io import (
    read_cash_journal,
    read_document,
    read_inventory_ledger,
    read_sales_ledger,
    write_document,
)
from .multi_periods import compute_all_multi_period
from .periods import Granularity, period_label
from .ratios import LEVEL_ORDER, statement_ratios
from .reports import sales_progress, startup_cost_tracking
from .state import Workspace, default_state
from .views import comparison_frame, ratio_comparison_frame

logger = logging.getLogger(__name__)

_GRANULARITIES = [g.value.lower() for g in Granularity]


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="finplan",
        description=(
            "FinPlan - Budget vs Actuals planning engine for SMBs. "
            "Maintains a multi-year budget, aggregates transaction ledgers "
            "into actual statements and compares them per year, quarter, "
            "month or week."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of finplan and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'finplan_config.toml' in the current directory is used when "
            "present, built-in defaults otherwise."
        ),
    )
    ap.add_argument(
        "--state",
        dest="state_path",
        help="Override the application state file ([data].state_file).",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override the logging level ([logging].level).",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # report
    # ------------------------------------------------------------------
    report = subparsers.add_parser(
        "report", help="Budget vs actual report of one period (default command)."
    )
    _add_report_arguments(report)

    # ------------------------------------------------------------------
    # documents
    # ------------------------------------------------------------------
    import_doc = subparsers.add_parser(
        "import-document",
        help="Replace the application state with a versioned JSON document.",
    )
    import_doc.add_argument("file", help="JSON document to import.")

    export_doc = subparsers.add_parser(
        "export-document", help="Write the application state to a JSON document."
    )
    export_doc.add_argument("file", help="Destination JSON file.")

    # ------------------------------------------------------------------
    # edit-budget
    # ------------------------------------------------------------------
    edit = subparsers.add_parser(
        "edit-budget",
        help=(
            "Set one yearly budget field. Derived fields are recalculated and "
            "the change cascades to the following years."
        ),
    )
    edit.add_argument("--year", type=int, required=True)
    edit.add_argument(
        "--field",
        required=True,
        help="Dotted field path, e.g. incomeStatement.revenue.online.",
    )
    edit.add_argument("--value", type=float, required=True)

    # ------------------------------------------------------------------
    # import-ledgers
    # ------------------------------------------------------------------
    ledgers = subparsers.add_parser(
        "import-ledgers",
        help=(
            "Replace ledgers from CSV files. Defaults to the files of the "
            "[ledgers] configuration section."
        ),
    )
    ledgers.add_argument("--sales", help="Sales ledger CSV.")
    ledgers.add_argument("--cash", help="Cash journal CSV.")
    ledgers.add_argument("--inventory", help="Inventory ledger CSV.")

    # ------------------------------------------------------------------
    # reports
    # ------------------------------------------------------------------
    progress = subparsers.add_parser(
        "sales-progress", help="Realized and pipeline sales vs budget."
    )
    progress.add_argument("--from-date", dest="from_date", required=True)
    progress.add_argument("--to-date", dest="to_date", required=True)
    progress.add_argument(
        "--granularity",
        type=str.lower,
        choices=_GRANULARITIES,
        default="weekly",
    )
    _add_output_arguments(progress)

    startup = subparsers.add_parser(
        "startup-costs", help="Planned vs actual startup costs."
    )
    _add_output_arguments(startup)

    return ap


def _add_output_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=DISPLAY_MODES,
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory for CSV files (defaults to [data].output_dir).",
    )


def _add_report_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--year", type=int, help="Planning year (default: first year).")
    ap.add_argument(
        "--granularity",
        type=str.lower,
        choices=_GRANULARITIES,
        default="yearly",
    )
    ap.add_argument(
        "--sub-period",
        dest="sub_period",
        type=int,
        default=1,
        help="Quarter (1-4), month (1-12) or model week (1-48).",
    )
    ap.add_argument(
        "--view",
        choices=VIEW_LEVELS,
        help=(
            "Level of detail of statement views. "
            "simplified: levels 0-1; regular: levels 0-2; detailed: all lines."
        ),
    )
    ap.add_argument(
        "--scope",
        choices=["statements", "ratios", "series", "all"],
        default="statements",
        help=(
            "'statements' = budget vs actual statement of the period; "
            "'ratios' = ratios/KPIs; "
            "'series' = headline metrics over every sub-period of the year; "
            "'all' = everything."
        ),
    )
    ap.add_argument(
        "--ratios-level",
        dest="ratios_level",
        choices=LEVEL_ORDER,
        help="Override the default ratios level defined in the configuration.",
    )
    ap.add_argument(
        "--analyze",
        action="store_true",
        help="Append a narrative analysis of the period.",
    )
    _add_output_arguments(ap)


def _parse_date(value: str, parser: argparse.ArgumentParser) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        parser.error(f"Invalid date {value!r}, expected YYYY-MM-DD format.")


def _state_file(args: argparse.Namespace, config: AppConfig) -> Path:
    return Path(args.state_path) if args.state_path else config.data.state_file


def _load_workspace(
    state_file: Path, config: AppConfig, parser: argparse.ArgumentParser
) -> Workspace:
    """Workspace restored from ``state_file``, or seeded when it does not exist."""
    workspace = Workspace(default_state(config.planning.year_range))
    if not state_file.is_file():
        logger.info("No state file at %s, starting from the seed budget", state_file)
        return workspace

    try:
        raw = read_document(state_file)
    except ValueError as exc:
        parser.error(str(exc))
    error = workspace.import_document(raw)
    if error is not None:
        parser.error(f"Cannot load state file {state_file}: {error}")
    return workspace


def _save(workspace: Workspace, state_file: Path) -> None:
    write_document(state_file, workspace.state)
    print(f"State saved to {state_file}")


def _render(
    frames: Sequence[tuple[str, str, pd.DataFrame]],
    display_mode: str,
    output_dir: Path,
) -> None:
    """Print ``(title, file_stem, frame)`` tables and/or write them as CSV."""
    if display_mode in {"table", "both"}:
        for title, _, df in frames:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, stem, df in frames:
            path = output_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _display(args: argparse.Namespace, config: AppConfig) -> tuple[str, Path]:
    mode = args.display_mode or config.display.mode
    output_dir = Path(args.output_dir) if args.output_dir else config.data.output_dir
    return mode, output_dir


def _handle_report(
    args: argparse.Namespace,
    config: AppConfig,
    workspace: Workspace,
    parser: argparse.ArgumentParser,
) -> None:
    granularity = Granularity.parse(args.granularity)
    year = args.year if args.year is not None else config.planning.first_year
    if year not in workspace.state.years:
        parser.error(
            f"Year {year} is outside the planning horizon "
            f"({workspace.state.years[0]}-{workspace.state.years[-1]})."
        )
    sub_period = args.sub_period
    if granularity is not Granularity.YEARLY and not (
        1 <= sub_period <= granularity.sub_period_count
    ):
        parser.error(
            f"--sub-period must be between 1 and {granularity.sub_period_count} "
            f"for {granularity.value} reports."
        )

    label = period_label(year, granularity, sub_period)
    budget, actual = workspace.budget_vs_actual(year, granularity, sub_period)
    view = args.view or config.display.view
    ratio_level = args.ratios_level or config.ratios.default_level
    rules_file = config.ratios.rules_file

    scope = args.scope
    want_ratios = scope in {"ratios", "all"} and config.ratios.enabled
    if scope in {"ratios", "all"} and not config.ratios.enabled:
        print(
            "Ratios have been requested in scope, but ratios are disabled in the "
            "configuration (ratios.enabled = false). Skipping ratio computation."
        )

    print(f"Period: {label}")
    frames: list[tuple[str, str, pd.DataFrame]] = []

    if scope in {"statements", "all"}:
        frames.append(
            (
                f"Budget vs actual - {label}",
                "budget_vs_actual",
                comparison_frame(budget, actual, view, config.display.decimals),
            )
        )

    if want_ratios:
        frames.append(
            (
                "Ratios & KPIs",
                "ratios",
                ratio_comparison_frame(
                    statement_ratios(budget, rules_file, ratio_level),
                    statement_ratios(actual, rules_file, ratio_level),
                    config.ratios.decimals,
                ),
            )
        )

    if scope in {"series", "all"}:
        actuals_tree = workspace.actuals()
        series, ratio_series = compute_all_multi_period(
            workspace.state.planned_budget,
            actuals_tree,
            year,
            granularity,
            ratios_enabled=want_ratios,
            rules_file=rules_file,
            ratio_level=ratio_level,
        )
        frames.append((f"Series {year}", "series", series.data))
        if want_ratios:
            frames.append((f"Ratio series {year}", "ratio_series", ratio_series.data))

    mode, output_dir = _display(args, config)
    _render(frames, mode, output_dir)

    if args.analyze or config.analysis.enabled:
        analyzer = NarrativeAnalyzer(
            model_name=config.analysis.model,
            api_key_env=config.analysis.api_key_env,
        )
        session = AnalysisSession(analyzer)
        text = asyncio.run(session.request(budget, actual, label, granularity))
        print()
        print(f"=== Analysis - {label} ===")
        print(text)


def _handle_sales_progress(
    args: argparse.Namespace,
    config: AppConfig,
    workspace: Workspace,
    parser: argparse.ArgumentParser,
) -> None:
    start = _parse_date(args.from_date, parser)
    end = _parse_date(args.to_date, parser)
    if end < start:
        parser.error("--to-date cannot be before --from-date.")

    df, summary = sales_progress(
        workspace.state.sales_ledger,
        workspace.state.planned_budget,
        start,
        end,
        args.granularity,
    )
    mode, output_dir = _display(args, config)
    _render([("Sales progress", "sales_progress", df)], mode, output_dir)
    print()
    print(f"Realized: {summary.total_realized:.2f}")
    print(f"Pipeline: {summary.total_pipeline:.2f}")
    print(f"Budget:   {summary.total_budget:.2f}")
    print(f"Progress vs budget: {summary.progress_vs_budget_pct:.1f}%")


def _handle_startup_costs(
    args: argparse.Namespace, config: AppConfig, workspace: Workspace
) -> None:
    report = startup_cost_tracking(
        workspace.state.assumptions, workspace.state.cash_journal
    )
    mode, output_dir = _display(args, config)
    _render([("Startup costs", "startup_costs", report.to_dataframe())], mode, output_dir)
    print()
    print(f"Total budget: {report.total_budget:.2f}")
    print(f"Total actual: {report.total_actual:.2f}")
    print(f"Remaining:    {report.remaining_budget:.2f}")
    print(f"Spent:        {report.spent_pct:.1f}%")


def _handle_import_ledgers(
    args: argparse.Namespace,
    config: AppConfig,
    workspace: Workspace,
    parser: argparse.ArgumentParser,
) -> None:
    sources = {
        "sales": args.sales or config.ledgers.sales,
        "cash": args.cash or config.ledgers.cash_journal,
        "inventory": args.inventory or config.ledgers.inventory,
    }
    if not any(sources.values()):
        parser.error(
            "No ledger to import: provide --sales, --cash or --inventory, or "
            "configure them in the [ledgers] section."
        )
    for name, path in sources.items():
        if path is not None and not Path(path).is_file():
            parser.error(f"{name} ledger file not found: {path}")

    try:
        sales = read_sales_ledger(sources["sales"]) if sources["sales"] else None
        cash = read_cash_journal(sources["cash"]) if sources["cash"] else None
        inventory = (
            read_inventory_ledger(sources["inventory"])
            if sources["inventory"]
            else None
        )
    except ValueError as exc:
        parser.error(str(exc))

    workspace.replace_ledgers(sales=sales, cash_journal=cash, inventory=inventory)
    for name, entries in (("sales", sales), ("cash", cash), ("inventory", inventory)):
        if entries is not None:
            print(f"Imported {len(entries)} {name} ledger entries.")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the FinPlan CLI."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"finplan version {__version__}")
        return

    if args.command is None:
        # Bare `finplan` runs the default report.
        args = parser.parse_args([*argv, "report"])

    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=args.log_level or config.logging.level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    state_file = _state_file(args, config)
    workspace = _load_workspace(state_file, config, parser)

    command = args.command
    if command == "report":
        _handle_report(args, config, workspace, parser)
    elif command == "import-document":
        try:
            raw = read_document(args.file)
        except (OSError, ValueError) as exc:
            parser.error(str(exc))
        error = workspace.import_document(raw)
        if error is not None:
            print(f"Import failed: {error}")
            raise SystemExit(1)
        print(f"Imported {args.file}")
        _save(workspace, state_file)
    elif command == "export-document":
        write_document(args.file, workspace.state)
        print(f"Exported state to {args.file}")
    elif command == "edit-budget":
        try:
            workspace.edit_budget(args.year, args.field, args.value)
        except (KeyError, ValueError) as exc:
            parser.error(str(exc))
        print(f"Set {args.field} = {args.value:.2f} for {args.year}")
        _save(workspace, state_file)
    elif command == "import-ledgers":
        _handle_import_ledgers(args, config, workspace, parser)
        _save(workspace, state_file)
    elif command == "sales-progress":
        _handle_sales_progress(args, config, workspace, parser)
    elif command == "startup-costs":
        _handle_startup_costs(args, config, workspace)


if __name__ == "__main__":
    main()
