"""
WPC Reconciler - command-line runner.

Fills KPI D-1, Status, TAGGING and MOCN DATE in a WPC export and prints a
run summary.

Usage:
    python main.py --wpc wpcsdm_wpc_export.xlsx --sfxl "NEW SFXL.xlsx" \\
        --sitelist sitelist_mocn.csv --tagging TAGGING.xlsx --out wpcsdm_out.xlsx

    python main.py --step1-only --wpc wpcsdm_wpc_export.xlsx \\
        --sfxl "NEW SFXL.xlsx" --out wpcsdm_step1_out.xlsx
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from wpc_reconciler.config import (
    OUTPUT_FILE,
    SFXL_FILE,
    SITELIST_FILE,
    TAGGING_FILE,
    WPC_FILE,
)
from wpc_reconciler.dashboard import get_run_overview, get_status_summary
from wpc_reconciler.exceptions import ConfigurationError
from wpc_reconciler.pipeline import reconcile

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile a WPC export against SFXL, site list and tagging.")
    parser.add_argument("--wpc", type=Path, default=WPC_FILE, help="WPC export workbook")
    parser.add_argument("--sfxl", type=Path, default=SFXL_FILE, help="NEW SFXL metrics workbook")
    parser.add_argument("--sitelist", type=Path, default=SITELIST_FILE, help="MOCN site list (csv or xlsx)")
    parser.add_argument("--tagging", type=Path, default=TAGGING_FILE, help="TAGGING workbook")
    parser.add_argument("--out", type=Path, default=OUTPUT_FILE, help="output workbook")
    parser.add_argument(
        "--step1-only",
        action="store_true",
        help="only fill KPI D-1 and 'KPI Normalized' (no site list or tagging needed)",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def check_inputs(args: argparse.Namespace) -> list[str]:
    """Return a message per missing input file."""
    inputs = {"--wpc": args.wpc, "--sfxl": args.sfxl}
    if not args.step1_only:
        inputs.update({"--sitelist": args.sitelist, "--tagging": args.tagging})
    return [f"File not found {flag}: {path}" for flag, path in inputs.items() if not path.exists()]


def main(argv: list[str] | None = None) -> int:
    """Run the reconciliation and print the summary. Returns the exit status."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    problems = check_inputs(args)
    if problems:
        for problem in problems:
            logger.error(problem)
        return 1

    try:
        result = reconcile(
            str(args.wpc),
            str(args.sfxl),
            sitelist=None if args.step1_only else str(args.sitelist),
            tagging=None if args.step1_only else str(args.tagging),
            out=str(args.out),
            step1_only=args.step1_only,
        )
    except ConfigurationError as exc:
        logger.error("ERROR: %s", exc)
        return 1

    mode = "STEP 1" if args.step1_only else "STEP 1+2+3"
    overview = get_run_overview(result.stats)

    print("=" * 70)
    print(f"  WPC RECONCILER - {mode}")
    print("=" * 70)
    for name, value in overview.items():
        if name == "kpi_fill_pct" and value is not None:
            value = f"{value:.1f}%"
        print(f"  {name:16s} | {value}")

    summary = get_status_summary(result.records)
    if not summary.empty:
        print("\nStatus by metric:")
        print(summary.to_string(index=False))

    print(f"\nOutput: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
