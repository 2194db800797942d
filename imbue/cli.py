#!/usr/bin/env python3
"""
Imbue CLI — Command-line interface.

Usage:
    python -m imbue.cli input.csv --output filled.csv
    imbue input.csv --strategy last_known --merge --report report.json
"""

import argparse
import sys
import json

from .engine import STRATEGIES, ImbueEngine, ImbueError


def main():
    parser = argparse.ArgumentParser(
        description="Imbue — Gap-filler for sparse integer-indexed series",
    )
    parser.add_argument("input", help="Input CSV file")
    parser.add_argument("-o", "--output", default=None, help="Output CSV path")
    parser.add_argument("--x-col", default=None, help="Position column name")
    parser.add_argument("--y-col", default=None, help="Value column name")
    parser.add_argument("--strategy", choices=STRATEGIES, default="average")
    parser.add_argument(
        "--merge",
        action="store_true",
        help="Write original and filled points together",
    )
    parser.add_argument("--max-span", type=int, default=None)
    parser.add_argument("--no-flags", action="store_true")
    parser.add_argument("--report", default=None, help="JSON report path")
    parser.add_argument("--quiet", action="store_true")

    args = parser.parse_args()

    def log(msg):
        if not args.quiet:
            print(msg)

    log("📈 Imbue — Gap-filler for sparse series\n")

    engine = ImbueEngine(max_span=args.max_span)

    # Load
    log(f"📤 Loading {args.input}...")
    try:
        info = engine.load_csv(args.input, x_col=args.x_col, y_col=args.y_col)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    log(f"   {info['shape'][0]} points from columns {info['x_column']}, {info['y_column']}")
    if info["rows_dropped"]:
        log(f"   Dropped {info['rows_dropped']} incomplete rows")

    # Detect gaps
    log("\n🔍 Detecting gaps...")
    try:
        gr = engine.detect_gaps()
    except ImbueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    log(f"   Axis {gr['axis_min']} to {gr['axis_max']} ({gr['total_count']} positions)")

    if gr["missing_count"] == 0:
        log("\n✅ No gaps detected!")
        sys.exit(0)

    log(
        f"   {gr['missing_count']} missing ({gr['missing_pct']}%) in "
        f"{gr['n_gaps']} gaps, max gap {gr['max_gap_length']}"
    )

    # Fill
    log(f"\n🔧 Filling gaps ({args.strategy})...")
    engine.fill_gaps(strategy=args.strategy)

    # Export
    output_path = args.output or args.input.replace(".csv", "_filled.csv")
    log(f"\n📥 Exporting to {output_path}...")
    engine.export(
        filepath=output_path,
        merge=args.merge,
        include_flags=not args.no_flags,
    )

    # Summary
    report = engine.generate_report()
    gs = report["gap_summary"]
    log("\n" + "=" * 50)
    log(f"  filled {gs['filled_count']}/{gs['missing_count']} ({gs['fill_rate_pct']}%)")

    if args.report:
        with open(args.report, "w") as f:
            json.dump(report, f, indent=2, default=str)
        log(f"  Report: {args.report}")

    log("\n🎉 Done!")


if __name__ == "__main__":
    main()
