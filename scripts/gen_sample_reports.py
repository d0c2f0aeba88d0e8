#!/usr/bin/env python3
"""Sample report spreadsheet generator.

Generates synthetic market-research report rows for manual runs and
throughput checks of the bulk importer. Headers deliberately mix the accepted
aliases ("Report Title", "Report Categories", "Sub Category", ...) the way
real exports from different data sources do.

The generated files follow the importer's expected layout:
- Row 1: Header row
- Row 2+: Data rows
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

CATEGORIES = {
    "Automotive": ["Electric Vehicles", "Autonomous Driving", "Aftermarket"],
    "Healthcare": ["Medical Devices", "Digital Health", "Pharmaceuticals"],
    "Energy": ["Solar", "Battery Storage", "Hydrogen"],
    "ICT": ["Cloud Computing", "Cybersecurity", "Semiconductors"],
}
REGIONS = ["Global", "North America", "Europe", "Asia Pacific", "Latin America"]
STATUSES = ["draft", "published"]

OVERVIEW_TEMPLATE = (
    "EXECUTIVE SUMMARY\n"
    "The {topic} market is expected to grow steadily through {end}.\n\n"
    "Key Findings:\n"
    "• Demand is led by {region}\n"
    "• Pricing pressure remains moderate"
)
TOC_TEMPLATE = (
    "1. Introduction\n"
    "1.1 Scope of the Study\n"
    "2. Market Dynamics\n"
    "2.1 Drivers\n"
    "2.2 Restraints\n"
    "3. Competitive Landscape"
)


def generate_reports(rows: int, seed: int = 42, duplicate_ratio: float = 0.0) -> pd.DataFrame:
    """Generate a DataFrame of synthetic report rows.

    Args:
        rows: Number of data rows to generate
        seed: Random seed for reproducible data
        duplicate_ratio: Share of rows that repeat an earlier title (0..1)

    Returns:
        DataFrame whose columns use importer header aliases
    """
    rng = np.random.default_rng(seed)
    category_names = list(CATEGORIES)

    data: dict[str, list[Any]] = {
        "Report Title": [],
        "Report Code": [],
        "Report Categories": [],
        "Sub Category": [],
        "Report Overview": [],
        "Table of Contents": [],
        "Single User Price": [],
        "Status": [],
        "Pages": [],
        "Publish Date": [],
    }
    dates = pd.date_range("2023-01-01", "2024-12-31", periods=100)
    for i in range(rows):
        category = category_names[rng.integers(len(category_names))]
        sub_category = CATEGORIES[category][rng.integers(len(CATEGORIES[category]))]
        region = REGIONS[rng.integers(len(REGIONS))]
        if i > 0 and rng.random() < duplicate_ratio:
            title = data["Report Title"][rng.integers(i)]
        else:
            title = f"{region} {sub_category} Market Report {i + 1}"
        data["Report Title"].append(title)
        data["Report Code"].append(f"RC-{i + 1:05d}")
        data["Report Categories"].append(category)
        data["Sub Category"].append(sub_category)
        data["Report Overview"].append(
            OVERVIEW_TEMPLATE.format(topic=sub_category, end=2030, region=region)
        )
        data["Table of Contents"].append(TOC_TEMPLATE)
        data["Single User Price"].append(f"${int(rng.integers(2, 8)) * 1000 - 50:,}")
        data["Status"].append(STATUSES[rng.integers(len(STATUSES))])
        data["Pages"].append(int(rng.integers(80, 320)))
        data["Publish Date"].append(dates[rng.integers(len(dates))].date().isoformat())
    return pd.DataFrame(data)


def write_reports(output_path: Path, df: pd.DataFrame) -> None:
    """Write ``df`` as .xlsx (openpyxl) or .csv depending on the suffix."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        df.to_csv(output_path, index=False)
    else:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Reports", index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic report spreadsheet for the bulk importer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s reports.xlsx
  %(prog)s reports.csv --rows 600 --duplicate-ratio 0.1
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx or .csv path")
    parser.add_argument("--rows", type=int, default=250, help="Number of data rows (default: 250)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--duplicate-ratio",
        type=float,
        default=0.0,
        help="Share of rows repeating an earlier title (default: 0)",
    )
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0.0 <= args.duplicate_ratio <= 1.0:
        print("Error: --duplicate-ratio must be between 0 and 1", file=sys.stderr)
        return 1

    df = generate_reports(args.rows, args.seed, args.duplicate_ratio)
    write_reports(args.output, df)
    print(f"Created {args.output} ({len(df):,} rows, {len(df.columns)} columns)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
