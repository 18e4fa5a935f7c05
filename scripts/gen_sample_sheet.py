#!/usr/bin/env python3
"""Sample sheet generation script.

Generates synthetic Google Sheets exports (CSV or Excel) with the exact column
headers of the listing intake form, for trying the importer or timing runs:
- Row 1: Header row (including the sheet's misspelled "Quata" column)
- Row 2+: One listing per row

A configurable share of rows is made invalid (missing price / location) so
the validator and the rejected-row report get exercised too.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

HEADERS = [
    "Timestamp", "Email Address", "Line", "Name (Owner/Agent)", "Phone Number",
    "Property Address", "Listing Type", "Price (THB)", "Commission Rate (%)",
    "Short Term Let Available?", "Property Type", "Property Size (sqm)",
    "Land Size (SQWha)", "Quata", "Number of Bedrooms", "Number of Bathrooms",
    "Location/Area", "Views", "Private Features", "Rooms & Spaces",
    "Communal Facilities", "Technical Equipment", "Security", "Location Features",
    "Furnishing Status", "Kitchen & Layout Features",
    "Maintenance Charges (Baht/Month)", "Common Area Fee (Baht/sqm/Month)",
    "Transfer Costs Payment", "Special Features or Remarks", "Available From",
    "Property Photos", "Email",
]

LOCATIONS = ["Sukhumvit", "Silom", "Sathorn", "Thonglor", "Ari", "Bang Na", "Pattaya", "Hua Hin"]
PROPERTY_TYPES = ["Condo", "House", "Villa", "Land", "Townhouse"]
LISTING_TYPES = ["Sale", "Rent"]
VIEWS = ["City", "River", "Garden", "Pool", "Sea"]
PRIVATE = ["Balcony", "Bathtub", "Walk-in closet", "Private pool"]
ROOMS = ["Maid room", "Study", "Storage", "Laundry"]
COMMUNAL = ["Pool", "Gym", "Sauna", "Co-working space", "Parking"]
FURNISHING = ["Fully furnished", "Partly furnished", "Unfurnished"]


def _pick_list(rng: np.random.Generator, options: list[str]) -> str:
    k = int(rng.integers(0, len(options) + 1))
    if k == 0:
        return ""
    return ", ".join(rng.choice(options, size=k, replace=False).tolist())


def generate_rows(rows: int, invalid_ratio: float = 0.05, seed: int = 42) -> pd.DataFrame:
    """Generate synthetic listing rows keyed by the sheet headers."""
    rng = np.random.default_rng(seed)
    data: list[dict[str, Any]] = []
    for i in range(rows):
        location = str(rng.choice(LOCATIONS))
        bedrooms = "Studio" if rng.random() < 0.15 else str(int(rng.integers(1, 6)))
        price = int(rng.integers(15, 400)) * 100_000
        photos = ", ".join(
            f"https://drive.google.com/file/d/sample{i:05d}{j}/view" for j in range(int(rng.integers(0, 4)))
        )
        row = {
            "Timestamp": f"2024-{int(rng.integers(1, 13)):02d}-{int(rng.integers(1, 29)):02d}",
            "Email Address": f"agent{i}@example.com",
            "Line": f"@line{i}",
            "Name (Owner/Agent)": f"{'Owner' if rng.random() < 0.4 else 'Agent'} {i}",
            "Phone Number": f"08{int(rng.integers(10_000_000, 99_999_999))}",
            "Property Address": f"{int(rng.integers(1, 999))} Soi {int(rng.integers(1, 80))}, {location}",
            "Listing Type": str(rng.choice(LISTING_TYPES)),
            "Price (THB)": f"{price:,}",
            "Commission Rate (%)": str(rng.choice(["3", "5", ""])),
            "Short Term Let Available?": str(rng.choice(["Yes", "No"])),
            "Property Type": str(rng.choice(PROPERTY_TYPES)),
            "Property Size (sqm)": str(int(rng.integers(25, 400))),
            "Land Size (SQWha)": "",
            "Quata": str(rng.choice(["Thai", "Foreign", ""])),
            "Number of Bedrooms": bedrooms,
            "Number of Bathrooms": str(int(rng.integers(1, 5))),
            "Location/Area": location,
            "Views": _pick_list(rng, VIEWS),
            "Private Features": _pick_list(rng, PRIVATE),
            "Rooms & Spaces": _pick_list(rng, ROOMS),
            "Communal Facilities": _pick_list(rng, COMMUNAL),
            "Technical Equipment": "",
            "Security": "CCTV, Keycard",
            "Location Features": "",
            "Furnishing Status": str(rng.choice(FURNISHING)),
            "Kitchen & Layout Features": "",
            "Maintenance Charges (Baht/Month)": str(int(rng.integers(0, 8)) * 500),
            "Common Area Fee (Baht/sqm/Month)": "",
            "Transfer Costs Payment": str(rng.choice(["Split 50/50", "Buyer", "Seller"])),
            "Special Features or Remarks": "",
            "Available From": "Immediately",
            "Property Photos": photos,
            "Email": "",
        }
        if rng.random() < invalid_ratio:
            row["Price (THB)"] = ""
            row["Location/Area"] = ""
        data.append(row)
    return pd.DataFrame(data, columns=HEADERS)


def write_sheet(df: pd.DataFrame, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        df.to_csv(output_path, index=False, encoding="utf-8")
    else:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Form Responses 1", index=False)
    print(f"Created sheet: {output_path}")
    print(f"  Rows: {len(df)} (+ 1 header row)")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic Google Sheets listing exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s listings.csv --rows 500
  %(prog)s listings.xlsx --rows 2000 --invalid-ratio 0.1 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output .csv or .xlsx path")
    parser.add_argument("--rows", type=int, default=100, help="Number of listing rows (default: 100)")
    parser.add_argument(
        "--invalid-ratio", type=float, default=0.05, help="Share of rows made invalid (default: 0.05)"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.invalid_ratio <= 1:
        print("Error: --invalid-ratio must be between 0 and 1", file=sys.stderr)
        return 1
    if args.output.suffix.lower() not in {".csv", ".xlsx"}:
        print("Error: output must end with .csv or .xlsx", file=sys.stderr)
        return 1

    write_sheet(generate_rows(args.rows, args.invalid_ratio, args.seed), args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
