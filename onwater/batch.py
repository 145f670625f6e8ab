"""Classify a CSV of coordinates offline.

Usage:
  python -m onwater.batch points.csv -o points_water.csv
"""
import argparse
import sys

import pandas as pd

from .config import Settings
from .land import LandIndex, classify_many, load_land_index
from .validation import InvalidCoordinateError, is_coordinate, to_coordinate


def classify_frame(index: LandIndex, frame: pd.DataFrame) -> pd.DataFrame:
    missing = {"lat", "lon"} - set(frame.columns)
    if missing:
        raise InvalidCoordinateError(f"missing column(s): {', '.join(sorted(missing))}")

    rows = frame[["lat", "lon"]].to_dict(orient="records")
    bad = frame.index[[i for i, row in enumerate(rows) if not is_coordinate(row)]].tolist()
    if bad:
        raise InvalidCoordinateError(f"invalid coordinate in row(s): {bad[:10]}")

    results = classify_many(index, [to_coordinate(row) for row in rows])
    out = frame.copy()
    out["water"] = [r.water for r in results]
    return out


def main(argv=None):
    ap = argparse.ArgumentParser(description="Add a 'water' column to a CSV with lat/lon columns.")
    ap.add_argument("input", help="CSV file with 'lat' and 'lon' columns")
    ap.add_argument("-o", "--output", help="Output CSV (default: stdout)")
    ap.add_argument(
        "--dataset",
        default=Settings.from_env().land_dataset_path,
        help="Land GeoJSON or pre-built artifact",
    )
    args = ap.parse_args(argv)

    # Keep text as read so validation sees what the file holds.
    frame = pd.read_csv(args.input, dtype={"lat": str, "lon": str}, keep_default_na=False)
    try:
        out = classify_frame(load_land_index(args.dataset), frame)
    except InvalidCoordinateError as e:
        sys.exit(f"error: {e}")

    out.to_csv(args.output or sys.stdout, index=False)


if __name__ == "__main__":
    main()
