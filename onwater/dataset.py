"""Fetch the land-boundary dataset and pre-build the index artifact.

Usage:
  python -m onwater.dataset fetch data/earth-lands.geojson
  python -m onwater.dataset build data/earth-lands.geojson data/earth-lands.joblib
"""
import argparse
import logging
from pathlib import Path

import joblib
import requests
import shapely

from .land import ARTIFACT_FORMAT, ARTIFACT_VERSION, LandDatasetError, explode_polygons, read_geojson

logger = logging.getLogger("onwater.dataset")

NATURAL_EARTH_LAND_URL = (
    "https://raw.githubusercontent.com/nvkelso/natural-earth-vector/master/geojson/"
    "ne_10m_land.geojson"
)


def download_land_dataset(dest: str | Path, url: str = NATURAL_EARTH_LAND_URL, timeout: float = 60) -> Path:
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(dest.name + ".part")

    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with open(tmp, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1 << 16):
                    f.write(chunk)
        tmp.replace(dest)
    finally:
        tmp.unlink(missing_ok=True)
    logger.info("Downloaded %s to %s", url, dest)
    return dest


def build_index_artifact(source: str | Path, dest: str | Path) -> int:
    """Write exploded land polygons as WKB; returns the polygon count."""
    polygons = explode_polygons(read_geojson(source))
    if not polygons.size:
        raise LandDatasetError(f"{source} contains no polygons")

    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(
        {"format": ARTIFACT_FORMAT, "version": ARTIFACT_VERSION, "wkb": shapely.to_wkb(polygons)},
        dest,
        compress=3,
    )
    logger.info("Wrote %d polygons to %s", len(polygons), dest)
    return len(polygons)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Manage the land-boundary dataset.")
    sub = ap.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Download the land GeoJSON")
    fetch.add_argument("dest")
    fetch.add_argument("--url", default=NATURAL_EARTH_LAND_URL)
    fetch.add_argument("--timeout", type=float, default=60.0)

    build = sub.add_parser("build", help="Pre-build the index artifact from GeoJSON")
    build.add_argument("source")
    build.add_argument("dest")

    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    if args.command == "fetch":
        download_land_dataset(args.dest, url=args.url, timeout=args.timeout)
    else:
        build_index_artifact(args.source, args.dest)


if __name__ == "__main__":
    main()
