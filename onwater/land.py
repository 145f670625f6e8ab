import json
import logging
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import shapely
from shapely import STRtree
from shapely.errors import GeometryTypeError, ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from .schemas import ClassificationResult, Coordinate

logger = logging.getLogger("onwater.land")

ARTIFACT_SUFFIXES = (".joblib", ".pkl", ".sav")
ARTIFACT_FORMAT = "onwater-land-wkb"
ARTIFACT_VERSION = 1

# shapely type ids: 4 MultiPoint, 5 MultiLineString, 6 MultiPolygon, 7 GeometryCollection
_MULTIPART_TYPE_IDS = (4, 5, 6, 7)
_POLYGON_TYPE_ID = 3


class LandDatasetError(RuntimeError):
    """The land dataset is missing, unreadable or holds no polygons."""


def explode_polygons(geometries: Iterable[BaseGeometry]) -> np.ndarray:
    """Flatten multi-part geometries and keep the non-empty polygons."""
    parts = np.asarray(list(geometries), dtype=object)
    while parts.size and np.isin(shapely.get_type_id(parts), _MULTIPART_TYPE_IDS).any():
        parts = shapely.get_parts(parts)
    if not parts.size:
        return parts
    keep = (shapely.get_type_id(parts) == _POLYGON_TYPE_ID) & ~shapely.is_empty(parts)
    return parts[keep]


class LandIndex:
    """Read-only polygon index answering "is this point on land?".

    Candidate polygons come from an STRtree over the polygon bounding boxes;
    the exact test runs against prepared polygons. Points on a boundary
    count as land.
    """

    def __init__(self, polygons: Iterable[BaseGeometry]):
        parts = explode_polygons(polygons)
        if not parts.size:
            raise LandDatasetError("land dataset contains no polygons")
        shapely.prepare(parts)
        self._polygons = parts
        self._tree = STRtree(parts)

    def __len__(self) -> int:
        return len(self._polygons)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return tuple(float(v) for v in shapely.total_bounds(self._polygons))

    def contains(self, lon: float, lat: float) -> bool:
        point = shapely.Point(lon, lat)
        candidates = self._tree.query(point)
        if not candidates.size:
            return False
        return bool(shapely.intersects(self._polygons[candidates], point).any())

    def contains_many(self, lons: Sequence[float], lats: Sequence[float]) -> np.ndarray:
        points = shapely.points(np.asarray(lons, dtype=float), np.asarray(lats, dtype=float))
        points = np.atleast_1d(points)
        hits = np.zeros(len(points), dtype=bool)
        if not len(points):
            return hits

        point_idx, polygon_idx = self._tree.query(points)
        inside = shapely.intersects(self._polygons[polygon_idx], points[point_idx])
        hits[point_idx[inside]] = True
        return hits


def is_on_water(index: LandIndex, coordinate: Coordinate) -> ClassificationResult:
    return ClassificationResult(
        water=not index.contains(coordinate.lon, coordinate.lat),
        lat=coordinate.lat,
        lon=coordinate.lon,
    )


def classify_many(index: LandIndex, coordinates: Sequence[Coordinate]) -> list[ClassificationResult]:
    if not coordinates:
        return []
    land = index.contains_many([c.lon for c in coordinates], [c.lat for c in coordinates])
    return [
        ClassificationResult(water=not bool(on_land), lat=c.lat, lon=c.lon)
        for c, on_land in zip(coordinates, land)
    ]


def _geojson_geometries(doc: Any) -> Iterator[BaseGeometry]:
    if not isinstance(doc, dict):
        raise LandDatasetError(f"expected a GeoJSON object, got {type(doc).__name__}")
    kind = doc.get("type")
    if kind == "FeatureCollection":
        for feature in doc.get("features") or []:
            yield from _geojson_geometries(feature)
    elif kind == "Feature":
        if doc.get("geometry"):
            yield shape(doc["geometry"])
    elif kind:
        yield shape(doc)
    else:
        raise LandDatasetError("GeoJSON object has no 'type'")


def read_geojson(path: str | Path) -> list[BaseGeometry]:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = json.load(f)
        return list(_geojson_geometries(doc))
    except (OSError, json.JSONDecodeError) as e:
        raise LandDatasetError(f"cannot read land dataset {path}: {e}") from e
    except (GeometryTypeError, ShapelyError, KeyError, TypeError, ValueError) as e:
        raise LandDatasetError(f"invalid geometry in {path}: {e}") from e


def read_artifact(path: str | Path) -> np.ndarray:
    try:
        payload = joblib.load(path)
    except Exception as e:
        raise LandDatasetError(f"cannot read land index artifact {path}: {e}") from e

    if not isinstance(payload, dict) or payload.get("format") != ARTIFACT_FORMAT:
        raise LandDatasetError(f"{path} is not a land index artifact")
    if payload.get("version") != ARTIFACT_VERSION:
        raise LandDatasetError(
            f"unsupported land index artifact version {payload.get('version')!r} in {path}"
        )
    try:
        return shapely.from_wkb(payload["wkb"])
    except (KeyError, ShapelyError) as e:
        raise LandDatasetError(f"corrupt land index artifact {path}: {e}") from e


def load_land_index(path: str | Path) -> LandIndex:
    """Build the land index from a GeoJSON file or a pre-built artifact."""
    path = Path(path)
    if not path.is_file():
        raise LandDatasetError(f"land dataset not found: {path}")

    if path.suffix.lower() in ARTIFACT_SUFFIXES:
        geometries = read_artifact(path)
    else:
        geometries = read_geojson(path)

    index = LandIndex(geometries)
    logger.info("Loaded land index from %s (%d polygons)", path, len(index))
    return index
