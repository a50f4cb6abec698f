"""Fixed-view Mercator projection between lon/lat and map canvas pixels."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence

from .config import MapConfig

# Web Mercator is undefined at the poles; rings are clamped to its square extent.
WEB_MERCATOR_MAX_LAT = 85.0511287798066
_EARTH_RADIUS_M = 6_378_137.0
SENTINEL_POINT = (0.0, 0.0)

_LOGGER = logging.getLogger("outreach.geo")

ScreenPoint = tuple[float, float]
ScreenRing = tuple[ScreenPoint, ...]
# Shell first, then holes.
ScreenPolygon = tuple[ScreenRing, ...]
LonLatRing = Sequence[tuple[float, float]]


@dataclass(frozen=True, slots=True)
class MercatorProjection:
    """Mercator projection with a fixed scale and translation.

    ``scale`` is pixels per radian of longitude. The projection centre
    (lon 0, lat 0) lands at ``(width / 2, height / center_y_divisor)``, which
    shifts the equator down so the populated northern hemisphere fits.
    """

    width: float
    height: float
    scale: float = 120.0
    center_y_divisor: float = 1.5

    @classmethod
    def from_config(cls, cfg: MapConfig) -> MercatorProjection:
        return cls(
            width=float(cfg.canvas.width_px),
            height=float(cfg.canvas.height_px),
            scale=cfg.projection.scale,
            center_y_divisor=cfg.projection.center_y_divisor,
        )

    @property
    def translate(self) -> ScreenPoint:
        return (self.width / 2.0, self.height / self.center_y_divisor)

    @property
    def _pixels_per_metre(self) -> float:
        return self.scale / _EARTH_RADIUS_M

    def project(self, lon: float, lat: float) -> ScreenPoint:
        """Project lon/lat degrees to canvas pixels, or the sentinel (0, 0) when undefined."""
        transformer = _require_pyproj_transformer()
        try:
            mx, my = transformer.transform(float(lon), float(lat))
        except (TypeError, ValueError, ArithmeticError, RuntimeError) as exc:
            _LOGGER.debug("Projection failed for (%r, %r): %s", lon, lat, exc)
            return SENTINEL_POINT
        return self._to_screen(mx, my)

    def unproject(self, x: float, y: float) -> tuple[float, float]:
        """Invert :meth:`project`: canvas pixels back to (lon, lat) degrees."""
        tx, ty = self.translate
        mx = (float(x) - tx) / self._pixels_per_metre
        my = (ty - float(y)) / self._pixels_per_metre
        lon, lat = _require_pyproj_transformer().transform(mx, my, direction="INVERSE")
        return (float(lon), float(lat))

    def project_ring(self, coords: Sequence[Sequence[float]]) -> ScreenRing:
        """Project one polygon ring; latitudes are clamped to the Mercator extent."""
        if not coords:
            return ()
        lons: list[float] = []
        lats: list[float] = []
        for point in coords:
            lons.append(float(point[0]))
            lats.append(max(-WEB_MERCATOR_MAX_LAT, min(WEB_MERCATOR_MAX_LAT, float(point[1]))))
        xs, ys = _require_pyproj_transformer().transform(lons, lats)
        out: list[ScreenPoint] = []
        for mx, my in zip(xs, ys):
            point = self._to_screen(float(mx), float(my))
            if point is SENTINEL_POINT:
                return ()
            out.append(point)
        return tuple(out)

    def project_geometry(self, geometry: Any) -> tuple[ScreenPolygon, ...]:
        """Project every polygon of a (multi)polygon as (shell, *holes).

        A polygon whose shell does not survive projection is dropped; so is any
        degenerate hole. Malformed geometry yields no polygons.
        """
        polygons: list[ScreenPolygon] = []
        for shell, holes in iter_polygons(geometry):
            projected_shell = self.project_ring(shell)
            if len(projected_shell) < 3:
                continue
            projected_holes = [self.project_ring(hole) for hole in holes]
            polygons.append(
                (projected_shell, *(hole for hole in projected_holes if len(hole) >= 3))
            )
        return tuple(polygons)

    def _to_screen(self, mx: float, my: float) -> ScreenPoint:
        if not (math.isfinite(mx) and math.isfinite(my)):
            return SENTINEL_POINT
        tx, ty = self.translate
        return (tx + mx * self._pixels_per_metre, ty - my * self._pixels_per_metre)


def iter_polygons(geometry: Any) -> list[tuple[LonLatRing, list[LonLatRing]]]:
    """(exterior, interiors) coordinate lists for each polygon part."""
    geom_type = getattr(geometry, "geom_type", "")
    if getattr(geometry, "is_empty", True):
        return []
    try:
        if geom_type == "Polygon":
            holes = [list(interior.coords) for interior in geometry.interiors]
            return [(list(geometry.exterior.coords), holes)]
        if geom_type in {"MultiPolygon", "GeometryCollection"}:
            out: list[tuple[LonLatRing, list[LonLatRing]]] = []
            for part in geometry.geoms:
                out.extend(iter_polygons(part))
            return out
    except (AttributeError, TypeError, ValueError) as exc:
        _LOGGER.debug("Skipping malformed geometry: %s", exc)
    return []


@lru_cache(maxsize=1)
def _require_pyproj_transformer() -> Any:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for Mercator projection") from exc
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
