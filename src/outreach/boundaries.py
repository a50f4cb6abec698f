"""Country boundary dataset loading through GeoPandas (TopoJSON, GeoJSON, or any vector file)."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import requests

from .config import BoundaryConfig

_LOGGER = logging.getLogger("outreach.boundaries")


class DataUnavailable(RuntimeError):
    """Boundary geometry could not be fetched or parsed."""


@dataclass(frozen=True, slots=True)
class CountryFeature:
    name: str
    geometry: Any


@dataclass(frozen=True, slots=True)
class BoundaryDataset:
    """Named country polygons; the display name is the highlight join key."""

    features: tuple[CountryFeature, ...]
    source: str = ""

    @property
    def names(self) -> frozenset[str]:
        return frozenset(feature.name for feature in self.features)

    def __len__(self) -> int:
        return len(self.features)


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {col.lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


class BoundaryRepository:
    """Loads the world boundary dataset once per call to :meth:`load`."""

    NAME_COLUMNS = ("name", "NAME", "ADMIN", "name_en", "NAME_EN", "name_long")

    def __init__(self, cfg: BoundaryConfig, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self._session = session

    def load(self) -> BoundaryDataset:
        source = self.cfg.source
        try:
            frame = self._load_frame(source)
            dataset = BoundaryDataset(
                features=features_from_frame(frame, name_property=self.cfg.name_property),
                source=source,
            )
        except DataUnavailable:
            raise
        except Exception as exc:
            raise DataUnavailable(f"Failed loading boundary data from {source}: {exc}") from exc
        if not dataset.features:
            raise DataUnavailable(f"Boundary source {source} contains no named polygon features")
        _LOGGER.info("Loaded %d country boundaries from %s", len(dataset), source)
        return dataset

    def _load_frame(self, source: str) -> Any:
        """Read the source with GeoPandas; for TopoJSON the layer is the configured object."""
        gpd = _require_geopandas()
        kwargs: dict[str, Any] = {}
        if self.cfg.object_name:
            kwargs["layer"] = self.cfg.object_name
        if "://" in source:
            return gpd.read_file(io.BytesIO(self._fetch_bytes(source)), **kwargs)
        path = Path(source)
        if not path.exists():
            raise DataUnavailable(f"Boundary file not found: {path}")
        return gpd.read_file(path, **kwargs)

    def _fetch_bytes(self, url: str) -> bytes:
        session = self._session or requests.Session()
        response = session.get(
            url,
            headers={"User-Agent": self.cfg.user_agent},
            timeout=self.cfg.request_timeout_s,
        )
        response.raise_for_status()
        return response.content


def features_from_frame(frame: Any, *, name_property: str = "name") -> tuple[CountryFeature, ...]:
    if "geometry" not in frame:
        raise ValueError("Boundary dataset has no geometry column")
    name_col = _first_existing_column(
        frame.columns, (name_property, *BoundaryRepository.NAME_COLUMNS)
    )
    if name_col is None:
        cols = ", ".join(str(c) for c in frame.columns)
        raise ValueError(f"Could not detect a country name column. Available columns: {cols}")

    out: list[CountryFeature] = []
    skipped = 0
    for name_val, geometry in zip(frame[name_col], frame["geometry"]):
        name = str(name_val).strip() if isinstance(name_val, str) else ""
        if not name or not _is_polygonal(geometry):
            skipped += 1
            continue
        out.append(CountryFeature(name=name, geometry=geometry))
    if skipped:
        _LOGGER.debug("Skipped %d boundary features without a name or polygon geometry", skipped)
    return tuple(out)


def _is_polygonal(geometry: Any) -> bool:
    if geometry is None:
        return False
    if bool(getattr(geometry, "is_empty", True)):
        return False
    return getattr(geometry, "geom_type", "") in {"Polygon", "MultiPolygon", "GeometryCollection"}


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for boundary data loading") from exc
    return gpd
