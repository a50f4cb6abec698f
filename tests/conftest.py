from __future__ import annotations

import json
from pathlib import Path

import pytest
from shapely.geometry import Polygon, box, mapping

from outreach.boundaries import BoundaryDataset, CountryFeature
from outreach.config import AppConfig, MapConfig, MapStyleConfig, load_config
from outreach.geo import MercatorProjection
from outreach.map_view import WorldMapView
from outreach.models import (
    ChartConfig,
    Company,
    GeoLocation,
    ProductionYear,
)

# Three non-overlapping rectangles standing in for countries.
COUNTRY_BOXES = {
    "Alpha": (-20.0, -10.0, 20.0, 10.0),
    "Beta": (40.0, 10.0, 60.0, 30.0),
    "Gamma": (-120.0, 30.0, -80.0, 50.0),
}


def _features_geojson() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"name": name}, "geometry": mapping(box(*bounds))}
            for name, bounds in COUNTRY_BOXES.items()
        ],
    }


@pytest.fixture
def dataset() -> BoundaryDataset:
    return BoundaryDataset(
        features=tuple(
            CountryFeature(name=name, geometry=box(*bounds)) for name, bounds in COUNTRY_BOXES.items()
        ),
        source="memory",
    )


@pytest.fixture
def map_config() -> MapConfig:
    return MapConfig.default()


@pytest.fixture
def style(map_config: MapConfig) -> MapStyleConfig:
    return map_config.style


@pytest.fixture
def projection(map_config: MapConfig) -> MercatorProjection:
    return MercatorProjection.from_config(map_config)


@pytest.fixture
def view(dataset: BoundaryDataset, projection: MercatorProjection, style: MapStyleConfig) -> WorldMapView:
    out = WorldMapView(projection=projection, style=style)
    out.set_boundaries(dataset)
    return out


LESOTHO_BOUNDS = (26.0, -31.0, 30.0, -28.0)


@pytest.fixture
def enclave_view(projection: MercatorProjection, style: MapStyleConfig) -> WorldMapView:
    """South Africa with a hole that Lesotho fills; South Africa is listed last so it paints on top."""
    lesotho = box(*LESOTHO_BOUNDS)
    south_africa = Polygon(box(16.0, -35.0, 33.0, -22.0).exterior.coords, [lesotho.exterior.coords])
    out = WorldMapView(projection=projection, style=style)
    out.set_boundaries(
        BoundaryDataset(
            features=(
                CountryFeature(name="Lesotho", geometry=lesotho),
                CountryFeature(name="South Africa", geometry=south_africa),
            ),
            source="memory",
        )
    )
    return out


@pytest.fixture
def company() -> Company:
    return Company(
        id="acme",
        name="Acme Mining",
        locations=(GeoLocation.create(id="hq", name="Head Office", lat=0.0, lng=0.0),),
        production_data=(
            ProductionYear(year="2021", values={"ebitda": 10.0, "production": 5.0}),
            ProductionYear(year="2022", values={"ebitda": 12.0, "production": 6.0}),
            ProductionYear(year="2023", values={"ebitda": 11.0, "production": 5.5}),
            ProductionYear(year="2024", values={"ebitda": 14.0, "production": 7.0}),
        ),
        charts=(
            ChartConfig(id="c1", data_key="ebitda", title="EBITDA", axis_label="EBITDA (R Billion)"),
            ChartConfig(id="c2", data_key="production", title="Production", axis_label="Production (Kt)"),
        ),
    )


def write_config(root: Path, *, boundary_source: str = "world.geojson") -> Path:
    cfg_path = root / "config.yaml"
    cfg_path.write_text(
        "\n".join(
            [
                "project:",
                "  name: outreach-test",
                "paths:",
                "  store_dir: data/companies",
                "  blobs_dir: data/blobs",
                "  output_dir: build/output",
                "  logs_dir: build/logs",
                "boundaries:",
                f"  source: {boundary_source}",
                "seed:",
                "  companies:",
                "    - Alpha Mining",
                "    - Beta Mining",
                "",
            ]
        ),
        encoding="utf-8",
    )
    (root / "world.geojson").write_text(json.dumps(_features_geojson()), encoding="utf-8")
    return cfg_path


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return write_config(tmp_path)


@pytest.fixture
def app_cfg(config_path: Path) -> AppConfig:
    cfg = load_config(config_path)
    for directory in cfg.paths.build_directories:
        directory.mkdir(parents=True, exist_ok=True)
    return cfg


@pytest.fixture
def config_writer():
    return write_config
