from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import geopandas as gpd
import pytest
import requests
from shapely.geometry import box

from outreach.boundaries import BoundaryRepository, DataUnavailable, features_from_frame
from outreach.config import BoundaryConfig


def _cfg(source: str, object_name: str | None = None) -> BoundaryConfig:
    return BoundaryConfig(
        source=source,
        object_name=object_name,
        name_property="name",
        request_timeout_s=5,
        user_agent="outreach-tests",
    )


def _topology() -> dict[str, Any]:
    return {
        "type": "Topology",
        "transform": {"scale": [0.5, 0.5], "translate": [100.0, 50.0]},
        "arcs": [
            [[0, 0], [10, 0], [0, 10]],
            [[10, 10], [-10, 0], [0, -10]],
        ],
        "objects": {
            "countries": {
                "type": "GeometryCollection",
                "geometries": [
                    {"type": "Polygon", "arcs": [[0, 1]], "properties": {"name": "Square"}},
                    {"type": "Polygon", "arcs": [[~1, ~0]], "properties": {"name": "Reversed"}},
                    {"type": "Polygon", "arcs": [[0, 1]], "properties": {}},
                ],
            }
        },
    }


def _topology_bytes() -> bytes:
    return json.dumps(_topology()).encode("utf-8")


def test_load_local_geojson(config_path: Path) -> None:
    dataset = BoundaryRepository(_cfg(str(config_path.parent / "world.geojson"))).load()
    assert dataset.names == frozenset({"Alpha", "Beta", "Gamma"})


def test_load_local_topojson_skips_unnamed(tmp_path: Path) -> None:
    path = tmp_path / "countries.json"
    path.write_bytes(_topology_bytes())
    dataset = BoundaryRepository(_cfg(str(path), "countries")).load()
    assert sorted(dataset.names) == ["Reversed", "Square"]
    square = next(feature for feature in dataset.features if feature.name == "Square")
    assert square.geometry.bounds == pytest.approx((100.0, 50.0, 105.0, 55.0))
    assert square.geometry.area == pytest.approx(25.0)


def test_missing_file_is_unavailable(tmp_path: Path) -> None:
    with pytest.raises(DataUnavailable):
        BoundaryRepository(_cfg(str(tmp_path / "absent.json"))).load()


def test_unreadable_file_is_unavailable(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("not json at all", encoding="utf-8")
    with pytest.raises(DataUnavailable, match="Failed loading boundary data"):
        BoundaryRepository(_cfg(str(path))).load()


def test_frame_without_name_column_is_rejected() -> None:
    frame = gpd.GeoDataFrame({"code": ["A"]}, geometry=[box(0, 0, 1, 1)])
    with pytest.raises(ValueError, match="name column"):
        features_from_frame(frame)


class _Response:
    def __init__(self, content: bytes) -> None:
        self.content = content

    def raise_for_status(self) -> None:
        return None


class _Session:
    def __init__(self, content: bytes = b"", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _Response:
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return _Response(self.content)


def test_remote_topology_is_fetched_once_per_load() -> None:
    session = _Session(content=_topology_bytes())
    repo = BoundaryRepository(_cfg("https://cdn.example.com/countries-110m.json", "countries"), session=session)
    dataset = repo.load()
    assert len(dataset) == 2
    assert len(session.calls) == 1
    assert session.calls[0]["headers"] == {"User-Agent": "outreach-tests"}
    assert session.calls[0]["timeout"] == 5


def test_network_failure_is_unavailable() -> None:
    session = _Session(error=requests.ConnectionError("offline"))
    repo = BoundaryRepository(_cfg("https://cdn.example.com/countries-110m.json"), session=session)
    with pytest.raises(DataUnavailable, match="offline"):
        repo.load()
