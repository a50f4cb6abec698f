from __future__ import annotations

import math

import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from outreach.geo import SENTINEL_POINT, MercatorProjection


def test_origin_lands_on_translate(projection: MercatorProjection) -> None:
    assert projection.translate == (400.0, 300.0)
    x, y = projection.project(0.0, 0.0)
    assert x == pytest.approx(400.0)
    assert y == pytest.approx(300.0)


def test_scale_is_pixels_per_radian(projection: MercatorProjection) -> None:
    x, _ = projection.project(180.0, 0.0)
    assert x == pytest.approx(400.0 + math.pi * 120.0)
    _, y = projection.project(0.0, 45.0)
    expected = 300.0 - math.log(math.tan(math.pi / 4 + math.radians(45.0) / 2)) * 120.0
    assert y == pytest.approx(expected)


@pytest.mark.parametrize(
    ("lon", "lat"),
    [(28.05, -26.2), (-74.0, 40.7), (151.2, -33.87), (0.0, 0.0), (-179.0, 80.0)],
)
def test_unproject_inverts_project(projection: MercatorProjection, lon: float, lat: float) -> None:
    x, y = projection.project(lon, lat)
    back_lon, back_lat = projection.unproject(x, y)
    assert back_lon == pytest.approx(lon, abs=1e-6)
    assert back_lat == pytest.approx(lat, abs=1e-6)


def test_unprojectable_input_returns_sentinel(projection: MercatorProjection) -> None:
    assert projection.project("not-a-number", 0.0) == SENTINEL_POINT
    assert projection.project(float("nan"), 10.0) == SENTINEL_POINT


def test_polar_rings_stay_finite(projection: MercatorProjection) -> None:
    polygons = projection.project_geometry(box(-10.0, 80.0, 10.0, 90.0))
    assert len(polygons) == 1
    (shell,) = polygons[0]
    assert all(math.isfinite(x) and math.isfinite(y) for x, y in shell)


def test_multipolygon_projects_every_part(projection: MercatorProjection) -> None:
    geometry = MultiPolygon([box(0, 0, 1, 1), box(10, 10, 11, 11)])
    polygons = projection.project_geometry(geometry)
    assert len(polygons) == 2


def test_holes_stay_with_their_shell(projection: MercatorProjection) -> None:
    hole = box(26.0, -31.0, 30.0, -28.0)
    geometry = Polygon(box(16.0, -35.0, 33.0, -22.0).exterior.coords, [hole.exterior.coords])
    (polygon,) = projection.project_geometry(geometry)
    shell, *holes = polygon
    assert len(holes) == 1
    assert holes[0] == projection.project_ring(list(hole.exterior.coords))
    assert shell == projection.project_ring(list(geometry.exterior.coords))


def test_malformed_geometry_has_no_polygons(projection: MercatorProjection) -> None:
    assert projection.project_geometry(None) == ()
    assert projection.project_geometry("not a geometry") == ()
