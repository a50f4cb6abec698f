"""Interactive world map: pure scene rendering plus a pointer-interaction state machine.

The caller owns the company data. The view only keeps transient interaction
state (hovered country, dragged pin, pointer position) and reports proposed
changes through ``on_country_toggle`` and ``on_pin_moved``; a scene is always
rebuilt from scratch out of the current inputs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from .boundaries import BoundaryDataset
from .config import MapStyleConfig
from .geo import MercatorProjection, ScreenPoint, ScreenPolygon
from .models import GeoLocation, clamp

EDIT_HINT = "* Click countries to toggle highlight. Drag pins to adjust location."

_LOGGER = logging.getLogger("outreach.map")

CountryToggleHandler = Callable[[str], None]
PinMovedHandler = Callable[[str, float, float], None]


class MapState(str, Enum):
    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    HOVERING = "hovering"
    DRAGGING = "dragging"


@dataclass(frozen=True, slots=True)
class Interaction:
    """Transient pointer state; never persisted."""

    state: MapState = MapState.IDLE
    country: str | None = None
    pin_id: str | None = None
    pointer: ScreenPoint | None = None

    @classmethod
    def idle(cls) -> Interaction:
        return cls(state=MapState.IDLE)


@dataclass(frozen=True, slots=True)
class MapInputs:
    """Caller-owned data for one render."""

    locations: tuple[GeoLocation, ...] = ()
    highlighted_countries: frozenset[str] = field(default_factory=frozenset)
    edit_mode: bool = False

    @classmethod
    def build(
        cls,
        *,
        locations: Iterable[GeoLocation],
        highlighted_countries: Iterable[str],
        edit_mode: bool,
    ) -> MapInputs:
        return cls(
            locations=tuple(locations),
            highlighted_countries=frozenset(highlighted_countries),
            edit_mode=edit_mode,
        )


@dataclass(frozen=True, slots=True)
class CountryShape:
    name: str
    polygons: tuple[ScreenPolygon, ...]
    fill: str
    stroke: str
    stroke_width: float


@dataclass(frozen=True, slots=True)
class PinMarker:
    id: str
    title: str
    x: float
    y: float
    radius: float
    fill: str
    stroke: str
    stroke_width: float
    dragging: bool = False


@dataclass(frozen=True, slots=True)
class Tooltip:
    text: str
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class MapScene:
    """Complete draw list for one frame, in painter's order."""

    width: float
    height: float
    background: str
    countries: tuple[CountryShape, ...]
    pins: tuple[PinMarker, ...]
    tooltip: Tooltip | None = None
    cursor: str = "default"
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectedCountry:
    name: str
    polygons: tuple[ScreenPolygon, ...]
    hit_area: Any


class ProjectedBoundaries:
    """Boundary polygons projected once into canvas space, with hit testing."""

    def __init__(self, dataset: BoundaryDataset, projection: MercatorProjection) -> None:
        polygon_factory = _require_shapely_polygon_factory()
        countries: list[ProjectedCountry] = []
        for feature in dataset.features:
            polygons = projection.project_geometry(feature.geometry)
            if not polygons:
                _LOGGER.debug("Country %s has no drawable polygons; skipped", feature.name)
                continue
            countries.append(
                ProjectedCountry(
                    name=feature.name,
                    polygons=polygons,
                    hit_area=_hit_area(polygons, polygon_factory),
                )
            )
        self.dataset = dataset
        self.projection = projection
        self.countries = tuple(countries)

    def country_at(self, x: float, y: float) -> str | None:
        point = _require_shapely_point_factory()(x, y)
        # Later shapes paint over earlier ones.
        for country in reversed(self.countries):
            if country.hit_area is not None and country.hit_area.covers(point):
                return country.name
        return None


def render_map_scene(
    *,
    boundaries: ProjectedBoundaries | None,
    inputs: MapInputs,
    interaction: Interaction,
    style: MapStyleConfig,
) -> MapScene | None:
    """Build the full scene from inputs; ``None`` until boundary data exists."""
    if boundaries is None:
        return None
    projection = boundaries.projection

    countries: list[CountryShape] = []
    for country in boundaries.countries:
        hovered = interaction.state is MapState.HOVERING and interaction.country == country.name
        if hovered:
            fill = style.hover_color
            stroke = style.hover_stroke_color
        else:
            fill = (
                style.highlight_color
                if country.name in inputs.highlighted_countries
                else style.country_color
            )
            stroke = style.stroke_color
        countries.append(
            CountryShape(
                name=country.name,
                polygons=country.polygons,
                fill=fill,
                stroke=stroke,
                stroke_width=style.stroke_width,
            )
        )

    pins: list[PinMarker] = []
    dragged: PinMarker | None = None
    for location in inputs.locations:
        is_dragged = (
            interaction.state is MapState.DRAGGING
            and interaction.pin_id == location.id
            and interaction.pointer is not None
        )
        if is_dragged:
            x, y = interaction.pointer
        else:
            x, y = projection.project(location.lng, location.lat)
        marker = PinMarker(
            id=location.id,
            title=location.name,
            x=x,
            y=y,
            radius=style.pin_radius,
            fill=style.pin_fill_color,
            stroke=style.drag_stroke_color if is_dragged else style.highlight_color,
            stroke_width=style.pin_stroke_width,
            dragging=is_dragged,
        )
        if is_dragged:
            dragged = marker
        else:
            pins.append(marker)
    if dragged is not None:
        pins.append(dragged)

    tooltip: Tooltip | None = None
    if (
        interaction.state is MapState.HOVERING
        and interaction.country is not None
        and interaction.pointer is not None
    ):
        tooltip = Tooltip(
            text=interaction.country,
            x=interaction.pointer[0] + style.tooltip_offset_px,
            y=interaction.pointer[1] + style.tooltip_offset_px,
        )

    if interaction.state is MapState.DRAGGING:
        cursor = "grabbing"
    elif inputs.edit_mode:
        cursor = "pointer"
    else:
        cursor = "default"

    return MapScene(
        width=projection.width,
        height=projection.height,
        background=style.background_color,
        countries=tuple(countries),
        pins=tuple(pins),
        tooltip=tooltip,
        cursor=cursor,
        hint=EDIT_HINT if inputs.edit_mode else None,
    )


class WorldMapView:
    """Holds transient interaction state and turns pointer events into caller events."""

    def __init__(
        self,
        *,
        projection: MercatorProjection,
        style: MapStyleConfig,
        on_country_toggle: CountryToggleHandler | None = None,
        on_pin_moved: PinMovedHandler | None = None,
    ) -> None:
        self.projection = projection
        self.style = style
        self.on_country_toggle = on_country_toggle
        self.on_pin_moved = on_pin_moved
        self.inputs = MapInputs()
        self._boundaries: ProjectedBoundaries | None = None
        self._interaction = Interaction.idle()
        self._failure: Exception | None = None
        self._load_attempted = False

    @property
    def state(self) -> MapState:
        if self._boundaries is None:
            return MapState.UNINITIALIZED
        return self._interaction.state

    @property
    def interaction(self) -> Interaction:
        return self._interaction

    @property
    def failure(self) -> Exception | None:
        return self._failure

    def load_boundaries(self, loader: Callable[[], BoundaryDataset]) -> bool:
        """Run the one boundary fetch for this view; a failure is final."""
        if self._load_attempted:
            return self._boundaries is not None
        self._load_attempted = True
        try:
            dataset = loader()
        except Exception as exc:
            self._failure = exc
            _LOGGER.error("Map boundary data unavailable; map stays uninitialized: %s", exc)
            return False
        self.set_boundaries(dataset)
        return True

    def set_boundaries(self, dataset: BoundaryDataset) -> None:
        self._load_attempted = True
        self._failure = None
        self._boundaries = ProjectedBoundaries(dataset, self.projection)
        self._interaction = Interaction.idle()

    def set_inputs(self, inputs: MapInputs) -> None:
        self.inputs = inputs
        if self._interaction.state is MapState.DRAGGING and (
            not inputs.edit_mode
            or all(location.id != self._interaction.pin_id for location in inputs.locations)
        ):
            self._interaction = Interaction.idle()

    def render(self) -> MapScene | None:
        return render_map_scene(
            boundaries=self._boundaries,
            inputs=self.inputs,
            interaction=self._interaction,
            style=self.style,
        )

    def pointer_move(self, x: float, y: float) -> None:
        if self._boundaries is None:
            return
        if self._interaction.state is MapState.DRAGGING:
            self._interaction = Interaction(
                state=MapState.DRAGGING,
                pin_id=self._interaction.pin_id,
                pointer=(x, y),
            )
            return
        country = self._boundaries.country_at(x, y)
        if country is None:
            self._interaction = Interaction.idle()
        else:
            self._interaction = Interaction(state=MapState.HOVERING, country=country, pointer=(x, y))

    def pointer_leave(self) -> None:
        if self._interaction.state is MapState.HOVERING:
            self._interaction = Interaction.idle()

    def click(self, x: float, y: float) -> None:
        if self._boundaries is None or not self.inputs.edit_mode:
            return
        if self._interaction.state is MapState.DRAGGING:
            return
        if self.pin_at(x, y) is not None:
            return
        country = self._boundaries.country_at(x, y)
        if country is not None and self.on_country_toggle is not None:
            self.on_country_toggle(country)

    def pointer_down(self, x: float, y: float) -> None:
        if self._boundaries is None or not self.inputs.edit_mode:
            return
        if self.on_pin_moved is None:
            return
        pin_id = self.pin_at(x, y)
        if pin_id is None:
            return
        self._interaction = Interaction(state=MapState.DRAGGING, pin_id=pin_id, pointer=(x, y))

    def pointer_up(self, x: float, y: float) -> None:
        if self._interaction.state is not MapState.DRAGGING:
            return
        pin_id = self._interaction.pin_id
        self._interaction = Interaction.idle()
        if pin_id is None:
            return
        lon, lat = self.projection.unproject(x, y)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            _LOGGER.warning("Dropped pin %s outside the projectable area; ignored", pin_id)
            return
        lat = clamp(lat, -90.0, 90.0)
        lng = clamp(lon, -180.0, 180.0)
        if self.on_pin_moved is not None:
            self.on_pin_moved(pin_id, lat, lng)

    def pin_at(self, x: float, y: float) -> str | None:
        """Topmost pin whose marker (including stroke) covers the point."""
        reach = self.style.pin_radius + self.style.pin_stroke_width / 2.0
        for location in reversed(self.inputs.locations):
            px, py = self.projection.project(location.lng, location.lat)
            if math.hypot(px - x, py - y) <= reach:
                return location.id
        return None


def _hit_area(screen_polygons: Sequence[ScreenPolygon], polygon_factory: Any) -> Any:
    """Union of the country's polygons; points inside a hole are not covered."""
    polygons = []
    for shell, *holes in screen_polygons:
        try:
            polygon = polygon_factory(shell, holes)
        except (ValueError, TypeError):
            continue
        if not polygon.is_valid:
            polygon = polygon.buffer(0)
        if not polygon.is_empty:
            polygons.append(polygon)
    if not polygons:
        return None
    return _require_shapely_unary_union()(polygons)


def _require_shapely_polygon_factory() -> Any:
    try:
        from shapely.geometry import Polygon
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for map hit testing") from exc
    return Polygon


def _require_shapely_point_factory() -> Any:
    try:
        from shapely.geometry import Point
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for map hit testing") from exc
    return Point


def _require_shapely_unary_union() -> Any:
    try:
        from shapely.ops import unary_union
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for map hit testing") from exc
    return unary_union
