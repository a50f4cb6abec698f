"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(raw: Mapping[str, Any], key: str, field_name: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _positive_int(value: Any, field_name: str) -> int:
    out = _int(value, field_name)
    if out <= 0:
        raise ValueError(f"'{field_name}' must be > 0")
    return out


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_str(item, f"{field_name}[{idx}]"))
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _source_from_cfg(value: Any, field_name: str, root_dir: Path) -> str:
    raw = _str(value, field_name)
    if "://" in raw:
        return raw
    p = Path(raw)
    return str(p if p.is_absolute() else root_dir / p)


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectConfig:
        return cls(name=_str(raw.get("name"), "project.name"))


@dataclass(frozen=True, slots=True)
class PathsConfig:
    store_dir: Path
    blobs_dir: Path
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (
            self.store_dir,
            self.blobs_dir,
            self.output_dir,
            self.logs_dir,
        )

    def company_output_dir(self, company_id: str) -> Path:
        return self.output_dir / company_id

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            store_dir=_path_from_cfg(raw.get("store_dir"), "paths.store_dir", root_dir),
            blobs_dir=_path_from_cfg(raw.get("blobs_dir"), "paths.blobs_dir", root_dir),
            output_dir=_path_from_cfg(raw.get("output_dir"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class BoundaryConfig:
    source: str
    object_name: str | None
    name_property: str
    request_timeout_s: int
    user_agent: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> BoundaryConfig:
        return cls(
            source=_source_from_cfg(raw.get("source"), "boundaries.source", root_dir),
            object_name=_optional_str(raw.get("object_name"), "boundaries.object_name"),
            name_property=_str(raw.get("name_property", "name"), "boundaries.name_property"),
            request_timeout_s=_positive_int(
                raw.get("request_timeout_s", 30), "boundaries.request_timeout_s"
            ),
            user_agent=_str(
                raw.get("user_agent", "outreach-profiles/0.1"), "boundaries.user_agent"
            ),
        )


@dataclass(frozen=True, slots=True)
class CanvasConfig:
    width_px: int
    height_px: int
    dpi: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CanvasConfig:
        return cls(
            width_px=_positive_int(raw.get("width_px", 800), "map.canvas.width_px"),
            height_px=_positive_int(raw.get("height_px", 450), "map.canvas.height_px"),
            dpi=_positive_int(raw.get("dpi", 100), "map.canvas.dpi"),
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    scale: float
    center_y_divisor: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        scale = _float(raw.get("scale", 120.0), "map.projection.scale")
        divisor = _float(raw.get("center_y_divisor", 1.5), "map.projection.center_y_divisor")
        if scale <= 0:
            raise ValueError("map.projection.scale must be > 0")
        if divisor <= 0:
            raise ValueError("map.projection.center_y_divisor must be > 0")
        return cls(scale=scale, center_y_divisor=divisor)


@dataclass(frozen=True, slots=True)
class MapStyleConfig:
    background_color: str
    country_color: str
    highlight_color: str
    hover_color: str
    stroke_color: str
    hover_stroke_color: str
    stroke_width: float
    pin_radius: float
    pin_fill_color: str
    pin_stroke_width: float
    drag_stroke_color: str
    tooltip_offset_px: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapStyleConfig:
        return cls(
            background_color=_str(raw.get("background_color", "#1e293b"), "map.style.background_color"),
            country_color=_str(raw.get("country_color", "#475569"), "map.style.country_color"),
            highlight_color=_str(raw.get("highlight_color", "#37A3C3"), "map.style.highlight_color"),
            hover_color=_str(raw.get("hover_color", "#BAE6FD"), "map.style.hover_color"),
            stroke_color=_str(raw.get("stroke_color", "#334155"), "map.style.stroke_color"),
            hover_stroke_color=_str(
                raw.get("hover_stroke_color", "#ffffff"), "map.style.hover_stroke_color"
            ),
            stroke_width=_float(raw.get("stroke_width", 0.5), "map.style.stroke_width"),
            pin_radius=_float(raw.get("pin_radius", 6.0), "map.style.pin_radius"),
            pin_fill_color=_str(raw.get("pin_fill_color", "#ffffff"), "map.style.pin_fill_color"),
            pin_stroke_width=_float(raw.get("pin_stroke_width", 2.0), "map.style.pin_stroke_width"),
            drag_stroke_color=_str(
                raw.get("drag_stroke_color", "#ef4444"), "map.style.drag_stroke_color"
            ),
            tooltip_offset_px=_float(
                raw.get("tooltip_offset_px", 15.0), "map.style.tooltip_offset_px"
            ),
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    canvas: CanvasConfig
    projection: ProjectionConfig
    style: MapStyleConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        return cls(
            canvas=CanvasConfig.from_mapping(_optional_mapping(raw, "canvas", "map.canvas")),
            projection=ProjectionConfig.from_mapping(
                _optional_mapping(raw, "projection", "map.projection")
            ),
            style=MapStyleConfig.from_mapping(_optional_mapping(raw, "style", "map.style")),
        )

    @classmethod
    def default(cls) -> MapConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class ChartsConfig:
    width_px: int
    height_px: int
    dpi: int
    bar_color: str
    label_color: str
    axis_color: str
    x_axis_label: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ChartsConfig:
        return cls(
            width_px=_positive_int(raw.get("width_px", 900), "charts.width_px"),
            height_px=_positive_int(raw.get("height_px", 480), "charts.height_px"),
            dpi=_positive_int(raw.get("dpi", 100), "charts.dpi"),
            bar_color=_str(raw.get("bar_color", "#37A3C3"), "charts.bar_color"),
            label_color=_str(raw.get("label_color", "#64748b"), "charts.label_color"),
            axis_color=_str(raw.get("axis_color", "#94a3b8"), "charts.axis_color"),
            x_axis_label=_str(raw.get("x_axis_label", "Years"), "charts.x_axis_label"),
        )

    @classmethod
    def default(cls) -> ChartsConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class ImagesConfig:
    max_dim_px: int
    jpeg_quality: int
    base_url: str | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ImagesConfig:
        quality = _int(raw.get("jpeg_quality", 50), "images.jpeg_quality")
        if quality < 1 or quality > 95:
            raise ValueError("images.jpeg_quality must be between 1 and 95")
        return cls(
            max_dim_px=_positive_int(raw.get("max_dim_px", 1600), "images.max_dim_px"),
            jpeg_quality=quality,
            base_url=_optional_str(raw.get("base_url"), "images.base_url"),
        )

    @classmethod
    def default(cls) -> ImagesConfig:
        return cls.from_mapping({})


@dataclass(frozen=True, slots=True)
class SeedConfig:
    companies: tuple[str, ...]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SeedConfig:
        companies_raw = raw.get("companies", [])
        return cls(companies=_str_list(companies_raw, "seed.companies"))


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    project: ProjectConfig
    paths: PathsConfig
    boundaries: BoundaryConfig
    map: MapConfig
    charts: ChartsConfig
    images: ImagesConfig
    seed: SeedConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            project=ProjectConfig.from_mapping(_mapping(raw.get("project"), "project")),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            boundaries=BoundaryConfig.from_mapping(
                _mapping(raw.get("boundaries"), "boundaries"), root_dir
            ),
            map=MapConfig.from_mapping(_optional_mapping(raw, "map", "map")),
            charts=ChartsConfig.from_mapping(_optional_mapping(raw, "charts", "charts")),
            images=ImagesConfig.from_mapping(_optional_mapping(raw, "images", "images")),
            seed=SeedConfig.from_mapping(_optional_mapping(raw, "seed", "seed")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
