"""Rasterize map scenes and chart series with matplotlib."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from .charts import ChartPoint
from .config import ChartsConfig
from .geo import ScreenPolygon, ScreenRing
from .map_view import MapScene
from .models import ChartConfig

_LOGGER = logging.getLogger("outreach.render")

_HINT_COLOR = "#94a3b8"
_TOOLTIP_FACE = "#0f172a"
_TOOLTIP_TEXT = "#ffffff"


def save_map_scene(scene: MapScene, path: Path, *, dpi: int = 100, fmt: str | None = None) -> Path:
    """Draw the scene in canvas pixel space (y grows downwards) and save it."""
    plt, patches = _require_matplotlib()
    fig, ax = plt.subplots(figsize=(scene.width / dpi, scene.height / dpi), dpi=dpi)
    fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
    try:
        fig.patch.set_facecolor(scene.background)
        ax.set_facecolor(scene.background)
        ax.set_xlim(0.0, scene.width)
        ax.set_ylim(scene.height, 0.0)
        ax.set_aspect("equal")
        ax.set_axis_off()

        for country in scene.countries:
            for polygon in country.polygons:
                ax.add_patch(
                    patches.PathPatch(
                        _polygon_path(polygon),
                        facecolor=country.fill,
                        edgecolor=country.stroke,
                        linewidth=country.stroke_width,
                        zorder=1,
                    )
                )

        for index, pin in enumerate(scene.pins):
            ax.add_patch(
                patches.Circle(
                    (pin.x, pin.y),
                    radius=pin.radius,
                    facecolor=pin.fill,
                    edgecolor=pin.stroke,
                    linewidth=pin.stroke_width,
                    zorder=10 + index,
                )
            )

        if scene.tooltip is not None:
            ax.text(
                scene.tooltip.x,
                scene.tooltip.y,
                scene.tooltip.text,
                color=_TOOLTIP_TEXT,
                fontsize=9,
                va="top",
                ha="left",
                zorder=100,
                bbox={"boxstyle": "round,pad=0.3", "facecolor": _TOOLTIP_FACE, "edgecolor": "none"},
            )

        if scene.hint:
            ax.text(
                8.0,
                scene.height - 8.0,
                scene.hint,
                color=_HINT_COLOR,
                fontsize=8,
                style="italic",
                va="bottom",
                ha="left",
                zorder=100,
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=dpi, format=fmt or path.suffix.lstrip(".") or "png", facecolor=scene.background)
    finally:
        plt.close(fig)
    _LOGGER.debug("Saved map scene with %d countries to %s", len(scene.countries), path)
    return path


def chart_title(chart: ChartConfig) -> str:
    return f"{chart.axis_label} - History"


def save_chart(
    series: Sequence[ChartPoint],
    chart: ChartConfig,
    path: Path,
    cfg: ChartsConfig,
) -> Path:
    """Bar chart of one series with each point's label above its bar."""
    plt, _ = _require_matplotlib()
    fig, ax = plt.subplots(figsize=(cfg.width_px / cfg.dpi, cfg.height_px / cfg.dpi), dpi=cfg.dpi)
    try:
        xs = [point.x for point in series]
        ys = [point.y for point in series]
        bars = ax.bar(xs, ys, color=cfg.bar_color, width=0.6, zorder=2)
        for bar, point in zip(bars, series):
            height = bar.get_height()
            ax.annotate(
                point.label,
                xy=(bar.get_x() + bar.get_width() / 2.0, height),
                xytext=(0, 4 if height >= 0 else -12),
                textcoords="offset points",
                ha="center",
                va="bottom",
                fontsize=9,
                color=cfg.label_color,
            )
        ax.set_title(chart_title(chart), color=cfg.label_color)
        ax.set_xlabel(chart.x_axis_label or cfg.x_axis_label, color=cfg.label_color)
        ax.set_ylabel(chart.axis_label, color=cfg.label_color)
        ax.tick_params(colors=cfg.axis_color)
        for spine in ("top", "right"):
            ax.spines[spine].set_visible(False)
        for spine in ("left", "bottom"):
            ax.spines[spine].set_color(cfg.axis_color)
        ax.grid(axis="y", color=cfg.axis_color, alpha=0.25, zorder=0)
        if ys:
            top = max(max(ys), 0.0)
            ax.set_ylim(min(min(ys), 0.0), top * 1.15 if top > 0 else 1.0)

        path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(path, dpi=cfg.dpi, format=path.suffix.lstrip(".") or "png")
    finally:
        plt.close(fig)
    _LOGGER.debug("Saved chart '%s' (%d points) to %s", chart.title, len(series), path)
    return path


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.patches as patches
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for rendering") from exc
    return (plt, patches)


def _polygon_path(polygon: ScreenPolygon) -> Any:
    """Shell plus holes as one path; holes are wound against the shell so they stay unfilled."""
    from matplotlib.path import Path as MplPath

    shell, *holes = polygon
    shell_sign = _signed_area(shell) >= 0.0
    parts = [MplPath(_closed(shell), closed=True)]
    for hole in holes:
        ring = hole if (_signed_area(hole) >= 0.0) != shell_sign else tuple(reversed(hole))
        parts.append(MplPath(_closed(ring), closed=True))
    return MplPath.make_compound_path(*parts)


def _closed(ring: ScreenRing) -> ScreenRing:
    if ring[0] == ring[-1]:
        return ring
    return (*ring, ring[0])


def _signed_area(ring: ScreenRing) -> float:
    return 0.5 * sum(x0 * y1 - x1 * y0 for (x0, y0), (x1, y1) in zip(ring, ring[1:] + ring[:1]))
