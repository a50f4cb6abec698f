"""Static outputs for one company: map image, chart images and the preview page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Iterable, Sequence

from .boundaries import BoundaryRepository
from .charts import build_series, format_number, latest_year, sort_by_year
from .config import AppConfig
from .geo import MercatorProjection
from .map_view import MapInputs, WorldMapView
from .models import ChartConfig, Company, Source
from .render import chart_title, save_chart, save_map_scene
from .store import JsonCompanyStore, PersistenceFailure
from .util import format_report_lines

MAP_UNAVAILABLE = "Map data unavailable"

_LOGGER = logging.getLogger("outreach.preview")


@dataclass(slots=True)
class OutputReport:
    output_path: Path | None = None
    map_path: Path | None = None
    chart_paths: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def format_output_lines(report: OutputReport) -> list[str]:
    return format_report_lines(
        infos=report.infos,
        warnings=report.warnings,
        errors=report.errors,
        ok_message="Outputs written." if report.ok else None,
    )


def build_map_view(cfg: AppConfig) -> WorldMapView:
    return WorldMapView(projection=MercatorProjection.from_config(cfg.map), style=cfg.map.style)


def render_company_map(
    cfg: AppConfig,
    company: Company,
    output_path: Path,
    *,
    view: WorldMapView,
    edit_mode: bool = False,
) -> Path | None:
    """Save the map for the company, or return ``None`` while the view has no boundaries."""
    view.set_inputs(
        MapInputs.build(
            locations=company.locations,
            highlighted_countries=company.highlighted_countries,
            edit_mode=edit_mode,
        )
    )
    scene = view.render()
    if scene is None:
        return None
    return save_map_scene(scene, output_path, dpi=cfg.map.canvas.dpi)


def render_company_charts(
    cfg: AppConfig,
    company: Company,
    output_dir: Path,
) -> list[tuple[ChartConfig, Path]]:
    records = sort_by_year(company.production_data)
    out: list[tuple[ChartConfig, Path]] = []
    for chart in company.charts:
        series = build_series(records, chart)
        path = save_chart(series, chart, output_dir / f"chart_{chart.id}.png", cfg.charts)
        out.append((chart, path))
    return out


def _load_company(cfg: AppConfig, company_id: str, report: OutputReport) -> Company | None:
    try:
        company = JsonCompanyStore(cfg.paths.store_dir).get(company_id)
    except PersistenceFailure as exc:
        report.add_error(str(exc))
        return None
    if company is None:
        report.add_error(f"Unknown company id: {company_id}")
    return company


def _load_view_boundaries(
    cfg: AppConfig,
    view: WorldMapView,
    repository: BoundaryRepository | None,
    report: OutputReport,
) -> bool:
    repo = repository or BoundaryRepository(cfg.boundaries)
    if view.load_boundaries(repo.load):
        return True
    report.add_warning(f"{MAP_UNAVAILABLE}: {view.failure}")
    return False


def run_render_map(
    cfg: AppConfig,
    company_id: str,
    *,
    edit_mode: bool = False,
    repository: BoundaryRepository | None = None,
) -> OutputReport:
    report = OutputReport()
    company = _load_company(cfg, company_id, report)
    if company is None:
        return report
    view = build_map_view(cfg)
    if not _load_view_boundaries(cfg, view, repository, report):
        report.add_error("Map not rendered.")
        return report
    out_dir = cfg.paths.company_output_dir(company.id)
    name = "map_edit.png" if edit_mode else "map.png"
    report.map_path = render_company_map(cfg, company, out_dir / name, view=view, edit_mode=edit_mode)
    report.output_path = report.map_path
    report.add_info(f"Map written to {report.map_path}")
    return report


def run_render_charts(cfg: AppConfig, company_id: str) -> OutputReport:
    report = OutputReport()
    company = _load_company(cfg, company_id, report)
    if company is None:
        return report
    out_dir = cfg.paths.company_output_dir(company.id)
    for chart, path in render_company_charts(cfg, company, out_dir):
        report.chart_paths.append(path)
        report.add_info(f"Chart '{chart.title}' written to {path}")
    if not company.charts:
        report.add_warning(f"Company {company.id} has no charts configured")
    report.output_path = out_dir
    return report


def run_preview(
    cfg: AppConfig,
    company_id: str,
    *,
    repository: BoundaryRepository | None = None,
) -> OutputReport:
    """Render the read-only map and charts and write the preview page.

    Missing boundary data does not fail the preview; the page shows a
    placeholder where the map would be.
    """
    report = OutputReport()
    company = _load_company(cfg, company_id, report)
    if company is None:
        return report
    out_dir = cfg.paths.company_output_dir(company.id)

    view = build_map_view(cfg)
    map_path: Path | None = None
    if _load_view_boundaries(cfg, view, repository, report):
        map_path = render_company_map(cfg, company, out_dir / "map.png", view=view)
    charts = render_company_charts(cfg, company, out_dir)

    report.map_path = map_path
    report.chart_paths = [path for _, path in charts]
    report.output_path = write_company_preview(
        company=company,
        output_html=out_dir / "index.html",
        map_image=map_path,
        chart_images=charts,
    )
    report.add_info(f"Preview written to {report.output_path}")
    return report


def _source_list(title: str, sources: Iterable[Source]) -> list[str]:
    items = [
        f"      <li><a href='{escape(src.url)}'>{escape(src.label or src.url)}</a></li>"
        for src in sources
        if src.url
    ]
    if not items:
        return []
    return [
        "    <div class='sources'>",
        f"      <h4>{escape(title)}</h4>",
        "      <ul>",
        *items,
        "      </ul>",
        "    </div>",
    ]


def _relative_src(target: Path, base_dir: Path) -> str:
    try:
        return target.relative_to(base_dir).as_posix()
    except ValueError:
        return target.resolve().as_uri()


def _latest_value_text(company: Company, chart: ChartConfig) -> str | None:
    latest = latest_year(company.production_data)
    if latest is None:
        return None
    value = latest.value(chart.data_key)
    if value is None:
        return None
    return f"{format_number(value)} ({latest.year})"


def write_company_preview(
    *,
    company: Company,
    output_html: Path,
    map_image: Path | None,
    chart_images: Sequence[tuple[ChartConfig, Path]],
) -> Path:
    """Generate a printable HTML profile page."""
    base_dir = output_html.parent

    executives: list[str] = []
    for executive in company.executives:
        photo = (
            f"      <img class='portrait' src='{escape(executive.image_url)}' "
            f"alt='{escape(executive.name or executive.role_title)}'>"
            if executive.image_url
            else "      <div class='portrait placeholder'></div>"
        )
        executives.extend(
            [
                "    <div class='card executive'>",
                photo,
                f"      <h3>{escape(executive.name or 'Name not set')}</h3>",
                f"      <p class='role'>{escape(executive.role_title)}</p>",
                f"      <p>{escape(executive.bio)}</p>" if executive.bio else "",
                f"      <p class='education'>{escape(executive.education)}</p>"
                if executive.education
                else "",
                "    </div>",
            ]
        )

    contact = company.contact
    contact_rows = [f"    <p>{escape(contact.address)}</p>" if contact.address else ""]
    contact_rows.extend(
        f"    <p><a href='mailto:{escape(email)}'>{escape(email)}</a></p>"
        for email in contact.emails
        if email
    )
    contact_rows.extend(f"    <p>{escape(phone)}</p>" for phone in contact.phones if phone)

    if map_image is not None:
        map_cell = (
            f"    <img class='map' src='{escape(_relative_src(map_image, base_dir))}' "
            f"alt='Map of {escape(company.name)} locations'>"
        )
    else:
        map_cell = f"    <div class='placeholder map'>{MAP_UNAVAILABLE}</div>"
    location_rows = [
        f"      <li>{escape(loc.name)} <span class='type'>{escape(loc.type)}</span></li>"
        for loc in company.locations
    ]

    chart_rows: list[str] = []
    for chart, path in chart_images:
        latest = _latest_value_text(company, chart)
        chart_rows.extend(
            [
                "    <div class='card chart'>",
                f"      <h3>{escape(chart.title)}</h3>",
                f"      <p class='latest'>Latest: {escape(latest)}</p>" if latest else "",
                f"      <img src='{escape(_relative_src(path, base_dir))}' "
                f"alt='{escape(chart_title(chart))}'>",
                "    </div>",
            ]
        )

    logo = (
        f"    <img class='logo' src='{escape(company.logo_url)}' alt='{escape(company.name)} logo'>"
        if company.logo_url
        else ""
    )

    lines = [
        "<!doctype html>",
        "<html lang='en'>",
        "<head>",
        "  <meta charset='utf-8'>",
        "  <meta name='viewport' content='width=device-width, initial-scale=1'>",
        f"  <title>{escape(company.name)} profile</title>",
        "  <style>",
        "    body { font-family: Arial, sans-serif; margin: 24px; color: #0f172a; }",
        "    header { display: flex; align-items: center; gap: 16px; }",
        "    .logo { max-height: 64px; }",
        "    .grid { display: grid; grid-template-columns: repeat(2, minmax(260px, 1fr)); gap: 16px; }",
        "    .card { border: 1px solid #e2e8f0; border-radius: 8px; padding: 12px; }",
        "    .role { color: #37A3C3; font-weight: 700; margin: 0 0 8px 0; }",
        "    .education { color: #64748b; font-size: 13px; }",
        "    .portrait { width: 96px; height: 96px; object-fit: cover; border-radius: 50%; }",
        "    .map { width: 100%; max-width: 800px; display: block; }",
        "    .type { color: #64748b; font-size: 12px; text-transform: uppercase; }",
        "    .latest { font-weight: 700; }",
        "    .sources { font-size: 12px; color: #64748b; }",
        "    img { max-width: 100%; }",
        "    .placeholder {",
        "      border: 1px dashed #cbd5e1;",
        "      color: #64748b;",
        "      border-radius: 6px;",
        "      padding: 12px;",
        "      background: #f8fafc;",
        "    }",
        "  </style>",
        "</head>",
        "<body>",
        "  <header>",
        logo,
        f"    <h1>{escape(company.name)}</h1>",
        "  </header>",
        "  <section class='intro'>",
        f"    <p>{escape(company.description)}</p>",
        *_source_list("Sources", company.sources.intro),
        "  </section>",
        "  <section>",
        "    <h2>Leadership</h2>",
        "    <div class='grid'>",
        *executives,
        "    </div>",
        "  </section>",
        "  <section>",
        "    <h2>Contact</h2>",
        *contact_rows,
        "  </section>",
        "  <section>",
        "    <h2>Locations</h2>",
        map_cell,
        "    <ul>",
        *location_rows,
        "    </ul>",
        *_source_list("Sources", company.sources.location),
        "  </section>",
        "  <section>",
        "    <h2>Financials</h2>",
        "    <div class='grid'>",
        *chart_rows,
        "    </div>",
        *_source_list("Sources", company.sources.financial),
        "  </section>",
        "</body>",
        "</html>",
    ]
    html = "\n".join(line for line in lines if line) + "\n"
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
    _LOGGER.debug("Wrote preview for %s to %s", company.id, output_html)
    return output_html
