from __future__ import annotations

from pathlib import Path

import pytest

from outreach.config import MapStyleConfig
from outreach.editor import (
    ProfileEditor,
    add_source,
    add_year,
    remove_source,
    toggle_highlight,
    update_executive,
)
from outreach.geo import MercatorProjection
from outreach.map_view import WorldMapView
from outreach.models import Company
from outreach.store import JsonCompanyStore, PersistenceFailure


class FailingStore(JsonCompanyStore):
    def put(self, company: Company) -> Company:
        raise PersistenceFailure("disk full")


def test_toggle_highlight_adds_and_removes(company: Company) -> None:
    once = toggle_highlight(company, "Alpha")
    assert once.highlighted_countries == ("Alpha",)
    assert toggle_highlight(once, "Alpha").highlighted_countries == ()


def test_map_clicks_round_trip_through_editor(
    tmp_path: Path, company: Company, view: WorldMapView, projection: MercatorProjection, style: MapStyleConfig
) -> None:
    store = JsonCompanyStore(tmp_path)
    store.put(company)
    editor = ProfileEditor(store, company, edit_mode=True)
    editor.attach_map(view)

    beta = projection.project(50.0, 20.0)
    view.click(*beta)
    assert store.get(company.id).highlighted_countries == ("Beta",)
    fills = {shape.name: shape.fill for shape in view.render().countries}
    assert fills["Beta"] == style.highlight_color

    view.click(*beta)
    assert editor.company.highlighted_countries == ()
    fills = {shape.name: shape.fill for shape in view.render().countries}
    assert fills["Beta"] == style.country_color


def test_pin_drag_is_saved(
    tmp_path: Path, company: Company, view: WorldMapView, projection: MercatorProjection
) -> None:
    store = JsonCompanyStore(tmp_path)
    store.put(company)
    editor = ProfileEditor(store, company)
    editor.attach_map(view)

    view.pointer_down(*projection.project(0.0, 0.0))
    target_x, target_y = projection.project(28.0, -26.0)
    view.pointer_move(target_x, target_y)
    view.pointer_up(target_x, target_y)

    moved = store.get(company.id).location("hq")
    assert moved.lat == pytest.approx(-26.0, abs=1e-6)
    assert moved.lng == pytest.approx(28.0, abs=1e-6)


def test_failed_save_keeps_last_good_company(tmp_path: Path, company: Company) -> None:
    editor = ProfileEditor(FailingStore(tmp_path), company)
    with pytest.raises(PersistenceFailure):
        editor.toggle_country("Alpha")
    assert editor.company is company
    assert editor.company.highlighted_countries == ()


def test_set_metric_coerces_input(tmp_path: Path, company: Company) -> None:
    editor = ProfileEditor(JsonCompanyStore(tmp_path), company)
    editor.set_metric("2022", "ebitda", "not a number")
    editor.set_metric("2023", "copper_kt", "4.5")
    records = {record.year: record for record in editor.company.production_data}
    assert records["2022"].value("ebitda") == 0.0
    assert records["2023"].value("copper_kt") == 4.5
    with pytest.raises(ValueError):
        editor.set_metric("1999", "ebitda", 1)


def test_add_year_follows_latest(company: Company) -> None:
    updated = add_year(company)
    added = updated.production_data[-1]
    assert added.year == "2025"
    assert added.values == {"ebitda": 0.0, "production": 0.0}
    with pytest.raises(ValueError):
        add_year(updated, "2025")


def test_add_pin_and_chart(tmp_path: Path, company: Company) -> None:
    editor = ProfileEditor(JsonCompanyStore(tmp_path), company)
    editor.add_pin(name="Mine", lat="-26.1", lng="27.9", type="operation")
    editor.add_chart(data_key="revenue", title="Revenue", axis_label="Revenue (R Billion)")
    saved = JsonCompanyStore(tmp_path).get(company.id)
    assert saved.locations[-1].type == "operation"
    assert saved.locations[-1].lat == pytest.approx(-26.1)
    assert saved.charts[-1].data_key == "revenue"


def test_source_links_per_section(company: Company) -> None:
    updated = add_source(company, "financial", label="Results", url="https://example.com/r")
    source = updated.sources.financial[0]
    assert updated.sources.intro == ()
    assert remove_source(updated, "financial", source.id).sources.financial == ()
    with pytest.raises(ValueError):
        add_source(company, "unknown", label="x", url="y")


def test_update_executive_rejects_unknown_fields() -> None:
    company = Company.from_mapping(
        {"id": "c", "name": "C", "executives": [{"id": "e1", "role_title": "CEO"}]}
    )
    assert update_executive(company, "e1", name="Jane").executives[0].name == "Jane"
    with pytest.raises(ValueError):
        update_executive(company, "e1", salary=1)
    with pytest.raises(ValueError):
        update_executive(company, "missing", name="x")
