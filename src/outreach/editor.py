"""Profile edits as pure Company -> Company changes, and the editor that saves them."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable

from .charts import latest_year
from .map_view import MapInputs, WorldMapView
from .models import (
    ChartConfig,
    Company,
    ContactDetails,
    Executive,
    GeoLocation,
    ProductionYear,
    Source,
    coerce_number,
    new_id,
)
from .store import JsonCompanyStore, PersistenceFailure

_LOGGER = logging.getLogger("outreach.editor")

Change = Callable[[Company], Company]


def toggle_highlight(company: Company, country: str) -> Company:
    if country in company.highlighted_countries:
        names = tuple(name for name in company.highlighted_countries if name != country)
    else:
        names = (*company.highlighted_countries, country)
    return replace(company, highlighted_countries=names)


def _require_location(company: Company, location_id: str) -> GeoLocation:
    location = company.location(location_id)
    if location is None:
        raise ValueError(f"Unknown location '{location_id}' in company '{company.id}'")
    return location


def move_location(company: Company, location_id: str, lat: Any, lng: Any) -> Company:
    current = _require_location(company, location_id)
    moved = GeoLocation.create(
        id=current.id, name=current.name, lat=lat, lng=lng, type=current.type
    )
    return replace(
        company,
        locations=tuple(moved if loc.id == location_id else loc for loc in company.locations),
    )


def add_location(
    company: Company,
    *,
    name: str,
    lat: Any,
    lng: Any,
    type: str = "office",
    location_id: str | None = None,
) -> Company:
    location = GeoLocation.create(
        id=location_id or new_id(), name=name, lat=lat, lng=lng, type=type
    )
    return replace(company, locations=(*company.locations, location))


def update_location(
    company: Company,
    location_id: str,
    *,
    name: str | None = None,
    type: str | None = None,
) -> Company:
    current = _require_location(company, location_id)
    updated = replace(
        current,
        name=current.name if name is None else name,
        type=current.type if type is None else type,
    )
    return replace(
        company,
        locations=tuple(updated if loc.id == location_id else loc for loc in company.locations),
    )


def remove_location(company: Company, location_id: str) -> Company:
    _require_location(company, location_id)
    return replace(
        company,
        locations=tuple(loc for loc in company.locations if loc.id != location_id),
    )


def set_metric_value(company: Company, year: str, key: str, value: Any) -> Company:
    if not any(record.year == year for record in company.production_data):
        raise ValueError(f"No production record for year '{year}'")
    return replace(
        company,
        production_data=tuple(
            record.with_value(key, value) if record.year == year else record
            for record in company.production_data
        ),
    )


def add_year(company: Company, year: str | None = None) -> Company:
    """Append a year record with every charted metric at 0."""
    if year is None:
        latest = latest_year(company.production_data)
        year = str(int(latest.year) + 1) if latest is not None else "2024"
    year = year.strip()
    if not year:
        raise ValueError("Year must not be empty")
    if any(record.year == year for record in company.production_data):
        raise ValueError(f"Year '{year}' already exists")
    values = {chart.data_key: 0.0 for chart in company.charts}
    return replace(
        company,
        production_data=(*company.production_data, ProductionYear(year=year, values=values)),
    )


def remove_year(company: Company, year: str) -> Company:
    remaining = tuple(record for record in company.production_data if record.year != year)
    if len(remaining) == len(company.production_data):
        raise ValueError(f"No production record for year '{year}'")
    return replace(company, production_data=remaining)


def add_executive(company: Company, role_title: str = "") -> Company:
    executive = Executive(id=new_id(), role_title=role_title)
    return replace(company, executives=(*company.executives, executive))


def update_executive(company: Company, executive_id: str, **fields: Any) -> Company:
    allowed = {"role_title", "name", "bio", "education", "image_url"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown executive field(s): {', '.join(sorted(unknown))}")
    found = False
    executives: list[Executive] = []
    for executive in company.executives:
        if executive.id == executive_id:
            executive = replace(executive, **fields)
            found = True
        executives.append(executive)
    if not found:
        raise ValueError(f"Unknown executive '{executive_id}' in company '{company.id}'")
    return replace(company, executives=tuple(executives))


def remove_executive(company: Company, executive_id: str) -> Company:
    remaining = tuple(item for item in company.executives if item.id != executive_id)
    if len(remaining) == len(company.executives):
        raise ValueError(f"Unknown executive '{executive_id}' in company '{company.id}'")
    return replace(company, executives=remaining)


def set_executive_image(company: Company, executive_id: str, url: str | None) -> Company:
    return update_executive(company, executive_id, image_url=url)


def set_logo_url(company: Company, url: str | None) -> Company:
    return replace(company, logo_url=url)


def update_details(
    company: Company,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Company:
    if name is not None and not name.strip():
        raise ValueError("Company name must not be empty")
    return replace(
        company,
        name=company.name if name is None else name.strip(),
        description=company.description if description is None else description,
    )


def update_contact(
    company: Company,
    *,
    address: str | None = None,
    emails: Iterable[str] | None = None,
    phones: Iterable[str] | None = None,
) -> Company:
    current = company.contact
    return replace(
        company,
        contact=ContactDetails(
            address=current.address if address is None else address,
            emails=current.emails if emails is None else tuple(emails),
            phones=current.phones if phones is None else tuple(phones),
        ),
    )


def add_source(company: Company, section: str, *, label: str, url: str) -> Company:
    sources = (*company.sources.section(section), Source(id=new_id(), label=label, url=url))
    return replace(company, sources=company.sources.with_section(section, sources))


def update_source(
    company: Company,
    section: str,
    source_id: str,
    *,
    label: str | None = None,
    url: str | None = None,
) -> Company:
    current = company.sources.section(section)
    if not any(source.id == source_id for source in current):
        raise ValueError(f"Unknown {section} source '{source_id}'")
    updated = tuple(
        replace(
            source,
            label=source.label if label is None else label,
            url=source.url if url is None else url,
        )
        if source.id == source_id
        else source
        for source in current
    )
    return replace(company, sources=company.sources.with_section(section, updated))


def remove_source(company: Company, section: str, source_id: str) -> Company:
    current = company.sources.section(section)
    remaining = tuple(source for source in current if source.id != source_id)
    if len(remaining) == len(current):
        raise ValueError(f"Unknown {section} source '{source_id}'")
    return replace(company, sources=company.sources.with_section(section, remaining))


def add_chart(company: Company, *, data_key: str, title: str, axis_label: str) -> Company:
    chart = ChartConfig.from_mapping(
        {"data_key": data_key, "title": title, "axis_label": axis_label}
    )
    return replace(company, charts=(*company.charts, chart))


def remove_chart(company: Company, chart_id: str) -> Company:
    remaining = tuple(chart for chart in company.charts if chart.id != chart_id)
    if len(remaining) == len(company.charts):
        raise ValueError(f"Unknown chart '{chart_id}' in company '{company.id}'")
    return replace(company, charts=remaining)


class ProfileEditor:
    """Single writer for one company.

    Every change is applied to the last saved company and persisted before it
    becomes current. If the store refuses the write, the previous company
    stays current and the :class:`PersistenceFailure` propagates.
    """

    def __init__(self, store: JsonCompanyStore, company: Company, *, edit_mode: bool = True) -> None:
        self.store = store
        self._company = company
        self.edit_mode = edit_mode
        self._views: list[WorldMapView] = []

    @classmethod
    def open(cls, store: JsonCompanyStore, company_id: str, *, edit_mode: bool = True) -> ProfileEditor:
        company = store.get(company_id)
        if company is None:
            raise KeyError(company_id)
        return cls(store, company, edit_mode=edit_mode)

    @property
    def company(self) -> Company:
        return self._company

    def apply(self, change: Change, description: str = "edit") -> Company:
        candidate = change(self._company)
        try:
            self.store.put(candidate)
        except PersistenceFailure:
            _LOGGER.error(
                "Saving %s for company %s failed; keeping previous version",
                description,
                self._company.id,
            )
            self._refresh_views()
            raise
        self._company = candidate
        _LOGGER.info("Applied %s to company %s", description, candidate.id)
        self._refresh_views()
        return candidate

    def map_inputs(self) -> MapInputs:
        return MapInputs.build(
            locations=self._company.locations,
            highlighted_countries=self._company.highlighted_countries,
            edit_mode=self.edit_mode,
        )

    def attach_map(self, view: WorldMapView) -> WorldMapView:
        """Make this editor the receiver of the view's toggle and pin events."""
        view.on_country_toggle = self.toggle_country
        view.on_pin_moved = self.move_pin
        view.set_inputs(self.map_inputs())
        if view not in self._views:
            self._views.append(view)
        return view

    def set_edit_mode(self, edit_mode: bool) -> None:
        self.edit_mode = edit_mode
        self._refresh_views()

    def _refresh_views(self) -> None:
        inputs = self.map_inputs()
        for view in self._views:
            view.set_inputs(inputs)

    # Map events

    def toggle_country(self, country: str) -> Company:
        return self.apply(lambda c: toggle_highlight(c, country), f"highlight toggle '{country}'")

    def move_pin(self, pin_id: str, lat: float, lng: float) -> Company:
        return self.apply(lambda c: move_location(c, pin_id, lat, lng), f"pin move '{pin_id}'")

    # Form edits

    def add_pin(self, *, name: str, lat: Any, lng: Any, type: str = "office") -> Company:
        return self.apply(
            lambda c: add_location(c, name=name, lat=lat, lng=lng, type=type), f"new pin '{name}'"
        )

    def set_metric(self, year: str, key: str, value: Any) -> Company:
        number = coerce_number(value, f"{year}.{key}")
        return self.apply(lambda c: set_metric_value(c, year, key, number), f"{key} for {year}")

    def add_chart(self, *, data_key: str, title: str, axis_label: str) -> Company:
        return self.apply(
            lambda c: add_chart(c, data_key=data_key, title=title, axis_label=axis_label),
            f"new chart '{title}'",
        )

    def set_logo(self, url: str | None) -> Company:
        return self.apply(lambda c: set_logo_url(c, url), "logo")

    def set_executive_image(self, executive_id: str, url: str | None) -> Company:
        return self.apply(lambda c: set_executive_image(c, executive_id, url), "executive image")
