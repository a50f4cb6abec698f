"""Company profile domain models and their JSON document mapping."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

LOCATION_TYPES = ("office", "operation")
SOURCE_SECTIONS = ("intro", "financial", "location")
DEFAULT_X_AXIS_LABEL = "Years"

_YEAR_FIELD = "year"
_LEGACY_EBITDA_LABELS = {"EBITDA ($M)", "EBDAT ($M)"}
_MIGRATED_EBITDA_LABEL = "EBITDA (R Billion)"

_LOGGER = logging.getLogger("outreach.models")


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _text(value: Any) -> str:
    """Free-text form fields: anything missing becomes an empty string."""
    if value is None:
        return ""
    return str(value)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _id_or_new(value: Any) -> str:
    if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
        return str(value).strip()
    return new_id()


def _list(value: Any, field_name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    return value


def coerce_number(value: Any, field_name: str = "value") -> float:
    """Coerce form input to a finite float; anything unusable becomes 0."""
    if isinstance(value, bool):
        number = math.nan
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            number = math.nan
    else:
        number = math.nan
    if not math.isfinite(number):
        _LOGGER.debug("Non-numeric input for %s (%r); using 0", field_name, value)
        return 0.0
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True, slots=True)
class Executive:
    id: str
    role_title: str
    name: str = ""
    bio: str = ""
    education: str = ""
    image_url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Executive:
        return cls(
            id=_id_or_new(data.get("id")),
            role_title=_text(data.get("role_title")),
            name=_text(data.get("name")),
            bio=_text(data.get("bio")),
            education=_text(data.get("education")),
            image_url=_optional_text(data.get("image_url")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role_title": self.role_title,
            "name": self.name,
            "bio": self.bio,
            "education": self.education,
            "image_url": self.image_url,
        }


@dataclass(frozen=True, slots=True)
class ContactDetails:
    address: str = ""
    emails: tuple[str, ...] = ()
    phones: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ContactDetails:
        return cls(
            address=_text(data.get("address")),
            emails=tuple(_text(item) for item in _list(data.get("emails"), "contact.emails")),
            phones=tuple(_text(item) for item in _list(data.get("phones"), "contact.phones")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "emails": list(self.emails),
            "phones": list(self.phones),
        }


@dataclass(frozen=True, slots=True)
class GeoLocation:
    """A pin on the company map. Coordinates are always within valid ranges."""

    id: str
    name: str
    lat: float
    lng: float
    type: str = "office"

    def __post_init__(self) -> None:
        if self.type not in LOCATION_TYPES:
            raise ValueError(
                f"Location type must be one of: {', '.join(LOCATION_TYPES)} (got '{self.type}')"
            )

    @classmethod
    def create(cls, *, id: str, name: str, lat: Any, lng: Any, type: str = "office") -> GeoLocation:
        return cls(
            id=id,
            name=name,
            lat=clamp(coerce_number(lat, "location.lat"), -90.0, 90.0),
            lng=clamp(coerce_number(lng, "location.lng"), -180.0, 180.0),
            type=type,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GeoLocation:
        type_raw = data.get("type")
        loc_type = str(type_raw).strip().casefold() if type_raw is not None else "office"
        return cls.create(
            id=_id_or_new(data.get("id")),
            name=_text(data.get("name")),
            lat=data.get("lat"),
            lng=data.get("lng"),
            type=loc_type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "type": self.type,
        }


@dataclass(frozen=True, slots=True)
class ChartConfig:
    """Selects one metric of the year series and how to label it."""

    id: str
    data_key: str
    title: str
    axis_label: str
    x_axis_label: str = DEFAULT_X_AXIS_LABEL

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ChartConfig:
        data_key = _require_str(data.get("data_key"), "chart.data_key")
        if data_key == _YEAR_FIELD:
            raise ValueError("chart.data_key cannot be 'year'")
        title = _optional_text(data.get("title")) or data_key
        return cls(
            id=_id_or_new(data.get("id")),
            data_key=data_key,
            title=title,
            axis_label=_optional_text(data.get("axis_label")) or title,
            x_axis_label=_optional_text(data.get("x_axis_label")) or DEFAULT_X_AXIS_LABEL,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "data_key": self.data_key,
            "title": self.title,
            "axis_label": self.axis_label,
            "x_axis_label": self.x_axis_label,
        }


@dataclass(frozen=True, slots=True)
class ProductionYear:
    """One year of reported figures; metric names are open-ended."""

    year: str
    values: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __hash__(self) -> int:
        return hash((self.year, frozenset(self.values.items())))

    def value(self, key: str) -> float | None:
        return self.values.get(key)

    def with_value(self, key: str, value: Any) -> ProductionYear:
        if key == _YEAR_FIELD:
            raise ValueError("'year' is not a metric key")
        updated = dict(self.values)
        updated[key] = coerce_number(value, f"{self.year}.{key}")
        return ProductionYear(year=self.year, values=updated)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProductionYear:
        year_raw = data.get(_YEAR_FIELD)
        if year_raw is None or isinstance(year_raw, bool) or not str(year_raw).strip():
            raise ValueError("Expected non-empty 'year' in production record")
        year = str(year_raw).strip()
        values: dict[str, float] = {}
        for key, raw in data.items():
            if key == _YEAR_FIELD:
                continue
            values[str(key)] = coerce_number(raw, f"{year}.{key}")
        # Older documents stored EBITDA under its misspelt 'ebdat' key.
        if "ebdat" in values:
            legacy = values.pop("ebdat")
            values.setdefault("ebitda", legacy)
        return cls(year=year, values=values)

    def to_dict(self) -> dict[str, Any]:
        return {_YEAR_FIELD: self.year, **dict(self.values)}


@dataclass(frozen=True, slots=True)
class Source:
    id: str
    label: str
    url: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Source:
        return cls(
            id=_id_or_new(data.get("id")),
            label=_text(data.get("label")),
            url=_text(data.get("url")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "url": self.url}


@dataclass(frozen=True, slots=True)
class SourceLinks:
    intro: tuple[Source, ...] = ()
    financial: tuple[Source, ...] = ()
    location: tuple[Source, ...] = ()

    def section(self, name: str) -> tuple[Source, ...]:
        _check_section(name)
        return getattr(self, name)

    def with_section(self, name: str, sources: Iterable[Source]) -> SourceLinks:
        _check_section(name)
        sections = {key: getattr(self, key) for key in SOURCE_SECTIONS}
        sections[name] = tuple(sources)
        return SourceLinks(**sections)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SourceLinks:
        sections: dict[str, tuple[Source, ...]] = {}
        for name in SOURCE_SECTIONS:
            raw = data.get(name)
            if raw is None:
                raw = data.get(f"{name}_sources")
            sections[name] = tuple(
                Source.from_mapping(item)
                for item in _list(raw, f"sources.{name}")
                if isinstance(item, Mapping)
            )
        return cls(**sections)

    def to_dict(self) -> dict[str, Any]:
        return {name: [src.to_dict() for src in getattr(self, name)] for name in SOURCE_SECTIONS}


def _check_section(name: str) -> None:
    if name not in SOURCE_SECTIONS:
        raise ValueError(f"Unknown source section '{name}'; expected one of {SOURCE_SECTIONS}")


@dataclass(frozen=True, slots=True)
class Company:
    """Authoritative company profile document."""

    id: str
    name: str
    logo_url: str | None = None
    description: str = ""
    executives: tuple[Executive, ...] = ()
    contact: ContactDetails = field(default_factory=ContactDetails)
    locations: tuple[GeoLocation, ...] = ()
    production_data: tuple[ProductionYear, ...] = ()
    highlighted_countries: tuple[str, ...] = ()
    charts: tuple[ChartConfig, ...] = ()
    sources: SourceLinks = field(default_factory=SourceLinks)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for location in self.locations:
            if location.id in seen:
                raise ValueError(f"Duplicate location id '{location.id}' in company '{self.id}'")
            seen.add(location.id)

    def location(self, location_id: str) -> GeoLocation | None:
        for location in self.locations:
            if location.id == location_id:
                return location
        return None

    def chart_by_title(self, title: str) -> ChartConfig | None:
        for chart in self.charts:
            if chart.title == title:
                return chart
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Company:
        company_id = _require_str(data.get("id"), "id")
        contact_raw = data.get("contact") or {}
        if not isinstance(contact_raw, Mapping):
            raise ValueError("Expected mapping for 'contact'")
        sources_raw = data.get("sources")
        if sources_raw is None:
            sources_raw = data
        elif not isinstance(sources_raw, Mapping):
            raise ValueError("Expected mapping for 'sources'")

        return cls(
            id=company_id,
            name=_require_str(data.get("name"), "name"),
            logo_url=_optional_text(data.get("logo_url")),
            description=_text(data.get("description")),
            executives=tuple(
                Executive.from_mapping(item)
                for item in _list(data.get("executives"), "executives")
                if isinstance(item, Mapping)
            ),
            contact=ContactDetails.from_mapping(contact_raw),
            locations=tuple(
                GeoLocation.from_mapping(item)
                for item in _list(data.get("locations"), "locations")
                if isinstance(item, Mapping)
            ),
            production_data=tuple(
                ProductionYear.from_mapping(item)
                for item in _list(data.get("production_data"), "production_data")
                if isinstance(item, Mapping)
            ),
            highlighted_countries=_unique_names(
                _text(item) for item in _list(data.get("highlighted_countries"), "highlighted_countries")
            ),
            charts=_charts_from_document(data),
            sources=SourceLinks.from_mapping(sources_raw),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "logo_url": self.logo_url,
            "description": self.description,
            "executives": [item.to_dict() for item in self.executives],
            "contact": self.contact.to_dict(),
            "locations": [item.to_dict() for item in self.locations],
            "production_data": [item.to_dict() for item in self.production_data],
            "highlighted_countries": list(self.highlighted_countries),
            "charts": [item.to_dict() for item in self.charts],
            "sources": self.sources.to_dict(),
        }


def _unique_names(names: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    for name in names:
        if name and name not in out:
            out.append(name)
    return tuple(out)


def _charts_from_document(data: Mapping[str, Any]) -> tuple[ChartConfig, ...]:
    charts_raw = data.get("charts")
    if charts_raw is not None:
        return tuple(
            ChartConfig.from_mapping(item)
            for item in _list(charts_raw, "charts")
            if isinstance(item, Mapping)
        )

    # Documents written before charts were configurable carry fixed axis labels.
    ebitda_label = _optional_text(data.get("axis_label_ebitda")) or _optional_text(
        data.get("axis_label_ebdat")
    )
    if ebitda_label is None or ebitda_label in _LEGACY_EBITDA_LABELS:
        ebitda_label = _MIGRATED_EBITDA_LABEL
    production_label = _optional_text(data.get("axis_label_production")) or "Production (Kt)"
    return (
        ChartConfig(id=new_id(), data_key="ebitda", title="EBITDA", axis_label=ebitda_label),
        ChartConfig(
            id=new_id(),
            data_key="production",
            title="Production",
            axis_label=production_label,
        ),
    )
