"""Seed content for newly created company profiles."""

from __future__ import annotations

from .models import ChartConfig, Company, ContactDetails, Executive, ProductionYear, new_id

DEFAULT_EXECUTIVE_ROLES = (
    "Chief Executive Officer",
    "Chief Financial Officer",
    "Chief Operating Officer",
    "Chief Transformation Officer",
)

DEFAULT_DESCRIPTION = "Enter a brief company description..."

# Placeholder figures so a new profile previews with populated charts.
DEFAULT_PRODUCTION_DATA = (
    ("2021", {"ebitda": 10.0, "production": 5.0}),
    ("2022", {"ebitda": 12.0, "production": 6.0}),
    ("2023", {"ebitda": 11.0, "production": 5.5}),
    ("2024", {"ebitda": 14.0, "production": 7.0}),
)

DEFAULT_CHARTS = (
    ("ebitda", "EBITDA", "EBITDA (R Billion)"),
    ("production", "Production", "Production (Kt)"),
)


def create_empty_company(name: str) -> Company:
    """Build a new profile with a fresh id and the default roles, figures and charts."""
    clean_name = name.strip()
    if not clean_name:
        raise ValueError("Company name must not be empty")
    return Company(
        id=new_id(),
        name=clean_name,
        description=DEFAULT_DESCRIPTION,
        executives=tuple(
            Executive(id=new_id(), role_title=role) for role in DEFAULT_EXECUTIVE_ROLES
        ),
        contact=ContactDetails(address="", emails=("",), phones=("",)),
        locations=(),
        production_data=tuple(
            ProductionYear(year=year, values=dict(values))
            for year, values in DEFAULT_PRODUCTION_DATA
        ),
        highlighted_countries=(),
        charts=tuple(
            ChartConfig(id=new_id(), data_key=key, title=title, axis_label=label)
            for key, title, label in DEFAULT_CHARTS
        ),
    )
