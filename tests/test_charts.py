from __future__ import annotations

import pytest

from outreach.charts import (
    ChartPoint,
    build_series,
    format_number,
    format_percent_change,
    latest_year,
    sort_by_year,
)
from outreach.defaults import create_empty_company
from outreach.models import ChartConfig, Company, ProductionYear


def _records(values: list[float], key: str = "ebitda") -> list[ProductionYear]:
    return [
        ProductionYear(year=str(2021 + idx), values={key: value}) for idx, value in enumerate(values)
    ]


def _chart(key: str = "ebitda") -> ChartConfig:
    return ChartConfig(id="c", data_key=key, title="EBITDA", axis_label="EBITDA (R Billion)")


def test_percent_change_annotations() -> None:
    series = build_series(_records([10, 12, 11, 14]), _chart())
    assert [point.annotation for point in series] == [
        None,
        "12 (+20%)",
        "11 (-8.3%)",
        "14 (+27.3%)",
    ]
    assert [point.x for point in series] == ["2021", "2022", "2023", "2024"]
    assert [point.y for point in series] == [10.0, 12.0, 11.0, 14.0]


def test_zero_base_suppresses_change() -> None:
    series = build_series(_records([0, 5]), _chart())
    assert series[1].annotation is None
    assert series[1].label == "5"


def test_missing_key_charts_as_zero() -> None:
    records = [
        ProductionYear(year="2021", values={"ebitda": 4.0}),
        ProductionYear(year="2022", values={"production": 3.0}),
    ]
    series = build_series(records, _chart())
    assert series[1] == ChartPoint(x="2022", y=0.0, annotation="0 (-100%)")


def test_series_keeps_input_order() -> None:
    records = [
        ProductionYear(year="2023", values={"ebitda": 2.0}),
        ProductionYear(year="2021", values={"ebitda": 1.0}),
    ]
    assert [point.x for point in build_series(records, _chart())] == ["2023", "2021"]


def test_number_and_change_formatting() -> None:
    assert format_number(12.0) == "12"
    assert format_number(12.5) == "12.5"
    assert format_number(-3.0) == "-3"
    assert format_percent_change(20.0) == "+20"
    assert format_percent_change(-8.3333) == "-8.3"
    assert format_percent_change(0.0) == "+0"
    assert format_percent_change(-0.04) == "+0"


@pytest.mark.parametrize(
    ("change", "expected"),
    [(0.25, "+0.3"), (-0.25, "-0.3"), (12.45, "+12.4"), (2.5, "+2.5"), (-0.05, "-0.1")],
)
def test_percent_change_halves_round_away_from_zero(change: float, expected: str) -> None:
    assert format_percent_change(change) == expected


def test_latest_year_is_numeric_and_stable() -> None:
    records = [
        ProductionYear(year="2022", values={"ebitda": 1.0}),
        ProductionYear(year="2024", values={"ebitda": 2.0}),
        ProductionYear(year="FY", values={"ebitda": 9.0}),
        ProductionYear(year="2024", values={"ebitda": 3.0}),
        ProductionYear(year="999", values={"ebitda": 4.0}),
    ]
    latest = latest_year(records)
    assert latest is not None
    assert latest.value("ebitda") == 2.0
    assert latest_year([]) is None


def test_sort_by_year_puts_unparseable_years_last() -> None:
    records = [ProductionYear(year=year) for year in ["2023", "FY", "999", "2021"]]
    assert [record.year for record in sort_by_year(records)] == ["999", "2021", "2023", "FY"]


def test_new_company_ebitda_chart_end_to_end() -> None:
    company: Company = create_empty_company("Acme Mining")
    chart = next(chart for chart in company.charts if chart.data_key == "ebitda")
    series = build_series(company.production_data, chart)
    assert series[1].label == "12 (+20%)"
    assert series[0].label == "10"
