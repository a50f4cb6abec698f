from __future__ import annotations

import math
from pathlib import Path

import pandas as pd

from outreach.compare import (
    available_metrics,
    default_metric,
    latest_snapshot,
    trend_table,
    write_comparison,
)
from outreach.models import ChartConfig, Company, ProductionYear


def _company(company_id: str, name: str, years: dict[str, dict[str, float]], charts: list[tuple[str, str]]) -> Company:
    return Company(
        id=company_id,
        name=name,
        production_data=tuple(ProductionYear(year=y, values=v) for y, v in years.items()),
        charts=tuple(
            ChartConfig(id=f"{company_id}-{key}", data_key=key, title=title, axis_label=title)
            for key, title in charts
        ),
    )


def _companies() -> list[Company]:
    return [
        _company(
            "a",
            "Alpha Mining",
            {"2023": {"ebitda": 11.0}, "2021": {"ebitda": 10.0}, "2022": {"ebitda": 12.0}},
            [("ebitda", "EBITDA")],
        ),
        _company(
            "b",
            "Beta Mining",
            {"2022": {"ebitda": 30.0, "revenue": 90.0}, "2023": {"ebitda": 25.0, "revenue": 95.0}},
            [("ebitda", "EBITDA"), ("revenue", "Revenue")],
        ),
        _company(
            "c",
            "Gamma Mining",
            {"2022": {"ebitda": 3.0}, "2024": {"production": 1.0}},
            [("ebitda", "EBITDA")],
        ),
    ]


def test_metrics_and_default() -> None:
    metrics = available_metrics(_companies())
    assert metrics == ["EBITDA", "Revenue"]
    assert default_metric(metrics) == "EBITDA"
    assert default_metric(["Revenue", "Tonnes"]) == "Revenue"
    assert default_metric([]) is None


def test_trend_table_orders_years_numerically() -> None:
    table = trend_table(_companies(), "EBITDA")
    assert list(table.index) == ["2021", "2022", "2023"]
    assert list(table.columns) == ["Alpha Mining", "Beta Mining", "Gamma Mining"]
    assert table.loc["2022", "Alpha Mining"] == 12.0
    assert table.loc["2022", "Beta Mining"] == 30.0
    assert math.isnan(table.loc["2021", "Beta Mining"])


def test_trend_table_for_unused_metric_is_empty() -> None:
    table = trend_table(_companies(), "Nothing")
    assert isinstance(table, pd.DataFrame)
    assert table.empty


def test_latest_snapshot_skips_missing_keys_and_sorts_desc() -> None:
    snapshot = latest_snapshot(_companies(), "EBITDA")
    assert [(entry.company_name, entry.year, entry.value) for entry in snapshot] == [
        ("Beta Mining", "2023", 25.0),
        ("Alpha Mining", "2023", 11.0),
    ]


def test_write_comparison_files(tmp_path: Path) -> None:
    trend_path, snapshot_path = write_comparison(_companies(), "EBITDA", tmp_path)
    assert trend_path.name == "compare_ebitda_trend.csv"
    trend = pd.read_csv(trend_path, dtype={"year": str})
    assert list(trend["year"]) == ["2021", "2022", "2023"]
    snapshot = pd.read_csv(snapshot_path)
    assert list(snapshot["company"]) == ["Beta Mining", "Alpha Mining"]
