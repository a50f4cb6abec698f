"""Cross-company comparison of one charted metric."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .charts import latest_year, year_sort_key
from .models import Company

DEFAULT_METRIC = "EBITDA"

_LOGGER = logging.getLogger("outreach.compare")


@dataclass(frozen=True, slots=True)
class SnapshotEntry:
    company_id: str
    company_name: str
    year: str
    value: float


def available_metrics(companies: Sequence[Company]) -> list[str]:
    """Every chart title used by any company, sorted."""
    return sorted({chart.title for company in companies for chart in company.charts})


def default_metric(metrics: Sequence[str]) -> str | None:
    if DEFAULT_METRIC in metrics:
        return DEFAULT_METRIC
    return metrics[0] if metrics else None


def _column_labels(companies: Sequence[Company]) -> dict[str, str]:
    counts: dict[str, int] = {}
    for company in companies:
        counts[company.name] = counts.get(company.name, 0) + 1
    return {
        company.id: company.name if counts[company.name] == 1 else f"{company.name} ({company.id})"
        for company in companies
    }


def trend_table(companies: Sequence[Company], metric: str) -> Any:
    """Year x company table of the metric; years in numeric order, gaps left empty."""
    labels = _column_labels(companies)
    rows: list[dict[str, Any]] = []
    columns: list[str] = []
    for company in companies:
        chart = company.chart_by_title(metric)
        if chart is None:
            continue
        columns.append(labels[company.id])
        for record in company.production_data:
            value = record.value(chart.data_key)
            if value is None:
                continue
            rows.append({"year": record.year, "company": labels[company.id], "value": value})

    if not rows:
        return pd.DataFrame(columns=columns, index=pd.Index([], name="year"), dtype=float)

    frame = pd.DataFrame(rows).pivot_table(
        index="year", columns="company", values="value", aggfunc="last"
    )
    years = sorted(frame.index, key=year_sort_key)
    frame = frame.reindex(index=years, columns=columns)
    frame.index.name = "year"
    frame.columns.name = None
    return frame


def latest_snapshot(companies: Sequence[Company], metric: str) -> list[SnapshotEntry]:
    """Each company's latest-year value, highest first.

    Companies without a chart for the metric, without a numeric year, or
    whose latest year lacks the metric are left out.
    """
    entries: list[SnapshotEntry] = []
    for company in companies:
        chart = company.chart_by_title(metric)
        if chart is None:
            continue
        latest = latest_year(company.production_data)
        if latest is None:
            continue
        value = latest.value(chart.data_key)
        if value is None:
            _LOGGER.debug("Company %s has no %s for %s", company.id, metric, latest.year)
            continue
        entries.append(
            SnapshotEntry(
                company_id=company.id,
                company_name=company.name,
                year=latest.year,
                value=float(value),
            )
        )
    return sorted(entries, key=lambda entry: entry.value, reverse=True)


def snapshot_frame(entries: Sequence[SnapshotEntry]) -> Any:
    return pd.DataFrame(
        [
            {"company": e.company_name, "company_id": e.company_id, "year": e.year, "value": e.value}
            for e in entries
        ],
        columns=["company", "company_id", "year", "value"],
    )


def write_comparison(
    companies: Sequence[Company],
    metric: str,
    output_dir: Path,
) -> tuple[Path, Path]:
    """Write the trend table and latest snapshot as CSV files."""
    output_dir.mkdir(parents=True, exist_ok=True)
    slug = "".join(ch if ch.isalnum() else "_" for ch in metric.casefold()).strip("_") or "metric"
    trend_path = output_dir / f"compare_{slug}_trend.csv"
    snapshot_path = output_dir / f"compare_{slug}_latest.csv"
    trend_table(companies, metric).to_csv(trend_path)
    snapshot_frame(latest_snapshot(companies, metric)).to_csv(snapshot_path, index=False)
    _LOGGER.info("Wrote %s comparison for %d companies to %s", metric, len(companies), output_dir)
    return trend_path, snapshot_path
