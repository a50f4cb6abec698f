"""Year-series extraction and percent-change annotation for profile charts."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from .models import ChartConfig, ProductionYear

_LOGGER = logging.getLogger("outreach.charts")

_TENTH = Decimal("0.1")


@dataclass(frozen=True, slots=True)
class ChartPoint:
    x: str
    y: float
    annotation: str | None = None

    @property
    def label(self) -> str:
        """Text printed above the bar."""
        return self.annotation if self.annotation is not None else format_number(self.y)


def format_number(value: float) -> str:
    """Print a value the way a template literal would: no trailing ``.0``."""
    if not math.isfinite(value):
        return str(value)
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def percent_change(previous: float, current: float) -> float | None:
    if previous == 0:
        return None
    return (current - previous) / previous * 100.0


def format_percent_change(change: float) -> str:
    """One decimal, halves rounded away from zero, trailing ``.0`` dropped."""
    if not math.isfinite(change):
        return str(change)
    rounded = Decimal(change).quantize(_TENTH, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = Decimal("0.0")
    text = f"{rounded:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"+{text}" if rounded >= 0 else text


def build_series(production_data: Sequence[ProductionYear], chart: ChartConfig) -> list[ChartPoint]:
    """One point per year record, in input order.

    A record without ``chart.data_key`` charts as 0. From the second point on,
    the annotation carries the change against the previous point unless the
    previous value is 0.
    """
    points: list[ChartPoint] = []
    previous: float | None = None
    for record in production_data:
        raw = record.value(chart.data_key)
        if raw is None:
            _LOGGER.debug("Year %s has no '%s'; charting 0", record.year, chart.data_key)
            value = 0.0
        else:
            value = float(raw)
        annotation = None
        if previous is not None:
            change = percent_change(previous, value)
            if change is not None:
                annotation = f"{format_number(value)} ({format_percent_change(change)}%)"
        points.append(ChartPoint(x=record.year, y=value, annotation=annotation))
        previous = value
    return points


def year_sort_key(year: str) -> tuple[int, float, str]:
    """Numeric year order; years that do not parse sort after all numeric ones."""
    try:
        return (0, float(int(year.strip())), year)
    except ValueError:
        return (1, 0.0, year)


def sort_by_year(production_data: Iterable[ProductionYear]) -> list[ProductionYear]:
    return sorted(production_data, key=lambda record: year_sort_key(record.year))


def latest_year(production_data: Sequence[ProductionYear]) -> ProductionYear | None:
    """Most recent numeric year; ties keep their original order."""
    numeric = [record for record in production_data if year_sort_key(record.year)[0] == 0]
    if not numeric:
        return None
    # sorted() is stable, so the first of equal years wins.
    return sorted(numeric, key=lambda record: -year_sort_key(record.year)[1])[0]
