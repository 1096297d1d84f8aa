# calibration_ReportVisualizer/core/summary.py
from __future__ import annotations
import math
from typing import Sequence
import numpy as np

from .model import Dataset, SummaryStatistics

PERCENT_PLACEHOLDER = "N/A"


def final_error_ranking(dataset: Dataset, error_columns: Sequence[str]) -> list[tuple[str, float]]:
    """|error| of each column present in the last record, largest first (stable on ties)."""
    last = dataset.last
    if last is None:
        return []
    rows = [(col, abs(last.fields[col])) for col in error_columns if col in last.fields]
    # NaN magnitudes go last; sorted() is stable so ties keep column order
    return sorted(rows, key=lambda r: (math.isnan(r[1]), -r[1]))


def total_error_trend(dataset: Dataset, error_columns: Sequence[str]) -> list[tuple[int, float]]:
    """Per record: (iteration, sum of |error| over present columns); absent counts as 0."""
    if not len(dataset):
        return []
    frame = dataset.to_frame(list(error_columns))
    totals = frame.abs().sum(axis=1, min_count=0).to_numpy(float)
    return [(int(it), float(t)) for it, t in zip(dataset.iterations, totals)]


def percent_change(trend: Sequence[tuple[int, float]]) -> float | None:
    """
    (first - last) / first * 100 over the total-error trend.

    None when there is no trend, the baseline is zero, or a total is not
    finite; callers render that as PERCENT_PLACEHOLDER.
    """
    if not trend:
        return None
    first = trend[0][1]
    last = trend[-1][1]
    if not (np.isfinite(first) and np.isfinite(last)) or first == 0.0:
        return None
    return (first - last) / first * 100.0


def format_percent_change(value: float | None) -> str:
    if value is None:
        return PERCENT_PLACEHOLDER
    return f"{value:.2f}%"


def compute_summary(dataset: Dataset, error_columns: Sequence[str]) -> SummaryStatistics:
    trend = total_error_trend(dataset, error_columns)
    return SummaryStatistics(
        final_error_ranking=tuple(final_error_ranking(dataset, error_columns)),
        total_error_trend=tuple(trend),
        percent_change=percent_change(trend),
    )
