from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from core.records import SUBSCALES, ExperimentRecord, is_number


StatsRecord = Union[ExperimentRecord, Mapping[str, Any]]

MS_PER_MINUTE = 60 * 1000

# (comparison key, stats field, display label)
METRICS = (
    ("duration", "avg_duration", "Avg completion time (min)"),
    ("mental_demand", "avg_mental_demand", "Mental demand"),
    ("physical_demand", "avg_physical_demand", "Physical demand"),
    ("temporal_demand", "avg_temporal_demand", "Temporal demand"),
    ("performance", "avg_performance", "Performance"),
    ("effort", "avg_effort", "Effort"),
    ("frustration", "avg_frustration", "Frustration"),
)


def mean(values: Iterable[float]) -> float:
    series = pd.Series(list(values), dtype="float64")
    if series.empty:
        return 0.0
    return float(series.mean())


def median(values: Iterable[float]) -> float:
    series = pd.Series(list(values), dtype="float64")
    if series.empty:
        return 0.0
    return float(series.median())


def _as_row(record: StatsRecord) -> Dict[str, Any]:
    if isinstance(record, ExperimentRecord):
        return {"duration": record.duration, **asdict(record.nasatlx)}
    scores = record.get("nasatlx") or {}
    return {"duration": record.get("duration"), **{key: scores.get(key) for key in SUBSCALES}}


def compute_stats(records: Sequence[StatsRecord]) -> Optional[Dict[str, Any]]:
    """Descriptive statistics for one group of records.

    Records missing any numeric sub-scale are ignored. Returns None when nothing
    is left. Durations are reported in minutes.
    """
    if not records:
        return None
    rows = [row for row in (_as_row(r) for r in records) if all(is_number(row[k]) for k in SUBSCALES)]
    if not rows:
        return None

    df = pd.DataFrame(rows)
    durations = pd.to_numeric(df["duration"], errors="coerce") / MS_PER_MINUTE
    stats: Dict[str, Any] = {
        "count": int(len(df)),
        "avg_duration": mean(durations),
        "median_duration": median(durations),
        "min_duration": float(durations.min()),
        "max_duration": float(durations.max()),
    }
    for key in SUBSCALES:
        stats[f"avg_{key}"] = mean(df[key].tolist())
    return stats


def _percent_change(a: float, b: float) -> float:
    if b == 0:
        return 0.0
    return (a - b) / b * 100


def compute_comparison(
    optimized: Mapping[str, Any],
    feature: Mapping[str, Any],
    *,
    percent_for_all: bool = False,
) -> List[Dict[str, Any]]:
    """One row per metric with `difference = optimized - feature`.

    The percentage difference is only filled in for duration unless
    `percent_for_all` is set; otherwise sub-scale rows carry 0.
    """
    rows: List[Dict[str, Any]] = []
    for key, field, label in METRICS:
        a = float(optimized[field])
        b = float(feature[field])
        pct = _percent_change(a, b) if key == "duration" or percent_for_all else 0.0
        rows.append(
            {
                "metric": key,
                "label": label,
                "optimized": a,
                "feature": b,
                "difference": a - b,
                "difference_percent": pct,
            }
        )
    return rows
