from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from core.records import SUBSCALES, ExperimentRecord


# completion time and time pressure render with two decimals
DURATION_METRICS = {"duration", "temporal_demand"}

VERSION_LABELS = {"optimized": "Optimized UI", "feature": "Feature UI (control)"}

SUMMARY_FIELDS = (
    ("count", "Sessions", 0),
    ("avg_duration", "Avg completion time (min)", 2),
    ("avg_mental_demand", "Avg mental demand", 1),
    ("avg_physical_demand", "Avg physical demand", 1),
    ("avg_temporal_demand", "Avg temporal demand", 1),
    ("avg_performance", "Avg performance", 1),
    ("avg_effort", "Avg effort", 1),
    ("avg_frustration", "Avg frustration", 1),
)

RECORD_COLUMNS = {
    "version": "Version",
    "start_time": "Start",
    "end_time": "End",
    "duration_minutes": "Duration (min)",
    "confirmation_code": "Confirmation code",
    "mental_demand": "Mental",
    "physical_demand": "Physical",
    "temporal_demand": "Temporal",
    "performance": "Performance",
    "effort": "Effort",
    "frustration": "Frustration",
}

EXPORT_COLUMNS = [
    "id",
    "version",
    "start_time",
    "end_time",
    "duration",
    "duration_minutes",
    "confirmation_code",
    *SUBSCALES,
    "created_at",
]


def format_number(value: Optional[float], decimals: int = 1) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value):.{decimals}f}"


def metric_decimals(metric: str) -> int:
    return 2 if metric in DURATION_METRICS else 1


def _signed(value: float, decimals: int, suffix: str = "") -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{decimals}f}{suffix}"


def format_difference(row: Mapping[str, Any]) -> str:
    pct = float(row.get("difference_percent") or 0)
    if pct != 0:
        return _signed(pct, 1, "%")
    return _signed(float(row.get("difference") or 0), metric_decimals(row.get("metric", "")))


def summary_lines(stats: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    if not stats:
        return []
    lines: List[Tuple[str, str]] = []
    for field, label, decimals in SUMMARY_FIELDS:
        value = stats.get(field)
        if field == "count":
            lines.append((label, str(int(value or 0))))
        else:
            lines.append((label, format_number(value, decimals)))
    return lines


def comparison_table(comparison: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    rows = []
    for row in comparison:
        decimals = metric_decimals(row["metric"])
        rows.append(
            {
                "Metric": row.get("label") or row["metric"],
                VERSION_LABELS["optimized"]: format_number(row["optimized"], decimals),
                VERSION_LABELS["feature"]: format_number(row["feature"], decimals),
                "Difference": format_difference(row),
            }
        )
    return pd.DataFrame(rows, columns=["Metric", VERSION_LABELS["optimized"], VERSION_LABELS["feature"], "Difference"])


def _flatten(record: Union[ExperimentRecord, Mapping[str, Any]]) -> Dict[str, Any]:
    raw = record.to_dict() if isinstance(record, ExperimentRecord) else dict(record)
    scores = raw.pop("nasatlx", None) or {}
    raw.update({key: scores.get(key) for key in SUBSCALES})
    if raw.get("duration_minutes") is None and raw.get("duration") is not None:
        raw["duration_minutes"] = float(raw["duration"]) / 1000 / 60
    return raw


def records_frame(records: Iterable[Union[ExperimentRecord, Mapping[str, Any]]]) -> pd.DataFrame:
    """Flat table of records: one column per field, sub-scales inlined."""
    flat = [_flatten(r) for r in records]
    columns = EXPORT_COLUMNS
    if not flat:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(flat).reindex(columns=columns)


def records_table(data: Mapping[str, Any]) -> pd.DataFrame:
    """Display table: optimized results followed by feature results."""
    results = list((data.get("optimized") or {}).get("results") or [])
    results += list((data.get("feature") or {}).get("results") or [])
    df = records_frame(results)[list(RECORD_COLUMNS)].copy()
    if df.empty:
        return df.rename(columns=RECORD_COLUMNS)
    df["version"] = df["version"].map(VERSION_LABELS).fillna(df["version"])
    for col in ("start_time", "end_time"):
        df[col] = pd.to_datetime(df[col], errors="coerce", format="ISO8601").dt.strftime("%Y-%m-%d %H:%M")
    df["duration_minutes"] = df["duration_minutes"].apply(lambda v: format_number(v, 2))
    return df.rename(columns=RECORD_COLUMNS)
