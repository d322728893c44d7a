from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

import altair as alt
import pandas as pd

from core.formatting import VERSION_LABELS

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def workload_chart(comparison: Iterable[Mapping[str, Any]]) -> Optional[alt.Chart]:
    """Grouped bars of the mean NASA-TLX sub-scales, one bar per UI version."""
    rows = []
    for row in comparison:
        if row["metric"] == "duration":
            continue
        for version in ("optimized", "feature"):
            rows.append({"metric": row.get("label") or row["metric"], "version": VERSION_LABELS[version], "score": row[version]})
    if not rows:
        return None
    df = pd.DataFrame(rows)
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("version:N", title=None, axis=alt.Axis(labels=False, ticks=False)),
            y=alt.Y("score:Q", title="Mean score", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("version:N", title="Version"),
            column=alt.Column("metric:N", title=None, sort=[r["metric"] for r in rows[::2]]),
            tooltip=["metric", "version", alt.Tooltip("score:Q", format=".1f")],
        )
        .properties(width=70, height=220)
    )
