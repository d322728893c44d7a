import logging
from contextlib import contextmanager
from typing import Any, Dict, Mapping, Optional

import pandas as pd
import streamlit as st

from core.charts import workload_chart
from core.client import AnalyticsFetchError, fetch_analytics
from core.config import get_settings
from core.formatting import VERSION_LABELS, comparison_table, records_table, summary_lines

logger = logging.getLogger(__name__)

NO_DATA = "No data yet."


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;}
        .card-title.optimized {color: #2563eb;}
        .card-title.feature {color: #16a34a;}
        .stat-line {display: flex;justify-content: space-between;padding: 2px 0;color: #111827;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, css_class: str = ""):
    container = st.container()
    container.markdown(
        f"<div class='card'><div class='card-title {css_class}'>{title}</div>",
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            load_analytics.clear()
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )


# ---------- data ----------
@st.cache_data(show_spinner="Loading analytics...")
def load_analytics(api_url: str) -> Dict[str, Any]:
    return fetch_analytics(api_url)


# ---------- sections ----------
def render_summary_card(version: str, group: Mapping[str, Any]):
    with card(VERSION_LABELS[version], css_class=version):
        lines = summary_lines(group.get("stats"))
        if not lines:
            st.info(NO_DATA)
            return
        st.markdown(
            "".join(f"<div class='stat-line'><strong>{label}</strong><span>{value}</span></div>" for label, value in lines),
            unsafe_allow_html=True,
        )


def render_comparison(comparison):
    if not comparison:
        st.info("Comparison needs valid sessions for both versions.")
        return
    st.subheader("Comparison")
    st.dataframe(comparison_table(comparison), hide_index=True, use_container_width=True)
    chart = workload_chart(comparison)
    if chart is not None:
        st.altair_chart(chart)


def render_records(records: pd.DataFrame):
    st.subheader("Session records")
    if records.empty:
        st.info(NO_DATA)
        return
    st.dataframe(records, hide_index=True, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="UI Experiment Analytics", layout="wide")
inject_base_styles()
settings = get_settings()

try:
    data = load_analytics(settings.api_url)
except AnalyticsFetchError as exc:
    logger.warning("analytics fetch failed: %s", exc)
    render_page_header("UI Experiment Analytics", "Usability study / NASA-TLX")
    st.error("Failed to load analytics data. Check that the API is running and press Refresh.")
    st.stop()

records = records_table(data)
render_page_header("UI Experiment Analytics", "Usability study / NASA-TLX", export_df=records, export_name="results.csv")
st.caption(f"{(data.get('total') or {}).get('count', 0)} valid sessions")

left, right = st.columns(2)
with left:
    render_summary_card("optimized", data.get("optimized") or {})
with right:
    render_summary_card("feature", data.get("feature") or {})

render_comparison(data.get("comparison") or [])
render_records(records)
