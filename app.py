import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd
import streamlit as st

from core.charts import analysis_chart, category_chart, daily_cases_chart, monthly_chart, positivity_chart
from core.data import PREVIEW_LIMIT
from core.metrics_analysis import ANALYSIS_MODES
from core.session import DashboardSession, Notice

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def show_notice(notice: Optional[Notice]):
    if notice is None:
        return
    if notice.level == "success":
        st.success(notice.message)
    elif notice.level == "warning":
        st.warning(notice.message)
    else:
        st.error(notice.message)


def humanize(key: str) -> str:
    return key.replace("_", " ").capitalize()


def get_session() -> DashboardSession:
    if "session" not in st.session_state:
        session = DashboardSession()
        st.session_state["session"] = session
        st.session_state["notice"] = session.load_sample()
    return st.session_state["session"]


# ---------- Pages ----------
def render_dashboard(session: DashboardSession):
    payload = session.dashboard()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Cases", f"{payload['total_positive']:,}")
    c2.metric("Total Tests", f"{payload['total_tests']:,}")
    c3.metric("Positivity Rate", f"{payload['positivity_rate_percent']:.2f}%")
    c4.metric("Peak Month", payload["peak_month"])

    if not payload["record_count"]:
        st.info("No data loaded. Upload a CSV file or reload the sample data.")
        return

    series = payload["series"]
    left, right = st.columns(2)
    with left:
        with card("Daily Cases"):
            st.altair_chart(daily_cases_chart(series["daily"]), use_container_width=True)
        with card("Positivity Rate"):
            st.altair_chart(positivity_chart(series["positivity"]), use_container_width=True)
    with right:
        with card("Cases by Test Type"):
            st.altair_chart(category_chart(series["category"]), use_container_width=True)
        with card("Monthly Trend"):
            st.altair_chart(monthly_chart(series["monthly"]), use_container_width=True)


def render_upload(session: DashboardSession):
    uploaded = st.file_uploader("CSV file (date,type,residence,positive,negative)", type=["csv"])
    b1, b2 = st.columns(2)
    if b1.button("Upload Data"):
        st.session_state["notice"] = session.load_upload(uploaded.getvalue() if uploaded is not None else None)
    if b2.button("Load Sample Data"):
        st.session_state["notice"] = session.load_sample()
    show_notice(st.session_state.pop("notice", None))

    with card("Data Preview"):
        preview = pd.DataFrame(session.preview(PREVIEW_LIMIT))
        if preview.empty:
            st.caption("No records loaded.")
        else:
            st.dataframe(preview, use_container_width=True, hide_index=True)
            st.caption(f"Showing first {len(preview)} of {session.record_count} records")


def render_results(result: Dict[str, Any]):
    st.markdown(f"#### {result['type']} Results")
    if result.get("error"):
        st.error(result["error"])
        return
    skip = {"mode", "type", "filters", "series"}
    scalars = {k: v for k, v in result.items() if k not in skip and not isinstance(v, dict)}
    cols = st.columns(2)
    for i, (key, value) in enumerate(scalars.items()):
        cols[i % 2].markdown(f"**{humanize(key)}:** {value if value is not None else 'N/A'}")
    for key, value in result.items():
        if key in skip or not isinstance(value, dict):
            continue
        table = pd.DataFrame.from_dict(value, orient="index")
        st.markdown(f"**{humanize(key)}**")
        st.dataframe(table, use_container_width=True)


def render_analysis(session: DashboardSession):
    mode = st.selectbox("Analysis Type", list(ANALYSIS_MODES), format_func=lambda m: ANALYSIS_MODES[m])
    d1, d2 = st.columns(2)
    start_date = d1.date_input("Start Date", value=None)
    end_date = d2.date_input("End Date", value=None)
    # Test-type filter is only editable for group analysis.
    test_types = st.multiselect("Test Types", options=session.test_types(), disabled=mode != "group")

    if st.button("Run Analysis"):
        result = session.analysis(mode, {"start_date": start_date, "end_date": end_date, "test_types": test_types})
        render_results(result)
        chart = analysis_chart(result)
        if chart is not None:
            st.altair_chart(chart, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="COVID-19 Testing Dashboard", layout="wide")
inject_base_styles()
st.title("COVID-19 Testing Dashboard")

session = get_session()

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Upload Data", "Analysis"], index=0)
    st.markdown("---")
    st.caption(f"{session.record_count:,} records loaded")

if nav_choice == "Dashboard":
    show_notice(st.session_state.pop("notice", None))
    render_dashboard(session)
elif nav_choice == "Upload Data":
    render_upload(session)
else:
    render_analysis(session)
