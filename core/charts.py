from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _long_frame(series: Dict[str, list], value_cols: Dict[str, str]) -> pd.DataFrame:
    wide = pd.DataFrame({"label": series.get("labels", [])})
    for key, name in value_cols.items():
        wide[name] = series.get(key, [])
    return wide.melt(id_vars="label", value_vars=list(value_cols.values()), var_name="metric", value_name="value")


def daily_cases_chart(series: Dict[str, list]) -> alt.Chart:
    long_df = _long_frame(series, {"positive": "Positive Cases", "negative": "Negative Tests"})
    hover = alt.selection_point(fields=["metric"], on="mouseover", empty="all")
    return (
        alt.Chart(long_df)
        .mark_line(point={"filled": True, "size": 40})
        .encode(
            x=alt.X("label:T", title="Date", axis=alt.Axis(grid=False)),
            y=alt.Y("value:Q", title="Number of Tests", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=["#dc3545", "#198754"])),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[alt.Tooltip("label:T", title="Date"), "metric:N", alt.Tooltip("value:Q", format=",")],
        )
        .add_params(hover)
        .properties(height=260)
    )


def category_chart(series: Dict[str, list], title: Optional[str] = None) -> alt.Chart:
    df = pd.DataFrame({"label": series.get("labels", []), "positive": series.get("positive", [])})
    chart = (
        alt.Chart(df)
        .mark_arc(innerRadius=60, stroke="#fff")
        .encode(
            theta=alt.Theta("positive:Q"),
            color=alt.Color("label:N", title=None),
            tooltip=["label:N", alt.Tooltip("positive:Q", title="Cases", format=",")],
        )
        .properties(height=260)
    )
    return chart.properties(title=title) if title else chart


def category_bar_chart(series: Dict[str, list], title: Optional[str] = None) -> alt.Chart:
    df = pd.DataFrame({"label": series.get("labels", []), "positive": series.get("positive", [])})
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title=None, sort=None),
            y=alt.Y("positive:Q", title="Positive Cases"),
            color=alt.Color("label:N", legend=None),
            tooltip=["label:N", alt.Tooltip("positive:Q", format=",")],
        )
        .properties(height=260)
    )
    return chart.properties(title=title) if title else chart


def positivity_chart(series: Dict[str, list], title: Optional[str] = None) -> alt.Chart:
    df = pd.DataFrame({"label": series.get("labels", []), "rate": series.get("rate", [])})
    chart = (
        alt.Chart(df)
        .mark_area(line={"color": "#ffc107"}, color="#ffc10733")
        .encode(
            x=alt.X("label:T", title="Date", axis=alt.Axis(grid=False)),
            y=alt.Y("rate:Q", title="Positivity Rate (%)", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("label:T", title="Date"), alt.Tooltip("rate:Q", title="Rate (%)", format=".2f")],
        )
        .properties(height=260)
    )
    return chart.properties(title=title) if title else chart


def monthly_chart(series: Dict[str, list]) -> alt.Chart:
    long_df = _long_frame(series, {"positive": "Positive Cases", "total": "Total Tests"})
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title="Month", sort=None),
            xOffset="metric:N",
            y=alt.Y("value:Q", title="Number of Tests"),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=["#dc3545", "#0d6efd"])),
            tooltip=["label:N", "metric:N", alt.Tooltip("value:Q", format=",")],
        )
        .properties(height=260)
    )


def dashboard_charts(payload: Dict[str, Any]) -> Dict[str, Any]:
    series = payload.get("series", {})
    return {
        "daily_cases": to_vega_spec(daily_cases_chart(series.get("daily", {}))),
        "category": to_vega_spec(category_chart(series.get("category", {}))),
        "positivity": to_vega_spec(positivity_chart(series.get("positivity", {}))),
        "monthly": to_vega_spec(monthly_chart(series.get("monthly", {}))),
    }


def analysis_chart(result: Dict[str, Any]) -> Optional[alt.Chart]:
    """Chart for an analysis payload; None for error payloads."""
    series = result.get("series")
    if result.get("error") or series is None:
        return None
    mode = result.get("mode")
    if mode == "temporal":
        df = pd.DataFrame({"label": series["labels"], "positive": series["positive"]})
        return (
            alt.Chart(df)
            .mark_area(line={"color": "#dc3545"}, color="#dc354522")
            .encode(
                x=alt.X("label:T", title="Date"),
                y=alt.Y("positive:Q", title="Daily Positive Cases"),
                tooltip=[alt.Tooltip("label:T", title="Date"), "positive:Q"],
            )
            .properties(title="Temporal Analysis - Daily Cases", height=260)
        )
    if mode == "group":
        return category_bar_chart(series, title="Group Analysis - Cases by Type")
    if mode == "residence":
        return category_chart(series, title="Residence Analysis - Cases by Residence Type")
    if mode == "positivity":
        return positivity_chart(series, title="Positivity Analysis - Daily Positivity Rate")
    return None
