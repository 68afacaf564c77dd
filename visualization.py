# visualization.py
import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from collections.abc import Sequence

from calculations import ProjectionResult

ORANGE = (253, 150, 68)
BLUE = (99, 110, 250)
GREEN = (138, 201, 38)
RED = (255, 89, 94)


def _rgba(color: tuple[int, int, int], alpha: float) -> str:
    r, g, b = color
    return f"rgba({r}, {g}, {b}, {alpha})"


def _finish(fig: go.Figure, yaxis_title: str) -> go.Figure:
    fig.update_layout(
        margin=dict(t=0, b=0, l=0, r=0),
        yaxis_title=yaxis_title,
        legend_title_text="",
    )
    return fig


def rate_curve_figure(
    rates: Sequence[float],
    time_horizon: int,
    min_value: float = 0.0,
    max_value: float = 100.0,
    color: tuple[int, int, int] = ORANGE,
) -> go.Figure:
    """Line chart of the used prefix (``time_horizon + 1`` years) of a rate series."""

    values = list(rates)[: time_horizon + 1]
    values += [0.0] * (time_horizon + 1 - len(values))
    df = pd.DataFrame({"Year": list(range(time_horizon + 1)), "Rate (%)": values})
    fig = px.line(df, x="Year", y="Rate (%)", markers=True)
    fig.update_traces(line_color=_rgba(color, 1.0), fill="tozeroy", fillcolor=_rgba(color, 0.2))
    fig.update_yaxes(range=[min_value, max_value])
    fig.update_layout(showlegend=False)
    return _finish(fig, "Rate (%)")


def btc_growth_figure(result: ProjectionResult) -> go.Figure:
    df = pd.DataFrame(
        {
            "Year": [r.year for r in result.results],
            "Without income (₿)": [r.btc_without_income for r in result.results],
            "With income (₿)": [r.btc_with_income for r in result.results],
        }
    )
    fig = px.line(df, x="Year", y=["Without income (₿)", "With income (₿)"])
    for trace, color in zip(fig.data, (BLUE, ORANGE)):
        trace.line.color = _rgba(color, 1.0)
        trace.fill = "tozeroy"
        trace.fillcolor = _rgba(color, 0.2)
    return _finish(fig, "BTC (₿)")


def usd_income_figure(result: ProjectionResult) -> go.Figure:
    years = list(range(len(result.usd_income)))
    df = pd.DataFrame(
        {
            "Year": years,
            "Income": result.usd_income,
            "Income with leverage": result.usd_income_with_leverage,
            "Expenses": result.annual_expenses[: len(years)],
        }
    )
    fig = px.line(df, x="Year", y=["Income", "Income with leverage", "Expenses"])
    for trace, color in zip(fig.data, (GREEN, ORANGE, RED)):
        trace.line.color = _rgba(color, 1.0)
    return _finish(fig, "USD per year")


def income_potential_figure(result: ProjectionResult) -> go.Figure:
    df = pd.DataFrame(
        {
            "Activation year": list(range(len(result.income_at_activation_years))),
            "Income": result.income_at_activation_years,
            "Income with leverage": result.income_at_activation_years_with_leverage,
        }
    )
    fig = px.bar(
        df,
        x="Activation year",
        y=["Income", "Income with leverage"],
        barmode="group",
        labels={"value": "USD per year", "variable": "Metric"},
    )
    return _finish(fig, "USD per year")


def show_rate_curve(
    rates, time_horizon, min_value=0.0, max_value=100.0, color=ORANGE, key=None, selectable=False
) -> int | None:
    """Render a rate curve; with ``selectable`` returns the clicked year index, if any."""

    fig = rate_curve_figure(rates, time_horizon, min_value, max_value, color)
    if not selectable:
        st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False}, key=key)
        return None
    event = st.plotly_chart(
        fig,
        use_container_width=True,
        config={"displayModeBar": False},
        key=key,
        on_select="rerun",
        selection_mode="points",
    )
    points = (event or {}).get("selection", {}).get("points", [])
    if not points:
        return None
    index = points[0].get("point_index")
    if index is None or not 0 <= int(index) <= time_horizon:
        return None
    return int(index)


def show_projection_charts(result: ProjectionResult | None) -> None:
    """Render the BTC, income and income-potential charts for a projection."""

    if result is None or not result.results:
        return
    st.markdown("**BTC holdings**")
    st.plotly_chart(btc_growth_figure(result), use_container_width=True, config={"displayModeBar": False})
    st.markdown("**USD income vs. expenses**")
    st.plotly_chart(usd_income_figure(result), use_container_width=True, config={"displayModeBar": False})
    st.markdown("**Income potential by activation year**")
    st.plotly_chart(income_potential_figure(result), use_container_width=True, config={"displayModeBar": False})
