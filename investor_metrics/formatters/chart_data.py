"""Chart data builders for the investor dashboard.

Each builder returns a Plotly figure specification as a JSON-serializable
dict (``{"data": [...], "layout": {...}}``). There is one explicit builder
per chart shape; callers never receive a loosely typed record whose keys
vary by chart.

Figure size defaults come from
:func:`investor_metrics.config.get_format_config`.

Examples
--------
>>> from investor_metrics.foundation.dataset import load_raw_facts
>>> chart = user_growth_chart(load_raw_facts())
>>> chart["data"][0]["type"]
'scatter'
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from investor_metrics.config import get_format_config
from investor_metrics.foundation.cohorts import Segment

if TYPE_CHECKING:
    from investor_metrics.analyses.derived import DerivedMetrics
    from investor_metrics.analyses.engagement import ReturnCurve
    from investor_metrics.analyses.projections import ProjectionEstimate
    from investor_metrics.foundation.cohorts import CohortMatrix
    from investor_metrics.foundation.raw_facts import RawFacts

ACTUAL_COLOR = "rgb(55, 128, 191)"
ESTIMATE_COLOR = "rgba(55, 128, 191, 0.35)"
SECONDARY_COLOR = "rgb(255, 165, 0)"

SEGMENT_COLORS = {
    Segment.BUYERS: "rgb(34, 139, 34)",
    Segment.NON_BUYERS: "rgb(220, 20, 60)",
}


def _to_float(value: Decimal | int | None) -> float | None:
    return None if value is None else float(value)


def _layout(title: str, **extra: Any) -> dict[str, Any]:
    config = get_format_config()
    layout: dict[str, Any] = {
        "title": {"text": title, "x": 0.5, "xanchor": "center"},
        "showlegend": True,
        "legend": {"x": 0.01, "y": 0.99, "xanchor": "left", "yanchor": "top"},
        "width": config.chart_width,
        "height": config.chart_height,
    }
    layout.update(extra)
    return layout


def financial_evolution_chart(raw: RawFacts, derived: DerivedMetrics) -> dict[str, Any]:
    """Create the grouped GTV/revenue bar chart by financial period.

    Closed and partial years are drawn as actual bars. The full-year
    estimate for the partial year is a separate, translucent trace so it
    is never mistaken for an actual.

    Parameters
    ----------
    raw:
        Validated raw facts
    derived:
        Metrics computed from ``raw`` (supplies the full-year estimates)

    Returns
    -------
    dict:
        Plotly figure specification as JSON-serializable dict
    """
    periods = [year.year for year in raw.financial_evolution]
    estimate_label = derived.revenue_full_year_estimate.label

    traces = [
        {
            "type": "bar",
            "name": "GTV",
            "x": periods,
            "y": [float(year.gtv) for year in raw.financial_evolution],
            "marker": {"color": ACTUAL_COLOR},
            "hovertemplate": "%{x}<br>GTV: $%{y:,.0f}<extra></extra>",
        },
        {
            "type": "bar",
            "name": "Revenue",
            "x": periods,
            "y": [float(year.revenue) for year in raw.financial_evolution],
            "marker": {"color": SECONDARY_COLOR},
            "yaxis": "y2",
            "hovertemplate": "%{x}<br>Revenue: $%{y:,.0f}<extra></extra>",
        },
        {
            "type": "bar",
            "name": "GTV (estimate)",
            "x": [estimate_label],
            "y": [float(derived.gtv_full_year_estimate.value)],
            "marker": {"color": ESTIMATE_COLOR, "pattern": {"shape": "/"}},
            "hovertemplate": "%{x}<br>GTV (estimate): $%{y:,.0f}<extra></extra>",
        },
        {
            "type": "bar",
            "name": "Revenue (estimate)",
            "x": [estimate_label],
            "y": [float(derived.revenue_full_year_estimate.value)],
            "marker": {"color": "rgba(255, 165, 0, 0.35)", "pattern": {"shape": "/"}},
            "yaxis": "y2",
            "hovertemplate": "%{x}<br>Revenue (estimate): $%{y:,.0f}<extra></extra>",
        },
    ]

    layout = _layout(
        "Financial Evolution",
        barmode="group",
        xaxis={"title": "Period"},
        yaxis={"title": "GTV (USD)", "side": "left"},
        yaxis2={"title": "Revenue (USD)", "overlaying": "y", "side": "right"},
    )
    return {"data": traces, "layout": layout}


def user_growth_chart(raw: RawFacts) -> dict[str, Any]:
    """Create the cumulative registered users line chart."""
    points = raw.user_growth
    trace = {
        "type": "scatter",
        "mode": "lines+markers",
        "name": "Registered Users",
        "x": [p.period for p in points],
        "y": [p.users for p in points],
        "line": {"color": ACTUAL_COLOR, "width": 2},
        "marker": {"size": 8},
        "hovertemplate": "%{x}<br>Users: %{y:,}<extra></extra>",
    }
    layout = _layout(
        "User Growth",
        xaxis={"title": "Period"},
        yaxis={"title": "Cumulative Users", "rangemode": "tozero"},
        hovermode="x unified",
    )
    return {"data": [trace], "layout": layout}


def cohort_heatmap_chart(matrix: CohortMatrix) -> dict[str, Any]:
    """Create a retention heatmap for one segment.

    Offsets a cohort has not reached are ``None`` in ``z`` so they render
    as empty cells rather than 0%.

    Parameters
    ----------
    matrix:
        Cohort matrix for one segment

    Returns
    -------
    dict:
        Plotly figure specification as JSON-serializable dict

    Examples
    --------
    >>> from investor_metrics.foundation.dataset import load_raw_facts
    >>> from investor_metrics.foundation.cohorts import build_retention_cohorts
    >>> cohorts = build_retention_cohorts(load_raw_facts())
    >>> chart = cohort_heatmap_chart(cohorts.buyers)
    >>> chart["data"][0]["type"]
    'heatmap'
    """
    last = max(matrix.max_observed_offset, 0)
    offsets = list(range(last + 1))
    z_values = [[_to_float(row.month_offset(k)) for k in offsets] for row in matrix]

    heatmap_trace = {
        "type": "heatmap",
        "z": z_values,
        "x": [f"M{k}" for k in offsets],
        "y": list(matrix.cohort_ids),
        "colorscale": "Blues",
        "zmin": 0,
        "zmax": 100,
        "hoverongaps": False,
        "colorbar": {"title": "Retention %"},
        "hovertemplate": "Cohort %{y}<br>%{x}: %{z:.1f}%<extra></extra>",
    }
    title = matrix.segment.value.replace("_", "-").title()
    layout = _layout(
        f"Retention Cohorts: {title}",
        showlegend=False,
        xaxis={"title": "Months Since Signup", "side": "top"},
        yaxis={"title": "Cohort", "autorange": "reversed"},
    )
    return {"data": [heatmap_trace], "layout": layout}


def monthly_revenue_chart(series: Sequence[ProjectionEstimate], year: int) -> dict[str, Any]:
    """Create the monthly revenue bar chart, split into actual and estimate.

    Both traces share the full month axis. A month appears in exactly one
    of them; the other trace has ``None`` there.

    Parameters
    ----------
    series:
        Monthly values tagged with their status (see
        :func:`investor_metrics.analyses.projections.monthly_revenue_series`)
    year:
        Calendar year, used in the title

    Returns
    -------
    dict:
        Plotly figure specification as JSON-serializable dict
    """
    months = [item.label for item in series]
    actual_trace = {
        "type": "bar",
        "name": "Actual",
        "x": months,
        "y": [float(item.value) if item.is_actual else None for item in series],
        "marker": {"color": ACTUAL_COLOR},
        "hovertemplate": "%{x}<br>Revenue: $%{y:,.0f}<extra></extra>",
    }
    estimate_trace = {
        "type": "bar",
        "name": "Estimate",
        "x": months,
        "y": [float(item.value) if item.is_estimated else None for item in series],
        "marker": {"color": ESTIMATE_COLOR, "pattern": {"shape": "/"}},
        "hovertemplate": "%{x}<br>Estimate: $%{y:,.0f}<extra></extra>",
    }
    layout = _layout(
        f"Monthly Revenue {year}",
        barmode="overlay",
        xaxis={"title": "Month"},
        yaxis={"title": "Revenue (USD)", "rangemode": "tozero"},
    )
    return {"data": [actual_trace, estimate_trace], "layout": layout}


def return_curve_chart(curves: Mapping[Segment, ReturnCurve]) -> dict[str, Any]:
    """Create the cumulative return line chart, one trace per segment."""
    traces = []
    for segment in (Segment.BUYERS, Segment.NON_BUYERS):
        curve = curves.get(segment)
        if curve is None:
            continue
        traces.append(
            {
                "type": "scatter",
                "mode": "lines+markers",
                "name": segment.value.replace("_", "-").title(),
                "x": [days for days, _ in curve.points],
                "y": [float(value) for _, value in curve.points],
                "line": {"color": SEGMENT_COLORS[segment], "width": 2},
                "hovertemplate": "Day %{x}<br>Returned: %{y:.0f}%<extra></extra>",
            }
        )
    layout = _layout(
        "Cumulative Return After Signup",
        xaxis={"title": "Days Since Signup"},
        yaxis={"title": "Returned Users (%)", "range": [0, 105]},
        hovermode="x unified",
    )
    return {"data": traces, "layout": layout}


def retention_curve_chart(matrices: Sequence[CohortMatrix]) -> dict[str, Any]:
    """Create the average retention line chart (M0..M12) per segment.

    Offsets no cohort has reached are ``None`` and leave a gap.
    """
    traces = []
    for matrix in matrices:
        curve = matrix.retention_curve()
        traces.append(
            {
                "type": "scatter",
                "mode": "lines+markers",
                "name": matrix.segment.value.replace("_", "-").title(),
                "x": [f"M{k}" for k in range(len(curve))],
                "y": [_to_float(value) for value in curve],
                "line": {"color": SEGMENT_COLORS[matrix.segment], "width": 2},
                "connectgaps": False,
                "hovertemplate": "%{x}<br>Average retention: %{y:.1f}%<extra></extra>",
            }
        )
    layout = _layout(
        "Average Retention by Month",
        xaxis={"title": "Months Since Signup"},
        yaxis={"title": "Retention (%)", "range": [0, 105]},
    )
    return {"data": traces, "layout": layout}
