"""Derived metrics computed from the raw fact store."""

from .calculator import (
    GrowthSeries,
    fraction_of_year_elapsed,
    linear_projection,
    period_over_period_growth,
    ratio,
    sum_across_periods,
)
from .derived import DerivedMetrics, compute_derived_metrics
from .engagement import EngagementSummary, ReturnCurve, build_return_curves, summarize_engagement
from .projections import (
    EstimateStatus,
    ProjectionEstimate,
    merge_estimates,
    monthly_revenue_series,
    plan_projection_series,
    split_actual_estimated,
)

__all__ = [
    "DerivedMetrics",
    "EngagementSummary",
    "EstimateStatus",
    "GrowthSeries",
    "ProjectionEstimate",
    "ReturnCurve",
    "build_return_curves",
    "compute_derived_metrics",
    "fraction_of_year_elapsed",
    "linear_projection",
    "merge_estimates",
    "monthly_revenue_series",
    "period_over_period_growth",
    "plan_projection_series",
    "ratio",
    "split_actual_estimated",
    "sum_across_periods",
    "summarize_engagement",
]
