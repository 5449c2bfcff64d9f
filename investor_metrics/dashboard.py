"""The dashboard object graph.

Everything the dashboard shows is assembled once from the raw dataset:
raw facts, derived metrics, cohort matrices, engagement summary, return
curves, monthly revenue series and plan projections, plus the consistency
report for that build. The graph is immutable after construction.

Quick Start
-----------
>>> from investor_metrics.dashboard import load_dashboard
>>> dashboard = load_dashboard()
>>> dashboard.headline_cards()["Total Revenue"]
'$9.4M'
>>> dashboard.consistency.passed
True
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

import structlog

from investor_metrics.analyses.derived import DerivedMetrics, compute_derived_metrics
from investor_metrics.analyses.engagement import (
    EngagementSummary,
    ReturnCurve,
    build_return_curves,
    summarize_engagement,
)
from investor_metrics.analyses.projections import (
    ProjectionEstimate,
    monthly_revenue_series,
    plan_projection_series,
)
from investor_metrics.config import ToleranceConfig
from investor_metrics.foundation.cohorts import RetentionCohorts, Segment, build_retention_cohorts
from investor_metrics.foundation.dataset import load_raw_facts
from investor_metrics.foundation.raw_facts import RawFacts, build_raw_facts
from investor_metrics.formatters.display import (
    format_currency,
    format_number,
    format_percentage,
    format_ratio,
)
from investor_metrics.validation.consistency import (
    ConsistencyReport,
    assert_consistent,
    validate_consistency,
)

logger = structlog.get_logger(__name__)

PLAN_FIELDS = ("users", "gtv", "revenue")


@dataclass(frozen=True)
class Dashboard:
    """Read-only graph of every value the dashboard displays.

    Attributes
    ----------
    raw:
        Validated raw facts
    derived:
        Figures computed from ``raw``
    cohorts:
        Buyer and non-buyer retention matrices
    engagement:
        MAU/DAU and session summary
    return_curves:
        Cumulative return curve per segment (read-only mapping)
    monthly_revenue:
        Monthly revenue series by calendar year, tagged actual/estimated
    plan:
        Management plan series by field ("users", "gtv", "revenue")
    consistency:
        Consistency report for this build
    """

    raw: RawFacts
    derived: DerivedMetrics
    cohorts: RetentionCohorts
    engagement: EngagementSummary
    return_curves: Mapping[Segment, ReturnCurve]
    monthly_revenue: Mapping[int, tuple[ProjectionEstimate, ...]]
    plan: Mapping[str, tuple[ProjectionEstimate, ...]]
    consistency: ConsistencyReport

    def headline_cards(self) -> dict[str, str]:
        """Return the formatted headline cards, in display order."""
        derived = self.derived
        return {
            "Total Users": format_number(derived.total_users),
            f"New Users {derived.reporting_year}": format_number(derived.new_users_ytd),
            "Daily Growth": format_number(derived.daily_growth_ytd),
            "Total GTV": format_currency(derived.total_gtv),
            "Total Revenue": format_currency(derived.total_revenue),
            f"Revenue {derived.revenue_full_year_estimate.label}": format_currency(
                derived.revenue_full_year_estimate.value
            ),
            "Take Rate": format_percentage(derived.take_rate),
            "Contribution Margin": format_percentage(derived.contribution_margin),
            "LTV:CAC": format_ratio(derived.ltv_cac_ratio),
            "Tickets Sold": format_number(derived.tickets_sold),
            "Peak MAU": format_number(self.engagement.peak_mau),
            "Peak DAU": format_number(self.engagement.peak_dau),
        }


def build_dashboard(
    payload: Mapping[str, Any] | None = None,
    tolerances: ToleranceConfig | None = None,
    strict: bool = False,
) -> Dashboard:
    """Build the full dashboard graph from a raw dataset.

    Parameters
    ----------
    payload:
        Raw dataset mapping (default: the compiled-in dataset)
    tolerances:
        Tolerances for the consistency report (default: global config)
    strict:
        If True, raise when any error-severity consistency check fails

    Returns
    -------
    Dashboard
        The immutable graph

    Raises
    ------
    ConstructionError
        If the raw dataset is malformed.
    ConsistencyError
        If ``strict`` is set and a consistency check fails.
    """
    raw = load_raw_facts() if payload is None else build_raw_facts(payload)
    derived = compute_derived_metrics(raw)
    cohorts = build_retention_cohorts(raw)
    report = validate_consistency(raw, derived, cohorts, tolerances)
    if strict:
        assert_consistent(report)

    return Dashboard(
        raw=raw,
        derived=derived,
        cohorts=cohorts,
        engagement=summarize_engagement(raw),
        return_curves=MappingProxyType(build_return_curves(raw.cumulative_return)),
        monthly_revenue=MappingProxyType(
            {record.year: monthly_revenue_series(raw, record.year) for record in raw.monthly_revenue}
        ),
        plan=MappingProxyType(
            {field: plan_projection_series(raw, field) for field in PLAN_FIELDS}
        ),
        consistency=report,
    )


@lru_cache(maxsize=1)
def load_dashboard() -> Dashboard:
    """Return the dashboard built from the compiled-in dataset.

    Built on first call and cached; later calls return the same object.
    """
    dashboard = build_dashboard()
    logger.info(
        "dashboard_built",
        reporting_year=dashboard.derived.reporting_year,
        consistency_passed=dashboard.consistency.passed,
        warnings=len(dashboard.consistency.warnings),
    )
    return dashboard
