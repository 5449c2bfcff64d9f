"""Markdown table formatters for the investor dashboard.

Renders the financial summary, the retention cohort heatmaps and the unit
economics comparison as plain markdown tables, using the same display
formatters as the dashboard cards so every surface quotes identical
figures.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from investor_metrics.analyses.calculator import percentage
from investor_metrics.errors import UndefinedRatio
from investor_metrics.formatters.display import (
    format_currency,
    format_growth,
    format_number,
    format_percentage,
    format_ratio,
)

if TYPE_CHECKING:
    from investor_metrics.analyses.derived import DerivedMetrics
    from investor_metrics.analyses.engagement import EngagementSummary
    from investor_metrics.foundation.cohorts import CohortMatrix
    from investor_metrics.foundation.raw_facts import RawFacts

ABSENT_CELL = "-"


def format_financial_summary_table(raw: RawFacts, derived: DerivedMetrics) -> str:
    """Format the financial evolution as a markdown table.

    One row per recorded period, a total row, and a final row with the
    full-year estimate for the current partial year, marked as an estimate.

    Parameters
    ----------
    raw:
        Validated raw facts.
    derived:
        Metrics computed from ``raw``.

    Returns
    -------
    str:
        Markdown-formatted table

    Examples
    --------
    >>> from investor_metrics.foundation.dataset import load_raw_facts
    >>> from investor_metrics.analyses.derived import compute_derived_metrics
    >>> raw = load_raw_facts()
    >>> "| **Total** | $70.0M | $9.4M |" in format_financial_summary_table(
    ...     raw, compute_derived_metrics(raw))
    True
    """
    table = """## Financial Evolution

| Period | GTV | Revenue | Take Rate | Revenue Growth |
|--------|-----|---------|-----------|----------------|
"""
    for year, growth in zip(raw.financial_evolution, derived.revenue_growth):
        table += (
            f"| {year.year} | {format_currency(year.gtv)} | "
            f"{format_currency(year.revenue)} | "
            f"{format_percentage(percentage(year.revenue, year.gtv))} | "
            f"{_format_change(growth)} |\n"
        )

    table += (
        f"| **Total** | {format_currency(derived.total_gtv)} | "
        f"{format_currency(derived.total_revenue)} | "
        f"{format_percentage(derived.take_rate)} | {ABSENT_CELL} |\n"
    )

    revenue_estimate = derived.revenue_full_year_estimate
    gtv_estimate = derived.gtv_full_year_estimate
    table += (
        f"| {revenue_estimate.label} (estimate) | {format_currency(gtv_estimate.value)} | "
        f"{format_currency(revenue_estimate.value)} | "
        f"{format_percentage(percentage(revenue_estimate.value, gtv_estimate.value))} | "
        f"{ABSENT_CELL} |\n"
    )

    table += f"\n_{revenue_estimate.label}: {revenue_estimate.basis}._\n"
    return table


def format_cohort_table(matrix: CohortMatrix, max_offset: int | None = None) -> str:
    """Format a retention cohort matrix as a markdown heatmap table.

    Offsets a cohort has not reached yet render as ``-``; they are never
    shown as zero. The last row holds the average across cohorts that
    observed each offset.

    Parameters
    ----------
    matrix:
        Cohort matrix for one segment
    max_offset:
        Last month offset to show (default: the largest observed offset)

    Returns
    -------
    str:
        Markdown-formatted table
    """
    last = matrix.max_observed_offset if max_offset is None else max_offset
    offsets = range(last + 1)
    title = matrix.segment.value.replace("_", "-").title()

    table = f"## Retention Cohorts: {title}\n\n"
    table += "| Cohort | " + " | ".join(f"M{k}" for k in offsets) + " |\n"
    table += "|--------|" + "|".join("----" for _ in offsets) + "|\n"

    for row in matrix:
        cells = [_format_cell(row.month_offset(k)) for k in offsets]
        table += f"| {row.cohort_id} | " + " | ".join(cells) + " |\n"

    averages = [_format_cell(matrix.average_retention(k)) for k in offsets]
    table += "| **Average** | " + " | ".join(averages) + " |\n"
    return table


def format_unit_economics_table(derived: DerivedMetrics, raw: RawFacts) -> str:
    """Format unit economics against industry benchmarks.

    Parameters
    ----------
    derived:
        Computed metrics (supplies the LTV:CAC ratio and CAC advantage)
    raw:
        Raw facts (supplies the industry benchmarks)

    Returns
    -------
    str:
        Markdown-formatted table
    """
    economics = raw.unit_economics
    return f"""## Unit Economics

| Metric | Company | Industry |
|--------|---------|----------|
| LTV | {format_currency(derived.ltv)} | {format_currency(economics.industry_ltv)} |
| CAC | {format_currency(derived.cac)} | {format_currency(economics.industry_cac)} |
| LTV:CAC | {format_ratio(derived.ltv_cac_ratio)} | {format_ratio(economics.industry_ltv_cac_ratio)} |
| Contribution Margin | {format_percentage(derived.contribution_margin)} | {format_percentage(economics.industry_margin)} |

CAC advantage over industry: {format_ratio(derived.cac_advantage)}
"""


def format_engagement_table(summary: EngagementSummary) -> str:
    """Format the engagement summary as a two-column table."""
    return f"""## Engagement

| Metric | Value |
|--------|-------|
| Peak MAU | {format_number(summary.peak_mau)} |
| Average MAU | {format_number(summary.mean_mau)} |
| Peak DAU | {format_number(summary.peak_dau)} |
| DAU/MAU | {format_percentage(summary.dau_mau_ratio)} |
| Session Length (min) | {format_number(summary.latest_session_minutes)} |
| Session Length YoY | {_format_change(_as_fraction(summary.session_growth_yoy))} |
"""


def _format_cell(value: Decimal | None) -> str:
    if value is None:
        return ABSENT_CELL
    return format_percentage(value)


def _as_fraction(pct: Decimal | UndefinedRatio) -> Decimal | UndefinedRatio:
    if isinstance(pct, UndefinedRatio):
        return pct
    return pct / 100


def _format_change(growth: Decimal | UndefinedRatio | None) -> str:
    """Format a growth fraction with sign, or ``-`` for the first period.

    Parameters
    ----------
    growth:
        Growth as a fraction (0.25 for +25%), None when there is no
        previous period

    Returns
    -------
    str:
        Formatted change string with sign
    """
    if growth is None:
        return ABSENT_CELL
    return format_growth(growth)
