"""Tests for markdown tables and chart figure specifications."""

import json
from decimal import Decimal

import pytest

from investor_metrics.analyses.derived import compute_derived_metrics
from investor_metrics.analyses.engagement import build_return_curves, summarize_engagement
from investor_metrics.analyses.projections import monthly_revenue_series
from investor_metrics.config import FormatConfig, get_format_config, set_format_config
from investor_metrics.foundation.cohorts import Segment, build_cohort_matrix, build_retention_cohorts
from investor_metrics.foundation.dataset import load_raw_facts
from investor_metrics.foundation.raw_facts import CohortRecord
from investor_metrics.formatters.chart_data import (
    cohort_heatmap_chart,
    financial_evolution_chart,
    monthly_revenue_chart,
    retention_curve_chart,
    return_curve_chart,
    user_growth_chart,
)
from investor_metrics.formatters.markdown_tables import (
    format_cohort_table,
    format_engagement_table,
    format_financial_summary_table,
    format_unit_economics_table,
)


@pytest.fixture
def raw():
    return load_raw_facts()


@pytest.fixture
def derived(raw):
    return compute_derived_metrics(raw)


@pytest.fixture
def small_matrix():
    return build_cohort_matrix(
        Segment.BUYERS,
        [
            CohortRecord(month="Nov 2024", retention=(100, Decimal("85.92"), 80)),
            CohortRecord(month="Dec 2024", retention=(100, 90)),
        ],
    )


class TestFinancialSummaryTable:
    """Test the financial evolution table."""

    def test_rows(self, raw, derived):
        """One row per period plus total and estimate rows."""
        table = format_financial_summary_table(raw, derived)
        assert table.startswith("## Financial Evolution")
        assert "| 2023 | $9.7M | $1.2M | 12.5% | - |" in table
        assert "| 2024 | $26.4M | $3.1M | 11.5% | +152.4% |" in table
        assert "| **Total** | $70.0M | $9.4M | 13.4% | - |" in table

    def test_estimate_row_is_marked(self, raw, derived):
        """The full-year estimate is labelled as an estimate with its basis."""
        table = format_financial_summary_table(raw, derived)
        assert "| 2025E (estimate) | $51.0M | $7.6M |" in table
        assert "linear extrapolation" in table


class TestCohortTable:
    """Test the cohort heatmap table."""

    def test_absent_cells_are_dashes(self, small_matrix):
        """Unobserved offsets render as '-', never 0%."""
        table = format_cohort_table(small_matrix)
        assert "| Cohort | M0 | M1 | M2 |" in table
        assert "| Nov 2024 | 100% | 85.9% | 80% |" in table
        assert "| Dec 2024 | 100% | 90% | - |" in table

    def test_average_row(self, small_matrix):
        """The average row skips absent entries."""
        table = format_cohort_table(small_matrix)
        assert "| **Average** | 100% | 88% | 80% |" in table

    def test_max_offset(self, small_matrix):
        """Tables can be widened past the observed offsets."""
        table = format_cohort_table(small_matrix, max_offset=3)
        assert "| Dec 2024 | 100% | 90% | - | - |" in table

    def test_segment_title(self):
        """The title names the segment."""
        cohorts = build_retention_cohorts(load_raw_facts())
        assert format_cohort_table(cohorts.non_buyers).startswith("## Retention Cohorts: Non-Buyers")


class TestUnitEconomicsAndEngagementTables:
    """Test the remaining tables."""

    def test_unit_economics(self, raw, derived):
        """Company figures sit beside industry benchmarks."""
        table = format_unit_economics_table(derived, raw)
        assert "| LTV | $7.08 | $210.00 |" in table
        assert "| CAC | $0.28 | $70.00 |" in table
        assert "| LTV:CAC | 25.3x | 3x |" in table
        assert "CAC advantage over industry: 250x" in table

    def test_engagement(self, raw):
        """Engagement figures use the shared display formatters."""
        table = format_engagement_table(summarize_engagement(raw))
        assert "| Peak MAU | 219K |" in table
        assert "| DAU/MAU | 16.6% |" in table
        assert "| Session Length YoY | +13.8% |" in table


class TestCharts:
    """Test Plotly figure specifications."""

    def test_financial_evolution(self, raw, derived):
        """Actual bars and estimate bars are separate traces."""
        chart = financial_evolution_chart(raw, derived)
        names = [trace["name"] for trace in chart["data"]]
        assert names == ["GTV", "Revenue", "GTV (estimate)", "Revenue (estimate)"]
        assert chart["data"][0]["x"] == ["2023", "2024", "2025 YTD"]
        assert chart["data"][2]["x"] == ["2025E"]
        assert chart["layout"]["barmode"] == "group"

    def test_user_growth(self, raw):
        """The line follows the cumulative user series."""
        chart = user_growth_chart(raw)
        trace = chart["data"][0]
        assert trace["type"] == "scatter"
        assert trace["y"][0] == 485123
        assert trace["y"][-1] == 801492

    def test_heatmap_absent_cells_are_none(self, small_matrix):
        """Unobserved offsets are None in z."""
        chart = cohort_heatmap_chart(small_matrix)
        trace = chart["data"][0]
        assert trace["type"] == "heatmap"
        assert trace["x"] == ["M0", "M1", "M2"]
        assert trace["z"] == [[100.0, 85.92, 80.0], [100.0, 90.0, None]]

    def test_monthly_revenue(self, raw):
        """Each month appears in exactly one of the two traces."""
        chart = monthly_revenue_chart(monthly_revenue_series(raw, 2025), 2025)
        actual, estimate = chart["data"]
        assert actual["name"] == "Actual"
        assert estimate["name"] == "Estimate"
        for a, e in zip(actual["y"], estimate["y"]):
            assert (a is None) != (e is None)
        assert actual["y"][7] == 294807.0
        assert estimate["y"][8] == 580000.0

    def test_return_curves(self, raw):
        """One trace per segment, buyers first."""
        chart = return_curve_chart(build_return_curves(raw.cumulative_return))
        assert [trace["name"] for trace in chart["data"]] == ["Buyers", "Non-Buyers"]

    def test_retention_curve(self, raw):
        """Average retention per offset, per segment."""
        cohorts = build_retention_cohorts(raw)
        chart = retention_curve_chart(list(cohorts))
        buyers = chart["data"][0]
        assert len(buyers["y"]) == 13
        assert buyers["y"][1] == pytest.approx(87.92)

    def test_charts_are_json_serializable(self, raw, derived):
        """Figure specs contain only plain values."""
        cohorts = build_retention_cohorts(raw)
        for chart in (
            financial_evolution_chart(raw, derived),
            user_growth_chart(raw),
            cohort_heatmap_chart(cohorts.buyers),
            monthly_revenue_chart(monthly_revenue_series(raw, 2024), 2024),
        ):
            json.dumps(chart)

    def test_size_from_config(self, raw):
        """Layout size follows the global format configuration."""
        original = get_format_config()
        try:
            set_format_config(FormatConfig(chart_width=1200, chart_height=600))
            layout = user_growth_chart(raw)["layout"]
            assert (layout["width"], layout["height"]) == (1200, 600)
        finally:
            set_format_config(original)
