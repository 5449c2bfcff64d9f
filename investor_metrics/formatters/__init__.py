"""Presentation formatting for the investor dashboard.

This package converts derived figures into presentation-ready output:

- Display strings for cards (currency, counts, percentages, ratios)
- Markdown tables for readable text output
- Plotly figure specifications for charts
"""

from investor_metrics.formatters.chart_data import (
    cohort_heatmap_chart,
    financial_evolution_chart,
    monthly_revenue_chart,
    retention_curve_chart,
    return_curve_chart,
    user_growth_chart,
)
from investor_metrics.formatters.display import (
    format_currency,
    format_growth,
    format_number,
    format_percentage,
    format_ratio,
)
from investor_metrics.formatters.markdown_tables import (
    format_cohort_table,
    format_engagement_table,
    format_financial_summary_table,
    format_unit_economics_table,
)

__all__ = [
    "cohort_heatmap_chart",
    "financial_evolution_chart",
    "format_cohort_table",
    "format_currency",
    "format_engagement_table",
    "format_financial_summary_table",
    "format_growth",
    "format_number",
    "format_percentage",
    "format_ratio",
    "format_unit_economics_table",
    "monthly_revenue_chart",
    "retention_curve_chart",
    "return_curve_chart",
    "user_growth_chart",
]
