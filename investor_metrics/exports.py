"""Export the dashboard graph to JSON and Markdown snapshots.

Files are written only when these functions are called. Exports are
point-in-time snapshots for review and audit trails; the dashboard itself
never reads them back.
"""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import structlog

from investor_metrics.analyses.calculator import GrowthSeries
from investor_metrics.dashboard import Dashboard
from investor_metrics.errors import UndefinedRatio
from investor_metrics.formatters.markdown_tables import (
    format_cohort_table,
    format_engagement_table,
    format_financial_summary_table,
    format_unit_economics_table,
)

logger = structlog.get_logger(__name__)


def _to_jsonable(value: Any) -> Any:
    """Convert derived values to JSON-safe Python types.

    Undefined ratios become ``None``; Decimals become floats.
    """
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, UndefinedRatio):
        return None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, float):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, GrowthSeries):
        return [_to_jsonable(item) for item in value]
    if is_dataclass(value):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(_to_jsonable(k)): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    raise TypeError(f"cannot convert {type(value).__name__} to JSON")


def dashboard_as_dict(dashboard: Dashboard) -> dict[str, Any]:
    """Return a JSON-serializable snapshot of the dashboard graph.

    Parameters
    ----------
    dashboard:
        Built dashboard graph

    Returns
    -------
    dict:
        Nested dict of plain Python values. Cohort offsets a cohort has not
        reached are ``None``; undefined ratios are ``None``.

    Examples
    --------
    >>> from investor_metrics.dashboard import load_dashboard
    >>> snapshot = dashboard_as_dict(load_dashboard())
    >>> snapshot["derived"]["total_revenue"]
    9352983.0
    """
    cohorts = {
        matrix.segment.value: {
            "rows": {row.cohort_id: _to_jsonable(row.padded()) for row in matrix},
            "average": _to_jsonable(matrix.retention_curve()),
        }
        for matrix in dashboard.cohorts
    }
    consistency = dashboard.consistency
    return {
        "headlines": dashboard.headline_cards(),
        "derived": _to_jsonable(dashboard.derived),
        "raw": dashboard.raw.model_dump(mode="json"),
        "cohorts": cohorts,
        "engagement": _to_jsonable(dashboard.engagement),
        "return_curves": {
            segment.value: [[days, float(value)] for days, value in curve.points]
            for segment, curve in dashboard.return_curves.items()
        },
        "monthly_revenue": _to_jsonable(dashboard.monthly_revenue),
        "plan": _to_jsonable(dashboard.plan),
        "consistency": {
            "passed": consistency.passed,
            "failures": len(consistency.failures),
            "warnings": len(consistency.warnings),
            "checks": [
                {
                    "name": check.name,
                    "passed": check.passed,
                    "severity": check.severity,
                    "expected": str(check.expected),
                    "actual": str(check.actual),
                    "tolerance": str(check.tolerance),
                    "detail": check.detail,
                }
                for check in consistency.checks
            ],
        },
    }


def export_dashboard_json(
    dashboard: Dashboard,
    output_path: str | Path,
    metadata: dict[str, Any] | None = None,
) -> Path:
    """Export the dashboard snapshot to a JSON file.

    Parameters
    ----------
    dashboard:
        Built dashboard graph
    output_path:
        Path where the JSON file will be saved; parent directories are
        created as needed
    metadata:
        Optional metadata to include (e.g. dataset version)

    Returns
    -------
    Path:
        The written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    report = {
        "metadata": metadata or {},
        "timestamp": datetime.now().isoformat(),
        "dashboard": dashboard_as_dict(dashboard),
    }
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2)

    logger.info("dashboard_exported", export_format="json", path=str(output_path))
    return output_path


def export_dashboard_markdown(
    dashboard: Dashboard,
    output_path: str | Path,
    title: str = "Investor Dashboard Snapshot",
) -> Path:
    """Export the dashboard as a human-readable Markdown report.

    Parameters
    ----------
    dashboard:
        Built dashboard graph
    output_path:
        Path where the Markdown file will be saved
    title:
        Report title (default: "Investor Dashboard Snapshot")

    Returns
    -------
    Path:
        The written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    lines = [f"# {title}\n"]
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

    lines.append("## Headlines\n")
    for label, value in dashboard.headline_cards().items():
        lines.append(f"- **{label}:** {value}")
    lines.append("")

    lines.append(format_financial_summary_table(dashboard.raw, dashboard.derived))
    lines.append(format_unit_economics_table(dashboard.derived, dashboard.raw))
    lines.append(format_engagement_table(dashboard.engagement))
    for matrix in dashboard.cohorts:
        lines.append(format_cohort_table(matrix))

    consistency = dashboard.consistency
    lines.append("## Consistency\n")
    lines.append(f"- **Checks Run:** {len(consistency.checks)}")
    lines.append(f"- **Failures:** {len(consistency.failures)}")
    lines.append(f"- **Warnings:** {len(consistency.warnings)}\n")
    flagged = consistency.failures + consistency.warnings
    if flagged:
        lines.append("| Check | Severity | Detail |")
        lines.append("|-------|----------|--------|")
        for check in flagged:
            lines.append(f"| {check.name} | {check.severity} | {check.detail} |")

    with open(output_path, "w") as f:
        f.write("\n".join(lines))

    logger.info("dashboard_exported", export_format="markdown", path=str(output_path))
    return output_path
