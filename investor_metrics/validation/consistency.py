"""Consistency checks between derived figures, raw facts and published headlines.

The validator recomputes sums directly from raw facts, compares derived
ratios with the hand-rounded figures that were published, and checks
structural rules (cohorts start at 100%, cumulative users never fall,
funds allocations add up, estimates never hide actuals).

Each rule produces one or more :class:`ConsistencyCheck` records. Failed
checks with ``error`` severity make the report fail; ``warning`` checks
(retention upticks) are reported but do not.

Quick Start
-----------
>>> from investor_metrics.foundation.dataset import load_raw_facts
>>> from investor_metrics.foundation.cohorts import build_retention_cohorts
>>> from investor_metrics.analyses.derived import compute_derived_metrics
>>> raw = load_raw_facts()
>>> report = validate_consistency(raw, compute_derived_metrics(raw), build_retention_cohorts(raw))
>>> report.passed
True
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

import structlog

from investor_metrics.analyses.derived import DerivedMetrics
from investor_metrics.config import ToleranceConfig, get_tolerance_config
from investor_metrics.errors import ConsistencyError, UndefinedRatio
from investor_metrics.foundation.cohorts import COHORT_START_RETENTION, RetentionCohorts
from investor_metrics.foundation.raw_facts import RawFacts

logger = structlog.get_logger(__name__)

Severity = Literal["error", "warning"]
CheckValue = Decimal | int | str | None

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ConsistencyCheck:
    """Outcome of one consistency rule.

    Attributes
    ----------
    name:
        Rule identifier (e.g. "revenue_total", "cohort_m0[buyers]")
    passed:
        Whether the rule holds
    expected:
        Value the rule expects (recomputed or published)
    actual:
        Value found in the derived view or raw facts
    tolerance:
        Allowed absolute difference (relative percent for projections)
    severity:
        "error" checks fail the report; "warning" checks do not
    detail:
        Human-readable explanation, filled in for failures
    """

    name: str
    passed: bool
    expected: CheckValue
    actual: CheckValue
    tolerance: Decimal = _ZERO
    severity: Severity = "error"
    detail: str = ""

    def __post_init__(self) -> None:
        """Validate check constraints."""
        if self.severity not in ("error", "warning"):
            raise ValueError(f"severity must be 'error' or 'warning', got {self.severity!r}")
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")


@dataclass(frozen=True)
class ConsistencyReport:
    """All checks from one validation run."""

    checks: tuple[ConsistencyCheck, ...]

    @property
    def failures(self) -> tuple[ConsistencyCheck, ...]:
        """Failed checks with error severity."""
        return tuple(c for c in self.checks if not c.passed and c.severity == "error")

    @property
    def warnings(self) -> tuple[ConsistencyCheck, ...]:
        """Failed checks with warning severity."""
        return tuple(c for c in self.checks if not c.passed and c.severity == "warning")

    @property
    def passed(self) -> bool:
        return not self.failures

    def check(self, name: str) -> ConsistencyCheck:
        """Return the check called ``name``.

        Raises
        ------
        KeyError
            If no check has that name.
        """
        for item in self.checks:
            if item.name == name:
                return item
        raise KeyError(name)


def _exact(name: str, expected: CheckValue, actual: CheckValue) -> ConsistencyCheck:
    passed = expected == actual
    detail = "" if passed else f"expected {expected}, got {actual}"
    return ConsistencyCheck(name, passed, expected, actual, detail=detail)


def _within(
    name: str,
    expected: Decimal | int,
    actual: Decimal | int | UndefinedRatio,
    tolerance: Decimal | int,
) -> ConsistencyCheck:
    tolerance = Decimal(tolerance)
    if isinstance(actual, UndefinedRatio):
        return ConsistencyCheck(
            name, False, expected, str(actual), tolerance, detail="derived value is undefined"
        )
    difference = abs(Decimal(actual) - Decimal(expected))
    passed = difference <= tolerance
    detail = "" if passed else f"differs by {difference}, tolerance is {tolerance}"
    return ConsistencyCheck(name, passed, expected, actual, tolerance, detail=detail)


def _within_relative(
    name: str, expected: Decimal | int, actual: Decimal, tolerance_pct: Decimal
) -> ConsistencyCheck:
    expected = Decimal(expected)
    difference = abs(actual - expected)
    if expected == 0:
        passed = difference == 0
        off_pct = _ZERO if passed else _HUNDRED
    else:
        off_pct = difference / expected * _HUNDRED
        passed = off_pct <= tolerance_pct
    detail = "" if passed else f"differs by {off_pct:.2f}%, tolerance is {tolerance_pct}%"
    return ConsistencyCheck(name, passed, expected, actual, tolerance_pct, detail=detail)


def check_financial_totals(
    raw: RawFacts, derived: DerivedMetrics, tolerances: ToleranceConfig
) -> list[ConsistencyCheck]:
    """Totals equal the sum of their parts, and match published totals."""
    revenue_parts = sum((y.revenue for y in raw.financial_evolution), _ZERO)
    gtv_parts = sum((y.gtv for y in raw.financial_evolution), _ZERO)
    checks = [
        _exact("revenue_total", revenue_parts, derived.total_revenue),
        _exact("gtv_total", gtv_parts, derived.total_gtv),
    ]
    reported = raw.reported
    if reported.total_revenue is not None:
        checks.append(
            _within(
                "revenue_total_reported",
                reported.total_revenue,
                derived.total_revenue,
                tolerances.currency,
            )
        )
    if reported.total_gtv is not None:
        checks.append(
            _within("gtv_total_reported", reported.total_gtv, derived.total_gtv, tolerances.currency)
        )
    return checks


def check_projections(
    raw: RawFacts, derived: DerivedMetrics, tolerances: ToleranceConfig
) -> list[ConsistencyCheck]:
    """Linear full-year estimates stay close to the published estimates."""
    checks: list[ConsistencyCheck] = []
    reported = raw.reported
    if reported.revenue_full_year_estimate is not None:
        checks.append(
            _within_relative(
                "revenue_full_year_estimate",
                reported.revenue_full_year_estimate,
                derived.revenue_full_year_estimate.value,
                tolerances.projection,
            )
        )
    if reported.gtv_full_year_estimate is not None:
        checks.append(
            _within_relative(
                "gtv_full_year_estimate",
                reported.gtv_full_year_estimate,
                derived.gtv_full_year_estimate.value,
                tolerances.projection,
            )
        )
    return checks


def check_user_growth(
    raw: RawFacts, derived: DerivedMetrics, tolerances: ToleranceConfig
) -> list[ConsistencyCheck]:
    """Cumulative users never fall, and partial-year figures match headlines."""
    points = raw.user_growth
    decreases = [
        f"{a.period} -> {b.period}" for a, b in zip(points, points[1:]) if b.users < a.users
    ]
    checks = [
        ConsistencyCheck(
            "user_growth_non_decreasing",
            not decreases,
            "non-decreasing",
            "non-decreasing" if not decreases else ", ".join(decreases),
            detail="" if not decreases else f"users fall between {', '.join(decreases)}",
        )
    ]
    reported = raw.reported
    if reported.total_users is not None:
        checks.append(_exact("total_users_reported", reported.total_users, derived.total_users))
    if reported.new_users_ytd is not None:
        checks.append(
            _within(
                "new_users_ytd", reported.new_users_ytd, derived.new_users_ytd, tolerances.user_count
            )
        )
    if reported.daily_growth_ytd is not None:
        checks.append(
            _within(
                "daily_growth_ytd",
                reported.daily_growth_ytd,
                derived.daily_growth_ytd,
                tolerances.daily_growth,
            )
        )
    if reported.historical_daily_growth is not None:
        checks.append(
            _within(
                "historical_daily_growth",
                reported.historical_daily_growth,
                derived.historical_daily_growth,
                tolerances.daily_growth,
            )
        )
    return checks


def check_unit_economics(
    raw: RawFacts, derived: DerivedMetrics, tolerances: ToleranceConfig
) -> list[ConsistencyCheck]:
    """The LTV:CAC ratio agrees with the published ratio."""
    if raw.reported.ltv_cac_ratio is None:
        return []
    return [
        _within("ltv_cac_ratio", raw.reported.ltv_cac_ratio, derived.ltv_cac_ratio, tolerances.ratio)
    ]


def check_cohorts(raw: RawFacts, cohorts: RetentionCohorts) -> list[ConsistencyCheck]:
    """Every cohort starts at 100%; upticks in retention are warnings.

    The M0 rule reads the raw cohort records rather than the matrices, so it
    still reports a bad start when ``cohorts`` were built from other facts.
    :func:`~investor_metrics.foundation.cohorts.build_retention_cohorts`
    rejects such records outright.
    """
    checks: list[ConsistencyCheck] = []
    for matrix in cohorts:
        segment = matrix.segment.value
        records = getattr(raw.retention_cohorts, segment)
        bad_start = [
            record.month for record in records if record.retention[0] != COHORT_START_RETENTION
        ]
        checks.append(
            ConsistencyCheck(
                f"cohort_m0[{segment}]",
                not bad_start,
                COHORT_START_RETENTION,
                COHORT_START_RETENTION if not bad_start else ", ".join(bad_start),
                detail="" if not bad_start else f"M0 is not 100% for {', '.join(bad_start)}",
            )
        )
        upticks = matrix.non_monotonic_cells()
        cells = ", ".join(f"{cohort_id} M{offset}" for cohort_id, offset in upticks)
        checks.append(
            ConsistencyCheck(
                f"retention_monotonic[{segment}]",
                not upticks,
                "non-increasing",
                "non-increasing" if not upticks else cells,
                severity="warning",
                detail="" if not upticks else f"retention rises at {cells}",
            )
        )
    return checks


def check_funding(raw: RawFacts, tolerances: ToleranceConfig) -> list[ConsistencyCheck]:
    """Use-of-funds percentages sum to 100 and amounts to the raised total."""
    funding = raw.funding
    allocations = funding.use_of_funds
    checks = [
        _exact(
            "use_of_funds_percentage", _HUNDRED, sum((a.percentage for a in allocations), _ZERO)
        ),
        _within(
            "use_of_funds_amount",
            funding.raised,
            sum((a.amount for a in allocations), _ZERO),
            tolerances.currency,
        ),
    ]
    for allocation in allocations:
        checks.append(
            _within(
                f"use_of_funds_allocation[{allocation.category}]",
                funding.raised * allocation.percentage / _HUNDRED,
                allocation.amount,
                tolerances.currency,
            )
        )
    return checks


def check_monthly_revenue_flags(raw: RawFacts) -> list[ConsistencyCheck]:
    """Within each year, no actual month follows an estimated one."""
    checks: list[ConsistencyCheck] = []
    for record in raw.monthly_revenue:
        first_estimate: str | None = None
        hidden: list[str] = []
        for point in record.months:
            if not point.actual and first_estimate is None:
                first_estimate = point.month
            elif point.actual and first_estimate is not None:
                hidden.append(point.month)
        checks.append(
            ConsistencyCheck(
                f"monthly_revenue_flags[{record.year}]",
                not hidden,
                "actuals before estimates",
                "actuals before estimates" if not hidden else ", ".join(hidden),
                detail=""
                if not hidden
                else f"actual months {', '.join(hidden)} follow estimate {first_estimate}",
            )
        )
    return checks


def check_engagement(raw: RawFacts) -> list[ConsistencyCheck]:
    """Published MAU/DAU peaks match the sampled maxima."""
    engagement = raw.engagement
    reported = raw.reported
    checks: list[ConsistencyCheck] = []
    if reported.peak_mau is not None and engagement.monthly_active_users:
        peak = max(s.users for s in engagement.monthly_active_users)
        checks.append(_exact("peak_mau", reported.peak_mau, peak))
    if reported.peak_dau is not None and engagement.daily_active_users:
        peak = max(s.peak for s in engagement.daily_active_users)
        checks.append(_exact("peak_dau", reported.peak_dau, peak))
    return checks


def validate_consistency(
    raw: RawFacts,
    derived: DerivedMetrics,
    cohorts: RetentionCohorts,
    tolerances: ToleranceConfig | None = None,
) -> ConsistencyReport:
    """Run every consistency rule and collect the outcomes.

    Parameters
    ----------
    raw:
        Validated raw facts
    derived:
        Metrics computed from ``raw``
    cohorts:
        Retention matrices built from ``raw``
    tolerances:
        Tolerances for comparisons with published figures (default: the
        global configuration)

    Returns
    -------
    ConsistencyReport
        One check per rule instance; never raises for a failed rule
    """
    tolerances = tolerances or get_tolerance_config()
    checks = (
        check_financial_totals(raw, derived, tolerances)
        + check_projections(raw, derived, tolerances)
        + check_user_growth(raw, derived, tolerances)
        + check_unit_economics(raw, derived, tolerances)
        + check_cohorts(raw, cohorts)
        + check_funding(raw, tolerances)
        + check_monthly_revenue_flags(raw)
        + check_engagement(raw)
    )
    report = ConsistencyReport(tuple(checks))

    for item in report.failures:
        logger.error("consistency_check_failed", check=item.name, detail=item.detail)
    for item in report.warnings:
        logger.warning("consistency_check_warning", check=item.name, detail=item.detail)
    logger.info(
        "consistency_validated",
        checks=len(report.checks),
        failures=len(report.failures),
        warnings=len(report.warnings),
    )
    return report


def assert_consistent(report: ConsistencyReport) -> None:
    """Raise if any error-severity check failed.

    Raises
    ------
    ConsistencyError
        Listing every failed check and its detail.
    """
    if report.passed:
        return
    lines = [f"{item.name}: {item.detail}" for item in report.failures]
    raise ConsistencyError(
        f"{len(lines)} consistency check(s) failed:\n" + "\n".join(f"  - {line}" for line in lines)
    )
