"""Derived metrics: every headline figure computed from raw facts.

Nothing in :class:`DerivedMetrics` is hand-entered. Each field is a pure
function of :class:`~investor_metrics.foundation.raw_facts.RawFacts`, so a
change to a raw figure flows through to every card and chart that uses it.

Quick Start
-----------
>>> from investor_metrics.foundation.dataset import load_raw_facts
>>> from investor_metrics.analyses.derived import compute_derived_metrics
>>> metrics = compute_derived_metrics(load_raw_facts())
>>> metrics.total_revenue
Decimal('9352983')
>>> metrics.new_users_ytd
316369
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import structlog

from investor_metrics.analyses.calculator import (
    GrowthSeries,
    days_between,
    fraction_of_year_elapsed,
    linear_projection,
    percentage,
    period_over_period_growth,
    ratio,
    sum_across_periods,
)
from investor_metrics.analyses.projections import ProjectionEstimate
from investor_metrics.errors import UNDEFINED_RATIO, ConstructionError, UndefinedRatio
from investor_metrics.foundation.raw_facts import RawFacts, UserGrowthPoint

logger = structlog.get_logger(__name__)

# Standard precision for ratios and percentages (e.g. 25.29x, 42.26%)
RATIO_PRECISION = Decimal("0.01")


def _q(value: Decimal | UndefinedRatio) -> Decimal | UndefinedRatio:
    if value is UNDEFINED_RATIO:
        return value
    return value.quantize(RATIO_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DerivedMetrics:
    """Read-only view of every figure computed from raw facts.

    Attributes
    ----------
    total_revenue / total_gtv:
        Sums across all recorded financial periods.
    revenue_ytd / gtv_ytd:
        Actuals for the current partial year.
    revenue_full_year_estimate / gtv_full_year_estimate:
        Linear extrapolations of the partial-year actuals. Always tagged
        as estimates.
    contribution_margin:
        Total available service charge over total revenue, in percent.
    take_rate:
        Total revenue over total GTV, in percent.
    ltv_cac_ratio:
        ``ltv / cac``.
    total_users:
        Cumulative registered users at the latest period.
    new_users_ytd:
        Users gained since the last period of the previous calendar year.
    daily_growth_ytd:
        ``new_users_ytd`` divided by the days between those two periods.
    historical_daily_growth:
        Users at the prior-year baseline divided by the days since
        ``launch_date``; UNDEFINED_RATIO when no launch date is on file.
    revenue_growth / gtv_growth / user_growth_rates:
        Period-over-period growth aligned with their input series.
    """

    reporting_year: int
    total_revenue: Decimal
    total_gtv: Decimal
    revenue_ytd: Decimal
    gtv_ytd: Decimal
    revenue_full_year_estimate: ProjectionEstimate
    gtv_full_year_estimate: ProjectionEstimate
    contribution_margin: Decimal | UndefinedRatio
    contribution_margin_by_year: tuple[tuple[str, Decimal | UndefinedRatio], ...]
    take_rate: Decimal | UndefinedRatio
    revenue_growth: GrowthSeries
    gtv_growth: GrowthSeries
    ltv: Decimal
    cac: Decimal
    ltv_cac_ratio: Decimal | UndefinedRatio
    cac_advantage: Decimal | UndefinedRatio
    ltv_cac_vs_industry: Decimal | UndefinedRatio
    total_users: int
    new_users_ytd: int
    daily_growth_ytd: Decimal | UndefinedRatio
    historical_daily_growth: Decimal | UndefinedRatio
    user_growth_increments: tuple[tuple[str, int], ...]
    user_growth_rates: GrowthSeries
    total_purchasers: int
    tickets_sold: int
    tickets_per_purchaser: Decimal | UndefinedRatio
    purchaser_conversion: Decimal | UndefinedRatio
    total_addressable_market: Decimal
    regional_potential: Decimal
    regional_penetration: Decimal | UndefinedRatio

    def __post_init__(self) -> None:
        """Validate derived metric constraints."""
        if self.new_users_ytd < 0:
            raise ValueError(f"new_users_ytd cannot be negative: {self.new_users_ytd}")
        if self.new_users_ytd > self.total_users:
            raise ValueError(
                f"new_users_ytd ({self.new_users_ytd}) cannot exceed total_users ({self.total_users})"
            )
        if self.revenue_ytd > self.total_revenue:
            raise ValueError(
                f"revenue_ytd ({self.revenue_ytd}) cannot exceed total_revenue ({self.total_revenue})"
            )
        if not self.revenue_full_year_estimate.is_estimated:
            raise ValueError("revenue_full_year_estimate must be tagged as an estimate")
        if not self.gtv_full_year_estimate.is_estimated:
            raise ValueError("gtv_full_year_estimate must be tagged as an estimate")


def year_start_point(points: tuple[UserGrowthPoint, ...]) -> UserGrowthPoint:
    """Return the last point recorded before the latest point's calendar year.

    Raises
    ------
    ConstructionError
        If every point falls in the latest point's year.
    """
    latest = points[-1]
    prior = [p for p in points if p.as_of.year < latest.as_of.year]
    if not prior:
        raise ConstructionError(
            "User growth has no baseline",
            [f"no period recorded before {latest.as_of.year}"],
        )
    return prior[-1]


def _user_increments(points: tuple[UserGrowthPoint, ...]) -> tuple[tuple[str, int], ...]:
    # The first period's increment is its full base: the series is cumulative from zero.
    increments: list[tuple[str, int]] = []
    previous = 0
    for point in points:
        increments.append((point.period, point.users - previous))
        previous = point.users
    return tuple(increments)


def _historical_daily_growth(
    launch_date: date | None, baseline: UserGrowthPoint
) -> Decimal | UndefinedRatio:
    if launch_date is None:
        return UNDEFINED_RATIO
    return _q(ratio(baseline.users, days_between(launch_date, baseline.as_of)))


def compute_derived_metrics(raw: RawFacts) -> DerivedMetrics:
    """Compute every derived figure from the fact store.

    Parameters
    ----------
    raw:
        Validated raw facts.

    Returns
    -------
    DerivedMetrics
        Immutable derived view.

    Raises
    ------
    ConstructionError
        If the latest financial period is not a partial year, or the user
        growth series has no prior-year baseline.
    """
    financials = raw.financial_evolution
    current = financials[-1]
    if not current.is_partial:
        raise ConstructionError(
            "Financial evolution has no current partial year",
            [f"latest period {current.year!r} has no as_of date"],
        )
    fraction = fraction_of_year_elapsed(current.as_of)

    total_revenue = sum_across_periods(financials, "revenue")
    total_gtv = sum_across_periods(financials, "gtv")
    total_available = sum_across_periods(financials, "available_service_charge")

    points = raw.user_growth
    latest = points[-1]
    baseline = year_start_point(points)
    new_users = latest.users - baseline.users

    economics = raw.unit_economics
    ltv_cac = ratio(economics.ltv, economics.cac)
    ltv_cac_vs_industry = (
        UNDEFINED_RATIO
        if ltv_cac is UNDEFINED_RATIO
        else ratio(ltv_cac, economics.industry_ltv_cac_ratio)
    )

    market = raw.market
    total_potential = sum((r.potential for r in market.regions), Decimal("0"))
    total_current = sum((r.current for r in market.regions), Decimal("0"))

    metrics = DerivedMetrics(
        reporting_year=current.as_of.year,
        total_revenue=total_revenue,
        total_gtv=total_gtv,
        revenue_ytd=current.revenue,
        gtv_ytd=current.gtv,
        revenue_full_year_estimate=linear_projection(
            current.revenue, fraction, f"{current.as_of.year}E"
        ),
        gtv_full_year_estimate=linear_projection(current.gtv, fraction, f"{current.as_of.year}E"),
        contribution_margin=_q(percentage(total_available, total_revenue)),
        contribution_margin_by_year=tuple(
            (year.year, _q(percentage(year.available_service_charge, year.revenue)))
            for year in financials
        ),
        take_rate=_q(percentage(total_revenue, total_gtv)),
        revenue_growth=period_over_period_growth([y.revenue for y in financials]),
        gtv_growth=period_over_period_growth([y.gtv for y in financials]),
        ltv=economics.ltv,
        cac=economics.cac,
        ltv_cac_ratio=_q(ltv_cac),
        cac_advantage=_q(ratio(economics.industry_cac, economics.cac)),
        ltv_cac_vs_industry=_q(ltv_cac_vs_industry),
        total_users=latest.users,
        new_users_ytd=new_users,
        daily_growth_ytd=_q(ratio(new_users, days_between(baseline.as_of, latest.as_of))),
        historical_daily_growth=_historical_daily_growth(raw.launch_date, baseline),
        user_growth_increments=_user_increments(points),
        user_growth_rates=period_over_period_growth([p.users for p in points]),
        total_purchasers=raw.sales.total_purchasers,
        tickets_sold=raw.sales.tickets_sold,
        tickets_per_purchaser=_q(ratio(raw.sales.tickets_sold, raw.sales.total_purchasers)),
        purchaser_conversion=_q(percentage(raw.sales.total_purchasers, latest.users)),
        total_addressable_market=sum((s.value for s in market.segments), Decimal("0")),
        regional_potential=total_potential,
        regional_penetration=_q(percentage(total_current, total_potential)),
    )
    logger.debug(
        "derived_metrics_computed",
        total_revenue=str(metrics.total_revenue),
        total_users=metrics.total_users,
        ltv_cac_ratio=str(metrics.ltv_cac_ratio),
    )
    return metrics
