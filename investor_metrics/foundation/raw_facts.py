"""Raw fact store: the audited, hand-entered source figures.

Every figure the dashboard shows is either one of these raw facts or is
derived from them by :mod:`investor_metrics.analyses`. The models are
frozen pydantic models so that a loaded dataset can be shared by every
consumer without copying.

Quick Start
-----------
>>> from investor_metrics.foundation.raw_facts import build_raw_facts
>>> from investor_metrics.foundation.dataset import dashboard_dataset
>>> raw = build_raw_facts(dashboard_dataset())
>>> raw.user_growth[-1].users
801492
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
    field_validator,
    model_validator,
)

from investor_metrics.errors import ConstructionError

#: Retention offsets tracked per cohort (M0..M12).
MAX_COHORT_OFFSET = 12

Amount = Annotated[Decimal, Field(ge=0)]
Percentage = Annotated[Decimal, Field(ge=0, le=100)]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _duplicates(keys: list[Any]) -> list[Any]:
    return [key for key, count in Counter(keys).items() if count > 1]


class FinancialYear(_Frozen):
    """Audited financials for one fiscal year (or the current partial year)."""

    year: str = Field(description="Period label, e.g. '2024' or '2025 YTD'")
    gtv: Amount = Field(description="Gross transaction value")
    revenue: Amount
    net_service_charge: Amount
    available_service_charge: Amount
    as_of: date | None = Field(
        default=None,
        description="Cut-off date for a partial year; None for a closed year",
    )

    @property
    def is_partial(self) -> bool:
        return self.as_of is not None


class UserGrowthPoint(_Frozen):
    """Cumulative registered users at the end of a calendar period."""

    period: str
    users: NonNegativeInt
    as_of: date
    label: str | None = None


class CohortRecord(_Frozen):
    """Retention percentages for one cohort, starting at M0.

    A shorter list means the later offsets have not been observed yet.
    Trailing ``None`` values are treated the same way.
    """

    month: str
    retention: tuple[Percentage | None, ...]

    @field_validator("retention")
    @classmethod
    def _check_offsets(cls, value: tuple[Decimal | None, ...]) -> tuple[Decimal | None, ...]:
        if len(value) > MAX_COHORT_OFFSET + 1:
            raise ValueError(
                f"retention has {len(value)} offsets, maximum is {MAX_COHORT_OFFSET + 1}"
            )
        trimmed = list(value)
        while trimmed and trimmed[-1] is None:
            trimmed.pop()
        if not trimmed:
            raise ValueError("retention must include at least M0")
        if None in trimmed:
            raise ValueError(
                "retention has a gap: an offset cannot be observed after an unobserved one"
            )
        return tuple(trimmed)


class RetentionCohortSet(_Frozen):
    buyers: tuple[CohortRecord, ...]
    non_buyers: tuple[CohortRecord, ...]

    @model_validator(mode="after")
    def _unique_months(self) -> RetentionCohortSet:
        for segment in ("buyers", "non_buyers"):
            dupes = _duplicates([c.month for c in getattr(self, segment)])
            if dupes:
                raise ValueError(f"duplicate {segment} cohort months: {dupes}")
        return self


class UnitEconomics(_Frozen):
    """Customer unit economics plus the industry benchmarks shown beside them."""

    ltv: Amount = Field(description="Lifetime value per customer")
    cac: Amount = Field(description="Customer acquisition cost")
    industry_ltv: Amount
    industry_cac: Amount
    industry_ltv_cac_ratio: Amount
    industry_margin: Percentage


class SalesCounters(_Frozen):
    total_purchasers: NonNegativeInt
    tickets_sold: NonNegativeInt


class SessionDurationSample(_Frozen):
    month: str
    minutes: Amount


class MonthlyActiveUsersSample(_Frozen):
    month: str
    users: NonNegativeInt


class DailyActiveUsersSample(_Frozen):
    month: str
    median: NonNegativeInt
    mean: NonNegativeInt
    peak: NonNegativeInt


class StickinessBucket(_Frozen):
    days: NonNegativeInt
    percentage: Percentage


class Engagement(_Frozen):
    """Engagement counters and monthly samples."""

    daily_messages: NonNegativeInt
    messages_per_chat: Amount
    avg_chat_duration: Amount = Field(description="Minutes")
    daily_comments: NonNegativeInt
    comments_on_events: NonNegativeInt
    comments_on_feed: NonNegativeInt
    comments_on_videos: NonNegativeInt
    news_users: NonNegativeInt
    event_views: NonNegativeInt
    unique_event_users: NonNegativeInt
    avg_interactions_per_user: NonNegativeInt
    push_notification_users: NonNegativeInt
    avg_push_time: Amount = Field(description="Minutes")
    session_duration: tuple[SessionDurationSample, ...] = Field(min_length=1)
    monthly_active_users: tuple[MonthlyActiveUsersSample, ...] = Field(min_length=1)
    daily_active_users: tuple[DailyActiveUsersSample, ...] = Field(min_length=1)
    stickiness: tuple[StickinessBucket, ...] = ()

    @model_validator(mode="after")
    def _unique_months(self) -> Engagement:
        for name in ("session_duration", "monthly_active_users", "daily_active_users"):
            dupes = _duplicates([s.month for s in getattr(self, name)])
            if dupes:
                raise ValueError(f"duplicate {name} months: {dupes}")
        return self


class ReturnCurvePoint(_Frozen):
    """Cumulative share of users who came back within ``days`` of signup."""

    days: NonNegativeInt
    buyers: Percentage
    non_buyers: Percentage


class FundAllocation(_Frozen):
    category: str
    percentage: Percentage
    amount: Amount


class FundingRound(_Frozen):
    stage: str = Field(description="Funding round, e.g. 'Seed'")
    raised: Amount
    valuation: Amount
    use_of_funds: tuple[FundAllocation, ...]


class PlanProjection(_Frozen):
    """Management plan figures for a future year. Always an estimate."""

    year: int
    users: NonNegativeInt
    gtv: Amount
    revenue: Amount


class MonthlyRevenuePoint(_Frozen):
    month: str
    revenue: Amount
    actual: bool = True


class MonthlyRevenueYear(_Frozen):
    year: int
    months: tuple[MonthlyRevenuePoint, ...]

    @model_validator(mode="after")
    def _unique_months(self) -> MonthlyRevenueYear:
        dupes = _duplicates([m.month for m in self.months])
        if dupes:
            raise ValueError(f"duplicate months in {self.year}: {dupes}")
        return self


class MarketSegment(_Frozen):
    category: str
    value: Amount
    percentage: Percentage


class RegionalMarket(_Frozen):
    region: str
    current: Amount
    potential: Amount
    penetration: Percentage


class MarketSizing(_Frozen):
    events_coverage: Percentage = Field(
        description="Share of electronic music events covered in the home market"
    )
    segments: tuple[MarketSegment, ...]
    regions: tuple[RegionalMarket, ...]


class ReportedHeadlines(_Frozen):
    """Headline figures as published, kept only for cross-checking.

    None of these is ever used as an input to a derived value. A ``None``
    field means the headline was not published and its check is skipped.
    """

    total_users: NonNegativeInt | None = None
    new_users_ytd: NonNegativeInt | None = None
    daily_growth_ytd: NonNegativeInt | None = None
    historical_daily_growth: NonNegativeInt | None = None
    total_revenue: Amount | None = None
    total_gtv: Amount | None = None
    ltv_cac_ratio: Amount | None = None
    revenue_full_year_estimate: Amount | None = None
    gtv_full_year_estimate: Amount | None = None
    peak_mau: NonNegativeInt | None = None
    peak_dau: NonNegativeInt | None = None


class RawFacts(_Frozen):
    """The complete audited dataset behind the dashboard."""

    financial_evolution: tuple[FinancialYear, ...] = Field(min_length=1)
    user_growth: tuple[UserGrowthPoint, ...] = Field(min_length=1)
    retention_cohorts: RetentionCohortSet
    unit_economics: UnitEconomics
    sales: SalesCounters
    engagement: Engagement
    cumulative_return: tuple[ReturnCurvePoint, ...] = ()
    funding: FundingRound
    plan_projections: tuple[PlanProjection, ...] = ()
    monthly_revenue: tuple[MonthlyRevenueYear, ...] = ()
    market: MarketSizing
    reported: ReportedHeadlines = Field(default_factory=ReportedHeadlines)
    launch_date: date | None = Field(
        default=None,
        description="First day of trading; None when no audited date is on file",
    )

    @model_validator(mode="after")
    def _check_series(self) -> RawFacts:
        dupes = _duplicates([y.year for y in self.financial_evolution])
        if dupes:
            raise ValueError(f"duplicate financial years: {dupes}")

        dupes = _duplicates([p.period for p in self.user_growth])
        if dupes:
            raise ValueError(f"duplicate user growth periods: {dupes}")

        for previous, current in zip(self.user_growth, self.user_growth[1:]):
            if current.as_of <= previous.as_of:
                raise ValueError(
                    f"user growth periods must be chronological: "
                    f"{previous.period} ({previous.as_of}) is not before "
                    f"{current.period} ({current.as_of})"
                )
            if current.users < previous.users:
                raise ValueError(
                    f"cumulative users cannot decrease: {previous.period}={previous.users}, "
                    f"{current.period}={current.users}"
                )

        days = [p.days for p in self.cumulative_return]
        if days != sorted(set(days)):
            raise ValueError("cumulative return points must have strictly increasing days")
        for previous, current in zip(self.cumulative_return, self.cumulative_return[1:]):
            for segment in ("buyers", "non_buyers"):
                before, after = getattr(previous, segment), getattr(current, segment)
                if after < before:
                    raise ValueError(
                        f"cumulative {segment} return cannot decrease: "
                        f"day {previous.days}={before}%, day {current.days}={after}%"
                    )

        if self.launch_date is not None and self.launch_date >= self.user_growth[0].as_of:
            raise ValueError(
                f"launch_date ({self.launch_date}) must precede the first user growth "
                f"period ({self.user_growth[0].period}, {self.user_growth[0].as_of})"
            )

        dupes = _duplicates([m.year for m in self.monthly_revenue])
        if dupes:
            raise ValueError(f"duplicate monthly revenue years: {dupes}")

        dupes = _duplicates([p.year for p in self.plan_projections])
        if dupes:
            raise ValueError(f"duplicate plan projection years: {dupes}")
        return self

    def financial_year(self, year: str) -> FinancialYear:
        """Return the financial record labelled ``year``.

        Raises
        ------
        KeyError
            If no record carries that label.
        """
        for record in self.financial_evolution:
            if record.year == year:
                return record
        raise KeyError(year)

    def user_growth_point(self, period: str) -> UserGrowthPoint:
        """Return the user growth point labelled ``period``."""
        for point in self.user_growth:
            if point.period == period:
                return point
        raise KeyError(period)

    def monthly_revenue_for(self, year: int) -> MonthlyRevenueYear:
        for record in self.monthly_revenue:
            if record.year == year:
                return record
        raise KeyError(year)


def _describe(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return f"{location}: {error.get('msg', 'invalid value')}"


def build_raw_facts(payload: Mapping[str, Any]) -> RawFacts:
    """Validate a raw dataset mapping and return the frozen fact store.

    Parameters
    ----------
    payload:
        Mapping shaped like :func:`investor_metrics.foundation.dataset.dashboard_dataset`.

    Returns
    -------
    RawFacts
        Immutable, validated facts.

    Raises
    ------
    ConstructionError
        If any required field is missing, any count or amount is negative,
        a period key is duplicated, or the cumulative user series decreases.
        Every problem found is listed in ``ConstructionError.problems``.
    """
    try:
        return RawFacts.model_validate(payload)
    except ValidationError as exc:
        problems = [_describe(error) for error in exc.errors()]
        raise ConstructionError("Invalid raw dataset", problems) from exc
