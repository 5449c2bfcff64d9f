"""Engagement summaries: active users, session length and return curves."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np

from investor_metrics.analyses.calculator import percentage, to_decimal
from investor_metrics.errors import UNDEFINED_RATIO, UndefinedRatio
from investor_metrics.foundation.cohorts import Segment
from investor_metrics.foundation.raw_facts import RawFacts, ReturnCurvePoint

ONE_DECIMAL = Decimal("0.1")


def _round(value: Decimal | UndefinedRatio, precision: Decimal = ONE_DECIMAL) -> Decimal | UndefinedRatio:
    if value is UNDEFINED_RATIO:
        return value
    return value.quantize(precision, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EngagementSummary:
    """Engagement figures shown on the dashboard.

    Attributes
    ----------
    peak_mau / mean_mau / median_mau:
        Monthly active users across the sampled months.
    peak_dau:
        Highest single-day active users in any sampled month.
    latest_mean_dau:
        Mean daily active users in the most recent month.
    dau_mau_ratio:
        ``latest_mean_dau / mean_mau`` as a percentage (stickiness).
    latest_session_minutes:
        Average session length in the most recent month.
    mean_session_minutes:
        Mean of all monthly session-length samples.
    session_growth_yoy:
        Percent change in session length against the same month a year
        earlier, or UNDEFINED_RATIO when that month was not sampled.
    """

    peak_mau: int
    mean_mau: int
    median_mau: int
    peak_dau: int
    latest_mean_dau: int
    dau_mau_ratio: Decimal | UndefinedRatio
    latest_session_minutes: Decimal
    mean_session_minutes: Decimal
    session_growth_yoy: Decimal | UndefinedRatio

    def __post_init__(self) -> None:
        """Validate engagement summary constraints."""
        if self.peak_mau < self.median_mau or self.peak_mau < self.mean_mau:
            raise ValueError(
                f"peak_mau ({self.peak_mau}) cannot be below mean ({self.mean_mau}) "
                f"or median ({self.median_mau})"
            )
        if self.latest_mean_dau > self.peak_dau:
            raise ValueError(
                f"latest_mean_dau ({self.latest_mean_dau}) cannot exceed peak_dau ({self.peak_dau})"
            )


@dataclass(frozen=True)
class ReturnCurve:
    """Cumulative share of a segment that returned within N days of signup."""

    segment: Segment
    points: tuple[tuple[int, Decimal], ...]

    def __post_init__(self) -> None:
        """Validate that the curve is cumulative (non-decreasing)."""
        for (d0, v0), (d1, v1) in zip(self.points, self.points[1:]):
            if d1 <= d0:
                raise ValueError(f"return curve days must increase: {d0} then {d1}")
            if v1 < v0:
                raise ValueError(
                    f"cumulative return cannot decrease: day {d0}={v0}%, day {d1}={v1}%"
                )

    def value_at(self, days: int) -> Decimal | None:
        """Return the recorded value at exactly ``days``, or None if not sampled."""
        for day, value in self.points:
            if day == days:
                return value
        return None

    @property
    def eventual_return(self) -> Decimal | None:
        return self.points[-1][1] if self.points else None


def _shift_year(label: str) -> str | None:
    """'Aug 25' -> 'Aug 24'. Returns None for labels without a 2-digit year."""
    month, _, year = label.rpartition(" ")
    if not month or not year.isdigit() or len(year) != 2:
        return None
    return f"{month} {int(year) - 1:02d}"


def session_growth_yoy(samples: Sequence[tuple[str, Decimal]]) -> Decimal | UndefinedRatio:
    """Percent change of the latest session sample against a year earlier."""
    if not samples:
        return UNDEFINED_RATIO
    latest_label, latest = samples[-1]
    prior_label = _shift_year(latest_label)
    lookup = dict(samples)
    if prior_label is None or prior_label not in lookup:
        return UNDEFINED_RATIO
    prior = lookup[prior_label]
    return percentage(latest - prior, prior)


def summarize_engagement(raw: RawFacts) -> EngagementSummary:
    """Summarize MAU, DAU and session samples from the fact store.

    The fact store guarantees at least one sample in each series.
    """
    engagement = raw.engagement
    mau = np.array([s.users for s in engagement.monthly_active_users], dtype=np.int64)
    mean_mau = int(round(float(mau.mean())))
    latest_mean_dau = engagement.daily_active_users[-1].mean

    sessions = [(s.month, s.minutes) for s in engagement.session_duration]
    minutes = np.array([float(m) for _, m in sessions])

    return EngagementSummary(
        peak_mau=int(mau.max()),
        mean_mau=mean_mau,
        median_mau=int(round(float(np.median(mau)))),
        peak_dau=max(s.peak for s in engagement.daily_active_users),
        latest_mean_dau=latest_mean_dau,
        dau_mau_ratio=_round(percentage(latest_mean_dau, mean_mau)),
        latest_session_minutes=sessions[-1][1],
        mean_session_minutes=to_decimal(float(minutes.mean())).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        ),
        session_growth_yoy=_round(session_growth_yoy(sessions)),
    )


def build_return_curves(points: Sequence[ReturnCurvePoint]) -> dict[Segment, ReturnCurve]:
    """Split cumulative return points into one curve per segment."""
    return {
        Segment.BUYERS: ReturnCurve(
            Segment.BUYERS, tuple((p.days, p.buyers) for p in points)
        ),
        Segment.NON_BUYERS: ReturnCurve(
            Segment.NON_BUYERS, tuple((p.days, p.non_buyers) for p in points)
        ),
    }
