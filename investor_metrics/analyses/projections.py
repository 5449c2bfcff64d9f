"""Actual versus estimated values.

Charts draw actual and estimated bars differently, so every value for an
incomplete or future period carries an explicit status. An estimate never
silently replaces an actual figure.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from investor_metrics.foundation.raw_facts import RawFacts


class EstimateStatus(str, Enum):
    ACTUAL = "actual"
    ESTIMATED = "estimated"


@dataclass(frozen=True)
class ProjectionEstimate:
    """A labelled value tagged as actual or estimated.

    Attributes
    ----------
    label:
        Period label (e.g. "Sep", "2025E").
    value:
        The figure in major currency units or counts.
    status:
        Whether the value was observed or extrapolated.
    basis:
        Optional short description of how an estimate was produced.
    """

    label: str
    value: Decimal
    status: EstimateStatus
    basis: str = ""

    def __post_init__(self) -> None:
        """Validate estimate constraints."""
        if self.value < 0:
            raise ValueError(f"value must be >= 0, got {self.value} for {self.label}")

    @property
    def is_actual(self) -> bool:
        return self.status is EstimateStatus.ACTUAL

    @property
    def is_estimated(self) -> bool:
        return self.status is EstimateStatus.ESTIMATED


def monthly_revenue_series(raw: RawFacts, year: int) -> tuple[ProjectionEstimate, ...]:
    """Return the monthly revenue series for ``year`` with status tags.

    Raises
    ------
    KeyError
        If the dataset has no monthly revenue for ``year``.
    """
    record = raw.monthly_revenue_for(year)
    return tuple(
        ProjectionEstimate(
            label=point.month,
            value=point.revenue,
            status=EstimateStatus.ACTUAL if point.actual else EstimateStatus.ESTIMATED,
            basis="" if point.actual else "management forecast",
        )
        for point in record.months
    )


def plan_projection_series(raw: RawFacts, field: str) -> tuple[ProjectionEstimate, ...]:
    """Return one plan field (users, gtv or revenue) per projected year."""
    if field not in ("users", "gtv", "revenue"):
        raise ValueError(f"field must be one of users, gtv, revenue; got {field!r}")
    return tuple(
        ProjectionEstimate(
            label=str(plan.year),
            value=Decimal(getattr(plan, field)),
            status=EstimateStatus.ESTIMATED,
            basis="management plan",
        )
        for plan in raw.plan_projections
    )


def merge_estimates(
    actuals: Iterable[ProjectionEstimate],
    estimates: Iterable[ProjectionEstimate],
) -> tuple[ProjectionEstimate, ...]:
    """Combine two series, letting estimates fill only labels with no actual.

    Order follows ``actuals`` first, then any new labels from ``estimates``
    in their original order.

    Raises
    ------
    ValueError
        If ``actuals`` contains an estimated value or a duplicate label.
    """
    merged: dict[str, ProjectionEstimate] = {}
    for item in actuals:
        if not item.is_actual:
            raise ValueError(f"actuals contains an estimate for {item.label}")
        if item.label in merged:
            raise ValueError(f"duplicate actual for {item.label}")
        merged[item.label] = item
    for item in estimates:
        if item.label not in merged:
            merged[item.label] = item
    return tuple(merged.values())


def split_actual_estimated(series: Sequence[ProjectionEstimate]) -> tuple[Decimal, Decimal]:
    """Return ``(actual_total, estimated_total)`` for a series."""
    actual = sum((item.value for item in series if item.is_actual), Decimal("0"))
    estimated = sum((item.value for item in series if item.is_estimated), Decimal("0"))
    return actual, estimated
