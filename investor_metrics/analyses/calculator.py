"""Arithmetic primitives used by every derived metric.

All functions are pure. Ratios use :class:`~decimal.Decimal` so that sums
of currency amounts stay exact and quotients are reproducible.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from numbers import Integral, Number, Real
from typing import Any, Iterator, Sequence

from investor_metrics.analyses.projections import EstimateStatus, ProjectionEstimate
from investor_metrics.errors import UNDEFINED_RATIO, UndefinedRatio

CURRENCY_PRECISION = Decimal("0.01")


def to_decimal(value: Number | Decimal | str) -> Decimal:
    """Convert ints, floats and strings to Decimal without binary noise.

    Floats go through ``str`` so that ``0.28`` becomes ``Decimal('0.28')``.
    Numpy scalars are accepted like their Python counterparts.

    >>> import numpy as np
    >>> to_decimal(np.float64(82.0))
    Decimal('82.0')
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Integral):
        return Decimal(int(value))
    if isinstance(value, Real):
        return Decimal(str(float(value)))
    return Decimal(value)


def sum_across_periods(records: Sequence[Any], field: str) -> Any:
    """Total of ``field`` across every recorded period.

    Parameters
    ----------
    records:
        Period records (e.g. ``raw.financial_evolution``).
    field:
        Attribute to total on each record.

    Raises
    ------
    ValueError
        If ``records`` is empty.

    Examples
    --------
    >>> from types import SimpleNamespace as R
    >>> sum_across_periods([R(revenue=1209801), R(revenue=3053080), R(revenue=5090102)], "revenue")
    9352983
    """
    if not records:
        raise ValueError(f"cannot total {field!r} across an empty period series")
    total = getattr(records[0], field)
    for record in records[1:]:
        total = total + getattr(record, field)
    return total


def ratio(numerator: Number | Decimal, denominator: Number | Decimal) -> Decimal | UndefinedRatio:
    """Return ``numerator / denominator``.

    A zero denominator yields :data:`UNDEFINED_RATIO` instead of raising;
    ratios here are presentational and surface as "N/A".

    Examples
    --------
    >>> ratio(7, 2)
    Decimal('3.5')
    >>> ratio(1, 0)
    UNDEFINED_RATIO
    """
    denominator = to_decimal(denominator)
    if denominator == 0:
        return UNDEFINED_RATIO
    return to_decimal(numerator) / denominator


def percentage(numerator: Number | Decimal, denominator: Number | Decimal) -> Decimal | UndefinedRatio:
    """Return ``100 * numerator / denominator`` (or UNDEFINED_RATIO)."""
    result = ratio(numerator, denominator)
    if result is UNDEFINED_RATIO:
        return result
    return result * 100


class GrowthSeries:
    """Period-over-period growth, aligned one-to-one with its input.

    The first element is None (no prior period). Each later element is
    ``(current - previous) / previous`` as a Decimal fraction, or
    UNDEFINED_RATIO when the previous value is zero. Values are computed
    lazily on iteration, and the series can be iterated any number of times.
    """

    def __init__(self, values: Sequence[Number | Decimal]) -> None:
        self._values = tuple(to_decimal(v) for v in values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Decimal | UndefinedRatio | None]:
        previous: Decimal | None = None
        for current in self._values:
            if previous is None:
                yield None
            else:
                change = ratio(current - previous, previous)
                yield change
            previous = current

    def __getitem__(self, index: int) -> Decimal | UndefinedRatio | None:
        if index < 0:
            index += len(self._values)
        if not 0 <= index < len(self._values):
            raise IndexError("growth series index out of range")
        if index == 0:
            return None
        previous = self._values[index - 1]
        return ratio(self._values[index] - previous, previous)

    def __repr__(self) -> str:
        return f"GrowthSeries({list(self)!r})"


def period_over_period_growth(series: Sequence[Number | Decimal]) -> GrowthSeries:
    """Return lazy period-over-period growth for ``series``.

    Examples
    --------
    >>> list(period_over_period_growth([100, 150, 150]))
    [None, Decimal('0.5'), Decimal('0')]
    """
    return GrowthSeries(series)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end``.

    Raises
    ------
    ValueError
        If ``end`` is not after ``start``.
    """
    days = (end - start).days
    if days <= 0:
        raise ValueError(f"end ({end}) must be after start ({start})")
    return days


def fraction_of_year_elapsed(as_of: date) -> Decimal:
    """Share of the calendar year completed at the end of ``as_of``.

    >>> fraction_of_year_elapsed(date(2025, 8, 31))
    Decimal('0.6657534246575342465753424658')
    """
    days_in_year = 366 if calendar.isleap(as_of.year) else 365
    return Decimal(as_of.timetuple().tm_yday) / Decimal(days_in_year)


def linear_projection(
    partial_actual: Number | Decimal,
    fraction_elapsed: Number | Decimal,
    label: str = "",
) -> ProjectionEstimate:
    """Extrapolate a full-period estimate from a partial-period actual.

    This is simple linear scaling, ``partial_actual / fraction_elapsed``:
    a disclosed approximation that ignores seasonality. It is not a
    statistical forecast and should not be read as one.

    Parameters
    ----------
    partial_actual:
        Value accumulated so far in the period.
    fraction_elapsed:
        Share of the period completed, in (0, 1].
    label:
        Label for the returned estimate (e.g. "2025E").

    Raises
    ------
    ValueError
        If ``fraction_elapsed`` is outside (0, 1] or ``partial_actual`` is negative.

    Examples
    --------
    >>> linear_projection(50, Decimal("0.5"), "2025E").value
    Decimal('100.00')
    """
    fraction = to_decimal(fraction_elapsed)
    if not 0 < fraction <= 1:
        raise ValueError(f"fraction_elapsed must be in (0, 1], got {fraction}")
    actual = to_decimal(partial_actual)
    if actual < 0:
        raise ValueError(f"partial_actual must be >= 0, got {actual}")
    value = (actual / fraction).quantize(CURRENCY_PRECISION)
    return ProjectionEstimate(
        label=label,
        value=value,
        status=EstimateStatus.ESTIMATED,
        basis=f"linear extrapolation from {(fraction * 100).quantize(Decimal('0.1'))}% of period",
    )
