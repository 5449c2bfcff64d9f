"""Tests for the arithmetic primitives behind derived metrics."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from investor_metrics.analyses.calculator import (
    days_between,
    fraction_of_year_elapsed,
    linear_projection,
    percentage,
    period_over_period_growth,
    ratio,
    sum_across_periods,
    to_decimal,
)
from investor_metrics.analyses.projections import EstimateStatus
from investor_metrics.errors import UNDEFINED_RATIO, UndefinedRatio, is_undefined


class TestSumAcrossPeriods:
    """Test totals across period records."""

    def test_revenue_total(self):
        """Annual revenues sum exactly."""
        records = [
            SimpleNamespace(revenue=Decimal("1209801")),
            SimpleNamespace(revenue=Decimal("3053080")),
            SimpleNamespace(revenue=Decimal("5090102")),
        ]
        assert sum_across_periods(records, "revenue") == Decimal("9352983")

    def test_single_period(self):
        """A single record is its own total."""
        assert sum_across_periods([SimpleNamespace(gtv=5)], "gtv") == 5

    def test_empty_raises(self):
        """An empty series has no total."""
        with pytest.raises(ValueError, match="empty period series"):
            sum_across_periods([], "revenue")


class TestRatio:
    """Test ratio and percentage helpers."""

    def test_ltv_cac(self):
        """LTV 6.98 over CAC 0.28 is about 25.3."""
        result = ratio(Decimal("6.98"), Decimal("0.28"))
        assert abs(result - Decimal("25.3")) <= 1

    def test_zero_denominator_is_undefined(self):
        """A zero denominator yields the sentinel instead of raising."""
        assert ratio(5, 0) is UNDEFINED_RATIO
        assert percentage(5, 0) is UNDEFINED_RATIO

    def test_float_inputs_have_no_binary_noise(self):
        """Floats are converted through their decimal string."""
        assert to_decimal(0.28) == Decimal("0.28")
        assert ratio(0.7, 0.28) == Decimal("2.5")

    def test_percentage(self):
        """Percentage is 100 times the ratio."""
        assert percentage(1, 4) == Decimal("25")


class TestUndefinedRatio:
    """Test the undefined-ratio sentinel."""

    def test_singleton(self):
        """Only one instance exists."""
        assert UndefinedRatio() is UNDEFINED_RATIO

    def test_falsy_and_renders_na(self):
        """The sentinel is falsy and renders as N/A."""
        assert not UNDEFINED_RATIO
        assert str(UNDEFINED_RATIO) == "N/A"
        assert repr(UNDEFINED_RATIO) == "UNDEFINED_RATIO"

    def test_is_undefined(self):
        """Only the sentinel is undefined; zero is a value."""
        assert is_undefined(UNDEFINED_RATIO)
        assert not is_undefined(Decimal("0"))
        assert not is_undefined(None)


class TestPeriodOverPeriodGrowth:
    """Test lazy growth series."""

    def test_aligned_with_input(self):
        """First element is None; later ones are fractional changes."""
        growth = period_over_period_growth([100, 150, 75])
        assert list(growth) == [None, Decimal("0.5"), Decimal("-0.5")]
        assert len(growth) == 3

    def test_restartable(self):
        """Iterating twice yields the same values."""
        growth = period_over_period_growth([10, 20, 30])
        assert list(growth) == list(growth)

    def test_indexing_matches_iteration(self):
        """Indexing computes the same value as iteration."""
        growth = period_over_period_growth([10, 20, 30])
        assert growth[0] is None
        assert growth[2] == list(growth)[2]
        assert growth[-1] == growth[2]
        with pytest.raises(IndexError):
            growth[3]

    def test_zero_previous_is_undefined(self):
        """Growth from zero is undefined, not infinite."""
        growth = period_over_period_growth([0, 10])
        assert growth[1] is UNDEFINED_RATIO

    def test_empty_series(self):
        """An empty input gives an empty series."""
        assert list(period_over_period_growth([])) == []


class TestDates:
    """Test calendar helpers."""

    def test_days_between(self):
        """Days from the year-end baseline to the August close."""
        assert days_between(date(2024, 12, 31), date(2025, 8, 31)) == 243

    def test_days_between_requires_order(self):
        """End must be after start."""
        with pytest.raises(ValueError, match="must be after start"):
            days_between(date(2025, 8, 31), date(2025, 8, 31))

    def test_fraction_of_year_elapsed(self):
        """243 of 365 days have elapsed by 31 August 2025."""
        assert fraction_of_year_elapsed(date(2025, 8, 31)) == Decimal(243) / Decimal(365)

    def test_fraction_of_leap_year(self):
        """Leap years have 366 days."""
        assert fraction_of_year_elapsed(date(2024, 12, 31)) == Decimal(1)


class TestLinearProjection:
    """Test full-period extrapolation."""

    def test_doubles_at_half_year(self):
        """Half the period elapsed doubles the actual."""
        estimate = linear_projection(50, Decimal("0.5"), "2025E")
        assert estimate.value == Decimal("100.00")
        assert estimate.label == "2025E"

    def test_always_tagged_estimated(self):
        """Projections are never actuals."""
        estimate = linear_projection(100, 1)
        assert estimate.status is EstimateStatus.ESTIMATED
        assert "linear extrapolation" in estimate.basis

    @pytest.mark.parametrize("fraction", [0, Decimal("-0.1"), Decimal("1.5")])
    def test_fraction_out_of_range(self, fraction):
        """Fraction elapsed must lie in (0, 1]."""
        with pytest.raises(ValueError, match=r"fraction_elapsed must be in \(0, 1\]"):
            linear_projection(100, fraction)

    def test_negative_actual_rejected(self):
        """Partial actuals cannot be negative."""
        with pytest.raises(ValueError, match="partial_actual must be >= 0"):
            linear_projection(-1, Decimal("0.5"))
