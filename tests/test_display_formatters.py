"""Tests for display string formatting."""

from decimal import Decimal

import numpy as np
import pytest

from investor_metrics.config import FormatConfig, get_format_config, set_format_config
from investor_metrics.errors import UNDEFINED_RATIO
from investor_metrics.foundation.cohorts import build_retention_cohorts
from investor_metrics.foundation.dataset import load_raw_facts
from investor_metrics.formatters.display import (
    format_currency,
    format_growth,
    format_number,
    format_percentage,
    format_ratio,
)


class TestFormatCurrency:
    """Test currency compaction."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (70045672, "$70.0M"),
            (9352983, "$9.4M"),
            (1000000, "$1.0M"),
            (3000, "$3K"),
            (7600, "$8K"),
            (999, "$999.00"),
            (0.28, "$0.28"),
            (Decimal("7.08"), "$7.08"),
            (0, "$0.00"),
        ],
    )
    def test_compaction(self, value, expected):
        """Millions keep one decimal, thousands none, small amounts cents."""
        assert format_currency(value) == expected

    def test_thousands_rounding_up_to_a_million(self):
        """999,999.6 would be 1000K; it renders as a million instead."""
        assert format_currency(Decimal("999999.6")) == "$1.0M"

    def test_undefined_and_missing(self):
        """Undefined ratios and None render as N/A."""
        assert format_currency(UNDEFINED_RATIO) == "N/A"
        assert format_currency(None) == "N/A"

    def test_negative(self):
        """Negative amounts keep their sign before the symbol."""
        assert format_currency(-2500) == "-$3K"


class TestFormatNumber:
    """Test count compaction."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (801492, "801K"),
            (1277498, "1.3M"),
            (316369, "316K"),
            (25.3, "25.3"),
            (Decimal("11.37"), "11.37"),
            (12, "12"),
            (Decimal("12.50"), "12.5"),
            (0, "0"),
        ],
    )
    def test_compaction(self, value, expected):
        """Large counts compact; small ones keep up to two decimals."""
        assert format_number(value) == expected

    def test_none_is_zero(self):
        """A missing count renders as 0."""
        assert format_number(None) == "0"

    def test_undefined(self):
        """Undefined ratios render as N/A."""
        assert format_number(UNDEFINED_RATIO) == "N/A"


class TestFormatPercentage:
    """Test percentage formatting."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (80, "80%"),
            (56.93, "56.9%"),
            (Decimal("85.92"), "85.9%"),
            (Decimal("47.00"), "47%"),
            (Decimal("13.35"), "13.4%"),
            (0, "0%"),
        ],
    )
    def test_precision(self, value, expected):
        """One decimal place, dropped for whole numbers."""
        assert format_percentage(value) == expected

    def test_undefined(self):
        """Undefined percentages render as N/A."""
        assert format_percentage(UNDEFINED_RATIO) == "N/A"


class TestFormatRatioAndGrowth:
    """Test multiples and signed growth."""

    def test_ratio(self):
        """Multiples carry an x suffix."""
        assert format_ratio(Decimal("25.29")) == "25.3x"
        assert format_ratio(Decimal("250.00")) == "250x"
        assert format_ratio(UNDEFINED_RATIO) == "N/A"

    def test_growth(self):
        """Growth fractions render as signed percentages."""
        assert format_growth(Decimal("0.5")) == "+50%"
        assert format_growth(Decimal("-0.125")) == "-12.5%"
        assert format_growth(Decimal("0")) == "0%"
        assert format_growth(UNDEFINED_RATIO) == "N/A"


class TestFormatConfig:
    """Test global display configuration."""

    def test_custom_placeholder_and_symbol(self):
        """Formatters read the current global configuration."""
        original = get_format_config()
        try:
            set_format_config(FormatConfig(currency_symbol="€", not_available="n/a"))
            assert format_currency(3000) == "€3K"
            assert format_ratio(UNDEFINED_RATIO) == "n/a"
        finally:
            set_format_config(original)

    def test_invalid_chart_size(self):
        """Chart dimensions must be positive."""
        with pytest.raises(ValueError, match="chart dimensions must be positive"):
            FormatConfig(chart_width=0)


class TestTotalFormatting:
    """Test that formatters return a string for every finite number."""

    VALUES = [
        0,
        1,
        Decimal("0.005"),
        999,
        Decimal("999.99"),
        Decimal("999.995"),
        999999,
        Decimal("999999.6"),
        70045672,
        2.5e11,
        10**40,
        Decimal("1E+60"),
        -1234567,
    ]

    @pytest.mark.parametrize("value", VALUES)
    @pytest.mark.parametrize("formatter", [format_currency, format_number])
    def test_repeatable(self, formatter, value):
        """Formatting the same value twice gives the same string."""
        first = formatter(value)
        assert isinstance(first, str)
        assert formatter(value) == first

    @pytest.mark.parametrize("value", VALUES)
    @pytest.mark.parametrize(
        "formatter", [format_percentage, format_ratio, format_growth]
    )
    def test_other_formatters_total(self, formatter, value):
        """Percentages, ratios and growth also accept any finite magnitude."""
        assert isinstance(formatter(value), str)

    def test_very_large_value(self):
        """Forty-digit amounts still compact to millions."""
        assert format_currency(10**40) == "$" + "1" + "0" * 34 + ".0M"
        assert format_number(Decimal("1E+40")) == "1" + "0" * 34 + ".0M"
        assert format_percentage(10**40) == "1" + "0" * 40 + "%"

    @pytest.mark.parametrize(
        "value, expected",
        [
            (999, "999"),
            (Decimal("999.99"), "999.99"),
            (Decimal("999.994"), "999.99"),
            (Decimal("999.995"), "1K"),
            (999.999, "1K"),
        ],
    )
    def test_just_under_a_thousand(self, value, expected):
        """Values that round up to 1,000 render as 1K, not 1,000."""
        assert format_number(value) == expected

    def test_currency_just_under_a_thousand(self):
        """Cents that round up to $1,000 render as $1K."""
        assert format_currency(Decimal("999.99")) == "$999.99"
        assert format_currency(Decimal("999.995")) == "$1K"

    def test_nan_is_not_available(self):
        """NaN, such as an absent cohort cell in a frame, renders as N/A."""
        assert format_percentage(float("nan")) == "N/A"
        assert format_currency(np.nan) == "N/A"
        assert format_number(np.float64("nan")) == "N/A"


class TestNumpyScalars:
    """Test that numpy scalars format like Python numbers."""

    def test_float64(self):
        """np.float64 values are converted through their decimal text."""
        assert format_currency(np.float64(1500.0)) == "$2K"
        assert format_percentage(np.float64(82.0)) == "82%"
        assert format_ratio(np.float64(25.29)) == "25.3x"

    def test_integer_and_float32(self):
        """Other numpy scalar types are accepted too."""
        assert format_number(np.int64(801492)) == "801K"
        assert format_number(np.float32(12.5)) == "12.5"

    def test_cohort_frame_cell(self):
        """Cells read from CohortMatrix.to_frame() format directly."""
        frame = build_retention_cohorts(load_raw_facts()).buyers.to_frame()
        assert format_percentage(frame.loc["Jan 2024", "M1"]) == "82%"
        assert format_percentage(frame.loc["Jan 2025", "M1"]) == "N/A"

    def test_matches_python_numbers(self):
        """A numpy scalar and the equivalent Python number format identically."""
        for value in (0.28, 56.93, 9352983.0, 999.999):
            assert format_currency(np.float64(value)) == format_currency(value)
            assert format_number(np.float64(value)) == format_number(value)
