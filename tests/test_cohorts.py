"""Unit tests for the retention cohort matrices."""

import math
from decimal import Decimal

import pytest

from investor_metrics.errors import ConstructionError
from investor_metrics.foundation.cohorts import (
    CohortRow,
    Segment,
    build_cohort_matrix,
    build_retention_cohorts,
)
from investor_metrics.foundation.dataset import load_raw_facts
from investor_metrics.foundation.raw_facts import CohortRecord


def _record(month, *retention):
    return CohortRecord(month=month, retention=retention)


class TestCohortRow:
    """Test CohortRow dataclass validation and offset access."""

    def test_partially_observed_cohort(self):
        """A recent cohort exposes M1 and reports later offsets as absent."""
        row = CohortRow("Dec 2024", (Decimal("100"), Decimal("85.92")))
        assert row.month_offset(1) == Decimal("85.92")
        for offset in range(9, 13):
            assert row.month_offset(offset) is None
            assert not row.is_observed(offset)
        assert row.observed_months == 2

    def test_absent_is_not_zero(self):
        """Unobserved offsets are None, never 0."""
        row = CohortRow("Jan 2025", (Decimal("100"),))
        assert row.month_offset(1) is None
        assert row.padded() == (Decimal("100"),) + (None,) * 12

    def test_m0_must_be_100(self):
        """Every cohort starts with all of its members."""
        with pytest.raises(ValueError, match="must start at 100% in M0"):
            CohortRow("Jan 2024", (Decimal("95"), Decimal("80")))

    def test_values_bounded(self):
        """Retention stays within 0..100."""
        with pytest.raises(ValueError, match="M1 must be between 0 and 100"):
            CohortRow("Jan 2024", (Decimal("100"), Decimal("-1")))

    def test_empty_row_rejected(self):
        """A row needs at least M0."""
        with pytest.raises(ValueError, match="no observed months"):
            CohortRow("Jan 2024", ())

    def test_offset_out_of_range(self):
        """Offsets outside M0..M12 are programming errors."""
        row = CohortRow("Jan 2024", (Decimal("100"),))
        with pytest.raises(ValueError, match="offset must be between 0 and 12"):
            row.month_offset(13)
        with pytest.raises(ValueError):
            row.month_offset(-1)


class TestCohortMatrix:
    """Test averages and views over a cohort matrix."""

    @pytest.fixture
    def matrix(self):
        return build_cohort_matrix(
            Segment.BUYERS,
            [
                _record("Jan", 100, 80, 70),
                _record("Feb", 100, 90),
                _record("Mar", 100),
            ],
        )

    def test_average_skips_absent(self, matrix):
        """Averages use only cohorts that reached the offset."""
        assert matrix.average_retention(0) == Decimal("100.00")
        assert matrix.average_retention(1) == Decimal("85.00")
        assert matrix.average_retention(2) == Decimal("70.00")

    def test_average_none_when_unobserved(self, matrix):
        """No cohort reached M3, so there is no average."""
        assert matrix.average_retention(3) is None

    def test_retention_curve(self, matrix):
        """The curve covers M0..M12."""
        curve = matrix.retention_curve()
        assert len(curve) == 13
        assert curve[:3] == (Decimal("100.00"), Decimal("85.00"), Decimal("70.00"))
        assert all(value is None for value in curve[3:])

    def test_lookup(self, matrix):
        """Cohorts are found by start month."""
        assert matrix.cohort("Feb").month_offset(1) == Decimal("90")
        assert matrix.cohort_ids == ("Jan", "Feb", "Mar")
        assert len(matrix) == 3
        with pytest.raises(KeyError):
            matrix.cohort("Apr")

    def test_max_observed_offset(self, matrix):
        """The longest-observed cohort sets the matrix width."""
        assert matrix.max_observed_offset == 2

    def test_to_frame(self, matrix):
        """Absent entries are NaN in the DataFrame view."""
        frame = matrix.to_frame()
        assert frame.shape == (3, 13)
        assert frame.index.name == "cohort"
        assert frame.loc["Jan", "M2"] == 70.0
        assert math.isnan(frame.loc["Feb", "M2"])
        assert frame["M1"].mean() == pytest.approx(85.0)

    def test_non_monotonic_cells(self):
        """Upticks are reported as (cohort, offset) pairs."""
        matrix = build_cohort_matrix(
            Segment.NON_BUYERS, [_record("Jan", 100, 40, 45, 30), _record("Feb", 100, 50)]
        )
        assert matrix.non_monotonic_cells() == [("Jan", 2)]

    def test_build_rejects_bad_m0(self):
        """Builder errors are ConstructionErrors listing every bad cohort."""
        with pytest.raises(ConstructionError, match="Invalid retention cohorts") as exc_info:
            build_cohort_matrix(
                Segment.BUYERS, [_record("Jan", 90, 80), _record("Feb", 95), _record("Mar", 100)]
            )
        assert len(exc_info.value.problems) == 2
        assert exc_info.value.problems[0].startswith("buyers:")


class TestRetentionCohorts:
    """Test the matrices built from the dashboard dataset."""

    def test_both_segments_built(self):
        """Buyers and non-buyers each have thirteen cohorts."""
        cohorts = build_retention_cohorts(load_raw_facts())
        assert cohorts.segment(Segment.BUYERS) is cohorts.buyers
        assert cohorts.segment(Segment.NON_BUYERS) is cohorts.non_buyers
        assert len(cohorts.buyers) == 13
        assert len(cohorts.non_buyers) == 13

    def test_every_cohort_starts_at_100(self):
        """M0 is 100 for every cohort in both segments."""
        for matrix in build_retention_cohorts(load_raw_facts()):
            for row in matrix:
                assert row.month_offset(0) == Decimal("100")

    def test_buyer_averages(self):
        """Buyer M1 averages twelve cohorts; M12 only the oldest."""
        buyers = build_retention_cohorts(load_raw_facts()).buyers
        assert buyers.average_retention(1) == Decimal("87.92")
        assert buyers.average_retention(12) == Decimal("52.00")

    def test_latest_cohort_only_observes_m0(self):
        """The newest cohort has no M1 yet."""
        buyers = build_retention_cohorts(load_raw_facts()).buyers
        assert buyers.cohort("Jan 2025").month_offset(1) is None

    def test_buyers_retain_better(self):
        """Buyer retention exceeds non-buyer retention at every observed offset."""
        cohorts = build_retention_cohorts(load_raw_facts())
        for offset in range(1, 13):
            assert cohorts.buyers.average_retention(offset) > cohorts.non_buyers.average_retention(
                offset
            )
