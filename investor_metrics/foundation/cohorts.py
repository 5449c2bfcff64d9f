"""Retention cohort matrices for buyer and non-buyer segments.

Each cohort is the group of users who registered in the same calendar
month. Its row holds the share of the cohort still active at offsets
M0..M12. Offsets the cohort has not reached yet are *absent*: they are
reported as ``None`` and skipped by every aggregate, never read as 0%.

Source percentages arrive already rounded and there are no underlying user
counts at this granularity, so the builder treats them as ground truth and
only aggregates them by simple arithmetic mean.

Quick Start
-----------
>>> from investor_metrics.foundation.dataset import load_raw_facts
>>> from investor_metrics.foundation.cohorts import build_retention_cohorts
>>> cohorts = build_retention_cohorts(load_raw_facts())
>>> cohorts.buyers.cohort("Jan 2024").month_offset(1)
Decimal('82')
>>> cohorts.buyers.cohort("Jan 2025").month_offset(1) is None
True
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Sequence

import pandas as pd
import structlog

from investor_metrics.errors import ConstructionError
from investor_metrics.foundation.raw_facts import MAX_COHORT_OFFSET, CohortRecord, RawFacts

logger = structlog.get_logger(__name__)

# Every cohort is 100% retained in its own start month.
COHORT_START_RETENTION = Decimal("100")

PERCENTAGE_PRECISION = Decimal("0.01")


class Segment(str, Enum):
    """User segments with separately tracked retention."""

    BUYERS = "buyers"
    NON_BUYERS = "non_buyers"


@dataclass(frozen=True)
class CohortRow:
    """Observed retention for a single cohort.

    Attributes
    ----------
    cohort_id:
        Cohort start month label (e.g. "Jan 2024").
    values:
        Retention percentages for offsets 0..N-1, where N is the number of
        observed months. Offsets >= N are absent.
    """

    cohort_id: str
    values: tuple[Decimal, ...]

    def __post_init__(self) -> None:
        """Validate cohort row constraints."""
        if not self.values:
            raise ValueError(f"cohort {self.cohort_id} has no observed months")
        if len(self.values) > MAX_COHORT_OFFSET + 1:
            raise ValueError(
                f"cohort {self.cohort_id} has {len(self.values)} offsets, "
                f"maximum is {MAX_COHORT_OFFSET + 1}"
            )
        if self.values[0] != COHORT_START_RETENTION:
            raise ValueError(
                f"cohort {self.cohort_id} must start at {COHORT_START_RETENTION}% in M0, "
                f"got {self.values[0]}"
            )
        for offset, value in enumerate(self.values):
            if not 0 <= value <= 100:
                raise ValueError(
                    f"cohort {self.cohort_id} M{offset} must be between 0 and 100, got {value}"
                )

    @property
    def observed_months(self) -> int:
        return len(self.values)

    def is_observed(self, offset: int) -> bool:
        """Return True if the cohort has a value at ``offset``."""
        return 0 <= offset < len(self.values)

    def month_offset(self, offset: int) -> Decimal | None:
        """Return retention at ``offset``, or None if not yet observed.

        Raises
        ------
        ValueError
            If ``offset`` is outside M0..M12.
        """
        if not 0 <= offset <= MAX_COHORT_OFFSET:
            raise ValueError(f"offset must be between 0 and {MAX_COHORT_OFFSET}, got {offset}")
        if offset < len(self.values):
            return self.values[offset]
        return None

    def padded(self) -> tuple[Decimal | None, ...]:
        """Return all thirteen offsets, with None for absent entries."""
        return tuple(self.month_offset(k) for k in range(MAX_COHORT_OFFSET + 1))


@dataclass(frozen=True)
class CohortMatrix:
    """Retention matrix for one segment, rows ordered by cohort start."""

    segment: Segment
    rows: tuple[CohortRow, ...]

    def __post_init__(self) -> None:
        ids = [row.cohort_id for row in self.rows]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate cohort ids in {self.segment.value}: {ids}")

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def cohort_ids(self) -> tuple[str, ...]:
        return tuple(row.cohort_id for row in self.rows)

    @property
    def max_observed_offset(self) -> int:
        """Largest offset observed by any cohort (-1 for an empty matrix)."""
        return max((row.observed_months - 1 for row in self.rows), default=-1)

    def cohort(self, cohort_id: str) -> CohortRow:
        """Return the row for ``cohort_id``.

        Raises
        ------
        KeyError
            If no cohort starts in that month.
        """
        for row in self.rows:
            if row.cohort_id == cohort_id:
                return row
        raise KeyError(cohort_id)

    def average_retention(self, offset: int) -> Decimal | None:
        """Mean retention at ``offset`` across cohorts that observed it.

        Absent entries are skipped rather than counted as zero. Returns
        None when no cohort has reached the offset.

        Examples
        --------
        >>> matrix = build_cohort_matrix(Segment.BUYERS, [
        ...     CohortRecord(month="Jan", retention=(100, 80)),
        ...     CohortRecord(month="Feb", retention=(100, 90)),
        ...     CohortRecord(month="Mar", retention=(100,)),
        ... ])
        >>> matrix.average_retention(1)
        Decimal('85.00')
        """
        observed = [v for v in (row.month_offset(offset) for row in self.rows) if v is not None]
        if not observed:
            return None
        mean = sum(observed, Decimal("0")) / len(observed)
        return mean.quantize(PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP)

    def retention_curve(self) -> tuple[Decimal | None, ...]:
        """Average retention for every offset M0..M12."""
        return tuple(self.average_retention(k) for k in range(MAX_COHORT_OFFSET + 1))

    def non_monotonic_cells(self) -> list[tuple[str, int]]:
        """Return ``(cohort_id, offset)`` pairs where retention rises from offset-1.

        Small upticks can be legitimate re-engagement, so these are
        reported rather than rejected.
        """
        cells: list[tuple[str, int]] = []
        for row in self.rows:
            for offset in range(1, row.observed_months):
                if row.values[offset] > row.values[offset - 1]:
                    cells.append((row.cohort_id, offset))
        return cells

    def to_frame(self) -> pd.DataFrame:
        """Return the matrix as a DataFrame indexed by cohort, columns M0..M12.

        Absent entries are NaN.
        """
        columns = [f"M{k}" for k in range(MAX_COHORT_OFFSET + 1)]
        data = [
            [float(v) if v is not None else float("nan") for v in row.padded()]
            for row in self.rows
        ]
        frame = pd.DataFrame(data, index=list(self.cohort_ids), columns=columns)
        frame.index.name = "cohort"
        return frame


@dataclass(frozen=True)
class RetentionCohorts:
    """Cohort matrices for both tracked segments."""

    buyers: CohortMatrix
    non_buyers: CohortMatrix

    def segment(self, segment: Segment) -> CohortMatrix:
        return self.buyers if segment is Segment.BUYERS else self.non_buyers

    def __iter__(self):
        return iter((self.buyers, self.non_buyers))


def build_cohort_matrix(segment: Segment, records: Sequence[CohortRecord]) -> CohortMatrix:
    """Assemble a cohort matrix from validated raw cohort records.

    Parameters
    ----------
    segment:
        Segment the records belong to.
    records:
        Raw cohort records in cohort start order.

    Raises
    ------
    ConstructionError
        If any cohort does not start at 100% or has out-of-range values.
    """
    rows: list[CohortRow] = []
    problems: list[str] = []
    for record in records:
        try:
            rows.append(CohortRow(cohort_id=record.month, values=tuple(record.retention)))
        except ValueError as exc:
            problems.append(f"{segment.value}: {exc}")
    if problems:
        raise ConstructionError("Invalid retention cohorts", problems)
    try:
        return CohortMatrix(segment=segment, rows=tuple(rows))
    except ValueError as exc:
        raise ConstructionError("Invalid retention cohorts", [str(exc)]) from exc


def build_retention_cohorts(raw: RawFacts) -> RetentionCohorts:
    """Build buyer and non-buyer matrices from the fact store."""
    cohorts = RetentionCohorts(
        buyers=build_cohort_matrix(Segment.BUYERS, raw.retention_cohorts.buyers),
        non_buyers=build_cohort_matrix(Segment.NON_BUYERS, raw.retention_cohorts.non_buyers),
    )
    for matrix in cohorts:
        uptick = matrix.non_monotonic_cells()
        if uptick:
            logger.warning(
                "retention_uptick_detected",
                segment=matrix.segment.value,
                cells=uptick[:5],
                count=len(uptick),
            )
    return cohorts
