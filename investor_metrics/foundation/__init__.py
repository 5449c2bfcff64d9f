"""Foundational building blocks for the investor metrics model.

This package exposes the validated raw fact store, the literal dataset it
is built from, and the retention cohort matrices assembled from it.
"""

from .cohorts import (
    CohortMatrix,
    CohortRow,
    RetentionCohorts,
    Segment,
    build_cohort_matrix,
    build_retention_cohorts,
)
from .dataset import dashboard_dataset, load_raw_facts
from .raw_facts import RawFacts, build_raw_facts

__all__ = [
    "CohortMatrix",
    "CohortRow",
    "RawFacts",
    "RetentionCohorts",
    "Segment",
    "build_cohort_matrix",
    "build_raw_facts",
    "build_retention_cohorts",
    "dashboard_dataset",
    "load_raw_facts",
]
