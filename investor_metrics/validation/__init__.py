"""Cross-checks between derived metrics, raw facts and published figures."""

from .consistency import (
    ConsistencyCheck,
    ConsistencyReport,
    assert_consistent,
    validate_consistency,
)

__all__ = [
    "ConsistencyCheck",
    "ConsistencyReport",
    "assert_consistent",
    "validate_consistency",
]
