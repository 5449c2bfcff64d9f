"""Error taxonomy for the investor metrics model.

Only dataset construction can fail fatally. Undefined ratios are a value,
not an exception, so a chart can render "N/A" instead of crashing.
"""

from __future__ import annotations

from typing import Sequence


class ConstructionError(ValueError):
    """Raised once, at initialization, when the raw dataset is invalid.

    Attributes
    ----------
    problems:
        Human-readable description of every defect found. The dataset is
        static, so each entry points at a data-authoring bug.
    """

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        self.problems = tuple(problems)
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class ConsistencyError(AssertionError):
    """Raised by :func:`assert_consistent` when error-severity checks fail."""


class UndefinedRatio:
    """Sentinel returned by ``ratio()`` for a zero denominator.

    There is exactly one instance, :data:`UNDEFINED_RATIO`. It is falsy and
    renders as ``"N/A"``.
    """

    _instance: UndefinedRatio | None = None

    def __new__(cls) -> UndefinedRatio:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED_RATIO"

    def __str__(self) -> str:
        return "N/A"

    def __reduce__(self) -> str:
        return "UNDEFINED_RATIO"


UNDEFINED_RATIO = UndefinedRatio()


def is_undefined(value: object) -> bool:
    """Return True if ``value`` is the undefined-ratio sentinel."""
    return value is UNDEFINED_RATIO
