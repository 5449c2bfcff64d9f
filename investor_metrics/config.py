"""Tolerance and display configuration.

Several consistency rules compare computed figures with hand-rounded
headline figures, so they need explicit tolerances. The defaults below are
the ones agreed for the published dashboard; override them per call or
globally with :func:`set_tolerance_config`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

_ENV_PREFIX = "INVESTOR_METRICS_"
_TOLERANCE_FIELDS = ("ratio", "user_count", "daily_growth", "currency", "projection")


@dataclass(frozen=True)
class ToleranceConfig:
    """Allowed differences between derived and reported figures.

    Attributes
    ----------
    ratio:
        Absolute tolerance for ratio headlines such as LTV:CAC (default 1.0).
    user_count:
        Absolute tolerance, in users, for partial-period user counts
        (default 1000).
    daily_growth:
        Absolute tolerance, in users per day, for daily growth (default 1).
    currency:
        Absolute tolerance for currency amounts in major units (default 0.01).
    projection:
        Relative tolerance, in percent, between a linear full-year estimate
        and the published estimate (default 1.0).
    """

    ratio: Decimal = Decimal("1")
    user_count: int = 1000
    daily_growth: Decimal = Decimal("1")
    currency: Decimal = Decimal("0.01")
    projection: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        """Validate that every tolerance is non-negative."""
        for name in _TOLERANCE_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} tolerance must be >= 0, got {value}")

    @classmethod
    def from_env(cls) -> ToleranceConfig:
        """Build a config from ``INVESTOR_METRICS_*_TOLERANCE`` variables.

        Unset variables keep their defaults.

        Examples
        --------
        >>> import os
        >>> os.environ["INVESTOR_METRICS_RATIO_TOLERANCE"] = "0.5"
        >>> ToleranceConfig.from_env().ratio
        Decimal('0.5')
        """
        defaults = cls()
        values: dict[str, Decimal | int] = {}
        for name in _TOLERANCE_FIELDS:
            raw = os.getenv(f"{_ENV_PREFIX}{name.upper()}_TOLERANCE")
            if raw is None:
                continue
            try:
                parsed = Decimal(raw)
            except InvalidOperation:
                raise ValueError(
                    f"{_ENV_PREFIX}{name.upper()}_TOLERANCE must be numeric, got {raw!r}"
                ) from None
            values[name] = int(parsed) if isinstance(getattr(defaults, name), int) else parsed
        return cls(**values)


@dataclass(frozen=True)
class FormatConfig:
    """Display conventions shared by every formatter.

    Attributes
    ----------
    currency_symbol:
        Prefix for currency strings (default ``"$"``).
    not_available:
        Placeholder rendered for undefined ratios and absent cells.
    chart_width / chart_height:
        Default figure size, in pixels, for chart specifications.
    """

    currency_symbol: str = "$"
    not_available: str = "N/A"
    chart_width: int = 800
    chart_height: int = 400

    def __post_init__(self) -> None:
        """Validate chart dimensions."""
        if self.chart_width <= 0 or self.chart_height <= 0:
            raise ValueError(
                f"chart dimensions must be positive, got {self.chart_width}x{self.chart_height}"
            )


_DEFAULT_TOLERANCE_CONFIG = ToleranceConfig()
_DEFAULT_FORMAT_CONFIG = FormatConfig()


def get_tolerance_config() -> ToleranceConfig:
    """Return the current global tolerance configuration."""
    return _DEFAULT_TOLERANCE_CONFIG


def set_tolerance_config(config: ToleranceConfig) -> None:
    """Replace the global tolerance configuration."""
    global _DEFAULT_TOLERANCE_CONFIG
    _DEFAULT_TOLERANCE_CONFIG = config


def get_format_config() -> FormatConfig:
    """Return the current global format configuration."""
    return _DEFAULT_FORMAT_CONFIG


def set_format_config(config: FormatConfig) -> None:
    """Replace the global format configuration."""
    global _DEFAULT_FORMAT_CONFIG
    _DEFAULT_FORMAT_CONFIG = config
