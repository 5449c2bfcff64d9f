"""Display formatting for currency, counts, percentages and ratios.

Every formatter is total over finite numbers: it always returns a string.
Undefined ratios, missing values and NaN render as the configured "N/A"
placeholder. Rounding is half-up, matching how figures are quoted in the
investor materials.

Examples
--------
>>> format_currency(70045672)
'$70.0M'
>>> format_number(801492)
'801K'
>>> format_percentage(56.93)
'56.9%'
>>> format_percentage(80)
'80%'
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext
from numbers import Number

from investor_metrics.analyses.calculator import to_decimal
from investor_metrics.config import get_format_config
from investor_metrics.errors import UndefinedRatio

MILLION = Decimal("1000000")
THOUSAND = Decimal("1000")

_ONE_DECIMAL = Decimal("0.1")
_TWO_DECIMALS = Decimal("0.01")
_WHOLE = Decimal("1")

FormattableValue = Number | Decimal | UndefinedRatio | None


def _as_decimal(value: Number | Decimal) -> Decimal | None:
    """Decimal for ``value``, or None when it is NaN or infinite."""
    number = to_decimal(value)
    return number if number.is_finite() else None


def _round(value: Decimal, exponent: Decimal, unit: Decimal = _WHOLE) -> Decimal:
    """Half-up ``value / unit`` at ``exponent``, exact for any magnitude."""
    with localcontext() as ctx:
        # Dividing by a power of ten is exact when every digit fits.
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 2)
        scaled = value / unit
        ctx.prec = max(ctx.prec, scaled.adjusted() - exponent.adjusted() + 2)
        return scaled.quantize(exponent, rounding=ROUND_HALF_UP)


def _compact(magnitude: Decimal, small_precision: Decimal | None) -> str:
    """Render a non-negative magnitude as M/K or plain, without a sign or prefix."""
    if magnitude < THOUSAND:
        small = _round(magnitude, small_precision or _TWO_DECIMALS)
        # 999.996 rounds to 1000.00; it falls through to 1K.
        if small < THOUSAND:
            return f"{small}" if small_precision is not None else _plain_number(small)
    if magnitude < MILLION:
        thousands = _round(magnitude, _WHOLE, THOUSAND)
        # 999,999.6 rounds to 1000K; it falls through to 1.0M.
        if thousands < THOUSAND:
            return f"{thousands}K"
    return f"{_round(magnitude, _ONE_DECIMAL, MILLION)}M"


def _plain_number(rounded: Decimal) -> str:
    if rounded == rounded.to_integral_value():
        return f"{int(rounded):,}"
    return f"{rounded:,.2f}".rstrip("0")


def _one_decimal(value: Decimal, suffix: str) -> str:
    rounded = _round(value, _ONE_DECIMAL)
    if rounded == rounded.to_integral_value():
        return f"{int(rounded)}{suffix}"
    return f"{rounded}{suffix}"


def format_currency(value: FormattableValue) -> str:
    """Format a currency amount with M/K compaction.

    Values of a million or more render as ``$X.YM``, thousands as ``$XK``,
    and smaller amounts with cents.

    Examples
    --------
    >>> format_currency(9352983)
    '$9.4M'
    >>> format_currency(3000)
    '$3K'
    >>> format_currency(0.28)
    '$0.28'
    """
    config = get_format_config()
    if value is None or isinstance(value, UndefinedRatio):
        return config.not_available
    amount = _as_decimal(value)
    if amount is None:
        return config.not_available
    sign = "-" if amount < 0 else ""
    return f"{sign}{config.currency_symbol}{_compact(abs(amount), _TWO_DECIMALS)}"


def format_number(value: FormattableValue) -> str:
    """Format a count with M/K compaction.

    Values under a thousand keep up to two decimals with thousands
    separators and trailing zeros trimmed. ``None`` renders as ``"0"``.

    Examples
    --------
    >>> format_number(1277498)
    '1.3M'
    >>> format_number(25.3)
    '25.3'
    >>> format_number(None)
    '0'
    """
    if value is None:
        return "0"
    if isinstance(value, UndefinedRatio):
        return get_format_config().not_available
    number = _as_decimal(value)
    if number is None:
        return get_format_config().not_available
    sign = "-" if number < 0 else ""
    return f"{sign}{_compact(abs(number), None)}"


def format_percentage(value: FormattableValue) -> str:
    """Format a percentage with one decimal place, or none if whole.

    Examples
    --------
    >>> format_percentage(85.92)
    '85.9%'
    >>> format_percentage(Decimal("47.00"))
    '47%'
    """
    if value is None or isinstance(value, UndefinedRatio):
        return get_format_config().not_available
    number = _as_decimal(value)
    if number is None:
        return get_format_config().not_available
    return _one_decimal(number, "%")


def format_ratio(value: FormattableValue) -> str:
    """Format a multiple such as LTV:CAC as ``"25.3x"``.

    >>> from investor_metrics.errors import UNDEFINED_RATIO
    >>> format_ratio(UNDEFINED_RATIO)
    'N/A'
    """
    if value is None or isinstance(value, UndefinedRatio):
        return get_format_config().not_available
    number = _as_decimal(value)
    if number is None:
        return get_format_config().not_available
    return _one_decimal(number, "x")


def format_growth(value: FormattableValue) -> str:
    """Format a growth fraction (0.25) as a signed percentage (``"+25%"``)."""
    if value is None or isinstance(value, UndefinedRatio):
        return get_format_config().not_available
    number = _as_decimal(value)
    if number is None:
        return get_format_config().not_available
    pct = _round(number, _ONE_DECIMAL, _WHOLE / 100)
    text = format_percentage(abs(pct))
    if pct == 0:
        return text
    return f"+{text}" if pct > 0 else f"-{text}"
