"""
Display formatting for balances and costs.

Values are arbitrary-size ints (or floats for rates), so everything goes
through Decimal to get an exact decimal exponent.
"""

from __future__ import annotations

import math
from decimal import Decimal
from functools import lru_cache
from typing import Any, Literal, Union

NumberFormat = Literal["english", "japanese", "scientific"]
Number = Union[int, float]

NUMBER_FORMATS: tuple[NumberFormat, ...] = ("english", "japanese", "scientific")

_SHORT_SCALE = ("K", "M", "B", "T", "Qa", "Qi", "Sx", "Sp", "Oc", "No")
_UNITS = ("", "U", "D", "T", "Qa", "Qi", "Sx", "Sp", "Oc", "No")
_TENS = ("", "Dc", "Vg", "Tg", "Qag", "Qig", "Sxg", "Spg", "Ocg", "Nog")
_HUNDREDS = ("", "Ce", "DCe", "TCe", "QaCe", "QiCe", "SxCe", "SpCe", "OcCe", "NoCe")
# one group per 10^4
_JAPANESE_UNITS = (
    "", "万", "億", "兆", "京", "垓", "秭", "穣", "溝", "澗",
    "正", "載", "極", "恒河沙", "阿僧祇", "那由他", "不可思議", "無量大数",
)


def _non_finite(value: Number) -> str | None:
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    return None


def _plain(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_decimal(value: Number) -> Decimal:
    return Decimal(value) if isinstance(value, int) else Decimal(repr(value))


@lru_cache(maxsize=1024)
def generate_abbreviation(exponent: int) -> str:
    """
    Short-scale suffix for 10**exponent.

    K..No cover 10^3..10^30. Above that the suffix is composed from
    unit/ten/hundred prefixes (Dc, UDc, DDc, ..., Vg, UVg, ..., Ce).
    Exponents that are negative or not a multiple of 3 come back as "e<exp>".
    """
    if isinstance(exponent, float) and not math.isfinite(exponent):
        return f"e{exponent}"
    if exponent < 0 or exponent % 3 != 0:
        return f"e{exponent}"
    group = int(exponent) // 3
    if group == 0:
        return ""
    if group <= len(_SHORT_SCALE):
        return _SHORT_SCALE[group - 1]
    n = group - 1
    if n >= 1000:
        return f"e{exponent}"
    return _UNITS[n % 10] + _TENS[(n // 10) % 10] + _HUNDREDS[n // 100]


def format_english(value: Number) -> str:
    special = _non_finite(value)
    if special is not None:
        return special
    if value < 0:
        return "-" + format_english(-value)
    if value < 1000:
        return _plain(value)

    d = _to_decimal(value)
    group = d.adjusted() // 3
    text = f"{d.scaleb(-3 * group):.1f}"
    if text == "1000.0":
        group += 1
        text = f"{d.scaleb(-3 * group):.1f}"

    suffix = generate_abbreviation(group * 3)
    if suffix.startswith("e"):
        return format_scientific(value)
    return text + suffix


def format_japanese(value: Number) -> str:
    special = _non_finite(value)
    if special is not None:
        return special
    if value < 0:
        return "-" + format_japanese(-value)
    if value < 10000:
        return _plain(value)

    d = _to_decimal(value)
    group = d.adjusted() // 4
    text = f"{d.scaleb(-4 * group):.1f}"
    if text == "10000.0":
        group += 1
        text = f"{d.scaleb(-4 * group):.1f}"

    if group >= len(_JAPANESE_UNITS):
        return format_scientific(value)
    return text + _JAPANESE_UNITS[group]


def format_scientific(value: Number) -> str:
    special = _non_finite(value)
    if special is not None:
        return special
    if value < 0:
        return "-" + format_scientific(-value)
    if value < 1000:
        return _plain(value)

    d = _to_decimal(value)
    exponent = d.adjusted()
    mantissa = f"{d.scaleb(-exponent):.2f}"
    if mantissa == "10.00":
        exponent += 1
        mantissa = f"{d.scaleb(-exponent):.2f}"
    return f"{mantissa}e+{exponent}"


def format_number(value: Number, kind: str = "english") -> str:
    """
    Format a value in the requested notation.
    Unknown notations fall back to english.
    """
    if kind == "japanese":
        return format_japanese(value)
    if kind == "scientific":
        return format_scientific(value)
    return format_english(value)


_INT64_MIN = -(2**63)
_UINT64_MAX = 2**64 - 1


def wide_ints_as_str(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Replace top-level ints outside the 64-bit range with their decimal
    string, so orjson-backed writers (logs, event log) keep exact values.
    """
    for key, value in fields.items():
        if isinstance(value, int) and not _INT64_MIN <= value <= _UINT64_MAX:
            fields[key] = str(value)
    return fields
