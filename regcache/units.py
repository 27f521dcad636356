"""Resource quantities and durations in their textual forms."""

from __future__ import annotations

import enum
import functools
import re
from datetime import timedelta
from decimal import ROUND_CEILING, Decimal, localcontext

_PRECISION = 120


class QuantityFormat(enum.Enum):
    """How a quantity is written back out."""

    BINARY_SI = "BinarySI"
    DECIMAL_SI = "DecimalSI"
    DECIMAL_EXPONENT = "DecimalExponent"


_BINARY_SUFFIXES = {"Ki": 1, "Mi": 2, "Gi": 3, "Ti": 4, "Pi": 5, "Ei": 6}
_DECIMAL_SUFFIXES = {"n": -9, "u": -6, "m": -3, "": 0, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18}
_DECIMAL_BY_EXPONENT = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}
_QUANTITY_RE = re.compile(r"([+-]?)(\d+\.?\d*|\.\d+)(.*)")
_EXPONENT_RE = re.compile(r"[eE]([+-]?\d+)")


def _is_integral(value: Decimal) -> bool:
    return value == value.to_integral_value()


@functools.total_ordering
class Quantity:
    """A fixed-point amount such as a volume size (``10Gi``), compared by value."""

    __slots__ = ("value", "format")

    def __init__(self, value: int | str | Decimal = 0, format: QuantityFormat = QuantityFormat.DECIMAL_SI) -> None:
        self.value = Decimal(value)
        self.format = format

    def __str__(self) -> str:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            value = self.value
            if value == 0:
                return "0"
            if self.format is QuantityFormat.BINARY_SI and _is_integral(value):
                if abs(value) < 1024:
                    return str(int(value))
                for suffix, power in reversed(_BINARY_SUFFIXES.items()):
                    scaled = value / (1024**power)
                    if _is_integral(scaled):
                        return f"{int(scaled)}{suffix}"
                return str(int(value))
            for exponent in range(18, -10, -3):
                scaled = value.scaleb(-exponent)
                if _is_integral(scaled):
                    break
            else:
                exponent = -9
                scaled = value.scaleb(9).to_integral_value(rounding=ROUND_CEILING)
            if self.format is QuantityFormat.DECIMAL_EXPONENT:
                suffix = f"e{exponent}" if exponent else ""
            else:
                suffix = _DECIMAL_BY_EXPONENT[exponent]
            return f"{int(scaled)}{suffix}"

    def __repr__(self) -> str:
        return f"Quantity({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: Quantity) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity such as ``10Gi``, ``500m`` or ``1e3``; raise ValueError if malformed."""
    match = _QUANTITY_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"unable to parse quantity {text!r}")
    sign, number, suffix = match.groups()
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        amount = Decimal(number)
        if sign == "-":
            amount = -amount
        if suffix in _BINARY_SUFFIXES:
            return Quantity(amount * (1024 ** _BINARY_SUFFIXES[suffix]), QuantityFormat.BINARY_SI)
        if suffix in _DECIMAL_SUFFIXES:
            return Quantity(amount.scaleb(_DECIMAL_SUFFIXES[suffix]), QuantityFormat.DECIMAL_SI)
        exponent = _EXPONENT_RE.fullmatch(suffix)
        if exponent is not None:
            return Quantity(amount.scaleb(int(exponent.group(1))), QuantityFormat.DECIMAL_EXPONENT)
    raise ValueError(f"unable to parse quantity {text!r}: unknown suffix {suffix!r}")


# Duration units expressed in microseconds.
_DURATION_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "\u00b5s": Decimal(1),
    "\u03bcs": Decimal(1),
    "ms": Decimal(1000),
    "s": Decimal(10**6),
    "m": Decimal(60 * 10**6),
    "h": Decimal(3600 * 10**6),
}
_DURATION_COMPONENT_RE = re.compile(r"(\d*\.?\d*)([^\d.]*)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``168h`` or ``1h30m``; raise ValueError if malformed."""
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_COMPONENT_RE.match(rest, pos)
        number, unit = match.groups()
        if number in ("", "."):
            raise ValueError(f'time: invalid duration "{text}"')
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _DURATION_UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        total += Decimal(number) * _DURATION_UNITS[unit]
        pos = match.end()
    micro = int(total)
    return timedelta(microseconds=-micro if negative else micro)


def _with_fraction(amount: int, unit: int) -> str:
    whole, frac = divmod(amount, unit)
    if not frac:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def format_duration(duration: timedelta) -> str:
    """Write a duration the way ``parse_duration`` reads it, e.g. ``168h0m0s``."""
    micro = (duration.days * 86400 + duration.seconds) * 10**6 + duration.microseconds
    if micro == 0:
        return "0s"
    sign = "-" if micro < 0 else ""
    micro = abs(micro)
    if micro < 10**6:
        if micro < 1000:
            return f"{sign}{micro}\u00b5s"
        return f"{sign}{_with_fraction(micro, 1000)}ms"
    hours, rest = divmod(micro, 3600 * 10**6)
    minutes, rest = divmod(rest, 60 * 10**6)
    seconds = _with_fraction(rest, 10**6)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"