"""
Asset Module

Fixed-point token amounts: an integer count of minor units tagged with a
Symbol (code + decimal precision). NEVER uses float. All arithmetic is
range-checked against the signed 64-bit bounds instead of wrapping.
"""

from dataclasses import dataclass
import re

from .errors import ArithmeticOverflow, InvalidAmount, InvalidSymbol, SymbolMismatch

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

MAX_PRECISION = 18

_CODE_PATTERN = re.compile(r"^[A-Z]{1,7}$")
_ASSET_PATTERN = re.compile(r"^(-?)(\d+)(?:\.(\d+))?\s+([A-Za-z]+)$")


def _check_range(amount: int) -> int:
    if amount < INT64_MIN or amount > INT64_MAX:
        raise ArithmeticOverflow(f"amount {amount} outside signed 64-bit range")
    return amount


@dataclass(frozen=True)
class Symbol:
    """Token kind: short uppercase code plus decimal precision"""
    code: str
    precision: int

    def is_valid(self) -> bool:
        """Check code is 1-7 uppercase letters and precision is in range"""
        if not isinstance(self.code, str) or not _CODE_PATTERN.match(self.code):
            return False
        if isinstance(self.precision, bool) or not isinstance(self.precision, int):
            return False
        return 0 <= self.precision <= MAX_PRECISION

    def to_string(self) -> str:
        return f"{self.precision},{self.code}"

    @classmethod
    def from_string(cls, value: str) -> 'Symbol':
        """Parse the "precision,CODE" form, e.g. "3,MNT" """
        try:
            precision_part, code = value.split(",", 1)
            symbol = cls(code=code.strip(), precision=int(precision_part))
        except (AttributeError, ValueError):
            raise InvalidSymbol(f"cannot parse symbol '{value}'")
        if not symbol.is_valid():
            raise InvalidSymbol(f"invalid symbol name '{value}'")
        return symbol


@dataclass(frozen=True)
class Asset:
    """
    Immutable token amount. `amount` is always expressed in minor units of
    `symbol`; precision only matters for display and symbol identity.
    """
    amount: int
    symbol: Symbol

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvalidAmount(f"asset amount must be an integer, got {type(self.amount).__name__}")
        _check_range(self.amount)

    @classmethod
    def zero(cls, symbol: Symbol) -> 'Asset':
        return cls(0, symbol)

    def _require_same_symbol(self, other: 'Asset', verb: str) -> None:
        if not isinstance(other, Asset):
            raise TypeError(f"Cannot {verb} Asset and {type(other).__name__}")
        if self.symbol != other.symbol:
            raise SymbolMismatch(
                f"Cannot {verb} {self.symbol.to_string()} and {other.symbol.to_string()}"
            )

    def __add__(self, other: 'Asset') -> 'Asset':
        self._require_same_symbol(other, "add")
        return Asset(_check_range(self.amount + other.amount), self.symbol)

    def __sub__(self, other: 'Asset') -> 'Asset':
        self._require_same_symbol(other, "subtract")
        return Asset(_check_range(self.amount - other.amount), self.symbol)

    def __lt__(self, other: 'Asset') -> bool:
        self._require_same_symbol(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Asset') -> bool:
        self._require_same_symbol(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Asset') -> bool:
        self._require_same_symbol(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Asset') -> bool:
        self._require_same_symbol(other, "compare")
        return self.amount >= other.amount

    def is_valid(self) -> bool:
        """Valid when the symbol is well formed and the amount is not negative"""
        return self.symbol.is_valid() and self.amount >= 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def to_string(self) -> str:
        """Format as "100.000 MNT" """
        sign = "-" if self.amount < 0 else ""
        digits = str(abs(self.amount))
        precision = self.symbol.precision
        if precision == 0:
            return f"{sign}{digits} {self.symbol.code}"
        digits = digits.rjust(precision + 1, "0")
        return f"{sign}{digits[:-precision]}.{digits[-precision:]} {self.symbol.code}"

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def from_string(cls, value: str) -> 'Asset':
        """
        Parse "100.000 MNT" into an Asset.

        The number of fractional digits sets the symbol precision, so
        "40.000 MNT" and "40.00 MNT" are different symbols.

        Raises:
            InvalidAmount: if the numeric part is malformed or out of range
            InvalidSymbol: if the symbol code is not 1-7 uppercase letters
        """
        if not isinstance(value, str):
            raise InvalidAmount("asset must be given as a string")
        match = _ASSET_PATTERN.match(value.strip())
        if not match:
            raise InvalidAmount(f"cannot parse asset '{value}'")
        sign, whole, fraction, code = match.groups()
        fraction = fraction or ""
        symbol = Symbol(code=code, precision=len(fraction))
        if not symbol.is_valid():
            raise InvalidSymbol(f"invalid symbol name '{code}'")
        amount = int(whole + fraction)
        if sign:
            amount = -amount
        try:
            return cls(amount, symbol)
        except ArithmeticOverflow:
            raise InvalidAmount(f"asset '{value}' outside signed 64-bit range")
