"""Order row field resolution.

Uploaded rows are semi-structured: each mall's spreadsheet names the same
column differently, cells may hold "1,000" or "1,000원", and any cell can be
empty. Every logical field is therefore resolved through an ordered chain of
candidates, and a value that cannot be parsed degrades to the field default
instead of failing the row.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping, Optional, Union

from mall_settlement.config.constants import (
    CANCELLED_STATUS,
    COST_PRICE_ALIASES,
    DEFAULT_COST_PRICE,
    DEFAULT_QUANTITY,
    DEFAULT_SUPPLY_PRICE,
    MAPPING_CODE_ALIASES,
    QUANTITY_ALIASES,
    STATUS_ALIASES,
    SUPPLY_PRICE_ALIASES,
)

# Thousands separators, whitespace and currency marks seen in uploads
_NUMBER_NOISE = re.compile(r"[,\s원₩]")


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse a cell into a Decimal, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    else:
        text = _NUMBER_NOISE.sub("", str(value))
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    if not number.is_finite():
        return None
    return number


def aliased(row_data: Optional[Mapping[str, Any]], aliases: Iterable[str]) -> List[Any]:
    """Values of the given aliases in order (None for absent keys)."""
    if not row_data:
        return [None for _ in aliases]
    return [row_data.get(alias) for alias in aliases]


def resolve_number(candidates: Iterable[Any], default: Union[int, Decimal]) -> Decimal:
    """Try candidates in order, else default.

    Blank candidates and numeric zeros fall through to the next one. Text
    such as "0" is an uploaded value and is taken as is. The first candidate
    holding text that is not a number ends the chain with the default.
    """
    for candidate in candidates:
        if is_blank(candidate):
            continue
        number = parse_number(candidate)
        if number is None:
            return Decimal(default)
        if number == 0 and not isinstance(candidate, str):
            continue
        return number
    return Decimal(default)


def resolve_text(candidates: Iterable[Any]) -> Optional[str]:
    """First non-blank candidate as a stripped string."""
    for candidate in candidates:
        if not is_blank(candidate):
            return str(candidate).strip()
    return None


def round_half_up(value: Decimal, places: int = 0) -> Decimal:
    """Round like a cashier: halves go away from zero."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_plain_number(value: Optional[Decimal]) -> Optional[Union[int, float]]:
    """Decimal to int when integral, float otherwise."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class ResolvedLine:
    """Financial view of one order row after alias resolution."""

    order_id: int
    mapping_code: Optional[str]
    status: str
    quantity: Decimal
    supply_price: Decimal
    cost_price: Decimal

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED_STATUS

    @property
    def amount(self) -> Decimal:
        return self.supply_price * self.quantity

    @property
    def profit(self) -> Decimal:
        return (self.supply_price - self.cost_price) * self.quantity


def resolve_line(
    order_id: int,
    row_data: Optional[Mapping[str, Any]],
    row_supply_price: Any = None,
    product: Optional[Mapping[str, Any]] = None,
) -> ResolvedLine:
    """Resolve the financial fields of one row.

    Args:
        order_id: Order row id
        row_data: Row payload as uploaded
        row_supply_price: Explicit supply price column of the row
        product: Matched catalog product (live or snapshot), if any
    """
    product = product or {}

    supply_price = resolve_number(
        [row_supply_price, product.get("sale_price"), *aliased(row_data, SUPPLY_PRICE_ALIASES)],
        DEFAULT_SUPPLY_PRICE,
    )
    quantity = resolve_number(aliased(row_data, QUANTITY_ALIASES), DEFAULT_QUANTITY)
    cost_price = resolve_number(
        [product.get("price"), *aliased(row_data, COST_PRICE_ALIASES)],
        DEFAULT_COST_PRICE,
    )
    mapping_code = resolve_text([*aliased(row_data, MAPPING_CODE_ALIASES), product.get("code")])
    status = resolve_text(aliased(row_data, STATUS_ALIASES)) or ""

    return ResolvedLine(
        order_id=order_id,
        mapping_code=mapping_code,
        status=status,
        quantity=quantity,
        supply_price=supply_price,
        cost_price=cost_price,
    )
