"""Per-mall settlement statement built from the frozen order view."""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.config.constants import BILL_TYPE_TAX_FREE, BILL_TYPE_TAXABLE
from mall_settlement.core.errors import NotFoundError
from mall_settlement.core.fields import parse_number, round_half_up
from mall_settlement.core.logger import setup_logger
from mall_settlement.core.validation import parse_positive_id, require_company_id
from mall_settlement.db.repository import MallRepository
from mall_settlement.services.snapshot_reader import SnapshotReader

logger = setup_logger(__name__)


@dataclass
class StatementLine:
    """Orders of one mapping code summed into a statement line."""

    mapping_code: str
    display_name: str
    quantity: int
    unit_price: int
    amount: int
    bill_type: str


@dataclass
class SettlementStatement:
    settlement_id: int
    mall_id: int
    mall_name: str
    period_start: str
    period_end: str
    lines: List[StatementLine] = field(default_factory=list)
    total_amount: int = 0
    taxable_amount: int = 0
    tax_free_amount: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _bill_type(value: Optional[str]) -> str:
    """Anything other than an explicit tax-free product is taxable."""
    return BILL_TYPE_TAX_FREE if value == BILL_TYPE_TAX_FREE else BILL_TYPE_TAXABLE


async def build_statement(
    session: AsyncSession,
    company_id: Any,
    settlement_id: Any,
    today: Optional[date] = None,
) -> Optional[SettlementStatement]:
    """
    Build the statement of one settlement.

    Active orders are grouped by mapping code: the first order of a code
    supplies the display name, unit price and bill type, and quantities and
    amounts are summed. Lines are sorted by display name.

    Returns:
        SettlementStatement, or None when the settlement is not the company's
    """
    company_id = require_company_id(company_id)
    settlement_id = parse_positive_id(settlement_id, "settlement_id")

    reader = SnapshotReader(session, today=today)
    try:
        settlement = await reader.get_settlement(company_id, settlement_id)
    except NotFoundError as e:
        logger.info(e.message)
        return None

    mall = await MallRepository(session).get(settlement.mall_id)
    mall_name = mall.name if mall else ""
    mall_id = settlement.mall_id
    period_start = settlement.period_start_date.isoformat()
    period_end = settlement.period_end_date.isoformat()

    # Reading may commit an expired-promotion cleanup
    views = await reader.read_frozen(company_id, settlement_id)

    grouped: Dict[str, Dict[str, Any]] = {}
    for view in views:
        if view.is_cancelled:
            continue
        code = view.mapping_code or ""
        quantity = parse_number(view.quantity) or Decimal(0)
        unit_price = parse_number(view.supply_price) or Decimal(0)

        entry = grouped.get(code)
        if entry is None:
            grouped[code] = {
                "display_name": view.display_name or "",
                "quantity": quantity,
                "unit_price": unit_price,
                "amount": quantity * unit_price,
                "bill_type": _bill_type(view.bill_type),
            }
        else:
            entry["quantity"] += quantity
            entry["amount"] += quantity * unit_price

    lines = [
        StatementLine(
            mapping_code=code,
            display_name=entry["display_name"],
            quantity=int(round_half_up(entry["quantity"])),
            unit_price=int(round_half_up(entry["unit_price"])),
            amount=int(round_half_up(entry["amount"])),
            bill_type=entry["bill_type"],
        )
        for code, entry in grouped.items()
    ]
    lines.sort(key=lambda line: line.display_name.lower())

    statement = SettlementStatement(
        settlement_id=settlement_id,
        mall_id=mall_id,
        mall_name=mall_name,
        period_start=period_start,
        period_end=period_end,
        lines=lines,
        total_amount=sum(line.amount for line in lines),
        taxable_amount=sum(line.amount for line in lines if line.bill_type == BILL_TYPE_TAXABLE),
        tax_free_amount=sum(line.amount for line in lines if line.bill_type == BILL_TYPE_TAX_FREE),
    )
    logger.info(
        f"Built statement for settlement {settlement_id}: "
        f"{len(lines)} lines, total {statement.total_amount}"
    )
    return statement
