"""Listing of persisted settlements."""

from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.core.validation import optional_id, parse_period, require_company_id
from mall_settlement.db.repository import SettlementRepository


def _rate(value) -> float:
    return float(value) if value is not None else 0.0


async def list_settlements(
    session: AsyncSession,
    company_id: Any,
    period_start: Any,
    period_end: Any,
    mall_id: Any = None,
) -> List[Dict[str, Any]]:
    """Settlements of an exact period, ordered by mall name, zero rows excluded."""
    company_id = require_company_id(company_id)
    start, end = parse_period(period_start, period_end)
    mall_id = optional_id(mall_id, "mall_id")

    rows = await SettlementRepository(session).list_for_period(company_id, start, end, mall_id)
    return [
        {
            "id": settlement.id,
            "mall_id": settlement.mall_id,
            "mall_name": mall_name,
            "period_start_date": settlement.period_start_date.isoformat(),
            "period_end_date": settlement.period_end_date.isoformat(),
            "order_quantity": settlement.order_quantity,
            "order_amount": settlement.order_amount,
            "cancel_quantity": settlement.cancel_quantity,
            "cancel_amount": settlement.cancel_amount,
            "net_sales_quantity": settlement.net_sales_quantity,
            "net_sales_amount": settlement.net_sales_amount,
            "total_profit_amount": settlement.total_profit_amount,
            "total_profit_rate": _rate(settlement.total_profit_rate),
            "sales_fee_amount": settlement.sales_fee_amount,
            "sales_fee_rate": (
                float(settlement.sales_fee_rate) if settlement.sales_fee_rate is not None else None
            ),
            "net_profit_amount": settlement.net_profit_amount,
            "net_profit_rate": _rate(settlement.net_profit_rate),
            "updated_at": settlement.updated_at.isoformat() if settlement.updated_at else None,
        }
        for settlement, mall_name in rows
    ]
