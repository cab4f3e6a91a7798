"""
Settlement Aggregator.

Computes per-mall order, cancellation and profit totals for an inclusive
date period from uploaded order rows and the product catalog.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.core.fields import ResolvedLine, resolve_line
from mall_settlement.core.logger import setup_logger
from mall_settlement.db.models import OrderRow, Product
from mall_settlement.db.repository import OrderRowRepository, ProductCatalog

logger = setup_logger(__name__)


@dataclass
class SourceOrder:
    """An order row with its matched catalog product and resolved figures."""

    row: OrderRow
    product: Optional[Product]
    line: ResolvedLine

    @property
    def order_id(self) -> int:
        return self.row.id

    def product_snapshot(self) -> Optional[Dict[str, Any]]:
        return self.product.snapshot() if self.product else None

    def link_entry(self) -> Dict[str, Any]:
        """Link row payload freezing the data this order was settled with."""
        return {
            "order_id": self.row.id,
            "order_data": dict(self.row.row_data or {}),
            "row_supply_price": self.row.supply_price,
            "product_data": self.product_snapshot(),
        }


@dataclass
class MallAggregate:
    """Raw totals for one mall and period, before derived figures."""

    company_id: int
    mall_id: int
    period_start: date
    period_end: date
    order_quantity: int = 0
    order_amount: Decimal = Decimal(0)
    cancel_quantity: int = 0
    cancel_amount: Decimal = Decimal(0)
    total_profit_amount: Decimal = Decimal(0)
    orders: List[SourceOrder] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.order_quantity == 0 and self.cancel_quantity == 0

    @property
    def order_ids(self) -> List[int]:
        return [order.order_id for order in self.orders]


def aggregate_orders(
    company_id: int,
    mall_id: int,
    period_start: date,
    period_end: date,
    orders: Iterable[SourceOrder],
) -> MallAggregate:
    """
    Sum order rows into mall totals.

    Every row counts exactly once: cancelled rows go to the cancel totals,
    all others to the order totals, and only active rows contribute profit.
    A repeated order id is ignored after its first occurrence.
    """
    aggregate = MallAggregate(
        company_id=company_id,
        mall_id=mall_id,
        period_start=period_start,
        period_end=period_end,
    )
    seen = set()

    for order in orders:
        if order.order_id in seen:
            continue
        seen.add(order.order_id)
        aggregate.orders.append(order)

        line = order.line
        if line.is_cancelled:
            aggregate.cancel_quantity += 1
            aggregate.cancel_amount += line.amount
        else:
            aggregate.order_quantity += 1
            aggregate.order_amount += line.amount
            aggregate.total_profit_amount += line.profit

    return aggregate


async def load_source_orders(
    session: AsyncSession,
    company_id: int,
    mall_id: int,
    period_start: date,
    period_end: date,
) -> List[SourceOrder]:
    """
    Order rows of a mall and period joined with the live catalog.

    Shared by the aggregator and the live snapshot reader so both see the
    same rows and the same prices.
    """
    rows = await OrderRowRepository(session).list_for_period(
        company_id, mall_id, period_start, period_end
    )
    products = await ProductCatalog(session).match_rows(company_id, rows)

    orders = []
    seen = set()
    for row in rows:
        if row.id in seen:
            continue
        seen.add(row.id)
        product = products.get(row.id)
        line = resolve_line(
            row.id,
            row.row_data,
            row.supply_price,
            product.snapshot() if product else None,
        )
        orders.append(SourceOrder(row=row, product=product, line=line))
    return orders


class SettlementAggregator:
    """Builds mall aggregates from the order store and product catalog."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def aggregate(
        self,
        company_id: int,
        mall_id: int,
        period_start: date,
        period_end: date,
    ) -> MallAggregate:
        orders = await load_source_orders(
            self.session, company_id, mall_id, period_start, period_end
        )
        aggregate = aggregate_orders(company_id, mall_id, period_start, period_end, orders)

        logger.debug(
            f"Aggregated mall {mall_id} ({period_start}~{period_end}): "
            f"{aggregate.order_quantity} orders, {aggregate.cancel_quantity} cancelled"
        )
        return aggregate
