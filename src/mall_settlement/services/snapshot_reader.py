"""
Settlement Snapshot Reader.

Lists the order lines behind a settlement in one of two modes:

- frozen: driven by a settlement id, rebuilt from the snapshots captured in
  the order links when the settlement was reconciled;
- live: driven by mall and period, recomputed from the current order store
  and product catalog exactly as the aggregator sees them.

Both modes return the same record shape and pass through the promotion
overlay.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.config.constants import (
    DISPLAY_NAME_ALIASES,
    INTERNAL_CODE_ALIASES,
    ORDER_DATE_ALIASES,
    ORDER_NUMBER_ALIASES,
    PRODUCT_NAME_ALIASES,
)
from mall_settlement.core.errors import NotFoundError, ValidationError
from mall_settlement.core.fields import (
    ResolvedLine,
    aliased,
    resolve_line,
    resolve_text,
    to_plain_number,
)
from mall_settlement.core.logger import setup_logger
from mall_settlement.core.validation import (
    optional_id,
    parse_period,
    parse_positive_id,
    require_company_id,
)
from mall_settlement.db.models import Settlement
from mall_settlement.db.repository import (
    OrderRowRepository,
    SettlementLinkRepository,
    SettlementRepository,
)
from mall_settlement.models.settlement import SettlementOrderView
from mall_settlement.services.aggregator import load_source_orders
from mall_settlement.services.promotion_overlay import PromotionOverlay

logger = setup_logger(__name__)


def build_order_view(
    line: ResolvedLine,
    row_data: Optional[Mapping[str, Any]],
    product: Optional[Mapping[str, Any]] = None,
    shop_name: Optional[str] = None,
    mall_id: Optional[int] = None,
    created_at: Optional[datetime] = None,
) -> SettlementOrderView:
    """Shape one resolved order line as a view record (before promotions)."""
    row_data = dict(row_data or {})
    product = product or {}

    return SettlementOrderView(
        order_id=line.order_id,
        shop_name=shop_name,
        mall_id=mall_id,
        created_at=created_at,
        order_number=resolve_text(aliased(row_data, ORDER_NUMBER_ALIASES)),
        internal_code=resolve_text(aliased(row_data, INTERNAL_CODE_ALIASES)),
        product_name=resolve_text(aliased(row_data, PRODUCT_NAME_ALIASES)),
        display_name=resolve_text(
            [product.get("sabang_name"), *aliased(row_data, DISPLAY_NAME_ALIASES)]
        ),
        mapping_code=line.mapping_code,
        bill_type=product.get("bill_type"),
        quantity=to_plain_number(line.quantity),
        supply_price=to_plain_number(line.supply_price),
        resolved_supply_price=to_plain_number(line.supply_price),
        cost_price=to_plain_number(line.cost_price),
        order_status=line.status or None,
        order_date=resolve_text(aliased(row_data, ORDER_DATE_ALIASES)),
        is_cancelled=line.is_cancelled,
        row_data=row_data,
    )


class SnapshotReader:
    """Reads settlement order lines in frozen or live mode."""

    def __init__(self, session: AsyncSession, today: Optional[date] = None):
        self.session = session
        self.overlay = PromotionOverlay(session, today=today)

    async def read_settlement_orders(
        self,
        company_id: Any,
        settlement_id: Any = None,
        mall_id: Any = None,
        period_start: Any = None,
        period_end: Any = None,
    ) -> List[SettlementOrderView]:
        """
        Order lines of a settlement, or of a mall and period.

        A settlement id selects frozen mode; otherwise mall_id and the period
        are required and live mode is used. A settlement that does not exist
        or belongs to another company yields an empty list.

        Raises:
            ValidationError: Missing company, malformed id or period
        """
        company_id = require_company_id(company_id)

        if settlement_id is not None and str(settlement_id).strip():
            settlement_id = parse_positive_id(settlement_id, "settlement_id")
            try:
                return await self.read_frozen(company_id, settlement_id)
            except NotFoundError as e:
                logger.info(e.message)
                return []

        mall_id = optional_id(mall_id, "mall_id")
        if mall_id is None:
            raise ValidationError("settlement_id or mall_id is required")
        start, end = parse_period(period_start, period_end)
        return await self.read_live(company_id, mall_id, start, end)

    async def get_settlement(self, company_id: int, settlement_id: int) -> Settlement:
        settlement = await SettlementRepository(self.session).get_for_company(
            settlement_id, company_id
        )
        if settlement is None:
            raise NotFoundError(
                f"Settlement {settlement_id} not found for company {company_id}"
            )
        return settlement

    async def read_frozen(self, company_id: int, settlement_id: int) -> List[SettlementOrderView]:
        """
        Rebuild order lines from link snapshots.

        Financial and product fields come only from the snapshot; the order
        store is consulted for shop name, mall and creation time. Links
        written before snapshots existed fall back to the current row payload,
        never to the live catalog.
        """
        settlement = await self.get_settlement(company_id, settlement_id)
        mall_id = settlement.mall_id

        links = await SettlementLinkRepository(self.session).read_links(settlement.id)
        rows = await OrderRowRepository(self.session).get_by_ids(
            company_id, [link.order_id for link in links]
        )

        views = []
        for link in links:
            row = rows.get(link.order_id)
            order_data = link.order_data
            row_supply_price = link.row_supply_price
            if order_data is None and row is not None:
                order_data = row.row_data
                row_supply_price = row.supply_price

            line = resolve_line(link.order_id, order_data, row_supply_price, link.product_data)
            views.append(
                build_order_view(
                    line,
                    order_data,
                    link.product_data,
                    shop_name=row.shop_name if row else None,
                    mall_id=row.mall_id if row else mall_id,
                    created_at=row.created_at if row else None,
                )
            )

        logger.info(
            f"Read {len(views)} frozen orders of settlement {settlement.id}",
            extra={"company_id": company_id, "settlement_id": settlement.id},
        )
        return await self.overlay.apply(mall_id, views)

    async def read_live(
        self, company_id: int, mall_id: int, period_start: date, period_end: date
    ) -> List[SettlementOrderView]:
        """Recompute order lines from the current order store and catalog."""
        orders = await load_source_orders(
            self.session, company_id, mall_id, period_start, period_end
        )
        views = [
            build_order_view(
                order.line,
                order.row.row_data,
                order.product_snapshot(),
                shop_name=order.row.shop_name,
                mall_id=order.row.mall_id,
                created_at=order.row.created_at,
            )
            for order in orders
        ]

        logger.info(
            f"Read {len(views)} live orders of mall {mall_id} ({period_start}~{period_end})"
        )
        return await self.overlay.apply(mall_id, views)


def views_to_dicts(views: List[SettlementOrderView]) -> List[Dict[str, Any]]:
    return [view.model_dump(mode="json") for view in views]
