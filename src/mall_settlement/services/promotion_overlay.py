"""
Promotion Overlay.

Applies a mall's currently valid promotions to order lines on read. Stored
order rows and settlements are never touched; only the returned copies
carry promoted prices.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.config.settings import settings
from mall_settlement.core.fields import parse_number, round_half_up, to_plain_number
from mall_settlement.core.logger import setup_logger
from mall_settlement.db.repository import PromotionRepository
from mall_settlement.models.settlement import SettlementOrderView

logger = setup_logger(__name__)


def business_today(timezone_name: Optional[str] = None) -> date:
    """Calendar date in the business timezone."""
    return datetime.now(ZoneInfo(timezone_name or settings.business_timezone)).date()


def promoted_price(
    price: Decimal, event_price: Optional[int], discount_rate: Optional[Decimal]
) -> Decimal:
    """Event price wins over a discount; a discount is rounded half-up to whole units."""
    if event_price is not None:
        return Decimal(event_price)
    if discount_rate is not None:
        return round_half_up(price * (Decimal(100) - Decimal(discount_rate)) / Decimal(100))
    return price


class PromotionOverlay:
    """Overlays valid promotions and drops expired ones as a side effect."""

    def __init__(self, session: AsyncSession, today: Optional[date] = None):
        self.session = session
        self.today = today

    async def apply(
        self, mall_id: Optional[int], views: List[SettlementOrderView]
    ) -> List[SettlementOrderView]:
        """
        Return copies of the views with promotion prices applied.

        Promotions are matched by (mall_id, mapping code). Views without a
        mapping code, or without a valid promotion, come back unchanged.

        Args:
            mall_id: Mall the orders belong to
            views: Order lines with their resolved supply price

        Returns:
            New list of views; the input list is not modified
        """
        codes = {view.mapping_code for view in views if view.mapping_code}
        if mall_id is None or not codes:
            return list(views)

        today = self.today or business_today()
        promotions = await PromotionRepository(self.session).find_for_codes(mall_id, codes)

        valid: Dict[str, Tuple[Optional[int], Optional[Decimal]]] = {}
        expired_ids = []
        for promotion in promotions:
            if promotion.is_expired(today):
                expired_ids.append(promotion.id)
            elif promotion.is_valid_on(today):
                valid[promotion.product_code] = (promotion.event_price, promotion.discount_rate)

        if expired_ids:
            await self._purge_expired(expired_ids)

        return [self._overlay(view, valid.get(view.mapping_code)) for view in views]

    @staticmethod
    def _overlay(
        view: SettlementOrderView, promotion: Optional[Tuple[Optional[int], Optional[Decimal]]]
    ) -> SettlementOrderView:
        if promotion is None:
            return view.model_copy()

        event_price, discount_rate = promotion
        price = parse_number(view.resolved_supply_price) or Decimal(0)
        return view.model_copy(
            update={
                "supply_price": to_plain_number(promoted_price(price, event_price, discount_rate)),
                "event_price": event_price,
                "discount_rate": float(discount_rate) if discount_rate is not None else None,
            }
        )

    async def _purge_expired(self, promotion_ids: List[int]) -> None:
        """Best effort: a failed cleanup is logged and retried on a later read."""
        try:
            deleted = await PromotionRepository(self.session).delete_ids(promotion_ids)
            await self.session.commit()
            logger.info(f"Deleted {deleted} expired promotion(s): {promotion_ids}")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Failed to delete expired promotions {promotion_ids}: {e}")
