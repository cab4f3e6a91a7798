"""Promotion management and catalog product choices for promotion entry."""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.core.errors import NotFoundError, ValidationError
from mall_settlement.core.logger import setup_logger
from mall_settlement.core.validation import (
    optional_id,
    parse_date,
    parse_positive_id,
    require_company_id,
)
from mall_settlement.db.base import utcnow
from mall_settlement.db.models import Promotion
from mall_settlement.db.repository import MallRepository, ProductCatalog, PromotionRepository
from mall_settlement.models.settlement import PromotionCreate

logger = setup_logger(__name__)


@dataclass
class PromotionRecord:
    id: int
    mall_id: int
    mall_name: Optional[str]
    product_code: str
    discount_rate: Optional[float]
    event_price: Optional[int]
    start_date: str
    end_date: str

    @classmethod
    def from_model(cls, promotion: Promotion, mall_name: Optional[str] = None) -> "PromotionRecord":
        return cls(
            id=promotion.id,
            mall_id=promotion.mall_id,
            mall_name=mall_name,
            product_code=promotion.product_code,
            discount_rate=(
                float(promotion.discount_rate) if promotion.discount_rate is not None else None
            ),
            event_price=promotion.event_price,
            start_date=promotion.start_date.isoformat(),
            end_date=promotion.end_date.isoformat(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_promotion(data: PromotionCreate) -> PromotionCreate:
    """Check promotion input; raises ValidationError."""
    parse_positive_id(data.mall_id, "mall_id")
    if not data.product_code or not data.product_code.strip():
        raise ValidationError("product_code is required")
    if data.discount_rate is None and data.event_price is None:
        raise ValidationError("Either discount_rate or event_price is required")
    if data.discount_rate is not None and not (0 <= data.discount_rate <= 100):
        raise ValidationError(f"discount_rate must be between 0 and 100: {data.discount_rate}")
    if data.event_price is not None and data.event_price < 0:
        raise ValidationError(f"event_price must not be negative: {data.event_price}")
    if data.start_date > data.end_date:
        raise ValidationError(f"start_date {data.start_date} is after end_date {data.end_date}")
    return data


class PromotionService:
    """Create, list and delete mall promotions. Commits its own writes."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.promotions = PromotionRepository(session)

    async def upsert_promotion(
        self,
        mall_id: Any,
        product_code: str,
        discount_rate: Optional[Any] = None,
        event_price: Optional[int] = None,
        start_date: Any = None,
        end_date: Any = None,
    ) -> PromotionRecord:
        """
        Insert a promotion, or overwrite the one already set for the mall and code.

        Raises:
            ValidationError: Invalid input or unknown mall
        """
        data = validate_promotion(
            PromotionCreate(
                mall_id=parse_positive_id(mall_id, "mall_id"),
                product_code=(product_code or "").strip(),
                discount_rate=Decimal(str(discount_rate)) if discount_rate is not None else None,
                event_price=event_price,
                start_date=parse_date(start_date, "start_date"),
                end_date=parse_date(end_date, "end_date"),
            )
        )

        mall = await MallRepository(self.session).get(data.mall_id)
        if mall is None:
            raise ValidationError(f"Unknown mall_id: {data.mall_id}")

        promotion = await self.promotions.get_by_key(data.mall_id, data.product_code)
        if promotion is None:
            promotion = await self.promotions.add(
                Promotion(
                    mall_id=data.mall_id,
                    product_code=data.product_code,
                    discount_rate=data.discount_rate,
                    event_price=data.event_price,
                    start_date=data.start_date,
                    end_date=data.end_date,
                )
            )
            logger.info(f"Created promotion {promotion.id} for {mall.name}/{data.product_code}")
        else:
            promotion.discount_rate = data.discount_rate
            promotion.event_price = data.event_price
            promotion.start_date = data.start_date
            promotion.end_date = data.end_date
            promotion.updated_at = utcnow()
            logger.info(f"Updated promotion {promotion.id} for {mall.name}/{data.product_code}")

        await self.session.commit()
        return PromotionRecord.from_model(promotion, mall.name)

    async def list_promotions(self, mall_id: Any = None) -> List[PromotionRecord]:
        """Promotions ordered by mall name, then product code."""
        mall_id = optional_id(mall_id, "mall_id")
        rows = await self.promotions.list_with_mall(mall_id)
        return [PromotionRecord.from_model(promotion, mall_name) for promotion, mall_name in rows]

    async def delete_promotion(self, promotion_id: Any) -> None:
        """
        Raises:
            NotFoundError: No promotion with this id
        """
        promotion_id = parse_positive_id(promotion_id, "promotion_id")
        promotion = await self.promotions.get(promotion_id)
        if promotion is None:
            raise NotFoundError(f"Promotion {promotion_id} not found")

        await self.promotions.delete_ids([promotion_id])
        await self.session.commit()
        logger.info(f"Deleted promotion {promotion_id}")


async def list_catalog_products(session: AsyncSession, company_id: Any) -> List[Dict[str, Any]]:
    """One product per code for promotion entry."""
    company_id = require_company_id(company_id)
    products = await ProductCatalog(session).list_representatives(company_id)
    return [
        {
            "id": product.id,
            "code": product.code,
            "name": product.name,
            "sabang_name": product.sabang_name,
            "sale_price": product.sale_price,
        }
        for product in products
    ]
