"""Pydantic models for settlement and promotion payloads."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

Number = Union[int, float]


class RefreshRequest(BaseModel):
    """Body of a settlement refresh request."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    mall_id: Optional[int] = None


class SettlementOrderView(BaseModel):
    """One order line as shown under a settlement, in frozen or live mode."""

    order_id: int
    shop_name: Optional[str] = None
    mall_id: Optional[int] = None
    created_at: Optional[datetime] = None

    order_number: Optional[str] = None
    internal_code: Optional[str] = None
    product_name: Optional[str] = None
    display_name: Optional[str] = None
    mapping_code: Optional[str] = None
    bill_type: Optional[str] = None

    quantity: Number = 1
    supply_price: Number = 0  # after promotion overlay
    resolved_supply_price: Number = 0  # before promotion overlay
    cost_price: Number = 0
    event_price: Optional[int] = None
    discount_rate: Optional[float] = None

    order_status: Optional[str] = None
    order_date: Optional[str] = None
    is_cancelled: bool = False

    # Remaining uploaded columns, passed through untouched
    row_data: Dict[str, Any] = Field(default_factory=dict)


class PromotionCreate(BaseModel):
    """Data for creating or replacing a mall promotion."""

    mall_id: int
    product_code: str
    discount_rate: Optional[Decimal] = None
    event_price: Optional[int] = None
    start_date: date
    end_date: date
