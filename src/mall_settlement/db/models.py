"""SQLAlchemy models for orders, catalog, settlements and promotions."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from mall_settlement.config.constants import PRODUCT_SNAPSHOT_FIELDS
from .base import Base, JSONPayload, utcnow


class Mall(Base):
    """A sales channel (shopping mall) orders are uploaded for."""

    __tablename__ = "mall"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class OrderRow(Base):
    """
    One uploaded order line.

    Columns recognised at upload time are stored explicitly; everything else
    stays in row_data exactly as it appeared in the spreadsheet.
    """

    __tablename__ = "upload_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    mall_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("mall.id", ondelete="SET NULL"), index=True, nullable=True
    )
    shop_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    supply_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    row_data: Mapped[Dict[str, Any]] = mapped_column(JSONPayload, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, index=True
    )


class Product(Base):
    """Catalog product, matched to order rows by id or mapping code."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(50), index=True, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sale_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sabang_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    bill_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    post_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    product_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def snapshot(self) -> Dict[str, Any]:
        """Catalog fields frozen into a settlement link."""
        return {field: getattr(self, field) for field in PRODUCT_SNAPSHOT_FIELDS}


class Settlement(Base):
    """Per-mall sales settlement for one inclusive period."""

    __tablename__ = "mall_sales_settlements"
    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "mall_id",
            "period_start_date",
            "period_end_date",
            name="uq_mall_sales_settlements_identity",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    mall_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mall.id", ondelete="CASCADE"), index=True, nullable=False
    )
    period_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Orders
    order_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    order_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Cancellations
    cancel_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cancel_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Net sales
    net_sales_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    net_sales_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Profit
    total_profit_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_profit_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    # Sales fee (structure only, never filled yet)
    sales_fee_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    sales_fee_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Net profit
    net_profit_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    net_profit_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class SettlementOrderLink(Base):
    """
    Order row that backs a settlement.

    order_data, row_supply_price and product_data are copies taken when the
    settlement was reconciled, so the settled view survives later edits to
    the row or the catalog.
    """

    __tablename__ = "mall_sales_settlement_orders"
    __table_args__ = (
        UniqueConstraint("settlement_id", "order_id", name="uq_settlement_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    settlement_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("mall_sales_settlements.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("upload_rows.id", ondelete="CASCADE"), index=True, nullable=False
    )
    order_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONPayload, nullable=True)
    row_supply_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    product_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONPayload, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Promotion(Base):
    """Event price or discount for one product in one mall, valid for a date window."""

    __tablename__ = "mall_promotions"
    __table_args__ = (
        UniqueConstraint("mall_id", "product_code", name="uq_mall_promotion_product"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mall_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mall.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_code: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    discount_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    event_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def is_expired(self, today: date) -> bool:
        return self.end_date < today

    def is_valid_on(self, today: date) -> bool:
        return self.start_date <= today <= self.end_date
