"""
Settlement Reconciler.

Recomputes settlements for every mall of a period and brings the stored
settlements and their order links in line with the result. The whole batch
runs in one transaction: a failure on any mall rolls back every mall.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.config.constants import RATE_DECIMAL_PLACES
from mall_settlement.config.settings import settings
from mall_settlement.core.errors import SettlementError, TransientStoreError, ValidationError
from mall_settlement.core.fields import round_half_up
from mall_settlement.core.logger import setup_logger
from mall_settlement.core.monitoring import capture_exception, set_settlement_context
from mall_settlement.core.validation import optional_id, parse_period, require_company_id
from mall_settlement.db.base import utcnow
from mall_settlement.db.models import Mall, Settlement
from mall_settlement.db.repository import (
    MallRepository,
    SettlementLinkRepository,
    SettlementRepository,
)
from mall_settlement.services.aggregator import MallAggregate, SettlementAggregator

logger = setup_logger(__name__)


def _whole(value: Decimal) -> int:
    return int(round_half_up(Decimal(value)))


def _rate(amount: int, net_sales_amount: int) -> Decimal:
    """Percentage of net sales; 0 when there are no positive net sales."""
    if net_sales_amount <= 0:
        return round_half_up(Decimal(0), RATE_DECIMAL_PLACES)
    return round_half_up(Decimal(amount) * 100 / Decimal(net_sales_amount), RATE_DECIMAL_PLACES)


def _stored_rate(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return round_half_up(Decimal(str(value)), RATE_DECIMAL_PLACES)


@dataclass(frozen=True)
class SettlementFigures:
    """Every persisted numeric field of a settlement."""

    order_quantity: int
    order_amount: int
    cancel_quantity: int
    cancel_amount: int
    net_sales_quantity: int
    net_sales_amount: int
    total_profit_amount: int
    total_profit_rate: Decimal
    sales_fee_amount: Optional[int]
    sales_fee_rate: Optional[Decimal]
    net_profit_amount: int
    net_profit_rate: Decimal

    @classmethod
    def from_aggregate(
        cls, aggregate: MallAggregate, sales_fee_amount: Optional[int] = None
    ) -> "SettlementFigures":
        order_amount = _whole(aggregate.order_amount)
        cancel_amount = _whole(aggregate.cancel_amount)
        total_profit_amount = _whole(aggregate.total_profit_amount)

        net_sales_quantity = aggregate.order_quantity - aggregate.cancel_quantity
        net_sales_amount = order_amount - cancel_amount
        net_profit_amount = total_profit_amount - (sales_fee_amount or 0)

        return cls(
            order_quantity=aggregate.order_quantity,
            order_amount=order_amount,
            cancel_quantity=aggregate.cancel_quantity,
            cancel_amount=cancel_amount,
            net_sales_quantity=net_sales_quantity,
            net_sales_amount=net_sales_amount,
            total_profit_amount=total_profit_amount,
            total_profit_rate=_rate(total_profit_amount, net_sales_amount),
            sales_fee_amount=sales_fee_amount,
            sales_fee_rate=(
                _rate(sales_fee_amount, net_sales_amount) if sales_fee_amount is not None else None
            ),
            net_profit_amount=net_profit_amount,
            net_profit_rate=_rate(net_profit_amount, net_sales_amount),
        )

    @classmethod
    def from_settlement(cls, settlement: Settlement) -> "SettlementFigures":
        return cls(
            order_quantity=int(settlement.order_quantity),
            order_amount=int(settlement.order_amount),
            cancel_quantity=int(settlement.cancel_quantity),
            cancel_amount=int(settlement.cancel_amount),
            net_sales_quantity=int(settlement.net_sales_quantity),
            net_sales_amount=int(settlement.net_sales_amount),
            total_profit_amount=int(settlement.total_profit_amount),
            total_profit_rate=_stored_rate(settlement.total_profit_rate),
            sales_fee_amount=(
                int(settlement.sales_fee_amount) if settlement.sales_fee_amount is not None else None
            ),
            sales_fee_rate=_stored_rate(settlement.sales_fee_rate),
            net_profit_amount=int(settlement.net_profit_amount),
            net_profit_rate=_stored_rate(settlement.net_profit_rate),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class ReconcileAction(str, Enum):
    """What reconciling one mall did to its settlement."""

    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    SKIPPED = "skipped"  # empty period, nothing stored


@dataclass(frozen=True)
class ReconcileDecision:
    action: ReconcileAction
    figures: Optional[SettlementFigures] = None

    @property
    def keeps_settlement(self) -> bool:
        return self.action in (
            ReconcileAction.INSERTED,
            ReconcileAction.UPDATED,
            ReconcileAction.UNCHANGED,
        )

    @property
    def reported(self) -> bool:
        """Only writes to the settlement itself show up in the summary."""
        return self.action in (ReconcileAction.INSERTED, ReconcileAction.UPDATED)


def decide(aggregate: MallAggregate, existing: Optional[SettlementFigures]) -> ReconcileDecision:
    """
    Decide how a mall's stored settlement follows a fresh aggregate.

    Comparison is exact: amounts and counts are whole numbers and rates are
    fixed to two decimals, so any difference is a real change.
    """
    if aggregate.is_empty:
        if existing is None:
            return ReconcileDecision(ReconcileAction.SKIPPED)
        return ReconcileDecision(ReconcileAction.DELETED)

    figures = SettlementFigures.from_aggregate(aggregate)
    if existing is None:
        return ReconcileDecision(ReconcileAction.INSERTED, figures)
    if existing == figures:
        return ReconcileDecision(ReconcileAction.UNCHANGED, figures)
    return ReconcileDecision(ReconcileAction.UPDATED, figures)


@dataclass
class ProcessedMall:
    """Summary line for a mall whose settlement was written."""

    mall_id: int
    mall_name: str
    settlement_id: int
    action: str
    order_quantity: int
    order_amount: int
    cancel_quantity: int
    cancel_amount: int
    net_sales_quantity: int
    net_sales_amount: int
    total_profit_amount: int
    total_profit_rate: float
    net_profit_amount: int
    net_profit_rate: float


@dataclass
class ReconcileSummary:
    """Result of a reconcile batch."""

    company_id: int
    period_start: date
    period_end: date
    processed_malls: List[ProcessedMall] = field(default_factory=list)
    total_orders_processed: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0

    @property
    def message(self) -> str:
        return (
            f"Saved settlements for {len(self.processed_malls)} mall(s) "
            f"({self.total_orders_processed} orders processed)"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["period_start"] = self.period_start.isoformat()
        data["period_end"] = self.period_end.isoformat()
        data["message"] = self.message
        return data


class SettlementReconciler:
    """Runs a reconcile batch; the only owner of the batch transaction."""

    def __init__(self, session: AsyncSession, link_batch_size: Optional[int] = None):
        self.session = session
        self.aggregator = SettlementAggregator(session)
        self.settlements = SettlementRepository(session)
        self.links = SettlementLinkRepository(
            session, link_batch_size or settings.link_insert_batch_size
        )

    async def reconcile(
        self,
        company_id: Any,
        period_start: Any,
        period_end: Any,
        mall_id: Any = None,
    ) -> ReconcileSummary:
        """
        Recompute and persist settlements for one period.

        Malls are processed one after another in name order. Any error
        rolls back the whole batch, leaving the store exactly as before.

        Args:
            company_id: Company owning the orders
            period_start: First day (inclusive)
            period_end: Last day (inclusive)
            mall_id: Restrict to one mall; all malls when None

        Returns:
            ReconcileSummary listing inserted and updated malls

        Raises:
            ValidationError: Bad input or no mall to process; nothing written
            TransientStoreError: Store failure; batch rolled back
        """
        company_id = require_company_id(company_id)
        start, end = parse_period(period_start, period_end)
        mall_id = optional_id(mall_id, "mall_id")

        set_settlement_context(company_id, start, end, mall_id)
        logger.info(
            f"Starting settlement refresh for company {company_id} ({start}~{end})",
            extra={"company_id": company_id, "mall_id": mall_id},
        )

        summary = ReconcileSummary(company_id=company_id, period_start=start, period_end=end)

        try:
            async with self.session.begin():
                malls = await MallRepository(self.session).list_ordered(mall_id)
                if not malls:
                    raise ValidationError("No mall found to settle")

                for mall in malls:
                    await self._reconcile_mall(summary, mall, start, end)

        except SettlementError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Settlement refresh rolled back: {e}", exc_info=True)
            capture_exception(
                e,
                context={
                    "company_id": company_id,
                    "period_start": str(start),
                    "period_end": str(end),
                },
            )
            raise TransientStoreError(f"Settlement refresh failed and was rolled back: {e}") from e

        logger.info(
            f"Settlement refresh completed: {summary.inserted} inserted, "
            f"{summary.updated} updated, {summary.unchanged} unchanged, "
            f"{summary.deleted} deleted, {summary.total_orders_processed} orders"
        )
        return summary

    async def _reconcile_mall(
        self, summary: ReconcileSummary, mall: Mall, start: date, end: date
    ) -> None:
        aggregate = await self.aggregator.aggregate(summary.company_id, mall.id, start, end)
        summary.total_orders_processed += len(aggregate.orders)

        existing = await self.settlements.get_by_identity(summary.company_id, mall.id, start, end)
        decision = decide(
            aggregate, SettlementFigures.from_settlement(existing) if existing else None
        )

        if decision.action == ReconcileAction.SKIPPED:
            return

        if decision.action == ReconcileAction.DELETED:
            settlement_id = existing.id
            await self.settlements.delete(settlement_id)
            summary.deleted += 1
            logger.info(f"[{mall.name}] No orders left, settlement {settlement_id} deleted")
            return

        figures = decision.figures
        if decision.action == ReconcileAction.INSERTED:
            settlement = await self.settlements.add(
                Settlement(
                    company_id=summary.company_id,
                    mall_id=mall.id,
                    period_start_date=start,
                    period_end_date=end,
                    **figures.as_dict(),
                )
            )
            summary.inserted += 1
            logger.info(f"[{mall.name}] Settlement {settlement.id} inserted")
        elif decision.action == ReconcileAction.UPDATED:
            settlement = existing
            for name, value in figures.as_dict().items():
                setattr(settlement, name, value)
            settlement.updated_at = utcnow()
            await self.session.flush()
            summary.updated += 1
            logger.info(f"[{mall.name}] Settlement {settlement.id} updated")
        else:
            settlement = existing
            summary.unchanged += 1
            logger.info(f"[{mall.name}] Settlement {settlement.id} unchanged")

        # Links are rewritten even for an unchanged settlement
        if aggregate.orders:
            saved = await self.links.replace_links(
                settlement.id, [order.link_entry() for order in aggregate.orders]
            )
            logger.info(f"[{mall.name}] Linked {saved} orders to settlement {settlement.id}")

        if decision.reported:
            summary.processed_malls.append(
                ProcessedMall(
                    mall_id=mall.id,
                    mall_name=mall.name,
                    settlement_id=settlement.id,
                    action=decision.action.value,
                    order_quantity=figures.order_quantity,
                    order_amount=figures.order_amount,
                    cancel_quantity=figures.cancel_quantity,
                    cancel_amount=figures.cancel_amount,
                    net_sales_quantity=figures.net_sales_quantity,
                    net_sales_amount=figures.net_sales_amount,
                    total_profit_amount=figures.total_profit_amount,
                    total_profit_rate=float(figures.total_profit_rate),
                    net_profit_amount=figures.net_profit_amount,
                    net_profit_rate=float(figures.net_profit_rate),
                )
            )
