"""Repositories for order rows, catalog, settlements, links and promotions.

Repositories never commit. The caller owns the transaction boundary, so a
whole reconcile batch either lands or rolls back as one unit.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, insert, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from mall_settlement.config.constants import MAPPING_CODE_ALIASES, PRODUCT_ID_ALIASES
from mall_settlement.core.fields import aliased, resolve_text
from .models import Mall, OrderRow, Product, Promotion, Settlement, SettlementOrderLink


def period_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end + 1 day) datetime range for an inclusive date period."""
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def insert_ignoring_duplicates(session: AsyncSession, table, conflict_columns: Sequence[str]):
    """INSERT statement that skips rows violating the given unique key."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing(index_elements=list(conflict_columns))
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing(index_elements=list(conflict_columns))
    if dialect in ("mysql", "mariadb"):
        return insert(table).prefix_with("IGNORE")
    raise ValueError(f"Insert-ignore not supported for dialect {dialect}")


class MallRepository:
    """Data access for malls."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_ordered(self, mall_id: Optional[int] = None) -> List[Mall]:
        """Malls in processing order (by name), optionally just one."""
        query = select(Mall)
        if mall_id is not None:
            query = query.where(Mall.id == mall_id)
        query = query.order_by(Mall.name, Mall.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get(self, mall_id: int) -> Optional[Mall]:
        return await self.session.get(Mall, mall_id)


class OrderRowRepository:
    """Read access to uploaded order rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_period(
        self, company_id: int, mall_id: int, start: date, end: date
    ) -> List[OrderRow]:
        """Rows of one mall created within the inclusive period, ordered by id."""
        lower, upper = period_bounds(start, end)
        query = (
            select(OrderRow)
            .where(
                OrderRow.company_id == company_id,
                OrderRow.mall_id == mall_id,
                OrderRow.created_at >= lower,
                OrderRow.created_at < upper,
            )
            .order_by(OrderRow.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_ids(self, company_id: int, order_ids: Iterable[int]) -> Dict[int, OrderRow]:
        ids = list(order_ids)
        if not ids:
            return {}
        query = select(OrderRow).where(OrderRow.company_id == company_id, OrderRow.id.in_(ids))
        result = await self.session.execute(query)
        return {row.id: row for row in result.scalars().all()}


class ProductCatalog:
    """Price lookups against the company's product catalog."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _match_keys(row: OrderRow) -> Tuple[Optional[int], Optional[str]]:
        """(product id, mapping code) to match a row by; a product id wins when present."""
        product_id = resolve_text(aliased(row.row_data, PRODUCT_ID_ALIASES))
        if product_id:
            return (int(product_id) if product_id.isdigit() else None), None
        return None, resolve_text(aliased(row.row_data, MAPPING_CODE_ALIASES))

    async def match_rows(self, company_id: int, rows: Sequence[OrderRow]) -> Dict[int, Optional[Product]]:
        """Matched product per order id (None when nothing matches).

        Several products may share a code; the lowest id wins so a row never
        contributes twice.
        """
        keys = {row.id: self._match_keys(row) for row in rows}
        product_ids = {pid for pid, _ in keys.values() if pid is not None}
        codes = {code for _, code in keys.values() if code}

        by_id: Dict[int, Product] = {}
        by_code: Dict[str, Product] = {}
        if product_ids or codes:
            conditions = []
            if product_ids:
                conditions.append(Product.id.in_(product_ids))
            if codes:
                conditions.append(Product.code.in_(codes))
            query = (
                select(Product)
                .where(Product.company_id == company_id, or_(*conditions))
                .order_by(Product.id)
            )
            result = await self.session.execute(query)
            for product in result.scalars().all():
                by_id[product.id] = product
                if product.code:
                    by_code.setdefault(product.code, product)

        matches: Dict[int, Optional[Product]] = {}
        for order_id, (product_id, code) in keys.items():
            if product_id is not None:
                matches[order_id] = by_id.get(product_id)
            elif code:
                matches[order_id] = by_code.get(code)
            else:
                matches[order_id] = None
        return matches

    async def list_representatives(self, company_id: int) -> List[Product]:
        """One product per non-empty code, preferring one with a display name."""
        has_display_name = and_(Product.sabang_name.is_not(None), Product.sabang_name != "")
        query = (
            select(Product)
            .where(
                Product.company_id == company_id,
                Product.code.is_not(None),
                Product.code != "",
            )
            .order_by(Product.code, has_display_name.desc(), Product.id)
        )
        result = await self.session.execute(query)

        representatives: Dict[str, Product] = {}
        for product in result.scalars().all():
            representatives.setdefault(product.code, product)
        return list(representatives.values())


class SettlementRepository:
    """Data access for persisted settlements."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_identity(
        self, company_id: int, mall_id: int, start: date, end: date
    ) -> Optional[Settlement]:
        query = select(Settlement).where(
            Settlement.company_id == company_id,
            Settlement.mall_id == mall_id,
            Settlement.period_start_date == start,
            Settlement.period_end_date == end,
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_for_company(self, settlement_id: int, company_id: int) -> Optional[Settlement]:
        query = select(Settlement).where(
            Settlement.id == settlement_id, Settlement.company_id == company_id
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def add(self, settlement: Settlement) -> Settlement:
        """Insert and flush so the new id is available."""
        self.session.add(settlement)
        await self.session.flush()
        return settlement

    async def delete(self, settlement_id: int) -> None:
        """Delete a settlement together with its links."""
        await self.session.execute(
            delete(SettlementOrderLink).where(SettlementOrderLink.settlement_id == settlement_id)
        )
        await self.session.execute(delete(Settlement).where(Settlement.id == settlement_id))

    async def list_for_period(
        self, company_id: int, start: date, end: date, mall_id: Optional[int] = None
    ) -> List[Tuple[Settlement, str]]:
        """Non-empty settlements of an exact period with their mall names."""
        query = (
            select(Settlement, Mall.name)
            .join(Mall, Settlement.mall_id == Mall.id)
            .where(
                Settlement.company_id == company_id,
                Settlement.period_start_date == start,
                Settlement.period_end_date == end,
                or_(Settlement.order_quantity > 0, Settlement.cancel_quantity > 0),
            )
        )
        if mall_id is not None:
            query = query.where(Settlement.mall_id == mall_id)
        query = query.order_by(Mall.name, Settlement.id)
        result = await self.session.execute(query)
        return [(settlement, mall_name) for settlement, mall_name in result.all()]


class SettlementLinkRepository:
    """Order linkage ledger: which order rows back which settlement."""

    def __init__(self, session: AsyncSession, batch_size: int = 500):
        self.session = session
        self.batch_size = max(1, batch_size)

    async def delete_links(self, settlement_id: int) -> int:
        stmt = delete(SettlementOrderLink).where(SettlementOrderLink.settlement_id == settlement_id)
        result = await self.session.execute(stmt)
        return result.rowcount

    async def replace_links(self, settlement_id: int, entries: Sequence[Dict[str, Any]]) -> int:
        """
        Replace every link of a settlement.

        Deletes the existing links, then bulk inserts one link per entry.
        A repeated (settlement_id, order_id) pair is skipped, not raised.

        Args:
            settlement_id: Parent settlement
            entries: Dicts with order_id, order_data, row_supply_price, product_data

        Returns:
            Number of link entries submitted
        """
        await self.delete_links(settlement_id)
        if not entries:
            return 0

        table = SettlementOrderLink.__table__
        stmt = insert_ignoring_duplicates(self.session, table, ("settlement_id", "order_id"))
        rows = [
            {
                "settlement_id": settlement_id,
                "order_id": entry["order_id"],
                "order_data": entry.get("order_data"),
                "row_supply_price": entry.get("row_supply_price"),
                "product_data": entry.get("product_data"),
            }
            for entry in entries
        ]
        for i in range(0, len(rows), self.batch_size):
            await self.session.execute(stmt, rows[i:i + self.batch_size])
        return len(rows)

    async def read_links(self, settlement_id: int) -> List[SettlementOrderLink]:
        query = (
            select(SettlementOrderLink)
            .where(SettlementOrderLink.settlement_id == settlement_id)
            .order_by(SettlementOrderLink.order_id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def read_linked_order_ids(self, settlement_id: int) -> List[int]:
        query = (
            select(SettlementOrderLink.order_id)
            .where(SettlementOrderLink.settlement_id == settlement_id)
            .order_by(SettlementOrderLink.order_id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())


class PromotionRepository:
    """Data access for mall promotions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_for_codes(self, mall_id: int, product_codes: Iterable[str]) -> List[Promotion]:
        codes = sorted(set(product_codes))
        if not codes:
            return []
        query = select(Promotion).where(
            Promotion.mall_id == mall_id, Promotion.product_code.in_(codes)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_ids(self, promotion_ids: Iterable[int]) -> int:
        ids = list(promotion_ids)
        if not ids:
            return 0
        result = await self.session.execute(delete(Promotion).where(Promotion.id.in_(ids)))
        return result.rowcount

    async def get(self, promotion_id: int) -> Optional[Promotion]:
        return await self.session.get(Promotion, promotion_id)

    async def get_by_key(self, mall_id: int, product_code: str) -> Optional[Promotion]:
        query = select(Promotion).where(
            Promotion.mall_id == mall_id, Promotion.product_code == product_code
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def add(self, promotion: Promotion) -> Promotion:
        self.session.add(promotion)
        await self.session.flush()
        return promotion

    async def list_with_mall(self, mall_id: Optional[int] = None) -> List[Tuple[Promotion, str]]:
        query = select(Promotion, Mall.name).join(Mall, Promotion.mall_id == Mall.id)
        if mall_id is not None:
            query = query.where(Promotion.mall_id == mall_id)
        query = query.order_by(Mall.name, Promotion.product_code)
        result = await self.session.execute(query)
        return [(promotion, mall_name) for promotion, mall_name in result.all()]
