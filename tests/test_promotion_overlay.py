"""Promotion overlay."""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from conftest import make_mall

from mall_settlement.db.models import Promotion
from mall_settlement.models.settlement import SettlementOrderView
from mall_settlement.services.promotion_overlay import PromotionOverlay, promoted_price

TODAY = date(2024, 6, 15)


def view(order_id, code, price):
    return SettlementOrderView(
        order_id=order_id, mapping_code=code, supply_price=price, resolved_supply_price=price
    )


def promotion(mall, code, start, end, event_price=None, discount_rate=None):
    return Promotion(
        mall_id=mall.id,
        product_code=code,
        event_price=event_price,
        discount_rate=discount_rate,
        start_date=start,
        end_date=end,
    )


def test_event_price_beats_discount():
    assert promoted_price(Decimal(1000), 700, Decimal(50)) == Decimal(700)


def test_discount_rounds_half_up():
    assert promoted_price(Decimal(1005), None, Decimal(10)) == Decimal(905)


def test_no_promotion_values_keeps_price():
    assert promoted_price(Decimal(1000), None, None) == Decimal(1000)


async def test_overlay_applies_valid_promotions(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)
    await seed(
        promotion(mall, "EVENT", date(2024, 6, 1), TODAY, event_price=500, discount_rate=Decimal(10)),
        promotion(mall, "DISCOUNT", TODAY, date(2024, 6, 30), discount_rate=Decimal("12.5")),
    )
    views = [view(1, "EVENT", 1000), view(2, "DISCOUNT", 1000), view(3, "NONE", 1000), view(4, None, 10)]

    async with session_factory() as session:
        result = await PromotionOverlay(session, today=TODAY).apply(mall.id, views)

    assert [v.supply_price for v in result] == [500, 875, 1000, 10]
    assert result[0].event_price == 500
    assert result[1].discount_rate == 12.5
    assert result[1].resolved_supply_price == 1000
    assert result[2].event_price is None
    # Inputs are untouched
    assert [v.supply_price for v in views] == [1000, 1000, 1000, 10]


async def test_overlay_deletes_expired_and_keeps_future(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)
    await seed(
        promotion(mall, "OLD", date(2024, 5, 1), date(2024, 6, 14), event_price=1),
        promotion(mall, "LATER", date(2024, 6, 16), date(2024, 7, 1), event_price=2),
    )
    views = [view(1, "OLD", 1000), view(2, "LATER", 1000)]

    async with session_factory() as session:
        result = await PromotionOverlay(session, today=TODAY).apply(mall.id, views)

    assert [v.supply_price for v in result] == [1000, 1000]
    async with session_factory() as session:
        remaining = (await session.execute(select(Promotion.product_code))).scalars().all()
    assert remaining == ["LATER"]


async def test_overlay_only_matches_same_mall(session_factory, seed):
    mall, other = make_mall("M"), make_mall("N")
    await seed(mall, other)
    await seed(promotion(other, "CODE", date(2024, 6, 1), date(2024, 6, 30), event_price=1))

    async with session_factory() as session:
        result = await PromotionOverlay(session, today=TODAY).apply(mall.id, [view(1, "CODE", 1000)])

    assert result[0].supply_price == 1000


async def test_overlay_without_mall_returns_copies(session):
    views = [view(1, "CODE", 1000)]
    result = await PromotionOverlay(session, today=TODAY).apply(None, views)
    assert result == views
    assert result is not views
