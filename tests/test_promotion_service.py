"""Promotion management and catalog choices."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import COMPANY_ID, make_mall, make_product

from mall_settlement.core.errors import NotFoundError, ValidationError
from mall_settlement.services.promotion_service import PromotionService, list_catalog_products


async def test_upsert_overwrites_same_mall_and_code(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)

    async with session_factory() as session:
        first = await PromotionService(session).upsert_promotion(
            mall.id, "CODE-1", discount_rate=10, start_date="2024-01-01", end_date="2024-01-31"
        )
    async with session_factory() as session:
        second = await PromotionService(session).upsert_promotion(
            mall.id, "CODE-1", event_price=900, start_date=date(2024, 2, 1), end_date=date(2024, 2, 28)
        )
    async with session_factory() as session:
        promotions = await PromotionService(session).list_promotions()

    assert second.id == first.id
    assert len(promotions) == 1
    assert promotions[0].event_price == 900
    assert promotions[0].discount_rate is None
    assert promotions[0].start_date == "2024-02-01"
    assert promotions[0].mall_name == "M"


async def test_list_orders_by_mall_name_then_code(session_factory, seed):
    b_mall, a_mall = make_mall("B몰"), make_mall("A몰")
    await seed(b_mall, a_mall)

    async with session_factory() as session:
        service = PromotionService(session)
        for mall, code in [(b_mall, "X"), (a_mall, "Z"), (a_mall, "Y")]:
            await service.upsert_promotion(
                mall.id, code, event_price=1, start_date="2024-01-01", end_date="2024-01-02"
            )

    async with session_factory() as session:
        promotions = await PromotionService(session).list_promotions()
        only_b = await PromotionService(session).list_promotions(b_mall.id)

    assert [(p.mall_name, p.product_code) for p in promotions] == [
        ("A몰", "Y"),
        ("A몰", "Z"),
        ("B몰", "X"),
    ]
    assert [p.product_code for p in only_b] == ["X"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"product_code": "C"},
        {"product_code": "", "event_price": 1},
        {"product_code": "C", "discount_rate": 101},
        {"product_code": "C", "discount_rate": -1},
        {"product_code": "C", "event_price": -5},
        {"product_code": "C", "event_price": 1, "start_date": "2024-02-01", "end_date": "2024-01-01"},
    ],
)
async def test_upsert_rejects_invalid_input(session_factory, seed, kwargs):
    mall = make_mall("M")
    await seed(mall)
    params = {"start_date": "2024-01-01", "end_date": "2024-01-31", **kwargs}

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await PromotionService(session).upsert_promotion(mall.id, **params)


async def test_upsert_rejects_unknown_mall(session_factory):
    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await PromotionService(session).upsert_promotion(
                99, "C", event_price=1, start_date="2024-01-01", end_date="2024-01-02"
            )


async def test_delete_promotion(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)
    async with session_factory() as session:
        record = await PromotionService(session).upsert_promotion(
            mall.id, "C", discount_rate=Decimal("5.5"), start_date="2024-01-01", end_date="2024-01-02"
        )

    async with session_factory() as session:
        await PromotionService(session).delete_promotion(record.id)
    async with session_factory() as session:
        assert await PromotionService(session).list_promotions() == []
        with pytest.raises(NotFoundError):
            await PromotionService(session).delete_promotion(record.id)


async def test_catalog_products_one_per_code(session_factory, seed):
    await seed(
        make_product("A", sale_price=1),
        make_product("A", sale_price=2, sabang_name="에이"),
        make_product("B", sale_price=3),
        make_product("", sale_price=4),
        make_product("C", sale_price=5, company_id=COMPANY_ID + 1),
    )

    async with session_factory() as session:
        products = await list_catalog_products(session, COMPANY_ID)

    assert [(p["code"], p["sale_price"]) for p in products] == [("A", 2), ("B", 3)]
