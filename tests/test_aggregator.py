"""Settlement aggregation."""

from datetime import date, datetime
from decimal import Decimal

from conftest import COMPANY_ID, OTHER_COMPANY_ID, make_mall, make_product, make_row

from mall_settlement.core.fields import resolve_line
from mall_settlement.db.models import OrderRow
from mall_settlement.services.aggregator import (
    SettlementAggregator,
    SourceOrder,
    aggregate_orders,
)

DAY = date(2024, 1, 1)


def _order(order_id, row_data, product=None):
    row = OrderRow(id=order_id, company_id=COMPANY_ID, mall_id=1, row_data=row_data)
    return SourceOrder(row=row, product=None, line=resolve_line(order_id, row_data, None, product))


def test_aggregate_counts_rows_and_sums_amounts():
    orders = [
        _order(1, {"공급단가": "1000", "수량": "2", "원가": "600"}),
        _order(2, {"공급단가": "500", "수량": "1", "주문상태": "취소"}),
    ]
    aggregate = aggregate_orders(COMPANY_ID, 1, DAY, DAY, orders)

    assert aggregate.order_quantity == 1
    assert aggregate.order_amount == Decimal(2000)
    assert aggregate.cancel_quantity == 1
    assert aggregate.cancel_amount == Decimal(500)
    assert aggregate.total_profit_amount == Decimal(800)


def test_aggregate_ignores_repeated_order_id():
    orders = [_order(1, {"공급단가": "1000"}), _order(1, {"공급단가": "1000"})]
    aggregate = aggregate_orders(COMPANY_ID, 1, DAY, DAY, orders)

    assert aggregate.order_quantity == 1
    assert aggregate.order_ids == [1]


def test_aggregate_cancelled_rows_contribute_no_profit():
    orders = [_order(1, {"공급단가": "1000", "원가": "100", "주문상태": "취소"})]
    aggregate = aggregate_orders(COMPANY_ID, 1, DAY, DAY, orders)

    assert aggregate.total_profit_amount == Decimal(0)
    assert not aggregate.is_empty


def test_aggregate_empty():
    aggregate = aggregate_orders(COMPANY_ID, 1, DAY, DAY, [])
    assert aggregate.is_empty


async def test_aggregator_filters_period_mall_and_company(session, seed):
    mall, other_mall = make_mall("A몰"), make_mall("B몰")
    await seed(mall, other_mall)
    await seed(
        make_row(mall, {"공급단가": "100"}, created_at=datetime(2024, 1, 1, 0, 0)),
        make_row(mall, {"공급단가": "200"}, created_at=datetime(2024, 1, 1, 23, 59, 59)),
        make_row(mall, {"공급단가": "400"}, created_at=datetime(2024, 1, 2, 0, 0)),
        make_row(mall, {"공급단가": "800"}, created_at=datetime(2023, 12, 31, 23, 59)),
        make_row(other_mall, {"공급단가": "1600"}),
        make_row(mall, {"공급단가": "3200"}, company_id=OTHER_COMPANY_ID),
    )

    aggregate = await SettlementAggregator(session).aggregate(COMPANY_ID, mall.id, DAY, DAY)

    assert aggregate.order_quantity == 2
    assert aggregate.order_amount == Decimal(300)


async def test_aggregator_prices_from_catalog(session, seed):
    mall = make_mall("A몰")
    await seed(mall)
    await seed(
        make_product("CODE-1", sale_price=1500, price=1000),
        make_product("CODE-1", sale_price=9999, price=1),
        make_row(mall, {"매핑코드": "CODE-1", "수량": "2"}),
    )

    aggregate = await SettlementAggregator(session).aggregate(COMPANY_ID, mall.id, DAY, DAY)

    # Lowest product id wins and the row counts once
    assert aggregate.order_quantity == 1
    assert aggregate.order_amount == Decimal(3000)
    assert aggregate.total_profit_amount == Decimal(1000)


async def test_aggregator_matches_product_id_before_code(session, seed):
    mall = make_mall("A몰")
    await seed(mall)
    by_code, by_id = make_product("CODE-1", sale_price=100), make_product("CODE-2", sale_price=700)
    await seed(by_code, by_id)
    await seed(make_row(mall, {"매핑코드": "CODE-1", "productId": str(by_id.id)}))

    aggregate = await SettlementAggregator(session).aggregate(COMPANY_ID, mall.id, DAY, DAY)

    assert aggregate.order_amount == Decimal(700)


async def test_aggregator_ignores_other_company_catalog(session, seed):
    mall = make_mall("A몰")
    await seed(mall)
    await seed(
        make_product("CODE-1", sale_price=5000, company_id=OTHER_COMPANY_ID),
        make_row(mall, {"매핑코드": "CODE-1", "공급단가": "1,000"}),
    )

    aggregate = await SettlementAggregator(session).aggregate(COMPANY_ID, mall.id, DAY, DAY)

    assert aggregate.order_amount == Decimal(1000)
