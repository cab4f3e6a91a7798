"""Settlement statements."""

from datetime import date

from conftest import COMPANY_ID, OTHER_COMPANY_ID, make_mall, make_product, make_row

from mall_settlement.db.repository import SettlementRepository
from mall_settlement.services.reconciler import SettlementReconciler
from mall_settlement.services.statement import build_statement

DAY = date(2024, 1, 1)


async def test_statement_groups_by_mapping_code(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)
    await seed(
        make_product("APPLE", sale_price=1000, sabang_name="사과", bill_type="면세"),
        make_product("BREAD", sale_price=2500, sabang_name="Bread", bill_type="과세"),
        make_product("CAKE", sale_price=300, sabang_name="Cake"),
    )
    await seed(
        make_row(mall, {"매핑코드": "APPLE", "수량": "2"}),
        make_row(mall, {"매핑코드": "APPLE", "수량": "1"}),
        make_row(mall, {"매핑코드": "BREAD", "수량": "1"}),
        make_row(mall, {"매핑코드": "CAKE", "수량": "1"}),
        make_row(mall, {"매핑코드": "BREAD", "수량": "5", "주문상태": "취소"}),
    )
    async with session_factory() as session:
        await SettlementReconciler(session).reconcile(COMPANY_ID, DAY, DAY)
    async with session_factory() as session:
        settlement = await SettlementRepository(session).get_by_identity(COMPANY_ID, mall.id, DAY, DAY)

    async with session_factory() as session:
        statement = await build_statement(session, COMPANY_ID, settlement.id, today=DAY)

    assert statement.mall_name == "M"
    assert [line.display_name for line in statement.lines] == ["Bread", "Cake", "사과"]

    apple = statement.lines[2]
    assert apple.quantity == 3
    assert apple.unit_price == 1000
    assert apple.amount == 3000
    assert apple.bill_type == "면세"

    # Unknown bill type counts as taxable; the cancelled bread row is left out
    assert statement.lines[0].quantity == 1
    assert statement.lines[1].bill_type == "과세"
    assert statement.total_amount == 5800
    assert statement.taxable_amount == 2800
    assert statement.tax_free_amount == 3000


async def test_statement_of_other_company_is_none(session_factory, seed):
    mall = make_mall("M")
    await seed(mall)
    await seed(make_row(mall, {"공급단가": "1000"}))
    async with session_factory() as session:
        await SettlementReconciler(session).reconcile(COMPANY_ID, DAY, DAY)
    async with session_factory() as session:
        settlement = await SettlementRepository(session).get_by_identity(COMPANY_ID, mall.id, DAY, DAY)

    async with session_factory() as session:
        assert await build_statement(session, OTHER_COMPANY_ID, settlement.id) is None
