"""Row field resolution."""

from decimal import Decimal

import pytest

from mall_settlement.core.fields import (
    parse_number,
    resolve_line,
    resolve_number,
    round_half_up,
    to_plain_number,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("1,000", Decimal("1000")),
        (" 2,500원 ", Decimal("2500")),
        ("₩300", Decimal("300")),
        (12, Decimal("12")),
        (1.5, Decimal("1.5")),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        ("NaN", None),
    ],
)
def test_parse_number(value, expected):
    assert parse_number(value) == expected


def test_resolve_number_skips_blank_and_numeric_zero():
    assert resolve_number([None, "", 0, Decimal("0.00"), "700"], 1) == Decimal("700")


def test_resolve_number_takes_zero_text():
    assert resolve_number(["0", "700"], 1) == Decimal(0)


def test_resolve_number_unparsable_falls_back_to_default():
    assert resolve_number(["two", "5"], 1) == Decimal(1)


def test_resolve_number_default_when_nothing_given():
    assert resolve_number([None, None], 0) == Decimal(0)


def test_round_half_up():
    assert round_half_up(Decimal("2.5")) == Decimal("3")
    assert round_half_up(Decimal("-2.5")) == Decimal("-3")
    assert round_half_up(Decimal("33.335"), 2) == Decimal("33.34")


def test_to_plain_number():
    assert to_plain_number(Decimal("1000.00")) == 1000
    assert isinstance(to_plain_number(Decimal("1000.00")), int)
    assert to_plain_number(Decimal("2.5")) == 2.5
    assert to_plain_number(None) is None


class TestResolveLine:
    def test_explicit_supply_price_wins(self):
        line = resolve_line(
            1, {"공급단가": "900"}, row_supply_price=Decimal("1000"), product={"sale_price": 800}
        )
        assert line.supply_price == Decimal("1000")

    def test_catalog_sale_price_before_row_aliases(self):
        line = resolve_line(1, {"공급단가": "900"}, product={"sale_price": 800})
        assert line.supply_price == Decimal("800")

    def test_row_aliases_in_order(self):
        line = resolve_line(1, {"공급가": "1,200", "supplyPrice": "5"})
        assert line.supply_price == Decimal("1200")

    def test_defaults(self):
        line = resolve_line(1, {})
        assert line.supply_price == Decimal(0)
        assert line.quantity == Decimal(1)
        assert line.cost_price == Decimal(0)
        assert line.status == ""
        assert not line.is_cancelled

    def test_unparsable_quantity_defaults_to_one(self):
        line = resolve_line(1, {"수량": "many", "공급단가": "100"})
        assert line.quantity == Decimal(1)
        assert line.amount == Decimal(100)

    def test_zero_quantity_text_is_counted_as_zero(self):
        line = resolve_line(1, {"수량": "0", "공급단가": "100"})
        assert line.quantity == Decimal(0)
        assert line.amount == Decimal(0)

    def test_zero_explicit_supply_price_falls_through_to_catalog(self):
        line = resolve_line(1, {"공급단가": "900"}, row_supply_price=Decimal("0"), product={"sale_price": 800})
        assert line.supply_price == Decimal("800")

    def test_zero_supply_price_text_is_kept(self):
        line = resolve_line(1, {"공급단가": "0", "공급가": "1200"})
        assert line.supply_price == Decimal(0)

    def test_cost_price_prefers_catalog(self):
        line = resolve_line(1, {"원가": "300"}, product={"price": 400})
        assert line.cost_price == Decimal(400)

    def test_cancelled_status(self):
        line = resolve_line(1, {"주문상태": "취소"})
        assert line.is_cancelled

    def test_other_status_is_active(self):
        line = resolve_line(1, {"주문상태": "배송완료"})
        assert not line.is_cancelled

    def test_profit(self):
        line = resolve_line(1, {"공급단가": "1000", "원가": "600", "수량": "3"})
        assert line.amount == Decimal(3000)
        assert line.profit == Decimal(1200)

    def test_mapping_code_falls_back_to_product(self):
        line = resolve_line(1, {}, product={"code": "P-1"})
        assert line.mapping_code == "P-1"
        line = resolve_line(1, {"매핑코드": "M-1"}, product={"code": "P-1"})
        assert line.mapping_code == "M-1"
