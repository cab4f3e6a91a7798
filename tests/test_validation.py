"""Input validation."""

from datetime import date

import pytest

from mall_settlement.core.errors import ValidationError
from mall_settlement.core.validation import (
    optional_id,
    parse_date,
    parse_period,
    parse_positive_id,
    require_company_id,
)


def test_parse_date_truncates_iso_datetime():
    assert parse_date("2024-01-31T15:00:00.000Z", "start_date") == date(2024, 1, 31)
    assert parse_date("2024-01-31 09:00", "start_date") == date(2024, 1, 31)


def test_parse_date_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_date("31/01/2024", "start_date")


def test_parse_period_requires_both_dates():
    with pytest.raises(ValidationError):
        parse_period("2024-01-01", None)
    with pytest.raises(ValidationError):
        parse_period("", "2024-01-01")


def test_parse_period_rejects_start_after_end():
    with pytest.raises(ValidationError):
        parse_period("2024-02-01", "2024-01-01")


def test_parse_period_single_day():
    assert parse_period("2024-01-01", "2024-01-01") == (date(2024, 1, 1), date(2024, 1, 1))


@pytest.mark.parametrize("value", ["abc", "1.5", 0, -3, True, "", None])
def test_parse_positive_id_rejects(value):
    with pytest.raises(ValidationError):
        parse_positive_id(value, "settlement_id")


def test_parse_positive_id_accepts_strings():
    assert parse_positive_id(" 42 ", "settlement_id") == 42


def test_require_company_id():
    assert require_company_id("7") == 7
    with pytest.raises(ValidationError):
        require_company_id(None)


def test_optional_id():
    assert optional_id(None, "mall_id") is None
    assert optional_id("", "mall_id") is None
    assert optional_id("3", "mall_id") == 3
