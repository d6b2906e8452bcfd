from datetime import date, datetime

import pytest

from backoffice.utils.order_status import is_order_valid_for_accounting
from backoffice.utils.parsing import (
    month_bounds,
    parse_date_and_time,
    parse_date_only_as_noon,
    parse_flexible_date,
    parse_int_quantity,
    parse_locale_number,
    parse_month,
    pick,
)


@pytest.mark.parametrize("raw, expected", [
    ("1.234,56", 1234.56),
    ("1,234.56", 1234.56),
    ("R$ 50,00", 50.0),
    ("R$ 1.050,90", 1050.9),
    ("12,5", 12.5),
    ("1,234,567", 1234567.0),
    ("-8.50", -8.5),
    ("", 0.0),
    ("abc", 0.0),
    (None, 0.0),
    (float("nan"), 0.0),
    (42, 42.0),
])
def test_parse_locale_number(raw, expected):
    assert parse_locale_number(raw) == pytest.approx(expected)


def test_parse_int_quantity_is_lenient():
    assert parse_int_quantity("3") == 3
    assert parse_int_quantity("2,0") == 2
    assert parse_int_quantity("x") == 0


def test_day_first_dates_are_never_swapped():
    assert parse_flexible_date("03/04/2026") == datetime(2026, 4, 3)
    assert parse_flexible_date("13/01/2026 14:05") == datetime(2026, 1, 13, 14, 5)
    assert parse_flexible_date("13/01/2026 14:05:09") == datetime(2026, 1, 13, 14, 5, 9)


def test_invalid_day_first_date_returns_none():
    assert parse_flexible_date("31/02/2026") is None


def test_excel_serials():
    assert parse_flexible_date(46035) == datetime(2026, 1, 13)
    assert parse_flexible_date("46035") == datetime(2026, 1, 13)
    assert parse_flexible_date(46035.5) == datetime(2026, 1, 13, 12, 0)


def test_iso_dates_are_converted_to_naive_utc():
    assert parse_flexible_date("2026-01-13T12:00:00Z") == datetime(2026, 1, 13, 12, 0)
    assert parse_flexible_date("2026-01-13T09:00:00-03:00") == datetime(2026, 1, 13, 12, 0)
    assert parse_flexible_date("2026-01-13 10:30") == datetime(2026, 1, 13, 10, 30)


def test_native_values_and_garbage():
    assert parse_flexible_date(date(2026, 1, 13)) == datetime(2026, 1, 13)
    assert parse_flexible_date(datetime(2026, 1, 13, 8, 0)) == datetime(2026, 1, 13, 8, 0)
    assert parse_flexible_date("not a date") is None
    assert parse_flexible_date("") is None
    assert parse_flexible_date(None) is None


def test_parse_date_and_time_combines_cells():
    assert parse_date_and_time("13/01/2026", "14:05") == datetime(2026, 1, 13, 14, 5)
    assert parse_date_and_time("13/01/2026", "") == datetime(2026, 1, 13)
    assert parse_date_and_time("13/01/2026", 0.5) == datetime(2026, 1, 13, 12, 0)
    assert parse_date_and_time("", "14:05") is None


def test_parse_date_only_as_noon():
    assert parse_date_only_as_noon("2026-01-13") == datetime(2026, 1, 13, 12, 0)
    assert parse_date_only_as_noon("2026-02-30") is None
    assert parse_date_only_as_noon("13/01/2026") is None
    assert parse_date_only_as_noon("") is None


def test_parse_month():
    assert parse_month("2026-01") == date(2026, 1, 1)
    with pytest.raises(ValueError):
        parse_month("2026-13")
    with pytest.raises(ValueError):
        parse_month("jan/2026")


def test_month_bounds_rolls_over_december():
    assert month_bounds(date(2025, 12, 1)) == (datetime(2025, 12, 1), datetime(2026, 1, 1))


def test_pick_returns_first_non_empty_variant():
    row = {"Pedido": "", "Número do pedido": "123", "ID": "999"}
    assert pick(row, ["Pedido", "Número do pedido", "ID"]) == "123"
    assert pick(row, ["Missing"]) is None


@pytest.mark.parametrize("status, valid", [
    ("Concluído", True),
    ("Pagamento aprovado", True),
    ("", True),
    (None, True),
    ("Cancelado", False),
    ("CANCELLED", False),
    ("Não pago", False),
    ("Aguardando pagamento", False),
    ("Unpaid", False),
])
def test_is_order_valid_for_accounting(status, valid):
    assert is_order_valid_for_accounting(status) is valid
