from datetime import date, timedelta
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, Money, round_money, to_decimal


def test_round_money_half_up():
    assert round_money(Decimal("2.675")) == Decimal("2.68")
    assert round_money(Decimal("2.665")) == Decimal("2.67")
    assert round_money("10") == Decimal("10.00")


def test_floats_are_rejected():
    with pytest.raises(TypeError):
        to_decimal(0.1)
    with pytest.raises(TypeError):
        Money(1.5)


def test_money_arithmetic():
    total = Money(Decimal("10.10")) + Money(Decimal("0.25"))

    assert total == Money(Decimal("10.35"))
    assert Money(Decimal("3.333")) * 3 == Money(Decimal("9.99"))
    assert str(Money(Decimal("1234.5"))) == "1,234.50 USD"


def test_money_rejects_mixed_currencies_and_negatives():
    with pytest.raises(ValueError):
        Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")
    with pytest.raises(ValueError):
        Money(Decimal("-0.01"))
    with pytest.raises(ValueError):
        Money(Decimal("1"), "XYZ")


def test_date_range_is_inclusive():
    day = date(2030, 6, 1)

    assert len(DateRange(day, day)) == 1
    assert len(DateRange(day, day + timedelta(days=9))) == 10
    assert list(DateRange(day, day + timedelta(days=2)).days()) == [
        day,
        day + timedelta(days=1),
        day + timedelta(days=2),
    ]


def test_touching_ranges_overlap():
    first = DateRange(date(2030, 6, 1), date(2030, 6, 5))

    assert first.overlaps_with(DateRange(date(2030, 6, 5), date(2030, 6, 8)))
    assert not first.overlaps_with(DateRange(date(2030, 6, 6), date(2030, 6, 8)))


def test_widen():
    widened = DateRange(date(2030, 6, 10), date(2030, 6, 12)).widen(2)

    assert widened == DateRange(date(2030, 6, 8), date(2030, 6, 14))
    with pytest.raises(ValueError):
        widened.widen(-1)


def test_reversed_range_rejected():
    with pytest.raises(ValueError):
        DateRange(date(2030, 6, 2), date(2030, 6, 1))
