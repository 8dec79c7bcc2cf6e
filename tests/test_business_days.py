from datetime import date, datetime

import pytest

from ledger.business_days import add_business_days, is_weekend


def test_friday_plus_one_is_monday():
    assert add_business_days(date(2024, 1, 5), 1) == date(2024, 1, 8)


def test_zero_days_is_identity():
    start = datetime(2024, 1, 6, 14, 30)
    assert add_business_days(start, 0) == start


def test_time_of_day_is_preserved():
    assert add_business_days(datetime(2024, 1, 3, 9, 15), 2) == datetime(2024, 1, 5, 9, 15)


def test_thirty_business_days_skip_weekends():
    # Monday 2024-01-01 + 30 business days = six full weeks
    assert add_business_days(date(2024, 1, 1), 30) == date(2024, 2, 12)


def test_saturday_start_lands_on_monday():
    assert add_business_days(date(2024, 1, 6), 1) == date(2024, 1, 8)


def test_negative_days_rejected():
    with pytest.raises(ValueError):
        add_business_days(date(2024, 1, 1), -1)


@pytest.mark.parametrize("day,expected", [
    (date(2024, 1, 5), False),
    (date(2024, 1, 6), True),
    (date(2024, 1, 7), True),
    (date(2024, 1, 8), False),
])
def test_is_weekend(day, expected):
    assert is_weekend(day) is expected
