from datetime import date

import pytest

from src.attendance_tracker.attendance_tracker.common.datetime_utils import (
    current_month,
    minutes_to_time,
    normalize_date,
    time_to_minutes,
    validate_month,
)
from src.attendance_tracker.attendance_tracker.core.exceptions import ValidationError


def test_normalize_date_accepts_date_and_string():
    assert normalize_date(date(2025, 3, 9)) == "2025-03-09"
    assert normalize_date("2025-03-09") == "2025-03-09"


def test_normalize_date_rejects_garbage():
    with pytest.raises(ValidationError):
        normalize_date("09/03/2025")


def test_time_round_trip():
    assert time_to_minutes("09:30") == 570
    assert minutes_to_time(570) == "09:30"


@pytest.mark.parametrize("value", ["2025-1", "2025-13", "March"])
def test_validate_month_rejects_bad_values(value):
    with pytest.raises(ValidationError):
        validate_month(value)


def test_validate_month_treats_blank_as_none():
    assert validate_month("") is None
    assert validate_month(None) is None
    assert validate_month("2025-06") == "2025-06"


def test_current_month():
    assert current_month(date(2025, 3, 12)) == "2025-03"
