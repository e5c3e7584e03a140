"""
Input coercion helpers.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from backoffice.errors import ValidationError
from backoffice.validation import json_object, to_datetime


def test_to_datetime_normalizes_aware_values():
    aware = datetime(2024, 4, 1, 0, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert to_datetime(aware, "due_date") == datetime(2024, 3, 31, 19, 0)


def test_to_datetime_keeps_naive_values():
    naive = datetime(2024, 4, 1, 12, 0)
    assert to_datetime(naive, "due_date") is naive


def test_to_datetime_string_and_date():
    assert to_datetime("2024-04-01T12:00:00+02:00", "due_date") == datetime(2024, 4, 1, 10, 0)
    assert to_datetime(date(2024, 4, 1), "due_date") == datetime(2024, 4, 1)


def test_json_object():
    assert json_object(None) == {}
    assert json_object({"a": 1}) == {"a": 1}
    for value in (["status"], "text", 5):
        with pytest.raises(ValidationError):
            json_object(value)
