from datetime import date, datetime, timedelta, timezone
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.app.ledger.amounts import coerce_amount  # noqa: E402
from backend.app.ledger.dates import (  # noqa: E402
    date_from_raw,
    date_from_string,
    date_from_timestamp,
    to_ledger_date,
)


class _FirestoreLikeTimestamp:
    def __init__(self, dt: datetime):
        self._dt = dt

    def to_datetime(self) -> datetime:
        return self._dt


class _BrokenTimestamp:
    def toDate(self) -> datetime:
        raise ValueError("bad timestamp")


class _JsStyleTimestamp:
    def __init__(self, dt: datetime):
        self._dt = dt

    def toDate(self) -> datetime:
        return self._dt


def test_string_dates_plain_and_iso_datetime():
    assert date_from_string("2024-03-01") == date(2024, 3, 1)
    assert date_from_string(" 2024-03-01T10:15:00Z ") == date(2024, 3, 1)
    assert to_ledger_date("2024-03-01T22:30:00-05:00") == date(2024, 3, 1)


def test_string_dates_keep_the_written_day_regardless_of_offset():
    assert to_ledger_date("2024-03-01T02:00:00+05:00") == date(2024, 3, 1)
    assert to_ledger_date("2024-02-29T23:59:59Z") == date(2024, 2, 29)


def test_string_dates_blank_or_garbage_are_undated():
    assert date_from_string("") is None
    assert to_ledger_date("   ") is None
    assert to_ledger_date("not a date") is None


def test_timestamp_objects_use_their_accessor():
    aware = datetime(2024, 1, 31, 23, 30, tzinfo=timezone(timedelta(hours=-6)))
    assert date_from_timestamp(_FirestoreLikeTimestamp(aware)) == date(2024, 2, 1)
    assert to_ledger_date(_JsStyleTimestamp(datetime(2024, 5, 6, 8, 0))) == date(2024, 5, 6)


def test_timestamp_accessor_that_raises_is_undated():
    assert date_from_timestamp(_BrokenTimestamp()) is None
    assert to_ledger_date(_BrokenTimestamp()) is None


def test_raw_values_epoch_millis_and_date_instances():
    assert date_from_raw(1704067200000) == date(2024, 1, 1)
    assert to_ledger_date(1704067200000.0) == date(2024, 1, 1)
    assert to_ledger_date(date(2023, 12, 31)) == date(2023, 12, 31)
    assert to_ledger_date(datetime(2023, 12, 31, 23, 59)) == date(2023, 12, 31)


def test_raw_values_that_are_not_dates():
    assert to_ledger_date(None) is None
    assert to_ledger_date(True) is None
    assert to_ledger_date(float("nan")) is None
    assert to_ledger_date({"seconds": 1}) is None


def test_coerce_amount_is_lenient_but_reports_malformed_values():
    assert coerce_amount("1,234.50") == (1234.5, True)
    assert coerce_amount(" 42 ") == (42.0, True)
    assert coerce_amount(None) == (0.0, True)
    assert coerce_amount("") == (0.0, True)
    assert coerce_amount("abc") == (0.0, False)
    assert coerce_amount(float("inf")) == (0.0, False)
    assert coerce_amount(True) == (0.0, False)
    assert coerce_amount([5]) == (0.0, False)
