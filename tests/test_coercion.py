from __future__ import annotations

import datetime as dt
import pytest

from hermes import coercion


def test_parse_helpers_reject_padding() -> None:
    assert coercion.parse_int("42") == 42
    assert coercion.parse_int(" 42") is None
    assert coercion.parse_int("4.2") is None
    assert coercion.parse_float("4.25") == 4.25
    assert coercion.parse_float("1e3") == 1000.0
    assert coercion.parse_float("1_000") is None
    assert coercion.parse_number("7") == 7
    assert coercion.parse_number("7.5") == 7.5
    assert coercion.parse_number("seven") is None


def test_to_float_prefers_string_parsing() -> None:
    assert coercion.to_float("2.5") == 2.5
    assert coercion.to_float(3) == 3.0
    assert coercion.to_float(1.25) == 1.25
    assert coercion.to_float(True) is None
    assert coercion.to_float("abc") is None
    assert coercion.to_float(b"1.5") is None


def test_to_int_truncates_floats() -> None:
    assert coercion.to_int("12") == 12
    assert coercion.to_int("12.9") == 12
    assert coercion.to_int("-3.7") == -3
    assert coercion.to_int(9.99) == 9
    assert coercion.to_int(False) is None
    assert coercion.to_int("inf") is None
    assert coercion.to_int(float("nan")) is None


def test_to_bool_uses_integer_fallback() -> None:
    assert coercion.to_bool(True) is True
    assert coercion.to_bool("0") is False
    assert coercion.to_bool("2") is True
    assert coercion.to_bool(0.0) is False
    assert coercion.to_bool("yes") is None


def test_to_uint64_accepts_bytes_and_rejects_negatives() -> None:
    assert coercion.to_uint64(b"42") == 42
    assert coercion.to_uint64("18446744073709551615") == 2**64 - 1
    assert coercion.to_uint64("18446744073709551616") is None
    assert coercion.to_uint64(-1) is None
    assert coercion.to_uint64(3.9) == 3
    assert coercion.to_uint64(True) is None


def test_to_string_trims_spaces_and_decodes_bytes() -> None:
    assert coercion.to_string("  padded ") == "padded"
    assert coercion.to_string(b" raw ") == "raw"
    assert coercion.to_string(5) is None


def test_to_bytes_requires_valid_base64() -> None:
    assert coercion.to_bytes("aGVsbG8=") == b"hello"
    assert coercion.to_bytes(b"raw") == b"raw"
    assert coercion.to_bytes("not base64!") is None
    assert coercion.to_bytes(12) is None


def test_to_time_layouts_in_order() -> None:
    assert coercion.to_time("2016-06-07T00:30Z") == dt.datetime(2016, 6, 7, 0, 30, tzinfo=dt.timezone.utc)
    assert coercion.to_time("2016-06-07T00:30:15+02:00") == dt.datetime(
        2016, 6, 7, 0, 30, 15, tzinfo=dt.timezone(dt.timedelta(hours=2))
    )
    assert coercion.to_time("2016-07-17") == dt.datetime(2016, 7, 17, tzinfo=dt.timezone.utc)
    assert coercion.to_time("2016-07-17 08:09:10") == dt.datetime(2016, 7, 17, 8, 9, 10, tzinfo=dt.timezone.utc)
    assert coercion.to_time("2016-07-17T08:09") == dt.datetime(2016, 7, 17, 8, 9, tzinfo=dt.timezone.utc)
    assert coercion.to_time("17/07/2016") is None
    assert coercion.to_time("2016-7-1") is None
    assert coercion.to_time("2016-07-17 8:09:10") is None
    assert coercion.to_time("2016-07-17T8:09") is None
    assert coercion.to_time(1468713600) is None


def test_to_time_applies_zone_to_local_layouts_only() -> None:
    berlin = dt.timezone(dt.timedelta(hours=2), "CEST")
    local = coercion.to_time("2016-07-17", berlin)
    assert local is not None
    assert local.tzinfo is berlin
    explicit = coercion.to_time("2016-07-17T00:00Z", berlin)
    assert explicit is not None
    assert explicit.utcoffset() == dt.timedelta(0)


def test_to_time_passes_datetimes_through() -> None:
    stamp = dt.datetime(2020, 1, 1, tzinfo=dt.timezone.utc)
    assert coercion.to_time(stamp) is stamp


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1.5,2,x", [1.5, 2.0, 0.0]),
        ([1, "2.5", None], [1.0, 2.5, 0.0]),
    ],
)
def test_to_float_list(value: object, expected: list[float]) -> None:
    assert coercion.to_float_list(value) == expected


def test_to_int_list_sources() -> None:
    assert coercion.to_int_list("1,2,3") == [1, 2, 3]
    assert coercion.to_int_list(b"4,5") == [4, 5]
    assert coercion.to_int_list([1, 2.7, "3", "x"]) == [1, 2, 3, 0]
    assert coercion.to_int_list("") is None
    assert coercion.to_int_list(7) is None


def test_to_uint64_list_zeroes_negatives() -> None:
    assert coercion.to_uint64_list("1,-2,3") == [1, 0, 3]


def test_to_string_list_sources() -> None:
    assert coercion.to_string_list("this,that") == ["this", "that"]
    assert coercion.to_string_list(["a", b"b", 3]) == ["a", "b", ""]
    assert coercion.to_string_list(b"a,b") is None


def test_to_json_object() -> None:
    nested = {"a": 1}
    assert coercion.to_json_object(nested) is nested
    assert coercion.to_json_object('{"b": [1, 2]}') == {"b": [1, 2]}
    assert coercion.to_json_object("[1, 2]") is None
    assert coercion.to_json_object("{broken") is None


def test_overlong_digit_strings_fail_without_raising() -> None:
    digits = "1" * 5000
    assert coercion.parse_int(digits) is None
    assert coercion.to_int(digits) is None
    assert coercion.to_uint64(digits) is None
    assert coercion.to_uint64(digits.encode()) is None
    assert coercion.to_bool(digits) is None
    assert coercion.to_int_list(f"{digits},2") == [0, 2]
    assert coercion.to_uint64_list([digits, "3"]) == [0, 3]


def test_integers_beyond_float_range() -> None:
    huge = 10**400
    assert coercion.to_float(huge) is None
    assert coercion.to_float_list([huge, 1]) == [0.0, 1.0]
    assert coercion.to_int(huge) == huge
    assert coercion.to_uint64(huge) is None
