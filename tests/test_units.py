from datetime import timedelta

import pytest

from regcache.units import Quantity, QuantityFormat, format_duration, parse_duration, parse_quantity


@pytest.mark.parametrize("text", ["10Gi", "20Gi", "5Gi"])
def test_canonical_binary_sizes_are_kept(text):
    assert str(parse_quantity(text)) == text


def test_equal_by_value_across_suffixes():
    assert parse_quantity("10Gi") == parse_quantity("10240Mi")
    assert parse_quantity("1Ki") == parse_quantity("1024")


def test_binary_suffix_sets_format():
    assert parse_quantity("10Gi").format is QuantityFormat.BINARY_SI
    assert parse_quantity("10G").format is QuantityFormat.DECIMAL_SI
    assert parse_quantity("1e3").format is QuantityFormat.DECIMAL_EXPONENT


def test_ordering():
    assert parse_quantity("5Gi") < parse_quantity("10Gi")
    assert parse_quantity("-1Gi") < Quantity()
    assert parse_quantity("0") == Quantity()
    assert parse_quantity("1k") > parse_quantity("999")


@pytest.mark.parametrize("text", ["10Gi", "500Mi", "1k", "100m", "1e3", "1.5Gi", "0", "1500", "2.5k", "-3Mi"])
def test_string_round_trip(text):
    quantity = parse_quantity(text)
    again = parse_quantity(str(quantity))
    assert again == quantity
    assert str(again) == str(quantity)


def test_hash_matches_equality():
    assert len({parse_quantity("10Gi"), parse_quantity("10240Mi")}) == 1


@pytest.mark.parametrize("text", ["", "abc", "10Gb", "1.2.3", "Gi", "10 Gi"])
def test_invalid_quantity(text):
    with pytest.raises(ValueError):
        parse_quantity(text)


def test_parse_seven_days():
    assert parse_duration("168h") == timedelta(hours=7 * 24)


def test_format_seven_days():
    assert format_duration(timedelta(hours=7 * 24)) == "168h0m0s"


def test_format_zero():
    assert format_duration(timedelta(0)) == "0s"
    assert parse_duration("0") == timedelta(0)


def test_equivalent_spellings():
    assert parse_duration("1h30m") == parse_duration("90m")
    assert parse_duration("1.5h") == parse_duration("90m")
    assert parse_duration("-1h") == -parse_duration("1h")


@pytest.mark.parametrize(
    "duration",
    [
        timedelta(days=7),
        timedelta(days=30),
        timedelta(seconds=90),
        timedelta(seconds=1, microseconds=500000),
        timedelta(milliseconds=250),
        timedelta(microseconds=7),
        timedelta(hours=-2),
        timedelta(minutes=5, seconds=3),
    ],
)
def test_duration_round_trip(duration):
    assert parse_duration(format_duration(duration)) == duration


@pytest.mark.parametrize("text", ["", "1", "abc", "1x", "h", "1h1", "-"])
def test_invalid_duration(text):
    with pytest.raises(ValueError):
        parse_duration(text)