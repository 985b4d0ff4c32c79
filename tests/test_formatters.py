import pytest

from staking_strategy.formatters import as_int, format_amount, format_duration, same_address, short_address


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (True, 1),
        (False, 0),
        (5, 5),
        ("5", 5),
        ("  5  ", 5),
        ("0x10", 16),
        ("-500", -500),
        ("1_000", 1000),
        ("1e18", 10**18),
        ("1.5e18", 15 * 10**17),
    ],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_as_int_default_and_garbage():
    assert as_int(None, default=7) == 7
    with pytest.raises(ValueError):
        as_int("ten")


def test_same_address_ignores_checksum_case():
    assert same_address("0x9D39A5DE30e57443BfF2A8307A4256c8797A3497", "0x9d39a5de30e57443bff2a8307a4256c8797a3497")
    assert not same_address("0x9d39a5de30e57443bff2a8307a4256c8797a3497", "0x4c9edd5852cd905f086c759e8383e09bff1e68b3")
    assert not same_address(None, None)


def test_short_address():
    assert short_address("0x4c9edd5852cd905f086c759e8383e09bff1e68b3") == "0x4c9edd58...1e68b3"
    assert short_address("0x00a1") == "0x00a1"


def test_format_amount():
    assert format_amount(15 * 10**17, symbol="USDe") == "1.5 USDe"
    assert format_amount(10**18) == "1"
    assert format_amount(0) == "0"
    assert format_amount(123456789, decimals=6, places=2) == "123.46"
    assert format_amount(110, decimals=0) == "110"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0s"),
        (-5, "0s"),
        (5, "5s"),
        (2700, "45m"),
        (3720, "1h 2m"),
        (604800, "7d 0h"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
