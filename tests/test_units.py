import pytest

from a402.utils import format_units


@pytest.mark.parametrize(
    "value,decimals,expected",
    [
        (1_500_000, 6, "1.5"),
        ("1000000", 6, "1"),
        (1, 6, "0.000001"),
        (0, 18, "0"),
        (123, 0, "123"),
        (
            2**256 - 1,
            18,
            "115792089237316195423570985008687907853269984665640564039457.584007913129639935",
        ),
    ],
)
def test_format_units(value, decimals, expected):
    assert format_units(value, decimals) == expected
