import pytest

from pipelines.extraction.numbers import NumberKind, iter_numbers, scan_number


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("$520,000", 520000),
        ("Closed 1,234 homes", 1234),
        ("48.96 days", 48),
        ("-12 listings", -12),
    ],
)
def test_scan_integer(text, expected):
    value = scan_number(text, NumberKind.INTEGER)

    assert value == expected
    assert isinstance(value, int)


def test_scan_decimal():
    assert scan_number("Months of Inventory 1.48", NumberKind.DECIMAL) == pytest.approx(1.48)
    assert scan_number("supply 3", NumberKind.DECIMAL) == pytest.approx(3.0)
    assert scan_number("-3.5 change", NumberKind.DECIMAL) == pytest.approx(-3.5)


def test_scan_without_digits_is_absent():
    assert scan_number("no numbers here", NumberKind.INTEGER) is None
    assert scan_number("", NumberKind.DECIMAL) is None


def test_digits_glued_to_words_are_ignored():
    assert scan_number("RPR2 report shows 15", NumberKind.INTEGER) == 15


def test_percent_exclusion_skips_the_whole_token():
    text = "5.2% MoM then 312"

    assert scan_number(text, NumberKind.INTEGER) == 5
    assert scan_number(text, NumberKind.INTEGER, exclude_percent=True) == 312
    assert scan_number("down 12 % from 300", NumberKind.INTEGER, exclude_percent=True) == 300
    assert scan_number("+4.2%", NumberKind.DECIMAL, exclude_percent=True) is None


def test_iter_numbers_reads_in_order():
    assert list(iter_numbers("12, 1,500 and 7", NumberKind.INTEGER)) == [12, 1500, 7]
