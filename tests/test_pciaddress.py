import pytest

from hwscan import pciaddress
from hwscan.pciaddress import Address


@pytest.mark.parametrize(
    "text, expected, check_string",
    [
        ("00:00.0", Address("0000", "00", "00", "0"), False),
        ("0000:00:00.0", Address("0000", "00", "00", "0"), True),
        ("0000:03:00.0", Address("0000", "03", "00", "0"), True),
        ("0000:03:00.A", Address("0000", "03", "00", "a"), True),
        ("10000:03:00.A", Address("10000", "03", "00", "a"), True),
    ],
)
def test_from_string(text, expected, check_string):
    got = pciaddress.from_string(text)
    assert got == expected
    if check_string:
        assert str(got).lower() == text.lower()


@pytest.mark.parametrize(
    "text", ["junk", "0000:03:00", "0000:03:00.0\n", "0000:3:00.0", "pci0000:00"]
)
def test_from_string_rejects_invalid(text):
    assert pciaddress.from_string(text) is None


def test_str_canonical_form():
    assert str(pciaddress.from_string("00:1f.6")) == "0000:00:1f.6"