from datetime import datetime
from decimal import Decimal

import pytest

from barbershop.normalize import normalize_specialties, to_float, to_int
from barbershop.notifications import format_appointment_time


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Fade, Beard", ["Fade", "Beard"]),
        (" Fade ,, ,Beard ", ["Fade", "Beard"]),
        ("", []),
        (["Fade", "", "  Beard  ", None, 3], ["Fade", "Beard"]),
        (("Kids cut",), ["Kids cut"]),
        (None, []),
        ({"Fade": True}, []),
        (42, []),
    ],
)
def test_normalize_specialties(raw, expected):
    assert normalize_specialties(raw) == expected


def test_to_float_handles_decimals_and_garbage():
    assert to_float(Decimal("50.00")) == 50.0
    assert to_float("12.5") == 12.5
    assert to_float(None) == 0.0
    assert to_float("n/a") == 0.0


def test_to_int_defaults():
    assert to_int("7") == 7
    assert to_int(None) == 0
    assert to_int("seven", default=-1) == -1


@pytest.mark.parametrize(
    "value, expected",
    [
        (datetime(2030, 3, 5, 14, 30), "Mar 5, 2030 at 2:30 PM UTC"),
        (datetime(2030, 12, 25, 0, 5), "Dec 25, 2030 at 12:05 AM UTC"),
        (datetime(2030, 7, 1, 12, 0), "Jul 1, 2030 at 12:00 PM UTC"),
    ],
)
def test_format_appointment_time(value, expected):
    assert format_appointment_time(value) == expected


def test_format_appointment_time_in_shop_zone():
    # naive values are UTC; July is daylight time in New York
    assert format_appointment_time(datetime(2030, 7, 1, 16, 0), "America/New_York") == "Jul 1, 2030 at 12:00 PM EDT"
