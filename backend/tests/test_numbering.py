import re

import pytest

from mocards.services import numbering


def test_batch_number_format():
    batch_number = numbering.generate_batch_number("MOB", now=1718234512.5)

    assert re.match(r"^MOB-\d{8}-[0-9A-F]{4}$", batch_number)
    assert batch_number.startswith("MOB-34512500-")


def test_control_numbers_are_derived_from_batch_and_position():
    batch_number = "MOB-07182345-3FA9"

    assert numbering.batch_seed(batch_number) == "07182345-3FA9"
    assert numbering.control_number_for("MOC", batch_number, 1) == "MOC-07182345-3FA9-00001"
    assert numbering.control_number_for("MOC", batch_number, 1234) == "MOC-07182345-3FA9-01234"


def test_incomplete_passcode_is_four_digits():
    for _ in range(200):
        passcode = numbering.generate_incomplete_passcode()
        assert numbering.is_incomplete_passcode(passcode)
        assert not numbering.is_complete_passcode(passcode)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("CAV", "CAV"),
        ("mnl", "MNL"),
        (" ceb ", "CEB"),
        ("CA", None),
        ("CAVI", None),
        ("C1V", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_location_code(raw, expected):
    assert numbering.normalize_location_code(raw) == expected


def test_complete_passcode():
    passcode = numbering.complete_passcode("CAV", "0042")

    assert passcode == "CAV0042"
    assert numbering.is_complete_passcode(passcode)
    assert not numbering.is_incomplete_passcode(passcode)
    assert not numbering.is_complete_passcode("CAV042")
    assert not numbering.is_complete_passcode("")
