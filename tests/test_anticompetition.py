import pytest

from mediarelay.anticompetition import anti_competition_add, anti_competition_remove

# Every three-byte start-code-like sequence gets an emulation prevention byte.
RAW = bytes.fromhex("000000" "000001" "000002" "000003")
ESCAPED = bytes.fromhex("00000300" "00000301" "00000302" "00000303")


def test_add_inserts_emulation_prevention_bytes():
    assert anti_competition_add(RAW) == ESCAPED


def test_remove_strips_emulation_prevention_bytes():
    assert anti_competition_remove(ESCAPED) == RAW


@pytest.mark.parametrize(
    "data",
    [
        b"",
        bytes.fromhex("658884"),
        bytes.fromhex("0000040000"),
        bytes.fromhex("01000001000000" "00ff"),
    ],
)
def test_round_trip(data):
    assert anti_competition_remove(anti_competition_add(data)) == data


def test_untouched_without_escape_sequences():
    data = bytes.fromhex("00010005000007")
    assert anti_competition_add(data) == data
    assert anti_competition_remove(data) == data