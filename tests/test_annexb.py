import pytest

from mediarelay.annexb import decode_annexb, encode_annexb

CASES = [
    (
        "2 zeros, single",
        bytes([0x00, 0x00, 0x01, 0xAA, 0xBB]),
        bytes([0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB]),
        [bytes([0xAA, 0xBB])],
    ),
    (
        "2 zeros, multiple",
        bytes([
            0x00, 0x00, 0x01, 0xAA, 0xBB, 0x00, 0x00, 0x01,
            0xCC, 0xDD, 0x00, 0x00, 0x01, 0xEE, 0xFF,
        ]),
        bytes([
            0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB, 0x00, 0x00,
            0x00, 0x01, 0xCC, 0xDD, 0x00, 0x00, 0x00, 0x01,
            0xEE, 0xFF,
        ]),
        [bytes([0xAA, 0xBB]), bytes([0xCC, 0xDD]), bytes([0xEE, 0xFF])],
    ),
    (
        "3 zeros, single",
        bytes([0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB]),
        bytes([0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB]),
        [bytes([0xAA, 0xBB])],
    ),
    (
        "3 zeros, multiple",
        bytes([
            0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB, 0x00, 0x00,
            0x00, 0x01, 0xCC, 0xDD, 0x00, 0x00, 0x00, 0x01,
            0xEE, 0xFF,
        ]),
        bytes([
            0x00, 0x00, 0x00, 0x01, 0xAA, 0xBB, 0x00, 0x00,
            0x00, 0x01, 0xCC, 0xDD, 0x00, 0x00, 0x00, 0x01,
            0xEE, 0xFF,
        ]),
        [bytes([0xAA, 0xBB]), bytes([0xCC, 0xDD]), bytes([0xEE, 0xFF])],
    ),
]


@pytest.mark.parametrize("name, encin, encout, dec", CASES, ids=[c[0] for c in CASES])
def test_decode(name, encin, encout, dec):
    assert decode_annexb(encin) == dec


@pytest.mark.parametrize("name, encin, encout, dec", CASES, ids=[c[0] for c in CASES])
def test_encode(name, encin, encout, dec):
    assert encode_annexb(dec) == encout


@pytest.mark.parametrize(
    "enc",
    [
        b"",
        bytes([0xAA, 0xBB]),
        bytes([0x00, 0x00, 0x01]),
        bytes([0x00, 0x00, 0x01, 0xAA, 0x00, 0x00, 0x01]),
    ],
    ids=["empty", "missing initial delimiter", "empty initial", "empty 2nd"],
)
def test_decode_error(enc):
    with pytest.raises(ValueError):
        decode_annexb(enc)


def test_round_trip():
    nalus = [bytes([0x67, 0x42, 0x10]), bytes([0x68, 0xCE]), bytes([0x65, 0x88, 0x84])]
    assert decode_annexb(encode_annexb(nalus)) == nalus