import pytest

from mediarelay.avcc import decode_avcc, encode_avcc

CASES = [
    (
        "single",
        bytes([0x00, 0x00, 0x00, 0x03, 0xAA, 0xBB, 0xCC]),
        [bytes([0xAA, 0xBB, 0xCC])],
    ),
    (
        "multiple",
        bytes([
            0x00, 0x00, 0x00, 0x02,
            0xAA, 0xBB,
            0x00, 0x00, 0x00, 0x02,
            0xCC, 0xDD,
            0x00, 0x00, 0x00, 0x02,
            0xEE, 0xFF,
        ]),
        [bytes([0xAA, 0xBB]), bytes([0xCC, 0xDD]), bytes([0xEE, 0xFF])],
    ),
]


@pytest.mark.parametrize("name, enc, dec", CASES, ids=[c[0] for c in CASES])
def test_decode(name, enc, dec):
    assert decode_avcc(enc) == dec


@pytest.mark.parametrize("name, enc, dec", CASES, ids=[c[0] for c in CASES])
def test_encode(name, enc, dec):
    assert encode_avcc(dec) == enc


@pytest.mark.parametrize(
    "enc",
    [b"", bytes([0x01]), bytes([0x00, 0x00, 0x00, 0x03])],
    ids=["empty", "invalid length short", "invalid length body"],
)
def test_decode_error(enc):
    with pytest.raises(ValueError):
        decode_avcc(enc)


def test_round_trip():
    nalus = [bytes(range(10)), bytes([0x65]), bytes(300)]
    assert decode_avcc(encode_avcc(nalus)) == nalus